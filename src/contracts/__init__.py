"""Veto Contract — canonical data structures shared by all modules."""

from src.contracts.detector import DetectorEvent, Hit, Sensor, SensorHit
from src.contracts.enums import DeviceClass, ParamKey, SensorAction
from src.contracts.veto import (
    EventVerdict,
    VetoHit,
    VetoResult,
    VetoSystemDefinition,
    VetoThresholds,
)

__all__ = [
    "DetectorEvent",
    "DeviceClass",
    "EventVerdict",
    "Hit",
    "ParamKey",
    "Sensor",
    "SensorAction",
    "SensorHit",
    "VetoHit",
    "VetoResult",
    "VetoSystemDefinition",
    "VetoThresholds",
]
