"""Canonical enumerations shared by the veto contracts."""

from __future__ import annotations

from enum import Enum


class DeviceClass(str, Enum):
    """Sensor classes as exposed by the event store.

    ``GOM`` is the union of all classes, ``IDOM`` the union of the two
    in-ice classes.
    """

    GOM = "GOM"
    IDOM = "IDOM"
    ICDOM = "ICDOM"
    DCDOM = "DCDOM"
    TDOM = "TDOM"


# Which concrete classes each (possibly composite) class covers
CLASS_MEMBERS: dict[DeviceClass, frozenset[DeviceClass]] = {
    DeviceClass.GOM: frozenset({DeviceClass.ICDOM, DeviceClass.DCDOM, DeviceClass.TDOM}),
    DeviceClass.IDOM: frozenset({DeviceClass.ICDOM, DeviceClass.DCDOM}),
    DeviceClass.ICDOM: frozenset({DeviceClass.ICDOM}),
    DeviceClass.DCDOM: frozenset({DeviceClass.DCDOM}),
    DeviceClass.TDOM: frozenset({DeviceClass.TDOM}),
}


class ParamKey(str, Enum):
    """Threshold keys of a veto system (values are the dataclass field names)."""

    MIN_TOTAL_AMPLITUDE = "min_total_amplitude"
    MIN_HIT_AMPLITUDE = "min_hit_amplitude"
    MIN_DISTINCT_SENSORS = "min_distinct_sensors"
    MIN_HIT_COUNT = "min_hit_count"
    ALLOW_LOW_CONFIDENCE = "allow_low_confidence"
    RESIDUAL_MIN = "residual_min"
    RESIDUAL_MAX = "residual_max"


# Legacy slot names, still accepted as aliases
PARAM_SLOT_ALIASES: dict[str, ParamKey] = {
    "QtotVetoMin": ParamKey.MIN_TOTAL_AMPLITUDE,
    "AmpVetoMin": ParamKey.MIN_HIT_AMPLITUDE,
    "NdomVetoMin": ParamKey.MIN_DISTINCT_SENSORS,
    "NhitVetoMin": ParamKey.MIN_HIT_COUNT,
    "SLCVeto": ParamKey.ALLOW_LOW_CONFIDENCE,
    "TresVetoMin": ParamKey.RESIDUAL_MIN,
    "TresVetoMax": ParamKey.RESIDUAL_MAX,
}


class SensorAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"
