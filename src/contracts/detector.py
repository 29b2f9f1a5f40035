"""Detector-side data classes: sensors, hits and the per-event container.

``DetectorEvent`` is a minimal in-memory event store.  It exposes only what
the veto engine consumes: sensors by class, hits by class and confidence,
auxiliary devices (results and the selection gate) and the veto level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NamedTuple

from src.contracts.enums import CLASS_MEMBERS, DeviceClass

Position = tuple[float, float, float]

ORIGIN: Position = (0.0, 0.0, 0.0)

# Name of the auxiliary device written by the upstream event selector
SELECTOR_DEVICE = "EventSelector"


def encode_sensor_id(string: int, position: int) -> int:
    """Flat sensor ID ``100*|string| + position``, sign taken from *string*."""
    sid = 100 * abs(string) + position
    return -sid if string < 0 else sid


def decode_sensor_id(sensor_id: int) -> tuple[int, int]:
    """Inverse of :func:`encode_sensor_id` → ``(string, position)``."""
    string, position = divmod(abs(sensor_id), 100)
    return (-string if sensor_id < 0 else string), position


def classify_sensor(sensor_id: int) -> DeviceClass:
    """Default device class derived from the string/position address."""
    string, position = decode_sensor_id(sensor_id)
    if position > 60:
        return DeviceClass.TDOM
    if abs(string) >= 79:
        return DeviceClass.DCDOM
    return DeviceClass.ICDOM


@dataclass(slots=True)
class Hit:
    """One calibrated hit recorded by a sensor."""

    amplitude: float
    time: float  # ns
    low_confidence: bool = False


@dataclass(slots=True)
class Sensor:
    """A fired sensor in an event together with its hits."""

    sensor_id: int
    position: Position
    device_class: DeviceClass | None = None  # None: derived from the address
    hits: list[Hit] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.device_class is None:
            self.device_class = classify_sensor(self.sensor_id)

    @property
    def string(self) -> int:
        return decode_sensor_id(self.sensor_id)[0]

    @property
    def slot(self) -> int:
        return decode_sensor_id(self.sensor_id)[1]

    def is_a(self, device_class: DeviceClass) -> bool:
        return self.device_class in CLASS_MEMBERS[device_class]


class SensorHit(NamedTuple):
    sensor: Sensor
    hit: Hit


@dataclass
class DetectorEvent:
    """One detector event: fired sensors plus attached auxiliary devices."""

    event_id: str
    sensors_by_id: dict[int, Sensor] = field(default_factory=dict)
    devices: dict[str, Any] = field(default_factory=dict)
    veto_level: float | None = None

    def add_sensor(self, sensor: Sensor) -> None:
        self.sensors_by_id[sensor.sensor_id] = sensor

    # ── event store interface ────────────────────────────────────────────

    def sensors(self, device_class: DeviceClass = DeviceClass.GOM) -> list[Sensor]:
        """Fired sensors of *device_class*."""
        return [s for s in self.sensors_by_id.values() if s.is_a(device_class)]

    def sensor(
        self, sensor_id: int, device_class: DeviceClass = DeviceClass.GOM
    ) -> Sensor | None:
        s = self.sensors_by_id.get(sensor_id)
        if s is None or not s.is_a(device_class):
            return None
        return s

    def hits(
        self,
        device_class: DeviceClass = DeviceClass.GOM,
        include_low_confidence: bool = True,
    ) -> list[SensorHit]:
        """All hits of the sensors of *device_class*, optionally dropping low-confidence ones."""
        return [
            SensorHit(s, h)
            for s in self.sensors(device_class)
            for h in s.hits
            if include_low_confidence or not h.low_confidence
        ]

    def attach(self, name: str, record: Any) -> None:
        self.devices[name] = record

    def device(self, name: str) -> Any | None:
        return self.devices.get(name)

    def select_signal(self, device: str = SELECTOR_DEVICE) -> float | None:
        """``Select`` signal of the selection gate device, if one is attached."""
        dev = self.devices.get(device)
        if dev is None:
            return None
        if isinstance(dev, dict):
            value = dev.get("Select")
        else:
            value = getattr(dev, "select", None)
        return None if value is None else float(value)
