"""Shared fixtures for the event veto engine tests."""

from __future__ import annotations

import pytest

from src.contracts.detector import SELECTOR_DEVICE, DetectorEvent, Hit, Sensor
from src.contracts.enums import DeviceClass
from src.veto.catalog import VetoCatalog

# ── Helpers: build sensors and events with sensible defaults ────────────


def make_hit(
    *,
    amplitude: float = 1.0,
    time: float = 0.0,
    low_confidence: bool = False,
) -> Hit:
    return Hit(amplitude=amplitude, time=time, low_confidence=low_confidence)


def make_sensor(
    *,
    sensor_id: int = 3401,
    position: tuple[float, float, float] = (0.0, 0.0, 0.0),
    device_class: DeviceClass | None = None,
    hits: list[Hit] | None = None,
) -> Sensor:
    return Sensor(
        sensor_id=sensor_id,
        position=position,
        device_class=device_class,
        hits=list(hits or []),
    )


def make_event(
    *,
    event_id: str = "evt-1",
    sensors: list[Sensor] | None = None,
    select: float | None = None,
) -> DetectorEvent:
    event = DetectorEvent(event_id=event_id)
    for s in sensors or []:
        event.add_sensor(s)
    if select is not None:
        event.attach(SELECTOR_DEVICE, {"Select": select})
    return event


def define_open_system(catalog: VetoCatalog, name: str, **overrides) -> None:
    """Define a system with permissive thresholds (everything counts)."""
    params = {
        "min_total_amplitude": 0.0,
        "min_hit_amplitude": 0.0,
        "min_distinct_sensors": 1,
        "min_hit_count": 1,
        "allow_low_confidence": True,
        "residual_min": 1.0,
        "residual_max": 0.0,
    }
    params.update(overrides)
    catalog.define_system(name, **params)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture
def catalog() -> VetoCatalog:
    return VetoCatalog()


@pytest.fixture
def residual_event() -> DetectorEvent:
    """Reference: one in-ice hit (amp 10, t=90) at the origin.

    Veto sensor: surface tank 1:61 at x=5 with one hit (amp 10, t=100).
    With a propagation speed of 1.0 the distance term is 5, so the
    reference residual of the veto hit is (100 - 90) - 5 = 5.
    """
    reference = make_sensor(
        sensor_id=3430,
        position=(0.0, 0.0, 0.0),
        hits=[make_hit(amplitude=10.0, time=90.0)],
    )
    tank = make_sensor(
        sensor_id=161,
        position=(5.0, 0.0, 0.0),
        device_class=DeviceClass.TDOM,
        hits=[make_hit(amplitude=10.0, time=100.0)],
    )
    return make_event(sensors=[reference, tank])
