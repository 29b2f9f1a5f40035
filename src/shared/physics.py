"""Physical constants used by the veto engine."""

from __future__ import annotations

SPEED_OF_LIGHT = 299_792_458.0  # m/s


def propagation_speed() -> float:
    """Signal propagation speed in the event store's native units (m/ns)."""
    return SPEED_OF_LIGHT * 1.0e-9
