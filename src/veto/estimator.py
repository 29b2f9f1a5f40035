"""Reference estimator — robust event position/time and signal start.

For a selected hit population the estimator provides

  reference_position — amplitude-weighted centre of gravity of the sensors
  reference_time     — amplitude-weighted median of the hit times
  start_time         — start edge of the earliest time window of at most
                       ``START_WINDOW`` ns whose summed amplitude reaches
                       ``max(3, 0.05 * total_amplitude)``
  start_position     — position of the sensor whose hit closes that window
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from src.contracts.detector import ORIGIN, DetectorEvent, Position, SensorHit
from src.contracts.enums import DeviceClass

log = logging.getLogger(__name__)

START_WINDOW = 3000.0  # ns
START_FRACTION = 0.05
START_MIN_AMPLITUDE = 3.0

# Systems that take their reference hits from the in-ice standard array only
_REFERENCE_CLASS: dict[str, DeviceClass] = {"HESE86": DeviceClass.ICDOM}


@dataclass(slots=True)
class ReferenceTiming:
    reference_position: Position = ORIGIN
    reference_time: float = 0.0
    total_amplitude: float = 0.0
    start_time: float = 0.0
    start_position: Position = ORIGIN
    window: tuple[int, int] = (-1, -1)

    @property
    def has_start(self) -> bool:
        return self.window[1] >= 0


def reference_class(system_name: str) -> DeviceClass:
    return _REFERENCE_CLASS.get(system_name, DeviceClass.IDOM)


def select_reference_hits(event: DetectorEvent, system_name: str) -> list[SensorHit]:
    """Hit population used as timing reference for *system_name*.

    Low-confidence hits never enter the reference.
    """
    return event.hits(reference_class(system_name), include_low_confidence=False)


def centre_of_gravity(hits: Sequence[SensorHit]) -> Position:
    total = sum(sh.hit.amplitude for sh in hits)
    if total <= 0:
        return ORIGIN
    x = sum(sh.hit.amplitude * sh.sensor.position[0] for sh in hits) / total
    y = sum(sh.hit.amplitude * sh.sensor.position[1] for sh in hits) / total
    z = sum(sh.hit.amplitude * sh.sensor.position[2] for sh in hits) / total
    return (x, y, z)


def weighted_median(values: Sequence[float], weights: Sequence[float]) -> float:
    """Median of *values* on the cumulative-weight distribution.

    When the cumulative weight lands exactly on one half, the midpoint with
    the next value is returned (equal weights reproduce the plain median).
    Zero total weight falls back to the plain median; no values gives 0.
    """
    if not values:
        return 0.0
    pairs = sorted(zip(values, weights))
    total = sum(w for _, w in pairs)
    if total <= 0:
        pairs = [(v, 1.0) for v, _ in pairs]
        total = float(len(pairs))

    half = total / 2
    cum = 0.0
    for i, (v, w) in enumerate(pairs):
        cum += w
        if cum == half and i + 1 < len(pairs):
            return (v + pairs[i + 1][0]) / 2
        if cum >= half:
            return v
    return pairs[-1][0]


def slide_window(
    ordered: Sequence[SensorHit],
    threshold: float,
    width: float = START_WINDOW,
) -> tuple[int, int]:
    """Earliest ``(i1, i2)`` over time-ordered hits whose amplitude sum reaches *threshold*.

    All hits in ``[i1, i2]`` lie within *width* of hit ``i1``.  Returns
    ``(-1, -1)`` when no such window exists.
    """
    n = len(ordered)
    for i1 in range(n):
        t1 = ordered[i1].hit.time
        acc = 0.0
        for i2 in range(i1, n):
            if ordered[i2].hit.time - t1 > width:
                break
            acc += ordered[i2].hit.amplitude
            if acc >= threshold:
                return i1, i2
    return -1, -1


def estimate(hits: Sequence[SensorHit]) -> ReferenceTiming:
    """Compute the reference and start coordinates of a hit population."""
    timing = ReferenceTiming()
    if not hits:
        return timing

    timing.total_amplitude = sum(sh.hit.amplitude for sh in hits)
    timing.reference_position = centre_of_gravity(hits)
    timing.reference_time = weighted_median(
        [sh.hit.time for sh in hits], [sh.hit.amplitude for sh in hits]
    )

    ordered = sorted(hits, key=lambda sh: sh.hit.time)
    threshold = max(START_MIN_AMPLITUDE, START_FRACTION * timing.total_amplitude)
    i1, i2 = slide_window(ordered, threshold)
    timing.window = (i1, i2)
    if i2 >= 0:
        timing.start_time = ordered[i1].hit.time
        timing.start_position = ordered[i2].sensor.position
    else:
        log.debug(
            "No start window: %d hits, total amplitude %.2f below threshold %.2f",
            len(ordered), timing.total_amplitude, threshold,
        )
    return timing


def estimate_for_system(event: DetectorEvent, system_name: str) -> ReferenceTiming:
    return estimate(select_reference_hits(event, system_name))
