"""Decision engine — per-event evaluation of all cataloged veto systems.

For each system the engine takes the reference timing of the event (see
:mod:`src.veto.estimator`), walks the system's sensors that fired and counts
the hits that pass the confidence, amplitude and time-residual cuts.  A
system triggers when the summed amplitude, the number of distinct sensors and
the number of hits all reach their minima.  The event veto level is the
number of triggered systems.

Events rejected by the upstream selector (``Select < 0.1``) and events
without any fired sensor are skipped: no results, veto level untouched.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from src.contracts.detector import DetectorEvent, Sensor
from src.contracts.enums import DeviceClass
from src.contracts.veto import EventVerdict, VetoHit, VetoResult, VetoSystemDefinition
from src.shared.physics import propagation_speed
from src.veto.catalog import VetoCatalog
from src.veto.estimator import ReferenceTiming, estimate_for_system

log = logging.getLogger(__name__)

SELECT_CUTOFF = 0.1


def is_selected(event: DetectorEvent) -> bool:
    """False only when a selection gate is attached and rejected the event."""
    select = event.select_signal()
    return select is None or select >= SELECT_CUTOFF


def result_name(processor: str, system: str) -> str:
    return f"{processor}-{system}"


def _evaluate_sensor(
    sensor: Sensor,
    system: VetoSystemDefinition,
    timing: ReferenceTiming,
    speed: float,
    result: VetoResult,
) -> bool:
    """Accumulate the qualifying hits of one fired veto sensor into *result*."""
    thr = system.thresholds
    pos = sensor.position
    dist0 = math.dist(pos, timing.reference_position)
    dist_start = math.dist(pos, timing.start_position)
    dz0 = pos[2] - timing.reference_position[2]
    dz_start = pos[2] - timing.start_position[2]

    fired = False
    for hit in sensor.hits:
        if hit.low_confidence and not thr.allow_low_confidence:
            continue
        if hit.amplitude < thr.min_hit_amplitude:
            continue

        dt0 = hit.time - timing.reference_time
        dt_start = hit.time - timing.start_time
        residual = dt0 - dist0 / speed
        if not thr.accepts_residual(residual):
            continue

        vhit = VetoHit(
            sensor_id=sensor.sensor_id,
            amplitude=hit.amplitude,
            time=hit.time,
            residual=residual,
            residual_start=dt_start - dist_start / speed,
            residual_z=dt0 - dz0 / speed,
            residual_z_start=dt0 - dz_start / speed,
        )
        log.debug(
            "%s sensor %d: t=%.1f t0=%.1f tstart=%.1f tres0=%.2f trestart=%.2f "
            "tresz0=%.2f treszstart=%.2f",
            system.name, sensor.sensor_id, hit.time, timing.reference_time,
            timing.start_time, vhit.residual, vhit.residual_start,
            vhit.residual_z, vhit.residual_z_start,
        )

        fired = True
        result.total_amplitude += hit.amplitude
        result.hit_count += 1
        result.hits.append(vhit)
    return fired


def evaluate_system(
    event: DetectorEvent,
    system: VetoSystemDefinition,
    speed: float,
) -> VetoResult:
    """Evaluate one veto system on one event."""
    timing = estimate_for_system(event, system.name)
    thr = system.thresholds
    result = VetoResult(
        event_id=event.event_id,
        system_id=system.system_id,
        system=system.name,
        title=system.title,
        thresholds=thr,
        reference_time=timing.reference_time,
        reference_position=timing.reference_position,
        start_time=timing.start_time,
        start_position=timing.start_position,
    )

    for sid in system.sensor_ids:
        sensor = event.sensor(sid)
        if sensor is None:
            continue
        if _evaluate_sensor(sensor, system, timing, speed, result):
            result.distinct_sensors += 1

    result.triggered = (
        result.total_amplitude >= thr.min_total_amplitude
        and result.distinct_sensors >= thr.min_distinct_sensors
        and result.hit_count >= thr.min_hit_count
    )
    return result


def evaluate_event(
    event: DetectorEvent,
    catalog: VetoCatalog,
    *,
    speed: float | None = None,
) -> EventVerdict | None:
    """Run every cataloged veto system on *event*.

    Attaches one :class:`VetoResult` per system under
    ``"<processor>-<system>"`` and stores the veto level on the event.

    Returns
    ───────
    The :class:`EventVerdict`, or None when the event was skipped.
    """
    if not is_selected(event):
        log.debug("Event %s rejected by selector — skipped", event.event_id)
        return None
    if not event.sensors(DeviceClass.GOM):
        log.debug("Event %s has no fired sensors — skipped", event.event_id)
        return None

    c = speed if speed is not None else propagation_speed()
    verdict = EventVerdict(event_id=event.event_id)
    for system in catalog:
        result = evaluate_system(event, system, c)
        event.attach(result_name(catalog.processor, system.name), result)
        verdict.results.append(result)

    event.veto_level = verdict.veto_level
    log.debug(
        "Event %s: veto level %d (%s)",
        event.event_id, verdict.veto_level, ", ".join(verdict.triggered_systems()) or "none",
    )
    return verdict


def evaluate_events(
    events: Iterable[DetectorEvent],
    catalog: VetoCatalog,
    *,
    speed: float | None = None,
) -> list[EventVerdict]:
    """Evaluate a batch of events; skipped events yield no verdict."""
    if not catalog.frozen:
        catalog.freeze()

    verdicts: list[EventVerdict] = []
    total = 0
    for event in events:
        total += 1
        verdict = evaluate_event(event, catalog, speed=speed)
        if verdict is not None:
            verdicts.append(verdict)

    vetoed = sum(1 for v in verdicts if v.vetoed)
    log.info(
        "Veto engine: %d events, %d evaluated, %d skipped, %d vetoed",
        total, len(verdicts), total - len(verdicts), vetoed,
    )
    return verdicts
