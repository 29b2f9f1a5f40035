"""Pipeline — orchestrator: load config + events -> veto engine -> report.

Supports JSONL (one event per line) and JSON (list of events) input.

Event object
────────────
    {"event_id": "42", "select": 1.0,
     "sensors": [{"id": 3405, "position": [x, y, z], "device_class": "ICDOM",
                  "hits": [{"amplitude": 2.5, "time": 10350.0, "low_confidence": false}]}]}

``select`` is optional; when present it is attached as the upstream
selection gate.  ``device_class`` defaults to the class implied by the
sensor address.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from src.contracts.detector import (
    SELECTOR_DEVICE,
    DetectorEvent,
    Hit,
    Sensor,
)
from src.contracts.enums import DeviceClass
from src.contracts.veto import EventVerdict
from src.veto.catalog import VetoCatalog
from src.veto.config import load_catalog
from src.veto.engine import evaluate_events
from src.veto.reporter import (
    describe_catalog,
    write_levels_csv,
    write_plots,
    write_report_txt,
    write_results_csv,
)

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Event loaders
# ═══════════════════════════════════════════════════════════════════════════


def _parse_sensor(obj: dict[str, Any]) -> Sensor:
    sid = int(obj["id"])
    x, y, z = (float(v) for v in obj.get("position", (0.0, 0.0, 0.0)))
    cls = obj.get("device_class")
    return Sensor(
        sensor_id=sid,
        position=(x, y, z),
        device_class=DeviceClass(cls) if cls else None,
        hits=[
            Hit(
                amplitude=float(h["amplitude"]),
                time=float(h["time"]),
                low_confidence=bool(h.get("low_confidence", False)),
            )
            for h in obj.get("hits", [])
        ],
    )


def _parse_event(obj: dict[str, Any], index: int) -> DetectorEvent:
    """Build a DetectorEvent from one decoded JSON object."""
    event = DetectorEvent(event_id=str(obj.get("event_id", index)))
    for s in obj.get("sensors", []):
        event.add_sensor(_parse_sensor(s))
    if obj.get("select") is not None:
        event.attach(SELECTOR_DEVICE, {"Select": float(obj["select"])})
    return event


def load_events_jsonl(path: str) -> list[DetectorEvent]:
    events: list[DetectorEvent] = []
    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(_parse_event(json.loads(line), line_no))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                log.warning("Skipping JSONL line %d: %s", line_no, exc)
    log.info("Loaded %d events from JSONL: %s", len(events), path)
    return events


def load_events_json(path: str) -> list[DetectorEvent]:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("events", [])
    events: list[DetectorEvent] = []
    for i, obj in enumerate(data, 1):
        try:
            events.append(_parse_event(obj, i))
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping event #%d: %s", i, exc)
    log.info("Loaded %d events from JSON: %s", len(events), path)
    return events


def load_events(path: str) -> list[DetectorEvent]:
    """Auto-detect format by file extension and load events."""
    if Path(path).suffix in (".jsonl", ".ndjson"):
        return load_events_jsonl(path)
    return load_events_json(path)


# ═══════════════════════════════════════════════════════════════════════════
#  Pipeline core
# ═══════════════════════════════════════════════════════════════════════════


def run_pipeline(
    input_path: str,
    out_dir: str = "out",
    config_path: str | None = "config/veto.yaml",
    presets: list[str] | None = None,
    report_level: int = 1,
    catalog: VetoCatalog | None = None,
) -> dict[str, Any]:
    """Configure the catalog, evaluate every event and write the outputs.

    Returns
    -------
    dict with keys: catalog, events, verdicts, skipped.
    """
    if catalog is None:
        catalog = load_catalog(config_path, presets)
    catalog.freeze()
    if not len(catalog):
        log.warning("No veto systems configured — every event gets veto level 0")

    events = load_events(input_path)
    verdicts: list[EventVerdict] = evaluate_events(events, catalog)
    skipped = len(events) - len(verdicts)

    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    write_results_csv(verdicts, str(out / "veto_results.csv"))
    write_levels_csv(verdicts, str(out / "veto_levels.csv"))
    write_report_txt(catalog, verdicts, str(out / "veto_report.txt"), skipped=skipped, mode=report_level)
    write_plots(verdicts, str(out))

    log.info("Pipeline complete. Outputs in %s/", out_dir)
    return {"catalog": catalog, "events": events, "verdicts": verdicts, "skipped": skipped}


def describe(
    config_path: str | None = "config/veto.yaml",
    presets: list[str] | None = None,
    mode: int = 0,
) -> str:
    """Catalog dump only, without processing events."""
    return describe_catalog(load_catalog(config_path, presets), mode)
