"""Build a :class:`VetoCatalog` from ``config/veto.yaml``.

Expected structure
──────────────────
    processor: IceVeto
    systems:
      - preset: HESE86
        overrides: {min_hit_count: 2}
      - name: MyVeto
        thresholds: {min_total_amplitude: 5, min_distinct_sensors: 2}
        add: [[1, 79, 1, 6]]
        remove: [[34, 34, 1, 6]]
        parameters: {residual_min: -500, residual_max: 500}

``add``, ``remove`` and ``parameters`` are applied in that order, to preset
and custom systems alike.  Malformed entries are logged and skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from src.contracts.veto import VetoThresholds
from src.shared.config_loader import as_list, load_yaml
from src.veto.catalog import VetoCatalog

log = logging.getLogger(__name__)

_THRESHOLD_KEYS = (
    "min_total_amplitude",
    "min_hit_amplitude",
    "min_distinct_sensors",
    "min_hit_count",
    "allow_low_confidence",
    "residual_min",
    "residual_max",
)


def _section(entry: dict[str, Any], key: str, system: str) -> dict[str, Any]:
    values = entry.get(key)
    if values is None:
        return {}
    if not isinstance(values, dict):
        log.warning("System %s: '%s' must be a mapping, got %r — ignored", system, key, values)
        return {}
    return values


def _ranges(entry: dict[str, Any], key: str, system: str) -> list[tuple[int, int, int, int]]:
    out: list[tuple[int, int, int, int]] = []
    for rng in as_list(entry.get(key)):
        if not isinstance(rng, (list, tuple)) or len(rng) != 4:
            log.warning("System %s: bad %s range %r — expected [s_lo, s_hi, p_lo, p_hi]", system, key, rng)
            continue
        try:
            out.append(tuple(int(x) for x in rng))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            log.warning("System %s: non-integer %s range %r — skipped", system, key, rng)
    return out


def _known(values: dict[str, Any], system: str, section: str) -> dict[str, float]:
    """Known threshold keys with numeric values; anything else is logged and dropped."""
    unknown = set(values) - set(_THRESHOLD_KEYS)
    if unknown:
        log.warning("System %s: unknown %s ignored: %s", system, section, ", ".join(sorted(map(str, unknown))))
    out: dict[str, float] = {}
    for key in _THRESHOLD_KEYS:
        if key not in values:
            continue
        try:
            out[key] = float(values[key])
        except (TypeError, ValueError):
            log.warning("System %s: bad %s value %s=%r — skipped", system, section, key, values[key])
    return out


def _configure_entry(catalog: VetoCatalog, entry: dict[str, Any]) -> None:
    if "preset" in entry:
        name = str(entry["preset"])
        overrides = _known(_section(entry, "overrides", name), name, "overrides")
        if catalog.activate_preset(name, **overrides) is None:
            return
    elif "name" in entry:
        name = str(entry["name"])
        base = VetoThresholds()
        values: dict[str, Any] = {k: getattr(base, k) for k in _THRESHOLD_KEYS}
        values.update(_known(_section(entry, "thresholds", name), name, "thresholds"))
        if catalog.define_system(name, **values) is None:
            return
    else:
        log.warning("Veto config entry without 'name' or 'preset' skipped: %r", entry)
        return

    for rng in _ranges(entry, "add", name):
        catalog.add_sensors(name, *rng)
    for rng in _ranges(entry, "remove", name):
        catalog.remove_sensors(name, *rng)
    for key, value in _section(entry, "parameters", name).items():
        try:
            number = float(value)
        except (TypeError, ValueError):
            log.warning("System %s: bad parameter value %s=%r — skipped", name, key, value)
            continue
        catalog.set_parameter(name, key, number)


def build_catalog(cfg: dict[str, Any], presets: list[str] | None = None) -> VetoCatalog:
    """Create a catalog from a parsed config dict plus extra preset names."""
    catalog = VetoCatalog(processor=str(cfg.get("processor", "IceVeto")))

    systems = cfg.get("systems", [])
    if not isinstance(systems, list):
        log.warning("Veto config: 'systems' must be a list, got %s — ignored", type(systems).__name__)
        systems = []
    for entry in systems:
        if not isinstance(entry, dict):
            log.warning("Veto config entry is not a mapping: %r — skipped", entry)
            continue
        _configure_entry(catalog, entry)

    for name in presets or []:
        catalog.activate_preset(name)

    log.info("Configured %d veto system(s): %s", len(catalog), ", ".join(catalog.names()))
    return catalog


def load_catalog(path: str | Path | None, presets: list[str] | None = None) -> VetoCatalog:
    """Load the veto config file (optional) and build the catalog."""
    cfg = load_yaml(path) if path is not None else {}
    return build_catalog(cfg, presets)
