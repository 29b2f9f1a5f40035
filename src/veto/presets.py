"""Presets — named veto-system conventions resolved without side effects.

A preset is resolved into a :class:`PresetPlan`: fully resolved thresholds
plus an ordered list of sensor range operations.  The catalog applies the
plan; nothing here touches catalog state.

Available presets
─────────────────
  IceTop86     — surface tanks (positions 61-64 of strings 1-86)
  Upper86      — top 6 in-ice positions of strings 1-79
  DustLayer86  — in-ice positions 39-43 of strings 1-79
  Bottom86     — bottom in-ice position 60 of strings 1-79
  Sides86      — every in-ice position of the outer strings
  Start86      — Upper86 + Bottom86 + DustLayer86 + Sides86
  HESE86       — Start86 rules followed by point corrections
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from src.contracts.enums import SensorAction
from src.contracts.veto import VetoThresholds

# (string_lo, string_hi, pos_lo, pos_hi)
Range = tuple[int, int, int, int]

_OUTER_STRINGS: list[tuple[int, int]] = [
    (1, 7), (13, 14), (21, 22), (30, 31), (40, 41),
    (50, 51), (59, 60), (67, 68), (72, 78),
]

BASE_RULES: dict[str, list[Range]] = {
    "IceTop86": [(1, 86, 61, 64)],
    "Upper86": [(1, 79, 1, 6)],
    "Bottom86": [(1, 79, 60, 60)],
    "DustLayer86": [(1, 79, 39, 43)],
    "Sides86": [(lo, hi, 1, 60) for lo, hi in _OUTER_STRINGS],
}

# Composite presets are unions of base rules, applied in this order
COMPOSITES: dict[str, list[str]] = {
    "Start86": ["Upper86", "Bottom86", "DustLayer86", "Sides86"],
    "HESE86": ["Upper86", "Bottom86", "DustLayer86", "Sides86"],
}

# HESE86 w.r.t. Start86: (action, string, pos_lo, pos_hi), order matters
_A, _R = SensorAction.ADD, SensorAction.REMOVE
CORRECTIONS: dict[str, list[tuple[SensorAction, int, int, int]]] = {
    "HESE86": [
        (_R, 8, 43, 43), (_R, 10, 43, 43), (_R, 11, 43, 43), (_R, 12, 43, 43),
        (_R, 15, 60, 60), (_R, 16, 43, 43), (_R, 18, 43, 43), (_R, 19, 43, 43),
        (_R, 20, 43, 43), (_R, 24, 60, 60), (_R, 25, 60, 60), (_R, 26, 43, 43),
        (_A, 27, 38, 38), (_R, 27, 43, 43), (_R, 28, 43, 43), (_R, 29, 60, 60),
        (_A, 34, 7, 8), (_R, 34, 39, 39), (_A, 34, 44, 44), (_R, 34, 60, 60),
        (_R, 35, 60, 60), (_A, 37, 7, 7), (_R, 37, 60, 60), (_A, 38, 38, 38),
        (_R, 38, 43, 43), (_R, 39, 60, 60), (_R, 42, 60, 60), (_R, 45, 43, 43),
        (_R, 46, 60, 60), (_R, 47, 60, 60), (_A, 49, 7, 7), (_R, 49, 60, 60),
        (_R, 52, 43, 43), (_R, 55, 60, 60), (_R, 56, 60, 60), (_A, 57, 7, 7),
        (_R, 57, 60, 60), (_R, 58, 43, 43), (_R, 63, 43, 43), (_A, 64, 7, 8),
        (_R, 64, 39, 39), (_A, 64, 44, 44), (_R, 64, 60, 60), (_A, 65, 7, 7),
        (_R, 65, 39, 39), (_R, 65, 60, 60), (_A, 66, 7, 7), (_R, 66, 39, 39),
        (_R, 66, 60, 60), (_R, 71, 43, 43),
    ],
}

_DEFAULTS = VetoThresholds(
    min_total_amplitude=0.0,
    min_hit_amplitude=0.0,
    min_distinct_sensors=1,
    min_hit_count=1,
    allow_low_confidence=True,
    residual_min=1.0,
    residual_max=0.0,
)

# Per-preset deviations from _DEFAULTS
_PRESET_DEFAULTS: dict[str, dict[str, object]] = {
    "IceTop86": {"allow_low_confidence": False},
    "HESE86": {"min_total_amplitude": 3.0, "min_distinct_sensors": 3, "allow_low_confidence": False},
}

PRESET_NAMES: tuple[str, ...] = (
    "IceTop86", "Upper86", "DustLayer86", "Bottom86", "Sides86", "HESE86", "Start86",
)


@dataclass(slots=True, frozen=True)
class SensorOp:
    """One range operation on a system's sensor set."""

    action: SensorAction
    string_lo: int
    string_hi: int
    pos_lo: int
    pos_hi: int

    @property
    def bounds(self) -> Range:
        return (self.string_lo, self.string_hi, self.pos_lo, self.pos_hi)


@dataclass(slots=True)
class PresetPlan:
    name: str
    thresholds: VetoThresholds
    operations: list[SensorOp] = field(default_factory=list)


def _pick(value: float | None, default: float) -> float:
    """Override sentinel: ``None`` or negative means 'use the preset default'."""
    if value is None or value < 0:
        return default
    return value


def preset_defaults(name: str) -> VetoThresholds | None:
    if name not in PRESET_NAMES:
        return None
    return replace(_DEFAULTS, **_PRESET_DEFAULTS.get(name, {}))


def resolve_preset(
    name: str,
    min_total_amplitude: float | None = None,
    min_hit_amplitude: float | None = None,
    min_distinct_sensors: int | None = None,
    min_hit_count: int | None = None,
    allow_low_confidence: int | bool | None = None,
    residual_min: float | None = None,
    residual_max: float | None = None,
) -> PresetPlan | None:
    """Resolve preset *name* with optional overrides into a :class:`PresetPlan`.

    Returns None for an unknown preset name.  The residual pair falls back to
    the preset default (window disabled) when it is unset or both bounds are
    equal.
    """
    defaults = preset_defaults(name)
    if defaults is None:
        return None

    rmin = 0.0 if residual_min is None else residual_min
    rmax = 0.0 if residual_max is None else residual_max
    if rmin == rmax:
        rmin, rmax = defaults.residual_min, defaults.residual_max

    if allow_low_confidence is None or allow_low_confidence < 0:
        low_conf = defaults.allow_low_confidence
    else:
        low_conf = bool(allow_low_confidence)

    thresholds = VetoThresholds.clamped(
        min_total_amplitude=_pick(min_total_amplitude, defaults.min_total_amplitude),
        min_hit_amplitude=_pick(min_hit_amplitude, defaults.min_hit_amplitude),
        min_distinct_sensors=int(_pick(min_distinct_sensors, defaults.min_distinct_sensors)),
        min_hit_count=int(_pick(min_hit_count, defaults.min_hit_count)),
        allow_low_confidence=low_conf,
        residual_min=rmin,
        residual_max=rmax,
    )

    bases = COMPOSITES.get(name, [name])
    ops = [
        SensorOp(SensorAction.ADD, *rng)
        for base in bases
        for rng in BASE_RULES[base]
    ]
    ops.extend(
        SensorOp(action, string, string, lo, hi)
        for action, string, lo, hi in CORRECTIONS.get(name, [])
    )
    return PresetPlan(name=name, thresholds=thresholds, operations=ops)
