"""Catalog — named veto-system definitions.

The catalog is the configuration object handed to the decision engine.
It is mutated only through define/add/remove/set/activate and is frozen
before events are processed.  Every configuration error (duplicate name,
unknown system or preset, unknown parameter, frozen catalog) is logged and
turned into a no-op; nothing is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import replace

from src.contracts.detector import encode_sensor_id
from src.contracts.enums import PARAM_SLOT_ALIASES, ParamKey, SensorAction
from src.contracts.veto import PREDEFINED_MARK, VetoSystemDefinition, VetoThresholds
from src.veto.presets import resolve_preset

log = logging.getLogger(__name__)


def _resolve_key(key: ParamKey | str) -> ParamKey | None:
    if isinstance(key, ParamKey):
        return key
    if key in PARAM_SLOT_ALIASES:
        return PARAM_SLOT_ALIASES[key]
    try:
        return ParamKey(key)
    except ValueError:
        return None


class VetoCatalog:
    """Insertion-ordered mapping ``name -> VetoSystemDefinition``."""

    def __init__(self, processor: str = "IceVeto") -> None:
        self.processor = processor
        self._systems: dict[str, VetoSystemDefinition] = {}
        self._frozen = False

    # ── mapping-like access ──────────────────────────────────────────────

    def __iter__(self) -> Iterator[VetoSystemDefinition]:
        return iter(self._systems.values())

    def __len__(self) -> int:
        return len(self._systems)

    def __contains__(self, name: object) -> bool:
        return name in self._systems

    def names(self) -> list[str]:
        return list(self._systems)

    def get(self, name: str) -> VetoSystemDefinition | None:
        return self._systems.get(name)

    # ── configuration phase ──────────────────────────────────────────────

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """End the configuration phase; later mutations are rejected."""
        if not self._frozen:
            log.info("Catalog '%s' frozen with %d veto system(s)", self.processor, len(self))
        self._frozen = True

    def _mutable(self, op: str) -> bool:
        if self._frozen:
            log.warning("%s rejected: catalog '%s' is frozen", op, self.processor)
            return False
        return True

    def define_system(
        self,
        name: str,
        min_total_amplitude: float,
        min_hit_amplitude: float,
        min_distinct_sensors: int,
        min_hit_count: int,
        allow_low_confidence: bool | int,
        residual_min: float,
        residual_max: float,
    ) -> VetoSystemDefinition | None:
        """Define a new veto system; an existing *name* is never overwritten.

        Only hits with a time residual inside ``[residual_min, residual_max]``
        count as veto hits, unless ``residual_min > residual_max`` in which
        case the residual is not taken into account.
        """
        if not self._mutable("define_system"):
            return None
        if name in self._systems:
            log.warning("Veto system name already exists: %s — specify a unique name", name)
            return None

        thresholds = VetoThresholds.clamped(
            min_total_amplitude,
            min_hit_amplitude,
            min_distinct_sensors,
            min_hit_count,
            allow_low_confidence,
            residual_min,
            residual_max,
        )
        system = VetoSystemDefinition(
            name=name,
            system_id=len(self._systems) + 1,
            thresholds=thresholds,
            title=f"{self.processor} system",
        )
        self._systems[name] = system
        log.debug("Defined veto system %d: %s %s", system.system_id, name, thresholds)
        return system

    def _lookup(self, op: str, name: str) -> VetoSystemDefinition | None:
        if not self._systems:
            log.warning("%s: no veto systems have been defined", op)
            return None
        system = self._systems.get(name)
        if system is None:
            log.warning("%s: no veto system found with name %s", op, name)
        return system

    def _apply_range(
        self,
        action: SensorAction,
        name: str,
        string_lo: int,
        string_hi: int,
        pos_lo: int,
        pos_hi: int,
    ) -> int:
        op = f"{action.value}_sensors"
        if not self._mutable(op):
            return 0
        system = self._lookup(op, name)
        if system is None:
            return 0
        if string_hi < string_lo or pos_hi < pos_lo:
            return 0

        changed = 0
        for js in range(string_lo, string_hi + 1):
            for jp in range(pos_lo, pos_hi + 1):
                sid = encode_sensor_id(js, jp)
                if action is SensorAction.ADD:
                    if sid not in system.sensor_ids:
                        system.sensor_ids[sid] = None
                        changed += 1
                elif sid in system.sensor_ids:
                    del system.sensor_ids[sid]
                    changed += 1

        # A touched preset is no longer the pristine convention
        system.title = system.title.replace(PREDEFINED_MARK, "")
        return changed

    def add_sensors(
        self, name: str, string_lo: int, string_hi: int, pos_lo: int, pos_hi: int
    ) -> int:
        """Register positions ``[pos_lo, pos_hi]`` of strings ``[string_lo, string_hi]``.

        Examples: ``(25, 64, 1, 8)`` adds positions 1-8 of strings 25-64;
        ``(38, 38, 4, 4)`` adds the single sensor 4 of string 38.
        Returns the number of sensors newly added.
        """
        return self._apply_range(SensorAction.ADD, name, string_lo, string_hi, pos_lo, pos_hi)

    def remove_sensors(
        self, name: str, string_lo: int, string_hi: int, pos_lo: int, pos_hi: int
    ) -> int:
        """Inverse of :meth:`add_sensors`; returns the number of sensors removed."""
        return self._apply_range(SensorAction.REMOVE, name, string_lo, string_hi, pos_lo, pos_hi)

    def set_parameter(self, name: str, key: ParamKey | str, value: float) -> bool:
        """Set or modify one threshold of system *name*; returns True on success.

        Both counts are clamped to at least 1.  The low-confidence flag is an
        integer switch: above 0.1 it turns on, otherwise it is on only when
        the value truncates to a non-zero integer (e.g. -1).
        """
        if not self._mutable("set_parameter"):
            return False
        system = self._systems.get(name)
        if system is None:
            log.debug("set_parameter: unknown veto system %s — ignored", name)
            return False
        pkey = _resolve_key(key)
        if pkey is None:
            log.warning("set_parameter: unknown parameter %s for veto system %s", key, name)
            return False

        if pkey in (ParamKey.MIN_DISTINCT_SENSORS, ParamKey.MIN_HIT_COUNT):
            new_value: float | int | bool = max(1, int(value))
        elif pkey is ParamKey.ALLOW_LOW_CONFIDENCE:
            new_value = value > 0.1 or int(value) != 0
        else:
            new_value = float(value)

        system.thresholds = replace(system.thresholds, **{pkey.value: new_value})
        log.debug("Veto system %s: %s=%s", name, pkey.value, new_value)
        return True

    def activate_preset(
        self,
        name: str,
        min_total_amplitude: float | None = None,
        min_hit_amplitude: float | None = None,
        min_distinct_sensors: int | None = None,
        min_hit_count: int | None = None,
        allow_low_confidence: int | bool | None = None,
        residual_min: float | None = None,
        residual_max: float | None = None,
    ) -> VetoSystemDefinition | None:
        """Define and populate one of the pre-defined veto systems.

        ``None`` or negative overrides take the preset default (see
        :mod:`src.veto.presets`).
        """
        plan = resolve_preset(
            name,
            min_total_amplitude=min_total_amplitude,
            min_hit_amplitude=min_hit_amplitude,
            min_distinct_sensors=min_distinct_sensors,
            min_hit_count=min_hit_count,
            allow_low_confidence=allow_low_confidence,
            residual_min=residual_min,
            residual_max=residual_max,
        )
        if plan is None:
            log.warning("Unknown pre-defined veto system: %s", name)
            return None

        t = plan.thresholds
        system = self.define_system(
            name,
            t.min_total_amplitude,
            t.min_hit_amplitude,
            t.min_distinct_sensors,
            t.min_hit_count,
            t.allow_low_confidence,
            t.residual_min,
            t.residual_max,
        )
        if system is None:
            return None

        for op in plan.operations:
            self._apply_range(op.action, name, *op.bounds)

        system.title = PREDEFINED_MARK + system.title
        log.info("Activated pre-defined veto system %s (%d sensors)", name, len(system.sensor_ids))
        return system
