"""Моделі veto-систем та результатів їх оцінювання."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict, dataclass, field
from typing import Any

from src.contracts.detector import ORIGIN, Position, decode_sensor_id

RESULT_CSV_COLUMNS: list[str] = [
    "event_id",
    "system_id",
    "system",
    "min_total_amplitude",
    "min_hit_amplitude",
    "min_distinct_sensors",
    "min_hit_count",
    "allow_low_confidence",
    "residual_min",
    "residual_max",
    "distinct_sensors",
    "hit_count",
    "total_amplitude",
    "veto_level",
    "reference_time",
    "start_time",
]

PREDEFINED_MARK = "Pre-defined "


@dataclass(slots=True, frozen=True)
class VetoThresholds:
    """Сім порогів, що визначають спрацювання veto-системи.

    Часове вікно залишків вимкнене, якщо ``residual_min > residual_max``.
    """

    min_total_amplitude: float = 0.0
    min_hit_amplitude: float = 0.0
    min_distinct_sensors: int = 1
    min_hit_count: int = 1
    allow_low_confidence: bool = False
    residual_min: float = 1.0
    residual_max: float = 0.0

    @classmethod
    def clamped(
        cls,
        min_total_amplitude: float,
        min_hit_amplitude: float,
        min_distinct_sensors: int,
        min_hit_count: int,
        allow_low_confidence: Any,
        residual_min: float,
        residual_max: float,
    ) -> VetoThresholds:
        """Build thresholds, forcing both counts to >= 1 and the flag to bool."""
        return cls(
            min_total_amplitude=float(min_total_amplitude),
            min_hit_amplitude=float(min_hit_amplitude),
            min_distinct_sensors=max(1, int(min_distinct_sensors)),
            min_hit_count=max(1, int(min_hit_count)),
            allow_low_confidence=bool(allow_low_confidence),
            residual_min=float(residual_min),
            residual_max=float(residual_max),
        )

    @property
    def residual_window_enabled(self) -> bool:
        return self.residual_min <= self.residual_max

    def accepts_residual(self, residual: float) -> bool:
        if not self.residual_window_enabled:
            return True
        return self.residual_min <= residual <= self.residual_max


@dataclass(slots=True)
class VetoSystemDefinition:
    """Іменована veto-система: пороги та множина ID сенсорів."""

    name: str
    system_id: int
    thresholds: VetoThresholds
    title: str = "IceVeto system"
    # insertion-ordered set
    sensor_ids: dict[int, None] = field(default_factory=dict)

    @property
    def predefined(self) -> bool:
        return self.title.startswith(PREDEFINED_MARK)

    def sensors(self) -> list[int]:
        return list(self.sensor_ids)

    def sensor_addresses(self) -> list[tuple[int, int]]:
        """Sensor IDs as ``(string, position)`` pairs."""
        return [decode_sensor_id(sid) for sid in self.sensor_ids]


@dataclass(slots=True)
class VetoHit:
    """Діагностика одного кваліфікованого veto-хіта."""

    sensor_id: int
    amplitude: float
    time: float
    residual: float
    residual_start: float
    residual_z: float
    residual_z_start: float


@dataclass(slots=True)
class VetoResult:
    """Результат однієї veto-системи для однієї події."""

    event_id: str
    system_id: int
    system: str
    title: str
    thresholds: VetoThresholds
    total_amplitude: float = 0.0
    distinct_sensors: int = 0
    hit_count: int = 0
    triggered: bool = False
    reference_time: float = 0.0
    reference_position: Position = ORIGIN
    start_time: float = 0.0
    start_position: Position = ORIGIN
    hits: list[VetoHit] = field(default_factory=list)

    @property
    def veto_level(self) -> int:
        return 1 if self.triggered else 0

    def to_record(self) -> dict[str, Any]:
        """Downstream record: the seven thresholds plus the four observables."""
        rec = asdict(self.thresholds)
        rec.update(
            distinct_sensors=self.distinct_sensors,
            hit_count=self.hit_count,
            total_amplitude=self.total_amplitude,
            veto_level=self.veto_level,
        )
        return rec

    # ── serialisation ────────────────────────────────────────────────────

    def to_csv_row(self) -> str:
        rec = self.to_record()
        rec.update(
            event_id=self.event_id,
            system_id=self.system_id,
            system=self.system,
            allow_low_confidence=int(self.thresholds.allow_low_confidence),
            reference_time=round(self.reference_time, 3),
            start_time=round(self.start_time, 3),
        )
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow([rec[c] for c in RESULT_CSV_COLUMNS])
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(RESULT_CSV_COLUMNS)


@dataclass(slots=True)
class EventVerdict:
    """Сумарний рівень veto події: кількість систем, що спрацювали."""

    event_id: str
    results: list[VetoResult] = field(default_factory=list)

    @property
    def veto_level(self) -> int:
        return sum(r.veto_level for r in self.results)

    @property
    def vetoed(self) -> bool:
        return self.veto_level > 0

    def triggered_systems(self) -> list[str]:
        return [r.system for r in self.results if r.triggered]
