"""Звітування: опис каталогу, запис CSV, TXT, PNG."""

from __future__ import annotations

import logging
import os
import tempfile
from collections import Counter
from pathlib import Path

from src.contracts.veto import EventVerdict, VetoResult
from src.veto.catalog import VetoCatalog

log = logging.getLogger(__name__)


def _atomic_write(path: str, content: str) -> None:
    """Атомарно записує content у файл path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


# ═══════════════════════════════════════════════════════════════════════════
#  Catalog description
# ═══════════════════════════════════════════════════════════════════════════


def describe_catalog(catalog: VetoCatalog, mode: int = 0) -> str:
    """Текстовий опис зареєстрованих veto-систем.

    mode = 0 — ID, назва та кількість сенсорів кожної системи
           1 — як 0, плюс параметри системи
           2 — як 1, плюс повний перелік ID сенсорів
    """
    lines = [f" *{catalog.processor}* Number of registered veto systems : {len(catalog)}"]
    for system in catalog:
        lines.append(
            f" Veto system {system.system_id} : ({system.title}) "
            f"name={system.name} nSensors={len(system.sensor_ids)}"
        )
        if mode > 0:
            t = system.thresholds
            window = (
                f"[{t.residual_min:g}, {t.residual_max:g}]"
                if t.residual_window_enabled
                else "disabled"
            )
            lines.append(" Parameter settings for this veto system :")
            lines.append(f"   min_total_amplitude  : {t.min_total_amplitude:g}")
            lines.append(f"   min_hit_amplitude    : {t.min_hit_amplitude:g}")
            lines.append(f"   min_distinct_sensors : {t.min_distinct_sensors}")
            lines.append(f"   min_hit_count        : {t.min_hit_count}")
            lines.append(f"   allow_low_confidence : {int(t.allow_low_confidence)}")
            lines.append(f"   residual window (ns) : {window}")
        if mode == 2:
            lines.append(" This veto system contains the following sensors :")
            addresses = system.sensor_addresses()
            for sid, (string, pos) in zip(system.sensor_ids, addresses):
                lines.append(f"   {sid:>6d}  string={string} position={pos}")
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════════
#  CSV writers
# ═══════════════════════════════════════════════════════════════════════════


def write_results_csv(verdicts: list[EventVerdict], path: str) -> None:
    """One row per (event, veto system)."""
    lines = [VetoResult.csv_header()]
    n = 0
    for v in verdicts:
        for r in v.results:
            lines.append(r.to_csv_row())
            n += 1
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote veto results → %s (%d rows)", path, n)


def write_levels_csv(verdicts: list[EventVerdict], path: str) -> None:
    lines = ["event_id,veto_level,triggered_systems"]
    for v in verdicts:
        lines.append(f"{v.event_id},{v.veto_level},{';'.join(v.triggered_systems())}")
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote veto levels → %s (%d events)", path, len(verdicts))


# ═══════════════════════════════════════════════════════════════════════════
#  TXT report
# ═══════════════════════════════════════════════════════════════════════════


def write_report_txt(
    catalog: VetoCatalog,
    verdicts: list[EventVerdict],
    path: str,
    skipped: int = 0,
    mode: int = 1,
) -> None:
    """Генерує текстовий звіт."""
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append(f"  {catalog.processor} Event Veto Report")
    lines.append("=" * 60)
    lines.append("")
    lines.append(describe_catalog(catalog, mode))
    lines.append("")

    lines.append("--- Events ---")
    lines.append(f"  Evaluated:        {len(verdicts)}")
    lines.append(f"  Skipped:          {skipped}")
    lines.append(f"  Vetoed (level>0): {sum(1 for v in verdicts if v.vetoed)}")
    lines.append("")

    lines.append("--- Triggers per veto system ---")
    triggers: Counter[str] = Counter()
    for v in verdicts:
        triggers.update(v.triggered_systems())
    for name in catalog.names():
        lines.append(f"  {name:<16s} {triggers.get(name, 0)}")
    lines.append("")

    lines.append("--- Veto level distribution ---")
    levels = Counter(v.veto_level for v in verdicts)
    for level in sorted(levels):
        lines.append(f"  level {level}: {levels[level]}")
    lines.append("")
    lines.append("=" * 60)

    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote report → %s", path)


# ═══════════════════════════════════════════════════════════════════════════
#  Plots (matplotlib)
# ═══════════════════════════════════════════════════════════════════════════


def write_plots(verdicts: list[EventVerdict], out_dir: str) -> None:
    """Histogram of event veto levels → out_dir/veto_levels.png."""
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        log.warning("matplotlib not installed — skipping plots")
        return

    if not verdicts:
        log.info("No evaluated events — skipping plots")
        return

    levels = Counter(v.veto_level for v in verdicts)
    xs = list(range(max(levels) + 1))
    counts = [levels.get(x, 0) for x in xs]

    Path(out_dir).mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(8, 5))
    bars = ax.bar(xs, counts, color="#2980b9", edgecolor="black", linewidth=0.5)
    for bar, v in zip(bars, counts):
        ax.text(
            bar.get_x() + bar.get_width() / 2,
            bar.get_height(),
            str(v),
            ha="center",
            va="bottom",
            fontweight="bold",
        )
    ax.set_xticks(xs)
    ax.set_xlabel("Veto level (triggered systems)")
    ax.set_ylabel("Events")
    ax.set_title("Event Veto Level Distribution")
    fig.tight_layout()
    out = Path(out_dir) / "veto_levels.png"
    fig.savefig(str(out), dpi=150)
    plt.close(fig)
    log.info("Wrote %s", out)
