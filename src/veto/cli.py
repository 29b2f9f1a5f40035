"""CLI entry-point for the event veto engine.

Usage examples
--------------
# Evaluate events with the systems from config/veto.yaml:
python -m src.veto --input data/events.jsonl

# Add pre-defined systems on the command line:
python -m src.veto --input data/events.json --preset IceTop86 --preset HESE86

# Only describe the configured catalog (full sensor listing):
python -m src.veto --describe --report-level 2
"""

from __future__ import annotations

import argparse

from src.shared.logger import setup_logging
from src.veto.pipeline import describe, run_pipeline
from src.veto.presets import PRESET_NAMES


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="veto",
        description="Event veto engine — evaluate veto systems per detector event",
    )
    p.add_argument(
        "--input",
        default="data/events.jsonl",
        help="Input events (JSONL or JSON). Format auto-detected by extension. "
             "Default: data/events.jsonl",
    )
    p.add_argument(
        "--out-dir",
        default="out",
        help="Output directory. Default: out/",
    )
    p.add_argument(
        "--config",
        default="config/veto.yaml",
        help="Veto systems config (YAML). Use 'none' to start from an empty catalog. "
             "Default: config/veto.yaml",
    )
    p.add_argument(
        "--preset",
        action="append",
        default=[],
        choices=list(PRESET_NAMES),
        help="Activate a pre-defined veto system (repeatable).",
    )
    p.add_argument(
        "--report-level",
        type=int,
        default=1,
        choices=[0, 1, 2],
        help="Catalog detail in the report: 0=summary, 1=+thresholds, 2=+sensor list. Default: 1",
    )
    p.add_argument(
        "--describe",
        action="store_true",
        default=False,
        help="Print the configured catalog and exit without processing events.",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Also write the log to this file.",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    config = None if args.config.lower() == "none" else args.config

    if args.describe:
        print(describe(config, args.preset, args.report_level))
        return

    run_pipeline(
        input_path=args.input,
        out_dir=args.out_dir,
        config_path=config,
        presets=args.preset,
        report_level=args.report_level,
    )


if __name__ == "__main__":
    main()
