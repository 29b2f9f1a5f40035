"""Event Veto Engine — per-event (self)vetoing with configurable veto systems.

Modules
───────
  presets   — pure resolution of the pre-defined veto systems
  catalog   — named veto-system definitions (thresholds + sensor sets)
  estimator — reference position/time and sliding-window start time
  engine    — per-event evaluation: VetoResult per system, veto level
  config    — build a catalog from veto.yaml
  reporter  — catalog description, CSV, TXT, PNG outputs
  pipeline  — orchestrate the full flow
  cli       — argparse entry-point
"""
