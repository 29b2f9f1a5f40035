"""Tests for src.veto.config and src.shared.config_loader."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from src.contracts.veto import VetoThresholds
from src.shared.config_loader import as_list, load_yaml
from src.veto.config import build_catalog, load_catalog

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config" / "veto.yaml"


class TestLoadYaml:
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "absent.yaml")

    def test_empty_file_gives_empty_dict(self, tmp_path):
        p = tmp_path / "empty.yaml"
        p.write_text("", encoding="utf-8")
        assert load_yaml(p) == {}

    def test_non_mapping_rejected(self, tmp_path):
        p = tmp_path / "list.yaml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_yaml(p)

    def test_as_list(self):
        assert as_list(None) == []
        assert as_list(3) == [3]
        assert as_list([1, 2]) == [1, 2]


class TestBuildCatalog:
    def test_presets_and_custom_systems(self):
        cfg = {
            "processor": "MyVeto",
            "systems": [
                {"preset": "HESE86", "overrides": {"min_hit_count": 2}},
                {
                    "name": "Custom",
                    "thresholds": {"min_total_amplitude": 5, "min_distinct_sensors": 2},
                    "add": [[1, 2, 1, 3]],
                    "remove": [[2, 2, 3, 3]],
                    "parameters": {"residual_min": -500, "TresVetoMax": 500},
                },
            ],
        }
        catalog = build_catalog(cfg)

        assert catalog.processor == "MyVeto"
        assert catalog.names() == ["HESE86", "Custom"]
        hese = catalog.get("HESE86")
        assert hese.thresholds.min_hit_count == 2
        assert hese.thresholds.min_distinct_sensors == 3
        assert hese.title == "Pre-defined MyVeto system"

        custom = catalog.get("Custom")
        assert set(custom.sensor_ids) == {101, 102, 103, 201, 202}
        t = custom.thresholds
        assert t.min_total_amplitude == 5.0
        assert t.min_distinct_sensors == 2
        assert (t.residual_min, t.residual_max) == (-500.0, 500.0)
        assert t.allow_low_confidence is False

    def test_cli_presets_appended(self):
        catalog = build_catalog({"systems": [{"preset": "IceTop86"}]}, presets=["Upper86"])
        assert catalog.names() == ["IceTop86", "Upper86"]

    def test_bad_entries_skipped(self, caplog):
        cfg = {
            "systems": [
                "not-a-mapping",
                {"thresholds": {}},
                {"preset": "Bogus86"},
                {"name": "A", "add": [[1, 2, 3]], "thresholds": {"colour": "red"}},
            ]
        }
        with caplog.at_level(logging.WARNING):
            catalog = build_catalog(cfg)
        assert catalog.names() == ["A"]
        assert catalog.get("A").sensor_ids == {}
        assert "bad add range" in caplog.text
        assert "unknown thresholds ignored: colour" in caplog.text

    def test_bad_values_skip_only_that_item(self, caplog):
        cfg = {
            "systems": [
                {
                    "name": "A",
                    "thresholds": {"min_hit_count": "many", "min_distinct_sensors": 2},
                    "add": [[1, "x", 1, 1], [1, 1, 1, 2]],
                    "parameters": {"residual_min": "abc", "residual_max": 400},
                },
                {"preset": "HESE86", "overrides": {"min_hit_count": "two", "min_distinct_sensors": 4}},
                {"name": "B", "thresholds": [1, 2], "parameters": "loose"},
                {"preset": "IceTop86", "overrides": "strict"},
            ]
        }
        with caplog.at_level(logging.WARNING):
            catalog = build_catalog(cfg)

        assert catalog.names() == ["A", "HESE86", "B", "IceTop86"]
        a = catalog.get("A").thresholds
        assert a.min_hit_count == 1
        assert a.min_distinct_sensors == 2
        assert (a.residual_min, a.residual_max) == (1.0, 400.0)
        assert set(catalog.get("A").sensor_ids) == {101, 102}

        hese = catalog.get("HESE86").thresholds
        assert hese.min_hit_count == 1
        assert hese.min_distinct_sensors == 4
        assert catalog.get("B").thresholds == VetoThresholds()

        assert "bad thresholds value min_hit_count='many'" in caplog.text
        assert "non-integer add range" in caplog.text
        assert "bad parameter value residual_min='abc'" in caplog.text
        assert "bad overrides value min_hit_count='two'" in caplog.text
        assert "'overrides' must be a mapping" in caplog.text

    def test_systems_must_be_a_list(self, caplog):
        with caplog.at_level(logging.WARNING):
            catalog = build_catalog({"systems": {"preset": "IceTop86"}})
        assert len(catalog) == 0

    def test_repo_config_loads(self):
        catalog = load_catalog(REPO_CONFIG)
        assert catalog.names() == ["IceTop86", "HESE86", "UpperTight"]
        upper = catalog.get("UpperTight")
        assert len(upper.sensor_ids) == 78 * 6
        assert upper.thresholds.residual_window_enabled

    def test_no_config_file(self):
        catalog = load_catalog(None, presets=["Sides86"])
        assert catalog.names() == ["Sides86"]
