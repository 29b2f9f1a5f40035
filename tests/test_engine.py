"""Tests for src.veto.engine — per-event veto evaluation."""

from __future__ import annotations

import pytest

from src.contracts.enums import DeviceClass
from src.veto.engine import (
    evaluate_event,
    evaluate_events,
    evaluate_system,
    is_selected,
    result_name,
)
from tests.conftest import define_open_system, make_event, make_hit, make_sensor

C = 1.0  # propagation speed used throughout: distance/C is in ns directly


def _tank_system(catalog, name="Tank", **overrides):
    """Open system watching only the surface tank 1:61."""
    define_open_system(catalog, name, **overrides)
    catalog.add_sensors(name, 1, 1, 61, 61)
    return catalog.get(name)


# ═══════════════════════════════════════════════════════════════════════════
#  Residual cut
# ═══════════════════════════════════════════════════════════════════════════


class TestResidualWindow:
    def test_residual_value(self, catalog, residual_event):
        system = _tank_system(catalog)
        result = evaluate_system(residual_event, system, C)
        assert result.reference_time == pytest.approx(90.0)
        assert result.hit_count == 1
        assert result.hits[0].residual == pytest.approx(5.0)

    def test_upper_bound_inclusive(self, catalog, residual_event):
        system = _tank_system(catalog, residual_min=0.0, residual_max=5.0)
        result = evaluate_system(residual_event, system, C)
        assert result.hit_count == 1
        assert result.total_amplitude == pytest.approx(10.0)
        assert result.triggered

    def test_outside_window_excluded(self, catalog, residual_event):
        system = _tank_system(catalog, residual_min=0.0, residual_max=4.0)
        result = evaluate_system(residual_event, system, C)
        assert result.hit_count == 0
        assert result.distinct_sensors == 0
        assert not result.triggered

    def test_disabled_window_counts_any_residual(self, catalog, residual_event):
        residual_event.sensor(161).hits.append(make_hit(amplitude=1.0, time=1.0e7))
        residual_event.sensor(161).hits.append(make_hit(amplitude=1.0, time=-1.0e7))
        system = _tank_system(catalog, residual_min=1.0, residual_max=0.0)
        result = evaluate_system(residual_event, system, C)
        assert result.hit_count == 3
        assert result.distinct_sensors == 1

    def test_diagnostic_residuals(self, catalog, residual_event):
        system = _tank_system(catalog)
        vhit = evaluate_system(residual_event, system, C).hits[0]
        # start window closes on the reference hit itself: t_start=90 at the origin
        assert vhit.residual_start == pytest.approx(5.0)
        # tank and reference share z → depth offset 0
        assert vhit.residual_z == pytest.approx(10.0)
        assert vhit.residual_z_start == pytest.approx(10.0)

    def test_depth_residuals_use_reference_time(self, catalog):
        # window closes on the first hit (t_start=90), weighted median gives t_ref=100
        event = make_event(
            sensors=[
                make_sensor(sensor_id=3430, hits=[make_hit(amplitude=5.0, time=90.0)]),
                make_sensor(sensor_id=3431, hits=[make_hit(amplitude=6.0, time=100.0)]),
                make_sensor(
                    sensor_id=161,
                    position=(0.0, 0.0, 5.0),
                    hits=[make_hit(amplitude=1.0, time=110.0)],
                ),
            ]
        )
        result = evaluate_system(event, _tank_system(catalog), C)
        assert result.reference_time == pytest.approx(100.0)
        assert result.start_time == pytest.approx(90.0)

        vhit = result.hits[0]
        assert vhit.residual_start == pytest.approx(15.0)
        assert vhit.residual_z == pytest.approx(5.0)
        assert vhit.residual_z_start == pytest.approx(5.0)


# ═══════════════════════════════════════════════════════════════════════════
#  Hit filters and trigger condition
# ═══════════════════════════════════════════════════════════════════════════


class TestHitFilters:
    @pytest.fixture
    def event(self):
        return make_event(
            sensors=[
                make_sensor(sensor_id=3430, hits=[make_hit(amplitude=5.0, time=0.0)]),
                make_sensor(
                    sensor_id=101,
                    position=(0.0, 0.0, 500.0),
                    hits=[
                        make_hit(amplitude=2.0, time=10.0),
                        make_hit(amplitude=0.2, time=20.0),
                        make_hit(amplitude=3.0, time=30.0, low_confidence=True),
                    ],
                ),
                make_sensor(
                    sensor_id=201,
                    position=(0.0, 100.0, 500.0),
                    hits=[make_hit(amplitude=1.0, time=15.0)],
                ),
            ]
        )

    def _system(self, catalog, **overrides):
        define_open_system(catalog, "Top", **overrides)
        catalog.add_sensors("Top", 1, 2, 1, 1)
        return catalog.get("Top")

    def test_low_confidence_excluded_unless_allowed(self, catalog, event):
        strict = evaluate_system(event, self._system(catalog, allow_low_confidence=False), C)
        assert strict.hit_count == 3
        assert strict.total_amplitude == pytest.approx(3.2)

    def test_low_confidence_allowed(self, catalog, event):
        loose = evaluate_system(event, self._system(catalog, allow_low_confidence=True), C)
        assert loose.hit_count == 4
        assert loose.total_amplitude == pytest.approx(6.2)

    def test_min_hit_amplitude(self, catalog, event):
        result = evaluate_system(
            event, self._system(catalog, allow_low_confidence=False, min_hit_amplitude=0.5), C
        )
        assert result.hit_count == 2
        assert result.distinct_sensors == 2

    def test_distinct_sensor_requirement(self, catalog, event):
        system = self._system(catalog, min_hit_amplitude=1.5, min_distinct_sensors=2)
        result = evaluate_system(event, system, C)
        assert result.distinct_sensors == 1
        assert not result.triggered

    def test_hit_count_requirement(self, catalog, event):
        system = self._system(catalog, allow_low_confidence=False, min_hit_count=4)
        assert not evaluate_system(event, system, C).triggered

    def test_total_amplitude_requirement(self, catalog, event):
        system = self._system(catalog, allow_low_confidence=False, min_total_amplitude=3.0)
        assert evaluate_system(event, system, C).triggered
        catalog.set_parameter("Top", "min_total_amplitude", 3.5)
        assert not evaluate_system(event, catalog.get("Top"), C).triggered

    def test_unfired_veto_sensors_ignored(self, catalog, event):
        define_open_system(catalog, "Far")
        catalog.add_sensors("Far", 50, 60, 1, 60)
        result = evaluate_system(event, catalog.get("Far"), C)
        assert result.hit_count == 0
        assert not result.triggered


# ═══════════════════════════════════════════════════════════════════════════
#  evaluate_event — verdict, gate, attachments
# ═══════════════════════════════════════════════════════════════════════════


class TestEvaluateEvent:
    def test_veto_level_counts_triggered_systems(self, catalog, residual_event):
        _tank_system(catalog, "A")
        _tank_system(catalog, "B")
        _tank_system(catalog, "C", min_total_amplitude=1000.0)

        verdict = evaluate_event(residual_event, catalog, speed=C)
        assert verdict.veto_level == 2
        assert residual_event.veto_level == 2
        assert verdict.triggered_systems() == ["A", "B"]

    def test_results_attached_per_system(self, catalog, residual_event):
        _tank_system(catalog, "A")
        _tank_system(catalog, "C", min_total_amplitude=1000.0)
        evaluate_event(residual_event, catalog, speed=C)

        a = residual_event.device(result_name("IceVeto", "A"))
        c = residual_event.device("IceVeto-C")
        assert a.triggered and a.system_id == 1
        assert not c.triggered and c.system_id == 2
        assert c.to_record()["min_total_amplitude"] == 1000.0

    def test_rejected_by_selector_is_skipped(self, catalog, residual_event):
        _tank_system(catalog, "A")
        residual_event.attach("EventSelector", {"Select": 0.05})
        assert not is_selected(residual_event)
        assert evaluate_event(residual_event, catalog, speed=C) is None
        assert residual_event.device("IceVeto-A") is None
        assert residual_event.veto_level is None

    def test_selector_at_cutoff_is_processed(self, catalog, residual_event):
        _tank_system(catalog, "A")
        residual_event.attach("EventSelector", {"Select": 0.1})
        verdict = evaluate_event(residual_event, catalog, speed=C)
        assert verdict is not None
        assert residual_event.device("IceVeto-A") is not None

    def test_missing_selector_is_processed(self, catalog, residual_event):
        _tank_system(catalog, "A")
        assert is_selected(residual_event)
        assert evaluate_event(residual_event, catalog, speed=C).veto_level == 1

    def test_event_without_sensors_is_skipped(self, catalog):
        _tank_system(catalog, "A")
        event = make_event()
        assert evaluate_event(event, catalog, speed=C) is None
        assert event.devices == {}

    def test_empty_catalog_gives_level_zero(self, catalog, residual_event):
        verdict = evaluate_event(residual_event, catalog, speed=C)
        assert verdict.veto_level == 0
        assert verdict.results == []

    def test_default_speed_is_light_in_m_per_ns(self, catalog):
        define_open_system(catalog, "A", residual_min=-1.0, residual_max=1.0)
        catalog.add_sensors("A", 1, 1, 61, 61)
        event = make_event(
            sensors=[
                make_sensor(sensor_id=3430, hits=[make_hit(amplitude=10.0, time=1000.0)]),
                make_sensor(
                    sensor_id=161,
                    position=(0.0, 0.0, 299.792458),
                    device_class=DeviceClass.TDOM,
                    hits=[make_hit(amplitude=1.0, time=2000.0)],
                ),
            ]
        )
        # 299.79 m at c → 1000 ns, so the residual is 0
        verdict = evaluate_event(event, catalog)
        assert verdict.results[0].hits[0].residual == pytest.approx(0.0, abs=1e-6)
        assert verdict.veto_level == 1


class TestEvaluateEvents:
    def test_batch_skips_and_freezes(self, catalog, residual_event):
        _tank_system(catalog, "A")
        rejected = make_event(event_id="evt-2", select=-1.0)
        empty = make_event(event_id="evt-3")

        verdicts = evaluate_events([residual_event, rejected, empty], catalog, speed=C)

        assert [v.event_id for v in verdicts] == ["evt-1"]
        assert catalog.frozen
