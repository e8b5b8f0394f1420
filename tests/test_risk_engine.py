"""Tests for the early-warning scoring engine."""

import pytest

from edflow.models import Band, Consciousness
from edflow.risk_engine import (
    DEFAULT_POLICY,
    HR_BANDS,
    RR_BANDS,
    SBP_BANDS,
    SPO2_SCALE1_BANDS,
    TEMP_BANDS,
    ScoringPolicy,
    band_points,
    classify_band,
    coerce_number,
    ews_trend,
    merge_latest,
    score_vitals,
    scoring_policy,
)

from conftest import DETERIORATING_VITALS, NORMAL_VITALS


class TestBandTables:
    """Boundary values of each vital's band table."""

    @pytest.mark.parametrize("rr, points", [
        (3, 3), (8, 3), (9, 1), (11, 1), (12, 0), (20, 0), (21, 2), (24, 2), (25, 3),
    ])
    def test_respiratory_rate(self, rr, points):
        assert band_points(rr, RR_BANDS) == points

    @pytest.mark.parametrize("spo2, points", [(91, 3), (92, 2), (93, 2), (94, 1), (95, 1), (96, 0), (100, 0)])
    def test_oxygen_saturation_scale1(self, spo2, points):
        assert band_points(spo2, SPO2_SCALE1_BANDS) == points

    @pytest.mark.parametrize("temp, points", [
        (35.0, 3), (35.1, 1), (36.0, 1), (36.1, 0), (38.0, 0), (38.1, 1), (39.0, 1), (39.1, 2),
    ])
    def test_temperature(self, temp, points):
        assert band_points(temp, TEMP_BANDS) == points

    @pytest.mark.parametrize("sbp, points", [(90, 3), (91, 2), (100, 2), (101, 1), (110, 1), (111, 0), (219, 0), (220, 3)])
    def test_systolic_bp(self, sbp, points):
        assert band_points(sbp, SBP_BANDS) == points

    @pytest.mark.parametrize("hr, points", [
        (40, 3), (41, 1), (50, 1), (51, 0), (90, 0), (91, 1), (110, 1), (111, 2), (130, 2), (131, 3),
    ])
    def test_heart_rate(self, hr, points):
        assert band_points(hr, HR_BANDS) == points


class TestScoreVitals:
    """Aggregate scoring behaviour."""

    def test_all_normal_is_low(self):
        result = score_vitals(NORMAL_VITALS)
        assert result.total == 0
        assert result.band is Band.LOW
        assert result.escalate is False

    def test_deteriorating_patient(self):
        result = score_vitals(DETERIORATING_VITALS)
        assert result.total == 13
        assert result.total >= 11
        assert result.band is Band.HIGH
        assert result.escalate is True
        assert result.per_parameter == {
            "respiratory_rate": 3,
            "oxygen_saturation": 3,
            "heart_rate": 2,
            "systolic_bp": 3,
            "temperature": 2,
        }

    def test_single_critical_parameter_escalates_despite_low_total(self):
        result = score_vitals({**NORMAL_VITALS, "respiratory_rate": 3})
        assert result.total == 3
        assert result.total < DEFAULT_POLICY.high_total
        assert result.escalate is True
        assert result.band is Band.HIGH

    def test_missing_vitals_are_neutral(self):
        result = score_vitals({"heart_rate": 80})
        assert result.total == 0
        assert result.band is Band.LOW
        assert result.escalate is False
        assert result.per_parameter == {"heart_rate": 0}

    def test_empty_snapshot(self):
        result = score_vitals({})
        assert result.total == 0
        assert result.per_parameter == {}

    def test_malformed_value_treated_as_absent(self):
        result = score_vitals({**NORMAL_VITALS, "respiratory_rate": "abc", "heart_rate": float("nan")})
        assert "respiratory_rate" not in result.per_parameter
        assert "heart_rate" not in result.per_parameter
        assert result.total == 0

    def test_numeric_strings_are_scored(self):
        result = score_vitals({"heart_rate": "135"})
        assert result.per_parameter["heart_rate"] == 3

    def test_consciousness_any_deviation_scores_three(self):
        for level in (Consciousness.CONFUSION, Consciousness.VOICE, "P", "Unresponsive"):
            result = score_vitals({**NORMAL_VITALS, "consciousness": level})
            assert result.per_parameter["consciousness"] == 3
            assert result.escalate is True

    def test_alert_scores_zero(self):
        result = score_vitals({**NORMAL_VITALS, "consciousness": "A"})
        assert result.per_parameter["consciousness"] == 0
        assert result.band is Band.LOW

    def test_oxygen_surcharge_is_additive(self):
        result = score_vitals({**NORMAL_VITALS, "supplemental_oxygen": True})
        assert result.total == 2
        assert result.oxygen_points == 2
        assert result.escalate is False

    def test_room_air_device_adds_nothing(self):
        assert score_vitals({**NORMAL_VITALS, "supplemental_oxygen": "Room air"}).total == 0
        assert score_vitals({**NORMAL_VITALS, "supplemental_oxygen": "Nasal cannula"}).total == 2

    def test_medium_band(self):
        # HR 2 + temp 1 + SBP 1 = 4
        result = score_vitals({**NORMAL_VITALS, "heart_rate": 120, "temperature": 38.5, "systolic_bp": 105})
        assert result.total == 4
        assert result.band is Band.MEDIUM
        assert result.escalate is False

    def test_reasons_explain_points(self):
        result = score_vitals({**NORMAL_VITALS, "heart_rate": 120, "supplemental_oxygen": True})
        assert "HR 120 scores 2" in result.reasons
        assert "Supplemental O2 adds 2" in result.reasons

    def test_deterministic(self):
        assert score_vitals(DETERIORATING_VITALS) == score_vitals(dict(reversed(list(DETERIORATING_VITALS.items()))))


class TestScoringPolicy:
    """Configurable thresholds and SpO2 scale."""

    def test_custom_thresholds(self):
        policy = ScoringPolicy(high_total=5, medium_total=2)
        assert classify_band(5, False, policy) is Band.HIGH
        assert classify_band(2, False, policy) is Band.MEDIUM
        assert classify_band(1, False, policy) is Band.LOW

    def test_escalation_overrides_total(self):
        assert classify_band(0, True) is Band.HIGH

    def test_hypercapnic_uses_scale2(self):
        policy = scoring_policy("hypercapnic")
        assert score_vitals({"oxygen_saturation": 89}, policy).per_parameter["oxygen_saturation"] == 0
        assert score_vitals({"oxygen_saturation": 83}, policy).per_parameter["oxygen_saturation"] == 3

    def test_unknown_profile(self):
        with pytest.raises(ValueError):
            scoring_policy("paediatric")


class TestHelpers:
    """Coercion, forward fill and trend."""

    def test_coerce_number(self):
        assert coerce_number("37.5") == 37.5
        assert coerce_number(" ") is None
        assert coerce_number(True) is None
        assert coerce_number(float("inf")) is None
        assert coerce_number(None) is None

    def test_merge_latest_forward_fills(self):
        merged = merge_latest([
            {"heart_rate": 100, "temperature": 38.5},
            {"heart_rate": 90, "temperature": None, "respiratory_rate": "bad"},
        ])
        assert merged == {"heart_rate": 90, "temperature": 38.5}

    def test_ews_trend(self):
        assert ews_trend(None, 3) is None
        assert ews_trend(2, 3) == "up"
        assert ews_trend(3, 2) == "down"
        assert ews_trend(3, 3) == "same"
