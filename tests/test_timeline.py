"""Tests for the timeline and vitals history tables."""

from datetime import timedelta

from edflow.models import ClinicalEvent, EventKind
from edflow.recording import record_observation
from edflow.timeline import format_event_line, pretty_kind, timeline_frame, vitals_frame

from conftest import DETERIORATING_VITALS, NORMAL_VITALS


class TestFormatEventLine:

    def test_vitals_summary(self, t0):
        ev = ClinicalEvent(
            patient_id="P1", t=t0, kind=EventKind.VITALS_RECORDED, label="Obs",
            detail={"respiratory_rate": 16, "heart_rate": 80.0, "oxygen_saturation": 98, "score": 0},
        )
        title, meta = format_event_line(ev)
        assert title == "Obs"
        assert meta == "RR 16 · HR 80 · SpO₂ 98% (EWS 0)"

    def test_string_detail_becomes_meta(self, t0):
        ev = ClinicalEvent(patient_id="P1", t=t0, kind=EventKind.RESULT_RECEIVED,
                           label="CT completed", detail="No hemorrhage")
        assert format_event_line(ev) == ("CT completed", "No hemorrhage")

    def test_falls_back_to_kind(self, t0):
        ev = ClinicalEvent(patient_id="P1", t=t0, kind=EventKind.MEDICATION_ADMINISTERED)
        assert format_event_line(ev) == ("Medication Administered", None)

    def test_pretty_kind(self):
        assert pretty_kind(EventKind.ROOM_CHANGE) == "Room Change"


class TestFrames:

    def test_timeline_newest_first(self, journey, t0):
        journey.append("P1", EventKind.ARRIVAL, "Arrived", t=t0)
        journey.append("P1", EventKind.TRIAGE, "Triage", t=t0 + timedelta(minutes=5), actor="RN Lee")
        df = timeline_frame(journey, "P1")
        assert list(df["title"]) == ["Triage", "Arrived"]
        assert df.iloc[0]["actor"] == "RN Lee"
        assert len(timeline_frame(journey, "P1", limit=1)) == 1

    def test_empty_timeline(self, journey):
        df = timeline_frame(journey, "nobody")
        assert df.empty
        assert list(df.columns) == ["t", "kind", "title", "meta", "actor"]

    def test_vitals_frame(self, observations, journey, t0):
        record_observation(observations, journey, "P1", DETERIORATING_VITALS, taken_at=t0)
        record_observation(observations, journey, "P1", NORMAL_VITALS, taken_at=t0 + timedelta(minutes=20))
        df = vitals_frame(observations, "P1")
        assert list(df["band"]) == ["High", "Low"]
        assert df["taken_at"].is_monotonic_increasing
        assert (df["next_due"] - df["taken_at"]).dt.total_seconds().tolist() == [900.0, 3600.0]

    def test_empty_vitals_frame(self, observations):
        assert vitals_frame(observations, "nobody").empty
