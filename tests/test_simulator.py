"""Tests for the seeded demo scenarios."""

import pytest

from edflow.models import Band, Phase
from edflow.simulator import run_scenario


class TestScenarios:

    @pytest.mark.parametrize("key, phase, room", [
        ("baseline", Phase.ROOMED, "Cubicle 4"),
        ("sepsis", Phase.REVIEW, "Resus 1"),
        ("stroke", Phase.REVIEW, "CT suite"),
        ("chestpain", Phase.REVIEW, "Cubicle 7"),
    ])
    def test_phase_after_scenario(self, observations, journey, t0, key, phase, room):
        run_scenario(key, observations, journey, "P1", now=t0)
        projection = journey.projection_for("P1")
        assert projection.phase is phase
        assert projection.current_room == room
        assert observations.last("P1") is not None

    def test_sepsis_readings_are_scored(self, observations, journey, t0):
        run_scenario("sepsis", observations, journey, "P1", now=t0)
        bands = [r.band for r in observations.list("P1")]
        assert bands[1] is Band.HIGH

    def test_unknown_scenario(self, observations, journey):
        with pytest.raises(ValueError):
            run_scenario("surge", observations, journey, "P1")
