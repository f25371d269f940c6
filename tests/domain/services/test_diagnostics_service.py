"""Tests for the diagnostics suite."""

import random

import pandas as pd
import pytest

from team_scrambler.adapters.in_memory_team_control import InMemoryTeamControlRepository
from team_scrambler.config import DiagnosticsConfig, ScrambleConfig
from team_scrambler.domain.services.diagnostics_service import (
    STRESS_SCENARIOS,
    DiagnosticsService,
)
from team_scrambler.domain.services.scramble_plan_service import ScramblePlanService
from team_scrambler.utils.mock_roster import mock_roster


@pytest.fixture
def diagnostics():
    planner = ScramblePlanService(ScrambleConfig(), rng=random.Random(0))
    return DiagnosticsService(planner, DiagnosticsConfig(stress_runs=2))


class TestLivePlanTest:
    """Dry-run planning against the live roster."""

    def test_skipped_on_low_population(self, diagnostics):
        server = InMemoryTeamControlRepository(
            [{"steamID": f"p{i}", "teamID": 1 + i % 2} for i in range(6)]
        )
        result = diagnostics.run_live_plan_test(server)

        assert result.passed
        assert result.message.startswith("SKIPPED")

    def test_plans_live_roster(self, diagnostics):
        players, squads = mock_roster(40, 0.5, rng=random.Random(2))
        server = InMemoryTeamControlRepository(players)
        result = diagnostics.run_live_plan_test(server, squads)

        assert result.passed
        assert result.message.startswith("SUCCESS")
        assert server.set_team_calls == []

    def test_failure_reported(self, diagnostics):
        class BrokenServer(InMemoryTeamControlRepository):
            def current_roster(self):
                raise ConnectionError("rcon down")

        result = diagnostics.run_live_plan_test(BrokenServer())

        assert not result.passed
        assert "rcon down" in result.message


class TestStressBatch:
    """Synthetic scenario batch."""

    def test_one_row_per_run(self, diagnostics):
        scenarios = {"small": lambda rng: mock_roster(30, 0.5, rng=rng)}
        results = diagnostics.run_stress_batch(scenarios=scenarios, rng=random.Random(1))

        assert isinstance(results, pd.DataFrame)
        assert len(results) == 2
        assert list(results["run"]) == [1, 2]
        assert {"diff", "moves", "broken_locked", "balanced", "unresolved_overcap"} <= set(results.columns)

    @pytest.mark.slow
    def test_builtin_scenarios(self, diagnostics):
        results = diagnostics.run_stress_batch(runs=1, rng=random.Random(3))

        assert set(results["scenario"]) == set(STRESS_SCENARIOS)
        assert (results["moves"] > 0).all()

    def test_summary(self, diagnostics):
        scenarios = {
            "a": lambda rng: mock_roster(20, 0.5, rng=rng),
            "b": lambda rng: mock_roster(24, 0.4, rng=rng),
        }
        results = diagnostics.run_stress_batch(scenarios=scenarios, rng=random.Random(5))
        summary = diagnostics.summarize_stress_results(results)

        assert list(summary["scenario"]) == ["a", "b"]
        assert list(summary["runs"]) == [2, 2]

    def test_summary_of_nothing(self, diagnostics):
        assert diagnostics.summarize_stress_results(pd.DataFrame()).empty
