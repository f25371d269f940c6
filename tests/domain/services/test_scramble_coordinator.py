"""Tests for scramble orchestration."""

import asyncio
import random

import pytest

from team_scrambler.adapters.in_memory_team_control import InMemoryTeamControlRepository
from team_scrambler.config import ExecutorConfig, ScrambleConfig
from team_scrambler.domain.common import ErrorType
from team_scrambler.domain.services.move_executor import MoveExecutor
from team_scrambler.domain.services.scramble_coordinator import ScrambleCoordinator
from team_scrambler.domain.services.scramble_plan_service import ScramblePlanService


@pytest.fixture
def roster():
    players, squads = [], []
    for team in (1, 2):
        for s in range(4):
            squad_id = f"T{team}-S{s}"
            members = [f"t{team}s{s}p{i}" for i in range(5)]
            squads.append({"squadID": squad_id, "teamID": team, "players": members})
            players.extend({"steamID": pid, "teamID": team, "squadID": squad_id} for pid in members)
    return players, squads


@pytest.fixture
def server(roster):
    return InMemoryTeamControlRepository(roster[0])


@pytest.fixture
def coordinator(server, scheduler):
    planner = ScramblePlanService(ScrambleConfig(), rng=random.Random(4))
    executor = MoveExecutor(server, scheduler=scheduler, executor_config=ExecutorConfig())
    return ScrambleCoordinator(planner, executor)


class TestExecuteScramble:
    """Immediate scrambles."""

    def test_live_scramble_applies_plan(self, coordinator, server, roster):
        result = asyncio.run(coordinator.execute_scramble(*roster))

        assert result.is_success
        outcome = result.value
        assert not outcome.simulated
        assert outcome.drained
        assert outcome.summary.completed_moves == outcome.moves_planned > 0
        assert server.team_counts() == outcome.plan.final_team_sizes
        assert not coordinator.is_in_progress

    def test_dry_run_touches_nothing(self, coordinator, server, roster):
        result = asyncio.run(coordinator.execute_scramble(*roster, simulate=True))

        assert result.is_success
        assert result.value.simulated
        assert result.value.summary is None
        assert result.value.moves_planned > 0
        assert server.set_team_calls == []

    def test_empty_roster(self, coordinator):
        result = asyncio.run(coordinator.execute_scramble([], []))

        assert result.is_success
        assert result.value.plan.is_empty
        assert result.value.summary is None

    def test_malformed_snapshot(self, coordinator):
        players = [{"steamID": "a", "teamID": 1}, {"steamID": "a", "teamID": 2}]
        result = asyncio.run(coordinator.execute_scramble(players, []))

        assert result.is_failure
        assert result.error.error_type == ErrorType.VALIDATION_ERROR
        assert not coordinator.is_in_progress

    def test_rejected_while_session_active(self, coordinator, roster):
        async def scenario():
            coordinator.executor.enqueue("t1s0p0", "2")
            return await coordinator.execute_scramble(*roster)

        result = asyncio.run(scenario())

        assert result.is_failure
        assert result.error.error_type == ErrorType.BUSINESS_RULE_VIOLATION


class TestScheduledScramble:
    """Countdown scheduling and cancellation."""

    def test_cancel_pending(self, coordinator, scheduler, server, roster):
        async def scenario():
            assert coordinator.schedule_scramble(*roster, delay_ms=1000)
            assert coordinator.is_pending
            assert coordinator.cancel_pending()
            await scheduler.advance(2000)

        asyncio.run(scenario())

        assert not coordinator.is_pending
        assert coordinator.last_outcome is None
        assert server.set_team_calls == []

    def test_cancel_without_pending(self, coordinator):
        assert coordinator.cancel_pending() is False

    def test_second_schedule_blocked(self, coordinator, roster):
        async def scenario():
            first = coordinator.schedule_scramble(*roster, delay_ms=1000)
            second = coordinator.schedule_scramble(*roster, delay_ms=1000)
            coordinator.cancel_pending()
            return first, second

        assert asyncio.run(scenario()) == (True, False)

    def test_cancel_refused_while_executing(self, coordinator, roster):
        async def scenario():
            coordinator.schedule_scramble(*roster, delay_ms=1000)
            coordinator.executor.enqueue("t1s0p0", "2")
            refused = coordinator.cancel_pending()
            coordinator.executor.cancel_all()
            return refused, coordinator.cancel_pending()

        assert asyncio.run(scenario()) == (False, True)

    def test_countdown_runs_scramble(self, coordinator, scheduler, server, roster):
        async def scenario():
            coordinator.schedule_scramble(*roster, delay_ms=1000, simulate=True)
            await scheduler.advance(1000)
            for _ in range(5):
                await asyncio.sleep(0)

        asyncio.run(scenario())

        assert not coordinator.is_pending
        assert coordinator.last_outcome.is_success
        assert coordinator.last_outcome.value.simulated
        assert server.set_team_calls == []

    def test_default_delay_from_config(self, server, scheduler, roster):
        planner = ScramblePlanService(
            ScrambleConfig(announcement_delay_ms=3000), rng=random.Random(0)
        )
        coordinator = ScrambleCoordinator(planner, MoveExecutor(server, scheduler=scheduler))

        async def scenario():
            coordinator.schedule_scramble(*roster, simulate=True)
            await scheduler.advance(2999)
            still_pending = coordinator.is_pending
            await scheduler.advance(1)
            return still_pending, coordinator.is_pending

        assert asyncio.run(scenario()) == (True, False)
