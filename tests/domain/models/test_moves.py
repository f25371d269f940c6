"""Tests for move plan and execution models."""

import pytest
from pydantic import ValidationError

from team_scrambler.domain.models.moves import (
    ExecutorState,
    MoveOrder,
    MoveOutcome,
    PendingMove,
    ScrambleOutcome,
    ScramblePlan,
    ScrambleSession,
    SessionStatus,
    SessionSummary,
)


class TestMoveOrder:
    def test_integer_team_coerced(self):
        move = MoveOrder(player_id="p1", target_team_id=2)
        assert move.target_team_id == "2"
        assert str(move) == "p1 -> Team 2"

    def test_invalid_target_rejected(self):
        with pytest.raises(ValidationError):
            MoveOrder(player_id="p1", target_team_id=5)


class TestScramblePlan:
    """Plan helpers."""

    def test_empty_plan(self):
        plan = ScramblePlan()
        assert plan.is_empty
        assert plan.size_difference == 0
        assert plan.player_ids() == []

    def test_size_difference_and_ids(self):
        plan = ScramblePlan(
            moves=[MoveOrder(player_id="a", target_team_id="2")],
            final_team_sizes={"1": 39, "2": 41},
        )
        assert not plan.is_empty
        assert plan.size_difference == 2
        assert plan.player_ids() == ["a"]


class TestSessionAccounting:
    """Session counters and outcome classification."""

    def test_completed_outcomes(self):
        assert MoveOutcome.SUCCEEDED.counts_as_completed
        assert MoveOutcome.DISAPPEARED.counts_as_completed
        assert not MoveOutcome.EXHAUSTED.counts_as_completed
        assert not MoveOutcome.TIMED_OUT.counts_as_completed

    def test_record_updates_counters(self):
        session = ScrambleSession(started_at_ms=0, total_moves=3)
        session.record("a", MoveOutcome.SUCCEEDED)
        session.record("b", MoveOutcome.DISAPPEARED)
        session.record("c", MoveOutcome.EXHAUSTED)

        assert session.completed_moves == 2
        assert session.failed_moves == 1
        assert session.outcomes["c"] == MoveOutcome.EXHAUSTED

    def test_summary_manual_intervention(self):
        clean = SessionSummary(
            total_moves=2, completed_moves=2, failed_moves=0, duration_ms=400, success_rate=1.0
        )
        forced = SessionSummary(
            total_moves=2,
            completed_moves=1,
            failed_moves=0,
            abandoned_moves=1,
            duration_ms=15000,
            success_rate=0.5,
            forced=True,
        )
        assert not clean.needs_manual_intervention
        assert forced.needs_manual_intervention

    def test_success_rate_bounds(self):
        with pytest.raises(ValidationError):
            SessionSummary(
                total_moves=1, completed_moves=1, failed_moves=0, duration_ms=0, success_rate=1.5
            )

    def test_pending_move_coerces_target(self):
        move = PendingMove(player_id="a", target_team_id=1, enqueued_at_ms=0)
        assert move.target_team_id == "1"
        assert move.attempt_count == 0


class TestExecutorState:
    def test_default_is_idle(self):
        state = ExecutorState()
        assert state.status == SessionStatus.IDLE
        assert not state.is_active

    def test_active(self):
        state = ExecutorState(
            status=SessionStatus.ACTIVE,
            session=ScrambleSession(started_at_ms=0),
            pending_count=2,
        )
        assert state.is_active


class TestScrambleOutcome:
    def test_moves_planned(self):
        outcome = ScrambleOutcome(
            plan=ScramblePlan(moves=[MoveOrder(player_id="a", target_team_id="1")]),
            simulated=True,
        )
        assert outcome.moves_planned == 1
        assert outcome.summary is None
