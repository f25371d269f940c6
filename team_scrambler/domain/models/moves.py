"""Move plan and move execution domain models."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .roster import TeamId, coerce_team_id


class MoveOrder(BaseModel):
    """Instruction to put one player on a team."""

    model_config = ConfigDict(frozen=True)

    player_id: str = Field(..., min_length=1, description="Player to move")
    target_team_id: TeamId = Field(..., description="Destination team")

    @field_validator("target_team_id", mode="before")
    @classmethod
    def validate_target_team(cls, v):
        return coerce_team_id(v)

    def __str__(self) -> str:
        return f"{self.player_id} -> Team {self.target_team_id}"


class TrialKind(str, Enum):
    """Which fallback tier a search trial ran under."""

    WHOLE_GROUPS = "whole_groups"
    SURGICAL = "surgical"
    NUCLEAR = "nuclear"


class ScramblePlan(BaseModel):
    """Finished plan plus the bookkeeping callers use for reporting."""

    moves: List[MoveOrder] = Field(default_factory=list)
    initial_team_sizes: Dict[str, int] = Field(default_factory=dict)
    final_team_sizes: Dict[str, int] = Field(default_factory=dict)
    target_moves: int = Field(default=0, ge=0, description="Churn target")
    anchor_team: Optional[TeamId] = None
    capacity_per_team: int = Field(default=0, ge=0)
    best_score: Optional[float] = None
    trials_run: int = Field(default=0, ge=0)
    best_trial_kind: Optional[TrialKind] = None
    broken_squads: List[str] = Field(
        default_factory=list, description="Unlocked squads the plan splits"
    )
    broken_locked_squads: List[str] = Field(
        default_factory=list, description="Locked squads the plan splits"
    )
    trimmed_moves: int = Field(default=0, ge=0, description="Moves added by cap trimming")
    unresolved_overcap: bool = Field(
        default=False, description="A team is still above capacity after trimming"
    )

    @property
    def is_empty(self) -> bool:
        return not self.moves

    @property
    def size_difference(self) -> int:
        if not self.final_team_sizes:
            return 0
        return abs(self.final_team_sizes.get("1", 0) - self.final_team_sizes.get("2", 0))

    def player_ids(self) -> List[str]:
        return [m.player_id for m in self.moves]


class MoveOutcome(str, Enum):
    """Terminal state of one pending move."""

    SUCCEEDED = "succeeded"
    DISAPPEARED = "disappeared"
    EXHAUSTED = "exhausted"
    TIMED_OUT = "timed_out"

    @property
    def counts_as_completed(self) -> bool:
        return self in (MoveOutcome.SUCCEEDED, MoveOutcome.DISAPPEARED)


class PendingMove(BaseModel):
    """A queued move owned and mutated only by the executor."""

    player_id: str = Field(..., min_length=1)
    target_team_id: TeamId
    attempt_count: int = Field(default=0, ge=0)
    enqueued_at_ms: float = Field(..., ge=0)

    @field_validator("target_team_id", mode="before")
    @classmethod
    def validate_target_team(cls, v):
        return coerce_team_id(v)


class ScrambleSession(BaseModel):
    """Accounting for one batch of moves being driven to completion."""

    started_at_ms: float = Field(..., ge=0)
    total_moves: int = Field(default=0, ge=0)
    completed_moves: int = Field(default=0, ge=0)
    failed_moves: int = Field(default=0, ge=0)
    outcomes: Dict[str, MoveOutcome] = Field(default_factory=dict)

    def record(self, player_id: str, outcome: MoveOutcome) -> None:
        self.outcomes[player_id] = outcome
        if outcome.counts_as_completed:
            self.completed_moves += 1
        else:
            self.failed_moves += 1


class SessionSummary(BaseModel):
    """End-of-session report."""

    model_config = ConfigDict(frozen=True)

    total_moves: int = Field(..., ge=0)
    completed_moves: int = Field(..., ge=0)
    failed_moves: int = Field(..., ge=0)
    abandoned_moves: int = Field(
        default=0, ge=0, description="Moves still queued when the session was forced"
    )
    duration_ms: float = Field(..., ge=0)
    success_rate: float = Field(..., ge=0.0, le=1.0)
    forced: bool = Field(default=False, description="Ended by the session timer")
    outcomes: Dict[str, MoveOutcome] = Field(default_factory=dict)

    @property
    def needs_manual_intervention(self) -> bool:
        return self.failed_moves > 0 or self.abandoned_moves > 0


class SessionStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class ExecutorState(BaseModel):
    """Point-in-time view of the executor for callers."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.IDLE
    session: Optional[ScrambleSession] = None
    pending_count: int = Field(default=0, ge=0)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE


class ScrambleOutcome(BaseModel):
    """What one scramble run produced."""

    plan: ScramblePlan
    simulated: bool = False
    summary: Optional[SessionSummary] = Field(
        None, description="Executor report; None for dry runs and empty plans"
    )
    drained: bool = Field(
        default=True, description="Executor finished before the coordinator stopped waiting"
    )

    @property
    def moves_planned(self) -> int:
        return len(self.plan.moves)
