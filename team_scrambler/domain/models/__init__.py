"""Domain models with strict data contracts at the caller boundary."""

from .moves import (
    ExecutorState,
    MoveOrder,
    MoveOutcome,
    PendingMove,
    ScrambleOutcome,
    ScramblePlan,
    ScrambleSession,
    SessionStatus,
    SessionSummary,
    TrialKind,
)
from .roster import (
    TEAM_IDS,
    MovableUnit,
    Player,
    RosterSnapshot,
    Squad,
    TeamId,
    UnitKind,
    coerce_team_id,
    other_team,
)

__all__ = [
    "TEAM_IDS",
    "TeamId",
    "Player",
    "Squad",
    "RosterSnapshot",
    "MovableUnit",
    "UnitKind",
    "coerce_team_id",
    "other_team",
    "MoveOrder",
    "TrialKind",
    "ScramblePlan",
    "ScrambleOutcome",
    "MoveOutcome",
    "PendingMove",
    "ScrambleSession",
    "SessionSummary",
    "SessionStatus",
    "ExecutorState",
]
