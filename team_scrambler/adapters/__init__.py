"""Infrastructure adapters: timers and team-control implementations."""

from .in_memory_team_control import InMemoryTeamControlRepository
from .scheduler import AsyncioScheduler, CancelToken, Scheduler

__all__ = [
    "AsyncioScheduler",
    "CancelToken",
    "InMemoryTeamControlRepository",
    "Scheduler",
]
