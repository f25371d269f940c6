"""Repository interfaces for external system abstraction."""

from .team_control_repository import TeamControlRepository

__all__ = ["TeamControlRepository"]
