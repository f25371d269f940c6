"""Repository interface for the live game server's team controls."""

from abc import ABC, abstractmethod
from typing import List

from ..models.roster import Player


class TeamControlRepository(ABC):
    """
    Abstract port to the external, fallible control channel of a match.

    The executor only ever talks to the server through this interface, so the
    transport (RCON, HTTP, an in-memory simulation) is interchangeable.
    """

    @abstractmethod
    async def set_player_team(self, player_id: str, target_team_id: str) -> bool:
        """
        Ask the server to put a player on a team.

        Args:
            player_id: Player to move
            target_team_id: "1" or "2"

        Returns:
            True if the server accepted the command. Implementations may also
            raise; the executor treats both as a failed attempt.
        """
        pass

    @abstractmethod
    def current_roster(self) -> List[Player]:
        """
        Get the players currently connected.

        Returns:
            Snapshot of the live roster, used to detect players who left
        """
        pass

    @abstractmethod
    async def warn_player(self, player_id: str, message: str) -> None:
        """Send a private notice to one player."""
        pass
