"""In-memory game server used for dry runs, the CLI simulator and tests."""

import asyncio
import random
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from loguru import logger

from team_scrambler.domain.models.roster import Player, coerce_team_id
from team_scrambler.domain.repositories.team_control_repository import (
    TeamControlRepository,
)


class InMemoryTeamControlRepository(TeamControlRepository):
    """Simulated match server with a configurable unreliable control channel.

    Args:
        players: Initial roster (models or raw dicts)
        failure_rate: Probability that any single set-team call is rejected
        failing_player_ids: Players whose moves are always rejected
        latency_ms: Artificial delay per set-team call
        rng: Random source for failure injection
    """

    def __init__(
        self,
        players: Iterable[Union[Player, Dict]] = (),
        failure_rate: float = 0.0,
        failing_player_ids: Optional[Iterable[str]] = None,
        latency_ms: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self._players: Dict[str, Player] = {}
        for raw in players:
            player = raw if isinstance(raw, Player) else Player.model_validate(raw)
            self._players[player.player_id] = player
        self.failure_rate = failure_rate
        self.failing_player_ids: Set[str] = set(failing_player_ids or ())
        self.latency_ms = latency_ms
        self.rng = rng or random.Random()
        self.set_team_calls: List[Tuple[str, str]] = []
        self.warnings: List[Tuple[str, str]] = []

    async def set_player_team(self, player_id: str, target_team_id: str) -> bool:
        target_team_id = coerce_team_id(target_team_id)
        self.set_team_calls.append((player_id, target_team_id))
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

        player = self._players.get(player_id)
        if player is None:
            return False
        if player_id in self.failing_player_ids or self.rng.random() < self.failure_rate:
            logger.debug(f"Simulated set-team rejection for {player_id}")
            return False

        # Changing sides always drops the player out of their squad
        self._players[player_id] = player.model_copy(
            update={"team_id": target_team_id, "squad_id": None}
        )
        return True

    def current_roster(self) -> List[Player]:
        return list(self._players.values())

    async def warn_player(self, player_id: str, message: str) -> None:
        self.warnings.append((player_id, message))

    def disconnect(self, player_id: str) -> None:
        """Remove a player as if they left the server."""
        self._players.pop(player_id, None)

    def team_counts(self) -> Dict[str, int]:
        counts = {"1": 0, "2": 0}
        for player in self._players.values():
            counts[player.team_id] += 1
        return counts
