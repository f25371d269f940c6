"""Candidate pool construction for the scramble planner.

Every player on a team ends up in exactly one pool entry: either the real
squad they belong to, or a pseudo-squad wrapping just them.
"""

import random
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger

from team_scrambler.domain.models.roster import (
    TEAM_IDS,
    MovableUnit,
    RosterSnapshot,
    coerce_team_id,
)


class CandidatePoolMixin:
    """Mixin partitioning a normalized roster into movable units per team."""

    def build_candidate_pools(
        self, snapshot: RosterSnapshot
    ) -> Dict[str, List[MovableUnit]]:
        """Build one pool per team.

        Args:
            snapshot: Normalized roster

        Returns:
            Mapping of team id to units: non-empty squads first (snapshot
            order), then one pseudo-squad per unaffiliated player. Empty pools
            are valid.
        """
        pools: Dict[str, List[MovableUnit]] = {team_id: [] for team_id in TEAM_IDS}

        for squad in snapshot.squads:
            if squad.size == 0:
                continue
            pools[squad.team_id].append(MovableUnit.from_squad(squad))

        for player in snapshot.players:
            if player.squad_id is None:
                pools[player.team_id].append(MovableUnit.pseudo_squad(player))

        logger.debug(
            f"Candidate pools: Team1 = {len(pools['1'])} units ({self.pool_player_count(pools['1'])} players), "
            f"Team2 = {len(pools['2'])} units ({self.pool_player_count(pools['2'])} players)"
        )
        return pools

    @staticmethod
    def pool_player_count(pool: Iterable[MovableUnit]) -> int:
        return sum(unit.size for unit in pool)

    def resolve_anchor_team(
        self, anchor_team: Optional[Union[int, str]], rng: random.Random
    ) -> str:
        """Return the caller's anchor team, or pick one uniformly at random."""
        if anchor_team is not None:
            try:
                return coerce_team_id(anchor_team)
            except ValueError:
                logger.debug(f"Ignoring invalid anchor team {anchor_team!r}")
        chosen = rng.choice(TEAM_IDS)
        logger.debug(f"No anchor team set. Randomly selecting Team {chosen} as starting side.")
        return chosen
