"""Move list assembly and per-team capacity trimming."""

from typing import Dict, List, Optional, Tuple

from loguru import logger

from team_scrambler.domain.models.roster import (
    TEAM_IDS,
    MovableUnit,
    RosterSnapshot,
    other_team,
)


class CapEnforcementMixin:
    """Mixin turning a chosen swap into concrete per-player moves."""

    def build_tentative_moves(
        self,
        from_team1: List[MovableUnit],
        from_team2: List[MovableUnit],
    ) -> Optional[Dict[str, str]]:
        """Flatten selected units into an ordered ``player_id -> target`` map.

        Team 1 units (bound for Team 2) come first, then Team 2 units.

        Returns:
            The move map, or None if the same unit or player shows up on both
            sides (the plan must then be abandoned)
        """
        ids1 = {u.unit_id for u in from_team1}
        ids2 = {u.unit_id for u in from_team2}
        overlap = ids1 & ids2
        if overlap:
            logger.error(f"Conflict: unit(s) selected on both sides: {sorted(overlap)}")
            return None

        moves: Dict[str, str] = {}
        for units, target in ((from_team1, "2"), (from_team2, "1")):
            for unit in units:
                for pid in unit.player_ids:
                    if pid in moves:
                        logger.error(f"Player {pid} scheduled twice in one plan")
                        return None
                    moves[pid] = target
        return moves

    @staticmethod
    def project_team_counts(
        snapshot: RosterSnapshot, moves: Dict[str, str]
    ) -> Dict[str, int]:
        """Team sizes after applying the move map to the snapshot."""
        counts = {team_id: 0 for team_id in TEAM_IDS}
        for player in snapshot.players:
            counts[moves.get(player.player_id, player.team_id)] += 1
        return counts

    def _trim_priority(
        self,
        snapshot: RosterSnapshot,
        moves: Dict[str, str],
        source_team: str,
    ) -> List[str]:
        """Players eligible for a trim move off ``source_team``, best first.

        Only players still on the source team with no move yet qualify:
        unassigned players, then unlocked squad members, then locked squad
        members, each in roster order.
        """
        squads = snapshot.squads_by_id()
        tiers: Tuple[List[str], List[str], List[str]] = ([], [], [])
        for player in snapshot.players:
            if player.team_id != source_team or player.player_id in moves:
                continue
            squad = squads.get(player.squad_id) if player.squad_id else None
            if squad is None:
                tiers[0].append(player.player_id)
            elif not squad.locked:
                tiers[1].append(player.player_id)
            else:
                tiers[2].append(player.player_id)
        return tiers[0] + tiers[1] + tiers[2]

    def enforce_capacity(
        self,
        snapshot: RosterSnapshot,
        moves: Dict[str, str],
        capacity: int,
    ) -> Tuple[Dict[str, str], int, bool]:
        """Add single-player moves until neither team is above capacity.

        A player only moves from the fuller team when that team is at least
        two ahead, so trimming never inverts the imbalance. When no eligible
        player remains the plan is returned as is.

        Returns:
            (moves, number of trim moves added, whether a team is still over cap)
        """
        moves = dict(moves)
        counts = self.project_team_counts(snapshot, moves)
        added = 0

        while any(counts[t] > capacity for t in TEAM_IDS):
            source = max(TEAM_IDS, key=lambda t: counts[t] - capacity)
            dest = other_team(source)
            if counts[source] <= counts[dest] + 1:
                break
            candidates = self._trim_priority(snapshot, moves, source)
            if not candidates:
                break
            pid = candidates[0]
            moves[pid] = dest
            counts[source] -= 1
            counts[dest] += 1
            added += 1
            logger.debug(f"Cap trim: moving {pid} from Team {source} to Team {dest}")

        unresolved = any(counts[t] > capacity for t in TEAM_IDS)
        if added:
            logger.info(f"⚖️ Cap trimming added {added} move(s): sizes now {counts['1']}/{counts['2']}")
        if unresolved:
            logger.warning(
                f"⚠️ Team sizes {counts['1']}/{counts['2']} still exceed capacity {capacity}: "
                "manual intervention required"
            )
        return moves, added, unresolved
