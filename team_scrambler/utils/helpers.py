"""
Scramble Utilities Module

Helpers shared by the diagnostics suite and the CLI:
- Applying a move list to a roster
- Detecting squads a plan splits
- Tabulating plans for display
"""

from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from team_scrambler.domain.models.moves import MoveOrder
from team_scrambler.domain.models.roster import TEAM_IDS, RosterSnapshot


def apply_moves(snapshot: RosterSnapshot, moves: Iterable[MoveOrder]) -> Dict[str, str]:
    """Map every player to the team they end up on."""
    teams = {p.player_id: p.team_id for p in snapshot.players}
    for move in moves:
        if move.player_id in teams:
            teams[move.player_id] = move.target_team_id
    return teams


def final_team_counts(snapshot: RosterSnapshot, moves: Iterable[MoveOrder]) -> Dict[str, int]:
    counts = {team_id: 0 for team_id in TEAM_IDS}
    for team_id in apply_moves(snapshot, moves).values():
        counts[team_id] += 1
    return counts


def find_broken_squads(
    snapshot: RosterSnapshot, moves: Iterable[MoveOrder], locked: Optional[bool] = None
) -> List[str]:
    """
    Squads with some but not all members moved

    Args:
        snapshot: Roster the moves were planned against
        moves: Planned moves
        locked: Only report locked (True) or unlocked (False) squads

    Returns:
        Squad ids in snapshot order
    """
    moved = {m.player_id for m in moves}
    broken = []
    for squad in snapshot.squads:
        if locked is not None and squad.locked != locked:
            continue
        count = sum(1 for pid in squad.player_ids if pid in moved)
        if 0 < count < squad.size:
            broken.append(squad.squad_id)
    return broken


def plan_to_dataframe(
    snapshot: RosterSnapshot, moves: Union[Iterable[MoveOrder], None]
) -> pd.DataFrame:
    """
    Tabulate a move list with each player's origin and squad

    Returns:
        DataFrame with player_id, squad_id, locked, from_team, to_team columns
        (empty with those columns when there are no moves)
    """
    columns = ["player_id", "squad_id", "locked", "from_team", "to_team"]
    players = snapshot.players_by_id()
    squads = snapshot.squads_by_id()

    rows = []
    for move in moves or []:
        player = players.get(move.player_id)
        if player is None:
            continue
        squad = squads.get(player.squad_id) if player.squad_id else None
        rows.append(
            {
                "player_id": move.player_id,
                "squad_id": player.squad_id or "-",
                "locked": bool(squad and squad.locked),
                "from_team": player.team_id,
                "to_team": move.target_team_id,
            }
        )
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)
