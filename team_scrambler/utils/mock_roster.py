"""
Synthetic rosters for dry runs, stress batches and tests.

Squad sizes and lock rates follow a packed public server: a few small
specialist squads (vehicles) that are usually locked and larger infantry
squads locked about half the time.
"""

import random
from typing import Dict, List, Optional, Tuple

SPECIALIST_SQUAD_IDS = (1, 2, 3)
INFANTRY_SQUAD_IDS = (4, 5, 6, 7)
MAX_SQUAD_SIZE = 9


def generate_mock_players(
    count: int = 50,
    team1_ratio: float = 0.5,
    unassigned_ratio: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> List[Dict]:
    """
    Generate raw player records in server format.

    Args:
        count: Total players
        team1_ratio: Share of players on Team 1
        unassigned_ratio: Share of players outside any squad (random 0-5% if None)
        rng: Random source

    Returns:
        Player dicts with ``steamID``, ``name``, ``teamID`` and a per-team
        numeric ``squadID`` (None when unassigned)
    """
    rng = rng or random.Random()
    team1_count = int(count * team1_ratio)
    if unassigned_ratio is None:
        unassigned_ratio = rng.random() * 0.05

    players = []
    for i in range(count):
        squad_id = None
        if rng.random() >= unassigned_ratio:
            # 20% of players fill the small specialist squads
            if rng.random() < 0.2:
                squad_id = rng.choice(SPECIALIST_SQUAD_IDS)
            else:
                squad_id = rng.choice(INFANTRY_SQUAD_IDS)
        players.append(
            {
                "steamID": f"mock_steam_{i}",
                "name": f"TestPlayer{i}",
                "teamID": 1 if i < team1_count else 2,
                "squadID": squad_id,
            }
        )
    return players


def generate_mock_squads(
    players: List[Dict], rng: Optional[random.Random] = None
) -> List[Dict]:
    """Group mock players into squad records, rolling a lock state per squad."""
    rng = rng or random.Random()
    squads: Dict[Tuple[int, int], Dict] = {}
    for player in players:
        if not player["squadID"]:
            continue
        key = (player["teamID"], player["squadID"])
        if key not in squads:
            lock_chance = 0.8 if player["squadID"] in SPECIALIST_SQUAD_IDS else 0.5
            squads[key] = {
                "squadID": player["squadID"],
                "teamID": player["teamID"],
                "players": [],
                "locked": rng.random() < lock_chance,
            }
        squads[key]["players"].append(player["steamID"])
    return list(squads.values())


def transform_for_scrambler(
    players: List[Dict], squads: List[Dict]
) -> Tuple[List[Dict], List[Dict]]:
    """
    Make squad ids unique across teams.

    Servers number squads per team, so Team 1 squad 4 and Team 2 squad 4 are
    different squads; they become ``T1-S4`` and ``T2-S4``.
    """
    transformed_squads = [
        {
            "squadID": f"T{s['teamID']}-S{s['squadID']}",
            "teamID": str(s["teamID"]),
            "players": list(s["players"]),
            "locked": s["locked"],
        }
        for s in squads
    ]
    transformed_players = [
        {
            "steamID": p["steamID"],
            "teamID": str(p["teamID"]),
            "squadID": f"T{p['teamID']}-S{p['squadID']}" if p["squadID"] else None,
        }
        for p in players
    ]
    return transformed_players, transformed_squads


def mock_roster(
    count: int = 80,
    team1_ratio: float = 0.5,
    unassigned_ratio: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[List[Dict], List[Dict]]:
    """Generate, group and transform in one step."""
    rng = rng or random.Random()
    players = generate_mock_players(count, team1_ratio, unassigned_ratio, rng=rng)
    squads = generate_mock_squads(players, rng=rng)
    return transform_for_scrambler(players, squads)


def _fill_team(
    team_id: int, size: int, squad_size: int, start_index: int, locked: bool
) -> Tuple[List[Dict], List[Dict]]:
    players, squads = [], []
    for offset in range(size):
        squad_number = offset // squad_size + 1
        steam_id = f"mock_steam_{start_index + offset}"
        players.append(
            {
                "steamID": steam_id,
                "name": f"TestPlayer{start_index + offset}",
                "teamID": team_id,
                "squadID": squad_number,
            }
        )
        if offset % squad_size == 0:
            squads.append(
                {"squadID": squad_number, "teamID": team_id, "players": [], "locked": locked}
            )
        squads[-1]["players"].append(steam_id)
    return players, squads


def scenario_all_locked(
    count: int = 100, team1_ratio: float = 0.8
) -> Tuple[List[Dict], List[Dict]]:
    """Every player in a full, locked squad with a heavy imbalance."""
    team1_count = int(count * team1_ratio)
    p1, s1 = _fill_team(1, team1_count, MAX_SQUAD_SIZE, 0, locked=True)
    p2, s2 = _fill_team(2, count - team1_count, MAX_SQUAD_SIZE, team1_count, locked=True)
    return transform_for_scrambler(p1 + p2, s1 + s2)


def scenario_david_goliath() -> Tuple[List[Dict], List[Dict]]:
    """One oversized unlocked squad against many small locked ones."""
    p1, s1 = _fill_team(1, 40, 40, 0, locked=False)
    p2, s2 = _fill_team(2, 40, 4, 40, locked=True)
    return transform_for_scrambler(p1 + p2, s1 + s2)
