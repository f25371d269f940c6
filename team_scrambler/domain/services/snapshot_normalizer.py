"""Snapshot normalization: raw server records to a canonical RosterSnapshot."""

from typing import Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from loguru import logger
from pydantic import BaseModel

from team_scrambler.domain.models.roster import TEAM_IDS, Player, RosterSnapshot, Squad

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_records(
    model: Type[ModelT], records: Optional[Iterable[Union[ModelT, Dict]]]
) -> List[ModelT]:
    parsed = []
    for record in records or []:
        if isinstance(record, model):
            parsed.append(record)
        elif isinstance(record, dict):
            parsed.append(model.model_validate(dict(record)))
        else:
            raise TypeError(
                f"Expected {model.__name__} or dict, got {type(record).__name__}"
            )
    return parsed


def _reject_duplicates(ids: List[str], label: str) -> None:
    seen = set()
    duplicates = set()
    for record_id in ids:
        if record_id in seen:
            duplicates.add(record_id)
        seen.add(record_id)
    if duplicates:
        raise ValueError(f"Duplicate {label} ids in snapshot: {sorted(duplicates)}")


def normalize_snapshot(
    players: Optional[Iterable[Union[Player, Dict]]],
    squads: Optional[Iterable[Union[Squad, Dict]]] = None,
) -> RosterSnapshot:
    """
    Build the planner's working copy of a roster.

    Records may be models or raw dicts (``steamID``/``teamID``/``squadID``
    style keys are accepted). Caller data is never mutated.

    Squad membership is reconciled against the players themselves: a squad's
    members are exactly the players on the same team whose ``squad_id`` names
    it, in the squad's listed order followed by roster order. Players pointing
    at an unknown squad, or at a squad on the other team, become unaffiliated.

    Squads are looked up by team and id. An id reported by both teams (servers
    number squads per team) becomes ``T{team}-S{id}`` on both the squad and
    its members.

    Args:
        players: Connected players
        squads: Squads reported by the server

    Returns:
        Immutable RosterSnapshot. Normalizing a snapshot's own players and
        squads again yields an equal snapshot.

    Raises:
        pydantic.ValidationError: A record is malformed (missing id, bad team)
        ValueError: Duplicate player ids, or a squad id repeated within one team
    """
    parsed_players = _parse_records(Player, players)
    parsed_squads = _parse_records(Squad, squads)

    _reject_duplicates([p.player_id for p in parsed_players], "player")
    for team_id in TEAM_IDS:
        _reject_duplicates(
            [s.squad_id for s in parsed_squads if s.team_id == team_id],
            f"Team {team_id} squad",
        )

    # Servers number squads per team; a number used on both sides gets a team prefix
    team_ids_by_squad: Dict[str, set] = {}
    for squad in parsed_squads:
        team_ids_by_squad.setdefault(squad.squad_id, set()).add(squad.team_id)
    shared = {squad_id for squad_id, teams in team_ids_by_squad.items() if len(teams) > 1}

    def canonical_id(team_id: str, squad_id: str) -> str:
        return f"T{team_id}-S{squad_id}" if squad_id in shared else squad_id

    squads_by_key: Dict[Tuple[str, str], Squad] = {}
    for squad in parsed_squads:
        squads_by_key[(squad.team_id, squad.squad_id)] = squad.model_copy(
            update={"squad_id": canonical_id(squad.team_id, squad.squad_id)}
        )
    _reject_duplicates([s.squad_id for s in squads_by_key.values()], "squad")
    if shared:
        logger.debug(f"Normalizer: squad ids {sorted(shared)} used by both teams; prefixed with team")

    normalized_players: List[Player] = []
    roster_members: Dict[str, List[str]] = {s.squad_id: [] for s in squads_by_key.values()}
    orphaned = 0
    for player in parsed_players:
        squad = (
            squads_by_key.get((player.team_id, player.squad_id)) if player.squad_id else None
        )
        if player.squad_id is not None and squad is None:
            orphaned += 1
            player = player.model_copy(update={"squad_id": None})
        elif squad is not None and squad.squad_id != player.squad_id:
            player = player.model_copy(update={"squad_id": squad.squad_id})
        if player.squad_id is not None:
            roster_members[player.squad_id].append(player.player_id)
        normalized_players.append(player)

    normalized_squads: List[Squad] = []
    for squad in squads_by_key.values():
        members = roster_members[squad.squad_id]
        member_set = set(members)
        listed = [pid for pid in squad.player_ids if pid in member_set]
        listed_set = set(listed)
        ordered = listed + [pid for pid in members if pid not in listed_set]
        normalized_squads.append(squad.model_copy(update={"player_ids": tuple(ordered)}))

    if orphaned:
        logger.debug(
            f"Normalizer: {orphaned} players referenced unknown or cross-team squads; treated as unassigned"
        )
    logger.debug(
        f"Normalizer: {len(normalized_squads)} squads, {len(normalized_players)} players"
    )

    return RosterSnapshot(
        players=tuple(normalized_players), squads=tuple(normalized_squads)
    )
