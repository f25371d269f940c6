"""Roster domain models: players, squads and the units the planner moves."""

from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TeamId = Literal["1", "2"]
TEAM_IDS: Tuple[str, str] = ("1", "2")


def coerce_team_id(value) -> str:
    """Accept 1/2 as int or str and return the canonical string form."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid team id: {value!r}")
    if isinstance(value, (int, str)) and str(value).strip() in TEAM_IDS:
        return str(value).strip()
    raise ValueError(f"Team id must be 1 or 2, got {value!r}")


def other_team(team_id: str) -> str:
    """The opposing side of a two-team match."""
    return "2" if team_id == "1" else "1"


class Player(BaseModel):
    """
    A connected player as seen by the planner.

    ``squad_id`` of None means the player is not in any squad.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    player_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("player_id", "steamID", "playerID", "id"),
        description="Stable player identifier",
    )
    team_id: TeamId = Field(
        ...,
        validation_alias=AliasChoices("team_id", "teamID"),
        description="Current team",
    )
    squad_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("squad_id", "squadID", "groupID"),
        description="Squad the player belongs to, if any",
    )

    @field_validator("player_id", mode="before")
    @classmethod
    def validate_player_id(cls, v):
        if v is None:
            raise ValueError("player_id is required")
        return str(v).strip()

    @field_validator("team_id", mode="before")
    @classmethod
    def validate_team_id(cls, v):
        return coerce_team_id(v)

    @field_validator("squad_id", mode="before")
    @classmethod
    def validate_squad_id(cls, v):
        # Game servers report "no squad" as null, 0 or an empty string
        if v is None or v == 0 or (isinstance(v, str) and not v.strip()):
            return None
        return str(v).strip()


class Squad(BaseModel):
    """
    A cohesive group of players on one team.

    A locked squad signals social intent (e.g. a premade party) and is only
    split as a last resort.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    squad_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("squad_id", "squadID", "id"),
        description="Squad identifier, unique within the snapshot",
    )
    team_id: TeamId = Field(
        ..., validation_alias=AliasChoices("team_id", "teamID"), description="Team"
    )
    player_ids: Tuple[str, ...] = Field(
        default_factory=tuple,
        validation_alias=AliasChoices("player_ids", "players", "memberIDs"),
        description="Ordered member ids",
    )
    locked: bool = Field(default=False, description="Caller-flagged premade squad")

    @field_validator("squad_id", mode="before")
    @classmethod
    def validate_squad_id(cls, v):
        if v is None:
            raise ValueError("squad_id is required")
        return str(v).strip()

    @field_validator("team_id", mode="before")
    @classmethod
    def validate_team_id(cls, v):
        return coerce_team_id(v)

    @field_validator("player_ids", mode="before")
    @classmethod
    def validate_player_ids(cls, v):
        if v is None:
            return ()
        seen = []
        for pid in v:
            pid = str(pid).strip()
            if pid and pid not in seen:
                seen.append(pid)
        return tuple(seen)

    @field_validator("locked", mode="before")
    @classmethod
    def validate_locked(cls, v):
        if isinstance(v, str):
            if v.strip().lower() in ("true", "1", "yes"):
                return True
            if v.strip().lower() in ("false", "0", "no", ""):
                return False
            raise ValueError(f"Invalid locked flag: {v!r}")
        return bool(v) if v is not None else False

    @property
    def size(self) -> int:
        return len(self.player_ids)


class RosterSnapshot(BaseModel):
    """Normalized, immutable working copy of one roster."""

    model_config = ConfigDict(frozen=True)

    players: Tuple[Player, ...] = Field(default_factory=tuple)
    squads: Tuple[Squad, ...] = Field(default_factory=tuple)

    @property
    def total_players(self) -> int:
        return len(self.players)

    def team_counts(self) -> Dict[str, int]:
        """Player count per team (both teams always present)."""
        counts = {team_id: 0 for team_id in TEAM_IDS}
        for player in self.players:
            counts[player.team_id] += 1
        return counts

    def players_by_id(self) -> Dict[str, Player]:
        return {p.player_id: p for p in self.players}

    def squads_by_id(self) -> Dict[str, Squad]:
        return {s.squad_id: s for s in self.squads}

    def players_on_team(self, team_id: str) -> List[Player]:
        return [p for p in self.players if p.team_id == team_id]


class UnitKind(str, Enum):
    """What a movable unit wraps."""

    SQUAD = "squad"
    UNASSIGNED = "unassigned"
    SPLIT = "split"


class MovableUnit(BaseModel):
    """
    One selectable entry of a candidate pool.

    Real squads, pseudo-squads (a single unaffiliated player) and split units
    (one member of a decomposed squad) are all selected by the same logic.
    """

    model_config = ConfigDict(frozen=True)

    unit_id: str = Field(..., min_length=1)
    team_id: TeamId
    player_ids: Tuple[str, ...] = Field(..., min_length=1)
    locked: bool = False
    kind: UnitKind = UnitKind.SQUAD
    source_squad_id: Optional[str] = Field(
        None, description="Originating squad for split units"
    )

    @property
    def size(self) -> int:
        return len(self.player_ids)

    @property
    def is_real_squad(self) -> bool:
        return self.kind == UnitKind.SQUAD

    @classmethod
    def from_squad(cls, squad: Squad) -> "MovableUnit":
        return cls(
            unit_id=squad.squad_id,
            team_id=squad.team_id,
            player_ids=squad.player_ids,
            locked=squad.locked,
            kind=UnitKind.SQUAD,
        )

    @classmethod
    def pseudo_squad(cls, player: Player) -> "MovableUnit":
        return cls(
            unit_id=f"unassigned:{player.player_id}",
            team_id=player.team_id,
            player_ids=(player.player_id,),
            locked=False,
            kind=UnitKind.UNASSIGNED,
        )

    def split(self) -> List["MovableUnit"]:
        """Decompose a real squad into one split unit per member."""
        if self.kind != UnitKind.SQUAD:
            return [self]
        return [
            MovableUnit(
                unit_id=f"split:{pid}",
                team_id=self.team_id,
                player_ids=(pid,),
                locked=self.locked,
                kind=UnitKind.SPLIT,
                source_squad_id=self.unit_id,
            )
            for pid in self.player_ids
        ]
