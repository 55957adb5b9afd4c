"""Entity registry: how each staged entity is converted and validated.

Each EntitySpec carries the field-type table for one entity, its primary
key, the fields that may not be empty, its foreign keys and its row
invariants. The loader is generic and reads everything it needs from here.

Field-type table:

    Entity  | Flag      | Date          | Plain-copy
    --------+-----------+---------------+---------------------------------
    League  | is_active |               | league_id, league_name, country,
            |           |               | sport_type, founded_year
    Team    | is_active |               | team_id, league_id, team_name,
            |           |               | city, stadium, founded_year
    Player  | is_active | date_of_birth | player_id, team_id, first_name,
            |           |               | last_name, position, nationality,
            |           |               | jersey_number
    Match   |           | match_date    | match_id, league_id, season,
            |           |               | home_team_id, away_team_id,
            |           |               | home_score, away_score, stadium,
            |           |               | match_status, attendance

Plain-copy fields are typed by their production column (INTEGER or TEXT).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from sqlmodel import SQLModel

from ..errors import LoadOrderError
from ..models import (
    League,
    LeagueStaging,
    Match,
    MatchStaging,
    MatchStatus,
    Player,
    PlayerStaging,
    Team,
    TeamStaging,
)
from .converters import FieldKind

F = FieldKind

# An invariant returns an error message when the converted row breaks it
RowInvariant = Callable[[dict[str, Any]], Optional[str]]


class EntityType(str, Enum):
    """Entities loaded into the warehouse."""

    LEAGUE = "league"
    TEAM = "team"
    PLAYER = "player"
    MATCH = "match"


@dataclass(frozen=True)
class EntitySpec:
    """Conversion and validation rules for one entity type."""

    entity_type: EntityType
    model: type[SQLModel]
    staging_model: type[SQLModel]
    primary_key: str
    fields: dict[str, FieldKind]
    required: tuple[str, ...]
    foreign_keys: dict[str, EntityType] = field(default_factory=dict)
    invariants: tuple[RowInvariant, ...] = ()
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def staging_table_name(self) -> str:
        return self.staging_model.__tablename__

    @property
    def columns(self) -> list[str]:
        """Staged column names in declaration order."""
        return list(self.fields)

    def fields_of_kind(self, kind: FieldKind) -> list[str]:
        return [name for name, k in self.fields.items() if k is kind]

    def max_length(self, field_name: str) -> Optional[int]:
        """Width of a production text column, None when unbounded."""
        column = self.model.__table__.columns.get(field_name)
        return getattr(column.type, "length", None) if column is not None else None

    def dependencies(self) -> set[EntityType]:
        """Entity types that must be committed before this one."""
        return set(self.foreign_keys.values()) - {self.entity_type}


def home_and_away_differ(row: dict[str, Any]) -> Optional[str]:
    """A match cannot pair a team against itself."""
    home, away = row.get("home_team_id"), row.get("away_team_id")
    if home is not None and home == away:
        return f"home_team_id and away_team_id are both {home}"
    return None


ENTITY_SPECS: dict[EntityType, EntitySpec] = {
    EntityType.LEAGUE: EntitySpec(
        entity_type=EntityType.LEAGUE,
        model=League,
        staging_model=LeagueStaging,
        primary_key="league_id",
        fields={
            "league_id": F.INTEGER,
            "league_name": F.TEXT,
            "country": F.TEXT,
            "sport_type": F.TEXT,
            "founded_year": F.INTEGER,
            "is_active": F.FLAG,
        },
        required=("league_id", "league_name", "sport_type"),
    ),
    EntityType.TEAM: EntitySpec(
        entity_type=EntityType.TEAM,
        model=Team,
        staging_model=TeamStaging,
        primary_key="team_id",
        fields={
            "team_id": F.INTEGER,
            "league_id": F.INTEGER,
            "team_name": F.TEXT,
            "city": F.TEXT,
            "stadium": F.TEXT,
            "founded_year": F.INTEGER,
            "is_active": F.FLAG,
        },
        required=("team_id", "league_id", "team_name"),
        foreign_keys={"league_id": EntityType.LEAGUE},
    ),
    EntityType.PLAYER: EntitySpec(
        entity_type=EntityType.PLAYER,
        model=Player,
        staging_model=PlayerStaging,
        primary_key="player_id",
        fields={
            "player_id": F.INTEGER,
            "team_id": F.INTEGER,
            "first_name": F.TEXT,
            "last_name": F.TEXT,
            "position": F.TEXT,
            "nationality": F.TEXT,
            "date_of_birth": F.DATE,
            "jersey_number": F.INTEGER,
            "is_active": F.FLAG,
        },
        required=("player_id", "team_id", "first_name", "last_name"),
        foreign_keys={"team_id": EntityType.TEAM},
    ),
    EntityType.MATCH: EntitySpec(
        entity_type=EntityType.MATCH,
        model=Match,
        staging_model=MatchStaging,
        primary_key="match_id",
        fields={
            "match_id": F.INTEGER,
            "league_id": F.INTEGER,
            "season": F.TEXT,
            "match_date": F.DATE,
            "home_team_id": F.INTEGER,
            "away_team_id": F.INTEGER,
            "home_score": F.INTEGER,
            "away_score": F.INTEGER,
            "stadium": F.TEXT,
            "match_status": F.TEXT,
            "attendance": F.INTEGER,
        },
        required=("match_id", "league_id", "season", "home_team_id", "away_team_id"),
        foreign_keys={
            "league_id": EntityType.LEAGUE,
            "home_team_id": EntityType.TEAM,
            "away_team_id": EntityType.TEAM,
        },
        invariants=(home_and_away_differ,),
        defaults={"match_status": MatchStatus.COMPLETED.value},
    ),
}

# League before Team before Player and Match
LOAD_ORDER: tuple[EntityType, ...] = (
    EntityType.LEAGUE,
    EntityType.TEAM,
    EntityType.PLAYER,
    EntityType.MATCH,
)


def get_entity_spec(entity_type: EntityType | str) -> EntitySpec:
    """Look up the spec for an entity type or its name."""
    try:
        return ENTITY_SPECS[EntityType(entity_type)]
    except ValueError:
        raise LoadOrderError(f"Unknown entity type: {entity_type!r}") from None


def resolve_load_order(
    entity_types: Iterable[EntityType | str],
    specs: Optional[dict[EntityType, EntitySpec]] = None,
) -> list[EntityType]:
    """Order entity types so every dependency is loaded before its dependents.

    Only the requested types are returned; dependencies outside the request
    are assumed to be committed already. Ties keep LOAD_ORDER order.

    Raises:
        LoadOrderError: If a type is unknown or the dependencies form a cycle
    """
    specs = specs if specs is not None else ENTITY_SPECS
    requested = []
    for entity_type in entity_types:
        try:
            resolved = EntityType(entity_type)
        except ValueError:
            raise LoadOrderError(f"Unknown entity type: {entity_type!r}") from None
        if resolved not in specs:
            raise LoadOrderError(f"No entity spec registered for {resolved.value}")
        if resolved not in requested:
            requested.append(resolved)

    rank = {entity_type: i for i, entity_type in enumerate(LOAD_ORDER)}
    requested.sort(key=lambda e: rank.get(e, len(rank)))

    pending = {
        e: specs[e].dependencies() & set(requested) for e in requested
    }
    ordered: list[EntityType] = []
    while pending:
        ready = [e for e in requested if e in pending and not pending[e]]
        if not ready:
            cycle = ", ".join(sorted(e.value for e in pending))
            raise LoadOrderError(f"Cyclic entity dependencies among: {cycle}")
        for entity_type in ready:
            ordered.append(entity_type)
            del pending[entity_type]
        for deps in pending.values():
            deps.difference_update(ready)

    return ordered
