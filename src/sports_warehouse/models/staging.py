"""ORM models for staging tables.

Staging tables are the landing area for raw files:
- Every business column is free text, even when the production type is
  DATE, INT or BOOLEAN
- No primary key on the business identity, no foreign keys
- A surrogate stg_row_id keeps the original file order
"""

from typing import Any, Optional

from sqlalchemy import String, Text
from sqlmodel import Field, SQLModel


class StagingTableBase(SQLModel):
    """Base model for all staging tables."""

    stg_row_id: Optional[int] = Field(default=None, primary_key=True)

    def to_raw_row(self) -> dict[str, Any]:
        """Return the business columns as a staged row mapping."""
        return self.model_dump(exclude={"stg_row_id"})


class LeagueStaging(StagingTableBase, table=True):
    """Raw league rows prior to validation and type conversion."""

    __tablename__ = "leagues_stg"

    league_id: Optional[str] = Field(sa_type=String(50), default=None)
    league_name: Optional[str] = Field(sa_type=String(100), default=None)
    country: Optional[str] = Field(sa_type=String(100), default=None)
    sport_type: Optional[str] = Field(sa_type=String(50), default=None)
    founded_year: Optional[str] = Field(sa_type=String(50), default=None)
    is_active: Optional[str] = Field(sa_type=String(50), default=None)


class TeamStaging(StagingTableBase, table=True):
    """Raw team rows; league_id is validated during the load, not here."""

    __tablename__ = "teams_stg"

    team_id: Optional[str] = Field(sa_type=String(50), default=None)
    league_id: Optional[str] = Field(sa_type=String(50), default=None)
    team_name: Optional[str] = Field(sa_type=String(100), default=None)
    city: Optional[str] = Field(sa_type=String(100), default=None)
    stadium: Optional[str] = Field(sa_type=String(100), default=None)
    founded_year: Optional[str] = Field(sa_type=String(50), default=None)
    is_active: Optional[str] = Field(sa_type=String(50), default=None)


class PlayerStaging(StagingTableBase, table=True):
    """Raw player rows; date_of_birth kept as text in any source format."""

    __tablename__ = "players_stg"

    player_id: Optional[str] = Field(sa_type=String(50), default=None)
    team_id: Optional[str] = Field(sa_type=String(50), default=None)
    first_name: Optional[str] = Field(sa_type=String(100), default=None)
    last_name: Optional[str] = Field(sa_type=String(100), default=None)
    position: Optional[str] = Field(sa_type=String(50), default=None)
    nationality: Optional[str] = Field(sa_type=String(100), default=None)
    date_of_birth: Optional[str] = Field(sa_type=String(50), default=None)
    jersey_number: Optional[str] = Field(sa_type=String(50), default=None)
    is_active: Optional[str] = Field(sa_type=String(50), default=None)


class MatchStaging(StagingTableBase, table=True):
    """Raw match rows; match_date and match_status are validated on load."""

    __tablename__ = "matches_stg"

    match_id: Optional[str] = Field(sa_type=String(50), default=None)
    league_id: Optional[str] = Field(sa_type=String(50), default=None)
    season: Optional[str] = Field(sa_type=String(20), default=None)
    match_date: Optional[str] = Field(sa_type=String(50), default=None)
    home_team_id: Optional[str] = Field(sa_type=String(50), default=None)
    away_team_id: Optional[str] = Field(sa_type=String(50), default=None)
    home_score: Optional[str] = Field(sa_type=String(50), default=None)
    away_score: Optional[str] = Field(sa_type=String(50), default=None)
    stadium: Optional[str] = Field(sa_type=String(100), default=None)
    match_status: Optional[str] = Field(sa_type=Text, default=None)
    attendance: Optional[str] = Field(sa_type=String(50), default=None)
