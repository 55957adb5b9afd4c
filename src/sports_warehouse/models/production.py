"""ORM models for production tables.

Production tables hold validated, strongly-typed rows:
- Primary key per entity (externally assigned, never auto-generated)
- Foreign keys enforced at insert time
- created_at assigned once, at commit time, in UTC
- Match rows may never pair a team against itself
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, String
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


# ============================================================================
# LEAGUES
# ============================================================================


class League(SQLModel, table=True):
    """Master data for sports leagues (e.g. EPL, NBA).

    Referenced by teams.league_id and matches.league_id.
    """

    __tablename__ = "leagues"

    league_id: int = Field(
        sa_type=Integer,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"autoincrement": False},
    )
    league_name: str = Field(sa_type=String(100), nullable=False)
    country: Optional[str] = Field(sa_type=String(100), default=None)
    sport_type: str = Field(sa_type=String(50), nullable=False)
    founded_year: Optional[int] = Field(sa_type=Integer, default=None)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        sa_type=DateTime(timezone=True), nullable=False, default_factory=utc_now
    )


# ============================================================================
# TEAMS
# ============================================================================


class Team(SQLModel, table=True):
    """Master data for teams/clubs participating in a league.

    Referenced by players.team_id and matches.home_team_id/away_team_id.
    """

    __tablename__ = "teams"

    team_id: int = Field(
        sa_type=Integer,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"autoincrement": False},
    )
    league_id: int = Field(foreign_key="leagues.league_id", nullable=False)
    team_name: str = Field(sa_type=String(100), nullable=False)
    city: Optional[str] = Field(sa_type=String(100), default=None)
    stadium: Optional[str] = Field(sa_type=String(100), default=None)
    founded_year: Optional[int] = Field(sa_type=Integer, default=None)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        sa_type=DateTime(timezone=True), nullable=False, default_factory=utc_now
    )


# ============================================================================
# PLAYERS
# ============================================================================


class Player(SQLModel, table=True):
    """Master data for players, linked to their current team."""

    __tablename__ = "players"

    player_id: int = Field(
        sa_type=Integer,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"autoincrement": False},
    )
    team_id: int = Field(foreign_key="teams.team_id", nullable=False)
    first_name: str = Field(sa_type=String(100), nullable=False)
    last_name: str = Field(sa_type=String(100), nullable=False)
    position: Optional[str] = Field(sa_type=String(50), default=None)
    nationality: Optional[str] = Field(sa_type=String(100), default=None)
    date_of_birth: Optional[date] = Field(sa_type=Date, default=None)
    jersey_number: Optional[int] = Field(sa_type=Integer, default=None)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        sa_type=DateTime(timezone=True), nullable=False, default_factory=utc_now
    )


# ============================================================================
# MATCHES
# ============================================================================


class MatchStatus(str, Enum):
    """Known match statuses. The set is open; other values are stored as-is."""

    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    POSTPONED = "Postponed"


class Match(SQLModel, table=True):
    """Match-level facts: teams involved, date, scores and attendance.

    Scores and attendance stay NULL until the match has been played.
    """

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint(
            "home_team_id <> away_team_id", name="ck_matches_home_away_diff"
        ),
    )

    match_id: int = Field(
        sa_type=Integer,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"autoincrement": False},
    )
    league_id: int = Field(foreign_key="leagues.league_id", nullable=False)
    season: str = Field(sa_type=String(20), nullable=False)
    match_date: Optional[date] = Field(sa_type=Date, default=None)
    home_team_id: int = Field(foreign_key="teams.team_id", nullable=False)
    away_team_id: int = Field(foreign_key="teams.team_id", nullable=False)
    home_score: Optional[int] = Field(sa_type=Integer, default=None)
    away_score: Optional[int] = Field(sa_type=Integer, default=None)
    stadium: Optional[str] = Field(sa_type=String(100), default=None)
    match_status: str = Field(
        sa_type=String(20), nullable=False, default=MatchStatus.COMPLETED.value
    )
    attendance: Optional[int] = Field(sa_type=Integer, default=None)
    created_at: datetime = Field(
        sa_type=DateTime(timezone=True), nullable=False, default_factory=utc_now
    )
