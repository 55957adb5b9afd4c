"""ORM models for the sports warehouse.

Contains two types of models:
1. Production models (production.py) - Validated, constraint-enforced tables
2. Staging models (staging.py) - Free-text landing tables for raw files

Usage:
    from sports_warehouse.models import League, Team

    league = League(league_id=1, league_name="EPL", sport_type="Football")

    from sports_warehouse.database import get_session

    with get_session() as session:
        session.add(league)
"""

from sports_warehouse.models.production import (
    League,
    Match,
    MatchStatus,
    Player,
    Team,
    utc_now,
)
from sports_warehouse.models.staging import (
    LeagueStaging,
    MatchStaging,
    PlayerStaging,
    StagingTableBase,
    TeamStaging,
)

__all__ = [
    # Production models
    "League",
    "Team",
    "Player",
    "Match",
    "MatchStatus",
    "utc_now",
    # Staging models
    "StagingTableBase",
    "LeagueStaging",
    "TeamStaging",
    "PlayerStaging",
    "MatchStaging",
]
