"""Pytest configuration and fixtures for all tests."""

from datetime import date
from pathlib import Path
from typing import Generator

import pytest

from sports_warehouse.database import DatabaseConfig, dispose_engines, init_db
from sports_warehouse.loading import (
    ENTITY_SPECS,
    EntityLoader,
    EntityType,
    InMemoryProductionStore,
    SQLModelProductionStore,
)
from sports_warehouse.database.retry import RetryConfig


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db_config() -> Generator[DatabaseConfig, None, None]:
    """In-memory SQLite warehouse with all tables created.

    Each test gets a fresh database; the cached engine is disposed afterwards.
    """
    dispose_engines()
    config = DatabaseConfig.from_url("sqlite://")
    init_db(config)
    yield config
    dispose_engines()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry policy without waits, for outage tests."""
    return RetryConfig(max_attempts=2, initial_delay=0, max_delay=0)


@pytest.fixture
def sql_store(db_config: DatabaseConfig, fast_retry: RetryConfig) -> SQLModelProductionStore:
    """Production store backed by the in-memory SQLite warehouse."""
    return SQLModelProductionStore(db_config, retry_config=fast_retry)


@pytest.fixture
def memory_store() -> InMemoryProductionStore:
    """Empty dictionary-backed production store."""
    return InMemoryProductionStore()


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def league_rows() -> list[dict]:
    """Staged league rows as they land from leagues.csv."""
    return [
        {
            "league_id": "1",
            "league_name": "EPL",
            "country": "England",
            "sport_type": "Football",
            "founded_year": "1992",
            "is_active": "Yes",
        },
        {
            "league_id": "2",
            "league_name": "X",
            "country": "Y",
            "sport_type": "Football",
            "founded_year": "2000",
            "is_active": "maybe",
        },
    ]


@pytest.fixture
def team_rows() -> list[dict]:
    """Staged team rows referencing leagues 1 and 2."""
    return [
        {
            "team_id": "10",
            "league_id": "1",
            "team_name": "Arsenal",
            "city": "London",
            "stadium": "Emirates Stadium",
            "founded_year": "1886",
            "is_active": "TRUE",
        },
        {
            "team_id": "11",
            "league_id": "1",
            "team_name": "Chelsea",
            "city": "London",
            "stadium": "Stamford Bridge",
            "founded_year": "1905",
            "is_active": "1",
        },
        {
            "team_id": "20",
            "league_id": "2",
            "team_name": "Y United",
            "city": "Y City",
            "stadium": None,
            "founded_year": "",
            "is_active": "No",
        },
    ]


@pytest.fixture
def player_rows() -> list[dict]:
    """Staged player rows for team 10."""
    return [
        {
            "player_id": "100",
            "team_id": "10",
            "first_name": "Bukayo",
            "last_name": "Saka",
            "position": "Forward",
            "nationality": "England",
            "date_of_birth": "2001-09-05",
            "jersey_number": "7",
            "is_active": "y",
        },
        {
            "player_id": "101",
            "team_id": "10",
            "first_name": "Martin",
            "last_name": "Odegaard",
            "position": "Midfielder",
            "nationality": "Norway",
            "date_of_birth": "17/12/1998",
            "jersey_number": "",
            "is_active": "Yes",
        },
    ]


@pytest.fixture
def match_rows() -> list[dict]:
    """Staged match rows between teams 10 and 11."""
    return [
        {
            "match_id": "1000",
            "league_id": "1",
            "season": "2024-2025",
            "match_date": "2024-08-17",
            "home_team_id": "10",
            "away_team_id": "11",
            "home_score": "2",
            "away_score": "0",
            "stadium": "Emirates Stadium",
            "match_status": "Completed",
            "attendance": "60245",
        },
        {
            "match_id": "1001",
            "league_id": "1",
            "season": "2024-2025",
            "match_date": "2024-99-99",
            "home_team_id": "11",
            "away_team_id": "10",
            "home_score": "",
            "away_score": "",
            "stadium": "Stamford Bridge",
            "match_status": "Scheduled",
            "attendance": "",
        },
    ]


@pytest.fixture
def seeded_memory_store(memory_store, league_rows, team_rows) -> InMemoryProductionStore:
    """In-memory store with leagues 1, 2 and teams 10, 11, 20 committed."""
    loader = EntityLoader(memory_store)
    loader.load(EntityType.LEAGUE, league_rows)
    loader.load(EntityType.TEAM, team_rows)
    assert memory_store.count(ENTITY_SPECS[EntityType.TEAM]) == 3
    return memory_store


# ============================================================================
# Staging File Fixtures
# ============================================================================

@pytest.fixture
def write_csv(tmp_path: Path):
    """Write CSV text to a file under tmp_path and return its path."""

    def _write(name: str, text: str, newline: str = "\r\n") -> Path:
        path = tmp_path / name
        lines = text.strip("\n").splitlines()
        path.write_text(newline.join(line.strip() for line in lines) + newline)
        return path

    return _write


@pytest.fixture
def staging_files(write_csv) -> dict[EntityType, Path]:
    """One CSV file per entity, Windows line endings, one bad line in matches."""
    return {
        EntityType.LEAGUE: write_csv(
            "leagues.csv",
            """
            league_id,league_name,country,sport_type,founded_year,is_active
            1,EPL,England,Football,1992,Yes
            2,X,Y,Football,2000,maybe
            """,
        ),
        EntityType.TEAM: write_csv(
            "teams.csv",
            """
            team_id,league_id,team_name,city,stadium,founded_year,is_active
            10,1,Arsenal,London,Emirates Stadium,1886,True
            11,1,Chelsea,London,Stamford Bridge,1905,1
            12,99,Nowhere FC,Nowhere,,1900,Yes
            """,
        ),
        EntityType.PLAYER: write_csv(
            "players.csv",
            """
            player_id,team_id,first_name,last_name,position,nationality,date_of_birth,jersey_number,is_active
            100,10,Bukayo,Saka,Forward,England,2001-09-05,7,Y
            101,12,Ghost,Player,Defender,Nowhere,1990-01-01,4,Y
            """,
        ),
        EntityType.MATCH: write_csv(
            "matches.csv",
            """
            match_id,league_id,season,match_date,home_team_id,away_team_id,home_score,away_score,stadium,match_status,attendance
            1000,1,2024-2025,2024-08-17,10,11,2,0,Emirates Stadium,Completed,60245
            1001,1,2024-2025,2024-99-99,11,10,,,Stamford Bridge,Scheduled,
            1002,1,2024-2025,2024-09-01,10,10,1,1,Emirates Stadium,Completed,100
            this,line,is,broken
            """,
        ),
    }


@pytest.fixture
def test_date() -> date:
    """Fixed test date for deterministic tests."""
    return date(2024, 8, 17)
