"""Unit tests for database session management.

Uses mocking for PostgreSQL engines and a real in-memory SQLite engine
for the SQLite-specific behaviour.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlmodel import Session

from sports_warehouse.database.config import DEFAULT_CONFIG, DatabaseConfig
from sports_warehouse.database.session import (
    _engines,
    dispose_engines,
    drop_db,
    get_engine,
    get_read_only_session,
    get_session,
    init_db,
)


@pytest.fixture(autouse=True)
def clear_engine_cache():
    """Clear the global engine cache before each test."""
    dispose_engines()
    yield
    dispose_engines()


@pytest.fixture
def mock_session():
    """Patch engine lookup and Session construction."""
    with patch("sports_warehouse.database.session.get_engine") as mock_get_engine, patch(
        "sports_warehouse.database.session.Session"
    ) as mock_session_class:
        mock_get_engine.return_value = MagicMock()
        session = MagicMock(spec=Session)
        mock_session_class.return_value = session
        yield mock_session_class, session


class TestGetEngine:
    """Test get_engine() function."""

    @patch("sports_warehouse.database.session.create_engine")
    def test_get_engine_uses_default_config(self, mock_create_engine):
        """Test get_engine uses DEFAULT_CONFIG when no config provided."""
        mock_create_engine.return_value = MagicMock()

        get_engine()

        assert mock_create_engine.call_args[0][0] == DEFAULT_CONFIG.get_connection_url()

    @patch("sports_warehouse.database.session.create_engine")
    def test_get_engine_caches_engines(self, mock_create_engine):
        """Test get_engine caches engines by connection URL."""
        mock_create_engine.return_value = MagicMock()

        engine1 = get_engine()
        engine2 = get_engine()

        assert mock_create_engine.call_count == 1
        assert engine1 is engine2
        assert DEFAULT_CONFIG.get_connection_url() in _engines

    @patch("sports_warehouse.database.session.create_engine")
    def test_get_engine_different_configs_create_different_engines(self, mock_create_engine):
        mock_engine1, mock_engine2 = MagicMock(), MagicMock()
        mock_create_engine.side_effect = [mock_engine1, mock_engine2]

        assert get_engine(DatabaseConfig(database="db1")) is mock_engine1
        assert get_engine(DatabaseConfig(database="db2")) is mock_engine2

    @patch("sports_warehouse.database.session.create_engine")
    def test_get_engine_pool_parameters(self, mock_create_engine):
        """Test PostgreSQL engines get a QueuePool with the configured sizes."""
        mock_create_engine.return_value = MagicMock()
        config = DatabaseConfig(
            echo=True, pool_size=20, max_overflow=30, pool_timeout=60, pool_recycle=7200
        )

        get_engine(config)

        call_kwargs = mock_create_engine.call_args[1]
        assert call_kwargs["echo"] is True
        assert call_kwargs["poolclass"] == QueuePool
        assert call_kwargs["pool_size"] == 20
        assert call_kwargs["max_overflow"] == 30
        assert call_kwargs["pool_timeout"] == 60
        assert call_kwargs["pool_recycle"] == 7200
        assert call_kwargs["pool_pre_ping"] is True

    def test_sqlite_engine_uses_static_pool(self):
        engine = get_engine(DatabaseConfig.from_url("sqlite://"))

        assert isinstance(engine.pool, StaticPool)

    def test_sqlite_foreign_keys_enabled(self):
        """Test every SQLite connection enforces foreign keys."""
        engine = get_engine(DatabaseConfig.from_url("sqlite://"))

        with engine.connect() as connection:
            assert connection.execute(text("PRAGMA foreign_keys")).scalar() == 1


class TestGetSession:
    """Test get_session() context manager."""

    def test_get_session_creates_session(self, mock_session):
        mock_session_class, session = mock_session

        with get_session() as active:
            assert active is session

        mock_session_class.assert_called_once()
        assert mock_session_class.call_args[1] == {"autoflush": True}

    def test_get_session_commits_on_success(self, mock_session):
        """Test get_session commits transaction on successful exit."""
        _, session = mock_session

        with get_session():
            pass

        session.commit.assert_called_once()
        session.rollback.assert_not_called()
        session.close.assert_called_once()

    def test_get_session_rollback_on_exception(self, mock_session):
        """Test get_session rolls back and re-raises on exception."""
        _, session = mock_session

        with pytest.raises(ValueError, match="bad row"):
            with get_session():
                raise ValueError("bad row")

        session.commit.assert_not_called()
        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_get_session_autoflush_parameter(self, mock_session):
        mock_session_class, _ = mock_session

        with get_session(autoflush=False):
            pass

        assert mock_session_class.call_args[1] == {"autoflush": False}


class TestGetReadOnlySession:
    """Test get_read_only_session() context manager."""

    def test_get_read_only_session_no_commit(self, mock_session):
        """Test read-only sessions never commit and never autoflush."""
        mock_session_class, session = mock_session

        with get_read_only_session():
            pass

        assert mock_session_class.call_args[1]["autoflush"] is False
        session.commit.assert_not_called()
        session.close.assert_called_once()

    def test_get_read_only_session_rollback_on_exception(self, mock_session):
        _, session = mock_session

        with pytest.raises(RuntimeError):
            with get_read_only_session():
                raise RuntimeError("Read error")

        session.rollback.assert_called_once()
        session.close.assert_called_once()


class TestSchemaManagement:
    """Test init_db() and drop_db() on SQLite."""

    def test_init_db_creates_all_tables(self):
        config = DatabaseConfig.from_url("sqlite://")

        init_db(config)

        tables = set(inspect(get_engine(config)).get_table_names())
        assert {
            "leagues",
            "teams",
            "players",
            "matches",
            "leagues_stg",
            "teams_stg",
            "players_stg",
            "matches_stg",
        } <= tables

    def test_drop_db(self):
        config = DatabaseConfig.from_url("sqlite://")
        init_db(config)

        drop_db(config)

        assert inspect(get_engine(config)).get_table_names() == []


class TestDisposeEngines:
    """Test dispose_engines() function."""

    @patch("sports_warehouse.database.session.create_engine")
    def test_dispose_engines_disposes_all_engines(self, mock_create_engine):
        mock_engine1, mock_engine2 = MagicMock(), MagicMock()
        mock_create_engine.side_effect = [mock_engine1, mock_engine2]

        get_engine(DatabaseConfig(database="db1"))
        get_engine(DatabaseConfig(database="db2"))
        assert len(_engines) == 2

        dispose_engines()

        mock_engine1.dispose.assert_called_once()
        mock_engine2.dispose.assert_called_once()
        assert len(_engines) == 0

    def test_dispose_engines_safe_when_empty(self):
        dispose_engines()

        assert len(_engines) == 0
