"""Database session management with context managers.

Provides:
- Engine creation with connection pooling, cached per connection URL
- Context manager for automatic session cleanup
- Transaction management
- Schema creation for staging and production tables
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import event
from sqlalchemy.pool import QueuePool, StaticPool
from sqlmodel import Session, SQLModel, create_engine

from sports_warehouse.database.config import DEFAULT_CONFIG, DatabaseConfig

# Global engine cache (one engine per unique connection URL)
_engines = {}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(config: Optional[DatabaseConfig] = None):
    """Get or create a SQLAlchemy engine.

    Engines are cached per connection URL to enable connection pooling.
    SQLite engines get foreign key enforcement switched on; in-memory SQLite
    shares a single connection so every session sees the same database.

    Args:
        config: Database configuration (uses DEFAULT_CONFIG if None)

    Returns:
        SQLAlchemy Engine instance
    """
    if config is None:
        config = DEFAULT_CONFIG

    connection_url = config.get_connection_url()

    # Return cached engine if exists
    if connection_url in _engines:
        return _engines[connection_url]

    if config.is_sqlite:
        engine = create_engine(
            connection_url,
            echo=config.echo,
            echo_pool=config.echo_pool,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            connection_url,
            echo=config.echo,
            echo_pool=config.echo_pool,
            poolclass=QueuePool,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,  # Verify connections before using
        )

    # Cache engine
    _engines[connection_url] = engine

    return engine


@contextmanager
def get_session(
    config: Optional[DatabaseConfig] = None,
    autoflush: bool = True,
) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Automatically handles:
    - Session creation
    - Transaction commit on success
    - Rollback on exception
    - Session cleanup

    Usage:
        with get_session() as session:
            league = session.get(League, 1)
            session.add(Team(team_id=10, league_id=1, team_name="Arsenal"))
            # Automatically commits on exit

    Args:
        config: Database configuration (uses DEFAULT_CONFIG if None)
        autoflush: Auto-flush changes before queries (default: True)

    Yields:
        SQLModel Session instance

    Raises:
        Any database exceptions (after rollback)
    """
    engine = get_engine(config)

    session = Session(engine, autoflush=autoflush)

    try:
        yield session
        session.commit()

    except Exception:
        # Rollback on any exception
        session.rollback()
        raise

    finally:
        # Always close session
        session.close()


@contextmanager
def get_read_only_session(
    config: Optional[DatabaseConfig] = None,
) -> Generator[Session, None, None]:
    """Context manager for read-only database sessions.

    Similar to get_session() but never commits and never autoflushes.

    Args:
        config: Database configuration (uses DEFAULT_CONFIG if None)

    Yields:
        SQLModel Session instance (read-only)
    """
    engine = get_engine(config)

    session = Session(engine, autoflush=False)

    try:
        yield session

    except Exception:
        session.rollback()
        raise

    finally:
        session.close()


def init_db(config: Optional[DatabaseConfig] = None) -> None:
    """Create all staging and production tables that do not exist yet."""
    # Registers the table models on SQLModel.metadata
    import sports_warehouse.models  # noqa: F401

    SQLModel.metadata.create_all(get_engine(config))


def drop_db(config: Optional[DatabaseConfig] = None) -> None:
    """Drop all staging and production tables."""
    import sports_warehouse.models  # noqa: F401

    SQLModel.metadata.drop_all(get_engine(config))


def dispose_engines():
    """Dispose all cached engines.

    Useful for:
    - Application shutdown
    - Testing cleanup
    - Switching configurations

    Warning: Closes all connection pools.
    """
    for engine in _engines.values():
        engine.dispose()

    _engines.clear()
