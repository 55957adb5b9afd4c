"""Database utilities with context managers and configuration.

This module provides:
- Database configuration from environment variables
- Context manager for database sessions
- Connection pooling
- Transaction management

Usage:
    from sports_warehouse.database import get_session, DatabaseConfig

    # Using context manager (recommended)
    with get_session() as session:
        leagues = session.exec(select(League)).all()

    # Local SQLite warehouse
    config = DatabaseConfig.from_url("sqlite:///sports.db")
    with get_session(config) as session:
        ...
"""

from sports_warehouse.database.config import DatabaseConfig
from sports_warehouse.database.session import (
    dispose_engines,
    drop_db,
    get_engine,
    get_read_only_session,
    get_session,
    init_db,
)

__all__ = [
    "DatabaseConfig",
    "dispose_engines",
    "drop_db",
    "get_engine",
    "get_read_only_session",
    "get_session",
    "init_db",
]
