"""Staging table persistence.

Staging tables keep raw rows between the file landing step and the
production load, so a load can be re-run or inspected without the file.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, func
from sqlmodel import select

from ..database import DatabaseConfig, get_read_only_session, get_session
from ..database.retry import RetryConfig, build_retry_decorator, call_storage
from ..loading.entities import EntitySpec, EntityType, get_entity_spec
from .csv_reader import StagedRow

logger = logging.getLogger(__name__)


class StagingRepository:
    """Reads and writes the *_stg tables.

    Every operation retries transient connection failures and raises
    StorageUnavailableError once the retries are spent.
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        """Initialize repository.

        Args:
            config: Database configuration (uses the default config if None)
            retry_config: Retry policy for connection failures
        """
        self.config = config
        self.retry_config = retry_config or RetryConfig()
        self._retry = build_retry_decorator(self.retry_config)

    def _call(self, spec: EntitySpec, operation, *args):
        return call_storage(
            self._retry,
            operation,
            *args,
            target=spec.staging_table_name,
            entity_type=spec.entity_type.value,
        )

    def stage(self, entity_type: EntityType | str, rows: Iterable[StagedRow]) -> int:
        """Append raw rows to the entity's staging table.

        Returns:
            Number of rows staged

        Raises:
            StorageUnavailableError: If the database cannot be reached
        """
        spec = get_entity_spec(entity_type)
        columns = set(spec.columns)
        values = [
            {k: (None if v is None else str(v)) for k, v in row.items() if k in columns}
            for row in rows
        ]

        staged = self._call(spec, self._stage, spec, values)
        logger.info(f"Staged {staged} rows into {spec.staging_table_name}")
        return staged

    def _stage(self, spec: EntitySpec, values: list[dict[str, Optional[str]]]) -> int:
        with get_session(self.config) as session:
            session.add_all([spec.staging_model(**row) for row in values])
        return len(values)

    def fetch(self, entity_type: EntityType | str) -> list[StagedRow]:
        """Return all staged rows for an entity in landing order."""
        spec = get_entity_spec(entity_type)
        return self._call(spec, self._fetch, spec)

    def _fetch(self, spec: EntitySpec) -> list[StagedRow]:
        model = spec.staging_model
        with get_read_only_session(self.config) as session:
            records = session.exec(select(model).order_by(model.stg_row_id)).all()
            return [record.to_raw_row() for record in records]

    def count(self, entity_type: EntityType | str) -> int:
        spec = get_entity_spec(entity_type)
        return self._call(spec, self._count, spec)

    def _count(self, spec: EntitySpec) -> int:
        with get_read_only_session(self.config) as session:
            return session.exec(
                select(func.count()).select_from(spec.staging_model)
            ).one()

    def truncate(self, entity_type: EntityType | str) -> int:
        """Delete every staged row for an entity.

        Returns:
            Number of rows deleted
        """
        spec = get_entity_spec(entity_type)
        deleted = self._call(spec, self._truncate, spec)
        logger.info(f"Truncated {deleted} rows from {spec.staging_table_name}")
        return deleted

    def _truncate(self, spec: EntitySpec) -> int:
        with get_session(self.config) as session:
            return session.execute(delete(spec.staging_model)).rowcount
