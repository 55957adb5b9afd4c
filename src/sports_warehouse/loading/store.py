"""Production store boundary used by the entity loader.

The loader needs two things from storage:
- insert-if-absent by primary key, with foreign keys enforced
- existence checks by primary key for referenced identities

SQLModelProductionStore talks to the warehouse database and commits every
row in its own transaction. InMemoryProductionStore applies the same rules
with dictionaries, for dry runs and tests.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import DataError, IntegrityError
from sqlmodel import select

from ..database import DatabaseConfig, get_read_only_session, get_session
from ..database.retry import RetryConfig, build_retry_decorator, call_storage
from ..errors import StorageUnavailableError
from ..models import utc_now
from .entities import ENTITY_SPECS, EntitySpec, EntityType

logger = logging.getLogger(__name__)

# SQLSTATE codes for integrity violations (PostgreSQL)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_CHECK_VIOLATION = "23514"


class InsertOutcome(str, Enum):
    """Result of an insert-if-absent call."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    CHECK_VIOLATION = "check_violation"
    INVALID_VALUE = "invalid_value"


class ProductionStore(ABC):
    """Storage operations the loader depends on."""

    @abstractmethod
    def exists(self, spec: EntitySpec, key: Any) -> bool:
        """Whether a row with this primary key is committed."""

    @abstractmethod
    def insert_if_absent(self, spec: EntitySpec, values: dict[str, Any]) -> InsertOutcome:
        """Commit a row unless its primary key is taken or a constraint fails.

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    def get(self, spec: EntitySpec, key: Any) -> Optional[dict[str, Any]]:
        """Return the committed row for a primary key, if any."""

    @abstractmethod
    def count(self, spec: EntitySpec) -> int:
        """Number of committed rows for an entity."""


def classify_integrity_error(error: IntegrityError) -> InsertOutcome:
    """Map a database integrity error to an insert outcome.

    Uses the driver's SQLSTATE when available (psycopg), otherwise the
    error message (SQLite).
    """
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate == _FOREIGN_KEY_VIOLATION:
        return InsertOutcome.FOREIGN_KEY_VIOLATION
    if sqlstate == _CHECK_VIOLATION:
        return InsertOutcome.CHECK_VIOLATION
    if sqlstate == _UNIQUE_VIOLATION:
        return InsertOutcome.DUPLICATE

    message = str(error.orig).lower()
    if "foreign key" in message:
        return InsertOutcome.FOREIGN_KEY_VIOLATION
    if "check constraint" in message:
        return InsertOutcome.CHECK_VIOLATION
    return InsertOutcome.DUPLICATE


class SQLModelProductionStore(ProductionStore):
    """Production store backed by the warehouse database.

    Example:
        >>> store = SQLModelProductionStore(DatabaseConfig.from_url("sqlite:///sports.db"))
        >>> store.insert_if_absent(ENTITY_SPECS[EntityType.LEAGUE], {...})
        <InsertOutcome.INSERTED: 'inserted'>
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.config = config
        self.retry_config = retry_config or RetryConfig()
        self._retry = build_retry_decorator(self.retry_config)

    def _call(self, spec: EntitySpec, operation, *args):
        return call_storage(
            self._retry,
            operation,
            *args,
            target=spec.table_name,
            entity_type=spec.entity_type.value,
        )

    def exists(self, spec: EntitySpec, key: Any) -> bool:
        try:
            return self._call(spec, self._exists, spec, key)
        except DataError:
            # The key cannot be stored in this column, so no row has it
            return False

    def _exists(self, spec: EntitySpec, key: Any) -> bool:
        with get_read_only_session(self.config) as session:
            return session.get(spec.model, key) is not None

    def insert_if_absent(self, spec: EntitySpec, values: dict[str, Any]) -> InsertOutcome:
        key = values[spec.primary_key]
        try:
            return self._call(spec, self._insert, spec, values)
        except IntegrityError as e:
            outcome = classify_integrity_error(e)
            logger.debug(f"Insert into {spec.table_name} rejected for key {key}: {outcome.value}")
            return outcome
        except DataError as e:
            logger.debug(f"Insert into {spec.table_name} rejected for key {key}: {e.orig}")
            return InsertOutcome.INVALID_VALUE

    def _insert(self, spec: EntitySpec, values: dict[str, Any]) -> InsertOutcome:
        with get_session(self.config) as session:
            if session.get(spec.model, values[spec.primary_key]) is not None:
                return InsertOutcome.DUPLICATE
            row = dict(values)
            if row.get("created_at") is None:
                row["created_at"] = utc_now()
            session.add(spec.model(**row))
            # get_session commits on exit; constraint failures surface there
        return InsertOutcome.INSERTED

    def get(self, spec: EntitySpec, key: Any) -> Optional[dict[str, Any]]:
        return self._call(spec, self._get, spec, key)

    def _get(self, spec: EntitySpec, key: Any) -> Optional[dict[str, Any]]:
        with get_read_only_session(self.config) as session:
            row = session.get(spec.model, key)
            return row.model_dump() if row is not None else None

    def count(self, spec: EntitySpec) -> int:
        return self._call(spec, self._count, spec)

    def _count(self, spec: EntitySpec) -> int:
        with get_read_only_session(self.config) as session:
            return session.exec(select(func.count()).select_from(spec.model)).one()


class InMemoryProductionStore(ProductionStore):
    """Dictionary-backed store with the same constraint semantics.

    Foreign keys resolve through ``specs`` (the loader's spec map).
    Set ``available = False`` to simulate a storage outage.
    """

    def __init__(self, specs: Optional[dict[EntityType, EntitySpec]] = None):
        self.specs = specs if specs is not None else ENTITY_SPECS
        self._rows: dict[str, dict[Any, dict[str, Any]]] = {}
        self.available = True

    def _table(self, spec: EntitySpec) -> dict[Any, dict[str, Any]]:
        if not self.available:
            raise StorageUnavailableError(
                f"Storage unavailable for {spec.table_name}",
                entity_type=spec.entity_type.value,
            )
        return self._rows.setdefault(spec.table_name, {})

    def _table_for(self, spec: EntitySpec, field_name: str) -> dict[Any, dict[str, Any]]:
        return self._table(self.specs[spec.foreign_keys[field_name]])

    def exists(self, spec: EntitySpec, key: Any) -> bool:
        return key in self._table(spec)

    def insert_if_absent(self, spec: EntitySpec, values: dict[str, Any]) -> InsertOutcome:
        table = self._table(spec)
        key = values[spec.primary_key]
        if key in table:
            return InsertOutcome.DUPLICATE

        for field_name in spec.foreign_keys:
            ref = values.get(field_name)
            if ref is not None and ref not in self._table_for(spec, field_name):
                return InsertOutcome.FOREIGN_KEY_VIOLATION

        if any(check(values) for check in spec.invariants):
            return InsertOutcome.CHECK_VIOLATION

        row = dict(values)
        if row.get("created_at") is None:
            row["created_at"] = utc_now()
        table[key] = row
        return InsertOutcome.INSERTED

    def get(self, spec: EntitySpec, key: Any) -> Optional[dict[str, Any]]:
        row = self._table(spec).get(key)
        return dict(row) if row is not None else None

    def count(self, spec: EntitySpec) -> int:
        return len(self._table(spec))
