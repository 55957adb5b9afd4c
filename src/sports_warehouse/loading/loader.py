"""Staging-to-production entity loader.

For every staged row, in batch order:
    1. Convert each field (flags, dates, integers, text)
    2. Check required fields, row invariants and foreign keys
    3. Check the primary key is not already committed
    4. Commit the row on its own (created_at assigned at commit time)
    5. Otherwise record one rejection reason and move on

One bad row never aborts the batch. Only a storage outage does, and it is
raised as StorageUnavailableError carrying the partial report.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..errors import StorageUnavailableError
from .converters import DEFAULT_DATE_FORMAT, FieldKind, convert_field
from .entities import ENTITY_SPECS, EntitySpec, EntityType, get_entity_spec
from .report import LoadReport, RejectionReason, RowRef
from .store import InsertOutcome, ProductionStore

logger = logging.getLogger(__name__)

_OUTCOME_REASONS = {
    InsertOutcome.DUPLICATE: RejectionReason.DUPLICATE_KEY,
    InsertOutcome.FOREIGN_KEY_VIOLATION: RejectionReason.MISSING_FOREIGN_KEY,
    InsertOutcome.CHECK_VIOLATION: RejectionReason.INVARIANT_VIOLATION,
    InsertOutcome.INVALID_VALUE: RejectionReason.MALFORMED_REQUIRED_FIELD,
}


class RowRejected(Exception):
    """Internal signal that the current row fails validation."""

    def __init__(self, reason: RejectionReason, detail: str):
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


def _as_mapping(spec: EntitySpec, row: Any) -> Mapping[str, Any]:
    # Staging table models carry their columns on to_raw_row()
    if hasattr(row, "to_raw_row"):
        return row.to_raw_row()
    # Positional rows follow the staging column order
    if isinstance(row, (tuple, list)):
        return dict(zip(spec.columns, row))
    return row


class EntityLoader:
    """Loads batches of staged rows into production storage.

    Example:
        >>> loader = EntityLoader(InMemoryProductionStore())
        >>> report = loader.load("league", [{"league_id": "1", "league_name": "EPL",
        ...                                  "sport_type": "Football", "is_active": "Yes"}])
        >>> report.accepted_count
        1
    """

    def __init__(
        self,
        store: ProductionStore,
        date_format: str = DEFAULT_DATE_FORMAT,
        specs: Optional[dict[EntityType, EntitySpec]] = None,
    ):
        """Initialize loader.

        Args:
            store: Production store rows are committed to
            date_format: strptime format for date fields
            specs: Entity specs (defaults to the built-in registry)
        """
        self.store = store
        self.date_format = date_format
        self.specs = specs if specs is not None else ENTITY_SPECS

    def load(
        self, entity_type: EntityType | str, staged_rows: Iterable[Any]
    ) -> LoadReport:
        """Load one batch of staged rows for a single entity type.

        Args:
            entity_type: Entity being loaded
            staged_rows: Mappings of column name to raw value, staging models,
                or tuples in staging column order

        Returns:
            LoadReport with accepted keys and ordered rejections

        Raises:
            StorageUnavailableError: If the store becomes unreachable
        """
        spec = get_entity_spec(entity_type)
        spec = self.specs.get(spec.entity_type, spec)
        report = LoadReport(entity_type=spec.entity_type.value)
        known_references: set[tuple[EntityType, Any]] = set()

        logger.info(f"Loading {spec.entity_type.value} rows into {spec.table_name}")

        for position, raw in enumerate(staged_rows, start=1):
            try:
                self._load_row(spec, position, _as_mapping(spec, raw), report, known_references)
            except StorageUnavailableError as e:
                report.finish()
                logger.error(
                    f"Aborting {spec.entity_type.value} load at row {position}: {e} "
                    f"({report.accepted_count} rows already committed)"
                )
                e.report = report
                raise

        report.finish()
        logger.info(
            f"Loaded {spec.table_name}: {report.accepted_count} accepted, "
            f"{report.rejected_count} rejected"
        )
        return report

    def _load_row(
        self,
        spec: EntitySpec,
        position: int,
        raw: Mapping[str, Any],
        report: LoadReport,
        known_references: set[tuple[EntityType, Any]],
    ) -> None:
        values, malformed = self._convert(spec, raw)
        key = values.get(spec.primary_key)
        row_ref: RowRef = key if key is not None else position

        try:
            self._check_required(spec, values, malformed)
            self._check_invariants(spec, values)
            self._check_foreign_keys(spec, values, known_references)
            if self.store.exists(spec, key):
                raise RowRejected(
                    RejectionReason.DUPLICATE_KEY,
                    f"{spec.primary_key}={key} already exists in {spec.table_name}",
                )

            outcome = self.store.insert_if_absent(spec, values)
            if outcome is not InsertOutcome.INSERTED:
                # Concurrent writer or a constraint only the store knows about
                raise RowRejected(
                    _OUTCOME_REASONS[outcome],
                    f"store rejected {spec.primary_key}={key}: {outcome.value}",
                )

        except RowRejected as rejected:
            report.reject(row_ref, rejected.reason, rejected.detail, position=position)
            logger.debug(
                f"Rejected {spec.entity_type.value} row {position} ({row_ref}): "
                f"{rejected.reason.value} - {rejected.detail}"
            )
            return

        report.accept(key)
        for field_name, raw_value in malformed.items():
            report.nullify(row_ref, field_name, raw_value)

    def _convert(
        self, spec: EntitySpec, raw: Mapping[str, Any]
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Convert a raw row; returns values and the raw inputs that failed."""
        values: dict[str, Any] = {}
        malformed: dict[str, Any] = {}

        for field_name, kind in spec.fields.items():
            raw_value = raw.get(field_name)
            max_length = spec.max_length(field_name) if kind is FieldKind.TEXT else None
            conversion = convert_field(kind, raw_value, self.date_format, max_length)
            values[field_name] = conversion.value
            if not conversion.ok:
                malformed[field_name] = raw_value

        for field_name, default in spec.defaults.items():
            if values.get(field_name) is None:
                values[field_name] = default

        return values, malformed

    @staticmethod
    def _check_required(
        spec: EntitySpec, values: dict[str, Any], malformed: dict[str, Any]
    ) -> None:
        problems = []
        for field_name in spec.required:
            if field_name in malformed:
                problems.append(f"{field_name}={malformed[field_name]!r} is not valid")
            elif values.get(field_name) is None:
                problems.append(f"{field_name} is missing")
        if problems:
            raise RowRejected(RejectionReason.MALFORMED_REQUIRED_FIELD, "; ".join(problems))

    @staticmethod
    def _check_invariants(spec: EntitySpec, values: dict[str, Any]) -> None:
        for invariant in spec.invariants:
            message = invariant(values)
            if message:
                raise RowRejected(RejectionReason.INVARIANT_VIOLATION, message)

    def _check_foreign_keys(
        self,
        spec: EntitySpec,
        values: dict[str, Any],
        known_references: set[tuple[EntityType, Any]],
    ) -> None:
        for field_name, ref_type in spec.foreign_keys.items():
            ref_key = values.get(field_name)
            if ref_key is None or (ref_type, ref_key) in known_references:
                continue
            ref_spec = self.specs[ref_type]
            if not self.store.exists(ref_spec, ref_key):
                raise RowRejected(
                    RejectionReason.MISSING_FOREIGN_KEY,
                    f"{field_name}={ref_key} not found in {ref_spec.table_name}",
                )
            # Committed rows are never deleted by a load
            known_references.add((ref_type, ref_key))
