"""Pipeline orchestrator for dependency-ordered warehouse loads.

Orchestrates the flow:
    CSV files → staging tables → League → Team → Player, Match

Entity loads run in an order resolved from the foreign keys, so a
dependent entity is never loaded before the rows it references.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import StorageUnavailableError
from ..loading.entities import EntityType, get_entity_spec, resolve_load_order
from ..loading.loader import EntityLoader
from ..loading.report import LoadReport
from ..staging.csv_reader import DEFAULT_MAX_ERRORS, StagingBatch, read_staging_csv
from ..staging.repository import StagingRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class WarehouseLoadResult:
    """Results from a multi-entity load."""

    started_at: datetime = field(default_factory=_utc_now)
    finished_at: datetime | None = None

    load_order: list[EntityType] = field(default_factory=list)
    reports: dict[EntityType, LoadReport] = field(default_factory=dict)
    staged: dict[EntityType, StagingBatch] = field(default_factory=dict)

    # Set when a storage outage stopped the run
    aborted_at: EntityType | None = None
    error: str | None = None

    @property
    def accepted_count(self) -> int:
        return sum(r.accepted_count for r in self.reports.values())

    @property
    def rejected_count(self) -> int:
        return sum(r.rejected_count for r in self.reports.values())

    @property
    def succeeded(self) -> bool:
        return self.aborted_at is None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return (_utc_now() - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "load_order": [e.value for e in self.load_order],
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
            "aborted_at": self.aborted_at.value if self.aborted_at else None,
            "error": self.error,
            "reports": {e.value: r.to_dict() for e, r in self.reports.items()},
        }


class WarehouseLoadOrchestrator:
    """Runs entity loads in dependency order.

    Usage:
        >>> loader = EntityLoader(SQLModelProductionStore(config))
        >>> orchestrator = WarehouseLoadOrchestrator(loader, StagingRepository(config))
        >>>
        >>> # Load in-memory batches
        >>> result = orchestrator.run({"team": team_rows, "league": league_rows})
        >>>
        >>> # Land CSV files, then load from the staging tables
        >>> orchestrator.stage_files({EntityType.LEAGUE: Path("leagues.csv")})
        >>> result = orchestrator.run_staged([EntityType.LEAGUE])
    """

    def __init__(
        self,
        loader: EntityLoader,
        staging: Optional[StagingRepository] = None,
        truncate_staging: bool = True,
    ):
        """Initialize the orchestrator.

        Args:
            loader: Entity loader bound to the production store
            staging: Staging table repository (needed for staged runs)
            truncate_staging: Empty a staging table once its load completes
        """
        self.loader = loader
        self.staging = staging
        self.truncate_staging = truncate_staging

    def run(self, batches: Mapping[EntityType | str, Iterable[Any]]) -> WarehouseLoadResult:
        """Load several entity batches, dependencies first.

        Raises:
            LoadOrderError: If an entity type is unknown
            StorageUnavailableError: If storage fails; later entities are not loaded
        """
        normalized = {get_entity_spec(k).entity_type: rows for k, rows in batches.items()}
        result = WarehouseLoadResult(load_order=resolve_load_order(normalized))
        return self._run(result, lambda entity_type: normalized[entity_type])

    def stage_files(
        self,
        sources: Mapping[EntityType | str, str | Path],
        max_errors: int = DEFAULT_MAX_ERRORS,
    ) -> dict[EntityType, StagingBatch]:
        """Read CSV files and append their rows to the staging tables."""
        staging = self._require_staging()
        staged = {}
        for entity_type in resolve_load_order(sources):
            path = sources.get(entity_type, sources.get(entity_type.value))
            batch = read_staging_csv(path, entity_type, max_errors=max_errors)
            staging.stage(entity_type, batch.rows)
            staged[entity_type] = batch
        return staged

    def run_staged(self, entity_types: Iterable[EntityType | str]) -> WarehouseLoadResult:
        """Load entities from their staging tables, dependencies first."""
        staging = self._require_staging()
        result = WarehouseLoadResult(load_order=resolve_load_order(entity_types))
        return self._run(result, staging.fetch, after_load=self._after_staged_load)

    def run_files(
        self,
        sources: Mapping[EntityType | str, str | Path],
        max_errors: int = DEFAULT_MAX_ERRORS,
    ) -> WarehouseLoadResult:
        """Stage CSV files and load them in one run."""
        staged = self.stage_files(sources, max_errors=max_errors)
        result = self.run_staged(staged)
        result.staged = staged
        return result

    def _run(self, result: WarehouseLoadResult, rows_for, after_load=None) -> WarehouseLoadResult:
        logger.info(f"Load order: {' -> '.join(e.value for e in result.load_order)}")

        for entity_type in result.load_order:
            try:
                report = self.loader.load(entity_type, rows_for(entity_type))
                result.reports[entity_type] = report
                if after_load is not None:
                    after_load(entity_type)
            except StorageUnavailableError as e:
                result.aborted_at = entity_type
                result.error = str(e)
                if e.report is not None:
                    result.reports[entity_type] = e.report
                result.finished_at = _utc_now()
                logger.error(f"Warehouse load aborted at {entity_type.value}: {e}")
                raise

        result.finished_at = _utc_now()
        logger.info(
            f"Warehouse load finished: {result.accepted_count} accepted, "
            f"{result.rejected_count} rejected in {result.duration_seconds:.2f}s"
        )
        return result

    def _after_staged_load(self, entity_type: EntityType) -> None:
        if self.truncate_staging:
            self.staging.truncate(entity_type)

    def _require_staging(self) -> StagingRepository:
        if self.staging is None:
            raise ValueError("A StagingRepository is required for staged loads")
        return self.staging
