"""Exception hierarchy for the sports warehouse.

Row-level problems are never raised; they are recorded on a LoadReport.
The exceptions below abort a whole batch or a whole run.
"""


class WarehouseError(Exception):
    """Base class for warehouse load errors."""


class StorageUnavailableError(WarehouseError):
    """The production or staging store could not be reached.

    This is the only condition that aborts an entity batch part-way.
    Rows committed before the outage stay committed.
    """

    def __init__(self, message: str, entity_type: str | None = None):
        super().__init__(message)
        self.entity_type = entity_type
        # Partial LoadReport for the batch that was interrupted, when known
        self.report = None


class StagingFileError(WarehouseError):
    """A staging file is missing, has no header, or exceeded max_errors."""


class LoadOrderError(WarehouseError):
    """Entity dependencies cannot be ordered (unknown entity or cycle)."""
