"""Raw file landing and staging table storage."""

from .csv_reader import (
    DEFAULT_MAX_ERRORS,
    StagingBatch,
    StagingLineError,
    read_staging_csv,
)
from .repository import StagingRepository

__all__ = [
    "DEFAULT_MAX_ERRORS",
    "StagingBatch",
    "StagingLineError",
    "StagingRepository",
    "read_staging_csv",
]
