"""Read raw CSV files into staging batches.

Files are comma-delimited with a header row; CRLF and LF line endings are
both accepted. Lines whose column count does not match the header are
skipped and counted as errors, up to ``max_errors`` per file.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from ..errors import StagingFileError
from ..loading.entities import EntityType, get_entity_spec

logger = logging.getLogger(__name__)

DEFAULT_MAX_ERRORS = 1000

StagedRow = dict[str, Optional[str]]


@dataclass(frozen=True)
class StagingLineError:
    """A CSV line that could not be staged."""

    line_number: int
    message: str


@dataclass
class StagingBatch:
    """Raw rows for one entity type, in file order."""

    entity_type: EntityType
    rows: list[StagedRow] = field(default_factory=list)
    errors: list[StagingLineError] = field(default_factory=list)
    source: Optional[Path] = None
    ignored_columns: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[StagedRow]:
        return iter(self.rows)


def _normalize_header(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


def read_staging_csv(
    path: str | Path,
    entity_type: EntityType | str,
    max_errors: int = DEFAULT_MAX_ERRORS,
    encoding: str = "utf-8-sig",
) -> StagingBatch:
    """Read a CSV file into a staging batch.

    Args:
        path: CSV file with a header row
        entity_type: Entity the file holds
        max_errors: Malformed lines tolerated before the file is rejected
        encoding: File encoding (a UTF-8 BOM is stripped by default)

    Returns:
        StagingBatch with one mapping per data line; blank cells become None

    Raises:
        StagingFileError: If the file is missing, has no usable header, or
            has more than max_errors malformed lines
    """
    spec = get_entity_spec(entity_type)
    csv_path = Path(path)

    if not csv_path.exists():
        raise StagingFileError(f"Staging file not found: {csv_path}")

    batch = StagingBatch(entity_type=spec.entity_type, source=csv_path)

    with open(csv_path, newline="", encoding=encoding) as f:
        reader = csv.reader(f, delimiter=",")
        header_row = next(reader, None)
        if not header_row:
            raise StagingFileError(f"Staging file has no header row: {csv_path}")

        header = [_normalize_header(name) for name in header_row]
        known = set(spec.columns)
        if not known.intersection(header):
            raise StagingFileError(
                f"Header of {csv_path} has none of the {spec.entity_type.value} "
                f"columns: {', '.join(spec.columns)}"
            )
        batch.ignored_columns = [name for name in header if name not in known]

        for record in reader:
            if not any(cell.strip() for cell in record):
                continue

            if len(record) != len(header):
                batch.errors.append(
                    StagingLineError(
                        reader.line_num,
                        f"expected {len(header)} fields, found {len(record)}",
                    )
                )
                if len(batch.errors) > max_errors:
                    raise StagingFileError(
                        f"{csv_path} exceeded max_errors={max_errors} malformed lines"
                    )
                continue

            cells = dict(zip(header, record))
            batch.rows.append(
                {column: (cells.get(column) or None) for column in spec.columns}
            )

    if batch.errors:
        logger.warning(
            f"Skipped {len(batch.errors)} malformed lines in {csv_path} "
            f"(first at line {batch.errors[0].line_number})"
        )
    logger.info(f"Read {len(batch.rows)} {spec.entity_type.value} rows from {csv_path}")

    return batch
