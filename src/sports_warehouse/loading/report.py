"""Per-batch load outcome reporting."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

# A rejected row is identified by its primary key when it converted,
# otherwise by its 1-based position in the batch
RowRef = Union[int, str]


class RejectionReason(str, Enum):
    """Why a staged row was not committed."""

    DUPLICATE_KEY = "DUPLICATE_KEY"
    MISSING_FOREIGN_KEY = "MISSING_FOREIGN_KEY"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    MALFORMED_REQUIRED_FIELD = "MALFORMED_REQUIRED_FIELD"


@dataclass(frozen=True)
class Rejection:
    """One rejected row."""

    row: RowRef
    reason: RejectionReason
    detail: str = ""
    position: Optional[int] = None

    def as_tuple(self) -> tuple[RowRef, RejectionReason]:
        return (self.row, self.reason)


@dataclass(frozen=True)
class NullifiedField:
    """An optional field whose raw value did not convert and was stored as NULL."""

    row: RowRef
    field: str
    raw_value: Any


@dataclass
class LoadReport:
    """Outcome of loading one batch of one entity type.

    Rejections are kept in batch order.
    """

    entity_type: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    accepted_keys: list[Any] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    nullified_fields: list[NullifiedField] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted_keys)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    @property
    def total_rows(self) -> int:
        return self.accepted_count + self.rejected_count

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def accept(self, key: Any) -> None:
        self.accepted_keys.append(key)

    def reject(
        self,
        row: RowRef,
        reason: RejectionReason,
        detail: str = "",
        position: Optional[int] = None,
    ) -> Rejection:
        rejection = Rejection(row=row, reason=reason, detail=detail, position=position)
        self.rejections.append(rejection)
        return rejection

    def nullify(self, row: RowRef, field_name: str, raw_value: Any) -> None:
        self.nullified_fields.append(NullifiedField(row, field_name, raw_value))

    def finish(self) -> "LoadReport":
        self.finished_at = datetime.now(timezone.utc)
        return self

    def rejection_pairs(self) -> list[tuple[RowRef, RejectionReason]]:
        """Rejections as ordered ``(row, reason)`` pairs."""
        return [r.as_tuple() for r in self.rejections]

    def rejections_by_reason(self) -> dict[RejectionReason, int]:
        return dict(Counter(r.reason for r in self.rejections))

    def to_dict(self) -> dict[str, Any]:
        """Convert report to a dictionary for logging/serialisation."""
        return {
            "entity_type": self.entity_type,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
            "nullified_field_count": len(self.nullified_fields),
            "rejections": [
                {
                    "row": r.row,
                    "reason": r.reason.value,
                    "detail": r.detail,
                }
                for r in self.rejections
            ],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }

    def __str__(self) -> str:
        return (
            f"LoadReport(entity={self.entity_type}, "
            f"accepted={self.accepted_count}, rejected={self.rejected_count})"
        )
