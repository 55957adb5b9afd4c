"""Field converters from raw staged text to typed values.

Every converter is total: it never raises, whatever it is given. Failed
conversions fall back to a default (False for flags, None otherwise) and
the caller decides whether a missing value rejects the row.

Flag policy:
    Only the trimmed, case-insensitive values 1, Y, Yes and True are true.
    Everything else, including blank text, "No", "0" and garbage, is
    False. An unparseable flag is therefore indistinguishable from an
    explicit False once converted.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

TRUE_FLAG_VALUES = frozenset({"1", "y", "yes", "true"})

DEFAULT_DATE_FORMAT = "%Y-%m-%d"

# Production integer columns are signed 32-bit INT
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

# Longest digit run that can still fit in INT_MAX
_MAX_INT_DIGITS = len(str(INT_MAX))

_INTEGER_TEXT = re.compile(r"^[+-]?\d+(\.0*)?$")


class FieldKind(str, Enum):
    """How a staged column is converted into its production type."""

    FLAG = "flag"
    DATE = "date"
    INTEGER = "integer"
    TEXT = "text"


@dataclass(frozen=True)
class Conversion:
    """A converted value plus whether the raw input converted cleanly.

    ``ok`` is False only when input was present but could not be converted.
    Blank input converts cleanly to the kind's empty value.
    """

    value: Any
    ok: bool = True


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return str(value).strip()


def parse_boolean_flag(text: Any) -> bool:
    """Map a raw flag to a boolean.

    >>> parse_boolean_flag(" yes ")
    True
    >>> parse_boolean_flag("maybe")
    False
    """
    if isinstance(text, bool):
        return text
    cleaned = _as_text(text)
    if not cleaned:
        return False
    return cleaned.lower() in TRUE_FLAG_VALUES


def parse_date(text: Any, fmt: str = DEFAULT_DATE_FORMAT) -> Optional[date]:
    """Parse a raw date, returning None when it is blank or invalid.

    >>> parse_date("2024-08-17")
    datetime.date(2024, 8, 17)
    >>> parse_date("2024-99-99") is None
    True
    """
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    cleaned = _as_text(text)
    if not cleaned:
        return None
    try:
        return datetime.strptime(cleaned, fmt).date()
    except ValueError:
        return None


def parse_int(text: Any) -> Optional[int]:
    """Parse a raw integer, returning None when it is blank or invalid.

    Integral decimals such as ``"12.0"`` are accepted; ``"12.5"`` is not.
    Values outside the signed 32-bit range are invalid.
    """
    if isinstance(text, bool):
        return None
    if isinstance(text, int):
        value = text
    elif isinstance(text, float):
        if not text.is_integer():
            return None
        value = int(text)
    else:
        cleaned = _as_text(text)
        if not cleaned or not _INTEGER_TEXT.match(cleaned):
            return None
        digits = cleaned.split(".", 1)[0]
        if len(digits.lstrip("+-").lstrip("0")) > _MAX_INT_DIGITS:
            return None
        value = int(digits)
    return value if INT_MIN <= value <= INT_MAX else None


def clean_text(value: Any) -> Optional[str]:
    """Trim raw text; blank text becomes None."""
    cleaned = _as_text(value)
    return cleaned or None


def is_blank(value: Any) -> bool:
    """Whether a raw value carries no information."""
    return not _as_text(value)


def convert_field(
    kind: FieldKind,
    raw: Any,
    date_format: str = DEFAULT_DATE_FORMAT,
    max_length: Optional[int] = None,
) -> Conversion:
    """Convert one raw value according to its field kind.

    Text longer than ``max_length`` (the column width) does not convert.
    """
    if kind is FieldKind.FLAG:
        # Flags always convert; unrecognised text is a silent False
        return Conversion(parse_boolean_flag(raw))

    if kind is FieldKind.TEXT:
        text = clean_text(raw)
        if text is not None and max_length is not None and len(text) > max_length:
            return Conversion(None, ok=False)
        return Conversion(text)

    if kind is FieldKind.DATE:
        value = parse_date(raw, date_format)
    else:
        value = parse_int(raw)

    return Conversion(value, ok=value is not None or is_blank(raw))
