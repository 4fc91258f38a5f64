"""String processing utilities for CropKeeper.

The list pipeline calls these once per record per filter, so they avoid
raising: malformed input yields ``None`` or ``False`` rather than an
exception.
"""

import math
from typing import Any

from utils.patterns import (
    CAMEL_BOUNDARY,
    DECIMAL_NUMBER,
    ISO_DATE,
)


def parse_amount(val: Any) -> float | None:
    """Parse a user-entered or stored amount into a finite float.

    Handles:
    - int/float values (bool is rejected, it is not an amount)
    - strings with surrounding whitespace ("1,000" is rejected)
    - anything else, including "abc", "", "inf" and "nan" -> None

    Args:
        val: Value to convert (any type)

    Returns:
        float or None when the value is not a usable number
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        number = float(val)
        return number if math.isfinite(number) else None

    s = str(val).strip()
    if not s or not DECIMAL_NUMBER.match(s):
        return None
    number = float(s)
    return number if math.isfinite(number) else None


def is_iso_date(val: Any) -> bool:
    """Return True when *val* is a ``YYYY-MM-DD`` string."""
    return isinstance(val, str) and ISO_DATE.match(val) is not None


def is_blank(val: Any) -> bool:
    """True for None and for strings that are empty after trimming."""
    if val is None:
        return True
    return not str(val).strip()


def split_csv_list(val: Any) -> list[str]:
    """Split a comma-separated form field into trimmed, non-empty items.

    Lists are passed through with the same cleanup applied.

    Example:
        "corn, wheat,, soybeans" -> ["corn", "wheat", "soybeans"]
    """
    if val is None:
        return []
    items = val if isinstance(val, (list, tuple)) else str(val).split(',')
    return [str(item).strip() for item in items if str(item).strip()]


def camel_to_snake(name: str) -> str:
    """Convert a camelCase field name to snake_case.

    Example:
        "plantingDate" -> "planting_date", "farmId" -> "farm_id"
    """
    return CAMEL_BOUNDARY.sub('_', name).lower()
