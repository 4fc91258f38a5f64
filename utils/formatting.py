"""Display formatting for CropKeeper pages and exports.

These are registered as Jinja2 filters by the app factory. Malformed input
never raises; it renders as a placeholder instead.
"""

from datetime import date, datetime
from typing import Any, Optional

from utils.strings import is_iso_date, parse_amount

PLACEHOLDER = "-"


def format_amount(value: Any, precision: int = 2) -> str:
    """Format a money amount for display.

    Args:
        value: Amount (number or numeric string)
        precision: Decimal places (default: 2)

    Returns:
        Formatted string like "$1,234.50"

    Examples:
        format_amount(250) -> "$250.00"
        format_amount("175.5") -> "$175.50"
        format_amount(-12) -> "-$12.00"
        format_amount("abc") -> "-"
    """
    number = parse_amount(value)
    if number is None:
        return PLACEHOLDER
    sign = "-" if number < 0 else ""
    return f"{sign}${abs(number):,.{precision}f}"


def format_date(value: Any, pattern: str = "%b %d, %Y") -> str:
    """Format an ISO ``YYYY-MM-DD`` date for display.

    Examples:
        format_date("2023-06-15") -> "Jun 15, 2023"
        format_date("") -> "-"
        format_date("2023-02-30") -> "2023-02-30"  (shown as stored)
    """
    if isinstance(value, (date, datetime)):
        return value.strftime(pattern)
    if not is_iso_date(value):
        return str(value) if value else PLACEHOLDER
    try:
        return datetime.strptime(value, "%Y-%m-%d").strftime(pattern)
    except ValueError:
        return value


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a percentage for display.

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return PLACEHOLDER
    return f"{value:.{precision}f}%"


def share_of(part: Any, whole: Any) -> Optional[float]:
    """Percentage of *part* in *whole*, or None when *whole* is not positive."""
    p, w = parse_amount(part), parse_amount(whole)
    if p is None or w is None or w <= 0:
        return None
    return p / w * 100


def truncate_text(text: Any, max_length: int = 80, suffix: str = "...") -> str:
    """Truncate text to maximum length with ellipsis.

    Examples:
        truncate_text("Apply fertilizer to the north field", 20) -> "Apply fertilizer ..."
        truncate_text(None) -> ""
    """
    if text is None:
        return ""
    text = str(text)
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
