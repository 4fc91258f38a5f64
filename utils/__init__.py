"""Shared utilities for CropKeeper."""

# Pattern definitions
from utils.patterns import (
    ISO_DATE,
    DECIMAL_NUMBER,
    CAMEL_BOUNDARY,
)

# String utilities
from utils.strings import (
    parse_amount,
    is_iso_date,
    is_blank,
    split_csv_list,
    camel_to_snake,
)

# Database utilities
from utils.database import (
    init_pragmas,
    open_connection,
    get_table_count,
)

# Query builders
from utils.query import build_where_clause, build_order_clause

# Cache
from utils.cache import TTLCache

# Validation
from utils.validation import (
    FormState,
    validate_farm,
    validate_crop,
    validate_task,
    validate_expense,
    validate_record,
    apply_defaults,
)

# Output formatting
from utils.formatting import (
    format_amount,
    format_date,
    format_percent,
    share_of,
    truncate_text,
)

# Configuration
from utils.config import AppConfig, KnownValues

__all__ = [
    # Patterns
    "ISO_DATE",
    "DECIMAL_NUMBER",
    "CAMEL_BOUNDARY",
    # Strings
    "parse_amount",
    "is_iso_date",
    "is_blank",
    "split_csv_list",
    "camel_to_snake",
    # Database
    "init_pragmas",
    "open_connection",
    "get_table_count",
    # Query
    "build_where_clause",
    "build_order_clause",
    # Cache
    "TTLCache",
    # Validation
    "FormState",
    "validate_farm",
    "validate_crop",
    "validate_task",
    "validate_expense",
    "validate_record",
    "apply_defaults",
    # Formatting
    "format_amount",
    "format_date",
    "format_percent",
    "share_of",
    "truncate_text",
    # Config
    "AppConfig",
    "KnownValues",
]
