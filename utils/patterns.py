"""Pre-compiled regex patterns for CropKeeper.

All patterns are compiled once at module import so the list pipeline and the
form validators can call them per record without recompiling.

Usage:
    from utils.patterns import ISO_DATE, DECIMAL_NUMBER

    if ISO_DATE.match(value):
        ...
"""

import re

# Calendar dates as produced by <input type="date">: fixed-width, zero-padded,
# ASCII digits only, nothing after the day (not even a newline).
# Lexicographic comparison of two matching strings is chronological.
ISO_DATE = re.compile(r'\A[0-9]{4}-[0-9]{2}-[0-9]{2}\Z')

# Plain decimal numbers, optionally signed, with an optional exponent.
# Rejects Python-only spellings such as "1_000", "inf" and "nan".
DECIMAL_NUMBER = re.compile(r'\A[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?\Z')

# camelCase -> snake_case boundary ("plantingDate" -> "planting_Date")
CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')
