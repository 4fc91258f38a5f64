"""Shared SQL query builder utilities for the SQLite record store.

Builds the WHERE clause that pushes list filters down into SQLite. Pushdown is
an optimization only: the rows it returns are always a superset of what the
in-memory pipeline keeps, and the pipeline re-applies every condition.
Column names are checked against a whitelist because they are interpolated
into the SQL text; values always travel as ``?`` parameters.
"""

from typing import Any, Iterable, Mapping


def _is_unconstrained(value: Any) -> bool:
    return value is None or value == "" or value == "all"


def _check_column(column: str, allowed_columns: set[str] | None) -> str:
    if allowed_columns is not None and column not in allowed_columns:
        raise ValueError(
            f"Invalid filter column: '{column}'. "
            f"Must be one of: {', '.join(sorted(allowed_columns))}"
        )
    return column


def build_where_clause(
    farm_id: Any = None,
    equals: Mapping[str, Any] | None = None,
    date_column: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    search: str | None = None,
    search_columns: Iterable[str] = (),
    allowed_columns: set[str] | None = None,
) -> tuple[str, list[Any]]:
    """Build a SQL WHERE clause from list filter parameters.

    Args:
        farm_id: Owning farm identifier, matched on its text form so that
            ``1`` and ``"1"`` select the same rows. ``"all"``/None skip it.
        equals: Exact-match column -> value pairs. ``"all"``/None values are
            skipped; bools are sent as 0/1.
        date_column: Column the date range applies to.
        date_from: Inclusive lower bound (ISO string).
        date_to: Inclusive upper bound (ISO string).
        search: Free-text term, matched as a case-folded substring of any of
            *search_columns*. Needs the ``py_lower`` SQL function that
            ``utils.database.open_connection`` registers, so that case folding
            is the same as Python's ``str.lower``.
        search_columns: Columns the search term applies to.
        allowed_columns: Whitelist for every interpolated column name.

    Returns:
        Tuple of (where_clause_string, params_list). The where_clause_string
        starts with "WHERE " if any conditions exist, or is "" if none.

    Raises:
        ValueError: If a column is not in *allowed_columns*.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if not _is_unconstrained(farm_id):
        conditions.append("CAST(farm_id AS TEXT) = ?")
        params.append(str(farm_id))

    for column, value in (equals or {}).items():
        if _is_unconstrained(value):
            continue
        _check_column(column, allowed_columns)
        if isinstance(value, bool):
            conditions.append(f"{column} = ?")
            params.append(int(value))
        else:
            conditions.append(f"CAST({column} AS TEXT) = ?")
            params.append(str(value))

    if date_column and (date_from or date_to):
        _check_column(date_column, allowed_columns)
        conditions.append(f"{date_column} IS NOT NULL")
        if date_from:
            conditions.append(f"{date_column} >= ?")
            params.append(date_from)
        if date_to:
            conditions.append(f"{date_column} <= ?")
            params.append(date_to)

    term = (search or "").strip()
    columns = list(search_columns)
    if term and columns:
        needle = term.lower()
        hits = []
        for column in columns:
            _check_column(column, allowed_columns)
            hits.append(f"instr(py_lower({column}), ?) > 0")
            params.append(needle)
        conditions.append("(" + " OR ".join(hits) + ")")

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def build_order_clause(
    sort_by: str,
    sort_dir: str,
    allowed_sorts: set[str],
    default_sort: str = "id",
) -> str:
    """Build a safe SQL ORDER BY clause.

    Args:
        sort_by: Column name to sort by.
        sort_dir: Direction: 'asc' or 'desc' (case-insensitive).
        allowed_sorts: Set of valid sort column names.
        default_sort: Column to use if sort_by is not in allowed_sorts.

    Returns:
        ORDER BY clause string, e.g. "ORDER BY id ASC".
    """
    col = sort_by if sort_by in allowed_sorts else default_sort
    direction = "DESC" if str(sort_dir).lower() == "desc" else "ASC"
    return f"ORDER BY {col} {direction}"
