"""
Boundary mapping between external record shapes and the canonical schema.

Records reach the system from SQLite rows, imported local-storage blobs and
API payloads. Each is normalized here exactly once:

    Id / id                 -> id
    Name                    -> name (farms, crops), title (tasks),
                               description (expenses)
    farmId, plantingDate .. -> farm_id, planting_date ..  (camelCase)
    CreatedOn               -> created_at
    farm: {"Id": .., "Name": ..}  (expanded relation) -> farm_id, farm_name

Keys that are not fields of the kind are dropped. Pipeline and form code
only ever see the canonical names.
"""

from __future__ import annotations

from typing import Any, Mapping

from store.base import check_kind
from utils.strings import camel_to_snake, parse_amount, split_csv_list

FIELDS: dict[str, tuple[str, ...]] = {
    "farms": ("id", "name", "location", "size", "crop_types", "created_at"),
    "crops": ("id", "name", "variety", "farm_id", "location", "planting_date",
              "harvest_date", "status", "created_at"),
    "tasks": ("id", "title", "description", "farm_id", "due_date", "priority",
              "completed", "created_at"),
    "expenses": ("id", "date", "amount", "category", "description", "farm_id",
                 "created_at"),
}

# Derived, never persisted
FARM_NAME = "farm_name"
UNKNOWN_FARM = "Unknown Farm"

_NAME_FIELD = {
    "farms": "name",
    "crops": "name",
    "tasks": "title",
    "expenses": "description",
}

_ALIASES = {
    "created_on": "created_at",
    "createdon": "created_at",
    "farm": "farm_id",
}

# Fields that keep their own coercion below; every other field is text
_TYPED_FIELDS = {"id", "farm_id", "completed", "crop_types", "amount"}

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def coerce_id(value: Any) -> Any:
    """Identifiers are ints when they look like ints, else trimmed strings.

    Examples:
        "12" -> 12, 12 -> 12, " abc " -> "abc", "" -> None, True -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)
    return text


def coerce_bool(value: Any) -> bool | Any:
    """Map stored/form spellings of a flag to a bool.

    Unrecognised values are returned unchanged so they stay visible.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return value


def coerce_text(value: Any) -> str | None:
    """Text fields hold strings; imported numbers and flags become their str form.

    Examples:
        24 -> "24", 20230515 -> "20230515", None -> None
    """
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _canonical_key(kind: str, key: str) -> str:
    if key == "Name":
        return _NAME_FIELD[kind]
    snake = camel_to_snake(key)
    return _ALIASES.get(snake, snake)


def _relation(value: Mapping[str, Any]) -> tuple[Any, Any]:
    farm_id = value.get("Id", value.get("id"))
    farm_name = value.get("Name", value.get("name"))
    return coerce_id(farm_id), farm_name


def normalize_record(kind: str, raw: Mapping[str, Any],
                     fill_missing: bool = True) -> dict[str, Any]:
    """Return the canonical form of one record of *kind*.

    Args:
        kind: Entity kind
        raw: Record in any accepted shape
        fill_missing: Include absent fields as None (stored records). Drafts
            pass False so that absent stays distinguishable from empty.

    Returns:
        New dict with canonical keys only (plus ``farm_name`` when an expanded
        farm relation carried one)
    """
    check_kind(kind)
    fields = FIELDS[kind]
    explicit: dict[str, Any] = {}
    aliased: dict[str, Any] = {}

    for key, value in raw.items():
        canonical = _canonical_key(kind, str(key))
        if canonical == "farm_id" and isinstance(value, Mapping):
            farm_id, farm_name = _relation(value)
            aliased.setdefault("farm_id", farm_id)
            if farm_name is not None:
                aliased.setdefault(FARM_NAME, farm_name)
            continue
        if canonical not in fields and canonical != FARM_NAME:
            continue
        if canonical == key:
            explicit[canonical] = value
        else:
            aliased.setdefault(canonical, value)

    merged = {**aliased, **explicit}
    record: dict[str, Any] = {}
    for field in fields:
        if field in merged:
            record[field] = merged[field]
        elif fill_missing:
            record[field] = None
    if FARM_NAME in merged and kind != "farms":
        record[FARM_NAME] = coerce_text(merged[FARM_NAME])

    for field in fields:
        if field in record and field not in _TYPED_FIELDS:
            record[field] = coerce_text(record[field])
    if "id" in record:
        record["id"] = coerce_id(record["id"])
    if "farm_id" in record:
        record["farm_id"] = coerce_id(record["farm_id"])
    if "completed" in record:
        record["completed"] = coerce_bool(record["completed"])
    if "crop_types" in record:
        record["crop_types"] = split_csv_list(record["crop_types"])
    if "amount" in record:
        number = parse_amount(record["amount"])
        if number is not None:
            record["amount"] = number
    return record


def to_storage(kind: str, record: Mapping[str, Any]) -> dict[str, Any]:
    """Persistable fields of *record* (derived ``farm_name`` removed)."""
    normalized = normalize_record(kind, record)
    normalized.pop(FARM_NAME, None)
    return normalized


def resolve_farm_name(record: Mapping[str, Any], lookup: Mapping[str, str]) -> str:
    """Farm name for *record* from a ``{str(id): name}`` lookup.

    A ``farm_id`` without a matching farm resolves to "Unknown Farm".
    """
    farm_id = record.get("farm_id")
    if farm_id is None:
        return UNKNOWN_FARM
    return lookup.get(str(farm_id), UNKNOWN_FARM)


def with_farm_names(records: list[dict[str, Any]],
                    lookup: Mapping[str, str]) -> list[dict[str, Any]]:
    """Copies of *records* carrying a resolved ``farm_name``."""
    return [{**r, FARM_NAME: resolve_farm_name(r, lookup)} for r in records]
