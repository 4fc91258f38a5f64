"""Form validation for CropKeeper entities.

Each ``validate_<kind>`` function takes a draft (a plain dict in canonical
snake_case field names) and returns a mapping of field name to a single
human-readable message. An empty mapping means the draft may be submitted.

Validation is synchronous and always re-run in full on submit; there is no
partial or incremental validation. ``FormState`` models the edit cycle of a
form: editing a field clears that field's error only, and the next submit
recomputes everything.
"""

from typing import Any, Callable, Dict, Iterable, Optional

from utils.strings import is_blank, parse_amount

FieldErrors = Dict[str, str]

FARM_NOT_FOUND = "Selected farm does not exist"


def _present(value: Any) -> bool:
    """True unless *value* is None or the empty string (no trimming)."""
    return value is not None and value != ""


def _check_farm(
    errors: FieldErrors,
    draft: Dict[str, Any],
    missing_message: str,
    known_farm_ids: Optional[Iterable[Any]],
) -> None:
    farm_id = draft.get("farm_id")
    if not _present(farm_id):
        errors["farm_id"] = missing_message
    elif known_farm_ids is not None:
        if str(farm_id) not in {str(fid) for fid in known_farm_ids}:
            errors["farm_id"] = FARM_NOT_FOUND


def validate_farm(draft: Dict[str, Any],
                  known_farm_ids: Optional[Iterable[Any]] = None) -> FieldErrors:
    """Validate a farm draft. ``known_farm_ids`` is accepted for symmetry."""
    errors: FieldErrors = {}
    if is_blank(draft.get("name")):
        errors["name"] = "Farm name is required"
    if is_blank(draft.get("location")):
        errors["location"] = "Location is required"
    if is_blank(draft.get("size")):
        errors["size"] = "Farm size is required"
    return errors


def validate_crop(draft: Dict[str, Any],
                  known_farm_ids: Optional[Iterable[Any]] = None) -> FieldErrors:
    """Validate a crop draft.

    Args:
        draft: Crop fields (name, farm_id, location, planting_date, ...)
        known_farm_ids: When given, ``farm_id`` must be one of these

    Returns:
        Field -> message mapping, empty when valid
    """
    errors: FieldErrors = {}
    if is_blank(draft.get("name")):
        errors["name"] = "Crop name is required"
    _check_farm(errors, draft, "Farm is required", known_farm_ids)
    if is_blank(draft.get("location")):
        errors["location"] = "Location is required"
    if not _present(draft.get("planting_date")):
        errors["planting_date"] = "Planting date is required"
    return errors


def validate_task(draft: Dict[str, Any],
                  known_farm_ids: Optional[Iterable[Any]] = None) -> FieldErrors:
    errors: FieldErrors = {}
    if is_blank(draft.get("title")):
        errors["title"] = "Task title is required"
    _check_farm(errors, draft, "Please select a farm", known_farm_ids)
    if not _present(draft.get("due_date")):
        errors["due_date"] = "Due date is required"
    return errors


def validate_expense(draft: Dict[str, Any],
                     known_farm_ids: Optional[Iterable[Any]] = None) -> FieldErrors:
    """Validate an expense draft.

    The amount must parse to a finite number strictly greater than zero:
    "0", "-5" and "abc" are rejected, "0.01" is accepted. The description
    is checked for presence only, so a whitespace-only description passes.
    """
    errors: FieldErrors = {}
    if not _present(draft.get("date")):
        errors["date"] = "Date is required"

    amount = draft.get("amount")
    if not _present(amount):
        errors["amount"] = "Amount is required"
    else:
        number = parse_amount(amount)
        if number is None or number <= 0:
            errors["amount"] = "Amount must be a positive number"

    if not _present(draft.get("category")):
        errors["category"] = "Category is required"
    if not _present(draft.get("description")):
        errors["description"] = "Description is required"
    _check_farm(errors, draft, "Farm is required", known_farm_ids)
    return errors


VALIDATORS: Dict[str, Callable[..., FieldErrors]] = {
    "farms": validate_farm,
    "crops": validate_crop,
    "tasks": validate_task,
    "expenses": validate_expense,
}

# Values filled in on submit when the draft leaves the field out or blank.
DEFAULTS: Dict[str, Dict[str, Any]] = {
    "farms": {"crop_types": []},
    "crops": {"status": "planted", "variety": "", "harvest_date": None},
    "tasks": {"description": "", "priority": "medium", "completed": False},
    "expenses": {},
}


def validate_record(kind: str, draft: Dict[str, Any],
                    known_farm_ids: Optional[Iterable[Any]] = None) -> FieldErrors:
    """Dispatch to the validator for *kind*.

    Raises:
        ValueError: If *kind* is not an entity kind
    """
    try:
        validator = VALIDATORS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: '{kind}'") from None
    if known_farm_ids is not None:
        known_farm_ids = list(known_farm_ids)
    return validator(draft, known_farm_ids)


def apply_defaults(kind: str, draft: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of *draft* with the kind's submit defaults filled in.

    A field counts as missing when it is absent, None or "". Explicit values,
    including ``completed=False`` and unknown statuses, are kept as given.
    """
    record = dict(draft)
    for field, default in DEFAULTS.get(kind, {}).items():
        if not _present(record.get(field)):
            record[field] = list(default) if isinstance(default, list) else default
    if kind == "expenses":
        number = parse_amount(record.get("amount"))
        if number is not None:
            record["amount"] = number
    return record


class FormState:
    """Values and field errors of one add/edit form.

    Usage::

        form = FormState("expenses", known_farm_ids=[1, 2])
        form.edit("amount", "abc")
        if not form.submit():
            form.errors  # {"amount": "Amount must be a positive number", ...}
    """

    def __init__(self, kind: str, values: Optional[Dict[str, Any]] = None,
                 known_farm_ids: Optional[Iterable[Any]] = None) -> None:
        if kind not in VALIDATORS:
            raise ValueError(f"Unknown entity kind: '{kind}'")
        self.kind = kind
        self.values: Dict[str, Any] = dict(values or {})
        self.errors: FieldErrors = {}
        self.known_farm_ids = (
            list(known_farm_ids) if known_farm_ids is not None else None
        )

    @property
    def record_id(self) -> Any:
        """Identifier of the record being edited, None for a new draft."""
        return self.values.get("id")

    def edit(self, field: str, value: Any) -> None:
        """Store *value* and clear that field's error without re-validating."""
        self.values[field] = value
        self.errors.pop(field, None)

    def submit(self) -> bool:
        """Re-validate every field; True when the draft may be persisted."""
        self.errors = validate_record(self.kind, self.values, self.known_farm_ids)
        return not self.errors

    def cleaned(self) -> Dict[str, Any]:
        """The draft with submit defaults applied."""
        return apply_defaults(self.kind, self.values)
