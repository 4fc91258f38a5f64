"""
Entity services: validation, farm-name resolution and list assembly on top of
a record store.

Services never cache records. Every ``list`` asks the store again, resolves
``farm_name`` from the current farms, and runs the full in-memory pipeline, so
a store that pushes filters down and one that does not return identical
results. A failed store call raises ``StoreError`` before anything else
happens; there are no optimistic updates to roll back.
"""

from __future__ import annotations

import logging
from typing import Any

from pipeline.listing import ListingResult, run_listing
from pipeline.sorting import sort_records
from pipeline.specs import FilterSpec, SortSpec
from pipeline.aggregates import summarize_expenses
from store.base import RecordStore, same_id
from store.mapping import FARM_NAME, normalize_record, with_farm_names
from utils.validation import apply_defaults, validate_record

logger = logging.getLogger(__name__)

DEPENDENT_KINDS = ("crops", "tasks", "expenses")
RECENT_LIMIT = 3


class FormValidationError(Exception):
    """A draft failed form validation; ``errors`` maps field -> message."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("Validation failed: " + ", ".join(
            f"{field}: {message}" for field, message in self.errors.items()
        ))


class FarmInUseError(Exception):
    """A farm cannot be deleted while crops, tasks or expenses reference it."""

    def __init__(self, farm_id: Any, dependents: dict[str, int]) -> None:
        self.farm_id = farm_id
        self.dependents = dependents
        listing = ", ".join(f"{n} {kind}" for kind, n in dependents.items() if n)
        super().__init__(
            f"Farm {farm_id} still has {listing}; delete them first or use cascade"
        )


class EntityService:
    """CRUD and listing for one entity kind."""

    kind: str = ""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ── Farm names ───────────────────────────────────────────────────────────

    def farm_lookup(self) -> dict[str, str]:
        """``{str(farm id): farm name}`` for every current farm."""
        return {str(f["id"]): f.get("name") or "" for f in self.store.list("farms")}

    def _decorate(self, records: list[dict[str, Any]],
                  lookup: dict[str, str] | None = None) -> list[dict[str, Any]]:
        if self.kind == "farms":
            return records
        return with_farm_names(records, self.farm_lookup() if lookup is None else lookup)

    # ── Reads ────────────────────────────────────────────────────────────────

    def list(self, filter_spec: FilterSpec | None = None,
             sort_spec: SortSpec | None = None,
             limit: int | None = None, offset: int = 0) -> ListingResult:
        """Filtered, sorted (and optionally paginated) records of this kind."""
        records = self._decorate(self.store.list(self.kind, filter_spec))
        return run_listing(records, self.kind, filter_spec, sort_spec, limit, offset)

    def get(self, record_id: Any) -> dict[str, Any]:
        """One record with ``farm_name``; raises ``RecordNotFoundError``."""
        return self._decorate([self.store.get(self.kind, record_id)])[0]

    # ── Writes ───────────────────────────────────────────────────────────────

    def validate(self, draft: dict[str, Any]) -> dict[str, str]:
        """Field errors of *draft*; farm references are checked against the store."""
        known = None
        if self.kind != "farms":
            known = list(self.farm_lookup())
        return validate_record(self.kind, draft, known)

    def _prepare(self, draft: dict[str, Any]) -> dict[str, Any]:
        values = normalize_record(self.kind, draft, fill_missing=False)
        values.pop(FARM_NAME, None)
        errors = self.validate(values)
        if errors:
            logger.info("validation failed kind=%s fields=%s", self.kind, sorted(errors))
            raise FormValidationError(errors)
        return apply_defaults(self.kind, values)

    def create(self, draft: dict[str, Any]) -> dict[str, Any]:
        """Validate *draft* in full and persist it.

        Raises:
            FormValidationError: The draft is invalid; the store is untouched
            StoreError: The store failed
        """
        values = self._prepare(draft)
        values.pop("id", None)
        created = self.store.create(self.kind, values)
        logger.info("created kind=%s id=%s", self.kind, created["id"])
        return self._decorate([created])[0]

    def update(self, record_id: Any, draft: dict[str, Any]) -> dict[str, Any]:
        """Overwrite the record's fields with a validated *draft*.

        The identifier and creation time never change.
        """
        current = self.store.get(self.kind, record_id)
        values = self._prepare(draft)
        values["id"] = current["id"]
        updated = self.store.update(self.kind, values)
        logger.info("updated kind=%s id=%s", self.kind, updated["id"])
        return self._decorate([updated])[0]

    def delete(self, record_id: Any) -> None:
        self.store.delete(self.kind, record_id)
        logger.info("deleted kind=%s id=%s", self.kind, record_id)


class FarmService(EntityService):
    kind = "farms"

    def options(self) -> list[dict[str, Any]]:
        """Farms as ``{"id", "name"}`` pairs for form select boxes."""
        return [{"id": f["id"], "name": f.get("name") or ""}
                for f in self.store.list("farms")]

    def dependents(self, farm_id: Any) -> dict[str, list[dict[str, Any]]]:
        """Crops, tasks and expenses that reference *farm_id*."""
        spec = FilterSpec(farm_id=farm_id)
        return {
            kind: [r for r in self.store.list(kind, spec) if same_id(r.get("farm_id"), farm_id)]
            for kind in DEPENDENT_KINDS
        }

    def delete(self, farm_id: Any, cascade: bool = False) -> None:
        """Delete a farm.

        Args:
            farm_id: Farm to delete
            cascade: Also delete the farm's crops, tasks and expenses

        Raises:
            RecordNotFoundError: No such farm
            FarmInUseError: The farm has dependents and *cascade* is False
        """
        farm = self.store.get("farms", farm_id)
        owned = self.dependents(farm["id"])
        counts = {kind: len(records) for kind, records in owned.items()}
        if any(counts.values()):
            if not cascade:
                raise FarmInUseError(farm["id"], counts)
            for kind, records in owned.items():
                for record in records:
                    self.store.delete(kind, record["id"])
            logger.info("cascade delete farm=%s removed=%s", farm["id"], counts)
        self.store.delete("farms", farm["id"])
        logger.info("deleted kind=farms id=%s", farm["id"])


class CropService(EntityService):
    kind = "crops"


class TaskService(EntityService):
    kind = "tasks"

    def toggle_completed(self, task_id: Any) -> dict[str, Any]:
        """Flip a task between pending and completed."""
        task = self.store.get("tasks", task_id)
        task["completed"] = not bool(task.get("completed"))
        updated = self.store.update("tasks", task)
        logger.info("toggled task id=%s completed=%s", updated["id"], updated["completed"])
        return self._decorate([updated])[0]


class ExpenseService(EntityService):
    kind = "expenses"


class Services:
    """The four entity services sharing one store."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.farms = FarmService(store)
        self.crops = CropService(store)
        self.tasks = TaskService(store)
        self.expenses = ExpenseService(store)

    def for_kind(self, kind: str) -> EntityService:
        try:
            return {
                "farms": self.farms,
                "crops": self.crops,
                "tasks": self.tasks,
                "expenses": self.expenses,
            }[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: '{kind}'") from None


def _most_recent(records: list[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    # Newest first by creation time; later insertion wins ties
    ordered = list(reversed(records))
    ordered.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
    return ordered[:limit]


def dashboard_summary(store: RecordStore, limit: int = RECENT_LIMIT) -> dict[str, Any]:
    """Overview figures for the dashboard page.

    Returns:
        Dict with ``counts`` per kind, ``recent_crops`` (newest first),
        ``upcoming_tasks`` (pending, nearest due date first),
        ``recent_expenses`` (latest date first) and ``expense_total``.
    """
    farms = store.list("farms")
    lookup = {str(f["id"]): f.get("name") or "" for f in farms}
    crops = with_farm_names(store.list("crops"), lookup)
    tasks = with_farm_names(store.list("tasks"), lookup)
    expenses = with_farm_names(store.list("expenses"), lookup)

    pending = [t for t in tasks if not t.get("completed")]
    upcoming = sort_records(pending, SortSpec("due_date", "asc"), "tasks")[:limit]
    recent_expenses = sort_records(expenses, SortSpec("date", "desc"), "expenses")[:limit]

    return {
        "counts": {
            "farms": len(farms),
            "crops": len(crops),
            "tasks": len(tasks),
            "pending_tasks": len(pending),
            "expenses": len(expenses),
        },
        "recent_crops": _most_recent(crops, limit),
        "upcoming_tasks": upcoming,
        "recent_expenses": recent_expenses,
        "expense_total": summarize_expenses(expenses).total,
    }


__all__ = [
    "CropService",
    "EntityService",
    "ExpenseService",
    "FarmInUseError",
    "FarmService",
    "FormValidationError",
    "Services",
    "TaskService",
    "dashboard_summary",
]
