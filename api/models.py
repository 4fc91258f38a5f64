"""
Pydantic request/response models for the API.

Request bodies are deliberately loose: every field is optional and accepts the
spellings a browser form sends (strings for numbers, "on" for checkboxes).
The field rules and their messages live in ``utils.validation`` and are
applied by the entity services, so the JSON API and the HTML forms reject
the same drafts with the same messages.

Response models mirror the canonical record shapes. Optional fields default
to None so that legacy records with gaps still serialize.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

RecordId = int | str


# ── Entity models ─────────────────────────────────────────────────────────────

class FarmOut(BaseModel):
    """A farm."""
    id: RecordId = Field(..., description="Identifier assigned by the record store", examples=[1])
    name: str | None = Field(None, description="Farm name", examples=["Green Valley Farm"])
    location: str | None = Field(None, description="Free-text location", examples=["North County"])
    size: str | None = Field(None, description="Free-text size", examples=["24 acres"])
    crop_types: list[str] = Field(default_factory=list, description="Crops grown on the farm", examples=[["Corn", "Tomatoes"]])
    created_at: str | None = Field(None, description="Creation time (ISO 8601, UTC)")


class CropOut(BaseModel):
    """A crop planted on a farm."""
    id: RecordId = Field(..., examples=[1])
    name: str | None = Field(None, description="Crop name", examples=["Corn"])
    variety: str | None = Field(None, description="Variety", examples=["Sweet Corn"])
    farm_id: RecordId | None = Field(None, description="Owning farm", examples=[1])
    farm_name: str = Field("Unknown Farm", description="Owning farm's name, resolved at read time")
    location: str | None = Field(None, description="Field or greenhouse", examples=["Field A"])
    planting_date: str | None = Field(None, description="YYYY-MM-DD", examples=["2023-04-15"])
    harvest_date: str | None = Field(None, description="YYYY-MM-DD", examples=["2023-08-20"])
    status: str | None = Field(None, description="planted | growing | harvested", examples=["growing"])
    created_at: str | None = None


class TaskOut(BaseModel):
    """A farm task."""
    id: RecordId = Field(..., examples=[1])
    title: str | None = Field(None, examples=["Water tomato field"])
    description: str | None = Field(None, examples=["Ensure the drip irrigation system is working properly"])
    farm_id: RecordId | None = Field(None, examples=[1])
    farm_name: str = Field("Unknown Farm")
    due_date: str | None = Field(None, description="YYYY-MM-DD", examples=["2023-07-15"])
    priority: str | None = Field(None, description="low | medium | high", examples=["high"])
    completed: bool | str | None = Field(None, description="Whether the task is done", examples=[False])
    created_at: str | None = None


class ExpenseOut(BaseModel):
    """A farm expense."""
    id: RecordId = Field(..., examples=[1])
    date: str | None = Field(None, description="YYYY-MM-DD", examples=["2023-05-15"])
    amount: float | str | None = Field(None, description="Amount in dollars", examples=[250.0])
    category: str | None = Field(None, examples=["Seeds"])
    description: str | None = Field(None, examples=["Spring corn seeds"])
    farm_id: RecordId | None = Field(None, examples=[1])
    farm_name: str = Field("Unknown Farm")
    created_at: str | None = None


# ── Draft (request body) models ───────────────────────────────────────────────

class _Draft(BaseModel):
    # camelCase and backend spellings pass through to store.mapping
    model_config = ConfigDict(extra="allow")

    def to_draft(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class FarmIn(_Draft):
    """Farm draft."""
    name: str | None = Field(None, examples=["Green Valley Farm"])
    location: str | None = Field(None, examples=["North County"])
    size: str | None = Field(None, examples=["24 acres"])
    crop_types: list[str] | str | None = Field(None, description="List or comma-separated string", examples=["Corn, Tomatoes"])


class CropIn(_Draft):
    """Crop draft."""
    name: str | None = Field(None, examples=["Corn"])
    variety: str | None = Field(None, examples=["Sweet Corn"])
    farm_id: RecordId | None = Field(None, examples=[1])
    location: str | None = Field(None, examples=["Field A"])
    planting_date: str | None = Field(None, examples=["2023-04-15"])
    harvest_date: str | None = Field(None, examples=["2023-08-20"])
    status: str | None = Field(None, examples=["planted"])


class TaskIn(_Draft):
    """Task draft."""
    title: str | None = Field(None, examples=["Repair fence"])
    description: str | None = None
    farm_id: RecordId | None = Field(None, examples=[2])
    due_date: str | None = Field(None, examples=["2023-07-20"])
    priority: str | None = Field(None, examples=["low"])
    completed: bool | str | None = None


class ExpenseIn(_Draft):
    """Expense draft."""
    date: str | None = Field(None, examples=["2023-05-15"])
    amount: float | str | None = Field(None, examples=["250.00"])
    category: str | None = Field(None, examples=["Seeds"])
    description: str | None = Field(None, examples=["Spring corn seeds"])
    farm_id: RecordId | None = Field(None, examples=[1])


# ── List responses ────────────────────────────────────────────────────────────

class _ListResponse(BaseModel):
    total: int = Field(..., description="Records matching the filters (before pagination)", examples=[4])
    limit: int | None = Field(None, description="Page size, null when unpaginated")
    offset: int = Field(0, description="Records skipped after sorting")
    sort_by: str | None = Field(None, description="Effective sort key, null for store order")
    sort_dir: str | None = Field(None, description="Effective sort direction")


class FarmListResponse(_ListResponse):
    items: list[FarmOut]


class CropListResponse(_ListResponse):
    items: list[CropOut]


class TaskListResponse(_ListResponse):
    items: list[TaskOut]


class CategoryTotal(BaseModel):
    category: str = Field(..., examples=["Seeds"])
    amount: float = Field(..., examples=[300.0])


class ExpenseSummaryOut(BaseModel):
    """Aggregates over the whole filtered expense set."""
    total: float = Field(..., examples=[475.5])
    count: int = Field(..., examples=[3])
    by_category: dict[str, float] = Field(..., description="Per-category sums, first-encountered order")
    top_categories: list[CategoryTotal] = Field(..., description="At most 5, largest first")


class ExpenseListResponse(_ListResponse):
    items: list[ExpenseOut]
    summary: ExpenseSummaryOut


# ── Reference, weather and dashboard ──────────────────────────────────────────

class ReferenceValueOut(BaseModel):
    """One value of a closed enumeration."""
    value: str = Field(..., examples=["growing"])
    label: str = Field(..., examples=["Growing"])
    badge_class: str | None = Field(None, description="CSS class used for the badge", examples=["badge-growing"])


class CurrentWeatherOut(BaseModel):
    temperature: int
    feels_like: int
    humidity: int
    wind_speed: int
    wind_direction: str
    precipitation: int
    condition: str
    icon: str


class ForecastDayOut(BaseModel):
    day: str = Field(..., examples=["Tomorrow"])
    high: int
    low: int
    condition: str
    icon: str
    precipitation: int = Field(..., description="Chance of precipitation, percent")


class WeatherAlertOut(BaseModel):
    type: str = Field(..., description="info | warning", examples=["warning"])
    message: str


class WeatherOut(BaseModel):
    """Simulated weather report for one farm."""
    farm_id: RecordId
    farm_name: str
    location: str
    current: CurrentWeatherOut
    forecast: list[ForecastDayOut]
    alerts: list[WeatherAlertOut]


class DashboardCounts(BaseModel):
    farms: int
    crops: int
    tasks: int
    pending_tasks: int
    expenses: int


class DashboardSummaryOut(BaseModel):
    counts: DashboardCounts
    recent_crops: list[CropOut]
    upcoming_tasks: list[TaskOut]
    recent_expenses: list[ExpenseOut]
    expense_total: float


# ── Error models ──────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Not found"])
    detail: str | None = Field(None, description="Human-readable error detail")
    status_code: int = Field(..., examples=[404])


class ValidationErrorResponse(BaseModel):
    """Body of a 422 answer: one message per offending field."""
    error: str = Field("Validation failed")
    errors: dict[str, str] = Field(..., examples=[{"amount": "Amount must be a positive number"}])
    status_code: int = Field(422)
