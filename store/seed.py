"""
Demo data: two farms with sample crops, tasks and expenses.

Task due dates are relative to the day of seeding (tomorrow, in two days, in
three days) so the dashboard always has upcoming work to show.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from pipeline.schema import ENTITY_KINDS
from store.base import RecordStore

logger = logging.getLogger(__name__)

DEMO_FARMS: list[dict[str, Any]] = [
    {"name": "Green Valley Farm", "location": "North County", "size": "24 acres",
     "crop_types": ["Corn", "Tomatoes"]},
    {"name": "Riverside Fields", "location": "Eastern Plains", "size": "16 acres",
     "crop_types": ["Wheat", "Soybeans"]},
]

# farm index -> records owned by that farm
DEMO_CROPS: list[tuple[int, dict[str, Any]]] = [
    (0, {"name": "Corn", "variety": "Sweet Corn", "location": "Field A",
         "planting_date": "2023-04-15", "harvest_date": "2023-08-20", "status": "growing"}),
    (0, {"name": "Tomatoes", "variety": "Roma", "location": "Greenhouse 1",
         "planting_date": "2023-05-01", "harvest_date": "2023-07-15", "status": "harvested"}),
    (1, {"name": "Wheat", "variety": "Hard Red", "location": "North Field",
         "planting_date": "2023-03-10", "harvest_date": "2023-07-30", "status": "growing"}),
    (1, {"name": "Soybeans", "variety": "Round-up Ready", "location": "East Field",
         "planting_date": "2023-05-20", "harvest_date": "2023-09-15", "status": "planted"}),
]

DEMO_TASKS: list[tuple[int, int, dict[str, Any]]] = [
    (0, 1, {"title": "Water tomato field",
            "description": "Ensure the drip irrigation system is working properly",
            "priority": "high", "completed": False}),
    (0, 2, {"title": "Harvest corn",
            "description": "Corn in the south field is ready for harvest",
            "priority": "medium", "completed": False}),
    (1, 3, {"title": "Repair fence",
            "description": "Eastern fence needs repair after the storm",
            "priority": "low", "completed": True}),
]

DEMO_EXPENSES: list[tuple[int, dict[str, Any]]] = [
    (0, {"date": "2023-05-15", "amount": 250.00, "category": "Seeds",
         "description": "Spring corn seeds"}),
    (0, {"date": "2023-05-20", "amount": 175.50, "category": "Fertilizer",
         "description": "Organic fertilizer for vegetable plots"}),
    (1, {"date": "2023-06-05", "amount": 420.75, "category": "Equipment",
         "description": "Irrigation system repairs"}),
]


def is_empty(store: RecordStore) -> bool:
    return all(store.count(kind) == 0 for kind in ENTITY_KINDS)


def seed_demo_data(store: RecordStore, today: date | None = None,
                   force: bool = False) -> dict[str, int]:
    """Insert the demo records when the store is empty.

    Args:
        store: Target record store
        today: Reference day for task due dates (default: today)
        force: Seed even when the store already holds records

    Returns:
        Number of records created per kind (all zero when skipped)
    """
    created = {kind: 0 for kind in ENTITY_KINDS}
    if not force and not is_empty(store):
        logger.info("demo seed skipped: store is not empty")
        return created

    today = today or date.today()
    farm_ids = []
    for farm in DEMO_FARMS:
        farm_ids.append(store.create("farms", dict(farm))["id"])
        created["farms"] += 1

    for farm_index, crop in DEMO_CROPS:
        store.create("crops", {**crop, "farm_id": farm_ids[farm_index]})
        created["crops"] += 1

    for farm_index, days_ahead, task in DEMO_TASKS:
        due = (today + timedelta(days=days_ahead)).isoformat()
        store.create("tasks", {**task, "farm_id": farm_ids[farm_index], "due_date": due})
        created["tasks"] += 1

    for farm_index, expense in DEMO_EXPENSES:
        store.create("expenses", {**expense, "farm_id": farm_ids[farm_index]})
        created["expenses"] += 1

    logger.info("demo seed created %s", created)
    return created
