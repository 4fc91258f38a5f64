"""
Store package -- CropKeeper record persistence and entity services.

Re-exports key entry points so callers can do::

    from store import SqliteRecordStore, Services
"""

from store.base import RecordNotFoundError, RecordStore, StoreError
from store.json_store import JsonRecordStore
from store.seed import seed_demo_data
from store.services import (
    CropService,
    EntityService,
    ExpenseService,
    FarmInUseError,
    FarmService,
    FormValidationError,
    Services,
    TaskService,
    dashboard_summary,
)
from store.sqlite_store import SqliteRecordStore

__all__ = [
    "CropService",
    "EntityService",
    "ExpenseService",
    "FarmInUseError",
    "FarmService",
    "FormValidationError",
    "JsonRecordStore",
    "RecordNotFoundError",
    "RecordStore",
    "Services",
    "SqliteRecordStore",
    "StoreError",
    "TaskService",
    "dashboard_summary",
    "seed_demo_data",
]
