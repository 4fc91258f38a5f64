"""Configuration management utilities for CropKeeper.

Provides:
- The closed enumerations shared by forms, badges and the list pipeline
- Application settings loaded from environment variables
"""

import os
from pathlib import Path
from typing import Any


class KnownValues:
    """Closed enumerations for entity fields.

    Values outside these sets are stored as given and rendered with the
    default (unstyled) badge; nothing here is used to reject input.
    """

    CROP_STATUSES = ("planted", "growing", "harvested")

    TASK_PRIORITIES = ("low", "medium", "high")

    # Status filter choices on the tasks page, mapped onto ``completed``
    TASK_STATUS_FILTERS = {
        "all": None,
        "completed": True,
        "pending": False,
    }

    EXPENSE_CATEGORIES = (
        "Seeds",
        "Fertilizer",
        "Pesticides",
        "Equipment",
        "Fuel",
        "Labor",
        "Maintenance",
        "Utilities",
        "Insurance",
        "Other",
    )

    # Badge CSS classes; anything missing falls through to "badge-default"
    STATUS_STYLES = {
        "planted": "badge-planted",
        "growing": "badge-growing",
        "harvested": "badge-harvested",
    }

    PRIORITY_STYLES = {
        "low": "badge-low",
        "medium": "badge-medium",
        "high": "badge-high",
    }

    DEFAULT_STYLE = "badge-default"

    @classmethod
    def badge_class(cls, value: Any) -> str:
        """Return the badge class for a status or priority value.

        Args:
            value: Crop status or task priority (any value)

        Returns:
            CSS class name, ``DEFAULT_STYLE`` for unknown values
        """
        if value in cls.STATUS_STYLES:
            return cls.STATUS_STYLES[value]
        return cls.PRIORITY_STYLES.get(value, cls.DEFAULT_STYLE)


class AppConfig:
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box without any configuration.

    Environment variables:
        APP_STORE: Record store backend, "sqlite" or "json" (default: sqlite)
        APP_DB_PATH: SQLite database file (default: cropkeeper.sqlite)
        APP_JSON_STORE_PATH: Local JSON store file (default: cropkeeper_local.json)
        APP_SEED_DEMO: "1" seeds the demo farms into an empty store (default: 0)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        RATE_LIMIT_WRITE: Max POST/PUT/DELETE requests per minute per IP (default: 60)
        RATE_LIMIT_DEFAULT: Max requests per minute for everything else (default: 240)
        TRUSTED_PROXIES: Comma-separated proxy IP addresses to trust for forwarded IPs
        WEATHER_CACHE_TTL: Seconds a farm's weather report is cached (default: 600)
    """

    STORE_BACKENDS = ("sqlite", "json")

    def __init__(self) -> None:
        self.store_backend = os.getenv("APP_STORE", "sqlite").strip().lower()
        self.db_path = Path(os.getenv("APP_DB_PATH", "cropkeeper.sqlite"))
        self.json_store_path = Path(
            os.getenv("APP_JSON_STORE_PATH", "cropkeeper_local.json")
        )
        self.seed_demo = os.getenv("APP_SEED_DEMO", "0").strip().lower() in (
            "1", "true", "yes",
        )
        self.api_port = int(os.getenv("APP_PORT", "8000"))
        self.api_host = os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.rate_limit_write = int(os.getenv("RATE_LIMIT_WRITE", "60"))
        self.rate_limit_default = int(os.getenv("RATE_LIMIT_DEFAULT", "240"))
        raw_proxies = os.getenv("TRUSTED_PROXIES", "")
        self.trusted_proxies: set[str] = (
            {p.strip() for p in raw_proxies.split(",") if p.strip()}
        )
        self.weather_cache_ttl = float(os.getenv("WEATHER_CACHE_TTL", "600"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables.

        Raises:
            ValueError: If APP_STORE names an unknown backend
        """
        config = cls()
        if config.store_backend not in cls.STORE_BACKENDS:
            raise ValueError(
                f"APP_STORE must be one of {', '.join(cls.STORE_BACKENDS)}, "
                f"got '{config.store_backend}'"
            )
        return config

    def store_path(self) -> Path:
        """Return the file backing the configured store backend."""
        if self.store_backend == "json":
            return self.json_store_path
        return self.db_path
