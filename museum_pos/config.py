"""Store configuration: where data lives, how long a dataset lasts, table names."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from .models import STORABLE_TYPES

DEFAULT_STORAGE_LOCATION = Path(".data")
PRODUCTION_MAX_AGE = timedelta(days=30)
DEVELOPMENT_MAX_AGE = timedelta(seconds=20)

_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DEFAULT_TABLES = tuple(storable.table_name for storable in STORABLE_TYPES)


@dataclass(frozen=True)
class StoreConfig:
    storage_location: Path = DEFAULT_STORAGE_LOCATION
    database_name: str = "pos.db"
    marker_name: str = "pos.marker"
    rotation_max_age: timedelta = PRODUCTION_MAX_AGE
    daily_window: timedelta = timedelta(days=1)
    table_names: Mapping[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        object.__setattr__(self, "storage_location", Path(self.storage_location))

        if self.rotation_max_age <= timedelta(0):
            raise ValueError("Rotation max age must be positive.")
        if self.daily_window <= timedelta(0):
            raise ValueError("Daily window must be positive.")

        unknown = set(self.table_names) - set(_DEFAULT_TABLES)
        if unknown:
            raise ValueError(f"Unknown tables in table_names: {', '.join(sorted(unknown))}.")

        resolved = [self.table_for(default) for default in _DEFAULT_TABLES]
        for name in resolved:
            if not _TABLE_NAME_PATTERN.match(name):
                raise ValueError(f"Invalid table name: {name!r}.")
        if len(set(resolved)) != len(resolved):
            raise ValueError("Each kind of record needs its own table.")

    @property
    def database_path(self) -> Path:
        return self.storage_location / self.database_name

    @property
    def marker_path(self) -> Path:
        return self.storage_location / self.marker_name

    def table_for(self, default_table: str) -> str:
        return self.table_names.get(default_table, default_table)

    @classmethod
    def production(cls, storage_location: str | Path = DEFAULT_STORAGE_LOCATION) -> StoreConfig:
        return cls(storage_location=Path(storage_location), rotation_max_age=PRODUCTION_MAX_AGE)

    @classmethod
    def development(cls, storage_location: str | Path = DEFAULT_STORAGE_LOCATION) -> StoreConfig:
        return cls(
            storage_location=Path(storage_location),
            rotation_max_age=DEVELOPMENT_MAX_AGE,
            log_level="DEBUG",
        )

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> StoreConfig:
        """Build a config from ``MUSEUM_POS_*`` variables, reading ``.env`` first."""

        load_dotenv(env_file)

        profile = os.environ.get("MUSEUM_POS_PROFILE", "production").strip().lower()
        storage_location = Path(
            os.environ.get("MUSEUM_POS_DATA_DIR") or DEFAULT_STORAGE_LOCATION
        )
        if profile == "production":
            config = cls.production(storage_location)
        elif profile == "development":
            config = cls.development(storage_location)
        else:
            raise ValueError("MUSEUM_POS_PROFILE must be production or development.")

        overrides: dict[str, object] = {}
        max_age_seconds = os.environ.get("MUSEUM_POS_ROTATION_MAX_AGE_SECONDS")
        if max_age_seconds:
            try:
                overrides["rotation_max_age"] = timedelta(seconds=float(max_age_seconds))
            except ValueError as exc:
                raise ValueError("MUSEUM_POS_ROTATION_MAX_AGE_SECONDS must be a number.") from exc

        log_level = os.environ.get("MUSEUM_POS_LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.strip().upper()

        return replace(config, **overrides)
