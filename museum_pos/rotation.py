"""Dataset age tracking and archive naming for monthly rotation."""

from __future__ import annotations

import logging
import os
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from .errors import RotationIOError

logger = logging.getLogger(__name__)


def read_marker(path: Path) -> datetime | None:
    """Return when the current dataset was created, or None if unknown.

    A missing or unreadable marker means there is no existing dataset.
    """

    try:
        text = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("Could not read dataset marker %s: %s", path, exc)
        return None

    try:
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.warning("Ignoring corrupt dataset marker %s (%r)", path, text[:40])
        return None


def write_marker(path: Path, created_at: datetime) -> None:
    millis = int(created_at.timestamp() * 1000)
    temp_path = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_text(str(millis), encoding="utf-8")
        os.replace(temp_path, path)
    except OSError as exc:
        raise RotationIOError(f"Could not write dataset marker {path}: {exc}") from exc


def is_stale(created_at: datetime, now: datetime, max_age: timedelta) -> bool:
    return now - created_at > max_age


def previous_month_suffix(today: date) -> str:
    last_month = today.replace(day=1) - timedelta(days=1)
    return f"{last_month.strftime('%B')}_{last_month.year}"


def archive_name(table_name: str, suffix: str, taken: Iterable[str]) -> str:
    """``<table>_<Month>_<Year>``, numbered when an archive of that name exists."""

    taken_names = {name.lower() for name in taken}
    candidate = f"{table_name}_{suffix}"
    counter = 2
    while candidate.lower() in taken_names:
        candidate = f"{table_name}_{suffix}_{counter}"
        counter += 1
    return candidate
