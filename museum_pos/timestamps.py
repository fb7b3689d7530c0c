"""Creation timestamps and hour buckets attached to rows at persistence time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any, Generic, TypeVar

from .errors import DecodeError
from .mapper import ObjectMapper, Storable, build_mapper
from .sql import SqlValue, ValueKind, from_sql

T = TypeVar("T", bound=Storable)

DATE_TIME_COLUMN = "date_time"
HOUR_COLUMN = "hour"


def local_now() -> datetime:
    return datetime.now().astimezone()


class Hour(IntEnum):
    """Service-window bucket; the integer value is what gets stored."""

    ELEVEN_TO_TWELVE = 10
    TWELVE_TO_ONE = 11
    ONE_TO_TWO = 12
    TWO_TO_THREE = 13
    THREE_TO_FOUR = 14

    @classmethod
    def from_datetime(cls, moment: datetime) -> Hour:
        return _CLOCK_HOURS.get(moment.hour, cls.THREE_TO_FOUR)

    @property
    def label(self) -> str:
        return _LABELS[self]


# keyed by clock hour; anything else, 10 o'clock included, lands in the last bucket
_CLOCK_HOURS = {
    11: Hour.ELEVEN_TO_TWELVE,
    12: Hour.TWELVE_TO_ONE,
    13: Hour.ONE_TO_TWO,
    14: Hour.TWO_TO_THREE,
}

_LABELS = {
    Hour.ELEVEN_TO_TWELVE: "11am - 12pm",
    Hour.TWELVE_TO_ONE: "12pm - 1pm",
    Hour.ONE_TO_TWO: "1pm - 2pm",
    Hour.TWO_TO_THREE: "2pm - 3pm",
    Hour.THREE_TO_FOUR: "3pm - 4pm",
}


def _hour_from_row(row: Any) -> Hour:
    value = from_sql(row, HOUR_COLUMN, ValueKind.TINYINT)
    try:
        return Hour(value)
    except ValueError as exc:
        raise DecodeError(f"{value} is not between 10 and 14 (inclusive).") from exc


@dataclass(frozen=True)
class Stamped(Generic[T]):
    """An entity plus the moment it was handed to the store.

    Entities are timeless; this wrapper is where ``date_time`` and ``hour``
    come from, both on the way in and on the way out.
    """

    entity: T
    created_at: datetime
    hour: Hour

    @classmethod
    def wrap(cls, entity: T, now: datetime | None = None) -> Stamped[T]:
        moment = now if now is not None else local_now()
        return cls(entity=entity, created_at=moment, hour=Hour.from_datetime(moment.astimezone()))

    @property
    def table_name(self) -> str:
        return self.entity.table_name

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            *self.entity.fields(),
            (DATE_TIME_COLUMN, SqlValue.timestamp(self.created_at)),
            (HOUR_COLUMN, SqlValue.integer(int(self.hour), ValueKind.TINYINT)),
        ]

    def mapper(self, table_name: str | None = None) -> ObjectMapper:
        return build_mapper(self, table_name)

    @classmethod
    def decode(cls, entity_type: type[T], row: Any) -> Stamped[T]:
        created_at = from_sql(row, DATE_TIME_COLUMN, ValueKind.TIMESTAMP)
        hour = _hour_from_row(row)
        return cls(entity=entity_type.from_row(row), created_at=created_at, hour=hour)
