"""Column declarations plus SQL literal encoding and row decoding."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import DecodeError, EncodeError

NOT_NULL = "NOT NULL"


class ValueKind(Enum):
    BOOLEAN = "boolean"
    TINYINT = "tinyint"
    SMALLINT = "smallint"
    INT = "int"
    BIGINT = "bigint"
    REAL = "real"
    DOUBLE = "double"
    TEXT = "text"
    TIMESTAMP = "timestamp"
    LABEL = "label"


_SQL_TYPES: dict[ValueKind, str] = {
    ValueKind.BOOLEAN: "TINYINT",
    ValueKind.TINYINT: "TINYINT",
    ValueKind.SMALLINT: "SMALLINT",
    ValueKind.INT: "INT",
    ValueKind.BIGINT: "BIGINT",
    ValueKind.REAL: "REAL",
    ValueKind.DOUBLE: "DOUBLE",
    ValueKind.TEXT: "TEXT",
    ValueKind.TIMESTAMP: "TEXT",
    ValueKind.LABEL: "TEXT",
}

_INTEGER_KINDS = frozenset(
    {ValueKind.TINYINT, ValueKind.SMALLINT, ValueKind.INT, ValueKind.BIGINT}
)
_FLOAT_KINDS = frozenset({ValueKind.REAL, ValueKind.DOUBLE})


@dataclass(frozen=True)
class SqlValue:
    """One storable value tagged with its kind and nullability.

    Nullability belongs to the field, not to the value: an optional field that
    currently holds a value still declares a nullable column.
    """

    kind: ValueKind
    value: Any
    nullable: bool = False

    @classmethod
    def boolean(cls, value: bool | None, nullable: bool = False) -> SqlValue:
        return cls(ValueKind.BOOLEAN, value, nullable)

    @classmethod
    def integer(
        cls,
        value: int | None,
        kind: ValueKind = ValueKind.INT,
        nullable: bool = False,
    ) -> SqlValue:
        if kind not in _INTEGER_KINDS:
            raise ValueError(f"{kind} is not an integer kind.")
        return cls(kind, value, nullable)

    @classmethod
    def real(
        cls,
        value: float | None,
        kind: ValueKind = ValueKind.REAL,
        nullable: bool = False,
    ) -> SqlValue:
        if kind not in _FLOAT_KINDS:
            raise ValueError(f"{kind} is not a floating point kind.")
        return cls(kind, value, nullable)

    @classmethod
    def text(cls, value: str | None, nullable: bool = False) -> SqlValue:
        return cls(ValueKind.TEXT, value, nullable)

    @classmethod
    def timestamp(cls, value: datetime | None, nullable: bool = False) -> SqlValue:
        return cls(ValueKind.TIMESTAMP, value, nullable)

    @classmethod
    def label(cls, value: Enum | None, nullable: bool = False) -> SqlValue:
        return cls(ValueKind.LABEL, value, nullable)


def column_declaration(field_name: str, value: SqlValue) -> str:
    sql_type = _SQL_TYPES[value.kind]
    if value.nullable:
        return f"{field_name} {sql_type}"
    return f"{field_name} {sql_type} {NOT_NULL}"


def _quote(text: str) -> str:
    escaped = text.replace("'", "''")
    return f"'{escaped}'"


def timestamp_text(moment: datetime) -> str:
    """RFC 3339 text in UTC with fixed microsecond precision.

    A fixed offset and width keep lexicographic order equal to time order, which
    the windowed selects rely on.
    """

    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _encode_error(value: SqlValue) -> EncodeError:
    return EncodeError(
        f"Cannot encode {type(value.value).__name__} value {value.value!r} as {value.kind.value}."
    )


def to_sql(value: SqlValue) -> str:
    raw = value.value
    kind = value.kind

    if raw is None:
        if value.nullable:
            return "NULL"
        raise EncodeError(f"A {kind.value} value is required but missing.")

    if kind is ValueKind.BOOLEAN:
        if not isinstance(raw, bool):
            raise _encode_error(value)
        return "TRUE" if raw else "FALSE"

    if kind in _INTEGER_KINDS:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise _encode_error(value)
        return str(int(raw))

    if kind in _FLOAT_KINDS:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise _encode_error(value)
        if not math.isfinite(raw):
            raise _encode_error(value)
        return repr(float(raw))

    if kind is ValueKind.TEXT:
        if not isinstance(raw, str):
            raise _encode_error(value)
        return _quote(raw)

    if kind is ValueKind.TIMESTAMP:
        if not isinstance(raw, datetime):
            raise _encode_error(value)
        return _quote(timestamp_text(raw))

    if not isinstance(raw, Enum):
        raise _encode_error(value)
    return _quote(str(raw.value))


def from_sql(
    row: Any,
    column: str,
    kind: ValueKind,
    *,
    nullable: bool = False,
    label_type: type[Enum] | None = None,
) -> Any:
    """Read ``column`` from a sqlite3.Row (or mapping) as a value of ``kind``."""

    if kind is ValueKind.LABEL and label_type is None:
        raise TypeError("label_type is required for label columns.")

    try:
        raw = row[column]
    except (IndexError, KeyError) as exc:
        raise DecodeError(f"Column {column!r} is missing from the row.") from exc

    if raw is None:
        if nullable:
            return None
        raise DecodeError(f"Column {column!r} expected {kind.value}, got NULL.")

    def mismatch() -> DecodeError:
        return DecodeError(
            f"Column {column!r} expected {kind.value}, got {type(raw).__name__} {raw!r}."
        )

    if kind is ValueKind.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        raise mismatch()

    if kind in _INTEGER_KINDS:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise mismatch()
        return raw

    if kind in _FLOAT_KINDS:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise mismatch()
        return float(raw)

    if not isinstance(raw, str):
        raise mismatch()

    if kind is ValueKind.TEXT:
        return raw

    if kind is ValueKind.TIMESTAMP:
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise DecodeError(f"Column {column!r} holds an invalid timestamp {raw!r}.") from exc
        if parsed.tzinfo is None:
            raise DecodeError(f"Column {column!r} holds a timestamp without an offset: {raw!r}.")
        return parsed

    try:
        return label_type(raw)  # type: ignore[misc]
    except ValueError as exc:
        raise DecodeError(
            f"Column {column!r} holds {raw!r}, which is not a known {label_type.__name__}."
        ) from exc
