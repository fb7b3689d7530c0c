"""Generic CREATE TABLE / INSERT generation over ordered field lists."""

from __future__ import annotations

from typing import Any, ClassVar, Iterable, Protocol, TypeVar

from .sql import SqlValue, column_declaration, to_sql

StorableT = TypeVar("StorableT", bound="Storable")


class Storable(Protocol):
    """Anything that can describe its own columns and rebuild itself from a row."""

    table_name: ClassVar[str]

    def fields(self) -> list[tuple[str, SqlValue]]:
        ...

    @classmethod
    def from_row(cls: type[StorableT], row: Any) -> StorableT:
        ...


class ObjectMapper:
    """Ordered ``(name, value)`` pairs for one table.

    The mapper knows nothing about entity shapes; entities and the timestamp
    envelope are the only producers of field lists.
    """

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        self._fields: dict[str, SqlValue] = {}

    def add_field(self, name: str, value: SqlValue) -> ObjectMapper:
        self._fields[name] = value
        return self

    def extend(self, fields: Iterable[tuple[str, SqlValue]]) -> ObjectMapper:
        for name, value in fields:
            self.add_field(name, value)
        return self

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    def _require_fields(self) -> None:
        if not self._fields:
            raise ValueError(f"Table {self.table_name} has no fields.")

    def schema(self) -> str:
        self._require_fields()
        declarations = ", ".join(
            column_declaration(name, value) for name, value in self._fields.items()
        )
        return f"CREATE TABLE IF NOT EXISTS {self.table_name} ({declarations});"

    def insert_statement(self) -> str:
        self._require_fields()
        names = ", ".join(self._fields)
        values = ", ".join(to_sql(value) for value in self._fields.values())
        return f"INSERT INTO {self.table_name} ({names}) VALUES ({values});"


def build_mapper(storable: Storable, table_name: str | None = None) -> ObjectMapper:
    mapper = ObjectMapper(table_name or storable.table_name)
    return mapper.extend(storable.fields())
