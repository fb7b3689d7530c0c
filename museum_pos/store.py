"""SQLite-backed persistence layer for museum point-of-sale records."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, TypeVar

from .config import StoreConfig
from .errors import (
    DecodeError,
    InsertFailed,
    POSError,
    RotationIOError,
    SchemaCreationFailed,
    StoreUnavailable,
)
from .models import (
    STORABLE_TYPES,
    Admission,
    Donation,
    GiftShopSale,
    Membership,
    Sale,
    TransactionRecord,
)
from .rotation import archive_name, is_stale, previous_month_suffix, read_marker, write_marker
from .sql import timestamp_text
from .timestamps import Stamped, local_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreState(Enum):
    UNINITIALIZED = "uninitialized"
    FRESH = "fresh"
    LOADED = "loaded"
    ROTATED = "rotated"
    READY = "ready"


def _table_names(connection: sqlite3.Connection) -> set[str]:
    rows = connection.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
    ).fetchall()
    return {str(row["name"]) for row in rows}


class POSStore:
    """Persistence operations for sales, daily snapshots, and dataset rotation.

    One connection is held for the lifetime of the store and shared by every
    caller under ``db_lock``. Every successful write re-reads the trailing
    window for all five tables, so the daily snapshots always match what the
    database would return.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or StoreConfig()
        self._clock = clock or local_now
        self._connection: sqlite3.Connection | None = None
        self.db_lock = threading.RLock()
        self.state = StoreState.UNINITIALIZED
        self.transitions: list[StoreState] = [StoreState.UNINITIALIZED]
        self._daily: dict[type, tuple[Stamped[Any], ...]] = {
            storable: () for storable in STORABLE_TYPES
        }

    def __enter__(self) -> POSStore:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("Store is not open.")
        return self._connection

    def now(self) -> datetime:
        return self._clock()

    def table_for(self, entity_type: type) -> str:
        return self.config.table_for(entity_type.table_name)  # type: ignore[attr-defined]

    def _connect(self) -> sqlite3.Connection:
        database_path = self.config.database_path
        try:
            database_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(
                database_path,
                isolation_level=None,
                check_same_thread=False,
            )
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(f"Cannot open {database_path}: {exc}") from exc

        connection.row_factory = sqlite3.Row
        try:
            connection.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as exc:
            connection.close()
            raise StoreUnavailable(f"{database_path} is not a usable database: {exc}") from exc
        return connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self.db_lock:
            connection = self.connection
            connection.execute("BEGIN")
            try:
                yield connection
                connection.execute("COMMIT")
            except BaseException:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
                raise

    def _advance(self, state: StoreState) -> None:
        self.state = state
        self.transitions.append(state)

    def open(self) -> POSStore:
        with self.db_lock:
            if self._connection is not None:
                return self

            self._connection = self._connect()
            try:
                self._start_dataset(self._clock())
                self.refresh_daily()
            except (POSError, sqlite3.Error):
                self.close()
                raise

            self._advance(StoreState.READY)
        logger.info("Store ready (%s)", " -> ".join(state.value for state in self.transitions))
        return self

    def _start_dataset(self, now: datetime) -> None:
        created_at = read_marker(self.config.marker_path)

        if created_at is None:
            if self._has_rows():
                # rows without a marker have an unknown age; never fold them into a new dataset
                logger.warning(
                    "No dataset marker found but %s already holds rows; archiving them",
                    self.config.database_path,
                )
                self._advance(StoreState.ROTATED)
                self._rotate(now)
            else:
                logger.info("No dataset marker found; starting a new dataset in %s", self.config.storage_location)
                self._create_schemas()
                write_marker(self.config.marker_path, now)
            self._advance(StoreState.FRESH)
        elif is_stale(created_at, now, self.config.rotation_max_age):
            logger.info(
                "Dataset created %s is older than %s; archiving it",
                created_at.isoformat(),
                self.config.rotation_max_age,
            )
            self._advance(StoreState.ROTATED)
            self._rotate(now)
            self._advance(StoreState.FRESH)
        else:
            self._create_schemas()
            self._advance(StoreState.LOADED)

    def _has_rows(self) -> bool:
        existing = {name.lower() for name in _table_names(self.connection)}
        for storable in STORABLE_TYPES:
            table_name = self.table_for(storable)
            if table_name.lower() not in existing:
                continue
            row = self.connection.execute(f"SELECT EXISTS (SELECT 1 FROM {table_name}) AS found").fetchone()
            if row["found"]:
                return True
        return False

    def close(self) -> None:
        with self.db_lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    def _schema_statements(self) -> list[str]:
        return [
            Stamped.wrap(storable(), self._clock()).mapper(self.table_for(storable)).schema()
            for storable in STORABLE_TYPES
        ]

    def _create_schemas(self) -> None:
        try:
            with self._transaction() as connection:
                for statement in self._schema_statements():
                    connection.execute(statement)
        except sqlite3.Error as exc:
            raise SchemaCreationFailed(f"Unable to create tables: {exc}") from exc

    def _rotate(self, now: datetime) -> None:
        suffix = previous_month_suffix(now.astimezone().date())
        try:
            with self._transaction() as connection:
                existing = _table_names(connection)
                existing_lower = {name.lower() for name in existing}
                taken = set(existing)
                for storable in STORABLE_TYPES:
                    table_name = self.table_for(storable)
                    if table_name.lower() not in existing_lower:
                        continue
                    archived = archive_name(table_name, suffix, taken)
                    taken.add(archived)
                    connection.execute(f"ALTER TABLE {table_name} RENAME TO {archived}")
                    logger.info("Archived table %s as %s", table_name, archived)

                for statement in self._schema_statements():
                    connection.execute(statement)
        except sqlite3.Error as exc:
            raise RotationIOError(f"Unable to archive the previous dataset: {exc}") from exc

        write_marker(self.config.marker_path, now)

    def table_names(self) -> list[str]:
        with self.db_lock:
            return sorted(_table_names(self.connection))

    def wrap(self, entity: T) -> Stamped[Any]:
        return Stamped.wrap(entity, self._clock())  # type: ignore[type-var]

    def insert(self, stamped: Stamped[Any]) -> None:
        self._insert_all([stamped])

    def record_sale(self, sale: Sale) -> Stamped[Any]:
        """Store a sale together with its transaction record, under one timestamp."""

        record = sale.as_transaction_record()
        now = self._clock()
        stamped_sale = Stamped.wrap(sale, now)
        self._insert_all([Stamped.wrap(record, now), stamped_sale])
        return stamped_sale

    def _insert_all(self, rows: Iterable[Stamped[Any]]) -> None:
        statements = [
            row.mapper(self.table_for(type(row.entity))).insert_statement()
            for row in rows
        ]

        with self.db_lock:
            try:
                with self._transaction() as connection:
                    for statement in statements:
                        connection.execute(statement)
            except sqlite3.Error as exc:
                raise InsertFailed(f"Insert failed: {exc}") from exc

            logger.debug("Inserted %d row(s)", len(statements))
            self.refresh_daily()

    def select_since(self, entity_type: type[T], lookback: timedelta) -> list[Stamped[T]]:
        """Rows of ``entity_type`` created strictly after ``now - lookback``.

        Rows that cannot be decoded are logged and skipped; the remaining rows
        are still returned.
        """

        cutoff = self._clock() - lookback
        table_name = self.table_for(entity_type)
        with self.db_lock:
            rows = self.connection.execute(
                f"SELECT * FROM {table_name} WHERE date_time > :cutoff ORDER BY date_time ASC, rowid ASC",
                {"cutoff": timestamp_text(cutoff)},
            ).fetchall()

        results: list[Stamped[T]] = []
        for row in rows:
            try:
                results.append(Stamped.decode(entity_type, row))  # type: ignore[type-var]
            except DecodeError as exc:
                logger.warning("Skipping unreadable row in %s: %s", table_name, exc)
        return results

    def refresh_daily(self) -> None:
        """Re-read the trailing window; the window moves even when nothing is written."""

        with self.db_lock:
            for storable in STORABLE_TYPES:
                self._daily[storable] = tuple(self.select_since(storable, self.config.daily_window))

    def daily_admissions(self) -> tuple[Stamped[Admission], ...]:
        return self._daily[Admission]

    def daily_memberships(self) -> tuple[Stamped[Membership], ...]:
        return self._daily[Membership]

    def daily_donations(self) -> tuple[Stamped[Donation], ...]:
        return self._daily[Donation]

    def daily_gift_shop_sales(self) -> tuple[Stamped[GiftShopSale], ...]:
        return self._daily[GiftShopSale]

    def daily_transactions(self) -> tuple[Stamped[TransactionRecord], ...]:
        return self._daily[TransactionRecord]
