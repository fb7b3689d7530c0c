from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

import pytest

from museum_pos.config import StoreConfig
from museum_pos.errors import EncodeError, InsertFailed, POSError, StoreUnavailable, ValidationError
from museum_pos.models import (
    Admission,
    AdmissionKind,
    Donation,
    GiftShopSale,
    Membership,
    MembershipKind,
    PaymentMethod,
    TransactionKind,
)
from museum_pos.rotation import read_marker
from museum_pos.sql import timestamp_text
from museum_pos.store import POSStore, StoreState

START = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, current: datetime) -> None:
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def _build_store(tmp_path, clock: _Clock | None = None, **config_kwargs) -> POSStore:  # type: ignore[no-untyped-def]
    config = StoreConfig(storage_location=tmp_path / "data", **config_kwargs)
    return POSStore(config, clock=clock or _Clock(START)).open()


def test_fresh_store_creates_every_table_and_marker(tmp_path) -> None:  # type: ignore[no-untyped-def]
    store = _build_store(tmp_path)

    assert store.transitions == [StoreState.UNINITIALIZED, StoreState.FRESH, StoreState.READY]
    assert store.state is StoreState.READY
    assert store.table_names() == [
        "admissions",
        "donations",
        "gift_shop_sales",
        "memberships",
        "transaction_records",
    ]
    assert read_marker(store.config.marker_path) == START
    assert store.daily_admissions() == ()
    store.close()


def test_inserted_row_appears_once_in_daily_cache(tmp_path) -> None:  # type: ignore[no-untyped-def]
    store = _build_store(tmp_path)

    stamped = store.wrap(Admission(kind=AdmissionKind.ADULT, payment_method=PaymentMethod.CASH, quantity=2))
    store.insert(stamped)

    assert store.daily_admissions() == (stamped,)
    assert store.select_since(Admission, timedelta(hours=1)) == [stamped]
    store.close()


def test_record_sale_writes_sale_and_transaction_record(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path) as store:
        sale = GiftShopSale(
            item_description="Mine lantern",
            price=10.0,
            payment_method=PaymentMethod.CREDIT_CARD,
            quantity=2,
        )
        stamped = store.record_sale(sale)

        assert store.daily_gift_shop_sales() == (stamped,)
        (record,) = store.daily_transactions()
        assert record.created_at == stamped.created_at
        assert record.entity.kind is TransactionKind.GIFT_SHOP_SALE
        assert record.entity.description == "Mine lantern"
        assert record.entity.total_cost == pytest.approx(21.71)


def test_record_sale_rejects_invalid_sales_without_writing(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path) as store:
        with pytest.raises(ValidationError):
            store.record_sale(Membership(kind=MembershipKind.INDIVIDUAL))

        count = store.connection.execute("SELECT COUNT(*) AS n FROM transaction_records").fetchone()["n"]
        assert count == 0
        assert store.daily_memberships() == ()


def test_row_exactly_at_window_start_is_excluded(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=25.0))
        clock.advance(seconds=1)
        later = store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=10.0))

        clock.advance(days=1, seconds=-1)

        assert store.select_since(Donation, timedelta(days=1)) == [later]


def test_rows_are_returned_oldest_first(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        first = store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=1.0))
        clock.advance(minutes=5)
        second = store.record_sale(Donation(payment_method=PaymentMethod.CREDIT_CARD, price=2.0))

        assert store.daily_donations() == (first, second)


def test_unreadable_rows_are_skipped_and_logged(tmp_path, caplog) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path) as store:
        good = store.record_sale(Admission(kind=AdmissionKind.SENIOR, payment_method=PaymentMethod.CASH))
        store.connection.execute(
            "INSERT INTO admissions (kind, payment_method, quantity, date_time, hour) VALUES (?, ?, ?, ?, ?)",
            ("Pirate", "Cash", 1, timestamp_text(START), 12),
        )

        with caplog.at_level(logging.WARNING, logger="museum_pos.store"):
            rows = store.select_since(Admission, timedelta(days=1))

        assert rows == [good]
        assert "Skipping unreadable row in admissions" in caplog.text


def test_failed_insert_leaves_daily_cache_unchanged(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path) as store:
        store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=5.0))
        before = store.daily_transactions()
        store.connection.execute("DROP TABLE donations")

        with pytest.raises(InsertFailed):
            store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=7.0))

        assert store.daily_transactions() == before
        assert len(store.select_since(type(before[0].entity), timedelta(days=1))) == 1


def test_unencodable_values_are_not_written(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path) as store:
        with pytest.raises(EncodeError):
            store.insert(store.wrap(Donation(payment_method=PaymentMethod.CASH, price=float("inf"))))

        assert store.select_since(Donation, timedelta(days=1)) == []


def test_reopening_young_dataset_loads_existing_rows(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        stamped = store.record_sale(Admission(kind=AdmissionKind.CHILD_6_TO_12, payment_method=PaymentMethod.CASH))

    clock.advance(hours=2)
    reopened = _build_store(tmp_path, clock)

    assert reopened.transitions == [StoreState.UNINITIALIZED, StoreState.LOADED, StoreState.READY]
    assert reopened.daily_admissions() == (stamped,)
    assert read_marker(reopened.config.marker_path) == START
    reopened.close()


def test_old_dataset_is_archived_and_replaced(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        store.record_sale(Admission(kind=AdmissionKind.ADULT, payment_method=PaymentMethod.CASH, quantity=4))

    clock.advance(days=31)
    rotated = _build_store(tmp_path, clock)

    assert rotated.transitions == [
        StoreState.UNINITIALIZED,
        StoreState.ROTATED,
        StoreState.FRESH,
        StoreState.READY,
    ]
    assert rotated.daily_admissions() == ()
    assert rotated.daily_transactions() == ()
    assert read_marker(rotated.config.marker_path) == clock.current
    assert "admissions_October_2026" in rotated.table_names()
    archived = rotated.connection.execute("SELECT quantity FROM admissions_October_2026").fetchall()
    assert [row["quantity"] for row in archived] == [4]
    assert rotated.connection.execute("SELECT COUNT(*) AS n FROM admissions").fetchone()["n"] == 0
    rotated.close()


def test_second_rotation_in_same_month_numbers_the_archive(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    _build_store(tmp_path, clock, rotation_max_age=timedelta(hours=1)).close()

    clock.advance(hours=2)
    _build_store(tmp_path, clock, rotation_max_age=timedelta(hours=1)).close()
    clock.advance(hours=2)
    store = _build_store(tmp_path, clock, rotation_max_age=timedelta(hours=1))

    names = store.table_names()
    assert "donations_September_2026" in names
    assert "donations_September_2026_2" in names
    store.close()


def test_corrupt_marker_starts_fresh_dataset(tmp_path) -> None:  # type: ignore[no-untyped-def]
    marker = tmp_path / "data" / "pos.marker"
    marker.parent.mkdir(parents=True)
    marker.write_text("not a timestamp", encoding="utf-8")

    store = _build_store(tmp_path)

    assert store.transitions[1] is StoreState.FRESH
    assert read_marker(marker) == START
    store.close()


def test_unusable_storage_location_raises_store_unavailable(tmp_path) -> None:  # type: ignore[no-untyped-def]
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = POSStore(StoreConfig(storage_location=blocker / "data"), clock=_Clock(START))

    with pytest.raises(StoreUnavailable):
        store.open()
    with pytest.raises(RuntimeError):
        store.connection


def test_custom_table_names_are_used(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with _build_store(tmp_path, table_names={"gift_shop_sales": "shop_sales"}) as store:
        store.record_sale(GiftShopSale(item_description="Pick", price=4.0, payment_method=PaymentMethod.CASH))

        assert "shop_sales" in store.table_names()
        assert "gift_shop_sales" not in store.table_names()
        assert len(store.daily_gift_shop_sales()) == 1


def test_rows_left_without_a_marker_are_archived_not_merged(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=99.0))
        marker = store.config.marker_path
    marker.unlink()

    clock.advance(hours=1)
    reopened = _build_store(tmp_path, clock)

    assert reopened.transitions == [
        StoreState.UNINITIALIZED,
        StoreState.ROTATED,
        StoreState.FRESH,
        StoreState.READY,
    ]
    assert reopened.daily_donations() == ()
    assert reopened.daily_transactions() == ()
    assert read_marker(marker) == clock.current
    archived = reopened.connection.execute("SELECT price FROM donations_September_2026").fetchall()
    assert [row["price"] for row in archived] == [99.0]
    reopened.close()


def test_empty_tables_without_a_marker_start_fresh_in_place(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        marker = store.config.marker_path
    marker.unlink()

    reopened = _build_store(tmp_path, clock)

    assert reopened.transitions == [StoreState.UNINITIALIZED, StoreState.FRESH, StoreState.READY]
    assert not any("September_2026" in name for name in reopened.table_names())
    reopened.close()


def test_concurrent_sales_share_one_store(tmp_path) -> None:  # type: ignore[no-untyped-def]
    store = _build_store(tmp_path)
    errors: list[POSError] = []

    def sell() -> None:
        for _ in range(50):
            try:
                store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=1.0))
            except POSError as exc:
                errors.append(exc)

    workers = [threading.Thread(target=sell) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert errors == []
    assert len(store.daily_donations()) == 200
    assert len(store.daily_transactions()) == 200
    count = store.connection.execute("SELECT COUNT(*) AS n FROM donations").fetchone()["n"]
    assert count == 200
    store.close()


def test_created_tables_match_entity_declarations(tmp_path) -> None:  # type: ignore[no-untyped-def]
    stamp_columns = [("date_time", "TEXT", 1), ("hour", "TINYINT", 1)]
    expected = {
        "admissions": [("kind", "TEXT", 1), ("payment_method", "TEXT", 0), ("quantity", "INT", 1)],
        "donations": [("payment_method", "TEXT", 1), ("price", "REAL", 1)],
        "gift_shop_sales": [
            ("item_description", "TEXT", 1),
            ("price", "REAL", 1),
            ("payment_method", "TEXT", 1),
            ("quantity", "INT", 1),
            ("sales_tax", "REAL", 1),
        ],
        "memberships": [("kind", "TEXT", 1), ("payment_method", "TEXT", 1), ("quantity", "INT", 1)],
        "transaction_records": [
            ("kind", "TEXT", 1),
            ("description", "TEXT", 1),
            ("quantity", "INT", 1),
            ("total_cost", "REAL", 1),
        ],
    }

    with _build_store(tmp_path) as store:
        for table_name, columns in expected.items():
            info = store.connection.execute(f"PRAGMA table_info({table_name})").fetchall()
            assert [(row["name"], row["type"], row["notnull"]) for row in info] == columns + stamp_columns


def test_refresh_daily_drops_rows_that_age_out_without_writes(tmp_path) -> None:  # type: ignore[no-untyped-def]
    clock = _Clock(START)
    with _build_store(tmp_path, clock) as store:
        store.record_sale(Donation(payment_method=PaymentMethod.CASH, price=12.0))
        clock.advance(hours=25)

        assert len(store.daily_donations()) == 1
        store.refresh_daily()

        assert store.daily_donations() == ()
        assert store.daily_transactions() == ()
