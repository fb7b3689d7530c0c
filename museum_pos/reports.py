"""Daily report aggregates computed from the store's cached snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .models import (
    AdmissionKind,
    MembershipKind,
    PaymentMethod,
    format_currency,
)
from .timestamps import Hour, Stamped


def _entities(rows: Iterable[Stamped[Any] | Any]) -> list[Any]:
    return [row.entity if isinstance(row, Stamped) else row for row in rows]


def total_cost(rows: Iterable[Stamped[Any] | Any]) -> float:
    return sum(entity.compute_total_cost() for entity in _entities(rows))


def total_by_payment_method(rows: Iterable[Stamped[Any] | Any], method: PaymentMethod) -> float:
    return sum(
        entity.compute_total_cost()
        for entity in _entities(rows)
        if entity.matches_payment_method(method)
    )


def attendance(admissions: Iterable[Stamped[Any] | Any]) -> int:
    return sum(admission.quantity for admission in _entities(admissions))


def free_admissions(admissions: Iterable[Stamped[Any] | Any]) -> int:
    return sum(
        admission.quantity
        for admission in _entities(admissions)
        if not admission.needs_payment()
    )


def admissions_by_kind(admissions: Iterable[Stamped[Any] | Any]) -> dict[AdmissionKind, int]:
    counts = {kind: 0 for kind in AdmissionKind}
    for admission in _entities(admissions):
        counts[admission.kind] += admission.quantity
    return counts


def memberships_by_kind(memberships: Iterable[Stamped[Any] | Any]) -> dict[MembershipKind, int]:
    counts = {kind: 0 for kind in MembershipKind}
    for membership in _entities(memberships):
        counts[membership.kind] += membership.quantity
    return counts


def sales_tax_collected(gift_shop_sales: Iterable[Stamped[Any] | Any]) -> float:
    return sum(sale.compute_tax() for sale in _entities(gift_shop_sales))


def revenue_by_hour(transactions: Iterable[Stamped[Any]]) -> dict[Hour, float]:
    totals = {hour: 0.0 for hour in Hour}
    for row in transactions:
        totals[row.hour] += row.entity.compute_total_cost()
    return totals


@dataclass
class DailySummary:
    """Ordered label -> display value sections for the daily report."""

    summary: dict[str, str] = field(default_factory=dict)
    payments: dict[str, str] = field(default_factory=dict)
    admissions: dict[str, str] = field(default_factory=dict)
    memberships: dict[str, str] = field(default_factory=dict)
    hourly: dict[str, str] = field(default_factory=dict)

    def sections(self) -> dict[str, dict[str, str]]:
        return {
            "Daily Summary": self.summary,
            "Daily Payments Breakdown": self.payments,
            "Daily Admission Breakdown": self.admissions,
            "Daily Membership Sales Breakdown": self.memberships,
            "Revenue by Hour": self.hourly,
        }


_PAYMENT_SECTIONS = (
    ("Admissions", "daily_admissions"),
    ("Donations", "daily_donations"),
    ("Memberships", "daily_memberships"),
    ("Shop Sales", "daily_gift_shop_sales"),
)


def daily_summary(store: Any) -> DailySummary:
    """Build every report section from the store's daily snapshots."""

    admissions = store.daily_admissions()
    donations = store.daily_donations()
    memberships = store.daily_memberships()
    gift_shop_sales = store.daily_gift_shop_sales()
    transactions = store.daily_transactions()

    report = DailySummary()
    report.summary = {
        "Total Attendance": str(attendance(admissions)),
        "Admissions Revenue": format_currency(total_cost(admissions)),
        "Total Donations": format_currency(total_cost(donations)),
        "Membership Sales": format_currency(total_cost(memberships)),
        "Gift Shop Sales": format_currency(total_cost(gift_shop_sales)),
        "Sales Tax Collected": format_currency(sales_tax_collected(gift_shop_sales)),
        "Total Daily Revenue": format_currency(total_cost(transactions)),
    }

    for label, accessor in _PAYMENT_SECTIONS:
        rows = getattr(store, accessor)()
        for method in PaymentMethod:
            report.payments[f"{method} - {label}"] = format_currency(
                total_by_payment_method(rows, method)
            )
        if label == "Admissions":
            report.payments["Free - Admissions"] = str(free_admissions(rows))

    all_sales = [*admissions, *donations, *memberships, *gift_shop_sales]
    for method in PaymentMethod:
        report.payments[f"Total {method}"] = format_currency(
            total_by_payment_method(all_sales, method)
        )

    report.admissions = {
        str(kind): str(count) for kind, count in admissions_by_kind(admissions).items()
    }
    report.memberships = {
        str(kind): str(count) for kind, count in memberships_by_kind(memberships).items()
    }
    report.hourly = {
        hour.label: format_currency(amount)
        for hour, amount in revenue_by_hour(transactions).items()
    }
    return report
