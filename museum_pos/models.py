"""Sale records for admissions, donations, memberships and the gift shop."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from .errors import ValidationError
from .sql import SqlValue, ValueKind, from_sql

DEFAULT_SALES_TAX_PERCENT = 8.55


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


class _Labeled(Enum):
    """Enum whose value is the canonical label stored in the database."""

    def __str__(self) -> str:
        return str(self.value)


class PaymentMethod(_Labeled):
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"


class TransactionKind(_Labeled):
    ADMISSION = "Admission"
    MEMBERSHIP = "Membership"
    DONATION = "Donation"
    GIFT_SHOP_SALE = "Gift Shop Sale"


class AdmissionKind(_Labeled):
    ADULT = "Adult"
    SENIOR = "Senior"
    CHILD_6_TO_12 = "Child (6-12)"
    CHILD_UNDER_6 = "Child (Under 6)"
    PFSP_MEMBER = "PFSP Member"
    RESIDENT = "Silver Plume Resident"

    @property
    def price(self) -> float:
        return _ADMISSION_PRICES[self]

    @property
    def is_free(self) -> bool:
        return self.price == 0.0

    @property
    def description(self) -> str:
        if self.is_free:
            return f"{self.value} - Free"
        return f"{self.value} - {format_currency(self.price)}"


_ADMISSION_PRICES = {
    AdmissionKind.ADULT: 8.0,
    AdmissionKind.SENIOR: 5.0,
    AdmissionKind.CHILD_6_TO_12: 3.0,
    AdmissionKind.CHILD_UNDER_6: 0.0,
    AdmissionKind.PFSP_MEMBER: 0.0,
    AdmissionKind.RESIDENT: 0.0,
}


class MembershipKind(_Labeled):
    FAMILY = "Family"
    INDIVIDUAL = "Individual"
    SENIOR_FAMILY = "Senior Family (60+)"
    SENIOR_INDIVIDUAL = "Senior Individual (60+)"
    LIFETIME_MEMBER = "Life Member"

    @property
    def price(self) -> float:
        return _MEMBERSHIP_PRICES[self]


_MEMBERSHIP_PRICES = {
    MembershipKind.FAMILY: 40.0,
    MembershipKind.INDIVIDUAL: 25.0,
    MembershipKind.SENIOR_FAMILY: 15.0,
    MembershipKind.SENIOR_INDIVIDUAL: 25.0,
    MembershipKind.LIFETIME_MEMBER: 750.0,
}


def _payment_label(method: PaymentMethod | None) -> str:
    return str(method) if method is not None else "No payment"


def _is_amount(value: float) -> bool:
    return math.isfinite(value) and value >= 0


class _SelfValidating:
    def problems(self) -> list[str]:
        raise NotImplementedError

    def is_valid(self) -> bool:
        return not self.problems()

    def validate(self) -> None:
        problems = self.problems()
        if problems:
            raise ValidationError(" ".join(problems))


@dataclass(frozen=True)
class TransactionRecord(_SelfValidating):
    """Normalized summary of any sale, used for uniform reporting."""

    table_name: ClassVar[str] = "transaction_records"

    kind: TransactionKind = TransactionKind.ADMISSION
    description: str = ""
    quantity: int = 1
    total_cost: float = 0.0

    def compute_total_cost(self) -> float:
        return self.total_cost

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.quantity < 1:
            problems.append("Quantity must be at least 1.")
        if not _is_amount(self.total_cost):
            problems.append("Total cost cannot be negative.")
        return problems

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            ("kind", SqlValue.label(self.kind)),
            ("description", SqlValue.text(self.description)),
            ("quantity", SqlValue.integer(self.quantity)),
            ("total_cost", SqlValue.real(self.total_cost)),
        ]

    @classmethod
    def from_row(cls, row: Any) -> TransactionRecord:
        return cls(
            kind=from_sql(row, "kind", ValueKind.LABEL, label_type=TransactionKind),
            description=from_sql(row, "description", ValueKind.TEXT),
            quantity=from_sql(row, "quantity", ValueKind.INT),
            total_cost=from_sql(row, "total_cost", ValueKind.REAL),
        )

    def __str__(self) -> str:
        return f"{self.kind}: {self.description} x {self.quantity} = {format_currency(self.total_cost)}"


@dataclass(frozen=True)
class Admission(_SelfValidating):
    table_name: ClassVar[str] = "admissions"

    kind: AdmissionKind = AdmissionKind.ADULT
    payment_method: PaymentMethod | None = None
    quantity: int = 1

    def needs_payment(self) -> bool:
        return not self.kind.is_free

    def compute_total_cost(self) -> float:
        return self.quantity * self.kind.price

    def matches_payment_method(self, method: PaymentMethod) -> bool:
        return self.payment_method is method

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.needs_payment() and self.payment_method is None:
            problems.append(f"{self.kind} admission requires a payment method.")
        if self.quantity < 1:
            problems.append("Quantity must be at least 1.")
        return problems

    def as_transaction_record(self) -> TransactionRecord:
        self.validate()
        return TransactionRecord(
            kind=TransactionKind.ADMISSION,
            description=self.kind.description,
            quantity=self.quantity,
            total_cost=self.compute_total_cost(),
        )

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            ("kind", SqlValue.label(self.kind)),
            ("payment_method", SqlValue.label(self.payment_method, nullable=True)),
            ("quantity", SqlValue.integer(self.quantity)),
        ]

    @classmethod
    def from_row(cls, row: Any) -> Admission:
        return cls(
            kind=from_sql(row, "kind", ValueKind.LABEL, label_type=AdmissionKind),
            payment_method=from_sql(
                row,
                "payment_method",
                ValueKind.LABEL,
                nullable=True,
                label_type=PaymentMethod,
            ),
            quantity=from_sql(row, "quantity", ValueKind.INT),
        )

    def __str__(self) -> str:
        if not self.needs_payment():
            return f"{self.quantity} x {self.kind} admission - Free"
        return (
            f"{self.quantity} x {self.kind} admission ({_payment_label(self.payment_method)})"
            f" - {format_currency(self.compute_total_cost())}"
        )


@dataclass(frozen=True)
class Donation(_SelfValidating):
    table_name: ClassVar[str] = "donations"

    payment_method: PaymentMethod | None = None
    price: float = 0.0

    def compute_total_cost(self) -> float:
        return self.price

    def matches_payment_method(self, method: PaymentMethod) -> bool:
        return self.payment_method is method

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.payment_method is None:
            problems.append("Donations require a payment method.")
        if not _is_amount(self.price):
            problems.append("Donation amount cannot be negative.")
        return problems

    def as_transaction_record(self) -> TransactionRecord:
        self.validate()
        return TransactionRecord(
            kind=TransactionKind.DONATION,
            description="Donation",
            quantity=1,
            total_cost=self.price,
        )

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            ("payment_method", SqlValue.label(self.payment_method)),
            ("price", SqlValue.real(self.price)),
        ]

    @classmethod
    def from_row(cls, row: Any) -> Donation:
        return cls(
            payment_method=from_sql(row, "payment_method", ValueKind.LABEL, label_type=PaymentMethod),
            price=from_sql(row, "price", ValueKind.REAL),
        )

    def __str__(self) -> str:
        return f"Donation ({_payment_label(self.payment_method)}) - {format_currency(self.price)}"


@dataclass(frozen=True)
class Membership(_SelfValidating):
    table_name: ClassVar[str] = "memberships"

    kind: MembershipKind = MembershipKind.FAMILY
    payment_method: PaymentMethod | None = None
    quantity: int = 1

    def compute_total_cost(self) -> float:
        return self.quantity * self.kind.price

    def matches_payment_method(self, method: PaymentMethod) -> bool:
        return self.payment_method is method

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.payment_method is None:
            problems.append("Memberships require a payment method.")
        if self.quantity < 1:
            problems.append("Quantity must be at least 1.")
        return problems

    def as_transaction_record(self) -> TransactionRecord:
        self.validate()
        return TransactionRecord(
            kind=TransactionKind.MEMBERSHIP,
            description=str(self.kind),
            quantity=self.quantity,
            total_cost=self.compute_total_cost(),
        )

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            ("kind", SqlValue.label(self.kind)),
            ("payment_method", SqlValue.label(self.payment_method)),
            ("quantity", SqlValue.integer(self.quantity)),
        ]

    @classmethod
    def from_row(cls, row: Any) -> Membership:
        return cls(
            kind=from_sql(row, "kind", ValueKind.LABEL, label_type=MembershipKind),
            payment_method=from_sql(row, "payment_method", ValueKind.LABEL, label_type=PaymentMethod),
            quantity=from_sql(row, "quantity", ValueKind.INT),
        )

    def __str__(self) -> str:
        return (
            f"{self.quantity} x {self.kind} membership ({_payment_label(self.payment_method)})"
            f" - {format_currency(self.compute_total_cost())}"
        )


@dataclass(frozen=True)
class GiftShopSale(_SelfValidating):
    table_name: ClassVar[str] = "gift_shop_sales"

    item_description: str = ""
    price: float = 0.0
    payment_method: PaymentMethod | None = None
    quantity: int = 1
    sales_tax_percent: float = DEFAULT_SALES_TAX_PERCENT

    def pre_tax_cost(self) -> float:
        return self.price * self.quantity

    def compute_tax(self) -> float:
        return self.pre_tax_cost() * (self.sales_tax_percent / 100.0)

    def compute_total_cost(self) -> float:
        return self.pre_tax_cost() + self.compute_tax()

    def matches_payment_method(self, method: PaymentMethod) -> bool:
        return self.payment_method is method

    def problems(self) -> list[str]:
        problems: list[str] = []
        if self.payment_method is None:
            problems.append("Gift shop sales require a payment method.")
        if self.quantity < 1:
            problems.append("Quantity must be at least 1.")
        if not _is_amount(self.price):
            problems.append("Item price cannot be negative.")
        if not _is_amount(self.sales_tax_percent):
            problems.append("Sales tax cannot be negative.")
        return problems

    def as_transaction_record(self) -> TransactionRecord:
        self.validate()
        return TransactionRecord(
            kind=TransactionKind.GIFT_SHOP_SALE,
            description=self.item_description.strip() or str(TransactionKind.GIFT_SHOP_SALE),
            quantity=self.quantity,
            total_cost=self.compute_total_cost(),
        )

    def fields(self) -> list[tuple[str, SqlValue]]:
        return [
            ("item_description", SqlValue.text(self.item_description)),
            ("price", SqlValue.real(self.price)),
            ("payment_method", SqlValue.label(self.payment_method)),
            ("quantity", SqlValue.integer(self.quantity)),
            ("sales_tax", SqlValue.real(self.sales_tax_percent)),
        ]

    @classmethod
    def from_row(cls, row: Any) -> GiftShopSale:
        return cls(
            item_description=from_sql(row, "item_description", ValueKind.TEXT),
            price=from_sql(row, "price", ValueKind.REAL),
            payment_method=from_sql(row, "payment_method", ValueKind.LABEL, label_type=PaymentMethod),
            quantity=from_sql(row, "quantity", ValueKind.INT),
            sales_tax_percent=from_sql(row, "sales_tax", ValueKind.REAL),
        )

    def __str__(self) -> str:
        return (
            f"{self.quantity} x {self.item_description or 'Item'} ({_payment_label(self.payment_method)})"
            f" - {format_currency(self.compute_total_cost())} incl. tax"
        )


Sale = Union[Admission, Donation, Membership, GiftShopSale]

STORABLE_TYPES: tuple[type, ...] = (
    Admission,
    Donation,
    GiftShopSale,
    Membership,
    TransactionRecord,
)
