"""Persistence and reporting for the museum point-of-sale app."""

from .config import StoreConfig
from .errors import (
    DecodeError,
    EncodeError,
    InsertFailed,
    MarshalError,
    POSError,
    RotationIOError,
    SchemaCreationFailed,
    StoreUnavailable,
    ValidationError,
)
from .models import (
    DEFAULT_SALES_TAX_PERCENT,
    Admission,
    AdmissionKind,
    Donation,
    GiftShopSale,
    Membership,
    MembershipKind,
    PaymentMethod,
    TransactionKind,
    TransactionRecord,
    format_currency,
)
from .reports import DailySummary, daily_summary
from .store import POSStore, StoreState
from .timestamps import Hour, Stamped

__all__ = [
    "Admission",
    "AdmissionKind",
    "DEFAULT_SALES_TAX_PERCENT",
    "DailySummary",
    "DecodeError",
    "Donation",
    "EncodeError",
    "GiftShopSale",
    "Hour",
    "InsertFailed",
    "MarshalError",
    "Membership",
    "MembershipKind",
    "POSError",
    "POSStore",
    "PaymentMethod",
    "RotationIOError",
    "SchemaCreationFailed",
    "Stamped",
    "StoreConfig",
    "StoreState",
    "StoreUnavailable",
    "TransactionKind",
    "TransactionRecord",
    "ValidationError",
    "daily_summary",
    "format_currency",
]
