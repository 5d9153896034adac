"""
Notification domain: types, metadata tagged union, message builders.
"""
from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from redemption.utils.money import format_money


# Engine-produced
NOTIFICATION_BILL_DUE = "bill_due"
NOTIFICATION_BILL_OVERDUE = "bill_overdue"
NOTIFICATION_LOW_BALANCE = "low_balance"
NOTIFICATION_RECURRING_CREATED = "recurring_created"
NOTIFICATION_PAYMENT_REMINDER = "payment_reminder"
# CRUD feedback
NOTIFICATION_ITEM_CREATED = "item_created"
NOTIFICATION_ITEM_UPDATED = "item_updated"
NOTIFICATION_ITEM_DELETED = "item_deleted"
NOTIFICATION_ITEM_RESTORED = "item_restored"

NOTIFICATION_TYPES = [
    NOTIFICATION_BILL_DUE,
    NOTIFICATION_BILL_OVERDUE,
    NOTIFICATION_LOW_BALANCE,
    NOTIFICATION_RECURRING_CREATED,
    NOTIFICATION_PAYMENT_REMINDER,
    NOTIFICATION_ITEM_CREATED,
    NOTIFICATION_ITEM_UPDATED,
    NOTIFICATION_ITEM_DELETED,
    NOTIFICATION_ITEM_RESTORED,
    "info",
    "success",
    "warning",
    "error",
]

NOTIFICATION_TITLES = {
    NOTIFICATION_BILL_DUE: "Bill Due Soon",
    NOTIFICATION_BILL_OVERDUE: "Bill Overdue",
    NOTIFICATION_LOW_BALANCE: "Low Balance Alert",
    NOTIFICATION_RECURRING_CREATED: "Recurring Entry Created",
    NOTIFICATION_PAYMENT_REMINDER: "Payment Reminder",
    NOTIFICATION_ITEM_CREATED: "Item Created",
    NOTIFICATION_ITEM_UPDATED: "Item Updated",
    NOTIFICATION_ITEM_DELETED: "Item Deleted",
    NOTIFICATION_ITEM_RESTORED: "Item Restored",
    "info": "Information",
    "success": "Success",
    "warning": "Warning",
    "error": "Error",
}


# ---------------------------------------------------------------------------
# Metadata (closed union, discriminated by "kind")
# ---------------------------------------------------------------------------

class BillMetadata(BaseModel):
    kind: Literal["bill"] = "bill"
    bill_id: int
    bill_name: str
    amount: Decimal
    due_date: date | None = None


class LowBalanceMetadata(BaseModel):
    kind: Literal["low_balance"] = "low_balance"
    bank_id: int
    bank_name: str
    balance: Decimal
    threshold: Decimal


class RecurringMetadata(BaseModel):
    kind: Literal["recurring"] = "recurring"
    expense_id: int
    expense_name: str
    amount: Decimal
    due_date: date | None = None
    period: str  # "March 2026"


class ItemMetadata(BaseModel):
    kind: Literal["item"] = "item"
    entity_type: str
    entity_id: int
    entity_name: str | None = None


NotificationMetadata = Annotated[
    Union[BillMetadata, LowBalanceMetadata, RecurringMetadata, ItemMetadata],
    Field(discriminator="kind"),
]

_metadata_adapter = TypeAdapter(NotificationMetadata)


def dump_metadata(metadata) -> dict | None:
    """Model -> JSON-safe dict (storage boundary)."""
    if metadata is None:
        return None
    return metadata.model_dump(mode="json")


def load_metadata(raw: dict | None):
    """JSON dict -> typed model; None stays None."""
    if raw is None:
        return None
    return _metadata_adapter.validate_python(raw)


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------

def bill_due_message(name: str, amount, days_until_due: int, currency: str = "EUR") -> str:
    money = format_money(amount, currency)
    if days_until_due == 0:
        return f"{name} ({money}) is due today!"
    if days_until_due == 1:
        return f"{name} ({money}) is due tomorrow."
    return f"{name} ({money}) is due in {days_until_due} days."


def bill_overdue_message(name: str, amount, days_overdue: int, currency: str = "EUR") -> str:
    money = format_money(amount, currency)
    suffix = "s" if days_overdue > 1 else ""
    return f"{name} ({money}) is {days_overdue} day{suffix} overdue!"


def low_balance_message(bank_name: str, balance, threshold, currency: str = "EUR") -> str:
    return (
        f"{bank_name} balance ({format_money(balance, currency)}) "
        f"is below {format_money(threshold, currency)}."
    )


def period_label(value: date) -> str:
    """date(2026, 3, 1) -> "March 2026" """
    return value.strftime("%B %Y")


def recurring_created_message(name: str, period: str) -> str:
    return f"New recurring entry created for {name} ({period})."
