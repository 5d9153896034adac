"""
Entity registry: one EntityDefinition per EntityKind.

Everything that dispatches on kind (CRUD use cases, trash, backup, audit
naming) reads from REGISTRY. resolve_kind() turns an external tag into an
EntityKind or raises UnknownEntityTypeError.
"""
from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel

from redemption.application import schemas
from redemption.domain.entities import EntityKind
from redemption.domain.errors import UnknownEntityTypeError
from redemption.infrastructure.db.models import (
    Base,
    EmailModel,
    AccountModel,
    IncomeModel,
    DebtModel,
    CreditModel,
    RecurringExpenseModel,
    OneTimeBillModel,
    BankModel,
    WishlistItemModel,
)
from redemption.utils.money import format_money


@dataclass(frozen=True)
class EntityDefinition:
    kind: EntityKind
    model: type[Base]
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    # attribute used as the human-readable name (audit entity_name, trash)
    name_attr: str
    # key in the backup "data" map
    plural: str
    label: str
    details: Callable[[object], str]

    def name_of(self, row) -> str:
        return str(getattr(row, self.name_attr))


REGISTRY: dict[EntityKind, EntityDefinition] = {
    EntityKind.EMAIL: EntityDefinition(
        kind=EntityKind.EMAIL,
        model=EmailModel,
        create_schema=schemas.EmailCreate,
        update_schema=schemas.EmailUpdate,
        name_attr="email",
        plural="emails",
        label="Email",
        details=lambda r: r.category,
    ),
    EntityKind.ACCOUNT: EntityDefinition(
        kind=EntityKind.ACCOUNT,
        model=AccountModel,
        create_schema=schemas.AccountCreate,
        update_schema=schemas.AccountUpdate,
        name_attr="provider",
        plural="accounts",
        label="Account",
        details=lambda r: r.tier,
    ),
    EntityKind.INCOME: EntityDefinition(
        kind=EntityKind.INCOME,
        model=IncomeModel,
        create_schema=schemas.IncomeCreate,
        update_schema=schemas.IncomeUpdate,
        name_attr="source",
        plural="incomes",
        label="Income",
        details=lambda r: f"{format_money(r.amount)} / {r.cycle}",
    ),
    EntityKind.DEBT: EntityDefinition(
        kind=EntityKind.DEBT,
        model=DebtModel,
        create_schema=schemas.DebtCreate,
        update_schema=schemas.DebtUpdate,
        name_attr="name",
        plural="debts",
        label="Debt",
        details=lambda r: f"{format_money(r.remaining_amount)} remaining",
    ),
    EntityKind.CREDIT: EntityDefinition(
        kind=EntityKind.CREDIT,
        model=CreditModel,
        create_schema=schemas.CreditCreate,
        update_schema=schemas.CreditUpdate,
        name_attr="provider",
        plural="credits",
        label="Credit",
        details=lambda r: f"{format_money(r.used_amount)} used",
    ),
    EntityKind.RECURRING_EXPENSE: EntityDefinition(
        kind=EntityKind.RECURRING_EXPENSE,
        model=RecurringExpenseModel,
        create_schema=schemas.RecurringExpenseCreate,
        update_schema=schemas.RecurringExpenseUpdate,
        name_attr="name",
        plural="recurring_expenses",
        label="Recurring Expense",
        details=lambda r: f"{format_money(r.amount)} / {r.cycle}",
    ),
    EntityKind.ONE_TIME_BILL: EntityDefinition(
        kind=EntityKind.ONE_TIME_BILL,
        model=OneTimeBillModel,
        create_schema=schemas.OneTimeBillCreate,
        update_schema=schemas.OneTimeBillUpdate,
        name_attr="name",
        plural="one_time_bills",
        label="One-Time Bill",
        details=lambda r: format_money(r.amount),
    ),
    EntityKind.BANK: EntityDefinition(
        kind=EntityKind.BANK,
        model=BankModel,
        create_schema=schemas.BankCreate,
        update_schema=schemas.BankUpdate,
        name_attr="display_name",
        plural="banks",
        label="Bank",
        details=lambda r: format_money(r.balance),
    ),
    EntityKind.WISHLIST_ITEM: EntityDefinition(
        kind=EntityKind.WISHLIST_ITEM,
        model=WishlistItemModel,
        create_schema=schemas.WishlistItemCreate,
        update_schema=schemas.WishlistItemUpdate,
        name_attr="name",
        plural="wishlist_items",
        label="Wishlist Item",
        details=lambda r: format_money(r.price),
    ),
}

_missing = set(EntityKind) - set(REGISTRY)
if _missing:
    raise RuntimeError(f"Entity kinds without a registry entry: {sorted(k.value for k in _missing)}")

# Deletion order for empty-trash / replace-restore: children before parents
PURGE_ORDER: list[EntityKind] = [
    EntityKind.ACCOUNT,
    EntityKind.EMAIL,
    EntityKind.INCOME,
    EntityKind.DEBT,
    EntityKind.CREDIT,
    EntityKind.RECURRING_EXPENSE,
    EntityKind.ONE_TIME_BILL,
    EntityKind.BANK,
    EntityKind.WISHLIST_ITEM,
]

# Creation order for backup restore: parents before children
CREATE_ORDER: list[EntityKind] = [
    EntityKind.EMAIL,
    EntityKind.ACCOUNT,
    EntityKind.INCOME,
    EntityKind.DEBT,
    EntityKind.CREDIT,
    EntityKind.RECURRING_EXPENSE,
    EntityKind.ONE_TIME_BILL,
    EntityKind.BANK,
    EntityKind.WISHLIST_ITEM,
]


def get_definition(kind: EntityKind) -> EntityDefinition:
    return REGISTRY[kind]


def resolve_kind(tag) -> EntityKind:
    """"recurring_expense" / EntityKind.RECURRING_EXPENSE -> EntityKind"""
    if isinstance(tag, EntityKind):
        return tag
    try:
        return EntityKind(tag)
    except ValueError:
        raise UnknownEntityTypeError(str(tag))


def by_plural(plural: str) -> EntityKind | None:
    for kind, definition in REGISTRY.items():
        if definition.plural == plural:
            return kind
    return None
