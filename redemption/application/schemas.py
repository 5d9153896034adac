"""
Input models for every trashable entity (create / update)

Create models carry defaults; update models are all-optional and are read
with model_dump(exclude_unset=True), so only the keys the caller sent are
applied. Required text fields reject an explicit null on update.
"""
from datetime import date
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import (
    AnyHttpUrl, BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter,
    StringConstraints, ValidationInfo, field_validator,
)

from redemption.utils.validation import validate_and_normalize_amount


def _parse_money(value):
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    return validate_and_normalize_amount(value, max_decimal_places=2)


_http_url = TypeAdapter(AnyHttpUrl)


def _parse_url(value):
    if value is None:
        return value
    try:
        _http_url.validate_python(value)
    except ValueError:
        raise ValueError("Must be a valid URL")
    # keep the caller's spelling, no trailing-slash normalization
    return value


Money = Annotated[Decimal, BeforeValidator(_parse_money)]
PositiveMoney = Annotated[Decimal, BeforeValidator(_parse_money), Field(ge=Decimal("0.01"))]
NonNegativeMoney = Annotated[Decimal, BeforeValidator(_parse_money), Field(ge=Decimal("0"))]
Percentage = Annotated[Decimal, Field(ge=Decimal("0"), le=Decimal("100"))]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Url = Annotated[str, BeforeValidator(_parse_url)]
EmailAddress = Annotated[
    str, StringConstraints(strip_whitespace=True, to_lower=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
]

EmailCategory = Literal["primary", "secondary", "temp"]
AccountTier = Literal["free", "paid"]
BillingCycle = Literal["monthly", "yearly", "lifetime", "onetime"]
AuthMethod = Literal["none", "twofa", "passkey", "sms", "authenticator", "other"]
PaymentCycle = Literal["monthly", "yearly", "weekly", "onetime"]
RecurringCycle = Literal["monthly", "yearly", "weekly"]
TrialType = Literal["none", "week", "month", "custom"]
ExpenseCategory = Literal["subscription", "debt"]
BankName = Literal["volksbank", "sparkasse", "volksbank_visa", "paypal"]
NeedRate = Literal["need", "can_wait", "luxury"]


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ============================================================================
# Accounts
# ============================================================================


class EmailCreate(_Input):
    email: EmailAddress
    alias: str | None = None
    category: EmailCategory = "primary"
    tier: AccountTier = "free"
    price: NonNegativeMoney | None = Field(default=None, validate_default=True)
    billing_cycle: BillingCycle | None = None
    notes: str | None = None

    @field_validator("price")
    @classmethod
    def paid_tier_needs_price(cls, v, info: ValidationInfo):
        if info.data.get("tier") == "paid" and (v is None or v <= 0):
            raise ValueError("Paid tier requires a price greater than 0")
        return v


class EmailUpdate(_Input):
    email: EmailAddress = None
    alias: str | None = None
    category: EmailCategory = None
    tier: AccountTier = None
    price: NonNegativeMoney | None = None
    billing_cycle: BillingCycle | None = None
    notes: str | None = None


class AccountCreate(_Input):
    provider: Name
    email_id: int
    tier: AccountTier = "free"
    price: NonNegativeMoney | None = None
    due_date: date | None = None
    billing_cycle: BillingCycle | None = None
    auth_methods: list[AuthMethod] = Field(default_factory=lambda: ["none"])
    username: str | None = None
    linked_bank_id: int | None = None
    notes: str | None = None


class AccountUpdate(_Input):
    provider: Name = None
    email_id: int = None
    tier: AccountTier = None
    price: NonNegativeMoney | None = None
    due_date: date | None = None
    billing_cycle: BillingCycle | None = None
    auth_methods: list[AuthMethod] = None
    username: str | None = None
    linked_bank_id: int | None = None
    notes: str | None = None


# ============================================================================
# Finance
# ============================================================================


class IncomeCreate(_Input):
    source: Name
    amount: PositiveMoney
    cycle: PaymentCycle
    next_payment_date: date | None = None
    notes: str | None = None


class IncomeUpdate(_Input):
    source: Name = None
    amount: PositiveMoney = None
    cycle: PaymentCycle = None
    next_payment_date: date | None = None
    notes: str | None = None


class DebtCreate(_Input):
    name: Name
    amount: PositiveMoney
    remaining_amount: NonNegativeMoney
    pay_to: Name
    cycle: PaymentCycle
    payment_month: str | None = None
    due_date: date | None = None
    months_remaining: int | None = Field(default=None, ge=0)
    notes: str | None = None


class DebtUpdate(_Input):
    name: Name = None
    amount: PositiveMoney = None
    remaining_amount: NonNegativeMoney = None
    pay_to: Name = None
    cycle: PaymentCycle = None
    payment_month: str | None = None
    due_date: date | None = None
    months_remaining: int | None = Field(default=None, ge=0)
    notes: str | None = None


class CreditCreate(_Input):
    provider: Name
    total_limit: PositiveMoney
    used_amount: NonNegativeMoney = Decimal("0")
    interest_rate: Percentage
    due_date: date | None = None
    notes: str | None = None


class CreditUpdate(_Input):
    provider: Name = None
    total_limit: PositiveMoney = None
    used_amount: NonNegativeMoney = None
    interest_rate: Percentage = None
    due_date: date | None = None
    notes: str | None = None


class RecurringExpenseCreate(_Input):
    name: Name
    amount: PositiveMoney
    due_date: date | None = None
    cycle: RecurringCycle
    trial_type: TrialType = "none"
    trial_end_date: date | None = None
    category: ExpenseCategory
    linked_credit_id: int | None = None
    linked_debt_id: int | None = None
    linked_bank_id: int | None = None
    notes: str | None = None


class RecurringExpenseUpdate(_Input):
    name: Name = None
    amount: PositiveMoney = None
    due_date: date | None = None
    cycle: RecurringCycle = None
    trial_type: TrialType = None
    trial_end_date: date | None = None
    category: ExpenseCategory = None
    linked_credit_id: int | None = None
    linked_debt_id: int | None = None
    linked_bank_id: int | None = None
    notes: str | None = None


class OneTimeBillCreate(_Input):
    name: Name
    amount: PositiveMoney
    pay_to: Name
    due_date: date | None = None
    is_paid: bool = False
    linked_bank_id: int | None = None
    notes: str | None = None


class OneTimeBillUpdate(_Input):
    name: Name = None
    amount: PositiveMoney = None
    pay_to: Name = None
    due_date: date | None = None
    is_paid: bool = None
    linked_bank_id: int | None = None
    notes: str | None = None


class BankCreate(_Input):
    name: BankName
    display_name: Name
    balance: Money = Decimal("0")
    notes: str | None = None


class BankUpdate(_Input):
    name: BankName = None
    display_name: Name = None
    balance: Money = None
    notes: str | None = None


# ============================================================================
# Wishlist
# ============================================================================


class WishlistItemCreate(_Input):
    name: Name
    price: NonNegativeMoney
    where_to_buy: Name
    need_rate: NeedRate
    reason: str | None = None
    links: list[Url] = Field(default_factory=list)
    image_url: Url | None = None


class WishlistItemUpdate(_Input):
    name: Name = None
    price: NonNegativeMoney = None
    where_to_buy: Name = None
    need_rate: NeedRate = None
    reason: str | None = None
    links: list[Url] = None
    image_url: Url | None = None
