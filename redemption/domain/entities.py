"""
Entity kinds and enum values shared by the store, the trash and the finance layer.
"""
from enum import Enum


class EntityKind(str, Enum):
    """Every trashable entity type. Values double as audit/trash tags."""
    EMAIL = "email"
    ACCOUNT = "account"
    INCOME = "income"
    DEBT = "debt"
    CREDIT = "credit"
    RECURRING_EXPENSE = "recurring_expense"
    ONE_TIME_BILL = "one_time_bill"
    BANK = "bank"
    WISHLIST_ITEM = "wishlist_item"


# Audit actions
AUDIT_CREATE = "create"
AUDIT_UPDATE = "update"
AUDIT_DELETE = "delete"
AUDIT_RESTORE = "restore"
AUDIT_PERMANENT_DELETE = "permanent_delete"

AUDIT_ACTIONS = [
    AUDIT_CREATE,
    AUDIT_UPDATE,
    AUDIT_DELETE,
    AUDIT_RESTORE,
    AUDIT_PERMANENT_DELETE,
]

# Billing / payment cycles
CYCLE_MONTHLY = "monthly"
CYCLE_YEARLY = "yearly"
CYCLE_WEEKLY = "weekly"
CYCLE_ONETIME = "onetime"
CYCLE_ONE_TIME = "one_time"
CYCLE_LIFETIME = "lifetime"

PAYMENT_CYCLES = [CYCLE_MONTHLY, CYCLE_YEARLY, CYCLE_WEEKLY, CYCLE_ONETIME]
RECURRING_CYCLES = [CYCLE_MONTHLY, CYCLE_YEARLY, CYCLE_WEEKLY]
BILLING_CYCLES = [CYCLE_MONTHLY, CYCLE_YEARLY, CYCLE_LIFETIME, CYCLE_ONETIME]

TRIAL_TYPES = ["none", "week", "month", "custom"]
EXPENSE_CATEGORIES = ["subscription", "debt"]
BANK_NAMES = ["volksbank", "sparkasse", "volksbank_visa", "paypal"]
EMAIL_CATEGORIES = ["primary", "secondary", "temp"]
ACCOUNT_TIERS = ["free", "paid"]
AUTH_METHODS = ["none", "twofa", "passkey", "sms", "authenticator", "other"]
NEED_RATES = ["need", "can_wait", "luxury"]

BANK_NAME_LABELS = {
    "volksbank": "Volksbank",
    "sparkasse": "Sparkasse",
    "volksbank_visa": "Volksbank Visa",
    "paypal": "PayPal",
}

NEED_RATE_LABELS = {
    "need": "Need",
    "can_wait": "Can Wait",
    "luxury": "Luxury",
}

EXPENSE_CATEGORY_LABELS = {
    "subscription": "Subscriptions",
    "debt": "Debts",
}
