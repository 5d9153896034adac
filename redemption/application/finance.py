"""
Financial aggregation: pure functions over already-loaded rows.

No session, no I/O. Inputs are ORM rows (or anything with the same
attributes); money is Decimal throughout and only the final totals are
rounded to cents.

Cycle normalization (monthly equivalent):
  yearly   -> amount / 12
  weekly   -> amount * 4   (flat, not 52/12)
  monthly, onetime, one_time, lifetime -> amount
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from redemption.domain.entities import (
    CYCLE_MONTHLY, CYCLE_YEARLY, CYCLE_WEEKLY, CYCLE_ONETIME, CYCLE_ONE_TIME, CYCLE_LIFETIME,
    EXPENSE_CATEGORY_LABELS,
)
from redemption.utils.dates import as_date
from redemption.utils.money import to_decimal, quantize_money

WEEKS_PER_MONTH = Decimal(4)
WEEKS_PER_YEAR = Decimal(52)
MONTHS_PER_YEAR = Decimal(12)

DEFAULT_UPCOMING_WINDOW = 7
DEFAULT_DUE_SOON_DAYS = 3
DEFAULT_TRIAL_EXPIRING_DAYS = 3

_PASS_THROUGH = {CYCLE_ONETIME, CYCLE_ONE_TIME, CYCLE_LIFETIME}


# ============================================================================
# Cycle normalization
# ============================================================================


def monthly_equivalent(amount, cycle: str) -> Decimal:
    """
    >>> monthly_equivalent(120, "yearly")
    Decimal('10')
    >>> monthly_equivalent(25, "weekly")
    Decimal('100')

    Raises:
        ValueError: unknown cycle
    """
    value = to_decimal(amount)
    if cycle == CYCLE_YEARLY:
        return value / MONTHS_PER_YEAR
    if cycle == CYCLE_WEEKLY:
        return value * WEEKS_PER_MONTH
    if cycle == CYCLE_MONTHLY or cycle in _PASS_THROUGH:
        return value
    raise ValueError(f"Unknown billing cycle: {cycle!r}")


def yearly_equivalent(amount, cycle: str) -> Decimal:
    value = to_decimal(amount)
    if cycle == CYCLE_MONTHLY:
        return value * MONTHS_PER_YEAR
    if cycle == CYCLE_WEEKLY:
        return value * WEEKS_PER_YEAR
    if cycle == CYCLE_YEARLY or cycle in _PASS_THROUGH:
        return value
    raise ValueError(f"Unknown billing cycle: {cycle!r}")


def is_live(item) -> bool:
    return getattr(item, "deleted_at", None) is None


def _amount_and_cycle(item) -> tuple[Decimal, str]:
    return to_decimal(item.amount), item.cycle


def total_monthly(items: Iterable, live_only: bool = True) -> Decimal:
    """Sum of monthly equivalents (unrounded)."""
    total = Decimal("0")
    for item in items:
        if live_only and not is_live(item):
            continue
        amount, cycle = _amount_and_cycle(item)
        total += monthly_equivalent(amount, cycle)
    return total


def total_yearly(items: Iterable, live_only: bool = True) -> Decimal:
    total = Decimal("0")
    for item in items:
        if live_only and not is_live(item):
            continue
        amount, cycle = _amount_and_cycle(item)
        total += yearly_equivalent(amount, cycle)
    return total


# ============================================================================
# Due dates
# ============================================================================


def days_until_due(due: date | datetime | str | None, today: date | datetime | None = None) -> int | None:
    """
    Calendar days from today to due, time of day ignored.

    Today -> 0, yesterday -> -1, no date -> None.
    """
    due_day = as_date(due)
    if due_day is None:
        return None
    today_day = as_date(today) if today is not None else date.today()
    return (due_day - today_day).days


def is_overdue(due, today=None) -> bool:
    days = days_until_due(due, today)
    return days is not None and days < 0


def is_due_soon(due, today=None, within: int = DEFAULT_DUE_SOON_DAYS) -> bool:
    days = days_until_due(due, today)
    return days is not None and 0 <= days <= within


def select_upcoming(items: Iterable, today=None, window: int = DEFAULT_UPCOMING_WINDOW,
                    date_attr: str = "due_date") -> list:
    """Items with 0 <= days_until_due <= window, input order kept."""
    selected = []
    for item in items:
        days = days_until_due(getattr(item, date_attr), today)
        if days is not None and 0 <= days <= window:
            selected.append(item)
    return selected


def is_trial_expiring(trial_type: str | None, trial_end, today=None,
                      within: int = DEFAULT_TRIAL_EXPIRING_DAYS) -> bool:
    if not trial_type or trial_type == "none":
        return False
    return is_due_soon(trial_end, today, within)


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance_due_date(due: date, cycle: str) -> date:
    """
    Next occurrence of a recurring due date.

    Month ends clamp (Jan 31 -> Feb 28); Feb 29 yearly -> Feb 28.

    Raises:
        ValueError: non-recurring cycle
    """
    if cycle == CYCLE_WEEKLY:
        return due + timedelta(days=7)
    if cycle == CYCLE_MONTHLY:
        return _add_months(due, 1)
    if cycle == CYCLE_YEARLY:
        return _add_months(due, 12)
    raise ValueError(f"Cycle {cycle!r} does not recur")


# ============================================================================
# Upcoming bills
# ============================================================================


@dataclass
class UpcomingBill:
    id: int
    name: str
    amount: Decimal
    due_date: date
    type: str  # "recurring" | "onetime"
    days_until_due: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount": format(self.amount, "f"),
            "due_date": self.due_date.isoformat(),
            "type": self.type,
            "days_until_due": self.days_until_due,
        }


def build_upcoming_bills(recurring: Iterable, bills: Iterable, today=None,
                         window: int = DEFAULT_UPCOMING_WINDOW) -> list[UpcomingBill]:
    """
    Live recurring expenses and live unpaid one-time bills due within the window.

    Sorted by due date, then name, then id.
    """
    upcoming: list[UpcomingBill] = []
    for origin, items in (("recurring", recurring), ("onetime", bills)):
        for item in items:
            if not is_live(item):
                continue
            if origin == "onetime" and getattr(item, "is_paid", False):
                continue
            days = days_until_due(item.due_date, today)
            if days is None or not 0 <= days <= window:
                continue
            upcoming.append(UpcomingBill(
                id=item.id,
                name=item.name,
                amount=to_decimal(item.amount),
                due_date=as_date(item.due_date),
                type=origin,
                days_until_due=days,
            ))
    upcoming.sort(key=lambda b: (b.due_date, b.name, b.id))
    return upcoming


# ============================================================================
# Dashboard summary
# ============================================================================


@dataclass
class FinanceData:
    """Everything the dashboard needs, already loaded."""
    incomes: list = field(default_factory=list)
    debts: list = field(default_factory=list)
    credits: list = field(default_factory=list)
    recurring_expenses: list = field(default_factory=list)
    one_time_bills: list = field(default_factory=list)
    banks: list = field(default_factory=list)


@dataclass
class DashboardSummary:
    total_income: Decimal
    total_expenses_without_debts: Decimal
    total_debts: Decimal
    total_expenses: Decimal
    net: Decimal
    total_credits: Decimal
    total_bank_balance: Decimal
    upcoming_bills: list[UpcomingBill]
    bank_balances: list[dict]

    def to_dict(self) -> dict:
        money = (
            "total_income", "total_expenses_without_debts", "total_debts",
            "total_expenses", "net", "total_credits", "total_bank_balance",
        )
        data = {key: format(getattr(self, key), "f") for key in money}
        data["upcoming_bills"] = [b.to_dict() for b in self.upcoming_bills]
        data["bank_balances"] = self.bank_balances
        return data


def build_dashboard_summary(data: FinanceData, today=None,
                            window: int = DEFAULT_UPCOMING_WINDOW) -> DashboardSummary:
    """
    Monthly-equivalent totals over live rows.

    total_expenses = recurring expenses + debt payments; net = income - expenses.
    Rounded to cents (half up) once, after summing.
    """
    income = total_monthly(data.incomes)
    recurring = total_monthly(data.recurring_expenses)
    debts = total_monthly(data.debts)
    expenses = recurring + debts

    credits = sum((to_decimal(c.used_amount) for c in data.credits if is_live(c)), Decimal("0"))
    live_banks = [b for b in data.banks if is_live(b)]
    bank_total = sum((to_decimal(b.balance) for b in live_banks), Decimal("0"))

    return DashboardSummary(
        total_income=quantize_money(income),
        total_expenses_without_debts=quantize_money(recurring),
        total_debts=quantize_money(debts),
        total_expenses=quantize_money(expenses),
        net=quantize_money(income - expenses),
        total_credits=quantize_money(credits),
        total_bank_balance=quantize_money(bank_total),
        upcoming_bills=build_upcoming_bills(data.recurring_expenses, data.one_time_bills, today, window),
        bank_balances=[
            {
                "id": b.id,
                "name": b.name,
                "display_name": b.display_name,
                "balance": format(quantize_money(b.balance), "f"),
            }
            for b in live_banks
        ],
    )


# ============================================================================
# Breakdowns / percentages
# ============================================================================


@dataclass
class BreakdownItem:
    name: str
    value: Decimal
    percentage: Decimal

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": format(quantize_money(self.value), "f"),
            "percentage": format(self.percentage.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP), "f"),
        }


def _with_percentages(totals: list[tuple[str, Decimal]]) -> tuple[list[BreakdownItem], Decimal]:
    grand = sum((v for _, v in totals), Decimal("0"))
    items = [
        BreakdownItem(name=name, value=value, percentage=(value / grand * 100) if grand > 0 else Decimal("0"))
        for name, value in totals
    ]
    return items, grand


def expense_breakdown_by_category(expenses: Iterable) -> tuple[list[BreakdownItem], Decimal]:
    """
    Monthly-equivalent recurring spend per category ("Subscriptions", "Debts").

    Zero categories are left out.
    """
    totals: dict[str, Decimal] = {key: Decimal("0") for key in EXPENSE_CATEGORY_LABELS}
    for e in expenses:
        if not is_live(e):
            continue
        totals[e.category] = totals.get(e.category, Decimal("0")) + monthly_equivalent(e.amount, e.cycle)
    pairs = [(EXPENSE_CATEGORY_LABELS.get(k, k), v) for k, v in totals.items() if v > 0]
    return _with_percentages(pairs)


def expense_breakdown_by_name(expenses: Iterable) -> tuple[list[BreakdownItem], Decimal]:
    """Monthly-equivalent spend per expense name, largest first."""
    totals: dict[str, Decimal] = {}
    for e in expenses:
        if not is_live(e):
            continue
        totals[e.name] = totals.get(e.name, Decimal("0")) + monthly_equivalent(e.amount, e.cycle)
    pairs = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return _with_percentages(pairs)


def credit_utilization(credit) -> Decimal:
    """used / limit as a percentage (0 when the limit is 0)."""
    limit = to_decimal(credit.total_limit)
    if limit <= 0:
        return Decimal("0")
    return to_decimal(credit.used_amount) / limit * 100


def format_percentage(value, decimals: int = 2) -> str:
    """Value is already a percentage: 5.5 -> "5.50%"."""
    exp = Decimal(1).scaleb(-decimals)
    return f"{to_decimal(value).quantize(exp, rounding=ROUND_HALF_UP)}%"


def subscriptions_monthly_total(accounts: Iterable) -> Decimal:
    """
    Monthly cost of live paid accounts.

    Lifetime / one-time purchases are not recurring spend and are left out;
    no billing cycle counts as monthly.
    """
    total = Decimal("0")
    for acc in accounts:
        if not is_live(acc) or acc.tier != "paid" or acc.price is None:
            continue
        cycle = acc.billing_cycle or CYCLE_MONTHLY
        if cycle in _PASS_THROUGH:
            continue
        total += monthly_equivalent(acc.price, cycle)
    return quantize_money(total)
