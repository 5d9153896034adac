"""
Notification Engine: rule-based in-app notifications.

Rules (per user, live rows only):
  - bill_overdue:  unpaid one-time bill / recurring expense past its due date
  - bill_due:      otherwise, due within DUE_SOON_DAYS (today counts)
  - low_balance:   bank balance below LOW_BALANCE_THRESHOLD (rule off when unset)

Dedup: no new notification while an unread one of the same type exists for
the same (entity_type, entity_id). Reading it re-arms the rule.

Optional rollover (RECURRING_ROLLOVER_ENABLED): recurring expenses whose due
date has passed are moved to their next occurrence through the audited
update path and a recurring_created notification is emitted.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import date

from sqlalchemy.orm import Session

from redemption.application.entities import UpdateEntityUseCase
from redemption.application.finance import advance_due_date, days_until_due
from redemption.application.notifications import create_notification, has_unread
from redemption.config import Settings, get_settings
from redemption.domain.audit import AuditMetadata
from redemption.domain.entities import EntityKind
from redemption.domain.notification import (
    NOTIFICATION_BILL_DUE,
    NOTIFICATION_BILL_OVERDUE,
    NOTIFICATION_LOW_BALANCE,
    NOTIFICATION_RECURRING_CREATED,
    BillMetadata,
    LowBalanceMetadata,
    RecurringMetadata,
    bill_due_message,
    bill_overdue_message,
    low_balance_message,
    period_label,
    recurring_created_message,
)
from redemption.infrastructure.db.models import (
    User,
    OneTimeBillModel,
    RecurringExpenseModel,
    BankModel,
)
from redemption.utils.dates import utc_now

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    overdue: int = 0
    due_soon: int = 0
    low_balance: int = 0
    recurring_created: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "EngineResult") -> None:
        self.overdue += other.overdue
        self.due_soon += other.due_soon
        self.low_balance += other.low_balance
        self.recurring_created += other.recurring_created
        self.errors.extend(other.errors)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Rule runners
# ---------------------------------------------------------------------------

def _bill_candidates(db: Session, user_id: int) -> list[tuple[str, object]]:
    bills = (
        db.query(OneTimeBillModel)
        .filter(
            OneTimeBillModel.account_id == user_id,
            OneTimeBillModel.deleted_at.is_(None),
            OneTimeBillModel.is_paid.is_(False),
            OneTimeBillModel.due_date.is_not(None),
        )
        .order_by(OneTimeBillModel.id)
        .all()
    )
    recurring = (
        db.query(RecurringExpenseModel)
        .filter(
            RecurringExpenseModel.account_id == user_id,
            RecurringExpenseModel.deleted_at.is_(None),
            RecurringExpenseModel.due_date.is_not(None),
        )
        .order_by(RecurringExpenseModel.id)
        .all()
    )
    return (
        [(EntityKind.ONE_TIME_BILL.value, b) for b in bills]
        + [(EntityKind.RECURRING_EXPENSE.value, r) for r in recurring]
    )


def _run_bills(db: Session, user_id: int, today: date, settings: Settings, result: EngineResult) -> None:
    for entity_type, item in _bill_candidates(db, user_id):
        days = days_until_due(item.due_date, today)
        meta = BillMetadata(bill_id=item.id, bill_name=item.name, amount=item.amount, due_date=item.due_date)

        if days < 0:
            if has_unread(db, user_id, NOTIFICATION_BILL_OVERDUE, entity_type, item.id):
                continue
            create_notification(
                db, user_id, NOTIFICATION_BILL_OVERDUE,
                bill_overdue_message(item.name, item.amount, -days, settings.DEFAULT_CURRENCY),
                entity_type=entity_type, entity_id=item.id, metadata=meta,
            )
            result.overdue += 1
        elif days <= settings.DUE_SOON_DAYS:
            if has_unread(db, user_id, NOTIFICATION_BILL_DUE, entity_type, item.id):
                continue
            create_notification(
                db, user_id, NOTIFICATION_BILL_DUE,
                bill_due_message(item.name, item.amount, days, settings.DEFAULT_CURRENCY),
                entity_type=entity_type, entity_id=item.id, metadata=meta,
            )
            result.due_soon += 1


def _run_low_balance(db: Session, user_id: int, settings: Settings, result: EngineResult) -> None:
    threshold = settings.LOW_BALANCE_THRESHOLD
    if threshold is None:
        return
    banks = (
        db.query(BankModel)
        .filter(
            BankModel.account_id == user_id,
            BankModel.deleted_at.is_(None),
            BankModel.balance < threshold,
        )
        .order_by(BankModel.id)
        .all()
    )
    entity_type = EntityKind.BANK.value
    for bank in banks:
        if has_unread(db, user_id, NOTIFICATION_LOW_BALANCE, entity_type, bank.id):
            continue
        create_notification(
            db, user_id, NOTIFICATION_LOW_BALANCE,
            low_balance_message(bank.display_name, bank.balance, threshold, settings.DEFAULT_CURRENCY),
            entity_type=entity_type, entity_id=bank.id,
            metadata=LowBalanceMetadata(
                bank_id=bank.id, bank_name=bank.display_name, balance=bank.balance, threshold=threshold,
            ),
        )
        result.low_balance += 1


def _run_rollover(db: Session, user_id: int, today: date, result: EngineResult) -> None:
    expenses = (
        db.query(RecurringExpenseModel)
        .filter(
            RecurringExpenseModel.account_id == user_id,
            RecurringExpenseModel.deleted_at.is_(None),
            RecurringExpenseModel.due_date < today,
        )
        .order_by(RecurringExpenseModel.id)
        .all()
    )
    updater = UpdateEntityUseCase(db, commit=False)
    for expense in expenses:
        next_due = expense.due_date
        while next_due < today:
            next_due = advance_due_date(next_due, expense.cycle)

        updater.execute(
            user_id, EntityKind.RECURRING_EXPENSE, expense.id, {"due_date": next_due},
            metadata=AuditMetadata(source="rollover"),
        )

        period = period_label(next_due)
        create_notification(
            db, user_id, NOTIFICATION_RECURRING_CREATED,
            recurring_created_message(expense.name, period),
            entity_type=EntityKind.RECURRING_EXPENSE.value, entity_id=expense.id,
            metadata=RecurringMetadata(
                expense_id=expense.id, expense_name=expense.name, amount=expense.amount,
                due_date=next_due, period=period,
            ),
        )
        result.recurring_created += 1


# ---------------------------------------------------------------------------
# Main engine
# ---------------------------------------------------------------------------

class NotificationEngine:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def run(self, today: date | None = None) -> EngineResult:
        """Derive notifications for all users for the given date (one commit per user)."""
        today = today or utc_now().date()
        result = EngineResult()
        users = self.db.query(User).order_by(User.id).all()
        for user in users:
            try:
                user_result = EngineResult()
                self._run_for_user(user.id, today, user_result)
                self.db.commit()
                result.merge(user_result)
            except Exception as exc:
                self.db.rollback()
                logger.exception("Notification engine failed for user_id=%s", user.id)
                result.errors.append(f"user {user.id}: {type(exc).__name__}")

        logger.info(
            "Notification engine done: overdue=%s due_soon=%s low_balance=%s recurring_created=%s errors=%s",
            result.overdue, result.due_soon, result.low_balance, result.recurring_created, len(result.errors),
        )
        return result

    def _run_for_user(self, user_id: int, today: date, result: EngineResult) -> None:
        _run_bills(self.db, user_id, today, self.settings, result)
        _run_low_balance(self.db, user_id, self.settings, result)
        if self.settings.RECURRING_ROLLOVER_ENABLED:
            _run_rollover(self.db, user_id, today, result)
