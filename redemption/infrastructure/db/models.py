"""
SQLAlchemy ORM models

Every trashable table carries account_id, created_at, updated_at and a
nullable deleted_at (None = live, set = in trash).
"""
from decimal import Decimal
from datetime import date as date_type, datetime
from sqlalchemy import (
    JSON, String, Integer, Text, TIMESTAMP, Date, Boolean, Numeric, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from redemption.infrastructure.db.session import Base
from redemption.utils.dates import utc_now


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(precision=12, scale=2)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Plugin allow-list, e.g. ["documents-hub"]
    enabled_plugins: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False)


class TrashableMixin:
    """Columns shared by every soft-deletable entity"""

    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True, index=True)


# ============================================================================
# Accounts (emails + linked service accounts)
# ============================================================================


class EmailModel(TrashableMixin, Base):
    __tablename__ = "emails"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    alias: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="primary")  # primary, secondary, temp
    tier: Mapped[str] = mapped_column(String(10), nullable=False, default="free")  # free, paid
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    billing_cycle: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("account_id", "email", name="uq_emails_account_email"),
    )


class AccountModel(TrashableMixin, Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    tier: Mapped[str] = mapped_column(String(10), nullable=False, default="free")
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    billing_cycle: Mapped[str | None] = mapped_column(String(20), nullable=True)
    auth_methods: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Owning link: an account lives and dies with its email
    email_id: Mapped[int] = mapped_column(ForeignKey("emails.id"), nullable=False, index=True)
    # Non-owning link, may dangle
    linked_bank_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


# ============================================================================
# Finance
# ============================================================================


class IncomeModel(TrashableMixin, Base):
    __tablename__ = "incomes"

    id: Mapped[int] = mapped_column(primary_key=True)
    source: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    cycle: Mapped[str] = mapped_column(String(20), nullable=False)  # monthly, yearly, weekly, onetime
    next_payment_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class DebtModel(TrashableMixin, Base):
    __tablename__ = "debts"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)  # payment per cycle
    remaining_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    pay_to: Mapped[str] = mapped_column(String(255), nullable=False)
    cycle: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_month: Mapped[str | None] = mapped_column(String(20), nullable=True)
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    months_remaining: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class CreditModel(TrashableMixin, Base):
    __tablename__ = "credits"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    total_limit: Mapped[Decimal] = mapped_column(Money, nullable=False)
    used_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(precision=5, scale=2), nullable=False)  # 0-100
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class RecurringExpenseModel(TrashableMixin, Base):
    __tablename__ = "recurring_expenses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True, index=True)
    cycle: Mapped[str] = mapped_column(String(20), nullable=False)  # monthly, yearly, weekly
    trial_type: Mapped[str] = mapped_column(String(10), nullable=False, default="none")
    trial_end_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # subscription, debt

    # Non-owning links, may dangle
    linked_credit_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    linked_debt_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    linked_bank_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class OneTimeBillModel(TrashableMixin, Base):
    __tablename__ = "one_time_bills"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    pay_to: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date_type | None] = mapped_column(Date, nullable=True, index=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    linked_bank_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class BankModel(TrashableMixin, Base):
    __tablename__ = "banks"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)  # volksbank, sparkasse, volksbank_visa, paypal
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))  # may be negative
    last_balance_update: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class WishlistItemModel(TrashableMixin, Base):
    __tablename__ = "wishlist_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    where_to_buy: Mapped[str] = mapped_column(String(255), nullable=False)
    need_rate: Mapped[str] = mapped_column(String(10), nullable=False)  # need, can_wait, luxury
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    links: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


# ============================================================================
# Audit / notifications / documents
# ============================================================================


class AuditLogModel(Base):
    """
    Append-only trail of every mutation to a trashable entity.

    Written in the same transaction as the mutation it describes.
    """
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    entity_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # [{"field": ..., "old": ..., "new": ...}, ...]
    changes_json: Mapped[list | None] = mapped_column(JsonType, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JsonType, nullable=True)

    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False, index=True)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    entity_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_notifications_dedup", "user_id", "type", "entity_type", "entity_id"),
    )


class DocumentModel(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="application/pdf")
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
