"""
Entity use cases: create / update / soft-delete / restore / permanent delete / empty trash.

Every mutation writes its audit row through AuditLogRepository on the same
session and commits once, so the mutation and its audit row land together
or not at all.

Soft-delete and restore check their precondition inside the UPDATE
(WHERE deleted_at IS NULL / IS NOT NULL) and look at the rowcount, so two
racing requests produce one success and one error.

Email -> Account is the only owning relation:
  - soft-deleting an email soft-deletes its live accounts (same deleted_at)
  - restoring the email restores the accounts with that same deleted_at
  - an account cannot be restored while its email is in the trash
  - permanently deleting an email deletes its accounts first

Account providers are unique per owner. A paid account with a price adds its
recurring expense or one-time bill in the same transaction.
"""
import logging
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session

from redemption.application.registry import (
    EntityDefinition, PURGE_ORDER, get_definition, resolve_kind,
)
from redemption.application.notifications import create_notification
from redemption.domain.audit import (
    AuditMetadata, FieldChange, compute_changes, to_json_value,
)
from redemption.domain.entities import (
    EntityKind,
    AUDIT_CREATE,
    AUDIT_UPDATE,
    AUDIT_DELETE,
    AUDIT_RESTORE,
    AUDIT_PERMANENT_DELETE,
)
from redemption.domain.errors import (
    NotFoundError,
    InvalidStateError,
    AlreadyInTrashError,
    NotInTrashError,
    ValidationError,
)
from redemption.domain.notification import (
    NOTIFICATION_RECURRING_CREATED,
    RecurringMetadata,
    period_label,
    recurring_created_message,
)
from redemption.infrastructure.audit.repository import AuditLogRepository
from redemption.infrastructure.db.models import AccountModel, EmailModel
from redemption.utils.dates import utc_now

logger = logging.getLogger(__name__)

# Bookkeeping columns never accepted from input and never diffed
SYSTEM_FIELDS = ("id", "account_id", "created_at", "updated_at", "deleted_at")

DANGLING_LINK = "—"


# ============================================================================
# Helpers
# ============================================================================


def field_errors_from(exc: PydanticValidationError) -> dict[str, str]:
    """pydantic errors -> {"field": "message"} (first message per field wins)."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "_form"
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(loc, msg)
    return errors


def validate_input(definition: EntityDefinition, data: dict, partial: bool = False) -> dict:
    """
    Validate raw input against the kind's create/update model.

    Raises:
        ValidationError: with per-field messages
    """
    schema = definition.update_schema if partial else definition.create_schema
    try:
        parsed = schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(field_errors_from(exc))
    return parsed.model_dump(exclude_unset=partial)


def domain_fields(row) -> dict:
    """Column values of a row without the bookkeeping columns."""
    return {
        col.key: getattr(row, col.key)
        for col in row.__table__.columns
        if col.key not in SYSTEM_FIELDS
    }


def entity_to_dict(row) -> dict:
    """Row -> JSON-safe dict (Decimal as string, dates ISO)."""
    return {col.key: to_json_value(getattr(row, col.key)) for col in row.__table__.columns}


def get_entity(db: Session, account_id: int, kind, entity_id: int, include_deleted: bool = False):
    """
    Fetch one row of the given kind.

    Raises:
        NotFoundError: no such row (or it is trashed and include_deleted is False)
    """
    definition = get_definition(resolve_kind(kind))
    model = definition.model
    row = db.query(model).filter(model.id == entity_id, model.account_id == account_id).first()
    if row is None or (row.deleted_at is not None and not include_deleted):
        raise NotFoundError(f"{definition.label} not found")
    return row


def list_live(db: Session, account_id: int, kind) -> list:
    """Live rows, newest first."""
    model = get_definition(resolve_kind(kind)).model
    return (
        db.query(model)
        .filter(model.account_id == account_id, model.deleted_at.is_(None))
        .order_by(model.created_at.desc(), model.id.desc())
        .all()
    )


def list_deleted(db: Session, account_id: int, kind) -> list:
    """Trashed rows, most recently deleted first."""
    model = get_definition(resolve_kind(kind)).model
    return (
        db.query(model)
        .filter(model.account_id == account_id, model.deleted_at.is_not(None))
        .order_by(model.deleted_at.desc(), model.id.asc())
        .all()
    )


def link_label(db: Session, account_id: int, kind, ref_id: int | None) -> str:
    """Name of a referenced live row, or "—" when the link is empty or dangling."""
    if ref_id is None:
        return DANGLING_LINK
    definition = get_definition(resolve_kind(kind))
    model = definition.model
    row = db.query(model).filter(
        model.id == ref_id,
        model.account_id == account_id,
        model.deleted_at.is_(None),
    ).first()
    if row is None:
        return DANGLING_LINK
    return definition.name_of(row)


def _check_email_link(db: Session, account_id: int, email_id: int) -> None:
    email = db.query(EmailModel).filter(
        EmailModel.id == email_id,
        EmailModel.account_id == account_id,
        EmailModel.deleted_at.is_(None),
    ).first()
    if email is None:
        raise ValidationError({"email_id": "Email not found"})


def _check_email_unique(db: Session, account_id: int, address: str, exclude_id: int | None = None) -> None:
    query = db.query(EmailModel.id).filter(
        EmailModel.account_id == account_id,
        EmailModel.email == address,
    )
    if exclude_id is not None:
        query = query.filter(EmailModel.id != exclude_id)
    if query.first() is not None:
        raise ValidationError({"email": "Email already exists"})


def _check_provider_unique(db: Session, account_id: int, provider: str, exclude_id: int | None = None) -> None:
    query = db.query(AccountModel.id).filter(
        AccountModel.account_id == account_id,
        AccountModel.provider == provider,
    )
    if exclude_id is not None:
        query = query.filter(AccountModel.id != exclude_id)
    if query.first() is not None:
        raise ValidationError({"provider": f"An account with provider \"{provider}\" already exists"})


def _check_references(db: Session, account_id: int, kind: EntityKind, fields: dict, exclude_id: int | None = None):
    if kind == EntityKind.ACCOUNT and "email_id" in fields:
        _check_email_link(db, account_id, fields["email_id"])
    if kind == EntityKind.ACCOUNT and "provider" in fields:
        _check_provider_unique(db, account_id, fields["provider"], exclude_id)
    if kind == EntityKind.EMAIL and "email" in fields:
        _check_email_unique(db, account_id, fields["email"], exclude_id)


class _EntityUseCase:
    """
    Shared plumbing: audit repository + commit/rollback.

    commit=False leaves the transaction open (flush only) for callers that
    batch several use cases into one transaction, e.g. backup restore.
    """

    def __init__(self, db: Session, commit: bool = True):
        self.db = db
        self.commit = commit
        self.audit = AuditLogRepository(db)

    def _finish(self) -> None:
        if self.commit:
            self.db.commit()
        else:
            self.db.flush()

    def _abort(self) -> None:
        if self.commit:
            self.db.rollback()


# ============================================================================
# Create / update
# ============================================================================


class CreateEntityUseCase(_EntityUseCase):
    def execute(
        self,
        account_id: int,
        kind,
        data: dict,
        actor_id: int | None = None,
        metadata: AuditMetadata | None = None,
        entity_id: int | None = None,
        notify: bool = True,
        link_finance: bool = True,
    ):
        """
        Validate and insert a row, audit action "create".

        entity_id pins the primary key (backup restore keeps ids stable).
        notify=False skips the recurring_created notification.
        link_finance=False skips the finance entry a paid account brings along.

        Raises:
            ValidationError: malformed input or broken reference
            UnknownEntityTypeError: unknown kind tag
        """
        kind = resolve_kind(kind)
        definition = get_definition(kind)
        fields = validate_input(definition, data)

        try:
            _check_references(self.db, account_id, kind, fields)

            row = definition.model(account_id=account_id, **fields)
            if entity_id is not None:
                row.id = entity_id
            self.db.add(row)
            self.db.flush()

            self.audit.append(
                account_id=account_id,
                entity_type=kind.value,
                entity_id=row.id,
                entity_name=definition.name_of(row),
                action=AUDIT_CREATE,
                metadata=metadata,
                actor_id=actor_id,
            )

            if notify and kind == EntityKind.RECURRING_EXPENSE:
                _notify_recurring_created(self.db, account_id, row)
            if link_finance and kind == EntityKind.ACCOUNT:
                _add_account_finance_entry(self.db, account_id, row, actor_id)

            self._finish()
        except Exception:
            self._abort()
            raise

        logger.info("Created %s id=%s account_id=%s", kind.value, row.id, account_id)
        return row


def _notify_recurring_created(db: Session, account_id: int, row) -> None:
    period = period_label(row.due_date or utc_now().date())
    create_notification(
        db,
        user_id=account_id,
        type=NOTIFICATION_RECURRING_CREATED,
        message=recurring_created_message(row.name, period),
        entity_type=EntityKind.RECURRING_EXPENSE.value,
        entity_id=row.id,
        metadata=RecurringMetadata(
            expense_id=row.id,
            expense_name=row.name,
            amount=row.amount,
            due_date=row.due_date,
            period=period,
        ),
    )


def _add_account_finance_entry(db: Session, account_id: int, account, actor_id: int | None):
    """
    A paid account with a price brings its cost into finance.

    monthly/yearly -> recurring expense, onetime/lifetime -> one-time bill.
    Runs inside the caller's transaction; the entry gets its own audit row.
    """
    if account.tier != "paid" or not account.price or account.price <= 0:
        return None

    common = {
        "name": account.provider,
        "amount": account.price,
        "due_date": account.due_date,
        "linked_bank_id": account.linked_bank_id,
        "notes": f"Auto-added from account: {account.provider}",
    }
    if account.billing_cycle in ("monthly", "yearly"):
        kind = EntityKind.RECURRING_EXPENSE
        data = {**common, "cycle": account.billing_cycle, "category": "subscription"}
    elif account.billing_cycle in ("onetime", "lifetime"):
        kind = EntityKind.ONE_TIME_BILL
        data = {**common, "pay_to": account.provider}
    else:
        return None

    entry = CreateEntityUseCase(db, commit=False).execute(
        account_id, kind, data, actor_id=actor_id,
        metadata=AuditMetadata(cascade_from=f"{EntityKind.ACCOUNT.value}:{account.id}"),
        notify=False,
    )
    logger.info("Added %s id=%s for account id=%s", kind.value, entry.id, account.id)
    return entry


class UpdateEntityUseCase(_EntityUseCase):
    def execute(
        self,
        account_id: int,
        kind,
        entity_id: int,
        data: dict,
        actor_id: int | None = None,
        metadata: AuditMetadata | None = None,
    ) -> tuple[object, list[FieldChange]]:
        """
        Apply the fields that actually changed, audit action "update".

        No changed field -> nothing written, no audit row, empty change list.

        Raises:
            NotFoundError: missing row
            AlreadyInTrashError: row is in the trash
            ValidationError: malformed input or broken reference
        """
        kind = resolve_kind(kind)
        definition = get_definition(kind)
        row = get_entity(self.db, account_id, kind, entity_id, include_deleted=True)
        if row.deleted_at is not None:
            raise AlreadyInTrashError(f"{definition.label} is in the trash")

        fields = validate_input(definition, data, partial=True)
        changes = compute_changes(domain_fields(row), fields)
        if not changes:
            return row, []
        if kind == EntityKind.BANK and any(c.field == "balance" for c in changes):
            changes.append(FieldChange(field="last_balance_update", old=row.last_balance_update, new=utc_now()))

        try:
            changed = {c.field: c.new for c in changes}
            _check_references(self.db, account_id, kind, changed, exclude_id=row.id)

            for change in changes:
                setattr(row, change.field, change.new)
            self.db.flush()

            self.audit.append(
                account_id=account_id,
                entity_type=kind.value,
                entity_id=row.id,
                entity_name=definition.name_of(row),
                action=AUDIT_UPDATE,
                changes=changes,
                metadata=metadata,
                actor_id=actor_id,
            )
            self._finish()
        except Exception:
            self._abort()
            raise

        return row, changes


# ============================================================================
# Soft delete / restore
# ============================================================================


class SoftDeleteEntityUseCase(_EntityUseCase):
    def execute(self, account_id: int, kind, entity_id: int, actor_id: int | None = None) -> datetime:
        """
        Move a live row to the trash, audit action "delete".

        Returns the deleted_at stamp.

        Raises:
            NotFoundError: no such row
            AlreadyInTrashError: the row is already in the trash
        """
        kind = resolve_kind(kind)
        definition = get_definition(kind)
        model = definition.model
        now = utc_now()

        try:
            result = self.db.execute(
                update(model)
                .where(
                    model.id == entity_id,
                    model.account_id == account_id,
                    model.deleted_at.is_(None),
                )
                .values(deleted_at=now)
            )
            if result.rowcount == 0:
                # NotFoundError when the row does not exist at all
                get_entity(self.db, account_id, kind, entity_id, include_deleted=True)
                raise AlreadyInTrashError(f"{definition.label} is already in the trash")

            row = self.db.get(model, entity_id)
            self.audit.append(
                account_id=account_id,
                entity_type=kind.value,
                entity_id=entity_id,
                entity_name=definition.name_of(row),
                action=AUDIT_DELETE,
                changes=[FieldChange(field="deleted_at", old=None, new=now)],
                actor_id=actor_id,
                occurred_at=now,
            )

            if kind == EntityKind.EMAIL:
                self._cascade_delete_accounts(account_id, entity_id, now, actor_id)

            self._finish()
        except Exception:
            self._abort()
            raise

        logger.info("Soft-deleted %s id=%s account_id=%s", kind.value, entity_id, account_id)
        return now

    def _cascade_delete_accounts(self, account_id: int, email_id: int, now: datetime, actor_id: int | None):
        accounts = (
            self.db.query(AccountModel)
            .filter(
                AccountModel.account_id == account_id,
                AccountModel.email_id == email_id,
                AccountModel.deleted_at.is_(None),
            )
            .all()
        )
        if not accounts:
            return
        ids = [a.id for a in accounts]
        self.db.execute(
            update(AccountModel)
            .where(AccountModel.id.in_(ids), AccountModel.deleted_at.is_(None))
            .values(deleted_at=now)
        )
        cascade = AuditMetadata(cascade_from=f"{EntityKind.EMAIL.value}:{email_id}")
        for acc in accounts:
            self.audit.append(
                account_id=account_id,
                entity_type=EntityKind.ACCOUNT.value,
                entity_id=acc.id,
                entity_name=acc.provider,
                action=AUDIT_DELETE,
                changes=[FieldChange(field="deleted_at", old=None, new=now)],
                metadata=cascade,
                actor_id=actor_id,
                occurred_at=now,
            )


class RestoreEntityUseCase(_EntityUseCase):
    def execute(self, account_id: int, kind, entity_id: int, actor_id: int | None = None):
        """
        Bring a trashed row back, audit action "restore".

        Raises:
            NotFoundError: no such row
            NotInTrashError: the row is live
            InvalidStateError: an account whose email is still in the trash
        """
        kind = resolve_kind(kind)
        definition = get_definition(kind)
        model = definition.model

        row = get_entity(self.db, account_id, kind, entity_id, include_deleted=True)
        if row.deleted_at is None:
            raise NotInTrashError(f"{definition.label} is not in the trash")

        if kind == EntityKind.ACCOUNT:
            email = self.db.get(EmailModel, row.email_id)
            if email is not None and email.deleted_at is not None:
                raise InvalidStateError("Restore the email of this account first")

        old_deleted_at = row.deleted_at
        try:
            result = self.db.execute(
                update(model)
                .where(
                    model.id == entity_id,
                    model.account_id == account_id,
                    model.deleted_at.is_not(None),
                )
                .values(deleted_at=None)
            )
            if result.rowcount == 0:
                raise NotInTrashError(f"{definition.label} is not in the trash")

            self.audit.append(
                account_id=account_id,
                entity_type=kind.value,
                entity_id=entity_id,
                entity_name=definition.name_of(row),
                action=AUDIT_RESTORE,
                changes=[FieldChange(field="deleted_at", old=old_deleted_at, new=None)],
                actor_id=actor_id,
            )

            if kind == EntityKind.EMAIL:
                self._cascade_restore_accounts(account_id, entity_id, old_deleted_at, actor_id)

            self._finish()
        except Exception:
            self._abort()
            raise

        logger.info("Restored %s id=%s account_id=%s", kind.value, entity_id, account_id)
        return row

    def _cascade_restore_accounts(self, account_id: int, email_id: int, deleted_at: datetime, actor_id: int | None):
        # only the accounts trashed together with the email
        accounts = (
            self.db.query(AccountModel)
            .filter(
                AccountModel.account_id == account_id,
                AccountModel.email_id == email_id,
                AccountModel.deleted_at == deleted_at,
            )
            .all()
        )
        if not accounts:
            return
        ids = [a.id for a in accounts]
        self.db.execute(
            update(AccountModel)
            .where(AccountModel.id.in_(ids), AccountModel.deleted_at.is_not(None))
            .values(deleted_at=None)
        )
        cascade = AuditMetadata(cascade_from=f"{EntityKind.EMAIL.value}:{email_id}")
        for acc in accounts:
            self.audit.append(
                account_id=account_id,
                entity_type=EntityKind.ACCOUNT.value,
                entity_id=acc.id,
                entity_name=acc.provider,
                action=AUDIT_RESTORE,
                changes=[FieldChange(field="deleted_at", old=deleted_at, new=None)],
                metadata=cascade,
                actor_id=actor_id,
            )


# ============================================================================
# Permanent delete
# ============================================================================


def purge_entity(db: Session, audit: AuditLogRepository, account_id: int, kind: EntityKind, row,
                 actor_id: int | None, metadata: AuditMetadata | None = None) -> int:
    """
    Physically delete one row (and, for an email, its accounts first).

    Returns the number of rows removed.
    """
    removed = 0
    if kind == EntityKind.EMAIL:
        children = (
            db.query(AccountModel)
            .filter(AccountModel.account_id == account_id, AccountModel.email_id == row.id)
            .all()
        )
        cascade = AuditMetadata(
            cascade_from=f"{EntityKind.EMAIL.value}:{row.id}",
            source=metadata.source if metadata else None,
        )
        for child in children:
            removed += purge_entity(db, audit, account_id, EntityKind.ACCOUNT, child, actor_id, cascade)
        # children must be gone before the parent row
        db.flush()

    definition = get_definition(kind)
    audit.append(
        account_id=account_id,
        entity_type=kind.value,
        entity_id=row.id,
        entity_name=definition.name_of(row),
        action=AUDIT_PERMANENT_DELETE,
        changes=None,
        metadata=metadata,
        actor_id=actor_id,
    )
    db.delete(row)
    return removed + 1


class PermanentDeleteEntityUseCase(_EntityUseCase):
    def execute(self, account_id: int, kind, entity_id: int, actor_id: int | None = None,
                metadata: AuditMetadata | None = None) -> int:
        """
        Physically remove a trashed row, audit action "permanent_delete".

        Raises:
            NotFoundError: no such row
            InvalidStateError: the row is live (soft-delete it first)
        """
        kind = resolve_kind(kind)
        definition = get_definition(kind)
        row = get_entity(self.db, account_id, kind, entity_id, include_deleted=True)
        if row.deleted_at is None:
            raise InvalidStateError(f"{definition.label} must be in the trash before permanent deletion")

        try:
            removed = purge_entity(self.db, self.audit, account_id, kind, row, actor_id, metadata)
            self._finish()
        except Exception:
            self._abort()
            raise

        logger.info("Permanently deleted %s id=%s account_id=%s", kind.value, entity_id, account_id)
        return removed


class EmptyTrashUseCase(_EntityUseCase):
    """
    Permanently delete everything in the owner's trash.

    One transaction per kind; a failing kind is rolled back, logged and
    reported in "errors" while the remaining kinds still run.
    """

    def execute(self, account_id: int, actor_id: int | None = None) -> dict:
        deleted: dict[str, int] = {}
        errors: dict[str, str] = {}

        for kind in PURGE_ORDER:
            definition = get_definition(kind)
            try:
                rows = list_deleted(self.db, account_id, kind)
                count = 0
                for row in rows:
                    count += purge_entity(self.db, self.audit, account_id, kind, row, actor_id)
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("Empty trash failed for %s account_id=%s", kind.value, account_id)
                errors[kind.value] = f"Failed to delete {definition.plural}"
                continue
            if count:
                deleted[kind.value] = count

        total = sum(deleted.values())
        logger.info("Emptied trash account_id=%s total=%s errors=%s", account_id, total, len(errors))
        return {"deleted": deleted, "total": total, "errors": errors}
