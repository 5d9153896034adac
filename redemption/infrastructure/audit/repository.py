"""
Audit Log Repository - append-only trail of entity mutations

Rows are only ever appended; there are no update or delete methods.
"""
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session

from redemption.domain.audit import FieldChange, AuditMetadata, serialize_changes
from redemption.infrastructure.db.models import AuditLogModel
from redemption.utils.dates import utc_now


class AuditLogRepository:
    """
    Repository for the audit log

    Shares the caller's session: an append becomes part of the caller's
    transaction and is rolled back with it.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        account_id: int,
        entity_type: str,
        entity_id: int,
        action: str,
        entity_name: Optional[str] = None,
        changes: Optional[List[FieldChange]] = None,
        metadata: Optional[AuditMetadata] = None,
        actor_id: Optional[int] = None,
        occurred_at: Optional[datetime] = None,
    ) -> int:
        """
        Append one audit row (flush only, no commit)

        Example:
            >>> repo = AuditLogRepository(db)
            >>> repo.append(
            ...     account_id=1,
            ...     entity_type="bank",
            ...     entity_id=7,
            ...     action="update",
            ...     entity_name="Volksbank",
            ...     changes=[FieldChange(field="balance", old=Decimal("10"), new=Decimal("12"))],
            ... )
        """
        row = AuditLogModel(
            account_id=account_id,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            action=action,
            changes_json=serialize_changes(changes),
            metadata_json=metadata.model_dump(exclude_none=True) if metadata else None,
            actor_id=actor_id,
            occurred_at=occurred_at or utc_now(),
        )
        self.db.add(row)
        self.db.flush()
        return row.id

    def for_entity(self, entity_type: str, entity_id: int, account_id: Optional[int] = None) -> List[AuditLogModel]:
        """Full history of one entity, oldest first"""
        query = self.db.query(AuditLogModel).filter(
            AuditLogModel.entity_type == entity_type,
            AuditLogModel.entity_id == entity_id,
        )
        if account_id is not None:
            query = query.filter(AuditLogModel.account_id == account_id)
        return query.order_by(AuditLogModel.occurred_at.asc(), AuditLogModel.id.asc()).all()

    def recent(self, account_id: int, limit: int = 50) -> List[AuditLogModel]:
        """Newest first"""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.account_id == account_id)
            .order_by(AuditLogModel.occurred_at.desc(), AuditLogModel.id.desc())
            .limit(limit)
            .all()
        )

    def by_action(self, account_id: int, action: str, limit: int = 50) -> List[AuditLogModel]:
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.account_id == account_id, AuditLogModel.action == action)
            .order_by(AuditLogModel.occurred_at.desc(), AuditLogModel.id.desc())
            .limit(limit)
            .all()
        )

    def by_date_range(self, account_id: int, start: datetime, end: datetime) -> List[AuditLogModel]:
        """Rows with start <= occurred_at <= end, oldest first"""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.account_id == account_id,
                AuditLogModel.occurred_at >= start,
                AuditLogModel.occurred_at <= end,
            )
            .order_by(AuditLogModel.occurred_at.asc(), AuditLogModel.id.asc())
            .all()
        )

    def count(self, account_id: Optional[int] = None) -> int:
        query = self.db.query(AuditLogModel)
        if account_id is not None:
            query = query.filter(AuditLogModel.account_id == account_id)
        return query.count()
