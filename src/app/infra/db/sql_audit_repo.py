from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.app.domain.models import AuditLogEntry, AuditType
from src.app.infra.db.base import AuditLogRepository
from src.app.infra.db.tables import AuditLogRow

logger = logging.getLogger(__name__)


def _row_to_entry(row: AuditLogRow) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        type=AuditType(row.type),
        actor_id=row.actor_id,
        target_type=row.target_type,
        target_id=row.target_id,
        community_id=row.community_id,
        metadata=dict(row.details or {}),
        created_at=row.created_at,
    )


class SqlAuditLogRepository(AuditLogRepository):
    def __init__(self, session: Session):
        self._session = session

    def append(
        self,
        type: AuditType,
        actor_id: Optional[str],
        target_type: str,
        target_id: str,
        metadata: Optional[dict[str, Any]] = None,
        community_id: Optional[str] = None,
    ) -> AuditLogEntry:
        row = AuditLogRow(
            type=type.value,
            actor_id=actor_id,
            target_type=target_type,
            target_id=target_id,
            community_id=community_id,
            details=dict(metadata or {}),
        )
        self._session.add(row)
        self._session.flush()
        return _row_to_entry(row)

    def list_entries(
        self,
        types: Optional[Iterable[AuditType]] = None,
        actor_id: Optional[str] = None,
        community_id: Optional[str] = None,
        target_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        stmt = select(AuditLogRow)
        if types:
            stmt = stmt.where(AuditLogRow.type.in_([t.value for t in types]))
        if actor_id is not None:
            stmt = stmt.where(AuditLogRow.actor_id == actor_id)
        if community_id is not None:
            stmt = stmt.where(AuditLogRow.community_id == community_id)
        if target_id is not None:
            stmt = stmt.where(AuditLogRow.target_id == target_id)
        stmt = stmt.order_by(AuditLogRow.created_at.desc()).limit(limit).offset(offset)
        return [_row_to_entry(row) for row in self._session.scalars(stmt)]
