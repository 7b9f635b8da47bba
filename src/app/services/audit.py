# src/app/services/audit.py
"""
Audit log writer and activity queries.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.app.domain.models import AuditLogEntry, AuditType
from src.app.infra.db.session import SessionFactory, unit_of_work
from src.app.infra.db.sql_audit_repo import SqlAuditLogRepository

logger = logging.getLogger(__name__)


def record_audit(
    session: Session,
    type: AuditType,
    actor_id: Optional[str],
    target_type: str,
    target_id: str,
    metadata: Optional[dict[str, Any]] = None,
    community_id: Optional[str] = None,
) -> Optional[AuditLogEntry]:
    """
    Append an audit entry inside the caller's transaction.

    The insert runs under a savepoint: if it fails only the savepoint is
    rolled back, the failure is logged and the primary change still commits.

    Returns:
        The stored entry, or None if the write failed
    """
    try:
        with session.begin_nested():
            return SqlAuditLogRepository(session).append(
                type=type,
                actor_id=actor_id,
                target_type=target_type,
                target_id=target_id,
                metadata=metadata,
                community_id=community_id,
            )
    except SQLAlchemyError as error:
        logger.warning(
            "Audit write failed (type=%s, target=%s %s): %s",
            type.value,
            target_type,
            target_id,
            error,
        )
        return None


class AuditLogService:
    """Read side of the audit log, for admin and community activity views."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def list_entries(
        self,
        types: Optional[Iterable[AuditType]] = None,
        actor_id: Optional[str] = None,
        community_id: Optional[str] = None,
        target_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        with unit_of_work(self._session_factory) as session:
            return SqlAuditLogRepository(session).list_entries(
                types=types,
                actor_id=actor_id,
                community_id=community_id,
                target_id=target_id,
                limit=limit,
                offset=offset,
            )
