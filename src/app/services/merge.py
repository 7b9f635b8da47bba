# src/app/services/merge.py
"""
Merge engine: collapse a duplicate catalog entity into a canonical one.
"""
from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import (
    MissingTargetError,
    SelfMergeError,
    SourceNotFoundError,
    TargetNotFoundError,
)
from src.app.domain.models import (
    AuditType,
    DomainEvent,
    EntityKind,
    EventType,
    MergeResult,
)
from src.app.infra.db.session import SessionFactory, unit_of_work
from src.app.infra.db.sql_catalog_repo import CATALOG_KINDS, SqlCatalogRepository
from src.app.services.audit import record_audit
from src.app.services.events import DomainEventDispatcher

logger = logging.getLogger(__name__)


class MergeService:
    """
    Migrates every association of a source entity onto a target entity and
    deletes the source, all in one transaction.

    Where the target already has an association with the same content item,
    the target's row wins and the source row is dropped, so no (content,
    entity) pair is ever duplicated.
    """

    def __init__(self, session_factory: SessionFactory, dispatcher: DomainEventDispatcher):
        self._session_factory = session_factory
        self._dispatcher = dispatcher

    def merge(
        self,
        actor_id: Optional[str],
        kind: EntityKind,
        source_id: str,
        target_id: Optional[str],
    ) -> MergeResult:
        """
        Merge source into target.

        Args:
            actor_id: Who performs the merge
            kind: Entity kind of both source and target
            source_id: Duplicate to remove
            target_id: Canonical entity to keep

        Returns:
            MergeResult with counts of migrated and deduplicated rows

        Raises:
            MissingTargetError, SelfMergeError, SourceNotFoundError,
            TargetNotFoundError
        """
        spec = CATALOG_KINDS[kind]
        if not target_id:
            raise MissingTargetError(f"Target {spec.target_type.lower()} id is required")
        if source_id == target_id:
            raise SelfMergeError(spec.target_type)

        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, spec)
            source_row = repo.get(source_id, for_update=True)
            if source_row is None:
                raise SourceNotFoundError(spec.target_type, source_id)
            target_row = repo.get(target_id, for_update=True)
            if target_row is None:
                raise TargetNotFoundError(spec.target_type, target_id)

            source = repo.to_entity(source_row)
            target = repo.to_entity(target_row)
            migrated = 0
            deduplicated = 0

            for adapter in repo.adapters():
                for row in adapter.load_by_entity(source_id):
                    if adapter.find_for_owner(adapter.owner_of(row), target_id) is not None:
                        adapter.discard(row)
                        deduplicated += 1
                    else:
                        adapter.repoint(row, target_id)
                        migrated += 1

            # Nothing should remain; delete_with_associations clears stragglers anyway
            leftovers = repo.delete_with_associations(source_row)
            if leftovers:
                logger.warning(
                    "Merge %s -> %s removed %d unmigrated association(s)",
                    source_id,
                    target_id,
                    leftovers,
                )

            record_audit(
                session,
                type=AuditType.for_entity(kind, "MERGED"),
                actor_id=actor_id,
                target_type=spec.target_type,
                target_id=target_id,
                metadata={
                    "sourceId": source_id,
                    "sourceName": source.name,
                    "targetName": target.name,
                    "migrated": migrated,
                    "deduplicated": deduplicated,
                },
                community_id=target.community_id,
            )

        logger.info(
            "%s merged: %s (%s) -> %s (%s), migrated=%d, deduplicated=%d, actor=%s",
            spec.target_type,
            source.name,
            source_id,
            target.name,
            target_id,
            migrated,
            deduplicated,
            actor_id,
        )

        if source.created_by_id:
            self._dispatcher.publish(
                DomainEvent(
                    type=EventType.ENTITY_MERGED,
                    actor_id=actor_id,
                    scope_id=source.community_id,
                    target_user_ids=(source.created_by_id,),
                    metadata={
                        "entityKind": kind.value,
                        "entityName": source.name,
                        "targetName": target.name,
                    },
                )
            )

        return MergeResult(
            source=source,
            target=target,
            migrated=migrated,
            deduplicated=deduplicated,
        )
