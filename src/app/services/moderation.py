# src/app/services/moderation.py
"""
Moderation engine for shared-namespace catalog entities (ingredients, tags).

Every operation runs in one transaction. Validation happens before the first
write; the audit entry is written in the same transaction and the domain
event, if any, is published only after commit.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from src.app.config import settings
from src.app.domain.errors import (
    DuplicateNameError,
    InvalidNameError,
    InvalidReferenceError,
    InvalidStateError,
    LimitExceededError,
    MissingReasonError,
    NotFoundError,
    ScopeMismatchError,
)
from src.app.domain.models import (
    AuditType,
    CatalogEntity,
    DomainEvent,
    EntityKind,
    EntityStatus,
    EventType,
    TagScope,
    can_transition,
    normalize_name,
)
from src.app.infra.db.session import SessionFactory, unit_of_work
from src.app.infra.db.sql_catalog_repo import CATALOG_KINDS, EntityRow, SqlCatalogRepository
from src.app.services.audit import record_audit
from src.app.services.events import DomainEventDispatcher

logger = logging.getLogger(__name__)


class ModerationService:
    """
    Create, rename, approve, reject and delete catalog entities of one kind.

    Responsibilities:
    - Keep names normalized and unique within their namespace
    - Enforce the PENDING -> APPROVED / PENDING -> deleted state machine
    - Audit every committed change
    - Notify the entity's creator of approve/reject outcomes
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        dispatcher: DomainEventDispatcher,
        kind: EntityKind,
        max_community_tags: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._spec = CATALOG_KINDS[kind]
        self.max_community_tags = (
            settings.MAX_COMMUNITY_TAGS if max_community_tags is None else max_community_tags
        )

    @property
    def kind(self) -> EntityKind:
        return self._spec.kind

    @property
    def target_type(self) -> str:
        return self._spec.target_type

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _normalize(self, name: Optional[str]) -> str:
        normalized = normalize_name(name)
        if not normalized:
            raise InvalidNameError(f"{self.target_type} name is required")
        if self.kind == EntityKind.TAG and not (
            settings.TAG_NAME_MIN_LENGTH <= len(normalized) <= settings.TAG_NAME_MAX_LENGTH
        ):
            raise InvalidNameError(
                f"Tag name must be between {settings.TAG_NAME_MIN_LENGTH} "
                f"and {settings.TAG_NAME_MAX_LENGTH} characters"
            )
        return normalized

    def _load(
        self,
        repo: SqlCatalogRepository,
        entity_id: str,
        community_id: Optional[str] = None,
        for_update: bool = False,
    ) -> EntityRow:
        row = repo.get(entity_id, for_update=for_update)
        if row is None:
            raise NotFoundError(self.target_type, entity_id)
        if community_id is not None and self.kind == EntityKind.TAG:
            if row.community_id != community_id or row.scope != TagScope.COMMUNITY.value:
                raise ScopeMismatchError(entity_id, community_id)
        return row

    def _check_unique(
        self,
        repo: SqlCatalogRepository,
        name: str,
        community_id: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        if repo.find_conflict(name, community_id=community_id, exclude_id=exclude_id) is not None:
            raise DuplicateNameError(self.target_type, name)

    def _namespace_of(self, row: EntityRow) -> Optional[str]:
        return row.community_id if self.kind == EntityKind.TAG else None

    def _audit(
        self,
        session,
        action: str,
        actor_id: Optional[str],
        row_id: str,
        metadata: dict[str, Any],
        community_id: Optional[str] = None,
    ) -> None:
        record_audit(
            session,
            type=AuditType.for_entity(self.kind, action),
            actor_id=actor_id,
            target_type=self.target_type,
            target_id=row_id,
            metadata=metadata,
            community_id=community_id,
        )

    def _notify_creator(
        self,
        event_type: EventType,
        actor_id: Optional[str],
        entity: CatalogEntity,
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        if not entity.created_by_id:
            return
        metadata: dict[str, Any] = {
            "entityKind": self.kind.value,
            "entityId": entity.id,
            "entityName": entity.name,
        }
        metadata.update(extra or {})
        self._dispatcher.publish(
            DomainEvent(
                type=event_type,
                actor_id=actor_id,
                scope_id=entity.community_id,
                target_user_ids=(entity.created_by_id,),
                metadata=metadata,
            )
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, entity_id: str) -> CatalogEntity:
        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            return repo.to_entity(self._load(repo, entity_id), with_counts=True)

    def list_entities(
        self,
        search: Optional[str] = None,
        status: Optional[EntityStatus] = None,
        scope: Optional[TagScope] = None,
        community_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[CatalogEntity]:
        with unit_of_work(self._session_factory) as session:
            return SqlCatalogRepository(session, self._spec).list_entities(
                search=search,
                status=status,
                scope=scope,
                community_id=community_id,
                limit=limit,
                offset=offset,
            )

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def create(
        self,
        actor_id: Optional[str],
        name: Optional[str],
        *,
        community_id: Optional[str] = None,
        default_unit_id: Optional[str] = None,
        approved: bool = True,
        created_by_id: Optional[str] = None,
    ) -> CatalogEntity:
        """
        Create an entity.

        Args:
            actor_id: Who performs the action (recorded in the audit log)
            name: Raw name; trimmed and lower-cased
            community_id: For tags, binds the tag to a community (COMMUNITY scope)
            default_unit_id: For ingredients, optional default unit
            approved: True for admin/moderator creation, False for contributors
            created_by_id: Owning contributor, notified of moderation outcomes

        Returns:
            The created entity

        Raises:
            InvalidNameError, DuplicateNameError, InvalidReferenceError,
            LimitExceededError
        """
        normalized = self._normalize(name)
        if default_unit_id is not None and self.kind != EntityKind.INGREDIENT:
            raise ValueError("Default units only apply to ingredients")

        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            namespace = community_id if self.kind == EntityKind.TAG else None

            self._check_unique(repo, normalized, namespace)
            if default_unit_id is not None and not repo.unit_exists(default_unit_id):
                raise InvalidReferenceError("Unit", default_unit_id)
            if namespace is not None:
                if repo.count_community_tags(namespace) >= self.max_community_tags:
                    raise LimitExceededError(self.max_community_tags)

            status = EntityStatus.APPROVED if approved else EntityStatus.PENDING
            fields: dict[str, Any] = {
                "name": normalized,
                "status": status.value,
                "created_by_id": created_by_id,
            }
            if self.kind == EntityKind.INGREDIENT:
                fields["default_unit_id"] = default_unit_id
            else:
                fields["community_id"] = namespace
                fields["scope"] = (TagScope.COMMUNITY if namespace else TagScope.GLOBAL).value

            row = repo.add(self._spec.model(**fields))
            self._audit(session, "CREATED", actor_id, row.id, {"name": normalized}, community_id)
            entity = repo.to_entity(row)

        logger.info(
            "%s created: id=%s, name=%s, status=%s, actor=%s",
            self.target_type,
            entity.id,
            entity.name,
            entity.status.value,
            actor_id,
        )
        return entity

    def rename(
        self,
        actor_id: Optional[str],
        entity_id: str,
        new_name: Optional[str],
        *,
        community_id: Optional[str] = None,
    ) -> CatalogEntity:
        """
        Rename an entity. Renaming to the current (normalized) name is a no-op.

        Raises:
            InvalidNameError, NotFoundError, ScopeMismatchError, DuplicateNameError
        """
        normalized = self._normalize(new_name)

        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            row = self._load(repo, entity_id, community_id, for_update=True)

            if normalized == row.name:
                return repo.to_entity(row)

            self._check_unique(repo, normalized, self._namespace_of(row), exclude_id=row.id)

            old_name = row.name
            row.name = normalized
            repo.flush_name(row)
            self._audit(
                session,
                "UPDATED",
                actor_id,
                row.id,
                {"oldName": old_name, "newName": normalized},
                community_id or self._namespace_of(row),
            )
            entity = repo.to_entity(row)

        logger.info("%s renamed: id=%s, %s -> %s", self.target_type, entity_id, old_name, normalized)
        return entity

    def approve(
        self,
        actor_id: Optional[str],
        entity_id: str,
        new_name: Optional[str] = None,
        *,
        community_id: Optional[str] = None,
    ) -> CatalogEntity:
        """
        Approve a PENDING entity, optionally renaming it in the same step.

        The creator, if any, receives ENTITY_APPROVED, or ENTITY_MODIFIED
        when the name changed.

        Raises:
            NotFoundError, ScopeMismatchError, InvalidStateError,
            InvalidNameError, DuplicateNameError
        """
        wants_rename = new_name is not None and bool(new_name.strip())
        normalized = self._normalize(new_name) if wants_rename else None

        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            row = self._load(repo, entity_id, community_id, for_update=True)

            if not can_transition(EntityStatus(row.status), "approve"):
                raise InvalidStateError(self.target_type, row.status, "approve")

            old_name = row.name
            renamed = normalized is not None and normalized != old_name
            if renamed:
                self._check_unique(repo, normalized, self._namespace_of(row), exclude_id=row.id)

            row.status = EntityStatus.APPROVED.value
            if renamed:
                row.name = normalized
            repo.flush_name(row)

            metadata: dict[str, Any] = {"name": row.name, "createdById": row.created_by_id}
            if renamed:
                metadata.update({"oldName": old_name, "newName": normalized})
            self._audit(
                session,
                "MODIFIED" if renamed else "APPROVED",
                actor_id,
                row.id,
                metadata,
                self._namespace_of(row),
            )
            entity = repo.to_entity(row)

        logger.info(
            "%s approved: id=%s, name=%s, renamed=%s, actor=%s",
            self.target_type,
            entity.id,
            entity.name,
            renamed,
            actor_id,
        )
        if renamed:
            self._notify_creator(
                EventType.ENTITY_MODIFIED,
                actor_id,
                entity,
                {"oldName": old_name, "newName": entity.name},
            )
        else:
            self._notify_creator(EventType.ENTITY_APPROVED, actor_id, entity)
        return entity

    def reject(
        self,
        actor_id: Optional[str],
        entity_id: str,
        reason: Optional[str],
        *,
        community_id: Optional[str] = None,
    ) -> CatalogEntity:
        """
        Reject a PENDING entity: delete it together with its associations.

        Returns:
            The entity as it was before deletion

        Raises:
            NotFoundError, ScopeMismatchError, InvalidStateError, MissingReasonError
        """
        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            row = self._load(repo, entity_id, community_id, for_update=True)

            if not can_transition(EntityStatus(row.status), "reject"):
                raise InvalidStateError(self.target_type, row.status, "reject")
            cleaned_reason = (reason or "").strip()
            if not cleaned_reason:
                raise MissingReasonError()

            entity = repo.to_entity(row)
            removed = repo.delete_with_associations(row)
            self._audit(
                session,
                "REJECTED",
                actor_id,
                entity.id,
                {
                    "name": entity.name,
                    "reason": cleaned_reason,
                    "createdById": entity.created_by_id,
                    "removedAssociations": removed,
                },
                entity.community_id,
            )

        logger.info(
            "%s rejected: id=%s, name=%s, removed_associations=%d, actor=%s",
            self.target_type,
            entity.id,
            entity.name,
            removed,
            actor_id,
        )
        self._notify_creator(EventType.ENTITY_REJECTED, actor_id, entity, {"reason": cleaned_reason})
        return entity

    def delete(
        self,
        actor_id: Optional[str],
        entity_id: str,
        *,
        community_id: Optional[str] = None,
    ) -> CatalogEntity:
        """
        Unconditionally delete an entity and its associations (admin/moderator).

        Raises:
            NotFoundError, ScopeMismatchError
        """
        with unit_of_work(self._session_factory) as session:
            repo = SqlCatalogRepository(session, self._spec)
            row = self._load(repo, entity_id, community_id, for_update=True)

            entity = repo.to_entity(row)
            removed = repo.delete_with_associations(row)
            self._audit(
                session,
                "DELETED",
                actor_id,
                entity.id,
                {"name": entity.name, "removedAssociations": removed},
                entity.community_id,
            )

        logger.info(
            "%s deleted: id=%s, name=%s, removed_associations=%d, actor=%s",
            self.target_type,
            entity.id,
            entity.name,
            removed,
            actor_id,
        )
        return entity
