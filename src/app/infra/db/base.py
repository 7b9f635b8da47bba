# src/app/infra/db/base.py
"""
Abstract interfaces for the catalog store.
Services depend on these so the backing store can be swapped.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from src.app.domain.models import AuditLogEntry, AuditType


class AssociationAdapter(ABC):
    """
    Access to one kind of association between a catalog entity and content.

    Implementations:
    - SqlAssociationAdapter: one instance per association table
    """

    name: str
    owner_type: str

    @abstractmethod
    def load_by_entity(self, entity_id: str) -> list[Any]:
        """
        Load every association row pointing at an entity.

        Args:
            entity_id: The catalog entity

        Returns:
            Association rows, ordered by owner
        """
        pass

    @abstractmethod
    def owner_of(self, row: Any) -> str:
        """Return the content item id of a row (the dedup key)."""
        pass

    @abstractmethod
    def find_for_owner(self, owner_id: str, entity_id: str) -> Optional[Any]:
        """Return the row binding owner_id to entity_id, if any."""
        pass

    @abstractmethod
    def repoint(self, row: Any, target_id: str) -> None:
        """Move a row to another entity, keeping its payload."""
        pass

    @abstractmethod
    def discard(self, row: Any) -> None:
        """Delete a single association row."""
        pass

    @abstractmethod
    def delete_for_entity(self, entity_id: str) -> int:
        """
        Delete every association of an entity.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    def count_by_entities(self, entity_ids: Iterable[str]) -> dict[str, int]:
        """Count associations per entity id."""
        pass


class AuditLogRepository(ABC):
    """
    Append-only access to the audit log.
    """

    @abstractmethod
    def append(
        self,
        type: AuditType,
        actor_id: Optional[str],
        target_type: str,
        target_id: str,
        metadata: Optional[dict[str, Any]] = None,
        community_id: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Append an audit entry.

        Args:
            type: Kind of action
            actor_id: Who performed it
            target_type: Entity type name (Ingredient, Tag, Unit, Recipe)
            target_id: Id of the affected entity
            metadata: Free-form details
            community_id: Community the action happened in, if any

        Returns:
            The stored entry
        """
        pass

    @abstractmethod
    def list_entries(
        self,
        types: Optional[Iterable[AuditType]] = None,
        actor_id: Optional[str] = None,
        community_id: Optional[str] = None,
        target_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """
        Query entries, newest first.
        """
        pass
