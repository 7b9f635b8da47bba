# src/app/domain/models.py
"""
Domain models for catalog moderation.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class EntityKind(str, Enum):
    """Kinds of shared-namespace catalog entities."""
    INGREDIENT = "INGREDIENT"
    TAG = "TAG"


class EntityStatus(str, Enum):
    """Moderation status of a catalog entity."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"


class TagScope(str, Enum):
    GLOBAL = "GLOBAL"
    COMMUNITY = "COMMUNITY"


class ProposalStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class UnitCategory(str, Enum):
    WEIGHT = "WEIGHT"
    VOLUME = "VOLUME"
    SPOON = "SPOON"
    COUNT = "COUNT"
    QUALITATIVE = "QUALITATIVE"


class AuditType(str, Enum):
    """Kinds of audit log entries."""
    INGREDIENT_CREATED = "INGREDIENT_CREATED"
    INGREDIENT_UPDATED = "INGREDIENT_UPDATED"
    INGREDIENT_APPROVED = "INGREDIENT_APPROVED"
    INGREDIENT_MODIFIED = "INGREDIENT_MODIFIED"
    INGREDIENT_REJECTED = "INGREDIENT_REJECTED"
    INGREDIENT_DELETED = "INGREDIENT_DELETED"
    INGREDIENT_MERGED = "INGREDIENT_MERGED"
    TAG_CREATED = "TAG_CREATED"
    TAG_UPDATED = "TAG_UPDATED"
    TAG_APPROVED = "TAG_APPROVED"
    TAG_MODIFIED = "TAG_MODIFIED"
    TAG_REJECTED = "TAG_REJECTED"
    TAG_DELETED = "TAG_DELETED"
    TAG_MERGED = "TAG_MERGED"
    UNIT_CREATED = "UNIT_CREATED"
    UNIT_UPDATED = "UNIT_UPDATED"
    UNIT_DELETED = "UNIT_DELETED"
    VARIANT_CREATED = "VARIANT_CREATED"

    @classmethod
    def for_entity(cls, kind: EntityKind, action: str) -> "AuditType":
        """Resolve e.g. (TAG, "MERGED") to TAG_MERGED."""
        return cls(f"{kind.value}_{action}")


class EventType(str, Enum):
    """Types of domain events published after a committed transition."""
    ENTITY_APPROVED = "ENTITY_APPROVED"
    ENTITY_MODIFIED = "ENTITY_MODIFIED"
    ENTITY_REJECTED = "ENTITY_REJECTED"
    ENTITY_MERGED = "ENTITY_MERGED"


ORPHAN_AUTO_REJECT = "ORPHAN_AUTO_REJECT"

# current status -> {action: next status}; None means the entity is deleted
ENTITY_TRANSITIONS: dict[EntityStatus, dict[str, Optional[EntityStatus]]] = {
    EntityStatus.PENDING: {
        "approve": EntityStatus.APPROVED,
        "reject": None,
    },
    EntityStatus.APPROVED: {},
}


def can_transition(status: EntityStatus, action: str) -> bool:
    return action in ENTITY_TRANSITIONS.get(status, {})


def normalize_name(name: Optional[str]) -> str:
    """Trim and lower-case a catalog name. Returns "" for None."""
    return (name or "").strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CatalogEntity:
    """
    A moderated catalog entity (ingredient or tag) as seen by callers.
    Detached from any session; safe to return across the transaction boundary.
    """
    id: str
    kind: EntityKind
    name: str
    status: EntityStatus
    created_by_id: Optional[str] = None
    created_at: Optional[datetime] = None

    # Ingredient only
    default_unit_id: Optional[str] = None

    # Tag only
    scope: Optional[TagScope] = None
    community_id: Optional[str] = None

    # Populated by list queries
    recipe_count: int = 0
    proposal_count: int = 0

    @property
    def is_pending(self) -> bool:
        return self.status == EntityStatus.PENDING


@dataclass
class Unit:
    id: str
    name: str
    abbreviation: str
    category: UnitCategory
    sort_order: int = 0
    usage_count: int = 0
    default_ingredient_count: int = 0


@dataclass
class AuditLogEntry:
    """Immutable record of a completed state-changing operation."""
    id: str
    type: AuditType
    actor_id: Optional[str]
    target_type: str
    target_id: str
    community_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class DomainEvent:
    """
    Ephemeral notification of a committed transition.
    Never persisted; lives only for the duration of dispatch.
    """
    type: EventType
    actor_id: Optional[str]
    scope_id: Optional[str]
    target_user_ids: tuple[str, ...]
    metadata: Mapping[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "target_user_ids", tuple(self.target_user_ids))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass
class MergeResult:
    source: CatalogEntity
    target: CatalogEntity
    migrated: int = 0
    deduplicated: int = 0


@dataclass
class OrphanHandlingResult:
    """Aggregate counters returned by the orphan cascade."""
    processed_recipes: int = 0
    auto_rejected_proposals: int = 0
    created_variants: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "processedRecipes": self.processed_recipes,
            "autoRejectedProposals": self.auto_rejected_proposals,
            "createdVariants": self.created_variants,
        }
