from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from src.app.domain.models import AuditLogEntry, CatalogEntity, OrphanHandlingResult, Unit

EntityStatusLiteral = Literal["PENDING", "APPROVED"]
TagScopeLiteral = Literal["GLOBAL", "COMMUNITY"]
UnitCategoryLiteral = Literal["WEIGHT", "VOLUME", "SPOON", "COUNT", "QUALITATIVE"]


class EntityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    defaultUnitId: Optional[str] = None


class EntityRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ApproveRequest(BaseModel):
    newName: Optional[str] = Field(default=None, max_length=100)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class MergeRequest(BaseModel):
    targetId: Optional[str] = None


class EntityResponse(BaseModel):
    id: str
    kind: str
    name: str
    status: EntityStatusLiteral
    createdById: Optional[str] = None
    createdAt: Optional[datetime] = None
    defaultUnitId: Optional[str] = None
    scope: Optional[TagScopeLiteral] = None
    communityId: Optional[str] = None
    recipeCount: int = 0
    proposalCount: int = 0

    @classmethod
    def from_entity(cls, entity: CatalogEntity) -> "EntityResponse":
        return cls(
            id=entity.id,
            kind=entity.kind.value,
            name=entity.name,
            status=entity.status.value,
            createdById=entity.created_by_id,
            createdAt=entity.created_at,
            defaultUnitId=entity.default_unit_id,
            scope=entity.scope.value if entity.scope else None,
            communityId=entity.community_id,
            recipeCount=entity.recipe_count,
            proposalCount=entity.proposal_count,
        )


class EntityListResponse(BaseModel):
    data: list[EntityResponse]
    limit: int
    offset: int


class MergeResponse(BaseModel):
    message: str
    sourceId: str
    targetId: str
    migrated: int
    deduplicated: int


class MessageResponse(BaseModel):
    message: str


class UnitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    abbreviation: str = Field(..., min_length=1, max_length=20)
    category: str
    sortOrder: int = 0


class UnitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=50)
    abbreviation: Optional[str] = Field(default=None, max_length=20)
    category: Optional[str] = None
    sortOrder: Optional[int] = None


class UnitResponse(BaseModel):
    id: str
    name: str
    abbreviation: str
    category: UnitCategoryLiteral
    sortOrder: int = 0
    usageCount: int = 0
    defaultIngredientCount: int = 0

    @classmethod
    def from_unit(cls, unit: Unit) -> "UnitResponse":
        return cls(
            id=unit.id,
            name=unit.name,
            abbreviation=unit.abbreviation,
            category=unit.category.value,
            sortOrder=unit.sort_order,
            usageCount=unit.usage_count,
            defaultIngredientCount=unit.default_ingredient_count,
        )


class AuditEntryResponse(BaseModel):
    id: str
    type: str
    actorId: Optional[str] = None
    targetType: str
    targetId: str
    communityId: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditEntryResponse":
        return cls(
            id=entry.id,
            type=entry.type.value,
            actorId=entry.actor_id,
            targetType=entry.target_type,
            targetId=entry.target_id,
            communityId=entry.community_id,
            metadata=entry.metadata,
            createdAt=entry.created_at,
        )


class DepartureResponse(BaseModel):
    processedRecipes: int
    autoRejectedProposals: int
    createdVariants: int

    @classmethod
    def from_result(cls, result: OrphanHandlingResult) -> "DepartureResponse":
        return cls(**result.as_dict())
