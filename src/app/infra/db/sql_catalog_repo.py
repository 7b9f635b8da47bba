from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.app.domain.errors import DuplicateNameError
from src.app.domain.models import CatalogEntity, EntityKind, EntityStatus, TagScope
from src.app.infra.db.associations import (
    PROPOSAL_INGREDIENTS,
    RECIPE_INGREDIENTS,
    RECIPE_TAGS,
    AssociationTable,
    SqlAssociationAdapter,
)
from src.app.infra.db.tables import IngredientRow, TagRow, UnitRow

logger = logging.getLogger(__name__)

EntityRow = Union[IngredientRow, TagRow]


@dataclass(frozen=True)
class CatalogKindSpec:
    """Everything that differs between ingredients and tags."""
    kind: EntityKind
    target_type: str
    model: type
    associations: tuple[AssociationTable, ...]


INGREDIENT_KIND = CatalogKindSpec(
    kind=EntityKind.INGREDIENT,
    target_type="Ingredient",
    model=IngredientRow,
    associations=(RECIPE_INGREDIENTS, PROPOSAL_INGREDIENTS),
)

TAG_KIND = CatalogKindSpec(
    kind=EntityKind.TAG,
    target_type="Tag",
    model=TagRow,
    associations=(RECIPE_TAGS,),
)

CATALOG_KINDS: dict[EntityKind, CatalogKindSpec] = {
    EntityKind.INGREDIENT: INGREDIENT_KIND,
    EntityKind.TAG: TAG_KIND,
}


def row_to_entity(
    spec: CatalogKindSpec,
    row: EntityRow,
    recipe_count: int = 0,
    proposal_count: int = 0,
) -> CatalogEntity:
    entity = CatalogEntity(
        id=row.id,
        kind=spec.kind,
        name=row.name,
        status=EntityStatus(row.status),
        created_by_id=row.created_by_id,
        created_at=row.created_at,
        recipe_count=recipe_count,
        proposal_count=proposal_count,
    )
    if spec.kind == EntityKind.INGREDIENT:
        entity.default_unit_id = row.default_unit_id
    else:
        entity.scope = TagScope(row.scope)
        entity.community_id = row.community_id
    return entity


class SqlCatalogRepository:
    """Catalog entity access for one entity kind within one session."""

    def __init__(self, session: Session, spec: CatalogKindSpec):
        self._session = session
        self.spec = spec

    @property
    def model(self) -> type:
        return self.spec.model

    def adapters(self) -> list[SqlAssociationAdapter]:
        return [SqlAssociationAdapter(self._session, table) for table in self.spec.associations]

    def get(self, entity_id: str, for_update: bool = False) -> Optional[EntityRow]:
        stmt = select(self.model).where(self.model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.scalars(stmt).first()

    def find_conflict(
        self,
        name: str,
        community_id: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[EntityRow]:
        """
        Find an entity whose name collides with `name` in the namespace.

        Ingredients share one global namespace. A GLOBAL tag collides with
        GLOBAL tags; a COMMUNITY tag collides with GLOBAL tags and with the
        tags of its own community.
        """
        stmt = select(self.model).where(func.lower(self.model.name) == name)
        if self.spec.kind == EntityKind.TAG:
            if community_id is None:
                stmt = stmt.where(self.model.community_id.is_(None))
            else:
                stmt = stmt.where(
                    or_(
                        self.model.community_id.is_(None),
                        self.model.community_id == community_id,
                    )
                )
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        return self._session.scalars(stmt).first()

    def count_community_tags(self, community_id: str) -> int:
        stmt = select(func.count()).select_from(TagRow).where(
            TagRow.community_id == community_id,
            TagRow.scope == TagScope.COMMUNITY.value,
        )
        return self._session.scalar(stmt) or 0

    def unit_exists(self, unit_id: str) -> bool:
        return self._session.get(UnitRow, unit_id) is not None

    def add(self, row: EntityRow) -> EntityRow:
        self._session.add(row)
        self.flush_name(row)
        return row

    def flush_name(self, row: EntityRow) -> None:
        """
        Flush a new or renamed entity. A unique-index violation means a
        concurrent writer claimed the name after find_conflict ran.
        """
        name = row.name
        try:
            self._session.flush()
        except IntegrityError as error:
            logger.info("Name collision on flush for %s %r: %s", self.spec.target_type, name, error.orig)
            raise DuplicateNameError(self.spec.target_type, name) from error

    def delete_with_associations(self, row: EntityRow) -> int:
        """Delete every association of the entity, then the entity itself."""
        removed = sum(adapter.delete_for_entity(row.id) for adapter in self.adapters())
        self._session.delete(row)
        self._session.flush()
        return removed

    def usage_counts(self, entity_ids: list[str]) -> dict[str, tuple[int, int]]:
        """Return {entity_id: (recipe_count, proposal_count)}."""
        counts: dict[str, list[int]] = {entity_id: [0, 0] for entity_id in entity_ids}
        for adapter in self.adapters():
            slot = 0 if adapter.owner_type == "Recipe" else 1
            for entity_id, count in adapter.count_by_entities(entity_ids).items():
                counts[entity_id][slot] += count
        return {entity_id: (pair[0], pair[1]) for entity_id, pair in counts.items()}

    def to_entity(self, row: EntityRow, with_counts: bool = False) -> CatalogEntity:
        if not with_counts:
            return row_to_entity(self.spec, row)
        recipe_count, proposal_count = self.usage_counts([row.id])[row.id]
        return row_to_entity(self.spec, row, recipe_count, proposal_count)

    def list_entities(
        self,
        search: Optional[str] = None,
        status: Optional[EntityStatus] = None,
        scope: Optional[TagScope] = None,
        community_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[CatalogEntity]:
        stmt = select(self.model)
        if search:
            stmt = stmt.where(self.model.name.ilike(f"%{search.strip().lower()}%"))
        if status is not None:
            stmt = stmt.where(self.model.status == status.value)
        if self.spec.kind == EntityKind.TAG:
            if scope is not None:
                stmt = stmt.where(self.model.scope == scope.value)
            if community_id is not None:
                stmt = stmt.where(self.model.community_id == community_id)
        stmt = stmt.order_by(self.model.name).limit(limit).offset(offset)

        rows = list(self._session.scalars(stmt))
        counts = self.usage_counts([row.id for row in rows])
        return [row_to_entity(self.spec, row, *counts[row.id]) for row in rows]
