# src/app/infra/db/associations.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from src.app.infra.db.base import AssociationAdapter
from src.app.infra.db.tables import (
    Base,
    ProposalIngredientRow,
    RecipeIngredientRow,
    RecipeTagRow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssociationTable:
    """Describes a join table between content and a catalog entity."""
    name: str
    model: type[Base]
    owner_type: str
    owner_column: str
    entity_column: str


RECIPE_INGREDIENTS = AssociationTable(
    name="recipe_ingredients",
    model=RecipeIngredientRow,
    owner_type="Recipe",
    owner_column="recipe_id",
    entity_column="ingredient_id",
)

PROPOSAL_INGREDIENTS = AssociationTable(
    name="proposal_ingredients",
    model=ProposalIngredientRow,
    owner_type="Proposal",
    owner_column="proposal_id",
    entity_column="ingredient_id",
)

RECIPE_TAGS = AssociationTable(
    name="recipe_tags",
    model=RecipeTagRow,
    owner_type="Recipe",
    owner_column="recipe_id",
    entity_column="tag_id",
)


class SqlAssociationAdapter(AssociationAdapter):
    def __init__(self, session: Session, table: AssociationTable):
        self._session = session
        self._table = table
        self.name = table.name
        self.owner_type = table.owner_type

    @property
    def _owner_col(self):
        return getattr(self._table.model, self._table.owner_column)

    @property
    def _entity_col(self):
        return getattr(self._table.model, self._table.entity_column)

    def load_by_entity(self, entity_id: str) -> list[Any]:
        stmt = (
            select(self._table.model)
            .where(self._entity_col == entity_id)
            .order_by(self._owner_col)
        )
        return list(self._session.scalars(stmt))

    def owner_of(self, row: Any) -> str:
        return getattr(row, self._table.owner_column)

    def find_for_owner(self, owner_id: str, entity_id: str) -> Optional[Any]:
        stmt = select(self._table.model).where(
            self._owner_col == owner_id,
            self._entity_col == entity_id,
        )
        return self._session.scalars(stmt).first()

    def repoint(self, row: Any, target_id: str) -> None:
        setattr(row, self._table.entity_column, target_id)
        self._session.flush()

    def discard(self, row: Any) -> None:
        self._session.delete(row)
        self._session.flush()

    def delete_for_entity(self, entity_id: str) -> int:
        result = self._session.execute(
            delete(self._table.model).where(self._entity_col == entity_id)
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.debug("Deleted %d row(s) from %s for %s", deleted, self.name, entity_id)
        return deleted

    def count_by_entities(self, entity_ids: Iterable[str]) -> dict[str, int]:
        ids = list(entity_ids)
        if not ids:
            return {}
        stmt = (
            select(self._entity_col, func.count())
            .where(self._entity_col.in_(ids))
            .group_by(self._entity_col)
        )
        return {entity_id: count for entity_id, count in self._session.execute(stmt)}
