from __future__ import annotations

from typing import Optional

import pytest
from sqlalchemy import func, select

from src.app.domain.models import DomainEvent
from src.app.infra.db.session import (
    create_catalog_engine,
    create_session_factory,
    init_db,
    unit_of_work,
)
from src.app.infra.db.tables import (
    AuditLogRow,
    IngredientRow,
    ProposalIngredientRow,
    ProposalRow,
    ProposalStepRow,
    RecipeIngredientRow,
    RecipeRow,
    RecipeTagRow,
    TagRow,
    UnitRow,
)
from src.app.services.events import DomainEventDispatcher


class EventCollector:
    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)


class CatalogSeeder:
    """Writes fixture rows directly, bypassing the services."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    def _add(self, row):
        with unit_of_work(self._session_factory) as session:
            session.add(row)
            session.flush()
            return row.id

    def unit(self, name: str = "gram", abbreviation: str = "g", category: str = "WEIGHT") -> str:
        return self._add(UnitRow(name=name, abbreviation=abbreviation, category=category))

    def ingredient(
        self,
        name: str,
        status: str = "APPROVED",
        created_by_id: Optional[str] = None,
        default_unit_id: Optional[str] = None,
    ) -> str:
        return self._add(
            IngredientRow(
                name=name,
                status=status,
                created_by_id=created_by_id,
                default_unit_id=default_unit_id,
            )
        )

    def tag(
        self,
        name: str,
        status: str = "APPROVED",
        community_id: Optional[str] = None,
        created_by_id: Optional[str] = None,
    ) -> str:
        return self._add(
            TagRow(
                name=name,
                status=status,
                scope="COMMUNITY" if community_id else "GLOBAL",
                community_id=community_id,
                created_by_id=created_by_id,
            )
        )

    def recipe(
        self,
        creator_id: str,
        community_id: Optional[str] = None,
        title: str = "Recipe",
        image_url: Optional[str] = None,
        deleted: bool = False,
    ) -> str:
        from datetime import datetime, timezone

        return self._add(
            RecipeRow(
                title=title,
                content="original content",
                servings=4,
                prep_time=10,
                image_url=image_url,
                creator_id=creator_id,
                community_id=community_id,
                deleted_at=datetime.now(timezone.utc) if deleted else None,
            )
        )

    def proposal(
        self,
        recipe_id: str,
        proposer_id: str,
        status: str = "PENDING",
        title: str = "Proposed title",
        steps: tuple[str, ...] = (),
    ) -> str:
        row = ProposalRow(
            recipe_id=recipe_id,
            proposer_id=proposer_id,
            proposed_title=title,
            proposed_content="proposed content",
            status=status,
        )
        row.steps = [
            ProposalStepRow(position=i, instruction=text) for i, text in enumerate(steps)
        ]
        return self._add(row)

    def recipe_ingredient(
        self,
        recipe_id: str,
        ingredient_id: str,
        quantity: Optional[float] = None,
        unit_id: Optional[str] = None,
        position: int = 0,
    ) -> str:
        return self._add(
            RecipeIngredientRow(
                recipe_id=recipe_id,
                ingredient_id=ingredient_id,
                quantity=quantity,
                unit_id=unit_id,
                position=position,
            )
        )

    def proposal_ingredient(
        self,
        proposal_id: str,
        ingredient_id: str,
        quantity: Optional[float] = None,
        unit_id: Optional[str] = None,
        position: int = 0,
    ) -> str:
        return self._add(
            ProposalIngredientRow(
                proposal_id=proposal_id,
                ingredient_id=ingredient_id,
                quantity=quantity,
                unit_id=unit_id,
                position=position,
            )
        )

    def recipe_tag(self, recipe_id: str, tag_id: str) -> str:
        return self._add(RecipeTagRow(recipe_id=recipe_id, tag_id=tag_id))

    # Queries -----------------------------------------------------------------

    def get(self, model, row_id: str):
        with unit_of_work(self._session_factory) as session:
            return session.get(model, row_id)

    def all(self, model, *criteria) -> list:
        with unit_of_work(self._session_factory) as session:
            return list(session.scalars(select(model).where(*criteria)))

    def count(self, model, *criteria) -> int:
        with unit_of_work(self._session_factory) as session:
            return session.scalar(select(func.count()).select_from(model).where(*criteria))

    def audit(self, type_value: Optional[str] = None) -> list[AuditLogRow]:
        criteria = [AuditLogRow.type == type_value] if type_value else []
        return self.all(AuditLogRow, *criteria)


@pytest.fixture
def engine():
    engine = create_catalog_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def dispatcher() -> DomainEventDispatcher:
    return DomainEventDispatcher()


@pytest.fixture
def events(dispatcher) -> EventCollector:
    collector = EventCollector()
    dispatcher.subscribe(collector)
    return collector


@pytest.fixture
def seed(session_factory) -> CatalogSeeder:
    return CatalogSeeder(session_factory)
