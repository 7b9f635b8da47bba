from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from src.app.domain.models import ProposalStatus
from src.app.infra.db.tables import (
    ProposalRow,
    RecipeRow,
    RecipeStepRow,
)

logger = logging.getLogger(__name__)


def _pick(proposed, current):
    return proposed if proposed is not None else current


@dataclass
class OrphanedRecipe:
    recipe: RecipeRow
    pending_proposals: list[ProposalRow]


class SqlRecipeRepository:
    def __init__(self, session: Session):
        self._session = session

    def find_orphaned_recipes(self, creator_id: str, community_id: str) -> list[OrphanedRecipe]:
        """
        Load the creator's live recipes in a community with their PENDING,
        non-deleted proposals, both ordered by creation time.
        """
        recipes = list(
            self._session.scalars(
                select(RecipeRow)
                .where(
                    RecipeRow.creator_id == creator_id,
                    RecipeRow.community_id == community_id,
                    RecipeRow.deleted_at.is_(None),
                )
                .order_by(RecipeRow.created_at, RecipeRow.id)
            )
        )
        if not recipes:
            return []

        proposals = list(
            self._session.scalars(
                select(ProposalRow)
                .options(selectinload(ProposalRow.steps))
                .where(
                    ProposalRow.recipe_id.in_([recipe.id for recipe in recipes]),
                    ProposalRow.status == ProposalStatus.PENDING.value,
                    ProposalRow.deleted_at.is_(None),
                )
                .order_by(ProposalRow.created_at, ProposalRow.id)
            )
        )

        by_recipe: dict[str, list[ProposalRow]] = {recipe.id: [] for recipe in recipes}
        for proposal in proposals:
            by_recipe[proposal.recipe_id].append(proposal)

        return [OrphanedRecipe(recipe, by_recipe[recipe.id]) for recipe in recipes]

    def create_variant_from_proposal(self, origin: RecipeRow, proposal: ProposalRow) -> RecipeRow:
        """Fork the origin recipe into a variant owned by the proposer."""
        variant = RecipeRow(
            title=proposal.proposed_title,
            content=_pick(proposal.proposed_content, origin.content),
            servings=_pick(proposal.proposed_servings, origin.servings),
            prep_time=_pick(proposal.proposed_prep_time, origin.prep_time),
            cook_time=_pick(proposal.proposed_cook_time, origin.cook_time),
            rest_time=_pick(proposal.proposed_rest_time, origin.rest_time),
            image_url=origin.image_url,
            is_variant=True,
            creator_id=proposal.proposer_id,
            community_id=origin.community_id,
            origin_recipe_id=origin.id,
        )
        variant.steps = [
            RecipeStepRow(position=step.position, instruction=step.instruction)
            for step in proposal.steps
        ]
        self._session.add(variant)
        self._session.flush()
        return variant

    def reject_proposal(self, proposal: ProposalRow, decided_at: datetime) -> None:
        proposal.status = ProposalStatus.REJECTED.value
        proposal.decided_at = decided_at
        self._session.flush()
