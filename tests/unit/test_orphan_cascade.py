from __future__ import annotations

import pytest

from src.app.infra.db.session import unit_of_work
from src.app.infra.db.tables import ProposalRow, RecipeRow, RecipeStepRow
from src.app.services.orphans import OrphanCascadeService


@pytest.fixture
def service(session_factory) -> OrphanCascadeService:
    return OrphanCascadeService(session_factory)


class TestHandleDeparture:
    def test_pending_proposals_become_variants(self, service, seed) -> None:
        recipe_id = seed.recipe("U3", community_id="C", image_url="https://cdn/r.jpg")
        p1 = seed.proposal(recipe_id, "U4", title="Less salt")
        p2 = seed.proposal(recipe_id, "U5", title="More salt")

        result = service.handle_departure("U3", "C")

        assert result.as_dict() == {
            "processedRecipes": 1,
            "autoRejectedProposals": 2,
            "createdVariants": 2,
        }
        assert seed.get(ProposalRow, p1).status == "REJECTED"
        assert seed.get(ProposalRow, p2).status == "REJECTED"
        assert seed.get(ProposalRow, p1).decided_at is not None

        variants = seed.all(RecipeRow, RecipeRow.is_variant.is_(True))
        assert sorted(v.creator_id for v in variants) == ["U4", "U5"]
        for variant in variants:
            assert variant.origin_recipe_id == recipe_id
            assert variant.community_id == "C"
            assert variant.image_url == "https://cdn/r.jpg"

    def test_variant_takes_proposed_fields(self, service, seed) -> None:
        recipe_id = seed.recipe("U3", community_id="C", title="Stew")
        seed.proposal(recipe_id, "U4", title="Better stew", steps=("Chop", "Simmer"))

        service.handle_departure("U3", "C")

        [variant] = seed.all(RecipeRow, RecipeRow.is_variant.is_(True))
        assert variant.title == "Better stew"
        assert variant.content == "proposed content"
        # Not proposed: falls back to the origin
        assert variant.servings == 4
        assert variant.prep_time == 10
        steps = seed.all(RecipeStepRow, RecipeStepRow.recipe_id == variant.id)
        assert [s.instruction for s in sorted(steps, key=lambda s: s.position)] == [
            "Chop",
            "Simmer",
        ]

    def test_other_content_untouched(self, service, seed) -> None:
        recipe_id = seed.recipe("U3", community_id="C")
        accepted = seed.proposal(recipe_id, "U4", status="ACCEPTED")
        other_community = seed.recipe("U3", community_id="D")
        elsewhere = seed.proposal(other_community, "U4")
        deleted_recipe = seed.recipe("U3", community_id="C", deleted=True)
        on_deleted = seed.proposal(deleted_recipe, "U4")
        someone_else = seed.recipe("U6", community_id="C")
        unrelated = seed.proposal(someone_else, "U4")

        result = service.handle_departure("U3", "C")

        assert result.as_dict() == {
            "processedRecipes": 1,
            "autoRejectedProposals": 0,
            "createdVariants": 0,
        }
        assert seed.get(ProposalRow, accepted).status == "ACCEPTED"
        for proposal_id in (elsewhere, on_deleted, unrelated):
            assert seed.get(ProposalRow, proposal_id).status == "PENDING"
        assert seed.count(RecipeRow, RecipeRow.is_variant.is_(True)) == 0

    def test_no_recipes(self, service, seed) -> None:
        result = service.handle_departure("U3", "C")

        assert result.as_dict() == {
            "processedRecipes": 0,
            "autoRejectedProposals": 0,
            "createdVariants": 0,
        }
        assert seed.audit() == []

    def test_variant_audit_entries(self, service, seed) -> None:
        recipe_id = seed.recipe("U3", community_id="C")
        proposal_id = seed.proposal(recipe_id, "U4")

        service.handle_departure("U3", "C")

        [variant] = seed.all(RecipeRow, RecipeRow.is_variant.is_(True))
        [entry] = seed.audit("VARIANT_CREATED")
        assert entry.actor_id == "U4"
        assert entry.target_type == "Recipe"
        assert entry.target_id == variant.id
        assert entry.community_id == "C"
        assert entry.details == {
            "proposalId": proposal_id,
            "originRecipeId": recipe_id,
            "reason": "ORPHAN_AUTO_REJECT",
        }

    def test_joins_outer_transaction(self, service, seed, session_factory) -> None:
        recipe_id = seed.recipe("U3", community_id="C")
        proposal_id = seed.proposal(recipe_id, "U4")

        with pytest.raises(RuntimeError):
            with unit_of_work(session_factory) as session:
                result = service.handle_departure("U3", "C", session=session)
                assert result.created_variants == 1
                raise RuntimeError("membership update failed")

        assert seed.get(ProposalRow, proposal_id).status == "PENDING"
        assert seed.count(RecipeRow, RecipeRow.is_variant.is_(True)) == 0
        assert seed.audit() == []
