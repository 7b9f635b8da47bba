from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.app.config import settings
from src.app.deps import (
    CurrentUser,
    get_current_user,
    get_dispatcher,
    get_moderator_checker,
    get_session_factory,
)
from src.app.infra.db.tables import IngredientRow, ProposalRow, TagRow
from src.app.main import app

ADMIN = CurrentUser(id="admin-1", email="admin@example.com", is_admin=True)
MEMBER = CurrentUser(id="U3", email="u3@example.com")
MODERATOR = CurrentUser(id="M1", email="m1@example.com")


def _moderates(user_id: str, community_id: str) -> bool:
    return (user_id, community_id) == ("M1", "c-1")


@pytest.fixture
def acting_user():
    return {"user": ADMIN}


@pytest.fixture
def client(session_factory, dispatcher, acting_user):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_current_user] = lambda: acting_user["user"]
    app.dependency_overrides[get_moderator_checker] = lambda: _moderates
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAdminIngredientRoutes:
    def test_create_and_list(self, client) -> None:
        response = client.post("/admin/ingredients", json={"name": " Sugar "})

        assert response.status_code == 201
        assert response.json()["name"] == "sugar"
        assert response.json()["status"] == "APPROVED"

        listed = client.get("/admin/ingredients", params={"search": "sug"})
        assert [e["name"] for e in listed.json()["data"]] == ["sugar"]

    def test_duplicate_is_conflict(self, client, seed) -> None:
        seed.ingredient("sugar")

        response = client.post("/admin/ingredients", json={"name": "SUGAR"})

        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "DuplicateName"

    def test_approve(self, client, seed, events) -> None:
        ingredient_id = seed.ingredient("sugar", status="PENDING", created_by_id="U1")

        response = client.post(f"/admin/ingredients/{ingredient_id}/approve", json={})

        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert events.events[0].target_user_ids == ("U1",)

    def test_approve_twice_is_bad_request(self, client, seed) -> None:
        ingredient_id = seed.ingredient("sugar")

        response = client.post(f"/admin/ingredients/{ingredient_id}/approve", json={})

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "InvalidState"

    def test_reject_requires_reason(self, client, seed) -> None:
        ingredient_id = seed.ingredient("sugr", status="PENDING")

        response = client.post(f"/admin/ingredients/{ingredient_id}/reject", json={})

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "MissingReason"

    def test_reject_unknown_is_not_found(self, client) -> None:
        response = client.post("/admin/ingredients/missing/reject", json={"reason": "typo"})

        assert response.status_code == 404

    def test_merge(self, client, seed) -> None:
        source_id = seed.ingredient("flour2")
        target_id = seed.ingredient("flour")

        response = client.post(
            f"/admin/ingredients/{source_id}/merge", json={"targetId": target_id}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["sourceId"] == source_id
        assert body["targetId"] == target_id
        assert seed.get(IngredientRow, source_id) is None

    def test_self_merge(self, client, seed) -> None:
        source_id = seed.ingredient("flour")

        response = client.post(
            f"/admin/ingredients/{source_id}/merge", json={"targetId": source_id}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "SelfMerge"

    def test_non_admin_forbidden(self, client, acting_user) -> None:
        acting_user["user"] = MEMBER

        response = client.get("/admin/ingredients")

        assert response.status_code == 403


class TestAdminUnitRoutes:
    def test_unit_lifecycle(self, client) -> None:
        created = client.post(
            "/admin/units", json={"name": "Gram", "abbreviation": "g", "category": "WEIGHT"}
        )
        assert created.status_code == 201
        unit_id = created.json()["id"]

        updated = client.patch(f"/admin/units/{unit_id}", json={"sortOrder": 2})
        assert updated.json()["sortOrder"] == 2

        deleted = client.delete(f"/admin/units/{unit_id}")
        assert deleted.status_code == 200

        activity = client.get("/admin/activity", params={"type": "UNIT_CREATED"})
        assert [e["type"] for e in activity.json()] == ["UNIT_CREATED"]

    def test_unit_in_use(self, client, seed) -> None:
        unit_id = seed.unit()
        seed.ingredient("flour", default_unit_id=unit_id)

        response = client.delete(f"/admin/units/{unit_id}")

        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "InUse"


class TestCommunityRoutes:
    def test_member_suggests_pending_tag(self, client, acting_user, seed) -> None:
        acting_user["user"] = MEMBER

        response = client.post("/communities/c-1/tags", json={"name": "Spicy"})

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["scope"] == "COMMUNITY"
        assert body["communityId"] == "c-1"
        assert body["createdById"] == "U3"
        assert len(seed.audit("TAG_CREATED")) == 1

    def test_moderator_creates_approved_tag(self, client, acting_user) -> None:
        acting_user["user"] = MODERATOR

        response = client.post("/communities/c-1/tags", json={"name": "Spicy"})

        assert response.status_code == 201
        assert response.json()["status"] == "APPROVED"

    def test_moderator_of_other_community_only_suggests(self, client, acting_user) -> None:
        acting_user["user"] = MODERATOR

        response = client.post("/communities/c-2/tags", json={"name": "Spicy"})

        assert response.json()["status"] == "PENDING"

    def test_suggestion_respects_tag_limit(self, client, acting_user, seed, monkeypatch) -> None:
        monkeypatch.setattr(settings, "MAX_COMMUNITY_TAGS", 1)
        acting_user["user"] = MEMBER
        seed.tag("sweet", community_id="c-1")

        response = client.post("/communities/c-1/tags", json={"name": "Spicy"})

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "LimitExceeded"

    def test_moderator_approves_suggestion(self, client, acting_user, seed, events) -> None:
        tag_id = seed.tag("spicy", status="PENDING", community_id="c-1", created_by_id="U3")
        acting_user["user"] = MODERATOR

        response = client.post(f"/communities/c-1/tags/{tag_id}/approve", json={})

        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert events.events[0].target_user_ids == ("U3",)

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("post", "/approve", {}),
            ("post", "/reject", {"reason": "spam"}),
            ("patch", "", {"name": "hot"}),
            ("delete", "", None),
        ],
    )
    def test_member_cannot_moderate(self, client, acting_user, seed, method, path, body) -> None:
        tag_id = seed.tag("spicy", status="PENDING", community_id="c-1", created_by_id="U3")
        acting_user["user"] = MEMBER

        kwargs = {"json": body} if body is not None else {}
        response = getattr(client, method)(f"/communities/c-1/tags/{tag_id}{path}", **kwargs)

        assert response.status_code == 403
        tag = seed.get(TagRow, tag_id)
        assert (tag.name, tag.status) == ("spicy", "PENDING")

    def test_tag_from_other_community_forbidden(self, client, seed) -> None:
        tag_id = seed.tag("spicy", status="PENDING", community_id="c-1")

        response = client.post(f"/communities/c-2/tags/{tag_id}/approve", json={})

        assert response.status_code == 403
        assert response.json()["detail"]["kind"] == "ScopeMismatch"

    def test_member_departure(self, client, seed) -> None:
        recipe_id = seed.recipe("U3", community_id="c-1")
        p1 = seed.proposal(recipe_id, "U4")
        seed.proposal(recipe_id, "U5")

        response = client.post("/communities/c-1/members/U3/departure")

        assert response.status_code == 200
        assert response.json() == {
            "processedRecipes": 1,
            "autoRejectedProposals": 2,
            "createdVariants": 2,
        }
        assert seed.get(ProposalRow, p1).status == "REJECTED"

    def test_member_cannot_trigger_own_departure(self, client, acting_user, seed) -> None:
        acting_user["user"] = MEMBER
        recipe_id = seed.recipe("U3", community_id="c-1")
        proposal_id = seed.proposal(recipe_id, "U4")

        response = client.post("/communities/c-1/members/U3/departure")

        assert response.status_code == 403
        assert seed.get(ProposalRow, proposal_id).status == "PENDING"
