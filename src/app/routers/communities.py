# src/app/routers/communities.py
"""
Community-scoped routes: tag suggestion and moderation, and the membership
departure hook.

Any member may suggest a tag (created PENDING); approving, rejecting,
renaming and deleting need a community moderator. Moderator lookup is
provided by the membership service through get_moderator_checker.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.app.deps import (
    CurrentUser,
    ModeratorChecker,
    get_current_user,
    get_dispatcher,
    get_moderator_checker,
    get_session_factory,
    is_community_moderator,
    require_admin,
    require_community_moderator,
)
from src.app.domain.errors import CatalogError
from src.app.domain.models import EntityKind, EntityStatus, TagScope
from src.app.infra.db.session import SessionFactory
from src.app.routers.errors import to_http_error
from src.app.schemas.catalog import (
    ApproveRequest,
    DepartureResponse,
    EntityCreate,
    EntityListResponse,
    EntityRename,
    EntityResponse,
    MessageResponse,
    RejectRequest,
)
from src.app.services.events import DomainEventDispatcher
from src.app.services.moderation import ModerationService
from src.app.services.orphans import OrphanCascadeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communities/{community_id}", tags=["Communities"])


def _get_tag_service(
    session_factory: SessionFactory = Depends(get_session_factory),
    dispatcher: DomainEventDispatcher = Depends(get_dispatcher),
) -> ModerationService:
    return ModerationService(session_factory, dispatcher, EntityKind.TAG)


def _get_orphan_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> OrphanCascadeService:
    return OrphanCascadeService(session_factory)


# =============================================================================
# Tags
# =============================================================================

@router.get("/tags", response_model=EntityListResponse)
def list_community_tags(
    community_id: str,
    search: Optional[str] = Query(default=None),
    status_filter: Optional[EntityStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    current_user: CurrentUser = Depends(get_current_user),
    service: ModerationService = Depends(_get_tag_service),
):
    tags = service.list_entities(
        search=search,
        status=status_filter,
        scope=TagScope.COMMUNITY,
        community_id=community_id,
        limit=limit,
        offset=offset,
    )
    return EntityListResponse(
        data=[EntityResponse.from_entity(t) for t in tags],
        limit=limit,
        offset=offset,
    )


@router.post("/tags", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
def create_community_tag(
    community_id: str,
    request: EntityCreate,
    current_user: CurrentUser = Depends(get_current_user),
    checker: ModeratorChecker = Depends(get_moderator_checker),
    service: ModerationService = Depends(_get_tag_service),
):
    """
    Create a community tag.

    Members suggest tags, which stay PENDING until a moderator decides;
    moderators create them APPROVED directly. Either way the caller is
    recorded as creator and the community tag limit applies.
    """
    approved = is_community_moderator(current_user, community_id, checker)
    try:
        tag = service.create(
            current_user.id,
            request.name,
            community_id=community_id,
            approved=approved,
            created_by_id=current_user.id,
        )
    except CatalogError as e:
        raise to_http_error(e)
    return EntityResponse.from_entity(tag)


@router.patch("/tags/{tag_id}", response_model=EntityResponse)
def rename_community_tag(
    community_id: str,
    tag_id: str,
    request: EntityRename,
    current_user: CurrentUser = Depends(require_community_moderator),
    service: ModerationService = Depends(_get_tag_service),
):
    try:
        tag = service.rename(current_user.id, tag_id, request.name, community_id=community_id)
    except CatalogError as e:
        raise to_http_error(e)
    return EntityResponse.from_entity(tag)


@router.delete("/tags/{tag_id}", response_model=MessageResponse)
def delete_community_tag(
    community_id: str,
    tag_id: str,
    current_user: CurrentUser = Depends(require_community_moderator),
    service: ModerationService = Depends(_get_tag_service),
):
    try:
        service.delete(current_user.id, tag_id, community_id=community_id)
    except CatalogError as e:
        raise to_http_error(e)
    return MessageResponse(message="Tag deleted")


@router.post("/tags/{tag_id}/approve", response_model=EntityResponse)
def approve_community_tag(
    community_id: str,
    tag_id: str,
    request: ApproveRequest,
    current_user: CurrentUser = Depends(require_community_moderator),
    service: ModerationService = Depends(_get_tag_service),
):
    try:
        tag = service.approve(current_user.id, tag_id, request.newName, community_id=community_id)
    except CatalogError as e:
        raise to_http_error(e)
    return EntityResponse.from_entity(tag)


@router.post("/tags/{tag_id}/reject", response_model=MessageResponse)
def reject_community_tag(
    community_id: str,
    tag_id: str,
    request: RejectRequest,
    current_user: CurrentUser = Depends(require_community_moderator),
    service: ModerationService = Depends(_get_tag_service),
):
    try:
        service.reject(current_user.id, tag_id, request.reason, community_id=community_id)
    except CatalogError as e:
        raise to_http_error(e)
    return MessageResponse(message="Tag rejected and removed")


# =============================================================================
# Membership
# =============================================================================

@router.post("/members/{user_id}/departure", response_model=DepartureResponse)
def handle_member_departure(
    community_id: str,
    user_id: str,
    caller: CurrentUser = Depends(require_admin),
    service: OrphanCascadeService = Depends(_get_orphan_service),
):
    """
    Resolve the departing member's orphaned recipes.

    Internal hook: the membership service calls it with a service (admin)
    principal once the leave or removal has been recorded. Members cannot
    trigger it themselves.
    """
    try:
        result = service.handle_departure(user_id, community_id)
    except CatalogError as e:
        raise to_http_error(e)
    logger.info("Departure handled for %s in %s by %s", user_id, community_id, caller.id)
    return DepartureResponse.from_result(result)
