# src/app/routers/admin_catalog.py
"""
Admin routes for ingredients and tags.
Both kinds expose the same moderation surface, built by one factory.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.app.deps import CurrentUser, get_dispatcher, get_session_factory, require_admin
from src.app.domain.errors import CatalogError
from src.app.domain.models import EntityKind, EntityStatus, TagScope
from src.app.infra.db.session import SessionFactory
from src.app.routers.errors import to_http_error
from src.app.schemas.catalog import (
    ApproveRequest,
    EntityCreate,
    EntityListResponse,
    EntityRename,
    EntityResponse,
    MergeRequest,
    MergeResponse,
    MessageResponse,
    RejectRequest,
)
from src.app.services.events import DomainEventDispatcher
from src.app.services.merge import MergeService
from src.app.services.moderation import ModerationService

logger = logging.getLogger(__name__)


def build_entity_router(kind: EntityKind, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    def _moderation(
        session_factory: SessionFactory = Depends(get_session_factory),
        dispatcher: DomainEventDispatcher = Depends(get_dispatcher),
    ) -> ModerationService:
        return ModerationService(session_factory, dispatcher, kind)

    def _merge(
        session_factory: SessionFactory = Depends(get_session_factory),
        dispatcher: DomainEventDispatcher = Depends(get_dispatcher),
    ) -> MergeService:
        return MergeService(session_factory, dispatcher)

    @router.get("", response_model=EntityListResponse)
    def list_entities(
        search: Optional[str] = Query(default=None),
        status_filter: Optional[EntityStatus] = Query(default=None, alias="status"),
        scope: Optional[TagScope] = Query(default=None),
        limit: int = Query(default=100, ge=1, le=500),
        offset: int = Query(default=0, ge=0),
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        entities = service.list_entities(
            search=search,
            status=status_filter,
            scope=scope,
            limit=limit,
            offset=offset,
        )
        return EntityListResponse(
            data=[EntityResponse.from_entity(e) for e in entities],
            limit=limit,
            offset=offset,
        )

    @router.post("", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
    def create_entity(
        request: EntityCreate,
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        try:
            entity = service.create(
                admin.id,
                request.name,
                default_unit_id=request.defaultUnitId if kind == EntityKind.INGREDIENT else None,
            )
        except CatalogError as e:
            raise to_http_error(e)
        return EntityResponse.from_entity(entity)

    @router.patch("/{entity_id}", response_model=EntityResponse)
    def rename_entity(
        entity_id: str,
        request: EntityRename,
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        try:
            entity = service.rename(admin.id, entity_id, request.name)
        except CatalogError as e:
            raise to_http_error(e)
        return EntityResponse.from_entity(entity)

    @router.delete("/{entity_id}", response_model=MessageResponse)
    def delete_entity(
        entity_id: str,
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        try:
            entity = service.delete(admin.id, entity_id)
        except CatalogError as e:
            raise to_http_error(e)
        return MessageResponse(message=f'{service.target_type} "{entity.name}" deleted')

    @router.post("/{entity_id}/approve", response_model=EntityResponse)
    def approve_entity(
        entity_id: str,
        request: ApproveRequest,
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        try:
            entity = service.approve(admin.id, entity_id, request.newName)
        except CatalogError as e:
            raise to_http_error(e)
        return EntityResponse.from_entity(entity)

    @router.post("/{entity_id}/reject", response_model=MessageResponse)
    def reject_entity(
        entity_id: str,
        request: RejectRequest,
        admin: CurrentUser = Depends(require_admin),
        service: ModerationService = Depends(_moderation),
    ):
        try:
            entity = service.reject(admin.id, entity_id, request.reason)
        except CatalogError as e:
            raise to_http_error(e)
        return MessageResponse(message=f'{service.target_type} "{entity.name}" rejected and removed')

    @router.post("/{entity_id}/merge", response_model=MergeResponse)
    def merge_entity(
        entity_id: str,
        request: MergeRequest,
        admin: CurrentUser = Depends(require_admin),
        merge_service: MergeService = Depends(_merge),
    ):
        try:
            result = merge_service.merge(admin.id, kind, entity_id, request.targetId)
        except CatalogError as e:
            raise to_http_error(e)
        return MergeResponse(
            message=f'"{result.source.name}" merged into "{result.target.name}"',
            sourceId=result.source.id,
            targetId=result.target.id,
            migrated=result.migrated,
            deduplicated=result.deduplicated,
        )

    return router


ingredients_router = build_entity_router(EntityKind.INGREDIENT, "/admin/ingredients", "Admin Ingredients")
tags_router = build_entity_router(EntityKind.TAG, "/admin/tags", "Admin Tags")
