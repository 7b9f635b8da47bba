# src/app/routers/admin_units.py
"""
Admin routes for measurement units and the admin activity feed.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from src.app.deps import CurrentUser, get_session_factory, require_admin
from src.app.domain.errors import CatalogError
from src.app.domain.models import AuditType
from src.app.infra.db.session import SessionFactory
from src.app.routers.errors import to_http_error
from src.app.schemas.catalog import (
    AuditEntryResponse,
    MessageResponse,
    UnitCreate,
    UnitResponse,
    UnitUpdate,
)
from src.app.services.audit import AuditLogService
from src.app.services.units import UnitAdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Units"])


def _get_unit_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> UnitAdminService:
    return UnitAdminService(session_factory)


def _get_audit_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> AuditLogService:
    return AuditLogService(session_factory)


@router.get("/units", response_model=List[UnitResponse])
def list_units(
    admin: CurrentUser = Depends(require_admin),
    service: UnitAdminService = Depends(_get_unit_service),
):
    return [UnitResponse.from_unit(u) for u in service.list_units()]


@router.post("/units", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(
    request: UnitCreate,
    admin: CurrentUser = Depends(require_admin),
    service: UnitAdminService = Depends(_get_unit_service),
):
    try:
        unit = service.create(
            admin.id,
            request.name,
            request.abbreviation,
            request.category,
            sort_order=request.sortOrder,
        )
    except CatalogError as e:
        raise to_http_error(e)
    return UnitResponse.from_unit(unit)


@router.patch("/units/{unit_id}", response_model=UnitResponse)
def update_unit(
    unit_id: str,
    request: UnitUpdate,
    admin: CurrentUser = Depends(require_admin),
    service: UnitAdminService = Depends(_get_unit_service),
):
    try:
        unit = service.update(
            admin.id,
            unit_id,
            name=request.name,
            abbreviation=request.abbreviation,
            category=request.category,
            sort_order=request.sortOrder,
        )
    except CatalogError as e:
        raise to_http_error(e)
    return UnitResponse.from_unit(unit)


@router.delete("/units/{unit_id}", response_model=MessageResponse)
def delete_unit(
    unit_id: str,
    admin: CurrentUser = Depends(require_admin),
    service: UnitAdminService = Depends(_get_unit_service),
):
    try:
        unit = service.remove_if_unused(admin.id, unit_id)
    except CatalogError as e:
        raise to_http_error(e)
    return MessageResponse(message=f'Unit "{unit.name}" deleted')


@router.get("/activity", response_model=List[AuditEntryResponse])
def list_activity(
    type_filter: Optional[List[AuditType]] = Query(default=None, alias="type"),
    actor_id: Optional[str] = Query(default=None, alias="actorId"),
    community_id: Optional[str] = Query(default=None, alias="communityId"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    admin: CurrentUser = Depends(require_admin),
    service: AuditLogService = Depends(_get_audit_service),
):
    entries = service.list_entries(
        types=type_filter,
        actor_id=actor_id,
        community_id=community_id,
        limit=limit,
        offset=offset,
    )
    return [AuditEntryResponse.from_entry(e) for e in entries]
