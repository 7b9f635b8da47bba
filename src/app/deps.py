# src/app/deps.py (singletons do processo, expostos como dependências)

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import settings
from src.app.infra.db.session import (
    SessionFactory,
    create_catalog_engine,
    create_session_factory,
    init_db,
)
from src.app.services.events import DomainEventDispatcher

_client: Client | None = None
_session_factory: Optional[SessionFactory] = None
_dispatcher: Optional[DomainEventDispatcher] = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication backend not configured",
            )
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_session_factory() -> SessionFactory:
    global _session_factory
    if _session_factory is None:
        engine = create_catalog_engine()
        init_db(engine)
        _session_factory = create_session_factory(engine)
    return _session_factory


def get_dispatcher() -> DomainEventDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = DomainEventDispatcher()
    return _dispatcher


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    is_admin: bool = False


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Validates the Supabase access token (Authorization: Bearer <token>)
    against GoTrue and returns the acting principal.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    token = cred.credentials
    try:
        res = supa.auth.get_user(token)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        app_meta = getattr(user, "app_metadata", None) or {}
        is_admin = isinstance(app_meta, dict) and app_meta.get("role") == "admin"

        return CurrentUser(id=str(user.id), email=user.email, name=name, is_admin=is_admin)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


# Community roles live in the membership service; it plugs its lookup in here.
ModeratorChecker = Callable[[str, str], bool]


def _no_community_moderators(user_id: str, community_id: str) -> bool:
    return False


def get_moderator_checker() -> ModeratorChecker:
    return _no_community_moderators


def is_community_moderator(
    user: CurrentUser,
    community_id: str,
    checker: ModeratorChecker,
) -> bool:
    return user.is_admin or checker(user.id, community_id)


async def require_community_moderator(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    checker: ModeratorChecker = Depends(get_moderator_checker),
) -> CurrentUser:
    if not is_community_moderator(current_user, community_id, checker):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Community moderator access required",
        )
    return current_user
