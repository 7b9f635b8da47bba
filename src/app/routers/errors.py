from __future__ import annotations

import logging

from fastapi import HTTPException, status

from src.app.domain.errors import CatalogError

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: dict[str, int] = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "InvalidState": status.HTTP_400_BAD_REQUEST,
    "DuplicateName": status.HTTP_409_CONFLICT,
    "SelfMerge": status.HTTP_400_BAD_REQUEST,
    "MissingTarget": status.HTTP_400_BAD_REQUEST,
    "MissingReason": status.HTTP_400_BAD_REQUEST,
    "InvalidReference": status.HTTP_400_BAD_REQUEST,
    "InUse": status.HTTP_409_CONFLICT,
    "InvalidName": status.HTTP_400_BAD_REQUEST,
    "InvalidCategory": status.HTTP_400_BAD_REQUEST,
    "ScopeMismatch": status.HTTP_403_FORBIDDEN,
    "LimitExceeded": status.HTTP_400_BAD_REQUEST,
}


def to_http_error(error: CatalogError) -> HTTPException:
    """Translate a catalog error into an HTTPException carrying its kind."""
    status_code = _STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("Catalog operation failed: %s", error)
        return HTTPException(status_code=status_code, detail={"kind": error.kind, "message": "Internal error"})
    return HTTPException(status_code=status_code, detail={"kind": error.kind, "message": str(error)})
