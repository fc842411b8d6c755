"""API key check shared by every duplicate management endpoint."""

import logging
import secrets

from fastapi import Depends, HTTPException, Header, Request, status
from backend.common.config import get_settings, Settings

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


def verify_api_key(
    request: Request,
    x_api_key: str | None = Header(None),
    settings: Settings = Depends(get_settings)
) -> bool:
    """
    Verify the X-API-Key header against CATALOGUE_API_KEY.

    Merges and deletions are irreversible, so the router mounts this as a
    dependency on every route; only the health checks are open.

    Raises:
        HTTPException: 401 when the key is missing or wrong
    """
    if not x_api_key:
        raise _unauthorized("Missing API key. Please provide X-API-Key header.")

    if not secrets.compare_digest(x_api_key.encode(), settings.catalogue_api_key.encode()):
        client_host = request.client.host if request.client else "unknown"
        logger.warning("Rejected API key for %s %s from %s", request.method, request.url.path, client_host)
        raise _unauthorized("Invalid API key.")

    return True
