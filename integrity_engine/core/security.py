from typing import Optional

from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader, HTTPBearer, HTTPAuthorizationCredentials
import logging
import secrets
from integrity_engine.core.config import settings

logger = logging.getLogger(__name__)

# Bearer token (Authorization: Bearer <token>) or X-API-Key header
bearer_scheme = HTTPBearer(auto_error=False)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    api_key: Optional[str] = Security(api_key_header),
):
    """
    Verify the caller's API key.

    Accepts either an Authorization: Bearer <token> header or an X-API-Key
    header. Can be disabled by setting REQUIRE_API_KEY=false in environment.

    Returns:
        True if authentication is successful

    Raises:
        HTTPException: 401 if no key is provided, 403 if invalid, 500 if misconfigured
    """
    if not settings.REQUIRE_API_KEY:
        return True

    if not settings.API_KEY:
        logger.warning("API key not configured but REQUIRE_API_KEY is True. Denying access.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication is not properly configured"
        )

    provided = credentials.credentials if credentials is not None else api_key
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token is required. Provide Authorization: Bearer <token> header.",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not secrets.compare_digest(provided, settings.API_KEY):
        logger.warning("Invalid API key attempt")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return True
