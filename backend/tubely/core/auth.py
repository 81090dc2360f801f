"""
Bearer token authentication for Tubely.

Tokens are HMAC-signed JWTs (python-jose) whose ``sub`` claim is the caller's
user UUID. Issuing tokens to end users is handled elsewhere; this module only
verifies them, plus a ``create_access_token`` helper used by tooling and
tests.

Usage:
    ```python
    from tubely.core.auth import get_current_user_id

    @router.get("/videos")
    async def list_videos(user_id: str = Depends(get_current_user_id)):
        ...
    ```
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings


logger = logging.getLogger(__name__)

TOKEN_ISSUER = "tubely-access"

# auto_error is off so that a missing header is a 401 like any other bad token
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication.",
    auto_error=False,
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(
    user_id: str,
    settings: Settings | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Create a signed access token for ``user_id``.

    Token claims:
    - sub: User UUID
    - iss: ``tubely-access``
    - iat / exp: Issue and expiry timestamps
    """
    if settings is None:
        settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (expires_in or timedelta(hours=settings.jwt_expiration_hours))

    payload = {
        "sub": user_id,
        "iss": TOKEN_ISSUER,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def validate_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify a token's signature, expiry and issuer.

    Returns:
        dict: The decoded claims.

    Raises:
        JWTError: If the token is invalid, expired, or signature verification fails.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=TOKEN_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Access token has expired")
        raise
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise

    logger.debug("Access token validated for subject: %s", payload.get("sub", "unknown"))
    return payload


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Resolve the caller's user UUID from the Authorization header.

    Raises:
        HTTPException: 401 if the header is missing, the token does not verify,
            or its subject is not a UUID.
    """
    if credentials is None:
        raise _unauthorized("Couldn't find JWT")

    try:
        payload = validate_access_token(credentials.credentials, settings)
    except JWTError as e:
        raise _unauthorized("Couldn't validate JWT") from e

    subject = payload.get("sub")
    try:
        return str(UUID(str(subject)))
    except ValueError as e:
        logger.warning("Token subject is not a UUID: %r", subject)
        raise _unauthorized("Invalid token: missing user identifier") from e
