# pyright: reportMissingTypeStubs=false
"""
Authentication dependencies for FastAPI.

Turns the bearer token on a request into the Actor that billing operations
receive. Roles are resolved into capabilities here, once per request.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from auth.capabilities import Actor
from services.jwt_service import jwt_service, TokenPayload

logger = logging.getLogger(__name__)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None

    token = credentials.credentials
    payload = jwt_service.verify_token(token)

    if not payload:
        return None

    return payload


def get_current_actor(
    payload: Optional[TokenPayload] = Depends(get_token_payload)
) -> Actor:
    """Get the authenticated actor from the JWT token."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided"
        )

    actor = Actor.from_roles(payload.user_id, payload.roles)
    if not actor.capabilities:
        logger.warning(f"User {payload.user_id} has no billing capabilities (roles: {payload.roles})")
    return actor
