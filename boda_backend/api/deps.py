"""API dependencies for authentication and common operations."""

from typing import Annotated

from fastapi import Depends, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from boda_backend.core.exceptions import AuthenticationError, AuthorizationError
from boda_backend.core.security import Actor, actor_from_token
from boda_backend.database import get_db

__all__ = [
    "get_db",
    "get_current_actor",
    "get_current_supplier_actor",
    "get_current_admin",
    "get_websocket_actor",
]

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """Resolve the caller from the bearer token.

    The actor comes only from verified token claims; nothing is read from
    ambient state.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return actor_from_token(credentials.credentials)


async def get_current_supplier_actor(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Caller holding the supplier (or admin) role."""
    if actor.role not in ("supplier", "admin"):
        raise AuthorizationError("Supplier access required")
    return actor


async def get_current_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Caller holding the admin role."""
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    return actor


def get_websocket_actor(websocket: WebSocket) -> Actor:
    """Resolve a WebSocket caller from ``?token=`` or the Authorization header."""
    token = websocket.query_params.get("token")
    if not token:
        auth = websocket.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth[7:]
    if not token:
        raise AuthenticationError("Not authenticated")
    return actor_from_token(token)
