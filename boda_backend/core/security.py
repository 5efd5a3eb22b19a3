"""Bearer tokens and the explicit actor identity."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from boda_backend.config import settings
from boda_backend.core.exceptions import AuthenticationError

ROLES = frozenset({"client", "supplier", "admin"})


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, passed explicitly into every service call."""

    user_id: str
    role: str = "client"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_actor_token(user_id: str, role: str = "client", ttl: timedelta | None = None) -> str:
    """Issue an access token carrying the user id and role claims."""
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}'")
    expires_at = datetime.now(UTC) + (ttl or timedelta(minutes=settings.access_token_expire_minutes))
    claims = {"sub": user_id, "role": role, "type": "access", "exp": expires_at}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def actor_from_token(token: str) -> Actor:
    """Decode and check a bearer token.

    Raises AuthenticationError for a bad signature, an expired token, a
    non-access token, a missing subject or an unknown role.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}")

    if claims.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    role = claims.get("role", "client")
    if role not in ROLES:
        raise AuthenticationError(f"Unknown role '{role}'")
    return Actor(user_id=str(user_id), role=role)
