"""
Identity context.

Bearer tokens are HS256 JWTs carrying ``{id, email, role}``.  The rest of
the service only ever sees the resulting ``CallerIdentity``.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

import jwt

from ridepool.config import settings
from ridepool.domain.enums import UserRole
from ridepool.domain.errors import Unauthenticated


@dataclass(frozen=True)
class CallerIdentity:
    id: str
    role: UserRole
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles


def issue_token(
    user_id: str,
    role: UserRole,
    email: str | None = None,
    expires_in: dt.timedelta | None = None,
) -> str:
    expires_in = expires_in or dt.timedelta(minutes=settings.jwt_expiry_minutes)
    payload = {
        "id": user_id,
        "email": email,
        "role": UserRole(role).value,
        "exp": dt.datetime.now(dt.timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify(credential: str | None) -> CallerIdentity:
    """Resolve a bearer credential to the caller, or raise ``Unauthenticated``."""
    if not credential:
        raise Unauthenticated("Access denied")
    try:
        claims = jwt.decode(
            credential,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthenticated("Invalid token") from exc

    try:
        return CallerIdentity(
            id=str(claims["id"]),
            role=UserRole(claims.get("role", UserRole.PASSENGER.value)),
            email=claims.get("email"),
        )
    except (KeyError, ValueError) as exc:
        raise Unauthenticated("Invalid token") from exc
