"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.enums import UserRole
from ridepool.domain.errors import Forbidden
from ridepool.infrastructure.database import async_session_factory
from ridepool.infrastructure.identity import CallerIdentity, verify

_bearer = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> CallerIdentity:
    """Resolve the ``Authorization: Bearer`` header to the caller."""
    return verify(credentials.credentials if credentials else None)


def require_roles(*roles: UserRole):
    """Dependency factory: reject callers whose role is not in *roles*."""

    async def _check(caller: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
        if not caller.has_role(*roles):
            raise Forbidden("Access denied")
        return caller

    return _check
