"""Account registration, login and contact details."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.enums import UserRole
from ridepool.domain.errors import InvalidInput, InvalidState, NotFound, Unauthenticated
from ridepool.infrastructure.identity import issue_token
from ridepool.infrastructure.models import UserModel
from ridepool.infrastructure.passwords import hash_password, verify_password
from ridepool.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)

    async def register(
        self, *, name: str, email: str, password: str, phone: Optional[str] = None
    ) -> UserModel:
        """
        Create a passenger account.

        Every account starts as a passenger; the driver role is only ever
        gained through ``DriverService.become_driver``.
        """
        if not name or not email or not password:
            raise InvalidInput("Name, email and password are required.")
        email = email.strip().lower()
        if await self.users.get_by_email(email) is not None:
            raise InvalidState("Email already registered")
        try:
            user = await self.users.create_user(
                name=name, email=email, phone=phone, password_hash=hash_password(password)
            )
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same address
            raise InvalidState("Email already registered") from exc
        logger.info("Registered user %s", user.id)
        return user

    async def login(self, *, email: str, password: str) -> dict:
        user = await self.users.get_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid credentials")
        role = UserRole(user.role)
        return {
            "token": issue_token(user.id, role, user.email),
            "token_type": "bearer",
            "user_id": user.id,
            "role": role,
        }

    async def update_profile(self, user_id: str, *, name: str, phone: str) -> None:
        if not name or not phone:
            raise InvalidInput("Name and phone are required.")
        if not await self.users.update_contact(user_id, name=name, phone=phone):
            raise NotFound("User not found")
