"""
Agreement Resolver -- either named party may settle an agreement.

The row keeps a single flat status; who accepted is not recorded.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.entities import resolve
from ridepool.domain.enums import ResolutionStatus
from ridepool.domain.errors import Forbidden, InvalidInput, InvalidState
from ridepool.infrastructure.models import AgreementModel
from ridepool.infrastructure.repositories import AgreementRepository

logger = logging.getLogger(__name__)


class AgreementResolver:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.agreements = AgreementRepository(session)

    async def accept(self, agreement_id: str, caller_id: str) -> bool:
        return await self._settle(agreement_id, caller_id, ResolutionStatus.ACCEPTED)

    async def reject(self, agreement_id: str, caller_id: str) -> bool:
        return await self._settle(agreement_id, caller_id, ResolutionStatus.REJECTED)

    async def list_for_user(self, user_id: str) -> list[AgreementModel]:
        return await self.agreements.list_for_user(user_id)

    async def _settle(
        self, agreement_id: str, caller_id: str, target: ResolutionStatus
    ) -> bool:
        if not agreement_id:
            raise InvalidInput("Agreement ID is required")
        if await self.agreements.get_for_party(agreement_id, caller_id) is None:
            raise Forbidden(f"Unauthorized to {_VERBS[target]} this agreement")

        if await self.agreements.resolve_pending(agreement_id, target):
            logger.info("Agreement %s %s by %s", agreement_id, target.value, caller_id)
            return True

        current = await self.agreements.current_status(agreement_id)
        if current is None or current == ResolutionStatus.PENDING:
            raise InvalidState("Agreement changed concurrently, please retry.")
        return resolve(current, target)


_VERBS = {
    ResolutionStatus.ACCEPTED: "accept",
    ResolutionStatus.REJECTED: "reject",
}
