"""Emergency review grants: one per (reviewer, target), never expiring."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from even.logging_config import get_logger
from even.models import ReviewEmergency
from even.reviews.repository import EmergencyGrantRepository
from even.utils.datetime_utils import utcnow

logger = get_logger(__name__)


class EmergencyGrantTracker:
    def __init__(self, session: AsyncSession):
        self.grant_repo = EmergencyGrantRepository(session)

    async def get_grant(self, reviewer_uid: str, target_uid: str) -> ReviewEmergency | None:
        return await self.grant_repo.get_for_pair(reviewer_uid, target_uid)

    async def is_used(self, reviewer_uid: str, target_uid: str) -> bool:
        grant = await self.get_grant(reviewer_uid, target_uid)
        return grant is not None and grant.used

    async def mark_used(
        self, reviewer_uid: str, target_uid: str, phone: str | None
    ) -> ReviewEmergency:
        """Consume the grant, creating its row first if it does not exist."""
        grant = await self.get_grant(reviewer_uid, target_uid)
        if grant is None:
            grant = await self.grant_repo.create(reviewer_uid, target_uid)

        grant.used = True
        grant.used_at = utcnow()
        grant.phone_number_snapshot = phone
        await self.grant_repo.save(grant)

        logger.info("emergency_grant_used", reviewer_uid=reviewer_uid, target_uid=target_uid)
        return grant
