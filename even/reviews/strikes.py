"""Strike ledger: progressive review timeouts and the third-strike penalty."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from even.collaborators import IdentityDirectory, SqlIdentityDirectory
from even.logging_config import get_logger
from even.models import ReviewStrike, ReviewTypeEnum
from even.reviews.config import STRIKE_TIMEOUT_HOURS, get_review_settings
from even.reviews.exceptions import UserNotFoundError
from even.reviews.repository import (
    DuplicateRowError,
    ReviewRepository,
    StrikeRepository,
)
from even.utils.datetime_utils import ensure_utc, hours_from, utcnow

logger = get_logger(__name__)


def timeout_hours_for(strike_number: int) -> int:
    """Timeout attached to the Nth strike; 0 past the end of the schedule."""
    return STRIKE_TIMEOUT_HOURS.get(strike_number, 0)


class StrikeLedger:
    """Issues and reads strikes. Never updates or deletes a strike."""

    def __init__(
        self,
        session: AsyncSession,
        identity: IdentityDirectory | None = None,
    ):
        self.settings = get_review_settings()
        self.identity = identity or SqlIdentityDirectory(session)
        self.strike_repo = StrikeRepository(session)
        self.review_repo = ReviewRepository(session)

    async def issue_strike(self, uid: str, reason: str) -> int:
        """Record a strike against ``uid`` and return its strike number.

        The caller owns the transaction; this only flushes. If a concurrent
        request takes the same strike number, the count is re-read and the
        insert retried.
        """
        user = await self.identity.get_user_by_uid(uid)
        if user is None:
            raise UserNotFoundError(uid)

        attempts = max(1, self.settings.strike_insert_attempts)
        for attempt in range(1, attempts + 1):
            strike_number = await self.strike_repo.count_for_user(uid) + 1
            timeout_hours = timeout_hours_for(strike_number)
            now = utcnow()
            try:
                await self.strike_repo.create(
                    user_uid=uid,
                    reason=reason,
                    strike_number=strike_number,
                    timeout_hours=timeout_hours,
                    timeout_expires_at=hours_from(now, timeout_hours),
                    created_at=now,
                )
                break
            except DuplicateRowError:
                if attempt == attempts:
                    raise
                logger.warning("strike_number_taken", uid=uid, strike_number=strike_number)

        logger.info(
            "strike_issued",
            uid=uid,
            strike_number=strike_number,
            timeout_hours=timeout_hours,
            reason=reason,
        )

        if strike_number == self.settings.penalty_strike_number:
            await self._issue_penalty_review(uid)

        return strike_number

    async def _issue_penalty_review(self, uid: str) -> None:
        await self.review_repo.create(
            reviewer_uid=self.settings.system_reviewer_uid,
            target_uid=uid,
            rating=self.settings.penalty_rating,
            comment=self.settings.penalty_comment,
            type=ReviewTypeEnum.normal.value,
            approved=True,
            strike_issued=True,
        )
        logger.warning("penalty_review_issued", uid=uid, rating=self.settings.penalty_rating)

    async def list_strikes(self, uid: str) -> list[ReviewStrike]:
        """All strikes for ``uid``, newest first."""
        return await self.strike_repo.list_for_user(uid)

    async def active_timeout(self, uid: str, now: datetime | None = None) -> datetime | None:
        """Expiry of the running review timeout, or None when none is active."""
        expires_at = await self.strike_repo.latest_expiry(uid)
        if expires_at is None:
            return None
        expires_at = ensure_utc(expires_at)
        if expires_at <= (now or utcnow()):
            return None
        return expires_at
