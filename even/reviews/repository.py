"""Repository layer for review database operations."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from even.logging_config import get_logger
from even.models import Review, ReviewEmergency, ReviewStrike, ReviewWeekWindow
from even.utils.datetime_utils import utcnow

logger = get_logger(__name__)


class DuplicateRowError(Exception):
    """Raised when an insert hits a unique constraint."""


class ReviewRepository:
    """Repository for review rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists_for_pair(self, reviewer_uid: str, target_uid: str) -> bool:
        result = await self.session.execute(
            select(Review.id).where(
                Review.reviewer_uid == reviewer_uid,
                Review.target_uid == target_uid,
            )
        )
        return result.scalar_one_or_none() is not None

    async def create(self, **kwargs) -> Review:
        """Insert a review inside a savepoint.

        Raises DuplicateRowError when (reviewer_uid, target_uid) is taken,
        leaving the outer transaction usable.
        """
        review = Review(**kwargs)
        try:
            async with self.session.begin_nested():
                self.session.add(review)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateRowError(str(e.orig)) from e
        return review

    async def list_for_target(self, target_uid: str) -> list[Review]:
        result = await self.session.execute(
            select(Review)
            .where(Review.target_uid == target_uid)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def rating_stats_for_target(self, target_uid: str) -> tuple[int, float | None]:
        """Return (count, mean rating) of reviews received by ``target_uid``."""
        result = await self.session.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(
                Review.target_uid == target_uid
            )
        )
        count, average = result.one()
        return int(count or 0), (float(average) if average is not None else None)


class WeekWindowRepository:
    """Repository for weekly quota windows (one row per user)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, user_uid: str, lock: bool = False) -> ReviewWeekWindow | None:
        query = select(ReviewWeekWindow).where(ReviewWeekWindow.user_uid == user_uid)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self, user_uid: str, window_start: datetime, window_end: datetime
    ) -> ReviewWeekWindow:
        window = ReviewWeekWindow(
            user_uid=user_uid,
            window_start=window_start,
            window_end=window_end,
            reviews_used=0,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(window)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateRowError(str(e.orig)) from e
        return window

    async def save(self, window: ReviewWeekWindow) -> ReviewWeekWindow:
        window.updated_at = utcnow()
        await self.session.flush()
        return window


class StrikeRepository:
    """Repository for the append-only strike ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_for_user(self, user_uid: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(ReviewStrike).where(
                ReviewStrike.user_uid == user_uid
            )
        )
        return result.scalar() or 0

    async def create(self, **kwargs) -> ReviewStrike:
        """Insert a strike. Raises DuplicateRowError if the user already has this strike number."""
        strike = ReviewStrike(**kwargs)
        try:
            async with self.session.begin_nested():
                self.session.add(strike)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateRowError(str(e.orig)) from e
        return strike

    async def list_for_user(self, user_uid: str) -> list[ReviewStrike]:
        result = await self.session.execute(
            select(ReviewStrike)
            .where(ReviewStrike.user_uid == user_uid)
            .order_by(ReviewStrike.strike_number.desc())
        )
        return list(result.scalars().all())

    async def latest_expiry(self, user_uid: str) -> datetime | None:
        result = await self.session.execute(
            select(func.max(ReviewStrike.timeout_expires_at)).where(
                ReviewStrike.user_uid == user_uid
            )
        )
        return result.scalar_one_or_none()


class EmergencyGrantRepository:
    """Repository for emergency review grants, keyed by (reviewer, target)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_pair(self, reviewer_uid: str, target_uid: str) -> ReviewEmergency | None:
        result = await self.session.execute(
            select(ReviewEmergency).where(
                ReviewEmergency.reviewer_uid == reviewer_uid,
                ReviewEmergency.target_uid == target_uid,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, reviewer_uid: str, target_uid: str) -> ReviewEmergency:
        grant = ReviewEmergency(reviewer_uid=reviewer_uid, target_uid=target_uid, used=False)
        self.session.add(grant)
        await self.session.flush()
        return grant

    async def save(self, grant: ReviewEmergency) -> ReviewEmergency:
        grant.updated_at = utcnow()
        await self.session.flush()
        return grant
