"""Weekly quota tracker for normal reviews.

Each user owns at most one window row. A window covers
``week_window_days`` from its start; once ``now`` passes ``window_end`` the
same row is reset in place rather than a new one being inserted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from even.logging_config import get_logger
from even.models import ReviewWeekWindow
from even.reviews.config import WEEKLY_RATING_BOUNDS, get_review_settings
from even.reviews.exceptions import RatingOutOfRangeError, WeeklyQuotaExceededError
from even.reviews.repository import DuplicateRowError, WeekWindowRepository
from even.utils.datetime_utils import is_expired, utcnow

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WeekUsage:
    used: int
    remaining: int


def rating_bounds_for(position: int) -> tuple[int, int] | None:
    """Inclusive (min, max) rating for the review at ``position`` in a window."""
    return WEEKLY_RATING_BOUNDS.get(position)


class WeeklyQuotaTracker:
    """Loads, resets and spends a user's weekly review window."""

    def __init__(self, session: AsyncSession):
        self.settings = get_review_settings()
        self.window_repo = WeekWindowRepository(session)

    @property
    def window_length(self) -> timedelta:
        return timedelta(days=self.settings.week_window_days)

    async def get_or_create_window(
        self, uid: str, lock: bool = False, now: datetime | None = None
    ) -> ReviewWeekWindow:
        """Return the user's current window, creating or resetting it as needed.

        With ``lock=True`` the row is read FOR UPDATE so that concurrent
        submissions from the same user serialise on it until commit.
        """
        now = now or utcnow()
        window = await self.window_repo.get_for_user(uid, lock=lock)

        if window is None:
            try:
                window = await self.window_repo.create(uid, now, now + self.window_length)
                logger.info("week_window_created", uid=uid)
                return window
            except DuplicateRowError:
                # Another request created it first; use theirs.
                window = await self.window_repo.get_for_user(uid, lock=lock)
                if window is None:
                    raise

        if is_expired(window.window_end, now):
            window.window_start = now
            window.window_end = now + self.window_length
            window.reviews_used = 0
            await self.window_repo.save(window)
            logger.info("week_window_reset", uid=uid)

        return window

    async def get_usage(self, uid: str, now: datetime | None = None) -> WeekUsage:
        """Read-only usage report. Never creates a row."""
        limit = self.settings.weekly_review_limit
        window = await self.window_repo.get_for_user(uid)
        if window is None or is_expired(window.window_end, now):
            return WeekUsage(used=0, remaining=limit)
        return WeekUsage(used=window.reviews_used, remaining=limit - window.reviews_used)

    def ensure_available(self, window: ReviewWeekWindow) -> None:
        limit = self.settings.weekly_review_limit
        if window.reviews_used >= limit:
            raise WeeklyQuotaExceededError(limit)

    def check_rating(self, position: int, rating: int) -> None:
        bounds = rating_bounds_for(position)
        if bounds is None:
            return
        minimum, maximum = bounds
        if rating < minimum or rating > maximum:
            raise RatingOutOfRangeError(position, minimum, maximum)

    async def record_use(self, window: ReviewWeekWindow) -> ReviewWeekWindow:
        window.reviews_used += 1
        return await self.window_repo.save(window)
