"""Service layer for review submission and review queries."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from even.collaborators import (
    ChatHistory,
    IdentityDirectory,
    SqlChatHistory,
    SqlIdentityDirectory,
    UserRecord,
    count_sent_by,
)
from even.logging_config import get_logger
from even.models import Review, ReviewStrike, ReviewTypeEnum, ReviewWeekWindow
from even.reviews.config import (
    NORMAL_REVIEW_MIN_MESSAGES_EACH,
    REPORT_MIN_INBOUND_MESSAGES,
    get_review_settings,
)
from even.reviews.emergency import EmergencyGrantTracker
from even.reviews.exceptions import (
    AlreadyReviewedError,
    ContentFlaggedError,
    EmergencyAlreadyUsedError,
    InsufficientMessageHistoryError,
    PhoneRequiredError,
    ReviewServiceError,
    SelfReviewError,
    UserNotFoundError,
)
from even.reviews.moderation import is_flagged
from even.reviews.quota import WeeklyQuotaTracker, WeekUsage
from even.reviews.repository import DuplicateRowError, ReviewRepository
from even.reviews.strikes import StrikeLedger

logger = get_logger(__name__)


def round_rating(value: float) -> float:
    """Round half-up to one decimal (7.25 -> 7.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ReviewService:
    """Eligibility gate and read queries for user reviews."""

    def __init__(
        self,
        session: AsyncSession,
        identity: IdentityDirectory | None = None,
        chat: ChatHistory | None = None,
    ):
        self.session = session
        self.settings = get_review_settings()
        self.identity = identity or SqlIdentityDirectory(session)
        self.chat = chat or SqlChatHistory(session)
        self.review_repo = ReviewRepository(session)
        self.quota = WeeklyQuotaTracker(session)
        self.strikes = StrikeLedger(session, identity=self.identity)
        self.emergency = EmergencyGrantTracker(session)

    # ==========================================
    # SUBMISSION
    # ==========================================

    async def submit_review(
        self,
        reviewer_uid: str,
        target_uid: str,
        rating: int,
        comment: str,
        review_type: str = "normal",
        phone_number_snapshot: str | None = None,
    ) -> Review:
        """Run every eligibility gate in order and persist the review.

        The first failing gate wins and the session is rolled back, except
        for flagged content, where the strike is committed before raising.
        ``phone_number_snapshot`` is accepted from older clients but the
        phone on record is what gets stored.
        """
        try:
            review = await self._submit(reviewer_uid, target_uid, rating, comment, review_type)
        except ContentFlaggedError as e:
            await self.session.commit()
            logger.warning(
                "review_rejected",
                reviewer_uid=reviewer_uid,
                target_uid=target_uid,
                reason=e.error_type,
                strike_number=e.strike_number,
            )
            raise
        except ReviewServiceError as e:
            await self.session.rollback()
            logger.info(
                "review_rejected",
                reviewer_uid=reviewer_uid,
                target_uid=target_uid,
                reason=e.error_type,
            )
            raise

        await self.session.commit()
        logger.info(
            "review_submitted",
            review_id=str(review.id),
            reviewer_uid=reviewer_uid,
            target_uid=target_uid,
            review_type=review_type,
            rating=rating,
        )
        return review

    async def _submit(
        self,
        reviewer_uid: str,
        target_uid: str,
        rating: int,
        comment: str,
        review_type: str,
    ) -> Review:
        if reviewer_uid == target_uid:
            raise SelfReviewError()

        reviewer = await self.identity.get_user_by_uid(reviewer_uid)
        if reviewer is None:
            raise UserNotFoundError(reviewer_uid)
        target = await self.identity.get_user_by_uid(target_uid)
        if target is None:
            raise UserNotFoundError(target_uid)

        if await self.review_repo.exists_for_pair(reviewer_uid, target_uid):
            raise AlreadyReviewedError(reviewer_uid, target_uid)

        is_emergency = review_type == ReviewTypeEnum.emergency.value
        is_report = review_type == ReviewTypeEnum.report.value

        if is_emergency:
            await self._check_emergency_grant(reviewer_uid, target_uid)
            self._check_phone(reviewer)
        elif is_report:
            await self._check_inbound_message(reviewer_uid, target_uid)
        else:
            await self._check_two_way_chat(reviewer_uid, target_uid)

        window: ReviewWeekWindow | None = None
        if not is_emergency and not is_report:
            window = await self.quota.get_or_create_window(reviewer_uid, lock=True)
            self.quota.ensure_available(window)
            self.quota.check_rating(window.reviews_used, rating)

        if is_flagged(comment):
            strike_number = await self.strikes.issue_strike(
                reviewer_uid, self.settings.moderation_strike_reason
            )
            raise ContentFlaggedError(strike_number)

        # Everything below commits together.
        try:
            review = await self.review_repo.create(
                reviewer_uid=reviewer_uid,
                target_uid=target_uid,
                rating=rating,
                comment=comment,
                type=review_type,
                phone_number_used=reviewer.phone if is_emergency else None,
                approved=True,
            )
        except DuplicateRowError:
            raise AlreadyReviewedError(reviewer_uid, target_uid)

        if window is not None:
            await self.quota.record_use(window)

        if is_emergency:
            await self.emergency.mark_used(reviewer_uid, target_uid, reviewer.phone)

        return review

    async def _check_emergency_grant(self, reviewer_uid: str, target_uid: str) -> None:
        if await self.emergency.is_used(reviewer_uid, target_uid):
            raise EmergencyAlreadyUsedError()

    def _check_phone(self, reviewer: UserRecord) -> None:
        if not reviewer.phone:
            raise PhoneRequiredError()

    async def _check_inbound_message(self, reviewer_uid: str, target_uid: str) -> None:
        messages = await self.chat.get_messages_between_users(reviewer_uid, target_uid)
        if count_sent_by(messages, target_uid) < REPORT_MIN_INBOUND_MESSAGES:
            raise InsufficientMessageHistoryError("report")

    async def _check_two_way_chat(self, reviewer_uid: str, target_uid: str) -> None:
        messages = await self.chat.get_messages_between_users(reviewer_uid, target_uid)
        if (
            count_sent_by(messages, reviewer_uid) < NORMAL_REVIEW_MIN_MESSAGES_EACH
            or count_sent_by(messages, target_uid) < NORMAL_REVIEW_MIN_MESSAGES_EACH
        ):
            raise InsufficientMessageHistoryError("normal")

    # ==========================================
    # QUERIES
    # ==========================================

    async def get_user_reviews(self, uid: str) -> list[Review]:
        """Reviews received by ``uid``, newest first."""
        return await self.review_repo.list_for_target(uid)

    async def get_user_average(self, uid: str) -> float | None:
        _, average = await self.review_repo.rating_stats_for_target(uid)
        if average is None:
            return None
        return round_rating(average)

    async def get_weekly_usage(self, uid: str) -> WeekUsage:
        if await self.identity.get_user_by_uid(uid) is None:
            raise UserNotFoundError(uid)
        return await self.quota.get_usage(uid)

    async def get_summary(self, uid: str) -> dict[str, Any]:
        count, average = await self.review_repo.rating_stats_for_target(uid)
        week = await self.get_weekly_usage(uid)
        return {
            "average": round_rating(average) if average is not None else None,
            "count": count,
            "week": week,
        }

    async def get_strike_status(self, uid: str) -> tuple[list[ReviewStrike], datetime | None]:
        """(strikes newest first, running timeout expiry or None)."""
        strikes = await self.strikes.list_strikes(uid)
        return strikes, await self.strikes.active_timeout(uid)
