"""End-to-end review flows against a real (SQLite) database."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from even.collaborators import SqlChatHistory, SqlIdentityDirectory
from even.models import Review, ReviewEmergency, ReviewStrike
from even.reviews.exceptions import (
    AlreadyReviewedError,
    ContentFlaggedError,
    EmergencyAlreadyUsedError,
    InsufficientMessageHistoryError,
    RatingOutOfRangeError,
    WeeklyQuotaExceededError,
)
from even.reviews.quota import WeekUsage
from even.reviews.repository import (
    DuplicateRowError,
    ReviewRepository,
    StrikeRepository,
    WeekWindowRepository,
)
from even.reviews.service import ReviewService
from even.utils.datetime_utils import utcnow
from tests.factories import seed_chat, seed_user

TWO_WAY = ("alice", "bob", "alice", "bob")


async def _count(db, model, **filters) -> int:
    query = select(func.count()).select_from(model)
    for column, value in filters.items():
        query = query.where(getattr(model, column) == value)
    return (await db.execute(query)).scalar()


class TestCollaborators:
    @pytest.mark.asyncio
    async def test_identity_lookup(self, db):
        await seed_user(db, "alice", phone="+15550001111")

        directory = SqlIdentityDirectory(db)
        user = await directory.get_user_by_uid("alice")

        assert user.uid == "alice"
        assert user.phone == "+15550001111"
        assert await directory.get_user_by_uid("ghost") is None

    @pytest.mark.asyncio
    async def test_chat_history_either_orientation(self, db):
        await seed_chat(db, "bob", "alice", "bob", "alice", "alice")

        history = SqlChatHistory(db)
        messages = await history.get_messages_between_users("alice", "bob")

        assert [m.sender_uid for m in messages] == ["bob", "alice", "alice"]
        assert messages == await history.get_messages_between_users("bob", "alice")

    @pytest.mark.asyncio
    async def test_chat_history_without_match(self, db):
        assert await SqlChatHistory(db).get_messages_between_users("alice", "bob") == []


class TestRepositories:
    @pytest.mark.asyncio
    async def test_duplicate_review_leaves_session_usable(self, db):
        repo = ReviewRepository(db)
        await repo.create(reviewer_uid="alice", target_uid="bob", rating=8, comment="a", type="normal")

        with pytest.raises(DuplicateRowError):
            await repo.create(reviewer_uid="alice", target_uid="bob", rating=5, comment="b", type="normal")

        await repo.create(reviewer_uid="carol", target_uid="bob", rating=6, comment="c", type="normal")
        await db.commit()

        assert await _count(db, Review, target_uid="bob") == 2

    @pytest.mark.asyncio
    async def test_reviews_newest_first_and_stats(self, db):
        repo = ReviewRepository(db)
        now = utcnow()
        for i, (reviewer, rating) in enumerate([("a", 7), ("b", 7), ("c", 7), ("d", 8)]):
            await repo.create(
                reviewer_uid=reviewer,
                target_uid="bob",
                rating=rating,
                comment="ok",
                type="normal",
                created_at=now - timedelta(hours=10 - i),
            )
        await db.commit()

        reviews = await repo.list_for_target("bob")
        count, average = await repo.rating_stats_for_target("bob")

        assert [r.reviewer_uid for r in reviews] == ["d", "c", "b", "a"]
        assert count == 4
        assert average == pytest.approx(7.25)
        assert await ReviewService(db).get_user_average("bob") == 7.3

    @pytest.mark.asyncio
    async def test_one_window_per_user(self, db):
        await seed_user(db, "alice")
        repo = WeekWindowRepository(db)
        now = utcnow()
        await repo.create("alice", now, now + timedelta(days=7))

        with pytest.raises(DuplicateRowError):
            await repo.create("alice", now, now + timedelta(days=7))

    @pytest.mark.asyncio
    async def test_strike_number_is_unique_per_user(self, db):
        await seed_user(db, "alice")
        repo = StrikeRepository(db)
        now = utcnow()
        await repo.create(
            user_uid="alice", reason="r", strike_number=1, timeout_hours=24,
            timeout_expires_at=now + timedelta(hours=24), created_at=now,
        )

        with pytest.raises(DuplicateRowError):
            await repo.create(
                user_uid="alice", reason="r", strike_number=1, timeout_hours=24,
                timeout_expires_at=now + timedelta(hours=24), created_at=now,
            )

        await repo.create(
            user_uid="alice", reason="r", strike_number=2, timeout_hours=72,
            timeout_expires_at=now + timedelta(hours=72), created_at=now,
        )
        await db.commit()

        assert await repo.count_for_user("alice") == 2


class TestNormalReviewFlow:
    @pytest.mark.asyncio
    async def test_submit_then_duplicate(self, db):
        await seed_user(db, "alice")
        await seed_user(db, "bob")
        await seed_chat(db, "alice", "bob", *TWO_WAY)
        await db.commit()

        service = ReviewService(db)
        review = await service.submit_review("alice", "bob", 8, "Kind and funny")

        assert review.type == "normal"
        assert review.approved is True
        assert await service.get_weekly_usage("alice") == WeekUsage(used=1, remaining=2)

        with pytest.raises(AlreadyReviewedError):
            await service.submit_review("alice", "bob", 9, "Still kind")

        assert await _count(db, Review, reviewer_uid="alice") == 1
        assert await service.get_weekly_usage("alice") == WeekUsage(used=1, remaining=2)

    @pytest.mark.asyncio
    async def test_one_sided_chat_is_rejected(self, db):
        await seed_user(db, "alice")
        await seed_user(db, "bob")
        await seed_chat(db, "alice", "bob", "alice", "alice", "bob")
        await db.commit()

        with pytest.raises(InsufficientMessageHistoryError):
            await ReviewService(db).submit_review("alice", "bob", 8, "Nice")

        assert await _count(db, Review) == 0

    @pytest.mark.asyncio
    async def test_weekly_quota_and_reset(self, db):
        await seed_user(db, "alice")
        for target in ("bob", "carol", "dave", "erin"):
            await seed_user(db, target)
            await seed_chat(db, "alice", target, "alice", target, "alice", target)
        await db.commit()

        service = ReviewService(db)
        await service.submit_review("alice", "bob", 3, "Fine")
        with pytest.raises(RatingOutOfRangeError):
            await service.submit_review("alice", "carol", 4, "Meh")
        await service.submit_review("alice", "carol", 5, "Okay")
        await service.submit_review("alice", "dave", 3, "Fine")

        with pytest.raises(WeeklyQuotaExceededError):
            await service.submit_review("alice", "erin", 9, "Great")
        assert await service.get_weekly_usage("alice") == WeekUsage(used=3, remaining=0)

        window = await WeekWindowRepository(db).get_for_user("alice")
        window.window_end = utcnow() - timedelta(minutes=1)
        await db.commit()

        assert await service.get_weekly_usage("alice") == WeekUsage(used=0, remaining=3)
        await service.submit_review("alice", "erin", 9, "Great")
        assert await service.get_weekly_usage("alice") == WeekUsage(used=1, remaining=2)

    @pytest.mark.asyncio
    async def test_usage_without_window(self, db):
        await seed_user(db, "alice")
        await db.commit()

        assert await ReviewService(db).get_weekly_usage("alice") == WeekUsage(used=0, remaining=3)


class TestModerationFlow:
    @pytest.mark.asyncio
    async def test_strikes_persist_and_third_adds_penalty(self, db):
        await seed_user(db, "alice")
        await seed_user(db, "bob")
        await seed_chat(db, "alice", "bob", *TWO_WAY)
        await db.commit()

        service = ReviewService(db)
        for expected in (1, 2, 3):
            with pytest.raises(ContentFlaggedError) as exc:
                await service.submit_review("alice", "bob", 5, "a classic jerk")
            assert exc.value.strike_number == expected

        strikes, expires_at = await service.get_strike_status("alice")
        assert [s.strike_number for s in strikes] == [3, 2, 1]
        assert [s.timeout_hours for s in strikes] == [168, 72, 24]
        assert expires_at is not None

        penalty = (
            await db.execute(select(Review).where(Review.target_uid == "alice"))
        ).scalar_one()
        assert penalty.reviewer_uid == "SYSTEM"
        assert penalty.rating == 2
        assert await service.get_user_average("alice") == 2.0

        assert await _count(db, Review, target_uid="bob") == 0
        assert await service.get_weekly_usage("alice") == WeekUsage(used=0, remaining=3)

    @pytest.mark.asyncio
    async def test_fourth_strike_has_no_timeout(self, db):
        await seed_user(db, "alice")
        await seed_user(db, "bob")
        await seed_chat(db, "bob", "alice", "bob")
        await db.commit()

        service = ReviewService(db)
        for _ in range(4):
            with pytest.raises(ContentFlaggedError):
                await service.submit_review("alice", "bob", 1, "kys", review_type="report")

        strikes, _ = await service.get_strike_status("alice")
        assert strikes[0].strike_number == 4
        assert strikes[0].timeout_hours == 0
        assert await _count(db, ReviewStrike, user_uid="alice") == 4
        assert await _count(db, Review, reviewer_uid="SYSTEM") == 1


class TestEmergencyFlow:
    @pytest.mark.asyncio
    async def test_emergency_review_consumes_grant(self, db):
        await seed_user(db, "alice", phone="+15550001111")
        await seed_user(db, "bob")
        await db.commit()

        review = await ReviewService(db).submit_review(
            "alice", "bob", 1, "Did not show up and sent threats later", review_type="emergency"
        )

        assert review.phone_number_used == "+15550001111"
        grant = (
            await db.execute(
                select(ReviewEmergency).where(
                    ReviewEmergency.reviewer_uid == "alice",
                    ReviewEmergency.target_uid == "bob",
                )
            )
        ).scalar_one()
        assert grant.used is True
        assert grant.phone_number_snapshot == "+15550001111"
        assert await ReviewService(db).get_weekly_usage("alice") == WeekUsage(used=0, remaining=3)

    @pytest.mark.asyncio
    async def test_spent_grant_is_rejected(self, db):
        await seed_user(db, "alice", phone="+15550001111")
        await seed_user(db, "bob")
        db.add(ReviewEmergency(reviewer_uid="alice", target_uid="bob", used=True, used_at=utcnow()))
        await db.commit()

        with pytest.raises(EmergencyAlreadyUsedError):
            await ReviewService(db).submit_review(
                "alice", "bob", 1, "Second emergency", review_type="emergency"
            )

    @pytest.mark.asyncio
    async def test_second_emergency_for_pair_is_already_reviewed(self, db):
        await seed_user(db, "alice", phone="+15550001111")
        await seed_user(db, "bob")
        await db.commit()

        service = ReviewService(db)
        await service.submit_review("alice", "bob", 1, "Unsafe meetup", review_type="emergency")

        with pytest.raises(AlreadyReviewedError):
            await service.submit_review("alice", "bob", 1, "Unsafe again", review_type="emergency")

        grant = (
            await db.execute(
                select(ReviewEmergency).where(
                    ReviewEmergency.reviewer_uid == "alice",
                    ReviewEmergency.target_uid == "bob",
                )
            )
        ).scalar_one()
        assert grant.used is True
        assert await _count(db, Review, reviewer_uid="alice") == 1
