"""API endpoints for user reviews."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from even.auth import AuthUser, get_current_user
from even.database import get_db
from even.logging_config import get_logger
from even.reviews.exceptions import ReviewServiceError, raise_http_exception
from even.reviews.schemas import (
    ReviewAverageResponse,
    ReviewCreateRequest,
    ReviewResponse,
    ReviewSummaryResponse,
    StrikeResponse,
    StrikeStatusResponse,
    WeekUsageResponse,
)
from even.reviews.service import ReviewService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


# ===========================================
# SUBMISSION
# ===========================================


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    """Submit a review of another user."""
    try:
        service = ReviewService(db)
        review = await service.submit_review(
            reviewer_uid=user.uid,
            target_uid=body.target_uid,
            rating=body.rating,
            comment=body.comment,
            review_type=body.type,
            phone_number_snapshot=body.phone_number_snapshot,
        )
    except ReviewServiceError as e:
        raise_http_exception(e)
    return ReviewResponse.model_validate(review)


# ===========================================
# CALLER
# ===========================================


@router.get("/me", response_model=list[ReviewResponse])
async def get_my_reviews(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    """Reviews the caller has received, newest first."""
    service = ReviewService(db)
    reviews = await service.get_user_reviews(user.uid)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/me/week-usage", response_model=WeekUsageResponse)
async def get_my_week_usage(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    """How many normal reviews the caller has used in the current window."""
    try:
        service = ReviewService(db)
        usage = await service.get_weekly_usage(user.uid)
    except ReviewServiceError as e:
        raise_http_exception(e)
    return WeekUsageResponse(used=usage.used, remaining=usage.remaining)


@router.get("/me/strikes", response_model=StrikeStatusResponse)
async def get_my_strikes(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    service = ReviewService(db)
    strikes, expires_at = await service.get_strike_status(user.uid)
    return StrikeStatusResponse(
        strikes=[StrikeResponse.model_validate(s) for s in strikes],
        timeout_expires_at=expires_at,
    )


@router.get("/summary/me", response_model=ReviewSummaryResponse)
async def get_my_summary(
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    """Average and count of received reviews plus weekly usage."""
    try:
        service = ReviewService(db)
        summary = await service.get_summary(user.uid)
    except ReviewServiceError as e:
        raise_http_exception(e)
    week = summary["week"]
    return ReviewSummaryResponse(
        average=summary["average"],
        count=summary["count"],
        week=WeekUsageResponse(used=week.used, remaining=week.remaining),
    )


# ===========================================
# PUBLIC PROFILE
# ===========================================


@router.get("/user/{uid}", response_model=list[ReviewResponse])
async def get_user_reviews(
    uid: str,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    """Reviews a user has received, newest first."""
    service = ReviewService(db)
    reviews = await service.get_user_reviews(uid)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/user/{uid}/average", response_model=ReviewAverageResponse)
async def get_user_average(
    uid: str,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    service = ReviewService(db)
    average = await service.get_user_average(uid)
    return ReviewAverageResponse(uid=uid, average=average)
