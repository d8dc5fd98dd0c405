"""Custom exceptions for the review subsystem."""

from fastapi import HTTPException, status


class ReviewServiceError(Exception):
    """Base exception for review errors."""

    def __init__(self, message: str, error_type: str = "review_service_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class SelfReviewError(ReviewServiceError):
    """Raised when a user tries to review themselves."""

    def __init__(self):
        super().__init__("You cannot review yourself.", "self_review")


class UserNotFoundError(ReviewServiceError):
    """Raised when the reviewer or target does not exist."""

    def __init__(self, uid: str | None = None):
        super().__init__("User not found.", "user_not_found")
        self.uid = uid


class AlreadyReviewedError(ReviewServiceError):
    """Raised when the reviewer already has a review of the target."""

    def __init__(self, reviewer_uid: str, target_uid: str):
        super().__init__("You already reviewed this user.", "already_reviewed")
        self.reviewer_uid = reviewer_uid
        self.target_uid = target_uid


class EmergencyAlreadyUsedError(ReviewServiceError):
    """Raised when the emergency grant for a pair has been consumed."""

    def __init__(self):
        super().__init__(
            "You already used your emergency review for this user.",
            "emergency_already_used",
        )


class PhoneRequiredError(ReviewServiceError):
    """Raised when an emergency review is attempted without a phone on record."""

    def __init__(self):
        super().__init__(
            "Emergency reviews require a verified phone number.",
            "phone_required",
        )


class InsufficientMessageHistoryError(ReviewServiceError):
    """Raised when the pair has not exchanged enough messages."""

    def __init__(self, review_type: str):
        if review_type == "report":
            message = "You may only report after receiving at least ONE message from the user."
        else:
            message = "You may only review users you have had a two-way conversation with."
        super().__init__(message, "insufficient_message_history")
        self.review_type = review_type


class WeeklyQuotaExceededError(ReviewServiceError):
    """Raised when the weekly normal-review quota is spent."""

    def __init__(self, limit: int):
        super().__init__(f"You used all {limit} reviews this week.", "weekly_quota_exceeded")
        self.limit = limit


class RatingOutOfRangeError(ReviewServiceError):
    """Raised when a rating falls outside the bounds for its quota position."""

    _ORDINALS = {0: "First", 1: "Second", 2: "Third"}

    def __init__(self, position: int, minimum: int, maximum: int):
        ordinal = self._ORDINALS.get(position, f"Review #{position + 1}")
        super().__init__(
            f"{ordinal} review must be between {minimum}–{maximum}.",
            "rating_out_of_range",
        )
        self.position = position
        self.minimum = minimum
        self.maximum = maximum


class ContentFlaggedError(ReviewServiceError):
    """Raised when a comment trips keyword moderation; a strike has been issued."""

    def __init__(self, strike_number: int):
        super().__init__(
            f"Strike {strike_number} applied due to abusive review content.",
            "content_flagged",
        )
        self.strike_number = strike_number


_STATUS_MAP = {
    "self_review": status.HTTP_400_BAD_REQUEST,
    "rating_out_of_range": status.HTTP_400_BAD_REQUEST,
    "user_not_found": status.HTTP_404_NOT_FOUND,
    "already_reviewed": status.HTTP_409_CONFLICT,
    "emergency_already_used": status.HTTP_403_FORBIDDEN,
    "phone_required": status.HTTP_403_FORBIDDEN,
    "insufficient_message_history": status.HTTP_403_FORBIDDEN,
    "weekly_quota_exceeded": status.HTTP_403_FORBIDDEN,
    "content_flagged": status.HTTP_403_FORBIDDEN,
    "review_service_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_http_exception(error: ReviewServiceError) -> None:
    """Convert ReviewServiceError to HTTPException."""
    status_code = _STATUS_MAP.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {
        "type": error.error_type,
        "title": error.error_type.replace("_", " ").title(),
        "status": status_code,
        "detail": error.message,
    }
    if isinstance(error, ContentFlaggedError):
        detail["strike_number"] = error.strike_number

    raise HTTPException(status_code=status_code, detail=detail)
