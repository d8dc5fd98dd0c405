"""SQLAlchemy ORM models for the review subsystem.

Rows reference users by their opaque ``uid`` (the identity provider's
subject), never by ORM relationship, so services resolve everything through
repositories.
"""

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Boolean, DateTime, Integer, Uuid

from even.utils.datetime_utils import utcnow


class Base(DeclarativeBase):
    pass


class ReviewTypeEnum(str, enum.Enum):
    normal = "normal"
    emergency = "emergency"
    report = "report"


# ---------------------------------------------------------------------------
# Collaborator tables (owned by the identity and chat services, read here)
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    uid: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(Text)


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        Index("idx_matches_pair", "user_a_uid", "user_b_uid"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_a_uid: Mapped[str] = mapped_column(Text, nullable=False)
    user_b_uid: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class Thread(Base):
    __tablename__ = "threads"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    match_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True
    )


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_thread_created", "thread_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    thread_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    sender_uid: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("reviewer_uid", "target_uid", name="uq_reviews_reviewer_target"),
        Index("idx_reviews_target_created", "target_uid", "created_at"),
        CheckConstraint(
            "type IN ('normal','emergency','report')", name="ck_review_type"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # Not a foreign key: penalty reviews are written by "SYSTEM".
    reviewer_uid: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    target_uid: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False, default=ReviewTypeEnum.normal.value)

    phone_number_used: Mapped[str | None] = mapped_column(Text)
    flagged_by_keyword_scan: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    # Reserved for an LLM / human review pipeline; nothing sets these yet.
    flagged_by_llm: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    pending_human_review: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    rejected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    strike_issued: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class ReviewWeekWindow(Base):
    __tablename__ = "review_week_windows"
    __table_args__ = (
        CheckConstraint("reviews_used >= 0", name="ck_week_window_used"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_uid: Mapped[str] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="CASCADE"), unique=True, nullable=False
    )
    window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    window_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reviews_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class ReviewStrike(Base):
    __tablename__ = "review_strikes"
    __table_args__ = (
        UniqueConstraint("user_uid", "strike_number", name="uq_review_strikes_user_number"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_uid: Mapped[str] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, index=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    strike_number: Mapped[int] = mapped_column(Integer, nullable=False)
    timeout_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    timeout_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class ReviewEmergency(Base):
    __tablename__ = "review_emergency"
    __table_args__ = (
        UniqueConstraint("reviewer_uid", "target_uid", name="uq_review_emergency_pair"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    reviewer_uid: Mapped[str] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, index=True
    )
    target_uid: Mapped[str] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, index=True
    )
    used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    phone_number_snapshot: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
