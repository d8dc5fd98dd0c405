"""Read-only views onto the identity and chat services.

The review engine only needs two facts from its neighbours: who a user is
(and whether they have a phone on record) and which messages two users have
exchanged. Both are exposed as small value records so the engine never
holds ORM objects that belong to another service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from even.models import Match, Message, Thread, User


@dataclass(frozen=True, slots=True)
class UserRecord:
    uid: str
    phone: str | None = None


@dataclass(frozen=True, slots=True)
class ChatMessage:
    sender_uid: str
    created_at: datetime


class IdentityDirectory(Protocol):
    async def get_user_by_uid(self, uid: str) -> UserRecord | None: ...


class ChatHistory(Protocol):
    async def get_messages_between_users(self, uid_a: str, uid_b: str) -> list[ChatMessage]: ...


class SqlIdentityDirectory:
    """Looks users up in the shared ``users`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_uid(self, uid: str) -> UserRecord | None:
        result = await self.session.execute(
            select(User.uid, User.phone).where(User.uid == uid)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UserRecord(uid=row.uid, phone=row.phone)


class SqlChatHistory:
    """Resolves match -> thread -> messages for a pair of users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_messages_between_users(self, uid_a: str, uid_b: str) -> list[ChatMessage]:
        match_result = await self.session.execute(
            select(Match.id).where(
                or_(
                    and_(Match.user_a_uid == uid_a, Match.user_b_uid == uid_b),
                    and_(Match.user_a_uid == uid_b, Match.user_b_uid == uid_a),
                )
            ).limit(1)
        )
        match_id = match_result.scalar_one_or_none()
        if match_id is None:
            return []

        thread_result = await self.session.execute(
            select(Thread.id).where(Thread.match_id == match_id).limit(1)
        )
        thread_id = thread_result.scalar_one_or_none()
        if thread_id is None:
            return []

        result = await self.session.execute(
            select(Message.sender_uid, Message.created_at)
            .where(Message.thread_id == thread_id)
            .order_by(Message.created_at.asc())
        )
        return [
            ChatMessage(sender_uid=row.sender_uid, created_at=row.created_at)
            for row in result.all()
        ]


def count_sent_by(messages: list[ChatMessage], uid: str) -> int:
    """Number of messages in ``messages`` authored by ``uid``."""
    return sum(1 for m in messages if m.sender_uid == uid)
