"""Test data factories for the Even reviews service."""

from tests.factories.chat_factory import make_messages, seed_chat
from tests.factories.user_factory import seed_user

__all__ = [
    "make_messages",
    "seed_chat",
    "seed_user",
]
