"""Daily LeetCode puzzle delivery for Telegram chats."""

from .commands import CommandHandler
from .service import PuzzleDispatcher, render_message
from .store import SubscriberStore

__all__ = [
    "CommandHandler",
    "PuzzleDispatcher",
    "SubscriberStore",
    "render_message",
]
