from __future__ import annotations

import logging
from typing import Optional

from .channels import DeliveryError
from .service import PuzzleDispatcher
from .store import SubscriberStore

LOGGER = logging.getLogger(__name__)

SUBSCRIBE_COMMAND = "/start"
UNSUBSCRIBE_COMMAND = "/stop"

SUBSCRIBED_REPLY = "You will start receiving daily challenges."
UNSUBSCRIBED_REPLY = "You have stopped receiving daily challenges."


def parse_command(text: Optional[str]) -> Optional[str]:
    """Return the leading ``/command`` of ``text`` without any ``@BotName`` suffix."""
    if not text or not text.strip():
        return None
    token = text.strip().split(maxsplit=1)[0]
    if not token.startswith("/"):
        return None
    return token.split("@", 1)[0]


class CommandHandler:
    def __init__(self, store: SubscriberStore, dispatcher: PuzzleDispatcher, channel):
        self.store = store
        self.dispatcher = dispatcher
        self.channel = channel

    def handle(self, chat_id: int, text: Optional[str]) -> Optional[str]:
        command = parse_command(text)
        if command == SUBSCRIBE_COMMAND:
            self.subscribe(chat_id)
            return "start"
        if command == UNSUBSCRIBE_COMMAND:
            self.unsubscribe(chat_id)
            return "stop"
        return None

    def subscribe(self, chat_id: int) -> None:
        LOGGER.info("Chat %s started receiving challenges", chat_id)
        self.store.add(chat_id)
        self.store.save()
        self._reply(chat_id, SUBSCRIBED_REPLY)
        try:
            self.dispatcher.run_cycle(recipients=[chat_id], jitter=False)
        except Exception:
            LOGGER.exception("Error sending initial challenges to chat %s", chat_id)

    def unsubscribe(self, chat_id: int) -> None:
        LOGGER.info("Chat %s stopped receiving challenges", chat_id)
        self.store.remove(chat_id)
        self.store.save()
        self._reply(chat_id, UNSUBSCRIBED_REPLY)

    def _reply(self, chat_id: int, text: str) -> None:
        try:
            self.channel.send_message(chat_id, text, parse_mode=None)
        except DeliveryError as exc:
            LOGGER.warning("Could not acknowledge chat %s: %s", chat_id, exc)
