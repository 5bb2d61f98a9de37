from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .models import PuzzleMessage

LOGGER = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org/bot{token}"


class DeliveryError(RuntimeError):
    """A Telegram API call failed."""

    def __init__(self, method: str, description: str, chat_id: Optional[int] = None):
        self.method = method
        self.description = description
        self.chat_id = chat_id
        target = f" for chat {chat_id}" if chat_id is not None else ""
        super().__init__(f"{method}{target} failed: {description}")


class TelegramChannel:
    """Minimal Telegram Bot API client: the calls the bot needs and nothing else."""

    def __init__(self, token: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self._base_url = API_BASE.format(token=token.strip())
        self.session = session or requests.Session()
        self.timeout = timeout

    def _api_call(self, method: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Any:
        chat_id = payload.get("chat_id")
        try:
            resp = self.session.post(
                f"{self._base_url}/{method}", json=payload, timeout=timeout or self.timeout
            )
        except requests.RequestException as exc:
            raise DeliveryError(method, str(exc), chat_id) from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if resp.status_code >= 400 or not body.get("ok"):
            description = body.get("description") or resp.text[:120] or str(resp.status_code)
            raise DeliveryError(method, description, chat_id)
        return body.get("result")

    def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: Optional[str] = "HTML",
        disable_link_preview: bool = True,
    ) -> int:
        """Send ``text`` and return the new message id."""
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": disable_link_preview,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        result = self._api_call("sendMessage", payload)
        try:
            return int(result["message_id"])
        except (TypeError, KeyError, ValueError) as exc:
            raise DeliveryError("sendMessage", "response carried no message_id", chat_id) from exc

    def pin_message(self, chat_id: int, message_id: int, silent: bool = True) -> None:
        self._api_call(
            "pinChatMessage",
            {"chat_id": chat_id, "message_id": message_id, "disable_notification": silent},
        )

    def deliver(self, chat_id: int, message: PuzzleMessage) -> int:
        """Send a puzzle message and pin it when requested."""
        message_id = self.send_message(
            chat_id,
            message.text,
            parse_mode=message.parse_mode,
            disable_link_preview=message.disable_link_preview,
        )
        if message.pin:
            self.pin_message(chat_id, message_id, silent=True)
        return message_id

    def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "channel_post"],
        }
        if offset is not None:
            payload["offset"] = offset
        # the HTTP read must outlast Telegram's long-poll hold
        result = self._api_call("getUpdates", payload, timeout=timeout + self.timeout)
        return result if isinstance(result, list) else []

    def set_webhook(self, url: str, secret_token: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ["message", "channel_post"]}
        if secret_token:
            payload["secret_token"] = secret_token
        self._api_call("setWebhook", payload)
        LOGGER.info("Registered Telegram webhook at %s", url)


def parse_update(update: Dict[str, Any]) -> Optional[Tuple[int, str]]:
    """Extract ``(chat_id, text)`` from a Telegram update, if it carries text."""
    message = update.get("message") or update.get("channel_post")
    if not isinstance(message, dict):
        return None
    chat_id = (message.get("chat") or {}).get("id")
    text = message.get("text")
    if not isinstance(chat_id, int) or not isinstance(text, str):
        return None
    return chat_id, text
