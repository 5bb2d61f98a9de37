"""Wires the bot together and runs the scheduler and update loops."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from .channels import DeliveryError, TelegramChannel, parse_update
from .clock import DailyTrigger
from .commands import CommandHandler
from .config import Settings
from .fetcher import LeetCodeFetcher
from .service import PuzzleDispatcher
from .store import SubscriberStore

LOGGER = logging.getLogger(__name__)

POLL_ERROR_PAUSE = 5.0


class PuzzleBot:
    def __init__(self, settings: Settings, stop_event: Optional[threading.Event] = None):
        self.settings = settings
        self.stop_event = stop_event or threading.Event()
        initial = [settings.target_chat_id] if settings.target_chat_id is not None else []
        self.store = SubscriberStore.open(settings.chat_ids_file_path, initial=initial)
        self.fetcher = LeetCodeFetcher(timeout=settings.http_timeout)
        self.channel = TelegramChannel(settings.bot_token, timeout=settings.http_timeout)
        self.dispatcher = PuzzleDispatcher(
            self.fetcher,
            self.store,
            self.channel,
            difficulties=settings.difficulties,
            max_jitter=settings.max_jitter_seconds,
            sleep=self.stop_event.wait,
        )
        self.commands = CommandHandler(self.store, self.dispatcher, self.channel)
        self.trigger = DailyTrigger(settings.trigger_time, stop_event=self.stop_event)
        self.executor = ThreadPoolExecutor(
            max_workers=settings.command_workers, thread_name_prefix="command"
        )
        self._offset: Optional[int] = None

    def run_scheduler(self) -> None:
        """Invoke a fan-out cycle on every trigger fire until stopped."""
        while True:
            LOGGER.info("Waiting for next trigger")
            if not self.trigger.wait():
                break
            LOGGER.info("Triggered")
            try:
                self.dispatcher.run_cycle()
            except Exception:
                LOGGER.exception("Error sending daily challenge")
        LOGGER.info("Scheduler stopped")

    def start_scheduler(self) -> threading.Thread:
        thread = threading.Thread(target=self.run_scheduler, name="scheduler", daemon=True)
        thread.start()
        return thread

    def submit_update(self, update: Dict[str, Any]):
        parsed = parse_update(update)
        if parsed is None:
            return None
        chat_id, text = parsed
        return self.executor.submit(self._handle_command, chat_id, text)

    def _handle_command(self, chat_id: int, text: str) -> Optional[str]:
        try:
            return self.commands.handle(chat_id, text)
        except Exception:
            LOGGER.exception("Error handling command from chat %s", chat_id)
            return None

    def poll_once(self) -> int:
        updates = self.channel.get_updates(offset=self._offset, timeout=self.settings.poll_timeout)
        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self._offset = max(self._offset or 0, update_id + 1)
            self.submit_update(update)
        return len(updates)

    def run_polling(self) -> None:
        LOGGER.info("Starting message handler")
        while not self.stop_event.is_set():
            try:
                self.poll_once()
            except DeliveryError as exc:
                LOGGER.warning("Polling for updates failed: %s", exc)
                self.stop_event.wait(POLL_ERROR_PAUSE)
            except Exception:
                LOGGER.exception("Unexpected error while polling for updates")
                self.stop_event.wait(POLL_ERROR_PAUSE)

    def run_forever(self) -> None:
        self.start_scheduler()
        try:
            self.run_polling()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        self.stop_event.set()
        self.executor.shutdown(wait=False, cancel_futures=True)
        LOGGER.info("Bot stopped")
