from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task

from .config import Settings
from .daemon import PuzzleBot

LOGGER = logging.getLogger(__name__)


def build_bot(settings: Optional[Settings] = None) -> PuzzleBot:
    return PuzzleBot(settings or Settings.from_env())


@shared_task(name="puzzles.tasks.send_daily_puzzle")
def send_daily_puzzle() -> str:
    bot = build_bot()
    try:
        report = bot.dispatcher.run_cycle()
    finally:
        bot.shutdown()
    LOGGER.info("Daily puzzle cycle: %s", report.summary())
    return report.summary()
