"""Celery application factory for the scheduled puzzle fan-out."""
from __future__ import annotations

import os
from celery import Celery
from celery.schedules import crontab

from puzzles.config import parse_trigger_time

DEFAULT_BROKER_URL = os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0"))
DEFAULT_BACKEND_URL = os.getenv("CELERY_RESULT_BACKEND", DEFAULT_BROKER_URL)


def create_celery_app(trigger_time: str | None = None) -> Celery:
    """Create the Celery app with a beat entry at the configured trigger time."""
    celery_app = Celery(
        "puzzle_bot",
        broker=DEFAULT_BROKER_URL,
        backend=DEFAULT_BACKEND_URL,
        include=["puzzles.tasks"],
    )

    fire_at = parse_trigger_time(trigger_time or os.getenv("TRIGGER_TIME", "08:00:00"))
    celery_app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone=os.getenv("CELERY_TIMEZONE", "UTC"),
        enable_utc=True,
        beat_schedule={
            "send-daily-puzzle": {
                "task": "puzzles.tasks.send_daily_puzzle",
                # beat resolves to the minute, in CELERY_TIMEZONE
                "schedule": crontab(hour=fire_at.hour, minute=fire_at.minute),
            },
        },
    )

    return celery_app


celery_app = create_celery_app()
