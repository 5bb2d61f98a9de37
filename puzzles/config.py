"""Runtime configuration for the daily puzzle bot."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from typing import List, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_DIFFICULTIES: Tuple[str, ...] = ("daily",)
VALID_DIFFICULTIES = {"daily", "easy", "medium", "hard"}

DEFAULT_MAX_JITTER_SECONDS = 600
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_POLL_TIMEOUT = 30
DEFAULT_COMMAND_WORKERS = 4

TRIGGER_TIME_FORMAT = "%H:%M:%S"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or malformed."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


def parse_trigger_time(value: str) -> time:
    """Parse an ``HH:MM:SS`` string into a :class:`datetime.time`."""
    parts = value.strip().split(":")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"TRIGGER_TIME should be in the format HH:MM:SS, got {value!r}")
    hour, minute, second = (int(p) for p in parts)
    return time(hour, minute, second)


def parse_difficulties(value: Optional[str]) -> Tuple[str, ...]:
    if not value or not value.strip():
        return DEFAULT_DIFFICULTIES
    labels: List[str] = []
    for raw in value.split(","):
        label = raw.strip().lower()
        if not label:
            continue
        if label not in VALID_DIFFICULTIES:
            raise ValueError(f"Unknown difficulty {label!r}")
        if label not in labels:
            labels.append(label)
    return tuple(labels) or DEFAULT_DIFFICULTIES


@dataclass(frozen=True, slots=True)
class Settings:
    """Settings consumed by the bot; built once at startup."""

    bot_token: str
    trigger_time: time
    chat_ids_file_path: Optional[str] = None
    target_chat_id: Optional[int] = None
    difficulties: Tuple[str, ...] = DEFAULT_DIFFICULTIES
    max_jitter_seconds: float = DEFAULT_MAX_JITTER_SECONDS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    poll_timeout: int = DEFAULT_POLL_TIMEOUT
    command_workers: int = DEFAULT_COMMAND_WORKERS
    webhook_secret: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_path: Optional[str] = None, environ=None) -> "Settings":
        """Load settings from the environment, merging a ``.env`` file first.

        Every problem found is collected and reported together in a single
        :class:`ConfigurationError`.
        """
        if environ is None:
            load_dotenv(env_path)
            environ = os.environ

        problems: List[str] = []

        token = (environ.get("TELEGRAM_BOT_TOKEN") or environ.get("TELOXIDE_TOKEN") or "").strip()
        if not token:
            problems.append("TELEGRAM_BOT_TOKEN not set")

        trigger_time = None
        raw_trigger = environ.get("TRIGGER_TIME")
        if not raw_trigger:
            problems.append("TRIGGER_TIME not set")
        else:
            try:
                trigger_time = parse_trigger_time(raw_trigger)
            except ValueError as exc:
                problems.append(str(exc))

        target_chat_id = None
        raw_target = environ.get("TARGET_CHAT_ID")
        if raw_target:
            try:
                target_chat_id = int(raw_target)
            except ValueError:
                problems.append(f"TARGET_CHAT_ID must be an integer, got {raw_target!r}")

        difficulties = DEFAULT_DIFFICULTIES
        try:
            difficulties = parse_difficulties(environ.get("DIFFICULTIES"))
        except ValueError as exc:
            problems.append(str(exc))

        def _number(name, default, cast, minimum):
            raw = environ.get(name)
            if raw is None or raw == "":
                return default
            try:
                value = cast(raw)
            except ValueError:
                problems.append(f"{name} must be a number, got {raw!r}")
                return default
            if value < minimum:
                problems.append(f"{name} must be at least {minimum}")
                return default
            return value

        max_jitter = _number("MAX_JITTER_SECONDS", DEFAULT_MAX_JITTER_SECONDS, float, 0)
        http_timeout = _number("HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float, 1)
        poll_timeout = _number("POLL_TIMEOUT", DEFAULT_POLL_TIMEOUT, int, 0)
        workers = _number("COMMAND_WORKERS", DEFAULT_COMMAND_WORKERS, int, 1)

        if problems:
            raise ConfigurationError(problems)

        return cls(
            bot_token=token,
            trigger_time=trigger_time,
            chat_ids_file_path=environ.get("CHAT_IDS_FILE_PATH") or None,
            target_chat_id=target_chat_id,
            difficulties=difficulties,
            max_jitter_seconds=max_jitter,
            http_timeout=http_timeout,
            poll_timeout=poll_timeout,
            command_workers=workers,
            webhook_secret=environ.get("WEBHOOK_SECRET") or None,
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        )
