from __future__ import annotations

import html
import logging
import random
import threading
import time
from typing import Callable, Iterable, List, Optional, Sequence

from .channels import DeliveryError
from .config import DEFAULT_DIFFICULTIES, DEFAULT_MAX_JITTER_SECONDS, VALID_DIFFICULTIES
from .fetcher import FetchError
from .models import NOT_AVAILABLE, ContentItem, CycleReport, DeliveryJob, PuzzleMessage
from .store import SubscriberStore

LOGGER = logging.getLogger(__name__)

MESSAGE_HEADER = "Today's LeetCode Challenge:"


def render_message(items: Iterable[ContentItem]) -> PuzzleMessage:
    lines = [MESSAGE_HEADER, ""]
    for item in items:
        value = html.escape(item.link) if item.available else NOT_AVAILABLE
        lines.append(f"{item.label}: {value}")
    return PuzzleMessage(text="\n".join(lines))


def deliver_jobs(
    jobs: Iterable[DeliveryJob],
    channel,
    report: CycleReport,
    delay: Optional[Callable[[], float]] = None,
    sleep: Callable[[float], object] = time.sleep,
) -> CycleReport:
    """Send each job in turn; one recipient failing never stops the others."""
    for job in jobs:
        if delay is not None:
            seconds = delay()
            LOGGER.info("Sending message to chat %s with a delay of %.0f seconds", job.chat_id, seconds)
            if sleep(seconds) is True:
                # Event.wait returns True once shutdown was requested
                LOGGER.info("Shutdown requested; abandoning remaining deliveries")
                break
        try:
            channel.deliver(job.chat_id, job.message)
        except DeliveryError as exc:
            LOGGER.warning("Delivery to chat %s failed: %s", job.chat_id, exc)
            report.failed_chat_ids.append(job.chat_id)
            continue
        except Exception:
            LOGGER.exception("Unexpected error delivering to chat %s", job.chat_id)
            report.failed_chat_ids.append(job.chat_id)
            continue
        report.delivered += 1
        LOGGER.info("Message sent to chat %s", job.chat_id)
    return report


class PuzzleDispatcher:
    """Fetches the day's puzzles once per cycle and fans them out to subscribers."""

    def __init__(
        self,
        fetcher,
        store: SubscriberStore,
        channel,
        difficulties: Sequence[str] = DEFAULT_DIFFICULTIES,
        max_jitter: float = DEFAULT_MAX_JITTER_SECONDS,
        sleep: Callable[[float], object] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        unknown = [d for d in difficulties if d not in VALID_DIFFICULTIES]
        if unknown:
            raise ValueError(f"Unknown difficulties: {', '.join(unknown)}")
        self.fetcher = fetcher
        self.store = store
        self.channel = channel
        self.difficulties = tuple(difficulties) or DEFAULT_DIFFICULTIES
        self.max_jitter = max(0.0, float(max_jitter))
        self.sleep = sleep
        self.rng = rng or random.Random()
        self._fetch_lock = threading.Lock()

    def _fetch_one(self, difficulty: str) -> ContentItem:
        try:
            return self.fetcher.fetch(difficulty)
        except FetchError as exc:
            LOGGER.warning("Could not fetch %s question: %s", difficulty, exc)
        except Exception:
            LOGGER.exception("Unexpected error fetching %s question", difficulty)
        return ContentItem(difficulty=difficulty)

    def fetch_all(self) -> List[ContentItem]:
        with self._fetch_lock:
            return [self._fetch_one(d) for d in self.difficulties]

    def _jitter(self) -> float:
        return self.rng.uniform(0, self.max_jitter)

    def run_cycle(self, recipients: Optional[Iterable[int]] = None, jitter: bool = True) -> CycleReport:
        """Fetch once, then deliver to ``recipients`` or every current subscriber."""
        items = self.fetch_all()
        message = render_message(items)
        report = CycleReport(unavailable=[item.difficulty for item in items if not item.available])

        targets = self.store.snapshot() if recipients is None else tuple(dict.fromkeys(recipients))
        if not targets:
            LOGGER.info("No subscribers; nothing to send")
            return report

        LOGGER.info("Sending message to %d chat(s)", len(targets))
        jobs = [DeliveryJob(chat_id=chat_id, message=message) for chat_id in targets]
        delay = self._jitter if jitter and self.max_jitter > 0 else None
        deliver_jobs(jobs, self.channel, report, delay=delay, sleep=self.sleep)
        LOGGER.info("Cycle finished: %s", report.summary())
        return report
