"""Daily trigger: wall-clock target time, monotonic deadlines."""
from __future__ import annotations

import logging
import threading
import time as _time
from datetime import datetime, time, timedelta
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)

DAY = timedelta(days=1)


def next_fire(trigger_time: time, now: Optional[datetime] = None) -> datetime:
    """Next local datetime at which ``trigger_time`` occurs, strictly after ``now``.

    At exactly the trigger time the answer is the same time tomorrow.
    """
    now = now or datetime.now()
    target = datetime.combine(now.date(), trigger_time)
    if now.time() < trigger_time:
        return target
    return target + DAY


def duration_until_next_fire(trigger_time: time, now: Optional[datetime] = None) -> timedelta:
    now = now or datetime.now()
    duration = next_fire(trigger_time, now) - now
    LOGGER.info("Duration until next trigger: %s", duration)
    return duration


class DailyTrigger:
    """Fires once at the next ``trigger_time`` and every 24 hours after that.

    Missed fires (the process stalled past one or more deadlines) collapse into
    a single immediate fire; the schedule then resumes on the same 24 hour grid.
    """

    def __init__(
        self,
        trigger_time: time,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = _time.monotonic,
        now: Callable[[], datetime] = datetime.now,
        period: float = DAY.total_seconds(),
    ):
        self.trigger_time = trigger_time
        self.stop_event = stop_event or threading.Event()
        self.period = period
        self._clock = clock
        self._now = now
        self._deadline: Optional[float] = None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def _first_deadline(self) -> float:
        wait = duration_until_next_fire(self.trigger_time, self._now())
        return self._clock() + wait.total_seconds()

    def wait(self) -> bool:
        """Block until the next fire. Returns ``False`` once stopped."""
        if self._deadline is None:
            self._deadline = self._first_deadline()

        while True:
            if self.stop_event.is_set():
                return False
            remaining = self._deadline - self._clock()
            if remaining <= 0:
                break
            self.stop_event.wait(remaining)

        fired_at = self._clock()
        self._deadline += self.period
        if self._deadline <= fired_at:
            missed = int((fired_at - self._deadline) // self.period) + 1
            LOGGER.warning("Trigger stalled; coalescing %d missed fire(s)", missed)
            self._deadline += missed * self.period
        return True

    def stop(self) -> None:
        self.stop_event.set()
