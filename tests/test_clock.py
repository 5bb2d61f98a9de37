from datetime import datetime, time, timedelta

import pytest

from puzzles.clock import DailyTrigger, duration_until_next_fire, next_fire

DAY_SECONDS = 24 * 60 * 60


class FakeClock:
    def __init__(self, start=1000.0):
        self.t = start

    def __call__(self):
        return self.t


class FakeEvent:
    """Stands in for threading.Event; waiting advances the fake clock."""

    def __init__(self, clock):
        self.clock = clock
        self.flag = False
        self.waits = []

    def is_set(self):
        return self.flag

    def set(self):
        self.flag = True

    def wait(self, timeout=None):
        self.waits.append(timeout)
        self.clock.t += timeout
        return self.flag


def test_next_fire_later_today():
    now = datetime(2024, 3, 1, 7, 0, 0)
    assert next_fire(time(8, 30, 0), now) == datetime(2024, 3, 1, 8, 30, 0)


def test_next_fire_rolls_to_tomorrow():
    now = datetime(2024, 3, 1, 9, 0, 0)
    assert next_fire(time(8, 30, 0), now) == datetime(2024, 3, 2, 8, 30, 0)


def test_next_fire_at_fire_instant_is_exactly_one_day_later():
    fired = datetime(2024, 12, 31, 8, 30, 0)
    assert next_fire(time(8, 30, 0), fired) - fired == timedelta(days=1)
    assert next_fire(time(8, 30, 0), fired) == datetime(2025, 1, 1, 8, 30, 0)


@pytest.mark.parametrize(
    "now",
    [
        datetime(2024, 1, 1, 0, 0, 0),
        datetime(2024, 1, 1, 8, 29, 59, 999999),
        datetime(2024, 1, 1, 8, 30, 0, 1),
        datetime(2024, 2, 29, 23, 59, 59),
        datetime(2024, 6, 15, 12, 0, 0),
    ],
)
def test_next_fire_is_future_and_within_a_day(now):
    fire = next_fire(time(8, 30, 0), now)
    assert now < fire <= now + timedelta(days=1)
    assert fire.time() == time(8, 30, 0)


def test_duration_until_next_fire():
    now = datetime(2024, 3, 1, 23, 0, 0)
    assert duration_until_next_fire(time(0, 0, 0), now) == timedelta(hours=1)


def test_trigger_fires_at_first_instant_then_daily():
    clock = FakeClock()
    event = FakeEvent(clock)
    trigger = DailyTrigger(
        time(8, 0, 0),
        stop_event=event,
        clock=clock,
        now=lambda: datetime(2024, 3, 1, 7, 0, 0),
    )

    assert trigger.wait() is True
    assert clock.t == 1000.0 + 3600
    assert trigger.deadline == clock.t + DAY_SECONDS

    assert trigger.wait() is True
    assert clock.t == 1000.0 + 3600 + DAY_SECONDS


def test_trigger_coalesces_missed_fires():
    clock = FakeClock()
    event = FakeEvent(clock)
    trigger = DailyTrigger(
        time(8, 0, 0),
        stop_event=event,
        clock=clock,
        now=lambda: datetime(2024, 3, 1, 7, 0, 0),
    )
    assert trigger.wait() is True
    first_fire = clock.t

    # stall for three days and a bit
    clock.t += 3 * DAY_SECONDS + 10
    waits_before = len(event.waits)
    assert trigger.wait() is True
    assert len(event.waits) == waits_before  # catch-up fire is immediate

    assert trigger.deadline == first_fire + 4 * DAY_SECONDS
    assert trigger.wait() is True
    assert clock.t == first_fire + 4 * DAY_SECONDS


def test_trigger_never_fires_early():
    clock = FakeClock()
    event = FakeEvent(clock)
    trigger = DailyTrigger(
        time(8, 0, 0),
        stop_event=event,
        clock=clock,
        now=lambda: datetime(2024, 3, 1, 7, 59, 0),
    )
    assert trigger.wait() is True
    assert clock.t >= 1000.0 + 60


def test_trigger_stops():
    clock = FakeClock()
    event = FakeEvent(clock)
    trigger = DailyTrigger(time(8, 0, 0), stop_event=event, clock=clock)
    trigger.stop()
    assert trigger.wait() is False
