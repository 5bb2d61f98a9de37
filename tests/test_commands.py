import pytest

from puzzles.channels import DeliveryError
from puzzles.commands import (
    SUBSCRIBED_REPLY,
    UNSUBSCRIBED_REPLY,
    CommandHandler,
    parse_command,
)
from puzzles.store import SubscriberStore, load_chat_ids


class FakeChannel:
    def __init__(self, fail=False):
        self.fail = fail
        self.replies = []

    def send_message(self, chat_id, text, parse_mode=None, disable_link_preview=True):
        if self.fail:
            raise DeliveryError("sendMessage", "chat not found", chat_id)
        self.replies.append((chat_id, text))
        return 1


class FakeDispatcher:
    def __init__(self, exc=None):
        self.cycles = []
        self.exc = exc

    def run_cycle(self, recipients=None, jitter=True):
        self.cycles.append((list(recipients) if recipients is not None else None, jitter))
        if self.exc:
            raise self.exc


@pytest.fixture
def handler_parts(tmp_path):
    store = SubscriberStore(str(tmp_path / "chat_ids.json"))
    return store, FakeDispatcher(), FakeChannel()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("/start", "/start"),
        ("  /stop  ", "/stop"),
        ("/start@LeetDailyBot", "/start"),
        ("/start extra words", "/start"),
        ("hello", None),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_parse_command(text, expected):
    assert parse_command(text) == expected


def test_start_subscribes_persists_and_sends_immediately(handler_parts):
    store, dispatcher, channel = handler_parts
    handler = CommandHandler(store, dispatcher, channel)

    assert handler.handle(1001, "/start") == "start"

    assert 1001 in store
    assert load_chat_ids(store.path) == {1001}
    assert channel.replies == [(1001, SUBSCRIBED_REPLY)]
    assert dispatcher.cycles == [([1001], False)]


def test_stop_unsubscribes_and_persists(handler_parts):
    store, dispatcher, channel = handler_parts
    store.add(1001)
    store.add(1002)
    handler = CommandHandler(store, dispatcher, channel)

    assert handler.handle(1001, "/stop") == "stop"

    assert store.snapshot() == (1002,)
    assert load_chat_ids(store.path) == {1002}
    assert channel.replies == [(1001, UNSUBSCRIBED_REPLY)]
    assert dispatcher.cycles == []


def test_repeated_commands_are_idempotent(handler_parts):
    store, dispatcher, channel = handler_parts
    handler = CommandHandler(store, dispatcher, channel)

    handler.handle(5, "/start")
    handler.handle(5, "/start")
    assert len(store) == 1
    handler.handle(5, "/stop")
    handler.handle(5, "/stop")
    assert len(store) == 0
    assert channel.replies == [
        (5, SUBSCRIBED_REPLY),
        (5, SUBSCRIBED_REPLY),
        (5, UNSUBSCRIBED_REPLY),
        (5, UNSUBSCRIBED_REPLY),
    ]


def test_unknown_commands_are_ignored(handler_parts):
    store, dispatcher, channel = handler_parts
    handler = CommandHandler(store, dispatcher, channel)

    assert handler.handle(5, "/help") is None
    assert handler.handle(5, "start") is None
    assert len(store) == 0
    assert channel.replies == []
    assert dispatcher.cycles == []


def test_failed_acknowledgement_is_not_fatal(tmp_path):
    store = SubscriberStore(str(tmp_path / "chat_ids.json"))
    dispatcher = FakeDispatcher()
    handler = CommandHandler(store, dispatcher, FakeChannel(fail=True))

    handler.handle(5, "/start")
    assert 5 in store
    assert dispatcher.cycles == [([5], False)]


def test_failed_initial_delivery_is_not_fatal(tmp_path):
    store = SubscriberStore(str(tmp_path / "chat_ids.json"))
    handler = CommandHandler(store, FakeDispatcher(exc=RuntimeError("boom")), FakeChannel())

    assert handler.handle(5, "/start") == "start"
    assert 5 in store
