"""Subscriber registry backed by a JSON file."""
from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from typing import Iterable, Optional, Set, Tuple

import portalocker

LOGGER = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Writing the subscriber file failed."""


@contextlib.contextmanager
def with_file_lock(path: str):
    lock_path = f"{path}.lock"
    os.makedirs(os.path.dirname(lock_path) or ".", exist_ok=True)
    with open(lock_path, "a+") as lock_file:
        portalocker.lock(lock_file, portalocker.LOCK_EX)
        try:
            yield
        finally:
            portalocker.unlock(lock_file)


def save_json_atomic(path: str, data) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        try:
            os.remove(tmp)
        except OSError:
            pass


def load_chat_ids(path: str) -> Set[int]:
    """Read a subscriber file. Missing or corrupt files yield an empty set."""
    try:
        with with_file_lock(path):
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
    except FileNotFoundError:
        LOGGER.info("Chat IDs file %s not found, starting with no subscribers", path)
        return set()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        LOGGER.warning("Chat IDs file %s is corrupt (%s), starting with no subscribers", path, exc)
        return set()
    except (OSError, portalocker.LockException) as exc:
        LOGGER.warning("Chat IDs file %s could not be read (%s), starting with no subscribers", path, exc)
        return set()

    # bool is an int subclass; reject it along with everything else
    if not isinstance(data, list) or not all(type(item) is int for item in data):
        LOGGER.warning("Chat IDs file %s does not hold a list of ids, starting with no subscribers", path)
        return set()
    return set(data)


class SubscriberStore:
    """Thread-safe set of subscribed chat ids.

    ``_lock`` guards only in-memory work. Saves copy a versioned snapshot under
    that lock and write it under ``_io_lock``; a snapshot older than the one
    already on disk is never written.
    """

    def __init__(self, path: Optional[str] = None, initial: Iterable[int] = ()):
        self.path = path
        self._members: Set[int] = set(initial)
        self._lock = threading.Lock()
        self._io_lock = threading.Lock()
        self._version = 0
        self._persisted_version = 0

    @classmethod
    def open(cls, path: Optional[str] = None, initial: Iterable[int] = ()) -> "SubscriberStore":
        store = cls(path, initial)
        if path:
            store.load()
        return store

    @property
    def persistent(self) -> bool:
        return bool(self.path)

    def load(self) -> Set[int]:
        if not self.path:
            return set(self.snapshot())
        loaded = load_chat_ids(self.path)
        with self._lock:
            self._members.update(loaded)
            self._version += 1
            members = set(self._members)
        LOGGER.info("Loaded %d subscriber(s) from %s", len(loaded), self.path)
        return members

    def add(self, chat_id: int) -> bool:
        with self._lock:
            if chat_id in self._members:
                return False
            self._members.add(chat_id)
            self._version += 1
            return True

    def remove(self, chat_id: int) -> bool:
        with self._lock:
            if chat_id not in self._members:
                return False
            self._members.discard(chat_id)
            self._version += 1
            return True

    def snapshot(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(sorted(self._members))

    def save(self) -> bool:
        """Persist the current membership. Returns ``False`` if the write failed."""
        if not self.path:
            return True
        with self._lock:
            members = sorted(self._members)
            version = self._version
        try:
            self._write(members, version)
        except PersistenceError as exc:
            LOGGER.error("Failed to save chat IDs: %s", exc)
            return False
        return True

    def _write(self, members, version: int) -> None:
        with self._io_lock:
            if version < self._persisted_version:
                LOGGER.debug("Skipping stale save (version %d < %d)", version, self._persisted_version)
                return
            try:
                with with_file_lock(self.path):
                    save_json_atomic(self.path, members)
            except (OSError, portalocker.LockException) as exc:
                raise PersistenceError(f"{self.path}: {exc}") from exc
            self._persisted_version = version
        LOGGER.info("Saved %d subscriber(s) to %s", len(members), self.path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, chat_id) -> bool:
        with self._lock:
            return chat_id in self._members
