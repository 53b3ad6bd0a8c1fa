"""A thread-safe in-memory byte store with TTL expiry and LRU eviction."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from time import monotonic

DEFAULT_ENTRY_LIMIT = 1000
DEFAULT_MEMORY_LIMIT = 5 * 1024 * 1024  # 5MB
DEFAULT_TTL = 5 * 60.0
DEFAULT_CLEANUP_INTERVAL = 60.0


class StashError(Exception):
    """Base class for all stash errors."""


class ExpiredError(StashError, KeyError):
    """The key existed but its entry had expired."""

    def __init__(self, key: str) -> None:
        super().__init__(f"key expired: {key!r}")
        self.key = key


class InvalidEntryTypeError(StashError):
    """An entry held a value of an unexpected type."""

    def __init__(self, message: str = "invalid entry type") -> None:
        super().__init__(message)


class InsufficientStorageError(StashError):
    """The data does not fit within the configured memory limit."""

    def __init__(self, message: str = "insufficient storage size") -> None:
        super().__init__(message)


class NotFoundError(StashError, KeyError):
    """The key is not present in the stash."""

    def __init__(self, key: str) -> None:
        super().__init__(f"key not found: {key!r}")
        self.key = key


@dataclass
class _Entry:
    data: bytes
    expires_at: float


def _positive_or(value, default):
    return value if value is not None and value > 0 else default


class Stash:
    """Byte store keyed by string, bounded by entry count and total data size.

    Entries expire ``ttl`` seconds after their last read or write. When space
    runs out, the least recently used entries are evicted. A background thread
    purges expired entries every ``cleanup_interval`` seconds until
    :meth:`shutdown` is called. Non-positive settings fall back to defaults.
    """

    def __init__(
        self,
        ttl: float | None = None,
        memory_limit: int | None = None,
        entry_limit: int | None = None,
        cleanup_interval: float | None = None,
    ) -> None:
        self.ttl = _positive_or(ttl, DEFAULT_TTL)
        self.memory_limit = _positive_or(memory_limit, DEFAULT_MEMORY_LIMIT)
        self.entry_limit = _positive_or(entry_limit, DEFAULT_ENTRY_LIMIT)
        self.cleanup_interval = _positive_or(cleanup_interval, DEFAULT_CLEANUP_INTERVAL)

        # Ordered from least to most recently used.
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._memory = 0
        self._lock = threading.RLock()
        self._stopped = threading.Event()
        self._cleaner = threading.Thread(
            target=self._cleanup_loop, name="stash-cleanup", daemon=True
        )
        self._cleaner.start()

    def get(self, key: str) -> bytes:
        """Return the data for ``key`` and refresh its expiry.

        Raises NotFoundError if absent and ExpiredError if it had expired;
        an expired entry is removed.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise NotFoundError(key)
            now = monotonic()
            if entry.expires_at < now:
                self._evict(key)
                raise ExpiredError(key)
            entry.expires_at = now + self.ttl
            self._entries.move_to_end(key)
            return entry.data

    def set(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``, evicting old entries if needed.

        Raises InsufficientStorageError if the data cannot fit.
        """
        data = bytes(data)
        with self._lock:
            now = monotonic()
            entry = self._entries.get(key)
            if entry is not None:
                if entry.data != data:
                    new_size = self._memory - len(entry.data) + len(data)
                    if new_size > self.memory_limit:
                        raise InsufficientStorageError()
                    entry.data = data
                    self._memory = new_size
                entry.expires_at = now + self.ttl
                self._entries.move_to_end(key)
                return

            if len(data) > self.memory_limit:
                raise InsufficientStorageError()

            self._make_room(len(data))
            self._entries[key] = _Entry(data=data, expires_at=now + self.ttl)
            self._memory += len(data)

    def shutdown(self) -> None:
        """Stop the background cleanup thread."""
        self._stopped.set()

    def remove_expired(self) -> None:
        """Drop every entry whose expiry time has passed."""
        with self._lock:
            now = monotonic()
            expired = [k for k, e in self._entries.items() if e.expires_at < now]
            for key in expired:
                self._evict(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __enter__(self) -> Stash:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._memory -= len(entry.data)

    def _make_room(self, required: int) -> None:
        while self._entries and (
            self._memory + required > self.memory_limit
            or len(self._entries) >= self.entry_limit
        ):
            _, oldest = self._entries.popitem(last=False)
            self._memory -= len(oldest.data)

    def _cleanup_loop(self) -> None:
        while not self._stopped.wait(self.cleanup_interval):
            self.remove_expired()