import json
import time
from unittest.mock import patch

import pytest

from stashem.stash import (
    ExpiredError,
    InsufficientStorageError,
    InvalidEntryTypeError,
    NotFoundError,
    Stash,
    StashError,
)

KEY = "dummy-key"
VALUE = json.dumps({"id": "id"}).encode()


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    fake = FakeClock()
    with patch("stashem.stash.monotonic", fake):
        yield fake


@pytest.fixture
def make_stash():
    created = []

    def factory(**kwargs):
        stash = Stash(**kwargs)
        created.append(stash)
        return stash

    yield factory
    for stash in created:
        stash.shutdown()


def test_default_values(make_stash):
    s = make_stash()
    assert s.ttl == 5 * 60
    assert s.memory_limit == 5 * 1024 * 1024
    assert s.entry_limit == 1000
    assert len(s) == 0


def test_custom_ttl(make_stash):
    s = make_stash(ttl=10 * 60)
    assert s.ttl == 600
    assert len(s) == 0


def test_custom_limits(make_stash):
    s = make_stash(memory_limit=500, entry_limit=5)
    assert s.entry_limit == 5
    assert s.memory_limit == 500


def test_non_positive_options_are_ignored(make_stash):
    s = make_stash(ttl=0, memory_limit=-1, entry_limit=0)
    assert s.ttl == 5 * 60
    assert s.memory_limit == 5 * 1024 * 1024
    assert s.entry_limit == 1000


def test_get_returns_stored_data(make_stash):
    s = make_stash()
    s.set(KEY, VALUE)
    assert json.loads(s.get(KEY))["id"] == "id"


def test_get_refreshes_expiration(make_stash, clock):
    s = make_stash(ttl=10)
    s.set(KEY, VALUE)
    clock.now += 8
    assert s.get(KEY) == VALUE
    clock.now += 8
    assert s.get(KEY) == VALUE


def test_get_expired_key_raises_and_removes(make_stash, clock):
    s = make_stash(ttl=60)
    s.set(KEY, VALUE)
    clock.now += 120
    with pytest.raises(ExpiredError):
        s.get(KEY)
    assert KEY not in s
    with pytest.raises(NotFoundError):
        s.get(KEY)


def test_get_missing_key_raises(make_stash):
    s = make_stash()
    with pytest.raises(NotFoundError):
        s.get(KEY)


def test_errors_share_base_class(make_stash):
    s = make_stash()
    with pytest.raises(StashError):
        s.get("missing")
    with pytest.raises(KeyError):
        s.get("missing")
    assert issubclass(InvalidEntryTypeError, StashError)
    assert str(InsufficientStorageError()) == "insufficient storage size"


def test_set_stores_new_entry(make_stash):
    s = make_stash()
    s.set(KEY, VALUE)
    assert KEY in s
    assert len(s) == 1
    assert s.get(KEY) == VALUE


def test_set_updates_existing_entry(make_stash):
    s = make_stash()
    s.set(KEY, json.dumps({"id": "old-id"}).encode())
    s.set(KEY, VALUE)
    assert len(s) == 1
    assert s.get(KEY) == VALUE


def test_set_same_value_resets_expiration(make_stash, clock):
    s = make_stash(ttl=10)
    s.set(KEY, VALUE)
    clock.now += 8
    s.set(KEY, VALUE)
    clock.now += 8
    assert s.get(KEY) == VALUE


def test_update_exceeding_memory_limit_raises(make_stash):
    data = b"123"
    s = make_stash(memory_limit=len(data), entry_limit=5)
    s.set("k1", data)
    with pytest.raises(InsufficientStorageError):
        s.set("k1", b"123456")
    assert s.get("k1") == data


def test_new_entry_larger_than_memory_limit_raises(make_stash):
    s = make_stash(memory_limit=3)
    with pytest.raises(InsufficientStorageError):
        s.set("k1", b"123456")
    assert "k1" not in s


def test_evicts_when_memory_limit_reached(make_stash):
    data = b"data"
    s = make_stash(memory_limit=len(data), entry_limit=10)
    s.set("k1", data)
    s.set("k2", data)
    assert "k2" in s
    assert "k1" not in s
    assert len(s) == 1


def test_entry_limit_evicts_least_recently_used(make_stash):
    s = make_stash(entry_limit=2)
    s.set("a", b"1")
    s.set("b", b"2")
    assert s.get("a") == b"1"
    s.set("c", b"3")
    assert "b" not in s
    assert "a" in s
    assert "c" in s


def test_remove_expired_only_drops_expired(make_stash, clock):
    s = make_stash(ttl=10)
    s.set("old", b"x")
    clock.now += 8
    s.set("fresh", b"y")
    clock.now += 5
    s.remove_expired()
    assert "old" not in s
    assert "fresh" in s


def test_memory_is_released_on_removal(make_stash, clock):
    s = make_stash(ttl=10, memory_limit=4)
    s.set("a", b"abcd")
    clock.now += 20
    s.remove_expired()
    s.set("b", b"wxyz")
    assert len(s) == 1
    assert s.get("b") == b"wxyz"


def test_background_cleanup_purges_expired_entries():
    with Stash(ttl=0.05, cleanup_interval=0.01) as s:
        s.set(KEY, VALUE)
        deadline = time.monotonic() + 5
        while len(s) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(s) == 0