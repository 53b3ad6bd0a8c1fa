# stashem

`stashem` is a thread-safe, in-memory key/value stash for byte strings. Each
entry has a time to live. Once the stash reaches its memory limit or its entry
limit, it evicts the least recently used entries to make room. It has no
dependencies outside the standard library.

## Installation

```
pip install stashem
```

## Usage

```python
from stashem.stash import Stash, NotFoundError, ExpiredError

with Stash(ttl=300, memory_limit=5 * 1024 * 1024, entry_limit=1000) as stash:
    stash.set("greeting", b"hello")
    print(stash.get("greeting"))  # b'hello'

    try:
        stash.get("missing")
    except NotFoundError:
        print("not stored")
```

### `Stash(ttl=None, memory_limit=None, entry_limit=None, cleanup_interval=None)`

| Setting            | Meaning                                         | Default            |
|--------------------|-------------------------------------------------|--------------------|
| `ttl`              | seconds an entry lives after its last use       | 300                |
| `memory_limit`     | total bytes of stored data                      | 5 MiB (5242880)    |
| `entry_limit`      | number of entries                               | 1000               |
| `cleanup_interval` | seconds between background purges               | 60                 |

If a setting is missing, zero or negative, the default applies.

- `get(key)` returns the stored bytes and resets the entry's expiry. It
  raises `NotFoundError` for an unknown key. It raises `ExpiredError` for an
  entry whose time is up, and removes that entry.
- `set(key, data)` stores or replaces an entry and resets its expiry. A new
  entry that is larger than `memory_limit` raises `InsufficientStorageError`.
  Otherwise the least recently used entries are evicted until the new entry
  fits. A replacement that would take the total past `memory_limit` raises
  `InsufficientStorageError` and leaves the old value in place.
- `remove_expired()` drops every entry whose time is up.
- `len(stash)` and `key in stash` report what the stash currently holds.
- The stash starts a daemon thread that calls `remove_expired()` every
  `cleanup_interval` seconds. Stop it with `shutdown()`, or use the stash as a
  context manager, which stops it on exit.

Every error derives from `StashError`. `NotFoundError` and `ExpiredError` also
derive from `KeyError`. `InvalidEntryTypeError` is defined as well, but the
stash never raises it.

## Rate-limiting example

`stashem.ratelimit` provides `RateLimitMiddleware`, a WSGI middleware. It
counts requests per client IP (`REMOTE_ADDR`) in a `Stash`. Each count is
stored as a small JSON record. The middleware gives these answers:

- `429 Too Many Requests` when a client goes over the limit;
- `500 Internal Server Error` when the stored record cannot be read or the
  stash refuses to store it;
- otherwise, the request passes to the wrapped application.

Every request refreshes the stored record, including a rejected one. A
client's count is therefore reset only after it has made no requests for the
stash's `ttl`.

`create_app(stash, limit=3)` wraps `index_app`, which answers every request
with an empty `200 OK`:

```python
from stashem.stash import Stash
from stashem.ratelimit import create_app

app = create_app(Stash(ttl=5, entry_limit=1000), limit=3)
```

`RateLimitMiddleware.check(ip)` counts one request and returns the
`http.HTTPStatus` that the request would get.

### Demo server

```
stashem-ratelimit
```

This runs the app on the standard library's `wsgiref` server. Press Ctrl+C to
stop it. Options:

- `--host` (default: all interfaces)
- `--port` (default `3000`)
- `--limit` (default `3`)
- `--ttl` (default `5.0` seconds)
- `--entry-limit` (default `1000`)

## What it does not do

The stash lives only in the memory of one process. It does not persist data or
share it between processes. The demo server is the single-threaded `wsgiref`
server and is meant for trying the middleware out, not for production use.