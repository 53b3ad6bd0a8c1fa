"""Per-client request rate limiting as WSGI middleware backed by a Stash."""

from __future__ import annotations

import argparse
import json
import logging
from http import HTTPStatus
from wsgiref.simple_server import make_server

from stashem.stash import Stash, StashError

log = logging.getLogger(__name__)


def _status_line(status: HTTPStatus) -> str:
    return f"{status.value} {status.phrase}"


class RateLimitMiddleware:
    """Reject clients that make more than ``limit`` requests within the stash TTL."""

    def __init__(self, app, stash: Stash, limit: int) -> None:
        self.app = app
        self.stash = stash
        self.limit = limit

    def check(self, ip: str) -> HTTPStatus:
        """Count a request from ``ip`` and return the status it should get."""
        try:
            raw = self.stash.get(ip)
        except StashError:
            count = 0
        else:
            try:
                count = int(json.loads(raw)["count"])
            except (ValueError, KeyError, TypeError):
                return HTTPStatus.INTERNAL_SERVER_ERROR

        count += 1
        if count > self.limit:
            return HTTPStatus.TOO_MANY_REQUESTS

        record = json.dumps({"ip": ip, "count": count}, separators=(",", ":"))
        try:
            self.stash.set(ip, record.encode())
        except StashError:
            return HTTPStatus.INTERNAL_SERVER_ERROR
        return HTTPStatus.OK

    def __call__(self, environ, start_response):
        status = self.check(environ.get("REMOTE_ADDR", ""))
        if status is not HTTPStatus.OK:
            start_response(_status_line(status), [("Content-Length", "0")])
            return [b""]
        return self.app(environ, start_response)


def index_app(environ, start_response):
    """Answer every request with an empty 200 response."""
    start_response(_status_line(HTTPStatus.OK), [("Content-Length", "0")])
    return [b""]


def create_app(stash: Stash, limit: int = 3) -> RateLimitMiddleware:
    """Build the rate-limited application."""
    return RateLimitMiddleware(index_app, stash, limit)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Serve a rate-limited endpoint.")
    parser.add_argument("--host", default="")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--limit", type=int, default=3)
    parser.add_argument("--ttl", type=float, default=5.0)
    parser.add_argument("--entry-limit", type=int, default=1000)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    with Stash(ttl=args.ttl, entry_limit=args.entry_limit) as stash:
        with make_server(args.host, args.port, create_app(stash, args.limit)) as server:
            log.info("listening on %s:%d", args.host or "0.0.0.0", args.port)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())