"""Scripted upstream for httpx.MockTransport-backed clients."""

import json
from typing import Any

import httpx


class MockUpstream:
    """Replays scripted replies in order and records every request.

    A reply may be a JSON-able dict/list (served as 200), an ``httpx.Response``,
    an exception instance (raised from the transport) or a callable taking the
    request. Once the script runs out, ``default`` is served.
    """

    def __init__(self, replies: list[Any] | None = None, default: Any = None):
        self.replies = list(replies or [])
        self.default = default
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        if callable(reply):
            return reply(request)
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def json_bodies(self) -> list[Any]:
        return [json.loads(request.content) for request in self.requests]

    def params(self, index: int = -1) -> dict[str, str]:
        return dict(self.requests[index].url.params)
