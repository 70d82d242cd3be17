"""Shared fixtures: ASGI scopes, a recording stream, and tiny ASGI apps."""

import pytest


class RecordingStream:
    """Stream double that keeps every ``write`` call."""

    def __init__(self):
        self.writes = []

    def write(self, data):
        self.writes.append(data)

    @property
    def lines(self):
        return "".join(self.writes).splitlines()


@pytest.fixture
def stream():
    return RecordingStream()


@pytest.fixture
def make_scope():
    def _make(
        method="GET",
        path="/x",
        query=b"",
        headers=(),
        client=("127.0.0.1", 51000),
        http_version="1.1",
        **extra,
    ):
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": http_version,
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "query_string": query,
            "headers": [(k.encode(), v.encode()) for k, v in headers],
            "client": client,
            "server": ("testserver", 80),
        }
        scope.update(extra)
        return scope

    return _make


@pytest.fixture
def make_app():
    """Build an ASGI app that sends a fixed response, optionally misbehaving."""

    def _make(status=200, body=b"ok", headers=None, end_twice=False, chunks=None):
        if headers is None:
            headers = [(b"content-length", str(len(body)).encode())]

        async def app(scope, receive, send):
            await send({"type": "http.response.start", "status": status, "headers": headers})
            for chunk in chunks or []:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
            await send({"type": "http.response.body", "body": body})
            if end_twice:
                await send({"type": "http.response.body", "body": b""})

        return app

    return _make


@pytest.fixture
def call_asgi():
    """Run an ASGI app for one HTTP request and return the messages it sent."""

    async def _call(app, scope):
        sent = []

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            sent.append(message)

        await app(scope, receive, send)
        return sent

    return _call
