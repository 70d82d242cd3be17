"""
Per-request views used when rendering an access-log line.

``RequestContext`` is a read-only view of the ASGI scope; the user is
looked up when the line is rendered.
``ResponseContext`` is filled in while the response is sent: the status
code and headers when the head is written, the elapsed time when the
response is finalized.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Headers
from starlette.types import Scope


@dataclass(frozen=True)
class RequestContext:
    """What the access log needs to know about an inbound request."""

    method: str
    url: str
    http_version_major: int
    http_version_minor: int
    remote_addr: str | None
    headers: Headers
    scope: Scope = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_scope(cls, scope: Scope) -> "RequestContext":
        """Build a context from an HTTP scope before the app sees it."""
        raw_path = scope.get("raw_path")
        url = raw_path.decode("latin-1") if raw_path else scope.get("path", "")
        query = scope.get("query_string", b"")
        if query:
            url = f"{url}?{query.decode('latin-1')}"

        major, _, minor = str(scope.get("http_version", "1.1")).partition(".")
        client = scope.get("client")

        return cls(
            method=scope.get("method", ""),
            url=url,
            http_version_major=int(major or 0),
            http_version_minor=int(minor or 0),
            remote_addr=client[0] if client else None,
            headers=Headers(raw=[(k.lower(), v) for k, v in scope.get("headers", [])]),
            scope=scope,
        )

    @property
    def http_version(self) -> str:
        return f"{self.http_version_major}.{self.http_version_minor}"

    @property
    def referrer(self) -> str | None:
        """Referer header, accepting the ``Referrer`` spelling too."""
        return self.headers.get("referer") or self.headers.get("referrer")

    @property
    def user_agent(self) -> str | None:
        return self.headers.get("user-agent")

    @property
    def user(self) -> Any:
        """
        The ``scope["user"]`` object, read when accessed.

        Authentication middleware further down the chain sets it after
        this context is built.
        """
        return self.scope.get("user")

    @property
    def username(self) -> str | None:
        """
        Login of the authenticated user, if the host exposes one.

        Objects with a ``login`` attribute win; otherwise an authenticated
        Starlette user contributes its ``display_name``.
        """
        if self.user is None:
            return None
        login = getattr(self.user, "login", None)
        if login:
            return login
        if getattr(self.user, "is_authenticated", False):
            return getattr(self.user, "display_name", None) or None
        return None


@dataclass
class ResponseContext:
    """Response metadata observed while the response is being sent."""

    started_at: float = field(default_factory=time.perf_counter)
    status_code: int | None = None
    raw_headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    response_time: int | None = None

    # ── Capture ────────────────────────────────────────────────────────

    def capture_head(self, status_code: int, raw_headers: Any) -> None:
        """Snapshot the status line and a copy of the headers."""
        self.status_code = status_code
        self.raw_headers = list(raw_headers or [])

    def finalize(self) -> None:
        """Record elapsed milliseconds since the request started."""
        self.response_time = int((time.perf_counter() - self.started_at) * 1000)

    # ── Lookup ─────────────────────────────────────────────────────────

    @property
    def headers(self) -> Headers:
        return Headers(raw=self.raw_headers)

    def header(self, name: str) -> str | None:
        """
        Look up a response header from the snapshot.

        Matching is case-insensitive; header names that were sent with
        non-lowercase bytes are still found by an exact-case comparison.
        """
        value = self.headers.get(name)
        if value is not None:
            return value
        wanted = name.encode("latin-1")
        for key, raw_value in self.raw_headers:
            if key == wanted or key.lower() == wanted.lower():
                return raw_value.decode("latin-1")
        return None
