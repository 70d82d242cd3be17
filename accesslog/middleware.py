"""
Access-log middleware.

Emits exactly one line per HTTP request once its response has been fully
sent. The line is rendered from a template (colon or percent dialect), a
user callback, or the fixed common-log layout, and written to a stream
either directly or through a periodic buffer.

The response is observed, never altered: every ASGI message is forwarded to
the real ``send`` before any logging work happens.
"""

import logging
import sys
from typing import Any, Callable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from accesslog.engine.renderers import render, render_fallback
from accesslog.models.context import RequestContext, ResponseContext
from accesslog.models.options import LoggerOptions
from accesslog.store.sink import BufferedSink, StreamSink

logger = logging.getLogger(__name__)

# Set on the scope once a request has an access logger attached
LOGGING_SCOPE_KEY = "accesslog.logging"

Formatter = Callable[[RequestContext, ResponseContext], str | None]


class ResponseInterceptor:
    """
    ASGI ``send`` wrapper that observes the response head and its end.

    The first ``http.response.start`` is forwarded, then its status and
    headers are captured. The first final body message is forwarded, then
    the elapsed time is recorded and ``on_finalize`` runs once. Anything
    after that passes straight through.
    """

    def __init__(
        self,
        send: Send,
        response: ResponseContext,
        on_finalize: Callable[[], None],
    ) -> None:
        self._send = send
        self.response = response
        self._on_finalize = on_finalize
        self.head_written = False
        self.finalized = False

    async def __call__(self, message: Message) -> None:
        await self._send(message)

        message_type = message["type"]
        if message_type == "http.response.start" and not self.head_written:
            self.head_written = True
            self.response.capture_head(message["status"], message.get("headers"))
        elif self._is_final(message) and not self.finalized:
            self.finalized = True
            self.response.finalize()
            self._on_finalize()

    @staticmethod
    def _is_final(message: Message) -> bool:
        if message["type"] == "http.response.body":
            return not message.get("more_body", False)
        return message["type"] == "http.response.pathsend"


class AccessLogMiddleware:
    """
    Log every HTTP request handled by the wrapped application.

    Args:
        app: Next ASGI application in the chain.
        format: Template string, callback ``(request, response, render)``,
            or None for the fixed common-log layout. A callback returning a
            falsy value suppresses the line.
        stream: Object with ``write(str)``. Defaults to ``sys.stdout``.
        buffer: False, True (1000ms), or a flush interval in milliseconds.
    """

    def __init__(
        self,
        app: ASGIApp,
        format: Any = None,
        stream: Any = None,
        buffer: bool | int = False,
    ) -> None:
        self.app = app
        self.options = LoggerOptions(format=format, stream=stream, buffer=buffer)

        target = self.options.stream or sys.stdout
        interval = self.options.buffer_interval
        self.sink = BufferedSink(target, interval) if interval else StreamSink(target)
        self.formatter = self._build_formatter(self.options.format)

    @staticmethod
    def _build_formatter(fmt: Any) -> Formatter:
        if not fmt:
            return render_fallback
        if callable(fmt):
            def formatter(req: RequestContext, res: ResponseContext) -> str | None:
                return fmt(req, res, lambda template: render(template, req, res))
            return formatter
        return lambda req, res: render(fmt, req, res)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, self._lifespan_send(send))
            return
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope.get(LOGGING_SCOPE_KEY):
            logger.debug("Access logger already mounted for %s", scope.get("path"))
            await self.app(scope, receive, send)
            return
        scope[LOGGING_SCOPE_KEY] = True

        request = RequestContext.from_scope(scope)
        response = ResponseContext()
        interceptor = ResponseInterceptor(
            send, response, lambda: self.emit(request, response)
        )
        await self.app(scope, receive, interceptor)

    def emit(self, request: RequestContext, response: ResponseContext) -> None:
        """Render the line for a finished response and hand it to the sink."""
        line = self.formatter(request, response)
        if line:
            self.sink.write(line + "\n")

    def _lifespan_send(self, send: Send) -> Send:
        """Flush buffered lines when the application finishes shutting down."""

        async def lifespan_send(message: Message) -> None:
            if message["type"] in ("lifespan.shutdown.complete", "lifespan.shutdown.failed"):
                await self.sink.aclose()
            await send(message)

        return lifespan_send
