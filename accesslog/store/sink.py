"""
Output sinks for rendered access-log lines.

``StreamSink`` writes every line straight through to its stream.
``BufferedSink`` queues lines in memory and writes the concatenation once
per flush interval from a background asyncio task, trading latency for
fewer write calls under load.

Both sinks emit ASCII only: characters outside ASCII (which may arrive via
header or URL values) are backslash-escaped on write.
"""

import asyncio
import contextlib
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Writable(Protocol):
    def write(self, data: str) -> Any: ...


def _ascii(data: str) -> str:
    return data.encode("ascii", "backslashreplace").decode("ascii")


class StreamSink:
    """Unbuffered sink: one write per line."""

    def __init__(self, stream: Writable) -> None:
        self.stream = stream

    def write(self, line: str) -> None:
        self.stream.write(_ascii(line))
        flush = getattr(self.stream, "flush", None)
        if flush is not None:
            flush()

    async def aclose(self) -> None:
        """Nothing is held back, so closing is a no-op."""


class BufferedSink:
    """
    Queue lines and flush them periodically.

    The flush timer is an asyncio task started on the running loop by the
    first ``write``. ``write`` itself never performs I/O. Lines are written
    in the order they were queued.
    """

    def __init__(self, stream: Writable, interval_ms: int) -> None:
        self.stream = stream
        self.interval_ms = interval_ms
        self._queue: list[str] = []
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        """Number of lines waiting for the next flush."""
        return len(self._queue)

    # ── Queue ──────────────────────────────────────────────────────────

    def write(self, line: str) -> None:
        self._queue.append(line)
        self.start()

    def flush(self) -> None:
        """Write everything queued so far as a single chunk."""
        if not self._queue:
            return
        data = "".join(self._queue)
        count = len(self._queue)
        self._queue.clear()
        self.stream.write(_ascii(data))
        flush = getattr(self.stream, "flush", None)
        if flush is not None:
            flush()
        logger.debug("Flushed %d access log line(s)", count)

    # ── Timer lifecycle ────────────────────────────────────────────────

    def start(self) -> None:
        """
        Ensure the flush timer runs on the current event loop.

        Outside a running loop this does nothing; the next ``write`` from
        inside one starts the timer.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._task is not None and not self._task.done() and self._task.get_loop() is loop:
            return
        self._task = loop.create_task(self._run())
        logger.info("Access log buffer started (flush every %dms)", self.interval_ms)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            try:
                self.flush()
            except Exception:
                logger.exception("Access log flush failed; batch dropped")

    async def aclose(self) -> None:
        """Stop the flush timer and write out whatever is still queued."""
        task, self._task = self._task, None
        # A timer left on another (possibly closed) loop is simply dropped.
        if task is not None and not task.done() and task.get_loop() is asyncio.get_running_loop():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            logger.info("Access log buffer stopped")
        self.flush()


class LoggerStream:
    """
    A ``write``-able stream that forwards each line to a ``logging.Logger``.

    Lets access lines flow through the host's own logging handlers instead
    of a raw file object.
    """

    def __init__(self, target: logging.Logger, level: int = logging.INFO) -> None:
        self.target = target
        self.level = level

    def write(self, data: str) -> None:
        for line in data.splitlines():
            if line:
                self.target.log(self.level, line)
