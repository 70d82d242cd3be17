import asyncio
import logging

import pytest

from accesslog.store.sink import BufferedSink, LoggerStream, StreamSink


def test_stream_sink_writes_through(stream):
    sink = StreamSink(stream)
    sink.write("one\n")
    sink.write("two\n")
    assert stream.writes == ["one\n", "two\n"]


def test_stream_sink_escapes_non_ascii(stream):
    StreamSink(stream).write("GET /café\n")
    assert stream.writes == ["GET /caf\\xe9\n"]


def test_buffered_write_does_no_io(stream):
    sink = BufferedSink(stream, 1000)
    sink.write("a\n")
    sink.write("b\n")
    assert stream.writes == []
    assert sink.pending == 2


def test_flush_concatenates_in_fifo_order(stream):
    sink = BufferedSink(stream, 1000)
    for line in ("1\n", "2\n", "3\n"):
        sink.write(line)
    sink.flush()
    assert stream.writes == ["1\n2\n3\n"]
    assert sink.pending == 0


def test_flush_with_empty_queue_writes_nothing(stream):
    BufferedSink(stream, 1000).flush()
    assert stream.writes == []


@pytest.mark.asyncio
async def test_timer_coalesces_lines_within_one_interval(stream):
    sink = BufferedSink(stream, 20)
    for n in range(5):
        sink.write(f"line {n}\n")

    await asyncio.sleep(0.1)

    assert stream.writes == ["line 0\nline 1\nline 2\nline 3\nline 4\n"]
    await sink.aclose()


@pytest.mark.asyncio
async def test_timer_keeps_running_across_intervals(stream):
    sink = BufferedSink(stream, 20)
    sink.write("first\n")
    await asyncio.sleep(0.08)
    sink.write("second\n")
    await asyncio.sleep(0.08)

    assert stream.writes == ["first\n", "second\n"]
    await sink.aclose()


@pytest.mark.asyncio
async def test_aclose_flushes_pending_lines_and_stops_timer(stream):
    sink = BufferedSink(stream, 60_000)
    sink.write("x\n")
    task = sink._task

    await sink.aclose()

    assert stream.writes == ["x\n"]
    assert task.cancelled()


def test_logger_stream_forwards_lines(caplog):
    target = logging.getLogger("tests.access")
    with caplog.at_level(logging.INFO, logger="tests.access"):
        LoggerStream(target).write("GET / 200\nPOST /a 201\n")

    assert [r.getMessage() for r in caplog.records] == ["GET / 200", "POST /a 201"]


class FlakyStream:
    """Fails on the first write, then records."""

    def __init__(self):
        self.calls = 0
        self.writes = []

    def write(self, data):
        self.calls += 1
        if self.calls == 1:
            raise OSError("disk full")
        self.writes.append(data)


@pytest.mark.asyncio
async def test_timer_survives_a_failed_write(caplog):
    stream = FlakyStream()
    sink = BufferedSink(stream, 20)

    with caplog.at_level(logging.ERROR, logger="accesslog.store.sink"):
        sink.write("lost\n")
        await asyncio.sleep(0.08)
        sink.write("kept\n")
        await asyncio.sleep(0.08)

    assert stream.writes == ["kept\n"]
    assert not sink._task.done()
    assert any("flush failed" in r.getMessage() for r in caplog.records)
    await sink.aclose()
