import asyncio

import pytest

from meetai.capture import ChunkedAudioCapturer
from meetai.errors import CaptureAlreadyActiveError, CaptureNotActiveError, CaptureUnavailableError
from meetai.models import Platform

from conftest import FakeSource


def _capturer(source, chunks, interval=0.1):
    return ChunkedAudioCapturer(source, chunks.append, interval=interval, platform=Platform.ZOOM, session_id="s1")


def test_one_chunk_per_interval():
    source = FakeSource()
    chunks = []
    capturer = _capturer(source, chunks)

    async def run():
        await capturer.start()
        assert capturer.sequence == 0
        source.emit(b"abc")
        source.emit(b"def")
        await asyncio.sleep(0.15)
        emitted = list(chunks)
        await capturer.stop()
        return emitted

    emitted = asyncio.run(run())

    assert len(emitted) == 1
    assert emitted[0].sequence == 1
    assert emitted[0].data == b"abcdef"
    assert emitted[0].platform == Platform.ZOOM
    assert emitted[0].session_id == "s1"


def test_silent_intervals_emit_nothing():
    source = FakeSource()
    chunks = []
    capturer = _capturer(source, chunks, interval=0.05)

    async def run():
        await capturer.start()
        await asyncio.sleep(0.12)
        return await capturer.stop()

    final = asyncio.run(run())

    assert final is None
    assert chunks == []
    assert capturer.sequence == 0


def test_stop_flushes_the_remainder_as_final_chunk():
    source = FakeSource()
    chunks = []
    capturer = _capturer(source, chunks, interval=10)

    async def run():
        await capturer.start()
        source.emit(b"tail")
        await asyncio.sleep(0)
        return await capturer.stop()

    final = asyncio.run(run())

    assert final.sequence == 1
    assert final.data == b"tail"
    assert chunks == [final]
    assert source.closed == 1
    assert not capturer.is_active


def test_sequence_is_strictly_increasing():
    source = FakeSource()
    chunks = []
    capturer = _capturer(source, chunks, interval=0.05)

    async def run():
        await capturer.start()
        for part in (b"a", b"b", b"c"):
            source.emit(part)
            await asyncio.sleep(0.07)
        await capturer.stop()

    asyncio.run(run())

    sequences = [c.sequence for c in chunks]
    assert sequences == list(range(1, len(sequences) + 1))
    assert b"".join(c.data for c in chunks) == b"abc"


def test_double_start_and_double_stop():
    source = FakeSource()
    capturer = _capturer(source, [])

    async def run():
        await capturer.start()
        with pytest.raises(CaptureAlreadyActiveError):
            await capturer.start()
        await capturer.stop()
        with pytest.raises(CaptureNotActiveError):
            await capturer.stop()

    asyncio.run(run())
    assert source.opened == 1
    assert source.closed == 1


def test_device_failure_leaves_capturer_inactive():
    capturer = _capturer(FakeSource(fail_open=True), [])

    async def run():
        with pytest.raises(CaptureUnavailableError):
            await capturer.start()
        assert not capturer.is_active
        with pytest.raises(CaptureNotActiveError):
            await capturer.stop()

    asyncio.run(run())


def test_data_from_a_device_thread_is_buffered():
    source = FakeSource()
    chunks = []
    capturer = _capturer(source, chunks, interval=10)

    async def run():
        await capturer.start()
        await asyncio.to_thread(source.emit, b"from thread")
        await asyncio.sleep(0.01)
        return await capturer.stop()

    final = asyncio.run(run())
    assert final.data == b"from thread"
