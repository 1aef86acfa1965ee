"""
Fixed-interval chunking of a live audio stream.

The source may call back from a device thread; bytes are handed to the event
loop with ``call_soon_threadsafe`` so buffering, flushing and the chunk
callback all run on one loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

from meetai.errors import CaptureAlreadyActiveError, CaptureError, CaptureNotActiveError, CaptureUnavailableError
from meetai.models import AudioChunk, Platform

logger = logging.getLogger(__name__)


@dataclass
class CaptureConstraints:
    """Device request. Echo cancellation and noise suppression stay off for meeting audio."""
    sample_rate: int = 44100
    channels: int = 1
    echo_cancellation: bool = False
    noise_suppression: bool = False
    device: Optional[Union[int, str]] = None


class AudioSource(Protocol):
    def open(self, constraints: CaptureConstraints, on_data: Callable[[bytes], None]) -> None:
        ...

    def close(self) -> None:
        ...

    def package(self, data: bytes) -> bytes:
        """Wrap accumulated raw bytes into an uploadable payload."""
        ...


class ChunkedAudioCapturer:
    def __init__(
        self,
        source: AudioSource,
        on_chunk: Callable[[AudioChunk], None],
        interval: float = 5.0,
        platform: Platform = Platform.UNKNOWN,
        session_id: Optional[str] = None,
    ):
        self._source = source
        self._on_chunk = on_chunk
        self.interval = interval
        self.platform = platform
        self.session_id = session_id

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.Task] = None
        self._buffer = bytearray()
        self._sequence = 0
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def sequence(self) -> int:
        """Sequence number of the last emitted chunk (0 before the first)."""
        return self._sequence

    async def start(self, constraints: Optional[CaptureConstraints] = None) -> None:
        if self._active:
            raise CaptureAlreadyActiveError()

        self._loop = asyncio.get_running_loop()
        self._buffer = bytearray()
        try:
            self._source.open(constraints or CaptureConstraints(), self._on_device_data)
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureUnavailableError(f"Audio capture unavailable: {e}", details=type(e).__name__) from e

        self._sequence = 0
        self._active = True
        self._timer = asyncio.create_task(self._run_timer())
        logger.info("[CAPTURE] started (interval=%.1fs, platform=%s)", self.interval, self.platform.value)

    async def stop(self) -> Optional[AudioChunk]:
        """Stop capturing; the remaining bytes become the final chunk."""
        if not self._active:
            raise CaptureNotActiveError()

        # Timer goes first so no tick can race the final flush.
        self._timer.cancel()
        try:
            await self._timer
        except asyncio.CancelledError:
            pass
        self._timer = None

        try:
            chunk = self._flush()
        finally:
            self._active = False
            self._source.close()
        logger.info("[CAPTURE] stopped after %d chunks", self._sequence)
        return chunk

    def _on_device_data(self, data: bytes) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._append, bytes(data))

    def _append(self, data: bytes) -> None:
        if self._active:
            self._buffer.extend(data)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._flush()

    def _flush(self) -> Optional[AudioChunk]:
        if not self._buffer:
            return None
        raw = bytes(self._buffer)
        self._buffer.clear()
        self._sequence += 1
        chunk = AudioChunk(
            data=self._source.package(raw),
            sequence=self._sequence,
            captured_at=time.time(),
            platform=self.platform,
            session_id=self.session_id,
        )
        logger.debug("[CAPTURE] chunk %d (%d bytes)", chunk.sequence, len(chunk.data))
        try:
            self._on_chunk(chunk)
        except Exception:
            logger.exception("[CAPTURE] chunk handler failed for chunk %d", chunk.sequence)
        return chunk
