"""
Chunk delivery from the capture agent to the backend.

One chunk is one multipart POST. Transport failures (connection refused,
timeouts) are retried under a bounded ``RetryPolicy``; an HTTP error response
is terminal. Every call ends in a ``DeliveryResult``, never an exception.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from meetai.models import AudioChunk

logger = logging.getLogger(__name__)

PROCESS_PATH = "/api/transcription/process"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    delay: float = 3.0
    backoff: float = 1.0

    def delay_before(self, attempt: int) -> float:
        """Delay before ``attempt`` (2 = first retry)."""
        return self.delay * (self.backoff ** max(0, attempt - 2))


@dataclass
class DeliveryResult:
    success: bool
    sequence: int
    attempts: int
    status_code: Optional[int] = None
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def transcript(self) -> str:
        return (self.payload or {}).get("transcript") or ""

    @property
    def has_summary(self) -> bool:
        return bool((self.payload or {}).get("summary"))


class ChunkUploader:
    def __init__(
        self,
        backend_url: str = "http://localhost:3000",
        policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        content_type: str = "audio/wav",
    ):
        self.backend_url = backend_url.rstrip("/")
        self.policy = policy or RetryPolicy()
        self.content_type = content_type
        self._client = httpx.AsyncClient(base_url=self.backend_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ChunkUploader":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def health(self) -> bool:
        try:
            r = await self._client.get("/api/health")
        except httpx.TransportError as e:
            logger.warning("[UPLOAD] backend unreachable: %s", e)
            return False
        return r.status_code == 200

    async def deliver(self, chunk: AudioChunk, session_id: Optional[str] = None) -> DeliveryResult:
        ext = "wav" if self.content_type == "audio/wav" else "webm"
        files = {"audio": (f"chunk_{chunk.sequence}.{ext}", chunk.data, self.content_type)}
        data = {
            "platform": chunk.platform.value,
            "timestamp": str(chunk.timestamp_ms),
            "chunkNumber": str(chunk.sequence),
            "sessionId": session_id or chunk.session_id or "default",
        }

        attempt = 0
        last_error = None
        while attempt < self.policy.max_attempts:
            attempt += 1
            if attempt > 1:
                wait = self.policy.delay_before(attempt)
                logger.info("[UPLOAD] retrying chunk %d in %.1fs (attempt %d)", chunk.sequence, wait, attempt)
                await asyncio.sleep(wait)
            try:
                r = await self._client.post(PROCESS_PATH, files=files, data=data)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.warning("[UPLOAD] chunk %d transport error: %s", chunk.sequence, last_error)
                continue

            try:
                payload = r.json()
            except ValueError:
                payload = None

            if r.status_code >= 400:
                error = (payload or {}).get("error") or f"HTTP {r.status_code}"
                logger.error("[UPLOAD] chunk %d rejected: %s", chunk.sequence, error)
                return DeliveryResult(False, chunk.sequence, attempt, r.status_code, payload, error)

            logger.info("[UPLOAD] chunk %d delivered", chunk.sequence)
            return DeliveryResult(True, chunk.sequence, attempt, r.status_code, payload)

        return DeliveryResult(False, chunk.sequence, attempt, error=last_error or "delivery failed")
