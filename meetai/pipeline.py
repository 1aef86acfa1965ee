"""
Chunk pipeline: audio chunk -> transcript -> rolling summary -> response.

Transcription is mandatory; summarization is best effort and its failure only
leaves the summary empty. Context commits for one session (segment append,
summarize, summary append) run in chunk sequence order among the chunks that
have arrived, so a late transcription of chunk 3 never lands before chunk 2.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from meetai.context_store import RollingContextStore
from meetai.errors import (
    NoContentError,
    ProviderError,
    SummarizationFailedError,
    TranscriptionFailedError,
    ValidationError,
)
from meetai.models import ChunkMeta, ChunkResult, SummaryRecord, Transcript, TranscriptSegment
from meetai.selector import ProviderSelector

logger = logging.getLogger(__name__)


@dataclass
class _SessionOrder:
    in_flight: List[int] = field(default_factory=list)
    cond: asyncio.Condition = field(default_factory=asyncio.Condition)


class ChunkSequencer:
    """Orders per-session commits by chunk number among in-flight chunks."""

    def __init__(self):
        self._sessions: Dict[str, _SessionOrder] = {}

    def pending(self, session_id: str) -> List[int]:
        state = self._sessions.get(session_id)
        return sorted(state.in_flight) if state else []

    @asynccontextmanager
    async def slot(self, session_id: str, sequence: int):
        """Hold a place in line from arrival until the chunk is done.

        Registration happens before the first suspension point, so arrival order
        at the pipeline is what counts.
        """
        state = self._sessions.setdefault(session_id, _SessionOrder())
        state.in_flight.append(sequence)
        try:
            yield _Turn(state, sequence)
        finally:
            state.in_flight.remove(sequence)
            async with state.cond:
                state.cond.notify_all()
            if not state.in_flight and self._sessions.get(session_id) is state:
                del self._sessions[session_id]


class _Turn:
    def __init__(self, state: _SessionOrder, sequence: int):
        self._state = state
        self.sequence = sequence

    def _is_next(self) -> bool:
        return all(s >= self.sequence for s in self._state.in_flight)

    @asynccontextmanager
    async def commit(self):
        """Wait until no earlier chunk of the session is still in flight."""
        async with self._state.cond:
            await self._state.cond.wait_for(self._is_next)
        yield


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class ChunkPipeline:
    def __init__(
        self,
        selector: ProviderSelector,
        store: RollingContextStore,
        context_length: int = 5,
        language: str = "en-US",
    ):
        self.selector = selector
        self.store = store
        self.context_length = context_length
        self.language = language
        self.sequencer = ChunkSequencer()

    async def process_chunk(self, audio: Optional[bytes], meta: ChunkMeta) -> ChunkResult:
        started = time.perf_counter()

        if not audio:
            raise ValidationError(
                "Audio file not found",
                code="MISSING_AUDIO",
                metadata={"processingTime": _elapsed_ms(started), "timestamp": int(time.time() * 1000)},
            )

        logger.info(
            "[PIPELINE] chunk %s session=%s platform=%s size=%d bytes",
            meta.chunk_number, meta.session_id, meta.platform.value, len(audio),
        )

        async with self.sequencer.slot(meta.session_id, meta.chunk_number) as turn:
            options = {"language": self.language, "filename": meta.filename}
            try:
                transcript = await self.selector.transcribe(audio, options)
            except ProviderError as e:
                raise TranscriptionFailedError(
                    "Transcription failed",
                    cause=e,
                    metadata={"processingTime": _elapsed_ms(started), "timestamp": int(time.time() * 1000)},
                ) from e

            summary = None
            if transcript.text.strip():
                async with turn.commit():
                    summary = await self._commit(meta, transcript)

        elapsed = _elapsed_ms(started)
        logger.info("[PIPELINE] chunk %s done in %dms", meta.chunk_number, elapsed)
        return ChunkResult(
            transcript=transcript.text,
            confidence=transcript.confidence,
            language=transcript.language,
            summary=summary,
            meta=meta,
            processing_time_ms=elapsed,
            transcription_provider=transcript.provider,
            summary_provider=summary.provider if summary else None,
            audio_size=len(audio),
        )

    async def _commit(self, meta: ChunkMeta, transcript: Transcript) -> Optional[SummaryRecord]:
        session_id = meta.session_id
        # Context is read before the new segment goes in, then the segment is the text.
        context = self.store.recent_texts(session_id, self.context_length)
        segment = TranscriptSegment.from_transcript(transcript, chunk_number=meta.chunk_number)
        self.store.append_segment(session_id, segment)

        try:
            summary = await self.selector.summarize(
                segment.text, context, {"platform": meta.platform.value, "chunkNumber": meta.chunk_number}
            )
        except ProviderError as e:
            logger.warning("[PIPELINE] summarization failed for chunk %s: %s", meta.chunk_number, e)
            return None

        self.store.append_summary(session_id, summary)
        return summary

    async def summarize_text(self, session_id: str, text: Optional[str], context_length: Optional[int] = None) -> SummaryRecord:
        """Summarize free text against the session's trailing conversation."""
        if not text or not text.strip():
            raise ValidationError("No text to summarize", code="MISSING_TEXT")
        text = text.strip()
        n = self.context_length if context_length is None else context_length
        context = self.store.recent_texts(session_id, n)
        # Submitted text joins the conversation history.
        self.store.append_segment(
            session_id, TranscriptSegment(text=text, confidence=1.0, language=self.language, provider="manual")
        )
        try:
            summary = await self.selector.summarize(text, context)
        except ProviderError as e:
            raise SummarizationFailedError("Summarization failed", cause=e) from e
        self.store.append_summary(session_id, summary)
        return summary

    async def summarize_all(self, session_id: str) -> SummaryRecord:
        """Summarize the whole retained conversation, oldest to newest."""
        texts = self.store.recent_texts(session_id)
        if not texts:
            raise NoContentError("No conversation to summarize")
        logger.info("[PIPELINE] full summary of %d segments for session %s", len(texts), session_id)
        try:
            summary = await self.selector.summarize(" ".join(texts), [], {"fullSummary": True})
        except ProviderError as e:
            raise SummarizationFailedError("Summarization failed", cause=e) from e
        self.store.append_summary(session_id, summary)
        return summary
