"""
Rolling conversation context, one set of bounded histories per session.

Every session id maps to three FIFO buffers (transcript segments, summaries,
Q&A exchanges). Buffers are ``deque(maxlen=...)`` so an append and its trim
happen in one step under the session lock; readers always get copies.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from meetai.models import QAExchange, SummaryRecord, TranscriptSegment

DEFAULT_SESSION = "default"


def _recent(buf: Deque, n: Optional[int]) -> list:
    items = list(buf)
    if n is None:
        return items
    if n <= 0:
        return []
    return items[-n:]


@dataclass
class SessionContext:
    conversation: Deque[TranscriptSegment]
    summaries: Deque[SummaryRecord]
    qa: Deque[QAExchange]
    # Context pinned by an explicit QA request; replaced, never merged.
    pinned_context: Optional[List[str]] = None
    created_at: float = field(default_factory=time.time)
    lock: threading.Lock = field(default_factory=threading.Lock)


class RollingContextStore:
    def __init__(self, conversation_limit: int = 20, summary_limit: int = 10, qa_limit: int = 20):
        self.conversation_limit = conversation_limit
        self.summary_limit = summary_limit
        self.qa_limit = qa_limit
        self._sessions: Dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def _new_context(self) -> SessionContext:
        return SessionContext(
            conversation=deque(maxlen=self.conversation_limit),
            summaries=deque(maxlen=self.summary_limit),
            qa=deque(maxlen=self.qa_limit),
        )

    def session(self, session_id: str = DEFAULT_SESSION) -> SessionContext:
        """Return the context for ``session_id``, creating it on first use."""
        with self._lock:
            ctx = self._sessions.get(session_id)
            if ctx is None:
                ctx = self._new_context()
                self._sessions[session_id] = ctx
            return ctx

    def _get(self, session_id: str) -> SessionContext:
        """Existing context, or an empty unregistered one. Reads never create sessions."""
        with self._lock:
            ctx = self._sessions.get(session_id)
        return ctx if ctx is not None else self._new_context()

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def drop_session(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    # -- appends ---------------------------------------------------------

    def append_segment(self, session_id: str, segment: TranscriptSegment) -> bool:
        """Append a transcript segment; blank text is ignored. Returns True if stored."""
        if not segment.text or not segment.text.strip():
            return False
        ctx = self.session(session_id)
        with ctx.lock:
            ctx.conversation.append(segment)
        return True

    def append_summary(self, session_id: str, summary: SummaryRecord) -> None:
        ctx = self.session(session_id)
        with ctx.lock:
            ctx.summaries.append(summary)

    def append_qa(self, session_id: str, exchange: QAExchange) -> None:
        ctx = self.session(session_id)
        with ctx.lock:
            ctx.qa.append(exchange)

    def pin_context(self, session_id: str, context: List[str]) -> None:
        ctx = self.session(session_id)
        with ctx.lock:
            ctx.pinned_context = list(context)

    # -- reads -----------------------------------------------------------

    def recent_conversation(self, session_id: str, n: Optional[int] = None) -> List[TranscriptSegment]:
        ctx = self._get(session_id)
        with ctx.lock:
            return _recent(ctx.conversation, n)

    def recent_texts(self, session_id: str, n: Optional[int] = None) -> List[str]:
        return [seg.text for seg in self.recent_conversation(session_id, n)]

    def recent_summaries(self, session_id: str, n: Optional[int] = None) -> List[SummaryRecord]:
        ctx = self._get(session_id)
        with ctx.lock:
            return _recent(ctx.summaries, n)

    def recent_qa(self, session_id: str, n: Optional[int] = None) -> List[QAExchange]:
        ctx = self._get(session_id)
        with ctx.lock:
            return _recent(ctx.qa, n)

    def pinned_context(self, session_id: str) -> Optional[List[str]]:
        ctx = self._get(session_id)
        with ctx.lock:
            return list(ctx.pinned_context) if ctx.pinned_context is not None else None

    def clear(self, session_id: str) -> None:
        """Empty all three histories (and the pinned QA context) in one step."""
        ctx = self._get(session_id)
        with ctx.lock:
            ctx.conversation.clear()
            ctx.summaries.clear()
            ctx.qa.clear()
            ctx.pinned_context = None

    # -- reporting -------------------------------------------------------

    def stats(self, session_id: str) -> Dict[str, Any]:
        ctx = self._get(session_id)
        with ctx.lock:
            conversation = list(ctx.conversation)
            qa = list(ctx.qa)
            summary_count = len(ctx.summaries)
        return {
            "conversationItems": len(conversation),
            "summaryCount": summary_count,
            "qaCount": len(qa),
            "totalWords": sum(len(seg.text.split()) for seg in conversation),
            "averageConfidence": (sum(x.confidence for x in qa) / len(qa)) if qa else 0.0,
            "firstMessage": conversation[0].ts if conversation else None,
            "lastMessage": conversation[-1].ts if conversation else None,
        }

    def export(self, session_id: str) -> Dict[str, Any]:
        ctx = self._get(session_id)
        with ctx.lock:
            conversation = [seg.to_dict() for seg in ctx.conversation]
            summaries = [s.to_dict() for s in ctx.summaries]
            qa = [x.to_dict() for x in ctx.qa]
        return {
            "sessionId": session_id,
            "conversationHistory": conversation,
            "summaryHistory": summaries,
            "qaHistory": qa,
            "stats": self.stats(session_id),
            "exportedAt": time.time(),
        }

    def export_text(self, session_id: str) -> str:
        """Line-per-entry plain-text rendering of all three histories."""
        def stamp(ts: float) -> str:
            return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")

        lines = [f"[{stamp(seg.ts)}] {seg.text}" for seg in self.recent_conversation(session_id)]
        for s in self.recent_summaries(session_id):
            lines.append(f"[{stamp(s.ts)}] SUMMARY: {s.summary}")
        for x in self.recent_qa(session_id):
            lines.append(f"[{stamp(x.ts)}] Q: {x.question}")
            lines.append(f"[{stamp(x.ts)}] A: {x.answer}")
        return "\n".join(lines)
