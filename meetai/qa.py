"""Question answering against the rolling or pinned meeting context."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from meetai.context_store import RollingContextStore
from meetai.errors import ProviderError, QAFailedError, ValidationError
from meetai.models import QAExchange
from meetai.selector import ProviderSelector

logger = logging.getLogger(__name__)

ContextInput = Union[str, Sequence[str], None]


def _as_context_list(context: ContextInput) -> Optional[List[str]]:
    if context is None:
        return None
    if isinstance(context, str):
        items = [context]
    else:
        items = [str(c) for c in context]
    items = [c.strip() for c in items if c and c.strip()]
    return items or None


class QAOrchestrator:
    def __init__(self, selector: ProviderSelector, store: RollingContextStore, context_length: int = 5):
        self.selector = selector
        self.store = store
        self.context_length = context_length

    def resolve_context(self, session_id: str, explicit: Optional[List[str]]) -> str:
        """Pick the context text for one question.

        An explicit context is used whole. Otherwise the tail of a previously
        pinned context wins over the tail of the conversation history.
        """
        if explicit is not None:
            return " ".join(explicit)
        pinned = self.store.pinned_context(session_id)
        if pinned:
            return " ".join(pinned[-self.context_length:])
        return " ".join(self.store.recent_texts(session_id, self.context_length))

    async def ask(self, session_id: str, question: Optional[str], explicit_context: ContextInput = None) -> QAExchange:
        if not question or not question.strip():
            raise ValidationError("Question not found", code="MISSING_QUESTION")
        question = question.strip()

        explicit = _as_context_list(explicit_context)
        if explicit is not None:
            # Replaces, never merges with, the previous pinned context.
            self.store.pin_context(session_id, explicit)

        context = self.resolve_context(session_id, explicit)
        logger.info('[QA] session=%s question="%s"', session_id, question[:80])

        try:
            result = await self.selector.answer(question, context, {"explicit": explicit is not None})
        except ProviderError as e:
            raise QAFailedError("Question answering failed", cause=e) from e

        exchange = QAExchange.from_result(question, result)
        self.store.append_qa(session_id, exchange)
        return exchange
