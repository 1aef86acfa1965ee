"""Capability interfaces shared by every provider."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from meetai.models import QAResult, SummaryRecord, Transcript
from meetai.prompt import QA_SYSTEM_PROMPT, SUMMARY_SYSTEM_PROMPT, build_qa_prompt, build_summary_prompt
from meetai.schema import parse_summary_response


SPEECH = "speech"
SUMMARY = "summary"
QA = "qa"
CAPABILITIES = (SPEECH, SUMMARY, QA)


class SpeechProvider(ABC):
    """Turns one audio payload into a Transcript."""

    name = "speech"

    @abstractmethod
    async def transcribe(self, audio: bytes, options: Optional[Dict[str, Any]] = None) -> Transcript:
        """Transcribe an audio chunk.

        Args:
            audio: Encoded audio bytes (webm/wav/ogg)
            options: language, filename, sample_rate

        Returns:
            Transcript (text may be empty for silence)
        """


class SummaryProvider(ABC):
    """Summarises text using trailing conversation context."""

    name = "summary"

    @abstractmethod
    async def summarize(
        self, text: str, context: List[str], options: Optional[Dict[str, Any]] = None
    ) -> SummaryRecord:
        """Summarise ``text``; ``context`` holds earlier segments, oldest first."""


class QAProvider(ABC):
    """Answers a free-form question against meeting context."""

    name = "qa"

    @abstractmethod
    async def answer(self, question: str, context: str, options: Optional[Dict[str, Any]] = None) -> QAResult:
        """Answer ``question``; ``context`` is already concatenated."""


class ChatBackend(ABC):
    """A model that completes a (system, prompt) pair. Wrapped by the LLM providers below."""

    name = "llm"

    @abstractmethod
    async def complete(self, system: str, prompt: str, *, max_tokens: int = 500, temperature: float = 0.3) -> str:
        """Return the model's text reply."""


def related_topics(question: str, answer: str, limit: int = 4) -> List[str]:
    """Cheap keyword pick for the related-topics list of a model answer."""
    seen = []
    for word in f"{question} {answer}".lower().split():
        word = word.strip(".,;:!?\"'()[]")
        if len(word) > 4 and word not in seen:
            seen.append(word)
        if len(seen) >= limit:
            break
    return seen or ["General discussion"]


class LLMSummaryProvider(SummaryProvider):
    def __init__(self, backend: ChatBackend, max_tokens: int = 500):
        self.backend = backend
        self.name = backend.name
        self.max_tokens = max_tokens

    async def summarize(self, text, context, options=None):
        prompt = build_summary_prompt(text, context)
        reply = await self.backend.complete(SUMMARY_SYSTEM_PROMPT, prompt, max_tokens=self.max_tokens, temperature=0.3)
        return parse_summary_response(reply, provider=self.name)


class LLMQAProvider(QAProvider):
    # Models do not report a confidence; use a fixed estimate.
    CONFIDENCE = 0.85

    def __init__(self, backend: ChatBackend, max_tokens: int = 300):
        self.backend = backend
        self.name = backend.name
        self.max_tokens = max_tokens

    async def answer(self, question, context, options=None):
        explicit = bool((options or {}).get("explicit"))
        prompt = build_qa_prompt(question, context, explicit=explicit)
        reply = (await self.backend.complete(QA_SYSTEM_PROMPT, prompt, max_tokens=self.max_tokens, temperature=0.3)).strip()
        if not reply:
            raise RuntimeError("Empty model response")
        return QAResult(
            answer=reply,
            confidence=self.CONFIDENCE,
            sources=["Meeting transcript", "AI analysis"],
            related_topics=related_topics(question, reply),
            provider=self.name,
        )
