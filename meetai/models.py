"""Data models for MeetAI."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import time


class Platform(str, Enum):
    GOOGLE_MEET = "google-meet"
    ZOOM = "zoom"
    TEAMS = "teams"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Platform":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


PLATFORM_HOSTS = {
    "meet.google.com": Platform.GOOGLE_MEET,
    "zoom.us": Platform.ZOOM,
    "teams.microsoft.com": Platform.TEAMS,
}


def detect_platform(url: Optional[str]) -> Platform:
    """Map a tab URL to a meeting platform (subdomains of zoom.us included)."""
    if not url:
        return Platform.UNKNOWN
    host = (urlparse(url).hostname or "").lower()
    for suffix, platform in PLATFORM_HOSTS.items():
        if host == suffix or host.endswith("." + suffix):
            return platform
    return Platform.UNKNOWN


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"

    @classmethod
    def normalize(cls, value: Any) -> "Sentiment":
        text = str(value or "").strip().lower()
        for member in cls:
            if text.startswith(member.value):
                return member
        return cls.NEUTRAL


def clamp_confidence(value: Any) -> float:
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(1.0, conf))


@dataclass
class Alternative:
    """A lower-confidence transcription of the same audio."""
    text: str
    confidence: float

    def to_dict(self):
        return {"transcript": self.text, "confidence": self.confidence}


@dataclass
class Transcript:
    """Result of transcribing one chunk."""
    text: str
    confidence: float
    language: str
    provider: str
    alternatives: List[Alternative] = field(default_factory=list)

    def __post_init__(self):
        self.text = self.text or ""
        self.confidence = clamp_confidence(self.confidence)


@dataclass
class TranscriptSegment:
    """A transcript kept in the rolling conversation history."""
    text: str
    confidence: float
    language: str
    provider: str
    alternatives: List[Alternative] = field(default_factory=list)
    chunk_number: Optional[int] = None
    ts: float = field(default_factory=time.time)

    @classmethod
    def from_transcript(cls, transcript: Transcript, chunk_number: Optional[int] = None) -> "TranscriptSegment":
        return cls(
            text=transcript.text.strip(),
            confidence=transcript.confidence,
            language=transcript.language,
            provider=transcript.provider,
            alternatives=list(transcript.alternatives),
            chunk_number=chunk_number,
        )

    def to_dict(self):
        return {
            "timestamp": self.ts,
            "text": self.text,
            "confidence": self.confidence,
            "language": self.language,
            "provider": self.provider,
            "chunkNumber": self.chunk_number,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }


@dataclass
class SummaryRecord:
    """Structured summary of accumulated conversation context."""
    summary: str
    key_points: List[str] = field(default_factory=list)
    sentiment: Sentiment = Sentiment.NEUTRAL
    action_items: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    participants: List[str] = field(default_factory=list)
    provider: str = "unknown"
    ts: float = field(default_factory=time.time)

    def to_dict(self):
        return {
            "timestamp": self.ts,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "sentiment": self.sentiment.value,
            "actionItems": list(self.action_items),
            "topics": list(self.topics),
            "participants": list(self.participants),
            "provider": self.provider,
        }


@dataclass
class QAResult:
    """What a QA provider returns before the exchange is recorded."""
    answer: str
    confidence: float
    sources: List[str] = field(default_factory=list)
    related_topics: List[str] = field(default_factory=list)
    provider: str = "unknown"


@dataclass
class QAExchange:
    question: str
    answer: str
    confidence: float
    sources: List[str] = field(default_factory=list)
    related_topics: List[str] = field(default_factory=list)
    provider: str = "unknown"
    ts: float = field(default_factory=time.time)

    @classmethod
    def from_result(cls, question: str, result: QAResult) -> "QAExchange":
        return cls(
            question=question,
            answer=result.answer,
            confidence=clamp_confidence(result.confidence),
            sources=list(result.sources),
            related_topics=list(result.related_topics),
            provider=result.provider,
        )

    def to_dict(self):
        return {
            "timestamp": self.ts,
            "question": self.question,
            "answer": self.answer,
            "confidence": self.confidence,
            "sources": list(self.sources),
            "relatedTopics": list(self.related_topics),
            "provider": self.provider,
        }


@dataclass
class AudioChunk:
    """One fixed-interval slice of captured audio. Never persisted."""
    data: bytes
    sequence: int
    captured_at: float
    platform: Platform = Platform.UNKNOWN
    session_id: Optional[str] = None

    @property
    def timestamp_ms(self) -> int:
        return int(self.captured_at * 1000)


@dataclass
class ChunkMeta:
    """Upload metadata accompanying one audio payload."""
    session_id: str = "default"
    platform: Platform = Platform.UNKNOWN
    chunk_number: int = 1
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    filename: Optional[str] = None


@dataclass
class ChunkResult:
    transcript: str
    confidence: float
    language: str
    summary: Optional[SummaryRecord]
    meta: ChunkMeta
    processing_time_ms: int
    transcription_provider: str
    summary_provider: Optional[str]
    audio_size: int

    def to_dict(self) -> Dict[str, Any]:
        s = self.summary
        return {
            "success": True,
            "transcript": self.transcript,
            "confidence": self.confidence,
            "language": self.language,
            "summary": s.summary if s else None,
            "keyPoints": list(s.key_points) if s else [],
            "sentiment": s.sentiment.value if s else None,
            "actionItems": list(s.action_items) if s else [],
            "topics": list(s.topics) if s else [],
            "participants": list(s.participants) if s else [],
            "metadata": {
                "sessionId": self.meta.session_id,
                "platform": self.meta.platform.value,
                "chunkNumber": self.meta.chunk_number,
                "timestamp": self.meta.timestamp_ms,
                "processingTime": self.processing_time_ms,
                "transcriptionProvider": self.transcription_provider,
                "summaryProvider": self.summary_provider,
                "audioSize": self.audio_size,
            },
        }
