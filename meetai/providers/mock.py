"""
Deterministic offline providers.

Used whenever no real provider is configured. They never fail and always
return plausible, non-empty output so every downstream stage is exercised.
Choices are keyed on a CRC32 of the input, so the same input always yields
the same output.
"""
from __future__ import annotations

import asyncio
import zlib
from typing import Any, Dict, List, Optional

from meetai.models import Alternative, QAResult, Sentiment, SummaryRecord, Transcript
from meetai.providers.base import QAProvider, SpeechProvider, SummaryProvider

MOCK_TRANSCRIPTS = [
    "Hello everyone, welcome to today's meeting. Project status is first on the agenda.",
    "We are reviewing the goals we set last week. There are areas where we made progress.",
    "The new features built by the engineering team are in testing. We are waiting for user feedback.",
    "We need to update our marketing strategy and take the new target audience into account.",
    "We are coordinating with finance on the budget plan.",
    "We are going over the project timeline. Some milestones may move.",
    "We are looking into new ways to improve our quality control process.",
    "Team performance is satisfying overall and motivation is high.",
    "The updates to our collaboration platform are showing good results.",
    "We will hold the next meeting at the same time next week.",
]

MOCK_SUMMARIES = [
    {
        "summary": "Project progress was reviewed. Features from the engineering team are in testing and the marketing strategy needs an update.",
        "key_points": ["project progress", "engineering work", "testing", "marketing strategy"],
        "sentiment": "positive",
        "action_items": ["Review test results", "Update the marketing plan", "Schedule the next meeting"],
        "topics": ["Project Management", "Engineering", "Marketing"],
        "participants": ["Project Manager", "Engineering Team", "Marketing Team"],
    },
    {
        "summary": "Team performance and motivation were discussed. Collaboration platform updates are working and quality control can improve.",
        "key_points": ["team performance", "motivation", "collaboration", "quality control"],
        "sentiment": "positive",
        "action_items": ["Revisit the quality control process", "Keep team motivation up"],
        "topics": ["People", "Quality", "Collaboration"],
        "participants": ["HR Lead", "Quality Control", "Team Leads"],
    },
]

MOCK_ANSWERS = {
    "project": [
        "Project progress was reviewed in the meeting. Engineering is focused on the testing phase.",
        "The project timeline was revisited. Some milestones need updating but overall progress is good.",
    ],
    "team": [
        "Team performance is satisfying overall. Motivation is high and collaboration is strong.",
        "Coordination within the team is good. Roles for new work are being planned.",
    ],
    "technology": [
        "The technology stack is kept current. Integrating new tools is under evaluation.",
        "Infrastructure improvements are planned, with performance work as the priority.",
    ],
    "default": [
        "This was covered in the meeting: project progress was reviewed and team performance was discussed.",
        "According to the meeting, the team agrees on this, with good feedback on the engineering work.",
        "The meeting concluded that the marketing strategy needs an update.",
        "More information may be needed here. The quality control process needs improvement.",
    ],
}

RELATED_TOPICS = {
    "project": ["Project progress", "Engineering", "Testing", "Milestones"],
    "team": ["Team performance", "Motivation", "Collaboration", "Roles"],
    "technology": ["Technology stack", "Infrastructure", "Performance", "Integration"],
    "default": ["Meeting summary", "Main topics", "Action items", "Next steps"],
}

CATEGORY_KEYWORDS = {
    "project": ("project", "develop", "timeline", "milestone", "deadline"),
    "team": ("team", "people", "person", "staff", "who"),
    "technology": ("technology", "system", "infrastructure", "stack", "tool"),
}


def _pick(key: bytes, n: int) -> int:
    return zlib.crc32(key) % n


def categorize_question(question: str) -> str:
    q = question.lower()
    for category, words in CATEGORY_KEYWORDS.items():
        if any(w in q for w in words):
            return category
    return "default"


class _MockBase:
    name = "mock"

    def __init__(self, latency: float = 0.0):
        self.latency = latency

    async def _delay(self):
        if self.latency > 0:
            await asyncio.sleep(self.latency)


class MockSpeechProvider(_MockBase, SpeechProvider):
    async def transcribe(self, audio: bytes, options: Optional[Dict[str, Any]] = None) -> Transcript:
        await self._delay()
        digest = zlib.crc32(audio)
        text = MOCK_TRANSCRIPTS[digest % len(MOCK_TRANSCRIPTS)]
        return Transcript(
            text=text,
            confidence=0.80 + (digest % 16) / 100,
            language=(options or {}).get("language") or "en-US",
            provider=self.name,
            alternatives=[Alternative(text=text.replace(".", ","), confidence=0.70)],
        )


class MockSummaryProvider(_MockBase, SummaryProvider):
    async def summarize(self, text: str, context: List[str], options: Optional[Dict[str, Any]] = None) -> SummaryRecord:
        await self._delay()
        base = MOCK_SUMMARIES[_pick(text.encode("utf-8"), len(MOCK_SUMMARIES))]
        return SummaryRecord(
            summary=base["summary"],
            key_points=list(base["key_points"]),
            sentiment=Sentiment(base["sentiment"]),
            action_items=list(base["action_items"]),
            topics=list(base["topics"]),
            participants=list(base["participants"]),
            provider=self.name,
        )


class MockQAProvider(_MockBase, QAProvider):
    async def answer(self, question: str, context: str, options: Optional[Dict[str, Any]] = None) -> QAResult:
        await self._delay()
        category = categorize_question(question)
        answers = MOCK_ANSWERS[category]
        digest = zlib.crc32(question.encode("utf-8"))
        return QAResult(
            answer=answers[digest % len(answers)],
            confidence=0.75 + (digest % 21) / 100,
            sources=["Meeting transcript", "Conversation summaries", "Context analysis"],
            related_topics=list(RELATED_TOPICS[category]),
            provider=self.name,
        )
