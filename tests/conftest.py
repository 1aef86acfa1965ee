import asyncio
from typing import Dict, List, Optional

import pytest

from meetai.config import Settings
from meetai.context_store import RollingContextStore
from meetai.models import QAResult, Sentiment, SummaryRecord, Transcript
from meetai.providers import QA, SPEECH, SUMMARY
from meetai.providers.base import QAProvider, SpeechProvider, SummaryProvider
from meetai.selector import ProviderSelector


class FakeSpeech(SpeechProvider):
    """Transcript text is the decoded audio; ``delays`` maps audio -> seconds."""

    name = "fake-speech"

    def __init__(self, delays: Optional[Dict[bytes, float]] = None, fail: bool = False):
        self.delays = delays or {}
        self.fail = fail
        self.calls: List[bytes] = []

    async def transcribe(self, audio, options=None):
        self.calls.append(audio)
        await asyncio.sleep(self.delays.get(audio, 0))
        if self.fail:
            raise RuntimeError("speech backend down")
        return Transcript(text=audio.decode("utf-8"), confidence=0.9, language="en-US", provider=self.name)


class FakeSummary(SummaryProvider):
    name = "fake-summary"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[tuple] = []

    async def summarize(self, text, context, options=None):
        self.calls.append((text, list(context)))
        if self.fail:
            raise RuntimeError("summary backend down")
        return SummaryRecord(
            summary=f"summary of {text}",
            key_points=[text],
            sentiment=Sentiment.NEUTRAL,
            provider=self.name,
        )


class FakeQA(QAProvider):
    name = "fake-qa"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[tuple] = []

    async def answer(self, question, context, options=None):
        self.calls.append((question, context, dict(options or {})))
        if self.fail:
            raise RuntimeError("qa backend down")
        return QAResult(answer=f"answer to {question}", confidence=0.8, provider=self.name)


class FakeSource:
    """In-process AudioSource; tests push bytes with ``emit``."""

    def __init__(self, fail_open: bool = False):
        self.fail_open = fail_open
        self.on_data = None
        self.opened = 0
        self.closed = 0

    def open(self, constraints, on_data):
        if self.fail_open:
            raise OSError("no input device")
        self.opened += 1
        self.on_data = on_data

    def close(self):
        self.closed += 1

    def package(self, data):
        return data

    def emit(self, data: bytes):
        self.on_data(data)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fakes():
    return {SPEECH: FakeSpeech(), SUMMARY: FakeSummary(), QA: FakeQA()}


@pytest.fixture
def selector(settings, fakes):
    return ProviderSelector(settings, providers=fakes)


@pytest.fixture
def store():
    return RollingContextStore()
