import asyncio

import pytest

from meetai.errors import QAFailedError, ValidationError
from meetai.models import TranscriptSegment
from meetai.providers import QA, SPEECH, SUMMARY
from meetai.qa import QAOrchestrator
from meetai.selector import ProviderSelector

from conftest import FakeQA, FakeSpeech, FakeSummary


def _fill(store, session, texts):
    for text in texts:
        store.append_segment(session, TranscriptSegment(text=text, confidence=0.9, language="en-US", provider="t"))


def test_question_uses_recent_conversation(selector, store, fakes):
    _fill(store, "s1", ["a", "b", "c", "d", "e", "f", "g"])
    qa = QAOrchestrator(selector, store, context_length=5)

    exchange = asyncio.run(qa.ask("s1", "  what happened?  "))

    question, context, options = fakes[QA].calls[-1]
    assert question == "what happened?"
    assert context == "c d e f g"
    assert options == {"explicit": False}
    assert exchange.answer == "answer to what happened?"
    assert store.recent_qa("s1")[-1].question == "what happened?"


def test_blank_question_is_rejected(selector, store, fakes):
    qa = QAOrchestrator(selector, store)

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(qa.ask("s1", "   "))

    assert excinfo.value.code == "MISSING_QUESTION"
    assert fakes[QA].calls == []
    assert store.recent_qa("s1") == []


def test_explicit_context_is_pinned_for_later_questions(selector, store, fakes):
    _fill(store, "s1", ["from the meeting"])
    qa = QAOrchestrator(selector, store, context_length=2)

    asyncio.run(qa.ask("s1", "first?", ["x1", "x2", "x3"]))
    assert fakes[QA].calls[-1][1] == "x1 x2 x3"
    assert fakes[QA].calls[-1][2] == {"explicit": True}

    asyncio.run(qa.ask("s1", "second?"))
    assert fakes[QA].calls[-1][1] == "x2 x3"

    # a new explicit context replaces the old one
    asyncio.run(qa.ask("s1", "third?", "fresh context"))
    asyncio.run(qa.ask("s1", "fourth?"))
    assert fakes[QA].calls[-1][1] == "fresh context"


def test_clear_unpins_context(selector, store, fakes):
    _fill(store, "s1", ["meeting text"])
    qa = QAOrchestrator(selector, store)
    asyncio.run(qa.ask("s1", "q?", "pinned"))

    store.clear("s1")
    _fill(store, "s1", ["new meeting text"])
    asyncio.run(qa.ask("s1", "q again?"))

    assert fakes[QA].calls[-1][1] == "new meeting text"


def test_provider_failure_becomes_qa_failed(settings, store):
    selector = ProviderSelector(settings, providers={SPEECH: FakeSpeech(), SUMMARY: FakeSummary(), QA: FakeQA(fail=True)})
    qa = QAOrchestrator(selector, store)

    with pytest.raises(QAFailedError) as excinfo:
        asyncio.run(qa.ask("s1", "anything?"))

    assert excinfo.value.code == "QA_FAILED"
    assert excinfo.value.status_code == 500
    assert store.recent_qa("s1") == []
