import asyncio

import pytest

from meetai.context_store import RollingContextStore
from meetai.errors import NoContentError, SummarizationFailedError, TranscriptionFailedError, ValidationError
from meetai.models import ChunkMeta, Platform
from meetai.pipeline import ChunkPipeline
from meetai.providers import QA, SPEECH, SUMMARY
from meetai.selector import ProviderSelector

from conftest import FakeQA, FakeSpeech, FakeSummary


def _meta(n=1, session="s1", platform=Platform.GOOGLE_MEET):
    return ChunkMeta(session_id=session, platform=platform, chunk_number=n, timestamp_ms=1_700_000_000_000)


def test_chunk_is_transcribed_stored_and_summarized(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)

    result = asyncio.run(pipeline.process_chunk(b"abc", _meta()))

    assert result.transcript == "abc"
    assert result.summary.summary == "summary of abc"
    body = result.to_dict()
    assert body["success"] is True
    assert body["keyPoints"] == ["abc"]
    assert body["metadata"]["platform"] == "google-meet"
    assert body["metadata"]["chunkNumber"] == 1
    assert body["metadata"]["audioSize"] == 3
    assert body["metadata"]["transcriptionProvider"] == "fake-speech"
    assert body["metadata"]["summaryProvider"] == "fake-summary"
    assert store.recent_texts("s1") == ["abc"]
    assert len(store.recent_summaries("s1")) == 1


def test_context_is_the_previous_k_segments(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store, context_length=2)

    async def run():
        for i, word in enumerate(["one", "two", "three", "four"], start=1):
            await pipeline.process_chunk(word.encode(), _meta(i))

    asyncio.run(run())

    text, context = fakes[SUMMARY].calls[-1]
    assert text == "four"
    assert context == ["two", "three"]


def test_missing_audio_has_no_side_effects(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(pipeline.process_chunk(b"", _meta()))

    assert excinfo.value.code == "MISSING_AUDIO"
    assert excinfo.value.status_code == 400
    assert "processingTime" in excinfo.value.metadata
    assert fakes[SPEECH].calls == []
    assert store.recent_texts("s1") == []


def test_transcription_failure_is_fatal(settings, store):
    selector = ProviderSelector(settings, providers={SPEECH: FakeSpeech(fail=True), SUMMARY: FakeSummary(), QA: FakeQA()})
    pipeline = ChunkPipeline(selector, store)

    with pytest.raises(TranscriptionFailedError) as excinfo:
        asyncio.run(pipeline.process_chunk(b"abc", _meta()))

    assert excinfo.value.code == "TRANSCRIPTION_FAILED"
    assert excinfo.value.status_code == 500
    assert excinfo.value.provider == "fake-speech"
    assert store.recent_texts("s1") == []


def test_summarization_failure_is_not_fatal(settings, store):
    selector = ProviderSelector(settings, providers={SPEECH: FakeSpeech(), SUMMARY: FakeSummary(fail=True), QA: FakeQA()})
    pipeline = ChunkPipeline(selector, store)

    result = asyncio.run(pipeline.process_chunk(b"hello", _meta()))

    assert result.transcript == "hello"
    assert result.summary is None
    body = result.to_dict()
    assert body["summary"] is None
    assert body["keyPoints"] == []
    assert body["metadata"]["summaryProvider"] is None
    assert store.recent_texts("s1") == ["hello"]
    assert store.recent_summaries("s1") == []


def test_blank_transcript_skips_store_and_summary(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)

    result = asyncio.run(pipeline.process_chunk(b"   ", _meta()))

    assert result.summary is None
    assert store.recent_texts("s1") == []
    assert fakes[SUMMARY].calls == []


def test_commits_follow_chunk_order_not_completion_order(settings):
    # chunk 1 transcribes slowly, chunk 2 quickly; history must still read 1, 2
    speech = FakeSpeech(delays={b"first": 0.05, b"second": 0.0})
    selector = ProviderSelector(settings, providers={SPEECH: speech, SUMMARY: FakeSummary(), QA: FakeQA()})
    store = RollingContextStore()
    pipeline = ChunkPipeline(selector, store)

    async def run():
        await asyncio.gather(
            pipeline.process_chunk(b"first", _meta(1)),
            pipeline.process_chunk(b"second", _meta(2)),
        )

    asyncio.run(run())

    assert store.recent_texts("s1") == ["first", "second"]
    assert pipeline.sequencer.pending("s1") == []


def test_failed_earlier_chunk_does_not_block_later_ones(settings):
    speech = FakeSpeech(delays={b"first": 0.02})
    selector = ProviderSelector(settings, providers={SPEECH: speech, SUMMARY: FakeSummary(), QA: FakeQA()})
    store = RollingContextStore()
    pipeline = ChunkPipeline(selector, store)

    async def run():
        return await asyncio.gather(
            pipeline.process_chunk(b"", _meta(1)),
            pipeline.process_chunk(b"second", _meta(2)),
            return_exceptions=True,
        )

    results = asyncio.run(run())

    assert isinstance(results[0], ValidationError)
    assert results[1].transcript == "second"
    assert store.recent_texts("s1") == ["second"]


def test_summarize_text_uses_trailing_context(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)
    asyncio.run(pipeline.process_chunk(b"earlier", _meta()))

    summary = asyncio.run(pipeline.summarize_text("s1", "free text", context_length=1))

    assert summary.summary == "summary of free text"
    assert fakes[SUMMARY].calls[-1] == ("free text", ["earlier"])
    # the submitted text joins the conversation after the context is read
    assert store.recent_texts("s1") == ["earlier", "free text"]
    assert store.recent_conversation("s1")[-1].provider == "manual"
    assert len(store.recent_summaries("s1")) == 2


def test_summarize_text_validation_and_failure(settings, store):
    selector = ProviderSelector(settings, providers={SPEECH: FakeSpeech(), SUMMARY: FakeSummary(fail=True), QA: FakeQA()})
    pipeline = ChunkPipeline(selector, store)

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(pipeline.summarize_text("s1", "  "))
    assert excinfo.value.code == "MISSING_TEXT"

    with pytest.raises(SummarizationFailedError) as excinfo:
        asyncio.run(pipeline.summarize_text("s1", "something"))
    assert excinfo.value.code == "SUMMARIZATION_FAILED"


def test_full_summary_needs_content(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)

    with pytest.raises(NoContentError) as excinfo:
        asyncio.run(pipeline.summarize_all("s1"))
    assert excinfo.value.code == "NO_CONTENT"
    assert excinfo.value.status_code == 400

    async def run():
        await pipeline.process_chunk(b"alpha", _meta(1))
        await pipeline.process_chunk(b"beta", _meta(2))
        return await pipeline.summarize_all("s1")

    summary = asyncio.run(run())

    assert summary.summary == "summary of alpha beta"
    assert fakes[SUMMARY].calls[-1] == ("alpha beta", [])
    assert len(store.recent_summaries("s1")) == 3


def test_end_to_end_with_default_session(selector, store):
    pipeline = ChunkPipeline(selector, store)
    meta = ChunkMeta(session_id="default", platform=Platform.GOOGLE_MEET, chunk_number=1)

    asyncio.run(pipeline.process_chunk(b"abc", meta))
    assert len(store.recent_texts("default")) == 1

    with pytest.raises(ValidationError):
        asyncio.run(pipeline.process_chunk(b"", ChunkMeta(chunk_number=2)))
    assert len(store.recent_texts("default")) == 1

    store.clear("default")
    assert store.recent_texts("default") == []


def test_summarized_text_feeds_full_summary(selector, store, fakes):
    pipeline = ChunkPipeline(selector, store)

    asyncio.run(pipeline.summarize_text("s1", "  typed notes  "))
    summary = asyncio.run(pipeline.summarize_all("s1"))

    assert store.recent_texts("s1") == ["typed notes"]
    assert summary.summary == "summary of typed notes"
