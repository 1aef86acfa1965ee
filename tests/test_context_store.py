from meetai.context_store import RollingContextStore
from meetai.models import QAExchange, SummaryRecord, TranscriptSegment


def _segment(text, ts=None):
    seg = TranscriptSegment(text=text, confidence=0.9, language="en-US", provider="test")
    if ts is not None:
        seg.ts = ts
    return seg


def test_conversation_is_bounded_fifo():
    store = RollingContextStore()
    for i in range(25):
        store.append_segment("s1", _segment(f"segment {i}"))

    texts = store.recent_texts("s1")
    assert len(texts) == 20
    assert texts[0] == "segment 5"
    assert texts[-1] == "segment 24"


def test_summary_and_qa_limits():
    store = RollingContextStore()
    for i in range(12):
        store.append_summary("s1", SummaryRecord(summary=f"summary {i}"))
    for i in range(22):
        store.append_qa("s1", QAExchange(question=f"q{i}", answer="a", confidence=0.5))

    summaries = store.recent_summaries("s1")
    assert [s.summary for s in summaries][:2] == ["summary 2", "summary 3"]
    assert len(summaries) == 10
    assert len(store.recent_qa("s1")) == 20
    assert store.recent_qa("s1")[0].question == "q2"


def test_recent_returns_newest_oldest_first():
    store = RollingContextStore()
    for word in ("one", "two", "three", "four"):
        store.append_segment("s1", _segment(word))

    assert store.recent_texts("s1", 2) == ["three", "four"]
    assert store.recent_texts("s1", 0) == []
    assert store.recent_texts("s1", 10) == ["one", "two", "three", "four"]


def test_blank_segments_are_ignored():
    store = RollingContextStore()
    assert store.append_segment("s1", _segment("   ")) is False
    assert store.append_segment("s1", _segment("")) is False
    assert store.recent_texts("s1") == []


def test_sessions_are_isolated():
    store = RollingContextStore()
    store.append_segment("a", _segment("alpha"))
    store.append_segment("b", _segment("beta"))

    assert store.recent_texts("a") == ["alpha"]
    assert store.recent_texts("b") == ["beta"]

    store.clear("a")
    assert store.recent_texts("a") == []
    assert store.recent_texts("b") == ["beta"]


def test_clear_empties_everything_including_pinned_context():
    store = RollingContextStore()
    store.append_segment("s1", _segment("hello"))
    store.append_summary("s1", SummaryRecord(summary="x"))
    store.append_qa("s1", QAExchange(question="q", answer="a", confidence=0.5))
    store.pin_context("s1", ["pinned"])

    store.clear("s1")

    stats = store.stats("s1")
    assert stats["conversationItems"] == 0
    assert stats["summaryCount"] == 0
    assert stats["qaCount"] == 0
    assert store.pinned_context("s1") is None


def test_stats_and_export():
    store = RollingContextStore()
    store.append_segment("s1", _segment("hello there", ts=100.0))
    store.append_segment("s1", _segment("general kenobi", ts=200.0))
    store.append_qa("s1", QAExchange(question="q1", answer="a1", confidence=0.6))
    store.append_qa("s1", QAExchange(question="q2", answer="a2", confidence=1.0))

    stats = store.stats("s1")
    assert stats["totalWords"] == 4
    assert stats["firstMessage"] == 100.0
    assert stats["lastMessage"] == 200.0
    assert abs(stats["averageConfidence"] - 0.8) < 1e-9

    exported = store.export("s1")
    assert exported["sessionId"] == "s1"
    assert [c["text"] for c in exported["conversationHistory"]] == ["hello there", "general kenobi"]
    assert len(exported["qaHistory"]) == 2


def test_export_text_has_one_line_per_entry():
    store = RollingContextStore()
    store.append_segment("s1", _segment("hello"))
    store.append_summary("s1", SummaryRecord(summary="greeting"))
    store.append_qa("s1", QAExchange(question="who?", answer="me", confidence=0.5))

    lines = store.export_text("s1").splitlines()
    assert len(lines) == 4
    assert lines[0].endswith("] hello")
    assert lines[1].endswith("SUMMARY: greeting")
    assert lines[2].endswith("Q: who?")
    assert lines[3].endswith("A: me")


def test_drop_session():
    store = RollingContextStore()
    store.append_segment("s1", _segment("hello"))
    assert store.has_session("s1")
    assert store.drop_session("s1") is True
    assert not store.has_session("s1")
    assert store.drop_session("s1") is False


def test_reads_do_not_create_sessions():
    store = RollingContextStore()

    assert store.recent_texts("ghost") == []
    assert store.recent_summaries("ghost") == []
    assert store.recent_qa("ghost") == []
    assert store.pinned_context("ghost") is None
    assert store.stats("ghost")["conversationItems"] == 0
    assert store.export("ghost")["conversationHistory"] == []
    assert store.export_text("ghost") == ""
    store.clear("ghost")

    assert not store.has_session("ghost")
    assert store.session_ids() == []
