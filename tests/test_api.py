from fastapi.testclient import TestClient

from meetai.main import create_app
from meetai.providers import QA, SPEECH, SUMMARY
from meetai.selector import ProviderSelector

from conftest import FakeQA, FakeSpeech, FakeSummary


def _client(settings, **fakes):
    providers = {SPEECH: FakeSpeech(), SUMMARY: FakeSummary(), QA: FakeQA()}
    providers.update(fakes)
    app = create_app(settings, ProviderSelector(settings, providers=providers))
    return TestClient(app)


def _upload(client, data=b"abc", **form):
    fields = {"platform": "google-meet", "chunkNumber": "1", "timestamp": "1700000000000"}
    fields.update(form)
    files = {"audio": ("chunk_1.wav", data, "audio/wav")} if data is not None else None
    return client.post("/api/transcription/process", data=fields, files=files)


def test_health(settings):
    with _client(settings) as client:
        r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "OK"
    assert r.json()["service"] == "MeetAI Backend"


def test_process_chunk_end_to_end(settings):
    with _client(settings) as client:
        r = _upload(client)
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["transcript"] == "abc"
        assert body["summary"] == "summary of abc"
        assert body["metadata"]["sessionId"] == "default"
        assert body["metadata"]["platform"] == "google-meet"
        assert body["metadata"]["timestamp"] == 1700000000000

        assert client.get("/api/transcription/status").json()["services"]["summarization"]["conversationItems"] == 1

        r = _upload(client, data=None)
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_AUDIO"
        assert client.get("/api/transcription/status").json()["services"]["summarization"]["conversationItems"] == 1

        r = client.post("/api/transcription/clear-history")
        assert r.json()["success"] is True
        assert client.get("/api/transcription/status").json()["services"]["summarization"]["conversationItems"] == 0


def test_transcription_failure_is_500(settings):
    with _client(settings, **{SPEECH: FakeSpeech(fail=True)}) as client:
        r = _upload(client)
    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["code"] == "TRANSCRIPTION_FAILED"
    assert "processingTime" in body["metadata"]


def test_summarize_and_ask(settings):
    with _client(settings) as client:
        r = client.post("/api/summarization/generate", json={"text": "we shipped it"})
        assert r.status_code == 200
        assert r.json()["summary"] == "summary of we shipped it"
        assert r.json()["sentiment"] == "neutral"

        r = client.post("/api/summarization/generate", json={"text": ""})
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_TEXT"

        r = client.post("/api/qa/ask", json={"question": "what shipped?", "context": ["the release"]})
        assert r.status_code == 200
        assert r.json()["answer"] == "answer to what shipped?"

        r = client.post("/api/qa/ask", json={"question": " "})
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_QUESTION"


def test_full_summary_requires_history(settings):
    with _client(settings) as client:
        r = client.get("/api/transcription/full-summary")
        assert r.status_code == 400
        assert r.json()["code"] == "NO_CONTENT"

        _upload(client, data=b"alpha")
        _upload(client, data=b"beta", chunkNumber="2")
        r = client.get("/api/transcription/full-summary")
        assert r.status_code == 200
        assert r.json()["summary"] == "summary of alpha beta"


def test_export_formats(settings):
    with _client(settings) as client:
        _upload(client, data=b"hello world", sessionId="s9")

        r = client.get("/api/transcription/export", params={"sessionId": "s9"})
        assert r.status_code == 200
        body = r.json()
        assert body["sessionId"] == "s9"
        assert body["conversationHistory"][0]["text"] == "hello world"
        assert body["stats"]["totalWords"] == 2
        assert "attachment" in r.headers["content-disposition"]

        r = client.get("/api/transcription/export", params={"sessionId": "s9", "format": "txt"})
        assert r.status_code == 200
        assert "hello world" in r.text
        assert "SUMMARY: summary of hello world" in r.text

        r = client.get("/api/transcription/export", params={"format": "xml"})
        assert r.status_code == 400
        assert r.json()["code"] == "UNSUPPORTED_FORMAT"


def test_backend_sessions(settings):
    with _client(settings) as client:
        r = client.post("/api/sessions/start", json={"platform": "teams"})
        data = r.json()["data"]
        assert data["platform"] == "teams"
        session_id = data["sessionId"]

        _upload(client, sessionId=session_id)
        r = client.post("/api/sessions/stop", json={"sessionId": session_id})
        assert r.json()["stats"]["conversationItems"] == 1

        r = client.post("/api/sessions/stop", json={"sessionId": session_id})
        assert r.status_code == 404


def test_provider_override(settings):
    with _client(settings) as client:
        r = client.post("/api/providers/summary", json={"provider": "mock"})
        assert r.status_code == 200
        assert r.json()["provider"] == "mock"

        status = client.get("/api/transcription/status").json()
        assert status["services"]["summarization"]["currentProvider"] == "mock"

        r = client.post("/api/providers/summary", json={"provider": "openai"})
        assert r.status_code == 400
        assert r.json()["code"] == "PROVIDER_UNAVAILABLE"


def test_malformed_requests_are_400_with_code(settings):
    with _client(settings) as client:
        r = _upload(client, chunkNumber="abc")
        assert r.status_code == 400
        body = r.json()
        assert body["success"] is False
        assert body["code"] == "INVALID_REQUEST"
        assert "chunkNumber" in body["details"]

        r = client.post("/api/qa/ask", json={"question": 123})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_REQUEST"

        r = client.post("/api/sessions/stop", json={})
        assert r.status_code == 400
        assert r.json()["code"] == "INVALID_REQUEST"


def test_reading_an_unknown_session_does_not_create_it(settings):
    with _client(settings) as client:
        r = client.get("/api/transcription/status", params={"sessionId": "ghost"})
        assert r.json()["services"]["summarization"]["conversationItems"] == 0
        client.get("/api/transcription/export", params={"sessionId": "ghost"})

        r = client.post("/api/sessions/stop", json={"sessionId": "ghost"})
        assert r.status_code == 404
        assert r.json()["code"] == "SESSION_NOT_FOUND"
