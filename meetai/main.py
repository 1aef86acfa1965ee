"""FastAPI backend for MeetAI."""

from datetime import datetime, timezone
from typing import List, Optional, Union
import logging
import time
import uuid

from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from meetai import __version__
from meetai.config import Settings
from meetai.context_store import DEFAULT_SESSION, RollingContextStore
from meetai.errors import MeetAIError, SessionNotFoundError, ValidationError
from meetai.logging_utils import setup_logging
from meetai.models import ChunkMeta, Platform
from meetai.pipeline import ChunkPipeline
from meetai.providers import QA, SPEECH, SUMMARY
from meetai.qa import QAOrchestrator
from meetai.selector import SUPPORTED_LANGUAGES, ProviderSelector

logger = logging.getLogger(__name__)


# Request models
class SummarizeOptions(BaseModel):
    contextLength: Optional[int] = Field(default=None, ge=0)


class SummarizeRequest(BaseModel):
    text: Optional[str] = None
    options: SummarizeOptions = Field(default_factory=SummarizeOptions)
    sessionId: str = DEFAULT_SESSION


class AskRequest(BaseModel):
    question: Optional[str] = None
    context: Optional[Union[str, List[str]]] = None
    sessionId: str = DEFAULT_SESSION


class SessionStartRequest(BaseModel):
    platform: Optional[str] = None


class SessionStopRequest(BaseModel):
    sessionId: str


class ProviderOverrideRequest(BaseModel):
    provider: str


def create_app(settings: Optional[Settings] = None, selector: Optional[ProviderSelector] = None) -> FastAPI:
    """Build the app. Everything stateful hangs off ``app.state``."""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_dir)
    for warning in settings.validate():
        logger.warning("[CONFIG] %s", warning)

    selector = selector or ProviderSelector(settings)
    store = RollingContextStore(settings.conversation_limit, settings.summary_limit, settings.qa_limit)

    app = FastAPI(title="MeetAI Backend", version=__version__)
    app.state.settings = settings
    app.state.selector = selector
    app.state.store = store
    app.state.pipeline = ChunkPipeline(selector, store, settings.context_length, settings.transcription_language)
    app.state.qa = QAOrchestrator(selector, store, settings.context_length)
    app.state.started_at = time.time()

    # Extension origins vary per install
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_origin_regex=r"^chrome-extension://[a-z]+$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(MeetAIError)
    async def meetai_error_handler(request: Request, exc: MeetAIError):
        if exc.status_code >= 500:
            logger.error("[HTTP] %s %s -> %s: %s", request.method, request.url.path, exc.code, exc.details or exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        ]
        err = ValidationError("Invalid request", code="INVALID_REQUEST", details="; ".join(problems))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.get("/api/health")
    async def health():
        """Liveness check used by the capture agent."""
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "MeetAI Backend",
            "version": __version__,
            "uptime": time.time() - app.state.started_at,
        }

    @app.post("/api/transcription/process")
    async def process_audio(
        audio: Optional[UploadFile] = File(default=None),
        platform: str = Form(default="unknown"),
        timestamp: Optional[int] = Form(default=None),
        chunkNumber: int = Form(default=1),
        sessionId: str = Form(default=DEFAULT_SESSION),
    ):
        """Transcribe and summarize one uploaded audio chunk."""
        data = await audio.read() if audio is not None else b""
        meta = ChunkMeta(
            session_id=sessionId,
            platform=Platform.parse(platform),
            chunk_number=chunkNumber,
            timestamp_ms=timestamp if timestamp is not None else int(time.time() * 1000),
            filename=audio.filename if audio is not None else None,
        )
        result = await app.state.pipeline.process_chunk(data, meta)
        return result.to_dict()

    @app.post("/api/summarization/generate")
    async def generate_summary(request: SummarizeRequest):
        summary = await app.state.pipeline.summarize_text(
            request.sessionId, request.text, request.options.contextLength
        )
        return {"success": True, **summary.to_dict()}

    @app.post("/api/qa/ask")
    async def ask_question(request: AskRequest):
        exchange = await app.state.qa.ask(request.sessionId, request.question, request.context)
        return {"success": True, **exchange.to_dict()}

    @app.get("/api/transcription/status")
    async def service_status(sessionId: str = Query(default=DEFAULT_SESSION)):
        providers = app.state.selector.status()
        stats = app.state.store.stats(sessionId)
        return {
            "success": True,
            "sessionId": sessionId,
            "services": {
                "speechToText": {**providers[SPEECH], "supportedLanguages": SUPPORTED_LANGUAGES},
                "summarization": {
                    **providers[SUMMARY],
                    "conversationItems": stats["conversationItems"],
                    "summaryCount": stats["summaryCount"],
                    "totalWords": stats["totalWords"],
                },
                "qa": {
                    **providers[QA],
                    "totalQuestions": stats["qaCount"],
                    "averageConfidence": stats["averageConfidence"],
                },
            },
            "timestamp": int(time.time() * 1000),
        }

    @app.get("/api/transcription/languages")
    async def supported_languages():
        return {"success": True, "languages": SUPPORTED_LANGUAGES}

    @app.get("/api/transcription/full-summary")
    async def full_summary(sessionId: str = Query(default=DEFAULT_SESSION)):
        summary = await app.state.pipeline.summarize_all(sessionId)
        return {"success": True, **summary.to_dict()}

    @app.get("/api/transcription/export")
    async def export_data(
        format: str = Query(default="json"),
        sessionId: str = Query(default=DEFAULT_SESSION),
    ):
        fmt = format.lower()
        logger.info("[EXPORT] session=%s format=%s", sessionId, fmt)
        if fmt == "json":
            payload = {
                **app.state.store.export(sessionId),
                "providers": app.state.selector.status(),
                "exportFormat": fmt,
                "generatedAt": datetime.now(timezone.utc).isoformat(),
            }
            return JSONResponse(
                content=payload,
                headers={"Content-Disposition": 'attachment; filename="meetai-export.json"'},
            )
        if fmt == "txt":
            return PlainTextResponse(
                app.state.store.export_text(sessionId),
                headers={"Content-Disposition": 'attachment; filename="meetai-transcript.txt"'},
            )
        raise ValidationError(f"Unsupported export format: {format}", code="UNSUPPORTED_FORMAT")

    @app.post("/api/transcription/clear-history")
    async def clear_history(sessionId: str = Query(default=DEFAULT_SESSION)):
        app.state.store.clear(sessionId)
        logger.info("[HISTORY] cleared session %s", sessionId)
        return {"success": True, "message": "History cleared", "timestamp": int(time.time() * 1000)}

    @app.post("/api/sessions/start")
    async def start_backend_session(request: SessionStartRequest):
        session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"
        app.state.store.session(session_id)
        platform = Platform.parse(request.platform)
        logger.info("[SESSION] started %s (%s)", session_id, platform.value)
        return {
            "success": True,
            "data": {
                "sessionId": session_id,
                "startTime": datetime.now(timezone.utc).isoformat(),
                "platform": platform.value,
                "status": "active",
            },
        }

    @app.post("/api/sessions/stop")
    async def stop_backend_session(request: SessionStopRequest):
        store = app.state.store
        if not store.has_session(request.sessionId):
            raise SessionNotFoundError(request.sessionId, f"Unknown session: {request.sessionId}")
        stats = store.stats(request.sessionId)
        store.drop_session(request.sessionId)
        logger.info("[SESSION] stopped %s", request.sessionId)
        return {"success": True, "message": "Session stopped", "stats": stats}

    @app.post("/api/providers/{capability}")
    async def override_provider(capability: str, request: ProviderOverrideRequest):
        name = app.state.selector.override(capability, request.provider)
        return {"success": True, "capability": capability, "provider": name}

    return app


app = create_app()
