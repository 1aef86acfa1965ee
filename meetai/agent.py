"""
Capture-side message router.

Each browser tab (or CLI recording) talks to the agent with small action
messages. The agent owns one capturer per recording tab, ships each chunk to
the backend in the background, and folds the delivery outcome back into the
session tracker.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set

from meetai.capture import CaptureConstraints, ChunkedAudioCapturer
from meetai.errors import CaptureAlreadyActiveError, CaptureNotActiveError, MeetAIError, SessionNotFoundError
from meetai.models import AudioChunk, Platform
from meetai.sessions import SessionState, SessionTracker
from meetai.uploader import ChunkUploader, DeliveryResult

logger = logging.getLogger(__name__)

# Message field -> update_session() field
_UPDATE_KEYS = {
    "transcriptReceived": "transcript_received",
    "summaryReceived": "summary_received",
    "error": "error",
    "isRecording": "is_recording",
}


class TabAgent:
    def __init__(
        self,
        tracker: SessionTracker,
        uploader: ChunkUploader,
        source_factory: Callable[[], Any],
        interval: float = 5.0,
        constraints: Optional[CaptureConstraints] = None,
        on_result: Optional[Callable[[Any, DeliveryResult], None]] = None,
    ):
        self.tracker = tracker
        self.uploader = uploader
        self.source_factory = source_factory
        self.interval = interval
        self.constraints = constraints or CaptureConstraints()
        self.on_result = on_result

        self._capturers: Dict[Any, ChunkedAudioCapturer] = {}
        self._uploads: Dict[Any, Set[asyncio.Task]] = {}
        self._handlers = {
            "startSession": self._start_session,
            "stopSession": self._stop_session,
            "getSessionStatus": self._get_session_status,
            "updateSession": self._update_session,
            "startRecording": self._start_recording,
            "stopRecording": self._stop_recording,
            "getStatus": self._get_status,
        }

    async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Route one message. Always returns a response dict."""
        action = (message or {}).get("action")
        handler = self._handlers.get(action)
        if handler is None:
            return {"success": False, "error": "Unknown action"}
        try:
            return await handler(message)
        except MeetAIError as e:
            logger.warning("[AGENT] %s failed: %s", action, e.message)
            return {"success": False, "error": e.message, "code": e.code}
        except Exception as e:
            logger.exception("[AGENT] %s failed", action)
            return {"success": False, "error": str(e)}

    # -- tab events ------------------------------------------------------

    async def on_navigation(self, tab_id: Any, url: Optional[str]) -> SessionState:
        capturer = self._capturers.get(tab_id)
        state = self.tracker.on_navigation(tab_id, url)
        if state == SessionState.INACTIVE and capturer is not None:
            # Left the meeting; the session is already archived.
            await self._halt_capture(tab_id)
        return state

    async def on_tab_closed(self, tab_id: Any) -> None:
        if tab_id in self._capturers:
            await self._halt_capture(tab_id)
        self.tracker.on_tab_closed(tab_id)

    # -- actions ---------------------------------------------------------

    async def _start_session(self, message):
        tab_id = message.get("tabId")
        platform = Platform.parse(message["platform"]) if message.get("platform") else None
        session = self.tracker.start_session(tab_id, platform, message.get("sessionId"))
        return {"success": True, "sessionId": session.session_id, "platform": session.platform.value}

    async def _stop_session(self, message):
        tab_id = message.get("tabId")
        if tab_id in self._capturers:
            await self._halt_capture(tab_id)
            await self._drain_tab(tab_id)
        session = self.tracker.stop_session(tab_id)
        return {"success": True, "session": session.to_dict()}

    async def _get_session_status(self, message):
        return {"success": True, "status": self.tracker.get_status(message.get("tabId"))}

    async def _update_session(self, message):
        updates = message.get("updates") or {}
        fields = {_UPDATE_KEYS.get(k, k): v for k, v in updates.items()}
        session = self.tracker.update_session(message.get("tabId"), **fields)
        return {"success": True, "session": session.to_dict()}

    async def _start_recording(self, message):
        tab_id = message.get("tabId")
        if tab_id in self._capturers:
            raise CaptureAlreadyActiveError()
        status = self.tracker.get_status(tab_id)
        if not status["isActive"]:
            platform = Platform.parse(message["platform"]) if message.get("platform") else None
            self.tracker.start_session(tab_id, platform, message.get("sessionId"))
        session = self.tracker.session(tab_id)

        capturer = ChunkedAudioCapturer(
            self.source_factory(),
            on_chunk=lambda chunk: self._schedule_upload(tab_id, session.session_id, chunk),
            interval=self.interval,
            platform=session.platform,
            session_id=session.session_id,
        )
        try:
            await capturer.start(self.constraints)
        except MeetAIError as e:
            self.tracker.record_error(tab_id, e.message)
            raise
        self._capturers[tab_id] = capturer
        self.tracker.mark_recording(tab_id)
        return {"success": True, "sessionId": session.session_id}

    async def _stop_recording(self, message):
        tab_id = message.get("tabId")
        if tab_id not in self._capturers:
            raise CaptureNotActiveError()
        chunks = await self._halt_capture(tab_id)
        await self._drain_tab(tab_id)
        try:
            self.tracker.set_recording_flag(tab_id, False)
        except SessionNotFoundError:
            logger.debug("[AGENT] tab %s session ended before recording stopped", tab_id)
        return {"success": True, "chunks": chunks}

    async def _get_status(self, message):
        return {
            "success": True,
            "backendUrl": self.uploader.backend_url,
            "recordingTabs": list(self._capturers),
            "pendingUploads": sum(len(tasks) for tasks in self._uploads.values()),
        }

    # -- capture and delivery ---------------------------------------------

    async def _halt_capture(self, tab_id: Any) -> int:
        capturer = self._capturers.pop(tab_id)
        await capturer.stop()
        return capturer.sequence

    def _schedule_upload(self, tab_id: Any, session_id: str, chunk: AudioChunk) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(tab_id, session_id, chunk))
        tasks = self._uploads.setdefault(tab_id, set())
        tasks.add(task)

        def forget(done: asyncio.Task) -> None:
            tasks.discard(done)
            if not tasks and self._uploads.get(tab_id) is tasks:
                del self._uploads[tab_id]

        task.add_done_callback(forget)

    async def _deliver(self, tab_id: Any, session_id: str, chunk: AudioChunk) -> DeliveryResult:
        result = await self.uploader.deliver(chunk, session_id)
        try:
            if result.success:
                if result.transcript.strip():
                    self.tracker.record_chunk_processed(tab_id)
                if result.has_summary:
                    self.tracker.record_summary_processed(tab_id)
            else:
                self.tracker.record_error(tab_id, f"chunk {chunk.sequence}: {result.error}")
        except SessionNotFoundError:
            logger.debug("[AGENT] chunk %d delivered after tab %s session ended", chunk.sequence, tab_id)
        if self.on_result is not None:
            self.on_result(tab_id, result)
        return result

    async def _drain_tab(self, tab_id: Any) -> None:
        tasks = list(self._uploads.get(tab_id, ()))
        if tasks:
            await asyncio.gather(*tasks)

    async def drain(self) -> None:
        """Wait for every in-flight upload."""
        for tab_id in list(self._uploads):
            await self._drain_tab(tab_id)
