"""
Per-tab recording session state.

    inactive --navigate(platform)--> ready --start--> active --capture ok--> recording
    any --stop--> stopped (archived) ; tab returns to ready/inactive
    any --tab closed--> stopped (archived) ; tab forgotten

At most one session per tab. Errors are logged on the session and never move
it between states.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from meetai.errors import SessionAlreadyActiveError, SessionNotFoundError
from meetai.models import Platform, detect_platform

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    INACTIVE = "inactive"
    READY = "ready"
    ACTIVE = "active"
    RECORDING = "recording"
    STOPPED = "stopped"


LIVE_STATES = (SessionState.ACTIVE, SessionState.RECORDING)

# update_session() field -> typed operation
UPDATE_FIELDS = ("transcript_received", "summary_received", "error", "is_recording")


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


@dataclass
class Session:
    tab_id: Any
    session_id: str
    platform: Platform
    state: SessionState = SessionState.ACTIVE
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    chunks_transcribed: int = 0
    summaries_produced: int = 0
    errors: List[Tuple[float, str]] = field(default_factory=list)

    @property
    def is_recording(self) -> bool:
        return self.state == SessionState.RECORDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tabId": self.tab_id,
            "sessionId": self.session_id,
            "platform": self.platform.value,
            "state": self.state.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "transcriptCount": self.chunks_transcribed,
            "summaryCount": self.summaries_produced,
            "errors": [{"timestamp": ts, "error": msg} for ts, msg in self.errors],
        }


@dataclass
class _Tab:
    platform: Platform = Platform.UNKNOWN
    state: SessionState = SessionState.INACTIVE
    session: Optional[Session] = None


class SessionTracker:
    def __init__(self, archive_limit: int = 50):
        self._tabs: Dict[Any, _Tab] = {}
        self._archive: List[Session] = []
        self._archive_limit = archive_limit
        self._lock = threading.Lock()

    # -- lifecycle -------------------------------------------------------

    def on_navigation(self, tab_id: Any, url: Optional[str]) -> SessionState:
        """Tab finished loading ``url``."""
        platform = detect_platform(url)
        with self._lock:
            tab = self._tabs.setdefault(tab_id, _Tab())
            if platform != Platform.UNKNOWN:
                tab.platform = platform
                if tab.state not in LIVE_STATES:
                    tab.state = SessionState.READY
                    logger.info("[SESSION] %s meeting detected on tab %s", platform.value, tab_id)
            else:
                if tab.session is not None:
                    self._archive_locked(tab)
                tab.platform = Platform.UNKNOWN
                tab.state = SessionState.INACTIVE
            return tab.state

    def start_session(self, tab_id: Any, platform: Optional[Platform] = None, session_id: Optional[str] = None) -> Session:
        with self._lock:
            tab = self._tabs.setdefault(tab_id, _Tab())
            if tab.session is not None and tab.session.is_recording:
                raise SessionAlreadyActiveError(tab_id)
            if tab.session is not None:
                logger.info("[SESSION] replacing session %s on tab %s", tab.session.session_id, tab_id)
                self._archive_locked(tab)
            if platform is not None:
                tab.platform = platform
            session = Session(tab_id=tab_id, session_id=session_id or new_session_id(), platform=tab.platform)
            tab.session = session
            tab.state = SessionState.ACTIVE
            logger.info("[SESSION] started %s on tab %s (%s)", session.session_id, tab_id, session.platform.value)
            return session

    def mark_recording(self, tab_id: Any) -> Session:
        with self._lock:
            session = self._require_locked(tab_id)
            session.state = SessionState.RECORDING
            self._tabs[tab_id].state = SessionState.RECORDING
            return session

    def stop_session(self, tab_id: Any) -> Session:
        with self._lock:
            tab = self._tabs.get(tab_id)
            if tab is None or tab.session is None:
                raise SessionNotFoundError(tab_id)
            session = self._archive_locked(tab)
            tab.state = SessionState.READY if tab.platform != Platform.UNKNOWN else SessionState.INACTIVE
            logger.info("[SESSION] stopped %s on tab %s", session.session_id, tab_id)
            return session

    def on_tab_closed(self, tab_id: Any) -> Optional[Session]:
        with self._lock:
            tab = self._tabs.pop(tab_id, None)
            if tab is None or tab.session is None:
                return None
            return self._archive_locked(tab)

    def _archive_locked(self, tab: _Tab) -> Session:
        session = tab.session
        session.state = SessionState.STOPPED
        session.end_time = time.time()
        tab.session = None
        self._archive.append(session)
        if len(self._archive) > self._archive_limit:
            del self._archive[: len(self._archive) - self._archive_limit]
        return session

    def _require_locked(self, tab_id: Any) -> Session:
        tab = self._tabs.get(tab_id)
        if tab is None or tab.session is None:
            raise SessionNotFoundError(tab_id)
        return tab.session

    # -- typed updates ---------------------------------------------------

    def record_chunk_processed(self, tab_id: Any) -> int:
        with self._lock:
            session = self._require_locked(tab_id)
            session.chunks_transcribed += 1
            return session.chunks_transcribed

    def record_summary_processed(self, tab_id: Any) -> int:
        with self._lock:
            session = self._require_locked(tab_id)
            session.summaries_produced += 1
            return session.summaries_produced

    def record_error(self, tab_id: Any, message: str) -> None:
        with self._lock:
            session = self._require_locked(tab_id)
            session.errors.append((time.time(), str(message)))
        logger.warning("[SESSION] tab %s error: %s", tab_id, message)

    def set_recording_flag(self, tab_id: Any, recording: bool) -> Session:
        """Capture confirmed (True) or ended (False) without ending the session."""
        with self._lock:
            session = self._require_locked(tab_id)
            state = SessionState.RECORDING if recording else SessionState.ACTIVE
            session.state = state
            self._tabs[tab_id].state = state
            return session

    def update_session(self, tab_id: Any, **fields) -> Session:
        unknown = sorted(set(fields) - set(UPDATE_FIELDS))
        if unknown:
            raise ValueError(f"Unknown session fields: {', '.join(unknown)}")
        with self._lock:
            self._require_locked(tab_id)
        if fields.get("transcript_received"):
            self.record_chunk_processed(tab_id)
        if fields.get("summary_received"):
            self.record_summary_processed(tab_id)
        if fields.get("error"):
            self.record_error(tab_id, fields["error"])
        if "is_recording" in fields:
            self.set_recording_flag(tab_id, bool(fields["is_recording"]))
        return self.session(tab_id)

    # -- queries ---------------------------------------------------------

    def session(self, tab_id: Any) -> Session:
        with self._lock:
            return self._require_locked(tab_id)

    def state(self, tab_id: Any) -> SessionState:
        with self._lock:
            tab = self._tabs.get(tab_id)
            return tab.state if tab else SessionState.INACTIVE

    def archive(self) -> List[Session]:
        with self._lock:
            return list(self._archive)

    def get_status(self, tab_id: Any) -> Dict[str, Any]:
        with self._lock:
            tab = self._tabs.get(tab_id)
            session = tab.session if tab else None
            state = tab.state if tab else SessionState.INACTIVE
            if session is None:
                return {
                    "isActive": False,
                    "isRecording": False,
                    "state": state.value,
                    "platform": tab.platform.value if tab else Platform.UNKNOWN.value,
                    "sessionId": None,
                    "startTime": None,
                    "transcriptCount": 0,
                    "summaryCount": 0,
                    "errorCount": 0,
                }
            return {
                "isActive": session.state in LIVE_STATES,
                "isRecording": session.is_recording,
                "state": state.value,
                "platform": session.platform.value,
                "sessionId": session.session_id,
                "startTime": session.start_time,
                "transcriptCount": session.chunks_transcribed,
                "summaryCount": session.summaries_produced,
                "errorCount": len(session.errors),
            }
