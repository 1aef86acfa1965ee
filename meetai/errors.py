"""Error taxonomy shared by the backend pipeline and the capture agent."""

from __future__ import annotations

from typing import Any, Dict, Optional


class MeetAIError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    code = "MEETAI_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.metadata = dict(metadata or {})

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            out["details"] = self.details
        if self.metadata:
            out["metadata"] = self.metadata
        return out


class ValidationError(MeetAIError):
    """Missing or empty required input. Never retried."""

    status_code = 400

    def __init__(self, message: str, code: str, **kwargs):
        super().__init__(message, code=code, **kwargs)


class NoContentError(MeetAIError):
    code = "NO_CONTENT"
    status_code = 400


class ProviderError(MeetAIError):
    """A concrete provider failed while serving a capability."""

    code = "PROVIDER_ERROR"

    def __init__(self, capability: str, provider: str, cause: BaseException):
        super().__init__(
            f"{provider} {capability} failed: {cause}",
            details=f"{type(cause).__name__}: {cause}",
        )
        self.capability = capability
        self.provider = provider
        self.cause = cause


class StageFailedError(MeetAIError):
    """A mandatory stage failed; wraps the underlying ProviderError."""

    def __init__(self, message: str, cause: Optional[ProviderError] = None, **kwargs):
        details = kwargs.pop("details", None)
        if details is None and cause is not None:
            details = cause.details
        super().__init__(message, details=details, **kwargs)
        self.cause = cause
        self.provider = cause.provider if cause is not None else None


class TranscriptionFailedError(StageFailedError):
    code = "TRANSCRIPTION_FAILED"


class SummarizationFailedError(StageFailedError):
    code = "SUMMARIZATION_FAILED"


class QAFailedError(StageFailedError):
    code = "QA_FAILED"


class ProviderUnavailableError(MeetAIError):
    code = "PROVIDER_UNAVAILABLE"
    status_code = 400


class SessionError(MeetAIError):
    code = "SESSION_ERROR"
    status_code = 409


class SessionNotFoundError(SessionError):
    code = "SESSION_NOT_FOUND"
    status_code = 404

    def __init__(self, tab_id: Any, message: Optional[str] = None):
        super().__init__(message or f"No active session for tab {tab_id}")
        self.tab_id = tab_id


class SessionAlreadyActiveError(SessionError):
    code = "SESSION_ALREADY_ACTIVE"

    def __init__(self, tab_id: Any):
        super().__init__(f"Tab {tab_id} is already recording")
        self.tab_id = tab_id


class CaptureError(MeetAIError):
    code = "CAPTURE_ERROR"
    status_code = 409


class CaptureUnavailableError(CaptureError):
    code = "CAPTURE_UNAVAILABLE"
    status_code = 503


class CaptureAlreadyActiveError(CaptureError):
    code = "CAPTURE_ALREADY_ACTIVE"

    def __init__(self, message: str = "Recording is already in progress"):
        super().__init__(message)


class CaptureNotActiveError(CaptureError):
    code = "CAPTURE_NOT_ACTIVE"

    def __init__(self, message: str = "Recording is not active"):
        super().__init__(message)
