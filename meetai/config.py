"""Configuration management for API keys and settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# config.py lives in meetai/, .env in the project root
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application configuration. Build with ``Settings.from_env()`` or directly in tests."""

    # Speech-to-text
    deepgram_api_key: Optional[str] = None
    deepgram_model: str = "nova-2"
    transcription_language: str = "en-US"

    # OpenAI (Whisper transcription + chat summarization/QA)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_transcribe_model: str = "whisper-1"
    openai_max_tokens: int = 500

    # Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # Ollama (local, no key; opt-in)
    ollama_enabled: bool = False
    ollama_url: str = "http://127.0.0.1:11434"
    ollama_model: str = "gemma3:4b"

    # Preferred providers per capability (tried first when available)
    speech_provider: Optional[str] = None
    summary_provider: Optional[str] = None
    qa_provider: Optional[str] = None

    # Rolling context
    context_length: int = 5
    conversation_limit: int = 20
    summary_limit: int = 10
    qa_limit: int = 20

    # Artificial mock latency, seconds
    mock_latency_seconds: float = 0.0

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # Capture agent
    backend_url: str = "http://localhost:3000"
    chunk_interval_seconds: float = 5.0
    upload_max_attempts: int = 2
    upload_retry_delay: float = 3.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            deepgram_api_key=_env_str("DEEPGRAM_API_KEY"),
            deepgram_model=_env_str("DEEPGRAM_MODEL", "nova-2"),
            transcription_language=_env_str("TRANSCRIPTION_LANGUAGE", "en-US"),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_model=_env_str("OPENAI_MODEL", "gpt-4o-mini"),
            openai_transcribe_model=_env_str("OPENAI_TRANSCRIBE_MODEL", "whisper-1"),
            openai_max_tokens=_env_int("OPENAI_MAX_TOKENS", 500),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            gemini_model=_env_str("GEMINI_MODEL", "gemini-2.0-flash"),
            ollama_enabled=_env_bool("OLLAMA_ENABLED"),
            ollama_url=_env_str("OLLAMA_URL", "http://127.0.0.1:11434"),
            ollama_model=_env_str("OLLAMA_MODEL", "gemma3:4b"),
            speech_provider=_env_str("SPEECH_PROVIDER"),
            summary_provider=_env_str("SUMMARY_PROVIDER"),
            qa_provider=_env_str("QA_PROVIDER"),
            context_length=_env_int("CONTEXT_LENGTH", 5),
            conversation_limit=_env_int("CONVERSATION_HISTORY_LIMIT", 20),
            summary_limit=_env_int("SUMMARY_HISTORY_LIMIT", 10),
            qa_limit=_env_int("QA_HISTORY_LIMIT", 20),
            mock_latency_seconds=_env_float("MOCK_LATENCY_SECONDS", 0.0),
            host=_env_str("MEETAI_HOST", "127.0.0.1"),
            port=_env_int("MEETAI_PORT", 3000),
            log_level=_env_str("LOG_LEVEL", "INFO"),
            log_dir=_env_str("LOG_DIR"),
            backend_url=_env_str("MEETAI_BACKEND_URL", "http://localhost:3000"),
            chunk_interval_seconds=_env_float("CHUNK_INTERVAL_SECONDS", 5.0),
            upload_max_attempts=_env_int("UPLOAD_MAX_ATTEMPTS", 2),
            upload_retry_delay=_env_float("UPLOAD_RETRY_DELAY", 3.0),
        )

    def validate(self) -> List[str]:
        """Return human-readable warnings about the configuration."""
        warnings = []
        keyed = {
            "deepgram": self.deepgram_api_key,
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
        }
        for capability, preferred in (
            ("speech", self.speech_provider),
            ("summary", self.summary_provider),
            ("qa", self.qa_provider),
        ):
            if not preferred:
                continue
            name = preferred.lower()
            if name in keyed and not keyed[name]:
                warnings.append(f"{capability.upper()}_PROVIDER={name} but {name.upper()}_API_KEY is not set")
            if name == "ollama" and not self.ollama_enabled:
                warnings.append(f"{capability.upper()}_PROVIDER=ollama but OLLAMA_ENABLED is off")
        if self.context_length < 1:
            warnings.append("CONTEXT_LENGTH must be at least 1")
        return warnings
