"""
OpenAI adapters: Whisper transcription and chat completions.

Both share one AsyncOpenAI client per process. The chat backend is wrapped by
LLMSummaryProvider / LLMQAProvider, so summary and QA prompts stay in one place.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from meetai.models import Transcript
from meetai.providers.base import ChatBackend, SpeechProvider

# Whisper gives no confidence score.
WHISPER_CONFIDENCE = 0.85


def _client(api_key: Optional[str]):
    if not api_key:
        raise ValueError("OPENAI_API_KEY is required for the OpenAI provider.")
    try:
        from openai import AsyncOpenAI
    except ImportError:
        raise ImportError("openai package not installed. pip install openai")
    return AsyncOpenAI(api_key=api_key)


class OpenAISpeechProvider(SpeechProvider):
    name = "openai"

    def __init__(self, api_key: Optional[str], model: str = "whisper-1", language: str = "en-US"):
        self.client = _client(api_key)
        self.model = model
        self.language = language

    async def transcribe(self, audio: bytes, options: Optional[Dict[str, Any]] = None) -> Transcript:
        options = options or {}
        language = options.get("language") or self.language
        filename = options.get("filename") or "audio.webm"

        resp = await self.client.audio.transcriptions.create(
            file=(filename, audio),
            model=self.model,
            # Whisper wants ISO-639-1 ("en"), not a locale ("en-US")
            language=language.split("-")[0],
            response_format="verbose_json",
            temperature=0.2,
        )
        return Transcript(
            text=getattr(resp, "text", "") or "",
            confidence=WHISPER_CONFIDENCE,
            language=getattr(resp, "language", None) or language,
            provider=self.name,
        )


class OpenAIChatBackend(ChatBackend):
    name = "openai"

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini"):
        self.client = _client(api_key)
        self.model = model

    async def complete(self, system: str, prompt: str, *, max_tokens: int = 500, temperature: float = 0.3) -> str:
        cc = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=0.9,
        )
        return cc.choices[0].message.content or ""
