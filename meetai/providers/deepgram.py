"""Deepgram pre-recorded transcription (cloud speech engine)."""

from typing import Any, Dict, Optional

from meetai.models import Alternative, Transcript
from meetai.providers.base import SpeechProvider


class DeepgramSpeechProvider(SpeechProvider):
    """Transcribes each chunk with one Deepgram REST call."""

    name = "deepgram"

    def __init__(self, api_key: Optional[str], model: str = "nova-2", language: str = "en-US"):
        if not api_key:
            raise ValueError("DEEPGRAM_API_KEY is required for the Deepgram provider.")
        try:
            from deepgram import DeepgramClient, PrerecordedOptions
        except ImportError:
            raise ImportError(
                "deepgram-sdk is required for Deepgram transcription. "
                "Install it with: pip install deepgram-sdk"
            )
        self.client = DeepgramClient(api_key)
        self.PrerecordedOptions = PrerecordedOptions
        self.model = model
        self.language = language

    async def transcribe(self, audio: bytes, options: Optional[Dict[str, Any]] = None) -> Transcript:
        options = options or {}
        language = options.get("language") or self.language
        dg_options = self.PrerecordedOptions(
            model=self.model,
            language=language,
            smart_format=True,
            punctuate=True,
            alternatives=3,
        )
        response = await self.client.listen.asyncrest.v("1").transcribe_file({"buffer": audio}, dg_options)

        channels = response.results.channels if response.results else []
        if not channels or not channels[0].alternatives:
            return Transcript(text="", confidence=0.0, language=language, provider=self.name)

        channel = channels[0]
        best = channel.alternatives[0]
        return Transcript(
            text=best.transcript or "",
            confidence=best.confidence or 0.0,
            language=getattr(channel, "detected_language", None) or language,
            provider=self.name,
            alternatives=[
                Alternative(text=alt.transcript, confidence=alt.confidence or 0.0)
                for alt in channel.alternatives[1:]
                if alt.transcript
            ],
        )
