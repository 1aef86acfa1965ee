"""Provider factory for each capability."""

from typing import Dict, List

from meetai.config import Settings
from meetai.providers.base import (
    CAPABILITIES,
    QA,
    SPEECH,
    SUMMARY,
    ChatBackend,
    LLMQAProvider,
    LLMSummaryProvider,
    QAProvider,
    SpeechProvider,
    SummaryProvider,
)

# Cold-start preference order per capability; the mock always comes last.
PROVIDER_ORDER: Dict[str, List[str]] = {
    SPEECH: ["deepgram", "openai", "mock"],
    SUMMARY: ["openai", "gemini", "ollama", "mock"],
    QA: ["openai", "gemini", "ollama", "mock"],
}


def _chat_backend(name: str, settings: Settings) -> ChatBackend:
    if name == "openai":
        from meetai.providers.openai import OpenAIChatBackend
        return OpenAIChatBackend(settings.openai_api_key, settings.openai_model)
    elif name == "gemini":
        from meetai.providers.gemini import GeminiChatBackend
        return GeminiChatBackend(settings.gemini_api_key, settings.gemini_model)
    elif name == "ollama":
        if not settings.ollama_enabled:
            raise ValueError("Ollama is disabled. Set OLLAMA_ENABLED=1 to use a local model.")
        from meetai.providers.ollama import OllamaChatBackend
        return OllamaChatBackend(settings.ollama_url, settings.ollama_model)
    raise ValueError(f"Unsupported model provider: '{name}'")


def create_provider(capability: str, name: str, settings: Settings):
    """Factory function to create a provider instance for a capability.

    Args:
        capability: "speech", "summary" or "qa"
        name: Provider name from PROVIDER_ORDER
        settings: Application settings holding keys and model names

    Returns:
        SpeechProvider, SummaryProvider or QAProvider instance

    Raises:
        ValueError: If the provider is unknown or its prerequisites are missing
        ImportError: If the provider's SDK is not installed
    """
    name = (name or "").strip().lower()
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: '{capability}'")
    if name not in PROVIDER_ORDER[capability]:
        raise ValueError(
            f"Unsupported {capability} provider: '{name}'. "
            f"Supported providers are: {', '.join(PROVIDER_ORDER[capability])}"
        )

    if name == "mock":
        from meetai.providers import mock
        latency = settings.mock_latency_seconds
        return {
            SPEECH: mock.MockSpeechProvider,
            SUMMARY: mock.MockSummaryProvider,
            QA: mock.MockQAProvider,
        }[capability](latency)

    if capability == SPEECH:
        if name == "deepgram":
            from meetai.providers.deepgram import DeepgramSpeechProvider
            return DeepgramSpeechProvider(
                settings.deepgram_api_key, settings.deepgram_model, settings.transcription_language
            )
        from meetai.providers.openai import OpenAISpeechProvider
        return OpenAISpeechProvider(
            settings.openai_api_key, settings.openai_transcribe_model, settings.transcription_language
        )

    backend = _chat_backend(name, settings)
    if capability == SUMMARY:
        return LLMSummaryProvider(backend, max_tokens=settings.openai_max_tokens)
    return LLMQAProvider(backend)


__all__ = [
    "CAPABILITIES",
    "PROVIDER_ORDER",
    "QA",
    "SPEECH",
    "SUMMARY",
    "QAProvider",
    "SpeechProvider",
    "SummaryProvider",
    "create_provider",
]
