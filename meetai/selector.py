"""
Provider selection per capability.

Each capability (speech, summary, qa) gets an ordered candidate list built
once from Settings. The first candidate whose prerequisites hold becomes the
active provider for the life of the selector; the deterministic mock is always
last, so every capability has an answer. Switching afterwards only happens
through ``override``, which re-validates the target first.

The selector never retries and never fails over mid-call: a provider failure
surfaces as ProviderError carrying the provider identity and the cause.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from meetai.config import Settings
from meetai.errors import ProviderError, ProviderUnavailableError
from meetai.models import QAResult, SummaryRecord, Transcript
from meetai.providers import CAPABILITIES, PROVIDER_ORDER, QA, SPEECH, SUMMARY, create_provider

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = [
    {"code": "en-US", "name": "English (US)"},
    {"code": "en-GB", "name": "English (UK)"},
    {"code": "tr-TR", "name": "Türkçe"},
    {"code": "de-DE", "name": "Deutsch"},
    {"code": "fr-FR", "name": "Français"},
    {"code": "es-ES", "name": "Español"},
    {"code": "it-IT", "name": "Italiano"},
    {"code": "pt-BR", "name": "Português (Brasil)"},
    {"code": "ru-RU", "name": "Русский"},
    {"code": "ja-JP", "name": "日本語"},
    {"code": "ko-KR", "name": "한국어"},
    {"code": "zh-CN", "name": "中文 (简体)"},
]


class ProviderSelector:
    def __init__(
        self,
        settings: Settings,
        providers: Optional[Mapping[str, Any]] = None,
        factory=create_provider,
    ):
        """
        Args:
            settings: keys and model names used to build candidates
            providers: pre-built providers per capability; these skip selection
            factory: callable(capability, name, settings) -> provider
        """
        self.settings = settings
        self._factory = factory
        self._lock = threading.Lock()
        self._candidates: Dict[str, Dict[str, Any]] = {}
        self._active: Dict[str, Any] = {}

        providers = dict(providers or {})
        for capability in CAPABILITIES:
            if capability in providers:
                injected = providers[capability]
                self._candidates[capability] = {injected.name: injected}
                self._active[capability] = injected
            else:
                self._active[capability] = self._select(capability)
            logger.info("[PROVIDERS] %s provider: %s", capability, self._active[capability].name)

    def _preferred(self, capability: str) -> Optional[str]:
        return {
            SPEECH: self.settings.speech_provider,
            SUMMARY: self.settings.summary_provider,
            QA: self.settings.qa_provider,
        }[capability]

    def _order(self, capability: str) -> List[str]:
        order = list(PROVIDER_ORDER[capability])
        preferred = (self._preferred(capability) or "").strip().lower()
        if preferred in order:
            order.remove(preferred)
            order.insert(0, preferred)
        elif preferred:
            logger.warning("[PROVIDERS] Unknown %s provider '%s', using default order", capability, preferred)
        return order

    def _build(self, capability: str, name: str):
        try:
            return self._factory(capability, name, self.settings)
        except Exception as e:
            logger.info("[PROVIDERS] %s/%s unavailable: %s", capability, name, e)
            return None

    def _select(self, capability: str):
        candidates: Dict[str, Any] = {}
        active = None
        for name in self._order(capability):
            provider = self._build(capability, name)
            if provider is None:
                continue
            candidates[name] = provider
            if active is None:
                active = provider
        self._candidates[capability] = candidates
        if active is None:
            # The mock factory cannot fail; reaching this means a custom factory did.
            raise ProviderUnavailableError(f"No {capability} provider could be initialised")
        return active

    def active(self, capability: str):
        with self._lock:
            return self._active[capability]

    def active_name(self, capability: str) -> str:
        return self.active(capability).name

    def override(self, capability: str, name: str) -> str:
        """Switch the active provider for ``capability`` after re-validating it."""
        if capability not in CAPABILITIES:
            raise ProviderUnavailableError(f"Unknown capability: '{capability}'")
        name = (name or "").strip().lower()
        if name not in PROVIDER_ORDER[capability] and name not in self._candidates[capability]:
            raise ProviderUnavailableError(f"Unknown {capability} provider: '{name}'")

        if name in PROVIDER_ORDER[capability]:
            provider = self._build(capability, name)
        else:
            # Injected providers have no factory entry to rebuild from.
            provider = self._candidates[capability].get(name)
        if provider is None:
            raise ProviderUnavailableError(f"{capability} provider '{name}' is not available")

        with self._lock:
            self._candidates[capability][name] = provider
            self._active[capability] = provider
        logger.info("[PROVIDERS] %s provider switched to %s", capability, name)
        return name

    async def invoke(self, capability: str, payload: Mapping[str, Any], options: Optional[Dict[str, Any]] = None):
        provider = self.active(capability)
        try:
            if capability == SPEECH:
                return await provider.transcribe(payload["audio"], options)
            if capability == SUMMARY:
                return await provider.summarize(payload["text"], list(payload.get("context") or []), options)
            if capability == QA:
                return await provider.answer(payload["question"], payload.get("context") or "", options)
        except Exception as e:
            logger.error("[PROVIDERS] %s/%s failed: %s", capability, provider.name, e)
            raise ProviderError(capability, provider.name, e) from e
        raise ProviderUnavailableError(f"Unknown capability: '{capability}'")

    async def transcribe(self, audio: bytes, options: Optional[Dict[str, Any]] = None) -> Transcript:
        return await self.invoke(SPEECH, {"audio": audio}, options)

    async def summarize(
        self, text: str, context: Optional[List[str]] = None, options: Optional[Dict[str, Any]] = None
    ) -> SummaryRecord:
        return await self.invoke(SUMMARY, {"text": text, "context": context or []}, options)

    async def answer(self, question: str, context: str, options: Optional[Dict[str, Any]] = None) -> QAResult:
        return await self.invoke(QA, {"question": question, "context": context}, options)

    def status(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        with self._lock:
            for capability in CAPABILITIES:
                current = self._active[capability].name
                available = {name: name in self._candidates[capability] for name in PROVIDER_ORDER[capability]}
                available.update({name: True for name in self._candidates[capability]})
                out[capability] = {
                    "currentProvider": current,
                    "availableProviders": available,
                    "status": "mock" if current == "mock" else "online",
                }
        return out
