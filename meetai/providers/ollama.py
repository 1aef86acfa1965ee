from __future__ import annotations

import httpx

from meetai.providers.base import ChatBackend

DEFAULT_LOCAL_URL = "http://127.0.0.1:11434"
DEFAULT_LOCAL_MODEL = "gemma3:4b"


class OllamaChatBackend(ChatBackend):
    """Local model served by Ollama's HTTP API (POST {url}/api/chat)."""

    name = "ollama"

    def __init__(self, base_url: str = DEFAULT_LOCAL_URL, model: str = DEFAULT_LOCAL_MODEL, timeout: float = 90):
        self.base_url = (base_url or DEFAULT_LOCAL_URL).rstrip("/")
        self.model = model or DEFAULT_LOCAL_MODEL
        self.timeout = timeout

    async def complete(self, system: str, prompt: str, *, max_tokens: int = 500, temperature: float = 0.3) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            # Keep generation conservative for small models
            "options": {
                "temperature": temperature,
                "top_p": 0.9,
                "num_predict": max_tokens,
            },
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(f"{self.base_url}/api/chat", json=payload)
            r.raise_for_status()
            data = r.json()

        return (data.get("message") or {}).get("content", "") or ""
