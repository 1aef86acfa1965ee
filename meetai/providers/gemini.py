"""Google Gemini chat backend."""

from typing import Optional

from meetai.providers.base import ChatBackend


class GeminiChatBackend(ChatBackend):
    """Google Gemini-based completion."""

    name = "gemini"

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.0-flash"):
        """Initialize Gemini.

        Args:
            api_key: Gemini API key (GEMINI_API_KEY)
            model: Model name to use (GEMINI_MODEL)
        """
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY is required. Please set it in your .env file or environment variables. "
                "Get your API key from: https://aistudio.google.com/app/apikey"
            )
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai library is required for Gemini. "
                "Install it with: pip install google-generativeai"
            )
        genai.configure(api_key=api_key)
        self.genai = genai
        self.model_name = model

    async def complete(self, system: str, prompt: str, *, max_tokens: int = 500, temperature: float = 0.3) -> str:
        model = self.genai.GenerativeModel(self.model_name, system_instruction=system)
        response = await model.generate_content_async(
            prompt,
            generation_config={
                "temperature": temperature,
                "top_p": 0.9,
                "max_output_tokens": max_tokens,
            },
        )
        return response.text or ""
