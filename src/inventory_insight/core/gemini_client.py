import logging
from typing import Any, Optional
from google import genai
from google.genai import types

from inventory_insight.core.config import get_settings
from inventory_insight.core.errors import OracleError

logger = logging.getLogger(__name__)


class GeminiClient:
    """
    Stateless text-completion oracle backed by the Gemini SDK.

    Every call re-sends its full prompt; no chat history is kept between
    calls. One instance is shared across requests.
    """

    def __init__(self, model_name: Optional[str] = None, api_key: Optional[str] = None,
                 temperature: Optional[float] = None):
        settings = get_settings()
        api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self.temperature = temperature
        self.client = None

        if not api_key:
            logger.warning("[GeminiClient] ⚠ GEMINI_API_KEY not found in environment.")
            return

        try:
            self.client = genai.Client(api_key=api_key)
        except Exception as e:
            logger.error(f"[GeminiClient] ✗ Failed to initialize Gemini SDK: {e}")

    def generate_content(self, prompt: str) -> Any:
        if not self.client:
            raise OracleError("Gemini client not initialized (check GEMINI_API_KEY)")

        config = None
        if self.temperature is not None:
            config = types.GenerateContentConfig(temperature=self.temperature)
        try:
            return self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error(f"[GeminiClient] ✗ generate_content failed: {e}")
            raise OracleError(f"Gemini request failed: {e}") from e

    def complete(self, prompt: str) -> str:
        response = self.generate_content(prompt)
        try:
            text = response.text or ""
        except (ValueError, AttributeError):
            text = str(response)
        return text.strip()


_gemini_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
