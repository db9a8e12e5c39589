import asyncio
import logging

from financetracker.config import GEMINI_FLASH_MODEL, GEMINI_TIMEOUT_SECONDS
from financetracker.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class GeminiProvider(BaseProvider):
    """Google Gemini through the official `google-generativeai` SDK."""

    def __init__(self, api_key: str, timeout: float = GEMINI_TIMEOUT_SECONDS, default_model: str = GEMINI_FLASH_MODEL):
        if not api_key:
            raise ValueError("GEMINI_API_KEY must be set in environment variables")
        self.api_key = api_key
        self.timeout = timeout
        self.default_model = default_model

    @property
    def name(self) -> str:
        return "gemini"

    async def generate(self, prompt: str, attachments: list[dict] | None = None, model: str | None = None) -> dict:
        used_model = model or self.default_model
        try:
            import google.generativeai as genai
            # SDK config is module-global
            genai.configure(api_key=self.api_key)

            contents = [prompt, *attachments] if attachments else prompt
            g_model = genai.GenerativeModel(model_name=used_model)
            response = await asyncio.wait_for(
                g_model.generate_content_async(contents),
                timeout=self.timeout,
            )
            return self._result(used_model, text=response.text)
        except asyncio.TimeoutError:
            logger.warning(f"Gemini {used_model} timed out after {self.timeout}s")
            return self._result(used_model, error="Timeout")
        except Exception as e:
            return self._result(used_model, error=str(e) or e.__class__.__name__)
