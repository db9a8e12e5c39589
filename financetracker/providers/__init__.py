from financetracker.providers.base import BaseProvider
from financetracker.providers.gemini_provider import GeminiProvider

__all__ = ["BaseProvider", "GeminiProvider"]
