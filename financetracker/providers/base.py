from abc import ABC, abstractmethod


class BaseProvider(ABC):
    """A generative-AI backend: one prompt (plus optional inline images) in, text out."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def generate(self, prompt: str, attachments: list[dict] | None = None, model: str | None = None) -> dict:
        """
        Run a single, non-streaming completion. Never raises for upstream
        failures; those come back with status "failed".

        Args:
            prompt: Full text prompt.
            attachments: Inline parts, each {"mime_type": str, "data": <base64 str>}.
            model: Model identifier; the provider picks its default when None.

        Returns:
            dict with text, provider, model, status ("success" | "failed") and error.
        """
        ...

    def _result(self, model: str, text: str | None = None, error: str | None = None) -> dict:
        return {
            "text": text,
            "provider": self.name,
            "model": model,
            "status": "failed" if error else "success",
            "error": error,
        }
