"""
Text generation backend client (Ollama-style ``/api/generate``).
"""

from meseca.clients.base import BackendClient


class GenerationClient(BackendClient):
    """Forwards prompts to the text generation backend."""

    role = "LLM"

    def __init__(self, base_url: str, model: str = "llama3", **kwargs):
        super().__init__(base_url, **kwargs)
        self.model = model

    async def generate(self, prompt: str, max_tokens: int = 512) -> str:
        """
        Generate a completion for ``prompt``.

        Returns:
            The backend's raw text body, untrimmed
        """
        response = await self._send(
            "POST",
            "/api/generate",
            json={"model": self.model, "prompt": prompt, "max_tokens": max_tokens}
        )
        return response.text
