"""
Ollama model service client.

Uses the non-streaming /api/generate endpoint for tagging and /api/tags
for model discovery. Respects OLLAMA_HOST through the config layer.
"""

import logging

import requests

from ..errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (10, 300)  # (connect, read); generation can be slow on local models


def normalize_ollama_url(url: str) -> str:
    """Trim, add http:// when no scheme is given, and drop trailing slashes."""
    cleaned = url.strip()
    if not cleaned.startswith(("http://", "https://")):
        corrected = f"http://{cleaned}"
        logger.warning("Ollama URL missing protocol, auto-corrected: %s -> %s", url, corrected)
        cleaned = corrected
    return cleaned.rstrip("/")


class OllamaGenerator:
    """
    Generation provider backed by a local Ollama server.

    Every failure (connection refused, non-2xx status, unexpected body)
    surfaces as TransportError so callers can treat it per document.
    """

    def __init__(self, base_url: str = "http://localhost:11434", timeout=DEFAULT_TIMEOUT):
        self.base_url = normalize_ollama_url(base_url)
        self.timeout = timeout

    def generate(self, model: str, prompt: str) -> str:
        """Send a prompt to /api/generate and return the response text."""
        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": model,
                    "prompt": prompt,
                    "stream": False,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(
                f"Cannot reach Ollama at {self.base_url}. "
                "Is Ollama running? Start it with: ollama serve"
            ) from e

        if not response.ok:
            detail = response.text[:200] if response.text else ""
            raise TransportError(
                f"Ollama generate failed (model={model}): "
                f"HTTP {response.status_code} from {self.base_url}. {detail}"
            )

        try:
            text = response.json()["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError(
                f"Unexpected response from Ollama (model={model}): missing 'response' field"
            ) from e
        if not isinstance(text, str):
            raise TransportError(f"Unexpected response from Ollama (model={model}): 'response' is not text")
        return text.strip()

    def list_models(self) -> list[str]:
        """Names of the models installed on the server."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(
                f"Cannot reach Ollama at {self.base_url}. "
                "Check that the URL is correct and Ollama is running."
            ) from e

        try:
            models = response.json()["models"]
            return [m["name"] for m in models]
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError("Invalid response format from Ollama /api/tags") from e
