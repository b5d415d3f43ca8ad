"""Model service providers."""

from .base import GenerationProvider
from .ollama import OllamaGenerator, normalize_ollama_url

__all__ = ["GenerationProvider", "OllamaGenerator", "normalize_ollama_url"]
