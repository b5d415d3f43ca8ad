"""
Base provider protocol.

Using Protocol for structural subtyping - no explicit inheritance required.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class GenerationProvider(Protocol):
    """
    Sends one prompt to a language model and returns its text.

    There is no streaming and no structured output: the prompt carries
    the format instructions and the caller parses the free text.

    Example implementation:
        class EchoGenerator:
            def generate(self, model: str, prompt: str) -> str:
                return "Summary: echo\\nSuggested tags: "
    """

    def generate(self, model: str, prompt: str) -> str:
        """
        Generate a response.

        Args:
            model: Model identifier understood by the service
            prompt: Complete prompt text

        Returns:
            Response text, trimmed

        Raises:
            TransportError: If the service is unreachable or the call fails
        """
        ...
