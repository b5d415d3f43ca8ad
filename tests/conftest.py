"""
Shared pytest fixtures for notetagger tests.

Provides an in-memory vault and a scripted model so no test needs a
running Ollama server or a real filesystem vault.
"""

from pathlib import Path
from typing import Callable

import pytest

from notetagger.annotator import DocumentAnnotator
from notetagger.config import TaggerConfig
from notetagger.state import MemoryTaggedStore
from notetagger.storage import Document


class MemoryStorage:
    """
    Dict-backed DocumentStorage.

    Every write advances a logical clock and stamps the note's mtime with
    it, so staleness checks behave like a real filesystem.
    """

    def __init__(self, notes: dict[str, str] | None = None, start: float = 1000.0):
        self.clock = start
        self.notes: dict[str, str] = {}
        self.mtimes: dict[str, float] = {}
        self.writes: list[str] = []
        for path, content in (notes or {}).items():
            self.put(path, content)

    def put(self, path: str, content: str) -> None:
        """Simulate an external edit."""
        self.clock += 1
        self.notes[path] = content
        self.mtimes[path] = self.clock

    def read(self, path: str) -> str:
        if path not in self.notes:
            raise FileNotFoundError(path)
        return self.notes[path]

    def write(self, path: str, content: str) -> None:
        self.writes.append(path)
        self.put(path, content)

    def stat(self, path: str) -> Document:
        if path not in self.notes:
            raise FileNotFoundError(path)
        return Document(path=path, mtime=self.mtimes[path])

    def markdown_files(self) -> list[Document]:
        return [Document(path=p, mtime=self.mtimes[p]) for p in self.notes]


class MockGenerator:
    """
    Scripted model service.

    Returns `response` for every call (or the next item of `responses`),
    records prompts, and runs `on_call` before returning, which lets a
    test edit a note or cancel a batch while the "request" is in flight.
    """

    def __init__(self, response: str = "", responses: list[str] | None = None,
                 error: Exception | None = None):
        self.response = response
        self.responses = list(responses or [])
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.on_call: Callable[[str], None] | None = None

    def generate(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        if self.on_call is not None:
            self.on_call(prompt)
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.response


def _config(**overrides) -> TaggerConfig:
    params = {
        "path": Path("/nonexistent"),
        "model": "llama3.2",
        "vocabulary": ["work", "personal"],
        "min_tags": 1,
        "max_tags": 2,
    }
    params.update(overrides)
    return TaggerConfig(**params)


@pytest.fixture
def make_config():
    """Factory for TaggerConfig with test defaults (model set, small vocabulary)."""
    return _config


@pytest.fixture
def config():
    return _config()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def generator():
    return MockGenerator("Summary: Greeting.\nSuggested tags: work, personal, extra")


@pytest.fixture
def tagged():
    return MemoryTaggedStore()


@pytest.fixture
def annotator(storage, generator, tagged, config):
    """DocumentAnnotator wired to in-memory collaborators and a fixed clock."""
    return DocumentAnnotator(storage, generator, tagged, config, clock=lambda: 5000.0)


@pytest.fixture
def make_storage():
    """Factory for MemoryStorage: make_storage({"a.md": "A"})."""
    return MemoryStorage


@pytest.fixture
def make_generator():
    """Factory for MockGenerator: make_generator(response) or make_generator(error=...)."""
    return MockGenerator
