"""
notetagger: tag and summarize markdown notes with a local language model.

Quick start:
    from notetagger import DocumentAnnotator, BatchController, VaultStorage

    storage = VaultStorage(Path("~/vault"))
    annotator = DocumentAnnotator(storage, OllamaGenerator(), MemoryTaggedStore(), config)
    report = BatchController(annotator).tag(storage.markdown_files())
"""

from .annotator import DocumentAnnotator, Outcome
from .autotag import AutoTagQueue, VaultWatcher
from .batch import BatchController, BatchReport, Progress, is_excluded, is_stale
from .config import TaggerConfig, load_config, load_or_create_config, save_config
from .errors import ConfigurationError, NotetaggerError, TransportError
from .frontmatter import detect, insert, strip
from .parsing import Annotation, parse_response
from .prompts import LITERARY_GENRES, build_prompt
from .providers import GenerationProvider, OllamaGenerator
from .state import MemoryTaggedStore, SqliteTaggedStore, TaggedFilesStore
from .storage import Document, DocumentStorage, VaultStorage

__version__ = "0.1.0"

__all__ = [
    "Annotation",
    "AutoTagQueue",
    "BatchController",
    "BatchReport",
    "ConfigurationError",
    "Document",
    "DocumentAnnotator",
    "DocumentStorage",
    "GenerationProvider",
    "LITERARY_GENRES",
    "MemoryTaggedStore",
    "NotetaggerError",
    "OllamaGenerator",
    "Outcome",
    "Progress",
    "SqliteTaggedStore",
    "TaggedFilesStore",
    "TaggerConfig",
    "TransportError",
    "VaultStorage",
    "VaultWatcher",
    "build_prompt",
    "detect",
    "insert",
    "is_excluded",
    "is_stale",
    "load_config",
    "load_or_create_config",
    "parse_response",
    "save_config",
    "strip",
]
