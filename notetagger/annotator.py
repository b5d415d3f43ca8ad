"""
Per-document tagging and untagging.

A tagging pass for one note goes:

    read snapshot -> already tagged? -> prompt model -> parse
        -> re-read: changed meanwhile? -> insert -> write -> record time

The re-read comparison is the only protection against concurrent edits:
if the note changed while the model was thinking, the result is dropped
and the user's edit wins. Failures are captured in the returned Outcome
and never leave a note half-written.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from . import frontmatter
from .config import TaggerConfig, validate_for_tagging
from .parsing import parse_response
from .prompts import build_prompt
from .providers.base import GenerationProvider
from .state import TaggedFilesStore
from .storage import DocumentStorage

logger = logging.getLogger(__name__)


# Outcome statuses
ANNOTATED = "annotated"
SKIPPED = "skipped"
FAILED = "failed"
CANCELLED = "cancelled"
STRIPPED = "stripped"
NOOP = "noop"

# Skip reasons
ALREADY_TAGGED = "already_tagged"
EMPTY = "empty"
CHANGED = "changed_during_request"
NO_TAGS = "no_tags"
UNCHANGED = "unchanged"
NOT_TAGGED = "not_tagged"


@dataclass
class Outcome:
    """What happened to one document."""
    path: str
    status: str
    reason: str = ""
    error: Optional[Exception] = None
    tags: list[str] = field(default_factory=list)
    summary: str = ""

    @property
    def changed(self) -> bool:
        """True if the note was rewritten."""
        return self.status in (ANNOTATED, STRIPPED)


class DocumentAnnotator:
    """
    Tags and untags single documents.

    Args:
        storage: Where notes are read and written
        generator: Model service
        tagged: Tagged-files store, updated after each successful write
        config: Model, vocabulary and tag bounds
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        storage: DocumentStorage,
        generator: GenerationProvider,
        tagged: TaggedFilesStore,
        config: TaggerConfig,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.generator = generator
        self.tagged = tagged
        self.config = config
        self.clock = clock

    def annotate(self, path: str, cancel: Optional[threading.Event] = None) -> Outcome:
        """
        Tag one document.

        Raises:
            ConfigurationError: If no model or vocabulary is configured.
                Every other problem is reported in the Outcome.
        """
        validate_for_tagging(self.config)

        try:
            snapshot = self.storage.read(path)
        except Exception as e:
            logger.warning("Failed to read %s: %s", path, e)
            return Outcome(path, FAILED, error=e)

        if frontmatter.detect(snapshot):
            logger.debug("Skipping %s - already has tag metadata", path)
            return Outcome(path, SKIPPED, ALREADY_TAGGED)
        if not snapshot.strip():
            logger.debug("Skipping %s - empty", path)
            return Outcome(path, SKIPPED, EMPTY)

        vocabulary = self.config.vocabulary
        try:
            prompt = build_prompt(self.config, vocabulary, snapshot)
            response = self.generator.generate(self.config.model, prompt)
        except Exception as e:
            logger.warning("Tagging request failed for %s: %s", path, e)
            return Outcome(path, FAILED, error=e)

        if cancel is not None and cancel.is_set():
            logger.info("Discarding result for %s - cancelled during request", path)
            return Outcome(path, CANCELLED)

        annotation = parse_response(response, vocabulary, self.config)

        try:
            current = self.storage.read(path)
            if current != snapshot:
                logger.info("Skipping %s - content changed while processing", path)
                return Outcome(path, SKIPPED, CHANGED)

            if not annotation.tags:
                logger.info("No valid tags for %s", path)
                return Outcome(path, SKIPPED, NO_TAGS, summary=annotation.summary)

            now = self.clock()
            updated = frontmatter.insert(
                snapshot, annotation.tags, annotation.summary,
                now=datetime.fromtimestamp(now, timezone.utc),
            )
            if updated == snapshot:
                return Outcome(path, SKIPPED, UNCHANGED)

            self.storage.write(path, updated)
            # Taken after the write: must not predate the note's new mtime
            self.tagged.set(path, self.clock())
            self.tagged.persist()
        except Exception as e:
            logger.warning("Failed to write tags to %s: %s", path, e)
            return Outcome(path, FAILED, error=e)

        logger.info("Tagged %s: %s", path, ", ".join(annotation.tags))
        return Outcome(path, ANNOTATED, tags=annotation.tags, summary=annotation.summary)

    def untag(self, path: str) -> Outcome:
        """Remove notetagger's keys from one document."""
        try:
            content = self.storage.read(path)
            if not frontmatter.detect(content):
                return Outcome(path, NOOP, NOT_TAGGED)

            cleaned = frontmatter.strip(content)
            if cleaned == content:
                return Outcome(path, NOOP, UNCHANGED)

            self.storage.write(path, cleaned)
            self.tagged.remove(path)
            self.tagged.persist()
        except Exception as e:
            logger.warning("Failed to untag %s: %s", path, e)
            return Outcome(path, FAILED, error=e)

        logger.info("Removed tags from %s", path)
        return Outcome(path, STRIPPED)
