"""
Automatic tagging of created and modified notes.

Change notifications become tasks on a single-consumer queue:

- enqueueing a path that is already waiting resets its debounce timer,
  so a burst of saves produces one task
- at most one task per path is queued and at most one is in flight;
  a change that arrives while its path is being tagged is re-queued
  once the current run finishes
- one consumer drains due tasks in order, one model call at a time

``VaultWatcher`` is a polling source of change notifications for vaults
that have no host application to deliver them.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from .annotator import SKIPPED, DocumentAnnotator, Outcome
from .batch import EXCLUDED, NOT_MODIFIED, is_excluded, is_stale
from .storage import DocumentStorage

logger = logging.getLogger(__name__)


class AutoTagQueue:
    """
    Debounced, single-consumer queue of paths to tag.

    Args:
        annotator: Engine used for each task
        debounce_seconds: Quiet period required after the last change
        clock: Monotonic time source
    """

    def __init__(
        self,
        annotator: DocumentAnnotator,
        *,
        debounce_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.annotator = annotator
        self.debounce_seconds = debounce_seconds
        self.clock = clock
        self._due: "OrderedDict[str, float]" = OrderedDict()
        self._in_flight: set[str] = set()
        self._requeue: set[str] = set()
        self._lock = threading.Lock()
        self._consumer = threading.Lock()

    @property
    def enabled(self) -> bool:
        """Auto-tagging runs only when switched on and fully configured."""
        config = self.annotator.config
        return bool(config.auto_tag and config.model and config.vocabulary)

    def enqueue(self, path: str) -> None:
        """Schedule path for tagging after the debounce period."""
        with self._lock:
            if path in self._in_flight:
                self._requeue.add(path)
                return
            self._due.pop(path, None)
            self._due[path] = self.clock() + self.debounce_seconds

    def pending(self) -> list[str]:
        """Queued paths in due order."""
        with self._lock:
            return list(self._due)

    def _pop_due(self) -> Optional[str]:
        with self._lock:
            now = self.clock()
            for path, due in self._due.items():
                if due <= now:
                    del self._due[path]
                    self._in_flight.add(path)
                    return path
            return None

    def _finish(self, path: str) -> None:
        with self._lock:
            self._in_flight.discard(path)
            if path in self._requeue:
                self._requeue.discard(path)
                self._due[path] = self.clock() + self.debounce_seconds

    def run_due(self) -> list[Outcome]:
        """
        Process every task whose debounce period has elapsed.

        Returns an empty list if another consumer is already running.
        """
        if not self._consumer.acquire(blocking=False):
            return []
        outcomes = []
        try:
            while True:
                path = self._pop_due()
                if path is None:
                    break
                try:
                    outcomes.append(self._process(path))
                finally:
                    self._finish(path)
        finally:
            self._consumer.release()
        return outcomes

    def _process(self, path: str) -> Outcome:
        config = self.annotator.config
        if not self.enabled:
            return Outcome(path, SKIPPED, "disabled")
        try:
            doc = self.annotator.storage.stat(path)
        except FileNotFoundError as e:
            logger.debug("Auto-tagging: %s disappeared before processing", path)
            return Outcome(path, SKIPPED, "missing", error=e)

        if is_excluded(doc, config.exclude_patterns):
            logger.debug("Auto-tagging: skipping %s - excluded by pattern", path)
            return Outcome(path, SKIPPED, EXCLUDED)
        if not is_stale(doc, self.annotator.tagged):
            logger.debug("Auto-tagging: skipping %s - not modified", path)
            return Outcome(path, SKIPPED, NOT_MODIFIED)

        outcome = self.annotator.annotate(path)
        if outcome.error is not None:
            logger.error("Failed to auto-tag %s: %s", path, outcome.error)
        return outcome


class VaultWatcher:
    """
    Detects created and modified notes by polling modification times.

    The first scan only records a baseline and reports nothing.
    """

    def __init__(self, storage: DocumentStorage):
        self.storage = storage
        self._seen: Optional[dict[str, float]] = None

    def scan(self) -> list[str]:
        """Paths created or modified since the previous scan."""
        current = {doc.path: doc.mtime for doc in self.storage.markdown_files()}
        if self._seen is None:
            self._seen = current
            return []
        changed = [
            path for path, mtime in current.items()
            if self._seen.get(path) != mtime
        ]
        self._seen = current
        return changed
