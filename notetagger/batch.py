"""
Batch tagging and untagging over many documents.

Documents are processed strictly one after another, in the order given,
so at most one model request is outstanding at any time. Cancellation is
cooperative: it is checked before each document and once more when a
model call returns, and never interrupts a call in flight.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .annotator import (
    ANNOTATED,
    CANCELLED,
    FAILED,
    SKIPPED,
    STRIPPED,
    DocumentAnnotator,
    Outcome,
)
from .config import validate_for_tagging
from .state import TaggedFilesStore
from .storage import Document

logger = logging.getLogger(__name__)

# Skip reasons decided by the controller before the annotator runs
EXCLUDED = "excluded"
NOT_MODIFIED = "not_modified"


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a wildcard exclusion pattern.

    '*' matches any run of characters (including '/'). The pattern must
    match the whole path, a trailing run of segments, or a run of segments
    in the middle of the path.
    """
    body = re.escape(pattern.lower()).replace(r"\*", ".*")
    return re.compile(f"^{body}$|/{body}$|/{body}/")


def is_excluded(doc: Document, patterns: Iterable[str]) -> bool:
    """True if the document's path or basename matches any exclusion pattern."""
    path = doc.path.lower()
    for pattern in patterns:
        if not pattern:
            continue
        if "*" in pattern:
            if compile_pattern(pattern).search(path):
                return True
        else:
            name = pattern.lower()
            if name in (doc.basename.lower(), doc.name.lower()):
                return True
            if f"/{name}/" in f"/{path}":
                return True
    return False


def is_stale(doc: Document, tagged: TaggedFilesStore) -> bool:
    """True if the document was never tagged or was modified after its last tagging."""
    last = tagged.get(doc.path)
    if last is None:
        return True
    return doc.mtime > last


@dataclass
class Progress:
    """Progress snapshot emitted after each document."""
    processed: int
    total: int
    current: str
    modified: int
    skipped: int


@dataclass
class BatchReport:
    """Final tally of a batch run."""
    total: int
    processed: int = 0
    modified: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False
    failures: list[Outcome] = field(default_factory=list)


class BatchController:
    """
    Applies a DocumentAnnotator to an ordered sequence of documents.

    Args:
        annotator: Per-document engine
        on_progress: Called with a Progress after every processed document
    """

    def __init__(
        self,
        annotator: DocumentAnnotator,
        *,
        on_progress: Optional[Callable[[Progress], None]] = None,
    ):
        self.annotator = annotator
        self.on_progress = on_progress
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next check."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def _emit(self, report: BatchReport, doc: Document) -> None:
        if self.on_progress is not None:
            self.on_progress(Progress(
                processed=report.processed,
                total=report.total,
                current=doc.basename,
                modified=report.modified,
                skipped=report.skipped,
            ))

    def _record(self, report: BatchReport, outcome: Outcome) -> None:
        if outcome.status in (ANNOTATED, STRIPPED):
            report.modified += 1
        elif outcome.status == FAILED:
            report.failed += 1
            report.failures.append(outcome)
        else:
            report.skipped += 1
        report.processed += 1

    def tag(self, documents: list[Document]) -> BatchReport:
        """
        Tag every eligible document.

        A document is skipped when it matches an exclusion pattern, has not
        been modified since it was last tagged, or already carries tag
        metadata. A failing document is counted and the batch moves on.

        Raises:
            ConfigurationError: before any document is touched
        """
        config = self.annotator.config
        validate_for_tagging(config)
        self.cancel_event.clear()

        report = BatchReport(total=len(documents))
        logger.info("Starting bulk tagging of %d files", report.total)

        for doc in documents:
            if self.cancelled:
                report.cancelled = True
                break

            if is_excluded(doc, config.exclude_patterns):
                logger.debug("Skipping %s - excluded by pattern", doc.path)
                outcome = Outcome(doc.path, SKIPPED, EXCLUDED)
            elif not is_stale(doc, self.annotator.tagged):
                logger.debug("Skipping %s - not modified since last tagging", doc.path)
                outcome = Outcome(doc.path, SKIPPED, NOT_MODIFIED)
            else:
                outcome = self.annotator.annotate(doc.path, cancel=self.cancel_event)

            if outcome.status == CANCELLED:
                report.cancelled = True
                break

            self._record(report, outcome)
            self._emit(report, doc)

        self._log_report("tagging", report)
        return report

    def untag(self, documents: list[Document]) -> BatchReport:
        """Strip notetagger's keys from every tagged document."""
        self.cancel_event.clear()
        report = BatchReport(total=len(documents))
        logger.info("Starting bulk untagging of %d files", report.total)

        for doc in documents:
            if self.cancelled:
                report.cancelled = True
                break
            self._record(report, self.annotator.untag(doc.path))
            self._emit(report, doc)

        self._log_report("untagging", report)
        return report

    @staticmethod
    def _log_report(kind: str, report: BatchReport) -> None:
        if report.cancelled:
            logger.info(
                "Bulk %s cancelled: %d modified of %d processed",
                kind, report.modified, report.processed,
            )
        else:
            logger.info(
                "Bulk %s completed: %d modified, %d skipped, %d failed, %d total",
                kind, report.modified, report.skipped, report.failed, report.total,
            )
