"""
Document storage.

The engine only needs to list notes, read and write their text, and know
when they were last modified. ``DocumentStorage`` is that contract;
``VaultStorage`` implements it over a directory of markdown files.
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = (".md", ".markdown")


@dataclass(frozen=True)
class Document:
    """
    A note as seen by the engine.

    Attributes:
        path: Vault-relative path with forward slashes (unique key)
        mtime: Last modification time, epoch seconds
    """
    path: str
    mtime: float = 0.0

    @property
    def name(self) -> str:
        """File name with extension."""
        return PurePosixPath(self.path).name

    @property
    def basename(self) -> str:
        """File name without extension."""
        return PurePosixPath(self.path).stem

    @property
    def folder(self) -> str:
        """Vault-relative parent folder ('' at the vault root)."""
        parent = str(PurePosixPath(self.path).parent)
        return "" if parent == "." else parent


@runtime_checkable
class DocumentStorage(Protocol):
    """Read/write access to notes, keyed by vault-relative path."""

    def read(self, path: str) -> str:
        """Return the full text of a note."""
        ...

    def write(self, path: str, content: str) -> None:
        """Replace the full text of a note."""
        ...

    def stat(self, path: str) -> Document:
        """Return the note's current Document record (fresh mtime)."""
        ...

    def markdown_files(self) -> list[Document]:
        """All notes, in a stable order."""
        ...


class VaultStorage:
    """
    Notes stored as markdown files under a root directory.

    Hidden files and directories (names starting with '.') are skipped,
    which keeps the config directory and editor metadata out of batches.
    Line endings are preserved exactly on read and write.
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault not found: {self.root}")

    def _resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root):
            raise ValueError(f"Path escapes vault: {path}")
        return full

    def relative(self, full: Path) -> str:
        """Vault-relative path for a filesystem path."""
        return Path(full).resolve().relative_to(self.root).as_posix()

    def read(self, path: str) -> str:
        with open(self._resolve(path), encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, path: str, content: str) -> None:
        with open(self._resolve(path), "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def stat(self, path: str) -> Document:
        return Document(path=path, mtime=self._resolve(path).stat().st_mtime)

    def markdown_files(self) -> list[Document]:
        docs = []
        for full in sorted(self.root.rglob("*")):
            rel = full.relative_to(self.root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if full.is_symlink() or not full.is_file():
                continue
            if full.suffix.lower() not in MARKDOWN_EXTENSIONS:
                continue
            docs.append(Document(path=rel.as_posix(), mtime=full.stat().st_mtime))
        logger.debug("Found %d markdown files under %s", len(docs), self.root)
        return docs


def folder_files(documents: list[Document], folder: str) -> list[Document]:
    """Documents directly inside folder (not in its subfolders)."""
    folder = folder.strip("/")
    return [d for d in documents if d.folder == folder]
