"""
Metadata block codec.

Detects, rewrites and strips the leading ``---`` delimited metadata block
(frontmatter) of a note. Only three keys belong to notetagger:

    tags: [work, personal]
    LLM-tagged: 2024-05-01T09:30:00.000Z
    LLM-summary: "A short summary with \\"escaped\\" quotes."

Every other key is carried through byte for byte, in its original order,
and the body after the closing delimiter is never touched.

The block is read with a small line scanner rather than a YAML parser so
that user formatting (comments, quoting style, key order) survives a
rewrite. The scanner groups raw lines into entries, one per top-level key,
following multi-line bracketed lists and multi-line quoted strings.
Anything that does not look like a complete block (no opening delimiter on
the first line, or no closing delimiter) is treated as "no block".
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import yaml


DELIMITER = "---"

TAGS_KEY = "tags"
TAGGED_KEY = "LLM-tagged"
SUMMARY_KEY = "LLM-summary"

# Keys written and owned by notetagger
SYSTEM_KEYS = (TAGS_KEY, TAGGED_KEY, SUMMARY_KEY)

# A top-level "key: value" line. Keys may contain spaces and dashes but
# cannot start with whitespace, a comment marker or a list dash.
_KEY_LINE_RE = re.compile(r"^([^\s#\-:][^:]*?)[ \t]*:(?:[ \t]+(.*)|[ \t]*)$")


class ScanState(Enum):
    """States of the metadata block scanner."""
    IN_BLOCK = "in_block"
    IN_MULTILINE_LIST = "in_multiline_list"
    IN_MULTILINE_QUOTE = "in_multiline_quote"
    BODY = "body"


@dataclass
class Entry:
    """
    One top-level item of a metadata block.

    Attributes:
        key: The key name, or None for blank lines, comments and stray text
        lines: Raw lines including their line terminators
    """
    key: str | None
    lines: list[str] = field(default_factory=list)

    def is_blank(self) -> bool:
        return all(not line.strip() for line in self.lines)


@dataclass
class MetadataBlock:
    """A parsed metadata block plus everything needed to reproduce the note."""
    opening: str
    entries: list[Entry]
    closing: str
    body: str

    @property
    def newline(self) -> str:
        """Line terminator used by the block (taken from the opening line)."""
        return self.opening[len(DELIMITER):] or "\n"

    def keys(self) -> list[str]:
        return [e.key for e in self.entries if e.key is not None]

    def has_key(self, key: str) -> bool:
        return key in self.keys()

    def serialize(self) -> str:
        inner = "".join(line for entry in self.entries for line in entry.lines)
        return f"{self.opening}{inner}{self.closing}{self.body}"


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _has_unescaped_quote(text: str) -> bool:
    """True if text contains a double quote not preceded by a backslash escape."""
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            return True
    return False


def _value_state(value: str) -> ScanState:
    """State the scanner enters after a key line with the given inline value."""
    value = value.strip()
    if value.startswith("[") and "]" not in value:
        return ScanState.IN_MULTILINE_LIST
    if value.startswith('"') and not _has_unescaped_quote(value[1:]):
        return ScanState.IN_MULTILINE_QUOTE
    return ScanState.IN_BLOCK


def split_block(content: str) -> MetadataBlock | None:
    """
    Split content into its metadata block and body.

    Returns None when content does not start with a complete block: the
    first line must be exactly the delimiter and a later line must be
    exactly the delimiter too. An unterminated block is not a block.
    """
    lines = content.splitlines(keepends=True)
    if not lines or _strip_eol(lines[0]) != DELIMITER:
        return None

    entries: list[Entry] = []
    state = ScanState.IN_BLOCK
    offset = len(lines[0])
    closing = None

    for line in lines[1:]:
        offset += len(line)
        text = _strip_eol(line)

        if text == DELIMITER:
            # The first delimiter line closes the block, even inside an
            # unterminated list or quote.
            state = ScanState.BODY
            closing = line
            break

        if state is ScanState.IN_MULTILINE_LIST:
            entries[-1].lines.append(line)
            if "]" in text:
                state = ScanState.IN_BLOCK
            continue

        if state is ScanState.IN_MULTILINE_QUOTE:
            entries[-1].lines.append(line)
            if _has_unescaped_quote(text):
                state = ScanState.IN_BLOCK
            continue

        match = _KEY_LINE_RE.match(text)
        if match:
            entries.append(Entry(key=match.group(1), lines=[line]))
            state = _value_state(match.group(2) or "")
        elif text[:1] in (" ", "\t", "-") and entries and entries[-1].key is not None:
            # Indented mapping or block sequence item under the previous key
            entries[-1].lines.append(line)
        else:
            entries.append(Entry(key=None, lines=[line]))

    if state is not ScanState.BODY:
        return None

    return MetadataBlock(
        opening=lines[0],
        entries=entries,
        closing=closing,
        body=content[offset:],
    )


def detect(content: str) -> bool:
    """True if content has a complete metadata block carrying the LLM-tagged marker."""
    block = split_block(content)
    return block is not None and block.has_key(TAGGED_KEY)


def format_timestamp(when: datetime | None = None) -> str:
    """ISO-8601 UTC instant with millisecond precision and a Z suffix."""
    when = when or datetime.now(timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_tag_list(tags: list[str]) -> str:
    return "[" + ", ".join(tags) + "]"


def quote_summary(summary: str) -> str:
    """Quote a summary as a one-line string with backslashes and quotes escaped."""
    one_line = re.sub(r"\s*[\r\n]+\s*", " ", summary.strip())
    return '"' + one_line.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _system_lines(tags: list[str], summary: str, when: datetime | None, newline: str) -> list[str]:
    return [
        f"{TAGS_KEY}: {format_tag_list(tags)}{newline}",
        f"{TAGGED_KEY}: {format_timestamp(when)}{newline}",
        f"{SUMMARY_KEY}: {quote_summary(summary)}{newline}",
    ]


def insert(content: str, tags: list[str], summary: str, *, now: datetime | None = None) -> str:
    """
    Write tags, tagging timestamp and summary into the metadata block.

    Existing occurrences of the three system keys are replaced and the new
    values placed ahead of the remaining keys. Without a block, a new one
    is created in front of the whole content, separated from it by exactly
    one blank line.

    Args:
        content: Full note content
        tags: Tag list to write
        summary: One-line summary
        now: Timestamp to record (defaults to the current instant)

    Returns:
        The rewritten content
    """
    block = split_block(content)
    if block is None:
        newline = "\r\n" if "\r\n" in content else "\n"
        header = [DELIMITER + newline] + _system_lines(tags, summary, now, newline)
        return "".join(header) + DELIMITER + newline + newline + content

    kept = [e for e in block.entries if e.key not in SYSTEM_KEYS]
    fields = [Entry(key=None, lines=[line])
              for line in _system_lines(tags, summary, now, block.newline)]
    block.entries = fields + kept
    return block.serialize()


def strip(content: str) -> str:
    """
    Remove the three system keys from the metadata block.

    Content without a block, or whose block lacks the LLM-tagged marker, is
    returned unchanged. If nothing but blank lines remain the block is
    dropped entirely, together with the single blank line that ``insert``
    puts between a new block and the body.
    """
    block = split_block(content)
    if block is None or not block.has_key(TAGGED_KEY):
        return content

    remaining = [e for e in block.entries if e.key not in SYSTEM_KEYS]
    if all(e.is_blank() for e in remaining):
        body = block.body
        for separator in ("\r\n", "\n"):
            if body.startswith(separator):
                return body[len(separator):]
        return body

    block.entries = remaining
    return block.serialize()


def read_fields(content: str) -> dict:
    """
    Decoded values of the system keys present in content's block.

    Each system entry is decoded on its own with YAML, so a malformed
    user key elsewhere in the block does not hide notetagger's values.
    Entries that fail to decode are left out.
    """
    block = split_block(content)
    if block is None:
        return {}
    fields = {}
    for entry in block.entries:
        if entry.key not in SYSTEM_KEYS:
            continue
        try:
            data = yaml.safe_load("".join(entry.lines))
        except yaml.YAMLError:
            continue
        if isinstance(data, dict) and entry.key in data:
            fields[entry.key] = data[entry.key]
    return fields
