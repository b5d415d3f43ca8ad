"""
Parsing of model responses into a summary and a bounded tag list.

Models ignore formatting instructions often enough that nothing here
trusts the response: every candidate tag is cleaned, checked against the
effective vocabulary, de-duplicated and capped. Parsing never raises.
"""

import re
from dataclasses import dataclass, field

from .config import TaggerConfig
from .prompts import LITERARY_GENRES


_SUMMARY_RE = re.compile(r"Summary:\s*(.+)", re.IGNORECASE)
_TAGS_RE = re.compile(r"Suggested tags:\s*(.+)", re.IGNORECASE)

# Justifications the model appends to a tag despite being told not to
_PAREN_NOTE_RE = re.compile(r"\s*\([^)]*\)")
_BRACKET_NOTE_RE = re.compile(r"\s*\[[^\]]*\]")


@dataclass
class Annotation:
    """Summary and validated tags extracted from one model response."""
    summary: str = ""
    tags: list[str] = field(default_factory=list)


def effective_vocabulary(vocabulary: list[str], config: TaggerConfig) -> list[str]:
    """Thematic vocabulary, plus the genre labels when genre detection is on."""
    if config.detect_genre:
        return list(vocabulary) + [g for g in LITERARY_GENRES if g not in vocabulary]
    return list(vocabulary)


def effective_max(config: TaggerConfig) -> int:
    """Maximum tag count; the genre tag gets one extra slot."""
    return config.max_tags + 1 if config.detect_genre else config.max_tags


def _strip_emphasis(text: str) -> str:
    return text.strip().strip("*_").strip()


def extract_summary(response: str) -> str:
    """Summary line value, or the first line of the response as a fallback."""
    match = _SUMMARY_RE.search(response)
    if match and _strip_emphasis(match.group(1)):
        return _strip_emphasis(match.group(1))
    lines = response.strip().splitlines()
    return lines[0].strip() if lines else ""


def clean_tag(candidate: str) -> str:
    """Remove a leading '#', any (…) or […] annotation, quotes and whitespace."""
    tag = candidate.strip().strip("`'\"").lstrip("#")
    tag = _PAREN_NOTE_RE.sub("", tag).strip()
    tag = _BRACKET_NOTE_RE.sub("", tag).strip()
    return tag.strip("`'\"").strip()


def extract_candidates(response: str) -> list[str]:
    """Cleaned, non-empty tag candidates from the 'Suggested tags:' line."""
    match = _TAGS_RE.search(response)
    if not match:
        return []
    value = _strip_emphasis(match.group(1))
    # "[a, b, c]" as in the format reminder: unwrap before splitting so the
    # bracket-annotation cleanup doesn't eat the whole list
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    candidates = (clean_tag(part) for part in value.split(","))
    return [c for c in candidates if c]


def parse_response(response: str, vocabulary: list[str], config: TaggerConfig) -> Annotation:
    """
    Turn a raw model response into an Annotation.

    Tags are kept in first-seen order, filtered to the effective vocabulary
    (case-sensitive), de-duplicated and truncated to the effective maximum.

    Args:
        response: Raw model output (may be empty or malformed)
        vocabulary: Thematic vocabulary the prompt offered
        config: Supplies max_tags and the genre flag

    Returns:
        Annotation with a best-effort summary and possibly empty tags
    """
    response = response or ""
    allowed = set(effective_vocabulary(vocabulary, config))

    tags: list[str] = []
    for candidate in extract_candidates(response):
        if candidate in allowed and candidate not in tags:
            tags.append(candidate)

    return Annotation(
        summary=extract_summary(response),
        tags=tags[:effective_max(config)],
    )
