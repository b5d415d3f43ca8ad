"""Tests for single-document tagging and untagging."""

import threading
from unittest.mock import MagicMock

import pytest

from notetagger import frontmatter
from notetagger.annotator import (
    ALREADY_TAGGED,
    ANNOTATED,
    CANCELLED,
    CHANGED,
    EMPTY,
    FAILED,
    NO_TAGS,
    NOOP,
    NOT_TAGGED,
    SKIPPED,
    STRIPPED,
    DocumentAnnotator,
)
from notetagger.errors import ConfigurationError, TransportError


class TestAnnotate:
    def test_tags_plain_note(self, storage, generator, annotator, tagged):
        storage.put("hello.md", "# Hello")
        outcome = annotator.annotate("hello.md")

        assert outcome.status == ANNOTATED
        assert outcome.tags == ["work", "personal"]
        assert outcome.summary == "Greeting."
        assert storage.notes["hello.md"] == (
            "---\n"
            "tags: [work, personal]\n"
            "LLM-tagged: 1970-01-01T01:23:20.000Z\n"
            'LLM-summary: "Greeting."\n'
            "---\n"
            "\n"
            "# Hello"
        )
        assert tagged.get("hello.md") == 5000.0
        assert tagged.persist_calls == 1

    def test_prompt_sent_with_model(self, storage, generator, annotator):
        storage.put("hello.md", "# Hello")
        annotator.annotate("hello.md")
        model, prompt = generator.calls[0]
        assert model == "llama3.2"
        assert "# Hello" in prompt
        assert "Available thematic tags: work, personal" in prompt

    def test_already_tagged_is_skipped(self, storage, generator, annotator):
        storage.put("a.md", "---\nLLM-tagged: 2024-01-01T00:00:00.000Z\n---\nBody")
        outcome = annotator.annotate("a.md")
        assert outcome.status == SKIPPED
        assert outcome.reason == ALREADY_TAGGED
        assert generator.calls == []
        assert storage.writes == []

    def test_second_annotate_is_noop(self, storage, generator, annotator):
        """Tagging twice in a row makes exactly one model call and one write."""
        storage.put("a.md", "# Hello")
        annotator.annotate("a.md")
        content = storage.notes["a.md"]
        outcome = annotator.annotate("a.md")
        assert outcome.reason == ALREADY_TAGGED
        assert storage.notes["a.md"] == content
        assert len(generator.calls) == 1
        assert len(storage.writes) == 1

    def test_empty_note_skipped(self, storage, generator, annotator):
        storage.put("blank.md", "  \n\n")
        outcome = annotator.annotate("blank.md")
        assert outcome.reason == EMPTY
        assert generator.calls == []

    def test_user_keys_preserved(self, storage, annotator):
        storage.put("trip.md", "---\ntitle: Trip\ntags: [mine]\n---\nBody\n")
        annotator.annotate("trip.md")
        block = frontmatter.split_block(storage.notes["trip.md"])
        assert block.keys() == ["tags", "LLM-tagged", "LLM-summary", "title"]
        assert block.body == "Body\n"

    def test_edit_during_request_wins(self, storage, generator, annotator, tagged):
        storage.put("a.md", "original")
        generator.on_call = lambda prompt: storage.put("a.md", "edited by user")

        outcome = annotator.annotate("a.md")

        assert outcome.status == SKIPPED
        assert outcome.reason == CHANGED
        assert storage.notes["a.md"] == "edited by user"
        assert tagged.get("a.md") is None

    def test_model_failure(self, storage, annotator, tagged, make_generator):
        storage.put("a.md", "content")
        annotator.generator = make_generator(error=TransportError("connection refused"))
        outcome = annotator.annotate("a.md")
        assert outcome.status == FAILED
        assert isinstance(outcome.error, TransportError)
        assert storage.notes["a.md"] == "content"
        assert tagged.get("a.md") is None

    def test_read_failure(self, annotator):
        outcome = annotator.annotate("missing.md")
        assert outcome.status == FAILED
        assert isinstance(outcome.error, FileNotFoundError)

    def test_write_failure(self, storage, annotator, tagged):
        storage.put("a.md", "content")
        storage.write = MagicMock(side_effect=PermissionError("read-only"))
        outcome = annotator.annotate("a.md")
        assert outcome.status == FAILED
        assert isinstance(outcome.error, PermissionError)
        assert tagged.get("a.md") is None

    def test_no_valid_tags(self, storage, annotator, tagged, make_generator):
        storage.put("a.md", "content")
        annotator.generator = make_generator("Summary: x\nSuggested tags: cooking, gardening")
        outcome = annotator.annotate("a.md")
        assert outcome.status == SKIPPED
        assert outcome.reason == NO_TAGS
        assert storage.writes == []
        assert tagged.get("a.md") is None

    def test_cancelled_during_request(self, storage, generator, annotator):
        storage.put("a.md", "content")
        cancel = threading.Event()
        generator.on_call = lambda prompt: cancel.set()
        outcome = annotator.annotate("a.md", cancel=cancel)
        assert outcome.status == CANCELLED
        assert storage.notes["a.md"] == "content"

    @pytest.mark.parametrize("overrides", [
        {"model": None},
        {"vocabulary": []},
        {"min_tags": 4, "max_tags": 2},
    ])
    def test_invalid_config_raises(self, storage, generator, tagged, make_config, overrides):
        storage.put("a.md", "content")
        annotator = DocumentAnnotator(storage, generator, tagged, make_config(**overrides))
        with pytest.raises(ConfigurationError):
            annotator.annotate("a.md")
        assert generator.calls == []

    def test_genre_tag_written_first(self, storage, tagged, make_config, make_generator):
        storage.put("poem.md", "Roses are red")
        generator = make_generator("Summary: A poem.\nSuggested tags: poesia, work, personal, ideas")
        config = make_config(vocabulary=["work", "personal", "ideas"], max_tags=3, detect_genre=True)
        annotator = DocumentAnnotator(storage, generator, tagged, config)
        outcome = annotator.annotate("poem.md")
        assert outcome.tags == ["poesia", "work", "personal", "ideas"]
        assert "tags: [poesia, work, personal, ideas]" in storage.notes["poem.md"]


class TestUntag:
    def test_roundtrip(self, storage, annotator, tagged):
        storage.put("hello.md", "# Hello")
        annotator.annotate("hello.md")
        outcome = annotator.untag("hello.md")
        assert outcome.status == STRIPPED
        assert storage.notes["hello.md"] == "# Hello"
        assert tagged.get("hello.md") is None

    def test_keeps_user_keys(self, storage, annotator):
        original = "---\ntitle: Trip\n---\nBody\n"
        storage.put("trip.md", original)
        annotator.annotate("trip.md")
        annotator.untag("trip.md")
        assert storage.notes["trip.md"] == original

    def test_untagged_note_is_noop(self, storage, annotator):
        storage.put("a.md", "---\ntags: [mine]\n---\nBody")
        outcome = annotator.untag("a.md")
        assert outcome.status == NOOP
        assert outcome.reason == NOT_TAGGED
        assert storage.writes == []

    def test_missing_note_fails(self, annotator):
        assert annotator.untag("missing.md").status == FAILED

    def test_untag_needs_no_model(self, storage, tagged, make_config, make_generator):
        """Untagging works even when no model is configured."""
        storage.put("a.md", "---\nLLM-tagged: x\n---\nBody")
        annotator = DocumentAnnotator(storage, make_generator(), tagged, make_config(model=None))
        assert annotator.untag("a.md").status == STRIPPED
        assert storage.notes["a.md"] == "Body"
