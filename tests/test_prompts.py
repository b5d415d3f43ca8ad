"""Tests for prompt construction."""

from notetagger.prompts import (
    LITERARY_GENRES,
    MAX_CONTENT_CHARS,
    build_instructions,
    build_prompt,
)


class TestBuildInstructions:
    def test_lists_vocabulary_verbatim(self, make_config):
        text = build_instructions(make_config(), ["work", "Personal Life"])
        assert "Available thematic tags: work, Personal Life" in text

    def test_states_bounds(self, make_config):
        text = build_instructions(make_config(min_tags=2, max_tags=4), ["a"])
        assert "between 2 and 4 THEMATIC tags" in text
        assert "2-4" in text

    def test_summary_language(self, make_config):
        text = build_instructions(make_config(language="Spanish"), ["a"])
        assert "summary in Spanish" in text

    def test_format_lines(self, make_config):
        text = build_instructions(make_config(), ["a"])
        assert "Summary: [your summary here]" in text
        assert "Suggested tags: tag1, tag2, tag3" in text

    def test_no_genre_block_by_default(self, make_config):
        text = build_instructions(make_config(), ["a"])
        assert "LITERARY GENRE" not in text
        assert "poesia" not in text

    def test_genre_block(self, make_config):
        text = build_instructions(make_config(detect_genre=True), ["a"])
        assert "LITERARY GENRE DETECTION" in text
        assert ", ".join(LITERARY_GENRES) in text
        assert "Suggested tags: genre_tag, tag1, tag2, tag3" in text

    def test_custom_instructions_appended(self, make_config):
        text = build_instructions(make_config(custom_instructions="Prefer short tags."), ["a"])
        assert text.endswith("Additional Custom Instructions:\nPrefer short tags.")

    def test_no_custom_section_when_empty(self, make_config):
        assert "Additional Custom" not in build_instructions(make_config(), ["a"])


class TestBuildPrompt:
    def test_contains_content(self, make_config):
        prompt = build_prompt(make_config(), ["a"], "# My note\nBody")
        assert "Content to analyze:\n# My note\nBody" in prompt

    def test_ends_with_format_reminder(self, make_config):
        prompt = build_prompt(make_config(), ["a"], "x")
        assert prompt.endswith("Suggested tags: [tag1, tag2, tag3]")

    def test_long_content_truncated(self, make_config):
        content = "a" * MAX_CONTENT_CHARS + "TAIL"
        prompt = build_prompt(make_config(), ["v"], content)
        assert "TAIL" not in prompt
        assert "a" * MAX_CONTENT_CHARS in prompt
