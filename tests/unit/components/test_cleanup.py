"""
Unit tests for trailing cleanup and marker placement.
"""

from htmlcut.cleanup import (
    drop_synthetic_paragraph,
    finish,
    limit_text_paragraphs,
    place_marker,
    strip_trailing_punctuation,
    unwrap,
)
from htmlcut.config import PUNCTUATION_PATTERN, TEXT_CAPABLE_TAGS
from htmlcut.normalize import Prepared


class TestPlaceMarker:
    def test_before_text_capable_closer(self):
        assert place_marker("<div>Testing</div>", "…", TEXT_CAPABLE_TAGS) == "<div>Testing…</div>"

    def test_no_closing_tags_appends(self):
        assert place_marker("Testing", "…", TEXT_CAPABLE_TAGS) == "Testing…"

    def test_skips_structural_containers(self):
        text = "<ul><li>One</li></ul>"
        assert place_marker(text, "…", TEXT_CAPABLE_TAGS) == "<ul><li>One…</li></ul>"

    def test_outermost_text_capable_closer_wins(self):
        text = "<p>Some <b>bold</b></p>"
        assert place_marker(text, "…", TEXT_CAPABLE_TAGS) == "<p>Some <b>bold</b>…</p>"

    def test_no_text_capable_closer_appends(self):
        text = "<ul><li>One</li></ul>"
        assert place_marker(text, "…", frozenset({"p"})) == "<ul><li>One</li></ul>…"

    def test_closing_tags_in_middle_ignored(self):
        text = "<b>a</b> tail"
        assert place_marker(text, "…", TEXT_CAPABLE_TAGS) == "<b>a</b> tail…"

    def test_empty_text(self):
        assert place_marker("", "…", TEXT_CAPABLE_TAGS) == "…"


class TestStripTrailingPunctuation:
    def test_comma(self):
        assert strip_trailing_punctuation("Hello,", PUNCTUATION_PATTERN) == "Hello"

    def test_run_of_periods(self):
        assert strip_trailing_punctuation("Wait...", PUNCTUATION_PATTERN) == "Wait"

    def test_single_period_kept(self):
        assert strip_trailing_punctuation("Done.", PUNCTUATION_PATTERN) == "Done."

    def test_opening_quotes_and_brackets(self):
        assert strip_trailing_punctuation("He said «", PUNCTUATION_PATTERN) == "He said "
        assert strip_trailing_punctuation("see (", PUNCTUATION_PATTERN) == "see "

    def test_character_reference_kept_whole(self):
        assert strip_trailing_punctuation("Tom &amp;", PUNCTUATION_PATTERN) == "Tom &amp;"
        assert strip_trailing_punctuation("a &#8230;", PUNCTUATION_PATTERN) == "a &#8230;"

    def test_line_breaks_at_edges(self):
        assert strip_trailing_punctuation("<br><br>text<br>", PUNCTUATION_PATTERN) == "text"


class TestLimitTextParagraphs:
    def test_keeps_first_lines(self):
        text = "First line\nSecond line\nThird line"
        assert limit_text_paragraphs(text, 2) == "First line\r\nSecond line"

    def test_blank_lines_are_one_separator(self):
        text = "First\n\n\nSecond"
        assert limit_text_paragraphs(text, 1) == "First"

    def test_under_limit_unchanged(self):
        assert limit_text_paragraphs("One\nTwo", 2) == "One\nTwo"

    def test_breaks_next_to_tags_ignored(self):
        text = "<p>One</p>\n<p>Two</p>"
        assert limit_text_paragraphs(text, 1) == "<p>One</p><p>Two</p>"

    def test_space_between_inline_elements_kept(self):
        text = "<b>a</b> <i>b</i>"
        assert limit_text_paragraphs(text, 1) == text


class TestWrappers:
    def test_unwrap(self):
        assert unwrap("<html><p>a</p></html>") == "<p>a</p>"

    def test_unwrap_without_wrapper(self):
        assert unwrap("<p>a</p>") == "<p>a</p>"

    def test_drop_single_paragraph(self):
        assert drop_synthetic_paragraph("<p>text</p>") == "text"

    def test_keep_several_paragraphs(self):
        text = "<p>a</p><p>b</p>"
        assert drop_synthetic_paragraph(text) == text

    def test_keep_paragraph_followed_by_other_content(self):
        text = "<p>a</p><div>b</div>"
        assert drop_synthetic_paragraph(text) == text


class TestFinish:
    def _finish(self, text, prepared, paragraphs=0):
        return finish(
            text,
            prepared,
            paragraphs=paragraphs,
            marker="…",
            punctuation=PUNCTUATION_PATTERN,
            text_capable=TEXT_CAPABLE_TAGS,
        )

    def test_nothing_cut_no_marker(self):
        prepared = Prepared(text="<html>short</html>", initial_length=5, added_wrapper=True)
        assert self._finish(prepared.text, prepared) == "short"

    def test_cut_gets_marker(self):
        prepared = Prepared(text="", initial_length=24, added_wrapper=True)
        assert self._finish("<html><div>Testing</div></html>", prepared) == "<div>Testing…</div>"

    def test_declared_paragraph_preserved(self):
        prepared = Prepared(text="", initial_length=20, preserve_paragraph=True, added_wrapper=True)
        assert self._finish("<html><p>Some</p></html>", prepared) == "<p>Some…</p>"

    def test_synthetic_paragraph_removed(self):
        prepared = Prepared(text="", initial_length=20, added_wrapper=True)
        assert self._finish("<html><p>Some</p></html>", prepared) == "Some…"

    def test_punctuation_stripped_before_marker(self):
        prepared = Prepared(text="", initial_length=20)
        assert self._finish("Hello, world;", prepared) == "Hello, world…"
