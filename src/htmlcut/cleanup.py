"""
Trailing cleanup and marker placement.

Runs on the serialized text after all tree passes. Removes what the tree
passes cannot see (a synthetic wrapper, plain-text paragraphs, dangling
punctuation) and, only if visible text got shorter, places the marker.

The marker goes inside the last element that can hold text, so
"<p>Some text</p>" becomes "<p>Some…</p>" rather than "<p>Some</p>…".
"""

from __future__ import annotations

import logging
import re

from .normalize import Prepared, measure

logger = logging.getLogger(__name__)

# Any single line break sequence, like PCRE's \R
LINE_BREAK = r"(?:\r\n|[\n\v\f\r\x85\u2028\u2029])"
LINE_BREAKS = re.compile(rf"{LINE_BREAK}+")
BREAKS_BEFORE_TAG = re.compile(rf"{LINE_BREAK}+([><])")
BREAKS_AFTER_TAG = re.compile(rf"([><]){LINE_BREAK}+")
# Only layout gaps: "<b>a</b> <i>b</i>" keeps the space between the words
BREAK_BETWEEN_TAGS = re.compile(rf">\s*{LINE_BREAK}\s*<")

WRAPPER_PATTERN = re.compile(r"^\s*<html( [^<>]*)?>(.*)</html>\s*$", re.S | re.I)
EDGE_BREAKS = re.compile(r"^(?:<br\s*/?>)+|(?:<br\s*/?>)+$", re.I)
ENTITY_END = re.compile(r"&(?:[a-z\d]+|#\d+|#x[a-f\d]+);$", re.I)

PARAGRAPH_OPENING = re.compile(r"^\s*<p>\s*", re.I)
PARAGRAPH_CLOSING = re.compile(r"\s*</p>\s*$", re.I)
ANY_PARAGRAPH = re.compile(r"<p[\s>]", re.I)

# Closing tags that end the text, after its last non-tag character
CLOSING_RUN = re.compile(r"^(.*[^></\s])((?:\s*<\s*/\s*[a-zA-Z\d\-]+\s*>\s*)+)$", re.S)
CLOSING_TAG = re.compile(r"<\s*/\s*([a-zA-Z\d\-]+)\s*>")


def unwrap(text: str) -> str:
    """Remove the <html> wrapper added before parsing."""
    match = WRAPPER_PATTERN.match(text)
    if match is None:
        return text
    return match.group(2)


def limit_text_paragraphs(text: str, paragraphs: int) -> str:
    """
    Keep the first `paragraphs` lines of text.

    Covers plain text with newlines that never went through the tree limiter.
    Runs of line breaks count as one separator.
    """
    text = BREAK_BETWEEN_TAGS.sub("><", text)
    text = BREAKS_BEFORE_TAG.sub(r"\1", text)
    text = BREAKS_AFTER_TAG.sub(r"\1", text)
    text = text.strip()
    segments = LINE_BREAKS.split(text)
    if len(segments) > paragraphs:
        text = "\r\n".join(segments[:paragraphs])
    return text


def strip_trailing_punctuation(text: str, pattern: str) -> str:
    """Drop punctuation left dangling at the end, then <br> runs at either end."""
    # the ; of a trailing &amp; is not punctuation
    if ENTITY_END.search(text) is None:
        text = re.sub(pattern, "", text)
    return EDGE_BREAKS.sub("", text)


def drop_synthetic_paragraph(text: str) -> str:
    """Unwrap a single <p> the input did not declare itself."""
    if PARAGRAPH_OPENING.match(text) is None or PARAGRAPH_CLOSING.search(text) is None:
        return text
    # with several paragraphs the outer tags belong to different elements
    if len(ANY_PARAGRAPH.findall(text)) != 1:
        return text
    text = PARAGRAPH_OPENING.sub("", text, count=1)
    return PARAGRAPH_CLOSING.sub("", text, count=1)


def place_marker(text: str, marker: str, text_capable: frozenset[str]) -> str:
    """
    Insert marker before the outermost trailing closing tag that can hold text.

    Falls back to appending when the text does not end in closing tags or
    none of them can hold text (e.g. only </ul></ol>).
    """
    match = CLOSING_RUN.match(text)
    if match is None:
        return text + marker

    closers = list(CLOSING_TAG.finditer(text, match.start(2)))
    for closer in reversed(closers):
        if closer.group(1).lower() in text_capable:
            position = closer.start()
            return text[:position] + marker + text[position:]

    return text + marker


def finish(
    text: str,
    prepared: Prepared,
    paragraphs: int,
    marker: str,
    punctuation: str,
    text_capable: frozenset[str],
) -> str:
    """Run all string-level cleanup and add the marker if anything was cut."""
    if prepared.added_wrapper:
        text = unwrap(text)

    if paragraphs > 0:
        text = limit_text_paragraphs(text, paragraphs)

    text = strip_trailing_punctuation(text, punctuation)

    if not prepared.preserve_paragraph:
        text = drop_synthetic_paragraph(text)

    current_length = measure(text)
    text = text.strip()

    if current_length >= prepared.initial_length:
        logger.debug("Nothing cut (%d visible chars), no marker", current_length)
        return text

    logger.debug("Cut %d -> %d visible chars", prepared.initial_length, current_length)
    return place_marker(text, marker, text_capable)
