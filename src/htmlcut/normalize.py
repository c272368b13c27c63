"""
Pre-normalization of raw input before it is parsed.

Strips comments, CDATA and doctypes, records what the input declared on its
own (a leading <p>, an <html> root) and measures its visible length. That
length is the baseline for deciding later whether anything was cut.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .dom import collapse_tag_whitespace, drop_declarations, serialize, visible_length

COMMENT_PATTERN = re.compile(r"(\s*)<!--.*?-->(\s*)", re.S)
CDATA_PATTERN = re.compile(r"\s*<!\[CDATA\[.*?]]>\s*", re.S | re.I)
DOCTYPE_PATTERN = re.compile(r"\s*<!DOCTYPE[^>\[]*(\[[^\]]*])?>\s*", re.M | re.I)

PARAGRAPH_OPENING = re.compile(r"^\s*<p>\s*", re.I)

# Heuristic: the whole input is one <html ...>...</html> element. Nested or
# repeated roots still count as wrapped as long as the outer pair matches.
WRAPPED_PATTERN = re.compile(r"^\s*<html( [^<>]*)?>.*</html>\s*$", re.S | re.I)

OPENING_TAG = re.compile(r"<\s*([a-zA-Z][\w:-]*)")


@dataclass
class Prepared:
    """Input ready for cutting, plus what we learned about it."""
    text: str
    initial_length: int
    preserve_paragraph: bool = False  # input opened with its own <p>
    added_wrapper: bool = False  # we wrapped text in <html> and must unwrap it


def _comment_gap(match: re.Match) -> str:
    # "a <!-- x --> b" must not glue a and b together
    before, after = match.groups()
    return (before or after)[:1]


def strip_declarations(text: str) -> str:
    """Remove comments, CDATA sections and doctypes."""
    text = COMMENT_PATTERN.sub(_comment_gap, text)
    text = CDATA_PATTERN.sub("", text)
    return DOCTYPE_PATTERN.sub("", text)


def declares_paragraph(text: str) -> bool:
    return PARAGRAPH_OPENING.match(text) is not None


def is_wrapped(text: str) -> bool:
    return WRAPPED_PATTERN.match(text) is not None


def measure(text: str) -> int:
    """
    Visible length as it will be measured after serialization.

    Whitespace touching tags does not survive a parse and serialize round
    trip, so it is not counted here either.
    """
    return visible_length(collapse_tag_whitespace(text))


def opening_tags(text: str) -> Counter[str]:
    """How often each tag (lower-cased) is opened in text."""
    return Counter(name.lower() for name in OPENING_TAG.findall(text))


def prepare(text: str) -> Prepared:
    """
    Normalize raw text.

    The result is always enclosed in a single root element: parsing without
    implied wrappers mangles input that mixes bare text and markup otherwise.
    """
    text = strip_declarations(text)
    prepared = Prepared(
        text=text,
        initial_length=measure(text),
        preserve_paragraph=declares_paragraph(text),
    )
    if not is_wrapped(text):
        prepared.text = f"<html>{text}</html>"
        prepared.added_wrapper = True
    return prepared


def prepare_document(document: BeautifulSoup) -> Prepared:
    """
    Describe an already parsed document. Nothing is wrapped.

    Declarations are detached from the document, as they are stripped from
    text input, so no doctype or comment reaches the output.
    """
    drop_declarations(document)
    text = serialize(document)
    return Prepared(
        text=text,
        initial_length=measure(text),
        preserve_paragraph=declares_paragraph(text),
    )
