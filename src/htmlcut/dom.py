"""
DOM - markup tree helpers for htmlcut

Parsing and serialization are delegated to BeautifulSoup. A Document is a
BeautifulSoup object; its nodes are bs4 PageElements:

- Element: Tag
- Text: NavigableString (CData counts as text when measuring)
- Markup declarations: Comment, CData, Declaration, Doctype, ProcessingInstruction

Key invariant: every node has exactly one parent. Helpers here only read the
tree or detach nodes from it, they never attach a node in a second place.
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterator

from bs4 import (
    BeautifulSoup,
    CData,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)
from bs4.dammit import EntitySubstitution
from bs4.element import PageElement
from bs4.formatter import HTMLFormatter

from .errors import StructureTooDeep, UpstreamParseError

MARKUP_DECLARATIONS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

# Anything tag-shaped once entities are decoded: <b>, </b>, <!-- -->, <?pi?>
TAG_PATTERN = re.compile(r"<[a-zA-Z/!?][^>]*(?:>|$)")
# Whitespace that only lays out markup. Spaces between a closing tag and the
# next word, or a word and an opening tag, separate words and are kept.
BREAK_BEFORE_TAG = re.compile(r"\s*[\r\n]\s*(?=<)")
BREAK_AFTER_TAG = re.compile(r"(?<=>)\s*[\r\n]\s*")
SPACE_AFTER_OPENING = re.compile(r"(<[a-zA-Z][^<>]*>)\s+")
SPACE_BEFORE_CLOSING = re.compile(r"\s+(</)")

# Only &, < and > are escaped; void elements render as <br>, not <br/>
FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def collapse_tag_whitespace(text: str) -> str:
    """Drop layout whitespace next to tags: line breaks, and padding inside elements."""
    text = BREAK_BEFORE_TAG.sub("", text)
    text = BREAK_AFTER_TAG.sub("", text)
    text = SPACE_AFTER_OPENING.sub(r"\1", text)
    return SPACE_BEFORE_CLOSING.sub(r"\1", text)


def strip_tags(text: str) -> str:
    """Remove everything that looks like a tag."""
    return TAG_PATTERN.sub("", text)


def visible_length(text: str) -> int:
    """
    Characters a reader sees in markup: tags removed, then entities decoded.

    The order matters: "&lt;b" is text, and must not turn into a tag that
    hides everything up to the next ">".
    """
    return len(html.unescape(strip_tags(text)))


def is_markup_declaration(node: PageElement) -> bool:
    """Comments, CDATA, doctypes and processing instructions."""
    return isinstance(node, MARKUP_DECLARATIONS)


def is_text(node: PageElement) -> bool:
    """Text that counts towards visible length (CDATA included)."""
    if not isinstance(node, NavigableString):
        return False
    return isinstance(node, CData) or not is_markup_declaration(node)


def tag_name(tag: Tag) -> str:
    return tag.name.lower()


def node_text(node: PageElement) -> str:
    """Concatenated text content of a node and its descendants."""
    if isinstance(node, Tag):
        return "".join(str(s) for s in node.descendants if is_text(s))
    if is_text(node):
        return str(node)
    return ""


def node_length(node: PageElement) -> int:
    """Visible length of a node. Parsed text is already decoded, so it is counted as is."""
    return len(node_text(node))


def elements(root: Tag) -> Iterator[Tag]:
    """Traverse elements depth-first (document order), excluding root itself."""
    for node in root.descendants:
        if isinstance(node, Tag):
            yield node


def is_empty_element(tag: Tag) -> bool:
    """No attributes, no child elements and no non-whitespace text."""
    if tag.attrs:
        return False
    for child in tag.contents:
        if isinstance(child, Tag):
            return False
        if is_text(child) and child.strip():
            return False
    return True


def drop_blank_strings(root: Tag) -> int:
    """
    Remove whitespace-only text that only formats the source.

    A blank string is formatting when it spans a line break or sits at the
    edge of its parent. A single space between two inline elements is kept.
    """
    blanks = [
        node for node in root.descendants
        if isinstance(node, NavigableString)
        and not is_markup_declaration(node)
        and not node.strip()
        and ("\n" in node or node.previous_sibling is None or node.next_sibling is None)
    ]
    for node in blanks:
        node.extract()
    return len(blanks)


def drop_declarations(root: Tag) -> int:
    """Detach comments, CDATA sections, doctypes and processing instructions."""
    declarations = [node for node in root.descendants if is_markup_declaration(node)]
    for node in declarations:
        node.extract()
    return len(declarations)


def nesting_depth(root: Tag) -> int:
    """
    Deepest element nesting below root (a child of root is at depth 1).

    Computed in one pass over descendants, so arbitrarily deep trees are
    measured without recursion.
    """
    depths = {id(root): 0}
    deepest = 0
    for tag in elements(root):
        depth = depths[id(tag.parent)] + 1
        depths[id(tag)] = depth
        deepest = max(deepest, depth)
    return deepest


def check_depth(root: Tag, max_depth: int, wrapper_depth: int = 0) -> None:
    """Raise StructureTooDeep if root nests deeper than max_depth, not counting wrapper_depth levels."""
    depth = nesting_depth(root) - wrapper_depth
    if depth > max_depth:
        raise StructureTooDeep(depth, max_depth)


def parse_fragment(
    text: str,
    parser: str = "html.parser",
    max_depth: int | None = None,
    wrapper_depth: int = 0,
) -> BeautifulSoup:
    """
    Parse markup into a Document.

    No html/body/doctype is implied beyond what the parser builder adds on its
    own (html.parser adds nothing). Formatting whitespace is dropped and
    adjacent strings are merged.

    With max_depth set, nesting is checked before the tree is touched any
    further: merging strings recurses through the tree.
    """
    try:
        document = BeautifulSoup(text, parser)
    except Exception as e:
        raise UpstreamParseError(f"Failed to parse markup with {parser!r}: {e}") from e
    if max_depth is not None:
        check_depth(document, max_depth, wrapper_depth)
    drop_blank_strings(document)
    document.smooth()
    return document


def serialize(node: PageElement) -> str:
    """Render a node back to markup, without any declaration preamble."""
    try:
        if isinstance(node, Tag):
            return node.decode(formatter=FORMATTER)
        return node.output_ready(formatter=FORMATTER)
    except Exception as e:
        raise UpstreamParseError(f"Failed to serialize markup: {e}") from e
