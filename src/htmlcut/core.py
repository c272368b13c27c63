"""
Core truncation algorithm for htmlcut.

Implements:
- Budget walk: children take budget in document order, overflowing ones
  are cut (text) or walked recursively (elements)
- Tree passes after the walk: denylist filter, paragraph limiter, empty pruner
- cut(): the whole pipeline, from raw text to a preview with a marker
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement

from .cleanup import finish
from .config import Config, get_config
from .dom import (
    check_depth,
    collapse_tag_whitespace,
    is_empty_element,
    is_markup_declaration,
    node_length,
    parse_fragment,
    serialize,
    tag_name,
)
from .errors import StructureTooDeep
from .normalize import Prepared, opening_tags, prepare, prepare_document

logger = logging.getLogger(__name__)

# One unit of visible text: a character reference or a single character
_UNIT = r"(?:&(?:[a-z\d]+|#\d+|#x[a-f\d]+);|.)"


def truncate_words(text: str, max_chars: int) -> str:
    """
    Longest prefix of at most max_chars units that ends on a word boundary.

    Character references count as one unit and are never split. With no
    budget left the prefix is empty. If no boundary exists within budget the
    text comes back unchanged, so the caller sees it still does not fit.
    """
    if max_chars <= 0:
        return ""
    match = re.match(rf"({_UNIT}{{1,{max_chars}}}\b)", text, re.S | re.I)
    if match is None:
        return text
    return match.group(1)


def walk(
    node: PageElement,
    budget: int,
    config: Config | None = None,
    depth: int = 0,
) -> PageElement:
    """
    Shrink node so its visible length fits budget.

    Children are visited in document order. Each either fits whole, gets
    shortened (text is cut at a word boundary, elements are walked with what
    budget remains) or is dropped. Once a child alone was long enough to use
    up the whole budget, the cut point is found and later siblings are
    dropped, so the preview never skips ahead into the middle of the content.

    Elements are shrunk in place and returned. Text nodes are immutable, so a
    cut text node is returned as a new, detached string.
    """
    if config is None:
        config = get_config()
    if depth > config.cut.max_depth:
        raise StructureTooDeep(depth, config.cut.max_depth)

    if isinstance(node, NavigableString):
        if is_markup_declaration(node) or node_length(node) <= budget:
            return node
        return type(node)(collapse_tag_whitespace(truncate_words(str(node), budget)))

    children = list(node.contents)
    if not children:
        return node

    consumed = 0
    final_cut = False
    keep: set[int] = set()
    replacements: dict[int, PageElement] = {}

    for index, child in enumerate(children):
        # Comments and the like are carried along, unmeasured
        if is_markup_declaration(child):
            if not final_cut:
                keep.add(index)
            continue

        if final_cut:
            continue

        length_before = node_length(child)
        if consumed + length_before <= budget:
            consumed += length_before
            keep.add(index)
            continue

        remaining = budget - consumed
        if isinstance(child, NavigableString):
            shortened = type(child)(truncate_words(str(child), remaining))
        else:
            shortened = walk(child, remaining, config, depth + 1)

        length_after = node_length(shortened)
        if length_after == 0 or consumed + length_after > budget:
            # Nothing usable left, or no word boundary within budget
            continue

        consumed += length_after
        keep.add(index)
        if shortened is not child:
            replacements[index] = shortened
        if length_before >= budget:
            final_cut = True

    # Back to front, so positions of earlier children stay valid
    for index in range(len(children) - 1, -1, -1):
        child = children[index]
        if index not in keep:
            child.extract()
        elif index in replacements:
            child.replace_with(replacements[index])

    return node


def remove_denylisted(document: Tag, names: frozenset[str]) -> int:
    """Remove every element named in names, with its subtree."""
    matches = [tag for tag in document.find_all(True) if tag_name(tag) in names]
    for tag in reversed(matches):
        tag.decompose()
    if matches:
        logger.debug("Removed %d denylisted elements", len(matches))
    return len(matches)


def limit_paragraphs(document: Tag, names: frozenset[str], paragraphs: int) -> int:
    """
    Remove trailing content until at most `paragraphs` paragraph elements remain.

    All elements are removed in reverse document order, not only paragraphs,
    so later content goes first and the beginning is what survives.
    """
    if paragraphs <= 0:
        return 0

    tags = document.find_all(True)
    current = sum(1 for tag in tags if tag_name(tag) in names)
    if current <= paragraphs:
        return 0

    removed = 0
    for tag in reversed(tags):
        if current <= paragraphs:
            break
        if tag_name(tag) in names:
            current -= 1
            removed += 1
        tag.decompose()

    logger.debug("Removed %d paragraphs, %d left", removed, current)
    return removed


def prune_empty(document: Tag) -> int:
    """Remove empty elements until none are left. A parent may empty out in turn."""
    removed = 0
    while True:
        empty = [tag for tag in document.find_all(True) if is_empty_element(tag)]
        if not empty:
            return removed
        for tag in reversed(empty):
            tag.decompose()
        removed += len(empty)


def trim_tree(
    document: Tag,
    paragraphs: int,
    strip_denylisted: bool,
    config: Config,
) -> None:
    """Structural passes that run after the walk."""
    if strip_denylisted:
        remove_denylisted(document, config.tags.denylist)
    limit_paragraphs(document, config.tags.paragraph, paragraphs)
    prune_empty(document)


def _wrapper_depth(prepared: Prepared) -> int:
    return 1 if prepared.added_wrapper else 0


def _needs_tree_passes(text: str, paragraphs: int, strip_denylisted: bool, config: Config) -> bool:
    """Short text is only parsed if it carries denylisted tags or too many paragraphs."""
    tags = opening_tags(text)
    if strip_denylisted and any(name in config.tags.denylist for name in tags):
        return True
    if paragraphs > 0:
        return sum(tags[name] for name in config.tags.paragraph) > paragraphs
    return False


def cut(
    source: str | PageElement,
    length: int,
    paragraphs: int = 0,
    marker: str | None = None,
    strip_denylisted: bool = True,
    config: Config | None = None,
) -> str | PageElement:
    """
    Cut markup (or plain text) to `length` visible characters.

    Words are never split, tags stay balanced and empty elements are removed.
    The marker is added once, and only if visible text actually got shorter.

    Args:
        source: Text, or a BeautifulSoup document (both give text back), or any
            other Tag/NavigableString (walked in place and returned as a node)
        length: Visible characters allowed; negative means 0
        paragraphs: Maximum paragraph-like blocks; 0 means no limit
        marker: Appended to cut text; defaults to config.cut.marker ("…")
        strip_denylisted: Remove preview-unsuitable tags (config.tags.denylist)
        config: Tag sets and settings; defaults to get_config()

    Returns:
        The cut text, or the walked node for a non-document node
    """
    if config is None:
        config = get_config()
    if marker is None:
        marker = config.cut.marker
    length = max(length, 0)
    paragraphs = max(paragraphs, 0)

    if isinstance(source, BeautifulSoup):
        check_depth(source, config.cut.max_depth)
        prepared = prepare_document(source)
        document: BeautifulSoup | None = source
    elif isinstance(source, PageElement):
        return walk(source, length, config)
    else:
        prepared = prepare(source)
        document = None
        if prepared.initial_length > length or _needs_tree_passes(
            prepared.text, paragraphs, strip_denylisted, config
        ):
            document = parse_fragment(
                prepared.text,
                config.cut.parser,
                max_depth=config.cut.max_depth,
                wrapper_depth=_wrapper_depth(prepared),
            )

    logger.debug("Cutting %d visible chars to %d", prepared.initial_length, length)

    text = prepared.text
    if document is not None:
        if prepared.initial_length > length:
            # the wrapper <html> we added is not part of the caller's nesting
            walk(document, length, config, depth=-_wrapper_depth(prepared))
        trim_tree(document, paragraphs, strip_denylisted, config)
        text = collapse_tag_whitespace(serialize(document))

    return finish(
        text,
        prepared,
        paragraphs=paragraphs,
        marker=marker,
        punctuation=config.cut.punctuation,
        text_capable=config.tags.text_capable,
    )
