"""
Error kinds raised by htmlcut.

Malformed markup is not an error: the parser recovers as best it can.
Only a tree too deep to walk, or a parser/serializer failure, is reported.
"""

from __future__ import annotations


class HTMLCutError(Exception):
    """Base class for all htmlcut failures."""


class StructureTooDeep(HTMLCutError):
    """Nesting exceeded the configured recursion ceiling."""

    def __init__(self, depth: int, limit: int):
        self.depth = depth
        self.limit = limit
        super().__init__(f"Markup nesting depth {depth} exceeds limit of {limit}")


class UpstreamParseError(HTMLCutError):
    """The markup parser or serializer failed. The original exception is chained."""
