"""
CLI interface for htmlcut.

Pipe-friendly preview tool: reads markup or text, prints it cut to a budget.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from .config import Config, get_config
from .core import cut
from .errors import HTMLCutError


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    cfg = get_config()

    parser = argparse.ArgumentParser(
        prog="htmlcut",
        description="Cut HTML or text to a length without breaking words or tags",
    )

    parser.add_argument(
        "file",
        nargs="?",
        help="Input file (reads from stdin if not provided)",
    )

    parser.add_argument(
        "--length",
        "-l",
        type=int,
        default=cfg.cut.default_length,
        help=f"Visible characters to keep (default: {cfg.cut.default_length})",
    )

    parser.add_argument(
        "--paragraphs",
        "-p",
        type=int,
        default=0,
        help="Maximum number of paragraphs, 0 for no limit",
    )

    parser.add_argument(
        "--marker",
        "-m",
        type=str,
        help=f"Text appended when something was cut (default: {cfg.cut.marker!r})",
    )

    parser.add_argument(
        "--keep-denylisted",
        action="store_false",
        dest="strip_denylisted",
        default=True,
        help="Keep tags that are normally removed from previews (img, table, script, ...)",
    )

    parser.add_argument(
        "--parser",
        type=str,
        help=f"BeautifulSoup tree builder (default: {cfg.cut.parser})",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log pipeline details to stderr",
    )

    return parser.parse_args(args)


def read_input(filepath: str | None) -> str:
    """Read from file or stdin."""
    if filepath:
        with open(filepath, encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def build_config(parsed: argparse.Namespace) -> Config:
    """Apply CLI overrides on top of the loaded config, without touching it."""
    cfg = get_config()
    if parsed.parser:
        return replace(cfg, cut=replace(cfg.cut, parser=parsed.parser))
    return cfg


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        stream=sys.stderr,
    )

    if parsed.length < 0:
        print(f"Error: Length must be >= 0, got {parsed.length}", file=sys.stderr)
        return 1
    if parsed.paragraphs < 0:
        print(f"Error: Paragraphs must be >= 0, got {parsed.paragraphs}", file=sys.stderr)
        return 1

    # Read content
    try:
        content = read_input(parsed.file)
    except FileNotFoundError:
        print(f"Error: File not found: {parsed.file}", file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    if not content:
        return 0

    try:
        output = cut(
            content,
            parsed.length,
            paragraphs=parsed.paragraphs,
            marker=parsed.marker,
            strip_denylisted=parsed.strip_denylisted,
            config=build_config(parsed),
        )
    except HTMLCutError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
