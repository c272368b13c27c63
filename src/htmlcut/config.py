"""
Configuration for htmlcut.

All tunable data in one place. Loaded from:
1. Defaults (this file)
2. Config file (~/.config/htmlcut/config.toml) if exists
3. Environment variables (HTMLCUT_*) override file
4. CLI flags override everything

Library callers can also build a Config directly and pass it to cut().
"""

from __future__ import annotations

import contextlib
import logging
import os
import tomllib  # stdlib in 3.11+
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Tags that are irrelevant or harmful in a preview
DENYLIST_TAGS = frozenset({
    "applet", "area", "audio", "base", "blockquote", "button", "canvas", "code", "col",
    "data", "datalist", "details", "dialog", "dir", "embed", "fieldset", "figcapture",
    "figure", "font", "footer", "form", "frame", "frameset", "header", "iframe", "img",
    "input", "ins", "kbd", "legend", "link", "main", "map", "meta", "nav", "noframes",
    "noscript", "object", "optgroup", "option", "output", "picture", "pre", "progress",
    "q", "rp", "rt", "ruby", "samp", "script", "select", "source", "style", "summary",
    "svg", "table", "tbody", "td", "template", "textarea", "tfoot", "th", "thead",
    "title", "tr", "track", "tt", "var", "video",
})

# Tags that render as a separate block, counted against the paragraph limit
PARAGRAPH_TAGS = frozenset({"article", "aside", "div", "li", "p", "section"})

# Tags that can hold text directly, so the marker may go inside them.
# Lists are missing on purpose: their text lives in <li>.
TEXT_CAPABLE_TAGS = frozenset({
    # sectioning
    "address", "h1", "h2", "h3", "h4", "h5", "h6", "article", "section", "aside",
    # text blocks
    "blockquote", "dd", "div", "dl", "dt", "figcaption", "li", "p", "pre",
    # inline
    "a", "abbr", "b", "bdi", "bdo", "cite", "code", "data", "dfn", "em", "i", "kbd",
    "mark", "q", "s", "samp", "small", "span", "strong", "sub", "sup", "time", "u", "var",
    # other
    "noscript", "del", "ins", "td", "th", "caption", "details", "dialog",
})

# Punctuation that looks orphaned at the end of a preview
PUNCTUATION_PATTERN = r"([:;,\[(\-{<_„“‘«「﹁‹『﹃《〈]+|\.{2,})$"


@dataclass
class TagsConfig:
    """Tag name sets, all lower-case."""
    denylist: frozenset[str] = DENYLIST_TAGS
    paragraph: frozenset[str] = PARAGRAPH_TAGS
    text_capable: frozenset[str] = TEXT_CAPABLE_TAGS


@dataclass
class CutConfig:
    """Core truncation settings."""
    default_length: int = 300  # CLI --length default
    marker: str = "…"
    punctuation: str = PUNCTUATION_PATTERN
    max_depth: int = 256  # walker recursion ceiling
    parser: str = "html.parser"  # BeautifulSoup tree builder


@dataclass
class Config:
    """Root config with all settings."""
    tags: TagsConfig = field(default_factory=TagsConfig)
    cut: CutConfig = field(default_factory=CutConfig)


def tag_set(names) -> frozenset[str]:
    """Normalize an iterable (or comma separated string) of tag names."""
    if isinstance(names, str):
        names = names.split(",")
    return frozenset(name.strip().lower() for name in names if name.strip())


def get_config_path() -> Path:
    """Get config file path, respecting XDG."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "htmlcut" / "config.toml"
    return Path.home() / ".config" / "htmlcut" / "config.toml"


def load_config() -> Config:
    """Load config from file if exists, else return defaults."""
    config = Config()
    path = get_config_path()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            config = _apply_toml(config, data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.warning("Ignoring config file %s: %s", path, e)
            config = Config()

    # env var overrides
    config = _apply_env(config)

    return config


def _apply_toml(config: Config, data: dict) -> Config:
    """Apply toml data to config."""
    if "tags" in data:
        t = data["tags"]
        if "denylist" in t:
            config.tags.denylist = tag_set(t["denylist"])
        if "paragraph" in t:
            config.tags.paragraph = tag_set(t["paragraph"])
        if "text_capable" in t:
            config.tags.text_capable = tag_set(t["text_capable"])

    if "cut" in data:
        c = data["cut"]
        if "default_length" in c:
            config.cut.default_length = int(c["default_length"])
        if "marker" in c:
            config.cut.marker = str(c["marker"])
        if "punctuation" in c:
            config.cut.punctuation = str(c["punctuation"])
        if "max_depth" in c:
            config.cut.max_depth = int(c["max_depth"])
        if "parser" in c:
            config.cut.parser = str(c["parser"])

    return config


def _apply_env(config: Config) -> Config:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, str, object]] = {
        "HTMLCUT_DEFAULT_LENGTH": ("cut", "default_length", int),
        "HTMLCUT_MARKER": ("cut", "marker", str),
        "HTMLCUT_PUNCTUATION": ("cut", "punctuation", str),
        "HTMLCUT_MAX_DEPTH": ("cut", "max_depth", int),
        "HTMLCUT_PARSER": ("cut", "parser", str),
        "HTMLCUT_DENYLIST": ("tags", "denylist", tag_set),
        "HTMLCUT_PARAGRAPH_TAGS": ("tags", "paragraph", tag_set),
        "HTMLCUT_TEXT_CAPABLE": ("tags", "text_capable", tag_set),
    }

    for env_key, (section, attr, conv) in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            with contextlib.suppress(ValueError):
                setattr(getattr(config, section), attr, conv(val))

    return config


# Module-level config instance, loaded once on first use
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached config so the next get_config() reloads it."""
    global _config
    _config = None
