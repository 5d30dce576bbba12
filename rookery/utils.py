"""Utility functions for Rookery.

This module contains the string and filename helpers shared by the file
model, the renderer and the CLI.

Key functions:
    split_date_prefix: Separate a YYYY-MM-DD- prefix from a filename stem.
    extract_date_from_name: Parse the date prefix of a filename.
    slugify: Convert free text to a URL slug.
    humanize: Turn a content name into a fallback title.
    site_name_from_root: Infer a display name from a project directory.
    extract_title: Find the first level-1 markdown heading.
    extract_excerpt: First paragraph after the title, capped by word count.
    reading_time: Estimated minutes to read a text.
    ensure_clean_dir: Empty a directory one level deep.
"""

from __future__ import annotations

import math
import re
import shutil
from datetime import date
from pathlib import Path

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")
TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)

EXCERPT_WORDS = 150
EXCERPT_ELLIPSIS = "..."
WORDS_PER_MINUTE = 200


def split_date_prefix(name: str) -> tuple[str | None, str]:
    """Split a leading YYYY-MM-DD- prefix from a filename stem.

    Args:
        name: Filename stem such as "2026-01-06-hello".

    Returns:
        Tuple of (prefix without the trailing dash, remainder). The prefix
        is None when the stem does not start with a date.

    Examples:
        >>> split_date_prefix("2026-01-06-hello")
        ('2026-01-06', 'hello')

        >>> split_date_prefix("about")
        (None, 'about')
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None, name
    return match.group(0)[:-1], name[match.end() :]


def extract_date_from_name(name: str) -> date | None:
    """Extract a date from a filename with YYYY-MM-DD- prefix.

    Args:
        name: Filename (or stem).

    Returns:
        date if a valid calendar date prefix is found, None otherwise.

    Examples:
        >>> extract_date_from_name("2026-01-06-hello.blog.md")
        datetime.date(2026, 1, 6)

        >>> extract_date_from_name("2026-13-45-hello.blog.md") is None
        True
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def slugify(text: str) -> str:
    """Convert free text to a lowercase, hyphen-separated slug.

    Args:
        text: Text such as "My First Post".

    Returns:
        URL-friendly slug, "untitled" when nothing usable remains.
    """
    cleaned = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return cleaned.strip("-") or "untitled"


def humanize(name: str) -> str:
    """Turn a content name into a readable fallback title.

    Hyphens and underscores become spaces and only the first letter is
    upper-cased.

    Examples:
        >>> humanize("hello_world")
        'Hello world'
    """
    return name.replace("-", " ").replace("_", " ").capitalize()


def site_name_from_root(root: Path) -> str:
    """Infer a site display name from the project directory name.

    Strips a trailing ".site" marker, replaces separators with spaces and
    capitalizes each word.

    Examples:
        >>> site_name_from_root(Path("/tmp/my-blog.site"))
        'My Blog'
    """
    base = root.name
    if base.endswith(".site"):
        base = base[: -len(".site")]
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word)


def extract_title(text: str) -> str | None:
    """Return the text of the first level-1 heading, if any."""
    match = TITLE_RE.search(text)
    return match.group(1).strip() if match else None


def extract_excerpt(text: str, limit: int = EXCERPT_WORDS) -> str:
    """Extract the first paragraph after the title heading.

    Args:
        text: Raw markdown.
        limit: Maximum number of words kept.

    Returns:
        Whitespace-collapsed paragraph. When the paragraph has more than
        ``limit`` words it is cut and "..." is appended.
    """
    body = TITLE_RE.sub("", text, count=1).strip()
    paragraphs = re.split(r"\n\s*\n", body, maxsplit=1)
    words = paragraphs[0].split() if paragraphs else []
    excerpt = " ".join(words[:limit])
    if len(words) > limit:
        excerpt += EXCERPT_ELLIPSIS
    return excerpt


def reading_time(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Estimate reading time in whole minutes (at least one)."""
    word_count = len(text.split())
    return max(1, math.ceil(word_count / words_per_minute))


def ensure_clean_dir(path: Path) -> None:
    """Remove every entry directly under ``path``.

    Does nothing when the directory does not exist. Subdirectories are
    removed with their contents.

    Args:
        path: Directory to empty.
    """
    if not path.is_dir():
        return
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
