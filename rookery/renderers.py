"""Markdown rendering for Rookery.

Converts GitHub-flavored markdown to HTML with mistune and highlights
fenced code blocks with Pygments. Highlighted blocks are wrapped in an
element carrying the ``highlight`` CSS class.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
"""

from __future__ import annotations

import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

HIGHLIGHT_CSS_CLASS = "highlight"

GFM_PLUGINS = ["strikethrough", "footnotes", "table", "url", "task_lists"]


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def highlight_code(code: str, language: str | None = None) -> str:
    """Highlight a code block with Pygments.

    Unknown or missing languages fall back to plain text so every fenced
    block still gets the highlight wrapper.

    Args:
        code: The code content.
        language: Language identifier (e.g., 'python', 'ruby').

    Returns:
        HTML string with highlighted code.
    """
    lexer = TextLexer()
    if language:
        try:
            lexer = get_lexer_by_name(language, stripall=True)
        except ClassNotFound:
            pass
    formatter = HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS)
    return highlight(code, lexer, formatter)


def pygments_css() -> str:
    """Return Pygments CSS styles for the highlight class."""
    return HtmlFormatter().get_style_defs(f".{HIGHLIGHT_CSS_CLASS}")


class _HighlightRenderer(mistune.HTMLRenderer):
    """Mistune HTML renderer with heading anchors and Pygments code blocks."""

    def __init__(self):
        super().__init__(escape=False)
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        """Render a heading with an auto-generated, de-duplicated id."""
        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        language = info.split()[0] if info and info.strip() else None
        return highlight_code(code, language)


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A new mistune parser is created per call; the renderer keeps per-document
    state (heading ids), so instances of this class are safe to share across
    threads.
    """

    def __init__(self, plugins: list[str] | None = None):
        self.plugins = list(plugins or GFM_PLUGINS)

    def render(self, content: str) -> str:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source content.

        Returns:
            Rendered HTML.
        """
        markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(), plugins=self.plugins
        )
        return markdown(content)
