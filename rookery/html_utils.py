"""HTML utility functions for Rookery.

This module provides HTML and XML escaping plus the SEO tag helpers that
are installed as template globals.

Functions:
    escape_html: Escape special HTML characters in a string.
    escape_xml: Escape special XML characters in a string.
    meta_description: <meta name="description"> tag.
    canonical_tag: <link rel="canonical"> tag.
    og_tags: Open Graph meta tags.
    twitter_tags: Twitter Card meta tags.
    seo_tags: All of the above at once.
"""

from __future__ import annotations

from markupsafe import Markup

_TAG_SEPARATOR = "\n    "


def escape_html(text: object) -> str:
    """Escape special HTML characters in a string.

    Converts &, <, >, " and ' to entities. None becomes an empty string.

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    if text is None:
        return ""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def escape_xml(text: object) -> str:
    """Escape text for inclusion in XML element content or attributes."""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def meta_description(description: str) -> Markup:
    return Markup(f'<meta name="description" content="{escape_html(description)}" />')


def canonical_tag(url: str) -> Markup:
    return Markup(f'<link rel="canonical" href="{escape_html(url)}" />')


def og_tags(
    title: str,
    description: str,
    url: str,
    type: str = "website",
    image: str | None = None,
) -> Markup:
    """Generate Open Graph meta tags."""
    tags = [
        f'<meta property="og:title" content="{escape_html(title)}" />',
        f'<meta property="og:description" content="{escape_html(description)}" />',
        f'<meta property="og:url" content="{escape_html(url)}" />',
        f'<meta property="og:type" content="{escape_html(type)}" />',
    ]
    if image:
        tags.append(f'<meta property="og:image" content="{escape_html(image)}" />')
    return Markup(_TAG_SEPARATOR.join(tags))


def twitter_tags(
    title: str,
    description: str,
    card: str = "summary",
    image: str | None = None,
    site: str | None = None,
    creator: str | None = None,
) -> Markup:
    """Generate Twitter Card meta tags. Optional values are omitted when empty."""
    tags = [
        f'<meta name="twitter:card" content="{escape_html(card)}" />',
        f'<meta name="twitter:title" content="{escape_html(title)}" />',
        f'<meta name="twitter:description" content="{escape_html(description)}" />',
    ]
    for name, value in (("image", image), ("site", site), ("creator", creator)):
        if value:
            tags.append(f'<meta name="twitter:{name}" content="{escape_html(value)}" />')
    return Markup(_TAG_SEPARATOR.join(tags))


def seo_tags(
    title: str,
    description: str,
    url: str,
    image: str | None = None,
    type: str = "website",
) -> Markup:
    """Generate description, canonical, Open Graph and Twitter tags together.

    Args:
        title: Page title.
        description: Page description, usually the excerpt.
        url: Canonical absolute URL of the page.
        image: Optional share image URL.
        type: Open Graph object type.

    Returns:
        Markup-safe HTML string.
    """
    tags = [
        meta_description(description),
        canonical_tag(url),
        og_tags(title, description, url, type=type, image=image),
        twitter_tags(title, description, image=image),
    ]
    return Markup(_TAG_SEPARATOR.join(str(tag) for tag in tags))
