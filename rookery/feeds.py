"""Feed generation for Rookery.

This module generates the derived XML outputs of a build (RSS, Atom and
sitemap.xml) from already-scanned content files.

Classes:
    FeedGenerator: Abstract base class for feed generators.
    RSSGenerator: Generates feed.xml (RSS 2.0).
    AtomGenerator: Generates atom.xml (Atom 1.0).
    SitemapGenerator: Generates sitemap.xml.
    FeedRegistry: Registry for managing feed generators.

Functions:
    site_url: Base URL for absolute links, from the SITE_URL environment.
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime, time, timezone
from email.utils import format_datetime
from pathlib import Path

from .collections import BLOG_TYPES, ContentCollection
from .content import ContentFile
from .html_utils import escape_xml

DEFAULT_SITE_URL = "http://localhost:4000"
FEED_LIMIT = 20


def site_url() -> str:
    """Return the base URL for feeds, without a trailing slash."""
    return os.environ.get("SITE_URL", DEFAULT_SITE_URL).rstrip("/")


def _as_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _iso8601(day: date) -> str:
    return _as_utc(day).strftime("%Y-%m-%dT%H:%M:%SZ")


class FeedGenerator(ABC):
    """Abstract base class for feed generators.

    Subclasses implement specific feed formats (sitemap, RSS, Atom).
    """

    def __init__(self, site_name: str, base_url: str | None = None):
        self.site_name = site_name
        self.base_url = (base_url or site_url()).rstrip("/")

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(self, files: ContentCollection) -> str | None:
        """Generate feed content.

        Args:
            files: Every content file of the build.

        Returns:
            Feed content as a string, or None if the feed should not be
            written.
        """
        ...

    def url_for(self, content_file: ContentFile) -> str:
        return f"{self.base_url}/{content_file.output_path}"

    def write(self, output_dir: Path, files: ContentCollection) -> bool:
        """Generate and write feed to the output directory.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(files)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the newest blog-like posts."""

    @property
    def filename(self) -> str:
        return "feed.xml"

    def generate(self, files: ContentCollection) -> str | None:
        posts = files.posts().latest(FEED_LIMIT)
        if not posts:
            return None

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
            "  <channel>",
            f"    <title>{escape_xml(self.site_name)}</title>",
            f"    <link>{escape_xml(self.base_url)}</link>",
            f"    <description>Latest posts from {escape_xml(self.site_name)}</description>",
            "    <language>en</language>",
            f'    <atom:link href="{escape_xml(self.base_url)}/feed.xml" rel="self" '
            'type="application/rss+xml" />',
        ]
        for post in posts:
            link = escape_xml(self.url_for(post))
            lines.extend(
                [
                    "    <item>",
                    f"      <title>{escape_xml(post.title)}</title>",
                    f"      <link>{link}</link>",
                    f"      <guid>{link}</guid>",
                    f"      <pubDate>{format_datetime(_as_utc(post.date))}</pubDate>",
                    f"      <description>{escape_xml(post.excerpt)}</description>",
                    "    </item>",
                ]
            )
        lines.extend(["  </channel>", "</rss>"])
        return "\n".join(lines) + "\n"


class AtomGenerator(FeedGenerator):
    """Generates an Atom 1.0 feed of the newest blog-like posts."""

    @property
    def filename(self) -> str:
        return "atom.xml"

    def generate(self, files: ContentCollection) -> str | None:
        posts = files.posts().latest(FEED_LIMIT)
        if not posts:
            return None

        base = escape_xml(self.base_url)
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"  <title>{escape_xml(self.site_name)}</title>",
            f'  <link href="{base}" />',
            f'  <link href="{base}/atom.xml" rel="self" />',
            f"  <updated>{_iso8601(posts[0].date)}</updated>",
            f"  <id>{base}/</id>",
            "  <author>",
            f"    <name>{escape_xml(self.site_name)}</name>",
            "  </author>",
        ]
        for post in posts:
            link = escape_xml(self.url_for(post))
            lines.extend(
                [
                    "  <entry>",
                    f"    <title>{escape_xml(post.title)}</title>",
                    f'    <link href="{link}" />',
                    f"    <id>{link}</id>",
                    f"    <updated>{_iso8601(post.date)}</updated>",
                    f"    <summary>{escape_xml(post.excerpt)}</summary>",
                    "  </entry>",
                ]
            )
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml listing every content file."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    @staticmethod
    def priority(content_file: ContentFile) -> str:
        if content_file.output_path == "index.html":
            return "1.0"
        if content_file.type == "page":
            return "0.8"
        if content_file.type in BLOG_TYPES:
            return "0.6"
        return "0.5"

    @staticmethod
    def changefreq(content_file: ContentFile) -> str:
        if content_file.type in BLOG_TYPES:
            return "daily"
        if content_file.type == "page":
            return "weekly"
        return "monthly"

    def generate(self, files: ContentCollection) -> str | None:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for content_file in files:
            lines.extend(
                [
                    "  <url>",
                    f"    <loc>{escape_xml(self.url_for(content_file))}</loc>",
                    f"    <lastmod>{_iso8601(content_file.date)}</lastmod>",
                    f"    <changefreq>{self.changefreq(content_file)}</changefreq>",
                    f"    <priority>{self.priority(content_file)}</priority>",
                    "  </url>",
                ]
            )
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(self, output_dir: Path, files: Iterable[ContentFile]) -> list[str]:
        """Generate all registered feeds.

        Args:
            output_dir: Directory to write feed files to.
            files: Content files of the build.

        Returns:
            List of filenames that were generated.
        """
        collection = files if isinstance(files, ContentCollection) else ContentCollection(files)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, collection):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry(site_name: str, base_url: str | None = None) -> FeedRegistry:
    """Create a registry with the RSS, Atom and sitemap generators."""
    registry = FeedRegistry()
    registry.register(RSSGenerator(site_name, base_url))
    registry.register(AtomGenerator(site_name, base_url))
    registry.register(SitemapGenerator(site_name, base_url))
    return registry
