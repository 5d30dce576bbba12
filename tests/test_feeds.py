from pathlib import Path

from rookery.collections import ContentCollection
from rookery.feeds import (
    AtomGenerator,
    FeedRegistry,
    RSSGenerator,
    SitemapGenerator,
    create_default_feed_registry,
    site_url,
)
from rookery.html_utils import escape_html, escape_xml, seo_tags, twitter_tags
from rookery.project import Project
from rookery.scanner import Scanner


def create_files(tmp_path: Path) -> ContentCollection:
    project = Project(tmp_path / "feeds.site")
    project.create()
    src = project.src_dir
    files = {
        "index.page.md": "# Home\n\nWelcome home.",
        "about.page.md": "# About\n\nAbout us.",
        "2026-01-01-first.blog.md": "# Tom & Jerry\n\nA <b>chase</b>.",
        "2026-02-01-second.post.md": "# Second\n\nLater post.",
        "misc.note.md": "# Note",
    }
    for name, text in files.items():
        (src / name).write_text(text, encoding="utf-8")
    return Scanner(project).content_files()


def test_site_url_from_environment(monkeypatch):
    monkeypatch.delenv("SITE_URL", raising=False)
    assert site_url() == "http://localhost:4000"
    monkeypatch.setenv("SITE_URL", "https://example.com/")
    assert site_url() == "https://example.com"


def test_rss_feed_lists_posts_newest_first(tmp_path):
    files = create_files(tmp_path)
    xml = RSSGenerator("Feeds", "https://example.com").generate(files)

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<title>Feeds</title>" in xml
    assert "<title>Tom &amp; Jerry</title>" in xml
    assert "<link>https://example.com/first.html</link>" in xml
    assert "<pubDate>Thu, 01 Jan 2026 00:00:00 +0000</pubDate>" in xml
    assert "<description>A &lt;b&gt;chase&lt;/b&gt;.</description>" in xml
    assert xml.index("Second") < xml.index("Tom &amp; Jerry")
    assert "About" not in xml


def test_atom_feed(tmp_path):
    files = create_files(tmp_path)
    xml = AtomGenerator("Feeds", "https://example.com/").generate(files)

    assert '<feed xmlns="http://www.w3.org/2005/Atom">' in xml
    assert "<updated>2026-02-01T00:00:00Z</updated>" in xml
    assert '<link href="https://example.com/second.html" />' in xml
    assert xml.count("<entry>") == 2


def test_feeds_skip_when_no_posts(tmp_path):
    pages = create_files(tmp_path).of_type("page")
    assert RSSGenerator("Feeds").generate(pages) is None
    assert AtomGenerator("Feeds").generate(pages) is None
    assert RSSGenerator("Feeds").write(tmp_path, pages) is False


def test_sitemap_priorities(tmp_path):
    files = create_files(tmp_path)
    generator = SitemapGenerator("Feeds", "https://example.com")
    by_name = {f.name: f for f in files}

    assert generator.priority(by_name["index"]) == "1.0"
    assert generator.priority(by_name["about"]) == "0.8"
    assert generator.priority(by_name["first"]) == "0.6"
    assert generator.priority(by_name["misc"]) == "0.5"
    assert generator.changefreq(by_name["second"]) == "daily"
    assert generator.changefreq(by_name["about"]) == "weekly"
    assert generator.changefreq(by_name["misc"]) == "monthly"

    xml = generator.generate(files)
    assert xml.count("<url>") == 5
    assert "<loc>https://example.com/index.html</loc>" in xml
    assert "<lastmod>2026-01-01T00:00:00Z</lastmod>" in xml


def test_registry_writes_files(tmp_path, monkeypatch):
    monkeypatch.setenv("SITE_URL", "https://site.test")
    files = create_files(tmp_path)
    out = tmp_path / "public"
    out.mkdir()

    generated = create_default_feed_registry("Feeds").generate_all(out, list(files))
    assert generated == ["feed.xml", "atom.xml", "sitemap.xml"]
    assert "https://site.test/second.html" in (out / "feed.xml").read_text(encoding="utf-8")

    empty = FeedRegistry()
    assert empty.generate_all(out, files) == []


def test_escape_helpers():
    assert escape_html(None) == ""
    assert escape_html("<a href='x'>") == "&lt;a href=&#39;x&#39;&gt;"
    assert escape_xml("it's") == "it&apos;s"


def test_seo_tag_helpers():
    tags = seo_tags("Title", "Desc", "https://x.test/a.html", image="https://x.test/i.png")
    assert '<link rel="canonical" href="https://x.test/a.html" />' in tags
    assert '<meta property="og:image" content="https://x.test/i.png" />' in tags
    assert '<meta name="twitter:image" content="https://x.test/i.png" />' in tags

    minimal = twitter_tags("T", "D")
    assert "twitter:site" not in minimal
    assert '<meta name="twitter:card" content="summary" />' in minimal
