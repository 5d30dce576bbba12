from datetime import date
from pathlib import Path

from rookery import utils


def test_split_and_extract_date_prefix():
    assert utils.split_date_prefix("2026-01-06-hello") == ("2026-01-06", "hello")
    assert utils.split_date_prefix("about") == (None, "about")
    assert utils.extract_date_from_name("2026-01-06-hello.blog.md") == date(2026, 1, 6)
    assert utils.extract_date_from_name("hello.blog.md") is None
    assert utils.extract_date_from_name("2026-13-45-hello.blog.md") is None


def test_slugify_humanize_and_site_name():
    assert utils.slugify("My First Post!") == "my-first-post"
    assert utils.slugify("  --  ") == "untitled"
    assert utils.humanize("hello_world") == "Hello world"
    assert utils.humanize("getting-started") == "Getting started"
    assert utils.site_name_from_root(Path("/tmp/my-blog.site")) == "My Blog"
    assert utils.site_name_from_root(Path("/tmp/e2e_test.site")) == "E2e Test"
    assert utils.site_name_from_root(Path("/tmp/plain")) == "Plain"


def test_extract_title_uses_first_h1_only():
    text = "Intro line\n\n## Not this\n\n# Real Title\n\n# Second"
    assert utils.extract_title(text) == "Real Title"
    assert utils.extract_title("## Only h2") is None


def test_extract_excerpt_skips_title_and_collapses_whitespace():
    text = "# Title\n\nFirst   paragraph\nspans lines.\n\nSecond paragraph."
    assert utils.extract_excerpt(text) == "First paragraph spans lines."
    assert utils.extract_excerpt("") == ""


def test_extract_excerpt_truncates_only_past_limit():
    exact = " ".join(f"w{i}" for i in range(150))
    assert utils.extract_excerpt(f"# T\n\n{exact}") == exact

    longer = " ".join(f"w{i}" for i in range(151))
    excerpt = utils.extract_excerpt(f"# T\n\n{longer}")
    assert excerpt.endswith("w149...")
    assert len(excerpt[:-3].split()) == 150


def test_reading_time_rounds_up_with_minimum():
    assert utils.reading_time("") == 1
    assert utils.reading_time("word " * 200) == 1
    assert utils.reading_time("word " * 201) == 2
    assert utils.reading_time("word " * 450) == 3


def test_ensure_clean_dir_removes_children_only(tmp_path):
    target = tmp_path / "public"
    (target / "nested").mkdir(parents=True)
    (target / "old.html").write_text("old", encoding="utf-8")
    (target / "nested" / "deep.html").write_text("deep", encoding="utf-8")

    utils.ensure_clean_dir(target)
    assert target.is_dir()
    assert list(target.iterdir()) == []

    missing = tmp_path / "missing-dir"
    utils.ensure_clean_dir(missing)
    assert not missing.exists()
