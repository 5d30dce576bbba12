import logging
import os
import shutil
import time
from pathlib import Path

import pytest

from rookery import build as build_module
from rookery.build import (
    BuildError,
    Builder,
    BuildStats,
    ErrorKind,
    UnitStatus,
    _format_error_message,
    build_site,
)
from rookery.content import AssetFile
from rookery.project import Project
from rookery.scanner import Scanner

LAYOUT = (
    "<!DOCTYPE html><html><head><title>{{ title }} - {{ site_name }}</title></head>"
    "<body>{{ render('nav') }}{{ content }}</body></html>"
)
BLOG = "<article><time>{{ date.strftime('%B %d, %Y') }}</time>{{ content }}</article>"


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def bump_mtime(path: Path, seconds: float = 10) -> None:
    stamp = time.time() + seconds
    os.utime(path, (stamp, stamp))


def create_project(tmp_path: Path) -> Project:
    project = Project(tmp_path / "e2e-test.site")
    project.create()
    templates = project.templates_dir
    write(templates / "layout.html.jinja", LAYOUT)
    write(templates / "_nav.html.jinja", '<nav><a href="/">Home</a></nav>')
    write(templates / "page.html.jinja", "<main>{{ content }}</main>")
    write(templates / "blog.html.jinja", BLOG)

    src = project.src_dir
    write(src / "index.page.md", "# Welcome\n\nHome page.")
    write(src / "about.page.md", "# About\n\nAbout us.")
    write(
        src / "blog" / "2026-01-01-first-post.blog.md",
        "# First Post\n\nHello **world**.\n\n```ruby\nputs 'hi'\n```\n",
    )
    write(src / "blog" / "2026-01-02-second.blog.md", "# Second\n\nMore.")

    write(project.assets_dir / "css" / "style.css", "body { color: red; }")
    write(project.assets_dir / "images" / "logo.png", "png-bytes")
    return project


def test_full_build_renders_everything(tmp_path):
    project = create_project(tmp_path)
    stats = Builder(project).build()

    assert stats.success
    assert stats.files_built == 4
    assert stats.files_skipped == 0
    assert stats.assets_copied == 2
    assert stats.total_files == 4
    assert stats.total_assets == 2
    assert stats.total_time >= 0

    out = project.output_dir
    post = (out / "blog" / "first-post.html").read_text(encoding="utf-8")
    assert "<title>First Post - E2e Test</title>" in post
    assert '<nav><a href="/">Home</a></nav>' in post
    assert "<time>January 01, 2026</time>" in post
    assert "<strong>world</strong>" in post
    assert 'class="highlight"' in post
    assert "<main>" in (out / "index.html").read_text(encoding="utf-8")
    assert (out / "about.html").exists()
    assert (out / "blog" / "second.html").exists()
    assert (out / "css" / "style.css").read_text(encoding="utf-8") == "body { color: red; }"
    assert (out / "images" / "logo.png").exists()
    for name in ("feed.xml", "atom.xml", "sitemap.xml"):
        assert (out / name).exists()


def test_second_build_skips_everything(tmp_path):
    project = create_project(tmp_path)
    Builder(project).build()

    stats = Builder(project).build()
    assert stats.success
    assert stats.files_built == 0
    assert stats.files_skipped == 4
    assert stats.assets_copied == 0
    assert stats.assets_skipped == 2


def test_changed_content_rebuilds_only_that_file(tmp_path):
    project = create_project(tmp_path)
    Builder(project).build()

    about = write(project.src_dir / "about.page.md", "# About\n\nUpdated text.")
    bump_mtime(about)
    stats = Builder(project).build()

    assert stats.files_built == 1
    assert stats.files_skipped == 3
    assert "Updated text." in (project.output_dir / "about.html").read_text(encoding="utf-8")


def test_changed_template_rebuilds_its_type(tmp_path):
    project = create_project(tmp_path)
    builder = Builder(project)
    builder.build()

    page_template = write(project.templates_dir / "page.html.jinja", "<section>{{ content }}</section>")
    bump_mtime(page_template)
    stats = builder.build()

    assert stats.files_built == 2
    assert stats.files_skipped == 2
    assert "<section>" in (project.output_dir / "index.html").read_text(encoding="utf-8")


def test_changed_layout_rebuilds_everything(tmp_path):
    project = create_project(tmp_path)
    Builder(project).build()

    bump_mtime(project.templates_dir / "layout.html.jinja")
    stats = Builder(project).build()
    assert stats.files_built == 4
    assert stats.assets_copied == 0


def test_changed_asset_is_copied_again(tmp_path):
    project = create_project(tmp_path)
    Builder(project).build()

    style = write(project.assets_dir / "css" / "style.css", "body { color: blue; }")
    bump_mtime(style)
    stats = Builder(project).build()
    assert stats.assets_copied == 1
    assert stats.assets_skipped == 1
    assert "blue" in (project.output_dir / "css" / "style.css").read_text(encoding="utf-8")


def test_equal_mtimes_count_as_fresh(tmp_path):
    project = Project(tmp_path / "fresh.site")
    project.create()
    template = write(project.templates_dir / "page.html.jinja", "{{ content }}")
    source = write(project.src_dir / "a.page.md", "a")
    asset = write(project.assets_dir / "a.txt", "a")
    Builder(project).build()

    stamp = time.time() + 60
    for path in (
        template,
        source,
        asset,
        project.output_dir / "a.html",
        project.output_dir / "a.txt",
    ):
        os.utime(path, (stamp, stamp))

    stats = Builder(project).build()
    assert stats.files_skipped == 1
    assert stats.assets_skipped == 1


def test_clean_build_removes_stray_output(tmp_path):
    project = create_project(tmp_path)
    Builder(project).build()
    write(project.output_dir / "stray.html", "old")
    write(project.output_dir / "old-dir" / "x.html", "old")

    stats = Builder(project, clean=True).build()
    assert stats.files_built == 4
    assert stats.assets_copied == 2
    assert not (project.output_dir / "stray.html").exists()
    assert not (project.output_dir / "old-dir").exists()


def test_clean_build_without_output_dir(tmp_path):
    project = create_project(tmp_path)
    shutil.rmtree(project.output_dir)

    stats = Builder(project, clean=True).build()
    assert stats.success
    assert stats.files_built == 4


def test_missing_template_is_isolated(tmp_path):
    project = create_project(tmp_path)
    write(project.src_dir / "story.article.md", "# Story")

    stats = Builder(project).build()
    assert not stats.success
    assert stats.files_built == 4
    assert len(stats.errors) == 1
    error = stats.errors[0]
    assert error.kind is ErrorKind.MISSING_TEMPLATE
    assert error.source_path.name == "story.article.md"
    assert "article" in error.message
    assert not (project.output_dir / "story.html").exists()


def test_missing_template_reported_even_when_output_is_fresh(tmp_path):
    project = create_project(tmp_path)
    write(project.templates_dir / "article.html.jinja", "{{ content }}")
    write(project.src_dir / "story.article.md", "# Story")
    Builder(project).build()

    (project.templates_dir / "article.html.jinja").unlink()
    stats = Builder(project).build()
    assert [e.kind for e in stats.errors] == [ErrorKind.MISSING_TEMPLATE]


def test_render_failures_are_classified(tmp_path):
    project = create_project(tmp_path)
    write(project.templates_dir / "post.html.jinja", "{{ nope }}")
    write(project.templates_dir / "note.html.jinja", "{{ render('absent') }}")
    write(project.templates_dir / "draft.html.jinja", "{% for %}")
    write(project.src_dir / "a.post.md", "a")
    write(project.src_dir / "b.note.md", "b")
    write(project.src_dir / "c.draft.md", "c")

    stats = Builder(project).build()
    assert stats.files_built == 4
    errors = {e.source_path.name: e for e in stats.errors}
    assert errors["a.post.md"].kind is ErrorKind.RENDER_FAILURE
    assert errors["a.post.md"].message.startswith("Undefined variable")
    assert errors["b.note.md"].kind is ErrorKind.PARTIAL_NOT_FOUND
    assert errors["c.draft.md"].kind is ErrorKind.RENDER_FAILURE
    assert errors["c.draft.md"].message.startswith("Template syntax error in draft.html.jinja")


def test_write_failure_is_io_error(monkeypatch, tmp_path):
    project = create_project(tmp_path)
    original = build_module._write_output

    def failing_write(output_file, html):
        if output_file.name == "about.html":
            raise PermissionError("read-only")
        original(output_file, html)

    monkeypatch.setattr(build_module, "_write_output", failing_write)
    stats = Builder(project).build()

    assert stats.files_built == 3
    assert [e.kind for e in stats.errors] == [ErrorKind.IO_FAILURE]
    assert "PermissionError: read-only" in str(stats.errors[0])


def test_undecodable_content_is_isolated(tmp_path):
    project = create_project(tmp_path)
    (project.src_dir / "broken.page.md").write_bytes(b"# Bad\n\n\xff\xfe caf\xe9\n")
    write(project.templates_dir / "page.html.jinja", "{% for p in all_pages %}{{ p.title }},{% endfor %}")

    stats = Builder(project).build()
    assert stats.files_built == 4
    assert len(stats.errors) == 1
    error = stats.errors[0]
    assert error.kind is ErrorKind.IO_FAILURE
    assert error.source_path.name == "broken.page.md"
    assert "UnicodeDecodeError" in error.message
    assert not (project.output_dir / "broken.html").exists()
    assert (project.output_dir / "about.html").read_text(encoding="utf-8").count(",") == 2
    assert (project.output_dir / "sitemap.xml").exists()


def test_unreadable_asset_is_io_error(monkeypatch, tmp_path):
    project = create_project(tmp_path)
    original = AssetFile.copy

    def failing_copy(self):
        if self.path.name == "logo.png":
            raise PermissionError(f"cannot read {self.path.name}")
        original(self)

    monkeypatch.setattr(AssetFile, "copy", failing_copy)
    stats = Builder(project).build()

    assert stats.files_built == 4
    assert stats.assets_copied == 1
    assert [e.kind for e in stats.errors] == [ErrorKind.IO_FAILURE]
    assert stats.errors[0].source_path.name == "logo.png"
    assert not (project.output_dir / "images" / "logo.png").exists()


def test_process_content_file_results(tmp_path):
    project = create_project(tmp_path)
    builder = Builder(project)
    index = next(f for f in Scanner(project).content_files() if f.name == "index")

    first = builder.process_content_file(index)
    assert first.status is UnitStatus.BUILT
    assert first.error is None
    assert builder.process_content_file(index).status is UnitStatus.SKIPPED

    asset = Scanner(project).asset_files()[0]
    assert builder.process_asset_file(asset).status is UnitStatus.COPIED
    assert builder.process_asset_file(asset).status is UnitStatus.SKIPPED


def test_many_files_with_small_pool(tmp_path):
    project = create_project(tmp_path)
    for i in range(25):
        write(project.src_dir / "bulk" / f"page-{i}.page.md", f"# Page {i}")

    stats = Builder(project, max_workers=2).build()
    assert stats.success
    assert stats.files_built == 29
    assert len(list((project.output_dir / "bulk").iterdir())) == 25


def test_feeds_only_when_posts_exist(tmp_path):
    project = Project(tmp_path / "pages.site")
    project.create()
    write(project.templates_dir / "page.html.jinja", "{{ content }}")
    write(project.src_dir / "index.page.md", "# Home")

    stats = Builder(project).build()
    assert stats.success
    assert (project.output_dir / "sitemap.xml").exists()
    assert not (project.output_dir / "feed.xml").exists()
    assert not (project.output_dir / "atom.xml").exists()


def test_derived_output_failure_only_warns(monkeypatch, tmp_path, caplog):
    project = create_project(tmp_path)

    def broken_registry(site_name, base_url=None):
        raise RuntimeError("feed exploded")

    monkeypatch.setattr(build_module, "create_default_feed_registry", broken_registry)
    with caplog.at_level(logging.WARNING, logger="rookery.build"):
        stats = Builder(project).build()

    assert stats.success
    assert stats.files_built == 4
    assert "feed exploded" in caplog.text


def test_build_site_requires_site_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_site(tmp_path / "nothing")

    project = create_project(tmp_path)
    stats = build_site(project.root)
    assert stats.files_built == 4


def test_build_error_and_stats_helpers(tmp_path):
    error = BuildError(tmp_path / "x.page.md", "boom", ErrorKind.IO_FAILURE)
    assert str(error).endswith("x.page.md: boom")
    assert error.kind == "io_failure"

    stats = BuildStats(files_built=2, files_skipped=1)
    assert stats.success
    stats.errors.append(error)
    assert not stats.success
    assert stats.total_files == 3

    assert _format_error_message(ValueError("bad")) == "ValueError: bad"
