"""Command-line interface for Rookery.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into public/.
- serve: Run development server with live reload.
- new: Scaffold a new project.
- create: Create a new content file from a template type.
- template list: List the available content templates.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .collections import BLOG_TYPES
from .content import LAYOUT_NAME, PARTIAL_PREFIX
from .project import Project
from .scanner import Scanner
from .utils import slugify

_MISSING_PROJECT = "No site directory found. Run this command from a .site directory."

_STARTER_FILES = {
    "site/templates/layout.html.jinja": """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }} - {{ site_name }}</title>
  {{ meta_description(excerpt) }}
  <style>
    body { max-width: 800px; margin: 0 auto; padding: 2rem; font-family: system-ui; line-height: 1.6; }
    nav { margin-bottom: 2rem; padding-bottom: 1rem; border-bottom: 1px solid #ddd; }
    nav a { margin-right: 1rem; text-decoration: none; }
    {{ pygments_css() }}
  </style>
</head>
<body>
  {{ render('nav') }}
  {{ content }}
</body>
</html>
""",
    "site/templates/_nav.html.jinja": """<nav>
  <a href="/">Home</a>
  <a href="/blog.html">Blog</a>
</nav>
""",
    "site/templates/page.html.jinja": """<main>
  {{ content }}
</main>
""",
    "site/templates/blog.html.jinja": """<article>
  <header>
    <time datetime="{{ date.isoformat() }}">{{ date.strftime('%B %d, %Y') }}</time>
    <span class="reading-time">{{ reading_time }} min read</span>
  </header>
  {{ content }}
</article>
""",
    "site/src/index.page.md": """# Welcome

This is your new static site, built with Rookery.

## Getting Started

Edit this file at `site/src/index.page.md` and run `rookery build` to see your changes.
""",
    "site/src/blog/{today}-hello-world.blog.md": """# Hello World

Welcome to your first blog post! This post demonstrates:

- Automatic date extraction from filename
- Title extraction from the first heading
- Folder structure preservation

```python
def hello():
    print("Hello from Rookery")
```
""",
    ".gitignore": "public/\n",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _require_project() -> Project:
    project = Project(Path.cwd())
    if not project.exists():
        raise click.ClickException(_MISSING_PROJECT)
    return project


@click.group()
@click.version_option(version=__version__, prog_name="rookery")
def cli():
    """Rookery static site generator."""


@cli.command()
@click.option("--clean", "-c", is_flag=True, help="Clean output directory before building")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def build(clean: bool, verbose: bool):
    """Build the site into public/."""
    _setup_logging(verbose)
    project = _require_project()
    from .build import build_site

    if clean:
        click.echo("Cleaning output directory...")
    stats = build_site(project.root, clean=clean)

    if not stats.success:
        click.echo(
            click.style(f"Build failed with {len(stats.errors)} errors:", fg="red", bold=True),
            err=True,
        )
        for error in stats.errors:
            try:
                rel_path = error.source_path.relative_to(project.root)
            except ValueError:
                rel_path = error.source_path
            click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
            click.echo(f"  Error: {error.message}", err=True)
        raise SystemExit(1)

    click.echo(
        click.style("Built ", fg="green")
        + click.style(str(stats.files_built), fg="cyan")
        + f" pages in {stats.total_time:.2f}s"
    )
    if stats.files_skipped:
        click.echo(f"Skipped {stats.files_skipped} unchanged files")
    if stats.assets_copied:
        click.echo(f"Copied {stats.assets_copied} assets")
    if stats.assets_skipped and verbose:
        click.echo(f"Skipped {stats.assets_skipped} unchanged assets")


@cli.command()
@click.option("--port", "-p", type=int, default=4000, show_default=True, help="Port to run the dev server")
@click.option("--host", default="localhost", show_default=True, help="Host to bind to")
@click.option("--livereload/--no-livereload", default=True, help="Enable live reload")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def serve(port: int, host: str, livereload: bool, verbose: bool):
    """Run dev server with live reload."""
    _setup_logging(verbose)
    project = _require_project()
    from .server import DevServer

    server = DevServer(project, host=host, port=port, livereload=livereload)
    server.start()


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Rookery project."""
    dirname = name if name.endswith(".site") else f"{name}.site"
    target = Path(dirname).resolve()
    if target.exists():
        raise click.ClickException(f"Directory {dirname} already exists")
    _scaffold(target)
    click.echo(f"New Rookery site created at {target}")
    click.echo(f"  cd {dirname} && rookery serve")


@cli.command()
@click.argument("template", required=False)
@click.argument("name", required=False)
@click.option("--dated/--no-date", default=None, help="Prefix the filename with today's date")
def create(template: str | None, name: str | None, dated: bool | None):
    """Create a new content file from a template type."""
    project = _require_project()
    available = _content_template_types(project)

    if template is None:
        if not available:
            raise click.ClickException("No templates found in site/templates/")
        template = questionary.select(
            "Select template:", choices=available, style=_questionary_style()
        ).ask()
        if template is None:
            raise click.Abort()
    if template not in available:
        raise click.ClickException(
            f"Template '{template}' not found. Run 'rookery template list' to see available templates."
        )

    if name is None:
        name = questionary.text(
            "Title:",
            validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
            style=_questionary_style(),
        ).ask()
        if name is None:
            raise click.Abort()
        name = name.strip()

    parts = [part.strip() for part in name.split("/") if part.strip()]
    if not parts:
        raise click.ClickException("Name cannot be empty")
    *subdirs, title = parts
    if dated is None:
        dated = template in BLOG_TYPES
    filename = f"{slugify(title)}.{template}.md"
    if dated:
        filename = f"{datetime.now().strftime('%Y-%m-%d')}-{filename}"

    target = project.src_dir.joinpath(*subdirs, filename)
    if target.exists():
        raise click.ClickException(f"File already exists: {target.relative_to(project.root)}")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        f"# {title}\n\nYour content goes here. Edit this file to create your {template}.\n",
        encoding="utf-8",
    )
    click.echo(f"Created {template}: {target.relative_to(project.root)}")


@cli.group()
def template():
    """Manage templates."""


@template.command("list")
def list_templates():
    """List available content templates."""
    project = _require_project()
    types = _content_template_types(project)
    if not types:
        click.echo(click.style("No templates found in site/templates/", fg="yellow"))
        return
    click.echo(click.style("Available templates:", bold=True))
    for template_type in types:
        suffix = click.style(" (dated)", fg="cyan") if template_type in BLOG_TYPES else ""
        click.echo(f"  {template_type}{suffix}")


def _content_template_types(project: Project) -> list[str]:
    """Template types usable for content: no layout, no partials."""
    return sorted(
        {
            t.type
            for t in Scanner(project).template_files()
            if t.type != LAYOUT_NAME and not t.type.startswith(PARTIAL_PREFIX)
        }
    )


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and starter files for a new project.

    Args:
        root: Root directory for the new project.
    """
    Project(root).create()
    today = datetime.now().strftime("%Y-%m-%d")
    for rel_path, content in _STARTER_FILES.items():
        dest = root / rel_path.format(today=today)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding="utf-8")
