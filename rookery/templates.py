"""Template rendering engine for Rookery.

This module uses Jinja2 to turn a content file into its final HTML: the
markdown body is rendered, wrapped by the template for the file's type and
finally by the shared layout, when one exists. Partials are rendered through
the ``render`` callable exposed to every template.

Key classes:
- Renderer: Resolves templates, builds render contexts and renders content.
- RenderContext: Key-value context with typed accessors and partial rendering.
- TemplateCache: Compiled templates keyed by (path, modification time).

Design notes:
- Accessing an undefined variable from a template fails the render
  (StrictUndefined); RenderContext raises UnknownContextKeyError for the
  same mistake made from Python.
- The cache is shared by the worker threads of a build; lookups and inserts
  happen under a lock, compilation happens outside it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from datetime import date
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup

from .collections import ContentCollection
from .content import LAYOUT_NAME, PARTIAL_PREFIX, TEMPLATE_SUFFIXES, ContentFile
from .html_utils import (
    canonical_tag,
    meta_description,
    og_tags,
    seo_tags,
    twitter_tags,
)
from .project import Project
from .renderers import MarkdownRenderer, pygments_css
from .scanner import Scanner

__all__ = [
    "CONTEXT_KEYS",
    "PartialNotFoundError",
    "RenderContext",
    "RenderError",
    "Renderer",
    "TemplateCache",
    "TemplateNotFoundError",
    "UnknownContextKeyError",
]

CONTEXT_KEYS = (
    "title",
    "date",
    "type",
    "slug",
    "path",
    "excerpt",
    "reading_time",
    "site_name",
    "all_posts",
    "all_pages",
    "content",
)


class RenderError(Exception):
    """Base class for template resolution failures."""


class TemplateNotFoundError(RenderError):
    """Raised when a content type has no primary template.

    Attributes:
        template_type: The content type that was requested.
        searched_paths: Candidate template paths that were checked.
    """

    def __init__(self, template_type: str, searched_paths: list[Path]):
        self.template_type = template_type
        self.searched_paths = searched_paths
        names = ", ".join(p.name for p in searched_paths)
        super().__init__(
            f"Template not found for type '{template_type}'. Searched: {names}"
        )


class PartialNotFoundError(RenderError):
    """Raised when ``render`` names a partial that does not exist.

    Attributes:
        partial_name: The partial name without its underscore prefix.
        searched_paths: Candidate partial paths that were checked.
    """

    def __init__(self, partial_name: str, searched_paths: list[Path]):
        self.partial_name = partial_name
        self.searched_paths = searched_paths
        names = ", ".join(p.name for p in searched_paths)
        super().__init__(f"Partial not found: {partial_name}. Searched: {names}")


class UnknownContextKeyError(KeyError):
    """Raised when a render context is asked for a key it does not hold."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Undefined context key: {self.key!r}"


class RenderContext(Mapping[str, Any]):
    """Variables available to a template, plus partial rendering.

    The context is immutable: ``merged`` returns a new context where the
    overriding keys take precedence.
    """

    def __init__(self, values: Mapping[str, Any], renderer: Renderer | None = None):
        self._values = dict(values)
        self._renderer = renderer

    def __getitem__(self, key: str) -> Any:
        try:
            return self._values[key]
        except KeyError:
            raise UnknownContextKeyError(key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def merged(self, overrides: Mapping[str, Any] | None = None) -> RenderContext:
        """Return a new context extended with ``overrides``."""
        values = dict(self._values)
        values.update(overrides or {})
        return RenderContext(values, self._renderer)

    def render(
        self, partial_name: str, local_context: Mapping[str, Any] | None = None
    ) -> Markup:
        """Render ``_<partial_name>`` with this context merged with ``local_context``.

        Args:
            partial_name: Partial name without underscore or suffix.
            local_context: Values that override this context's values.

        Returns:
            Rendered partial as Markup.

        Raises:
            PartialNotFoundError: If the partial does not exist.
        """
        if self._renderer is None:
            raise RenderError("Context is not bound to a renderer")
        return self._renderer.render_partial(partial_name, self, local_context)

    def template_vars(self) -> dict[str, Any]:
        """Variables handed to Jinja, including the ``render`` callable."""
        return {**self._values, "render": self.render}

    @property
    def title(self) -> str:
        return self["title"]

    @property
    def date(self) -> date:
        return self["date"]

    @property
    def type(self) -> str:
        return self["type"]

    @property
    def slug(self) -> str:
        return self["slug"]

    @property
    def path(self) -> str:
        return self["path"]

    @property
    def excerpt(self) -> str:
        return self["excerpt"]

    @property
    def reading_time(self) -> int:
        return self["reading_time"]

    @property
    def site_name(self) -> str:
        return self["site_name"]

    @property
    def all_posts(self) -> ContentCollection:
        return self["all_posts"]

    @property
    def all_pages(self) -> ContentCollection:
        return self["all_pages"]

    @property
    def content(self) -> Markup:
        return self["content"]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"RenderContext({sorted(self._values)})"


class TemplateCache:
    """Compiled templates keyed by (path, mtime).

    Editing a template changes its mtime, so the next lookup compiles the
    new source and drops entries for older versions of the same path. Two
    threads missing on the same key may both compile; the first insert wins.

    Attributes:
        env: Jinja environment used to compile templates.
        compilations: Number of templates compiled and stored.
    """

    def __init__(self, env: Environment):
        self.env = env
        self.compilations = 0
        self._templates: dict[tuple[str, int], Template] = {}
        self._lock = threading.Lock()

    def get(self, path: Path) -> Template:
        """Return the compiled template for ``path``, compiling on a miss.

        Raises:
            OSError: If the template cannot be read.
            TemplateSyntaxError: If the template does not compile.
        """
        key = (str(path), path.stat().st_mtime_ns)
        with self._lock:
            cached = self._templates.get(key)
        if cached is not None:
            return cached

        source = path.read_text(encoding="utf-8")
        try:
            template = self.env.from_string(source)
        except TemplateSyntaxError as exc:
            exc.filename = str(path)
            exc.name = path.name
            raise

        with self._lock:
            for stale in [k for k in self._templates if k[0] == key[0] and k != key]:
                del self._templates[stale]
            if key not in self._templates:
                self._templates[key] = template
                self.compilations += 1
            return self._templates[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)


class Renderer:
    """Turns content files into HTML using Jinja templates.

    Attributes:
        project: Project whose templates are used.
        env: Jinja2 environment.
        cache: Compiled template cache.
        markdown: Markdown to HTML renderer.
        site_name: Display name inferred from the project directory.
    """

    def __init__(
        self,
        project: Project,
        markdown_renderer: MarkdownRenderer | None = None,
    ):
        """Initialize the renderer.

        Args:
            project: Project with the templates directory.
            markdown_renderer: Optional custom markdown renderer.
        """
        self.project = project
        self.env = Environment(
            loader=FileSystemLoader(str(project.templates_dir)),
            autoescape=select_autoescape(
                ["html", "xml", "jinja", "erb"], default_for_string=True
            ),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.cache = TemplateCache(self.env)
        self.markdown = markdown_renderer or MarkdownRenderer()
        self.site_name = project.site_name
        self._collections_lock = threading.Lock()
        self._all_posts: ContentCollection | None = None
        self._all_pages: ContentCollection | None = None
        self._install_globals()

    def _install_globals(self) -> None:
        """Install helper functions in the Jinja environment."""
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["meta_description"] = meta_description
        self.env.globals["canonical_tag"] = canonical_tag
        self.env.globals["og_tags"] = og_tags
        self.env.globals["twitter_tags"] = twitter_tags
        self.env.globals["seo_tags"] = seo_tags

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS for the .highlight class, safe for <style> blocks."""
        return Markup(pygments_css())

    def update_collections(self, files: Iterable[ContentFile]) -> None:
        """Precompute ``all_posts`` and ``all_pages`` from scanned files.

        Args:
            files: Every content file of the current scan.
        """
        collection = ContentCollection(files)
        with self._collections_lock:
            self._all_posts = collection.of_type("blog", "post").by_date()
            self._all_pages = collection.of_type("page").by_title()

    def _ensure_collections(self) -> None:
        with self._collections_lock:
            ready = self._all_posts is not None
        if not ready:
            self.update_collections(Scanner(self.project).content_files())

    @property
    def all_posts(self) -> ContentCollection:
        """Posts of type blog or post, newest first."""
        self._ensure_collections()
        return self._all_posts

    @property
    def all_pages(self) -> ContentCollection:
        """Pages of type page, sorted by title."""
        self._ensure_collections()
        return self._all_pages

    def _candidates(self, stem: str) -> list[Path]:
        return [self.project.templates_dir / f"{stem}{suffix}" for suffix in TEMPLATE_SUFFIXES]

    def _find(self, stem: str) -> Path | None:
        for candidate in self._candidates(stem):
            if candidate.is_file():
                return candidate
        return None

    def template_path(self, content_type: str) -> Path | None:
        """Return the primary template for a content type, if present."""
        return self._find(content_type)

    def layout_path(self) -> Path | None:
        """Return the shared layout template, if present."""
        return self._find(LAYOUT_NAME)

    def partial_path(self, name: str) -> Path | None:
        return self._find(f"{PARTIAL_PREFIX}{name}")

    def build_context(self, content_file: ContentFile) -> RenderContext:
        """Build the render context for a content file.

        Args:
            content_file: File being rendered.

        Returns:
            RenderContext without ``content``; callers extend it per layer.
        """
        values = dict(content_file.metadata())
        values["site_name"] = self.site_name
        values["all_posts"] = self.all_posts
        values["all_pages"] = self.all_pages
        return RenderContext(values, self)

    def render_markdown(self, text: str) -> Markup:
        return Markup(self.markdown.render(text))

    def render_template(self, path: Path, context: RenderContext) -> Markup:
        """Render the template at ``path`` with ``context``."""
        template = self.cache.get(path)
        return Markup(template.render(context.template_vars()))

    def render_content(self, content_file: ContentFile) -> str:
        """Render a content file to its final HTML.

        Args:
            content_file: File to render.

        Returns:
            Rendered HTML string.

        Raises:
            TemplateNotFoundError: If no template exists for the file's type.
            PartialNotFoundError: If a template renders a missing partial.
        """
        template = self.template_path(content_file.type)
        if template is None:
            raise TemplateNotFoundError(
                content_file.type, self._candidates(content_file.type)
            )

        context = self.build_context(content_file)
        body_html = self.render_markdown(content_file.body)
        page_html = self.render_template(template, context.merged({"content": body_html}))

        layout = self.layout_path()
        if layout is None:
            return str(page_html)
        return str(self.render_template(layout, context.merged({"content": page_html})))

    def render_partial(
        self,
        name: str,
        context: Mapping[str, Any] | None = None,
        local_context: Mapping[str, Any] | None = None,
    ) -> Markup:
        """Render the partial ``_<name>``.

        Args:
            name: Partial name without underscore prefix or suffix.
            context: Context of the calling template.
            local_context: Overrides that take precedence over ``context``.

        Returns:
            Rendered partial as Markup.

        Raises:
            PartialNotFoundError: If the partial does not exist.
        """
        path = self.partial_path(name)
        if path is None:
            raise PartialNotFoundError(name, self._candidates(f"{PARTIAL_PREFIX}{name}"))
        if isinstance(context, RenderContext):
            base = context
        else:
            base = RenderContext(context or {}, self)
        return self.render_template(path, base.merged(local_context))
