"""File model for Rookery.

Typed wrappers over the three kinds of files a project contains. All
derived attributes are computed once, when the object is constructed from
the filesystem, and the objects are never mutated afterwards. A new scan
produces new objects.

Key classes:
- ContentFile: A markdown document named ``[YYYY-MM-DD-]<name>.<type>.md``.
- TemplateFile: A Jinja template named ``<type>.html.jinja`` (or ``.html.erb``).
- AssetFile: A static file mirrored verbatim into the output directory.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .utils import (
    extract_date_from_name,
    extract_excerpt,
    extract_title,
    humanize,
    reading_time,
    split_date_prefix,
)

if TYPE_CHECKING:
    from .project import Project

CONTENT_SUFFIX = ".md"
TEMPLATE_SUFFIXES = (".html.jinja", ".html.erb")
LAYOUT_NAME = "layout"
PARTIAL_PREFIX = "_"


def content_type_of(filename: str) -> str | None:
    """Return the content type encoded in a filename.

    The type is the second-to-last dot-delimited segment and the filename
    needs at least three segments ending in ``md``.

    Examples:
        >>> content_type_of("hello.blog.md")
        'blog'

        >>> content_type_of("README.md") is None
        True
    """
    if filename.startswith("."):
        return None
    parts = filename.split(".")
    if len(parts) < 3 or parts[-1] != CONTENT_SUFFIX.lstrip("."):
        return None
    return parts[-2] or None


def template_type_of(filename: str) -> str | None:
    """Strip an accepted template suffix, returning None for other files."""
    for suffix in TEMPLATE_SUFFIXES:
        if filename.endswith(suffix) and len(filename) > len(suffix):
            return filename[: -len(suffix)]
    return None


@dataclass(frozen=True)
class ContentFile:
    """A markdown content document with its derived metadata.

    Attributes:
        path: Absolute path to the source file.
        relative_path: Path relative to the content root.
        type: Content type from the filename (``hello.blog.md`` -> ``blog``).
        name: Filename without type suffix and date prefix.
        date: Date from the filename prefix, else the mtime day.
        slug: ``name`` with underscores replaced by hyphens.
        output_path: Output path relative to the output root (posix).
        output_file: Absolute output path.
        title: First level-1 heading, else a humanized ``name``.
        excerpt: First paragraph after the title, at most 150 words.
        reading_time: Minutes at 200 words per minute, at least 1.
        body: Raw markdown.
        mtime: Modification time in seconds.
    """

    path: Path
    relative_path: Path
    type: str
    name: str
    date: date
    slug: str
    output_path: str
    output_file: Path
    title: str
    excerpt: str
    reading_time: int
    body: str
    mtime: float

    @classmethod
    def from_path(cls, path: Path, project: Project) -> ContentFile:
        """Read a content file and derive all of its attributes.

        Args:
            path: Path to a ``*.<type>.md`` file under ``project.src_dir``.
            project: Project the file belongs to.

        Returns:
            A fully populated ContentFile.

        Raises:
            ValueError: If the filename does not encode a content type.
            OSError: If the file cannot be read.
        """
        path = Path(path).resolve()
        content_type = content_type_of(path.name)
        if content_type is None:
            raise ValueError(f"Not a content file (expected name.type.md): {path}")

        stat = path.stat()
        body = path.read_text(encoding="utf-8")
        relative = path.relative_to(project.src_dir.resolve())

        stem = path.name[: -len(f".{content_type}{CONTENT_SUFFIX}")]
        _, name = split_date_prefix(stem)
        parsed = extract_date_from_name(path.name)
        file_date = parsed or date.fromtimestamp(stat.st_mtime)

        parent = relative.parent.as_posix()
        filename = f"{name}.html"
        output_path = filename if parent == "." else f"{parent}/{filename}"

        return cls(
            path=path,
            relative_path=relative,
            type=content_type,
            name=name,
            date=file_date,
            slug=name.replace("_", "-"),
            output_path=output_path,
            output_file=project.output_dir / output_path,
            title=extract_title(body) or humanize(name),
            excerpt=extract_excerpt(body),
            reading_time=reading_time(body),
            body=body,
            mtime=stat.st_mtime,
        )

    def metadata(self) -> dict[str, Any]:
        """Return the template-facing metadata for this file."""
        return {
            "title": self.title,
            "date": self.date,
            "slug": self.slug,
            "type": self.type,
            "path": self.output_path,
            "excerpt": self.excerpt,
            "reading_time": self.reading_time,
        }


@dataclass(frozen=True)
class TemplateFile:
    """A template under the template root.

    Content is read on demand; compiled templates are cached by the
    renderer, keyed on path and modification time.

    Attributes:
        path: Absolute path to the template.
        type: Filename without its template suffix. Partials keep their
            leading underscore (``_nav.html.jinja`` -> ``_nav``).
    """

    path: Path
    type: str

    @classmethod
    def from_path(cls, path: Path) -> TemplateFile:
        path = Path(path).resolve()
        template_type = template_type_of(path.name)
        if template_type is None:
            raise ValueError(f"Not a template file: {path}")
        return cls(path=path, type=template_type)

    @property
    def is_layout(self) -> bool:
        return self.type == LAYOUT_NAME

    @property
    def is_partial(self) -> bool:
        return self.type.startswith(PARTIAL_PREFIX)

    @property
    def mtime(self) -> float:
        return self.path.stat().st_mtime

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass(frozen=True)
class AssetFile:
    """A static asset copied verbatim into the output directory."""

    path: Path
    output_path: str
    output_file: Path

    @classmethod
    def from_path(cls, path: Path, project: Project) -> AssetFile:
        path = Path(path).resolve()
        output_path = path.relative_to(project.assets_dir.resolve()).as_posix()
        return cls(
            path=path,
            output_path=output_path,
            output_file=project.output_dir / output_path,
        )

    @property
    def mtime(self) -> float:
        return self.path.stat().st_mtime

    def copy(self) -> None:
        """Copy the asset to its output location, creating directories."""
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.path, self.output_file)
