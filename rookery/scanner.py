"""File discovery for Rookery.

The Scanner walks the project's fixed source directories and wraps what it
finds in the typed file model. A missing directory yields an empty result,
never an error. Results are sorted by path so repeated scans of an unchanged
tree agree.
"""

from __future__ import annotations

from pathlib import Path

from .collections import ContentCollection
from .content import (
    AssetFile,
    ContentFile,
    TemplateFile,
    content_type_of,
    template_type_of,
)
from .project import Project


class Scanner:
    """Discovers content, template and asset files of a project.

    Attributes:
        project: Project whose directories are scanned.
    """

    def __init__(self, project: Project):
        self.project = project

    def content_paths(self) -> list[Path]:
        """Return paths of every ``*.<type>.md`` file under the content root."""
        src_dir = self.project.src_dir
        if not src_dir.is_dir():
            return []
        return sorted(
            path
            for path in src_dir.rglob("*.md")
            if path.is_file() and content_type_of(path.name) is not None
        )

    def content_files(
        self, failures: list[tuple[Path, Exception]] | None = None
    ) -> ContentCollection:
        """Scan for all content files in ``site/src``.

        Args:
            failures: When given, files that cannot be read or decoded are
                appended here as ``(path, exception)`` and left out of the
                result. Otherwise the first such error is raised.

        Returns:
            ContentCollection of freshly constructed ContentFiles.
        """
        files = []
        for path in self.content_paths():
            try:
                files.append(ContentFile.from_path(path, self.project))
            except (OSError, UnicodeDecodeError) as exc:
                if failures is None:
                    raise
                failures.append((path, exc))
        return ContentCollection(files)

    def template_files(self) -> list[TemplateFile]:
        """Scan the direct children of ``site/templates`` for templates."""
        templates_dir = self.project.templates_dir
        if not templates_dir.is_dir():
            return []
        return [
            TemplateFile.from_path(path)
            for path in sorted(templates_dir.iterdir())
            if path.is_file() and template_type_of(path.name) is not None
        ]

    def asset_files(self) -> list[AssetFile]:
        """Scan ``site/assets`` recursively for files."""
        assets_dir = self.project.assets_dir
        if not assets_dir.is_dir():
            return []
        return [
            AssetFile.from_path(path, self.project)
            for path in sorted(assets_dir.rglob("*"))
            if not path.is_dir()
        ]

    def all_files(self) -> list[ContentFile | TemplateFile | AssetFile]:
        return [*self.content_files(), *self.template_files(), *self.asset_files()]
