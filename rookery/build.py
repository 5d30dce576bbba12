"""Site building functionality for Rookery.

This module contains the incremental build engine. A build scans the
project, decides per file whether its output is stale, renders and copies
the stale files on a thread pool, and records every outcome in BuildStats.

A failure in one file (missing template, I/O error, render error) is
captured as a BuildError on that file's result and never stops the other
files or the build. Feed and sitemap failures are only logged.

Key classes:
- Builder: Orchestrates a build.
- BuildStats: Counts and errors of one build, returned to the caller.
- BuildError: A per-file failure tagged with its source path and ErrorKind.
- UnitResult: Outcome of processing one file.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from jinja2 import TemplateSyntaxError, UndefinedError

from .collections import ContentCollection
from .content import AssetFile, ContentFile
from .feeds import create_default_feed_registry
from .project import Project
from .scanner import Scanner
from .templates import PartialNotFoundError, Renderer, TemplateNotFoundError
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Closed set of per-file failure kinds."""

    MISSING_TEMPLATE = "missing_template"
    TEMPLATE_NOT_FOUND = "template_not_found"
    PARTIAL_NOT_FOUND = "partial_not_found"
    IO_FAILURE = "io_failure"
    RENDER_FAILURE = "render_failure"


class UnitStatus(str, Enum):
    BUILT = "built"
    SKIPPED = "skipped"
    COPIED = "copied"
    ERROR = "error"


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        kind: Which kind of failure this is.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        kind: ErrorKind = ErrorKind.RENDER_FAILURE,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.kind = kind
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")

    @classmethod
    def from_exception(cls, source_path: Path, exc: Exception) -> BuildError:
        """Classify an exception raised while processing ``source_path``."""
        if isinstance(exc, TemplateNotFoundError):
            kind = ErrorKind.TEMPLATE_NOT_FOUND
        elif isinstance(exc, PartialNotFoundError):
            kind = ErrorKind.PARTIAL_NOT_FOUND
        elif isinstance(exc, (OSError, UnicodeDecodeError)):
            kind = ErrorKind.IO_FAILURE
        else:
            kind = ErrorKind.RENDER_FAILURE
        return cls(source_path, _format_error_message(exc), kind, exc)


@dataclass
class UnitResult:
    """Outcome of processing a single content or asset file."""

    status: UnitStatus
    path: Path
    error: BuildError | None = None


@dataclass
class BuildStats:
    """Result of a build.

    Attributes:
        files_built: Content files rendered and written.
        files_skipped: Content files whose output was fresh.
        assets_copied: Assets copied to the output directory.
        assets_skipped: Assets whose output was fresh.
        errors: Per-file errors in the order they were collected.
        total_time: Wall time of the build in seconds.
    """

    files_built: int = 0
    files_skipped: int = 0
    assets_copied: int = 0
    assets_skipped: int = 0
    errors: list[BuildError] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def total_files(self) -> int:
        return self.files_built + self.files_skipped

    @property
    def total_assets(self) -> int:
        return self.assets_copied + self.assets_skipped

    @property
    def success(self) -> bool:
        return not self.errors


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    if isinstance(exc, TemplateSyntaxError):
        where = f" in {exc.name}" if exc.name else ""
        return f"Template syntax error{where} on line {exc.lineno}: {exc.message}"
    if isinstance(exc, UndefinedError):
        return f"Undefined variable: {exc}"
    if isinstance(exc, (TemplateNotFoundError, PartialNotFoundError)):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _is_newer(source_mtime: float, output_mtime: float) -> bool:
    # Equal timestamps count as fresh, for content and assets alike.
    return source_mtime > output_mtime


class Builder:
    """Orchestrates a build with incremental rebuilds and parallel processing.

    Attributes:
        project: Project being built.
        scanner: Scanner used to discover files.
        renderer: Renderer shared by all content workers.
        clean: Whether to empty the output directory and rebuild everything.
        max_workers: Size of the worker pool.
    """

    def __init__(
        self,
        project: Project,
        clean: bool = False,
        max_workers: int | None = None,
        renderer: Renderer | None = None,
    ):
        """Initialize the builder.

        Args:
            project: Project to build.
            clean: Remove existing output and force a full rebuild.
            max_workers: Worker pool size, defaults to the CPU count.
            renderer: Optional custom renderer.
        """
        self.project = project
        self.scanner = Scanner(project)
        self.renderer = renderer or Renderer(project)
        self.clean = clean
        self.max_workers = max_workers or os.cpu_count() or 1

    def build(self) -> BuildStats:
        """Run a full build.

        Returns:
            BuildStats for this build.
        """
        start = time.perf_counter()
        stats = BuildStats()

        if self.clean:
            self.clean_output()
        self.project.output_dir.mkdir(parents=True, exist_ok=True)

        unreadable: list[tuple[Path, Exception]] = []
        content_files = self.scanner.content_files(failures=unreadable)
        asset_files = self.scanner.asset_files()
        self.renderer.update_collections(content_files)
        for path, exc in unreadable:
            logger.warning("Could not read %s: %s", path, exc)
            stats.errors.append(BuildError.from_exception(path, exc))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            content_futures = [
                pool.submit(self.process_content_file, f) for f in content_files
            ]
            asset_futures = [pool.submit(self.process_asset_file, a) for a in asset_files]
            _aggregate_content(stats, [future.result() for future in content_futures])
            _aggregate_assets(stats, [future.result() for future in asset_futures])

        self.generate_derived_outputs(content_files)

        stats.total_time = time.perf_counter() - start
        logger.debug(
            "Build finished: %d built, %d skipped, %d assets copied, %d errors",
            stats.files_built,
            stats.files_skipped,
            stats.assets_copied,
            len(stats.errors),
        )
        return stats

    def clean_output(self) -> None:
        """Remove every entry directly under the output directory."""
        ensure_clean_dir(self.project.output_dir)

    def process_content_file(self, content_file: ContentFile) -> UnitResult:
        """Render and write one content file when its output is stale.

        Never raises: failures are returned as an error result.
        """
        path = content_file.path
        try:
            if self.renderer.template_path(content_file.type) is None:
                logger.warning(
                    "Missing template '%s' for %s", content_file.type, content_file.path
                )
                error = BuildError(
                    path,
                    f"Missing template: {content_file.type}.html.jinja",
                    ErrorKind.MISSING_TEMPLATE,
                )
                return UnitResult(UnitStatus.ERROR, path, error)

            if not self.needs_rebuild(content_file):
                logger.debug("Skipping unchanged %s", content_file.relative_path)
                return UnitResult(UnitStatus.SKIPPED, path)

            html = self.renderer.render_content(content_file)
            _write_output(content_file.output_file, html)
            return UnitResult(UnitStatus.BUILT, path)
        except Exception as exc:
            return UnitResult(UnitStatus.ERROR, path, BuildError.from_exception(path, exc))

    def process_asset_file(self, asset_file: AssetFile) -> UnitResult:
        """Copy one asset when its output is stale. Never raises."""
        path = asset_file.path
        try:
            if not self.needs_asset_copy(asset_file):
                return UnitResult(UnitStatus.SKIPPED, path)
            asset_file.copy()
            return UnitResult(UnitStatus.COPIED, path)
        except Exception as exc:
            return UnitResult(UnitStatus.ERROR, path, BuildError.from_exception(path, exc))

    def needs_rebuild(self, content_file: ContentFile) -> bool:
        """Return True when a content file's output is missing or stale.

        The output is stale when the content file, its template or the
        layout has a newer mtime than the output file.
        """
        if self.clean:
            return True

        output_file = content_file.output_file
        if not output_file.exists():
            return True

        output_mtime = output_file.stat().st_mtime
        if _is_newer(content_file.mtime, output_mtime):
            return True

        template = self.renderer.template_path(content_file.type)
        if template is not None and _is_newer(template.stat().st_mtime, output_mtime):
            return True

        layout = self.renderer.layout_path()
        if layout is not None and _is_newer(layout.stat().st_mtime, output_mtime):
            return True

        return False

    def needs_asset_copy(self, asset_file: AssetFile) -> bool:
        """Return True when an asset's output is missing or older than the source."""
        if self.clean:
            return True
        output_file = asset_file.output_file
        if not output_file.exists():
            return True
        return _is_newer(asset_file.mtime, output_file.stat().st_mtime)

    def generate_derived_outputs(self, content_files: ContentCollection) -> list[str]:
        """Write feeds (when blog-like content exists) and the sitemap.

        Failures are logged as warnings and never affect the build result.

        Returns:
            Filenames that were written.
        """
        try:
            registry = create_default_feed_registry(self.project.site_name)
            return registry.generate_all(self.project.output_dir, content_files)
        except Exception as exc:
            logger.warning("Failed to generate feeds/sitemap: %s", exc)
            return []


def _aggregate_content(stats: BuildStats, results: Iterable[UnitResult]) -> None:
    for result in results:
        if result.status is UnitStatus.BUILT:
            stats.files_built += 1
        elif result.status is UnitStatus.SKIPPED:
            stats.files_skipped += 1
        elif result.error is not None:
            stats.errors.append(result.error)


def _aggregate_assets(stats: BuildStats, results: Iterable[UnitResult]) -> None:
    for result in results:
        if result.status is UnitStatus.COPIED:
            stats.assets_copied += 1
        elif result.status is UnitStatus.SKIPPED:
            stats.assets_skipped += 1
        elif result.error is not None:
            stats.errors.append(result.error)


def _write_output(output_file: Path, html: str) -> None:
    """Write rendered HTML, creating parent directories as needed."""
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(html, encoding="utf-8")


def build_site(project_root: Path, clean: bool = False) -> BuildStats:
    """Build the project rooted at ``project_root``.

    Args:
        project_root: Root directory of the project.
        clean: Whether to remove existing output first.

    Returns:
        BuildStats of the build.

    Raises:
        FileNotFoundError: If the project has no ``site/`` directory.
    """
    project = Project(project_root)
    if not project.exists():
        raise FileNotFoundError(f"Expected site directory at {project.site_dir}")
    return Builder(project, clean=clean).build()
