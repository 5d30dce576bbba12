"""Project layout for Rookery.

Every Rookery project follows the same convention; the layout is the only
configuration surface::

    my-site.site/
    ├── site/
    │   ├── src/          content files (*.<type>.md)
    │   ├── templates/    Jinja templates (*.html.jinja or *.html.erb)
    │   └── assets/       static files copied verbatim
    └── public/           generated output
"""

from __future__ import annotations

from pathlib import Path

from .utils import site_name_from_root


class Project:
    """Path helpers for a project rooted at ``root``.

    Attributes:
        root: Absolute project root.
    """

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root if root is not None else Path.cwd()).resolve()

    @property
    def site_dir(self) -> Path:
        return self.root / "site"

    @property
    def src_dir(self) -> Path:
        return self.site_dir / "src"

    @property
    def templates_dir(self) -> Path:
        return self.site_dir / "templates"

    @property
    def assets_dir(self) -> Path:
        return self.site_dir / "assets"

    @property
    def output_dir(self) -> Path:
        return self.root / "public"

    @property
    def site_name(self) -> str:
        """Display name inferred from the root directory name."""
        return site_name_from_root(self.root)

    def exists(self) -> bool:
        """Return True when the top-level ``site/`` directory is present."""
        return self.site_dir.is_dir()

    def create(self) -> None:
        """Create the standard directory structure."""
        for directory in (
            self.site_dir,
            self.src_dir,
            self.templates_dir,
            self.assets_dir,
            self.output_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Project({self.root})"
