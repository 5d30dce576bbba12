"""Rookery static site generator.

A convention-based static site builder: content, templates and assets live
in a fixed directory layout, content is rendered from markdown through a
page template and a shared layout, and only stale outputs are rebuilt.

The main entry point is the CLI module, which provides commands for
scaffolding new projects, building sites, and running the development server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
