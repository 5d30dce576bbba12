from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .content import ContentFile

BLOG_TYPES = ("blog", "post", "article", "news")


class ContentCollection(Sequence[ContentFile]):
    """Lightweight helper for working with lists of ContentFiles in templates and code."""

    def __init__(self, files: Iterable[ContentFile]):
        self._files = list(files)

    def __iter__(self) -> Iterator[ContentFile]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return ContentCollection(self._files[item])
        return self._files[item]

    def of_type(self, *types: str) -> ContentCollection:
        return ContentCollection(f for f in self._files if f.type in types)

    def posts(self) -> ContentCollection:
        """Blog-like files (blog, post, article, news)."""
        return self.of_type(*BLOG_TYPES)

    def by_date(self, reverse: bool = True) -> ContentCollection:
        """Sort by date, newest first by default.

        Ties are broken by output path so the order is stable across runs.
        """
        ordered = sorted(self._files, key=lambda f: f.output_path)
        return ContentCollection(sorted(ordered, key=lambda f: f.date, reverse=reverse))

    def by_title(self) -> ContentCollection:
        return ContentCollection(sorted(self._files, key=lambda f: (f.title, f.output_path)))

    def latest(self, count: int = 5) -> ContentCollection:
        return self.by_date()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"ContentCollection({len(self._files)} files)"
