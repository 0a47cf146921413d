"""Whole-wiki broken link check."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from wikistage.core.errors import WikiError
from wikistage.core.renderer import PageRenderer
from wikistage.core.resolver import INDEX_NAME, PAGE_EXTENSIONS, PathResolver
from wikistage.core.types import PageName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrokenLink:
    """A broken link found on a page."""

    page: PageName
    href: str


def iter_pages(resolver: PathResolver) -> Iterator[PageName]:
    """Yield the name of every page under the root, sorted.

    Hidden files and directories (header, footer, auth) are skipped; index
    pages are named after their directory ("notes/", or "" for the root).
    """
    names: set[str] = set()
    for path in resolver.root.rglob("*"):
        if path.suffix not in PAGE_EXTENSIONS or not path.is_file():
            continue
        relative = path.relative_to(resolver.root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        stem = relative.with_suffix("").as_posix()
        if relative.stem == INDEX_NAME:
            parent = relative.parent.as_posix()
            stem = "" if parent == "." else f"{parent}/"
        names.add(stem)
    for name in sorted(names):
        yield PageName(name)


def check_links(renderer: PageRenderer) -> list[BrokenLink]:
    """Render every page and collect its broken links.

    Pages that fail to render are logged and skipped.
    """
    broken: list[BrokenLink] = []
    for page in iter_pages(renderer.resolver):
        try:
            rendered = renderer.render(page)
        except WikiError as e:
            logger.error(f"Could not render {page or '/'}: {e.message}")
            continue
        broken.extend(BrokenLink(page=page, href=href) for href in rendered.links.broken)
    return broken
