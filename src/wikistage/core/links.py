"""Link integrity annotation.

Walks a parsed HTML tree and marks every anchor whose target is missing
(``broken-link``) or on another host (``external-link``).
"""

import logging
import posixpath
from collections.abc import Iterator
from dataclasses import dataclass, field
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup, Tag

from wikistage.core.resolver import PathResolver
from wikistage.core.types import LinkClass, PageName

logger = logging.getLogger(__name__)


class ElementVisitor:
    """Visits every element of a tree once, in document order.

    Subclasses implement ``visit_<tag>(element)`` for the tags they care
    about; other elements are passed to ``generic_visit``.
    """

    def visit(self, tree: BeautifulSoup | Tag) -> None:
        for element in iter_elements(tree):
            handler = getattr(self, f"visit_{element.name}", self.generic_visit)
            handler(element)

    def generic_visit(self, element: Tag) -> None:
        pass


def iter_elements(tree: BeautifulSoup | Tag) -> Iterator[Tag]:
    """Yield element nodes depth-first in document order.

    The tree itself is included when it is an element (not the document).
    """
    stack: list[Tag] = [tree]
    while stack:
        node = stack.pop()
        if not isinstance(node, BeautifulSoup):
            yield node
        children = [child for child in node.contents if isinstance(child, Tag)]
        stack.extend(reversed(children))


@dataclass
class LinkReport:
    """Outcome of annotating one page."""

    counts: dict[LinkClass, int] = field(default_factory=lambda: {cls: 0 for cls in LinkClass})
    broken: list[str] = field(default_factory=list)


class LinkAnnotator:
    """Classifies anchors against the wiki root and tags them with CSS classes.

    External targets are never checked for liveness; same-site targets are
    checked with the resolver's page and directory-index lookups.
    """

    def __init__(self, resolver: PathResolver) -> None:
        self._resolver = resolver

    def annotate(self, tree: BeautifulSoup | Tag, page: PageName) -> LinkReport:
        """Annotate every anchor with an href in the tree.

        Args:
            tree: Parsed document, mutated in place
            page: Name of the page being rendered (relative links resolve
                  against its directory)

        Returns:
            LinkReport with counts per classification and the broken hrefs
        """
        visitor = _AnchorVisitor(self, page)
        visitor.visit(tree)
        report = visitor.report
        logger.debug(
            f"Annotated links on {page!r}: "
            + ", ".join(f"{cls.value}={n}" for cls, n in report.counts.items())
        )
        return report

    def classify(self, href: str, page: PageName) -> LinkClass:
        """Classify a single href as seen from a page.

        Args:
            href: Raw href attribute value
            page: Name of the page containing the link

        Returns:
            LinkClass for the target
        """
        try:
            parts = urlsplit(href)
        except ValueError:
            return LinkClass.BROKEN

        if parts.netloc:
            return LinkClass.EXTERNAL

        # mailto:, tel: and friends are not same-site targets
        if parts.scheme and parts.scheme not in ("http", "https"):
            return LinkClass.ORDINARY

        if not parts.path:
            return LinkClass.ORDINARY

        target = resolve_link_target(page, unquote(parts.path))
        if target is None or not self._resolver.exists(target):
            return LinkClass.BROKEN
        return LinkClass.ORDINARY


class _AnchorVisitor(ElementVisitor):
    """Per-call visitor that classifies and tags anchors."""

    def __init__(self, annotator: LinkAnnotator, page: PageName) -> None:
        self._annotator = annotator
        self._page = page
        self.report = LinkReport()

    def visit_a(self, element: Tag) -> None:
        href = element.get("href")
        if not isinstance(href, str):
            return
        link_class = self._annotator.classify(href, self._page)
        self.report.counts[link_class] += 1
        if link_class is LinkClass.BROKEN:
            self.report.broken.append(href)
        add_class(element, link_class.css_class)


def resolve_link_target(page: PageName, link_path: str) -> str | None:
    """Resolve a link path to a name relative to the root.

    Every path, including one with a leading "/", is joined onto the
    directory containing the page.

    Returns:
        Normalised name, or None if the path climbs above the root
    """
    base = page if page.endswith("/") else posixpath.dirname(page)
    joined = posixpath.join("/", base, link_path.lstrip("/"))

    if _climbs_above_root(joined):
        return None
    name = posixpath.normpath(joined).lstrip("/")
    return "" if name == "." else name


def _climbs_above_root(path: str) -> bool:
    depth = 0
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            depth -= 1
            if depth < 0:
                return True
        else:
            depth += 1
    return False


def add_class(element: Tag, token: str | None) -> None:
    """Append a class token to an element, keeping existing classes.

    Does nothing when the token is None or already present.
    """
    if token is None:
        return
    existing = element.get("class")
    if existing is None:
        classes: list[str] = []
    elif isinstance(existing, str):
        classes = existing.split()
    else:
        classes = list(existing)
    if token in classes:
        return
    classes.append(token)
    element["class"] = classes
