"""Page rendering pipeline.

Assembles header, title, up link, page content and footer into one
document, annotates its links and minifies the result.
"""

import html
import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path

import mistune
from bs4 import BeautifulSoup

from wikistage.core.errors import PageNotFoundError, RenderError
from wikistage.core.links import LinkAnnotator, LinkReport
from wikistage.core.minify import Minifier
from wikistage.core.resolver import PathResolver, ResolvedFile
from wikistage.core.types import PageName

logger = logging.getLogger(__name__)

HEADER_NAME = ".header"
FOOTER_NAME = ".footer"
MARKDOWN_PLUGINS = ["table", "strikethrough", "footnotes", "url", "task_lists", "def_list"]


@dataclass
class RenderedPage:
    """Result of rendering a page."""

    html: bytes
    source_path: Path
    links: LinkReport


class PageRenderer:
    """Renders wiki pages to annotated, minified HTML.

    Markdown pages are converted with mistune; HTML pages are included
    verbatim. The optional ``.header`` and ``.footer`` fragments follow the
    same rule.
    """

    def __init__(
        self,
        resolver: PathResolver,
        *,
        site_title: str = "wikistage",
        minifier: Minifier | None = None,
    ) -> None:
        """Initialize renderer.

        Args:
            resolver: Resolver for the wiki root
            site_title: Title prefix for every page
            minifier: HTML minifier (default: enabled Minifier)
        """
        self._resolver = resolver
        self._site_title = site_title
        self._minifier = minifier or Minifier()
        self._annotator = LinkAnnotator(resolver)
        self._markdown = mistune.create_markdown(escape=False, plugins=MARKDOWN_PLUGINS)

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    def render(self, page: PageName) -> RenderedPage:
        """Render a page.

        Args:
            page: Page name; "" or a name ending in "/" renders a directory index

        Returns:
            RenderedPage with the final HTML

        Raises:
            PageNotFoundError: If the page does not resolve
            TraversalError: If the page name escapes the root
            RenderError: If the assembled document cannot be processed
        """
        source = self._resolver.resolve_page(page)

        parts = [
            self._optional_fragment(HEADER_NAME),
            self._title(page),
            self._up_link(page),
            self._to_html(source),
            self._optional_fragment(FOOTER_NAME),
        ]
        document = "".join(parts)

        try:
            tree = BeautifulSoup(document, "html.parser")
        except Exception as e:
            logger.error(f"Failed to parse generated markup for {page!r}: {e}")
            raise RenderError(str(e)) from e

        links = self._annotator.annotate(tree, page)

        try:
            rendered = str(tree).encode("utf-8")
        except Exception as e:
            logger.error(f"Failed to serialise {page!r}: {e}")
            raise RenderError(str(e)) from e

        return RenderedPage(
            html=self._minifier.minify(rendered, "text/html"),
            source_path=source.path,
            links=links,
        )

    def _to_html(self, source: ResolvedFile) -> str:
        text = source.content.decode("utf-8", errors="replace")
        if source.is_markdown:
            return self._markdown(text)
        return text

    def _optional_fragment(self, name: str) -> str:
        try:
            fragment = self._resolver.resolve_with_fallback(name)
        except PageNotFoundError:
            return ""
        return self._to_html(fragment)

    def _title(self, page: PageName) -> str:
        if not page:
            return f"<title>{html.escape(self._site_title)}</title>\n"
        return f"<title>{html.escape(f'{self._site_title}: {page}')}</title>\n"

    def _up_link(self, page: PageName) -> str:
        if not page:
            return ""
        href = up_link_target(page)
        return f'<a href="{html.escape(href)}" class="up-arrow">↰ up</a>'


def up_link_target(page: PageName) -> str:
    """Relative href of the directory above a page.

    For a directory page ("notes/") that is "..", for a leaf page
    ("notes/todo") it is the directory holding the page ("../notes/").
    """
    if page.endswith("/"):
        return ".."
    parent = posixpath.basename(posixpath.dirname(page))
    if not parent:
        return "./"
    return posixpath.join("..", parent) + "/"
