"""Tests for link annotation."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from bs4 import BeautifulSoup

from wikistage.core.links import (
    ElementVisitor,
    LinkAnnotator,
    add_class,
    iter_elements,
    resolve_link_target,
)
from wikistage.core.resolver import PathResolver
from wikistage.core.types import LinkClass, PageName


@pytest.fixture
def site(wiki_root: Path) -> Path:
    """Create a small wiki.

    wiki/
    ├── index.md
    ├── about.md
    ├── logo.png
    └── notes/
        ├── index.html
        └── todo.md
    """
    (wiki_root / "index.md").write_text("# Home")
    (wiki_root / "about.md").write_text("# About")
    (wiki_root / "logo.png").write_bytes(b"\x89PNG")
    notes = wiki_root / "notes"
    notes.mkdir()
    (notes / "index.html").write_text("<h1>Notes</h1>")
    (notes / "todo.md").write_text("# Todo")
    return wiki_root


@pytest.fixture
def annotator(site: Path) -> LinkAnnotator:
    return LinkAnnotator(PathResolver(site))


def _anchor(soup: BeautifulSoup, index: int = 0):
    return soup.find_all("a")[index]


class TestClassify:
    """Tests for LinkAnnotator.classify()."""

    def test__host__is_external(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("https://example.com/x", PageName("")) is LinkClass.EXTERNAL

    def test__protocol_relative_host__is_external(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("//example.com/about", PageName("")) is LinkClass.EXTERNAL

    def test__external__never_touches_filesystem(self) -> None:
        """External targets are not resolved at all."""
        resolver = MagicMock(spec=PathResolver)
        annotator = LinkAnnotator(resolver)

        assert annotator.classify("https://example.com/x", PageName("")) is LinkClass.EXTERNAL
        resolver.exists.assert_not_called()

    def test__unparseable__is_broken(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("http://[::1", PageName("")) is LinkClass.BROKEN

    def test__sibling_page__is_ordinary(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("about", PageName("index")) is LinkClass.ORDINARY

    def test__missing_page__is_broken(self, annotator: LinkAnnotator) -> None:
        """Neither missing.md, missing.html nor missing/index.* exist."""
        assert annotator.classify("/missing", PageName("")) is LinkClass.BROKEN

    def test__directory_with_index__is_ordinary(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("notes/", PageName("")) is LinkClass.ORDINARY
        assert annotator.classify("notes", PageName("about")) is LinkClass.ORDINARY

    def test__relative_to_page_directory(self, annotator: LinkAnnotator) -> None:
        """Relative links resolve against the directory holding the page."""
        assert annotator.classify("todo", PageName("notes/index")) is LinkClass.ORDINARY
        assert annotator.classify("todo", PageName("notes/")) is LinkClass.ORDINARY
        assert annotator.classify("todo", PageName("about")) is LinkClass.BROKEN
        assert annotator.classify("../about", PageName("notes/todo")) is LinkClass.ORDINARY

    def test__leading_slash__resolves_from_page_directory(self, annotator: LinkAnnotator) -> None:
        """A leading "/" does not restart resolution at the root."""
        assert annotator.classify("/about", PageName("notes/todo")) is LinkClass.BROKEN
        assert annotator.classify("/notes/todo", PageName("notes/todo")) is LinkClass.BROKEN
        assert annotator.classify("/todo", PageName("notes/todo")) is LinkClass.ORDINARY
        assert annotator.classify("/about", PageName("index")) is LinkClass.ORDINARY

    def test__static_asset__is_ordinary(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("logo.png", PageName("")) is LinkClass.ORDINARY

    def test__percent_encoded_path(self, site: Path, annotator: LinkAnnotator) -> None:
        (site / "my page.md").write_text("# Spaces")

        assert annotator.classify("my%20page", PageName("")) is LinkClass.ORDINARY

    def test__query_and_fragment_are_ignored(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("about?x=1#top", PageName("")) is LinkClass.ORDINARY

    def test__fragment_only__is_ordinary(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("#section", PageName("notes/todo")) is LinkClass.ORDINARY

    def test__mailto__is_ordinary(self, annotator: LinkAnnotator) -> None:
        assert annotator.classify("mailto:me@example.com", PageName("")) is LinkClass.ORDINARY

    def test__escape_above_root__is_broken(self, tmp_path: Path, annotator: LinkAnnotator) -> None:
        (tmp_path / "outside.md").write_text("outside")

        assert annotator.classify("../outside", PageName("about")) is LinkClass.BROKEN


class TestAnnotate:
    """Tests for LinkAnnotator.annotate()."""

    def test__adds_class_tokens(self, annotator: LinkAnnotator) -> None:
        soup = BeautifulSoup(
            '<p><a href="about">a</a><a href="https://example.com/x">b</a>'
            '<a href="/missing">c</a></p>',
            "html.parser",
        )

        report = annotator.annotate(soup, PageName(""))

        assert _anchor(soup, 0).get("class") is None
        assert _anchor(soup, 1)["class"] == ["external-link"]
        assert _anchor(soup, 2)["class"] == ["broken-link"]
        assert report.counts == {
            LinkClass.ORDINARY: 1,
            LinkClass.EXTERNAL: 1,
            LinkClass.BROKEN: 1,
        }
        assert report.broken == ["/missing"]

    def test__keeps_existing_classes(self, annotator: LinkAnnotator) -> None:
        soup = BeautifulSoup('<a class="btn big" href="/missing">x</a>', "html.parser")

        annotator.annotate(soup, PageName(""))

        assert _anchor(soup)["class"] == ["btn", "big", "broken-link"]
        assert 'class="btn big broken-link"' in str(soup)

    def test__anchor_without_href__untouched(self, annotator: LinkAnnotator) -> None:
        soup = BeautifulSoup('<a name="top">x</a>', "html.parser")

        report = annotator.annotate(soup, PageName(""))

        assert _anchor(soup).get("class") is None
        assert sum(report.counts.values()) == 0

    def test__nested_anchors_are_visited(self, annotator: LinkAnnotator) -> None:
        soup = BeautifulSoup(
            '<div><ul><li><span><a href="/gone">deep</a></span></li></ul></div>',
            "html.parser",
        )

        annotator.annotate(soup, PageName(""))

        assert _anchor(soup)["class"] == ["broken-link"]

    def test__rerun_is_idempotent(self, annotator: LinkAnnotator) -> None:
        """Annotating an already annotated document does not duplicate tokens."""
        soup = BeautifulSoup(
            '<a href="/missing">a</a><a class="x" href="http://example.com">b</a>',
            "html.parser",
        )

        annotator.annotate(soup, PageName(""))
        once = str(soup)
        annotator.annotate(soup, PageName(""))

        assert str(soup) == once
        assert _anchor(soup, 1)["class"] == ["x", "external-link"]


class TestElementVisitor:
    """Tests for the tree walk."""

    def test__document_order(self) -> None:
        soup = BeautifulSoup("<div><p><b></b></p><i></i></div><span></span>", "html.parser")

        names = [element.name for element in iter_elements(soup)]

        assert names == ["div", "p", "b", "i", "span"]

    def test__dispatches_by_tag(self) -> None:
        class Collector(ElementVisitor):
            def __init__(self) -> None:
                self.paragraphs = 0
                self.others = 0

            def visit_p(self, element) -> None:
                self.paragraphs += 1

            def generic_visit(self, element) -> None:
                self.others += 1

        collector = Collector()
        collector.visit(BeautifulSoup("<p>a</p><div><p>b</p></div>", "html.parser"))

        assert collector.paragraphs == 2
        assert collector.others == 1


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize(
        ("page", "link", "expected"),
        [
            ("", "about", "about"),
            ("notes/todo", "done", "notes/done"),
            ("notes/", "done", "notes/done"),
            ("notes/todo", "../about", "about"),
            ("notes/todo", "/about", "notes/about"),
            ("notes/todo", "/notes/todo", "notes/notes/todo"),
            ("", "/about", "about"),
            ("notes/todo", "..", ""),
            ("about", "../../etc/passwd", None),
            ("", "/../x", None),
        ],
    )
    def test__resolve_link_target(self, page: str, link: str, expected: str | None) -> None:
        assert resolve_link_target(PageName(page), link) == expected

    def test__add_class__creates_attribute(self) -> None:
        soup = BeautifulSoup("<a>x</a>", "html.parser")
        add_class(soup.a, "external-link")
        assert soup.a["class"] == ["external-link"]

    def test__add_class__none_token_is_noop(self) -> None:
        soup = BeautifulSoup('<a class="x">x</a>', "html.parser")
        add_class(soup.a, None)
        assert soup.a["class"] == ["x"]
