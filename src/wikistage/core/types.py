"""Core type definitions."""

from enum import Enum
from typing import NewType

# Slash-delimited page name relative to the wiki root (e.g., "notes/todo",
# "notes/" for a directory index). Distinct from filesystem Path.
PageName = NewType("PageName", str)


class LinkClass(Enum):
    """Classification of an anchor target."""

    ORDINARY = "ordinary"
    BROKEN = "broken"
    EXTERNAL = "external"

    @property
    def css_class(self) -> str | None:
        """CSS class token added to annotated anchors (None for ordinary links)."""
        if self is LinkClass.ORDINARY:
            return None
        return f"{self.value}-link"


def to_page_name(url_path: str) -> PageName:
    """Convert a URL path to a page name relative to the root.

    Leading slashes are dropped; a trailing slash is kept because it marks
    a directory request.
    """
    return PageName(url_path.lstrip("/"))
