"""Sandboxed page resolution.

Maps logical page names to files inside a fixed root directory, with
extension fallback for pages and traversal protection for everything.
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path

from wikistage.core.errors import PageNotFoundError, TraversalError

logger = logging.getLogger(__name__)

PAGE_EXTENSIONS = (".md", ".html")
INDEX_NAME = "index"


@dataclass(frozen=True)
class ResolvedFile:
    """File content together with the extension that satisfied resolution."""

    content: bytes
    extension: str
    path: Path

    @property
    def is_markdown(self) -> bool:
        return self.extension == ".md"


class PathResolver:
    """Resolves page names to files strictly below a root directory.

    The root is canonicalised once. Every candidate path is canonicalised as
    well (symlinks and ``..`` collapsed) before the containment check, so the
    check does not depend on how the name was spelled.
    """

    def __init__(self, root: Path) -> None:
        """Initialize resolver.

        Args:
            root: Wiki root directory
        """
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        """Canonical root directory."""
        return self._root

    def resolve(self, name: str) -> ResolvedFile:
        """Read a file verbatim, without extension substitution.

        Args:
            name: Name relative to the root (e.g., "img/logo.png")

        Returns:
            ResolvedFile with an empty extension

        Raises:
            TraversalError: If the name escapes the root
            PageNotFoundError: If the file cannot be read
        """
        return self._read(name, "")

    def resolve_with_fallback(self, name: str) -> ResolvedFile:
        """Read a page, preferring Markdown over HTML over the bare name.

        Args:
            name: Page name relative to the root (e.g., "notes/todo")

        Returns:
            First ResolvedFile found among name.md, name.html, name

        Raises:
            TraversalError: If any candidate escapes the root
            PageNotFoundError: If no candidate can be read
        """
        for extension in PAGE_EXTENSIONS:
            try:
                return self._read(name + extension, extension)
            except PageNotFoundError:
                continue
        return self._read(name, "")

    def resolve_index(self, dir_name: str) -> ResolvedFile:
        """Read the index page of a directory."""
        return self.resolve_with_fallback(posixpath.join(dir_name, INDEX_NAME))

    def resolve_page(self, name: str) -> ResolvedFile:
        """Read a page the way a request for it would.

        Empty names and names ending in "/" are directory requests and go to
        the directory's index page.
        """
        if not name or name.endswith("/"):
            return self.resolve_index(name)
        return self.resolve_with_fallback(name)

    def exists(self, name: str) -> bool:
        """Check whether a name resolves to a page or a directory index.

        Names escaping the root count as absent.
        """
        for lookup in (self.resolve_with_fallback, self.resolve_index):
            try:
                lookup(name)
            except PageNotFoundError:
                continue
            except TraversalError:
                return False
            return True
        return False

    def locate(self, name: str) -> Path | None:
        """Return the canonical path for a name if it exists on disk.

        Args:
            name: Name relative to the root; "" denotes the root itself

        Returns:
            Existing file or directory path, or None (also when the
            filesystem rejects the name, e.g. ENAMETOOLONG)

        Raises:
            TraversalError: If the name escapes the root
        """
        path = self._contain(name, allow_root=True)
        if path is None:
            return None
        try:
            if not path.exists():
                return None
        except OSError as e:
            logger.debug(f"Cannot stat {name!r}: {e}")
            return None
        return path

    def is_directory(self, name: str) -> bool:
        """Whether a name is an existing directory below (or equal to) the root.

        Raises:
            TraversalError: If the name escapes the root
        """
        path = self.locate(name)
        if path is None:
            return False
        try:
            return path.is_dir()
        except OSError:
            return False

    def _read(self, name: str, extension: str) -> ResolvedFile:
        path = self._contain(name)
        if path is None:
            raise PageNotFoundError(f"open {name}: invalid file name")
        try:
            content = path.read_bytes()
        except (OSError, ValueError) as e:
            raise PageNotFoundError(f"open {name}: {getattr(e, 'strerror', None) or e}") from e
        return ResolvedFile(content=content, extension=extension, path=path)

    def _contain(self, name: str, *, allow_root: bool = False) -> Path | None:
        """Join a name onto the root and verify containment.

        Returns None for names the filesystem cannot represent (e.g., NUL
        bytes) and for the root itself unless allow_root is set.
        """
        try:
            candidate = (self._root / name).resolve()
        except (ValueError, OSError, RuntimeError):
            return None

        if candidate == self._root:
            return candidate if allow_root else None
        if not candidate.is_relative_to(self._root):
            logger.warning(f"Traversal attempt outside {self._root}: {name!r}")
            raise TraversalError(name)
        return candidate
