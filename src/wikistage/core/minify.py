"""Minification of served HTML, CSS and JavaScript."""

import logging
import re

import minify_html
import rcssmin
import rjsmin

logger = logging.getLogger(__name__)

JAVASCRIPT_RE = re.compile(r"^(application|text)/(x-)?(java|ecma)script$")


class Minifier:
    """Minifies content by MIME type.

    Unknown types, and content a minifier rejects, are returned unchanged.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def minify(self, content: bytes, mime_type: str | None) -> bytes:
        """Minify content of the given MIME type.

        Args:
            content: Raw bytes
            mime_type: MIME type without parameters (e.g., "text/css")

        Returns:
            Minified bytes, or content unchanged
        """
        if not self._enabled or mime_type is None:
            return content
        try:
            if mime_type == "text/html":
                text = content.decode("utf-8")
                return minify_html.minify(text, minify_css=True, minify_js=True).encode("utf-8")
            if mime_type == "text/css":
                return rcssmin.cssmin(content)
            if JAVASCRIPT_RE.match(mime_type):
                return rjsmin.jsmin(content)
        except Exception as e:
            logger.debug(f"Minification of {mime_type} failed, serving as-is: {e}")
        return content
