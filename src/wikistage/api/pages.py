"""Page and static asset endpoint.

Renders pages, serves static assets and normalises trailing slashes so
that directories are always addressed with one and files without.
"""

import mimetypes
import posixpath

from aiohttp import web

from wikistage.app_keys import minifier_key, renderer_key, resolver_key
from wikistage.core.errors import MethodNotAllowedError, PageNotFoundError
from wikistage.core.resolver import PAGE_EXTENSIONS, PathResolver
from wikistage.core.types import to_page_name

REDIRECT_CACHE_CONTROL = "max-age=604800"
STATIC_CACHE_CONTROL = "max-age=300, stale-while-revalidate=28800"
PAGE_CACHE_CONTROL = "max-age=10"


def create_pages_routes() -> list[web.RouteDef]:
    return [
        web.route("*", "/{path:.*}", get_page),
    ]


async def get_page(request: web.Request) -> web.Response:
    if request.method not in ("GET", "POST"):
        raise MethodNotAllowedError("only GETting or POSTing pages is allowed", ("GET", "POST"))

    url_path = request.path
    resolver = request.app[resolver_key]

    page = to_page_name(url_path)
    if is_hidden(page):
        raise PageNotFoundError(f"page {url_path} not found")

    location = slash_redirect(resolver, url_path)
    if location is not None:
        return web.Response(
            status=303,
            headers={"Location": location, "Cache-Control": REDIRECT_CACHE_CONTROL},
        )

    extension = posixpath.splitext(url_path)[1]
    if extension and extension not in PAGE_EXTENSIONS:
        return _static_response(request, page)

    rendered = request.app[renderer_key].render(page)
    return web.Response(
        body=rendered.html,
        content_type="text/html",
        charset="utf-8",
        headers={"Cache-Control": PAGE_CACHE_CONTROL},
    )


def is_hidden(page: str) -> bool:
    """Whether a name points into a dot-file such as .auth or .header."""
    return any(
        segment.startswith(".") and segment not in (".", "..") for segment in page.split("/")
    )


def slash_redirect(resolver: PathResolver, url_path: str) -> str | None:
    """Return a relative redirect target if the trailing slash is wrong.

    Args:
        resolver: Resolver for the wiki root
        url_path: Request path (e.g., "/notes" or "/notes/todo/")

    Returns:
        "<base>/" for a directory requested without a slash, "../<base>"
        for a file requested with one, or None
    """
    name = url_path.strip("/")
    if resolver.locate(name) is None:
        return None

    is_dir = resolver.is_directory(name)
    has_slash = url_path.endswith("/")
    base = posixpath.basename(url_path.rstrip("/"))
    if is_dir and not has_slash:
        return f"{base}/"
    if not is_dir and has_slash:
        return posixpath.join("..", base)
    return None


def _static_response(request: web.Request, page: str) -> web.Response:
    asset = request.app[resolver_key].resolve(page)
    mime_type = mimetypes.guess_type(page)[0]
    body = request.app[minifier_key].minify(asset.content, mime_type)
    return web.Response(
        body=body,
        content_type=mime_type or "application/octet-stream",
        headers={"Cache-Control": STATIC_CACHE_CONTROL},
    )
