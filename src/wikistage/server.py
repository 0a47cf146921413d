"""aiohttp server for wikistage.

Application factory, middlewares and route registration.
"""

import logging
from collections.abc import Awaitable, Callable
from hashlib import md5

from aiohttp import web

from wikistage.api.auth import auth_middleware, create_auth_routes
from wikistage.api.locks import create_lock_routes
from wikistage.api.pages import create_pages_routes
from wikistage.app_keys import (
    auth_config_key,
    lock_manager_key,
    minifier_key,
    renderer_key,
    resolver_key,
)
from wikistage.config import Config
from wikistage.core.errors import MethodNotAllowedError, TraversalError, WikiError
from wikistage.core.locks import LockManager
from wikistage.core.minify import Minifier
from wikistage.core.renderer import PageRenderer
from wikistage.core.resolver import PathResolver

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def create_app(config: Config, *, lock_manager: LockManager | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        lock_manager: Lock manager to use (default: one built from config)

    Returns:
        Configured aiohttp application
    """
    app = web.Application(middlewares=[etag_middleware, error_middleware, auth_middleware])

    resolver = PathResolver(config.wiki.root)
    minifier = Minifier(enabled=config.render.minify)

    app[resolver_key] = resolver
    app[minifier_key] = minifier
    app[renderer_key] = PageRenderer(
        resolver,
        site_title=config.wiki.site_title,
        minifier=minifier,
    )
    app[lock_manager_key] = lock_manager or LockManager(config.locks.ttl)
    app[auth_config_key] = config.auth

    # Order matters: the catch-all page route must be registered last
    app.router.add_routes(create_auth_routes())
    app.router.add_routes(create_lock_routes())
    app.router.add_routes(create_pages_routes())

    app.on_response_prepare.append(_add_vary_header)
    app.on_cleanup.append(_close_lock_manager)

    return app


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Translate wiki errors into plain-text responses."""
    try:
        return await handler(request)
    except TraversalError as e:
        logger.warning(f"Blocked directory traversal from {request.remote}: {e.name!r}")
        return web.Response(status=e.status, text="not found")
    except MethodNotAllowedError as e:
        return web.Response(
            status=e.status,
            text=e.message,
            headers={"Allow": ", ".join(e.allowed)},
        )
    except WikiError as e:
        if e.status >= 500:
            logger.error(f"Failed to serve {request.path}: {e.message}")
        else:
            logger.debug(f"{request.method} {request.path} -> {e.status}: {e.message}")
        return web.Response(status=e.status, text=e.message)


@web.middleware
async def etag_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Add weak ETags to successful GET responses and honour If-None-Match."""
    response = await handler(request)
    if request.method != "GET" or response.status != 200:
        return response
    if not isinstance(response, web.Response) or not isinstance(response.body, bytes):
        return response

    etag = compute_etag(response.body)
    response.headers["ETag"] = etag
    if etag_matches(request.headers.get("If-None-Match"), etag):
        headers = {"ETag": etag}
        if "Cache-Control" in response.headers:
            headers["Cache-Control"] = response.headers["Cache-Control"]
        return web.Response(status=304, headers=headers)
    return response


def compute_etag(content: bytes) -> str:
    # First 16 hex chars (64 bits) are enough for cache validation
    content_hash = md5(content, usedforsecurity=False).hexdigest()[:16]
    return f'W/"{content_hash}"'


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """Weak comparison of an If-None-Match header against an ETag."""
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    wanted = etag.removeprefix("W/")
    return any(
        candidate.strip().removeprefix("W/") == wanted
        for candidate in if_none_match.split(",")
    )


async def _add_vary_header(request: web.Request, response: web.StreamResponse) -> None:
    response.headers["Vary"] = "Cookie"


async def _close_lock_manager(app: web.Application) -> None:
    app[lock_manager_key].close()


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    web.run_app(app, host=config.server.host, port=config.server.port)
