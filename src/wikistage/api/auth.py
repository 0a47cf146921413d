"""Shared-secret authentication.

When the wiki root holds an ``.auth`` file, every request must carry a
session cookie equal to the file's trimmed contents. Visiting
``/.auth/<token>`` stores the token in that cookie.
"""

import hmac
import logging
from collections.abc import Awaitable, Callable

from aiohttp import web

from wikistage.app_keys import auth_config_key, resolver_key
from wikistage.core.errors import AuthRequiredError, PageNotFoundError
from wikistage.core.resolver import PathResolver

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/.auth/"
AUTH_FILE = ".auth"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def create_auth_routes() -> list[web.RouteDef]:
    return [
        web.get(AUTH_PREFIX + "{token:.*}", set_auth_cookie),
    ]


async def set_auth_cookie(request: web.Request) -> web.Response:
    token = request.match_info["token"]
    auth_config = request.app[auth_config_key]

    response = web.Response(status=303, headers={"Location": ".."})
    response.set_cookie(
        auth_config.cookie_name,
        token,
        path="/",
        max_age=auth_config.cookie_max_age,
        secure=auth_config.secure_cookie,
        httponly=True,
    )
    return response


def read_secret(resolver: PathResolver) -> str | None:
    """Return the shared secret, or None when authentication is disabled."""
    try:
        auth_file = resolver.resolve(AUTH_FILE)
    except PageNotFoundError:
        return None
    return auth_file.content.decode("utf-8", errors="replace").strip()


@web.middleware
async def auth_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Reject requests without a matching session cookie.

    The cookie-setting route itself is always reachable.
    """
    if request.path.startswith(AUTH_PREFIX):
        return await handler(request)

    secret = read_secret(request.app[resolver_key])
    if secret is None:
        return await handler(request)

    cookie = request.cookies.get(request.app[auth_config_key].cookie_name)
    if cookie is None or not hmac.compare_digest(cookie.encode(), secret.encode()):
        logger.info(f"Rejected unauthenticated request for {request.path}")
        raise AuthRequiredError("authentication required")

    return await handler(request)
