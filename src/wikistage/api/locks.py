"""Page lock endpoint.

``POST <page>/.lock`` with an opaque token as the body acquires the page's
edit lock, or extends it when the same token already holds it.
"""

from aiohttp import web

from wikistage.app_keys import lock_manager_key, resolver_key
from wikistage.core.errors import (
    MalformedRequestError,
    MethodNotAllowedError,
    PageNotFoundError,
)
from wikistage.core.types import PageName

LOCK_SUFFIX = ".lock"


def create_lock_routes() -> list[web.RouteDef]:
    return [
        web.route("*", "/{page:(?:.*/)?}" + LOCK_SUFFIX, lock_page),
    ]


async def lock_page(request: web.Request) -> web.Response:
    if request.method != "POST":
        raise MethodNotAllowedError("only POSTing locks is allowed", ("POST",))

    page = PageName(request.match_info["page"].strip("/"))
    if not request.app[resolver_key].exists(page):
        raise PageNotFoundError(f"page {page or '/'} not found")

    token = await request.read()
    if not token:
        raise MalformedRequestError("lock can't be empty")

    request.app[lock_manager_key].acquire_or_extend(page, token)
    return web.Response(status=200)
