"""Application keys for type-safe app configuration access."""

from aiohttp import web

from wikistage.config import AuthConfig
from wikistage.core.locks import LockManager
from wikistage.core.minify import Minifier
from wikistage.core.renderer import PageRenderer
from wikistage.core.resolver import PathResolver

resolver_key = web.AppKey("resolver", PathResolver)
renderer_key = web.AppKey("renderer", PageRenderer)
lock_manager_key = web.AppKey("lock_manager", LockManager)
minifier_key = web.AppKey("minifier", Minifier)
auth_config_key = web.AppKey("auth_config", AuthConfig)
