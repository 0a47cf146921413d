"""Shared test fixtures."""

from pathlib import Path

import pytest

from wikistage.config import (
    AuthConfig,
    Config,
    LocksConfig,
    RenderConfig,
    ServerConfig,
    WikiConfig,
)
from wikistage.core.resolver import PathResolver


@pytest.fixture
def wiki_root(tmp_path: Path) -> Path:
    """Create an empty wiki root directory."""
    root = tmp_path / "wiki"
    root.mkdir()
    return root


@pytest.fixture
def resolver(wiki_root: Path) -> PathResolver:
    return PathResolver(wiki_root)


@pytest.fixture
def test_config(wiki_root: Path) -> Config:
    """Create a test configuration pointing at wiki_root.

    Minification is disabled so tests can assert on the generated markup,
    and the session cookie is not marked Secure so the plain-HTTP test
    client keeps it.
    """
    return Config(
        server=ServerConfig(),
        wiki=WikiConfig(root=wiki_root, site_title="testwiki"),
        auth=AuthConfig(secure_cookie=False),
        locks=LocksConfig(),
        render=RenderConfig(minify=False),
    )
