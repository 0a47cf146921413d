"""Configuration management for wikistage.

Supports TOML configuration format with auto-discovery and CLI overrides.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from wikistage.core.locks import DEFAULT_TTL

CONFIG_FILENAME = "wikistage.toml"


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8002


@dataclass
class WikiConfig:
    """Wiki content configuration."""

    root: Path = field(default_factory=lambda: Path("wiki"))
    site_title: str = "wikistage"


@dataclass
class AuthConfig:
    """Session cookie configuration.

    Authentication itself is enabled by an ``.auth`` file in the wiki root.
    """

    cookie_name: str = "wikistage_session"
    cookie_max_age: int = 31536000
    secure_cookie: bool = True


@dataclass
class LocksConfig:
    """Edit lock configuration."""

    ttl: float = DEFAULT_TTL


@dataclass
class RenderConfig:
    """Output rendering configuration."""

    minify: bool = True


@dataclass
class CliSettings:
    """Values given on the command line; None means "use the config file"."""

    host: str | None = None
    port: int | None = None
    root: Path | None = None
    minify: bool | None = None


@dataclass
class Config:
    """Application configuration."""

    server: ServerConfig
    wiki: WikiConfig
    auth: AuthConfig
    locks: LocksConfig
    render: RenderConfig
    config_path: Path | None = None

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        cli_settings: CliSettings | None = None,
    ) -> "Config":
        """Load configuration from file and apply CLI overrides.

        If config_path is provided, loads from that file.
        Otherwise, searches for wikistage.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file
            cli_settings: Optional command-line overrides

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            config = cls._load_from_file(config_path)
        else:
            discovered_path = cls._discover_config()
            if discovered_path is None:
                config = cls._default()
            else:
                config = cls._load_from_file(discovered_path)

        if cli_settings is not None:
            config = config.with_overrides(cli_settings)
        return config

    def with_overrides(self, cli_settings: CliSettings) -> "Config":
        """Return a copy with non-None CLI settings applied."""
        server = self.server
        if cli_settings.host is not None:
            server = replace(server, host=cli_settings.host)
        if cli_settings.port is not None:
            server = replace(server, port=cli_settings.port)

        wiki = self.wiki
        if cli_settings.root is not None:
            wiki = replace(wiki, root=cli_settings.root)

        render = self.render
        if cli_settings.minify is not None:
            render = replace(render, minify=cli_settings.minify)

        return replace(self, server=server, wiki=wiki, render=render)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents.

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> "Config":
        """Create config with all defaults."""
        return cls(
            server=ServerConfig(),
            wiki=WikiConfig(),
            auth=AuthConfig(),
            locks=LocksConfig(),
            render=RenderConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        config_dir = path.parent

        return cls(
            server=cls._parse_server(data.get("server")),
            wiki=cls._parse_wiki(data.get("wiki"), config_dir),
            auth=cls._parse_auth(data.get("auth")),
            locks=cls._parse_locks(data.get("locks")),
            render=cls._parse_render(data.get("render")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 8002)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_wiki(cls, data: object, config_dir: Path) -> WikiConfig:
        """Parse wiki configuration section.

        Args:
            data: Raw wiki section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            WikiConfig instance
        """
        if data is None:
            return WikiConfig(root=config_dir / "wiki")

        if not isinstance(data, dict):
            raise ValueError("wiki section must be a dictionary")

        root = data.get("root", "wiki")
        if not isinstance(root, str):
            raise ValueError("wiki.root must be a string")

        site_title = data.get("site_title", "wikistage")
        if not isinstance(site_title, str):
            raise ValueError("wiki.site_title must be a string")

        return WikiConfig(root=config_dir / root, site_title=site_title)

    @classmethod
    def _parse_auth(cls, data: object) -> AuthConfig:
        if data is None:
            return AuthConfig()

        if not isinstance(data, dict):
            raise ValueError("auth section must be a dictionary")

        cookie_name = data.get("cookie_name", "wikistage_session")
        if not isinstance(cookie_name, str) or not cookie_name:
            raise ValueError("auth.cookie_name must be a non-empty string")

        cookie_max_age = data.get("cookie_max_age", 31536000)
        if not isinstance(cookie_max_age, int) or isinstance(cookie_max_age, bool):
            raise ValueError("auth.cookie_max_age must be an integer")

        secure_cookie = data.get("secure_cookie", True)
        if not isinstance(secure_cookie, bool):
            raise ValueError("auth.secure_cookie must be a boolean")

        return AuthConfig(
            cookie_name=cookie_name,
            cookie_max_age=cookie_max_age,
            secure_cookie=secure_cookie,
        )

    @classmethod
    def _parse_locks(cls, data: object) -> LocksConfig:
        if data is None:
            return LocksConfig()

        if not isinstance(data, dict):
            raise ValueError("locks section must be a dictionary")

        ttl = data.get("ttl", DEFAULT_TTL)
        if not isinstance(ttl, int | float) or isinstance(ttl, bool) or ttl <= 0:
            raise ValueError("locks.ttl must be a positive number")

        return LocksConfig(ttl=float(ttl))

    @classmethod
    def _parse_render(cls, data: object) -> RenderConfig:
        if data is None:
            return RenderConfig()

        if not isinstance(data, dict):
            raise ValueError("render section must be a dictionary")

        minify = data.get("minify", True)
        if not isinstance(minify, bool):
            raise ValueError("render.minify must be a boolean")

        return RenderConfig(minify=minify)
