"""CLI interface for wikistage.

Command-line tool for serving a wiki directory and checking its links.
"""

import logging
import sys
from pathlib import Path

import click

from wikistage.config import CliSettings, Config


@click.group()
def cli() -> None:
    """wikistage - a personal wiki served from a directory of pages."""


def _load_config(config_path: Path | None, cli_settings: CliSettings) -> Config:
    """Load configuration or exit with an error message."""
    try:
        return Config.load(config_path, cli_settings)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover wikistage.toml)",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Wiki root directory (overrides config)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--minify/--no-minify",
    default=None,
    help="Enable/disable output minification (overrides config, default: enabled)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
def serve(
    config_path: Path | None,
    root: Path | None,
    host: str | None,
    port: int | None,
    minify: bool | None,
    verbose: bool,
) -> None:
    """Start the wiki server."""
    from wikistage.server import run_server

    cli_settings = CliSettings(host=host, port=port, root=root, minify=minify)
    config = _load_config(config_path, cli_settings)
    _configure_logging(verbose)

    if not config.wiki.root.is_dir():
        click.echo(
            click.style(f"Error: wiki root {config.wiki.root} is not a directory", fg="red"),
            err=True,
        )
        sys.exit(1)

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Wiki root: {config.wiki.root}")
    click.echo(f"Lock TTL: {config.locks.ttl:g}s")
    if (config.wiki.root / ".auth").is_file():
        click.echo("Authentication: enabled (.auth)")
    else:
        click.echo("Authentication: disabled")

    run_server(config)


@cli.command("check-links")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover wikistage.toml)",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Wiki root directory (overrides config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
def check_links_command(config_path: Path | None, root: Path | None, verbose: bool) -> None:
    """List broken links on every page of the wiki."""
    from wikistage.core.checker import check_links
    from wikistage.core.minify import Minifier
    from wikistage.core.renderer import PageRenderer
    from wikistage.core.resolver import PathResolver

    config = _load_config(config_path, CliSettings(root=root))
    _configure_logging(verbose)

    renderer = PageRenderer(
        PathResolver(config.wiki.root),
        site_title=config.wiki.site_title,
        minifier=Minifier(enabled=False),
    )
    broken = check_links(renderer)

    if not broken:
        click.echo(click.style("No broken links found.", fg="green"))
        return

    click.echo(click.style(f"Found {len(broken)} broken link(s):", fg="yellow", bold=True))
    for link in broken:
        click.echo(f"  /{link.page}: {link.href}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
