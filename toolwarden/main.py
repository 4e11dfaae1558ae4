"""
Toolwarden — CLI entrypoint.

Usage:
    toolwarden --help
    toolwarden tools status
    toolwarden tools reconcile
    toolwarden config check --json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from toolwarden import __version__
from toolwarden.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="toolwarden")
@click.option("--verbose", "-v", is_flag=True, help="Log progress (INFO).")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors; no progress lines.")
@click.option("--debug", is_flag=True, help="Log everything, with file:line.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.yml (default: ~/.toolwarden/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Toolwarden — install and keep AI coding CLIs current."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        quiet=quiet,
        config_path=Path(config_path) if config_path else None,
    )
    setup_logging(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.group()
def config() -> None:
    """Orchestrator configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate config.yml and print the effective settings."""
    from toolwarden.core.config.loader import ConfigError, find_config_file, load_config

    explicit: Path | None = ctx.obj.get("config_path")
    source = explicit or find_config_file()

    try:
        settings = load_config(explicit).model_dump(mode="json")
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        payload = {"valid": True, "source": str(source) if source else None, "config": settings}
        click.echo(json.dumps(payload, indent=2))
        return

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   source: {source or '(defaults)'}")
    width = max(len(k) for k in settings)
    for key, value in settings.items():
        click.echo(f"   {key:<{width}}  {value}")


# ── Sub-command groups from toolwarden/ui/cli/ ──────────────────

from toolwarden.ui.cli.tools import tools  # noqa: E402

cli.add_command(tools)


if __name__ == "__main__":
    cli()
