"""
CLI commands for the tool lifecycle.

Thin wrappers over ``toolwarden.core.services.tool_install``.
"""

from __future__ import annotations

import json
import sys

import click


def _orchestrator(ctx: click.Context, **kwargs):
    """Build an orchestrator from ``--config``, exiting on config errors."""
    from toolwarden.core.config.loader import ConfigError
    from toolwarden.core.services.tool_install import ToolOrchestrator

    try:
        return ToolOrchestrator.from_config(ctx.obj.get("config_path"), **kwargs)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


class _EchoObserver:
    """Prints progress events as they are published."""

    _ICONS = {
        "tool-checking": ("🔍", "white"),
        "tool-installing": ("📥", "cyan"),
        "tool-installed": ("✅", "green"),
        "tool-updating": ("⬆️ ", "cyan"),
        "tool-updated": ("✅", "green"),
        "tool-failed": ("❌", "red"),
    }

    def on_progress(self, event) -> None:
        if event.type not in self._ICONS:
            return
        icon, color = self._ICONS[event.type]
        line = f"   {icon} {event.key}: {event.type.removeprefix('tool-')}"
        if event.data.get("version"):
            line += f" ({event.data['version']})"
        click.secho(line, fg=color)
        if event.error:
            click.echo(f"      {event.error.splitlines()[0]}")


def _fail(error) -> None:
    click.secho(f"❌ {error}", fg="red")
    sys.exit(1)


@click.group()
def tools() -> None:
    """Tools — status, install, update, reconcile."""


# ── Detect ──────────────────────────────────────────────────────


@tools.command()
@click.argument("name", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, name: str | None, as_json: bool) -> None:
    """Show which tools are installed in the private root."""
    orch = _orchestrator(ctx)
    statuses = [orch.status(name)] if name else orch.status_all()

    if as_json:
        click.echo(json.dumps([s.model_dump() for s in statuses], indent=2))
        return

    click.secho(f"🧰 Tools in {orch.config.root}:", fg="cyan", bold=True)
    for s in statuses:
        if s.installed:
            click.secho(f"   ✓ {s.name:<12}", fg="green", nl=False)
            click.echo(f" {s.version or '?':<14} → {s.path}")
        else:
            click.secho(f"   ✗ {s.name:<12}", fg="red", nl=False)
            click.echo(" (not installed)")
    click.echo()


@tools.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def paths(ctx: click.Context, as_json: bool) -> None:
    """Show the private root, cache, and npm in use."""
    orch = _orchestrator(ctx)
    result = orch.paths()

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    for key, value in result.items():
        click.echo(f"   {key:<10} {value or '(not found)'}")


# ── Act ─────────────────────────────────────────────────────────


@tools.command()
@click.argument("name")
@click.pass_context
def install(ctx: click.Context, name: str) -> None:
    """Install a tool now (waits for a background install of it)."""
    from toolwarden.core.services.tool_install.domain.errors import ToolInstallError

    orch = _orchestrator(ctx)
    click.secho(f"📥 Installing {name}...", fg="cyan")
    try:
        result = orch.install(name)
    except ToolInstallError as e:
        _fail(e)
        return

    click.secho(f"✅ {name} {result.version or ''}".rstrip(), fg="green", bold=True)
    click.echo(f"   → {result.path}")


@tools.command()
@click.argument("name")
@click.pass_context
def update(ctx: click.Context, name: str) -> None:
    """Update an installed tool to the latest release."""
    from toolwarden.core.services.tool_install.domain.errors import ToolInstallError

    orch = _orchestrator(ctx)
    click.secho(f"⬆️  Updating {name}...", fg="cyan")
    try:
        result = orch.update(name)
    except ToolInstallError as e:
        _fail(e)
        return

    click.secho(f"✅ {name} {result.version or ''}".rstrip(), fg="green", bold=True)


@tools.command()
@click.option(
    "--version", "selector", default=None,
    help="latest, stable, or an exact version (default: configured channel).",
)
@click.pass_context
def native(ctx: click.Context, selector: str | None) -> None:
    """Install the natively distributed claude build."""
    from toolwarden.core.services.tool_install.domain.errors import ToolInstallError

    orch = _orchestrator(ctx)
    click.secho(f"📥 Installing native claude ({selector or orch.config.native_channel})...", fg="cyan")
    try:
        result = orch.install_native(selector)
    except ToolInstallError as e:
        _fail(e)
        return

    click.secho(f"✅ claude {result.version or ''}".rstrip(), fg="green", bold=True)
    click.echo(f"   → {result.path}")


@tools.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def reconcile(ctx: click.Context, as_json: bool) -> None:
    """Install missing tools and update outdated ones."""
    from toolwarden.core.services.event_bus import EventBus

    observers = [] if as_json or ctx.obj.get("quiet") else [_EchoObserver()]
    orch = _orchestrator(ctx, bus=EventBus(observers))
    report = orch.reconcile()

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        sys.exit(0 if report.ok else 1)
        return

    click.echo()
    for outcome in report.outcomes:
        label = outcome.phase.value.replace("_", " ")
        version = f" {outcome.version}" if outcome.version else ""
        if outcome.failed:
            click.secho(f"   ✗ {outcome.name:<12} {label}", fg="red")
        elif outcome.warning:
            click.secho(f"   ⚠️  {outcome.name:<12} {label}{version}", fg="yellow")
            click.echo(f"      {outcome.warning.splitlines()[0]}")
        else:
            click.secho(f"   ✓ {outcome.name:<12} {label}{version}", fg="green")

    failed = sum(1 for o in report.outcomes if o.failed)
    click.echo()
    if failed:
        click.secho(f"   {failed} tool(s) failed", fg="red", bold=True)
        sys.exit(1)
    click.secho("   All tools reconciled", fg="green", bold=True)
