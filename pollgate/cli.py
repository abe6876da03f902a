"""pollgate CLI -- operator commands for permissions, moderation and audit."""

import logging

import click
from rich.console import Console
from rich.table import Table

from pollgate import __version__
from pollgate.auth.decision import Action
from pollgate.auth.models import Role

console = Console()


def _core(home: str | None):
    from dataclasses import replace

    from pollgate.config import load_policy
    from pollgate.core import build_core

    # each command runs in its own process, so audit entries must land on disk
    policy = replace(load_policy(), audit_sink="jsonl")
    return build_core(home, policy=policy)


@click.group()
@click.version_option(version=__version__)
@click.option("--home", envvar="POLLGATE_HOME", default=None, help="Data directory (default ~/.pollgate)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, home: str | None, verbose: bool):
    """pollgate -- authorization and moderation for the polling app.

    Inspect the role/permission table, check decisions for an identity,
    moderate polls and comments, and read the audit trail.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = {"home": home}


# ── Permissions ─────────────────────────────────────────────────────


@main.command()
@click.argument("role", required=False, type=click.Choice([r.value for r in Role]))
def permissions(role: str | None):
    """Show the permission table, or the permissions of ROLE."""
    from pollgate.auth.models import Permission
    from pollgate.auth.permissions import (
        has_permission,
        permission_display_name,
        role_display_name,
    )

    roles = [Role(role)] if role else list(Role)

    table = Table(title="Role permissions")
    table.add_column("Permission", style="cyan")
    for r in roles:
        table.add_column(role_display_name(r), justify="center")

    for p in Permission:
        table.add_row(
            permission_display_name(p),
            *["[green]yes[/]" if has_permission(r, p) else "[dim]-[/]" for r in roles],
        )

    console.print(table)


# ── Authorize ───────────────────────────────────────────────────────


@main.command()
@click.argument("identity_id")
@click.argument("action", type=click.Choice([a.value for a in Action]))
@click.option("--poll", "poll_id", default=None, help="Poll the action targets")
@click.option("--comment", "comment_id", default=None, help="Comment the action targets")
@click.pass_obj
def authorize(obj: dict, identity_id: str, action: str, poll_id: str | None, comment_id: str | None):
    """Show whether IDENTITY_ID may perform ACTION."""
    from pollgate.auth.decision import authorize as decide
    from pollgate.moderation.models import ResourceKind

    core = _core(obj["home"])
    actor = core.gate.resolve_actor(identity_id)

    resource = None
    if poll_id:
        resource = core.content.fetch_resource_with_owner(ResourceKind.poll, poll_id)
    elif comment_id:
        resource = core.content.fetch_resource_with_owner(ResourceKind.comment, comment_id)

    decision = decide(actor, Action(action), resource)
    if decision.allowed:
        console.print(f"[bold green]ALLOW[/] {identity_id} -> {action}")
    else:
        console.print(f"[bold red]DENY[/] {identity_id} -> {action} ({decision.reason})")
        raise SystemExit(1)


# ── Moderate ────────────────────────────────────────────────────────


@main.command()
@click.argument("kind", type=click.Choice(["poll", "comment"]))
@click.argument("resource_id")
@click.argument("action", type=click.Choice(["approve", "hide", "delete"]))
@click.option("--actor", required=True, help="Identity performing the moderation")
@click.option("--reason", default=None, help="Reason recorded on the resource")
@click.pass_obj
def moderate(obj: dict, kind: str, resource_id: str, action: str, actor: str, reason: str | None):
    """Approve, hide or delete a poll or comment."""
    from pollgate.auth.decision import Decision
    from pollgate.moderation.models import ModerationAction, ResourceKind

    core = _core(obj["home"])
    profile = core.gate.resolve_actor(actor)
    resource = core.content.fetch_resource_with_owner(ResourceKind(kind), resource_id)
    if resource is None:
        console.print(f"[red]{kind} {resource_id} not found.[/]")
        raise SystemExit(1)

    result = core.moderation.transition_moderation(resource, ModerationAction(action), profile, reason)
    if isinstance(result, Decision):
        console.print(f"[red]{result.message}[/] ({result.reason})")
        raise SystemExit(1)
    console.print(f"[green]{kind} {resource_id} is now {result.state.value}.[/]")


@main.command()
@click.argument("kind", type=click.Choice(["poll", "comment"]))
@click.option("--actor", required=True, help="Identity viewing the queue")
@click.pass_obj
def queue(obj: dict, kind: str, actor: str):
    """List polls or comments waiting for moderation."""
    from pollgate.auth.decision import Decision
    from pollgate.moderation.models import ResourceKind

    core = _core(obj["home"])
    result = core.moderation.moderation_queue(ResourceKind(kind), core.gate.resolve_actor(actor))
    if isinstance(result, Decision):
        console.print(f"[red]{result.message}[/]")
        raise SystemExit(1)
    if not result:
        console.print("[yellow]Nothing to moderate.[/]")
        return

    table = Table(title=f"Moderation queue ({len(result)} {kind}s)")
    table.add_column("ID", style="dim")
    table.add_column("Owner")
    table.add_column("State", style="cyan")
    table.add_column("Created")
    for r in result:
        table.add_row(r.id, r.owner_id or "guest", r.state.value, r.created_at[:19])
    console.print(table)


# ── Audit ───────────────────────────────────────────────────────────


@main.command()
@click.option("--actor", default=None, help="Only events by this identity")
@click.option("--action", default=None, help="Only events of this type")
@click.option("--limit", default=50, show_default=True)
@click.option("--format", "fmt", default="table", type=click.Choice(["table", "json", "csv"]))
@click.pass_obj
def audit(obj: dict, actor: str | None, action: str | None, limit: int, fmt: str):
    """Show recorded audit events, newest first."""
    sink = _core(obj["home"]).audit

    if fmt != "table":
        click.echo(sink.export_events(fmt, actor=actor, action=action, limit=limit))
        return

    events = sink.get_events(actor=actor, action=action, limit=limit)
    if not events:
        console.print("[yellow]No audit events recorded.[/]")
        return

    table = Table(title=f"Audit events ({len(events)})")
    table.add_column("Time", style="dim")
    table.add_column("Actor", style="cyan")
    table.add_column("Event")
    table.add_column("Resource")
    table.add_column("OK", justify="center")
    for e in events:
        table.add_row(
            e.timestamp[:19],
            e.actor,
            e.action,
            f"{e.resource_type}/{e.resource_id}",
            "[green]yes[/]" if e.success else "[red]no[/]",
        )
    console.print(table)


if __name__ == "__main__":
    main()
