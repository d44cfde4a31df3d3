"""CLI entry point for cms-access-control.

Invoked as::

    cms-access [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m cms_access_control.cli.main

Commands
--------
- version    Show version information
- init       Write the built-in configuration as YAML
- validate   Load a configuration and validate every role
- check      Decide one (role, resource, action) check
- page       Decide page access for a role
- operation  Decide a named operation for a role
- menu       Show the menu tree visible to a role
- resource   List the CRUD actions a role holds on a resource

Every decision command loads ``--config`` when the file exists and falls
back to the built-in configuration otherwise.  It exits 0 when allowed and
1 when denied.
"""
from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree
from rich import box

from cms_access_control.config.loader import AccessConfig, AccessConfigError
from cms_access_control.config.tables import MenuItem
from cms_access_control.manager import PermissionManager
from cms_access_control.permissions.model import (
    PermissionCheckOptions,
    PermissionCheckResult,
    UserPermissions,
)

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("access.yaml")
_CLI_USER_ID = "cli"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _config_option(exists: bool = False):
    return click.option(
        "--config",
        "-c",
        "config_path",
        default=str(_DEFAULT_CONFIG),
        show_default=True,
        type=click.Path(exists=exists, dir_okay=False),
        help="Path to access.yaml.",
    )


def _role_option():
    return click.option("--role", "-r", required=True, help="Role name to evaluate as.")


def _load_config(config_path: str) -> AccessConfig:
    from cms_access_control.config.loader import AccessConfigLoader

    loader = AccessConfigLoader()
    path = Path(config_path)
    try:
        if path.exists():
            return loader.load(path)
    except AccessConfigError as exc:
        err_console.print(f"[red]Invalid config:[/red] {exc}")
        sys.exit(2)
    return loader.defaults()


def _parse_context(context_json: str | None) -> dict[str, object] | None:
    if context_json is None:
        return None
    try:
        context = json.loads(context_json)
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON:[/red] {exc}")
        sys.exit(2)
    if not isinstance(context, dict):
        err_console.print("[red]Invalid context:[/red] expected a JSON object.")
        sys.exit(2)
    return context


def _user_for(manager: PermissionManager, role: str) -> UserPermissions:
    from cms_access_control.session import build_user_permissions

    if role not in manager.hierarchy:
        err_console.print(f"[yellow]Warning:[/yellow] role '{role}' is not configured.")
    return build_user_permissions(_CLI_USER_ID, role, manager.hierarchy)


def _print_result(title: str, result: PermissionCheckResult) -> None:
    status_str = "[green]ALLOWED[/green]" if result.allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title=title, border_style="blue"))
    console.print(f"  Reason: {result.reason}")


def _menu_tree(tree: Tree, items: Sequence[MenuItem]) -> None:
    for item in items:
        label = f"[cyan]{item.title or item.path}[/cyan]  [dim]{item.path}[/dim]"
        branch = tree.add(label)
        _menu_tree(branch, item.children)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="cms-access-control")
def cli() -> None:
    """CMS access control CLI: inspect and exercise permission decisions."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from cms_access_control import __version__

    console.print(
        Panel(
            f"[bold]cms-access-control[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Permission and access-control engine for CMS admin consoles.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# init / validate
# ---------------------------------------------------------------------------


@cli.command(name="init")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    help="Output access config file path.",
)
def init_command(output: str) -> None:
    """Write the built-in admin console configuration as YAML."""
    import yaml

    from cms_access_control.config.defaults import default_access_config
    from cms_access_control.config.loader import config_to_dict

    config = default_access_config()
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(
            config_to_dict(config), fh, default_flow_style=False, sort_keys=False, allow_unicode=True
        )

    console.print(f"[green]Initialised[/green] access config: [bold]{output_path}[/bold]")
    console.print(f"  Permissions: [cyan]{len(config.permissions)}[/cyan]")
    console.print(f"  Roles: [cyan]{len(config.roles)}[/cyan]")


@cli.command(name="validate")
@_config_option(exists=True)
def validate_command(config_path: str) -> None:
    """Load a config and validate every role's permission list."""
    from cms_access_control.permissions.model import validate_role_permissions

    config = _load_config(config_path)

    table = Table(title="Roles", box=box.SIMPLE)
    table.add_column("Role", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("Permissions", justify="right")
    table.add_column("Status")

    invalid = 0
    for role in sorted(config.roles, key=lambda r: r.level, reverse=True):
        ok = validate_role_permissions(role)
        if not ok:
            invalid += 1
        table.add_row(
            role.name,
            str(role.level),
            str(len(role.permissions)),
            "[green]valid[/green]" if ok else "[red]invalid[/red]",
        )
    console.print(table)

    if invalid:
        err_console.print(f"[red]{invalid} invalid role(s).[/red]")
        sys.exit(1)
    console.print(f"[green]All {len(config.roles)} roles valid.[/green]")


# ---------------------------------------------------------------------------
# Decision commands
# ---------------------------------------------------------------------------


@cli.command(name="check")
@_role_option()
@click.option("--resource", required=True, help="Resource type, e.g. 'articles'.")
@click.option("--action", "-a", required=True, help="create, read, update, delete or '*'.")
@click.option("--strict", is_flag=True, default=False, help="Deny when no rule matches.")
@click.option("--fallback", is_flag=True, default=False, help="Allow when no rule matches.")
@click.option("--context", "context_json", default=None, help="Request context as a JSON object.")
@_config_option()
def check_command(
    role: str,
    resource: str,
    action: str,
    strict: bool,
    fallback: bool,
    context_json: str | None,
    config_path: str,
) -> None:
    """Decide whether ROLE may perform ACTION on RESOURCE."""
    context = _parse_context(context_json)
    manager = PermissionManager(_load_config(config_path))
    user = _user_for(manager, role)
    result = manager.has_permission(
        user,
        resource,
        action,
        PermissionCheckOptions(strict=strict, fallback=fallback, context=context),
    )
    _print_result("Permission Check Result", result)
    sys.exit(0 if result.allowed else 1)


@cli.command(name="page")
@_role_option()
@click.argument("path")
@click.option("--fallback", is_flag=True, default=False, help="Allow unmapped pages.")
@_config_option()
def page_command(role: str, path: str, fallback: bool, config_path: str) -> None:
    """Decide whether ROLE may open page PATH."""
    manager = PermissionManager(_load_config(config_path))
    user = _user_for(manager, role)
    result = manager.can_access_page(user, path, PermissionCheckOptions(fallback=fallback))
    _print_result("Page Access", result)
    sys.exit(0 if result.allowed else 1)


@cli.command(name="operation")
@_role_option()
@click.argument("name")
@click.option("--context", "context_json", default=None, help="Request context as a JSON object.")
@_config_option()
def operation_command(role: str, name: str, context_json: str | None, config_path: str) -> None:
    """Decide whether ROLE may perform operation NAME."""
    context = _parse_context(context_json)
    manager = PermissionManager(_load_config(config_path))
    user = _user_for(manager, role)
    result = manager.can_perform_operation(user, name, context)
    _print_result("Operation Access", result)
    sys.exit(0 if result.allowed else 1)


@cli.command(name="menu")
@_role_option()
@_config_option()
def menu_command(role: str, config_path: str) -> None:
    """Show the menu tree visible to ROLE."""
    manager = PermissionManager(_load_config(config_path))
    user = _user_for(manager, role)
    items = manager.get_accessible_menu_items(user)

    if not items:
        console.print("[yellow]No accessible menu items.[/yellow]")
        return

    tree = Tree(f"[bold]Menu for {role}[/bold]")
    _menu_tree(tree, items)
    console.print(tree)


@cli.command(name="resource")
@_role_option()
@click.argument("resource")
@_config_option()
def resource_command(role: str, resource: str, config_path: str) -> None:
    """List the CRUD actions ROLE holds on RESOURCE."""
    from cms_access_control.permissions.model import CRUD_ACTIONS

    manager = PermissionManager(_load_config(config_path))
    user = _user_for(manager, role)
    allowed = set(manager.get_resource_permissions(user, resource))

    table = Table(title=f"{role} on {resource}", box=box.SIMPLE)
    table.add_column("Action", style="cyan")
    table.add_column("Allowed")
    for action in CRUD_ACTIONS:
        table.add_row(action, "[green]yes[/green]" if action in allowed else "[red]no[/red]")
    console.print(table)


if __name__ == "__main__":
    cli()
