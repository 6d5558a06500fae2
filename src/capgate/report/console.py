"""
Console rendering for capgate.

Displays decisions and catalogs in the terminal using Rich.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from capgate.catalog import PermissionCatalog
from capgate.policy.token import PermissionToken, TokenKind
from capgate.schema import Decision

# Status icons
ICON_ALLOWED = "[green]✓[/green]"
ICON_DENIED = "[red]✗[/red]"

KIND_STYLES = {
    TokenKind.EXACT: "cyan",
    TokenKind.WILDCARD: "magenta",
    TokenKind.SELF_SCOPED: "yellow",
}


def print_decision(decision: Decision, console: Console | None = None) -> None:
    """Print a decision as a small panel."""
    if console is None:
        console = Console()

    if decision.allowed:
        title = f"{ICON_ALLOWED} [green]ALLOWED[/green]"
        border = "green"
    else:
        title = f"{ICON_DENIED} [red]DENIED[/red]"
        border = "red"

    lines = [
        f"[bold]Reason:[/bold] {decision.reason.value}",
        f"[bold]Required ({decision.combinator.value}):[/bold] {', '.join(decision.required)}",
    ]
    if decision.permission:
        lines.append(f"[bold]Decided by:[/bold] {decision.permission}")
    if decision.grant:
        lines.append(f"[bold]Grant:[/bold] {decision.grant}")
    if decision.ownership_rule:
        lines.append(f"[bold]Ownership rule:[/bold] {decision.ownership_rule}")
    lines.append(f"[bold]HTTP:[/bold] {decision.status_code}")
    lines.append(f"[dim]{decision.message}[/dim]")

    console.print(Panel("\n".join(lines), title=title, border_style=border, expand=False))


def print_catalog(catalog: PermissionCatalog, console: Console | None = None) -> None:
    """Print a table of roles and their grants, colored by permission kind."""
    if console is None:
        console = Console()

    table = Table(title="Roles", show_header=True, header_style="bold")
    table.add_column("Role", style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Permissions")

    for role, permissions in catalog.items():
        rendered = []
        for permission in permissions:
            token = PermissionToken.try_parse(permission)
            if token is None:
                rendered.append(f"[red strike]{permission}[/red strike]")
            else:
                rendered.append(f"[{KIND_STYLES[token.kind]}]{permission}[/]")
        table.add_row(role, str(len(permissions)), ", ".join(rendered))

    console.print(table)
