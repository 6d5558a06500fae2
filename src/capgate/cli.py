"""
CLI entry point for capgate.

This module provides the Typer-based command-line interface for capgate.

Commands:
    check       Evaluate a guard for a principal and print the decision
    roles       List roles and their grants
    validate    Report malformed entries in a catalog file
    seed        Load a catalog file into a SQLite role store

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to the
    policy and catalog modules, which are usable without it.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from capgate import __version__
from capgate.catalog import PermissionCatalog, PermissionSource, load_catalog
from capgate.errors import CapgateError
from capgate.policy import AuthorizationGate
from capgate.report import (
    generate_catalog_json,
    generate_decision_json,
    print_catalog,
    print_decision,
)
from capgate.schema import Principal, ResourceContext, coerce_identifier
from capgate.store import RoleStore

# Initialize Typer app with metadata
app = typer.Typer(
    name="capgate",
    help="Capability-based authorization: check, inspect and validate role catalogs.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

EXIT_DENIED = 1
EXIT_CONFIG_ERROR = 2

CatalogOption = Annotated[
    Optional[Path],
    typer.Option(
        "--catalog",
        "-c",
        help="Catalog YAML file. Defaults to the built-in catalog.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="SQLite role store to look roles up from (live source).",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]capgate[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    logging.getLogger("capgate").setLevel(logging.DEBUG)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log every decision and lookup to stderr.",
        ),
    ] = False,
) -> None:
    """
    capgate - decide whether an authenticated principal may act on a resource.
    """
    _configure_logging(verbose)


def _open_source(catalog_path: Path | None, db_path: Path | None) -> PermissionSource:
    """Pick the permission source from CLI options."""
    if catalog_path and db_path:
        raise typer.BadParameter("Use either --catalog or --db, not both")
    if db_path:
        return RoleStore(db_path)
    if catalog_path:
        return load_catalog(catalog_path)
    return PermissionCatalog.default()


def _fail(error_type: str, message: str, json_output: bool, debug: bool = False) -> None:
    if json_output:
        _output_json_error(error_type, message, debug)
    else:
        console.print(f"[red]{message}[/red]")
        if debug:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=EXIT_CONFIG_ERROR)


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, ensure_ascii=False))


@app.command()
def check(
    permissions: Annotated[
        list[str],
        typer.Argument(help="Required permissions (module:action, module:*, module:action_self)."),
    ],
    role: Annotated[
        Optional[str],
        typer.Option("--role", "-r", help="Role of the principal."),
    ] = None,
    user_id: Annotated[
        int,
        typer.Option("--user-id", "-u", help="Id of the principal.", min=1),
    ] = 1,
    anonymous: Annotated[
        bool,
        typer.Option("--anonymous", help="Check without a principal (unauthenticated)."),
    ] = False,
    path_id: Annotated[
        Optional[str],
        typer.Option("--path-id", help="Route `id` parameter of the targeted resource."),
    ] = None,
    body_user_id: Annotated[
        Optional[str],
        typer.Option("--body-user-id", help="`id_usuario` field of the request body."),
    ] = None,
    profile: Annotated[
        bool,
        typer.Option("--profile", help="The route is a profile (/perfil) route."),
    ] = False,
    any_of: Annotated[
        bool,
        typer.Option("--any", help="Allow if ANY permission is granted (default: ALL)."),
    ] = False,
    catalog_path: CatalogOption = None,
    db_path: DbOption = None,
    json_output: JsonOption = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Evaluate a guard and print the decision.

    Exits 0 when allowed, 1 when denied, 2 on configuration errors.

    Example:
        $ capgate check inscripciones:delete inscripciones:delete_self --any \\
            --role Participante --user-id 42 --path-id 42
    """
    try:
        source = _open_source(catalog_path, db_path)
    except CapgateError as e:
        _fail(type(e).__name__, str(e), json_output, debug)

    principal = None if anonymous else Principal(id=user_id, role=role or "")
    ctx = ResourceContext(
        path_id=coerce_identifier(path_id),
        body_user_id=coerce_identifier(body_user_id),
        is_profile_route=profile,
    )

    try:
        gate = AuthorizationGate(source)
        guard = gate.require_any(permissions) if any_of else gate.require_all(permissions)
        decision = guard.check(principal, ctx)
    except CapgateError as e:
        _fail(type(e).__name__, str(e), json_output, debug)
    finally:
        if isinstance(source, RoleStore):
            source.close()

    if json_output:
        print(generate_decision_json(decision))
    else:
        print_decision(decision, console)

    raise typer.Exit(code=0 if decision.allowed else EXIT_DENIED)


@app.command()
def roles(
    catalog_path: CatalogOption = None,
    db_path: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    List roles and their grants.

    Example:
        $ capgate roles --catalog roles.yaml
    """
    try:
        source = _open_source(catalog_path, db_path)
        if isinstance(source, RoleStore):
            with source:
                catalog = source.snapshot()
        else:
            catalog = source
    except CapgateError as e:
        _fail(type(e).__name__, str(e), json_output)

    if json_output:
        print(generate_catalog_json(catalog))
    else:
        print_catalog(catalog, console)


@app.command()
def validate(
    catalog_path: Annotated[
        Path,
        typer.Argument(
            help="Catalog YAML file to validate.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: JsonOption = False,
) -> None:
    """
    Report malformed permission entries in a catalog file.

    Malformed entries never match at runtime, so a typo silently removes a
    grant. This command is meant for CI.

    Example:
        $ capgate validate roles.yaml
    """
    try:
        catalog = load_catalog(catalog_path)
    except CapgateError as e:
        _fail(type(e).__name__, str(e), json_output)

    invalid = catalog.invalid_entries()

    if json_output:
        print(json.dumps(
            {"valid": not invalid, "roles": len(catalog), "invalid_entries": invalid},
            indent=2,
            ensure_ascii=False,
        ))
    elif invalid:
        console.print(f"[red]✗ {catalog_path.name}: malformed permissions found[/red]")
        for role_name, entries in invalid.items():
            for entry in entries:
                console.print(f"  [red]• {role_name}: {entry!r}[/red]")
    else:
        console.print(f"[green]✓ {catalog_path.name}: {len(catalog)} roles, all permissions valid[/green]")

    raise typer.Exit(code=EXIT_DENIED if invalid else 0)


@app.command()
def seed(
    catalog_path: Annotated[
        Optional[Path],
        typer.Argument(
            help="Catalog YAML file. Defaults to the built-in catalog.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    db_path: Annotated[
        Path,
        typer.Option(
            "--db",
            help="SQLite role store to write (created if missing).",
            resolve_path=True,
        ),
    ] = Path("capgate.db"),
) -> None:
    """
    Load a catalog into a SQLite role store, replacing its roles.

    Example:
        $ capgate seed roles.yaml --db roles.db
    """
    try:
        catalog = load_catalog(catalog_path) if catalog_path else PermissionCatalog.default()
        with RoleStore(db_path) as store:
            store.seed(catalog)
    except CapgateError as e:
        _fail(type(e).__name__, str(e), json_output=False)

    console.print(f"[green]✓[/green] Seeded {len(catalog)} roles into [bold]{db_path}[/bold]")


if __name__ == "__main__":
    app()
