"""Command line interface for the Roble client.

Each command builds a ``RobleDatabase`` from the configuration file (or the
URL options), runs one operation and prints the result. Tokens are passed in
through options or environment variables because every invocation is a
separate process.
"""

import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .api_clients import APIClientError, RobleDatabase
from .config import ConfigManager, RobleAPIConfig

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(ctx: click.Context) -> RobleAPIConfig:
    obj = ctx.obj
    auth_url, data_url = obj.get("auth_url"), obj.get("data_url")
    if auth_url and data_url:
        return RobleAPIConfig(auth_url=auth_url, data_url=data_url)

    config = ConfigManager(obj.get("config_path")).load()
    changes = {"auth_url": auth_url, "data_url": data_url}
    if any(changes.values()):
        config = config.copy_with(**changes)
    return config


def _display_error(ctx: click.Context, action: str, error: Exception) -> None:
    console.print(f"❌ {action} failed: {error}", style="red", markup=False)
    guidance = getattr(error, "user_guidance", "")
    if guidance:
        console.print(Panel(guidance, title="Troubleshooting", border_style="yellow"))
    if isinstance(error, APIClientError) and ctx.obj.get("verbose"):
        console.print(f"kind: {error.kind.value}", style="dim")


def _run(
    ctx: click.Context,
    action: str,
    operation: Callable[[RobleDatabase], Awaitable[Any]],
) -> Any:
    """Run ``operation`` against a fresh client, exiting 1 on failure."""

    async def _with_client() -> Any:
        async with RobleDatabase(_load_config(ctx)) as db:
            access, refresh = ctx.obj.get("access_token"), ctx.obj.get("refresh_token")
            if access or refresh:
                db.tokens.set(access, refresh)
            return await operation(db)

    try:
        return asyncio.run(_with_client())
    except (APIClientError, ValueError) as e:
        _display_error(ctx, action, e)
        sys.exit(1)


def _print_json(value: Any) -> None:
    if isinstance(value, (dict, list)):
        console.print_json(json.dumps(value, default=str))
    elif value is None:
        console.print("(empty response)", style="dim")
    else:
        console.print(str(value), markup=False)


def _print_rows(rows: List[Dict[str, Any]], title: str) -> None:
    if not rows:
        console.print(f"No records in {title}", style="yellow")
        return
    columns: List[str] = []
    for row in rows:
        columns.extend(key for key in row if key not in columns)
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(str(row.get(column, "")) for column in columns))
    console.print(table)


def _parse_columns(specs: Tuple[str, ...]) -> List[Dict[str, str]]:
    columns = []
    for spec in specs:
        name, _, col_type = spec.partition(":")
        if not name:
            raise click.BadParameter(f"Invalid column spec: {spec!r}", param_hint="--column")
        columns.append({"name": name, "type": col_type or "text"})
    return columns


def _parse_filters(pairs: Tuple[str, ...]) -> Dict[str, str]:
    filters = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--where")
        filters[key] = value
    return filters


def _parse_record(raw: str) -> Dict[str, Any]:
    try:
        record = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}")
    if not isinstance(record, dict):
        raise click.BadParameter("Record must be a JSON object")
    return record


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--auth-url", envvar="ROBLE_AUTH_URL", help="Auth service base URL")
@click.option("--data-url", envvar="ROBLE_DATA_URL", help="Data service base URL")
@click.option("--access-token", envvar="ROBLE_ACCESS_TOKEN", help="Access token")
@click.option("--refresh-token", envvar="ROBLE_REFRESH_TOKEN", help="Refresh token")
@click.version_option(version=__version__, prog_name="roble")
@click.pass_context
def cli(
    ctx,
    config_path: Optional[str],
    verbose: bool,
    auth_url: Optional[str],
    data_url: Optional[str],
    access_token: Optional[str],
    refresh_token: Optional[str],
):
    """Client for the Roble auth and database services.

    \b
    GETTING STARTED:
      1. roble init --auth-url https://.../auth/<db> --data-url https://.../database/<db>
      2. roble login --email me@example.com --password secret
      3. export ROBLE_ACCESS_TOKEN=... ROBLE_REFRESH_TOKEN=...
      4. roble read my_table
    """
    ctx.ensure_object(dict)
    ctx.obj.update(
        config_path=Path(config_path) if config_path else None,
        verbose=verbose,
        auth_url=auth_url,
        data_url=data_url,
        access_token=access_token,
        refresh_token=refresh_token,
    )
    _setup_logging(verbose)


@cli.command("init")
@click.pass_context
def init_command(ctx):
    """Write the auth and data URLs to the config file."""
    auth_url, data_url = ctx.obj.get("auth_url"), ctx.obj.get("data_url")
    if not auth_url or not data_url:
        console.print("❌ Both --auth-url and --data-url are required", style="red")
        sys.exit(1)
    try:
        config = RobleAPIConfig(auth_url=auth_url, data_url=data_url)
    except ValueError as e:
        _display_error(ctx, "Init", e)
        sys.exit(1)

    manager = ConfigManager(ctx.obj.get("config_path"))
    manager.save(config)
    console.print(f"✅ Configuration saved to {manager.config_path}", style="green")


@cli.command("register")
@click.option("--email", required=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.option("--name", required=True, help="Display name")
@click.pass_context
def register_command(ctx, email: str, password: str, name: str):
    """Create a new account."""
    _run(ctx, "Registration", lambda db: db.register(email, password, name))
    console.print(f"✅ Account created for {email}", style="green")


@cli.command("login")
@click.option("--email", required=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
def login_command(ctx, email: str, password: str):
    """Log in and print the token pair as JSON."""

    async def _login(db: RobleDatabase) -> Dict[str, Optional[str]]:
        await db.login(email, password)
        return {
            "accessToken": db.tokens.access_token,
            "refreshToken": db.tokens.refresh_token,
        }

    tokens = _run(ctx, "Login", _login)
    console.print(f"✅ Logged in as {email}", style="green")
    _print_json(tokens)


@cli.command("logout")
@click.pass_context
def logout_command(ctx):
    """Invalidate the current access token on the server."""
    access_token = ctx.obj.get("access_token")
    if not access_token:
        console.print("❌ No access token given (--access-token)", style="red")
        sys.exit(1)
    _run(ctx, "Logout", lambda db: db.logout(access_token))
    console.print("✅ Logged out", style="green")


@cli.command("create-table")
@click.argument("table")
@click.option(
    "--column", "columns", multiple=True, required=True, help="Column as name:type"
)
@click.option("--description", help="Table description")
@click.pass_context
def create_table_command(ctx, table: str, columns: Tuple[str, ...], description: Optional[str]):
    """Create a table."""
    parsed = _parse_columns(columns)
    _run(ctx, "Create table", lambda db: db.create_table(table, parsed, description))
    console.print(f"✅ Table {table} created", style="green")


@cli.command("table-data")
@click.argument("table")
@click.option("--schema", default="public", show_default=True, help="Database schema")
@click.pass_context
def table_data_command(ctx, table: str, schema: str):
    """Show a table's description."""
    _print_json(_run(ctx, "Table data", lambda db: db.get_table_data(table, schema)))


@cli.command("insert")
@click.argument("table")
@click.argument("record")
@click.pass_context
def insert_command(ctx, table: str, record: str):
    """Insert RECORD (a JSON object) into TABLE."""
    data = _parse_record(record)
    _print_json(_run(ctx, "Insert", lambda db: db.create(table, data)))


@cli.command("read")
@click.argument("table")
@click.option("--where", "where", multiple=True, help="Filter as column=value")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def read_command(ctx, table: str, where: Tuple[str, ...], as_json: bool):
    """Read records from TABLE."""
    filters = _parse_filters(where)
    rows = _run(ctx, "Read", lambda db: db.read(table, filters=filters or None))
    if as_json:
        _print_json(rows)
    else:
        _print_rows(rows, table)


@cli.command("update")
@click.argument("table")
@click.argument("record_id")
@click.argument("changes")
@click.pass_context
def update_command(ctx, table: str, record_id: str, changes: str):
    """Apply CHANGES (a JSON object) to the record RECORD_ID."""
    data = _parse_record(changes)
    _print_json(_run(ctx, "Update", lambda db: db.update(table, record_id, data)))


@cli.command("delete")
@click.argument("table")
@click.argument("record_id")
@click.pass_context
def delete_command(ctx, table: str, record_id: str):
    """Delete the record RECORD_ID from TABLE."""
    _print_json(_run(ctx, "Delete", lambda db: db.delete(table, record_id)))


@cli.command("demo")
@click.option("--password", default="Password123!", show_default=True)
@click.option("--table", default="users_test", show_default=True)
@click.pass_context
def demo_command(ctx, password: str, table: str):
    """Run a full register/login/CRUD/logout round trip with a throwaway account."""

    async def _demo(db: RobleDatabase) -> None:
        email = f"test_user_{int(time.time() * 1000)}@mail.com"

        with console.status(f"Registering {email}..."):
            await db.register(email, password, "Test User")
        console.print(f"✅ Registered {email}", style="green")

        await db.login(email, password)
        console.print("✅ Logged in", style="green")

        await db.create_table(
            table, [{"name": "name", "type": "text"}, {"name": "role", "type": "text"}]
        )
        console.print(f"✅ Table {table} created", style="green")

        created = await db.create(table, {"name": "Carlos", "role": "tester"})
        console.print(f"✅ Inserted record {created.get('_id')}", style="green")

        _print_rows(await db.read(table), table)

        if created.get("_id") is not None:
            await db.update(table, created["_id"], {"role": "editor"})
            console.print("✅ Record updated", style="green")
            await db.delete(table, created["_id"])
            console.print("✅ Record deleted", style="green")

        access_token = db.tokens.access_token
        if access_token:
            await db.logout(access_token)
        db.clear_tokens()
        console.print("✅ Logged out", style="green")

    _run(ctx, "Demo", _demo)


def main():
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n❌ Interrupted by user", style="red")
        sys.exit(1)


if __name__ == "__main__":
    main()
