# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.16
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/mariadb_main.py

"""
mariadb-helper: dispatcher for MariaDB/MySQL administration commands.

Each command loads the profile, checks the server once when it needs it,
and hands off to a handler in opskit.cli.commands.mariadb.
"""

# Standard library imports
from pathlib import Path
from typing import Any, Optional

# Third-party imports
import typer

# Local opskit imports
from opskit.cli.commands import mariadb as db_commands
from opskit.cli.patterns import command_pattern
from opskit.cli.utils import HelperGroup, console, err_console, print_version, require_args, show_help
from opskit.config.manager import MARIADB_HELPER, MariaDBConfigStore
from opskit.core.mysql_client import MySQLClient
from opskit.core.probe import MySQLProbe
from opskit.system.logging_setup import setup_logging

app = typer.Typer(
    cls=HelperGroup,
    help="""mariadb-helper - MariaDB/MySQL management

[bold blue]Server:[/bold blue] status, check-connection, server-add, server-list, server-use, server-delete
[bold green]Users:[/bold green] user-list, user-create, user-modify, user-delete, show-privileges, grant, revoke
[bold magenta]Databases:[/bold magenta] db-list, db-create, db-delete, db-list-tables
[bold yellow]Backup:[/bold yellow] backup, backup-all, restore
[bold cyan]Query:[/bold cyan] query, query-json
""",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

HOST_HELP = "Host pattern of the account"


def _store() -> MariaDBConfigStore:
    return MariaDBConfigStore()


def _client() -> MySQLClient:
    """Client for the active profile; exits 1 when the server does not answer."""
    return db_commands.connect(_store().load())


def version_callback(value: bool) -> None:
    if value:
        print_version(MARIADB_HELPER)
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """mariadb-helper - MariaDB/MySQL management."""
    setup_logging(MARIADB_HELPER, debug=debug)
    if ctx.invoked_subcommand is None:
        show_help(ctx)
        raise typer.Exit()


@app.command(name="help")
def help_command(ctx: typer.Context) -> None:
    """Show this help."""
    show_help(ctx.parent)


# =============================================================================
# SERVER COMMANDS
# =============================================================================

@app.command()
def status() -> Any:
    """[bold blue]Server[/bold blue]: Show server status and info."""
    def run() -> Any:
        profile = _store().load()
        return db_commands.status(console, err_console, profile, MySQLClient(profile))
    return command_pattern(run)()


@app.command(name="check-connection")
def check_connection_command() -> Any:
    """[bold blue]Server[/bold blue]: Test the connection, retrying a few times."""
    return command_pattern(
        lambda: db_commands.check_connection(console, _store().load(), MySQLProbe())
    )()


@app.command(name="server-add")
def server_add_command(
    alias: Optional[str] = typer.Argument(None, help="Server alias"),
    host: Optional[str] = typer.Argument(None, help="Server host"),
    port: Optional[str] = typer.Argument(None, help="Server port (default 3306)"),
    user: Optional[str] = typer.Argument(None, help="User name"),
    password: Optional[str] = typer.Argument(None, help="Password"),
    force: bool = typer.Option(False, "--force", help="Replace an existing alias"),
) -> Any:
    """[bold blue]Server[/bold blue]: Add a server to the registry."""
    if password is None and user is not None and port is not None and not port.isdigit():
        # port omitted: <alias> <host> <user> <password>
        port, user, password = None, port, user
    require_args("mariadb-helper server-add <alias> <host> [port] <user> <password>", alias, host, user, password)
    return command_pattern(
        lambda: db_commands.server_add(console, _store(), alias, host, port, user, password, force=force)
    )()


@app.command(name="server-list")
def server_list_command() -> Any:
    """[bold blue]Server[/bold blue]: List configured servers."""
    return command_pattern(lambda: db_commands.server_list(console, _store().load_registry()))()


@app.command(name="server-use")
def server_use_command(
    alias: Optional[str] = typer.Argument(None, help="Server alias"),
    no_check: bool = typer.Option(False, "--no-check", help="Switch without testing the connection"),
) -> Any:
    """[bold blue]Server[/bold blue]: Switch the active profile to a configured server."""
    require_args("mariadb-helper server-use <alias>", alias)
    return command_pattern(
        lambda: db_commands.server_use(console, _store(), alias, check=not no_check)
    )()


@app.command(name="server-delete")
def server_delete_command(
    alias: Optional[str] = typer.Argument(None, help="Server alias"),
) -> Any:
    """[bold blue]Server[/bold blue]: Remove a configured server."""
    require_args("mariadb-helper server-delete <alias>", alias)
    return command_pattern(lambda: db_commands.server_delete(console, _store(), alias))()


# =============================================================================
# USER COMMANDS
# =============================================================================

@app.command(name="user-list")
def user_list_command() -> Any:
    """[bold green]Users[/bold green]: List non-system users."""
    return command_pattern(lambda: db_commands.user_list(console, _client()))()


@app.command(name="user-create")
def user_create_command(
    user: Optional[str] = typer.Argument(None, help="User name"),
    password: Optional[str] = typer.Argument(None, help="Password"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
    privileges: str = typer.Option(db_commands.DEFAULT_PRIVILEGES, "--privileges", "--privs", help="Privileges to grant on *.*"),
) -> Any:
    """[bold green]Users[/bold green]: Create a user and grant privileges."""
    require_args("mariadb-helper user-create <user> <password> [--host %] [--privileges ALL]", user, password)
    return command_pattern(
        lambda: db_commands.user_create(console, _client(), user, password, host=host, privileges=privileges)
    )()


@app.command(name="user-modify")
def user_modify_command(
    user: Optional[str] = typer.Argument(None, help="User name"),
    password: Optional[str] = typer.Argument(None, help="New password"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
    privileges: Optional[str] = typer.Option(None, "--privileges", "--privs", help="Replace privileges on *.*"),
) -> Any:
    """[bold green]Users[/bold green]: Change a user's password and optionally privileges."""
    require_args("mariadb-helper user-modify <user> <password> [--host %] [--privileges ALL]", user, password)
    return command_pattern(
        lambda: db_commands.user_modify(console, _client(), user, password, host=host, privileges=privileges)
    )()


@app.command(name="user-delete")
def user_delete_command(
    user: Optional[str] = typer.Argument(None, help="User name"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
) -> Any:
    """[bold green]Users[/bold green]: Delete a user."""
    require_args("mariadb-helper user-delete <user> [--host %]", user)
    return command_pattern(lambda: db_commands.user_delete(console, _client(), user, host=host))()


@app.command(name="show-privileges")
def show_privileges_command(
    user: Optional[str] = typer.Argument(None, help="User name"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
) -> Any:
    """[bold green]Users[/bold green]: Show a user's grants."""
    require_args("mariadb-helper show-privileges <user> [--host %]", user)
    return command_pattern(lambda: db_commands.show_privileges(console, _client(), user, host=host))()


@app.command()
def grant(
    user: Optional[str] = typer.Argument(None, help="User name"),
    database: Optional[str] = typer.Argument(None, help="Database name"),
    privileges: str = typer.Argument(db_commands.DEFAULT_PRIVILEGES, help="Privileges to grant"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
) -> Any:
    """[bold green]Users[/bold green]: Grant privileges on a database."""
    require_args("mariadb-helper grant <user> <db> [privileges] [--host %]", user, database)
    return command_pattern(
        lambda: db_commands.grant(console, _client(), user, database, privileges=privileges, host=host)
    )()


@app.command()
def revoke(
    user: Optional[str] = typer.Argument(None, help="User name"),
    database: Optional[str] = typer.Argument(None, help="Database name"),
    privileges: str = typer.Argument(db_commands.DEFAULT_PRIVILEGES, help="Privileges to revoke"),
    host: str = typer.Option(db_commands.DEFAULT_HOST_PATTERN, "--host", help=HOST_HELP),
) -> Any:
    """[bold green]Users[/bold green]: Revoke privileges on a database."""
    require_args("mariadb-helper revoke <user> <db> [privileges] [--host %]", user, database)
    return command_pattern(
        lambda: db_commands.revoke(console, _client(), user, database, privileges=privileges, host=host)
    )()


# =============================================================================
# DATABASE COMMANDS
# =============================================================================

@app.command(name="db-list")
def db_list_command() -> Any:
    """[bold magenta]Databases[/bold magenta]: List databases with their size."""
    return command_pattern(lambda: db_commands.db_list(console, _client()))()


@app.command(name="db-create")
def db_create_command(
    name: Optional[str] = typer.Argument(None, help="Database name"),
    charset: str = typer.Option(db_commands.DEFAULT_CHARSET, "--charset", help="Character set"),
    collate: str = typer.Option(db_commands.DEFAULT_COLLATE, "--collate", help="Collation"),
) -> Any:
    """[bold magenta]Databases[/bold magenta]: Create a database."""
    require_args("mariadb-helper db-create <name> [--charset utf8mb4] [--collate utf8mb4_unicode_ci]", name)
    return command_pattern(
        lambda: db_commands.db_create(console, _client(), name, charset=charset, collate=collate)
    )()


def _confirm(prompt: str) -> str:
    """Read the answer; end of input counts as declining."""
    try:
        return typer.prompt(prompt, default="", show_default=False)
    except typer.Abort:
        return ""


@app.command(name="db-delete")
def db_delete_command(
    name: Optional[str] = typer.Argument(None, help="Database name"),
    force: bool = typer.Option(False, "--force", help="Delete without asking"),
) -> Any:
    """[bold magenta]Databases[/bold magenta]: Delete a database."""
    require_args("mariadb-helper db-delete <name> [--force]", name)
    return command_pattern(
        lambda: db_commands.db_delete(console, _client(), name, confirm=_confirm, force=force)
    )()


@app.command(name="db-list-tables")
def db_list_tables_command(
    name: Optional[str] = typer.Argument(None, help="Database name"),
) -> Any:
    """[bold magenta]Databases[/bold magenta]: List tables with row counts."""
    require_args("mariadb-helper db-list-tables <name>", name)
    return command_pattern(lambda: db_commands.db_list_tables(console, _client(), name))()


# =============================================================================
# BACKUP COMMANDS
# =============================================================================

@app.command()
def backup(
    database: Optional[str] = typer.Argument(None, help="Database name"),
    output: Path = typer.Option(Path(db_commands.DEFAULT_BACKUP_DIR), "--output", "-o", help="Backup directory"),
    compress: bool = typer.Option(True, "--compress/--no-compress", help="gzip the dump"),
) -> Any:
    """[bold yellow]Backup[/bold yellow]: Dump one database."""
    require_args("mariadb-helper backup <db> [--output ./backups] [--compress|--no-compress]", database)
    return command_pattern(
        lambda: db_commands.backup(console, _client(), database, output_dir=output, compress=compress)
    )()


@app.command(name="backup-all")
def backup_all_command(
    output: Path = typer.Option(Path(db_commands.DEFAULT_BACKUP_DIR), "--output", "-o", help="Backup directory"),
    compress: bool = typer.Option(True, "--compress/--no-compress", help="gzip the dumps"),
    exclude: Optional[str] = typer.Option(None, "--exclude", help="Comma-separated databases to skip"),
) -> Any:
    """[bold yellow]Backup[/bold yellow]: Dump every non-system database."""
    return command_pattern(
        lambda: db_commands.backup_all(console, _client(), output_dir=output, compress=compress, exclude=exclude)
    )()


@app.command()
def restore(
    database: Optional[str] = typer.Argument(None, help="Database name"),
    backup_file: Optional[Path] = typer.Argument(None, help="Dump file (.sql or .sql.gz)"),
) -> Any:
    """[bold yellow]Backup[/bold yellow]: Restore a database from a dump."""
    require_args("mariadb-helper restore <db> <backup_file>", database, backup_file)
    return command_pattern(lambda: db_commands.restore(console, _client(), database, backup_file))()


# =============================================================================
# QUERY COMMANDS
# =============================================================================

@app.command()
def query(
    sql: Optional[str] = typer.Argument(None, help="SQL to execute"),
) -> Any:
    """[bold cyan]Query[/bold cyan]: Execute SQL and print tab-separated rows."""
    require_args('mariadb-helper query "SELECT * FROM table"', sql)
    return command_pattern(lambda: db_commands.query(console, _client(), sql))()


@app.command(name="query-json")
def query_json_command(
    sql: Optional[str] = typer.Argument(None, help="SQL to execute"),
) -> Any:
    """[bold cyan]Query[/bold cyan]: Execute SQL and print the result as JSON."""
    require_args('mariadb-helper query-json "SELECT * FROM table"', sql)
    return command_pattern(lambda: db_commands.query_json(console, _client(), sql))()


# =============================================================================
# CONFIGURATION
# =============================================================================

@app.command()
def config(
    password: Optional[str] = typer.Argument(None, help="Password"),
    user: Optional[str] = typer.Argument(None, help="User name"),
    host: Optional[str] = typer.Argument(None, help="Server host"),
    port: Optional[int] = typer.Argument(None, help="Server port"),
) -> Any:
    """Configure the default connection, or show it when called without arguments."""
    return command_pattern(
        lambda: db_commands.config(console, _store(), password=password, user=user, host=host, port=port)
    )()


# =============================================================================
# ENTRY POINT
# =============================================================================

def main() -> None:  # pragma: no cover - entry point
    """Entry point for the mariadb-helper CLI."""
    app(prog_name=MARIADB_HELPER)


if __name__ == "__main__":  # pragma: no cover
    main()
