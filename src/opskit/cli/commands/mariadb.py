# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.16
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/commands/mariadb.py

"""
mariadb-helper command handlers.

Handles: status, check-connection, server-*, user-*, show-privileges, grant,
revoke, db-*, backup, backup-all, restore, query, query-json, config
"""

from pathlib import Path
from typing import Any, Callable, Optional

import humanize
import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from opskit.config.manager import MariaDBConfigStore, MariaDBProfile, ServerEntry, ServerRegistry
from opskit.core.mysql_client import (
    MySQLClient,
    account,
    backup_filename,
    quote_identifier,
    quote_literal,
    validate_charset,
    validate_privileges,
)
from opskit.core.probe import CHECK_CONNECTION_ATTEMPTS, CHECK_CONNECTION_DELAY, MySQLProbe
from opskit.system.display import (
    display_bullets,
    display_servers,
    display_settings,
    mask_secret,
    print_error,
    print_header,
    print_info,
    print_raw,
    print_success,
    print_warning,
    render_json,
    tabular_to_json,
)
from opskit.system.exceptions import ConnectivityError, ValidationError


DEFAULT_HOST_PATTERN = "%"
DEFAULT_PRIVILEGES = "ALL PRIVILEGES"
DEFAULT_CHARSET = "utf8mb4"
DEFAULT_COLLATE = "utf8mb4_unicode_ci"
DEFAULT_BACKUP_DIR = "./backups"

Confirm = Callable[[str], str]


def _connection_settings(profile: MariaDBProfile) -> list[tuple[str, str]]:
    return [("Host", profile.host), ("Port", str(profile.port)), ("User", profile.user)]


def connect(profile: MariaDBProfile, probe: Optional[MySQLProbe] = None) -> MySQLClient:
    """Client for profile after one reachability check.

    Raises:
        ConnectivityError: If `SELECT 1` fails
    """
    probe = probe or MySQLProbe()
    if not probe.check(profile):
        raise ConnectivityError(f"Cannot connect to server {profile.target}", target=profile.target)
    return MySQLClient(profile, executor=probe.executor)


# ---- Server commands ----

def status(console: Console, err_console: Console, profile: MariaDBProfile, client: MySQLClient) -> dict[str, Any]:
    print_header(console, "MariaDB/MySQL Status")

    if not client.ping():
        print_error(err_console, "Cannot connect to server")
        console.print()
        display_settings(console, _connection_settings(profile), title="Current configuration:")
        raise typer.Exit(1)

    version = client.server_version()
    database_count = client.count_databases()
    user_count = client.count_users()

    console.print(f"[green]Connected[/green] to MySQL {escape(version)}")
    console.print()
    display_settings(console, _connection_settings(profile), title="Server Info:")
    console.print()
    console.print(f"Databases: {database_count}")
    console.print(f"Users: {user_count}")
    return {
        "connected": True,
        "version": version,
        "databases": database_count,
        "users": user_count,
    }


def check_connection(console: Console, profile: MariaDBProfile, probe: MySQLProbe) -> dict[str, Any]:
    """Retry the connection check a few times, reporting each failed attempt."""
    print_header(console, "Testing Connection")
    for label, value in _connection_settings(profile):
        console.print(f"{label}: {escape(value)}")
    console.print()

    if probe.on_retry is None:
        probe.on_retry = lambda attempt, total, delay: print_info(
            console, f"Attempt {attempt}/{total} - Waiting {delay:g}s..."
        )

    if not probe.wait_for(profile, CHECK_CONNECTION_ATTEMPTS, CHECK_CONNECTION_DELAY):
        raise ConnectivityError(f"Connection failed: cannot connect to {profile.target}", target=profile.target)

    print_success(console, f"Connected to {profile.target}")
    print_success(console, "Connection successful")
    return {"connected": True, "target": profile.target}


def server_add(
    console: Console,
    store: MariaDBConfigStore,
    alias: str,
    host: str,
    port: Optional[str],
    user: str,
    password: str,
    force: bool = False
) -> dict[str, Any]:
    entry = ServerEntry.build(host, port, user, password)
    registry = store.load_registry()
    replaced = alias in registry
    registry.add(alias, entry, replace=force)
    store.save_registry(registry)

    verb = "replaced" if replaced else "added"
    print_success(console, f"Server '{alias}' {verb}: {entry.host}:{entry.port}")
    return {"alias": alias, "host": entry.host, "port": entry.port, "replaced": replaced}


def server_list(console: Console, registry: ServerRegistry) -> dict[str, Any]:
    print_header(console, "Configured Servers")
    if not len(registry):
        print_warning(
            console,
            "No servers configured. Use: mariadb-helper server-add <alias> <host> <port> <user> <password>"
        )
        return {"servers": []}

    display_servers(console, registry)
    return {"servers": registry.aliases()}


def server_use(
    console: Console,
    store: MariaDBConfigStore,
    alias: str,
    probe: Optional[MySQLProbe] = None,
    check: bool = True
) -> dict[str, Any]:
    """Make a registered server the active profile.

    The profile file is only written after the candidate answers the probe,
    so an unknown alias or an unreachable server leaves it untouched.
    """
    registry = store.load_registry()
    entry = registry.get(alias)
    candidate = entry.to_profile()

    if check and not (probe or MySQLProbe()).check(candidate):
        raise ConnectivityError(f"Cannot connect to server '{alias}' ({candidate.target})", target=candidate.target)

    store.save(candidate)
    logger.debug(f"Active server is now {alias}")
    print_success(console, f"Switched to server '{alias}' ({candidate.target})")
    return {"alias": alias, "target": candidate.target, "checked": check}


def server_delete(console: Console, store: MariaDBConfigStore, alias: str) -> dict[str, Any]:
    registry = store.load_registry()
    registry.remove(alias)
    store.save_registry(registry)
    print_success(console, f"Server '{alias}' deleted")
    return {"alias": alias, "deleted": True}


# ---- User commands ----

def user_list(console: Console, client: MySQLClient) -> dict[str, Any]:
    print_header(console, "MySQL Users")
    users = client.list_users()
    for user, host in users:
        console.print(f"  [green]{escape(user)}[/green]@{escape(host)}")
    return {"users": [f"{user}@{host}" for user, host in users]}


def user_create(
    console: Console,
    client: MySQLClient,
    user: str,
    password: str,
    host: str = DEFAULT_HOST_PATTERN,
    privileges: str = DEFAULT_PRIVILEGES
) -> dict[str, Any]:
    privileges = validate_privileges(privileges)
    target = account(user, host)

    print_info(console, f"Creating user '{user}'@'{host}'...")
    client.execute(
        f"CREATE USER IF NOT EXISTS {target} IDENTIFIED BY {quote_literal(password)};",
        f"GRANT {privileges} ON *.* TO {target};",
        "FLUSH PRIVILEGES;"
    )
    print_success(console, f"User '{user}'@'{host}' created with {privileges}")
    return {"user": user, "host": host, "privileges": privileges}


def user_modify(
    console: Console,
    client: MySQLClient,
    user: str,
    password: str,
    host: str = DEFAULT_HOST_PATTERN,
    privileges: Optional[str] = None
) -> dict[str, Any]:
    target = account(user, host)
    statements = [f"ALTER USER {target} IDENTIFIED BY {quote_literal(password)};"]
    if privileges:
        privileges = validate_privileges(privileges)
        statements.append(f"REVOKE ALL PRIVILEGES ON *.* FROM {target};")
        statements.append(f"GRANT {privileges} ON *.* TO {target};")
    statements.append("FLUSH PRIVILEGES;")

    print_info(console, f"Modifying user '{user}'@'{host}'...")
    client.execute(*statements)
    print_success(console, f"User '{user}'@'{host}' modified")
    return {"user": user, "host": host, "privileges": privileges}


def user_delete(console: Console, client: MySQLClient, user: str, host: str = DEFAULT_HOST_PATTERN) -> dict[str, Any]:
    print_info(console, f"Deleting user '{user}'@'{host}'...")
    client.execute(f"DROP USER IF EXISTS {account(user, host)};", "FLUSH PRIVILEGES;")
    print_success(console, f"User '{user}'@'{host}' deleted")
    return {"user": user, "host": host, "deleted": True}


def show_privileges(console: Console, client: MySQLClient, user: str, host: str = DEFAULT_HOST_PATTERN) -> dict[str, Any]:
    print_header(console, f"Privileges for {user}@{host}")
    grants = client.show_grants(user, host)
    for grant in grants:
        console.print(f"  {escape(grant)}")
    return {"user": user, "host": host, "grants": grants}


def grant(
    console: Console,
    client: MySQLClient,
    user: str,
    database: str,
    privileges: str = DEFAULT_PRIVILEGES,
    host: str = DEFAULT_HOST_PATTERN
) -> dict[str, Any]:
    privileges = validate_privileges(privileges)
    print_info(console, f"Granting {privileges} on {database} to {user}@{host}...")
    client.execute(
        f"GRANT {privileges} ON {quote_identifier(database)}.* TO {account(user, host)};",
        "FLUSH PRIVILEGES;"
    )
    print_success(console, "Privileges granted")
    return {"user": user, "host": host, "database": database, "privileges": privileges}


def revoke(
    console: Console,
    client: MySQLClient,
    user: str,
    database: str,
    privileges: str = DEFAULT_PRIVILEGES,
    host: str = DEFAULT_HOST_PATTERN
) -> dict[str, Any]:
    privileges = validate_privileges(privileges)
    print_info(console, f"Revoking {privileges} on {database} from {user}@{host}...")
    client.execute(
        f"REVOKE {privileges} ON {quote_identifier(database)}.* FROM {account(user, host)};",
        "FLUSH PRIVILEGES;"
    )
    print_success(console, "Privileges revoked")
    return {"user": user, "host": host, "database": database, "privileges": privileges}


# ---- Database commands ----

def db_list(console: Console, client: MySQLClient) -> dict[str, Any]:
    print_header(console, "Databases")
    sizes = client.database_sizes()
    display_bullets(console, [name for name, _ in sizes], [f"({size} MB)" for _, size in sizes])
    return {"databases": [{"name": name, "size_mb": size} for name, size in sizes]}


def db_create(
    console: Console,
    client: MySQLClient,
    database: str,
    charset: str = DEFAULT_CHARSET,
    collate: str = DEFAULT_COLLATE
) -> dict[str, Any]:
    validate_charset(charset)
    validate_charset(collate, kind="collation")

    print_info(console, f"Creating database '{database}'...")
    client.execute(
        f"CREATE DATABASE IF NOT EXISTS {quote_identifier(database)} CHARACTER SET {charset} COLLATE {collate};"
    )
    print_success(console, f"Database '{database}' created with charset {charset}")
    return {"database": database, "charset": charset, "collate": collate}


def db_delete(
    console: Console,
    client: MySQLClient,
    database: str,
    confirm: Confirm,
    force: bool = False
) -> dict[str, Any]:
    """Drop a database; without force, only the answer "yes" proceeds."""
    if not force:
        print_warning(console, f"This will delete ALL data in '{database}'. Use --force to skip this prompt.")
        answer = confirm("Are you sure? (yes/no)")
        if answer != "yes":
            print_info(console, "Cancelled")
            return {"database": database, "deleted": False, "cancelled": True}

    print_info(console, f"Deleting database '{database}'...")
    client.execute(f"DROP DATABASE IF EXISTS {quote_identifier(database)};")
    print_success(console, f"Database '{database}' deleted")
    return {"database": database, "deleted": True, "cancelled": False}


def db_list_tables(console: Console, client: MySQLClient, database: str) -> dict[str, Any]:
    print_header(console, f"Tables in {database}")
    tables = [(table, client.count_rows(database, table)) for table in client.list_tables(database)]
    display_bullets(console, [table for table, _ in tables], [f"({rows} rows)" for _, rows in tables])
    return {"database": database, "tables": [{"name": table, "rows": rows} for table, rows in tables]}


# ---- Backup commands ----

def _backup_one(client: MySQLClient, database: str, output_dir: Path, compress: bool) -> Path:
    path = output_dir / backup_filename(database, compress)
    client.dump(database, path, compress=compress)
    return path


def backup(
    console: Console,
    client: MySQLClient,
    database: str,
    output_dir: Path = Path(DEFAULT_BACKUP_DIR),
    compress: bool = True
) -> dict[str, Any]:
    output_dir.mkdir(parents=True, exist_ok=True)
    print_info(console, f"Backing up database '{database}'...")
    path = _backup_one(client, database, output_dir, compress)
    size = path.stat().st_size
    print_success(console, f"Backup created: {path} ({humanize.naturalsize(size)})")
    return {"database": database, "path": str(path), "size": size}


def backup_all(
    console: Console,
    client: MySQLClient,
    output_dir: Path = Path(DEFAULT_BACKUP_DIR),
    compress: bool = True,
    exclude: Optional[str] = None
) -> dict[str, Any]:
    """Back up every non-system database one after another."""
    excluded = {name.strip() for name in (exclude or "").split(",") if name.strip()}
    output_dir.mkdir(parents=True, exist_ok=True)

    print_info(console, "Backing up all databases...")
    console.print()

    written, skipped = [], []
    for database in client.list_databases():
        if database in excluded:
            print_warning(console, f"Skipping {database}")
            skipped.append(database)
            continue
        path = _backup_one(client, database, output_dir, compress)
        print_success(console, f"Backed up: {path.name}")
        written.append(str(path))

    console.print()
    print_success(console, f"All databases backed up to {output_dir}")
    return {"backups": written, "skipped": skipped}


def restore(console: Console, client: MySQLClient, database: str, backup_file: Path) -> dict[str, Any]:
    if not backup_file.is_file():
        raise ValidationError(f"Backup file not found: {backup_file}")

    print_info(console, f"Creating database '{database}' if it doesn't exist...")
    client.execute(f"CREATE DATABASE IF NOT EXISTS {quote_identifier(database)};")

    print_info(console, f"Restoring database '{database}' from {backup_file}...")
    client.restore(database, backup_file)
    print_success(console, f"Database '{database}' restored from {backup_file}")
    return {"database": database, "source": str(backup_file)}


# ---- Query commands ----

def query(console: Console, client: MySQLClient, sql: str) -> dict[str, Any]:
    output = client.run_sql(sql).stdout.rstrip("\n")
    print_raw(console, output)
    return {"rows": len(output.splitlines()) if output else 0}


def query_json(console: Console, client: MySQLClient, sql: str) -> dict[str, Any]:
    """Print {"headers": [...], "data": [[...], ...]} for the result set."""
    lines = client.run_sql(sql, headers=True).stdout.splitlines()
    document = tabular_to_json(lines[0] if lines else "", lines[1:])
    print_raw(console, render_json(document))
    return document


# ---- Configuration ----

def config(
    console: Console,
    store: MariaDBConfigStore,
    password: Optional[str] = None,
    user: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None
) -> dict[str, Any]:
    """Update the given profile fields, or show the profile when none are given.

    The profile is saved in both cases.
    """
    profile = store.load()
    profile = profile.updated(password=password, user=user, host=host, port=port)

    if password:
        print_info(console, "Password configured")
    if user:
        print_info(console, f"User configured: {user}")
    if host:
        print_info(console, f"Host configured: {host}")
    if port:
        print_info(console, f"Port configured: {port}")

    if not any((password, user, host, port)):
        registry = store.load_registry()
        display_settings(
            console,
            _connection_settings(profile) + [("Password", mask_secret(profile.password.get_secret_value()))],
            title="Current configuration:"
        )
        console.print()
        console.print(f"Servers configured: {len(registry)}")
        for alias in registry.aliases():
            console.print(f"  - {escape(alias)}")

    store.save(profile)
    print_success(console, "Configuration saved")
    return {"host": profile.host, "port": profile.port, "user": profile.user}
