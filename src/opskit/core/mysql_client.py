# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/core/mysql_client.py

"""
Thin wrapper around the mysql and mysqldump command-line clients.

The MySQL protocol is left entirely to the client binaries. This module
builds their argument lists from a MariaDBProfile, passes the password
through the MYSQL_PWD environment variable of the child process (never in
argv), and parses batch-mode output (one row per line, tab-separated
columns) into lists of strings.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Final, Optional

from loguru import logger

from opskit.config.manager import MariaDBProfile
from opskit.system.exceptions import ExternalToolError, ValidationError
from opskit.system.execution import CommandExecutor, CommandResult


SYSTEM_SCHEMAS: Final[tuple[str, ...]] = ("information_schema", "performance_schema", "mysql")
SYSTEM_USERS: Final[tuple[str, ...]] = ("root", "mysql.sys", "mysql.session", "mysql.infoschema")
DUMP_OPTIONS: Final[tuple[str, ...]] = ("--single-transaction", "--routines", "--triggers")

_PRIVILEGES_RE: Final = re.compile(r"^[A-Za-z][A-Za-z ,_]*$")
_CHARSET_RE: Final = re.compile(r"^[A-Za-z0-9_]+$")


# ---- SQL quoting ----

def quote_identifier(name: str) -> str:
    """Backtick-quote a database/table name."""
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    """Single-quote a string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"


def account(user: str, host: str) -> str:
    return f"{quote_literal(user)}@{quote_literal(host)}"


def validate_privileges(privileges: str) -> str:
    if not _PRIVILEGES_RE.match(privileges.strip()):
        raise ValidationError(f"Invalid privilege list: {privileges!r}")
    return privileges.strip()


def validate_charset(name: str, kind: str = "charset") -> str:
    if not _CHARSET_RE.match(name):
        raise ValidationError(f"Invalid {kind}: {name!r}")
    return name


def _not_in(values: tuple[str, ...]) -> str:
    return "(" + ", ".join(quote_literal(v) for v in values) + ")"


# ---- Output parsing ----

def parse_tab_rows(output: str) -> list[list[str]]:
    """Split mysql batch output into rows of column strings, skipping blank lines."""
    return [line.split("\t") for line in output.splitlines() if line.strip()]


def backup_filename(database: str, compress: bool, now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    name = f"{database}_{timestamp}.sql"
    return f"{name}.gz" if compress else name


# ---- Client ----

class MySQLClient:
    """Runs mysql/mysqldump against the server described by a profile."""

    def __init__(self, profile: MariaDBProfile, executor: Optional[type[CommandExecutor]] = None) -> None:
        self.profile = profile
        self.executor = executor or CommandExecutor

    @property
    def connection_args(self) -> list[str]:
        return ["-h", self.profile.host, "-P", str(self.profile.port), "-u", self.profile.user]

    @property
    def secret_env(self) -> dict[str, str]:
        password = self.profile.password.get_secret_value()
        return {"MYSQL_PWD": password} if password else {}

    def mysql_command(self, *extra: str) -> list[str]:
        return ["mysql", *self.connection_args, *extra]

    def dump_command(self, database: str) -> list[str]:
        return ["mysqldump", *self.connection_args, *DUMP_OPTIONS, database]

    # -- probes and queries --

    def ping(self) -> bool:
        """True when `SELECT 1` succeeds with the current credentials."""
        try:
            result = self.executor.run_local(
                self.mysql_command("-e", "SELECT 1;"), check=False, extra_env=self.secret_env
            )
        except ExternalToolError as e:
            logger.debug(f"Ping of {self.profile.target} failed: {e}")
            return False
        if not result.success:
            logger.debug(f"Ping of {self.profile.target} failed: {result.stderr.strip()}")
        return result.success

    def run_sql(self, sql: str, headers: bool = False) -> CommandResult:
        """Run sql in batch mode and return the raw result."""
        flags = ["-B"] if headers else ["-N", "-B"]
        return self.executor.run_local(
            self.mysql_command(*flags, "-e", sql), extra_env=self.secret_env
        )

    def query(self, sql: str) -> list[list[str]]:
        return parse_tab_rows(self.run_sql(sql).stdout)

    def scalar(self, sql: str) -> str:
        rows = self.query(sql)
        if not rows or not rows[0]:
            return ""
        return rows[0][0]

    def execute(self, *statements: str) -> None:
        """Run statements in one client invocation."""
        self.run_sql(" ".join(statements))

    # -- server information --

    def server_version(self) -> str:
        return self.scalar("SELECT VERSION();")

    def list_databases(self) -> list[str]:
        rows = self.query(
            "SELECT schema_name FROM information_schema.schemata "
            f"WHERE schema_name NOT IN {_not_in(SYSTEM_SCHEMAS)} ORDER BY schema_name;"
        )
        return [row[0] for row in rows]

    def database_sizes(self) -> list[tuple[str, str]]:
        """(database, size in MB) for every non-system database."""
        rows = self.query(
            "SELECT s.schema_name, "
            "ROUND(COALESCE(SUM(t.data_length + t.index_length), 0) / 1024 / 1024, 2) "
            "FROM information_schema.schemata s "
            "LEFT JOIN information_schema.tables t ON t.table_schema = s.schema_name "
            f"WHERE s.schema_name NOT IN {_not_in(SYSTEM_SCHEMAS)} "
            "GROUP BY s.schema_name ORDER BY s.schema_name;"
        )
        return [(row[0], row[1] if len(row) > 1 else "0") for row in rows]

    def count_databases(self) -> str:
        return self.scalar(
            "SELECT COUNT(*) FROM information_schema.schemata "
            f"WHERE schema_name NOT IN {_not_in(SYSTEM_SCHEMAS[:2])};"
        )

    def count_users(self) -> str:
        return self.scalar(f"SELECT COUNT(*) FROM mysql.user WHERE user NOT IN {_not_in(SYSTEM_USERS)};")

    def list_users(self) -> list[tuple[str, str]]:
        rows = self.query(
            f"SELECT user, host FROM mysql.user WHERE user NOT IN {_not_in(SYSTEM_USERS)} ORDER BY user, host;"
        )
        return [(row[0], row[1] if len(row) > 1 else "") for row in rows]

    def list_tables(self, database: str) -> list[str]:
        rows = self.query(
            "SELECT table_name FROM information_schema.tables "
            f"WHERE table_schema = {quote_literal(database)} ORDER BY table_name;"
        )
        return [row[0] for row in rows]

    def count_rows(self, database: str, table: str) -> str:
        return self.scalar(f"SELECT COUNT(*) FROM {quote_identifier(database)}.{quote_identifier(table)};")

    def show_grants(self, user: str, host: str) -> list[str]:
        return [row[0] for row in self.query(f"SHOW GRANTS FOR {account(user, host)};")]

    # -- dump and restore --

    def dump(self, database: str, dest: Path, compress: bool = True) -> CommandResult:
        return self.executor.run_to_file(
            self.dump_command(database), dest, compress=compress, extra_env=self.secret_env
        )

    def restore(self, database: str, source: Path) -> CommandResult:
        return self.executor.run_from_file(
            self.mysql_command(database), source, extra_env=self.secret_env
        )
