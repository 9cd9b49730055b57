# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.01
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/utils.py

"""
CLI utility functions shared by git-helper and mariadb-helper.

This module provides:
- HelperGroup: typer group that turns unknown commands into exit status 1
- Help printing and positional-argument checks with typer exits
- Error reporting for OpskitError subclasses

All functions handle console output and typer exits consistently.
"""

from importlib.metadata import version
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from typer.core import TyperGroup

from opskit.system.display import print_error, print_raw, render_json
from opskit.system.exceptions import ExternalToolError, GitHubAPIError, OpskitError


console = Console()
err_console = Console(stderr=True)


class HelperGroup(TyperGroup):
    """Command group that reports unknown subcommands like the shell tools did.

    An unknown command prints an error on stderr, the help text on stdout,
    and exits with status 1. Malformed options still go through the parser
    and exit with the usage-error status 2.
    """

    def resolve_command(self, ctx: typer.Context, args: list[str]) -> Any:
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            label = "command" if ctx.parent is None else f"{ctx.info_name} command"
            err_console.print(f"[red]✗[/red] Unknown {label}: {escape(args[0])}")
            show_help(ctx)
            ctx.exit(1)
        return super().resolve_command(ctx, args)


def show_help(ctx: typer.Context) -> None:
    """Print help for ctx on stdout."""
    text = ctx.get_help()
    if text:
        typer.echo(text)


def require_args(usage: str, *values: Optional[object]) -> None:
    """
    Exit with a usage line when a required positional argument is missing.

    Args:
        usage: Usage text shown after "Usage: "
        *values: Argument values; None or "" counts as missing

    Raises:
        typer.Exit: If any value is missing
    """
    if any(value is None or value == "" for value in values):
        err_console.print(f"Usage: {usage}", markup=False, highlight=False)
        raise typer.Exit(1)


def report_error(out: Console, error: OpskitError) -> None:
    """Print an error line followed by any raw tool or API output."""
    message = str(error)
    print_error(out, message)
    if isinstance(error, ExternalToolError):
        # stderr is usually part of the message already
        detail = error.stdout.strip() if error.stderr.strip() in message else error.output
        print_raw(out, detail)
    elif isinstance(error, GitHubAPIError) and error.data:
        print_raw(out, render_json(error.data))


def handle_operation_error(out: Console, operation: str, error: Exception) -> None:
    """Handle operation errors with consistent formatting."""
    out.print(f"[red]✗[/red] Error {operation}: {escape(str(error))}")
    raise typer.Exit(1)


def print_version(tool_name: str) -> None:
    try:
        pkg_version = version("opskit")
    except Exception as e:
        handle_operation_error(err_console, "retrieving version", e)
    console.print(f"{tool_name} (opskit) version {pkg_version}")
