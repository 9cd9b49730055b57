# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.16
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/patterns.py

"""
Command pattern shared by every helper subcommand.

command_pattern wraps a handler so that any OpskitError it raises becomes a
red error line on stderr and exit status 1. typer.Exit passes through, so
handlers can still end with an explicit status (cancellations exit 0).
"""

import functools
from typing import Any, Callable, TypeVar

import typer
from loguru import logger

from opskit.cli.utils import err_console, report_error
from opskit.system.exceptions import OpskitError


F = TypeVar("F", bound=Callable[..., Any])


def command_pattern(handler: F) -> F:
    @functools.wraps(handler)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return handler(*args, **kwargs)
        except OpskitError as e:
            logger.debug(f"{type(e).__name__}: {e}")
            report_error(err_console, e)
            raise typer.Exit(1)

    return wrapper  # type: ignore[return-value]
