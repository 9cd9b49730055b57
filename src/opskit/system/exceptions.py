# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/system/exceptions.py

"""
opskit-specific exception classes.

Every failure a handler can surface to the operator is an OpskitError; the
CLI layer turns these into a red error line and exit status 1.
"""

from typing import Any, Optional, Sequence


class OpskitError(Exception):
    """Base exception for all opskit-specific errors."""
    pass


class ConfigError(OpskitError):
    """Raised when a config file cannot be parsed or holds invalid values."""

    def __init__(self, message: str, path: Optional[str] = None, line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        if path is not None and line_number is not None:
            message = f"{path}:{line_number}: {message}"
        elif path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class ValidationError(OpskitError):
    """Raised when an argument value is not acceptable."""
    pass


class RegistryError(ValidationError):
    """Unknown or duplicate server alias."""

    def __init__(self, message: str, alias: Optional[str] = None):
        self.alias = alias
        super().__init__(message)


class ConnectivityError(OpskitError):
    """The configured target could not be reached."""

    def __init__(self, message: str, target: Optional[str] = None):
        self.target = target
        super().__init__(message)


# === EXTERNAL TOOL ERRORS ===

class ExternalToolError(OpskitError):
    """An invoked process exited non-zero."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = ""
    ):
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)

    @property
    def output(self) -> str:
        """Raw tool output for diagnosis, stderr first."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)


class NotAGitRepositoryError(ExternalToolError):
    """Current directory is not inside a git work tree."""
    pass


# === GITHUB API ERRORS ===

class GitHubAPIError(OpskitError):
    """A GitHub API request failed."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        self.status = status
        self.data = data
        super().__init__(message)


class GitHubResponseError(GitHubAPIError):
    """A GitHub API response lacks a field the caller needs."""

    def __init__(self, message: str, field: str, data: Any = None):
        self.field = field
        super().__init__(message, data=data)
