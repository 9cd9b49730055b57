# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.02
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the opskit test suite.

No test touches a real database, network or the user's home directory:
config files live under tmp_path and subprocess.run is replaced by
FakeMySQL / FakeGit where commands would run.
"""

import subprocess
from pathlib import Path
from typing import Optional

import pytest

from opskit.config.manager import GitHelperConfigStore, MariaDBConfigStore


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    """Point every config store at an empty directory."""
    home = tmp_path / "config-home"
    monkeypatch.setenv("OPSKIT_CONFIG_HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("OPSKIT_LOCAL_LOG", raising=False)
    return home


@pytest.fixture
def mariadb_store(config_home) -> MariaDBConfigStore:
    return MariaDBConfigStore()


@pytest.fixture
def git_store(config_home) -> GitHelperConfigStore:
    return GitHelperConfigStore()


def _sql_of(cmd: list[str]) -> Optional[str]:
    if "-e" in cmd:
        return cmd[cmd.index("-e") + 1]
    return None


class FakeMySQL:
    """Stands in for subprocess.run when the mysql client is invoked.

    `SELECT 1;` succeeds when reachable is True. Other statements answer
    with the stdout of the first `responses` key contained in the SQL, or
    an empty result.
    """

    def __init__(self, reachable: bool = True, responses: Optional[dict[str, str]] = None):
        self.reachable = reachable
        self.responses = responses or {}
        self.calls: list[list[str]] = []
        self.envs: list[Optional[dict]] = []

    @property
    def statements(self) -> list[str]:
        """SQL of every invocation other than `SELECT 1;`, in order."""
        return [sql for sql in (_sql_of(cmd) for cmd in self.calls) if sql and sql != "SELECT 1;"]

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        self.envs.append(kwargs.get("env"))
        sql = _sql_of(cmd)

        if sql == "SELECT 1;":
            if self.reachable:
                return subprocess.CompletedProcess(cmd, 0, "1\n", "")
            return subprocess.CompletedProcess(cmd, 1, "", "ERROR 2003 (HY000): Can't connect")

        for fragment, stdout in self.responses.items():
            if sql and fragment in sql:
                return subprocess.CompletedProcess(cmd, 0, stdout, "")
        return subprocess.CompletedProcess(cmd, 0, "", "")


@pytest.fixture
def fake_mysql() -> FakeMySQL:
    return FakeMySQL()


class FakeGit:
    """Stands in for subprocess.run when git is invoked.

    Maps a tuple of git arguments (without the leading "git") to
    (returncode, stdout, stderr); unknown commands succeed with no output.
    """

    def __init__(self, responses: Optional[dict[tuple, tuple[int, str, str]]] = None):
        self.responses = responses or {}
        self.calls: list[list[str]] = []
        self.envs: list[Optional[dict]] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        self.envs.append(kwargs.get("env"))
        returncode, stdout, stderr = self.responses.get(tuple(cmd[1:]), (0, "", ""))
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    def ran(self, *args: str) -> bool:
        return ["git", *args] in self.calls
