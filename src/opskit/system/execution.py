# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.07
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/system/execution.py

"""
Unified subprocess execution for every external tool opskit drives.

All git, mysql and mysqldump invocations go through CommandExecutor so that
logging, error reporting and secret handling are consistent:
- run_local: capture stdout/stderr, optionally raise on failure
- run_streaming: let the tool write straight to the terminal
- run_to_file: stream a tool's stdout into a (optionally gzipped) file
- run_from_file: stream a (optionally gzipped) file into a tool's stdin
"""

import gzip
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from loguru import logger

from opskit.system.exceptions import ExternalToolError


@dataclass
class CommandResult:
    """Outcome of one external command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def _child_env(extra_env: Optional[Mapping[str, str]]) -> Optional[dict[str, str]]:
    """Inherit the parent environment and overlay extra_env, or None to inherit as-is."""
    if not extra_env:
        return None
    env = os.environ.copy()
    env.update(extra_env)
    return env


def _launch(launcher: Callable[..., Any], cmd: list[str], **kwargs: Any) -> Any:
    """Call subprocess.run or Popen, turning a missing executable into ExternalToolError."""
    try:
        return launcher(cmd, **kwargs)
    except FileNotFoundError as e:
        raise ExternalToolError(f"{cmd[0]} not found", command=cmd) from e
    except OSError as e:
        raise ExternalToolError(f"Cannot run {cmd[0]}: {e}", command=cmd) from e


def _failure_message(prefix: str, returncode: int, stderr: str) -> str:
    detail = stderr.strip()
    if detail:
        return f"{prefix}: {detail}"
    return f"Command failed with exit code {returncode}"


class CommandExecutor:
    """Static helpers around subprocess for external tool invocations.

    extra_env values (e.g. MYSQL_PWD) are added to the child environment and
    are never logged.
    """

    @staticmethod
    def run_local(
        cmd: list[str],
        timeout: Optional[int] = None,
        check: bool = True,
        extra_env: Optional[Mapping[str, str]] = None
    ) -> CommandResult:
        """Run a command and capture its output.

        Raises:
            ExternalToolError: If check is True and the command exits non-zero
            ExternalToolError: If the executable cannot be started, whatever check is
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        env = _child_env(extra_env)
        if env is None:
            proc = _launch(subprocess.run, cmd, capture_output=True, text=True, timeout=timeout)
        else:
            proc = _launch(subprocess.run, cmd, capture_output=True, text=True, timeout=timeout, env=env)

        result = CommandResult(returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")
        if check and not result.success:
            raise ExternalToolError(
                _failure_message(f"{cmd[0]} failed", result.returncode, result.stderr),
                command=cmd,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr
            )
        return result

    @staticmethod
    def run_streaming(
        cmd: list[str],
        check: bool = True,
        extra_env: Optional[Mapping[str, str]] = None
    ) -> CommandResult:
        """Run a command with output going straight to the terminal."""
        logger.debug(f"Running (streaming): {' '.join(cmd)}")
        env = _child_env(extra_env)
        if env is None:
            proc = _launch(subprocess.run, cmd, check=False, text=True)
        else:
            proc = _launch(subprocess.run, cmd, check=False, text=True, env=env)

        result = CommandResult(returncode=proc.returncode)
        if check and not result.success:
            raise ExternalToolError(
                f"{cmd[0]} exited with status {result.returncode}",
                command=cmd,
                returncode=result.returncode
            )
        return result

    @staticmethod
    def run_to_file(
        cmd: list[str],
        dest: Path,
        compress: bool = False,
        extra_env: Optional[Mapping[str, str]] = None
    ) -> CommandResult:
        """Stream stdout of cmd into dest, gzip-compressed when compress is True.

        A partially written dest is removed when the command fails.
        """
        logger.debug(f"Running: {' '.join(cmd)} > {dest}")
        opener = gzip.open if compress else open
        try:
            with opener(dest, "wb") as out, tempfile.TemporaryFile() as err:
                process = _launch(
                    subprocess.Popen,
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=err,
                    env=_child_env(extra_env)
                )
                shutil.copyfileobj(process.stdout, out)
                process.stdout.close()
                returncode = process.wait()
                err.seek(0)
                stderr = err.read().decode(errors="replace")
        except ExternalToolError:
            dest.unlink(missing_ok=True)
            raise

        if returncode != 0:
            dest.unlink(missing_ok=True)
            raise ExternalToolError(
                _failure_message(f"{cmd[0]} failed", returncode, stderr),
                command=cmd,
                returncode=returncode,
                stderr=stderr
            )
        return CommandResult(returncode=returncode, stderr=stderr)

    @staticmethod
    def run_from_file(
        cmd: list[str],
        source: Path,
        extra_env: Optional[Mapping[str, str]] = None
    ) -> CommandResult:
        """Feed source into stdin of cmd, transparently gunzipping *.gz files."""
        logger.debug(f"Running: {' '.join(cmd)} < {source}")
        opener = gzip.open if source.suffix == ".gz" else open
        with opener(source, "rb") as src, tempfile.TemporaryFile() as err:
            process = _launch(
                subprocess.Popen,
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=err,
                env=_child_env(extra_env)
            )
            try:
                shutil.copyfileobj(src, process.stdin)
                process.stdin.close()
            except BrokenPipeError:
                logger.debug(f"{cmd[0]} closed stdin early")
            returncode = process.wait()
            err.seek(0)
            stderr = err.read().decode(errors="replace")

        if returncode != 0:
            raise ExternalToolError(
                _failure_message(f"{cmd[0]} failed", returncode, stderr),
                command=cmd,
                returncode=returncode,
                stderr=stderr
            )
        return CommandResult(returncode=returncode, stderr=stderr)
