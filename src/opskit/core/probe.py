# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/core/probe.py

"""
Reachability probes run before a command touches its target.

check() is a single side-effect-free attempt. wait_for() repeats it a fixed
number of times with a fixed delay between attempts; this is the only retry
loop in opskit.
"""

import time
from typing import Callable, Final, Optional

from loguru import logger

from opskit.config.manager import GitHelperProfile, MariaDBProfile, ProfileModel
from opskit.core.mysql_client import MySQLClient
from opskit.system.execution import CommandExecutor


DEFAULT_MAX_ATTEMPTS: Final = 10
DEFAULT_DELAY: Final = 2.0

# Used by the explicit check-connection command
CHECK_CONNECTION_ATTEMPTS: Final = 5
CHECK_CONNECTION_DELAY: Final = 2.0

AttemptCallback = Callable[[int, int, float], None]


class ConnectionProbe:
    """Base probe; subclasses implement check() for one kind of target."""

    def __init__(
        self,
        sleep: Optional[Callable[[float], None]] = None,
        on_retry: Optional[AttemptCallback] = None
    ) -> None:
        # resolved per instance so a patched time.sleep applies
        self.sleep = sleep or time.sleep
        self.on_retry = on_retry

    def check(self, profile: ProfileModel) -> bool:
        raise NotImplementedError

    def describe(self, profile: ProfileModel) -> str:
        return type(profile).__name__

    def wait_for(
        self,
        profile: ProfileModel,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay: float = DEFAULT_DELAY
    ) -> bool:
        """Call check() up to max_attempts times, sleeping delay seconds between attempts."""
        target = self.describe(profile)
        for attempt in range(1, max_attempts + 1):
            logger.debug(f"Probing {target} (attempt {attempt}/{max_attempts})")
            if self.check(profile):
                if attempt > 1:
                    logger.info(f"{target} reachable on attempt {attempt}")
                return True

            if attempt >= max_attempts:
                break

            if self.on_retry:
                self.on_retry(attempt, max_attempts, delay)
            if delay > 0:
                self.sleep(delay)

        logger.debug(f"{target} unreachable after {max_attempts} attempts")
        return False


class MySQLProbe(ConnectionProbe):
    """Runs `SELECT 1` through the mysql client."""

    def __init__(
        self,
        executor: Optional[type[CommandExecutor]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        on_retry: Optional[AttemptCallback] = None
    ) -> None:
        super().__init__(sleep=sleep, on_retry=on_retry)
        self.executor = executor

    def check(self, profile: MariaDBProfile) -> bool:
        return MySQLClient(profile, executor=self.executor).ping()

    def describe(self, profile: MariaDBProfile) -> str:
        return profile.target


class GitHubTokenProbe(ConnectionProbe):
    """GitHub access is assumed possible whenever a token is configured."""

    def check(self, profile: GitHelperProfile) -> bool:
        return profile.has_token

    def describe(self, profile: GitHelperProfile) -> str:
        return "GitHub API"
