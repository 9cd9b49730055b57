# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.01
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/system/logging_setup.py

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger


LOCAL_LOG_ENV = "OPSKIT_LOCAL_LOG"


def local_log_dir() -> Optional[Path]:
    """Directory for DEBUG file logging, from $OPSKIT_LOCAL_LOG."""
    value = os.getenv(LOCAL_LOG_ENV)
    return Path(value).expanduser() if value else None


def setup_logging(tool_name: str, debug: bool = False) -> None:
    """Setup loguru logging for one helper invocation.

    Configures:
    - Console output: WARNING+ (DEBUG+ with --debug), on stderr
    - File output: DEBUG+ into <OPSKIT_LOCAL_LOG>/<tool_name>.log if set
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "WARNING",
        format="<level>{level}</level>: {message}",
        colorize=True
    )

    try:
        log_dir = local_log_dir()
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"{tool_name}.log"

            logger.add(
                log_file,
                level="DEBUG",
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
                rotation="10 MB",
                retention="30 days",
                compression="gz"
            )
            logger.debug(f"File logging enabled: {log_file}")

    except Exception as e:
        # Don't fail the entire application if logging setup fails
        logger.warning(f"Failed to setup file logging: {e}")
