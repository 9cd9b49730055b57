# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.01.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/__init__.py

"""opskit - operator command-line helpers for git/GitHub and MySQL/MariaDB."""

__version__ = "0.1.0"
