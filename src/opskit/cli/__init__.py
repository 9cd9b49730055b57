# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/__init__.py

"""Command Line Interfaces for git-helper and mariadb-helper."""
