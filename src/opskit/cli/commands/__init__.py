# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.15
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/cli/commands/__init__.py

"""
Command handlers for the helper CLIs.

This package contains the business logic for all subcommands, separated
from the typer layer. Handlers take their consoles and collaborators
(store, client, repository) as arguments and return a result dict:

- mariadb: mariadb-helper server, user, database, backup and query commands
- git: git-helper local repository commands and configuration
- github: git-helper `github` subcommands
"""
