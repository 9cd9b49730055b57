# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.01.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/config/__init__.py

"""Persisted credential profiles and the server registry."""
