# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.01.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/opskit/core/__init__.py

"""Wrappers around the external tools and APIs opskit drives."""
