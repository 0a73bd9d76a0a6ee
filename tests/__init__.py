# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Floorplate test suite.

Unit tests are organized by package under ``tests/unit``.
"""
