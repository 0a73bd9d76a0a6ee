# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for floorplate components.

Each test module exercises one package in isolation, with in-memory caches
and stores standing in for external persistence.
"""
