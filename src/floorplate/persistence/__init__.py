# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Persistence: local cache, remote relational store, schema migrations and the
synchronizer that keeps both in step with a building engine.
"""

from .local_cache import JsonFileCache, LocalCache, MemoryCache, cache_key
from .migrations import migrate_payload, migrate_payloads, unwrap, wrap
from .payloads import payloads_to_state, state_to_payloads
from .remote_store import DuckDBRemoteStore, RemoteStore
from .rows import TABLES, diff_rows, rows_to_state, state_to_rows
from .synchronizer import PersistenceSynchronizer

__all__ = [
    "DuckDBRemoteStore",
    "JsonFileCache",
    "LocalCache",
    "MemoryCache",
    "PersistenceSynchronizer",
    "RemoteStore",
    "TABLES",
    "cache_key",
    "diff_rows",
    "migrate_payload",
    "migrate_payloads",
    "payloads_to_state",
    "rows_to_state",
    "state_to_payloads",
    "state_to_rows",
    "unwrap",
    "wrap",
]
