# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Local key-value caches for instant hydration.

A cache stores one JSON document per key. Callers build keys with
:func:`cache_key`, one per persisted collection. Implementations may raise on
I/O failure; the synchronizer catches, logs and carries on.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from typing_extensions import Protocol, runtime_checkable

from ..core.primitives import CollectionEnum

logger = logging.getLogger(__name__)

JSON = Any


def cache_key(namespace: str, collection: Union[CollectionEnum, str]) -> str:
    """Namespaced key for one collection, e.g. ``realEstateModel_floors``."""
    name = collection.value if isinstance(collection, CollectionEnum) else collection
    return f"{namespace}_{name}"


@runtime_checkable
class LocalCache(Protocol):
    """Synchronous JSON key-value store."""

    def get(self, key: str) -> Optional[JSON]: ...

    def set(self, key: str, value: JSON) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, JSON]] = None):
        self._data: Dict[str, JSON] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[JSON]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: JSON) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._data)


class JsonFileCache:
    """
    One JSON file per key in a directory.

    Writes go to a temporary file that is renamed over the target, so a
    crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[JSON]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)

    def set(self, key: str, value: JSON) -> None:
        path = self._path(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        logger.debug(f"Wrote local cache key {key}")

    def remove(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)
