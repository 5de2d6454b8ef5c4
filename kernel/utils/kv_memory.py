# kernel/utils/kv_memory.py
"""
VERA KV Store — In-Process Memory Implementation

Used for tests, for KV_PROVIDER=memory, and for profiles whose owner
chose data_retention="none" (never leaves the process).
"""

from __future__ import annotations

import copy
import threading
import time
from typing import Any, Dict, Optional, Tuple

from .kv_store import KVStore, KVConfig


class MemoryKVStore(KVStore):
    """Dict-backed KVStore with lazy TTL expiry."""

    def __init__(self, config: Optional[KVConfig] = None):
        super().__init__(config or KVConfig(provider="memory"))
        # prefixed key -> (value, expires_at or None)
        self._data: Dict[str, Tuple[Dict[str, Any], Optional[float]]] = {}
        self._lock = threading.Lock()

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and time.monotonic() >= expires_at

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        prefixed = self._prefixed_key(key)
        with self._lock:
            entry = self._data.get(prefixed)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at):
                del self._data[prefixed]
                return None
            return copy.deepcopy(value)

    def set_json(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> bool:
        ttl = self._resolve_ttl(ttl_seconds)
        expires_at = time.monotonic() + ttl if ttl > 0 else None
        with self._lock:
            self._data[self._prefixed_key(key)] = (copy.deepcopy(value), expires_at)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(self._prefixed_key(key), None) is not None

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            stale = [k for k, (_, exp) in self._data.items() if self._expired(exp)]
            for k in stale:
                del self._data[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


__all__ = ["MemoryKVStore"]
