# kernel/utils/kv_upstash.py
"""
VERA KV Store — Upstash Redis Implementation

Durable server-side home for user profiles, over the Upstash REST API
(upstash-redis SDK). Selected with KV_PROVIDER=upstash plus KV_URL / KV_TOKEN.

Profiles are stored as JSON strings; retention TTLs map to Redis EX.
Backend errors are logged and reported as misses / failed writes so the
profile store can fall back to a fresh profile.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Callable, Dict, Optional, TypeVar

from .kv_store import KVStore, KVConfig

T = TypeVar("T")


class UpstashKVStore(KVStore):
    """
    Usage:
        store = UpstashKVStore(KVConfig(provider="upstash", url=..., token=...))
        store.set_json("profile:u1", profile.to_dict(), ttl_seconds=30 * 86400)

    A ready client can be passed in (tests, shared connections).
    """

    def __init__(self, config: KVConfig, client: Any = None):
        super().__init__(config)
        self._client = client
        if self._client is None:
            self._client = self._connect()

    def _connect(self):
        try:
            from upstash_redis import Redis
        except ImportError:
            raise ImportError(
                "upstash-redis package not installed. "
                "Install with: pip install upstash-redis"
            )

        client = Redis(url=self.config.url, token=self.config.token)
        print(f"[KV:Upstash] Connected to {self.config.url[:30]}...", flush=True)
        return client

    @property
    def client(self):
        return self._client

    def _guard(self, op: str, key: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except Exception as e:
            print(f"[KV:Upstash] {op} failed key={key}: {e}", file=sys.stderr, flush=True)
            return default

    # =========================================================================
    # KVStore
    # =========================================================================

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._guard("get", key, lambda: self.client.get(self._prefixed_key(key)), None)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, dict):
            return raw
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            print(f"[KV:Upstash] undecodable value key={key}: {e}", file=sys.stderr, flush=True)
            return None
        return value if isinstance(value, dict) else None

    def set_json(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> bool:
        payload = json.dumps(value, default=str)
        ttl = self._resolve_ttl(ttl_seconds)
        prefixed = self._prefixed_key(key)

        def write():
            if ttl > 0:
                self.client.set(prefixed, payload, ex=ttl)
            else:
                self.client.set(prefixed, payload)
            return True

        return self._guard("set", key, write, False)

    def delete(self, key: str) -> bool:
        removed = self._guard("delete", key, lambda: self.client.delete(self._prefixed_key(key)), 0)
        return bool(removed)


__all__ = ["UpstashKVStore"]
