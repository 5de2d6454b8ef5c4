# kernel/utils/__init__.py
"""
VERA Utils Subpackage

Storage backends for the profile store:
- kv_store:   KVStore ABC + KVConfig
- kv_memory:  in-process dict store
- kv_file:    JSON-file store (default)
- kv_upstash: Upstash Redis store (optional SDK)
- kv_factory: provider selection from KV_PROVIDER
"""

from .kv_store import KVConfig, KVStore
from .kv_memory import MemoryKVStore
from .kv_factory import build_kv_store, get_kv_store, reset_kv_store, is_kv_configured

__all__ = [
    "KVConfig",
    "KVStore",
    "MemoryKVStore",
    "build_kv_store",
    "get_kv_store",
    "reset_kv_store",
    "is_kv_configured",
]
