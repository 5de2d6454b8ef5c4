# kernel/utils/kv_factory.py
"""
VERA KV Store Factory

Returns the appropriate KVStore implementation based on KV_PROVIDER env var.
"""

from __future__ import annotations

from typing import Optional

from .kv_store import KVStore, KVConfig


# Singleton instance
_kv_instance: Optional[KVStore] = None


def build_kv_store(config: KVConfig) -> KVStore:
    """
    Build a KV store for the given config (no singleton).

    Raises:
        ValueError: If provider is unknown or not configured
        ImportError: If required SDK is not installed
    """
    if not config.is_configured():
        raise ValueError(
            f"KV store '{config.provider}' not configured. "
            f"Set KV_URL and KV_TOKEN environment variables."
        )

    provider = config.provider.lower()

    if provider == "memory":
        from .kv_memory import MemoryKVStore
        return MemoryKVStore(config)

    if provider == "file":
        from .kv_file import FileKVStore
        return FileKVStore(config)

    if provider == "upstash":
        from .kv_upstash import UpstashKVStore
        return UpstashKVStore(config)

    raise ValueError(
        f"Unknown KV provider: {provider}. "
        f"Supported: memory, file, upstash"
    )


def get_kv_store(config: Optional[KVConfig] = None) -> KVStore:
    """
    Get or create the KV store singleton.

    Args:
        config: Optional config (uses env vars if not provided)
    """
    global _kv_instance

    if _kv_instance is not None:
        return _kv_instance

    if config is None:
        config = KVConfig.from_env()

    _kv_instance = build_kv_store(config)
    print(f"[KV] provider={config.provider} prefix={config.prefix}", flush=True)
    return _kv_instance


def reset_kv_store() -> None:
    """Reset the singleton (for testing)."""
    global _kv_instance
    _kv_instance = None


def is_kv_configured() -> bool:
    """Check if KV store is configured via environment."""
    config = KVConfig.from_env()
    return config.is_configured()


__all__ = [
    "build_kv_store",
    "get_kv_store",
    "reset_kv_store",
    "is_kv_configured",
]
