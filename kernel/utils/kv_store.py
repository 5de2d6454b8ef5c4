# kernel/utils/kv_store.py
"""
VERA KV Store Protocol

Abstract interface for profile storage backends.
All profile persistence goes through this interface so the mutation
rules in kernel/nervous_profile.py never depend on the storage choice.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class KVConfig:
    """Configuration for KV store connection."""
    provider: str  # "memory", "file" or "upstash"
    url: str = ""
    token: Optional[str] = None  # Required for Upstash
    prefix: str = "vera"
    default_ttl: int = 0  # 0 = no expiry
    path: str = "data/kv"  # Used by the file provider

    @classmethod
    def from_env(cls) -> "KVConfig":
        """Load config from environment variables."""
        return cls(
            provider=os.getenv("KV_PROVIDER", "file"),
            url=os.getenv("KV_URL", ""),
            token=os.getenv("KV_TOKEN"),
            prefix=os.getenv("KV_PREFIX", "vera"),
            default_ttl=int(os.getenv("KV_DEFAULT_TTL", "0")),
            path=os.getenv("KV_PATH", "data/kv"),
        )

    def is_configured(self) -> bool:
        """Check if KV store is properly configured."""
        provider = self.provider.lower()
        if provider in ("memory", "file"):
            return True
        if not self.url:
            return False
        if provider == "upstash" and not self.token:
            return False
        return True


class KVStore(ABC):
    """
    Abstract base class for KV store implementations.

    All methods handle key prefixing internally.
    """

    def __init__(self, config: KVConfig):
        self.config = config
        self.prefix = config.prefix

    def _prefixed_key(self, key: str) -> str:
        """Add prefix to key to prevent collisions."""
        return f"{self.prefix}:{key}"

    # =========================================================================
    # ABSTRACT METHODS - Must be implemented by subclasses
    # =========================================================================

    @abstractmethod
    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get JSON value for key.

        Returns:
            Parsed JSON dict or None if not found / expired / undecodable
        """

    @abstractmethod
    def set_json(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> bool:
        """
        Set JSON value for key with optional TTL.

        ttl_seconds=None uses the configured default; 0 means no expiry.

        Returns:
            True if successful
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if key existed and was deleted
        """

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _resolve_ttl(self, ttl_seconds: Optional[int]) -> int:
        if ttl_seconds is None:
            return self.config.default_ttl
        return max(0, int(ttl_seconds))


__all__ = [
    "KVConfig",
    "KVStore",
]
