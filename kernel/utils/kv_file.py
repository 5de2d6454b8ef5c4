# kernel/utils/kv_file.py
"""
VERA KV Store — Local JSON File Implementation

One JSON file per key under KVConfig.path. Each file wraps the value
with its expiry so TTLs survive restarts:

    {"expires_at": 1760000000.0 | null, "value": {...}}
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .kv_store import KVStore, KVConfig


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._:-]")


class FileKVStore(KVStore):
    """Filesystem-backed KVStore, the default when no remote KV is configured."""

    def __init__(self, config: KVConfig):
        super().__init__(config)
        self.root = Path(config.path)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", self._prefixed_key(key)).replace(":", "__")
        return self.root / f"{safe}.json"

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                wrapper = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                print(f"[KV:File] get_json error for {key}: {e}", flush=True)
                return None

            expires_at = wrapper.get("expires_at") if isinstance(wrapper, dict) else None
            if expires_at is not None and time.time() >= expires_at:
                path.unlink(missing_ok=True)
                return None

            value = wrapper.get("value") if isinstance(wrapper, dict) else None
            return value if isinstance(value, dict) else None

    def set_json(
        self,
        key: str,
        value: Dict[str, Any],
        ttl_seconds: Optional[int] = None
    ) -> bool:
        ttl = self._resolve_ttl(ttl_seconds)
        wrapper = {
            "key": key,
            "prefix": self.prefix,
            "expires_at": time.time() + ttl if ttl > 0 else None,
            "value": value,
        }
        path = self._path_for(key)
        try:
            with self._lock:
                # Write-then-rename so a crash never leaves a half-written profile
                fd, tmp = tempfile.mkstemp(dir=self.root, suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(wrapper, f, default=str)
                os.replace(tmp, path)
            return True
        except OSError as e:
            print(f"[KV:File] set_json error for {key}: {e}", flush=True)
            return False

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
            return True


__all__ = ["FileKVStore"]
