# system/config.py
"""
VERA Configuration

Two layers:
- data/config.json: env/debug flags (created with defaults when missing or corrupt)
- Environment variables (.env loaded via python-dotenv): gateway, storage,
  session and decay settings
"""

import json
import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

CONFIG_DIR = Path("data")

DEFAULT_FILE_CONFIG = {"env": "dev", "debug": True}


def load_env_file(base_dir: Path = None) -> bool:
    """
    Load environment variables from .env.

    Checks base_dir first, then the current working directory.
    Returns True if a .env file was loaded.
    """
    try:
        from dotenv import load_dotenv
    except ImportError:
        print("[Config] WARNING: python-dotenv not installed", file=sys.stderr, flush=True)
        return False

    candidates = []
    if base_dir is not None:
        candidates.append(Path(base_dir) / ".env")
    candidates.append(Path.cwd() / ".env")

    for env_path in candidates:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            print(f"[Config] Loaded .env from {env_path}", flush=True)
            return True

    return False


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[Config] WARNING: {name}={raw!r} is not an int, using {default}", file=sys.stderr, flush=True)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[Config] WARNING: {name}={raw!r} is not a number, using {default}", file=sys.stderr, flush=True)
        return default


@dataclass
class Config:
    data_dir: Path
    env: str = "dev"
    debug: bool = True

    # External LLM gateway
    llm_timeout: float = 30.0
    primary_provider: str = "openai"
    secondary_provider: str = "gemini"

    # Session registry
    max_sessions: int = 500
    session_ttl_seconds: int = 3600
    history_limit: int = 200

    # Relationship dial decay for dormant profiles
    decay_after_days: int = 30
    decay_step: int = 2

    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls, data_dir: Path, **file_values: Any) -> "Config":
        """Build a config from file values plus VERA_* environment overrides."""
        known = {f.name for f in fields(cls)}
        extra = {k: v for k, v in file_values.items() if k not in known}
        base = {k: v for k, v in file_values.items() if k in known and k != "extra"}

        return cls(
            data_dir=Path(data_dir),
            env=base.get("env", "dev"),
            debug=bool(base.get("debug", True)),
            llm_timeout=_env_float("VERA_LLM_TIMEOUT", float(base.get("llm_timeout", 30.0))),
            primary_provider=os.getenv("VERA_PRIMARY_PROVIDER", base.get("primary_provider", "openai")),
            secondary_provider=os.getenv("VERA_SECONDARY_PROVIDER", base.get("secondary_provider", "gemini")),
            max_sessions=_env_int("VERA_MAX_SESSIONS", int(base.get("max_sessions", 500))),
            session_ttl_seconds=_env_int("VERA_SESSION_TTL", int(base.get("session_ttl_seconds", 3600))),
            history_limit=_env_int("VERA_HISTORY_LIMIT", int(base.get("history_limit", 200))),
            decay_after_days=_env_int("VERA_DECAY_AFTER_DAYS", int(base.get("decay_after_days", 30))),
            decay_step=_env_int("VERA_DECAY_STEP", int(base.get("decay_step", 2))),
            extra=extra,
        )

    @classmethod
    def load(cls, config_dir: Path = CONFIG_DIR) -> "Config":
        config_dir = Path(config_dir)
        cfg_path = config_dir / "config.json"

        if not cfg_path.exists() or cfg_path.stat().st_size == 0:
            config_dir.mkdir(parents=True, exist_ok=True)
            with cfg_path.open("w", encoding="utf-8") as f:
                json.dump(DEFAULT_FILE_CONFIG, f, indent=2)
            return cls.from_env(config_dir, **DEFAULT_FILE_CONFIG)

        try:
            with cfg_path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("config.json must contain an object")
        except (json.JSONDecodeError, ValueError) as e:
            print(f"[Config] Corrupt {cfg_path}, rewriting defaults: {e}", file=sys.stderr, flush=True)
            raw = dict(DEFAULT_FILE_CONFIG)
            with cfg_path.open("w", encoding="utf-8") as f:
                json.dump(raw, f, indent=2)

        return cls.from_env(config_dir, **raw)
