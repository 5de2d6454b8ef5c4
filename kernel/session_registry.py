# kernel/session_registry.py
"""
VERA Session Registry

Bounded, thread-safe map of session id -> SessionState.

- LRU eviction once max_sessions is reached; sessions mid-cycle are skipped
- Idle TTL: sessions untouched for ttl_seconds are dropped on access
- Each session carries its own lock; the session engine holds it for the
  whole cycle so two messages of one session never interleave, while
  distinct sessions proceed concurrently
- History is append-only and capped at history_limit messages (oldest
  dropped first)
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ConversationMessage:
    """
    One turn of conversation.

    metadata carries mode, code tags, intensity and the state description
    for the turn that produced it.
    """
    role: MessageRole
    content: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationMessage":
        return cls(
            role=MessageRole(data.get("role", "user")),
            content=data.get("content", ""),
            timestamp=data.get("timestamp", datetime.now(timezone.utc).isoformat()),
            metadata=dict(data.get("metadata", {})),
        )


@dataclass
class SessionState:
    """
    Per-session conversation state.

    Attributes:
        session_id: Unique identifier for this conversation session
        user_id: Profile owner for this session
        history: Append-only message list (bounded by the registry)
        last_mode: Mode used for the previous assistant turn
        lock: Serializes cycles for this session
    """
    session_id: str
    user_id: str = "anonymous"
    history: List[ConversationMessage] = field(default_factory=list)
    last_mode: Optional[str] = None
    history_limit: int = 200
    created_at: float = field(default_factory=time.monotonic)
    last_active: float = field(default_factory=time.monotonic)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def append(self, message: ConversationMessage) -> None:
        self.history.append(message)
        overflow = len(self.history) - self.history_limit
        if overflow > 0:
            del self.history[:overflow]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "last_mode": self.last_mode,
            "history": [m.to_dict() for m in self.history],
        }

    def __repr__(self) -> str:
        return f"SessionState(session='{self.session_id}', turns={len(self.history)})"


class SessionRegistry:
    """
    LRU + idle-TTL session map.

    Usage:
        registry = SessionRegistry(max_sessions=500, ttl_seconds=3600)
        session = registry.get_or_create("s-1", user_id="u-1")
        with session.lock:
            ...
    """

    def __init__(self, max_sessions: int = 500, ttl_seconds: int = 3600, history_limit: int = 200):
        self.max_sessions = max(1, int(max_sessions))
        self.ttl_seconds = int(ttl_seconds)
        self.history_limit = max(1, int(history_limit))
        self._sessions: "OrderedDict[str, SessionState]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "SessionRegistry":
        return cls(
            max_sessions=config.max_sessions,
            ttl_seconds=config.session_ttl_seconds,
            history_limit=config.history_limit,
        )

    def _is_stale(self, session: SessionState, now: float) -> bool:
        return self.ttl_seconds > 0 and now - session.last_active > self.ttl_seconds

    def _evict_lru(self) -> None:
        """Make room for one session, oldest first, never evicting one mid-cycle."""
        overflow = len(self._sessions) - self.max_sessions + 1
        if overflow <= 0:
            return
        idle = [sid for sid, s in self._sessions.items() if not s.lock.locked()][:overflow]
        for sid in idle:
            del self._sessions[sid]
            print(f"[SessionRegistry] evicted LRU session={sid}", flush=True)
        if len(idle) < overflow:
            print(
                f"[SessionRegistry] {overflow - len(idle)} session(s) over capacity, all busy",
                flush=True,
            )

    def _purge_stale(self, now: float) -> None:
        stale = [
            sid for sid, s in self._sessions.items()
            if self._is_stale(s, now) and not s.lock.locked()
        ]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            print(f"[SessionRegistry] expired {len(stale)} idle session(s)", flush=True)

    def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> SessionState:
        now = time.monotonic()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._is_stale(session, now) and not session.lock.locked():
                del self._sessions[session_id]
                session = None

            if session is None:
                self._purge_stale(now)
                self._evict_lru()
                session = SessionState(
                    session_id=session_id,
                    user_id=user_id or "anonymous",
                    history_limit=self.history_limit,
                )
                self._sessions[session_id] = session
            else:
                self._sessions.move_to_end(session_id)
                if user_id:
                    session.user_id = user_id

            session.last_active = now
            return session

    def get(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or self._is_stale(session, time.monotonic()):
                return None
            return session

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None


__all__ = [
    "MessageRole",
    "ConversationMessage",
    "SessionState",
    "SessionRegistry",
]
