#!/usr/bin/env python3
"""
VERA Session Registry Tests

Tests for:
- Session reuse
- History cap
- LRU eviction (busy sessions are skipped)
- Idle TTL expiry
"""

import unittest
from unittest import mock
from pathlib import Path
import time
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kernel.session_registry import ConversationMessage, MessageRole, SessionRegistry


class TestSessionRegistry(unittest.TestCase):

    def test_get_or_create_reuses(self):
        registry = SessionRegistry()
        first = registry.get_or_create("s1", user_id="u1")
        self.assertIs(registry.get_or_create("s1"), first)
        self.assertEqual(first.user_id, "u1")
        self.assertIn("s1", registry)

    def test_history_capped(self):
        registry = SessionRegistry(history_limit=3)
        session = registry.get_or_create("s1")
        for i in range(5):
            session.append(ConversationMessage(MessageRole.USER, f"m{i}"))
        self.assertEqual([m.content for m in session.history], ["m2", "m3", "m4"])

    def test_lru_eviction(self):
        registry = SessionRegistry(max_sessions=2)
        registry.get_or_create("a")
        registry.get_or_create("b")
        registry.get_or_create("a")  # a is now most recent
        registry.get_or_create("c")
        self.assertEqual(len(registry), 2)
        self.assertIn("a", registry)
        self.assertNotIn("b", registry)

    def test_busy_session_not_evicted(self):
        registry = SessionRegistry(max_sessions=2)
        busy = registry.get_or_create("a")
        registry.get_or_create("b")
        with busy.lock:
            registry.get_or_create("c")
            self.assertIs(registry.get_or_create("a"), busy)
        self.assertNotIn("b", registry)
        self.assertIn("c", registry)

    def test_all_busy_allows_overflow(self):
        registry = SessionRegistry(max_sessions=1)
        busy = registry.get_or_create("a")
        with busy.lock:
            registry.get_or_create("b")
            self.assertEqual(len(registry), 2)
            self.assertIs(registry.get("a"), busy)
        registry.get_or_create("c")
        self.assertEqual(len(registry), 1)
        self.assertIn("c", registry)

    def test_busy_session_survives_idle_expiry(self):
        registry = SessionRegistry(ttl_seconds=10)
        busy = registry.get_or_create("s1")
        later = time.monotonic() + 100
        with busy.lock, mock.patch("kernel.session_registry.time.monotonic", return_value=later):
            self.assertIs(registry.get_or_create("s1"), busy)

    def test_idle_expiry(self):
        registry = SessionRegistry(ttl_seconds=10)
        old = registry.get_or_create("s1")
        later = time.monotonic() + 100
        with mock.patch("kernel.session_registry.time.monotonic", return_value=later):
            self.assertIsNone(registry.get("s1"))
            fresh = registry.get_or_create("s1")
        self.assertIsNot(fresh, old)

    def test_clear(self):
        registry = SessionRegistry()
        registry.get_or_create("s1")
        registry.clear("s1")
        self.assertNotIn("s1", registry)

    def test_message_to_dict(self):
        msg = ConversationMessage(MessageRole.ASSISTANT, "hi", metadata={"mode": "companion"})
        data = msg.to_dict()
        self.assertEqual(data["role"], "assistant")
        self.assertEqual(ConversationMessage.from_dict(data).metadata, {"mode": "companion"})


if __name__ == "__main__":
    unittest.main()
