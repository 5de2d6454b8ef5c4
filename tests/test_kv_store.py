#!/usr/bin/env python3
"""
VERA KV Store Tests

Tests for:
- MemoryKVStore get/set/delete, TTL expiry and purging
- FileKVStore persistence, corrupt files and TTL expiry
- UpstashKVStore against a mocked client
- Provider selection
"""

import unittest
from unittest import mock
from pathlib import Path
import tempfile
import shutil
import time
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kernel.utils import KVConfig, MemoryKVStore, build_kv_store
from kernel.utils.kv_file import FileKVStore
from kernel.utils.kv_upstash import UpstashKVStore


class TestMemoryKVStore(unittest.TestCase):

    def setUp(self):
        self.kv = MemoryKVStore()

    def test_set_get_delete(self):
        self.assertTrue(self.kv.set_json("profile:u1", {"a": 1}))
        self.assertEqual(self.kv.get_json("profile:u1"), {"a": 1})
        self.assertTrue(self.kv.delete("profile:u1"))
        self.assertFalse(self.kv.delete("profile:u1"))
        self.assertIsNone(self.kv.get_json("profile:u1"))

    def test_returns_copies(self):
        self.kv.set_json("k", {"items": [1]})
        self.kv.get_json("k")["items"].append(2)
        self.assertEqual(self.kv.get_json("k"), {"items": [1]})

    def test_ttl_expiry(self):
        self.kv.set_json("k", {"a": 1}, ttl_seconds=5)
        self.kv.set_json("forever", {"a": 1}, ttl_seconds=0)
        later = time.monotonic() + 60
        with mock.patch("kernel.utils.kv_memory.time.monotonic", return_value=later):
            self.assertIsNone(self.kv.get_json("k"))
            self.assertEqual(self.kv.get_json("forever"), {"a": 1})

    def test_purge_expired(self):
        self.kv.set_json("a", {}, ttl_seconds=5)
        self.kv.set_json("b", {}, ttl_seconds=5)
        self.kv.set_json("forever", {}, ttl_seconds=0)
        later = time.monotonic() + 60
        with mock.patch("kernel.utils.kv_memory.time.monotonic", return_value=later):
            self.assertEqual(self.kv.purge_expired(), 2)
        self.assertEqual(len(self.kv), 1)


class TestFileKVStore(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = KVConfig(provider="file", path=self.temp_dir)
        self.kv = FileKVStore(self.config)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_persists_across_instances(self):
        self.kv.set_json("profile:u1", {"name": "Sam"})
        other = FileKVStore(self.config)
        self.assertEqual(other.get_json("profile:u1"), {"name": "Sam"})

    def test_corrupt_file(self):
        self.kv.set_json("profile:u1", {"name": "Sam"})
        path = next(Path(self.temp_dir).glob("*.json"))
        path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.kv.get_json("profile:u1"))

    def test_ttl_expiry(self):
        self.kv.set_json("k", {"a": 1}, ttl_seconds=5)
        with mock.patch("kernel.utils.kv_file.time.time", return_value=time.time() + 60):
            self.assertIsNone(self.kv.get_json("k"))

    def test_delete(self):
        self.kv.set_json("k", {"a": 1})
        self.assertTrue(self.kv.delete("k"))
        self.assertFalse(self.kv.delete("k"))


class TestUpstashKVStore(unittest.TestCase):

    def setUp(self):
        self.client = mock.MagicMock()
        self.kv = UpstashKVStore(KVConfig(provider="upstash", url="https://x", token="t"), client=self.client)

    def test_set_with_ttl(self):
        self.assertTrue(self.kv.set_json("profile:u1", {"a": 1}, ttl_seconds=600))
        self.client.set.assert_called_once_with("vera:profile:u1", '{"a": 1}', ex=600)

    def test_set_without_ttl(self):
        self.kv.set_json("profile:u1", {"a": 1}, ttl_seconds=0)
        self.client.set.assert_called_once_with("vera:profile:u1", '{"a": 1}')

    def test_get(self):
        self.client.get.return_value = '{"a": 1}'
        self.assertEqual(self.kv.get_json("profile:u1"), {"a": 1})
        self.client.get.assert_called_once_with("vera:profile:u1")

    def test_get_undecodable(self):
        self.client.get.return_value = "{nope"
        self.assertIsNone(self.kv.get_json("profile:u1"))

    def test_backend_errors_become_misses(self):
        self.client.get.side_effect = ConnectionError("down")
        self.client.set.side_effect = ConnectionError("down")
        self.assertIsNone(self.kv.get_json("profile:u1"))
        self.assertFalse(self.kv.set_json("profile:u1", {}))

    def test_delete(self):
        self.client.delete.return_value = 1
        self.assertTrue(self.kv.delete("profile:a"))
        self.client.delete.assert_called_once_with("vera:profile:a")
        self.client.delete.return_value = 0
        self.assertFalse(self.kv.delete("profile:a"))


class TestFactory(unittest.TestCase):

    def test_memory(self):
        self.assertIsInstance(build_kv_store(KVConfig(provider="memory")), MemoryKVStore)

    def test_upstash_requires_credentials(self):
        with self.assertRaises(ValueError):
            build_kv_store(KVConfig(provider="upstash"))

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            build_kv_store(KVConfig(provider="etcd", url="http://localhost"))


if __name__ == "__main__":
    unittest.main()
