#!/usr/bin/env python3
"""
VERA Config Tests

Tests for:
- config.json bootstrap and corrupt-file recovery
- VERA_* environment overrides
- Kernel log lines never carry message text
"""

import json
import os
import unittest
from unittest import mock
from pathlib import Path
import tempfile
import shutil
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from system.config import Config, DEFAULT_FILE_CONFIG
from kernel.logger import KernelLogger


class TestConfigLoad(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.env = mock.patch.dict(os.environ, {}, clear=False)
        self.env.start()
        for name in ("VERA_LLM_TIMEOUT", "VERA_MAX_SESSIONS", "VERA_SESSION_TTL", "VERA_PRIMARY_PROVIDER"):
            os.environ.pop(name, None)

    def tearDown(self):
        self.env.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_creates_default_file(self):
        config = Config.load(self.temp_dir / "data")
        cfg_path = self.temp_dir / "data" / "config.json"
        self.assertTrue(cfg_path.exists())
        self.assertEqual(json.loads(cfg_path.read_text(encoding="utf-8")), DEFAULT_FILE_CONFIG)
        self.assertEqual(config.env, "dev")
        self.assertEqual(config.max_sessions, 500)
        self.assertEqual(config.primary_provider, "openai")

    def test_corrupt_file_rewritten(self):
        cfg_path = self.temp_dir / "config.json"
        cfg_path.write_text("{not json", encoding="utf-8")
        config = Config.load(self.temp_dir)
        self.assertEqual(config.env, "dev")
        self.assertEqual(json.loads(cfg_path.read_text(encoding="utf-8")), DEFAULT_FILE_CONFIG)

    def test_file_values_and_extra(self):
        (self.temp_dir / "config.json").write_text(
            json.dumps({"env": "prod", "debug": False, "history_limit": 50, "theme": "dark"}),
            encoding="utf-8",
        )
        config = Config.load(self.temp_dir)
        self.assertEqual(config.env, "prod")
        self.assertFalse(config.debug)
        self.assertEqual(config.history_limit, 50)
        self.assertEqual(config.extra, {"theme": "dark"})

    def test_env_overrides(self):
        os.environ["VERA_LLM_TIMEOUT"] = "12.5"
        os.environ["VERA_PRIMARY_PROVIDER"] = "gemini"
        os.environ["VERA_MAX_SESSIONS"] = "lots"
        config = Config.load(self.temp_dir)
        self.assertEqual(config.llm_timeout, 12.5)
        self.assertEqual(config.primary_provider, "gemini")
        self.assertEqual(config.max_sessions, 500)


class TestKernelLogger(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.logger = KernelLogger(Config(data_dir=self.temp_dir / "logs"))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_input_logs_length_only(self):
        self.logger.log_input("s1", "I feel hopeless tonight")
        log = self.logger.log_file.read_text(encoding="utf-8")
        self.assertIn("[INPUT] [s1] chars=23", log)
        self.assertNotIn("hopeless", log)

    def test_response_and_exception(self):
        self.logger.log_response("s1", "companion", {
            "success": True, "response": "private reply",
            "metadata": {"used_fallback": False, "response_time_ms": 12},
        })
        self.logger.log_exception("s1", "handle", RuntimeError("boom"))
        log = self.logger.log_file.read_text(encoding="utf-8")
        self.assertIn("mode=companion ok=True fallback=False ms=12", log)
        self.assertIn("[EXCEPTION] [s1] stage=handle RuntimeError('boom')", log)
        self.assertNotIn("private reply", log)


if __name__ == "__main__":
    unittest.main()
