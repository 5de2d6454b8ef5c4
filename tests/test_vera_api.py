#!/usr/bin/env python3
"""
VERA API Tests

Tests for:
- POST /api/vera envelope and input validation
- POST /api/vera/consent
- POST /api/vera/decision
- POST /api/voice consent gate and error mapping
- GET /api/health
- JSON errors for unknown routes and methods
"""

import unittest
from unittest import mock
from pathlib import Path
import tempfile
import shutil
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from system.config import Config
from backend.llm_client import GatewayResult
from kernel.crisis_protocol import CRISIS_RESOURCE_PAYLOAD
from kernel.profile_store import ProfileStore
from kernel.utils import MemoryKVStore
from providers.voice_client import VoiceError
from vera_api import create_app


DECISION_TEXT = """PROS:
- Faster launch
- Cheaper
CONS:
- Less polish
ROI: 2x in six months
RISK: Low, the scope is small
TIMELINE: Two weeks
RECOMMENDATION: Ship the smaller version first.
CONFIDENCE: 80%
"""


class VeraApiTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = Config(data_dir=Path(self.temp_dir))
        self.store = ProfileStore(MemoryKVStore(), self.config)

        self.gateway = mock.MagicMock()
        self.gateway.status.return_value = {"providers": ["openai", "gemini"]}
        self.gateway.complete.return_value = DECISION_TEXT
        self.gateway.complete_with_meta.return_value = GatewayResult(
            text="I'm here.", provider="openai", model="gpt-4.1",
        )

        self.voice = mock.MagicMock()
        self.voice.status.return_value = {"configured": True}
        self.voice.synthesize.return_value = b"ID3audio"

        self.app = create_app(
            config=self.config,
            gateway=self.gateway,
            profile_store=self.store,
            voice_client=self.voice,
        )
        self.client = self.app.test_client()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestVeraEndpoint(VeraApiTestCase):

    def test_turn(self):
        resp = self.client.post("/api/vera", json={"message": "hey", "user_id": "u1", "session_id": "s1"})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertTrue(data["success"])
        self.assertEqual(data["response"], "I'm here.")
        self.assertEqual(data["mode"], "companion")
        self.assertEqual(data["metadata"]["session_id"], "s1")
        self.assertEqual(data["metadata"]["user_id"], "u1")

    def test_crisis_turn(self):
        resp = self.client.post("/api/vera", json={"message": "I want to kill myself", "user_id": "u1"})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["mode"], "crisis")
        self.assertEqual(data["response"], CRISIS_RESOURCE_PAYLOAD)
        self.gateway.complete_with_meta.assert_not_called()

    def test_missing_message(self):
        resp = self.client.post("/api/vera", json={"user_id": "u1"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "no_message")

    def test_invalid_json(self):
        resp = self.client.post("/api/vera", data="not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid_json")

    def test_engine_failure_is_500_with_envelope(self):
        self.gateway.complete_with_meta.side_effect = RuntimeError("boom")
        resp = self.client.post("/api/vera", json={"message": "hey"})
        self.assertEqual(resp.status_code, 500)
        data = resp.get_json()
        self.assertFalse(data["success"])
        self.assertTrue(data["response"])


class TestConsentEndpoint(VeraApiTestCase):

    def test_update(self):
        resp = self.client.post("/api/vera/consent", json={
            "user_id": "u1", "consent": {"voice_output": True, "data_retention": "7days"},
        })
        self.assertEqual(resp.status_code, 200)
        consent = resp.get_json()["consent"]
        self.assertTrue(consent["voice_output"])
        self.assertEqual(consent["data_retention"], "7days")
        self.assertTrue(self.store.get_or_create("u1").consent.voice_output)

    def test_unknown_field(self):
        resp = self.client.post("/api/vera/consent", json={"user_id": "u1", "consent": {"telepathy": True}})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid_consent")

    def test_bad_retention(self):
        resp = self.client.post("/api/vera/consent", json={"user_id": "u1", "consent": {"data_retention": "forever"}})
        self.assertEqual(resp.status_code, 400)

    def test_string_boolean_rejected(self):
        self.client.post("/api/vera/consent", json={"user_id": "u1", "consent": {"decode_mode": False}})
        resp = self.client.post("/api/vera/consent", json={"user_id": "u1", "consent": {"decode_mode": "false"}})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid_consent")
        self.assertFalse(self.store.get_or_create("u1").consent.decode_mode)

    def test_user_id_inside_consent_is_400(self):
        resp = self.client.post("/api/vera/consent", json={"user_id": "u1", "consent": {"user_id": "u2"}})
        self.assertEqual(resp.status_code, 400)

    def test_missing_user(self):
        resp = self.client.post("/api/vera/consent", json={"consent": {"voice_output": True}})
        self.assertEqual(resp.status_code, 400)


class TestDecisionEndpoint(VeraApiTestCase):

    def test_analysis(self):
        resp = self.client.post("/api/vera/decision", json={"decision": "Should we ship the smaller version?"})
        self.assertEqual(resp.status_code, 200)
        analysis = resp.get_json()["analysis"]
        self.assertEqual(analysis["pros"], ["Faster launch", "Cheaper"])
        self.assertEqual(analysis["risk"], "low")
        self.assertEqual(analysis["confidence"], 80)
        self.assertIn("intelligence_flags", analysis)
        self.assertEqual(self.gateway.complete.call_args.kwargs["task"], "decision")

    def test_missing_decision(self):
        resp = self.client.post("/api/vera/decision", json={"decision": "   "})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "no_decision")


class TestVoiceEndpoint(VeraApiTestCase):

    def test_synthesize(self):
        resp = self.client.post("/api/voice", json={"text": "Hello there", "voice_style": "warm"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.mimetype, "audio/mpeg")
        self.assertEqual(resp.data, b"ID3audio")
        self.voice.synthesize.assert_called_once_with("Hello there", voice_style="warm", speed=1.0)

    def test_consent_gate(self):
        resp = self.client.post("/api/voice", json={"text": "Hello", "user_id": "u1"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.get_json()["error"], "voice_not_consented")
        self.voice.synthesize.assert_not_called()

        self.store.update_consent("u1", {"voice_output": True})
        resp = self.client.post("/api/voice", json={"text": "Hello", "user_id": "u1"})
        self.assertEqual(resp.status_code, 200)

    def test_missing_text(self):
        resp = self.client.post("/api/voice", json={"text": ""})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "no_text")

    def test_invalid_speed(self):
        resp = self.client.post("/api/voice", json={"text": "Hello", "speed": "fast"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "invalid_speed")

    def test_provider_error_status(self):
        self.voice.synthesize.side_effect = VoiceError("Rate limit exceeded. Please wait.", status_code=429)
        resp = self.client.post("/api/voice", json={"text": "Hello"})
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.get_json()["error"], "voice_error")


class TestHealthAndErrors(VeraApiTestCase):

    def test_health(self):
        self.client.post("/api/vera", json={"message": "hey", "session_id": "s1"})
        resp = self.client.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["gateway"], {"providers": ["openai", "gemini"]})
        self.assertEqual(data["voice"], {"configured": True})
        self.assertEqual(data["sessions"], 1)
        self.assertEqual(data["tone"]["total_messages"], 1)
        self.assertIn("available", data["gemini"])

    def test_unknown_route(self):
        resp = self.client.get("/api/nope")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()["error"], "not_found")

    def test_wrong_method(self):
        resp = self.client.get("/api/vera")
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(resp.get_json()["error"], "method_not_allowed")


if __name__ == "__main__":
    unittest.main()
