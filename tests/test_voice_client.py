#!/usr/bin/env python3
"""
VERA Voice Client Tests

Tests for:
- Text preparation for speech
- Voice settings per style
- Provider status mapping
- Timeouts and missing configuration

HTTP goes through httpx.MockTransport; nothing leaves the process.
"""

import json
import unittest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from providers.voice_client import (
    ELEVENLABS_BASE_URL,
    MAX_TEXT_CHARS,
    VoiceClient,
    VoiceError,
    VoiceNotConfiguredError,
    preprocess_text,
    voice_settings_for,
)


def _client_with(handler, api_key="test-key"):
    http = httpx.Client(base_url=ELEVENLABS_BASE_URL, transport=httpx.MockTransport(handler))
    return VoiceClient(api_key=api_key, voice_id="voice123", http_client=http)


class TestTextPreparation(unittest.TestCase):

    def test_markdown_and_abbreviations(self):
        self.assertEqual(preprocess_text("**Hello** CEO. Next"), "Hello C E O. ... Next")

    def test_colon_pause(self):
        self.assertEqual(preprocess_text("Step one: breathe"), "Step one: .. breathe")

    def test_length_cap(self):
        self.assertEqual(len(preprocess_text("a" * (MAX_TEXT_CHARS + 500))), MAX_TEXT_CHARS)

    def test_settings(self):
        self.assertEqual(voice_settings_for("firm")["stability"], 0.85)
        self.assertEqual(voice_settings_for("unknown"), voice_settings_for("calm"))
        self.assertEqual(voice_settings_for("warm", speed=0.9)["speed"], 0.9)


class TestSynthesize(unittest.TestCase):

    def test_success(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["key"] = request.headers["xi-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"ID3audio")

        client = _client_with(handler)
        result = client.synthesize_result("Hello CEO", voice_style="warm")

        self.assertEqual(result.audio, b"ID3audio")
        self.assertEqual(result.voice_style, "warm")
        self.assertEqual(seen["path"], "/v1/text-to-speech/voice123")
        self.assertEqual(seen["key"], "test-key")
        self.assertEqual(seen["body"]["text"], "Hello C E O")
        self.assertEqual(seen["body"]["voice_settings"]["stability"], 0.6)

    def test_unknown_style_falls_back_to_calm(self):
        client = _client_with(lambda request: httpx.Response(200, content=b"x"))
        self.assertEqual(client.synthesize_result("Hi", voice_style="shouty").voice_style, "calm")

    def test_not_configured(self):
        client = VoiceClient(api_key="")
        self.assertFalse(client.is_configured)
        with self.assertRaises(VoiceNotConfiguredError) as ctx:
            client.synthesize("Hi")
        self.assertEqual(ctx.exception.status_code, 503)

    def test_empty_after_cleanup(self):
        client = _client_with(lambda request: httpx.Response(200, content=b"x"))
        with self.assertRaises(VoiceError) as ctx:
            client.synthesize("***")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_status_mapping(self):
        for upstream, expected in ((401, 401), (429, 429), (400, 400), (500, 502)):
            client = _client_with(lambda request, s=upstream: httpx.Response(s, text="nope"))
            with self.assertRaises(VoiceError) as ctx:
                client.synthesize("Hi")
            self.assertEqual(ctx.exception.status_code, expected)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = _client_with(handler)
        with self.assertRaises(VoiceError) as ctx:
            client.synthesize("Hi")
        self.assertEqual(ctx.exception.status_code, 504)

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client_with(handler)
        with self.assertRaises(VoiceError) as ctx:
            client.synthesize("Hi")
        self.assertEqual(ctx.exception.status_code, 502)

    def test_status(self):
        status = VoiceClient(api_key="k", voice_id="v").status()
        self.assertTrue(status["configured"])
        self.assertEqual(status["voice_id"], "v")
        self.assertIn("firm", status["styles"])


if __name__ == "__main__":
    unittest.main()
