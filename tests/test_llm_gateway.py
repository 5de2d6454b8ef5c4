#!/usr/bin/env python3
"""
VERA LLM Gateway Tests

Tests for:
- Model tier routing
- Sequential provider failover
- Exhaustion when every provider fails
- OpenAI / Gemini error mapping

Providers are patched; nothing leaves the process.
"""

import unittest
from unittest import mock
from types import SimpleNamespace
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
from openai import APITimeoutError

from backend.llm_client import (
    GatewayExhaustedError,
    LLMGateway,
    LLMTimeoutError,
    ProviderError,
)
from backend.model_router import (
    ModelRouter,
    RoutingContext,
    TIER_MINI,
    TIER_THINKING,
)


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class TestModelRouter(unittest.TestCase):

    def setUp(self):
        self.router = ModelRouter()

    def _tier(self, task):
        return self.router.route(RoutingContext(task=task)).name

    def test_tasks(self):
        self.assertEqual(self._tier("real_talk"), "mini")
        self.assertEqual(self._tier("decision_quick"), "mini")
        self.assertEqual(self._tier("companion"), "thinking")
        self.assertEqual(self._tier("decode"), "thinking")
        self.assertEqual(self._tier("decision"), "thinking")

    def test_unknown_task_defaults_to_thinking(self):
        self.assertEqual(self._tier("karaoke"), "thinking")
        self.assertEqual(self.router.route().name, "thinking")

    def test_list_tiers(self):
        self.assertEqual(set(self.router.list_tiers()), {"mini", "thinking"})

    def test_model_for_provider(self):
        self.assertEqual(TIER_MINI.model_for("gemini"), TIER_MINI.gemini_model)
        self.assertEqual(TIER_THINKING.model_for("openai"), TIER_THINKING.openai_model)


class TestFailover(unittest.TestCase):

    def setUp(self):
        self.gateway = LLMGateway(timeout=5, openai_client=mock.MagicMock())

    def test_primary_success(self):
        with mock.patch.object(LLMGateway, "_call_openai", return_value="hello") as openai_call, \
                mock.patch.object(LLMGateway, "_call_gemini") as gemini_call:
            result = self.gateway.complete_with_meta("system", "hi", task="companion")

        self.assertEqual(result.text, "hello")
        self.assertEqual(result.provider, "openai")
        self.assertEqual(result.attempts, ["openai"])
        gemini_call.assert_not_called()
        tier = openai_call.call_args[0][0]
        self.assertEqual(tier.name, "thinking")

    def test_light_task_uses_mini(self):
        with mock.patch.object(LLMGateway, "_call_openai", return_value="ok") as openai_call:
            self.gateway.complete("system", "hi", task="real_talk")
        self.assertEqual(openai_call.call_args[0][0].name, "mini")

    def test_fails_over_to_gemini(self):
        with mock.patch.object(LLMGateway, "_call_openai", side_effect=LLMTimeoutError("slow")), \
                mock.patch.object(LLMGateway, "_call_gemini", return_value="from gemini"):
            result = self.gateway.complete_with_meta("system", "hi")

        self.assertEqual(result.text, "from gemini")
        self.assertEqual(result.provider, "gemini")
        self.assertEqual(result.attempts, ["openai", "gemini"])

    def test_exhausted(self):
        last = ProviderError("gemini down")
        with mock.patch.object(LLMGateway, "_call_openai", side_effect=ProviderError("openai down")), \
                mock.patch.object(LLMGateway, "_call_gemini", side_effect=last):
            with self.assertRaises(GatewayExhaustedError) as ctx:
                self.gateway.complete("system", "hi")

        self.assertEqual(set(ctx.exception.errors), {"openai", "gemini"})
        self.assertIs(ctx.exception.__cause__, last)

    def test_unexpected_sdk_error_fails_over(self):
        client = mock.MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("sdk bug")
        gateway = LLMGateway(timeout=5, openai_client=client)
        with mock.patch("backend.llm_client.gemini_complete", return_value="from gemini") as gemini:
            result = gateway.complete_with_meta("system", "hi")

        gemini.assert_called_once()
        self.assertEqual(result.provider, "gemini")
        self.assertEqual(result.attempts, ["openai", "gemini"])

    def test_unexpected_errors_everywhere_exhaust(self):
        with mock.patch.object(LLMGateway, "_call_openai", side_effect=RuntimeError("sdk bug")), \
                mock.patch.object(LLMGateway, "_call_gemini", side_effect=KeyError("candidates")):
            with self.assertRaises(GatewayExhaustedError) as ctx:
                self.gateway.complete("system", "hi")

        self.assertIsInstance(ctx.exception.__cause__, ProviderError)
        self.assertIn("RuntimeError", ctx.exception.errors["openai"])

    def test_single_provider(self):
        gateway = LLMGateway(secondary=None, openai_client=mock.MagicMock())
        self.assertEqual(gateway.providers, ["openai"])
        with mock.patch.object(LLMGateway, "_call_openai", side_effect=ProviderError("down")):
            with self.assertRaises(GatewayExhaustedError):
                gateway.complete("system", "hi")

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            LLMGateway(primary="anthropic")


class TestProviderCalls(unittest.TestCase):

    def setUp(self):
        self.client = mock.MagicMock()
        self.gateway = LLMGateway(timeout=5, openai_client=self.client)

    def test_openai_text(self):
        self.client.chat.completions.create.return_value = _completion("hi there")
        self.assertEqual(self.gateway._call_openai(TIER_MINI, "system", "hi"), "hi there")
        kwargs = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], TIER_MINI.openai_model)
        self.assertEqual(kwargs["timeout"], 5.0)
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "system"})

    def test_openai_empty(self):
        self.client.chat.completions.create.return_value = _completion("   ")
        with self.assertRaises(ProviderError):
            self.gateway._call_openai(TIER_MINI, "system", "hi")

    def test_openai_timeout(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        self.client.chat.completions.create.side_effect = APITimeoutError(request=request)
        with self.assertRaises(LLMTimeoutError):
            self.gateway._call_openai(TIER_THINKING, "system", "hi")

    def test_openai_missing_key(self):
        gateway = LLMGateway()
        with mock.patch.dict("os.environ", {"OPENAI_API_KEY": ""}):
            with self.assertRaises(ProviderError):
                gateway._call_openai(TIER_MINI, "system", "hi")

    def test_gemini_none_is_provider_error(self):
        with mock.patch("backend.llm_client.gemini_complete", return_value=None):
            with self.assertRaises(ProviderError):
                self.gateway._call_gemini(TIER_MINI, "system", "hi")

    def test_gemini_text(self):
        with mock.patch("backend.llm_client.gemini_complete", return_value="hey") as gemini:
            self.assertEqual(self.gateway._call_gemini(TIER_THINKING, "system", "hi"), "hey")
        self.assertEqual(gemini.call_args.kwargs["model"], TIER_THINKING.gemini_model)
        self.assertEqual(gemini.call_args.kwargs["timeout"], 5.0)


if __name__ == "__main__":
    unittest.main()
