#!/usr/bin/env python3
"""
VERA Mode Router Tests

Tests for:
- Crisis precedence
- Decode detection and consent
- Explicit switches
- Keyword batteries (therapeutic beats real talk)
"""

import unittest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.mode_router import detect_decode_request, detect_mode_switch, select_mode
from core.vera_state import ResponseMode
from kernel.crisis_protocol import NO_CRISIS, classify_crisis
from kernel.nervous_profile import create_default_profile


class TestSelectMode(unittest.TestCase):

    def setUp(self):
        self.profile = create_default_profile("u1")

    def _mode(self, message):
        return select_mode(message, classify_crisis(message), None, self.profile)

    def test_crisis_wins(self):
        decision = self._mode("why do I want to end it")
        self.assertEqual(decision.mode, ResponseMode.CRISIS)
        self.assertEqual(decision.reason, "crisis:suicidal")

    def test_decode(self):
        decision = self._mode("Why do I always feel overwhelm around deadlines?")
        self.assertEqual(decision.mode, ResponseMode.DECODE)
        self.assertEqual(decision.decode_target, "overwhelm")

    def test_decode_curly_apostrophe(self):
        self.assertEqual(self._mode("why can’t i just rest").mode, ResponseMode.DECODE)

    def test_decode_needs_consent(self):
        self.profile.consent.decode_mode = False
        decision = self._mode("Why do I feel this way?")
        self.assertEqual(decision.mode, ResponseMode.COMPANION)

    def test_decode_without_profile(self):
        message = "Why do I feel this way?"
        decision = select_mode(message, classify_crisis(message), None, None)
        self.assertEqual(decision.mode, ResponseMode.COMPANION)
        self.assertEqual(decision.decode_target, "")

    def test_explicit_switches(self):
        decision = self._mode("can we switch to real talk for a sec")
        self.assertEqual(decision.mode, ResponseMode.REAL_TALK)
        self.assertEqual(decision.reason, "explicit_switch")
        self.assertEqual(self._mode("I need support").mode, ResponseMode.COMPANION)

    def test_real_talk_keywords(self):
        decision = self._mode("Should I send this resume or rewrite the summary?")
        self.assertEqual(decision.mode, ResponseMode.REAL_TALK)
        self.assertEqual(decision.reason, "real_talk_keywords")

    def test_therapeutic_beats_real_talk(self):
        decision = self._mode("I had a panic attack before my job interview")
        self.assertEqual(decision.mode, ResponseMode.COMPANION)
        self.assertEqual(decision.reason, "therapeutic_keywords")

    def test_keyword_prefix_match(self):
        self.assertEqual(self._mode("I got so triggered today").reason, "therapeutic_keywords")

    def test_default_companion(self):
        decision = self._mode("I can't say no to one more favor, I feel like I'm drowning")
        self.assertEqual(decision.mode, ResponseMode.COMPANION)
        self.assertTrue(decision.reason.startswith("default"))

    def test_empty_message(self):
        decision = select_mode("", NO_CRISIS)
        self.assertEqual(decision.mode, ResponseMode.COMPANION)
        self.assertEqual(decision.reason, "empty_message")


class TestHelpers(unittest.TestCase):

    def test_decode_request(self):
        request = detect_decode_request("what's the pattern with my boundary stuff")
        self.assertTrue(request.is_decode_request)
        self.assertEqual(request.pattern_to_analyze, "boundary")
        self.assertEqual(request.confidence, 85)
        self.assertFalse(detect_decode_request("hello").is_decode_request)

    def test_mode_switch(self):
        self.assertEqual(detect_mode_switch("help me regulate"), ResponseMode.COMPANION)
        self.assertIsNone(detect_mode_switch("hello"))


if __name__ == "__main__":
    unittest.main()
