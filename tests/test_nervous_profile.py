#!/usr/bin/env python3
"""
VERA Nervous System Profile Tests

Tests for:
- Default profile
- Somatic pattern upsert
- Dial clamping
- Intervention feedback learning
- Serialization tolerance
"""

import unittest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kernel.nervous_profile import (
    INTERVENTION_HISTORY_LIMIT,
    UserNervousSystemProfile,
    adjust_communication_style,
    create_default_profile,
    deepen_relationship,
    pending_intervention,
    record_intervention,
    record_intervention_feedback,
    record_somatic_pattern,
    summarize_profile,
)


class TestDefaultProfile(unittest.TestCase):

    def test_defaults(self):
        profile = create_default_profile("u1")
        self.assertEqual(profile.user_id, "u1")
        self.assertEqual(profile.name, "friend")
        self.assertTrue(profile.consent.voice_output)
        self.assertTrue(profile.consent.decode_mode)
        self.assertFalse(profile.consent.biometric_sharing)
        self.assertEqual(profile.consent.data_retention, "30days")
        self.assertEqual(len(profile.meta_learning.what_works), 5)
        self.assertEqual(profile.relationship_depth["trust_level"], 35)
        self.assertEqual(profile.adaptive_patterns.active(), [])

    def test_name(self):
        self.assertEqual(create_default_profile("u1", "Sam").name, "Sam")


class TestSomaticPatterns(unittest.TestCase):

    def setUp(self):
        self.profile = create_default_profile("u1")

    def test_upsert_unions_without_duplicates(self):
        record_somatic_pattern(self.profile, "overwhelm", "deadline", intervention="feet on floor")
        record_somatic_pattern(self.profile, "overwhelm", "deadline", intervention="cold water")
        record_somatic_pattern(self.profile, "overwhelm", "email")

        self.assertEqual(len(self.profile.somatic_patterns), 1)
        pattern = self.profile.get_somatic_pattern("overwhelm")
        self.assertEqual(pattern.triggers, ["deadline", "email"])
        self.assertEqual(pattern.successful_interventions, ["feet on floor", "cold water"])
        self.assertEqual(pattern.occurrences, 3)
        self.assertEqual(pattern.frequency, "occasional")

    def test_intensity_clamped(self):
        pattern = record_somatic_pattern(self.profile, "activation", "anxious", intensity=9)
        self.assertEqual(pattern.intensity, 5)


class TestDials(unittest.TestCase):

    def setUp(self):
        self.profile = create_default_profile("u1")

    def test_deepen(self):
        self.assertEqual(deepen_relationship(self.profile, "understanding"), 42)
        self.assertEqual(deepen_relationship(self.profile, "trust_level"), 37)

    def test_deepen_clamps(self):
        self.profile.relationship_depth["vulnerability_comfort"] = 99
        self.assertEqual(deepen_relationship(self.profile, "vulnerability"), 100)
        self.assertEqual(deepen_relationship(self.profile, "vulnerability"), 100)

    def test_unknown_dimension(self):
        with self.assertRaises(ValueError):
            deepen_relationship(self.profile, "chemistry")

    def test_style(self):
        self.assertEqual(adjust_communication_style(self.profile, "directness"), 96)
        with self.assertRaises(ValueError):
            adjust_communication_style(self.profile, "volume")


class TestInterventionLearning(unittest.TestCase):

    def setUp(self):
        self.profile = create_default_profile("u1")

    def test_no_pending(self):
        self.assertIsNone(record_intervention_feedback(self.profile, "positive"))

    def test_positive(self):
        record_intervention(self.profile, "Hands on the desk")
        record = record_intervention_feedback(self.profile, "positive")
        self.assertEqual(record.user_response, "positive")
        self.assertAlmostEqual(record.effectiveness, 0.8)
        self.assertIn("Hands on the desk", self.profile.meta_learning.what_works)
        self.assertIsNone(pending_intervention(self.profile))

    def test_negative_moves_out_of_what_works(self):
        self.profile.meta_learning.what_works.append("Long walk")
        record_intervention(self.profile, "Long walk")
        record = record_intervention_feedback(self.profile, "negative")
        self.assertAlmostEqual(record.effectiveness, -0.8)
        self.assertNotIn("Long walk", self.profile.meta_learning.what_works)
        self.assertIn("Long walk", self.profile.meta_learning.what_doesnt)

    def test_history_bounded(self):
        for i in range(INTERVENTION_HISTORY_LIMIT + 10):
            record_intervention(self.profile, f"try {i}")
        history = self.profile.meta_learning.intervention_history
        self.assertEqual(len(history), INTERVENTION_HISTORY_LIMIT)
        self.assertEqual(history[-1].intervention, f"try {INTERVENTION_HISTORY_LIMIT + 9}")


class TestSerialization(unittest.TestCase):

    def test_round_trip(self):
        profile = create_default_profile("u1", "Sam")
        record_somatic_pattern(profile, "overwhelm", "deadline")
        restored = UserNervousSystemProfile.from_dict(profile.to_dict())
        self.assertEqual(restored.to_dict(), profile.to_dict())

    def test_from_dict_clamps_and_fills(self):
        restored = UserNervousSystemProfile.from_dict({
            "user_id": "u1",
            "relationship_depth": {"trust_level": 150, "bogus": 3},
            "consent": {"data_retention": "forever"},
        })
        self.assertEqual(restored.relationship_depth["trust_level"], 100)
        self.assertNotIn("bogus", restored.relationship_depth)
        self.assertEqual(restored.relationship_depth["mutual_understanding"], 40)
        self.assertEqual(restored.consent.data_retention, "30days")

    def test_summary(self):
        profile = create_default_profile("u1")
        profile.relationship_depth.update({"mutual_understanding": 10, "trust_level": 20, "vulnerability_comfort": 30})
        summary = summarize_profile(profile)
        self.assertTrue(summary.startswith("This is early in our relationship"))
        self.assertIn("I know what works:", summary)

        record_somatic_pattern(profile, "overwhelm", "tired")
        self.assertIn("I know about 1 recurring somatic patterns.", summarize_profile(profile))


if __name__ == "__main__":
    unittest.main()
