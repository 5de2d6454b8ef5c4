# kernel/crisis_protocol.py
"""
VERA Crisis Protocol

Hard safety gate, evaluated before anything else on every message.

Batteries are checked in fixed priority order and the FIRST match wins:

    suicidal (95) > self_harm (90) > acute_panic (85) > severe_dissociation (80)

Lexical, not semantic: false negatives are a known limitation. This is a
safety net, never a diagnostic tool, and a crisis verdict always comes with
the fixed resource payload below. That payload is never generated by a model.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Pattern, Tuple


class CrisisCategory(str, Enum):
    SUICIDAL = "suicidal"
    SELF_HARM = "self_harm"
    SEVERE_DISSOCIATION = "severe_dissociation"
    ACUTE_PANIC = "acute_panic"
    NONE = "none"


@dataclass(frozen=True)
class CrisisVerdict:
    is_crisis: bool
    category: CrisisCategory = CrisisCategory.NONE
    severity: int = 0
    immediate_risks: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_crisis": self.is_crisis,
            "category": self.category.value,
            "severity": self.severity,
            "immediate_risks": list(self.immediate_risks),
        }


NO_CRISIS = CrisisVerdict(is_crisis=False)


def _battery(*alternatives: str) -> Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE)


# (category, pattern, severity, immediate risks) in priority order
CRISIS_BATTERIES: List[Tuple[CrisisCategory, Pattern[str], int, Tuple[str, ...]]] = [
    (
        CrisisCategory.SUICIDAL,
        _battery(
            r"kill myself", r"take my life", r"end it", r"suicide",
            r"suicidal", r"no point", r"better off dead", r"better off without me",
            r"everyone would be better",
        ),
        95,
        ("suicidal ideation", "hopelessness", "urgent safety planning needed"),
    ),
    (
        CrisisCategory.SELF_HARM,
        _battery(
            r"cut myself", r"hurt myself", r"self[- ]harm", r"bang my head",
            r"burn myself", r"scratch myself",
        ),
        90,
        ("active self-harm urges", "urgent grounding needed"),
    ),
    (
        CrisisCategory.ACUTE_PANIC,
        _battery(
            r"can't breathe", r"can’t breathe", r"i'm dying", r"heart stopping",
            r"losing control", r"completely panicking", r"can't stop shaking",
        ),
        85,
        ("acute panic attack", "sympathetic flooding"),
    ),
    (
        CrisisCategory.SEVERE_DISSOCIATION,
        _battery(
            r"not real", r"not here", r"watching myself", r"numb", r"empty",
            r"can't feel", r"can’t feel",
        ),
        80,
        ("significant dissociation", "grounding urgently needed"),
    ),
]


CRISIS_RESOURCE_PAYLOAD = """I'm pausing everything else, because your safety matters most right now.

IMMEDIATE SAFETY RESOURCES:
• 988 Suicide & Crisis Lifeline: call or text 988 (US, 24/7)
• Crisis Text Line: text HOME to 741741 (24/7)
• Emergency services: call 911 (or your local emergency number) if you are in immediate danger
• Go to the nearest emergency room if you cannot keep yourself safe

YOU ARE NOT ALONE. Your life matters. This moment is temporary, even though it doesn't feel like it.

RIGHT NOW:
1. Reach out to one person you trust. Call them.
2. If you are alone, call or text 988 now.
3. If you have any thoughts of harming yourself, contact emergency services or go to an emergency room.

When you are safe, we can talk through what is happening. Right now: safety first."""


def classify_crisis(message: Any) -> CrisisVerdict:
    """Run the crisis batteries in priority order; first match wins."""
    if not isinstance(message, str) or not message.strip():
        return NO_CRISIS

    for category, pattern, severity, risks in CRISIS_BATTERIES:
        if pattern.search(message):
            return CrisisVerdict(
                is_crisis=True,
                category=category,
                severity=severity,
                immediate_risks=risks,
            )

    return NO_CRISIS


def crisis_response(verdict: CrisisVerdict = None) -> str:
    """
    The response for a crisis turn. Always the fixed payload.

    The verdict argument is accepted so call sites read naturally; the
    content does not vary with category.
    """
    return CRISIS_RESOURCE_PAYLOAD


__all__ = [
    "CrisisCategory",
    "CrisisVerdict",
    "NO_CRISIS",
    "CRISIS_BATTERIES",
    "CRISIS_RESOURCE_PAYLOAD",
    "classify_crisis",
    "crisis_response",
]
