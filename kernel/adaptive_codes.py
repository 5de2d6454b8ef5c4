# kernel/adaptive_codes.py
"""
VERA Adaptive Code Detection

Tags a message with weighted "adaptive codes": behavioral / nervous-system
patterns the user has taught us about themselves.

Rules:
- Each matcher is a case-insensitive regex battery.
- A matcher fires at most once per message, with a fixed base intensity.
- DISMISSAL_DEFENSE is a conjunction: dismissal language only counts as a
  defense when overwhelm language is present in the same message.
- Emission order is matcher declaration order, never severity order.

Pure functions only. No I/O, no state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple


# =============================================================================
# TYPES
# =============================================================================

class CodeTag(str, Enum):
    """Adaptive code tags."""
    OVERWHELM = "OVERWHELM"
    PEOPLE_PLEASING = "PEOPLE_PLEASING"
    BOUNDARY_VIOLATION = "BOUNDARY_VIOLATION"
    DISMISSAL_DEFENSE = "DISMISSAL_DEFENSE"
    DESIGN_THINKING = "DESIGN_THINKING"
    DECISION_AVOIDANCE = "DECISION_AVOIDANCE"
    NERVOUS_SYSTEM_ACTIVATION = "NERVOUS_SYSTEM_ACTIVATION"
    SOMATIC_AWARENESS = "SOMATIC_AWARENESS"
    BOUNDARY_SETTING = "BOUNDARY_SETTING"
    # Never emitted by detect_codes(); attached by the session engine
    # when the crisis gate fires.
    CRISIS_MODE = "CRISIS_MODE"


@dataclass
class AdaptiveCode:
    """One detected pattern in one message."""
    code: CodeTag
    intensity: int
    trigger_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "intensity": self.intensity,
            "trigger_keywords": list(self.trigger_keywords),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdaptiveCode":
        return cls(
            code=CodeTag(data["code"]),
            intensity=int(data.get("intensity", 0)),
            trigger_keywords=list(data.get("trigger_keywords", [])),
        )


# =============================================================================
# PATTERN BATTERIES
# =============================================================================

def _battery(*alternatives: str) -> Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE)


OVERWHELM_PATTERN = _battery(
    r"overwhelmed?", r"too much", r"can't", r"can’t", r"cannot", r"stressed?",
    r"exhausted?", r"tired", r"at capacity", r"drowning", r"suffocating",
)

PEOPLE_PLEASING_PATTERN = _battery(
    r"should", r"supposed", r"they want", r"expected", r"disappoint\w*",
    r"feel bad", r"let\b.*?\bdown",
)

BOUNDARY_VIOLATION_PATTERN = _battery(
    r"one more", r"just one", r"favou?r", r"extra", r"quick", r"squeeze in",
    r"fit in", r"weekend", r"evening",
)

DISMISSAL_PATTERN = _battery(
    r"it's fine", r"it’s fine", r"whatever", r"doesn't matter", r"no big deal",
    r"never ?mind", r"forget it", r"doesn't bother me",
)

DESIGN_THINKING_PATTERN = _battery(
    r"design", r"aesthetic", r"visual", r"colou?r", r"space", r"architecture",
    r"interior", r"layout", r"proportion", r"material",
)

DECISION_AVOIDANCE_PATTERN = _battery(
    r"should i", r"what do you think", r"which one", r"you decide",
    r"what's best", r"can't decide", r"undecided",
)

ACTIVATION_PATTERN = _battery(
    r"anxious", r"anxiety", r"jittery", r"shaky", r"racing", r"pounding",
    r"tight", r"clenched", r"breath",
)

SOMATIC_AWARENESS_PATTERN = _battery(
    r"feel", r"body", r"sensation", r"notice", r"aware", r"ground", r"feet",
    r"breath", r"chest", r"shoulders", r"jaw",
)

BOUNDARY_SETTING_PATTERN = _battery(
    r"no", r"not happening", r"not interested", r"not available",
    r"this is my time", r"protected", r"off limits",
)


# (tag, pattern, base intensity, required companion pattern)
# Declaration order is emission order.
CODE_BATTERY: List[Tuple[CodeTag, Pattern[str], int, Optional[Pattern[str]]]] = [
    (CodeTag.OVERWHELM, OVERWHELM_PATTERN, 75, None),
    (CodeTag.PEOPLE_PLEASING, PEOPLE_PLEASING_PATTERN, 60, None),
    (CodeTag.BOUNDARY_VIOLATION, BOUNDARY_VIOLATION_PATTERN, 65, None),
    (CodeTag.DISMISSAL_DEFENSE, DISMISSAL_PATTERN, 80, OVERWHELM_PATTERN),
    (CodeTag.DESIGN_THINKING, DESIGN_THINKING_PATTERN, 50, None),
    (CodeTag.DECISION_AVOIDANCE, DECISION_AVOIDANCE_PATTERN, 55, None),
    (CodeTag.NERVOUS_SYSTEM_ACTIVATION, ACTIVATION_PATTERN, 70, None),
    (CodeTag.SOMATIC_AWARENESS, SOMATIC_AWARENESS_PATTERN, 40, None),
    (CodeTag.BOUNDARY_SETTING, BOUNDARY_SETTING_PATTERN, 45, None),
]


CRISIS_LEVEL_THRESHOLD = 85


# =============================================================================
# DETECTION
# =============================================================================

def _matched_phrases(pattern: Pattern[str], text: str) -> List[str]:
    """Matched phrases in order of first appearance, lowercased, no duplicates."""
    seen: List[str] = []
    for match in pattern.finditer(text):
        phrase = match.group(0).lower()
        if phrase not in seen:
            seen.append(phrase)
    return seen


def detect_codes(message: Any) -> List[AdaptiveCode]:
    """
    Run the full battery against a message.

    Malformed input (None, non-string, blank) yields no codes.
    """
    if not isinstance(message, str) or not message.strip():
        return []

    codes: List[AdaptiveCode] = []
    for tag, pattern, intensity, requires in CODE_BATTERY:
        phrases = _matched_phrases(pattern, message)
        if not phrases:
            continue
        if requires is not None and not requires.search(message):
            continue
        codes.append(AdaptiveCode(code=tag, intensity=intensity, trigger_keywords=phrases))

    return codes


def overall_intensity(codes: List[AdaptiveCode]) -> float:
    """Arithmetic mean of code intensities, 0 when empty."""
    if not codes:
        return 0.0
    return min(100.0, sum(c.intensity for c in codes) / len(codes))


def suggests_crisis_level(codes: List[AdaptiveCode]) -> bool:
    """
    Soft crisis signal: mean intensity above 85.

    Secondary to kernel.crisis_protocol.classify_crisis, never the gate.
    """
    return overall_intensity(codes) > CRISIS_LEVEL_THRESHOLD


def has_code(codes: List[AdaptiveCode], *tags: CodeTag) -> bool:
    return any(c.code in tags for c in codes)


def code_tags(codes: List[AdaptiveCode]) -> List[str]:
    return [c.code.value for c in codes]


CODE_GUIDANCE: Dict[CodeTag, str] = {
    CodeTag.OVERWHELM: "Overwhelm present - reduce to essentials only",
    CodeTag.PEOPLE_PLEASING: "People-pleasing pattern - help them find their own needs first",
    CodeTag.BOUNDARY_VIOLATION: "Boundary concern - they may be saying yes when they mean no",
    CodeTag.DISMISSAL_DEFENSE: "Dismissal defense active - they are protecting themselves from overwhelm",
    CodeTag.DESIGN_THINKING: "Design thinking mode - use visual/spatial language",
    CodeTag.DECISION_AVOIDANCE: "Decision avoidance - they need support in choosing",
    CodeTag.NERVOUS_SYSTEM_ACTIVATION: "Nervous system is activated - offer grounding support",
    CodeTag.SOMATIC_AWARENESS: "Somatic awareness present - they are checking in with their body",
    CodeTag.BOUNDARY_SETTING: "Boundary setting in progress - affirm and support their firmness",
    CodeTag.CRISIS_MODE: "Crisis language present - safety first",
}


def describe_codes(codes: List[AdaptiveCode]) -> str:
    """Prompt-ready guidance line for the detected codes."""
    if not codes:
        return "No specific patterns detected."
    return " | ".join(CODE_GUIDANCE.get(c.code, f"Pattern detected: {c.code.value}") for c in codes)


__all__ = [
    "CodeTag",
    "AdaptiveCode",
    "CODE_BATTERY",
    "detect_codes",
    "overall_intensity",
    "suggests_crisis_level",
    "has_code",
    "code_tags",
    "describe_codes",
]
