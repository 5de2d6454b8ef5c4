# kernel/fallback_responses.py
"""
VERA Fallback Responses

Local replies used when every LLM provider has failed. Built only from
fixed templates and the codes / state already computed for the turn, so a
provider outage never fails a request.
"""

from __future__ import annotations

from typing import List, Optional

from .adaptive_codes import AdaptiveCode, CodeTag
from .quantum_state import Emotion, QuantumEmotionalState, somatic_invitations


RECALIBRATION_MESSAGE = (
    "I'm having a moment of recalibration. Take a breath with me. "
    "I'm still here, and we can keep going in a moment."
)

_STATE_OPENERS = {
    Emotion.GROUNDED: "I'm here with you.",
    Emotion.ENGAGED: "I can feel the energy in what you're sharing.",
    Emotion.ACTIVATED: "I can hear how activated your system is right now.",
    Emotion.OVERWHELMED: "That sounds like a lot landing on you at once.",
    Emotion.SHUTDOWN: "It makes sense if part of you wants to step back from all of this.",
    Emotion.CRISIS: "Your safety matters most right now.",
}

_CODE_REFLECTIONS = {
    CodeTag.OVERWHELM: "Let's shrink this down to just the next small thing.",
    CodeTag.PEOPLE_PLEASING: "Before we think about what they want, what do you need?",
    CodeTag.BOUNDARY_VIOLATION: "It's okay to notice when a yes is really a no.",
    CodeTag.DISMISSAL_DEFENSE: "You don't have to make it fine. It can just be hard.",
    CodeTag.DECISION_AVOIDANCE: "We don't have to decide right now. We can just look at it together.",
    CodeTag.NERVOUS_SYSTEM_ACTIVATION: "Your body is doing its job trying to protect you.",
    CodeTag.BOUNDARY_SETTING: "That firmness you're feeling is worth trusting.",
}

DECODE_FALLBACK = (
    "This pattern showed up for a reason. At some point it protected you. "
    "When you're ready, we can look at where you feel it in your body and what it's trying to keep safe."
)

REAL_TALK_FALLBACK = (
    "I'm having trouble reaching my full thinking right now. "
    "Give me the one-line version of what you need and I'll keep it simple."
)


def companion_fallback(codes: List[AdaptiveCode], state: QuantumEmotionalState) -> str:
    parts = [_STATE_OPENERS.get(state.dominant_emotion, _STATE_OPENERS[Emotion.GROUNDED])]

    for code in codes:
        reflection = _CODE_REFLECTIONS.get(code.code)
        if reflection:
            parts.append(reflection)
            break

    invitation = somatic_invitations(state.dominant_emotion)[0]
    parts.append(invitation)
    return " ".join(parts)


def fallback_response(
    mode: str,
    codes: List[AdaptiveCode],
    state: Optional[QuantumEmotionalState],
) -> str:
    """Template reply for a mode when no provider answered."""
    if mode == "decode":
        return DECODE_FALLBACK
    if mode == "real_talk":
        return REAL_TALK_FALLBACK
    if state is None:
        return RECALIBRATION_MESSAGE
    return companion_fallback(codes, state)


__all__ = [
    "RECALIBRATION_MESSAGE",
    "DECODE_FALLBACK",
    "REAL_TALK_FALLBACK",
    "companion_fallback",
    "fallback_response",
]
