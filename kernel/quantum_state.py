# kernel/quantum_state.py
"""
VERA Quantum Emotional State

Maps the adaptive codes of one message (plus a short window of history)
to a nervous-system state descriptor.

Mapping (first rule that applies):
1. activation or crisis code  -> SYMPATHETIC, overwhelmed if mean > 80 else activated
2. dismissal-defense code     -> DORSAL, shutdown
3. overwhelm code             -> SYMPATHETIC, overwhelmed
4. mean intensity > 50        -> SYMPATHETIC, engaged
5. otherwise                  -> VENTRAL, grounded

Blended states are the codes after the first (detection order), at most
two, each bucketed on its own. They may disagree with the primary state:
activation and shutdown signals can register at the same time.

Body signals come from a static table keyed by dominant emotion. They are
not read from the message text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .adaptive_codes import AdaptiveCode, CodeTag, overall_intensity

if TYPE_CHECKING:
    from .crisis_protocol import CrisisVerdict


# =============================================================================
# TYPES
# =============================================================================

class NervousState(str, Enum):
    VENTRAL = "ventral"
    SYMPATHETIC = "sympathetic"
    DORSAL = "dorsal"


class Emotion(str, Enum):
    GROUNDED = "grounded"
    ENGAGED = "engaged"
    ACTIVATED = "activated"
    OVERWHELMED = "overwhelmed"
    SHUTDOWN = "shutdown"
    CRISIS = "crisis"


class BodyRegion(str, Enum):
    CHEST = "chest"
    STOMACH = "stomach"
    THROAT = "throat"
    JAW = "jaw"
    SHOULDERS = "shoulders"
    LIMBS = "limbs"
    WHOLE_BODY = "whole_body"


HISTORY_WINDOW = 5
TREND_DELTA = 10.0

BODY_SIGNALS: Dict[Emotion, Tuple[BodyRegion, ...]] = {
    Emotion.GROUNDED: (),
    Emotion.ENGAGED: (),
    Emotion.ACTIVATED: (BodyRegion.CHEST, BodyRegion.SHOULDERS, BodyRegion.JAW),
    Emotion.OVERWHELMED: (BodyRegion.CHEST, BodyRegion.SHOULDERS, BodyRegion.JAW),
    Emotion.SHUTDOWN: (BodyRegion.WHOLE_BODY, BodyRegion.LIMBS),
    Emotion.CRISIS: (BodyRegion.CHEST, BodyRegion.THROAT, BodyRegion.WHOLE_BODY),
}


@dataclass
class QuantumEmotionalState:
    primary_state: NervousState = NervousState.VENTRAL
    blended_states: List[Tuple[NervousState, int]] = field(default_factory=list)
    dominant_emotion: Emotion = Emotion.GROUNDED
    body_signals: List[BodyRegion] = field(default_factory=list)
    intensity: float = 0.0
    trend: str = "steady"
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_state": self.primary_state.value,
            "blended_states": [
                {"state": s.value, "intensity": i} for s, i in self.blended_states
            ],
            "dominant_emotion": self.dominant_emotion.value,
            "body_signals": [b.value for b in self.body_signals],
            "intensity": round(self.intensity, 1),
            "trend": self.trend,
            "timestamp": self.timestamp,
        }


# =============================================================================
# CALCULATION
# =============================================================================

def _bucket_for(code: AdaptiveCode) -> NervousState:
    if code.code == CodeTag.DISMISSAL_DEFENSE or "SHUTDOWN" in code.code.value:
        return NervousState.DORSAL
    if "OVERWHELM" in code.code.value:
        return NervousState.SYMPATHETIC
    return NervousState.VENTRAL


def _recent_intensities(history: Optional[Sequence[Any]]) -> List[float]:
    """Intensities recorded on the last HISTORY_WINDOW user turns."""
    if not history:
        return []
    values = []
    for msg in list(history)[-HISTORY_WINDOW * 2:]:
        role = getattr(msg, "role", None)
        if getattr(role, "value", role) != "user":
            continue
        meta = getattr(msg, "metadata", None) or {}
        if "intensity" in meta:
            values.append(float(meta["intensity"]))
    return values[-HISTORY_WINDOW:]


def _trend(current: float, history: Optional[Sequence[Any]]) -> str:
    previous = _recent_intensities(history)
    if not previous:
        return "steady"
    baseline = sum(previous) / len(previous)
    if current - baseline >= TREND_DELTA:
        return "rising"
    if baseline - current >= TREND_DELTA:
        return "settling"
    return "steady"


def compute_state(
    codes: List[AdaptiveCode],
    history: Optional[Sequence[Any]] = None,
    crisis: Optional["CrisisVerdict"] = None,
) -> QuantumEmotionalState:
    """
    Compute the state for one turn.

    history holds ConversationMessage objects for the session so far
    (the current message excluded); only the trend reads it.
    """
    codes = list(codes or [])
    mean = overall_intensity(codes)

    has_activation = any(
        c.code in (CodeTag.NERVOUS_SYSTEM_ACTIVATION, CodeTag.CRISIS_MODE) for c in codes
    )
    has_shutdown = any(c.code == CodeTag.DISMISSAL_DEFENSE for c in codes)
    has_overwhelm = any(c.code == CodeTag.OVERWHELM for c in codes)

    if has_activation:
        primary = NervousState.SYMPATHETIC
        emotion = Emotion.OVERWHELMED if mean > 80 else Emotion.ACTIVATED
    elif has_shutdown:
        primary = NervousState.DORSAL
        emotion = Emotion.SHUTDOWN
    elif has_overwhelm:
        primary = NervousState.SYMPATHETIC
        emotion = Emotion.OVERWHELMED
    elif mean > 50:
        primary = NervousState.SYMPATHETIC
        emotion = Emotion.ENGAGED
    else:
        primary = NervousState.VENTRAL
        emotion = Emotion.GROUNDED

    if crisis is not None and crisis.is_crisis:
        primary = NervousState.SYMPATHETIC
        emotion = Emotion.CRISIS
        mean = max(mean, float(crisis.severity))

    blended = [(_bucket_for(c), c.intensity) for c in codes[1:3]]

    return QuantumEmotionalState(
        primary_state=primary,
        blended_states=blended,
        dominant_emotion=emotion,
        body_signals=list(BODY_SIGNALS[emotion]),
        intensity=min(100.0, mean),
        trend=_trend(mean, history),
    )


# =============================================================================
# DESCRIPTIONS & SUGGESTIONS
# =============================================================================

def describe_state(state: QuantumEmotionalState) -> str:
    parts = [f"Your nervous system is in {state.primary_state.value.upper()} mode"]

    if state.dominant_emotion != Emotion.GROUNDED:
        parts.append(f"(feeling {state.dominant_emotion.value})")

    if state.intensity > 80:
        parts.append("with high intensity")
    elif state.intensity > 50:
        parts.append("with moderate activation")

    if state.body_signals:
        parts.append(f"affecting your {', '.join(b.value for b in state.body_signals)}")

    return " ".join(parts)


REGULATION_TECHNIQUES: Dict[NervousState, List[str]] = {
    NervousState.SYMPATHETIC: [
        "Press your palms together and breathe - feel the pressure",
        "Place both feet flat on the ground - feel the contact",
        "Cold water on your face activates the calming response",
        "Progressive muscle relaxation: tense and release each muscle group",
    ],
    NervousState.DORSAL: [
        "Gentle movement: walking, swaying, stretching",
        "Warm liquid: tea, warm water",
        "Companionship or soft sound in the background",
        "Gradual engagement: no pressure, just presence",
    ],
    NervousState.VENTRAL: [
        "Deepen the safety by sharing what is on your mind",
        "Creative expression: design, writing, movement",
        "Reach out to someone you enjoy",
        "Somatic celebration: notice what feels good",
    ],
}

SOMATIC_INVITATIONS: Dict[Emotion, List[str]] = {
    Emotion.GROUNDED: [
        "Notice what your feet feel touching the ground",
        "Take a moment to sense your whole body here",
        "What does safety feel like in your body right now?",
    ],
    Emotion.ENGAGED: [
        "Where do you feel that energy in your body?",
        "Let your shoulders drop and your jaw relax",
        "What does this moment feel like in your chest?",
    ],
    Emotion.ACTIVATED: [
        "Can you feel your heart beating?",
        "Press your hands together - feel that pressure",
        "Ground through your feet - feel them meet the floor",
    ],
    Emotion.OVERWHELMED: [
        "Come back to your breath - in and out",
        "Press your hands on your chest - feel your heartbeat",
        "Just one thing: feel your feet on the ground",
    ],
    Emotion.SHUTDOWN: [
        "Gently notice your breath, no forcing",
        "What does your body want to do? Just that.",
        "You are safe. Take your time coming back.",
    ],
    Emotion.CRISIS: [
        "Call or text 988 right now.",
        "Text HOME to 741741.",
        "Call 911 if you are in immediate danger.",
    ],
}

# Emotion -> voice style hint for the voice-synthesis collaborator
VOICE_STYLES: Dict[Emotion, str] = {
    Emotion.GROUNDED: "warm",
    Emotion.ENGAGED: "warm",
    Emotion.ACTIVATED: "calm",
    Emotion.OVERWHELMED: "calm",
    Emotion.SHUTDOWN: "warm",
    Emotion.CRISIS: "firm",
}


def regulation_suggestions(state: QuantumEmotionalState) -> List[str]:
    if state.dominant_emotion == Emotion.CRISIS:
        return list(SOMATIC_INVITATIONS[Emotion.CRISIS])
    return list(REGULATION_TECHNIQUES[state.primary_state])


def somatic_invitations(emotion: Emotion) -> List[str]:
    return list(SOMATIC_INVITATIONS.get(emotion, SOMATIC_INVITATIONS[Emotion.GROUNDED]))


def voice_style_for(emotion: Emotion) -> str:
    return VOICE_STYLES.get(emotion, "calm")


__all__ = [
    "NervousState",
    "Emotion",
    "BodyRegion",
    "QuantumEmotionalState",
    "BODY_SIGNALS",
    "HISTORY_WINDOW",
    "compute_state",
    "describe_state",
    "regulation_suggestions",
    "somatic_invitations",
    "voice_style_for",
]
