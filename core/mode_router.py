# core/mode_router.py
"""
VERA Mode Router

Picks one ResponseMode per turn. Rules, first match wins:

1. Crisis verdict              -> crisis (unconditional)
2. Decode request + consent    -> decode (consent.decode_mode must be on)
3. Explicit switch request     -> real_talk / companion, this turn only
4. Keyword batteries           -> therapeutic language beats real-talk language
5. Default                     -> companion

The router is the only place that decides which mode handles a message.
Every decision is logged:
    [ModeRouter] mode=<mode> reason=<reason>
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .vera_state import ResponseMode

if TYPE_CHECKING:
    from kernel.crisis_protocol import CrisisVerdict
    from kernel.nervous_profile import UserNervousSystemProfile
    from kernel.quantum_state import QuantumEmotionalState


# ─────────────────────────────────────────────────────────────────────────────
# DECODE DETECTION
# ─────────────────────────────────────────────────────────────────────────────

DECODE_PATTERNS = [
    re.compile(
        r"why do i|why am i|what is this pattern|what's happening|understand this|decode|"
        r"what does it mean|what's the pattern|where does this come from",
        re.IGNORECASE,
    ),
    re.compile(r"how did i get|when did i start|why can't i|what's driving", re.IGNORECASE),
]

# Checked in order; the first one present becomes the decode target
DECODE_TARGET_KEYWORDS = (
    "overwhelm",
    "boundary",
    "people-pleasing",
    "dismissal",
    "decision",
    "activation",
    "shutdown",
)

DECODE_CONFIDENCE = 85


@dataclass
class DecodeRequest:
    is_decode_request: bool
    pattern_to_analyze: str = ""
    confidence: int = 0


def _normalize(message: str) -> str:
    # Curly apostrophes from mobile keyboards
    return message.replace("’", "'").lower()


def detect_decode_request(message: str) -> DecodeRequest:
    """Is the user asking VERA to decode a pattern, and which one?"""
    if not isinstance(message, str) or not message.strip():
        return DecodeRequest(is_decode_request=False)

    lowered = _normalize(message)
    if not any(p.search(lowered) for p in DECODE_PATTERNS):
        return DecodeRequest(is_decode_request=False)

    target = next((k for k in DECODE_TARGET_KEYWORDS if k in lowered), "")
    return DecodeRequest(
        is_decode_request=True,
        pattern_to_analyze=target,
        confidence=DECODE_CONFIDENCE,
    )


# ─────────────────────────────────────────────────────────────────────────────
# EXPLICIT SWITCHES
# ─────────────────────────────────────────────────────────────────────────────

REAL_TALK_SWITCHES = ("switch to real talk", "be more casual", "talk normal", "just talk to me")
COMPANION_SWITCHES = ("need support", "therapeutic mode", "help me regulate")


def detect_mode_switch(message: str) -> Optional[ResponseMode]:
    """Explicit per-turn switch request, or None."""
    if not isinstance(message, str):
        return None
    lowered = _normalize(message)
    if any(s in lowered for s in REAL_TALK_SWITCHES):
        return ResponseMode.REAL_TALK
    if any(s in lowered for s in COMPANION_SWITCHES):
        return ResponseMode.COMPANION
    return None


# ─────────────────────────────────────────────────────────────────────────────
# KEYWORD BATTERIES
# ─────────────────────────────────────────────────────────────────────────────

def _keywords(*words: str) -> "re.Pattern[str]":
    # Leading boundary only: "trigger" covers "triggered", "dissociat" covers "dissociating"
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")", re.IGNORECASE)


REAL_TALK_KEYWORDS = _keywords(
    "resume", "cv", "job", "career", "interview", "should i", "quick question",
    "help me decide", "what do you think", "brainstorm", "advice on", "thoughts on",
    "opinion", "edit this", "review this", "look at this", "real talk", "be honest",
    "straight up",
)

THERAPEUTIC_KEYWORDS = _keywords(
    "panic", "trauma", "trigger", "anxious", "depressed", "dysregulated",
    "nervous system", "grounding", "breathing", "overwhelming", "can't cope",
    "freeze", "shutdown", "dissociat", "flashback",
)


# ─────────────────────────────────────────────────────────────────────────────
# SELECTION
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ModeDecision:
    mode: ResponseMode
    reason: str
    decode_target: str = ""

    def to_dict(self):
        return {"mode": self.mode.value, "reason": self.reason, "decode_target": self.decode_target}


def _log(decision: ModeDecision) -> ModeDecision:
    print(f"[ModeRouter] mode={decision.mode.value} reason={decision.reason}", flush=True)
    return decision


def select_mode(
    message: str,
    crisis_verdict: Optional["CrisisVerdict"],
    state: Optional["QuantumEmotionalState"] = None,
    profile: Optional["UserNervousSystemProfile"] = None,
) -> ModeDecision:
    """
    Choose the response mode for one turn.

    state is accepted for logging context; the rules above read only the
    message, the crisis verdict and the profile's consent.
    """
    if crisis_verdict is not None and crisis_verdict.is_crisis:
        return _log(ModeDecision(ResponseMode.CRISIS, f"crisis:{crisis_verdict.category.value}"))

    if not isinstance(message, str) or not message.strip():
        return _log(ModeDecision(ResponseMode.COMPANION, "empty_message"))

    decode = detect_decode_request(message)
    if decode.is_decode_request:
        if profile is not None and profile.consent.decode_mode:
            return _log(ModeDecision(
                ResponseMode.DECODE,
                "decode_request",
                decode_target=decode.pattern_to_analyze,
            ))
        print("[ModeRouter] decode request ignored: no decode_mode consent", flush=True)

    switch = detect_mode_switch(message)
    if switch is not None:
        return _log(ModeDecision(switch, "explicit_switch"))

    lowered = _normalize(message)
    if THERAPEUTIC_KEYWORDS.search(lowered):
        return _log(ModeDecision(ResponseMode.COMPANION, "therapeutic_keywords"))
    if REAL_TALK_KEYWORDS.search(lowered):
        return _log(ModeDecision(ResponseMode.REAL_TALK, "real_talk_keywords"))

    reason = "default"
    if state is not None:
        reason = f"default:{state.primary_state.value}"
    return _log(ModeDecision(ResponseMode.COMPANION, reason))


__all__ = [
    "DecodeRequest",
    "ModeDecision",
    "detect_decode_request",
    "detect_mode_switch",
    "select_mode",
    "REAL_TALK_KEYWORDS",
    "THERAPEUTIC_KEYWORDS",
]
