# core/session_engine.py
"""
VERA Session Engine

The single entrypoint for all user messages. One cycle:

    append user message
    -> crisis gate          (kernel.crisis_protocol)
    -> adaptive codes       (kernel.adaptive_codes)
    -> nervous-system state (kernel.quantum_state)
    -> mode                 (core.mode_router)
    -> prompt               (persona.prompt_synthesizer)
    -> gateway              (backend.llm_client; skipped in crisis mode,
                             local fallback when every provider fails)
    -> append assistant message
    -> update + save profile

Cycles are serialized per session id (the session's lock) and profile
mutations per user id (the profile store's lock). Distinct sessions run
concurrently.

handle() wraps process_message() in the inbound envelope contract and
never raises.
"""

from __future__ import annotations

import re
import sys
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from kernel.adaptive_codes import AdaptiveCode, CodeTag, code_tags, detect_codes, has_code
from kernel.crisis_protocol import (
    CRISIS_RESOURCE_PAYLOAD,
    NO_CRISIS,
    CrisisVerdict,
    classify_crisis,
    crisis_response,
)
from kernel.fallback_responses import RECALIBRATION_MESSAGE, fallback_response
from kernel.nervous_profile import (
    SOMATIC_PATTERN_FOR_CODE,
    UserNervousSystemProfile,
    adjust_communication_style,
    deepen_relationship,
    record_intervention,
    record_intervention_feedback,
    record_somatic_pattern,
    touch,
)
from kernel.profile_store import ProfileStore
from kernel.quantum_state import (
    QuantumEmotionalState,
    compute_state,
    describe_state,
    regulation_suggestions,
    somatic_invitations,
    voice_style_for,
)
from kernel.session_registry import ConversationMessage, MessageRole, SessionRegistry
from backend.llm_client import LLMError
from persona.prompt_synthesizer import build_prompt, choose_somatic_invitation
from persona.vera_persona import ToneEnforcer

from .mode_router import ModeDecision, select_mode
from .vera_state import ResponseMode

if TYPE_CHECKING:
    from backend.llm_client import LLMGateway
    from kernel.logger import KernelLogger
    from system.config import Config


# ─────────────────────────────────────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────────────────────────────────────

VULNERABILITY_INTENSITY = 60

NEGATIVE_FEEDBACK = re.compile(
    r"\b(?:didn't help|did not help|doesn't help|not helpful|made it worse|worse|that didn't work)\b",
    re.IGNORECASE,
)
POSITIVE_FEEDBACK = re.compile(
    r"\b(?:that helped|it helped|this helped|thank you|thanks|better|that worked|feel calmer)\b",
    re.IGNORECASE,
)

FOLLOW_UP_PROMPTS: Dict[ResponseMode, List[str]] = {
    ResponseMode.CRISIS: [
        "Are you safe right now?",
        "Is there someone you trust you can reach out to?",
    ],
    ResponseMode.DECODE: [
        "Where do you feel this pattern in your body?",
        "When do you first remember this showing up?",
        "What might this pattern be protecting?",
    ],
    ResponseMode.REAL_TALK: [
        "Want me to go deeper on any of that?",
        "What's the deadline on this?",
    ],
}

# Adaptive codes that flip a disposition flag on the profile
ADAPTIVE_PATTERN_FOR_CODE = {
    CodeTag.PEOPLE_PLEASING: "people_pleasing",
    CodeTag.BOUNDARY_VIOLATION: "boundary_difficulty",
    CodeTag.DISMISSAL_DEFENSE: "dismissal_when_overwhelmed",
    CodeTag.DESIGN_THINKING: "design_thinking_style",
}


def score_feedback(message: str) -> Optional[str]:
    """positive / negative reaction to the last intervention, or None."""
    if not message:
        return None
    if NEGATIVE_FEEDBACK.search(message):
        return "negative"
    if POSITIVE_FEEDBACK.search(message):
        return "positive"
    return None


# ─────────────────────────────────────────────────────────────────────────────
# RESPONSE
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class StructuredResponse:
    content: str
    mode: ResponseMode
    detected_codes: List[AdaptiveCode]
    state: QuantumEmotionalState
    state_description: str
    suggestions: Dict[str, List[str]]
    timing: Dict[str, Any]
    session_id: str
    user_id: str
    used_fallback: bool = False
    provider: Optional[str] = None
    voice_style: str = "calm"
    crisis: CrisisVerdict = field(default=NO_CRISIS)

    def to_envelope(self) -> Dict[str, Any]:
        envelope = {
            "success": True,
            "response": self.content,
            "mode": self.mode.value,
            "detected_patterns": {
                "codes": code_tags(self.detected_codes),
                "quantum_state_description": self.state_description,
            },
            "suggestions": {
                "regulation_techniques": list(self.suggestions.get("regulation_techniques", [])),
                "follow_up_prompts": list(self.suggestions.get("follow_up_prompts", [])),
            },
            "metadata": {
                "response_time_ms": self.timing.get("response_time_ms", 0),
                "timestamp": self.timing.get("timestamp"),
                "session_id": self.session_id,
                "user_id": self.user_id,
                "used_fallback": self.used_fallback,
                "provider": self.provider,
                "voice_style": self.voice_style,
            },
        }
        if self.crisis.is_crisis:
            envelope["crisis"] = self.crisis.to_dict()
        return envelope


# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────

class SessionEngine:
    """
    Usage:
        engine = SessionEngine(gateway, ProfileStore(kv, config), config)
        envelope = engine.handle("I'm so tired", {"user_id": "u1", "session_id": "s1"})
    """

    def __init__(
        self,
        gateway: "LLMGateway",
        profile_store: ProfileStore,
        config: Optional["Config"] = None,
        registry: Optional[SessionRegistry] = None,
        logger: Optional["KernelLogger"] = None,
    ):
        self.gateway = gateway
        self.profile_store = profile_store
        self.config = config
        if registry is None:
            registry = SessionRegistry.from_config(config) if config is not None else SessionRegistry()
        self.registry = registry
        if logger is None and config is not None:
            from kernel.logger import KernelLogger
            logger = KernelLogger(config)
        self.logger = logger
        self.tone = ToneEnforcer()

    # -------------------------------------------------------------------------
    # Inbound contract
    # -------------------------------------------------------------------------

    def handle(self, message: Any, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Process one message and return the response envelope.

        Never raises: unexpected errors become the degraded envelope, which
        still carries the crisis payload when the message has crisis language.
        """
        context = dict(context or {})
        user_id = str(context.get("user_id") or "anonymous")
        session_id = str(context.get("session_id") or f"session_{user_id}")
        text = message if isinstance(message, str) else ""

        try:
            if self.logger:
                self.logger.log_input(session_id, text)
            response = self.process_message(session_id, user_id, text, context)
            envelope = response.to_envelope()
            if self.logger:
                self.logger.log_response(session_id, response.mode.value, envelope)
            return envelope
        except Exception as e:
            print(f"[VERA] ERROR session={session_id}: {e}", file=sys.stderr, flush=True)
            traceback.print_exc()
            if self.logger:
                self.logger.log_exception(session_id, "handle", e)
            return self.degraded_envelope(text, str(e))

    @staticmethod
    def degraded_envelope(message: str, error: str) -> Dict[str, Any]:
        envelope = {
            "success": False,
            "error": error,
            "response": RECALIBRATION_MESSAGE,
        }
        verdict = classify_crisis(message)
        if verdict.is_crisis:
            envelope["response"] = CRISIS_RESOURCE_PAYLOAD
            envelope["mode"] = ResponseMode.CRISIS.value
            envelope["crisis"] = verdict.to_dict()
        return envelope

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    def process_message(
        self,
        session_id: str,
        user_id: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> StructuredResponse:
        started = time.monotonic()
        context = dict(context or {})
        message = message if isinstance(message, str) else ""

        session = self.registry.get_or_create(session_id, user_id=user_id)
        with session.lock, self.profile_store.user_lock(user_id):
            profile = self.profile_store.get_or_create(user_id, name=context.get("name"))

            history = list(session.history)
            user_msg = ConversationMessage(role=MessageRole.USER, content=message)
            session.append(user_msg)

            verdict = classify_crisis(message)
            codes = detect_codes(message)
            if verdict.is_crisis:
                codes.append(AdaptiveCode(code=CodeTag.CRISIS_MODE, intensity=verdict.severity))

            state = compute_state(codes, history, crisis=verdict if verdict.is_crisis else None)
            description = describe_state(state)
            user_msg.metadata.update({
                "codes": code_tags(codes),
                "intensity": state.intensity,
                "state_description": description,
            })

            decision = select_mode(message, verdict, state, profile)
            mode = decision.mode

            content, used_fallback, provider = self._generate(
                decision, message, history, state, codes, profile, context, verdict,
            )

            invitation = None
            if mode == ResponseMode.COMPANION:
                invitation = choose_somatic_invitation(state, codes, profile)

            session.append(ConversationMessage(
                role=MessageRole.ASSISTANT,
                content=content,
                metadata={
                    "mode": mode.value,
                    "codes": code_tags(codes),
                    "intensity": state.intensity,
                    "state_description": description,
                    "used_fallback": used_fallback,
                },
            ))
            session.last_mode = mode.value
            user_msg.metadata["mode"] = mode.value

            self._update_profile(profile, message, codes, state, mode, invitation)
            self.profile_store.save(profile)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        print(
            f"[VERA] session={session_id} mode={mode.value} codes={len(codes)} "
            f"fallback={used_fallback} ms={elapsed_ms}",
            flush=True,
        )

        return StructuredResponse(
            content=content,
            mode=mode,
            detected_codes=codes,
            state=state,
            state_description=description,
            suggestions=self._suggestions(mode, state),
            timing={
                "response_time_ms": elapsed_ms,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            session_id=session_id,
            user_id=user_id,
            used_fallback=used_fallback,
            provider=provider,
            voice_style=voice_style_for(state.dominant_emotion),
            crisis=verdict,
        )

    def _generate(
        self,
        decision: ModeDecision,
        message: str,
        history: List[ConversationMessage],
        state: QuantumEmotionalState,
        codes: List[AdaptiveCode],
        profile: UserNervousSystemProfile,
        context: Dict[str, Any],
        verdict: CrisisVerdict,
    ):
        """Returns (content, used_fallback, provider)."""
        mode = decision.mode
        if mode == ResponseMode.CRISIS:
            return crisis_response(verdict), False, None

        prompt = build_prompt(
            mode, message, history, state, codes, profile,
            context=context, decode_target=decision.decode_target,
        )
        try:
            result = self.gateway.complete_with_meta(prompt, message, task=mode.value)
        except LLMError as e:
            print(f"[VERA] gateway failed, using local fallback: {e}", file=sys.stderr, flush=True)
            return fallback_response(mode.value, codes, state), True, None

        content, warns = self.tone.check(result.text)
        if warns:
            print(f"[VERA] tone warnings: {warns}", flush=True)
        return content, False, result.provider

    def _suggestions(self, mode: ResponseMode, state: QuantumEmotionalState) -> Dict[str, List[str]]:
        follow_ups = FOLLOW_UP_PROMPTS.get(mode)
        if follow_ups is None:
            follow_ups = somatic_invitations(state.dominant_emotion)
        return {
            "regulation_techniques": regulation_suggestions(state),
            "follow_up_prompts": list(follow_ups),
        }

    # -------------------------------------------------------------------------
    # Profile learning
    # -------------------------------------------------------------------------

    def _update_profile(
        self,
        profile: UserNervousSystemProfile,
        message: str,
        codes: List[AdaptiveCode],
        state: QuantumEmotionalState,
        mode: ResponseMode,
        invitation: Optional[str],
    ) -> None:
        feedback = score_feedback(message)
        if feedback:
            record = record_intervention_feedback(profile, feedback)
            if record is not None:
                print(f"[VERA] intervention feedback={feedback} '{record.intervention}'", flush=True)

        for code in codes:
            pattern = SOMATIC_PATTERN_FOR_CODE.get(code.code)
            if pattern:
                trigger = code.trigger_keywords[0] if code.trigger_keywords else ""
                record_somatic_pattern(
                    profile, pattern, trigger,
                    intensity=max(1, min(5, round(code.intensity / 20))),
                )
            flag = ADAPTIVE_PATTERN_FOR_CODE.get(code.code)
            if flag:
                setattr(profile.adaptive_patterns, flag, True)

        if mode != ResponseMode.CRISIS:
            deepen_relationship(profile, "understanding")
        if mode == ResponseMode.DECODE:
            deepen_relationship(profile, "trust")
        if mode == ResponseMode.COMPANION and state.intensity >= VULNERABILITY_INTENSITY:
            deepen_relationship(profile, "vulnerability")

        if has_code(codes, CodeTag.SOMATIC_AWARENESS):
            adjust_communication_style(profile, "somatic_language")
        if has_code(codes, CodeTag.DESIGN_THINKING) or mode == ResponseMode.DECODE:
            adjust_communication_style(profile, "intellectual_content")
        if mode == ResponseMode.REAL_TALK:
            adjust_communication_style(profile, "directness")
        if mode == ResponseMode.COMPANION:
            adjust_communication_style(profile, "emotional_depth")

        if invitation:
            record_intervention(profile, invitation)

        touch(profile)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_history(self, session_id: str) -> List[Dict[str, Any]]:
        session = self.registry.get(session_id)
        if session is None:
            return []
        return [m.to_dict() for m in session.history]


__all__ = [
    "SessionEngine",
    "StructuredResponse",
    "score_feedback",
    "FOLLOW_UP_PROMPTS",
]
