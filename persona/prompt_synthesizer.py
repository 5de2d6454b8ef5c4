# persona/prompt_synthesizer.py
"""
VERA Prompt Synthesizer

Builds the system prompt for one turn. Dispatch is a table keyed by
ResponseMode; each synthesizer takes the same PromptInputs bundle.

    crisis     -> the fixed crisis payload, verbatim (never sent to a model)
    decode     -> pattern analysis framework + state + codes + last 4 turns
    real_talk  -> casual persona + escalation rule + last 10 turns
    companion  -> full profile + state + codes + last 10 turns + context

Empty history and empty profile collections are fine: sections fall back
to "still learning" placeholders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.vera_state import ResponseMode
from kernel.adaptive_codes import AdaptiveCode, describe_codes
from kernel.crisis_protocol import CRISIS_RESOURCE_PAYLOAD
from kernel.nervous_profile import SOMATIC_PATTERN_FOR_CODE, UserNervousSystemProfile, summarize_profile
from kernel.quantum_state import QuantumEmotionalState, describe_state, somatic_invitations
from kernel.session_registry import ConversationMessage, MessageRole
from persona.vera_persona import (
    DECODE_FRAMEWORK,
    PROMPT_COMPANION_FOOTER,
    PROMPT_COMPANION_PRINCIPLES,
    PROMPT_CONSENT_PROTOCOL,
    PROMPT_DECODE_FOOTER,
    PROMPT_DECODE_HEADER,
    PROMPT_IDENTITY,
    PROMPT_NERVOUS_SYSTEM_MAP,
    PROMPT_REAL_TALK,
    PROMPT_REAL_TALK_ESCALATION,
    PROMPT_REAL_TALK_FOOTER,
)


DECODE_HISTORY_TURNS = 4
CONVERSATION_HISTORY_TURNS = 10
DECODE_SNIPPET_CHARS = 80


@dataclass
class PromptInputs:
    mode: ResponseMode
    message: str
    history: Sequence[ConversationMessage]
    state: QuantumEmotionalState
    codes: List[AdaptiveCode]
    profile: UserNervousSystemProfile
    context: Dict[str, Any] = field(default_factory=dict)
    decode_target: str = ""


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _speaker(msg: ConversationMessage, user_label: str) -> str:
    return user_label if msg.role == MessageRole.USER else "VERA"


def format_history(history: Sequence[ConversationMessage], turns: int, user_label: str,
                   snippet: Optional[int] = None) -> str:
    recent = list(history)[-turns:] if turns > 0 else []
    if not recent:
        return "(this is the start of the conversation)"
    lines = []
    for msg in recent:
        content = msg.content
        if snippet is not None and len(content) > snippet:
            content = content[:snippet] + "..."
        lines.append(f"{_speaker(msg, user_label)}: {content}")
    return "\n\n".join(lines)


def format_codes(codes: List[AdaptiveCode]) -> str:
    if not codes:
        return "baseline (no adaptive codes active)"
    return ", ".join(f"{c.code.value} ({c.intensity}%)" for c in codes)


def _bullets(items: Sequence[str], placeholder: str) -> str:
    if not items:
        return f"• {placeholder}"
    return "\n".join(f"• {item}" for item in items)


def choose_somatic_invitation(
    state: QuantumEmotionalState,
    codes: List[AdaptiveCode],
    profile: UserNervousSystemProfile,
) -> str:
    """
    The single embodied suggestion for a companion turn.

    Prefers an intervention that already worked for a somatic pattern
    active this turn; otherwise the first invitation for the emotion.
    """
    for code in codes:
        name = SOMATIC_PATTERN_FOR_CODE.get(code.code)
        pattern = profile.get_somatic_pattern(name) if name else None
        if pattern is not None and pattern.successful_interventions:
            return pattern.successful_interventions[0]
    return somatic_invitations(state.dominant_emotion)[0]


# =============================================================================
# CRISIS
# =============================================================================

def synthesize_crisis(inputs: PromptInputs) -> str:
    return CRISIS_RESOURCE_PAYLOAD


# =============================================================================
# DECODE
# =============================================================================

def synthesize_decode(inputs: PromptInputs) -> str:
    name = inputs.profile.name
    state = inputs.state

    target = inputs.decode_target or "general nervous system inquiry"
    framework = "\n".join(
        f"{i}. **{title}** - {question}" for i, (title, question) in enumerate(DECODE_FRAMEWORK, start=1)
    )
    body = ", ".join(b.value for b in state.body_signals) or "none reported"

    return "\n".join([
        PROMPT_DECODE_HEADER.strip(),
        "",
        f"## {name.upper()} IS ASKING:",
        f'"{inputs.message}"',
        "",
        f"Candidate pattern: {target}",
        "",
        "## CURRENT NERVOUS SYSTEM STATE:",
        f"- Primary state: {state.primary_state.value.upper()}",
        f"- Dominant emotion: {state.dominant_emotion.value}",
        f"- Body signals: {body}",
        f"- Intensity: {round(state.intensity)}%",
        "",
        "## ACTIVE ADAPTIVE CODES:",
        format_codes(inputs.codes),
        "",
        "## DECODE FRAMEWORK:",
        framework,
        "",
        PROMPT_DECODE_FOOTER.strip(),
        "",
        "## RECENT CONVERSATION:",
        format_history(inputs.history, DECODE_HISTORY_TURNS, name, snippet=DECODE_SNIPPET_CHARS),
    ])


# =============================================================================
# REAL TALK
# =============================================================================

def synthesize_real_talk(inputs: PromptInputs) -> str:
    return "\n".join([
        PROMPT_REAL_TALK.strip(),
        "",
        PROMPT_REAL_TALK_ESCALATION.strip(),
        "",
        "[CONVERSATION HISTORY]",
        format_history(inputs.history, CONVERSATION_HISTORY_TURNS, "USER"),
        "",
        "[CURRENT MESSAGE]",
        inputs.message,
        "",
        PROMPT_REAL_TALK_FOOTER.strip(),
    ])


# =============================================================================
# COMPANION
# =============================================================================

def _somatic_section(profile: UserNervousSystemProfile) -> str:
    if not profile.somatic_patterns:
        return f"Still learning {profile.name}'s body-level patterns."
    lines = []
    for p in profile.somatic_patterns:
        triggers = ", ".join(p.triggers) or "unknown"
        helps = ", ".join(p.successful_interventions) or "still learning"
        lines.append(
            f"• {p.pattern}: triggered by {triggers}. What helps: {helps}. "
            f"Frequency: {p.frequency}, intensity: {p.intensity}/5."
        )
    return "\n".join(lines)


def _context_section(context: Dict[str, Any], profile: UserNervousSystemProfile) -> str:
    lines = []
    energy = context.get("energy")
    if energy:
        lines.append(f"Self-reported energy: {energy}")

    biometrics = context.get("biometrics")
    if biometrics and profile.consent.biometric_sharing:
        if isinstance(biometrics, dict):
            readings = ", ".join(f"{k}: {v}" for k, v in biometrics.items())
        else:
            readings = str(biometrics)
        lines.append(f"Biometrics (shared with consent): {readings}")

    return "\n".join(lines)


def synthesize_companion(inputs: PromptInputs) -> str:
    profile = inputs.profile
    ml = profile.meta_learning
    consent = profile.consent
    style = profile.communication_style
    depth = profile.relationship_depth
    state = inputs.state

    now = inputs.context.get("now") or datetime.now(timezone.utc).isoformat()
    invitation = choose_somatic_invitation(state, inputs.codes, profile)

    sections = [
        PROMPT_IDENTITY.strip(),
        "",
        f"[YOUR RELATIONSHIP WITH {profile.name.upper()}]",
        f"Together since: {profile.relationship_start[:10]}",
        f"Mutual understanding: {depth['mutual_understanding']}% | "
        f"Trust: {depth['trust_level']}% | "
        f"Vulnerability comfort: {depth['vulnerability_comfort']}%",
        summarize_profile(profile),
        "",
        "[SOMATIC MEMORY]",
        _somatic_section(profile),
        "",
        "[WHAT WORKS]",
        _bullets(ml.what_works, "Still learning their unique patterns"),
        "",
        "[WHAT DOESN'T WORK]",
        _bullets(ml.what_doesnt, "No clear boundaries yet"),
        "",
        "[CONSENT]",
        f"• Decode mode: {'welcomed' if consent.decode_mode else 'ask permission first'}",
        f"• Biometric sharing: {'okay' if consent.biometric_sharing else 'declined'}",
        f"• Voice output: {'on' if consent.voice_output else 'off'}",
        f"• Data retention: {consent.data_retention}",
        "You ALWAYS honor these boundaries.",
        "",
        "[TIME]",
        f"Current time: {now}",
        f"Timezone: {profile.timezone}",
        f"Baseline nervous system: {profile.baseline_state}",
        f"Safety signals: {', '.join(profile.safety_signals) or 'still learning'}",
        "",
        PROMPT_NERVOUS_SYSTEM_MAP.strip(),
        "",
        "[COMMUNICATION STYLE]",
        f"• Directness: {style.get('directness', 50)}%",
        f"• Emotional depth: {style.get('emotional_depth', 50)}%",
        f"• Intellectual content: {style.get('intellectual_content', 50)}%",
        f"• Somatic language: {style.get('somatic_language', 50)}%",
        "",
        PROMPT_COMPANION_PRINCIPLES.strip(),
        "",
        PROMPT_CONSENT_PROTOCOL.strip(),
        "",
        "[DETECTED PATTERNS]",
        f"Adaptive codes: {format_codes(inputs.codes)}",
        f"Guidance: {describe_codes(inputs.codes)}",
        f"Nervous system state: {describe_state(state)} (trend: {state.trend})",
    ]

    extra = _context_section(inputs.context, profile)
    if extra:
        sections += ["", "[RIGHT NOW]", extra]

    sections += [
        "",
        "[SUGGESTED SOMATIC INVITATION]",
        invitation,
        "",
        "[CONVERSATION HISTORY]",
        format_history(inputs.history, CONVERSATION_HISTORY_TURNS, profile.name.upper()),
        "",
        "[WHAT THEY JUST SAID]",
        inputs.message,
        "",
        PROMPT_COMPANION_FOOTER.strip(),
    ]
    return "\n".join(sections)


# =============================================================================
# DISPATCH
# =============================================================================

MODE_SYNTHESIZERS: Dict[ResponseMode, Callable[[PromptInputs], str]] = {
    ResponseMode.CRISIS: synthesize_crisis,
    ResponseMode.DECODE: synthesize_decode,
    ResponseMode.REAL_TALK: synthesize_real_talk,
    ResponseMode.COMPANION: synthesize_companion,
}


def build_prompt(
    mode: ResponseMode,
    message: str,
    history: Sequence[ConversationMessage],
    state: QuantumEmotionalState,
    codes: List[AdaptiveCode],
    profile: UserNervousSystemProfile,
    context: Optional[Dict[str, Any]] = None,
    decode_target: str = "",
) -> str:
    """Synthesize the prompt for one turn in the given mode."""
    synthesizer = MODE_SYNTHESIZERS[ResponseMode(mode)]
    inputs = PromptInputs(
        mode=ResponseMode(mode),
        message=message or "",
        history=list(history or []),
        state=state,
        codes=list(codes or []),
        profile=profile,
        context=dict(context or {}),
        decode_target=decode_target,
    )
    return synthesizer(inputs)


__all__ = [
    "PromptInputs",
    "MODE_SYNTHESIZERS",
    "build_prompt",
    "choose_somatic_invitation",
    "format_history",
    "format_codes",
]
