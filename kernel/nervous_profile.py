# kernel/nervous_profile.py
"""
VERA User Nervous System Profile

The long-lived, per-user model VERA learns across turns:
- identity and baseline
- somatic patterns (upsert by pattern name)
- meta-learning: what works / what doesn't
- consent boundaries (written only by explicit user action)
- communication-style and relationship-depth dials

Mutation rules in this module:
- Dials are clamped to [0, 100] and only ever move up by fixed steps.
- Somatic patterns never duplicate: new triggers/interventions are unioned in.
- Consent is not touched here; see ProfileStore.update_consent.

This module provides:
- UserNervousSystemProfile dataclass (+ nested dataclasses)
- create_default_profile()
- record_somatic_pattern(), deepen_relationship(), adjust_communication_style()
- record_intervention(), record_intervention_feedback()
- summarize_profile()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .adaptive_codes import CodeTag


# =============================================================================
# CONSTANTS
# =============================================================================

DIAL_MIN = 0
DIAL_MAX = 100

RELATIONSHIP_STEP = 2
STYLE_STEP = 1

RELATIONSHIP_DIMENSIONS = {
    "understanding": "mutual_understanding",
    "trust": "trust_level",
    "vulnerability": "vulnerability_comfort",
}

STYLE_DIALS = ("directness", "emotional_depth", "intellectual_content", "somatic_language")

RETENTION_POLICIES = ("none", "session", "7days", "30days", "permanent")

INTERVENTION_HISTORY_LIMIT = 50

# Occurrence counts at which a somatic pattern's frequency tag steps up
FREQUENCY_THRESHOLDS = (
    (1, "rare"),
    (3, "occasional"),
    (8, "frequent"),
    (20, "constant"),
)

DEFAULT_RELATIONSHIP = {
    "mutual_understanding": 40,
    "trust_level": 35,
    "vulnerability_comfort": 50,
}

# Adaptive codes that leave a somatic trace on the profile, and the
# pattern name each is remembered under
SOMATIC_PATTERN_FOR_CODE: Dict[CodeTag, str] = {
    CodeTag.OVERWHELM: "overwhelm",
    CodeTag.NERVOUS_SYSTEM_ACTIVATION: "activation",
    CodeTag.DISMISSAL_DEFENSE: "dismissal",
    CodeTag.BOUNDARY_VIOLATION: "boundary_violation",
    CodeTag.PEOPLE_PLEASING: "people_pleasing",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def clamp_dial(value: Any) -> int:
    try:
        value = int(round(float(value)))
    except (TypeError, ValueError):
        return DIAL_MIN
    return max(DIAL_MIN, min(DIAL_MAX, value))


def _ordered_union(items: List[str], new: Optional[str]) -> List[str]:
    if new and new not in items:
        items.append(new)
    return items


# =============================================================================
# NESTED MODELS
# =============================================================================

@dataclass
class SomaticPattern:
    pattern: str
    triggers: List[str] = field(default_factory=list)
    successful_interventions: List[str] = field(default_factory=list)
    frequency: str = "rare"
    last_occurrence: str = field(default_factory=_now)
    intensity: int = 3  # 1-5
    occurrences: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "triggers": list(self.triggers),
            "successful_interventions": list(self.successful_interventions),
            "frequency": self.frequency,
            "last_occurrence": self.last_occurrence,
            "intensity": self.intensity,
            "occurrences": self.occurrences,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SomaticPattern":
        return cls(
            pattern=str(data["pattern"]),
            triggers=list(dict.fromkeys(data.get("triggers", []))),
            successful_interventions=list(dict.fromkeys(data.get("successful_interventions", []))),
            frequency=data.get("frequency", "rare"),
            last_occurrence=data.get("last_occurrence", _now()),
            intensity=max(1, min(5, int(data.get("intensity", 3)))),
            occurrences=int(data.get("occurrences", 1)),
        )


@dataclass
class InterventionRecord:
    intervention: str
    timestamp: str = field(default_factory=_now)
    user_response: str = "no_response"  # positive | neutral | negative | no_response
    effectiveness: float = 0.0
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intervention": self.intervention,
            "timestamp": self.timestamp,
            "user_response": self.user_response,
            "effectiveness": self.effectiveness,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterventionRecord":
        return cls(
            intervention=str(data.get("intervention", "")),
            timestamp=data.get("timestamp", _now()),
            user_response=data.get("user_response", "no_response"),
            effectiveness=float(data.get("effectiveness", 0.0)),
            notes=data.get("notes", ""),
        )


@dataclass
class MetaLearning:
    what_works: List[str] = field(default_factory=list)
    what_doesnt: List[str] = field(default_factory=list)
    intervention_history: List[InterventionRecord] = field(default_factory=list)
    learning_rate: float = 0.8

    def to_dict(self) -> Dict[str, Any]:
        return {
            "what_works": list(self.what_works),
            "what_doesnt": list(self.what_doesnt),
            "intervention_history": [r.to_dict() for r in self.intervention_history],
            "learning_rate": self.learning_rate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetaLearning":
        return cls(
            what_works=list(dict.fromkeys(data.get("what_works", []))),
            what_doesnt=list(dict.fromkeys(data.get("what_doesnt", []))),
            intervention_history=[
                InterventionRecord.from_dict(r) for r in data.get("intervention_history", [])
            ],
            learning_rate=max(0.0, min(1.0, float(data.get("learning_rate", 0.8)))),
        )


@dataclass
class ConsentBoundaries:
    mic_input: bool = False
    voice_output: bool = False
    data_retention: str = "30days"
    biometric_sharing: bool = False
    decode_mode: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mic_input": self.mic_input,
            "voice_output": self.voice_output,
            "data_retention": self.data_retention,
            "biometric_sharing": self.biometric_sharing,
            "decode_mode": self.decode_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsentBoundaries":
        retention = data.get("data_retention", "30days")
        if retention not in RETENTION_POLICIES:
            retention = "30days"
        return cls(
            mic_input=bool(data.get("mic_input", False)),
            voice_output=bool(data.get("voice_output", False)),
            data_retention=retention,
            biometric_sharing=bool(data.get("biometric_sharing", False)),
            decode_mode=bool(data.get("decode_mode", True)),
        )


@dataclass
class AdaptivePatterns:
    people_pleasing: bool = False
    overcommitment: bool = False
    dismissal_when_overwhelmed: bool = False
    design_thinking_style: bool = False
    boundary_difficulty: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "people_pleasing": self.people_pleasing,
            "overcommitment": self.overcommitment,
            "dismissal_when_overwhelmed": self.dismissal_when_overwhelmed,
            "design_thinking_style": self.design_thinking_style,
            "boundary_difficulty": self.boundary_difficulty,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdaptivePatterns":
        return cls(**{k: bool(data.get(k, False)) for k in cls().to_dict()})

    def active(self) -> List[str]:
        return [k for k, v in self.to_dict().items() if v]


# =============================================================================
# PROFILE MODEL
# =============================================================================

@dataclass
class UserNervousSystemProfile:
    """
    Everything VERA knows about one user.

    Attributes:
        user_id: Stable identifier (key in the profile store)
        name: Display name used in prompts
        relationship_start: When we first met (ISO)
        timezone: IANA timezone name
        baseline_state: Usual nervous-system state
        somatic_patterns: Learned body-level patterns, unique by name
        meta_learning: What interventions work / don't
        adaptive_patterns: Known dispositions
        consent: Boundaries, changed only by the user
        communication_style: Four 0-100 dials
        relationship_depth: Three 0-100 dials
        last_seen: Last completed cycle (drives dormancy decay)
    """
    user_id: str
    name: str = "friend"
    relationship_start: str = field(default_factory=_now)
    timezone: str = "UTC"

    baseline_state: str = "ventral"
    stress_signals: List[str] = field(default_factory=list)
    safety_signals: List[str] = field(default_factory=list)
    trigger_patterns: List[str] = field(default_factory=list)

    somatic_patterns: List[SomaticPattern] = field(default_factory=list)
    meta_learning: MetaLearning = field(default_factory=MetaLearning)
    adaptive_patterns: AdaptivePatterns = field(default_factory=AdaptivePatterns)
    consent: ConsentBoundaries = field(default_factory=ConsentBoundaries)

    communication_style: Dict[str, int] = field(default_factory=lambda: {
        "directness": 70,
        "emotional_depth": 60,
        "intellectual_content": 60,
        "somatic_language": 50,
    })
    relationship_depth: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_RELATIONSHIP))

    last_seen: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "relationship_start": self.relationship_start,
            "timezone": self.timezone,
            "baseline_state": self.baseline_state,
            "stress_signals": list(self.stress_signals),
            "safety_signals": list(self.safety_signals),
            "trigger_patterns": list(self.trigger_patterns),
            "somatic_patterns": [p.to_dict() for p in self.somatic_patterns],
            "meta_learning": self.meta_learning.to_dict(),
            "adaptive_patterns": self.adaptive_patterns.to_dict(),
            "consent": self.consent.to_dict(),
            "communication_style": dict(self.communication_style),
            "relationship_depth": dict(self.relationship_depth),
            "last_seen": self.last_seen,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserNervousSystemProfile":
        defaults = cls(user_id=str(data["user_id"]))
        style = dict(defaults.communication_style)
        style.update({k: clamp_dial(v) for k, v in data.get("communication_style", {}).items() if k in style})
        depth = dict(defaults.relationship_depth)
        depth.update({k: clamp_dial(v) for k, v in data.get("relationship_depth", {}).items() if k in depth})

        return cls(
            user_id=str(data["user_id"]),
            name=data.get("name", defaults.name),
            relationship_start=data.get("relationship_start", defaults.relationship_start),
            timezone=data.get("timezone", "UTC"),
            baseline_state=data.get("baseline_state", "ventral"),
            stress_signals=list(data.get("stress_signals", [])),
            safety_signals=list(data.get("safety_signals", [])),
            trigger_patterns=list(data.get("trigger_patterns", [])),
            somatic_patterns=[SomaticPattern.from_dict(p) for p in data.get("somatic_patterns", [])],
            meta_learning=MetaLearning.from_dict(data.get("meta_learning", {})),
            adaptive_patterns=AdaptivePatterns.from_dict(data.get("adaptive_patterns", {})),
            consent=ConsentBoundaries.from_dict(data.get("consent", {})),
            communication_style=style,
            relationship_depth=depth,
            last_seen=data.get("last_seen", defaults.last_seen),
        )

    def get_somatic_pattern(self, pattern: str) -> Optional[SomaticPattern]:
        for p in self.somatic_patterns:
            if p.pattern == pattern:
                return p
        return None

    @property
    def relationship_average(self) -> float:
        values = list(self.relationship_depth.values())
        return sum(values) / len(values) if values else 0.0


# =============================================================================
# CREATION
# =============================================================================

def create_default_profile(user_id: str, name: Optional[str] = None) -> UserNervousSystemProfile:
    """A fresh profile for a first contact."""
    return UserNervousSystemProfile(
        user_id=user_id,
        name=name or "friend",
        safety_signals=["quiet morning", "trusted presence", "creative flow"],
        meta_learning=MetaLearning(
            what_works=[
                "Somatic grounding through pressure",
                "Visual/aesthetic design language",
                "Direct, brief responses",
                "Protecting creative time",
                "Acknowledging their expertise",
            ],
            what_doesnt=[
                "Generic platitudes",
                "Lengthy explanations when overwhelmed",
                "Ignoring their boundaries",
                "Treating them as just their job title",
            ],
            learning_rate=0.8,
        ),
        consent=ConsentBoundaries(
            mic_input=True,
            voice_output=True,
            data_retention="30days",
            biometric_sharing=False,
            decode_mode=True,
        ),
        communication_style={
            "directness": 95,
            "emotional_depth": 75,
            "intellectual_content": 85,
            "somatic_language": 80,
        },
    )


# =============================================================================
# MUTATION RULES
# =============================================================================

def _frequency_for(occurrences: int) -> str:
    tag = "rare"
    for threshold, name in FREQUENCY_THRESHOLDS:
        if occurrences >= threshold:
            tag = name
    return tag


def record_somatic_pattern(
    profile: UserNervousSystemProfile,
    pattern: str,
    trigger: str,
    intervention: Optional[str] = None,
    intensity: Optional[int] = None,
) -> SomaticPattern:
    """
    Upsert a somatic pattern by name.

    Absent: created with singleton trigger / intervention sets.
    Present: trigger and intervention unioned in (no duplicates) and
    last_occurrence refreshed.
    """
    existing = profile.get_somatic_pattern(pattern)

    if existing is None:
        existing = SomaticPattern(
            pattern=pattern,
            triggers=[trigger] if trigger else [],
            successful_interventions=[intervention] if intervention else [],
        )
        profile.somatic_patterns.append(existing)
    else:
        _ordered_union(existing.triggers, trigger)
        _ordered_union(existing.successful_interventions, intervention)
        existing.occurrences += 1
        existing.last_occurrence = _now()

    existing.frequency = _frequency_for(existing.occurrences)
    if intensity is not None:
        existing.intensity = max(1, min(5, int(intensity)))
    return existing


def deepen_relationship(profile: UserNervousSystemProfile, dimension: str) -> int:
    """
    Raise one relationship dial by RELATIONSHIP_STEP, clamped to 100.

    dimension: "understanding", "trust" or "vulnerability"
    (the stored dial names are accepted too).
    """
    key = RELATIONSHIP_DIMENSIONS.get(dimension, dimension)
    if key not in profile.relationship_depth:
        raise ValueError(f"Unknown relationship dimension: {dimension}")
    profile.relationship_depth[key] = clamp_dial(profile.relationship_depth[key] + RELATIONSHIP_STEP)
    return profile.relationship_depth[key]


def adjust_communication_style(profile: UserNervousSystemProfile, dial: str) -> int:
    """Raise one communication-style dial by STYLE_STEP, clamped to 100."""
    if dial not in STYLE_DIALS:
        raise ValueError(f"Unknown communication style dial: {dial}")
    current = profile.communication_style.get(dial, 50)
    profile.communication_style[dial] = clamp_dial(current + STYLE_STEP)
    return profile.communication_style[dial]


def record_intervention(profile: UserNervousSystemProfile, intervention: str) -> InterventionRecord:
    """Log an intervention VERA offered; its outcome is scored on the next turn."""
    record = InterventionRecord(intervention=intervention)
    history = profile.meta_learning.intervention_history
    history.append(record)
    del history[:-INTERVENTION_HISTORY_LIMIT]
    return record


def pending_intervention(profile: UserNervousSystemProfile) -> Optional[InterventionRecord]:
    history = profile.meta_learning.intervention_history
    if history and history[-1].user_response == "no_response":
        return history[-1]
    return None


def record_intervention_feedback(
    profile: UserNervousSystemProfile,
    user_response: str,
    notes: str = "",
) -> Optional[InterventionRecord]:
    """
    Score the most recent unscored intervention.

    positive -> intervention joins what_works (and leaves what_doesnt)
    negative -> intervention joins what_doesnt (and leaves what_works)
    Effectiveness is +/- learning_rate.
    """
    record = pending_intervention(profile)
    if record is None:
        return None

    ml = profile.meta_learning
    record.user_response = user_response
    record.notes = notes

    if user_response == "positive":
        record.effectiveness = ml.learning_rate
        _ordered_union(ml.what_works, record.intervention)
        if record.intervention in ml.what_doesnt:
            ml.what_doesnt.remove(record.intervention)
    elif user_response == "negative":
        record.effectiveness = -ml.learning_rate
        _ordered_union(ml.what_doesnt, record.intervention)
        if record.intervention in ml.what_works:
            ml.what_works.remove(record.intervention)
    else:
        record.effectiveness = 0.0

    return record


def touch(profile: UserNervousSystemProfile) -> None:
    profile.last_seen = _now()


# =============================================================================
# SUMMARY
# =============================================================================

def summarize_profile(profile: UserNervousSystemProfile) -> str:
    """Short first-person summary of what VERA knows about the user."""
    parts = []

    avg = profile.relationship_average
    if avg < 30:
        parts.append("This is early in our relationship - we are still learning each other.")
    elif avg < 60:
        parts.append("We have built some mutual understanding and trust.")
    else:
        parts.append("We have a deep, established relationship.")

    if profile.somatic_patterns:
        parts.append(f"I know about {len(profile.somatic_patterns)} recurring somatic patterns.")

    if profile.meta_learning.what_works:
        parts.append(f"I know what works: {', '.join(profile.meta_learning.what_works[:2])}.")

    traits = profile.adaptive_patterns.active()[:3]
    if traits:
        parts.append(f"They tend toward: {', '.join(t.replace('_', ' ') for t in traits)}.")

    return " ".join(parts)


__all__ = [
    "SomaticPattern",
    "InterventionRecord",
    "MetaLearning",
    "ConsentBoundaries",
    "AdaptivePatterns",
    "UserNervousSystemProfile",
    "RELATIONSHIP_DIMENSIONS",
    "STYLE_DIALS",
    "RETENTION_POLICIES",
    "DEFAULT_RELATIONSHIP",
    "SOMATIC_PATTERN_FOR_CODE",
    "clamp_dial",
    "create_default_profile",
    "record_somatic_pattern",
    "deepen_relationship",
    "adjust_communication_style",
    "record_intervention",
    "pending_intervention",
    "record_intervention_feedback",
    "touch",
    "summarize_profile",
]
