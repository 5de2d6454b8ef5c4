# kernel/__init__.py
"""
VERA Kernel Package

Pure classification and memory layers, leaves first:
- adaptive_codes      : lexical pattern detector
- crisis_protocol     : crisis gate + fixed resource payload
- quantum_state       : nervous-system state calculator
- nervous_profile     : user profile model and mutation rules
- profile_store       : profile persistence, retention and decay
- session_registry    : bounded per-session history with per-key locks
- fallback_responses  : local replies when every LLM provider fails
- utils/              : KV storage backends
"""

from .adaptive_codes import AdaptiveCode, CodeTag, detect_codes
from .crisis_protocol import CrisisCategory, CrisisVerdict, classify_crisis, CRISIS_RESOURCE_PAYLOAD
from .quantum_state import QuantumEmotionalState, NervousState, Emotion, compute_state, describe_state

__all__ = [
    "AdaptiveCode",
    "CodeTag",
    "detect_codes",
    "CrisisCategory",
    "CrisisVerdict",
    "classify_crisis",
    "CRISIS_RESOURCE_PAYLOAD",
    "QuantumEmotionalState",
    "NervousState",
    "Emotion",
    "compute_state",
    "describe_state",
]
