# core/__init__.py
"""
VERA Core — Response modes, mode routing and the session engine.

Every inbound message goes through core.session_engine.SessionEngine,
which picks one of four response modes:
- crisis:    fixed resource payload, no model call
- decode:    compassionate pattern analysis
- real_talk: direct, brief practical answers
- companion: somatic, co-regulating support (default)

The engine is imported from core.session_engine directly; it depends on
persona/, which itself imports core.vera_state.
"""

from .vera_state import ResponseMode
from .mode_router import ModeDecision, DecodeRequest, select_mode, detect_decode_request, detect_mode_switch

__all__ = [
    "ResponseMode",
    "ModeDecision",
    "DecodeRequest",
    "select_mode",
    "detect_decode_request",
    "detect_mode_switch",
]
