# core/vera_state.py
"""
VERA Response Modes

The closed set of response strategies. Every assistant turn is produced in
exactly one of these modes; the mode router picks it and the prompt
synthesizer dispatches on it.
"""

from __future__ import annotations

from enum import Enum


class ResponseMode(str, Enum):
    """
    crisis     - fixed safety payload, no model call
    decode     - compassionate pattern analysis (needs decode consent)
    real_talk  - casual, direct, non-clinical
    companion  - full somatic companionship (default)
    """
    CRISIS = "crisis"
    DECODE = "decode"
    REAL_TALK = "real_talk"
    COMPANION = "companion"


__all__ = ["ResponseMode"]
