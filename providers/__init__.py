"""
VERA — Provider Package

External provider integrations:
- gemini_client: secondary LLM provider
- voice_client:  ElevenLabs text-to-speech
"""

from providers.gemini_client import (
    gemini_complete,
    is_gemini_available,
    get_gemini_status,
)
from providers.voice_client import (
    VoiceClient,
    VoiceError,
    VoiceNotConfiguredError,
)

__all__ = [
    "gemini_complete",
    "is_gemini_available",
    "get_gemini_status",
    "VoiceClient",
    "VoiceError",
    "VoiceNotConfiguredError",
]
