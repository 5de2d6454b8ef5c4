# providers/voice_client.py
"""
VERA — Voice Provider (ElevenLabs)

Text-to-speech for assistant replies.

- ELEVENLABS_API_KEY from environment; ELEVENLABS_VOICE_ID optional
- Voice style (calm / urgent / warm / firm) selects voice settings
- Markdown stripped and common abbreviations spelled out before synthesis
- Text capped at MAX_TEXT_CHARS
- Synchronous httpx call with explicit timeout
"""

import os
import re
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"
ELEVENLABS_MODEL = "eleven_turbo_v2_5"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"

VOICE_TIMEOUT = 30  # seconds
MAX_TEXT_CHARS = 5000

VOICE_STYLES = ("calm", "urgent", "warm", "firm")

# style -> (stability, similarity_boost, style)
VOICE_SETTINGS = {
    "calm": (0.75, 0.75, 0.3),
    "urgent": (0.5, 0.8, 0.6),
    "warm": (0.6, 0.7, 0.5),
    "firm": (0.85, 0.85, 0.2),
}

ABBREVIATIONS = [
    (re.compile(r"\bCEO\b"), "C E O"),
    (re.compile(r"\bROI\b"), "R O I"),
    (re.compile(r"\bASAP\b"), "A S A P"),
    (re.compile(r"\bFYI\b"), "F Y I"),
    (re.compile(r"\bEOD\b"), "end of day"),
    (re.compile(r"\bQ1\b"), "first quarter"),
    (re.compile(r"\bQ2\b"), "second quarter"),
    (re.compile(r"\bQ3\b"), "third quarter"),
    (re.compile(r"\bQ4\b"), "fourth quarter"),
]


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------

class VoiceError(Exception):
    """Voice synthesis failed. status_code mirrors the provider's HTTP status when known."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class VoiceNotConfiguredError(VoiceError):
    def __init__(self, message: str = "Voice synthesis not configured"):
        super().__init__(message, status_code=503)


# -----------------------------------------------------------------------------
# Text Preparation
# -----------------------------------------------------------------------------

def preprocess_text(text: str) -> str:
    """Strip markdown, spell out abbreviations, add speech pauses, cap length."""
    text = re.sub(r"[*#`_]", "", text or "")
    for pattern, spoken in ABBREVIATIONS:
        text = pattern.sub(spoken, text)

    text = re.sub(r"([.?!]) ", r"\1 ... ", text)
    text = re.sub(r": ", ": .. ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text[:MAX_TEXT_CHARS]


def voice_settings_for(style: str, speed: float = 1.0) -> Dict[str, Any]:
    stability, similarity, expressiveness = VOICE_SETTINGS.get(style, VOICE_SETTINGS["calm"])
    return {
        "stability": stability,
        "similarity_boost": similarity,
        "style": expressiveness,
        "use_speaker_boost": True,
        "speed": speed,
    }


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------

@dataclass
class VoiceResult:
    audio: bytes
    voice_id: str
    voice_style: str
    content_type: str = "audio/mpeg"


class VoiceClient:
    """
    ElevenLabs text-to-speech client.

    Usage:
        client = VoiceClient()
        audio = client.synthesize("I'm here with you.", voice_style="warm")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        timeout: float = VOICE_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("ELEVENLABS_API_KEY", "")
        self.voice_id = voice_id or os.getenv("ELEVENLABS_VOICE_ID", DEFAULT_VOICE_ID)
        self.timeout = timeout
        self._http = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(base_url=ELEVENLABS_BASE_URL, timeout=self.timeout)
        return self._http

    def synthesize(self, text: str, voice_style: str = "calm", speed: float = 1.0) -> bytes:
        return self.synthesize_result(text, voice_style, speed).audio

    def synthesize_result(self, text: str, voice_style: str = "calm", speed: float = 1.0) -> VoiceResult:
        """
        Raises:
            VoiceNotConfiguredError: no API key
            VoiceError: empty text, provider error status, or network failure
        """
        if not self.is_configured:
            raise VoiceNotConfiguredError()

        cleaned = preprocess_text(text)
        if not cleaned:
            raise VoiceError("No text to synthesize", status_code=400)

        if voice_style not in VOICE_SETTINGS:
            voice_style = "calm"

        print(f"[Voice] synthesize chars={len(cleaned)} style={voice_style}", flush=True)

        try:
            response = self._client().post(
                f"/text-to-speech/{self.voice_id}",
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": cleaned,
                    "model_id": ELEVENLABS_MODEL,
                    "voice_settings": voice_settings_for(voice_style, speed),
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            print(f"[Voice] TIMEOUT after {self.timeout}s: {e}", file=sys.stderr, flush=True)
            raise VoiceError("Voice synthesis timed out", status_code=504) from e
        except httpx.HTTPError as e:
            print(f"[Voice] NETWORK ERROR: {e}", file=sys.stderr, flush=True)
            raise VoiceError(f"Voice synthesis failed: {e}", status_code=502) from e

        if response.status_code != 200:
            print(f"[Voice] ElevenLabs error {response.status_code}: {response.text[:200]}",
                  file=sys.stderr, flush=True)
            if response.status_code == 401:
                raise VoiceError("Invalid API key", status_code=401)
            if response.status_code == 429:
                raise VoiceError("Rate limit exceeded. Please wait.", status_code=429)
            if response.status_code == 400:
                raise VoiceError("Text too long or invalid", status_code=400)
            raise VoiceError(f"Voice synthesis failed: {response.status_code}", status_code=502)

        print(f"[Voice] audio generated bytes={len(response.content)}", flush=True)
        return VoiceResult(audio=response.content, voice_id=self.voice_id, voice_style=voice_style)

    def status(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured,
            "voice_id": self.voice_id,
            "styles": list(VOICE_STYLES),
        }

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None


__all__ = [
    "VoiceClient",
    "VoiceResult",
    "VoiceError",
    "VoiceNotConfiguredError",
    "preprocess_text",
    "voice_settings_for",
    "VOICE_STYLES",
    "MAX_TEXT_CHARS",
]
