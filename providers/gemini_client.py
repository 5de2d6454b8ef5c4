# providers/gemini_client.py
"""
VERA — Gemini Provider

Secondary LLM provider for the gateway:
- gemini_complete() - one system prompt + one user message -> text

- Reads GEMINI_API_KEY from environment (on first use, after .env is loaded)
- Silent failure: returns None and logs, the gateway decides what happens next
- Explicit per-request timeout
"""

import os
import sys
from typing import Any, Dict, Optional

# Gemini SDK import (optional)
try:
    import google.generativeai as genai
    _HAS_GEMINI = True
except ImportError:
    _HAS_GEMINI = False
    genai = None


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

GEMINI_TIMEOUT = 30  # seconds

_gemini_ready: Optional[bool] = None


def _gemini_enabled() -> bool:
    return os.getenv("GEMINI_ENABLED", "true").lower() in ("true", "1", "yes")


# -----------------------------------------------------------------------------
# Initialization
# -----------------------------------------------------------------------------

def _init_gemini() -> bool:
    """Configure the SDK if available, enabled and keyed."""
    if not _HAS_GEMINI:
        print("[GeminiClient] google-generativeai not installed", file=sys.stderr, flush=True)
        return False

    if not _gemini_enabled():
        print("[GeminiClient] Gemini disabled via GEMINI_ENABLED=false", flush=True)
        return False

    api_key = os.getenv("GEMINI_API_KEY", "")
    if not api_key:
        print("[GeminiClient] GEMINI_API_KEY not set", file=sys.stderr, flush=True)
        return False

    try:
        genai.configure(api_key=api_key)
        key_preview = f"{api_key[:8]}...{api_key[-4:]}" if len(api_key) > 12 else "***"
        print(f"[GeminiClient] Initialized with key: {key_preview}", flush=True)
        return True
    except Exception as e:
        print(f"[GeminiClient] Init failed: {e}", file=sys.stderr, flush=True)
        return False


def is_gemini_available() -> bool:
    """Check if Gemini is available and ready (initializes on first call)."""
    global _gemini_ready
    if _gemini_ready is None:
        _gemini_ready = _init_gemini()
    return _gemini_ready


# -----------------------------------------------------------------------------
# Completion
# -----------------------------------------------------------------------------

def gemini_complete(
    system_prompt: str,
    user_message: str,
    model: str,
    max_tokens: int = 1024,
    temperature: float = 0.7,
    timeout: float = GEMINI_TIMEOUT,
) -> Optional[str]:
    """
    Generate a reply with Gemini.

    Returns:
        The generated text, or None on any failure (not ready, timeout,
        blocked or empty response).
    """
    if not is_gemini_available():
        print("[GeminiClient] gemini_complete: Not ready (disabled or no key)", flush=True)
        return None

    print(f"[GeminiClient] gemini_complete: model={model}", flush=True)

    try:
        client = genai.GenerativeModel(model, system_instruction=system_prompt)
        response = client.generate_content(
            user_message,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
            request_options={"timeout": timeout},
        )

        text = response.text if response else ""
        if not text:
            print("[GeminiClient] gemini_complete: Empty response", file=sys.stderr, flush=True)
            return None

        print("[GeminiClient] gemini_complete: SUCCESS", flush=True)
        return text

    except Exception as e:
        # response.text raises ValueError when the candidate was blocked
        print(f"[GeminiClient] gemini_complete ERROR: {e}", file=sys.stderr, flush=True)
        return None


def get_gemini_status() -> Dict[str, Any]:
    """Get detailed Gemini status for debugging."""
    return {
        "available": bool(_gemini_ready),
        "sdk_installed": _HAS_GEMINI,
        "enabled": _gemini_enabled(),
        "api_key_set": bool(os.getenv("GEMINI_API_KEY")),
    }


__all__ = [
    "gemini_complete",
    "is_gemini_available",
    "get_gemini_status",
    "GEMINI_TIMEOUT",
]
