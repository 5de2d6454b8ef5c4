"""
VERA LLM Gateway

Takes a synthesized system prompt plus the user's message and returns
generated text.

- Sequential failover: primary provider (OpenAI) then secondary (Gemini)
- Explicit timeout on every provider call (VERA_LLM_TIMEOUT, default 30s)
- Timeout and network failures are provider failures like any other
- Both providers failing raises GatewayExhaustedError; callers substitute
  a local fallback reply
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


# -----------------------------------------------------------------------------
# Path Resolution
# -----------------------------------------------------------------------------

def _get_project_root() -> Path:
    """The directory above backend/, regardless of the working directory."""
    return Path(__file__).resolve().parent.parent


def _load_env_file() -> bool:
    """
    Load environment variables from .env file.

    Returns True if .env was loaded, False otherwise.
    """
    try:
        from dotenv import load_dotenv
    except ImportError:
        print("[LLM] WARNING: python-dotenv not installed", file=sys.stderr, flush=True)
        return False

    for env_path in (_get_project_root() / ".env", Path.cwd() / ".env"):
        if env_path.exists():
            load_dotenv(env_path, override=False)
            print(f"[LLM] Loaded .env from {env_path}", flush=True)
            return True

    return False


# Load env on import
_load_env_file()


# -----------------------------------------------------------------------------
# Provider Imports
# -----------------------------------------------------------------------------

import httpx
from openai import OpenAI, APIConnectionError, APITimeoutError, OpenAIError

from .model_router import ModelRouter, ModelTier, RoutingContext, get_router
from providers.gemini_client import gemini_complete


# -----------------------------------------------------------------------------
# Custom Exceptions
# -----------------------------------------------------------------------------

class LLMError(Exception):
    """Base exception for gateway errors."""
    pass


class LLMTimeoutError(LLMError):
    """A provider call timed out or failed at the network level."""
    pass


class ProviderError(LLMError):
    """A provider is unavailable, returned an error, or returned nothing usable."""
    pass


class GatewayExhaustedError(LLMError):
    """Every configured provider failed for this request."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

DEFAULT_TIMEOUT = 30.0

PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"

# provider -> LLMGateway method name
PROVIDER_CALLERS = {
    PROVIDER_OPENAI: "_call_openai",
    PROVIDER_GEMINI: "_call_gemini",
}


@dataclass
class GatewayResult:
    text: str
    provider: str
    model: str
    attempts: List[str] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Gateway
# -----------------------------------------------------------------------------

class LLMGateway:
    """
    Provider-agnostic text generation with sequential failover.

    Logs every attempt:
        [LLM] provider=<p> task=<task> model=<model>
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        router: Optional[ModelRouter] = None,
        primary: str = PROVIDER_OPENAI,
        secondary: Optional[str] = PROVIDER_GEMINI,
        openai_client: Any = None,
    ):
        self.timeout = float(timeout)
        self.router = router or get_router()
        self.providers = [p for p in (primary, secondary) if p]
        self._openai = openai_client
        unknown = [p for p in self.providers if p not in PROVIDER_CALLERS]
        if unknown:
            raise ValueError(f"Unknown LLM provider(s): {unknown}. Supported: {list(PROVIDER_CALLERS)}")

    @classmethod
    def from_config(cls, config) -> "LLMGateway":
        return cls(
            timeout=config.llm_timeout,
            primary=config.primary_provider,
            secondary=config.secondary_provider or None,
        )

    # -------------------------------------------------------------------------
    # OpenAI
    # -------------------------------------------------------------------------

    def _openai_client(self):
        if self._openai is not None:
            return self._openai
        api_key = os.getenv("OPENAI_API_KEY", "")
        if not api_key:
            raise ProviderError("OPENAI_API_KEY not set")

        key_preview = f"{api_key[:8]}...{api_key[-4:]}" if len(api_key) > 12 else "***"
        print(f"[LLM] Initializing OpenAI client with key: {key_preview} timeout={self.timeout}s", flush=True)
        self._openai = OpenAI(api_key=api_key, timeout=self.timeout)
        return self._openai

    def _call_openai(self, tier: ModelTier, system_prompt: str, user_message: str) -> str:
        model = tier.openai_model
        params: Dict[str, Any] = {"temperature": tier.temperature}
        # gpt-5 and o-series models take max_completion_tokens
        if "gpt-5" in model or model.startswith(("o1", "o3", "o4")):
            params["max_completion_tokens"] = tier.max_tokens
        else:
            params["max_tokens"] = tier.max_tokens

        try:
            client = self._openai_client()
            resp = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                timeout=self.timeout,
                **params,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI request timed out after {self.timeout}s (model={model})") from e
        except APIConnectionError as e:
            raise LLMTimeoutError(f"OpenAI connection failed (model={model}): {e}") from e
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            raise LLMTimeoutError(f"OpenAI network error (model={model}): {e}") from e
        except OpenAIError as e:
            raise ProviderError(f"OpenAI error (model={model}): {e}") from e

        try:
            text = resp.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise ProviderError(f"OpenAI returned a malformed response (model={model})") from e
        if not text.strip():
            raise ProviderError(f"OpenAI returned an empty response (model={model})")
        return text

    # -------------------------------------------------------------------------
    # Gemini
    # -------------------------------------------------------------------------

    def _call_gemini(self, tier: ModelTier, system_prompt: str, user_message: str) -> str:
        text = gemini_complete(
            system_prompt,
            user_message,
            model=tier.gemini_model,
            max_tokens=tier.max_tokens,
            temperature=tier.temperature,
            timeout=self.timeout,
        )
        if not text or not text.strip():
            raise ProviderError(f"Gemini returned no text (model={tier.gemini_model})")
        return text

    def _call_provider(self, provider: str, tier: ModelTier, system_prompt: str, user_message: str) -> str:
        """Any provider failure surfaces as an LLMError so failover always continues."""
        caller = getattr(self, PROVIDER_CALLERS[provider])
        try:
            return caller(tier, system_prompt, user_message)
        except LLMError:
            raise
        except Exception as e:
            raise ProviderError(f"{provider} failed unexpectedly: {type(e).__name__}: {e}") from e

    # -------------------------------------------------------------------------
    # MAIN ENTRY POINTS
    # -------------------------------------------------------------------------

    def complete_with_meta(
        self,
        system_prompt: str,
        user_message: str,
        task: str = "companion",
    ) -> GatewayResult:
        """
        Try each provider in order; first success wins.

        Raises:
            GatewayExhaustedError: every provider failed
        """
        tier = self.router.route(RoutingContext(task=task, input_length=len(user_message or "")))
        errors: Dict[str, str] = {}
        last_exc: Optional[Exception] = None

        for provider in self.providers:
            model = tier.model_for(provider)
            print(f"[LLM] provider={provider} task={task} model={model}", flush=True)
            try:
                text = self._call_provider(provider, tier, system_prompt, user_message)
            except LLMError as e:
                errors[provider] = str(e)
                last_exc = e
                print(f"[LLM] FAILED provider={provider} error={e}", file=sys.stderr, flush=True)
                continue
            return GatewayResult(text=text, provider=provider, model=model, attempts=list(errors) + [provider])

        raise GatewayExhaustedError(
            f"All LLM providers failed: {', '.join(self.providers) or 'none configured'}",
            errors=errors,
        ) from last_exc

    def complete(self, system_prompt: str, user_message: str, task: str = "companion") -> str:
        """Generated text only. Raises GatewayExhaustedError like complete_with_meta."""
        return self.complete_with_meta(system_prompt, user_message, task=task).text

    def status(self) -> Dict[str, Any]:
        return {
            "providers": list(self.providers),
            "timeout": self.timeout,
            "openai_key_set": bool(os.getenv("OPENAI_API_KEY")),
            "tiers": self.router.list_tiers(),
        }


__all__ = [
    "LLMGateway",
    "GatewayResult",
    "LLMError",
    "LLMTimeoutError",
    "ProviderError",
    "GatewayExhaustedError",
]
