# backend/model_router.py
"""
VERA Model Routing

Picks the model tier for a gateway call from the response mode or task.

Model Tiers (TWO tiers only):
- MINI:     fast, cheap:   real talk, quick decision checks
- THINKING: deep reasoning: companion, decode, full decision analysis

Each tier names one OpenAI model (primary) and one Gemini model (secondary).
Model ids can be overridden from the environment:
    VERA_MODEL_MINI, VERA_MODEL_THINKING,
    VERA_GEMINI_MODEL_MINI, VERA_GEMINI_MODEL_THINKING

Logging:
    Every route() call prints to terminal:
    [ModelRouter] task=<task> tier=<tier> reason=<reason>
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set


# -----------------------------------------------------------------------------
# Model Constants
# -----------------------------------------------------------------------------

MODEL_MINI = os.getenv("VERA_MODEL_MINI", "gpt-4.1-mini")
MODEL_THINKING = os.getenv("VERA_MODEL_THINKING", "gpt-4.1")

GEMINI_FLASH_MODEL = os.getenv("VERA_GEMINI_MODEL_MINI", "gemini-1.5-flash")
GEMINI_PRO_MODEL = os.getenv("VERA_GEMINI_MODEL_THINKING", "gemini-1.5-pro")


# -----------------------------------------------------------------------------
# Model Tier Definitions
# -----------------------------------------------------------------------------

@dataclass
class ModelTier:
    """A model tier: one model id per provider plus generation limits."""
    name: str
    openai_model: str
    gemini_model: str
    max_tokens: int
    temperature: float
    description: str

    def model_for(self, provider: str) -> str:
        return self.gemini_model if provider == "gemini" else self.openai_model


TIER_MINI = ModelTier(
    name="mini",
    openai_model=MODEL_MINI,
    gemini_model=GEMINI_FLASH_MODEL,
    max_tokens=600,
    temperature=0.8,
    description="Fast, direct replies",
)

TIER_THINKING = ModelTier(
    name="thinking",
    openai_model=MODEL_THINKING,
    gemini_model=GEMINI_PRO_MODEL,
    max_tokens=1500,
    temperature=0.7,
    description="Deep, multi-paragraph companionship and analysis",
)


# -----------------------------------------------------------------------------
# Task Sets
# -----------------------------------------------------------------------------

HEAVY_TASKS: Set[str] = {
    "companion",
    "decode",
    "decision",
}

LIGHT_TASKS: Set[str] = {
    "real_talk",
    "decision_quick",
}


# -----------------------------------------------------------------------------
# Routing Context
# -----------------------------------------------------------------------------

@dataclass
class RoutingContext:
    """Context passed to ModelRouter.route() for tier selection."""
    task: Optional[str] = None
    input_length: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Model Router
# -----------------------------------------------------------------------------

class ModelRouter:
    """
    Deterministic tier selection.

    Routing Rules:
    1. task in HEAVY_TASKS → thinking
    2. task in LIGHT_TASKS → mini
    3. unknown task        → thinking (companion is the default mode)
    """

    def __init__(
        self,
        mini: Optional[ModelTier] = None,
        thinking: Optional[ModelTier] = None,
        heavy_tasks: Optional[Set[str]] = None,
        light_tasks: Optional[Set[str]] = None,
    ):
        self.mini = mini or TIER_MINI
        self.thinking = thinking or TIER_THINKING
        self.heavy_tasks = heavy_tasks or HEAVY_TASKS
        self.light_tasks = light_tasks or LIGHT_TASKS
        self._tiers = {
            "mini": self.mini,
            "thinking": self.thinking,
        }

    def route(self, ctx: Optional[RoutingContext] = None) -> ModelTier:
        if ctx is None:
            ctx = RoutingContext()

        task = (ctx.task or "").lower().strip()

        if task in self.heavy_tasks:
            tier = self.thinking
            reason = "heavy_task"
        elif task in self.light_tasks:
            tier = self.mini
            reason = "light_task"
        else:
            tier = self.thinking
            reason = "unknown_default"
            if task:
                print(
                    f"[ModelRouter] WARNING: Unknown task '{task}', defaulting to {tier.name}",
                    file=sys.stderr,
                    flush=True,
                )

        print(f"[ModelRouter] task={task or 'unknown'} tier={tier.name} reason={reason}", flush=True)
        return tier

    def list_tiers(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {
                "openai_model": tier.openai_model,
                "gemini_model": tier.gemini_model,
                "max_tokens": tier.max_tokens,
                "description": tier.description,
            }
            for name, tier in self._tiers.items()
        }


# -----------------------------------------------------------------------------
# Module-level singleton
# -----------------------------------------------------------------------------

_default_router: Optional[ModelRouter] = None


def get_router() -> ModelRouter:
    """Get or create the default ModelRouter singleton."""
    global _default_router
    if _default_router is None:
        _default_router = ModelRouter()
    return _default_router


__all__ = [
    "ModelTier",
    "ModelRouter",
    "RoutingContext",
    "TIER_MINI",
    "TIER_THINKING",
    "get_router",
]
