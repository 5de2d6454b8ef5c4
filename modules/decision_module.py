# modules/decision_module.py
"""
VERA Decision Module

Structured analysis of a single decision the user is weighing.

- Heuristic flags: urgency, complexity, category, people-pleasing traps,
  boundary needs, energy required
- Model analysis through the LLM gateway (task "decision"), parsed into
  pros / cons / risk / recommendation
- Quick local analysis when the gateway is unavailable
"""

import re
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from backend.llm_client import LLMError


# -----------------------------------------------------------------------------
# Heuristics
# -----------------------------------------------------------------------------

URGENT = re.compile(r"\b(urgent|asap|immediately|today|now|emergency|deadline)\b", re.IGNORECASE)
SOON = re.compile(r"\b(tomorrow|week|soon|quickly)\b", re.IGNORECASE)

COMPLEXITY_FACTORS = [
    re.compile(r"\bmillion|\bM\b"),
    re.compile(r"\bteam\b.*\brestructure\b", re.IGNORECASE),
    re.compile(r"\bstrategy\b", re.IGNORECASE),
    re.compile(r"\bpartnership\b", re.IGNORECASE),
    re.compile(r"\bacquisition\b", re.IGNORECASE),
    re.compile(r"\bpivot\b", re.IGNORECASE),
]

# First match wins
CATEGORIES = [
    ("personnel", re.compile(r"\b(hire|fire|team|staff|employee)\b", re.IGNORECASE)),
    ("financial", re.compile(r"\b(invest|budget|cost|price|revenue|profit)\b", re.IGNORECASE)),
    ("creative", re.compile(r"\b(design|aesthetic|style|interior|exterior)\b", re.IGNORECASE)),
    ("relationship", re.compile(r"\b(partner|client|vendor|supplier)\b", re.IGNORECASE)),
    ("strategic", re.compile(r"\b(strategy|direction|pivot|expand)\b", re.IGNORECASE)),
]

PEOPLE_PLEASING = re.compile(
    r"\b(they want|expecting me|should i|have to|supposed to|disappoint|feel bad)\b",
    re.IGNORECASE,
)
BOUNDARY_NEED = [
    re.compile(r"\b(working|work)\b.*\b(weekend|evening|night)\b", re.IGNORECASE),
    re.compile(r"\b(extra|favor|one more|quick)\b", re.IGNORECASE),
]


def determine_urgency(decision: str) -> str:
    if URGENT.search(decision):
        return "high"
    if SOON.search(decision):
        return "medium"
    return "low"


def determine_complexity(decision: str) -> str:
    matches = sum(1 for p in COMPLEXITY_FACTORS if p.search(decision))
    if matches >= 3:
        return "high"
    if matches >= 1:
        return "medium"
    return "low"


def categorize_decision(decision: str) -> str:
    for category, pattern in CATEGORIES:
        if pattern.search(decision):
            return category
    return "operational"


def detect_people_pleasing(decision: str) -> bool:
    return bool(PEOPLE_PLEASING.search(decision))


def detect_boundary_need(decision: str) -> bool:
    return any(p.search(decision) for p in BOUNDARY_NEED)


def estimate_energy_required(complexity: str, urgency: str) -> str:
    if "high" in (complexity, urgency):
        return "high"
    if "medium" in (complexity, urgency):
        return "medium"
    return "low"


def analysis_depth(energy: Optional[str], complexity: str) -> str:
    if energy == "low":
        return "essential"
    if complexity == "high":
        return "comprehensive"
    return "focused"


def decline_template(decision: str) -> str:
    if detect_people_pleasing(decision):
        return "This doesn't align with my current priorities. The answer is no."
    if detect_boundary_need(decision):
        return "My schedule doesn't accommodate this. Alternative: [someone else or a later date]."
    return "After thinking it through, this isn't worth the cost right now. I'm declining."


# -----------------------------------------------------------------------------
# Analysis
# -----------------------------------------------------------------------------

@dataclass
class DecisionAnalysis:
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)
    roi: str = "TBD"
    risk: str = "medium"
    timeline: str = "TBD"
    recommendation: str = ""
    confidence: int = 75
    alternatives: List[str] = field(default_factory=list)
    flags: Dict[str, Any] = field(default_factory=dict)
    decline_template: Optional[str] = None
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "pros": list(self.pros),
            "cons": list(self.cons),
            "roi": self.roi,
            "risk": self.risk,
            "timeline": self.timeline,
            "recommendation": self.recommendation,
            "confidence": self.confidence,
            "alternatives": list(self.alternatives),
            "intelligence_flags": dict(self.flags),
            "used_fallback": self.used_fallback,
        }
        if self.decline_template:
            data["decline_template"] = self.decline_template
        return data


def intelligence_flags(decision: str) -> Dict[str, Any]:
    urgency = determine_urgency(decision)
    complexity = determine_complexity(decision)
    return {
        "is_people_pleasing": detect_people_pleasing(decision),
        "requires_boundary": detect_boundary_need(decision),
        "is_urgent": urgency == "high",
        "urgency": urgency,
        "complexity": complexity,
        "decision_type": categorize_decision(decision),
        "energy_required": estimate_energy_required(complexity, urgency),
    }


def _strip_bullet(line: str) -> str:
    return re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip()


def _after_colon(line: str) -> str:
    return line.split(":", 1)[1].strip() if ":" in line else ""


def parse_analysis(text: str) -> DecisionAnalysis:
    """Parse the model's PROS/CONS/ROI/RISK/... layout. Missing parts get defaults."""
    analysis = DecisionAnalysis()
    section = ""

    for line in (l for l in (text or "").splitlines() if l.strip()):
        upper = line.upper()
        if "PROS:" in upper or "PRO:" in upper:
            section = "pros"
        elif "CONS:" in upper or "CON:" in upper:
            section = "cons"
        elif "ROI:" in upper:
            analysis.roi = _after_colon(line) or "TBD"
        elif "RISK:" in upper:
            risk = _after_colon(line).lower()
            analysis.risk = "low" if "low" in risk else "high" if "high" in risk else "medium"
        elif "TIMELINE:" in upper:
            analysis.timeline = _after_colon(line) or "TBD"
        elif "RECOMMENDATION:" in upper:
            analysis.recommendation = _after_colon(line)
            section = "recommendation"
        elif "CONFIDENCE:" in upper:
            m = re.search(r"\d+", line)
            analysis.confidence = min(100, int(m.group())) if m else 75
        elif "ALTERNATIVES:" in upper:
            section = "alternatives"
        elif section in ("pros", "cons", "alternatives") and ":" not in line:
            getattr(analysis, section).append(_strip_bullet(line))
        elif section == "recommendation":
            analysis.recommendation = f"{analysis.recommendation} {line.strip()}".strip()

    if not analysis.pros:
        analysis.pros = ["Potential for growth", "Aligns with your goals"]
    if not analysis.cons:
        analysis.cons = ["Requires time investment", "Opportunity cost"]
    if not analysis.recommendation:
        analysis.recommendation = "Proceed with caution. Gather more data."

    analysis.pros = analysis.pros[:4]
    analysis.cons = analysis.cons[:4]
    analysis.alternatives = analysis.alternatives[:3]
    return analysis


def quick_analysis(decision: str) -> DecisionAnalysis:
    """Local analysis used when no model is reachable."""
    flags = intelligence_flags(decision)
    analysis = DecisionAnalysis(
        pros=[
            "Could open new opportunities",
            "May align with your growth goals",
        ],
        cons=[
            "Requires real time and energy",
            "May pull focus from current priorities",
            "Return is unclear",
        ],
        roi="Requires further analysis",
        risk="medium",
        timeline="Set a decision deadline for next week",
        recommendation="Gather more data before committing. Set a deadline for deciding.",
        confidence=60,
        alternatives=[
            "Try a small pilot first",
            "Delegate the initial research",
            "Revisit it later",
        ],
        flags=flags,
        used_fallback=True,
    )
    if flags["is_people_pleasing"] or flags["requires_boundary"]:
        analysis.decline_template = decline_template(decision)
    return analysis


def build_decision_prompt(decision: str, energy: Optional[str] = None,
                          biometrics: Optional[Dict[str, Any]] = None) -> str:
    urgency = determine_urgency(decision)
    complexity = determine_complexity(decision)
    depth = analysis_depth(energy, complexity)

    lines = [
        "You are VERA, analyzing one decision for the user.",
        "",
        "DECISION CONTEXT:",
        f"- Urgency: {urgency}",
        f"- Complexity: {complexity}",
        f"- Type: {categorize_decision(decision)}",
        f"- Analysis depth: {depth}",
        f"- User energy: {energy or 'unknown'}",
    ]
    if (biometrics or {}).get("stress") == "high":
        lines.append("- HIGH STRESS DETECTED: keep the analysis ultra-brief")

    lines += [
        "",
        "ANALYSIS FRAMEWORK:",
        "1. Extract the actual decision (not what others want)",
        "2. Identify whether this is the user's decision or someone else's",
        "3. Calculate the true cost (time, energy, opportunity)",
        "4. Detect people-pleasing traps",
        "5. Give a clear recommendation",
        "",
    ]
    if depth == "essential":
        lines.append("ESSENTIAL MODE: 2 pros, 2 cons, a one-line recommendation only.")
    if urgency == "high":
        lines.append("URGENT: skip to the recommendation.")
    if complexity == "high":
        lines.append("COMPLEX: include alternatives and second-order effects.")

    lines += [
        "",
        "FORMAT:",
        "PROS: (max 4, specific)",
        "CONS: (max 4, honest about costs)",
        "ROI: (a clear metric)",
        "RISK: (Low/Medium/High with a one-line reason)",
        "TIMELINE: (specific)",
        "ALTERNATIVES: (only if complexity is high)",
        "RECOMMENDATION: (direct, no hedging)",
        "CONFIDENCE: (percentage)",
        "",
        'If this is a people-pleasing trap, lead with: "This is not your decision to make."',
        "If this requires saying no, give the exact wording.",
    ]
    return "\n".join(lines)


def _recommends_no(recommendation: str) -> bool:
    return bool(re.search(r"\b(don't|do not|no|decline)\b", recommendation, re.IGNORECASE))


def analyze_decision(
    decision: str,
    gateway=None,
    energy: Optional[str] = None,
    biometrics: Optional[Dict[str, Any]] = None,
) -> DecisionAnalysis:
    """
    Analyze a decision with the model, falling back to quick_analysis when
    no gateway is given or every provider fails.
    """
    decision = (decision or "").strip()
    if not decision:
        raise ValueError("decision is required")

    if gateway is None:
        return quick_analysis(decision)

    prompt = build_decision_prompt(decision, energy, biometrics)
    try:
        text = gateway.complete(prompt, f"Analyze this decision: {decision}", task="decision")
    except LLMError as e:
        print(f"[Decision] gateway failed, using quick analysis: {e}", file=sys.stderr, flush=True)
        return quick_analysis(decision)

    analysis = parse_analysis(text)
    analysis.flags = intelligence_flags(decision)
    if _recommends_no(analysis.recommendation):
        analysis.decline_template = decline_template(decision)
    return analysis


__all__ = [
    "DecisionAnalysis",
    "analyze_decision",
    "quick_analysis",
    "parse_analysis",
    "build_decision_prompt",
    "intelligence_flags",
    "determine_urgency",
    "determine_complexity",
    "categorize_decision",
    "detect_people_pleasing",
    "detect_boundary_need",
    "estimate_energy_required",
    "decline_template",
]
