# backend/callsim/agents/coaching.py
"""
Templated coaching feedback built from a scored breakdown.

The breakdown is any mapping of metric key -> object exposing
name/score/weight. Detailed analysis is the plain-dict output of the
deterministic pass.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from callsim.agents.catalog import CallType, PersonaLevel
from callsim.agents.metrics_calculator import (
    IMPROVEMENT_THRESHOLD,
    STRENGTH_THRESHOLD,
    improvement_priority,
    target_score,
)

PARTIAL_ANALYSIS_PREFIX = "Partial analysis:"
PARTIAL_ANALYSIS_NOTE = (
    f"{PARTIAL_ANALYSIS_PREFIX} AI grading was unavailable, "
    "so every score below comes from transcript heuristics."
)

MAX_ITEMS = 3

STRENGTH_DESCRIPTIONS = {
    "talk_ratio": "maintain an ideal conversation balance",
    "discovery": "ask insightful discovery questions",
    "objection_handling": "handle objections professionally",
    "confidence": "project confidence and authority",
    "cta": "drive clear next steps",
}

IMPROVEMENT_DESCRIPTIONS = {
    "talk_ratio": "conversation balance and listening skills",
    "discovery": "discovery questioning techniques",
    "objection_handling": "objection handling strategies",
    "confidence": "confidence and executive presence",
    "cta": "closing and next step clarity",
}

STRENGTH_OBSERVATIONS = {
    "talk_ratio": {
        "excellent": "Maintained perfect balance between talking and listening",
        "good": "Good conversation flow with appropriate talk time",
    },
    "discovery": {
        "excellent": "Asked powerful, open-ended questions that uncovered deep business needs",
        "good": "Solid discovery process covering key areas",
    },
    "objection_handling": {
        "excellent": "Handled every objection with professional technique and empathy",
        "good": "Addressed most objections effectively",
    },
    "confidence": {
        "excellent": "Projected strong executive presence and guided conversation masterfully",
        "good": "Demonstrated good confidence and control",
    },
    "cta": {
        "excellent": "Secured clear, specific next steps with strong mutual commitment",
        "good": "Established clear follow-up actions",
    },
}

STRENGTH_EXAMPLES = {
    "talk_ratio": "Rep asked a question and then stayed quiet for the full answer",
    "discovery": 'Rep asked "What impact does this have on your revenue?"',
    "objection_handling": "Rep used feel-felt-found technique on budget objection",
    "confidence": "Rep confidently redirected conversation when prospect went off-topic",
    "cta": "Rep proposed specific date/time for demo with clear agenda",
}

IMPROVEMENT_ISSUES = {
    "talk_ratio": {
        "poor": "Dominated conversation, preventing prospect from sharing",
        "average": "Talk ratio imbalanced, limiting discovery opportunity",
    },
    "discovery": {
        "poor": "Asked mostly closed questions, missing business context",
        "average": "Surface-level discovery, not uncovering real pain",
    },
    "objection_handling": {
        "poor": "Became defensive or avoided addressing concerns",
        "average": "Incomplete objection handling, missing key steps",
    },
    "confidence": {
        "poor": "Excessive filler words and hesitation undermined credibility",
        "average": "Some uncertainty evident in delivery",
    },
    "cta": {
        "poor": "No clear next steps established",
        "average": "Vague commitment without specifics",
    },
}

IMPROVEMENT_SUGGESTIONS = {
    "talk_ratio": "After asking a question, count to 3 before speaking again. Let silence work for you.",
    "discovery": "Use SPIN questions: Situation, then Problem, then Implication, then Need-Payoff",
    "objection_handling": "Always acknowledge, clarify the concern, respond with evidence, then confirm",
    "confidence": "Record yourself and eliminate filler words. Practice your core value prop daily.",
    "cta": "Always end with specific date, time, participants, and agenda for next step",
}

IMPROVEMENT_EXAMPLES = {
    "talk_ratio": "Rep interrupted prospect 3 times during explanation",
    "discovery": 'Rep asked "Do you have budget?" instead of exploring value first',
    "objection_handling": 'When prospect said "too expensive", rep immediately offered discount',
    "confidence": 'Rep said "um" 15 times and "like" 8 times in 5 minutes',
    "cta": "Rep ended with \"I'll send you some information\" - no commitment",
}

SKILL_NAMES = {
    "talk_ratio": "Active Listening",
    "discovery": "Discovery Questioning",
    "objection_handling": "Objection Management",
    "confidence": "Executive Presence",
    "cta": "Closing Techniques",
}

PRACTICE_EXERCISES = {
    "talk_ratio": 'Practice the "70/30 rule" - aim for prospect talking 70% in discovery calls',
    "discovery": "Write 20 open-ended questions for your product. Practice 5 daily.",
    "objection_handling": "Role-play top 5 objections using the 4-step process",
    "confidence": "Record 2-minute pitch daily. Count and eliminate filler words.",
    "cta": "Practice 10 different ways to ask for the next meeting",
}


@dataclass(frozen=True)
class CoachingFeedback:
    summary: str
    strengths: Tuple[Dict[str, Any], ...] = ()
    improvements: Tuple[Dict[str, Any], ...] = ()
    missed_opportunities: Tuple[Dict[str, Any], ...] = ()
    next_call_prep: Tuple[Dict[str, Any], ...] = ()
    practice_recommendations: Tuple[Dict[str, Any], ...] = ()
    motivation: Mapping[str, str] = field(default_factory=dict)
    # Enrichment from the generative pass, empty in partial mode
    ai_strengths: Tuple[str, ...] = ()
    ai_improvements: Tuple[Dict[str, Any], ...] = ()
    coaching_notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "strengths": [dict(s) for s in self.strengths],
            "improvements": [dict(i) for i in self.improvements],
            "missed_opportunities": [dict(m) for m in self.missed_opportunities],
            "next_call_prep": [dict(p) for p in self.next_call_prep],
            "practice_recommendations": [dict(r) for r in self.practice_recommendations],
            "motivation": dict(self.motivation),
            "ai_strengths": list(self.ai_strengths),
            "ai_improvements": [dict(i) for i in self.ai_improvements],
            "coaching_notes": self.coaching_notes,
        }


def performance_level(score: float) -> str:
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "average"
    return "poor"


def _ranked(breakdown: Mapping[str, Any], descending: bool) -> List[Tuple[str, Any]]:
    # sorted() is stable, so ties keep breakdown order
    return sorted(breakdown.items(), key=lambda kv: kv[1].score, reverse=descending)


def top_strength(breakdown: Mapping[str, Any]) -> str:
    if not breakdown:
        return "demonstrate sales skills"
    key, _ = _ranked(breakdown, descending=True)[0]
    return STRENGTH_DESCRIPTIONS.get(key, "demonstrate sales skills")


def top_improvement(breakdown: Mapping[str, Any]) -> str:
    if not breakdown:
        return "core sales skills"
    key, _ = _ranked(breakdown, descending=False)[0]
    return IMPROVEMENT_DESCRIPTIONS.get(key, "core sales skills")


def build_summary(
    overall_score: float,
    breakdown: Mapping[str, Any],
    call_type: CallType,
    persona_level: PersonaLevel,
) -> str:
    shown = round(overall_score)
    ct, level = call_type.value, persona_level.value
    performance = performance_level(overall_score)

    if performance == "excellent":
        return (
            f"Outstanding {ct} call performance! You demonstrated mastery in engaging a {level}-level "
            f"prospect with a score of {shown}/100. Your ability to {top_strength(breakdown)} "
            f"was particularly impressive."
        )
    if performance == "good":
        return (
            f"Good {ct} call with a {level}-level prospect, scoring {shown}/100. You showed solid "
            f"fundamentals, particularly in your ability to {top_strength(breakdown)}. "
            f"Focus on {top_improvement(breakdown)} to reach the next level."
        )
    if performance == "average":
        return (
            f"This {ct} call with a {level}-level prospect scored {shown}/100, showing room for growth. "
            f"While you {top_strength(breakdown)}, working on {top_improvement(breakdown)} "
            f"will significantly improve your results."
        )
    return (
        f"This {ct} call needs significant improvement, scoring {shown}/100. Engaging {level}-level "
        f"prospects requires stronger {top_improvement(breakdown)}. "
        f"Let's focus on building these fundamental skills."
    )


def build_strengths(breakdown: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for key, metric in breakdown.items():
        if metric.score < STRENGTH_THRESHOLD:
            continue
        level = "excellent" if metric.score >= 90 else "good"
        out.append({
            "category": key,
            "observation": STRENGTH_OBSERVATIONS.get(key, {}).get(level, "Performed well in this area"),
            "example": STRENGTH_EXAMPLES.get(key, "Demonstrated strong technique"),
        })
    return out[:MAX_ITEMS]


def build_improvements(breakdown: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for key, metric in _ranked(breakdown, descending=False):
        if metric.score >= IMPROVEMENT_THRESHOLD:
            continue
        level = "poor" if metric.score < 50 else "average"
        out.append({
            "category": key,
            "issue": IMPROVEMENT_ISSUES.get(key, {}).get(level, "Needs improvement in this area"),
            "suggestion": IMPROVEMENT_SUGGESTIONS.get(key, "Focus on improving this skill"),
            "example": IMPROVEMENT_EXAMPLES.get(key, "See transcript for specific examples"),
            "priority": improvement_priority(metric.score),
        })
    return out[:MAX_ITEMS]


def build_missed_opportunities(detailed: Mapping[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for opportunity in detailed.get("discovery", {}).get("missed_opportunities", []):
        out.append({
            "moment": "During discovery",
            "what_happened": opportunity,
            "suggestion": "Ask follow-up questions to uncover deeper business impact",
            "impact": "Would have revealed critical pain points and built stronger business case",
        })

    for obj in detailed.get("objection_handling", {}).get("objections", []):
        if obj.get("effectiveness") in ("poor", "fair"):
            out.append({
                "moment": f'When prospect said "{obj.get("objection", "")}"',
                "what_happened": "Objection not fully addressed",
                "suggestion": "Use acknowledge-clarify-respond-confirm technique",
                "impact": "Would have built trust and moved conversation forward",
            })
    return out[:MAX_ITEMS]


def build_next_call_prep(
    breakdown: Mapping[str, Any],
    detailed: Mapping[str, Any],
    persona_level: PersonaLevel,
) -> List[Dict[str, Any]]:
    prep = []
    if not detailed.get("cta", {}).get("cta_present", False):
        prep.append({
            "topic": "Clear next steps",
            "action": "Prepare specific meeting agenda and value proposition",
            "rationale": "No clear next steps were established in this call",
        })

    discovery = breakdown.get("discovery")
    if discovery is not None and discovery.score < IMPROVEMENT_THRESHOLD:
        prep.append({
            "topic": "Discovery preparation",
            "action": f"Prepare {persona_level.value}-appropriate discovery questions focused on business impact",
            "rationale": "Discovery was surface-level and missed key business drivers",
        })

    objections = breakdown.get("objection_handling")
    if objections is not None and objections.score < IMPROVEMENT_THRESHOLD:
        prep.append({
            "topic": "Objection responses",
            "action": "Prepare specific responses for common objections using customer success stories",
            "rationale": "Several objections were not effectively addressed",
        })
    return prep


def build_practice_recommendations(breakdown: Mapping[str, Any]) -> List[Dict[str, Any]]:
    recs = []
    for key, metric in _ranked(breakdown, descending=False)[:2]:
        recs.append({
            "skill": SKILL_NAMES.get(key, key),
            "exercise": PRACTICE_EXERCISES.get(key, "Practice this skill daily"),
            "target_metric": (
                f"Improve {metric.name} score from {round(metric.score)} "
                f"to {round(target_score(metric.score))}"
            ),
        })
    return recs


def motivation_notes(score: float) -> Dict[str, str]:
    return {
        "motivation": (
            "Keep up the great work! You're on track to mastery."
            if score >= 70
            else "Every expert was once a beginner. Focus on one skill at a time."
        ),
        "encouragement": (
            "You're in the top tier of sales professionals!"
            if score >= 85
            else "Consistent practice on these areas will dramatically improve your results."
        ),
        "next_level": (
            "To reach elite status, focus on the subtle details and advanced techniques."
            if score >= 70
            else "Master the fundamentals first, then layer in advanced strategies."
        ),
    }


def _ai_improvements(raw: Any) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(raw, list):
        return ()
    items = []
    for item in raw:
        if isinstance(item, dict) and isinstance(item.get("issue"), str):
            items.append({
                "issue": item["issue"],
                "example": str(item.get("example", "")),
                "suggestion": str(item.get("suggestion", "")),
                "priority": item.get("priority") if item.get("priority") in ("low", "medium", "high") else "medium",
            })
    return tuple(items)


def generate_coaching_feedback(
    overall_score: float,
    breakdown: Mapping[str, Any],
    detailed: Mapping[str, Any],
    call_type: CallType,
    persona_level: PersonaLevel,
    partial: bool = False,
    generative: Optional[Mapping[str, Any]] = None,
) -> CoachingFeedback:
    """
    Assemble the coaching block.

    When partial is set the summary is prefixed so the result is never
    presented as a full AI-graded report. A validated generative payload
    adds its strengths, improvements and coaching notes alongside the
    templated items.
    """
    summary = build_summary(overall_score, breakdown, call_type, persona_level)
    if partial:
        summary = f"{PARTIAL_ANALYSIS_NOTE} {summary}"

    ai_strengths: Tuple[str, ...] = ()
    ai_improvements: Tuple[Dict[str, Any], ...] = ()
    notes = ""
    if generative:
        ai_strengths = tuple(s for s in generative.get("strengths", []) if isinstance(s, str))
        ai_improvements = _ai_improvements(generative.get("improvements"))
        raw_notes = generative.get("coachingNotes")
        notes = raw_notes.strip() if isinstance(raw_notes, str) else ""

    return CoachingFeedback(
        summary=summary,
        strengths=tuple(build_strengths(breakdown)),
        improvements=tuple(build_improvements(breakdown)),
        missed_opportunities=tuple(build_missed_opportunities(detailed)),
        next_call_prep=tuple(build_next_call_prep(breakdown, detailed, persona_level)),
        practice_recommendations=tuple(build_practice_recommendations(breakdown)),
        motivation=motivation_notes(overall_score),
        ai_strengths=ai_strengths,
        ai_improvements=ai_improvements,
        coaching_notes=notes,
    )
