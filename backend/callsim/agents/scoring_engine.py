# backend/callsim/agents/scoring_engine.py
"""
Call scoring engine.

score() runs two passes over one finished transcript:

1. Deterministic pass - pattern detectors plus the rubric functions in
   metrics_calculator. Always succeeds, needs nothing external.
2. Generative pass - the structured-analysis collaborator grades the
   same transcript against a fixed JSON schema. Best-effort: any
   failure, timeout or schema mismatch discards it.

Talk ratio, discovery and objection handling always come from the
deterministic pass. Confidence and CTA come from the generative pass
when it is valid. Without it the result is marked partial.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from callsim.agents.catalog import (
    DEFAULT_TABLES,
    METRIC_KEYS,
    METRIC_NAMES,
    CallType,
    EngineTables,
    PersonaLevel,
    parse_call_type,
    parse_persona_level,
)
from callsim.agents.coaching import CoachingFeedback, generate_coaching_feedback
from callsim.agents import metrics_calculator as mc
from callsim.config import settings
from callsim.services.openai_service import OpenAIService
from callsim.utils import text_patterns as tp
from callsim.utils.logger import logger
from callsim.utils.transcript import (
    Turn,
    analyze_call_flow,
    find_monologues,
    format_transcript,
    identify_phases,
    normalize_transcript,
    talk_segments,
)

ANALYSIS_FULL = "full"
ANALYSIS_PARTIAL = "partial"

SPIN_ORDER = ("situation", "problem", "implication", "need_payoff")

SCORING_SYSTEM_PROMPT = "You are an expert sales trainer. Provide scoring in the exact JSON format requested."
ANALYSIS_SYSTEM_PROMPT = (
    "You are analyzing sales conversation dynamics. Provide analysis in the exact JSON format requested."
)

_SENTIMENT_POLARITY = {
    "friendly": "positive",
    "hostile": "negative",
    "skeptical": "negative",
    "neutral": "neutral",
}


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class MetricScore:
    key: str
    name: str
    score: float
    weight: float
    details: Mapping[str, Any] = field(default_factory=dict)
    feedback: Tuple[str, ...] = ()
    source: str = "deterministic"

    @property
    def contribution(self) -> float:
        return self.score * self.weight

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "score": self.score,
            "weight": self.weight,
            "details": dict(self.details),
            "feedback": list(self.feedback),
            "source": self.source,
        }


@dataclass(frozen=True)
class Improvement:
    key: str
    name: str
    score: float
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "name": self.name, "score": self.score, "priority": self.priority}


@dataclass(frozen=True)
class CallScore:
    call_type: CallType
    persona_level: PersonaLevel
    overall_score: float
    overall_score_rounded: int
    breakdown: Mapping[str, MetricScore]
    detailed_analysis: Mapping[str, Any]
    strengths: Tuple[str, ...]
    improvements: Tuple[Improvement, ...]
    coaching: CoachingFeedback
    analysis_mode: str

    @property
    def is_partial(self) -> bool:
        return self.analysis_mode == ANALYSIS_PARTIAL

    def metric_scores(self) -> Dict[str, float]:
        return {key: metric.score for key, metric in self.breakdown.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_type": self.call_type.value,
            "persona_level": self.persona_level.value,
            "overall_score": self.overall_score,
            "overall_score_rounded": self.overall_score_rounded,
            "analysis_mode": self.analysis_mode,
            "breakdown": {key: metric.to_dict() for key, metric in self.breakdown.items()},
            "detailed_analysis": dict(self.detailed_analysis),
            "strengths": list(self.strengths),
            "improvements": [imp.to_dict() for imp in self.improvements],
            "coaching_feedback": self.coaching.to_dict(),
            "metric_breakdown": mc.generate_metric_breakdown(self.breakdown),
            "top_improvement_areas": mc.identify_top_improvement_areas(self.breakdown),
        }


def strengths_from_scores(scores: Mapping[str, float]) -> Tuple[str, ...]:
    """Metric keys scoring at or above the strength threshold, in metric order."""
    return tuple(key for key in METRIC_KEYS if key in scores and scores[key] >= mc.STRENGTH_THRESHOLD)


def improvements_from_scores(scores: Mapping[str, float], limit: int = 3) -> Tuple[Improvement, ...]:
    weak = [(key, scores[key]) for key in METRIC_KEYS if key in scores and scores[key] < mc.IMPROVEMENT_THRESHOLD]
    weak.sort(key=lambda kv: kv[1])
    return tuple(
        Improvement(key=key, name=METRIC_NAMES[key], score=score, priority=mc.improvement_priority(score))
        for key, score in weak[:limit]
    )


# =============================================================================
# DETERMINISTIC ANALYSES
# =============================================================================

def _rep_turns(turns: Sequence[Turn]) -> List[Turn]:
    return [t for t in turns if t.is_rep]


def _next_rep_turn(turns: Sequence[Turn], after: int) -> Optional[Turn]:
    for turn in turns[after + 1:]:
        if turn.is_rep:
            return turn
    return None


def _next_prospect_turn(turns: Sequence[Turn], after: int) -> Optional[Turn]:
    for turn in turns[after + 1:]:
        if turn.is_prospect:
            return turn
    return None


def analyze_talk_ratio(turns: Sequence[Turn], call_type: CallType, tables: EngineTables = DEFAULT_TABLES) -> Dict[str, Any]:
    band = tables.talk_band(call_type)
    total = len(turns)
    rep_pct = len(_rep_turns(turns)) / total * 100 if total else 0.0
    score, analysis = mc.talk_ratio_score(rep_pct, band)
    return {
        "rep_talk_percentage": rep_pct,
        "prospect_talk_percentage": 100 - rep_pct if total else 0.0,
        "ideal_range": {"min": band.minimum, "max": band.maximum},
        "is_optimal": band.minimum <= rep_pct <= band.maximum,
        "segments": talk_segments(turns),
        "monologues": find_monologues(turns),
        "score": score,
        "analysis": analysis,
    }


def find_missed_opportunities(turns: Sequence[Turn]) -> List[str]:
    missed: List[str] = []
    for i, turn in enumerate(turns):
        if not turn.is_prospect:
            continue
        lower = turn.message.lower()

        if any(word in lower for word in ("struggle", "challenge", "difficult")):
            follow_up = _next_rep_turn(turns, i)
            if follow_up is None or not tp.has_question(follow_up.message):
                missed.append("Prospect mentioned a challenge but rep didn't explore it")

        if "budget" in lower or "cost" in lower:
            discussed = any(
                t.is_rep and ("roi" in t.message.lower() or "value" in t.message.lower())
                for t in turns[i + 1:]
            )
            if not discussed:
                missed.append("Budget mentioned but ROI/value not discussed")

    # keep first-seen order, drop repeats
    return list(dict.fromkeys(missed))


def discovery_depth(questions: Sequence[str], categories: Mapping[str, int]) -> str:
    business_impact = any(tp.has_business_impact(q) for q in questions)
    pain_exploration = categories.get("problem", 0) > 0 and categories.get("implication", 0) > 0
    vision_building = categories.get("need_payoff", 0) > 0

    if business_impact and pain_exploration and vision_building:
        return "deep"
    if pain_exploration or business_impact:
        return "moderate"
    return "surface"


def analyze_discovery(turns: Sequence[Turn]) -> Dict[str, Any]:
    questions = [t.message for t in _rep_turns(turns) if tp.has_question(t.message)]
    open_questions = [q for q in questions if tp.is_open_question(q)]

    categories = {name: 0 for name in SPIN_ORDER + ("other",)}
    examples: Dict[str, List[str]] = {name: [] for name in SPIN_ORDER}
    for question in questions:
        category = tp.spin_category(question)
        categories[category] += 1
        if category in examples:
            examples[category].append(question)

    depth = discovery_depth(questions, categories)

    strong, weak = [], []
    for question in questions:
        if tp.is_strong_question(question):
            strong.append({
                "question": question,
                "category": "discovery",
                "impact": "Uncovers valuable business information",
            })
        elif not tp.is_open_question(question):
            weak.append({
                "question": question,
                "issue": "Closed question limits information gathering",
                "suggestion": 'Rephrase as open question starting with "What" or "How"',
            })

    score, analysis = mc.discovery_score(len(open_questions), len(questions), depth)
    return {
        "total_questions": len(questions),
        "open_questions": len(open_questions),
        "closed_questions": len(questions) - len(open_questions),
        "open_question_ratio": len(open_questions) / len(questions) if questions else 0.0,
        "question_categories": categories,
        "spin_examples": examples,
        "discovery_depth": depth,
        "missed_opportunities": find_missed_opportunities(turns),
        "strong_questions": strong,
        "weak_questions": weak,
        "score": score,
        "analysis": analysis,
    }


def grade_objection_response(response: str) -> str:
    """poor / fair / good / excellent by how many response feature classes are present."""
    hits = sum(1 for present in tp.objection_response_features(response).values() if present)
    if hits >= 3:
        return "excellent"
    if hits >= 2:
        return "good"
    if hits >= 1:
        return "fair"
    return "poor"


def analyze_objection_handling(turns: Sequence[Turn]) -> Dict[str, Any]:
    results: List[Dict[str, Any]] = []
    for i, turn in enumerate(turns):
        if not (turn.is_prospect and tp.is_objection(turn.message)):
            continue

        response = _next_rep_turn(turns, i)
        if response is None:
            results.append({
                "type": "unaddressed",
                "objection": turn.message,
                "response": "No response",
                "handled": False,
                "technique": "none",
                "effectiveness": "poor",
            })
            continue

        techniques = tp.objection_techniques(response.message)
        effectiveness = grade_objection_response(response.message)
        results.append({
            "type": tp.categorize_objection(turn.message),
            "objection": turn.message,
            "response": response.message,
            "handled": effectiveness != "poor",
            "technique": "-".join(techniques) if techniques else "direct-response",
            "effectiveness": effectiveness,
        })

    technique_counts = {name: 0 for name in mc.TECHNIQUE_TYPES}
    for result in results:
        for name in mc.TECHNIQUE_TYPES:
            if name in result["technique"].split("-"):
                technique_counts[name] += 1

    handled = sum(1 for r in results if r["handled"])
    score, analysis = mc.objection_score(handled, len(results), technique_counts)
    return {
        "total_objections": len(results),
        "handled_successfully": handled,
        "success_rate": handled / len(results) if results else 1.0,
        "objections": results,
        "missed_objections": [r["objection"] for r in results if not r["handled"]],
        "techniques": technique_counts,
        "score": score,
        "analysis": analysis,
    }


def analyze_confidence(turns: Sequence[Turn]) -> Dict[str, Any]:
    rep_messages = [t.message for t in _rep_turns(turns)]

    fillers: Dict[str, int] = {}
    for message in rep_messages:
        for word, count in tp.count_filler_words(message).items():
            fillers[word] = fillers.get(word, 0) + count
    filler_total = sum(fillers.values())

    certainty = sum(tp.count_certainty(m) for m in rep_messages)
    hedging = sum(tp.count_hedging(m) for m in rep_messages)
    assertiveness = mc.assertiveness_level(certainty, hedging)

    score, analysis = mc.confidence_score(filler_total, len(rep_messages), assertiveness)
    return {
        "filler_words": filler_total,
        "filler_breakdown": fillers,
        "certainty_language": certainty,
        "hedging_phrases": hedging,
        "assertiveness": assertiveness,
        "score": score,
        "analysis": analysis,
    }


def cta_quality(text: str, specificity: str) -> str:
    asks = tp.has_question(text)
    specific = specificity != "vague"
    if asks and specific:
        return "strong"
    if asks or specific:
        return "moderate"
    return "weak"


def analyze_cta(turns: Sequence[Turn]) -> Dict[str, Any]:
    # The last rep call-to-action is the one the call ended on
    cta_index = None
    for i, turn in enumerate(turns):
        if turn.is_rep and tp.has_cta(turn.message):
            cta_index = i

    if cta_index is None:
        score, analysis = mc.cta_score(False, "none", "vague", False)
        return {
            "cta_present": False,
            "cta_quality": "none",
            "specificity": "vague",
            "mutual_agreement": False,
            "cta_text": None,
            "prospect_response": None,
            "score": score,
            "analysis": analysis,
        }

    cta_text = turns[cta_index].message
    specificity = tp.cta_specificity(cta_text)
    quality = cta_quality(cta_text, specificity)
    reply = _next_prospect_turn(turns, cta_index)
    agreed = reply is not None and tp.has_commitment(reply.message)

    score, analysis = mc.cta_score(True, quality, specificity, agreed)
    return {
        "cta_present": True,
        "cta_quality": quality,
        "specificity": specificity,
        "mutual_agreement": agreed,
        "cta_text": cta_text,
        "prospect_response": reply.message if reply else None,
        "score": score,
        "analysis": analysis,
    }


def _phase_at(turn_index: int, phases: Sequence[Mapping[str, Any]]) -> str:
    for span in phases:
        if span["start_index"] <= turn_index <= span["end_index"]:
            return span["phase"]
    return "opening"


def analyze_sentiment(turns: Sequence[Turn]) -> Dict[str, Any]:
    phases = identify_phases(turns)
    progression = []
    tension = []
    for i, turn in enumerate(turns):
        if not turn.is_prospect:
            continue
        polarity = _SENTIMENT_POLARITY[tp.reply_sentiment(turn.message)]
        progression.append({"phase": _phase_at(i, phases), "sentiment": polarity, "timestamp": turn.timestamp})
        if tp.is_objection(turn.message):
            follow_up = _next_rep_turn(turns, i)
            tension.append({
                "timestamp": turn.timestamp,
                "trigger": turn.message,
                "resolution": follow_up is not None and grade_objection_response(follow_up.message) != "poor",
            })

    balance = sum(1 if p["sentiment"] == "positive" else -1 if p["sentiment"] == "negative" else 0 for p in progression)
    overall = "positive" if balance > 0 else "negative" if balance < 0 else "neutral"

    rep_messages = [t.message for t in _rep_turns(turns)]
    return {
        "overall_sentiment": overall,
        "sentiment_progression": progression,
        "rapport_indicators": {
            "acknowledgments": sum(
                1 for m in rep_messages if tp.contains_any(m, tp.OBJECTION_TECHNIQUES["acknowledge"])
            ),
        },
        "tension_points": tension,
        "closing_sentiment": progression[-1]["sentiment"] if progression else "neutral",
        "source": "deterministic",
    }


_SPIN_RECOMMENDATIONS = {
    "situation": "Open with situation questions to understand the current setup",
    "problem": "Ask problem questions to surface specific challenges",
    "implication": "Use implication questions to quantify what the problem costs",
    "need_payoff": "Finish with need-payoff questions so the prospect states the value",
}


def analyze_methodology(discovery: Mapping[str, Any]) -> Dict[str, Any]:
    """SPIN adherence from the discovery question categories."""
    categories = discovery["question_categories"]
    examples = discovery["spin_examples"]
    used = [name for name in SPIN_ORDER if categories.get(name, 0) > 0]

    if len(used) >= 3:
        detected = "SPIN"
    elif used:
        detected = "Mixed"
    else:
        detected = "None"

    return {
        "detected_methodology": detected,
        "methodology_adherence": round(len(used) / len(SPIN_ORDER) * 100),
        "methodology_breakdown": {
            name: {
                "detected": name in used,
                "examples": list(examples.get(name, []))[:2],
                "score": 100 if name in used else 0,
            }
            for name in SPIN_ORDER
        },
        "recommendations": [_SPIN_RECOMMENDATIONS[name] for name in SPIN_ORDER if name not in used],
        "source": "deterministic",
    }


@dataclass(frozen=True)
class DeterministicAnalysis:
    talk_ratio: Dict[str, Any]
    discovery: Dict[str, Any]
    objection_handling: Dict[str, Any]
    confidence: Dict[str, Any]
    cta: Dict[str, Any]
    sentiment: Dict[str, Any]
    methodology: Dict[str, Any]
    call_flow: Dict[str, Any]
    duration_minutes: int

    def metric_scores(self) -> Dict[str, float]:
        return {key: getattr(self, key)["score"] for key in METRIC_KEYS}

    def sections(self) -> Dict[str, Any]:
        return {
            "talk_ratio": self.talk_ratio,
            "discovery": self.discovery,
            "objection_handling": self.objection_handling,
            "confidence": self.confidence,
            "cta": self.cta,
            "sentiment": self.sentiment,
            "methodology": self.methodology,
            "call_flow": self.call_flow,
            "estimated_duration_minutes": self.duration_minutes,
        }


def run_deterministic_pass(
    turns: Sequence[Turn],
    call_type: CallType,
    tables: EngineTables = DEFAULT_TABLES,
) -> DeterministicAnalysis:
    discovery = analyze_discovery(turns)
    return DeterministicAnalysis(
        talk_ratio=analyze_talk_ratio(turns, call_type, tables),
        discovery=discovery,
        objection_handling=analyze_objection_handling(turns),
        confidence=analyze_confidence(turns),
        cta=analyze_cta(turns),
        sentiment=analyze_sentiment(turns),
        methodology=analyze_methodology(discovery),
        call_flow=analyze_call_flow(turns),
        duration_minutes=mc.calculate_call_duration(turns),
    )


# =============================================================================
# GENERATIVE PASS
# =============================================================================

def build_scoring_prompt(call_type: CallType, transcript_text: str, tables: EngineTables = DEFAULT_TABLES) -> str:
    weights = tables.weights(call_type)
    band = tables.talk_band(call_type)

    return f"""You are an expert sales trainer evaluating a {call_type.value} call. Analyze the transcript and provide detailed scoring.

TRANSCRIPT:
{transcript_text}

EVALUATION CRITERIA AND WEIGHTS:
- Talk Ratio ({weights['talk_ratio'] * 100:g}%): Ideal range is {band.minimum:g}%-{band.maximum:g}% rep talking
- Discovery Quality ({weights['discovery'] * 100:g}%): Open questions, depth, business impact
- Objection Handling ({weights['objection_handling'] * 100:g}%): Technique, effectiveness, rapport
- Confidence/Presence ({weights['confidence'] * 100:g}%): Clarity, assertiveness, control
- CTA/Next Steps ({weights['cta'] * 100:g}%): Specificity, mutual agreement, timeline

Provide a detailed evaluation following this EXACT JSON structure:
{{
  "overallScore": <0-100>,
  "metrics": {{
    "talkRatio": {{"score": <0-100>, "repTalkPercentage": <number>, "analysis": "<detailed analysis>"}},
    "discovery": {{"score": <0-100>, "depth": "surface|moderate|deep", "strongQuestions": ["<question>"], "missedOpportunities": ["<opportunity>"], "analysis": "<detailed analysis>"}},
    "objectionHandling": {{"score": <0-100>, "totalObjections": <count>, "handledWell": <count>, "analysis": "<detailed analysis>"}},
    "confidence": {{"score": <0-100>, "strengths": ["<strength>"], "weaknesses": ["<weakness>"], "fillerWords": <count>, "assertiveness": "low|moderate|high", "analysis": "<detailed analysis>"}},
    "cta": {{"score": <0-100>, "present": <true|false>, "quality": "none|weak|moderate|strong", "specificity": "vague|somewhat-specific|very-specific", "mutualAgreement": <true|false>, "nextSteps": "<what was agreed>", "analysis": "<detailed analysis>"}}
  }},
  "strengths": ["<specific strength with example>", "<specific strength with example>"],
  "improvements": [
    {{"issue": "<specific issue>", "example": "<where it happened>", "suggestion": "<how to improve>", "priority": "low|medium|high"}}
  ],
  "coachingNotes": "<paragraph of specific, actionable coaching advice>"
}}

Be specific, reference exact quotes from the transcript, and provide actionable feedback."""


def build_detailed_analysis_prompt(transcript_text: str) -> str:
    return f"""Analyze this sales call transcript for detailed conversation dynamics and methodology.

TRANSCRIPT:
{transcript_text}

Provide analysis in this JSON structure:
{{
  "methodology": {{
    "detected": "SPIN|Challenger|MEDDIC|Solution|Consultative|Mixed|None",
    "adherence": <0-100>,
    "examples": {{"situation": ["<question>"], "problem": ["<question>"], "implication": ["<question>"], "needPayoff": ["<question>"]}}
  }},
  "sentiment": {{
    "overall": "positive|neutral|negative",
    "progression": [{{"phase": "<phase name>", "sentiment": "positive|neutral|negative", "trigger": "<what caused the shift>"}}],
    "rapportIndicators": <count>,
    "tensionPoints": ["<description>"]
  }},
  "keyMoments": [
    {{"timestamp": "<approximate time>", "type": "breakthrough|objection|commitment|missed-opportunity", "description": "<what happened>", "impact": "positive|neutral|negative"}}
  ],
  "conversationFlow": {{"pacing": "too-slow|optimal|too-fast", "transitions": "smooth|choppy|abrupt", "repControl": <0-10>, "prospectEngagement": <0-10>}}
}}"""


def _is_score(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 100


def validate_generative_scoring(data: Any) -> bool:
    """The minimum shape a generative scoring payload needs before any of it is used."""
    if not isinstance(data, dict):
        return False
    metrics = data.get("metrics")
    if not isinstance(metrics, dict):
        return False
    for key in ("confidence", "cta"):
        metric = metrics.get(key)
        if not isinstance(metric, dict) or not _is_score(metric.get("score")):
            return False
    return isinstance(data.get("strengths"), list) and isinstance(data.get("improvements"), list)


_METHODOLOGIES = ("SPIN", "Challenger", "MEDDIC", "Solution", "Consultative", "Mixed", "None")
_POLARITIES = ("positive", "neutral", "negative")


def validate_detailed_analysis(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    methodology = data.get("methodology")
    sentiment = data.get("sentiment")
    if not isinstance(methodology, dict) or not isinstance(sentiment, dict):
        return False
    return (
        methodology.get("detected") in _METHODOLOGIES
        and _is_score(methodology.get("adherence"))
        and sentiment.get("overall") in _POLARITIES
    )


def _list_field(container: Mapping[str, Any], key: str) -> List[Any]:
    value = container.get(key)
    return value if isinstance(value, list) else []


def _methodology_from_generative(data: Mapping[str, Any]) -> Dict[str, Any]:
    raw = data["methodology"]
    examples = raw.get("examples") if isinstance(raw.get("examples"), dict) else {}
    keys = {"situation": "situation", "problem": "problem", "implication": "implication", "need_payoff": "needPayoff"}
    breakdown = {}
    for name, source_key in keys.items():
        found = [q for q in _list_field(examples, source_key) if isinstance(q, str)]
        breakdown[name] = {"detected": bool(found), "examples": found[:2], "score": 100 if found else 0}
    return {
        "detected_methodology": raw["detected"],
        "methodology_adherence": raw["adherence"],
        "methodology_breakdown": breakdown,
        "recommendations": [_SPIN_RECOMMENDATIONS[n] for n, b in breakdown.items() if not b["detected"]],
        "source": "generative",
    }


def _sentiment_from_generative(data: Mapping[str, Any], fallback: Mapping[str, Any]) -> Dict[str, Any]:
    raw = data["sentiment"]
    progression = [
        {"phase": str(p.get("phase", "")), "sentiment": p.get("sentiment"), "trigger": str(p.get("trigger", ""))}
        for p in _list_field(raw, "progression")
        if isinstance(p, dict) and p.get("sentiment") in _POLARITIES
    ]
    tension = [t for t in _list_field(raw, "tensionPoints") if isinstance(t, str)]
    return {
        "overall_sentiment": raw["overall"],
        "sentiment_progression": progression or list(fallback.get("sentiment_progression", [])),
        "rapport_indicators": {"count": raw.get("rapportIndicators") if _is_score(raw.get("rapportIndicators")) else 0},
        "tension_points": tension,
        "closing_sentiment": progression[-1]["sentiment"] if progression else fallback.get("closing_sentiment", "neutral"),
        "key_moments": [m for m in _list_field(data, "keyMoments") if isinstance(m, dict)],
        "source": "generative",
    }


# =============================================================================
# ENGINE
# =============================================================================

class CallScoringEngine:
    """Stateless per call; safe to share across concurrent requests."""

    def __init__(self, llm: Optional[OpenAIService] = None, tables: EngineTables = DEFAULT_TABLES):
        self.llm = llm or OpenAIService()
        self.tables = tables

    async def _generative_scoring(self, call_type: CallType, transcript_text: str) -> Optional[Dict[str, Any]]:
        data = await self.llm.generate_json(
            SCORING_SYSTEM_PROMPT,
            build_scoring_prompt(call_type, transcript_text, self.tables),
            temperature=settings.SCORING_TEMPERATURE,
            max_tokens=settings.SCORING_MAX_TOKENS,
            timeout_s=settings.SCORING_TIMEOUT_SECONDS,
        )
        if data is None:
            return None
        if not validate_generative_scoring(data):
            logger.warning("[SCORING] generative scoring discarded: schema mismatch")
            return None
        return data

    async def _detailed_analysis(self, transcript_text: str) -> Optional[Dict[str, Any]]:
        params = self.tables.model_parameters["analysis"]
        data = await self.llm.generate_json(
            ANALYSIS_SYSTEM_PROMPT,
            build_detailed_analysis_prompt(transcript_text),
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            timeout_s=settings.SCORING_TIMEOUT_SECONDS,
        )
        if data is None:
            return None
        if not validate_detailed_analysis(data):
            logger.warning("[SCORING] detailed analysis discarded: schema mismatch")
            return None
        return data

    def _breakdown(
        self,
        call_type: CallType,
        deterministic: DeterministicAnalysis,
        generative: Optional[Mapping[str, Any]],
    ) -> Dict[str, MetricScore]:
        weights = self.tables.weights(call_type)
        sections = deterministic.sections()
        breakdown: Dict[str, MetricScore] = {}

        for key in METRIC_KEYS:
            section = sections[key]
            details = {k: v for k, v in section.items() if k not in ("score", "analysis")}
            score = section["score"]
            feedback: Tuple[str, ...] = (section["analysis"],)
            source = "deterministic"

            if generative is not None and key in ("confidence", "cta"):
                ai_metric = generative["metrics"][key]
                score = ai_metric["score"]
                source = "generative"
                details["deterministic_score"] = section["score"]
                if isinstance(ai_metric.get("analysis"), str) and ai_metric["analysis"].strip():
                    feedback = (ai_metric["analysis"].strip(),)

            breakdown[key] = MetricScore(
                key=key,
                name=METRIC_NAMES[key],
                score=score,
                weight=weights[key],
                details=details,
                feedback=feedback,
                source=source,
            )
        return breakdown

    def _assemble(
        self,
        call_type: CallType,
        persona_level: PersonaLevel,
        deterministic: DeterministicAnalysis,
        generative: Optional[Mapping[str, Any]],
        detailed: Optional[Mapping[str, Any]],
    ) -> CallScore:
        breakdown = self._breakdown(call_type, deterministic, generative)
        scores = {key: metric.score for key, metric in breakdown.items()}
        overall = mc.weighted_score(scores, self.tables.weights(call_type))

        sections = deterministic.sections()
        if detailed is not None:
            sections["methodology"] = _methodology_from_generative(detailed)
            sections["sentiment"] = _sentiment_from_generative(detailed, deterministic.sentiment)

        mode = ANALYSIS_FULL if generative is not None else ANALYSIS_PARTIAL
        coaching = generate_coaching_feedback(
            overall,
            breakdown,
            sections,
            call_type,
            persona_level,
            partial=mode == ANALYSIS_PARTIAL,
            generative=generative,
        )

        return CallScore(
            call_type=call_type,
            persona_level=persona_level,
            overall_score=overall,
            overall_score_rounded=round(overall),
            breakdown=breakdown,
            detailed_analysis=sections,
            strengths=strengths_from_scores(scores),
            improvements=improvements_from_scores(scores),
            coaching=coaching,
            analysis_mode=mode,
        )

    def score_deterministic(
        self,
        transcript: Optional[Iterable[Any]],
        call_type: Any,
        persona_level: Any = PersonaLevel.MANAGER,
    ) -> CallScore:
        """Deterministic pass only. Always partial."""
        ct = parse_call_type(call_type)
        level = parse_persona_level(persona_level)
        turns = normalize_transcript(transcript)
        return self._assemble(ct, level, run_deterministic_pass(turns, ct, self.tables), None, None)

    async def score(
        self,
        transcript: Optional[Iterable[Any]],
        call_type: Any,
        persona_level: Any = PersonaLevel.MANAGER,
    ) -> CallScore:
        """
        Score a finished transcript.

        Raises ScenarioConfigError for an unknown call type or persona level.
        Generative failures never raise; they produce a partial result.
        """
        ct = parse_call_type(call_type)
        level = parse_persona_level(persona_level)
        turns = normalize_transcript(transcript)

        deterministic = run_deterministic_pass(turns, ct, self.tables)

        generative: Optional[Dict[str, Any]] = None
        detailed: Optional[Dict[str, Any]] = None
        if turns:
            text = format_transcript(turns)
            generative, detailed = await asyncio.gather(
                self._generative_scoring(ct, text),
                self._detailed_analysis(text),
            )

        result = self._assemble(ct, level, deterministic, generative, detailed)
        logger.info(
            f"[SCORING] call_type={ct.value} turns={len(turns)} mode={result.analysis_mode} "
            f"overall={result.overall_score:.1f}"
        )
        return result
