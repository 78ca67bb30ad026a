# backend/callsim/agents/metrics_calculator.py
"""
Rubric functions for the five call metrics plus score roll-ups.

Every function here is pure: numbers and labels in, (score, analysis)
or plain dicts out. The scoring engine gathers the inputs from the
transcript; this module only applies the rubrics.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from callsim.agents.catalog import CallType, METRIC_KEYS, TalkRatioBand, parse_call_type
from callsim.utils.transcript import Turn

TECHNIQUE_TYPES = ("acknowledge", "clarify", "respond", "confirm")

IMPROVEMENT_THRESHOLD = 70
STRENGTH_THRESHOLD = 80
TARGET_CEILING = 85
WORDS_PER_MINUTE = 150
TREND_TOLERANCE = 5


# =============================================================================
# PER-METRIC RUBRICS
# =============================================================================

def talk_ratio_score(rep_percentage: float, band: TalkRatioBand) -> Tuple[int, str]:
    """
    Graduated rubric around the ideal band.

    Inside the band scores 100. Outside it, the distance from the band
    midpoint picks the step: <=5 -> 90, <=10 -> 75, <=20 -> 50, <=30 -> 25,
    else 0. Distances are symmetric above and below the band.
    """
    deviation = abs(rep_percentage - band.midpoint)

    if band.minimum <= rep_percentage <= band.maximum:
        score = 100
        analysis = (
            f"Perfect talk ratio ({rep_percentage:.1f}%) within ideal range of "
            f"{band.minimum:g}-{band.maximum:g}%"
        )
    elif deviation <= 5:
        score = 90
        analysis = f"Good talk ratio ({rep_percentage:.1f}%), slightly outside ideal range"
    elif deviation <= 10:
        score = 75
        analysis = f"Acceptable talk ratio ({rep_percentage:.1f}%), moderately outside ideal range"
    elif deviation <= 20:
        score = 50
        analysis = f"Poor talk ratio ({rep_percentage:.1f}%), significantly outside ideal range"
    elif deviation <= 30:
        score = 25
        analysis = f"Very poor talk ratio ({rep_percentage:.1f}%), far outside ideal range"
    else:
        score = 0
        analysis = f"Extremely imbalanced talk ratio ({rep_percentage:.1f}%)"

    if rep_percentage > band.maximum:
        analysis += ". Rep dominated the conversation - need more listening and discovery."
    elif rep_percentage < band.minimum:
        analysis += ". Rep needs to guide the conversation more effectively."

    return score, analysis


def discovery_score(open_questions: int, total_questions: int, depth: str) -> Tuple[int, str]:
    open_ratio = open_questions / total_questions if total_questions > 0 else 0.0

    if depth == "deep" and open_ratio > 0.7:
        score, analysis = 100, "Excellent discovery with deep, business-focused questions"
    elif depth == "deep" and open_ratio > 0.5:
        score, analysis = 85, "Strong discovery reaching business impact level"
    elif depth == "moderate" and open_ratio > 0.5:
        score, analysis = 70, "Good discovery covering key areas"
    elif depth == "moderate" and open_ratio > 0.3:
        score, analysis = 60, "Adequate discovery but could go deeper"
    elif depth == "surface" and total_questions > 3:
        score, analysis = 50, "Surface-level discovery missing business impact"
    elif total_questions > 0:
        score, analysis = 30, "Poor discovery, mostly closed questions"
    else:
        score, analysis = 0, "No discovery attempted"

    analysis += f" ({open_questions} open / {total_questions} total questions)"
    return score, analysis


def technique_score(techniques: Mapping[str, int]) -> float:
    """Share of the four objection techniques used at least once, as 0-100."""
    if sum(techniques.values()) == 0:
        return 0.0
    used = sum(1 for name in TECHNIQUE_TYPES if techniques.get(name, 0) > 0)
    return used / len(TECHNIQUE_TYPES) * 100


def objection_score(handled: int, total: int, techniques: Mapping[str, int]) -> Tuple[int, str]:
    if total == 0:
        return 100, "No objections raised during the call"

    success_rate = handled / total
    quality = technique_score(techniques)
    score = round(success_rate * 80 + quality * 0.2)

    analysis = f"Handled {handled} of {total} objections ({success_rate * 100:.0f}% success rate)"
    if quality >= 80:
        analysis += " using excellent technique"
    elif quality >= 60:
        analysis += " with good technique"
    else:
        analysis += " but technique needs improvement"
    return score, analysis


def assertiveness_level(certainty_count: int, hedging_count: int) -> str:
    if hedging_count > certainty_count:
        return "low"
    if certainty_count >= 2 and certainty_count > hedging_count:
        return "high"
    return "moderate"


def confidence_score(filler_count: int, message_count: int, assertiveness: str) -> Tuple[float, str]:
    filler_ratio = filler_count / message_count if message_count > 0 else 0.0
    score = 70 - min(40, filler_ratio * 20)

    if assertiveness == "high":
        score += 20
    elif assertiveness == "moderate":
        score += 10
    else:
        score -= 10

    score = max(0, min(100, score))

    analysis = f"{assertiveness} assertiveness"
    if filler_count > 0:
        analysis += f" with {filler_count} filler words ({filler_ratio:.1f} per message)"
    else:
        analysis += " with clear, confident delivery"
    return score, analysis


_CTA_QUALITY_POINTS = {"strong": 30, "moderate": 20, "weak": 10}
_CTA_SPECIFICITY_POINTS = {"very-specific": 20, "somewhat-specific": 10}


def cta_score(present: bool, quality: str, specificity: str, mutual_agreement: bool) -> Tuple[int, str]:
    if not present:
        return 0, "No clear call-to-action or next steps established"

    score = 40
    score += _CTA_QUALITY_POINTS.get(quality, 0)
    score += _CTA_SPECIFICITY_POINTS.get(specificity, 0)
    if mutual_agreement:
        score += 10

    analysis = f"{quality} CTA with {specificity.replace('-', ' ')} details"
    if mutual_agreement:
        analysis += " and mutual agreement"
    else:
        analysis += " but no clear prospect commitment"
    return score, analysis


# =============================================================================
# ROLL-UPS
# =============================================================================

def weighted_score(scores: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Dot product of metric scores and call-type weights. Not rounded."""
    return sum(float(scores.get(key, 0)) * weights.get(key, 0.0) for key in METRIC_KEYS)


def improvement_priority(score: float) -> str:
    if score < 50:
        return "high"
    if score < 60:
        return "medium"
    return "low"


def improvement_impact(score: float, weight: float) -> Tuple[str, str]:
    """(level, description) for lifting a metric to the target ceiling."""
    potential_gain = (TARGET_CEILING - score) * weight
    if potential_gain > 15:
        return "high", "High impact - improving this will significantly boost overall score"
    if potential_gain > 8:
        return "medium", "Medium impact - worthwhile improvement area"
    return "low", "Low impact - minor contribution to overall score"


def target_score(score: float) -> float:
    return min(score + 20, TARGET_CEILING)


def calculate_trends(current_score: float, historical_scores: Sequence[float]) -> Dict[str, Any]:
    if not historical_scores:
        return {"trend": "stable", "average_score": current_score, "improvement": 0}

    average = sum(historical_scores) / len(historical_scores)
    recent = list(historical_scores)[-3:]
    recent_average = sum(recent) / len(recent)

    if current_score > recent_average + TREND_TOLERANCE:
        trend = "improving"
    elif current_score < recent_average - TREND_TOLERANCE:
        trend = "declining"
    else:
        trend = "stable"

    return {"trend": trend, "average_score": average, "improvement": current_score - average}


def generate_metric_breakdown(breakdown: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Metrics sorted by their contribution to the overall score, largest first."""
    rows = [
        {
            "key": key,
            "metric": metric.name,
            "score": metric.score,
            "weight": metric.weight,
            "contribution": metric.score * metric.weight,
        }
        for key, metric in breakdown.items()
    ]
    return sorted(rows, key=lambda r: r["contribution"], reverse=True)


def identify_top_improvement_areas(breakdown: Mapping[str, Any], max_areas: int = 3) -> List[Dict[str, Any]]:
    areas = []
    for key, metric in breakdown.items():
        if metric.score >= IMPROVEMENT_THRESHOLD:
            continue
        level, description = improvement_impact(metric.score, metric.weight)
        areas.append({
            "key": key,
            "metric": metric.name,
            "current_score": metric.score,
            "target_score": target_score(metric.score),
            "impact": level,
            "impact_description": description,
        })
    areas.sort(key=lambda a: a["current_score"])
    return areas[:max_areas]


def calculate_call_duration(turns: Iterable[Turn]) -> int:
    """Estimated minutes at an average speaking rate."""
    total_words = sum(len(turn.message.split()) for turn in turns)
    return round(total_words / WORDS_PER_MINUTE)


def generate_performance_insights(scores: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a rep's score history across call types.

    Args:
        scores: records with "score" and "call_type" (and optionally "date")

    Returns:
        best/worst call type, consistency (100 - stddev), strengths and focus areas
    """
    by_type: Dict[CallType, List[float]] = {ct: [] for ct in CallType}
    all_scores: List[float] = []
    for record in scores:
        call_type = parse_call_type(record["call_type"])
        by_type[call_type].append(float(record["score"]))
        all_scores.append(float(record["score"]))

    averages = [
        (ct, sum(values) / len(values))
        for ct, values in by_type.items()
        if values
    ]
    averages.sort(key=lambda item: item[1], reverse=True)

    default_type = CallType.DISCOVERY_OUTBOUND
    best = averages[0][0] if averages else default_type
    worst = averages[-1][0] if averages else default_type

    consistency = 0.0
    if all_scores:
        mean = sum(all_scores) / len(all_scores)
        variance = sum((s - mean) ** 2 for s in all_scores) / len(all_scores)
        consistency = max(0.0, 100 - math.sqrt(variance))

    strengths, focus_areas = [], []
    for call_type, average in averages:
        if average >= STRENGTH_THRESHOLD:
            strengths.append(f"Strong {call_type.value} performance ({average:.0f}% average)")
        elif average < 60:
            focus_areas.append(f"Improve {call_type.value} skills (currently {average:.0f}%)")

    return {
        "best_call_type": best.value,
        "worst_call_type": worst.value,
        "consistency": round(consistency),
        "strengths": strengths,
        "focus_areas": focus_areas,
    }
