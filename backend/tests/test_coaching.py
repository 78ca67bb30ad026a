# backend/tests/test_coaching.py
from types import SimpleNamespace

import pytest

from callsim.agents.catalog import CallType, PersonaLevel
from callsim.agents.coaching import (
    PARTIAL_ANALYSIS_PREFIX,
    build_improvements,
    build_missed_opportunities,
    build_next_call_prep,
    build_practice_recommendations,
    build_strengths,
    generate_coaching_feedback,
    performance_level,
    top_improvement,
    top_strength,
)


def _breakdown(**scores):
    weights = {"talk_ratio": 0.2, "discovery": 0.3, "objection_handling": 0.2, "confidence": 0.15, "cta": 0.15}
    return {
        key: SimpleNamespace(name=key.replace("_", " ").title(), score=score, weight=weights[key])
        for key, score in scores.items()
    }


MIXED = _breakdown(talk_ratio=95, discovery=30, objection_handling=85, confidence=55, cta=65)


class TestTemplates:
    @pytest.mark.parametrize("score,expected", [(90, "excellent"), (85, "excellent"), (70, "good"), (50, "average"), (49, "poor")])
    def test_performance_level(self, score, expected):
        assert performance_level(score) == expected

    def test_top_strength_and_improvement(self):
        assert top_strength(MIXED) == "maintain an ideal conversation balance"
        assert top_improvement(MIXED) == "discovery questioning techniques"
        assert top_strength({}) == "demonstrate sales skills"

    def test_ties_keep_metric_order(self):
        tied = _breakdown(talk_ratio=50, discovery=50, objection_handling=50, confidence=50, cta=50)
        assert top_strength(tied) == "maintain an ideal conversation balance"
        assert top_improvement(tied) == "conversation balance and listening skills"

    def test_strengths_at_or_above_80(self):
        strengths = build_strengths(MIXED)
        assert [s["category"] for s in strengths] == ["talk_ratio", "objection_handling"]
        assert strengths[0]["observation"] == "Maintained perfect balance between talking and listening"
        assert strengths[1]["observation"] == "Addressed most objections effectively"

    def test_improvements_below_70_ascending(self):
        improvements = build_improvements(MIXED)
        assert [i["category"] for i in improvements] == ["discovery", "confidence", "cta"]
        assert [i["priority"] for i in improvements] == ["high", "medium", "low"]
        assert improvements[0]["issue"] == "Asked mostly closed questions, missing business context"

    def test_missed_opportunities(self):
        detailed = {
            "discovery": {"missed_opportunities": ["Budget mentioned but ROI/value not discussed"]},
            "objection_handling": {"objections": [
                {"objection": "too expensive", "effectiveness": "fair"},
                {"objection": "not now", "effectiveness": "excellent"},
            ]},
        }
        missed = build_missed_opportunities(detailed)
        assert len(missed) == 2
        assert missed[1]["moment"] == 'When prospect said "too expensive"'
        assert build_missed_opportunities({}) == []

    def test_next_call_prep(self):
        prep = build_next_call_prep(MIXED, {"cta": {"cta_present": False}}, PersonaLevel.VP)
        assert [p["topic"] for p in prep] == ["Clear next steps", "Discovery preparation"]
        assert "vp-appropriate" in prep[1]["action"]

    def test_practice_recommendations_cover_two_weakest(self):
        recs = build_practice_recommendations(MIXED)
        assert [r["skill"] for r in recs] == ["Discovery Questioning", "Executive Presence"]
        assert recs[0]["target_metric"] == "Improve Discovery score from 30 to 50"


class TestGenerateCoachingFeedback:
    def test_partial_summary_is_marked(self):
        feedback = generate_coaching_feedback(
            72, MIXED, {}, CallType.DISCOVERY_OUTBOUND, PersonaLevel.MANAGER, partial=True
        )
        assert feedback.summary.startswith(PARTIAL_ANALYSIS_PREFIX)
        assert "72/100" in feedback.summary
        assert feedback.ai_strengths == ()

    def test_full_summary_is_not_marked(self):
        feedback = generate_coaching_feedback(90, MIXED, {}, CallType.ELEVATOR_PITCH, PersonaLevel.C_LEVEL)
        assert feedback.summary.startswith("Outstanding elevator-pitch call performance!")
        assert feedback.motivation["encouragement"] == "You're in the top tier of sales professionals!"

    def test_generative_enrichment_is_filtered(self):
        generative = {
            "strengths": ["Strong opener", 3, None],
            "improvements": [
                {"issue": "Rushed the close", "priority": "urgent"},
                "not a dict",
                {"example": "missing issue"},
            ],
            "coachingNotes": "  Slow down at the close.  ",
        }
        feedback = generate_coaching_feedback(
            60, MIXED, {}, CallType.DISCOVERY_INBOUND, PersonaLevel.DIRECTOR, generative=generative
        )
        assert feedback.ai_strengths == ("Strong opener",)
        assert feedback.ai_improvements == ({
            "issue": "Rushed the close", "example": "", "suggestion": "", "priority": "medium",
        },)
        assert feedback.coaching_notes == "Slow down at the close."

    def test_to_dict_is_plain(self):
        feedback = generate_coaching_feedback(40, MIXED, {}, CallType.OBJECTION_HANDLING, PersonaLevel.JUNIOR)
        data = feedback.to_dict()
        assert data["summary"].startswith("This objection-handling call needs significant improvement")
        assert isinstance(data["strengths"], list)
        assert isinstance(data["motivation"], dict)
