# backend/tests/test_metrics_calculator.py
from types import SimpleNamespace

import pytest

from callsim.agents import metrics_calculator as mc
from callsim.agents.catalog import DEFAULT_TABLES, CallType, TalkRatioBand
from callsim.utils.transcript import REP, Turn


OUTBOUND = TalkRatioBand(30, 40)


def _metric(name, score, weight):
    return SimpleNamespace(name=name, score=score, weight=weight)


class TestTalkRatio:
    @pytest.mark.parametrize("pct", [30, 35, 40])
    def test_inside_band_scores_100(self, pct):
        score, analysis = mc.talk_ratio_score(pct, OUTBOUND)
        assert score == 100
        assert "Perfect talk ratio" in analysis

    @pytest.mark.parametrize("distance", [0.5, 1, 7, 12, 22, 40])
    def test_symmetric_around_band(self, distance):
        above, _ = mc.talk_ratio_score(OUTBOUND.maximum + distance, OUTBOUND)
        below, _ = mc.talk_ratio_score(OUTBOUND.minimum - distance, OUTBOUND)
        assert above == below

    @pytest.mark.parametrize("pct,expected", [
        (45, 75),
        (60, 25),
        (10, 25),
        (100, 0),
    ])
    def test_steps(self, pct, expected):
        assert mc.talk_ratio_score(pct, OUTBOUND)[0] == expected

    def test_idempotent(self):
        assert mc.talk_ratio_score(52.5, OUTBOUND) == mc.talk_ratio_score(52.5, OUTBOUND)

    def test_direction_in_analysis(self):
        assert "dominated" in mc.talk_ratio_score(60, OUTBOUND)[1]
        assert "guide the conversation" in mc.talk_ratio_score(10, OUTBOUND)[1]


class TestMetricRubrics:
    @pytest.mark.parametrize("open_q,total,depth,expected", [
        (8, 10, "deep", 100),
        (6, 10, "deep", 85),
        (6, 10, "moderate", 70),
        (4, 10, "moderate", 60),
        (1, 5, "surface", 50),
        (0, 2, "surface", 30),
        (0, 0, "deep", 0),
    ])
    def test_discovery_score(self, open_q, total, depth, expected):
        assert mc.discovery_score(open_q, total, depth)[0] == expected

    def test_objection_score_without_objections(self):
        assert mc.objection_score(0, 0, {}) == (100, "No objections raised during the call")

    def test_objection_score_blends_rate_and_technique(self):
        techniques = {"acknowledge": 1, "clarify": 0, "respond": 1, "confirm": 0}
        score, analysis = mc.objection_score(1, 2, techniques)
        assert score == round(0.5 * 80 + 50 * 0.2)
        assert "1 of 2" in analysis

    def test_technique_score(self):
        assert mc.technique_score({}) == 0.0
        assert mc.technique_score({"acknowledge": 2, "clarify": 1, "respond": 1, "confirm": 1}) == 100.0

    @pytest.mark.parametrize("certainty,hedging,expected", [
        (0, 1, "low"),
        (2, 1, "high"),
        (1, 0, "moderate"),
        (0, 0, "moderate"),
    ])
    def test_assertiveness(self, certainty, hedging, expected):
        assert mc.assertiveness_level(certainty, hedging) == expected

    def test_confidence_score(self):
        assert mc.confidence_score(0, 5, "high")[0] == 90
        assert mc.confidence_score(0, 5, "low")[0] == 60
        assert mc.confidence_score(10, 1, "low")[0] == 20
        assert mc.confidence_score(0, 0, "moderate")[0] == 80

    @pytest.mark.parametrize("present,quality,specificity,agreed,expected", [
        (False, "strong", "very-specific", True, 0),
        (True, "strong", "very-specific", True, 100),
        (True, "moderate", "somewhat-specific", False, 70),
        (True, "weak", "vague", False, 50),
    ])
    def test_cta_score(self, present, quality, specificity, agreed, expected):
        assert mc.cta_score(present, quality, specificity, agreed)[0] == expected


class TestRollups:
    @pytest.mark.parametrize("call_type,scores,expected", [
        (CallType.DISCOVERY_OUTBOUND,
         {"talk_ratio": 100, "discovery": 50, "objection_handling": 80, "confidence": 60, "cta": 40},
         100 * 0.20 + 50 * 0.30 + 80 * 0.20 + 60 * 0.15 + 40 * 0.15),
        (CallType.ELEVATOR_PITCH,
         {"talk_ratio": 25, "discovery": 0, "objection_handling": 100, "confidence": 90, "cta": 70},
         25 * 0.10 + 0 * 0.15 + 100 * 0.15 + 90 * 0.30 + 70 * 0.30),
    ])
    def test_weighted_score_is_dot_product(self, call_type, scores, expected):
        assert mc.weighted_score(scores, DEFAULT_TABLES.weights(call_type)) == pytest.approx(expected)

    @pytest.mark.parametrize("score,expected", [(10, "high"), (49.9, "high"), (55, "medium"), (65, "low")])
    def test_improvement_priority(self, score, expected):
        assert mc.improvement_priority(score) == expected

    def test_improvement_impact_and_target(self):
        assert mc.improvement_impact(20, 0.30)[0] == "high"
        assert mc.improvement_impact(20, 0.15)[0] == "medium"
        assert mc.improvement_impact(60, 0.10)[0] == "low"
        assert mc.target_score(40) == 60
        assert mc.target_score(75) == 85

    def test_calculate_trends(self):
        assert mc.calculate_trends(70, [])["trend"] == "stable"
        assert mc.calculate_trends(90, [50, 60, 70])["trend"] == "improving"
        assert mc.calculate_trends(40, [50, 60, 70])["trend"] == "declining"
        assert mc.calculate_trends(62, [50, 60, 70])["improvement"] == pytest.approx(2)

    def test_metric_breakdown_sorted_by_contribution(self):
        breakdown = {
            "talk_ratio": _metric("Talk Ratio", 100, 0.1),
            "confidence": _metric("Confidence & Presence", 60, 0.3),
            "cta": _metric("Call to Action", 20, 0.3),
        }
        rows = mc.generate_metric_breakdown(breakdown)
        assert [r["key"] for r in rows] == ["confidence", "talk_ratio", "cta"]

    def test_top_improvement_areas(self):
        breakdown = {
            "talk_ratio": _metric("Talk Ratio", 90, 0.2),
            "discovery": _metric("Discovery Quality", 30, 0.3),
            "objection_handling": _metric("Objection Handling", 65, 0.2),
            "confidence": _metric("Confidence & Presence", 45, 0.15),
            "cta": _metric("Call to Action", 0, 0.15),
        }
        areas = mc.identify_top_improvement_areas(breakdown)
        assert [a["key"] for a in areas] == ["cta", "discovery", "confidence"]
        assert areas[0]["target_score"] == 20

    def test_call_duration(self):
        turns = [Turn(id="a", speaker=REP, message=" ".join(["word"] * 300))]
        assert mc.calculate_call_duration(turns) == 2
        assert mc.calculate_call_duration([]) == 0

    def test_performance_insights(self):
        insights = mc.generate_performance_insights([
            {"call_type": "elevator-pitch", "score": 90},
            {"call_type": "elevator-pitch", "score": 84},
            {"call_type": "objection-handling", "score": 40},
        ])
        assert insights["best_call_type"] == "elevator-pitch"
        assert insights["worst_call_type"] == "objection-handling"
        assert len(insights["strengths"]) == 1
        assert len(insights["focus_areas"]) == 1
        assert 0 <= insights["consistency"] <= 100

    def test_performance_insights_empty(self):
        insights = mc.generate_performance_insights([])
        assert insights["best_call_type"] == "discovery-outbound"
        assert insights["consistency"] == 0
