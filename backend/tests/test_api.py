# backend/tests/test_api.py
"""
HTTP surface: simulation lifecycle, transcript scoring and health.
Generative collaborators are swapped through dependency overrides.
"""
import pytest

from callsim.agents.scoring_engine import CallScoringEngine
from callsim.api.scoring import get_scoring_engine
from callsim.api.simulations import get_llm
from callsim.main import app


SIMULATION_BODY = {
    "persona": {
        "level": "director",
        "title": "Director of Finance",
        "personality_traits": ["analytical"],
    },
    "business": {
        "company_name": "Northwind Logistics",
        "industry": "logistics",
        "company_size": "medium",
        "challenges": ["Manual invoice reconciliation"],
    },
    "product": {"name": "LedgerFlow", "value_propositions": ["Automates invoice reconciliation"]},
    "call_type": "discovery-outbound",
    "difficulty": 2,
    "seed": 3,
}

SCORE_BODY = {
    "transcript": [
        {"speaker": "rep", "message": "What challenges are you facing with month-end close?"},
        {"speaker": "prospect", "message": "Reconciliation takes us ten days."},
        {"speaker": "rep", "message": "Can we book a demo next week with your controller?"},
        {"speaker": "prospect", "message": "Yes, that works."},
    ],
    "call_type": "discovery-outbound",
    "persona_level": "director",
}


@pytest.fixture
def llm(llm_factory):
    fake = llm_factory(reply="We reconcile everything by hand today.")
    app.dependency_overrides[get_llm] = lambda: fake
    app.dependency_overrides[get_scoring_engine] = lambda: CallScoringEngine(llm=fake)
    yield fake
    app.dependency_overrides.clear()


def _start(client, **overrides):
    body = dict(SIMULATION_BODY, **overrides)
    return client.post("/api/simulations", json=body)


class TestSimulationLifecycle:
    def test_start(self, client, llm):
        response = _start(client)

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"]
        assert data["status"] == "active"
        assert data["phase"] == "opening"
        assert data["difficulty"] == 2
        assert data["archetype"] == "standard"
        assert data["opening"]["hidden_needs"][0] == "Resolve: Manual invoice reconciliation"

    @pytest.mark.parametrize("overrides", [
        {"difficulty": 7},
        {"difficulty": "hard"},
        {"call_type": "cold-email"},
        {"persona": {"level": "intern", "title": "Intern"}},
        {"persona": {"level": "vp", "title": "VP", "archetype": "grumpy-cio"}},
    ])
    def test_start_rejects_unknown_configuration(self, client, llm, overrides):
        assert _start(client, **overrides).status_code == 422

    def test_turn_then_get(self, client, llm):
        session_id = _start(client).json()["session_id"]

        turn = client.post(f"/api/simulations/{session_id}/turns", json={"message": "How do you close the books today?"})
        assert turn.status_code == 200
        assert turn.json()["reply"] == "We reconcile everything by hand today."
        assert turn.json()["terminal"] is False

        detail = client.get(f"/api/simulations/{session_id}")
        assert detail.status_code == 200
        transcript = detail.json()["transcript"]
        assert [t["speaker"] for t in transcript] == ["rep", "prospect"]
        assert detail.json()["turns"] == 2

    def test_end_then_score_from_persisted_transcript(self, client, llm):
        session_id = _start(client).json()["session_id"]
        client.post(f"/api/simulations/{session_id}/turns", json={"message": "What challenges come up at close?"})

        ended = client.post(f"/api/simulations/{session_id}/end")
        assert ended.status_code == 200
        assert ended.json()["status"] == "completed"
        assert client.get(f"/api/simulations/{session_id}").status_code == 404

        scored = client.post(f"/api/simulations/{session_id}/score")
        assert scored.status_code == 200
        data = scored.json()
        assert data["session_id"] == session_id
        assert data["analysis_mode"] == "partial"
        assert data["detailed_analysis"]["discovery"]["total_questions"] == 1

    def test_score_live_session(self, client, llm):
        session_id = _start(client).json()["session_id"]
        client.post(f"/api/simulations/{session_id}/turns", json={"message": "Tell me about your close?"})

        scored = client.post(f"/api/simulations/{session_id}/score")
        assert scored.status_code == 200
        assert scored.json()["call_type"] == "discovery-outbound"

    @pytest.mark.parametrize("method,path", [
        ("post", "/api/simulations/missing/turns"),
        ("get", "/api/simulations/missing"),
        ("post", "/api/simulations/missing/end"),
        ("post", "/api/simulations/missing/score"),
    ])
    def test_unknown_session_is_404(self, client, llm, method, path):
        kwargs = {"json": {"message": "hello"}} if path.endswith("turns") else {}
        assert getattr(client, method)(path, **kwargs).status_code == 404


class TestScoringApi:
    def test_score_and_fetch(self, client, llm):
        created = client.post("/api/scoring", json=SCORE_BODY)
        assert created.status_code == 200
        data = created.json()
        assert data["persona_level"] == "director"
        assert data["analysis_mode"] == "partial"
        assert data["coaching_feedback"]["summary"].startswith("Partial analysis:")
        assert set(data["breakdown"]) == {"talk_ratio", "discovery", "objection_handling", "confidence", "cta"}

        fetched = client.get(f"/api/scoring/{data['score_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["overall_score"] == pytest.approx(data["overall_score"])

    def test_full_mode_when_generation_validates(self, client, llm):
        llm.generate_json.return_value = {
            "metrics": {"confidence": {"score": 80}, "cta": {"score": 90}},
            "strengths": [],
            "improvements": [],
        }
        data = client.post("/api/scoring", json=SCORE_BODY).json()
        assert data["analysis_mode"] == "full"
        assert data["breakdown"]["cta"]["score"] == 90

    def test_unknown_call_type_is_422(self, client, llm):
        assert client.post("/api/scoring", json=dict(SCORE_BODY, call_type="cold-email")).status_code == 422

    def test_insights_over_saved_scores(self, client, llm):
        client.post("/api/scoring", json=SCORE_BODY)
        client.post("/api/scoring", json=dict(SCORE_BODY, call_type="elevator-pitch"))

        data = client.get("/api/scoring/insights").json()
        assert data["count"] >= 2
        assert data["trends"]["trend"] in ("improving", "stable", "declining")
        assert data["insights"]["best_call_type"] in ("discovery-outbound", "elevator-pitch")

    def test_missing_score_is_404(self, client, llm):
        assert client.get("/api/scoring/999999").status_code == 404


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health_degraded_without_key(self, client):
        data = client.get("/health").json()
        assert data["checks"]["database"] == "ok"
        assert data["status"] == "degraded"
        assert "active_sessions" in data["checks"]

    def test_health_simple(self, client):
        assert client.get("/health/simple").json() == {"status": "ok"}
