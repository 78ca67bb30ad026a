# backend/tests/conftest.py
import os
import tempfile

# Settings are read at import time, so the environment is pinned before callsim loads
_TMP_DIR = tempfile.mkdtemp(prefix="callsim-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/callsim_test.db"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["ENVIRONMENT"] = "test"

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from callsim.agents import prospect_agent
from callsim.agents.scenario import build_scenario
from callsim.main import app


DEFAULT_PERSONA = {
    "level": "director",
    "title": "Director of Finance",
    "department": "Finance",
    "personality_traits": ["analytical", "skeptical"],
}

DEFAULT_BUSINESS = {
    "company_name": "Northwind Logistics",
    "industry": "logistics",
    "company_size": "medium",
    "challenges": ["Manual invoice reconciliation", "Slow month-end close"],
    "current_solutions": ["Spreadsheets"],
}

DEFAULT_PRODUCT = {
    "name": "LedgerFlow",
    "category": "finance automation",
    "value_propositions": ["Automates invoice reconciliation", "Cuts month-end close time in half"],
    "features": ["Bank feeds", "Approval workflows"],
}


def make_scenario(persona=None, call_type="discovery-outbound", difficulty=3, business=None, product=None):
    return build_scenario(
        persona or DEFAULT_PERSONA,
        DEFAULT_BUSINESS if business is None else business,
        DEFAULT_PRODUCT if product is None else product,
        call_type,
        difficulty,
    )


def make_llm(reply="That's interesting, tell me more.", scoring=None):
    """OpenAIService stand-in with canned chat and JSON outputs."""
    llm = AsyncMock()
    llm.generate_chat = AsyncMock(return_value=reply)
    llm.generate_json = AsyncMock(return_value=scoring)
    return llm


@pytest.fixture(autouse=True)
def reset_session_registry():
    prospect_agent._sessions.clear()
    prospect_agent._async_registry_lock = None
    yield
    prospect_agent._sessions.clear()
    prospect_agent._async_registry_lock = None


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scenario_factory():
    return make_scenario


@pytest.fixture
def llm_factory():
    return make_llm
