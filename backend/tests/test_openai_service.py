# backend/tests/test_openai_service.py
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from callsim.agents.scoring_engine import ANALYSIS_PARTIAL, CallScoringEngine
from callsim.config import settings
from callsim.services.openai_service import OpenAIService
from callsim.utils.circuit_breaker import get_circuit_breaker


def _fake_client(content):
    completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    create = AsyncMock(return_value=completion)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


async def _slow_completion(**kwargs):
    await asyncio.sleep(1)


@pytest.fixture(autouse=True)
def closed_breaker():
    breaker = get_circuit_breaker("openai")
    breaker.reset()
    yield breaker
    breaker.reset()


@pytest.fixture
def use_client(monkeypatch):
    def _install(content="", side_effect=None):
        client = _fake_client(content)
        if side_effect is not None:
            client.chat.completions.create.side_effect = side_effect
        monkeypatch.setattr(OpenAIService, "get_async_client", classmethod(lambda cls: client))
        return client
    return _install


@pytest.mark.asyncio
async def test_without_key_everything_degrades():
    service = OpenAIService()
    assert service.is_enabled is False
    assert await service.generate_chat("system", [], temperature=0.8, max_tokens=50) == ""
    assert await service.generate_json("system", "user", temperature=0.3, max_tokens=50) is None


@pytest.mark.asyncio
async def test_chat_sends_system_prompt_first(use_client):
    client = use_client("  Who is this?  ")
    reply = await OpenAIService().generate_chat(
        "You are a CFO.", [{"role": "user", "content": "Hi"}], temperature=0.8, max_tokens=50
    )

    assert reply == "Who is this?"
    messages = client.chat.completions.create.await_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "You are a CFO."}
    assert messages[1] == {"role": "user", "content": "Hi"}


@pytest.mark.asyncio
@pytest.mark.parametrize("content,expected", [
    ('{"metrics": {}}', {"metrics": {}}),
    ("[1, 2]", None),
    ("not json", None),
    ("", None),
])
async def test_json_parsing(use_client, content, expected):
    use_client(content)
    assert await OpenAIService().generate_json("system", "user", temperature=0.3, max_tokens=50) == expected


class TestRecoverableFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("side_effect", [
        _slow_completion,
        RuntimeError("upstream 500"),
    ])
    async def test_chat_returns_empty(self, use_client, closed_breaker, side_effect):
        client = use_client(side_effect=side_effect)
        reply = await OpenAIService().generate_chat(
            "You are a CFO.", [{"role": "user", "content": "Hi"}], temperature=0.8, max_tokens=50, timeout_s=0.01
        )

        assert reply == ""
        assert client.chat.completions.create.await_count == 1
        assert closed_breaker.stats.total_failures == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("side_effect", [
        _slow_completion,
        RuntimeError("upstream 500"),
    ])
    async def test_json_returns_none(self, use_client, side_effect):
        use_client(side_effect=side_effect)
        result = await OpenAIService().generate_json(
            "system", "user", temperature=0.3, max_tokens=50, timeout_s=0.01
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_open_circuit_skips_the_request(self, use_client, closed_breaker):
        client = use_client(side_effect=RuntimeError("upstream 500"))
        service = OpenAIService()
        for _ in range(closed_breaker.config.failure_threshold):
            await service.generate_json("system", "user", temperature=0.3, max_tokens=50)

        calls = client.chat.completions.create.await_count
        assert await service.generate_json("system", "user", temperature=0.3, max_tokens=50) is None
        assert client.chat.completions.create.await_count == calls

    @pytest.mark.asyncio
    async def test_scoring_timeout_gives_partial_analysis(self, use_client, monkeypatch):
        client = use_client(side_effect=_slow_completion)
        monkeypatch.setattr(settings, "SCORING_TIMEOUT_SECONDS", 0.01)
        transcript = [
            {"speaker": "rep", "message": "What challenges are you facing with month-end close?"},
            {"speaker": "prospect", "message": "Reconciliation takes us ten days."},
        ]

        result = await CallScoringEngine(llm=OpenAIService()).score(transcript, "discovery-outbound")

        assert result.analysis_mode == ANALYSIS_PARTIAL
        assert client.chat.completions.create.await_count == 2
        assert all(metric.source == "deterministic" for metric in result.breakdown.values())
