# backend/callsim/services/openai_service.py
"""
OpenAI collaborator for prospect replies and structured scoring.

Both entry points are best-effort: they never raise. generate_chat()
returns "" and generate_json() returns None on a missing key, timeout,
API error, open circuit or unparseable output, so callers can fall back
(canned prospect line, deterministic-only score).
"""
from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx
from openai import AsyncOpenAI

from callsim.config import settings
from callsim.utils.circuit_breaker import CircuitBreakerError, get_circuit_breaker
from callsim.utils.logger import logger


class OpenAIService:
    # Shared across instances so every session reuses one connection pool
    _http_client: Optional[httpx.AsyncClient] = None
    _async_client: Optional[AsyncOpenAI] = None

    def __init__(self, model: Optional[str] = None):
        self.model = (model or settings.OPENAI_MODEL or "gpt-4o-mini").strip()
        self.breaker = get_circuit_breaker("openai", failure_threshold=5, reset_timeout=60.0)

    @classmethod
    def get_async_client(cls) -> Optional[AsyncOpenAI]:
        if cls._async_client is None and settings.OPENAI_API_KEY:
            if cls._http_client is None:
                cls._http_client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
            cls._async_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, http_client=cls._http_client)
        return cls._async_client

    @classmethod
    async def close_clients(cls) -> None:
        if cls._async_client is not None:
            await cls._async_client.close()
            cls._async_client = None
        if cls._http_client is not None:
            await cls._http_client.aclose()
            cls._http_client = None

    @property
    def is_enabled(self) -> bool:
        return bool(settings.OPENAI_API_KEY)

    async def _complete(self, timeout_s: float, **request: Any) -> Optional[str]:
        client = self.get_async_client()
        if client is None:
            return None

        async def _request():
            return await asyncio.wait_for(
                client.chat.completions.create(model=self.model, **request),
                timeout=timeout_s,
            )

        started = time.time()
        try:
            resp = await self.breaker.call(_request)
        except asyncio.TimeoutError:
            logger.warning(f"[LLM] completion timed out after {(time.time() - started) * 1000:.0f}ms")
            return None
        except CircuitBreakerError as e:
            logger.warning(f"[LLM] skipped: {e}")
            return None
        except Exception as e:
            logger.error(f"[LLM] completion failed after {(time.time() - started) * 1000:.0f}ms: {e}")
            return None

        logger.info(f"[LLM] completion {(time.time() - started) * 1000:.0f}ms (model={self.model})")
        if not resp.choices:
            return None
        return (resp.choices[0].message.content or "").strip()

    async def generate_chat(
        self,
        system_prompt: str,
        history: Sequence[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        presence_penalty: float = 0.0,
        frequency_penalty: float = 0.0,
        timeout_s: float = 12.0,
    ) -> str:
        """One in-character reply. Returns "" so the caller can fall back."""
        messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        messages.extend(history)

        text = await self._complete(
            timeout_s,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
        )
        return text or ""

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        timeout_s: float = 30.0,
    ) -> Optional[Dict[str, Any]]:
        """Structured output as a dict, or None when absent or not a JSON object."""
        text = await self._complete(
            timeout_s,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"[LLM] structured output was not valid JSON: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning("[LLM] structured output was not a JSON object")
            return None
        return data
