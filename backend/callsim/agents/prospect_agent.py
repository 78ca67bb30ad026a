# backend/callsim/agents/prospect_agent.py
"""
Simulated prospect sessions.

A SimulationSession owns exactly one ConversationState / ProspectMemory
pair. take_turn() is serialized by a per-session asyncio.Lock: the rep
utterance goes through the engine, the resulting directive goes to the
text generator, the reply is folded back in, and only then is the new
pair committed. A failed or empty generation falls back to a canned
line for the persona level; it never fails the turn.

Sessions are tracked in a process-wide registry with the same
threading.Lock / lazy asyncio.Lock split used for other shared state.
"""

import asyncio
import random
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from callsim.agents.catalog import DEFAULT_TABLES, EngineTables
from callsim.agents.conversation_state import (
    BehavioralDirective,
    ConversationEngine,
    ConversationState,
    ProspectMemory,
    TurnStamper,
    session_analytics,
)
from callsim.agents.hangup_rules import hangup_line
from callsim.agents.scenario import ScenarioContext
from callsim.config import settings
from callsim.services.openai_service import OpenAIService
from callsim.utils.logger import logger
from callsim.utils.transcript import REP

GENERIC_FALLBACK_LINE = "I'm not sure I understand. Can you clarify?"


class SessionNotFoundError(KeyError):
    """Raised when a session id is not in the registry."""
    pass


@dataclass(frozen=True)
class TurnResult:
    session_id: str
    reply: str
    phase: str
    rapport_level: float
    trust_level: float
    engagement_level: float
    terminal: bool
    hangup_reason: Optional[str]
    hangup_triggers: Tuple[str, ...]
    response_delay_ms: int
    used_fallback: bool
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "reply": self.reply,
            "phase": self.phase,
            "rapport_level": round(self.rapport_level, 4),
            "trust_level": round(self.trust_level, 4),
            "engagement_level": round(self.engagement_level, 4),
            "terminal": self.terminal,
            "hangup_reason": self.hangup_reason,
            "hangup_triggers": list(self.hangup_triggers),
            "response_delay_ms": self.response_delay_ms,
            "used_fallback": self.used_fallback,
            "status": self.status,
        }


class SimulationSession:
    def __init__(
        self,
        scenario: ScenarioContext,
        llm: Optional[OpenAIService] = None,
        tables: EngineTables = DEFAULT_TABLES,
        seed: Optional[int] = None,
        stamper: Optional[TurnStamper] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.scenario = scenario
        self.tables = tables
        self.rng = random.Random(seed)
        self.engine = ConversationEngine(scenario, tables=tables, stamper=stamper, rng=self.rng)
        self.llm = llm or OpenAIService()
        self.state: ConversationState = self.engine.initial_state()
        self.memory: ProspectMemory = self.engine.initial_memory()
        self.opening: BehavioralDirective = self.engine.opening_directive(self.state)
        self.created_at = datetime.now(timezone.utc)
        self.last_activity = self.created_at
        self.ended = False
        self._lock = asyncio.Lock()

    @property
    def status(self) -> str:
        if self.state.should_hangup:
            return "hung_up"
        if self.ended:
            return "completed"
        return "active"

    def _history_messages(self, memory: ProspectMemory) -> List[Dict[str, str]]:
        window = memory.recent(settings.HISTORY_WINDOW_TURNS)
        return [
            {"role": "user" if turn.speaker == REP else "assistant", "content": turn.message}
            for turn in window
        ]

    def fallback_line(self) -> str:
        patterns = self.tables.response_patterns.get(self.scenario.persona.level) or {}
        lines = patterns.get("greeting") or (GENERIC_FALLBACK_LINE,)
        return self.rng.choice(lines)

    async def _generate(self, directive: BehavioralDirective, memory: ProspectMemory) -> str:
        return await self.llm.generate_chat(
            directive.text,
            self._history_messages(memory),
            temperature=settings.PROSPECT_TEMPERATURE,
            max_tokens=settings.PROSPECT_MAX_TOKENS,
            presence_penalty=settings.PROSPECT_PRESENCE_PENALTY,
            frequency_penalty=settings.PROSPECT_FREQUENCY_PENALTY,
            timeout_s=settings.PROSPECT_TIMEOUT_SECONDS,
        )

    async def take_turn(self, message: Optional[str]) -> TurnResult:
        """Run one rep utterance through the engine and produce the prospect's reply."""
        async with self._lock:
            already_terminal = self.state.should_hangup
            state, memory, directive = self.engine.advance(self.state, self.memory, message)

            used_fallback = False
            if directive.terminal:
                if already_terminal:
                    reply = hangup_line(directive.hangup_reason or "")
                else:
                    reply = await self._generate(directive, memory)
                    if not reply:
                        reply = hangup_line(directive.hangup_reason or "")
                        used_fallback = True
                    logger.info(f"[SESSION] {self.id} hung up ({directive.hangup_reason})")
            else:
                reply = await self._generate(directive, memory)
                if not reply:
                    reply = self.fallback_line()
                    used_fallback = True
                    logger.warning(f"[PROSPECT] {self.id} generation empty, using canned line")
                state, memory, _ = self.engine.record_prospect_reply(state, memory, reply)

            self.state, self.memory = state, memory
            self.last_activity = datetime.now(timezone.utc)

            logger.info(
                f"[TURN] {self.id} phase={state.current_phase.value} "
                f"rapport={state.rapport_level:.2f} trust={state.trust_level:.2f} "
                f"terminal={directive.terminal}"
            )

            return TurnResult(
                session_id=self.id,
                reply=reply,
                phase=state.current_phase.value,
                rapport_level=state.rapport_level,
                trust_level=state.trust_level,
                engagement_level=state.engagement_level,
                terminal=directive.terminal,
                hangup_reason=state.hangup_reason,
                hangup_triggers=state.hangup_triggers,
                response_delay_ms=directive.response_delay_ms,
                used_fallback=used_fallback,
                status=self.status,
            )

    def transcript(self) -> List[Dict[str, Any]]:
        return [turn.to_dict() for turn in self.memory.history]

    def analytics(self) -> Dict[str, Any]:
        return session_analytics(self.state, self.memory)

    def summary(self) -> Dict[str, Any]:
        revealed = self.memory.revealed
        return {
            "session_id": self.id,
            "status": self.status,
            "call_type": self.scenario.call_type.value,
            "difficulty": self.scenario.difficulty,
            "persona_level": self.scenario.persona.level.value,
            "archetype": self.scenario.persona.archetype.value,
            "state": self.state.to_dict(),
            "revealed": {
                "budget": revealed.budget,
                "timeline": revealed.timeline,
                "company_size": revealed.company_size,
                "decision_process": revealed.decision_process,
                "challenges": list(revealed.challenges),
                "goals": list(revealed.goals),
            },
            "turns": len(self.memory.history),
            "analytics": self.analytics(),
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# SESSION REGISTRY
# =============================================================================

_sessions: Dict[str, SimulationSession] = {}
_registry_lock = threading.Lock()
_async_registry_lock: Optional[asyncio.Lock] = None


def _get_async_lock() -> asyncio.Lock:
    global _async_registry_lock
    if _async_registry_lock is None:
        _async_registry_lock = asyncio.Lock()
    return _async_registry_lock


def _remove_stale_locked(now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    max_age = timedelta(hours=settings.SESSION_MAX_AGE_HOURS)
    stale = [sid for sid, s in _sessions.items() if (now - s.last_activity) > max_age]
    for sid in stale:
        del _sessions[sid]
    return len(stale)


async def create_session(
    scenario: ScenarioContext,
    llm: Optional[OpenAIService] = None,
    seed: Optional[int] = None,
    tables: EngineTables = DEFAULT_TABLES,
    stamper: Optional[TurnStamper] = None,
) -> SimulationSession:
    session = SimulationSession(scenario, llm=llm, tables=tables, seed=seed, stamper=stamper)
    async with _get_async_lock():
        if len(_sessions) >= settings.MAX_SESSIONS:
            removed = _remove_stale_locked()
            if len(_sessions) >= settings.MAX_SESSIONS:
                oldest = min(_sessions.values(), key=lambda s: s.last_activity)
                del _sessions[oldest.id]
                removed += 1
            logger.info(f"[REGISTRY] evicted {removed} session(s) at capacity")
        _sessions[session.id] = session

    logger.info(
        f"[SESSION] created {session.id} call_type={scenario.call_type.value} "
        f"difficulty={scenario.difficulty} level={scenario.persona.level.value}"
    )
    return session


async def get_session(session_id: str) -> SimulationSession:
    async with _get_async_lock():
        session = _sessions.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


async def close_session(session_id: str) -> SimulationSession:
    async with _get_async_lock():
        session = _sessions.pop(session_id, None)
    if session is None:
        raise SessionNotFoundError(session_id)
    session.ended = True
    logger.info(f"[SESSION] closed {session_id} status={session.status}")
    return session


def get_session_count() -> int:
    with _registry_lock:
        return len(_sessions)


async def cleanup_stale_sessions() -> int:
    async with _get_async_lock():
        return _remove_stale_locked()


async def cleanup_all_sessions() -> int:
    """Drop every session. Called on shutdown."""
    async with _get_async_lock():
        count = len(_sessions)
        _sessions.clear()
    logger.info(f"[REGISTRY] cleared {count} session(s)")
    return count
