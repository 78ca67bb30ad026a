# backend/callsim/agents/conversation_state.py
"""
Conversation state machine for the simulated prospect.

State and memory are frozen value records. ConversationEngine.advance()
takes the current pair plus a rep utterance and returns a new pair and
the behavioral directive for the next prospect reply; it never mutates
its inputs. record_prospect_reply() folds the generated reply back in.

Invariants:
- rapport / trust / engagement only increase, clamped to [0, 1]
- objection, pain point, value prop, question and commitment lists are
  append-only and deduplicated in first-seen order
- discussion flags are set, never cleared
- once should_hangup is set the session is terminal: advance() returns
  the same state, the same memory and an identical terminal directive
"""

import random
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from callsim.agents.catalog import (
    DEFAULT_TABLES,
    MAX_RESPONSE_DELAY_MS,
    MIN_RESPONSE_DELAY_MS,
    RESPONSE_DELAY_JITTER_MS,
    RESPONSE_DELAY_STEP_MS,
    ConversationPhase,
    EngineTables,
)
from callsim.agents.directive_compiler import compile_directive, compile_hangup_directive
from callsim.agents.hangup_rules import HangupContext, evaluate_hangup
from callsim.agents.scenario import ScenarioContext
from callsim.utils import text_patterns as tp
from callsim.utils.logger import logger
from callsim.utils.transcript import PROSPECT, REP, Turn

INITIAL_RAPPORT = 0.1
INITIAL_TRUST = 0.1
INITIAL_ENGAGEMENT = 0.5

RAPPORT_STEP = 0.05
TRUST_STEP = 0.1
ENGAGEMENT_STEP = 0.1

__all__ = [
    "Turn",
    "ConversationState",
    "ProspectMemory",
    "RevealedInformation",
    "RepTactics",
    "EmotionalSnapshot",
    "UtteranceClassification",
    "ProspectReply",
    "PhaseSignals",
    "BehavioralDirective",
    "TurnStamper",
    "SequentialStamper",
    "ConversationEngine",
    "classify_utterance",
    "parse_prospect_reply",
    "resolve_phase",
    "session_analytics",
]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _append_unique(existing: Tuple[str, ...], new: Iterable[str]) -> Tuple[str, ...]:
    out = list(existing)
    for item in new:
        if item and item not in out:
            out.append(item)
    return tuple(out)


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class ConversationState:
    current_phase: ConversationPhase = ConversationPhase.OPENING
    rapport_level: float = INITIAL_RAPPORT
    trust_level: float = INITIAL_TRUST
    engagement_level: float = INITIAL_ENGAGEMENT
    objections_surfaced: Tuple[str, ...] = ()
    pain_points_discovered: Tuple[str, ...] = ()
    value_props_presented: Tuple[str, ...] = ()
    questions_asked: Tuple[str, ...] = ()
    commitments_given: Tuple[str, ...] = ()
    should_hangup: bool = False
    hangup_reason: Optional[str] = None
    hangup_triggers: Tuple[str, ...] = ()
    next_steps_discussed: bool = False
    budget_discussed: bool = False
    timeline_discussed: bool = False
    decision_makers_identified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_phase": self.current_phase.value,
            "rapport_level": round(self.rapport_level, 4),
            "trust_level": round(self.trust_level, 4),
            "engagement_level": round(self.engagement_level, 4),
            "objections_surfaced": list(self.objections_surfaced),
            "pain_points_discovered": list(self.pain_points_discovered),
            "value_props_presented": list(self.value_props_presented),
            "questions_asked": list(self.questions_asked),
            "commitments_given": list(self.commitments_given),
            "should_hangup": self.should_hangup,
            "hangup_reason": self.hangup_reason,
            "hangup_triggers": list(self.hangup_triggers),
            "next_steps_discussed": self.next_steps_discussed,
            "budget_discussed": self.budget_discussed,
            "timeline_discussed": self.timeline_discussed,
            "decision_makers_identified": self.decision_makers_identified,
        }


@dataclass(frozen=True)
class RevealedInformation:
    budget: Optional[str] = None
    timeline: Optional[str] = None
    company_size: Optional[str] = None
    decision_process: Optional[str] = None
    challenges: Tuple[str, ...] = ()
    goals: Tuple[str, ...] = ()

    def merge(self, facts: Mapping[str, str], challenges: Iterable[str] = (), goals: Iterable[str] = ()) -> "RevealedInformation":
        """Later values overwrite earlier ones; nothing is ever retracted."""
        updates = {k: v for k, v in facts.items() if k in ("budget", "timeline", "company_size", "decision_process") and v}
        return replace(
            self,
            challenges=_append_unique(self.challenges, challenges),
            goals=_append_unique(self.goals, goals),
            **updates,
        )


@dataclass(frozen=True)
class RepTactics:
    questions_asked: Tuple[str, ...] = ()
    value_props_used: Tuple[str, ...] = ()
    objection_handling_approaches: Tuple[str, ...] = ()
    closing_attempts: int = 0


@dataclass(frozen=True)
class EmotionalSnapshot:
    timestamp: str
    sentiment: str
    trigger: str


@dataclass(frozen=True)
class ProspectMemory:
    history: Tuple[Turn, ...] = ()
    revealed: RevealedInformation = field(default_factory=RevealedInformation)
    tactics: RepTactics = field(default_factory=RepTactics)
    emotional_journey: Tuple[EmotionalSnapshot, ...] = ()

    @property
    def rep_turn_count(self) -> int:
        return sum(1 for t in self.history if t.speaker == REP)

    def last_turn(self) -> Optional[Turn]:
        return self.history[-1] if self.history else None

    def recent(self, window: int) -> Tuple[Turn, ...]:
        if window <= 0:
            return ()
        return self.history[-window:]


@dataclass(frozen=True)
class UtteranceClassification:
    has_question: bool
    question_type: str
    has_value_prop: bool
    has_objection_handling: bool
    has_closing_attempt: bool
    sentiment: str
    topics: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_question": self.has_question,
            "question_type": self.question_type,
            "has_value_prop": self.has_value_prop,
            "has_objection_handling": self.has_objection_handling,
            "has_closing_attempt": self.has_closing_attempt,
            "sentiment": self.sentiment,
            "topics": list(self.topics),
        }


@dataclass(frozen=True)
class ProspectReply:
    message: str
    sentiment: str
    raised_objection: Optional[str]
    revealed: Mapping[str, str]
    emotional_tone: str
    pain_points: Tuple[str, ...]
    goals: Tuple[str, ...]
    commitments: Tuple[str, ...]
    topics: Tuple[str, ...]
    closing_signal: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiment": self.sentiment,
            "raised_objection": self.raised_objection,
            "revealed": dict(self.revealed),
            "emotional_tone": self.emotional_tone,
            "pain_points": list(self.pain_points),
            "goals": list(self.goals),
            "commitments": list(self.commitments),
            "topics": list(self.topics),
            "closing_signal": self.closing_signal,
        }


@dataclass(frozen=True)
class PhaseSignals:
    closing: bool = False
    objection: bool = False
    handles_objection: bool = False
    question: bool = False
    value_prop: bool = False


@dataclass(frozen=True)
class BehavioralDirective:
    text: str
    terminal: bool
    hangup_reason: Optional[str]
    response_delay_ms: int
    phase: ConversationPhase


# =============================================================================
# CLOCK / ID
# =============================================================================

class TurnStamper:
    """Supplies opaque turn ids and timestamps."""

    def next_id(self) -> str:
        return uuid.uuid4().hex

    def now(self) -> str:
        return datetime.now(timezone.utc).isoformat()


class SequentialStamper(TurnStamper):
    """Deterministic ids and one-second-apart timestamps."""

    def __init__(self, start: Optional[datetime] = None, step_seconds: float = 1.0):
        self._count = 0
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._step = step_seconds
        self._ticks = 0

    def next_id(self) -> str:
        self._count += 1
        return f"turn-{self._count}"

    def now(self) -> str:
        value = self._start + timedelta(seconds=self._ticks * self._step)
        self._ticks += 1
        return value.isoformat()


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify_utterance(text: Optional[str]) -> UtteranceClassification:
    text = text or ""
    return UtteranceClassification(
        has_question=tp.has_question(text),
        question_type=tp.question_type(text),
        has_value_prop=tp.has_value_proposition(text),
        has_objection_handling=tp.has_objection_handling(text),
        has_closing_attempt=tp.has_closing_attempt(text),
        sentiment=tp.message_sentiment(text),
        topics=tuple(tp.extract_topics(text)),
    )


def parse_prospect_reply(text: Optional[str]) -> ProspectReply:
    text = text or ""
    return ProspectReply(
        message=text,
        sentiment=tp.reply_sentiment(text),
        raised_objection=tp.extract_objection(text),
        revealed=_frozen(tp.extract_revealed_information(text)),
        emotional_tone=tp.emotional_tone(text),
        pain_points=tuple(tp.extract_pain_points(text)),
        goals=tuple(tp.extract_goals(text)),
        commitments=tuple(tp.extract_commitments(text)),
        topics=tuple(tp.extract_topics(text)),
        closing_signal=tp.has_closing_attempt(text),
    )


def resolve_phase(current: ConversationPhase, signals: PhaseSignals) -> ConversationPhase:
    """
    Next phase given this turn's signals. Priority, highest first:
    closing, objection, objection-handling back to discovery,
    discovery to value-prop, opening to discovery.
    """
    if signals.closing:
        return ConversationPhase.CLOSING
    if signals.objection:
        return ConversationPhase.OBJECTION_HANDLING
    if current == ConversationPhase.OBJECTION_HANDLING and signals.handles_objection and signals.question:
        return ConversationPhase.DISCOVERY
    if current == ConversationPhase.DISCOVERY and signals.value_prop:
        return ConversationPhase.VALUE_PROP
    if current == ConversationPhase.OPENING and signals.question:
        return ConversationPhase.DISCOVERY
    return current


# =============================================================================
# ENGINE
# =============================================================================

class ConversationEngine:
    """
    Pure transition functions for one scenario.

    The engine keeps no per-conversation state of its own beyond the
    injected clock and random source; callers own the state/memory pair.
    """

    def __init__(
        self,
        scenario: ScenarioContext,
        tables: EngineTables = DEFAULT_TABLES,
        stamper: Optional[TurnStamper] = None,
        rng: Optional[random.Random] = None,
    ):
        self.scenario = scenario
        self.tables = tables
        self.stamper = stamper or TurnStamper()
        self.rng = rng or random.Random()

    def initial_state(self) -> ConversationState:
        return ConversationState()

    def initial_memory(self) -> ProspectMemory:
        return ProspectMemory()

    def opening_directive(self, state: ConversationState) -> BehavioralDirective:
        return BehavioralDirective(
            text=self._directive_text(state),
            terminal=False,
            hangup_reason=None,
            response_delay_ms=self._base_delay_ms(),
            phase=state.current_phase,
        )

    # ------------------------------------------------------------------
    # Rep side
    # ------------------------------------------------------------------

    def advance(
        self,
        state: ConversationState,
        memory: ProspectMemory,
        utterance: Optional[str],
    ) -> Tuple[ConversationState, ProspectMemory, BehavioralDirective]:
        if state.should_hangup:
            return state, memory, self.terminal_directive(state)

        utterance = utterance or ""
        classification = classify_utterance(utterance)
        rep_turn = self._make_turn(REP, utterance, state.current_phase, classification.to_dict())

        triggers = evaluate_hangup(HangupContext(
            utterance=utterance,
            archetype=self.scenario.persona.archetype,
            difficulty=self.scenario.difficulty,
            rapport_level=state.rapport_level,
            is_first_rep_turn=memory.rep_turn_count == 0,
            open_objection=self._objection_pending(memory),
        ))

        if triggers:
            names = tuple(t.value for t in triggers)
            terminal_state = replace(
                state, should_hangup=True, hangup_reason=names[0], hangup_triggers=names
            )
            terminal_memory = replace(memory, history=memory.history + (rep_turn,))
            logger.info(f"[HANGUP] reason={names[0]} triggers={list(names)} phase={state.current_phase.value}")
            return terminal_state, terminal_memory, self.terminal_directive(terminal_state)

        new_state = self._apply_rep_classification(state, utterance, classification)
        new_memory = replace(
            memory,
            history=memory.history + (rep_turn,),
            tactics=self._update_tactics(memory.tactics, utterance, classification),
            emotional_journey=memory.emotional_journey + (
                EmotionalSnapshot(self.stamper.now(), classification.sentiment, "rep-message"),
            ),
        )

        if new_state.current_phase != state.current_phase:
            logger.debug(f"[TURN] phase {state.current_phase.value} -> {new_state.current_phase.value}")

        directive = BehavioralDirective(
            text=self._directive_text(new_state),
            terminal=False,
            hangup_reason=None,
            response_delay_ms=self.response_delay_ms(),
            phase=new_state.current_phase,
        )
        return new_state, new_memory, directive

    def _apply_rep_classification(
        self, state: ConversationState, utterance: str, c: UtteranceClassification
    ) -> ConversationState:
        rapport = state.rapport_level
        trust = state.trust_level
        engagement = state.engagement_level

        if c.has_question and c.question_type != "none":
            rapport = _clamp(rapport + RAPPORT_STEP)
        if c.has_objection_handling:
            trust = _clamp(trust + TRUST_STEP)
        if c.has_value_prop and state.pain_points_discovered:
            engagement = _clamp(engagement + ENGAGEMENT_STEP)

        phase = resolve_phase(state.current_phase, PhaseSignals(
            closing=c.has_closing_attempt,
            handles_objection=c.has_objection_handling,
            question=c.has_question,
            value_prop=c.has_value_prop,
        ))

        return replace(
            state,
            current_phase=phase,
            rapport_level=rapport,
            trust_level=trust,
            engagement_level=engagement,
            questions_asked=_append_unique(state.questions_asked, [utterance] if c.has_question else []),
            value_props_presented=_append_unique(state.value_props_presented, [utterance] if c.has_value_prop else []),
            next_steps_discussed=state.next_steps_discussed or c.has_closing_attempt,
            budget_discussed=state.budget_discussed or "budget" in c.topics,
            timeline_discussed=state.timeline_discussed or "timeline" in c.topics,
            decision_makers_identified=state.decision_makers_identified or "decision-process" in c.topics,
        )

    @staticmethod
    def _update_tactics(tactics: RepTactics, utterance: str, c: UtteranceClassification) -> RepTactics:
        return RepTactics(
            questions_asked=tactics.questions_asked + ((utterance,) if c.has_question else ()),
            value_props_used=tactics.value_props_used + ((utterance,) if c.has_value_prop else ()),
            objection_handling_approaches=_append_unique(
                tactics.objection_handling_approaches, tp.objection_techniques(utterance)
            ),
            closing_attempts=tactics.closing_attempts + (1 if c.has_closing_attempt else 0),
        )

    @staticmethod
    def _objection_pending(memory: ProspectMemory) -> bool:
        last = memory.last_turn()
        return bool(last and last.speaker == PROSPECT and last.metadata.get("raised_objection"))

    # ------------------------------------------------------------------
    # Prospect side
    # ------------------------------------------------------------------

    def record_prospect_reply(
        self,
        state: ConversationState,
        memory: ProspectMemory,
        reply: Optional[str],
    ) -> Tuple[ConversationState, ProspectMemory, ProspectReply]:
        parsed = parse_prospect_reply(reply)
        if state.should_hangup:
            return state, memory, parsed

        turn = self._make_turn(PROSPECT, parsed.message, state.current_phase, parsed.to_dict())

        phase = resolve_phase(state.current_phase, PhaseSignals(
            closing=parsed.closing_signal,
            objection=parsed.raised_objection is not None,
        ))

        revealed = parsed.revealed
        new_state = replace(
            state,
            current_phase=phase,
            objections_surfaced=_append_unique(
                state.objections_surfaced, [parsed.raised_objection] if parsed.raised_objection else []
            ),
            pain_points_discovered=_append_unique(state.pain_points_discovered, parsed.pain_points),
            commitments_given=_append_unique(state.commitments_given, parsed.commitments),
            next_steps_discussed=state.next_steps_discussed or parsed.closing_signal,
            budget_discussed=state.budget_discussed or "budget" in parsed.topics or "budget" in revealed,
            timeline_discussed=state.timeline_discussed or "timeline" in parsed.topics or "timeline" in revealed,
            decision_makers_identified=(
                state.decision_makers_identified
                or "decision-process" in parsed.topics
                or "decision_process" in revealed
            ),
        )
        new_memory = replace(
            memory,
            history=memory.history + (turn,),
            revealed=memory.revealed.merge(revealed, parsed.pain_points, parsed.goals),
            emotional_journey=memory.emotional_journey + (
                EmotionalSnapshot(self.stamper.now(), parsed.sentiment, "response"),
            ),
        )

        if parsed.raised_objection:
            logger.debug(f"[TURN] objection surfaced: {parsed.raised_objection!r}")
        return new_state, new_memory, parsed

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def terminal_directive(self, state: ConversationState) -> BehavioralDirective:
        reason = state.hangup_reason or ""
        return BehavioralDirective(
            text=compile_hangup_directive(self.scenario.persona, self.scenario.business, reason),
            terminal=True,
            hangup_reason=state.hangup_reason,
            response_delay_ms=self._base_delay_ms(),
            phase=state.current_phase,
        )

    def _directive_text(self, state: ConversationState) -> str:
        return compile_directive(
            self.scenario.persona,
            self.scenario.business,
            self.scenario.call_type,
            self.scenario.difficulty,
            state,
            self.tables,
        )

    def _base_delay_ms(self) -> int:
        base = MIN_RESPONSE_DELAY_MS + (self.scenario.difficulty - 1) * RESPONSE_DELAY_STEP_MS
        return int(min(base, MAX_RESPONSE_DELAY_MS))

    def response_delay_ms(self) -> int:
        """Simulated thinking time before the prospect answers. Pacing only."""
        jitter = self.rng.random() * RESPONSE_DELAY_JITTER_MS
        return int(min(self._base_delay_ms() + jitter, MAX_RESPONSE_DELAY_MS))

    def _make_turn(self, speaker: str, message: str, phase: ConversationPhase, metadata: Mapping[str, Any]) -> Turn:
        return Turn(
            id=self.stamper.next_id(),
            speaker=speaker,
            message=message,
            timestamp=self.stamper.now(),
            phase=phase.value,
            metadata=_frozen(metadata),
        )


# =============================================================================
# ANALYTICS
# =============================================================================

def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def session_analytics(state: ConversationState, memory: ProspectMemory) -> Dict[str, Any]:
    """Turn counts, event counts and pacing for a live or finished session."""
    history = memory.history
    phase_changes = sum(
        1 for prev, cur in zip(history, history[1:]) if prev.phase != cur.phase
    )

    gaps: List[float] = []
    for prev, cur in zip(history, history[1:]):
        a, b = _parse_ts(prev.timestamp), _parse_ts(cur.timestamp)
        if a is not None and b is not None:
            gaps.append(max(0.0, (b - a).total_seconds()))

    avg_gap = sum(gaps) / len(gaps) if gaps else 0.0
    longest = max(gaps) if gaps else 0.0
    if gaps and avg_gap < 5:
        pacing = "rushed"
    elif longest > 30:
        pacing = "choppy"
    else:
        pacing = "smooth"

    return {
        "total_turns": len(history),
        "rep_turns": sum(1 for t in history if t.speaker == REP),
        "prospect_turns": sum(1 for t in history if t.speaker == PROSPECT),
        "events": {
            "phase_changes": phase_changes,
            "objections": len(state.objections_surfaced),
            "commitments": len(state.commitments_given),
            "questions": len(memory.tactics.questions_asked),
            "value_props": len(memory.tactics.value_props_used),
            "closing_attempts": memory.tactics.closing_attempts,
        },
        "average_response_gap_seconds": round(avg_gap, 2),
        "longest_pause_seconds": round(longest, 2),
        "pacing": pacing,
    }
