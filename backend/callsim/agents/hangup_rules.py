# backend/callsim/agents/hangup_rules.py
"""
Early-termination rules for the hardest difficulty tier.

A hangup models the prospect ending the call because of poor rep
technique. Rules are evaluated in a fixed order: the generic rules
first, then the rules attached to the persona's archetype. The first
rule that fires becomes the hangup reason; every rule that fires is
recorded.

Archetypes are an explicit enum on PersonaConfig. Persona names and
titles never select rules.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

from callsim.agents.catalog import HANGUP_DIFFICULTY, PersonaArchetype
from callsim.utils import text_patterns as tp

RAPPORT_REQUIRED_FOR_PROBING = 0.2
RAMBLING_WORD_LIMIT = 60


class HangupTrigger(Enum):
    GENERIC_PITCH = "generic_pitch"
    PREMATURE_DISCOVERY = "premature_discovery"
    IGNORED_OBJECTION = "ignored_objection"
    UNPROFESSIONAL_OPENING = "unprofessional_opening"
    BUZZWORD_INTOLERANCE = "buzzword_intolerance"
    SMALL_TALK = "small_talk"
    NO_ROI_FOCUS = "no_roi_focus"
    RAMBLING_PITCH = "rambling_pitch"


HANGUP_DESCRIPTIONS: Dict[str, str] = {
    "generic_pitch": "The rep opened with a generic, buzzword-heavy pitch that could apply to anyone.",
    "premature_discovery": "The rep pried into budget or decision-making before earning any rapport.",
    "ignored_objection": "The rep ignored the concern you just raised and kept pitching.",
    "unprofessional_opening": "The rep opened the call casually and unprofessionally.",
    "buzzword_intolerance": "You have zero patience for marketing buzzwords.",
    "small_talk": "You have zero patience for small talk from strangers.",
    "no_roi_focus": "The rep did not lead with numbers or financial impact.",
    "rambling_pitch": "The rep rambled on and wasted your limited time.",
}

HANGUP_LINES: Dict[str, str] = {
    "generic_pitch": "I get pitches like this ten times a day. I'm going to stop you there. Goodbye.",
    "premature_discovery": "I'm not discussing our budget with someone I just met. I have to go.",
    "ignored_objection": "You're not listening to what I said. I'm ending this call.",
    "unprofessional_opening": "I don't have time for this. Goodbye.",
    "buzzword_intolerance": "That's a lot of buzzwords and zero substance. I'm hanging up.",
    "small_talk": "I don't do small talk on cold calls. Goodbye.",
    "no_roi_focus": "If you can't tell me what this does for our numbers, we're done here.",
    "rambling_pitch": "I've heard enough. I have another meeting. Goodbye.",
}

DEFAULT_HANGUP_LINE = "I'm going to end the call here. Goodbye."


@dataclass(frozen=True)
class HangupContext:
    """Everything a rule may look at for one rep utterance."""
    utterance: str
    archetype: PersonaArchetype
    difficulty: int
    rapport_level: float
    is_first_rep_turn: bool
    open_objection: bool


Rule = Tuple[HangupTrigger, Callable[[HangupContext], bool]]


# =============================================================================
# PREDICATES
# =============================================================================

def _generic_pitch(ctx: HangupContext) -> bool:
    return len(tp.buzzwords_in(ctx.utterance)) >= 2


def _premature_discovery(ctx: HangupContext) -> bool:
    if not tp.has_question(ctx.utterance):
        return False
    topics = tp.extract_topics(ctx.utterance)
    return (
        any(topic in topics for topic in tp.SENSITIVE_DISCOVERY_TOPICS)
        and ctx.rapport_level < RAPPORT_REQUIRED_FOR_PROBING
    )


def _ignored_objection(ctx: HangupContext) -> bool:
    if not ctx.open_objection:
        return False
    return not tp.has_objection_handling(ctx.utterance) and not tp.has_question(ctx.utterance)


def _unprofessional_opening(ctx: HangupContext) -> bool:
    return ctx.is_first_rep_turn and tp.has_casual_opener(ctx.utterance)


def _any_buzzword(ctx: HangupContext) -> bool:
    return bool(tp.buzzwords_in(ctx.utterance))


def _small_talk(ctx: HangupContext) -> bool:
    return tp.has_small_talk(ctx.utterance)


def _no_roi_focus(ctx: HangupContext) -> bool:
    return ctx.is_first_rep_turn and not tp.has_roi_language(ctx.utterance)


def _rambling(ctx: HangupContext) -> bool:
    return tp.word_count(ctx.utterance) > RAMBLING_WORD_LIMIT


GENERIC_RULES: Tuple[Rule, ...] = (
    (HangupTrigger.GENERIC_PITCH, _generic_pitch),
    (HangupTrigger.PREMATURE_DISCOVERY, _premature_discovery),
    (HangupTrigger.IGNORED_OBJECTION, _ignored_objection),
    (HangupTrigger.UNPROFESSIONAL_OPENING, _unprofessional_opening),
)

ARCHETYPE_RULES: Dict[PersonaArchetype, Tuple[Rule, ...]] = {
    PersonaArchetype.STANDARD: (),
    PersonaArchetype.HOSTILE_CTO: (
        (HangupTrigger.BUZZWORD_INTOLERANCE, _any_buzzword),
        (HangupTrigger.SMALL_TALK, _small_talk),
    ),
    PersonaArchetype.SKEPTICAL_CFO: (
        (HangupTrigger.NO_ROI_FOCUS, _no_roi_focus),
    ),
    PersonaArchetype.TIME_PRESSED_EXECUTIVE: (
        (HangupTrigger.RAMBLING_PITCH, _rambling),
    ),
}


def hangup_enabled(difficulty: int) -> bool:
    return difficulty >= HANGUP_DIFFICULTY


def evaluate_hangup(ctx: HangupContext) -> Tuple[HangupTrigger, ...]:
    """
    Return every trigger that fires for this utterance, in evaluation order.

    Always empty below the hardest difficulty tier.
    """
    if not hangup_enabled(ctx.difficulty):
        return ()
    rules = GENERIC_RULES + ARCHETYPE_RULES.get(ctx.archetype, ())
    return tuple(trigger for trigger, predicate in rules if predicate(ctx))


def hangup_line(reason: str) -> str:
    return HANGUP_LINES.get(reason, DEFAULT_HANGUP_LINE)
