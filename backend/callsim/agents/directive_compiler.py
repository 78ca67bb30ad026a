# backend/callsim/agents/directive_compiler.py
"""
Behavioral directive compiler.

Turns (persona, business context, call type, difficulty, live state) into
the natural-language instruction the text generator must follow when
speaking as the prospect. The directive is built from five independent
blocks plus fixed conversation rules and a live-state footer:

    persona | call type | difficulty | objection menu | personality modifiers
    + CONVERSATION RULES + CURRENT CONVERSATION STATE

Every block is a pure function of the static tables and its arguments,
so identical inputs always give byte-identical output.
"""

from typing import TYPE_CHECKING, Any, Iterable, Optional

from callsim.agents.catalog import (
    BUDGET_RANGES,
    DEFAULT_TABLES,
    EngineTables,
    get_budget_range,
    parse_call_type,
    parse_difficulty,
)
from callsim.agents.hangup_rules import HANGUP_DESCRIPTIONS
from callsim.agents.scenario import BusinessContext, PersonaConfig

if TYPE_CHECKING:
    from callsim.agents.conversation_state import ConversationState


CONVERSATION_RULES = (
    "Stay 100% in character as the prospect, not the salesperson",
    "Respond naturally with appropriate emotion and tone",
    "Don't volunteer all information at once - make the rep work for it",
    "React realistically to good and bad sales techniques",
    "Your responses should be 1-3 sentences maximum",
    "Show personality and human reactions",
    "If the rep asks multiple questions, address the most important one",
    "Don't be overly helpful or cooperative unless difficulty level is 1-2",
    "Reference your specific business context when relevant",
    "Track what information you've already shared and maintain consistency",
)

DEFAULT_TRAITS = "Professional, cautious, analytical"
DEFAULT_OBJECTION_STYLE = "Direct but professional, willing to explain concerns if asked"


def _bullets(items: Iterable[str], quote: bool = False) -> str:
    if quote:
        return "\n".join(f'- "{item}"' for item in items)
    return "\n".join(f"- {item}" for item in items)


def _numbered(items: Iterable[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _pct(value: float) -> str:
    return f"{round(value * 100)}%"


def _optional_line(label: str, value: Optional[str]) -> str:
    return f"\n- {label}: {value}" if value else ""


# =============================================================================
# BLOCKS
# =============================================================================

def persona_block(persona: PersonaConfig, business: BusinessContext, tables: EngineTables = DEFAULT_TABLES) -> str:
    definition = tables.persona(persona.level)
    style_notes = (
        f"\nAdditional style notes: {persona.communication_style}" if persona.communication_style else ""
    )
    years = f"{persona.years_in_role} years" if persona.years_in_role else "2-3 years"
    challenges = ", ".join(business.challenges) or "Not specified"
    solutions = ", ".join(business.current_solutions) or "None"
    budget = business.budget
    if not budget and (business.company_size or "").strip().lower() in BUDGET_RANGES[persona.level]:
        budget = f"{get_budget_range(persona.level, business.company_size)} (typical for your level)"

    return (
        f"You are {persona.title or 'a professional'} at {business.company_name or 'your company'}, "
        f"a {business.company_size or 'mid-sized'} {business.industry or 'business'} company.\n"
        "\n"
        "ROLE DETAILS:\n"
        f"- Level: {definition.level.value}\n"
        f"- Department: {persona.department or 'Operations'}\n"
        f"- Years in role: {years}\n"
        f"- Decision-making authority: {definition.decision_making}\n"
        "\n"
        "YOUR RESPONSIBILITIES:\n"
        f"{_bullets(definition.responsibilities)}\n"
        "\n"
        "YOUR PRIORITIES:\n"
        f"{_bullets(definition.priorities[:5])}\n"
        "\n"
        "YOUR COMMUNICATION STYLE:\n"
        f"{definition.communication_style}{style_notes}\n"
        "\n"
        "CURRENT BUSINESS CONTEXT:\n"
        f"- Company: {business.company_name or 'Not specified'}\n"
        f"- Industry: {business.industry or 'Not specified'}\n"
        f"- Size: {business.company_size or 'Not specified'}\n"
        f"- Current challenges: {challenges}\n"
        f"- Existing solutions: {solutions}"
        f"{_optional_line('Budget range', budget)}"
        f"{_optional_line('Decision timeframe', business.timeline)}\n"
        "\n"
        "PERSONALITY TRAITS:\n"
        f"{', '.join(persona.personality_traits) or DEFAULT_TRAITS}\n"
        "\n"
        "INFORMATION SHARING APPROACH:\n"
        f"{definition.information_sharing}\n"
        "\n"
        "Remember to:\n"
        + _numbered((
            "Stay in character throughout the conversation",
            "Reveal information gradually, not all at once",
            "Use language appropriate to your role level",
            "Reference your specific business context when relevant",
            "Show realistic emotions and reactions",
            "Don't be overly helpful - make the rep work for information",
        ))
    )


def call_type_block(call_type: Any, tables: EngineTables = DEFAULT_TABLES) -> str:
    config = tables.call_type(call_type)
    return (
        f"CALL TYPE: {config.call_type.value}\n"
        "\n"
        f"CONTEXT: {config.context}\n"
        "\n"
        f"YOUR BEHAVIOR: {config.prospect_behavior}\n"
        "\n"
        f"RESPONSE PATTERN: {config.response_pattern}\n"
        "\n"
        f"INFORMATION SHARING: {config.information_sharing}\n"
        "\n"
        "COMMON OBJECTIONS FOR THIS CALL TYPE:\n"
        f"{_bullets(config.objection_types, quote=True)}"
    )


def difficulty_block(difficulty: Any, tables: EngineTables = DEFAULT_TABLES) -> str:
    modifier = tables.difficulty(difficulty)
    return (
        f"DIFFICULTY LEVEL: {modifier.level} - {modifier.name}\n"
        "\n"
        "BEHAVIOR MODIFIERS:\n"
        f"- Cooperation Level: {_pct(modifier.cooperation)}\n"
        f"- Information Sharing: {_pct(modifier.information_sharing)}\n"
        f"- Objection Frequency: {_pct(modifier.objection_frequency)}\n"
        f"- Trust Building Required: {_pct(modifier.trust_required)}\n"
        "\n"
        "INTERACTION STYLE:\n"
        f"{modifier.behavior}\n"
        "\n"
        "INFORMATION SHARING APPROACH:\n"
        f"{modifier.sharing_style}\n"
        "\n"
        "OBJECTION STYLE:\n"
        f"{modifier.objection_style}"
    )


def objection_block(persona: PersonaConfig, tables: EngineTables = DEFAULT_TABLES) -> str:
    definition = tables.persona(persona.level)
    return (
        "COMMON OBJECTIONS FOR YOUR ROLE:\n"
        f"{_bullets(definition.common_objections, quote=True)}\n"
        "\n"
        "TYPICAL CONCERNS:\n"
        f"{_bullets(definition.typical_concerns)}\n"
        "\n"
        "OBJECTION STYLE:\n"
        f"{persona.objection_style or DEFAULT_OBJECTION_STYLE}\n"
        "\n"
        "When raising objections:\n"
        + _numbered((
            "Use objections natural to your role level",
            "Don't raise all objections at once",
            "Allow the rep to address each objection",
            "Be open to good responses but maintain skepticism",
            "Reference specific business context in objections",
        ))
    )


def personality_block(traits: Iterable[str], tables: EngineTables = DEFAULT_TABLES) -> str:
    """Empty string when none of the traits has a known modifier."""
    modifiers = [tables.personality_modifiers[t] for t in traits if t in tables.personality_modifiers]
    if not modifiers:
        return ""
    return "PERSONALITY MODIFIERS:\n" + _bullets(modifiers)


def rules_block() -> str:
    return "CONVERSATION RULES:\n" + _numbered(CONVERSATION_RULES)


def state_block(state: "ConversationState") -> str:
    return (
        "CURRENT CONVERSATION STATE:\n"
        f"- Phase: {state.current_phase.value}\n"
        f"- Rapport Level: {state.rapport_level:.2f}\n"
        f"- Trust Level: {state.trust_level:.2f}\n"
        f"- Engagement: {state.engagement_level:.2f}"
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def compile_directive(
    persona: PersonaConfig,
    business: BusinessContext,
    call_type: Any,
    difficulty: Any,
    state: "ConversationState",
    tables: EngineTables = DEFAULT_TABLES,
) -> str:
    """
    Compose the full behavioral directive for the next prospect reply.

    Raises:
        ScenarioConfigError: unknown call type or difficulty
    """
    call_type = parse_call_type(call_type)
    difficulty = parse_difficulty(difficulty)

    blocks = [
        persona_block(persona, business, tables),
        call_type_block(call_type, tables),
        difficulty_block(difficulty, tables),
        objection_block(persona, tables),
        personality_block(persona.personality_traits, tables),
        rules_block(),
        state_block(state),
    ]
    return "\n\n".join(block for block in blocks if block)


def compile_hangup_directive(persona: PersonaConfig, business: BusinessContext, reason: str) -> str:
    """Directive for the terminal turn: the prospect ends the call."""
    why = HANGUP_DESCRIPTIONS.get(reason, "The rep lost your interest.")
    return (
        f"You are {persona.title or 'a professional'} at {business.company_name or 'your company'}. "
        "You are ending this call now.\n"
        "\n"
        f"REASON: {why}\n"
        "\n"
        "INSTRUCTIONS:\n"
        + _numbered((
            "Reply with one short, curt sentence that ends the conversation",
            "Do not ask any questions and do not offer a follow-up",
            "Stay in character; do not explain the scoring or the simulation",
        ))
    )
