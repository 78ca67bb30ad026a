# backend/callsim/agents/scenario.py
"""
Scenario model: who the prospect is, what business they run, what is
being sold, and how hard the call should be.

All records are frozen. build_scenario() is the only way the engine
obtains a ScenarioContext and it refuses unknown persona levels, call
types, difficulties and archetypes instead of defaulting.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from callsim.agents.catalog import (
    DEFAULT_TABLES,
    CallType,
    EngineTables,
    PersonaArchetype,
    PersonaLevel,
    ScenarioConfigError,
    parse_archetype,
    parse_call_type,
    parse_difficulty,
    parse_persona_level,
)

_WORD = re.compile(r"[a-z]{4,}")
_STOPWORDS = {"with", "from", "that", "this", "their", "have", "into", "about", "over", "than"}


def _as_tuple(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,) if values.strip() else ()
    return tuple(str(v).strip() for v in values if v is not None and str(v).strip())


def _dedupe(values: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return tuple(seen)


@dataclass(frozen=True)
class PersonaConfig:
    level: PersonaLevel
    title: str
    department: str = ""
    personality_traits: Tuple[str, ...] = ()
    communication_style: Optional[str] = None
    objection_style: Optional[str] = None
    archetype: PersonaArchetype = PersonaArchetype.STANDARD
    name: Optional[str] = None
    years_in_role: Optional[int] = None


@dataclass(frozen=True)
class BusinessContext:
    company_name: str = ""
    industry: str = ""
    company_size: str = ""
    challenges: Tuple[str, ...] = ()
    current_solutions: Tuple[str, ...] = ()
    budget: Optional[str] = None
    timeline: Optional[str] = None
    goals: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductContext:
    name: str = ""
    category: str = ""
    value_propositions: Tuple[str, ...] = ()
    features: Tuple[str, ...] = ()
    competitive_advantages: Tuple[str, ...] = ()
    pricing: Optional[str] = None


@dataclass(frozen=True)
class ScenarioContext:
    persona: PersonaConfig
    business: BusinessContext
    product: ProductContext
    call_type: CallType
    difficulty: int
    specific_objections: Tuple[str, ...] = ()
    hidden_needs: Tuple[str, ...] = ()
    success_metrics: Tuple[str, ...] = ()


PersonaInput = Union[PersonaConfig, Mapping[str, Any]]
BusinessInput = Union[BusinessContext, Mapping[str, Any], None]
ProductInput = Union[ProductContext, Mapping[str, Any], None]


# =============================================================================
# COERCION
# =============================================================================

def persona_from_mapping(data: PersonaInput) -> PersonaConfig:
    if isinstance(data, PersonaConfig):
        return PersonaConfig(
            level=parse_persona_level(data.level),
            title=data.title,
            department=data.department,
            personality_traits=_as_tuple(data.personality_traits),
            communication_style=data.communication_style,
            objection_style=data.objection_style,
            archetype=parse_archetype(data.archetype),
            name=data.name,
            years_in_role=data.years_in_role,
        )
    if not isinstance(data, Mapping):
        raise ScenarioConfigError(f"Persona must be a mapping, got {type(data).__name__}")

    level = parse_persona_level(data.get("level"))
    years = data.get("years_in_role")
    return PersonaConfig(
        level=level,
        title=str(data.get("title") or "").strip(),
        department=str(data.get("department") or "").strip(),
        personality_traits=_as_tuple(data.get("personality_traits")),
        communication_style=data.get("communication_style") or None,
        objection_style=data.get("objection_style") or None,
        archetype=parse_archetype(data.get("archetype")),
        name=data.get("name") or None,
        years_in_role=int(years) if years is not None else None,
    )


def business_from_mapping(data: BusinessInput) -> BusinessContext:
    if isinstance(data, BusinessContext):
        return data
    data = data or {}
    return BusinessContext(
        company_name=str(data.get("company_name") or ""),
        industry=str(data.get("industry") or ""),
        company_size=str(data.get("company_size") or ""),
        challenges=_as_tuple(data.get("challenges")),
        current_solutions=_as_tuple(data.get("current_solutions")),
        budget=data.get("budget") or None,
        timeline=data.get("timeline") or None,
        goals=_as_tuple(data.get("goals")),
    )


def product_from_mapping(data: ProductInput) -> ProductContext:
    if isinstance(data, ProductContext):
        return data
    data = data or {}
    return ProductContext(
        name=str(data.get("name") or ""),
        category=str(data.get("category") or ""),
        value_propositions=_as_tuple(data.get("value_propositions")),
        features=_as_tuple(data.get("features")),
        competitive_advantages=_as_tuple(data.get("competitive_advantages")),
        pricing=data.get("pricing") or None,
    )


# =============================================================================
# DERIVED LISTS
# =============================================================================

def _keywords(text: str) -> set:
    return {w for w in _WORD.findall(text.lower()) if w not in _STOPWORDS}


def derive_hidden_needs(business: BusinessContext, product: ProductContext) -> Tuple[str, ...]:
    needs = [f"Resolve: {challenge}" for challenge in business.challenges]
    challenge_words = set()
    for challenge in business.challenges:
        challenge_words |= _keywords(challenge)
    for prop in product.value_propositions:
        if challenge_words & _keywords(prop):
            needs.append(prop)
    return _dedupe(needs)


def build_scenario(
    persona: PersonaInput,
    business: BusinessInput,
    product: ProductInput,
    call_type: Any,
    difficulty: Any,
    tables: EngineTables = DEFAULT_TABLES,
) -> ScenarioContext:
    """
    Validate inputs and assemble an immutable ScenarioContext.

    Raises:
        ScenarioConfigError: unknown persona level, call type, difficulty or archetype
    """
    persona_cfg = persona_from_mapping(persona)
    ct = parse_call_type(call_type)
    level = parse_difficulty(difficulty)

    if persona_cfg.level not in tables.personas:
        raise ScenarioConfigError(f"No persona definition for {persona_cfg.level.value}")
    if ct not in tables.call_types:
        raise ScenarioConfigError(f"No call type configuration for {ct.value}")
    if level not in tables.difficulties:
        raise ScenarioConfigError(f"No difficulty modifier for level {level}")

    business_ctx = business_from_mapping(business)
    product_ctx = product_from_mapping(product)

    definition = tables.personas[persona_cfg.level]
    call_config = tables.call_types[ct]

    return ScenarioContext(
        persona=persona_cfg,
        business=business_ctx,
        product=product_ctx,
        call_type=ct,
        difficulty=level,
        specific_objections=_dedupe(definition.common_objections + call_config.objection_types),
        hidden_needs=derive_hidden_needs(business_ctx, product_ctx),
        success_metrics=tuple(call_config.success_criteria),
    )
