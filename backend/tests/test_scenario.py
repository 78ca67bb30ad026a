# backend/tests/test_scenario.py
from dataclasses import FrozenInstanceError, replace

import pytest

from callsim.agents.catalog import (
    DEFAULT_TABLES,
    CallType,
    PersonaArchetype,
    PersonaLevel,
    ScenarioConfigError,
    adjust_difficulty_response,
    get_budget_range,
    parse_difficulty,
)
from callsim.agents.scenario import build_scenario


PERSONA = {"level": "manager", "title": "Operations Manager"}


class TestBuildScenario:
    def test_builds_frozen_context(self, scenario_factory):
        scenario = scenario_factory()

        assert scenario.persona.level == PersonaLevel.DIRECTOR
        assert scenario.call_type == CallType.DISCOVERY_OUTBOUND
        assert scenario.difficulty == 3
        assert scenario.persona.archetype == PersonaArchetype.STANDARD
        assert scenario.persona.personality_traits == ("analytical", "skeptical")
        with pytest.raises(FrozenInstanceError):
            scenario.difficulty = 5

    def test_hidden_needs_link_challenges_to_value_props(self, scenario_factory):
        scenario = scenario_factory()
        assert scenario.hidden_needs == (
            "Resolve: Manual invoice reconciliation",
            "Resolve: Slow month-end close",
            "Automates invoice reconciliation",
            "Cuts month-end close time in half",
        )

    def test_objections_merge_persona_and_call_type(self, scenario_factory):
        scenario = scenario_factory()
        definition = DEFAULT_TABLES.persona(PersonaLevel.DIRECTOR)
        config = DEFAULT_TABLES.call_type(CallType.DISCOVERY_OUTBOUND)

        assert scenario.specific_objections[: len(definition.common_objections)] == definition.common_objections
        assert set(config.objection_types) <= set(scenario.specific_objections)
        assert len(set(scenario.specific_objections)) == len(scenario.specific_objections)
        assert scenario.success_metrics == config.success_criteria

    @pytest.mark.parametrize("level", ["c-level", "C_LEVEL", " VP ", PersonaLevel.JUNIOR])
    def test_level_spellings(self, level):
        scenario = build_scenario({"level": level, "title": "Buyer"}, None, None, "elevator-pitch", 1)
        assert isinstance(scenario.persona.level, PersonaLevel)

    @pytest.mark.parametrize("archetype,expected", [
        (None, PersonaArchetype.STANDARD),
        ("hostile-cto", PersonaArchetype.HOSTILE_CTO),
        ("skeptical_cfo", PersonaArchetype.SKEPTICAL_CFO),
        ("time-pressed-executive", PersonaArchetype.TIME_PRESSED_EXECUTIVE),
    ])
    def test_archetype_is_explicit(self, archetype, expected):
        persona = dict(PERSONA, archetype=archetype)
        assert build_scenario(persona, {}, {}, "discovery-inbound", 2).persona.archetype == expected

    def test_title_never_selects_archetype(self):
        persona = {"level": "c-level", "title": "Skeptical CFO"}
        assert build_scenario(persona, {}, {}, "discovery-inbound", 5).persona.archetype == PersonaArchetype.STANDARD

    @pytest.mark.parametrize("persona,call_type,difficulty", [
        ({"level": "intern", "title": "x"}, "discovery-outbound", 3),
        ({"title": "x"}, "discovery-outbound", 3),
        (PERSONA, "cold-email", 3),
        (PERSONA, None, 3),
        (PERSONA, "discovery-outbound", 0),
        (PERSONA, "discovery-outbound", 6),
        (PERSONA, "discovery-outbound", "hard"),
        (PERSONA, "discovery-outbound", True),
        (PERSONA, "discovery-outbound", 2.5),
        (dict(PERSONA, archetype="grumpy-cio"), "discovery-outbound", 3),
        ("manager", "discovery-outbound", 3),
    ])
    def test_refuses_unknown_values(self, persona, call_type, difficulty):
        with pytest.raises(ScenarioConfigError):
            build_scenario(persona, {}, {}, call_type, difficulty)

    def test_substituted_tables_are_consulted(self):
        tables = replace(DEFAULT_TABLES, difficulties={1: DEFAULT_TABLES.difficulty(1)})
        build_scenario(PERSONA, {}, {}, "discovery-outbound", 1, tables=tables)
        with pytest.raises(ScenarioConfigError):
            build_scenario(PERSONA, {}, {}, "discovery-outbound", 2, tables=tables)


class TestLookups:
    @pytest.mark.parametrize("value,expected", [(1, 1), ("3", 3), (5, 5)])
    def test_parse_difficulty(self, value, expected):
        assert parse_difficulty(value) == expected

    def test_budget_ranges(self):
        assert get_budget_range("manager", "medium") == "$10K-$50K"
        assert get_budget_range(PersonaLevel.C_LEVEL, "Enterprise") == "$10M+"
        with pytest.raises(ScenarioConfigError):
            get_budget_range("manager", "galactic")

    def test_difficulty_adjustment_defaults_to_average(self):
        assert adjust_difficulty_response("unknown") == adjust_difficulty_response("average")
        assert "struggling" in adjust_difficulty_response("poor")

    def test_weights_sum_to_one(self):
        for call_type in CallType:
            assert sum(DEFAULT_TABLES.weights(call_type).values()) == pytest.approx(1.0)
