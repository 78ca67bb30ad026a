from callsim.agents.catalog import (
    CallType,
    ConversationPhase,
    EngineTables,
    PersonaArchetype,
    PersonaLevel,
    ScenarioConfigError,
    DEFAULT_TABLES,
)
from callsim.agents.scenario import ScenarioContext, build_scenario
from callsim.agents.conversation_state import ConversationEngine, ConversationState, ProspectMemory
from callsim.agents.prospect_agent import SimulationSession, TurnResult
from callsim.agents.scoring_engine import CallScore, CallScoringEngine

__all__ = [
    'CallType',
    'ConversationPhase',
    'EngineTables',
    'PersonaArchetype',
    'PersonaLevel',
    'ScenarioConfigError',
    'DEFAULT_TABLES',
    'ScenarioContext',
    'build_scenario',
    'ConversationEngine',
    'ConversationState',
    'ProspectMemory',
    'SimulationSession',
    'TurnResult',
    'CallScore',
    'CallScoringEngine',
]
