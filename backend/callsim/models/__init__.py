# backend/callsim/models/__init__.py
from callsim.models.simulation import SimulationRecord
from callsim.models.call_score import CallScoreRecord

__all__ = ['SimulationRecord', 'CallScoreRecord']
