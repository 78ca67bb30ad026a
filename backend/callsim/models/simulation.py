# backend/callsim/models/simulation.py

from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Boolean
from sqlalchemy.sql import func

from callsim.database import Base


class SimulationRecord(Base):
    __tablename__ = "simulations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(String(64), unique=True, index=True, nullable=False)

    call_type = Column(String(50), nullable=False)
    difficulty = Column(Integer, nullable=False)
    persona_level = Column(String(50), nullable=False)
    archetype = Column(String(50), nullable=False, server_default="standard")
    scenario = Column(JSON)  # persona / business / product as submitted

    status = Column(String(20), index=True, nullable=False, server_default="active")  # active/completed/hung_up
    final_phase = Column(String(50))
    hangup_reason = Column(String(50))
    hangup_triggers = Column(JSON)

    rapport_level = Column(Float)
    trust_level = Column(Float)
    engagement_level = Column(Float)
    budget_discussed = Column(Boolean, default=False)
    next_steps_discussed = Column(Boolean, default=False)

    turn_count = Column(Integer, nullable=False, server_default="0")
    transcript = Column(JSON)
    analytics = Column(JSON)

    created_at = Column(DateTime, server_default=func.now())
    ended_at = Column(DateTime)
