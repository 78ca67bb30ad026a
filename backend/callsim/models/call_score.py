# backend/callsim/models/call_score.py

from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Text
from sqlalchemy.sql import func

from callsim.database import Base


class CallScoreRecord(Base):
    __tablename__ = "call_scores"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Null for transcripts scored outside a simulation
    session_id = Column(String(64), index=True, nullable=True)

    call_type = Column(String(50), nullable=False)
    persona_level = Column(String(50), nullable=False)
    analysis_mode = Column(String(20), nullable=False)  # full/partial

    overall_score = Column(Float, nullable=False)
    talk_ratio_score = Column(Float)
    discovery_score = Column(Float)
    objection_handling_score = Column(Float)
    confidence_score = Column(Float)
    cta_score = Column(Float)

    summary = Column(Text)
    result = Column(JSON)  # full CallScore.to_dict()

    created_at = Column(DateTime, server_default=func.now())
