# backend/callsim/api/simulations.py
"""
Practice-call sessions over HTTP.

A session lives in the in-process registry while it is active. Its
SimulationRecord row is kept in step after every turn and receives
the full transcript when the call ends.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from callsim.agents.catalog import ScenarioConfigError
from callsim.agents.prospect_agent import (
    SessionNotFoundError,
    SimulationSession,
    close_session,
    create_session,
    get_session,
)
from callsim.agents.scenario import build_scenario
from callsim.agents.scoring_engine import CallScoringEngine
from callsim.api.scoring import get_scoring_engine, persist_score, score_response
from callsim.database import get_db, safe_commit
from callsim.models.simulation import SimulationRecord
from callsim.services.openai_service import OpenAIService
from callsim.utils.logger import logger

router = APIRouter(prefix="/api/simulations", tags=["simulations"])


class PersonaIn(BaseModel):
    level: str
    title: str = ""
    department: str = ""
    personality_traits: List[str] = Field(default_factory=list)
    communication_style: Optional[str] = None
    objection_style: Optional[str] = None
    archetype: Optional[str] = None
    name: Optional[str] = None
    years_in_role: Optional[int] = None


class BusinessIn(BaseModel):
    company_name: str = ""
    industry: str = ""
    company_size: str = ""
    challenges: List[str] = Field(default_factory=list)
    current_solutions: List[str] = Field(default_factory=list)
    budget: Optional[str] = None
    timeline: Optional[str] = None
    goals: List[str] = Field(default_factory=list)


class ProductIn(BaseModel):
    name: str = ""
    category: str = ""
    value_propositions: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    competitive_advantages: List[str] = Field(default_factory=list)
    pricing: Optional[str] = None


class SimulationCreate(BaseModel):
    persona: PersonaIn
    business: BusinessIn = Field(default_factory=BusinessIn)
    product: ProductIn = Field(default_factory=ProductIn)
    call_type: str
    difficulty: Union[int, str]
    seed: Optional[int] = None


class TurnRequest(BaseModel):
    message: str = ""


def get_llm() -> OpenAIService:
    return OpenAIService()


async def _require_session(session_id: str) -> SimulationSession:
    try:
        return await get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Simulation not found")


def _find_record(db: Session, session_id: str) -> Optional[SimulationRecord]:
    return db.query(SimulationRecord).filter(SimulationRecord.session_id == session_id).first()


def _sync_record(record: SimulationRecord, session: SimulationSession) -> None:
    state = session.state
    record.status = session.status
    record.final_phase = state.current_phase.value
    record.hangup_reason = state.hangup_reason
    record.hangup_triggers = list(state.hangup_triggers)
    record.rapport_level = state.rapport_level
    record.trust_level = state.trust_level
    record.engagement_level = state.engagement_level
    record.budget_discussed = state.budget_discussed
    record.next_steps_discussed = state.next_steps_discussed
    record.turn_count = len(session.memory.history)


@router.post("")
async def start_simulation(
    body: SimulationCreate,
    db: Session = Depends(get_db),
    llm: OpenAIService = Depends(get_llm),
):
    try:
        scenario = build_scenario(
            body.persona.model_dump(),
            body.business.model_dump(),
            body.product.model_dump(),
            body.call_type,
            body.difficulty,
        )
    except ScenarioConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session = await create_session(scenario, llm=llm, seed=body.seed)

    record = SimulationRecord(
        session_id=session.id,
        call_type=scenario.call_type.value,
        difficulty=scenario.difficulty,
        persona_level=scenario.persona.level.value,
        archetype=scenario.persona.archetype.value,
        scenario=body.model_dump(exclude={"seed"}),
        status=session.status,
        final_phase=session.state.current_phase.value,
        turn_count=0,
    )
    db.add(record)
    success, error = safe_commit(db, "create simulation")
    if not success:
        await close_session(session.id)
        raise HTTPException(status_code=500, detail=error)

    return {
        "session_id": session.id,
        "status": session.status,
        "phase": session.state.current_phase.value,
        "call_type": scenario.call_type.value,
        "difficulty": scenario.difficulty,
        "persona_level": scenario.persona.level.value,
        "archetype": scenario.persona.archetype.value,
        "opening": {
            "phase": session.opening.phase.value,
            "response_delay_ms": session.opening.response_delay_ms,
            "specific_objections": list(scenario.specific_objections),
            "hidden_needs": list(scenario.hidden_needs),
            "success_metrics": list(scenario.success_metrics),
        },
    }


@router.post("/{session_id}/turns")
async def take_turn(session_id: str, body: TurnRequest, db: Session = Depends(get_db)):
    session = await _require_session(session_id)
    result = await session.take_turn(body.message)

    record = _find_record(db, session_id)
    if record is not None:
        _sync_record(record, session)
        success, error = safe_commit(db, "update simulation")
        if not success:
            logger.warning(f"[SESSION] {session_id} turn not persisted: {error}")

    return result.to_dict()


@router.get("/{session_id}")
async def get_simulation(session_id: str):
    session = await _require_session(session_id)
    summary = session.summary()
    summary["transcript"] = session.transcript()
    return summary


@router.post("/{session_id}/end")
async def end_simulation(session_id: str, db: Session = Depends(get_db)):
    try:
        session = await close_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Simulation not found")

    record = _find_record(db, session_id)
    if record is not None:
        _sync_record(record, session)
        record.transcript = session.transcript()
        record.analytics = session.analytics()
        record.ended_at = datetime.now(timezone.utc)
        success, error = safe_commit(db, "end simulation")
        if not success:
            raise HTTPException(status_code=500, detail=error)

    return session.summary()


@router.post("/{session_id}/score")
async def score_simulation(
    session_id: str,
    db: Session = Depends(get_db),
    engine: CallScoringEngine = Depends(get_scoring_engine),
):
    record = _find_record(db, session_id)
    try:
        session = await get_session(session_id)
        transcript = session.transcript()
        call_type = session.scenario.call_type
        persona_level = session.scenario.persona.level
    except SessionNotFoundError:
        # Ended sessions are scored from their persisted transcript
        if record is None or record.transcript is None:
            raise HTTPException(status_code=404, detail="Simulation not found")
        transcript = record.transcript
        call_type = record.call_type
        persona_level = record.persona_level

    result = await engine.score(transcript, call_type, persona_level)
    saved = persist_score(db, result, session_id=session_id)
    logger.info(f"[SCORING] session {session_id} scored {result.overall_score:.1f} ({result.analysis_mode})")
    return score_response(saved)
