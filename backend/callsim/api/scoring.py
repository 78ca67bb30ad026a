# backend/callsim/api/scoring.py
from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from callsim.agents import metrics_calculator as mc
from callsim.agents.catalog import ScenarioConfigError
from callsim.agents.scoring_engine import CallScore, CallScoringEngine
from callsim.database import get_db, safe_commit, safe_refresh
from callsim.models.call_score import CallScoreRecord
from callsim.utils.logger import logger

router = APIRouter(prefix="/api/scoring", tags=["scoring"])


class ScoreTranscriptRequest(BaseModel):
    # Entries are normalized by the engine, so any shape is accepted here
    transcript: List[Any] = Field(default_factory=list)
    call_type: str
    persona_level: str = "manager"


def get_scoring_engine() -> CallScoringEngine:
    return CallScoringEngine()


def persist_score(db: Session, result: CallScore, session_id: Optional[str] = None) -> CallScoreRecord:
    scores = result.metric_scores()
    record = CallScoreRecord(
        session_id=session_id,
        call_type=result.call_type.value,
        persona_level=result.persona_level.value,
        analysis_mode=result.analysis_mode,
        overall_score=result.overall_score,
        talk_ratio_score=scores.get("talk_ratio"),
        discovery_score=scores.get("discovery"),
        objection_handling_score=scores.get("objection_handling"),
        confidence_score=scores.get("confidence"),
        cta_score=scores.get("cta"),
        summary=result.coaching.summary,
        result=result.to_dict(),
    )
    db.add(record)
    success, error = safe_commit(db, "save call score")
    if not success:
        raise HTTPException(status_code=500, detail=error)
    safe_refresh(db, record, "refresh call score")
    return record


def score_response(record: CallScoreRecord) -> dict:
    payload = dict(record.result or {})
    payload["score_id"] = record.id
    payload["session_id"] = record.session_id
    payload["created_at"] = record.created_at.isoformat() if record.created_at else None
    return payload


@router.post("")
async def score_transcript(
    body: ScoreTranscriptRequest,
    db: Session = Depends(get_db),
    engine: CallScoringEngine = Depends(get_scoring_engine),
):
    try:
        result = await engine.score(body.transcript, body.call_type, body.persona_level)
    except ScenarioConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))

    record = persist_score(db, result)
    logger.info(f"[SCORING] saved score {record.id} ({result.analysis_mode})")
    return score_response(record)


@router.get("/insights")
async def score_insights(limit: int = 50, db: Session = Depends(get_db)):
    """Trend of the latest score against earlier ones, plus per-call-type insights."""
    records = (
        db.query(CallScoreRecord)
        .order_by(CallScoreRecord.id.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
    if not records:
        return {"count": 0, "trends": mc.calculate_trends(0, []), "insights": mc.generate_performance_insights([])}

    history = [r.overall_score for r in reversed(records)]
    return {
        "count": len(records),
        "trends": mc.calculate_trends(history[-1], history[:-1]),
        "insights": mc.generate_performance_insights(
            {"call_type": r.call_type, "score": r.overall_score} for r in records
        ),
    }


@router.get("/{score_id}")
async def get_score(score_id: int, db: Session = Depends(get_db)):
    record = db.query(CallScoreRecord).filter(CallScoreRecord.id == score_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Score not found")
    return score_response(record)
