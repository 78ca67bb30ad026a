# backend/callsim/main.py
from datetime import datetime, timezone

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from callsim.config import settings, validate_config, get_config_status, mask_url, ConfigValidationError
from callsim.database import get_db, init_db
from callsim.api import simulations, scoring
from callsim.agents.prospect_agent import cleanup_all_sessions, get_session_count
from callsim.services.openai_service import OpenAIService
from callsim.utils.circuit_breaker import all_breaker_stats
from callsim.utils.logger import logger

app = FastAPI(title="CallSim Backend", version="1.0.0")


@app.on_event("startup")
async def startup_event():
    logger.info("CallSim Backend Starting...")

    # Only fatal in production
    try:
        result = validate_config(raise_on_error=settings.ENVIRONMENT == "production")
        for warning in result.get("warnings", []):
            logger.warning(f"Config warning: {warning}")
        for error in result.get("errors", []):
            logger.error(f"Config error: {error}")
    except ConfigValidationError as e:
        logger.critical(f"FATAL: {e}")
        raise SystemExit(1)

    logger.info(f"Database: {mask_url(settings.DATABASE_URL)}")
    init_db()
    logger.info("Database tables created/verified")
    logger.info("CallSim Backend Started")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("CallSim Backend Shutting Down...")

    session_count = await cleanup_all_sessions()
    if session_count > 0:
        logger.info(f"Cleaned up {session_count} simulation sessions")

    await OpenAIService.close_clients()
    logger.info("CallSim Backend Shutdown Complete")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(simulations.router)
app.include_router(scoring.router)


@app.get("/")
async def root():
    return {"message": "CallSim API", "status": "running", "version": "1.0.0"}


@app.get("/health")
async def health(db: Session = Depends(get_db)):
    """
    Health check: database, configuration, live sessions and the
    generative collaborator's circuit breaker.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "checks": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except SQLAlchemyError as e:
        health_status["checks"]["database"] = f"error: {str(e)[:100]}"
        health_status["status"] = "degraded"

    config_status = get_config_status()
    health_status["checks"]["config"] = config_status
    health_status["checks"]["active_sessions"] = get_session_count()
    health_status["checks"]["circuit_breakers"] = all_breaker_stats()

    if not config_status.get("database_configured"):
        health_status["status"] = "unhealthy"
    elif not config_status.get("openai_configured"):
        health_status["status"] = "degraded"

    return health_status


@app.get("/health/simple")
async def health_simple():
    """Simple health check for load balancers."""
    return {"status": "ok"}
