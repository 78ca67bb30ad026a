# backend/callsim/database.py
import logging
from typing import Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError

from callsim.config import settings  # config must not import callsim.database

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=3600,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    # Registers every model on Base.metadata before create_all
    import callsim.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def safe_commit(db: Session, operation: str = "database operation") -> Tuple[bool, Optional[str]]:
    """
    Commit with rollback on failure.

    Args:
        db: SQLAlchemy Session
        operation: Description of the operation for logging

    Returns:
        Tuple of (success: bool, error_message: Optional[str])

    Usage:
        db.add(record)
        success, error = safe_commit(db, "create simulation")
        if not success:
            raise HTTPException(status_code=500, detail=error)
    """
    try:
        db.commit()
        return True, None
    except IntegrityError as e:
        db.rollback()
        error_msg = f"Integrity error during {operation}: {str(e.orig)[:200]}"
        logger.error(error_msg)
        return False, error_msg
    except OperationalError as e:
        db.rollback()
        error_msg = f"Database operational error during {operation}: {str(e.orig)[:200]}"
        logger.error(error_msg)
        return False, error_msg
    except SQLAlchemyError as e:
        db.rollback()
        error_msg = f"Database error during {operation}: {str(e)[:200]}"
        logger.error(error_msg)
        return False, error_msg


def safe_refresh(db: Session, instance, operation: str = "refresh") -> Tuple[bool, Optional[str]]:
    try:
        db.refresh(instance)
        return True, None
    except SQLAlchemyError as e:
        error_msg = f"Database error during {operation}: {str(e)[:200]}"
        logger.error(error_msg)
        return False, error_msg
