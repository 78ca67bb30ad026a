# backend/callsim/config.py
import os
import re
from pathlib import Path
from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parents[1]   # backend/
REPO_DIR = BACKEND_DIR.parent                        # repo root

ENV_BACKEND = BACKEND_DIR / ".env"
ENV_REPO = REPO_DIR / ".env"
ENV_FILE = ENV_BACKEND if ENV_BACKEND.exists() else ENV_REPO

load_dotenv(dotenv_path=str(ENV_FILE), override=False)


def _parse_origins(raw: str) -> list[str]:
    # split, strip, drop empties, drop trailing slashes
    out = []
    for o in (raw or "").split(","):
        o = (o or "").strip().rstrip("/")
        if o:
            out.append(o)
    return out


def _float_env(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _int_env(name: str, default: str) -> int:
    return int(os.getenv(name, default))


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./callsim.db")

    # ================= OpenAI Configuration =================
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY") or None
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # Prospect reply sampling
    PROSPECT_TEMPERATURE: float = _float_env("PROSPECT_TEMPERATURE", "0.8")
    PROSPECT_MAX_TOKENS: int = _int_env("PROSPECT_MAX_TOKENS", "500")
    PROSPECT_PRESENCE_PENALTY: float = _float_env("PROSPECT_PRESENCE_PENALTY", "0.6")
    PROSPECT_FREQUENCY_PENALTY: float = _float_env("PROSPECT_FREQUENCY_PENALTY", "0.3")
    PROSPECT_TIMEOUT_SECONDS: float = _float_env("PROSPECT_TIMEOUT_SECONDS", "12")

    # Structured scoring pass
    SCORING_TEMPERATURE: float = _float_env("SCORING_TEMPERATURE", "0.3")
    SCORING_MAX_TOKENS: int = _int_env("SCORING_MAX_TOKENS", "2000")
    SCORING_TIMEOUT_SECONDS: float = _float_env("SCORING_TIMEOUT_SECONDS", "30")

    # Number of most recent turns sent alongside a directive
    HISTORY_WINDOW_TURNS: int = _int_env("HISTORY_WINDOW_TURNS", "6")

    # ================= Session Registry =================
    MAX_SESSIONS: int = _int_env("MAX_SESSIONS", "1000")
    SESSION_MAX_AGE_HOURS: float = _float_env("SESSION_MAX_AGE_HOURS", "2")

    # IMPORTANT: keep localhost + 127.0.0.1 for Vite dev
    CORS_ORIGINS: list[str] = _parse_origins(
        os.getenv(
            "CORS_ORIGINS",
            "http://127.0.0.1:5173,http://localhost:5173,http://127.0.0.1:3000,http://localhost:3000",
        )
    )

    LOG_DIR: str = os.getenv("LOG_DIR", "logs")


settings = Settings()


# =============================================================================
# CONFIGURATION VALIDATION
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(raise_on_error: bool = True) -> dict:
    """
    Validate all configuration settings.

    Args:
        raise_on_error: If True, raises ConfigValidationError on critical errors.
                       If False, returns dict with errors and warnings.

    Returns:
        Dict with 'errors' (critical) and 'warnings' (non-critical) lists.

    Raises:
        ConfigValidationError: If raise_on_error=True and critical errors found.
    """
    errors = []
    warnings = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is required")

    if settings.PROSPECT_TIMEOUT_SECONDS <= 0:
        errors.append("PROSPECT_TIMEOUT_SECONDS must be positive")
    if settings.SCORING_TIMEOUT_SECONDS <= 0:
        errors.append("SCORING_TIMEOUT_SECONDS must be positive")
    if settings.HISTORY_WINDOW_TURNS <= 0:
        errors.append("HISTORY_WINDOW_TURNS must be positive")
    if settings.MAX_SESSIONS <= 0:
        errors.append("MAX_SESSIONS must be positive")

    # Warnings - Degraded functionality
    if not settings.OPENAI_API_KEY:
        warnings.append("OPENAI_API_KEY missing - prospect replies use canned lines and scoring runs in partial mode")
    if not 0.0 <= settings.PROSPECT_TEMPERATURE <= 2.0:
        warnings.append("PROSPECT_TEMPERATURE outside 0-2 will be rejected by the API")

    if settings.ENVIRONMENT == "production":
        if not settings.CORS_ORIGINS or any("localhost" in o for o in settings.CORS_ORIGINS):
            warnings.append("CORS_ORIGINS includes localhost in production - consider restricting")
        if settings.DATABASE_URL.startswith("sqlite"):
            warnings.append("DATABASE_URL points at SQLite in production")

    result = {"errors": errors, "warnings": warnings}

    if raise_on_error and errors:
        raise ConfigValidationError(f"Configuration errors: {'; '.join(errors)}")

    return result


def get_config_status() -> dict:
    """
    Get configuration status for health check endpoints.
    """
    return {
        "environment": settings.ENVIRONMENT,
        "database_configured": bool(settings.DATABASE_URL),
        "openai_configured": bool(settings.OPENAI_API_KEY),
        "model": settings.OPENAI_MODEL,
        "history_window_turns": settings.HISTORY_WINDOW_TURNS,
        "max_sessions": settings.MAX_SESSIONS,
    }


def mask_url(url: str) -> str:
    """Mask sensitive parts of URLs for safe logging."""
    if not url:
        return "[not set]"
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:****@', url)
