# backend/callsim/utils/logger.py
from loguru import logger
import sys

from callsim.config import settings

logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    level="INFO"
)

logger.add(
    f"{settings.LOG_DIR}/callsim_{{time}}.log",
    rotation="500 MB",
    retention="10 days",
    level="DEBUG"
)
