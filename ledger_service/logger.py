import sys

from loguru import logger

from .config import LOG_LEVEL

logger.remove()
logger.configure(extra={"component": "app"})
logger.add(
    sys.stderr,
    level=LOG_LEVEL,
    backtrace=False,
    diagnose=False,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level}</level> | {extra[component]} | {message}",
)


def get_logger(name: str = "app"):
    return logger.bind(component=name)
