# tradecert/core/logging.py
import logging
import sys

from loguru import logger

from tradecert.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

_configured = False


class InterceptHandler(logging.Handler):
    """Forwards stdlib records (uvicorn, sqlalchemy, alembic) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper(), format=LOG_FORMAT, backtrace=False)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "alembic"):
        logging.getLogger(name).handlers = [InterceptHandler()]
    _configured = True
