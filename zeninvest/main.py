"""Entry point — runs the ZenInvest journal API under uvicorn."""

import sys
from pathlib import Path

import uvicorn
from loguru import logger

from zeninvest.coach_service import PLACEHOLDER_KEYS
from zeninvest.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <level>{level: <7}</level> "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)


def configure_logging(log_path: str | Path, console_level: str = "INFO") -> list[int]:
    """Route loguru to the console and a daily journal log. Returns the sink ids."""
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    return [
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=console_level.upper()),
        logger.add(
            log_path,
            rotation="00:00",
            retention=f"{settings.log_retention_days} days",
            level="DEBUG",
            encoding="utf-8",
        ),
    ]


def log_startup_summary():
    configured = settings.anthropic_api_key not in PLACEHOLDER_KEYS
    coach = "configured" if configured else "not configured (journal only)"
    reflection = (
        f"at least {settings.min_review_notes_length} chars"
        if settings.min_review_notes_length
        else "optional"
    )
    logger.info(f"ZenInvest journal on http://{settings.api_host}:{settings.api_port}")
    logger.info(f"Plans stored in {Path(settings.db_path).resolve()}")
    logger.info(f"AI coach {coach}, model {settings.coach_model}")
    logger.info(f"Close-out reflection {reflection}")


def main():
    configure_logging(settings.log_path, settings.log_level)
    log_startup_summary()

    from zeninvest.api.main import create_app

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
