import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = "{time} | {level} | {module}:{function}:{line} | {message}"


def _format(record) -> str:
    # Context attached with logger.bind(chat_id=..., user_id=...) goes after the message.
    if record["extra"]:
        context = " ".join(f"{key}={value}" for key, value in record["extra"].items())
        return LOG_FORMAT + " | " + context.replace("{", "{{").replace("}", "}}") + "\n{exception}"
    return LOG_FORMAT + "\n{exception}"


def setup_logging(level: str, log_path: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format=_format)

    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_path,
        level="DEBUG",
        format=_format,
        rotation="100 KB",
        compression="zip",
        encoding="utf-8",
    )
