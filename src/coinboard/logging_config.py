import json
import logging
import sys
from pathlib import Path
from typing import Any, cast

from loguru import logger
from loguru._defaults import LOGURU_FORMAT

SENSITIVE_KEYS = frozenset({"api_key", "apikey", "authorization", "secret", "token"})
REDACTED = "***REDACTED***"


class InterceptHandler(logging.Handler):
    """Redirects standard logging records (httpx, asyncio, Qt) to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = cast(Any, frame.f_back)
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _sensitive_data_filter(record: dict[str, Any]) -> bool:
    """Redacts sensitive values bound through `logger.bind(...)`.

    Keys are compared case-insensitively. The record is always kept.
    """
    for key, value in record["extra"].items():
        if key.lower() in SENSITIVE_KEYS and isinstance(value, str):
            record["extra"][key] = REDACTED
    return True


def _json_format(record: dict[str, Any]) -> str:
    """Serializes a record to one JSON line for the file sink.

    Loguru expects a format template back, so the serialized line is stashed
    in `extra` and referenced from the returned template.
    """
    log_object = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "source": {
            "name": record["name"],
            "file": f"{record['file'].name}:{record['line']}",
            "function": record["function"],
        },
        "extra": {k: v for k, v in record["extra"].items() if k != "_json"},
    }
    record["extra"]["_json"] = json.dumps(log_object, default=str)
    return "{extra[_json]}\n"


def setup_logging(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_dir: Path | None = None,
) -> None:
    """Configures the application-wide Loguru logger.

    Removes the default handler, adds a colourised console sink and, when
    `log_dir` is given, a JSON-lines file sink rotated daily and kept for a
    week. Standard library logging is routed through Loguru as well.

    Args:
        console_level: The minimum log level for console output.
        file_level: The minimum log level for file output.
        log_dir: Directory to store log files. If None, file logging is disabled.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level.upper(),
        format=LOGURU_FORMAT,
        colorize=True,
        filter=_sensitive_data_filter,
    )

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "coinboard_{time:YYYY-MM-DD}.log",
            level=file_level.upper(),
            format=_json_format,
            rotation="00:00",
            retention="7 days",
            compression="zip",
            filter=_sensitive_data_filter,
            enqueue=True,
            backtrace=False,
            diagnose=False,
            encoding="utf-8",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info("Logging configured successfully.")
