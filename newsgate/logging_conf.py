"""Logging configuration built around structlog JSON logging.

Everything under the ``newsgate`` logger goes to the console and to
``logs/newsgate.log``; each provider additionally gets
``logs/providers/<slug>.log``.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Iterable

import structlog

ROOT_LOGGER = "newsgate"
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def log_dir() -> Path:
    env_root = os.environ.get("NEWSGATE_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def main_log_path() -> Path:
    return log_dir() / "newsgate.log"


def provider_log_path(provider_id: str) -> Path:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in provider_id).strip("-")
    return log_dir() / "providers" / f"{slug}.log"


def _dict_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSON_FORMATTER, "fmt": JSON_FIELDS}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
            "main_file": {
                "class": "logging.FileHandler",
                "level": "INFO",
                "filename": str(main_log_path()),
                "formatter": "json",
                "encoding": "utf-8",
            },
        },
        "loggers": {
            ROOT_LOGGER: {"handlers": ["console", "main_file"], "level": level, "propagate": False},
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install the stdlib handlers and structlog pipeline once; return the app logger."""

    global _configured
    (log_dir() / "providers").mkdir(parents=True, exist_ok=True)
    if _configured:
        return structlog.get_logger(ROOT_LOGGER)

    logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO"))
    # structlog renders nothing itself; the JSON formatter on each handler does
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger(ROOT_LOGGER)


def provider_logger(provider_id: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to ``provider_id`` that also writes to the provider's own file."""

    configure_logging(verbose)
    path = provider_log_path(provider_id)
    name = f"{ROOT_LOGGER}.provider.{path.stem}"
    stdlib_logger = logging.getLogger(name)
    attached = {getattr(handler, "baseFilename", None) for handler in stdlib_logger.handlers}
    if str(path) not in attached:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.getLogger(ROOT_LOGGER).handlers[0].formatter)
        stdlib_logger.addHandler(handler)
    return structlog.get_logger(name).bind(provider=provider_id)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last ``line_count`` lines of ``path`` (empty when missing)."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


def available_provider_logs() -> Iterable[Path]:
    providers_dir = log_dir() / "providers"
    if not providers_dir.exists():
        return []
    return sorted(providers_dir.glob("*.log"))


__all__ = [
    "available_provider_logs",
    "configure_logging",
    "log_dir",
    "main_log_path",
    "provider_log_path",
    "provider_logger",
    "tail_log",
]
