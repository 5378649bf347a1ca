"""
Centralized logging configuration for the codeline analyzer.
Uses Python's built-in logging; output goes to stdout.
"""

import logging
import os
import sys
import json
import traceback
from datetime import datetime, timezone


class JsonLogFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = traceback.format_exception(*record.exc_info)
        if hasattr(record, 'extra_data'):
            log_entry["data"] = record.extra_data
        return json.dumps(log_entry)


def setup_logger(name: str = "services") -> logging.Logger:
    """
    Attach a stdout handler to the named logger.

    ``LOG_LEVEL`` sets the threshold; ``LOG_FORMAT=json`` switches to
    structured output. Child loggers (``services.*``) inherit the handler.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level, logging.INFO))

    if os.getenv("LOG_FORMAT", "text").lower() == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def _with_context(message: str, **kwargs) -> str:
    extra_info = " ".join(f"{k}={v}" for k, v in kwargs.items())
    return f"{message} {extra_info}" if extra_info else message


def log_info(module: str, message: str, **kwargs):
    """
    Example:
        log_info("AnalyzeCodelines", "File analyzed", file="App.vue", lines=42)
    """
    setup_logger(module).info(_with_context(message, **kwargs))


def log_error(module: str, message: str, error: Exception = None, **kwargs):
    """
    Example:
        log_error("AnalyzeCodelines", "Analysis failed", error=e, file="App.vue")
    """
    logger = setup_logger(module)
    full_message = _with_context(message, **kwargs)
    if error:
        logger.error(f"{full_message} | Error: {error}", exc_info=error)
    else:
        logger.error(full_message)


def log_warning(module: str, message: str, **kwargs):
    setup_logger(module).warning(_with_context(message, **kwargs))


def log_debug(module: str, message: str, **kwargs):
    """Only visible with LOG_LEVEL=DEBUG."""
    setup_logger(module).debug(_with_context(message, **kwargs))
