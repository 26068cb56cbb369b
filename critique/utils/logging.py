"""
Logging for the critique engine.

All engine loggers live under the ``critique`` namespace. Records that
belong to one analysis carry its id (``extra={"analysis_id": ...}``) and
the formatter shows it next to the logger name.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, Mapping

ROOT_LOGGER_NAME = "critique"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class CritiqueFormatter(logging.Formatter):
    """``[time] LEVEL [module] (analysis) message``, coloured on terminals."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%H:%M:%S.%f")[:-3]
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{LEVEL_COLORS.get(record.levelname, '')}{level}{RESET}"

        # "critique.domain.orchestration.executor" -> "orchestration.executor"
        module = record.name.removeprefix(f"{ROOT_LOGGER_NAME}.").removeprefix("domain.")
        parts = [f"[{timestamp}]", level, f"[{module}]"]

        analysis_id = getattr(record, "analysis_id", None)
        if analysis_id:
            parts.append(f"({analysis_id})")
        parts.append(record.getMessage())

        if record.exc_info:
            parts.append("\n" + self.formatException(record.exc_info))
        return " ".join(parts)


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
) -> None:
    """Install handlers on the ``critique`` logger.

    Console output goes to stderr so CLI tables on stdout stay clean. A
    ``critique.log`` file is written only when ``log_dir`` is given.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers = []
    root_logger.propagate = False

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(CritiqueFormatter(use_colors=sys.stderr.isatty()))
        root_logger.addHandler(console_handler)

    if file_output and log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / "critique.log", encoding="utf-8")
        file_handler.setFormatter(CritiqueFormatter(use_colors=False))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``critique`` namespace for a module name."""
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def _context(details: Mapping[str, Any] | None) -> tuple[str, dict[str, Any]]:
    if not details:
        return "", {}
    rest = {k: v for k, v in details.items() if k != "analysis_id"}
    text = ", ".join(f"{k}={v}" for k, v in rest.items())
    extra = {"analysis_id": details["analysis_id"]} if details.get("analysis_id") else {}
    return text, extra


def log_operation(
    logger: logging.Logger,
    operation: str,
    details: Mapping[str, Any] | None = None,
    level: int = logging.INFO,
) -> None:
    """Log an engine step; an ``analysis_id`` in ``details`` tags the record."""
    text, extra = _context(details)
    logger.log(level, f"{operation}: {text}" if text else operation, extra=extra)


def log_error(
    logger: logging.Logger,
    operation: str,
    error: BaseException,
    context: Mapping[str, Any] | None = None,
) -> None:
    """Log a failed step with its traceback."""
    text, extra = _context(context)
    message = f"{operation} failed: {type(error).__name__}: {error}"
    logger.error(f"{message} | {text}" if text else message, exc_info=error, extra=extra)
