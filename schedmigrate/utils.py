"""
Utility functions for schedmigrate.

Includes logging setup and console output helpers.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Global console for pretty output
console = Console()

# LogRecord extras copied into structured output
STRUCTURED_EXTRAS = ("event", "legacy_uid", "task_uid", "metadata")


def _plain_formatter(log_format: str) -> logging.Formatter:
    if log_format == "structured":
        return StructuredFormatter()
    return logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "pretty",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for a migration run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        log_file: Optional log file, written in addition to the console
        console_output: Also log to console (stderr, stdout is for results)

    Returns:
        The "schedmigrate" logger every module logger propagates to
    """
    logger = logging.getLogger("schedmigrate")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_plain_formatter(log_format))
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_time=False)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with the migration's extras when set."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in STRUCTURED_EXTRAS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def print_success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def print_error(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")
