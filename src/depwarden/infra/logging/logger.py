from __future__ import annotations

import logging
from pathlib import Path

from dependency_injector.resources import Resource

from .handlers import build_json_file_handler, build_human_console_handler


class RemediationLogger(Resource):
    """Structured logger for remediation and policy events.

    Writes JSON lines to `logs_dir/<log_file_name>` and, optionally, a
    human-readable copy to the console. Keyword arguments of every call become
    top-level fields of the record.
    """

    def init(
        self,
        *,
        logs_dir: Path | None = None,
        log_file_name: str = "depwarden.jsonl",
        logger_name: str = "depwarden",
        console_output: bool = False,
        level: str = "INFO",
    ) -> "RemediationLogger":
        """Initialize handlers.

        Args:
            logs_dir: Directory for the JSONL file; no file handler when None
            log_file_name: File name inside logs_dir
            logger_name: Logger name
            console_output: Whether to enable console output
            level: Logging level (DEBUG, INFO, WARNING, ERROR)

        Returns:
            Self for dependency_injector Resource pattern
        """
        numeric_level = getattr(logging, level.upper())
        self._logger = logging.getLogger(logger_name)
        self._logger.setLevel(numeric_level)
        self._logger.propagate = False  # Don't propagate to root logger

        self._logger.handlers.clear()
        self._handlers: list[logging.Handler] = []

        if logs_dir is not None:
            file_handler = build_json_file_handler(logs_dir / log_file_name, level=numeric_level)
            self._logger.addHandler(file_handler)
            self._handlers.append(file_handler)

        if console_output:
            console_handler = build_human_console_handler(level=numeric_level)
            self._logger.addHandler(console_handler)
            self._handlers.append(console_handler)

        return self

    def shutdown(self, resource: "RemediationLogger") -> None:
        """Flush and close every handler this resource added."""
        for handler in self._handlers:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

    def debug(self, message: str, **kwargs) -> None:
        self._logger.debug(message, extra=kwargs or None)

    def info(self, message: str, **kwargs) -> None:
        self._logger.info(message, extra=kwargs or None)

    def warning(self, message: str, **kwargs) -> None:
        self._logger.warning(message, extra=kwargs or None)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message with optional extra fields and exception info."""
        self._logger.error(message, extra=kwargs or None, exc_info=exc_info)

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback and optional extra fields."""
        self._logger.exception(message, extra=kwargs or None)
