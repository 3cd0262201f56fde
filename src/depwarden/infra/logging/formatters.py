from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from ...shared.to_jsonable import to_jsonable


# Attributes every LogRecord carries; anything else arrived through `extra`.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


class JSONFormatter(JsonFormatter):
    """JSON formatter using python-json-logger.

    One object per line: level, logger, message, then every extra field
    flattened at the top level.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['message'] = record.getMessage()

        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                log_record[key] = to_jsonable(value)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extra fields are appended as key=value pairs after the event name.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        extras = [
            f"{key}={to_jsonable(value)}"
            for key, value in record.__dict__.items()
            if key not in _RESERVED
        ]
        if extras:
            text = f"{text} ({', '.join(extras)})"
        return text
