"""
JSON line logging for API and lifecycle events.

Each record is one JSON object carrying the component name, the event text
and any keyword fields, so series operations can be followed by
``workspace_id`` or ``recurrence_id`` in the log stream.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _configure(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    # Component loggers are shared, so attach the handler only once
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)


class StructuredLogger:
    """Logger for one component, optionally bound to fixed context fields."""

    def __init__(self, component: str, level: int = logging.INFO, context: Optional[Dict[str, Any]] = None):
        """
        Args:
            component: Logger name, e.g. ``"workspace-tasks.api"``
            level: Minimum level emitted
            context: Fields added to every record
        """
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(component)
        _configure(self.logger, level)

    def bind(self, **context) -> "StructuredLogger":
        """Child logger that adds ``context`` to every record."""
        child = StructuredLogger.__new__(StructuredLogger)
        child.component = self.component
        child.context = {**self.context, **context}
        child.logger = self.logger
        return child

    def _render(self, level: int, event: str, fields: Dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": logging.getLevelName(level),
            "component": self.component,
            "message": event,
        }
        record.update(self.context)
        record.update(fields)
        return json.dumps(record, default=str)

    def log(self, level: int, event: str, **fields):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._render(level, event, fields))

    def debug(self, event: str, **fields):
        self.log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields):
        self.log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields):
        self.log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields):
        self.log(logging.ERROR, event, **fields)

    def exception(self, event: str, **fields):
        """Log at ERROR level with the active traceback attached."""
        if self.logger.isEnabledFor(logging.ERROR):
            self.logger.error(self._render(logging.ERROR, event, fields), exc_info=True)


_loggers: Dict[str, StructuredLogger] = {}


def get_logger(component: str) -> StructuredLogger:
    """Shared ``StructuredLogger`` for ``component``."""
    if component not in _loggers:
        _loggers[component] = StructuredLogger(component)
    return _loggers[component]
