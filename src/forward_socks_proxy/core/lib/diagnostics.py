"""Diagnostic event sink used by the protocol core.

Sessions and the relay engine never call a logger directly; they report
``(severity, context, detail)`` events to a ``DiagnosticSink``. The default
``LoguruSink`` forwards them to Loguru, which is safe to call from any number
of threads.
"""

from enum import Enum
from typing import Protocol

from loguru import logger


class Severity(str, Enum):
    """Event severity, named after the Loguru levels they map onto."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class DiagnosticSink(Protocol):
    """Anything that can record a diagnostic event."""

    def record_event(self, severity: Severity, context: str, detail: str) -> None: ...


class LoguruSink:
    """Diagnostic sink writing to Loguru with the context bound as extra."""

    def record_event(self, severity: Severity, context: str, detail: str) -> None:
        logger.bind(context=context).opt(depth=1).log(severity.value, "{}: {}", context, detail)
