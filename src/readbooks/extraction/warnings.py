"""Warnings channel for recoverable extraction anomalies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@runtime_checkable
class WarningSink(Protocol):
    """Anything that accepts (severity, message) pairs."""

    def emit(self, severity: Severity, message: str) -> None:
        """Record one anomaly. Must not raise."""


@dataclass(frozen=True, slots=True)
class ExtractionWarning:
    severity: Severity
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"severity": self.severity.value, "message": self.message}


class LoggingWarningSink:
    """Forward anomalies to the standard logging tree."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def emit(self, severity: Severity, message: str) -> None:
        self._logger.log(_LOG_LEVELS[severity], message)


class CollectingWarningSink:
    """Keep anomalies in memory for run summaries, optionally forwarding them."""

    def __init__(self, forward: WarningSink | None = None) -> None:
        self._forward = forward
        self.warnings: list[ExtractionWarning] = []

    def emit(self, severity: Severity, message: str) -> None:
        self.warnings.append(ExtractionWarning(severity=severity, message=message))
        if self._forward is not None:
            self._forward.emit(severity, message)

    def count(self, severity: Severity | None = None) -> int:
        if severity is None:
            return len(self.warnings)
        return sum(1 for warning in self.warnings if warning.severity is severity)
