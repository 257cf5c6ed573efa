"""
Per-invocation diagnostics: a bounded structured log, performance spans,
error statistics and progress reporting.

One ParsingContext is created for each document and passed through every stage,
so two documents parsed concurrently never see each other's logs or counts.
Entries are also forwarded to the stdlib logger of the emitting module.
"""

import json
import logging
import time
from collections import Counter, deque
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel

from resume_intake.core.errors import ErrorCode, ErrorSeverity, ParserError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class LogLevel(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class PerformanceSpan(BaseModel):
    label: str
    start: float
    end: Optional[float] = None
    duration_ms: Optional[float] = None


class LogEntry(BaseModel):
    timestamp: datetime
    level: LogLevel
    category: str
    message: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None
    performance_span: Optional[PerformanceSpan] = None


class ParsingContext:
    def __init__(
        self,
        *,
        document_name: str = "",
        max_logs: int = 1000,
        on_progress: Optional[ProgressCallback] = None,
        stdlib_logger: Optional[logging.Logger] = None,
    ):
        self.document_name = document_name
        self.max_logs = max_logs
        self._logs: Deque[LogEntry] = deque(maxlen=max_logs)
        self._timers: Dict[str, PerformanceSpan] = {}
        self._errors: List[ParserError] = []
        self._on_progress = on_progress
        self._progress = 0
        self._status = ""
        self._logger = stdlib_logger or logger
        self.warnings: List[str] = []
        self.started_at = time.perf_counter()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def log(
        self,
        level: LogLevel,
        category: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        performance_span: Optional[PerformanceSpan] = None,
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            category=category,
            message=message,
            data=data,
            error=_describe_error(error) if error is not None else None,
            performance_span=performance_span,
        )
        self._logs.append(entry)

        prefix = f"[{self.document_name}] " if self.document_name else ""
        if data:
            self._logger.log(int(level), "%s[%s] %s %s", prefix, category, message, data)
        else:
            self._logger.log(int(level), "%s[%s] %s", prefix, category, message)
        return entry

    def debug(self, category: str, message: str, data: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log(LogLevel.DEBUG, category, message, data)

    def info(self, category: str, message: str, data: Optional[Dict[str, Any]] = None) -> LogEntry:
        return self.log(LogLevel.INFO, category, message, data)

    def warn(self, category: str, message: str, data: Optional[Dict[str, Any]] = None) -> LogEntry:
        self.warnings.append(message)
        return self.log(LogLevel.WARN, category, message, data)

    def error(
        self,
        category: str,
        message: str,
        error: Optional[BaseException] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        return self.log(LogLevel.ERROR, category, message, data, error)

    # ------------------------------------------------------------------
    # Performance spans
    # ------------------------------------------------------------------

    def start_timer(self, label: str) -> None:
        self._timers[label] = PerformanceSpan(label=label, start=time.perf_counter())

    def end_timer(self, label: str, category: str = "performance") -> Optional[float]:
        span = self._timers.pop(label, None)
        if span is None:
            self.warn(category, f"Timer '{label}' was never started")
            return None
        span.end = time.perf_counter()
        span.duration_ms = round((span.end - span.start) * 1000, 3)
        self.log(LogLevel.DEBUG, category, f"{label} completed in {span.duration_ms}ms", performance_span=span)
        return span.duration_ms

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started_at) * 1000, 3)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def record_error(self, error: ParserError) -> None:
        self._errors.append(error)
        level = LogLevel.CRITICAL if error.severity == ErrorSeverity.CRITICAL else LogLevel.ERROR
        self.log(level, "error", f"{error.code.value}: {error.message}", data=error.context or None, error=error)

    @property
    def errors(self) -> List[ParserError]:
        return list(self._errors)

    def error_statistics(self) -> Dict[str, Any]:
        by_code = Counter(e.code.value for e in self._errors)
        by_severity = Counter(e.severity.value for e in self._errors)
        most_common: Optional[str] = by_code.most_common(1)[0][0] if by_code else None
        return {
            "total": len(self._errors),
            "by_code": dict(by_code),
            "by_severity": dict(by_severity),
            "most_common": most_common,
            "recent": [e.to_dict() for e in self._errors[-10:]],
        }

    def has_error(self, code: ErrorCode) -> bool:
        return any(e.code == code for e in self._errors)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def progress(self) -> int:
        return self._progress

    def report_progress(self, percent: int, status: str) -> None:
        """Forward progress, never letting it go backwards or outside 0..100."""
        value = max(self._progress, min(100, max(0, int(percent))))
        self._progress = value
        self._status = status
        self.debug("progress", f"{value}% {status}")
        if self._on_progress is not None:
            self._on_progress(value, status)

    # ------------------------------------------------------------------
    # Queries / export
    # ------------------------------------------------------------------

    def get_logs(self, level: Optional[LogLevel] = None, category: Optional[str] = None) -> List[LogEntry]:
        logs = list(self._logs)
        if level is not None:
            logs = [entry for entry in logs if entry.level >= level]
        if category is not None:
            logs = [entry for entry in logs if entry.category == category]
        return logs

    def logs_summary(self) -> Dict[str, Any]:
        by_level = Counter(entry.level.name for entry in self._logs)
        by_category = Counter(entry.category for entry in self._logs)
        durations = [
            entry.performance_span.duration_ms
            for entry in self._logs
            if entry.performance_span is not None and entry.performance_span.duration_ms is not None
        ]
        return {
            "total": len(self._logs),
            "by_level": dict(by_level),
            "by_category": dict(by_category),
            "average_duration_ms": round(sum(durations) / len(durations), 3) if durations else None,
            "errors": len(self._errors),
        }

    def export_logs(self) -> str:
        payload = {
            "document": self.document_name,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "summary": self.logs_summary(),
            "logs": [entry.model_dump(mode="json") for entry in self._logs],
        }
        return json.dumps(payload, indent=2)

    def clear(self) -> None:
        self._logs.clear()
        self._timers.clear()
        self._errors.clear()
        self.warnings.clear()


def _describe_error(error: BaseException) -> Dict[str, Any]:
    if isinstance(error, ParserError):
        return error.to_dict()
    return {"type": type(error).__name__, "message": str(error)}
