"""Tests for per-document logging, timing, error statistics and progress."""

import json

from resume_intake.core.errors import ErrorCode, ErrorSeverity, ParserError
from resume_intake.core.parsing_context import LogLevel, ParsingContext


def test_log_buffer_is_bounded():
    context = ParsingContext(max_logs=5)
    for n in range(12):
        context.info("extraction", f"entry {n}")
    logs = context.get_logs()
    assert len(logs) == 5
    assert logs[0].message == "entry 7"


def test_filter_by_level_and_category():
    context = ParsingContext()
    context.debug("classification", "scanning headers")
    context.info("extraction", "contact done")
    context.warn("extraction", "No phone number found")
    assert [e.message for e in context.get_logs(level=LogLevel.WARN)] == ["No phone number found"]
    assert len(context.get_logs(category="extraction")) == 2


def test_warnings_collected():
    context = ParsingContext()
    context.warn("classification", "No education section found")
    assert context.warnings == ["No education section found"]


def test_timer_records_duration():
    context = ParsingContext()
    context.start_timer("classification")
    duration = context.end_timer("classification")
    assert duration is not None and duration >= 0
    spans = [e for e in context.get_logs() if e.performance_span is not None]
    assert spans[0].performance_span.label == "classification"
    assert context.logs_summary()["average_duration_ms"] is not None


def test_ending_unknown_timer_warns():
    context = ParsingContext()
    assert context.end_timer("never-started") is None
    assert "Timer 'never-started' was never started" in context.warnings


class TestErrorStatistics:
    def test_counts_by_code_and_severity(self):
        context = ParsingContext()
        context.record_error(ParserError(ErrorCode.OCR_PROCESSING_FAILED, "config failed"))
        context.record_error(ParserError(ErrorCode.OCR_PROCESSING_FAILED, "config failed again"))
        context.record_error(ParserError(ErrorCode.TIMEOUT_EXCEEDED, "too slow"))
        stats = context.error_statistics()
        assert stats["total"] == 3
        assert stats["by_code"] == {"OCR_PROCESSING_FAILED": 2, "TIMEOUT_EXCEEDED": 1}
        assert stats["by_severity"] == {ErrorSeverity.MEDIUM.value: 2, ErrorSeverity.HIGH.value: 1}
        assert stats["most_common"] == "OCR_PROCESSING_FAILED"
        assert len(stats["recent"]) == 3
        assert context.has_error(ErrorCode.TIMEOUT_EXCEEDED)
        assert not context.has_error(ErrorCode.FILE_EMPTY)

    def test_empty_statistics(self):
        stats = ParsingContext().error_statistics()
        assert stats["total"] == 0
        assert stats["most_common"] is None

    def test_errors_logged_at_error_level(self):
        context = ParsingContext()
        context.record_error(ParserError(ErrorCode.FILE_CORRUPTED, "bad zip"))
        assert context.get_logs(level=LogLevel.ERROR)[0].message == "FILE_CORRUPTED: bad zip"


class TestProgress:
    def test_progress_is_monotonic_and_clamped(self):
        seen = []
        context = ParsingContext(on_progress=lambda pct, status: seen.append(pct))
        context.report_progress(30, "extracting text")
        context.report_progress(10, "late update")
        context.report_progress(150, "done")
        assert seen == [30, 30, 100]
        assert context.progress == 100

    def test_negative_progress(self):
        context = ParsingContext()
        context.report_progress(-5, "starting")
        assert context.progress == 0


def test_export_and_clear():
    context = ParsingContext(document_name="resume.pdf")
    context.info("ingestion", "detected pdf", {"size": 1024})
    context.record_error(ParserError(ErrorCode.PDF_NO_TEXT_CONTENT, "empty text layer"))
    exported = json.loads(context.export_logs())
    assert exported["document"] == "resume.pdf"
    assert exported["summary"]["errors"] == 1
    assert len(exported["logs"]) == 2

    context.clear()
    assert context.get_logs() == []
    assert context.error_statistics()["total"] == 0


def test_contexts_are_isolated():
    first, second = ParsingContext(), ParsingContext()
    first.warn("extraction", "No skills found")
    assert second.warnings == []
    assert second.get_logs() == []
