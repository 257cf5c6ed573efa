"""Tests for the error taxonomy, conversion of library errors and file validation."""

import pytest

from resume_intake.core.errors import ErrorCode, ErrorHandler, ErrorSeverity, ParserError
from resume_intake.core.parsing_context import ParsingContext
from resume_intake.core.schemas import RawDocument

MAX_SIZE = 1024


def test_parser_error_defaults_from_profile():
    error = ParserError(ErrorCode.PDF_PASSWORD_PROTECTED, "encrypted")
    assert error.severity == ErrorSeverity.HIGH
    assert error.recoverable is False
    assert "password protected" in error.user_message


def test_file_too_large_message_uses_limit():
    error = ParserError(ErrorCode.FILE_TOO_LARGE, "too big", context={"max_size_bytes": 10 * 1024 * 1024})
    assert error.user_message == "File is too large. Maximum size is 10MB."


def test_to_dict_shape():
    payload = ParserError(ErrorCode.FILE_EMPTY, "File is empty").to_dict()
    assert payload["code"] == "FILE_EMPTY"
    assert payload["severity"] == "high"
    assert set(payload) == {"code", "message", "severity", "context", "recoverable", "userMessage", "timestamp"}


class TestErrorHandler:
    def test_parser_error_returned_unchanged(self):
        error = ParserError(ErrorCode.OCR_PROCESSING_FAILED, "bad scan")
        assert ErrorHandler.handle(error) is error

    @pytest.mark.parametrize(
        "exc, code",
        [
            (MemoryError(), ErrorCode.MEMORY_LIMIT_EXCEEDED),
            (TimeoutError(), ErrorCode.TIMEOUT_EXCEEDED),
            (RuntimeError("File has not been decrypted: password required"), ErrorCode.PDF_PASSWORD_PROTECTED),
            (ValueError("No /Root object! - Is this really a PDF?"), ErrorCode.PDF_INVALID_FORMAT),
            (KeyError("Package not found at 'resume.docx'"), ErrorCode.DOCX_PARSING_FAILED),
            (RuntimeError("something odd"), ErrorCode.UNKNOWN_ERROR),
        ],
    )
    def test_library_errors_classified(self, exc, code):
        assert ErrorHandler.handle(exc).code == code

    def test_converted_error_keeps_cause(self):
        original = RuntimeError("something odd")
        error = ErrorHandler.handle(original, default=ErrorCode.TEXT_EXTRACTION_FAILED)
        assert error.code == ErrorCode.TEXT_EXTRACTION_FAILED
        assert error.__cause__ is original
        assert error.context["original_error"] == "RuntimeError"

    def test_handled_errors_recorded_on_context(self):
        context = ParsingContext()
        ErrorHandler.handle(MemoryError(), context)
        assert context.has_error(ErrorCode.MEMORY_LIMIT_EXCEEDED)

    def test_retryable(self):
        assert ErrorHandler.is_retryable(RuntimeError("transient glitch"))
        assert not ErrorHandler.is_retryable(ParserError(ErrorCode.FILE_TOO_LARGE, "too big"))
        assert not ErrorHandler.is_retryable(RuntimeError("file is encrypted"))


class TestValidateFile:
    def test_missing_file(self):
        with pytest.raises(ParserError) as exc_info:
            ErrorHandler.validate_file(None, MAX_SIZE)
        assert exc_info.value.code == ErrorCode.FILE_NOT_PROVIDED

    def test_empty_file(self):
        with pytest.raises(ParserError) as exc_info:
            ErrorHandler.validate_file(RawDocument.from_bytes(b"", "resume.pdf"), MAX_SIZE)
        assert exc_info.value.code == ErrorCode.FILE_EMPTY

    def test_too_large(self):
        with pytest.raises(ParserError) as exc_info:
            ErrorHandler.validate_file(RawDocument.from_bytes(b"x" * (MAX_SIZE + 1), "resume.txt"), MAX_SIZE)
        assert exc_info.value.code == ErrorCode.FILE_TOO_LARGE
        assert exc_info.value.context["max_size_bytes"] == MAX_SIZE

    def test_unsupported_type(self):
        with pytest.raises(ParserError) as exc_info:
            ErrorHandler.validate_file(RawDocument.from_bytes(b"MZ", "setup.exe", "application/x-msdownload"), MAX_SIZE)
        assert exc_info.value.code == ErrorCode.FILE_TYPE_UNSUPPORTED

    def test_declared_mime_type_accepted_without_extension(self):
        ErrorHandler.validate_file(RawDocument.from_bytes(b"Jane Doe", "resume", "text/plain"), MAX_SIZE)

    def test_accepted_file(self):
        ErrorHandler.validate_file(RawDocument.from_bytes(b"Jane Doe", "resume.txt"), MAX_SIZE)
