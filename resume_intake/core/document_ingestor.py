"""
Text recovery from an uploaded résumé.

The ingestor picks a strategy by file kind (native PDF text layer, DOCX markup,
plain/RTF read, or OCR for images), wraps it in the retry policy, escalates
paginated documents to OCR when the text layer is too thin, and races the whole
thing against the caller's timeout.
"""

import asyncio
import logging
from functools import partial
from typing import Callable, Dict, Optional, Tuple

from resume_intake.core.config import Settings, get_settings
from resume_intake.core.docx_extractor import extract_docx_text
from resume_intake.core.errors import ErrorCode, ErrorHandler, ParserError
from resume_intake.core.ocr_engine import ImageLoader, OcrResult, Recognizer, TesseractRecognizer, load_images, run_ocr
from resume_intake.core.parsing_context import ParsingContext
from resume_intake.core.pdf_extractor import PageCallback, extract_pdf_text
from resume_intake.core.retry import Deadline, retry_with_backoff, run_with_deadline
from resume_intake.core.schemas import ExtractedText, ExtractionMethod, ParsingOptions, RawDocument
from resume_intake.core.text_extractor import extract_plain_text

logger = logging.getLogger(__name__)

# PDF strategies are also called with an on_page keyword
Strategy = Callable[..., str]

# Below this many characters the native text layer is treated as missing
OCR_ESCALATION_THRESHOLD = 100

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_MIME_KINDS = {
    "application/pdf": "pdf",
    DOCX_MIME: "docx",
    "application/msword": "doc",
    "text/plain": "text",
    "text/markdown": "text",
    "application/rtf": "rtf",
    "text/rtf": "rtf",
}
_EXTENSION_KINDS = {
    "pdf": "pdf",
    "docx": "docx",
    "doc": "doc",
    "txt": "text",
    "md": "text",
    "rtf": "rtf",
    "jpg": "image",
    "jpeg": "image",
    "png": "image",
    "gif": "image",
    "bmp": "image",
    "tif": "image",
    "tiff": "image",
}
_MAGIC_KINDS = [
    (b"%PDF", "pdf"),
    (b"{\\rtf", "rtf"),
    (b"PK\x03\x04", "docx"),
    (b"\x89PNG", "image"),
    (b"\xff\xd8\xff", "image"),
    (b"GIF8", "image"),
    (b"BM", "image"),
    (b"II*\x00", "image"),
    (b"MM\x00*", "image"),
]

_METHOD_BY_KIND = {
    "pdf": ExtractionMethod.NATIVE_PDF,
    "docx": ExtractionMethod.DOCX,
    "doc": ExtractionMethod.DOCX,
    "text": ExtractionMethod.PLAINTEXT,
    "rtf": ExtractionMethod.PLAINTEXT,
}

# Kinds that can be rasterised for OCR escalation
_PAGINATED_KINDS = {"pdf"}


def detect_file_kind(raw: RawDocument) -> str:
    """Declared MIME type first, then extension, then magic bytes."""
    mime = (raw.declared_mime_type or "").split(";")[0].strip()
    if mime in _MIME_KINDS:
        return _MIME_KINDS[mime]
    if mime.startswith("image/"):
        return "image"
    if raw.extension in _EXTENSION_KINDS:
        return _EXTENSION_KINDS[raw.extension]

    head = raw.content[:8]
    for magic, kind in _MAGIC_KINDS:
        if head.startswith(magic):
            return kind
    raise ParserError(
        ErrorCode.FILE_TYPE_UNSUPPORTED,
        f"Could not determine file type for {raw.filename or 'upload'}",
        context={"filename": raw.filename, "mime_type": mime},
    )


def _pdf_strategy(content: bytes, on_page: Optional[PageCallback] = None) -> str:
    return extract_pdf_text(content, on_page=on_page).text


def _page_progress(context: ParsingContext) -> PageCallback:
    """Spread per-page progress over the 20-60 extraction band."""

    def on_page(page: int, total: int) -> None:
        context.report_progress(20 + 40 * page // max(total, 1), f"Extracted page {page} of {total}")

    return on_page


class DocumentIngestor:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        recognizer: Optional[Recognizer] = None,
        image_loader: Optional[ImageLoader] = None,
        strategies: Optional[Dict[str, Strategy]] = None,
    ):
        self.settings = settings or get_settings()
        self.recognizer = recognizer or TesseractRecognizer()
        self.image_loader = image_loader or partial(load_images, dpi=self.settings.ocr_render_dpi)
        self.strategies: Dict[str, Strategy] = {
            "pdf": _pdf_strategy,
            "docx": extract_docx_text,
            "doc": extract_docx_text,
            "text": extract_plain_text,
            "rtf": extract_plain_text,
        }
        if strategies:
            self.strategies.update(strategies)

    def _base_delay(self, kind: str, options: ParsingOptions) -> float:
        if options.retry_base_delay_ms is not None:
            return options.retry_base_delay_ms / 1000.0
        if kind == "pdf":
            return self.settings.pdf_retry_base_delay_ms / 1000.0
        return self.settings.default_retry_base_delay_ms / 1000.0

    async def ingest(self, raw: RawDocument, options: ParsingOptions, context: ParsingContext) -> ExtractedText:
        """
        Recover text from raw.

        Raises:
            ParserError: FILE_* before any strategy runs, OCR_PROCESSING_FAILED for
                images when OCR is disabled, TIMEOUT_EXCEEDED when timeout_ms elapses,
                or whatever the last strategy attempt raised.
        """
        ErrorHandler.validate_file(raw, options.max_file_size_bytes)
        context.report_progress(10, "File validated")

        kind = detect_file_kind(raw)
        context.info("ingestion", f"Detected {kind} document", {"filename": raw.filename, "size_bytes": raw.size_bytes})

        if kind == "image" and not options.enable_ocr:
            raise ParserError(
                ErrorCode.OCR_PROCESSING_FAILED,
                "OCR is disabled but required for image files",
                context={"filename": raw.filename},
            )

        context.start_timer("ingestion")
        try:
            return await run_with_deadline(
                self._extract(raw, kind, options, context, Deadline(options.timeout_ms)),
                options.timeout_ms,
                stage="ingestion",
            )
        finally:
            context.end_timer("ingestion", category="ingestion")

    async def _extract(
        self,
        raw: RawDocument,
        kind: str,
        options: ParsingOptions,
        context: ParsingContext,
        deadline: Deadline,
    ) -> ExtractedText:
        if kind == "image":
            context.report_progress(20, "Recognizing text in image")
            ocr, pages, attempts = await self._run_ocr(raw.content, kind, options, context, deadline)
            context.report_progress(60, "Image text recognized")
            return ExtractedText.build(
                ocr.text, ExtractionMethod.OCR, ocr_confidence=round(ocr.confidence, 2), page_count=pages, attempts=attempts
            )

        strategy = self.strategies[kind]
        context.report_progress(20, f"Extracting text from {kind.upper()}")
        call = partial(strategy, on_page=_page_progress(context)) if kind == "pdf" else strategy

        async def attempt(n: int) -> str:
            context.debug("ingestion", f"{kind} extraction attempt {n}")
            return await asyncio.to_thread(call, raw.content)

        text, attempts = await retry_with_backoff(
            attempt,
            max_attempts=options.retry_attempts + 1,
            base_delay=self._base_delay(kind, options),
            deadline=deadline,
            should_retry=ErrorHandler.is_retryable,
            on_retry=lambda n, e: context.warn("ingestion", f"{kind} extraction attempt {n} failed: {e}"),
        )
        context.report_progress(60, "Text extracted")
        context.info("ingestion", f"Primary {kind} extraction yielded {len(text.strip())} characters", {"attempts": attempts})

        result = ExtractedText.build(text, _METHOD_BY_KIND[kind], attempts=attempts)
        if kind in _PAGINATED_KINDS:
            result = await self._escalate(raw, kind, result, options, context, deadline)
        return result

    async def _escalate(
        self,
        raw: RawDocument,
        kind: str,
        primary: ExtractedText,
        options: ParsingOptions,
        context: ParsingContext,
        deadline: Deadline,
    ) -> ExtractedText:
        """Try OCR on a thin text layer; keep it only when strictly longer."""
        primary_len = len(primary.text.strip())
        if primary_len >= OCR_ESCALATION_THRESHOLD:
            return primary

        if options.enable_ocr:
            context.report_progress(70, "Text layer is sparse, running OCR")
            context.info("ocr", f"Escalating to OCR ({primary_len} characters from text layer)")
            try:
                ocr, pages, attempts = await self._run_ocr(raw.content, kind, options, context, deadline)
            except ParserError as e:
                if e.code == ErrorCode.TIMEOUT_EXCEEDED:
                    raise
                context.warn("ocr", f"OCR escalation failed: {e.message}")
            else:
                ocr_len = len(ocr.text.strip())
                if ocr_len > primary_len or primary_len == 0:
                    context.info("ocr", f"Using OCR text ({ocr_len} vs {primary_len} characters)")
                    return ExtractedText.build(
                        ocr.text,
                        ExtractionMethod.OCR,
                        ocr_confidence=round(ocr.confidence, 2),
                        page_count=pages,
                        attempts=primary.attempts + attempts,
                    )
                context.info("ocr", f"Keeping native text ({primary_len} vs {ocr_len} OCR characters)")

        if primary_len == 0:
            raise ParserError(
                ErrorCode.PDF_NO_TEXT_CONTENT,
                "No text content found in PDF",
                context={"filename": raw.filename, "ocr_enabled": options.enable_ocr},
            )
        return primary

    async def _run_ocr(
        self,
        content: bytes,
        kind: str,
        options: ParsingOptions,
        context: ParsingContext,
        deadline: Deadline,
    ) -> Tuple[OcrResult, int, int]:
        context.start_timer("ocr")
        page_count = 0

        async def attempt(n: int) -> OcrResult:
            nonlocal page_count
            context.debug("ocr", f"OCR attempt {n} ({options.ocr_language})")
            images = await asyncio.to_thread(self.image_loader, content, "pdf" if kind == "pdf" else "image")
            page_count = len(images)
            return await asyncio.to_thread(run_ocr, images, self.recognizer, language=options.ocr_language)

        try:
            result, attempts = await retry_with_backoff(
                attempt,
                max_attempts=options.retry_attempts + 1,
                base_delay=self._base_delay(kind, options),
                deadline=deadline,
                should_retry=lambda e: ErrorHandler.classify(e) != ErrorCode.OCR_INITIALIZATION_FAILED,
                on_retry=lambda n, e: context.warn("ocr", f"OCR attempt {n} failed: {e}"),
            )
        finally:
            context.end_timer("ocr", category="ocr")

        context.info(
            "ocr",
            f"OCR selected '{result.config_name}'",
            {"chars": len(result.text), "confidence": round(result.confidence, 1), "pages": page_count},
        )
        return result, page_count, attempts
