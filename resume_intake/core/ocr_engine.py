"""
OCR for scanned résumés and image-only PDFs.

Recognition runs an ordered list of tesseract configurations. After each one the
result is compared with the best so far (is_better) and the loop stops as soon as
a result clears the quality bar (is_good_enough). Both predicates are pure so the
selection logic can be tested without tesseract installed.

Note: tesseract confidences vary slightly between runs on noisy scans, so the
early stop can pick a different configuration for the same poor-quality image.
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Dict, List, Optional, Protocol, Sequence
import logging
import re

import pytesseract
from pdf2image import convert_from_bytes
from PIL import Image, ImageOps, ImageSequence

from resume_intake.core.errors import ErrorCode, ParserError

logger = logging.getLogger(__name__)

MIN_OCR_TEXT_LENGTH = 30
GOOD_ENOUGH_LENGTH = 500
GOOD_ENOUGH_CONFIDENCE = 70.0
CONFIDENCE_TIEBREAK_LENGTH = 100


@dataclass(frozen=True)
class OcrConfig:
    name: str
    oem: int
    psm: int
    variables: Dict[str, str] = field(default_factory=dict)

    @property
    def tesseract_args(self) -> str:
        args = [f"--oem {self.oem}", f"--psm {self.psm}"]
        args.extend(f"-c {k}={v}" for k, v in sorted(self.variables.items()))
        return " ".join(args)


OCR_CONFIGS: List[OcrConfig] = [
    OcrConfig("high-accuracy", oem=1, psm=3, variables={"preserve_interword_spaces": "1"}),
    OcrConfig("document-layout", oem=1, psm=6),
    OcrConfig("fallback", oem=0, psm=1),
]


@dataclass
class OcrResult:
    text: str
    confidence: float
    config_name: str = ""

    @property
    def length(self) -> int:
        return len(self.text.strip())


class Recognizer(Protocol):
    def recognize(self, image: Image.Image, language: str, config: OcrConfig) -> OcrResult:
        ...


ImageLoader = Callable[[bytes, str], List[Image.Image]]


def is_good_enough(result: OcrResult) -> bool:
    """Long and confident enough that trying further configurations is pointless."""
    return result.length > GOOD_ENOUGH_LENGTH and result.confidence > GOOD_ENOUGH_CONFIDENCE


def is_better(candidate: OcrResult, best: Optional[OcrResult]) -> bool:
    """More text wins; past the tie-break length a higher confidence also wins."""
    if best is None:
        return True
    if candidate.length > best.length:
        return True
    return candidate.length > CONFIDENCE_TIEBREAK_LENGTH and candidate.confidence > best.confidence


_WORD_CHAR = r"[A-Za-z]"


def clean_ocr_text(text: str) -> str:
    """
    Fix common recognizer confusions and normalise whitespace.

    Substitutions only fire between letters (l1l, O0O, I|I) so phone numbers,
    dates and email addresses pass through untouched.
    """
    text = re.sub(rf"(?<={_WORD_CHAR})\|(?={_WORD_CHAR})", "I", text)
    text = re.sub(r"(?:(?<=\s)|^)\|(?=\s|$)", "I", text, flags=re.MULTILINE)
    text = re.sub(rf"(?<={_WORD_CHAR})0(?={_WORD_CHAR})", "O", text)
    text = re.sub(rf"(?<={_WORD_CHAR})1(?={_WORD_CHAR})", "l", text)
    # "M@rketing" but never "jane@example.com"
    text = re.sub(r"\b([A-Za-z]+)@([A-Za-z]+)\b(?!\.)", r"\1a\2", text)
    # "Present2019" -> "Present 2019"
    text = re.sub(r"([A-Za-z]{3,})(\d{4})\b", r"\1 \2", text)

    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def preprocess_image(image: Image.Image) -> Image.Image:
    """Grayscale plus autocontrast; tesseract does its own binarisation."""
    image = ImageOps.exif_transpose(image)
    if image.mode != "L":
        image = image.convert("L")
    return ImageOps.autocontrast(image)


class TesseractRecognizer:
    """pytesseract-backed recognizer. Holds no state between calls."""

    def recognize(self, image: Image.Image, language: str, config: OcrConfig) -> OcrResult:
        data = pytesseract.image_to_data(
            image,
            lang=language,
            config=config.tesseract_args,
            output_type=pytesseract.Output.DICT,
        )
        lines: Dict[tuple, List[str]] = {}
        confidences: List[float] = []
        for i, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            confidences.append(conf)

        out: List[str] = []
        prev_block = None
        for key in sorted(lines):
            if prev_block is not None and key[:2] != prev_block:
                out.append("")
            out.append(" ".join(lines[key]))
            prev_block = key[:2]

        mean_conf = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(text="\n".join(out), confidence=mean_conf, config_name=config.name)


def load_images(content: bytes, kind: str, dpi: int = 300) -> List[Image.Image]:
    """Rasterise a PDF (pdf2image) or open an image file (every frame of a TIFF)."""
    try:
        if kind == "pdf":
            return convert_from_bytes(content, dpi=dpi)
        with Image.open(BytesIO(content)) as img:
            return [frame.copy() for frame in ImageSequence.Iterator(img)]
    except Exception as e:
        raise ParserError(
            ErrorCode.OCR_PROCESSING_FAILED,
            f"Could not rasterise document for OCR: {e}",
            context={"original_error": type(e).__name__, "kind": kind},
        ) from e


def _recognize_pages(
    recognizer: Recognizer, images: Sequence[Image.Image], language: str, config: OcrConfig
) -> OcrResult:
    pages = [recognizer.recognize(img, language, config) for img in images]
    text = "\n\n".join(p.text.strip() for p in pages if p.text.strip())
    weighted = sum(p.confidence * max(p.length, 1) for p in pages)
    weight = sum(max(p.length, 1) for p in pages)
    return OcrResult(text=text, confidence=weighted / weight if weight else 0.0, config_name=config.name)


def run_ocr(
    images: Sequence[Image.Image],
    recognizer: Recognizer,
    *,
    language: str = "eng",
    configs: Sequence[OcrConfig] = tuple(OCR_CONFIGS),
    preprocess: bool = True,
) -> OcrResult:
    """
    Recognize every page with each configuration in turn and keep the best result.

    Raises:
        ParserError(OCR_INITIALIZATION_FAILED) when tesseract is not installed
        ParserError(OCR_PROCESSING_FAILED) when every configuration failed or the
            cleaned text is shorter than MIN_OCR_TEXT_LENGTH
    """
    if not images:
        raise ParserError(ErrorCode.OCR_PROCESSING_FAILED, "No pages to recognize")

    prepared = [preprocess_image(img) for img in images] if preprocess else list(images)
    best: Optional[OcrResult] = None
    last_error: Optional[Exception] = None

    for config in configs:
        try:
            result = _recognize_pages(recognizer, prepared, language, config)
        except pytesseract.TesseractNotFoundError as e:
            raise ParserError(
                ErrorCode.OCR_INITIALIZATION_FAILED,
                f"Tesseract is not available: {e}",
            ) from e
        except Exception as e:
            logger.warning("OCR config %s failed: %s", config.name, e)
            last_error = e
            continue

        logger.debug("OCR config %s: %d chars, confidence %.1f", config.name, result.length, result.confidence)
        if is_better(result, best):
            best = result
        if is_good_enough(result):
            logger.debug("OCR config %s is good enough; stopping early", config.name)
            break

    if best is None:
        raise ParserError(
            ErrorCode.OCR_PROCESSING_FAILED,
            f"All OCR configurations failed: {last_error}",
            context={"configs": [c.name for c in configs]},
        ) from last_error

    cleaned = clean_ocr_text(best.text)
    if len(cleaned) < MIN_OCR_TEXT_LENGTH:
        raise ParserError(
            ErrorCode.OCR_PROCESSING_FAILED,
            f"OCR produced too little text ({len(cleaned)} chars)",
            context={"config": best.config_name, "confidence": round(best.confidence, 1)},
        )
    return OcrResult(text=cleaned, confidence=best.confidence, config_name=best.config_name)
