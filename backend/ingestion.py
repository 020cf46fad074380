"""
Ingestion adapter for the glossary.

Turns typed text or an uploaded PDF/image into an `IngestionResult`. Extraction
runs before the store is touched; a failed extraction never produces a candidate.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from errors import ExtractionFailed, FileTooLarge, UnsupportedFileType

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_LABEL = "User submission"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
# PDFs with less selectable text than this are treated as scans.
SELECTABLE_TEXT_MIN_CHARS = 100

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/bmp",
        "image/tiff",
    }
)
SUPPORTED_MIME_TYPES = frozenset({PDF_MIME_TYPE}) | IMAGE_MIME_TYPES

# (bytes) -> text
PdfExtractor = Callable[[bytes], str]
# (bytes) -> (text, confidence 0-100)
ImageExtractor = Callable[[bytes], Tuple[str, float]]


@dataclass(frozen=True)
class IngestionResult:
    text: str
    source_label: str
    confidence: Optional[float] = None

    @property
    def initial_weight(self) -> float:
        if self.confidence is None:
            return 0.5
        return self.confidence / 100.0


def extract_pdf_text(data: bytes) -> str:
    """Selectable text from a PDF via pypdf."""
    try:
        from pypdf import PdfReader
    except ImportError as e:
        raise ExtractionFailed(
            "PDF processing failed: pypdf is required for PDF uploads. "
            f"Install the 'extract' extra. Reason: {e}"
        ) from e

    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join((page.extract_text() or "") for page in reader.pages).strip()
    except Exception as e:
        raise ExtractionFailed(f"PDF processing failed: {e}") from e


def extract_image_text(data: bytes) -> Tuple[str, float]:
    """OCR text and mean word confidence (0-100) via Tesseract."""
    try:
        import pytesseract
        from PIL import Image
    except ImportError as e:
        raise ExtractionFailed(
            "OCR processing failed: pytesseract and Pillow are required for image uploads. "
            f"Install the 'extract' extra. Reason: {e}"
        ) from e

    try:
        image = Image.open(io.BytesIO(data))
        ocr = pytesseract.image_to_data(image, output_type=pytesseract.Output.DICT)
    except Exception as e:
        raise ExtractionFailed(f"OCR processing failed: {e}") from e

    words = []
    scores = []
    for word, conf in zip(ocr.get("text", []), ocr.get("conf", [])):
        if not str(word).strip():
            continue
        words.append(str(word).strip())
        try:
            score = float(conf)
        except (TypeError, ValueError):
            continue
        if score >= 0:
            scores.append(score)
    confidence = sum(scores) / len(scores) if scores else 0.0
    return " ".join(words), confidence


class IngestionAdapter:
    """Normalizes raw uploads into text plus a provenance label."""

    def __init__(
        self,
        max_bytes: int = DEFAULT_MAX_BYTES,
        pdf_extractor: Optional[PdfExtractor] = None,
        image_extractor: Optional[ImageExtractor] = None,
    ):
        self.max_bytes = max_bytes
        self.pdf_extractor = pdf_extractor or extract_pdf_text
        self.image_extractor = image_extractor or extract_image_text

    def from_text(self, text: str, source: Optional[str] = None) -> IngestionResult:
        label = (source or "").strip() or DEFAULT_SOURCE_LABEL
        return IngestionResult(text=(text or "").strip(), source_label=label)

    def from_file(
        self,
        data: bytes,
        mime_type: str,
        filename: str = "",
        source: Optional[str] = None,
    ) -> IngestionResult:
        mime_type = (mime_type or "").strip().lower()
        self.validate(data, mime_type)

        if mime_type == PDF_MIME_TYPE:
            text = self.pdf_extractor(data).strip()
            if len(text) <= SELECTABLE_TEXT_MIN_CHARS:
                raise ExtractionFailed(
                    "Scanned PDF detected. Please convert to image format (PNG/JPEG) "
                    "and upload again for OCR processing."
                )
            logger.debug("Extracted %d chars of PDF text from %s", len(text), filename or "upload")
            return IngestionResult(text=text, source_label=self._label(source, filename, "pdf-text"))

        text, confidence = self.image_extractor(data)
        text = (text or "").strip()
        if not text:
            raise ExtractionFailed("No text detected in image")
        logger.debug("OCR produced %d chars from %s (confidence %.1f)", len(text), filename or "upload", confidence or 0.0)
        return IngestionResult(
            text=text,
            source_label=self._label(source, filename, "ocr"),
            confidence=max(0.0, min(100.0, float(confidence or 0.0))),
        )

    def validate(self, data: bytes, mime_type: str) -> None:
        if len(data) > self.max_bytes:
            raise FileTooLarge(self.max_bytes)
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise UnsupportedFileType(mime_type)

    def _label(self, source: Optional[str], filename: str, method: str) -> str:
        if source and source.strip():
            return source.strip()
        name = (filename or "").strip() or "upload"
        return f"{name} ({method})"
