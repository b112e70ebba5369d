from __future__ import annotations

import io
from typing import List

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from pdfquiz.errors import ExtractionError
from pdfquiz.utils.logging_config import get_logger

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


def _ocr_pages(data: bytes, *, dpi: int, lang: str) -> List[str]:
    # Deferred so text-layer extraction works without poppler/tesseract installed.
    import pytesseract
    from pdf2image import convert_from_bytes

    pages: List[str] = []
    for index, image in enumerate(convert_from_bytes(data, dpi=dpi), 1):
        text = pytesseract.image_to_string(image, lang=lang).replace("\x0c", "").strip()
        logger.debug("OCR page %s produced %s chars", index, len(text))
        pages.append(text)
    return pages


class PdfTextExtractor:
    """Page-by-page PDF text extraction with an optional OCR pass for scanned files."""

    def __init__(self, *, ocr_fallback: bool = False, dpi: int = 300, lang: str = "eng") -> None:
        self.ocr_fallback = ocr_fallback
        self.dpi = dpi
        self.lang = lang

    def extract(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                reader.decrypt("")
            pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as exc:
            raise ExtractionError(f"Failed to parse PDF: {exc}") from exc
        except Exception as exc:  # pypdf raises a wide range of types on corrupt input
            raise ExtractionError(f"Failed to extract PDF content: {exc}") from exc

        if not pages:
            raise ExtractionError("PDF has no pages")

        text = PAGE_SEPARATOR.join(pages).strip()
        if text or not self.ocr_fallback:
            return text

        logger.info("PDF has no text layer; running OCR over %s pages", len(pages))
        try:
            return PAGE_SEPARATOR.join(_ocr_pages(data, dpi=self.dpi, lang=self.lang)).strip()
        except Exception as exc:
            raise ExtractionError(f"OCR failed: {exc}") from exc


__all__ = ["PdfTextExtractor", "PAGE_SEPARATOR"]
