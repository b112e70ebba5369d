from __future__ import annotations

import re

from pdfquiz.utils.logging_config import get_logger
from pdfquiz.workflow.extraction import PdfTextExtractor

logger = get_logger(__name__)

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Replace control characters with spaces and collapse whitespace to single spaces."""
    no_controls = CONTROL_CHARS.sub(" ", text or "")
    return WHITESPACE_RUN.sub(" ", no_controls).strip()


class ContentNormalizer:
    """Turns raw document bytes into single-spaced text ready for analysis."""

    def __init__(self, extractor: PdfTextExtractor | None = None) -> None:
        self.extractor = extractor or PdfTextExtractor()

    def normalize(self, raw: bytes) -> str:
        """Extract and clean text. Raises ExtractionError for unparseable input; may return ""."""
        text = normalize_text(self.extractor.extract(raw))
        if not text:
            logger.info("Extracted text is empty | bytes=%s", len(raw))
        return text


__all__ = ["ContentNormalizer", "normalize_text"]
