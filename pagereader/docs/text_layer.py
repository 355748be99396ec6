"""Direct text-layer extraction for born-digital PDFs."""

from __future__ import annotations

import logging
from typing import Optional

from pypdf import PdfReader

from pagereader.errors import ExtractionUnavailableError

logger = logging.getLogger(__name__)


class DigitalTextExtractor:
    """Extract embedded text from a PDF without rasterizing it.

    ``extract`` returns None whenever the text layer is not usable, including
    any parser fault on a malformed file; callers treat that as a signal to
    fall back to OCR.
    """

    def extract(self, pdf_path: str) -> Optional[str]:
        try:
            with open(pdf_path, "rb") as handle:
                reader = self._open(handle)
                parts = [page.extract_text() or "" for page in reader.pages]
        except Exception as exc:
            logger.warning("Text layer unavailable for %s (might be scanned or corrupted): %s", pdf_path, exc)
            return None
        text = "\n".join(parts)
        logger.debug("Extracted %d characters from %d pages", len(text), len(parts))
        return text

    def page_count(self, pdf_path: str) -> Optional[int]:
        try:
            with open(pdf_path, "rb") as handle:
                return len(self._open(handle).pages)
        except Exception as exc:
            logger.warning("Could not read page count for %s: %s", pdf_path, exc)
            return None

    @staticmethod
    def _open(handle) -> PdfReader:
        reader = PdfReader(handle)
        if reader.is_encrypted:
            try:
                if not reader.decrypt(""):
                    raise ExtractionUnavailableError("document is encrypted")
            except NotImplementedError as exc:
                raise ExtractionUnavailableError(f"unsupported encryption: {exc}") from exc
        return reader
