"""Page-by-page OCR for scanned documents and images."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from pagereader.docs.model import DocumentKind, Extraction, NoTextFound, ProgressEvent, ScannedText
from pagereader.errors import IngestCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


def page_marker(page_number: int) -> str:
    """Boundary inserted after each OCR'd page (1-based)."""
    return f"\n--- Page {page_number} ---\n\n"


class ScannedDocumentOcrPipeline:
    """Rasterize every page, recognize it and merge the text with page markers.

    ``renderer`` needs ``page_count(path, kind)`` and ``render(path, kind, index)``
    returning a PIL image; ``recognizer`` needs ``recognize(image, index)``
    returning a list of text blocks. A page that fails is logged and
    contributes nothing; the remaining pages are still processed.
    """

    def __init__(self, renderer, recognizer) -> None:
        self.renderer = renderer
        self.recognizer = recognizer

    def process(
        self,
        path: str,
        kind: DocumentKind,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None,
        recognizer=None,
    ) -> Extraction:
        """Run OCR over every page; ``recognizer`` overrides the default for this call."""
        if recognizer is None:
            recognizer = self.recognizer

        def emit(current: int, total: int) -> None:
            if on_progress is not None:
                on_progress(ProgressEvent(current, total))

        try:
            total = self.renderer.page_count(path, kind)
        except Exception:
            logger.exception("Could not determine page count for %s", path)
            emit(0, 0)
            return NoTextFound()

        if total <= 0:
            emit(0, 0)
            return NoTextFound()

        buffer: List[str] = []
        pages_with_text = 0
        for i in range(total):
            emit(i, total)
            if cancel is not None and cancel.is_set():
                logger.info("OCR cancelled before page %d/%d", i + 1, total)
                raise IngestCancelled(i, total)
            blocks = self._process_page(recognizer, path, kind, i, total)
            if blocks:
                pages_with_text += 1
                for block in blocks:
                    buffer.append(block)
                    buffer.append("\n")
            buffer.append(page_marker(i + 1))

        emit(total, total)
        logger.info("OCR finished: %d/%d pages contained text", pages_with_text, total)
        if pages_with_text == 0:
            return NoTextFound(total, total)
        return ScannedText("".join(buffer), total, total)

    def _process_page(self, recognizer, path: str, kind: DocumentKind, index: int, total: int) -> List[str]:
        image = None
        try:
            image = self.renderer.render(path, kind, index)
            blocks = recognizer.recognize(image, index)
        except Exception as exc:
            logger.warning("Skipping page %d/%d: %s", index + 1, total, exc)
            return []
        finally:
            if image is not None:
                image.close()
        return [b for b in blocks if b and b.strip()]
