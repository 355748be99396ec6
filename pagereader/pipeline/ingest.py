"""Document ingestion: digital text layer first, OCR as the fallback.

``DocumentIngestor.ingest`` never raises; every path ends in an
``IngestResult``. ``IngestWorker`` runs ingests one at a time on a single
background thread and supports cancellation between pages.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from pagereader.config import ReaderSettings
from pagereader.docs.buffer import BufferManager
from pagereader.docs.model import (
    DigitalText,
    DocumentKind,
    DocumentSource,
    Extraction,
    IngestResult,
    NoTextFound,
    ProgressEvent,
    ScannedText,
)
from pagereader.docs.pdf_io import PageRasterRenderer
from pagereader.docs.text_layer import DigitalTextExtractor
from pagereader.errors import IngestBusyError, IngestCancelled, SourceUnreadableError
from pagereader.ocr.reader import RecognizerCache, TesseractRecognizer

from .scanned import ScannedDocumentOcrPipeline

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class _ProgressRelay:
    """Forward progress events and remember the last one sent."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self.callback = callback
        self.last = ProgressEvent(0, 0)
        self.sent = False

    def __call__(self, event: ProgressEvent) -> None:
        self.last = event
        self.sent = True
        if self.callback is not None:
            self.callback(event)

    def finish(self) -> None:
        """Emit the terminal {total, total} event if it has not been sent yet."""
        total = self.last.total_pages
        if not self.sent or self.last.current_page != total:
            try:
                self(ProgressEvent(total, total))
            except Exception:
                logger.exception("Progress callback failed on terminal event")


class DocumentIngestor:
    """Turn one document into text: text layer first, OCR as the fallback.

    ``recognizers`` supplies a recognizer per language for ``ingest(...,
    language=...)``; without it the pipeline's own recognizer is used.
    """

    def __init__(
        self,
        extractor: DigitalTextExtractor,
        ocr_pipeline: ScannedDocumentOcrPipeline,
        buffer_root: Optional[str] = None,
        debug_buffer: bool = False,
        recognizers: Optional[RecognizerCache] = None,
    ) -> None:
        self.extractor = extractor
        self.ocr_pipeline = ocr_pipeline
        self.buffer_root = buffer_root
        self.debug_buffer = debug_buffer
        self.recognizers = recognizers

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ReaderSettings] = None,
        poppler_path: Optional[str] = None,
        buffer_root: Optional[str] = None,
        debug_buffer: bool = False,
    ) -> "DocumentIngestor":
        settings = settings or ReaderSettings()
        renderer = PageRasterRenderer(scale=settings.raster_scale, poppler_path=poppler_path)
        recognizers = RecognizerCache(
            lambda code: TesseractRecognizer(
                language=code,
                conf_threshold=settings.conf_threshold,
                preprocess=settings.preprocess,
            )
        )
        return cls(
            DigitalTextExtractor(),
            ScannedDocumentOcrPipeline(renderer, recognizers.get(settings.language)),
            buffer_root=buffer_root,
            debug_buffer=debug_buffer,
            recognizers=recognizers,
        )

    def ingest(
        self,
        source: DocumentSource,
        on_progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None,
        language: Optional[str] = None,
    ) -> IngestResult:
        """Ingest ``source``; ``language`` picks the OCR language for this document only."""
        progress = _ProgressRelay(on_progress)
        try:
            buffer = BufferManager(project_root=self.buffer_root, debug=self.debug_buffer)
        except OSError as exc:
            logger.error("Cannot create staging buffer: %s", exc)
            progress.finish()
            return IngestResult.failure(f"Failed to prepare staging area: {exc}")

        try:
            local_path = buffer.stage(source)
            extraction = self._extract(local_path, source.kind, progress, cancel, language)
        except SourceUnreadableError as exc:
            logger.error("Source unreadable: %s", exc)
            progress.finish()
            return IngestResult.failure(f"Failed to read document: {exc}")
        except IngestCancelled as exc:
            logger.info("Ingest of %s cancelled", source.location)
            return IngestResult.cancelled(exc.pages_processed, exc.pages_total)
        except Exception as exc:
            logger.exception("Unexpected error while processing %s", source.location)
            # pages completed before the fault, as of the last progress event
            processed, total = progress.last.current_page, progress.last.total_pages
            progress.finish()
            return IngestResult.failure(f"Unexpected error during processing: {exc}", processed, total)
        finally:
            buffer.cleanup()

        return self._package(extraction)

    def _extract(
        self,
        local_path: str,
        kind: DocumentKind,
        progress: _ProgressRelay,
        cancel: Optional[threading.Event],
        language: Optional[str] = None,
    ) -> Extraction:
        if kind is DocumentKind.PAGED:
            total = self.extractor.page_count(local_path) or 0
            progress(ProgressEvent(0, total))
            text = self.extractor.extract(local_path)
            if text is not None and text.strip():
                progress(ProgressEvent(total, total))
                return DigitalText(text, total)
            logger.info("No usable text layer, falling back to OCR")

        if cancel is not None and cancel.is_set():
            raise IngestCancelled(0, progress.last.total_pages)
        recognizer = self._recognizer_for(language)
        return self.ocr_pipeline.process(local_path, kind, on_progress=progress, cancel=cancel, recognizer=recognizer)

    def _recognizer_for(self, language: Optional[str]):
        if language is None:
            return None
        if self.recognizers is None:
            logger.warning("No recognizer cache configured, ignoring language %r", language)
            return None
        return self.recognizers.get(language)

    @staticmethod
    def _package(extraction: Extraction) -> IngestResult:
        if isinstance(extraction, DigitalText):
            return IngestResult.success(
                extraction.text, "Digital PDF processed", extraction.pages_total, extraction.pages_total, "digital"
            )
        if isinstance(extraction, ScannedText):
            return IngestResult.success(
                extraction.text,
                "Scanned document processed with OCR",
                extraction.pages_processed,
                extraction.pages_total,
                "ocr",
            )
        assert isinstance(extraction, NoTextFound)
        return IngestResult.failure(
            "Failed to process document - no text found", extraction.pages_processed, extraction.pages_total
        )

    def close(self) -> None:
        close = getattr(self.ocr_pipeline.recognizer, "close", None)
        if close is not None:
            close()
        if self.recognizers is not None:
            self.recognizers.close()


class IngestJob:
    """Handle for one in-flight ingest."""

    def __init__(self, source: DocumentSource, future: Future, cancel_event: threading.Event) -> None:
        self.source = source
        self.future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the worker to stop at the next page boundary."""
        self._cancel_event.set()
        self.future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> IngestResult:
        if self.future.cancelled():
            return IngestResult.cancelled()
        return self.future.result(timeout)


class IngestWorker:
    """Single background thread processing one document at a time.

    Progress callbacks run on the worker thread; callers must hand them
    over to their own context before touching display state.
    """

    def __init__(self, ingestor: DocumentIngestor) -> None:
        self.ingestor = ingestor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pagereader-ingest")
        self._lock = threading.Lock()
        self._current: Optional[IngestJob] = None

    def submit(
        self,
        source: DocumentSource,
        on_progress: Optional[ProgressCallback] = None,
        language: Optional[str] = None,
    ) -> IngestJob:
        with self._lock:
            if self._current is not None and not self._current.done():
                raise IngestBusyError(f"Already processing {self._current.source.location}")
            cancel_event = threading.Event()
            future = self._executor.submit(self.ingestor.ingest, source, on_progress, cancel_event, language)
            self._current = IngestJob(source, future, cancel_event)
            logger.info("Queued %s (%s)", source.location, source.kind.value)
            return self._current

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._current is not None and not self._current.done()

    def close(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()
        self._executor.shutdown(wait=True)
        self.ingestor.close()

    def __enter__(self) -> "IngestWorker":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
