"""High-level orchestration: ingestion, OCR fallback and progress reporting."""

from .ingest import DocumentIngestor, IngestJob, IngestWorker
from .progress import print_progress_bar, render_progress_bar
from .scanned import ScannedDocumentOcrPipeline, page_marker

__all__ = [
    "DocumentIngestor",
    "IngestJob",
    "IngestWorker",
    "ScannedDocumentOcrPipeline",
    "page_marker",
    "print_progress_bar",
    "render_progress_bar",
]
