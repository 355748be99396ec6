"""
Entry point and compatibility facade for the ingest → paginate → read pipeline.

This module exposes a stable API and a CLI suitable for PyInstaller builds.

Packages:
- pagereader.docs: Document model, staging buffer, page rendering and text-layer extraction
- pagereader.ocr: Image preprocessing, Tesseract recognition and block grouping
- pagereader.pipeline: Ingestion strategy selection, OCR fallback, background worker
- pagereader.reader: Pagination and the speech playback controller
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from pagereader.config import ReaderSettings, configure_dependencies, load_settings
from pagereader.docs import DocumentKind, DocumentSource, IngestResult, Outcome, ProgressEvent
from pagereader.pipeline import DocumentIngestor, IngestWorker, print_progress_bar
from pagereader.reader import PlaybackController, PlaybackMode, paginate

__all__ = [
    "ReaderSettings",
    "configure_dependencies",
    "load_settings",
    "DocumentKind",
    "DocumentSource",
    "IngestResult",
    "Outcome",
    "ProgressEvent",
    "DocumentIngestor",
    "IngestWorker",
    "PlaybackController",
    "PlaybackMode",
    "paginate",
    "ingest_file",
]

logger = logging.getLogger("pagereader")


def ingest_file(
    file_path: str,
    settings: Optional[ReaderSettings] = None,
    debug_buffer: bool = False,
    show_progress: bool = True,
) -> IngestResult:
    """Ingest one document on the background worker and wait for the result.

    Ctrl+C cancels the ingest at the next page boundary.
    """
    poppler_path = configure_dependencies()
    source = DocumentSource.from_path(file_path)
    ingestor = DocumentIngestor.from_settings(settings, poppler_path=poppler_path, debug_buffer=debug_buffer)
    with IngestWorker(ingestor) as worker:
        job = worker.submit(
            source,
            print_progress_bar if show_progress else None,
            language=settings.language if settings is not None else None,
        )
        try:
            return job.result()
        except KeyboardInterrupt:
            job.cancel()
            return job.result()


def _cli(argv: Optional[List[str]] = None) -> int:
    """CLI for document ingestion and paged reading.

    --file / -f: Path to input document (pdf or image)
    --lang: Recognition language hint: latin|bengali|devanagari or a Tesseract code (default: settings)
    --page / -p: Print only this 1-based page
    --chunk-size: Characters per page for text without page markers (default: settings)
    --settings: Path to settings.json (default: config/settings.json)
    --debug-buffer: Keep staged files under config/buffer
    --quiet / -q: Do not draw the progress bar
    --verbose / -v: Debug logging
    """
    import argparse

    parser = argparse.ArgumentParser(description="Extract text from a PDF or image (text layer or OCR) and print it page by page.")
    parser.add_argument("--file", "-f", type=str, help="Path to input document (pdf or image)")
    parser.add_argument("--lang", type=str, default=None, help="Recognition language hint (default: from settings)")
    parser.add_argument("--page", "-p", type=int, default=None, help="Print only this page (1-based)")
    parser.add_argument("--chunk-size", type=int, default=None, help="Characters per page for unmarked text")
    parser.add_argument("--settings", type=str, default=None, help="Path to settings.json")
    parser.add_argument("--debug-buffer", action="store_true", help="Keep buffer directory under config/buffer")
    parser.add_argument("--quiet", "-q", action="store_true", help="Hide the progress bar")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.file:
        parser.print_usage()
        print("Please provide --file with a PDF or image path.")
        return 2

    settings = load_settings(args.settings)
    if args.lang:
        settings.language = args.lang
    if args.chunk_size is not None:
        settings.chunk_size = args.chunk_size
    if settings.chunk_size <= 0:
        parser.print_usage()
        print(f"--chunk-size must be a positive number of characters, got {settings.chunk_size}.")
        return 2

    try:
        result = ingest_file(args.file, settings, debug_buffer=args.debug_buffer, show_progress=not args.quiet)
    except ValueError as e:
        print(str(e))
        return 2

    print(f"{result.message} ({result.pages_processed}/{result.pages_total} pages)")
    if not result.succeeded:
        return 1

    pages = paginate(result.text, chunk_size=settings.chunk_size)
    if args.page is not None:
        if not 1 <= args.page <= len(pages):
            print(f"Page {args.page} out of range (1-{len(pages)})")
            return 2
        print(pages[args.page - 1])
        return 0

    for number, page in enumerate(pages, start=1):
        print(f"=== Page {number} of {len(pages)} ===")
        print(page)
    return 0


if __name__ == "__main__":
    sys.exit(_cli())
