"""Typed exceptions for document ingestion and playback."""


class PageReaderError(Exception):
    """Base class for pagereader errors."""


class SourceUnreadableError(PageReaderError, OSError):
    """Raised when the document source cannot be opened or copied."""


class ExtractionUnavailableError(PageReaderError):
    """Raised when a document has no usable text layer."""


class PageRenderError(PageReaderError):
    """Raised when one page fails to rasterize or recognize."""

    def __init__(self, page_index: int, message: str) -> None:
        super().__init__(f"page {page_index + 1}: {message}")
        self.page_index = page_index


class IngestCancelled(PageReaderError):
    """Raised inside the worker when the caller abandons an ingest."""

    def __init__(self, pages_processed: int, pages_total: int) -> None:
        super().__init__(f"cancelled after {pages_processed}/{pages_total} pages")
        self.pages_processed = pages_processed
        self.pages_total = pages_total


class IngestBusyError(PageReaderError, RuntimeError):
    """Raised when an ingest is requested while another is in flight."""
