"""Document access layer.

Exposes:
- Data model: DocumentSource, DocumentKind, IngestResult, ProgressEvent and
  the strategy outcomes DigitalText, ScannedText, NoTextFound
- Buffer manager: BufferManager (stages sources under config/buffer)
- PageRasterRenderer: PDF/image pages to PIL images (pdf2image)
- DigitalTextExtractor: embedded text layer via pypdf
"""

from .model import (
    DigitalText,
    DocumentKind,
    DocumentSource,
    Extraction,
    IngestResult,
    NoTextFound,
    Outcome,
    ProgressEvent,
    ScannedText,
)
from .buffer import BufferManager
from .pdf_io import PageRasterRenderer
from .text_layer import DigitalTextExtractor

__all__ = [
    "DigitalText",
    "DocumentKind",
    "DocumentSource",
    "Extraction",
    "IngestResult",
    "NoTextFound",
    "Outcome",
    "ProgressEvent",
    "ScannedText",
    "BufferManager",
    "PageRasterRenderer",
    "DigitalTextExtractor",
]
