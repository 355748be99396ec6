from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp", ".gif")


class DocumentKind(Enum):
    IMAGE = "image"
    PAGED = "paged"


@dataclass(frozen=True)
class DocumentSource:
    """Read-only handle to a document on disk."""

    location: str
    kind: DocumentKind

    @classmethod
    def from_path(cls, path: str) -> "DocumentSource":
        ext = os.path.splitext(path)[1].lower()
        if ext == ".pdf":
            return cls(location=path, kind=DocumentKind.PAGED)
        if ext in IMAGE_EXTENSIONS:
            return cls(location=path, kind=DocumentKind.IMAGE)
        raise ValueError(f"Unsupported file type: {path}")

    @property
    def suffix(self) -> str:
        ext = os.path.splitext(self.location)[1].lower()
        if ext:
            return ext
        return ".pdf" if self.kind is DocumentKind.PAGED else ".png"


class Outcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressEvent:
    current_page: int
    total_pages: int


@dataclass(frozen=True)
class IngestResult:
    outcome: Outcome
    message: str
    text: str = ""
    pages_processed: int = 0
    pages_total: int = 0
    method: Optional[str] = None

    def __post_init__(self) -> None:
        if self.outcome is not Outcome.SUCCESS and self.text:
            raise ValueError("Only successful results may carry text")

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(cls, text: str, message: str, pages_processed: int, pages_total: int, method: str) -> "IngestResult":
        return cls(Outcome.SUCCESS, message, text, pages_processed, pages_total, method)

    @classmethod
    def failure(cls, message: str, pages_processed: int = 0, pages_total: int = 0) -> "IngestResult":
        return cls(Outcome.FAILURE, message, "", pages_processed, pages_total)

    @classmethod
    def cancelled(cls, pages_processed: int = 0, pages_total: int = 0) -> "IngestResult":
        return cls(Outcome.CANCELLED, "Processing cancelled", "", pages_processed, pages_total)


# Strategy outcomes consumed by the ingestor


@dataclass(frozen=True)
class DigitalText:
    text: str
    pages_total: int = 0


@dataclass(frozen=True)
class ScannedText:
    text: str
    pages_processed: int
    pages_total: int


@dataclass(frozen=True)
class NoTextFound:
    pages_processed: int = 0
    pages_total: int = 0


Extraction = Union[DigitalText, ScannedText, NoTextFound]
