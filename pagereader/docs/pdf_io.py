from __future__ import annotations

import logging
import os
from typing import Optional

from PIL import Image

from pagereader.errors import PageRenderError

from .model import DocumentKind

logger = logging.getLogger(__name__)

PDF_POINTS_PER_INCH = 72


def _ensure_poppler_env() -> Optional[str]:
    """Return a Poppler bin directory for pdf2image, setting POPPLER_PATH if found.

    Priority:
    1) Respect existing POPPLER_PATH if it points to a valid directory.
    2) Try app_dir/poppler/Library/bin (bundled with app build).
    3) Try parent_of_app_dir/poppler/Library/bin (common dev layout: ..\\poppler).
    Returns None when Poppler is expected on PATH.
    """
    cur = os.environ.get("POPPLER_PATH")
    if cur and os.path.isdir(cur):
        return cur

    # app_dir = project root (three levels up from this file: pagereader/docs/pdf_io.py)
    app_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))

    candidates = [
        os.path.join(app_dir, "poppler", "Library", "bin"),
        os.path.join(os.path.dirname(app_dir), "poppler", "Library", "bin"),
        os.path.join(app_dir, "poppler", "bin"),
        os.path.join(os.path.dirname(app_dir), "poppler", "bin"),
    ]
    for c in candidates:
        if os.path.isdir(c):
            os.environ["POPPLER_PATH"] = c
            return c
    return None


class PageRasterRenderer:
    """Render single pages of a document to PIL images.

    PDF pages are rendered through pdf2image at ``scale`` times their
    native 72 dpi size. Image sources are a single page used as-is.
    """

    def __init__(self, scale: float = 2.0, poppler_path: Optional[str] = None) -> None:
        if scale <= 0:
            raise ValueError("scale must be positive")
        self.scale = float(scale)
        self.poppler_path = poppler_path or _ensure_poppler_env()

    @property
    def dpi(self) -> int:
        return int(round(PDF_POINTS_PER_INCH * self.scale))

    def page_count(self, path: str, kind: DocumentKind) -> int:
        if kind is DocumentKind.IMAGE:
            return 1
        from pdf2image import pdfinfo_from_path

        info = pdfinfo_from_path(path, poppler_path=self.poppler_path)
        return int(info.get("Pages", 0))

    def render(self, path: str, kind: DocumentKind, page_index: int) -> Image.Image:
        """Rasterize one page; the caller owns (and must close) the returned image."""
        try:
            if kind is DocumentKind.IMAGE:
                if page_index != 0:
                    raise ValueError(f"Image sources have a single page, got index {page_index}")
                with Image.open(path) as img:
                    img.load()
                    return img.convert("RGB")

            from pdf2image import convert_from_path

            images = convert_from_path(
                path,
                dpi=self.dpi,
                first_page=page_index + 1,
                last_page=page_index + 1,
                poppler_path=self.poppler_path,
            )
        except PageRenderError:
            raise
        except Exception as exc:
            raise PageRenderError(page_index, f"rasterization failed: {exc}") from exc

        if not images:
            raise PageRenderError(page_index, "renderer returned no image")
        for extra in images[1:]:
            extra.close()
        logger.debug("Rendered page %d at %d dpi (%dx%d)", page_index + 1, self.dpi, *images[0].size)
        return images[0]
