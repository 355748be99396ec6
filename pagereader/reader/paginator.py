"""Split merged document text into display pages."""

from __future__ import annotations

import re
from typing import Optional, Tuple

PAGE_MARKER_RE = re.compile(r"--- Page \d+ ---")
DEFAULT_CHUNK_SIZE = 1500
PLACEHOLDER_PAGE = "Content could not be processed into pages."


def paginate(text: Optional[str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Tuple[str, ...]:
    """Return the ordered pages of ``text``; never empty.

    Text carrying OCR page markers is split on them, each segment trimmed
    and empty segments dropped. Anything else is cut into ``chunk_size``
    character chunks, so joining the pages gives back the input.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    text = text or ""
    if PAGE_MARKER_RE.search(text):
        pages = tuple(s.strip() for s in PAGE_MARKER_RE.split(text) if s.strip())
    else:
        pages = tuple(text[i:i + chunk_size] for i in range(0, len(text), chunk_size))
    return pages or (PLACEHOLDER_PAGE,)
