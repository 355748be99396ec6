"""Console progress reporting for ingestion."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from pagereader.docs.model import ProgressEvent


def render_progress_bar(current: int, total: int, width: int = 10) -> str:
    """Render a colored one-line progress bar (10 fixed segments by default).

    Doxygen:
    - @param current: Pages finished so far.
    - @param total: Total pages; 0 draws a full bar.
    - @param width: Number of bar segments (default 10).
    - @return: The bar followed by `[current/total]`.
    """
    segments = max(1, int(width))
    if total <= 0:
        filled = segments
    else:
        done = max(0, min(current, total))
        filled = segments if done >= total else int(done / total * segments)
    pending = segments - filled
    GREEN = "\x1b[32m"
    RED = "\x1b[31m"
    RESET = "\x1b[0m"
    return f"{GREEN}{'█'*filled}{RESET}{RED}{'█'*pending}{RESET} [{current}/{total}]"


def print_progress_bar(event: ProgressEvent, stream: Optional[TextIO] = None) -> None:
    """Redraw the progress bar in place; ends the line on the terminal event.

    Doxygen:
    - @param event: Progress reported by the ingestor.
    - @param stream: Output stream (default: stdout).
    """
    out = stream or sys.stdout
    end = "\n" if event.current_page >= event.total_pages else ""
    print(f"\r{render_progress_bar(event.current_page, event.total_pages)}", end=end, file=out, flush=True)
