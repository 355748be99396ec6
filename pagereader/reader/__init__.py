"""Pagination and paged speech playback."""

from .paginator import PLACEHOLDER_PAGE, paginate
from .playback import (
    PlaybackController,
    PlaybackMode,
    PlaybackSnapshot,
    PlaybackState,
    SpeechEngine,
)

__all__ = [
    "PLACEHOLDER_PAGE",
    "paginate",
    "PlaybackController",
    "PlaybackMode",
    "PlaybackSnapshot",
    "PlaybackState",
    "SpeechEngine",
]
