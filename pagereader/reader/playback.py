"""Paged reading with manual navigation and automatic text-to-speech advance.

The playback state is one immutable ``PlaybackState`` value. Module-level
transition functions compute the next state; ``PlaybackController`` applies
them, talks to the speech engine and reports a ``PlaybackSnapshot`` after
every change.

At most one speech request is outstanding at any time. Each request gets a
fresh id; engine callbacks carrying any other id are stale and ignored.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence, Tuple

from pagereader.config import speech_locale

logger = logging.getLogger(__name__)

NOTICE_ENGINE_NOT_READY = "Speech engine is not ready yet"
NOTICE_EMPTY_PAGE = "No text to read on this page"
NOTICE_SPEECH_ERROR = "Error in text-to-speech"


class PlaybackMode(Enum):
    STANDARD = "standard"
    AUDIO_READY = "audio_ready"
    AUDIO_PLAYING = "audio_playing"
    AUDIO_FINISHED = "audio_finished"

    @property
    def is_audio(self) -> bool:
        return self is not PlaybackMode.STANDARD


@dataclass(frozen=True)
class PlaybackState:
    page_index: int = 0
    mode: PlaybackMode = PlaybackMode.STANDARD
    auto_advance: bool = True
    request_id: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.mode is PlaybackMode.AUDIO_PLAYING) != (self.request_id is not None):
            raise ValueError("AUDIO_PLAYING requires exactly one outstanding request")


@dataclass(frozen=True)
class PlaybackSnapshot:
    page_index: int
    total_pages: int
    mode: PlaybackMode


class SpeechEngine(Protocol):
    """Speech synthesis collaborator.

    ``speak`` must be asynchronous and report back through the controller's
    ``on_speech_started`` / ``on_speech_completed`` / ``on_speech_error``
    with the same ``request_id``. ``speak`` replaces anything queued.
    ``set_locale`` receives a locale tag such as "bn", or None for the
    engine default.
    """

    def is_ready(self) -> bool: ...

    def set_locale(self, locale: Optional[str]) -> None: ...

    def speak(self, text: str, request_id: int) -> None: ...

    def stop(self) -> None: ...


# Transition functions


def enter_audio(state: PlaybackState) -> PlaybackState:
    if state.mode is PlaybackMode.STANDARD:
        return replace(state, mode=PlaybackMode.AUDIO_READY)
    return state


def exit_audio(state: PlaybackState) -> PlaybackState:
    return replace(state, mode=PlaybackMode.STANDARD, request_id=None)


def begin_speech(state: PlaybackState, request_id: int) -> PlaybackState:
    return replace(state, mode=PlaybackMode.AUDIO_PLAYING, request_id=request_id)


def interrupt(state: PlaybackState) -> PlaybackState:
    """Drop the outstanding request; a playing session falls back to ready."""
    if state.mode is PlaybackMode.AUDIO_PLAYING:
        return replace(state, mode=PlaybackMode.AUDIO_READY, request_id=None)
    return state


def finish_speech(state: PlaybackState, total_pages: int) -> Tuple[PlaybackState, bool]:
    """Next state after the active page was spoken, and whether to play again."""
    if state.auto_advance and state.page_index < total_pages - 1:
        return replace(state, page_index=state.page_index + 1, mode=PlaybackMode.AUDIO_READY, request_id=None), True
    return replace(state, mode=PlaybackMode.AUDIO_FINISHED, request_id=None), False


def navigate(state: PlaybackState, index: int, total_pages: int) -> PlaybackState:
    """Move to ``index`` when in range; audio modes always land in AUDIO_READY."""
    state = interrupt(state)
    if state.mode.is_audio:
        state = replace(state, mode=PlaybackMode.AUDIO_READY)
    if 0 <= index < total_pages:
        state = replace(state, page_index=index)
    return state


def _thread_timer(delay: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


class PlaybackController:
    """Drive manual paging and sequential speech over a page sequence.

    ``on_change`` receives a snapshot after every transition and
    ``on_notice`` receives user-facing messages. Both are invoked on the
    thread that caused the transition (a command caller, the speech engine's
    callback thread, or the auto-advance timer) while the controller lock
    is held.

    ``scheduler(delay, fn)`` runs ``fn`` after ``delay`` seconds and returns
    an object with ``cancel()``; it defaults to ``threading.Timer``.

    ``language`` is the document's language hint (for example "bengali");
    when given, the matching speech locale is handed to the engine.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        pages: Sequence[str] = (),
        on_change: Optional[Callable[[PlaybackSnapshot], None]] = None,
        on_notice: Optional[Callable[[str], None]] = None,
        settle_delay: float = 0.5,
        scheduler: Optional[Callable[[float, Callable[[], None]], object]] = None,
        language: Optional[str] = None,
    ) -> None:
        self.engine = engine
        self.on_change = on_change
        self.on_notice = on_notice
        self.settle_delay = settle_delay
        self.scheduler = scheduler or _thread_timer
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._pages: Tuple[str, ...] = tuple(pages)
        self._state = PlaybackState()
        self._pending_advance = None
        self._pending_token: Optional[object] = None
        self.language: Optional[str] = None
        if language is not None:
            self._apply_language(language)

    # Queries

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def pages(self) -> Tuple[str, ...]:
        return self._pages

    @property
    def snapshot(self) -> PlaybackSnapshot:
        with self._lock:
            return PlaybackSnapshot(self._state.page_index, len(self._pages), self._state.mode)

    @property
    def current_text(self) -> str:
        with self._lock:
            if not self._pages:
                return ""
            return self._pages[self._state.page_index]

    # Commands

    def load(self, pages: Sequence[str], language: Optional[str] = None) -> None:
        """Replace the page sequence and reset to the first page in standard mode.

        A ``language`` hint switches the speech locale for the new document.
        """
        with self._lock:
            self._cancel_outstanding()
            if language is not None:
                self._apply_language(language)
            self._pages = tuple(pages)
            self._commit(PlaybackState())

    def enter_audio_mode(self) -> None:
        with self._lock:
            if self._state.mode.is_audio:
                return
            if not self.engine.is_ready():
                self._notify(NOTICE_ENGINE_NOT_READY)
                return
            self._commit(enter_audio(self._state))

    def exit_audio_mode(self) -> None:
        with self._lock:
            self._cancel_outstanding()
            self._commit(exit_audio(self._state))

    def play(self) -> None:
        with self._lock:
            self._cancel_pending_advance()
            if not self._state.mode.is_audio:
                logger.debug("play ignored outside audio mode")
                return
            if not self.engine.is_ready():
                self._notify(NOTICE_ENGINE_NOT_READY)
                return
            self._cancel_outstanding()
            text = self.current_text
            if not text.strip():
                self._notify(NOTICE_EMPTY_PAGE)
                return
            request_id = next(self._ids)
            self._commit(begin_speech(self._state, request_id))
            logger.debug("Speaking page %d (request %d)", self._state.page_index + 1, request_id)
            try:
                self.engine.speak(text, request_id)
            except Exception:
                logger.exception("Speech request %d failed", request_id)
                self.on_speech_error(request_id)

    def pause(self) -> None:
        self.stop()

    def stop(self) -> None:
        with self._lock:
            if self._state.mode is not PlaybackMode.AUDIO_PLAYING:
                self._cancel_pending_advance()
                return
            self._cancel_outstanding()

    def next_page(self) -> None:
        with self._lock:
            self.jump_to(self._state.page_index + 1)

    def previous_page(self) -> None:
        with self._lock:
            self.jump_to(self._state.page_index - 1)

    def jump_to(self, index: int) -> None:
        """Manual navigation; never resumes speech on its own."""
        with self._lock:
            self._cancel_outstanding()
            self._commit(navigate(self._state, index, len(self._pages)))

    def set_auto_advance(self, enabled: bool) -> None:
        with self._lock:
            if not enabled:
                self._cancel_pending_advance()
            self._commit(replace(self._state, auto_advance=bool(enabled)))

    def close(self) -> None:
        with self._lock:
            self._cancel_outstanding()
            self._commit(exit_audio(self._state))

    # Speech engine callbacks

    def on_speech_started(self, request_id: int) -> None:
        with self._lock:
            if self._is_stale(request_id, "started"):
                return
            logger.debug("Speech started for page %d", self._state.page_index + 1)

    def on_speech_completed(self, request_id: int) -> None:
        with self._lock:
            if self._is_stale(request_id, "completed"):
                return
            logger.debug("Speech finished for page %d", self._state.page_index + 1)
            state, advance = finish_speech(self._state, len(self._pages))
            self._commit(state)
            if advance:
                self._schedule_advance()
            else:
                logger.info("Finished reading at page %d", state.page_index + 1)

    def on_speech_error(self, request_id: int) -> None:
        with self._lock:
            if self._is_stale(request_id, "error"):
                return
            logger.error("Speech error on page %d", self._state.page_index + 1)
            self._commit(interrupt(self._state))
            self._notify(NOTICE_SPEECH_ERROR)

    # Internals

    def _apply_language(self, language: str) -> None:
        self.language = language
        locale = speech_locale(language)
        logger.debug("Speech locale for %r: %s", language, locale or "engine default")
        self.engine.set_locale(locale)

    def _is_stale(self, request_id: int, event: str) -> bool:
        if request_id != self._state.request_id:
            logger.debug("Ignoring stale %s callback for request %s", event, request_id)
            return True
        return False

    def _cancel_outstanding(self) -> None:
        self._cancel_pending_advance()
        if self._state.request_id is not None:
            self.engine.stop()
            self._commit(interrupt(self._state))

    def _cancel_pending_advance(self) -> None:
        if self._pending_advance is not None:
            self._pending_advance.cancel()
            self._pending_advance = None
        self._pending_token = None

    def _schedule_advance(self) -> None:
        token = object()

        def fire() -> None:
            with self._lock:
                if self._pending_token is not token:
                    return
                self._pending_advance = None
                self._pending_token = None
                self.play()

        self._pending_token = token
        self._pending_advance = self.scheduler(self.settle_delay, fire)

    def _commit(self, state: PlaybackState) -> None:
        if state == self._state:
            return
        self._state = state
        if self.on_change is not None:
            self.on_change(PlaybackSnapshot(state.page_index, len(self._pages), state.mode))

    def _notify(self, message: str) -> None:
        logger.info(message)
        if self.on_notice is not None:
            self.on_notice(message)
