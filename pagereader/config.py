import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

import pytesseract

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))

# Language hints accepted from callers, mapped to Tesseract traineddata names
_TESSERACT_LANGUAGES = {
    "latin": "eng",
    "english": "eng",
    "bengali": "ben",
    "devanagari": "hin",
    "hindi": "hin",
}


def tesseract_language(hint: Optional[str]) -> str:
    """Map a language hint to a Tesseract language code; unknown hints pass through."""
    if not hint:
        return "eng"
    key = hint.strip().lower()
    return _TESSERACT_LANGUAGES.get(key, key)


# Speech locales per language hint; anything else keeps the engine default
_SPEECH_LOCALES = {
    "bengali": "bn",
    "ben": "bn",
    "devanagari": "hi",
    "hindi": "hi",
    "hin": "hi",
}


def speech_locale(hint: Optional[str]) -> Optional[str]:
    """Map a language hint to a speech locale tag, or None for the engine default."""
    if not hint:
        return None
    return _SPEECH_LOCALES.get(hint.strip().lower())


@dataclass
class ReaderSettings:
    raster_scale: float = 2.0
    language: str = "latin"
    chunk_size: int = 1500
    settle_delay: float = 0.5
    conf_threshold: float = 30
    preprocess: bool = True


def load_settings(path: Optional[str] = None) -> ReaderSettings:
    """Load ReaderSettings from config/settings.json, falling back to defaults."""
    settings_path = path or os.path.join(PROJECT_ROOT, "config", "settings.json")
    if not os.path.exists(settings_path):
        return ReaderSettings()

    with open(settings_path, "r", encoding="utf-8") as f:
        raw = json.load(f) or {}

    known = {f.name for f in fields(ReaderSettings)}
    ignored = sorted(set(raw) - known)
    if ignored:
        logger.warning("Ignoring unknown settings in %s: %s", settings_path, ", ".join(ignored))
    return ReaderSettings(**{k: v for k, v in raw.items() if k in known})


def _resolve_path(base: str, relative: str) -> str:
    return os.path.abspath(os.path.join(base, relative))


def configure_dependencies(project_root: Optional[str] = None) -> Optional[str]:
    """Configure external dependencies (Tesseract, Poppler) from config/dependencies.json."""
    root = project_root or PROJECT_ROOT
    deps_path = os.path.join(root, "config", "dependencies.json")

    poppler_abs: Optional[str] = None

    if not os.path.exists(deps_path):
        logger.debug("dependencies.json not found at %s, using binaries on PATH", deps_path)
        return poppler_abs

    try:
        with open(deps_path, "r", encoding="utf-8") as deps_file:
            deps = json.load(deps_file) or {}
    except (OSError, ValueError) as exc:
        logger.warning("Could not load dependencies from %s: %s", deps_path, exc)
        return poppler_abs

    tess_rel = deps.get("tesseract_path")
    if tess_rel:
        tess_abs = _resolve_path(root, tess_rel)
        if os.path.exists(tess_abs):
            pytesseract.pytesseract.tesseract_cmd = tess_abs
        else:
            logger.warning("Tesseract path from config does not exist: %s", tess_abs)

    poppler_rel = deps.get("poppler_path")
    if poppler_rel:
        candidate = _resolve_path(root, poppler_rel)
        if os.path.isdir(candidate):
            poppler_abs = candidate
        else:
            logger.warning("Poppler path from config does not exist or is not a directory: %s", candidate)

    return poppler_abs
