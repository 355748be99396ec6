"""Text recognition built on top of pytesseract and OpenCV.

This module provides:
- Preprocessing of page bitmaps for OCR.
- A cleaned DataFrame from pytesseract word output.
- Grouping of words into lines, columns and paragraphs.
- ``TesseractRecognizer``, which turns one page image into text blocks
  in reading order, and ``RecognizerCache``, one recognizer per language.

Public functions include Doxygen-style documentation tags.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import cv2
import numpy as np
import pandas as pd
import pytesseract
from PIL import Image
from sklearn.cluster import KMeans

from pagereader.config import tesseract_language
from pagereader.errors import PageRenderError

logger = logging.getLogger(__name__)


def build_dataframe_from_tesseract(data: Dict[str, Any], min_conf: float = 0) -> pd.DataFrame:
    """Create and clean a DataFrame from pytesseract.image_to_data output.

    Doxygen:
    - @param data: Dict returned by `pytesseract.image_to_data(..., output_type=Output.DICT)`.
    - @param min_conf: Rows with a confidence not above this value are dropped.
    - @return: Filtered DataFrame of non-empty words with confidence and geometry.
    """
    df = pd.DataFrame(data)
    if df.empty:
        return df
    df['conf'] = pd.to_numeric(df['conf'], errors='coerce').fillna(-1)
    df = df[df['conf'] > min_conf].copy()
    df['text'] = df['text'].fillna('').astype(str).str.strip()
    df = df[df['text'] != '']
    return df


def group_words_to_lines(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Group OCR words into line-level blocks.

    Doxygen:
    - @param df: DataFrame produced by `build_dataframe_from_tesseract`.
    - @return: List of line dicts with text, x, y, width, height and font_size.
    """
    if df.empty:
        return []
    lines: List[Dict[str, Any]] = []
    for _, words in df.groupby(['block_num', 'par_num', 'line_num'], sort=True):
        words = words.sort_values('left')
        left = int(words['left'].min())
        top = int(words['top'].min())
        right = int((words['left'] + words['width']).max())
        bottom = int((words['top'] + words['height']).max())
        lines.append({
            'text': ' '.join(words['text'].tolist()),
            'x': left,
            'y': top,
            'width': right - left,
            'height': bottom - top,
            'font_size': float(words['height'].median()),
        })
    return lines


def horizontal_overlap(a: Dict[str, Any], b: Dict[str, Any]) -> float:
    """Compute horizontal overlap ratio of two boxes.

    Doxygen:
    - @param a: First bbox dict with x, y, width, height.
    - @param b: Second bbox dict with x, y, width, height.
    - @return: Overlap ratio in [0, 1] of the union of both x ranges.
    """
    start = max(a['x'], b['x'])
    end = min(a['x'] + a['width'], b['x'] + b['width'])
    union = max(a['x'] + a['width'], b['x'] + b['width']) - min(a['x'], b['x'])
    return max(0, end - start) / max(1, union)


def _top_down(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(lines, key=lambda ln: (ln['y'], ln['x']))


def split_lines_into_columns(lines: List[Dict[str, Any]], max_cols: int = 2) -> List[List[Dict[str, Any]]]:
    """Split line blocks into columns using KMeans clustering on x-centres.

    KMeans is fitted for k = 1..max_cols and the elbow of the inertia
    curve picks the column count.

    Doxygen:
    - @param lines: List of line dicts.
    - @param max_cols: Maximum number of columns to split into.
    - @return: Columns left to right, each a list of line dicts sorted top to bottom.
    """
    k_max = min(max_cols, len(lines) // 2)
    if k_max < 2:
        return [_top_down(lines)]

    centres = np.array([ln['x'] + ln['width'] / 2 for ln in lines], dtype=float).reshape(-1, 1)
    models = [KMeans(n_clusters=k, random_state=42, n_init='auto').fit(centres) for k in range(1, k_max + 1)]
    gains = -np.diff([m.inertia_ for m in models])
    best = 0
    for i, gain in enumerate(gains):
        # a further split must remove at least half of the remaining spread
        if gain > 0.5 * models[i].inertia_:
            best = i + 1
    if best == 0:
        return [_top_down(lines)]

    labels = models[best].labels_
    columns: List[List[Dict[str, Any]]] = [[] for _ in range(best + 1)]
    for label, line in zip(labels, lines):
        columns[label].append(line)
    columns = [c for c in columns if c]
    columns.sort(key=lambda col: float(np.mean([ln['x'] for ln in col])))
    return [_top_down(col) for col in columns]


def finalize_paragraph(lines_group: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge a group of line dicts into a single paragraph block.

    Doxygen:
    - @param lines_group: Consecutive lines of one paragraph.
    - @return: Paragraph dict with newline-joined text, bbox and median font_size.
    """
    left = min(ln['x'] for ln in lines_group)
    top = min(ln['y'] for ln in lines_group)
    right = max(ln['x'] + ln['width'] for ln in lines_group)
    bottom = max(ln['y'] + ln['height'] for ln in lines_group)
    return {
        'text': '\n'.join(ln['text'] for ln in lines_group),
        'x': left,
        'y': top,
        'width': right - left,
        'height': bottom - top,
        'font_size': float(np.median([ln['font_size'] for ln in lines_group])),
    }


def merge_lines_to_paragraphs(
    lines: List[Dict[str, Any]],
    font_tolerance: float = 0.30,
    vertical_gap_ratio: float = 1.1,
    min_overlap: float = 0.45,
) -> List[Dict[str, Any]]:
    """Merge lines of one column into paragraphs.

    Doxygen:
    - @param lines: Line dicts of a single column.
    - @param font_tolerance: Allowed relative font size difference between neighbours.
    - @param vertical_gap_ratio: Largest gap, in line heights, that keeps lines together.
    - @param min_overlap: Minimum horizontal overlap ratio between neighbours.
    - @return: Paragraph dicts in top-down order.
    """
    groups: List[List[Dict[str, Any]]] = []
    for ln in _top_down(lines):
        if groups:
            last = groups[-1][-1]
            same_font = abs(ln['font_size'] - last['font_size']) <= font_tolerance * max(1.0, last['font_size'])
            gap = ln['y'] - (last['y'] + last['height'])
            close = gap <= vertical_gap_ratio * max(1, last['height'])
            if same_font and close and horizontal_overlap(ln, last) >= min_overlap:
                groups[-1].append(ln)
                continue
        groups.append([ln])
    return [finalize_paragraph(g) for g in groups]


def preprocess_image_for_ocr(img_bgr: np.ndarray) -> np.ndarray:
    """Preprocess an image to improve OCR accuracy.

    Doxygen:
    - @param img_bgr: Input BGR image.
    - @return: Denoised, binarized image converted back to BGR.
    """
    gray = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2GRAY)
    gray = cv2.bilateralFilter(gray, d=7, sigmaColor=50, sigmaSpace=50)
    th = cv2.adaptiveThreshold(gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                               cv2.THRESH_BINARY, 31, 10)
    th = cv2.medianBlur(th, 3)
    return cv2.cvtColor(th, cv2.COLOR_GRAY2BGR)


def blocks_from_dataframe(df: pd.DataFrame, max_cols: int = 2) -> List[str]:
    """Turn recognized words into paragraph texts, column by column.

    Doxygen:
    - @param df: DataFrame produced by `build_dataframe_from_tesseract`.
    - @param max_cols: Maximum number of columns to detect.
    - @return: Non-empty paragraph texts in reading order.
    """
    lines = group_words_to_lines(df)
    if not lines:
        return []
    blocks: List[str] = []
    for column in split_lines_into_columns(lines, max_cols=max_cols):
        blocks.extend(p['text'] for p in merge_lines_to_paragraphs(column))
    return [b for b in blocks if b.strip()]


class TesseractRecognizer:
    """Long-lived recognition engine for page bitmaps.

    The Tesseract binary is probed once, on first use; afterwards each
    ``recognize`` call is independent.
    """

    def __init__(
        self,
        language: str = "latin",
        conf_threshold: float = 30,
        preprocess: bool = True,
        max_columns: int = 2,
    ) -> None:
        self.lang = tesseract_language(language)
        self.conf_threshold = conf_threshold
        self.preprocess = preprocess
        self.max_columns = max_columns
        self._version: Optional[str] = None
        self._closed = False

    def _ensure_available(self) -> None:
        if self._version is None:
            self._version = str(pytesseract.get_tesseract_version())
            logger.info("Tesseract %s ready (lang=%s)", self._version, self.lang)

    def recognize(self, image: Image.Image, page_index: int = 0) -> List[str]:
        """Return the text blocks found on ``image`` in reading order.

        Doxygen:
        - @param image: Page bitmap (any PIL mode).
        - @param page_index: 0-based page index, used in errors and logs.
        - @return: Paragraph texts in reading order.
        """
        if self._closed:
            raise RuntimeError("recognizer has been closed")
        try:
            self._ensure_available()
            img_bgr = cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2BGR)
            if self.preprocess:
                img_bgr = preprocess_image_for_ocr(img_bgr)
            data = pytesseract.image_to_data(
                cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB),
                lang=self.lang,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractError as exc:
            raise PageRenderError(page_index, f"recognition failed: {exc}") from exc
        df = build_dataframe_from_tesseract(data, min_conf=self.conf_threshold)
        blocks = blocks_from_dataframe(df, max_cols=self.max_columns)
        logger.debug("Page %d: %d words, %d blocks", page_index + 1, len(df), len(blocks))
        return blocks

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "TesseractRecognizer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RecognizerCache:
    """One recognizer per Tesseract language, created on first request.

    ``factory`` receives the Tesseract language code. ``close`` releases
    every cached recognizer; a closed cache builds fresh ones on demand.
    """

    def __init__(self, factory: Callable[[str], Any]) -> None:
        self.factory = factory
        self._lock = threading.Lock()
        self._recognizers: Dict[str, Any] = {}

    def get(self, language: Optional[str]) -> Any:
        """Return the recognizer for a language hint.

        Doxygen:
        - @param language: Hint such as "latin" or "bengali", or a Tesseract code.
        - @return: The cached recognizer for the mapped Tesseract code.
        """
        code = tesseract_language(language)
        with self._lock:
            recognizer = self._recognizers.get(code)
            if recognizer is None:
                logger.debug("Creating recognizer for lang=%s", code)
                recognizer = self._recognizers[code] = self.factory(code)
            return recognizer

    @property
    def languages(self) -> List[str]:
        with self._lock:
            return sorted(self._recognizers)

    def close(self) -> None:
        with self._lock:
            recognizers = list(self._recognizers.values())
            self._recognizers.clear()
        for recognizer in recognizers:
            close = getattr(recognizer, "close", None)
            if close is not None:
                close()
