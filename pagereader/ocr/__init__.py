"""OCR (Optical Character Recognition) utilities.

This package includes preprocessing, word grouping and the page-level
``TesseractRecognizer`` built on top of pytesseract and OpenCV, cached
per language by ``RecognizerCache``.
"""

from .reader import (
    RecognizerCache,
    TesseractRecognizer,
    blocks_from_dataframe,
    build_dataframe_from_tesseract,
    finalize_paragraph,
    group_words_to_lines,
    horizontal_overlap,
    merge_lines_to_paragraphs,
    preprocess_image_for_ocr,
    split_lines_into_columns,
)

__all__ = [
    "RecognizerCache",
    "TesseractRecognizer",
    "blocks_from_dataframe",
    "build_dataframe_from_tesseract",
    "finalize_paragraph",
    "group_words_to_lines",
    "horizontal_overlap",
    "merge_lines_to_paragraphs",
    "preprocess_image_for_ocr",
    "split_lines_into_columns",
]
