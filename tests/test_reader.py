import numpy as np
import pandas as pd
import pytest
from PIL import Image

from pagereader.errors import PageRenderError
from pagereader.ocr import reader
from pagereader.ocr.reader import (
    TesseractRecognizer,
    blocks_from_dataframe,
    build_dataframe_from_tesseract,
    group_words_to_lines,
    merge_lines_to_paragraphs,
    preprocess_image_for_ocr,
    split_lines_into_columns,
)
from pagereader.pipeline.progress import print_progress_bar, render_progress_bar


def _tesseract_dict(words):
    """words: list of (block, par, line, left, top, width, height, conf, text)."""
    keys = ['block_num', 'par_num', 'line_num', 'left', 'top', 'width', 'height', 'conf', 'text']
    data = {k: [] for k in keys}
    for w in words:
        for k, v in zip(keys, w):
            data[k].append(v)
    data['level'] = [5] * len(words)
    return data


def test_build_dataframe_from_tesseract_filters_empty_and_low_conf():
    data = _tesseract_dict([
        (1, 1, 1, 10, 10, 10, 10, '-1', ' '),
        (1, 1, 1, 30, 10, 10, 10, '85', 'Hello'),
        (1, 1, 1, 50, 10, 10, 10, '95', ''),
        (1, 1, 1, 70, 10, 10, 10, '20', 'faint'),
    ])
    df = build_dataframe_from_tesseract(data, min_conf=30)
    assert df['text'].tolist() == ['Hello']


def test_build_dataframe_from_empty_output():
    assert build_dataframe_from_tesseract(_tesseract_dict([])).empty


def test_group_words_to_lines_orders_words_by_x():
    df = pd.DataFrame(_tesseract_dict([
        (1, 1, 1, 50, 10, 10, 12, 90, 'C'),
        (1, 1, 1, 10, 10, 10, 12, 90, 'A'),
        (1, 1, 1, 30, 10, 10, 12, 90, 'B'),
        (1, 1, 2, 10, 30, 30, 12, 90, 'next'),
    ]))
    lines = group_words_to_lines(df)
    assert [ln['text'] for ln in lines] == ['A B C', 'next']
    assert lines[0]['x'] == 10 and lines[0]['width'] == 50


def _line(text, x, y, width=80, height=12):
    return {'text': text, 'x': x, 'y': y, 'width': width, 'height': height, 'font_size': float(height)}


def test_merge_lines_to_paragraphs_splits_on_large_gap():
    lines = [_line('one', 10, 10), _line('two', 10, 24), _line('far', 10, 200)]
    paragraphs = merge_lines_to_paragraphs(lines)
    assert [p['text'] for p in paragraphs] == ['one\ntwo', 'far']
    assert paragraphs[0]['height'] == 26


def test_merge_lines_to_paragraphs_splits_on_font_change():
    lines = [_line('Title', 10, 10, height=30), _line('body', 10, 42, height=12)]
    assert len(merge_lines_to_paragraphs(lines)) == 2


def test_split_lines_into_columns_single_column():
    lines = [_line('Line 1', 10, 10), _line('Line 2', 12, 30)]
    cols = split_lines_into_columns(lines, max_cols=2)
    assert len(cols) == 1
    assert [ln['text'] for ln in cols[0]] == ['Line 1', 'Line 2']


def test_split_lines_into_columns_two_columns_detected():
    lines = [
        _line('R1', 400, 12), _line('L1', 10, 10), _line('L2', 15, 30),
        _line('R2', 410, 28), _line('L3', 12, 50), _line('R3', 405, 52),
    ]
    cols = split_lines_into_columns(lines, max_cols=2)
    assert [[ln['text'] for ln in col] for col in cols] == [['L1', 'L2', 'L3'], ['R1', 'R2', 'R3']]


def test_blocks_from_dataframe_reads_columns_in_order():
    df = build_dataframe_from_tesseract(_tesseract_dict([
        (1, 1, 1, 10, 10, 40, 12, 90, 'left1'),
        (1, 1, 2, 10, 26, 40, 12, 90, 'left2'),
        (2, 1, 1, 400, 10, 40, 12, 90, 'right1'),
        (2, 1, 2, 400, 26, 40, 12, 90, 'right2'),
    ]))
    assert blocks_from_dataframe(df) == ['left1\nleft2', 'right1\nright2']


def test_preprocess_image_for_ocr_keeps_shape():
    img = np.full((60, 100, 3), 240, dtype=np.uint8)
    img[20:30, 40:60] = 0
    out = preprocess_image_for_ocr(img)
    assert out.shape == img.shape
    assert set(np.unique(out)).issubset({0, 255})


def test_recognizer_maps_language_and_returns_blocks(monkeypatch):
    calls = {}

    def fake_image_to_data(image, lang, output_type):
        calls['lang'] = lang
        calls['shape'] = image.shape
        return _tesseract_dict([(1, 1, 1, 5, 5, 20, 10, 96, 'hello')])

    monkeypatch.setattr(reader.pytesseract, 'get_tesseract_version', lambda: '5.3.0')
    monkeypatch.setattr(reader.pytesseract, 'image_to_data', fake_image_to_data)

    recognizer = TesseractRecognizer(language='bengali', preprocess=False)
    blocks = recognizer.recognize(Image.new('RGB', (40, 20), 'white'))

    assert blocks == ['hello']
    assert calls['lang'] == 'ben'
    assert calls['shape'] == (20, 40, 3)


def test_recognizer_wraps_tesseract_errors(monkeypatch):
    def failing(*args, **kwargs):
        raise reader.pytesseract.TesseractError(1, 'bad image')

    monkeypatch.setattr(reader.pytesseract, 'get_tesseract_version', lambda: '5.3.0')
    monkeypatch.setattr(reader.pytesseract, 'image_to_data', failing)

    with pytest.raises(PageRenderError) as excinfo:
        TesseractRecognizer().recognize(Image.new('RGB', (10, 10)), page_index=2)
    assert excinfo.value.page_index == 2


def test_closed_recognizer_refuses_work():
    recognizer = TesseractRecognizer()
    recognizer.close()
    with pytest.raises(RuntimeError):
        recognizer.recognize(Image.new('RGB', (10, 10)))


@pytest.mark.parametrize('fn', [
    build_dataframe_from_tesseract,
    group_words_to_lines,
    split_lines_into_columns,
    merge_lines_to_paragraphs,
    preprocess_image_for_ocr,
    blocks_from_dataframe,
    render_progress_bar,
    print_progress_bar,
])
def test_public_helpers_carry_doxygen_tags(fn):
    assert 'Doxygen:' in fn.__doc__
    assert '@param' in fn.__doc__
