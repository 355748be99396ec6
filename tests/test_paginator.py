import pytest

from pagereader.pipeline.scanned import page_marker
from pagereader.reader.paginator import PLACEHOLDER_PAGE, paginate


def test_paginate_splits_on_markers_and_trims():
    assert paginate("abc--- Page 1 ---def--- Page 2 ---ghi") == ("abc", "def", "ghi")


def test_paginate_ocr_output_drops_empty_segments():
    text = "first page\n" + page_marker(1) + page_marker(2) + "third page\n" + page_marker(3)
    assert paginate(text) == ("first page", "third page")


def test_paginate_chunks_round_trip():
    text = "".join(chr(ord("a") + i % 26) for i in range(3200)) + "  \n"
    pages = paginate(text)
    assert [len(p) for p in pages] == [1500, 1500, 203]
    assert "".join(pages) == text


def test_paginate_short_text_single_page_untrimmed():
    assert paginate("  hello  ") == ("  hello  ",)


def test_paginate_custom_chunk_size():
    assert paginate("abcdefg", chunk_size=3) == ("abc", "def", "g")


@pytest.mark.parametrize("text", ["", None, "--- Page 1 ---", "  --- Page 1 ---\n\n--- Page 2 ---  "])
def test_paginate_never_empty(text):
    assert paginate(text) == (PLACEHOLDER_PAGE,)


def test_paginate_is_deterministic():
    text = "x" * 4000
    assert paginate(text) == paginate(text)


def test_paginate_rejects_non_positive_chunk_size():
    with pytest.raises(ValueError):
        paginate("abc", chunk_size=0)


def test_paginate_prefix_without_full_marker_is_chunked():
    text = "   Chapter notes: see --- Page footer. " + "x" * 2000 + "  "
    pages = paginate(text)
    assert [len(p) for p in pages] == [1500, len(text) - 1500]
    assert "".join(pages) == text
