import os

import pytest
from PIL import Image

from pagereader.docs.buffer import BufferManager
from pagereader.docs.model import DocumentKind, DocumentSource
from pagereader.docs.pdf_io import PageRasterRenderer
from pagereader.docs.text_layer import DigitalTextExtractor
from pagereader.errors import PageRenderError, SourceUnreadableError


def _write_pdf(path, text=None):
    """Write a minimal one-page PDF, with a Helvetica text line when ``text`` is given."""
    content = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode() if text else b""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    out += b"".join(b"%010d 00000 n \n" % off for off in offsets)
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    path.write_bytes(bytes(out))
    return str(path)


def test_extract_text_layer(tmp_path):
    pdf = _write_pdf(tmp_path / "digital.pdf", "Hello World")
    extractor = DigitalTextExtractor()
    assert "Hello World" in extractor.extract(pdf)
    assert extractor.page_count(pdf) == 1


def test_extract_blank_page_gives_blank_text(tmp_path):
    pdf = _write_pdf(tmp_path / "scanned.pdf")
    assert DigitalTextExtractor().extract(pdf).strip() == ""


def test_extract_unparseable_returns_none(tmp_path):
    junk = tmp_path / "junk.pdf"
    junk.write_bytes(b"this is not a pdf at all")
    extractor = DigitalTextExtractor()
    assert extractor.extract(str(junk)) is None
    assert extractor.page_count(str(junk)) is None
    assert extractor.extract(str(tmp_path / "missing.pdf")) is None


def test_buffer_stage_and_cleanup(tmp_path):
    src = tmp_path / "doc.pdf"
    src.write_bytes(b"%PDF data")
    buffer = BufferManager(project_root=str(tmp_path))
    staged = buffer.stage(DocumentSource(str(src), DocumentKind.PAGED))

    assert staged.startswith(buffer.base_dir)
    assert staged.endswith(".pdf")
    with open(staged, "rb") as f:
        assert f.read() == b"%PDF data"

    buffer.cleanup()
    assert not os.path.exists(buffer.base_dir)
    assert src.exists()


def test_buffer_debug_mode_keeps_files(tmp_path):
    with BufferManager(project_root=str(tmp_path), debug=True) as buffer:
        path = buffer.path("nested", "file.txt")
        open(path, "w").close()
    assert os.path.exists(path)


def test_buffer_stage_missing_source(tmp_path):
    with BufferManager(project_root=str(tmp_path)) as buffer:
        with pytest.raises(SourceUnreadableError):
            buffer.stage(DocumentSource(str(tmp_path / "gone.png"), DocumentKind.IMAGE))


def test_renderer_image_source(tmp_path):
    path = tmp_path / "page.png"
    Image.new("L", (30, 20), 128).save(path)
    renderer = PageRasterRenderer(scale=2.0, poppler_path=str(tmp_path))

    assert renderer.page_count(str(path), DocumentKind.IMAGE) == 1
    img = renderer.render(str(path), DocumentKind.IMAGE, 0)
    assert img.mode == "RGB" and img.size == (30, 20)
    img.close()

    with pytest.raises(PageRenderError):
        renderer.render(str(path), DocumentKind.IMAGE, 1)


def test_renderer_dpi_and_failures(tmp_path, monkeypatch):
    renderer = PageRasterRenderer(scale=2.0, poppler_path=str(tmp_path))
    assert renderer.dpi == 144

    calls = {}

    def fake_convert(path, dpi, first_page, last_page, poppler_path):
        calls.update(dpi=dpi, first=first_page, last=last_page)
        return [Image.new("RGB", (5, 5))]

    monkeypatch.setattr("pdf2image.convert_from_path", fake_convert)
    img = renderer.render("doc.pdf", DocumentKind.PAGED, 2)
    assert calls == {"dpi": 144, "first": 3, "last": 3}
    img.close()

    def broken(*args, **kwargs):
        raise RuntimeError("poppler missing")

    monkeypatch.setattr("pdf2image.convert_from_path", broken)
    with pytest.raises(PageRenderError):
        renderer.render("doc.pdf", DocumentKind.PAGED, 0)


def test_renderer_rejects_bad_scale():
    with pytest.raises(ValueError):
        PageRasterRenderer(scale=0)
