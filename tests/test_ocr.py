"""Tests for the OCR adapter (Tesseract is replaced by a fake)."""

import asyncio
from types import SimpleNamespace

import pytest
from PIL import Image

from receipt_extraction.core import ocr
from receipt_extraction.core.ocr import OCRError, recognize_file, recognize_file_async


class FakeTesseractError(Exception):
    pass


class FakeTesseractNotFound(EnvironmentError):
    pass


@pytest.fixture
def fake_tesseract(monkeypatch):
    calls = []

    def image_to_string(img, lang=None):
        calls.append({"mode": img.mode, "lang": lang})
        return "MERCADONA\n2 PAN 0,50 1,00\n"

    fake = SimpleNamespace(image_to_string=image_to_string,
                           TesseractError=FakeTesseractError,
                           TesseractNotFoundError=FakeTesseractNotFound)
    monkeypatch.setattr(ocr, "pytesseract", fake)
    return calls


@pytest.fixture
def receipt_png(tmp_path):
    path = tmp_path / "ticket.png"
    Image.new("RGB", (60, 20), "white").save(path)
    return path


def test_default_lang(monkeypatch):
    monkeypatch.delenv("RECEIPT_OCR_LANG", raising=False)
    assert ocr.default_lang() == "spa"
    monkeypatch.setenv("RECEIPT_OCR_LANG", "eng")
    assert ocr.default_lang() == "eng"


def test_image_is_grayscaled_before_ocr(fake_tesseract, receipt_png):
    text = recognize_file(receipt_png, lang="spa")
    assert text.startswith("MERCADONA")
    assert fake_tesseract == [{"mode": "L", "lang": "spa"}]


def test_progress_is_reported(fake_tesseract, receipt_png):
    seen = []
    recognize_file(receipt_png, on_progress=seen.append)
    assert seen[0] == 0
    assert seen[-1] == 100


def test_tesseract_failure_raises_ocr_error(monkeypatch, receipt_png):
    def boom(img, lang=None):
        raise FakeTesseractError("bad image")

    monkeypatch.setattr(ocr, "pytesseract", SimpleNamespace(
        image_to_string=boom,
        TesseractError=FakeTesseractError,
        TesseractNotFoundError=FakeTesseractNotFound))
    with pytest.raises(OCRError, match="bad image"):
        recognize_file(receipt_png)


def test_unreadable_image_raises_ocr_error(fake_tesseract, tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")
    with pytest.raises(OCRError):
        recognize_file(path)


def test_text_files_pass_through(tmp_path):
    path = tmp_path / "ticket.txt"
    path.write_text("LIDL\n1 PAN 0,50\n", encoding="utf-8")
    assert recognize_file(path) == "LIDL\n1 PAN 0,50\n"


def test_unsupported_file_type(tmp_path):
    path = tmp_path / "ticket.docx"
    path.write_bytes(b"")
    with pytest.raises(ValueError, match="Unsupported file type"):
        recognize_file(path)


def test_pdf_with_text_layer_skips_tesseract(tmp_path, monkeypatch):
    import fitz

    path = tmp_path / "ticket.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "CARREFOUR")
    doc.save(path.as_posix())
    doc.close()

    def fail(*args, **kwargs):
        raise AssertionError("OCR should not run for PDFs with text")

    monkeypatch.setattr(ocr, "ocr_image_to_text", fail)
    seen = []
    text = recognize_file(path, on_progress=seen.append)
    assert "CARREFOUR" in text
    assert seen == [0, 100, 100]


def test_async_recognition(tmp_path):
    path = tmp_path / "ticket.txt"
    path.write_text("ALDI\n", encoding="utf-8")
    assert asyncio.run(recognize_file_async(path)) == "ALDI\n"
