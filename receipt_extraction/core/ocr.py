"""
OCR functionality for turning receipt images and PDFs into text.

This is the only long-running, failure-prone stage of the pipeline; errors
from Tesseract or PyMuPDF surface as OCRError.
"""

import asyncio
import io
import logging
import os
from pathlib import Path
from typing import Callable, Optional, Union

from .utils import IMAGE_EXTS, PDF_EXTS, TEXT_EXTS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

DEFAULT_LANG = "spa"
PDF_RENDER_ZOOM = 2


class OCRError(RuntimeError):
    """Raised when a receipt file cannot be turned into text."""


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract
    import importlib
    pytesseract = importlib.import_module("pytesseract")


# Initialize on first use
pytesseract = None


def default_lang() -> str:
    """Tesseract language, from RECEIPT_OCR_LANG or Spanish."""
    return os.getenv("RECEIPT_OCR_LANG", DEFAULT_LANG)


def _report(on_progress: Optional[ProgressCallback], percent: int):
    if on_progress is not None:
        on_progress(max(0, min(100, int(percent))))


def ocr_image_to_text(image: Union[Path, "PIL.Image.Image"], lang: Optional[str] = None) -> str:
    """OCR an image file (or an already opened PIL image) to text."""
    if pytesseract is None:
        _lazy_import_ocr_deps()

    from PIL import Image
    lang = lang or default_lang()
    try:
        img = Image.open(image) if isinstance(image, (str, Path)) else image
        # Grayscale improves Tesseract accuracy on thermal paper scans
        if img.mode != "L":
            img = img.convert("L")
        return pytesseract.image_to_string(img, lang=lang)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        raise OCRError(f"Tesseract failed: {e}") from e
    except OSError as e:
        raise OCRError(f"Could not read image {image}: {e}") from e


def pdf_to_text(pdf_path: Path, lang: Optional[str] = None,
                on_progress: Optional[ProgressCallback] = None) -> str:
    """
    Extract text from a PDF.

    Pages with an embedded text layer are read directly; scanned pages are
    rendered at PDF_RENDER_ZOOM and passed through Tesseract.
    """
    import fitz as fitz_module
    from PIL import Image

    try:
        doc = fitz_module.open(pdf_path.as_posix())
    except RuntimeError as e:
        raise OCRError(f"Could not open PDF {pdf_path.name}: {e}") from e

    chunks = []
    try:
        page_count = doc.page_count
        for idx, page in enumerate(doc):
            text = page.get_text()
            if not text.strip():
                logger.debug("Page %d of %s has no text layer, running OCR", idx + 1, pdf_path.name)
                mat = fitz_module.Matrix(PDF_RENDER_ZOOM, PDF_RENDER_ZOOM)
                pix = page.get_pixmap(matrix=mat, alpha=False)
                img = Image.open(io.BytesIO(pix.tobytes("png")))
                text = ocr_image_to_text(img, lang=lang)
            chunks.append(text)
            _report(on_progress, (idx + 1) * 100 // max(page_count, 1))
    finally:
        doc.close()
    return "\n".join(chunks)


def recognize_file(path: Path, lang: Optional[str] = None,
                   on_progress: Optional[ProgressCallback] = None) -> str:
    """
    Turn a receipt file into plain text.

    Args:
        path: Image, PDF, or .txt file (text files are read as-is)
        lang: Tesseract language code (defaults to default_lang())
        on_progress: Called with an integer percentage 0-100

    Returns:
        The recognized text
    """
    ext = path.suffix.lower()
    _report(on_progress, 0)

    if ext in TEXT_EXTS:
        text = path.read_text(encoding="utf-8", errors="replace")
    elif ext in IMAGE_EXTS:
        text = ocr_image_to_text(path, lang=lang)
    elif ext in PDF_EXTS:
        text = pdf_to_text(path, lang=lang, on_progress=on_progress)
    else:
        raise ValueError(f"Unsupported file type: {path}")

    _report(on_progress, 100)
    return text


async def recognize_file_async(path: Path, lang: Optional[str] = None,
                               on_progress: Optional[ProgressCallback] = None) -> str:
    """Run recognize_file in a worker thread so callers can await or cancel it."""
    return await asyncio.to_thread(recognize_file, path, lang, on_progress)
