"""
Main receipt processing orchestration.
"""

import datetime as dt
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .utils import sha1_file, sha1_text, IMAGE_EXTS, PDF_EXTS, TEXT_EXTS, money_fmt
from .ocr import recognize_file, ProgressCallback
from .parsers import parse_receipt
from .categorization import Categorizer, load_rules
from .models import ProcessedReceipt

logger = logging.getLogger(__name__)

SUPPORTED_EXTS = IMAGE_EXTS | PDF_EXTS | TEXT_EXTS


class ReceiptProcessor:
    """Runs OCR, extraction and categorization over receipt files."""

    def __init__(self, rules_path: Optional[Path] = None,
                 lang: Optional[str] = None,
                 categorize: bool = True,
                 today: Optional[dt.date] = None,
                 on_progress: Optional[ProgressCallback] = None):
        """
        Initialize receipt processor.

        Args:
            rules_path: Path to rules.json (built-in keyword table if missing)
            lang: Tesseract language code (RECEIPT_OCR_LANG or "spa" if not given)
            categorize: Whether to fill in item categories
            today: Processing date used when a receipt prints no date
            on_progress: OCR progress callback, called with 0-100
        """
        self.rules_path = rules_path
        self.lang = lang
        self.categorize = categorize
        self.today = today
        self.on_progress = on_progress

        self.rules = load_rules(rules_path)
        self.categorizer = Categorizer(self.rules)

    def discover_files(self, inputs: List[Path]) -> List[Path]:
        """Expand input paths into the list of supported receipt files."""
        files = []
        for p in inputs:
            if p.is_dir():
                files.extend(sorted(
                    f for f in p.iterdir()
                    if f.is_file() and f.suffix.lower() in SUPPORTED_EXTS
                ))
            elif p.exists():
                files.append(p)
            else:
                logger.warning("Skipping %s (not found)", p)
        logger.info("Found %d receipt file(s)", len(files))
        return files

    def process_text(self, text: str, source_file: str = "<text>",
                     sha1: Optional[str] = None) -> ProcessedReceipt:
        """Parse (and optionally categorize) already recognized receipt text."""
        draft = parse_receipt(text, today=self.today)
        if self.categorize:
            draft = self.categorizer.categorize_draft(draft)

        logger.debug("Merchant: '%s'", draft.merchant)
        logger.debug("Date: %s", draft.date)
        logger.debug("Total: %s (%d item(s))", money_fmt(draft.total), len(draft.items))
        for item in draft.items:
            logger.debug("  %-30s %10s  %s", item.description, money_fmt(item.price), item.category)
        if not draft.items:
            logger.warning("No line items recognized in %s. Check OCR quality.", source_file)

        return ProcessedReceipt(source_file=source_file,
                                sha1=sha1 or sha1_text(text or ""),
                                draft=draft)

    def process_file(self, path: Path) -> ProcessedReceipt:
        """
        Process a single receipt file.

        Raises:
            ValueError: unsupported file type
            OCRError: the file could not be recognized
        """
        logger.info("Processing %s", path.name)
        text = recognize_file(path, lang=self.lang, on_progress=self.on_progress)
        return self.process_text(text, source_file=path.name, sha1=sha1_file(path))

    def process_all(self, inputs: List[Path]) -> Tuple[List[ProcessedReceipt], List[Tuple[Path, str]]]:
        """
        Process all receipts, continuing past files that fail.

        Returns:
            Tuple of (results, failures) where failures holds (path, error message)
        """
        files = self.discover_files(inputs)
        if not files:
            logger.warning("No receipt files found.")
            return [], []

        results = []
        failures = []
        for file_path in files:
            try:
                results.append(self.process_file(file_path))
            except Exception as e:
                logger.error("Failed %s: %s", file_path.name, e)
                failures.append((file_path, str(e)))

        return results, failures
