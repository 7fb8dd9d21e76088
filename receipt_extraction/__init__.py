"""
Receipt Extraction

Turns noisy OCR text of retail receipts into structured drafts: merchant,
date, total and line items.
"""

__version__ = "1.0.0"
__author__ = "Receipt Extraction Contributors"

from receipt_extraction.core.models import ReceiptDraft, LineItem
from receipt_extraction.core.parsers import parse_receipt as parse

__all__ = ["ReceiptDraft", "LineItem", "parse"]
