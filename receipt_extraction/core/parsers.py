"""
Parsers for extracting structured receipt data from OCR text.

Every parser here is a pure function over the list of receipt lines. None of
them raise on bad input: each step returns a best-effort value and
parse_receipt() chains the documented fallbacks.
"""

import datetime as dt
import logging
from typing import List, Optional, Tuple

from .models import (LineItem, LineKind, PriceToken, ReceiptDraft,
                     UNKNOWN_MERCHANT)
from .utils import (DATE_PATTERN, PRICE_TOKEN_PATTERN, ITEM_LINE_PATTERN,
                    QUANTITY_PREFIX_PATTERN, DIGIT_RUN_PATTERN, GARBAGE_PATTERN,
                    TRAILING_PRICE_PATTERN,
                    MERCHANT_EXCLUDE_PATTERN, MERCHANT_SCAN_LINES, MERCHANT_ALIASES,
                    NOISE_KEYWORDS, SUMMARY_KEYWORD_PATTERN, TOTAL_KEYWORDS,
                    SUBTOTAL_PATTERN, TOTAL_DEVIATION_LIMIT, MIN_ITEM_PRICE,
                    MAX_ITEM_PRICE, normalize_price, strip_accents)

logger = logging.getLogger(__name__)


def split_lines(text: Optional[str]) -> List[str]:
    """Split raw text into trimmed, non-empty lines, keeping order and duplicates."""
    if not text:
        return []
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


def parse_merchant(lines: List[str]) -> str:
    """
    Identify the merchant name.

    Known retailer aliases are tried first against the whole text; otherwise
    the first plausible header line among the first few lines is used.
    """
    buffer = " ".join(lines).upper()
    for alias in MERCHANT_ALIASES:
        if alias.matches(buffer):
            return alias.name

    for ln in lines[:MERCHANT_SCAN_LINES]:
        if len(ln) <= 3:
            continue
        if DIGIT_RUN_PATTERN.search(ln):
            continue
        if MERCHANT_EXCLUDE_PATTERN.search(ln):
            continue
        return ln.upper().strip()

    return UNKNOWN_MERCHANT


def _match_date(line: str) -> Optional[str]:
    for m in DATE_PATTERN.finditer(line):
        day, month, year = m.groups()
        # Month field out of range: the receipt printed month first
        if int(month) > 12:
            day, month = month, day
        if not (1 <= int(month) <= 12 and 1 <= int(day) <= 31):
            continue
        if len(year) == 2:
            # Two-digit years are always read as 20YY
            year = "20" + year
        elif len(year) != 4:
            continue
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return None


def parse_date(lines: List[str], today: Optional[dt.date] = None) -> str:
    """Extract the transaction date as YYYY-MM-DD, falling back to the processing date."""
    for ln in lines:
        found = _match_date(ln)
        if found:
            return found
    return (today or dt.date.today()).isoformat()


def classify_line(line: str) -> LineKind:
    """Classify a line as an item candidate, noise, or undetermined."""
    if ITEM_LINE_PATTERN.match(line):
        return LineKind.ITEM

    upper = line.upper()
    if upper in NOISE_KEYWORDS:
        return LineKind.NOISE
    if "TOTAL" in upper and not any(c.isdigit() for c in line):
        return LineKind.NOISE
    return LineKind.UNDETERMINED


def find_price_tokens(line: str) -> List[PriceToken]:
    """Return every price-shaped substring of line, in order, with its offset."""
    return [PriceToken(raw=m.group(0), start=m.start())
            for m in PRICE_TOKEN_PATTERN.finditer(line)]


def _description_before(line: str, token: PriceToken) -> str:
    description = line[:token.start].strip()
    return QUANTITY_PREFIX_PATTERN.sub("", description).strip()


def extract_items(lines: List[str]) -> Tuple[List[LineItem], float]:
    """
    Extract line items and the running total of their line amounts.

    Returns:
        Tuple of (items, calculated_total)
    """
    items = []
    calculated = 0.0

    for ln in lines:
        kind = classify_line(ln)
        if kind is LineKind.NOISE:
            continue

        tokens = find_price_tokens(ln)
        if not tokens:
            continue

        # Known limitation: lines are assumed to read
        # [qty] description [unit price] [line amount]; other column orders misparse.
        unit_token = tokens[-2] if len(tokens) >= 2 else tokens[0]
        price = normalize_price(unit_token.raw)
        description = _description_before(ln, tokens[0])

        if len(description) <= 1:
            continue
        if not (MIN_ITEM_PRICE < price < MAX_ITEM_PRICE):
            logger.debug("Rejected price %.2f on line %r", price, ln)
            continue
        if SUMMARY_KEYWORD_PATTERN.search(ln.upper()):
            continue
        if GARBAGE_PATTERN.search(ln):
            logger.debug("Rejected garbage line %r", ln)
            continue
        # Without the qty/description/price shape the line needs a worded
        # description and must end with its price
        if kind is LineKind.UNDETERMINED:
            if not any(c.isalpha() for c in description):
                continue
            if not TRAILING_PRICE_PATTERN.search(ln):
                continue

        items.append(LineItem(description=description, price=price))
        calculated += normalize_price(tokens[-1].raw)

    return items, round(calculated, 2)


def parse_total(lines: List[str]) -> Optional[float]:
    """Return the value of the last total line, or None if no total line carries a price."""
    detected = None
    for ln in lines:
        folded = strip_accents(ln).lower()
        if SUBTOTAL_PATTERN.search(folded):
            continue
        if not any(k in folded for k in TOTAL_KEYWORDS):
            continue
        tokens = find_price_tokens(ln)
        if tokens:
            detected = normalize_price(tokens[-1].raw)
    return detected


def reconcile_total(detected: Optional[float], calculated: float,
                    items: List[LineItem]) -> float:
    """
    Choose the final total from the detected total and the sum of items.

    A missing, zero, or implausible detected total (more than
    TOTAL_DEVIATION_LIMIT away from the item sum) is replaced by the larger of
    the two. If that is still zero, the most expensive item is used.
    """
    total = detected or 0.0
    if not detected or abs(detected - calculated) > TOTAL_DEVIATION_LIMIT:
        total = max(total, calculated)
    if total == 0 and items:
        total = max(item.price for item in items)
    return round(total, 2)


def parse_receipt(text: Optional[str], today: Optional[dt.date] = None) -> ReceiptDraft:
    """
    Parse raw OCR text into a ReceiptDraft.

    Args:
        text: Newline-delimited receipt text (may be empty or None)
        today: Processing date used when no date is printed (defaults to today)

    Returns:
        ReceiptDraft with merchant, date, total and items
    """
    lines = split_lines(text)
    merchant = parse_merchant(lines)
    date = parse_date(lines, today=today)
    items, calculated = extract_items(lines)
    detected = parse_total(lines)
    total = reconcile_total(detected, calculated, items)

    logger.debug("Parsed %d line(s): merchant=%s date=%s items=%d calculated=%.2f detected=%s total=%.2f",
                 len(lines), merchant, date, len(items), calculated, detected, total)

    return ReceiptDraft(merchant=merchant, date=date, total=total, items=tuple(items))
