"""
Utility functions and constant tables for receipt extraction.
"""

import hashlib
import re
import unicodedata
from pathlib import Path
from typing import Optional

from .models import MerchantAlias

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}
PDF_EXTS = {".pdf"}
TEXT_EXTS = {".txt"}

# Pattern constants for parsing
DATE_PATTERN = re.compile(r"\b(\d{1,2})[-/.](\d{1,2})[-/.](\d{2,4})\b")
PRICE_TOKEN_PATTERN = re.compile(r"\d+[.,]\d{2,3}")
ITEM_LINE_PATTERN = re.compile(r"^\d+.*\d+[.,]\d{2}")
QUANTITY_PREFIX_PATTERN = re.compile(r"^\d+\s+")
DIGIT_RUN_PATTERN = re.compile(r"\d{2,}")
GARBAGE_PATTERN = re.compile(r"\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}|\d{9,}")
TRAILING_PRICE_PATTERN = re.compile(r"\d+[.,]\d{2,3}\s*(?:€|EUR|[A-Z])?$", re.IGNORECASE)
CURRENCY_PATTERN = re.compile(r"[€$£¥]")

# Lines that look like address, phone, tax ID or ticket number never name the merchant
MERCHANT_EXCLUDE_PATTERN = re.compile(
    r"\b(?:CALLE|CL|AVDA|AVENIDA|PLAZA|PZA|PASEO|CTRA|CARRETERA|POL[ÍI]GONO"
    r"|TEL[ÉE]FONO|TELF?|TLF|CIF|NIF|TICKET|FACTURA|FECHA|HORA|WWW)\b"
    r"|C/|C\.I\.F|N\.I\.F|N[º°]|HTTPS?:|@",
    re.IGNORECASE,
)
MERCHANT_SCAN_LINES = 12

NOISE_KEYWORDS = frozenset({
    "IVA", "TOTAL", "SUBTOTAL", "FACTURA", "FACTURA SIMPLIFICADA", "TICKET",
    "TELEFONO", "TELÉFONO", "GRACIAS", "GRACIAS POR SU VISITA", "GRACIAS POR SU COMPRA",
    "C.I.F", "C.I.F.", "N.I.F", "N.I.F.", "CIF", "NIF", "PAGINA", "PÁGINA",
    "CAMBIO", "ENTREGADO", "EFECTIVO", "TARJETA", "DESCRIPCION", "DESCRIPCIÓN",
    "ARTICULO", "ARTÍCULO", "IMPORTE", "PRECIO", "CANTIDAD", "UDS",
})

# Anchored at the start of a word only: OCR often glues the amount to the keyword (TOTAL1,00)
SUMMARY_KEYWORD_PATTERN = re.compile(
    r"\b(?:TOTAL(?:ES)?|SUBTOTAL|SUB-TOTAL|IVA|I\.V\.A|IMPUESTOS?|BASE IMPONIBLE|CUOTA"
    r"|TARJETA|EFECTIVO|VISA|MASTERCARD|MAESTRO|CONTACTLESS|CAMBIO|ENTREGADO|A DEVOLVER"
    r"|DESCUENTO|DTO|AHORRO|REDONDEO|TERMINAL|TPV|AUTORIZACI[ÓO]N|AUT|OPERACI[ÓO]N"
    r"|IMPORTE|A PAGAR|TAX|CASH|CARD|CHANGE|DISCOUNT|ROUNDING)"
)

TOTAL_KEYWORDS = ("total", "importe", "pagar", "a pagar", "liquido")
SUBTOTAL_PATTERN = re.compile(r"sub\s*-?\s*total")
TOTAL_DEVIATION_LIMIT = 30.0

MIN_ITEM_PRICE = 0.0
MAX_ITEM_PRICE = 1000.0

OCR_CONFUSIONS = str.maketrans({
    "O": "0", "o": "0",
    "I": "1", "l": "1", "|": "1",
    "S": "5", "s": "5",
    "B": "8",
    "G": "6",
    "Z": "2",
})


def _spaced(word: str) -> str:
    """Build a pattern matching word with arbitrary whitespace between its letters."""
    chars = [re.escape(c) for c in word if not c.isspace()]
    pattern = r"\s*".join(chars)
    if word[0].isalnum():
        pattern = r"\b" + pattern
    if word[-1].isalnum():
        pattern = pattern + r"\b"
    return pattern


def _alias(name: str, *variants: str) -> MerchantAlias:
    variants = variants or (name,)
    return MerchantAlias(
        name=name,
        patterns=tuple(re.compile(_spaced(v), re.IGNORECASE) for v in variants),
    )


# Declaration order is the tie-break: the first alias that matches wins.
MERCHANT_ALIASES = (
    _alias("MERCADONA"),
    _alias("CARREFOUR", "CARREFOUR", "CENTROS COMERCIALES CARREFOUR"),
    _alias("LIDL"),
    _alias("ALDI"),
    _alias("EROSKI"),
    _alias("ALCAMPO", "ALCAMPO", "AUCHAN"),
    _alias("CONSUM"),
    _alias("HIPERCOR"),
    _alias("EL CORTE INGLES", "EL CORTE INGLES", "EL CORTE INGLÉS"),
    _alias("AHORRAMAS"),
    _alias("CONDIS"),
    _alias("BONPREU", "BONPREU", "BON PREU"),
    _alias("GADIS"),
    _alias("FROIZ"),
    _alias("CAPRABO"),
    _alias("ALIMERKA"),
    _alias("MAKRO"),
    _alias("COSTCO"),
    _alias("IKEA"),
    _alias("DIA", "DIA %", "DIA RETAIL", "SUPERMERCADOS DIA",
           "DISTRIBUIDORA INTERNACIONAL DE ALIMENTACION"),
)


def strip_accents(s: str) -> str:
    """Remove combining accents so 'Líquido' compares equal to 'Liquido'."""
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_price(s: Optional[str]) -> float:
    """
    Normalize a raw price string to a non-negative float.

    OCR letter confusions are corrected first; then the rightmost ',' or '.'
    is taken as the decimal point and every other separator is dropped, so
    both '1.200,50' and '1,200.50' read as 1200.5. Returns 0.0 when nothing
    numeric is left.
    """
    if not s:
        return 0.0
    s = CURRENCY_PATTERN.sub("", s).strip()
    s = s.translate(OCR_CONFUSIONS)

    decimal_at = max(s.rfind(","), s.rfind("."))
    if decimal_at != -1:
        head = s[:decimal_at].replace(",", "").replace(".", "")
        s = head + "." + s[decimal_at + 1:]

    s = re.sub(r"[^\d.]", "", s)
    try:
        return float(s)
    except ValueError:
        return 0.0


def money_fmt(v: Optional[float]) -> str:
    """Format amount as currency."""
    return f"{v:,.2f} €" if v is not None else ""


def sha1_file(path: Path) -> str:
    """Calculate SHA1 hash of file."""
    h = hashlib.sha1()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def sha1_text(text: str) -> str:
    """Calculate SHA1 hash of a text."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()
