"""
Data models for receipt extraction.
"""

import datetime as dt
import re
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Tuple, Iterable

UNKNOWN_MERCHANT = "Unknown"
DEFAULT_CATEGORY = "Uncategorized"


class LineKind(str, Enum):
    """Classification of a single receipt line."""
    ITEM = "item"
    NOISE = "noise"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class PriceToken:
    """A price-shaped substring and its offset within the source line."""
    raw: str
    start: int


@dataclass(frozen=True)
class MerchantAlias:
    """Canonical retailer name plus the fuzzy patterns that recognize it."""
    name: str
    patterns: Tuple[re.Pattern, ...]

    def matches(self, buffer: str) -> bool:
        return any(p.search(buffer) for p in self.patterns)


@dataclass(frozen=True)
class LineItem:
    """A purchased item recognized on a receipt line."""
    description: str
    price: float
    category: str = DEFAULT_CATEGORY


@dataclass(frozen=True)
class ReceiptDraft:
    """Structured result of parsing one receipt text."""
    merchant: str = UNKNOWN_MERCHANT
    date: str = field(default_factory=lambda: dt.date.today().isoformat())
    total: float = 0.0
    items: Tuple[LineItem, ...] = ()

    def with_items(self, items: Iterable[LineItem]) -> "ReceiptDraft":
        """Return a copy of this draft carrying the given items."""
        return replace(self, items=tuple(items))

    def to_dict(self):
        """Convert to dictionary."""
        data = asdict(self)
        data["items"] = [asdict(item) for item in self.items]
        return data


@dataclass
class ProcessedReceipt:
    """A parsed receipt together with the file it came from."""
    source_file: str
    sha1: str
    draft: ReceiptDraft

    def to_dict(self):
        """Convert to dictionary."""
        return {"source_file": self.source_file, "sha1": self.sha1, **self.draft.to_dict()}
