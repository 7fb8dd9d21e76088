"""
CSV and JSON export of processed receipts.
"""

import csv
import json
from pathlib import Path
from typing import List

from .models import ProcessedReceipt

CSV_FIELDS = ["source_file", "sha1", "merchant", "date", "total",
              "description", "price", "category"]


def receipt_rows(results: List[ProcessedReceipt]) -> List[dict]:
    """Flatten receipts into one row per line item (one empty-item row for receipts without items)."""
    rows = []
    for r in results:
        base = {
            "source_file": r.source_file,
            "sha1": r.sha1,
            "merchant": r.draft.merchant,
            "date": r.draft.date,
            "total": f"{r.draft.total:.2f}",
        }
        if not r.draft.items:
            rows.append({**base, "description": "", "price": "", "category": ""})
        for item in r.draft.items:
            rows.append({**base, "description": item.description,
                         "price": f"{item.price:.2f}", "category": item.category})
    return rows


def write_csv(results: List[ProcessedReceipt], out_csv: Path):
    """Write receipts to CSV file."""
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        for row in receipt_rows(results):
            w.writerow(row)


def write_json(results: List[ProcessedReceipt], out_json: Path):
    """Write receipts to a JSON array."""
    with out_json.open("w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in results], f, ensure_ascii=False, indent=2)
