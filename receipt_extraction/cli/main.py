#!/usr/bin/env python3
"""
Main CLI entrypoint for receipt extraction.
"""

import argparse
import datetime as dt
import logging
import os
import sys
from pathlib import Path

from receipt_extraction.core.ocr import default_lang
from receipt_extraction.core.processor import ReceiptProcessor
from receipt_extraction.core.reporting import write_csv, write_json
from receipt_extraction.core.utils import money_fmt

logger = logging.getLogger("receipt_extraction")


def _parse_day(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def main(argv=None):
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Extract merchant, date, total and line items from receipt scans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # OCR a folder of receipt photos and print a summary
  receipt-extract ./tickets

  # Parse already recognized text, export items to CSV
  receipt-extract ticket.txt --csv items.csv

  # English receipts, fixed processing date, JSON output
  receipt-extract scan.pdf --lang eng --today 2024-02-01 --json out.json
        """
    )
    parser.add_argument("inputs", nargs="+", type=Path,
                        help="Receipt files (images, PDFs, .txt) or folders containing them")
    parser.add_argument("--rules", type=Path, default=Path(os.getenv("RECEIPT_RULES", "./rules.json")),
                        help="rules.json for category mapping (default: ./rules.json, or RECEIPT_RULES env var)")
    parser.add_argument("--lang", default=None,
                        help="Tesseract language (default: spa, or RECEIPT_OCR_LANG env var)")
    parser.add_argument("--today", type=_parse_day,
                        help="Processing date used when a receipt has no date (default: today)")
    parser.add_argument("--csv", type=Path, help="Write one row per line item to this CSV file")
    parser.add_argument("--json", type=Path, help="Write parsed receipts to this JSON file")
    parser.add_argument("--no-categorize", action="store_true",
                        help="Leave every item as Uncategorized")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    lang = args.lang or default_lang()
    logger.info("OCR language: %s", lang)
    if args.rules.exists():
        logger.info("Using rules from %s", args.rules)

    processor = ReceiptProcessor(
        rules_path=args.rules,
        lang=lang,
        categorize=not args.no_categorize,
        today=args.today,
    )

    results, failures = processor.process_all(args.inputs)

    for r in results:
        d = r.draft
        print(f"{r.source_file}: {d.merchant} | {d.date} | {money_fmt(d.total)} | {len(d.items)} item(s)")

    if args.csv and results:
        write_csv(results, args.csv)
        logger.info("Wrote %s", args.csv)
    if args.json and results:
        write_json(results, args.json)
        logger.info("Wrote %s", args.json)

    if failures:
        logger.error("%d file(s) failed", len(failures))
        return 1
    if not results:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
