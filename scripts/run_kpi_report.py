#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from underwriting.catalog import MARINE
from underwriting.config import settings
from underwriting.kpi import kpi_report
from underwriting.persistence import get_active_year, list_orders


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Print the Marine production KPI report as JSON.")
    p.add_argument("--db", type=Path, default=settings.database_path)
    p.add_argument("--year", type=int, default=None, help="Target year (defaults to the active year)")
    p.add_argument("--month", type=int, default=0, help="Month index 0-11")
    p.add_argument("--breakdown", choices=["all", "cargo", "hull"], default="all")
    p.add_argument("--live-year", type=int, default=settings.kpi_live_year)
    p.add_argument("--output", type=Path, default=None, help="Optional path to write JSON output")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    if not args.db.exists():
        sys.exit(f"database not found: {args.db}")
    orders = list_orders(args.db, MARINE.slug, include_all=True)
    year = args.year if args.year is not None else get_active_year(args.db)
    result = kpi_report(orders, year, args.month, args.breakdown, args.live_year)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(result, indent=2), encoding="utf-8")
    else:
        print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
