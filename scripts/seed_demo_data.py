#!/usr/bin/env python3
"""Seed a database with synthetic quotations and orders for every department.

Confirmed quotations create their firm orders through the normal persistence
path; a share of those orders is then moved to Policy Issued.
"""

from __future__ import annotations

import argparse
import random
import sys
from datetime import date, timedelta
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from underwriting.catalog import BUSINESS_TYPES, DEPARTMENTS, POLICY_ISSUED
from underwriting.persistence import (
    create_order,
    create_quotation,
    init_db,
    list_orders,
    set_active_year,
    update_order,
)
from underwriting.schemas import resolve_cover_group

BROKERS = ["Howden", "Marsh", "Aon", "Lockton", "Gallagher", "Willis Towers Watson"]
INSURED = [
    "Gulf Freight LLC", "Al Noor Trading", "Emirates Shipyards", "Desert Rose Hotels",
    "Creek Logistics", "Palm Marine Services", "Falcon Contracting", "Oasis Foods",
]
CURRENCY_WEIGHTS = [("AED", 0.7), ("USD", 0.25), ("EUR", 0.05)]


def random_date(rng: random.Random, year: int) -> date:
    return date(year, 1, 1) + timedelta(days=rng.randrange(365))


def pick_currency(rng: random.Random) -> str:
    return rng.choices([c for c, _ in CURRENCY_WEIGHTS], weights=[w for _, w in CURRENCY_WEIGHTS])[0]


def generate(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    init_db(args.db)
    set_active_year(args.db, args.year)

    for slug, dept in DEPARTMENTS.items():
        for _ in range(args.quotations):
            product = rng.choice(dept.product_types)
            status = rng.choices(["Open", "Confirmed", "Decline"], weights=[0.4, 0.45, 0.15])[0]
            create_quotation(args.db, slug, {
                "broker_name": rng.choice(BROKERS),
                "insured_name": rng.choice(INSURED),
                "product_type": product,
                "cover_group": resolve_cover_group(dept, product, None),
                "estimated_premium": f"{rng.uniform(5_000, 750_000):.2f}",
                "currency": pick_currency(rng),
                "quotation_date": random_date(rng, args.year).isoformat(),
                "status": status,
                "decline_reason": "Rate not competitive" if status == "Decline" else None,
                "requires_pre_condition_survey": rng.random() < 0.2,
            })

        for _ in range(args.renewals):
            product = rng.choice(dept.product_types)
            create_order(args.db, slug, {
                "broker_name": rng.choice(BROKERS),
                "insured_name": rng.choice(INSURED),
                "product_type": product,
                "cover_group": resolve_cover_group(dept, product, None),
                "business_type": rng.choice(BUSINESS_TYPES),
                "premium": f"{rng.uniform(10_000, 1_200_000):.2f}",
                "currency": pick_currency(rng),
                "order_date": random_date(rng, args.year).isoformat(),
                "statuses": ["Firm Order Received", "KYC Completed"],
            })

        issued = 0
        for order in list_orders(args.db, slug):
            if rng.random() < args.closed_rate:
                update_order(args.db, slug, order["id"], {"statuses": order["statuses"] + [POLICY_ISSUED]})
                issued += 1
        print(f"{dept.name}: {args.quotations} quotations, {args.renewals} direct orders, {issued} policies issued")

    print(f"Seeded {args.db}")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed the underwriting database with demo data.")
    p.add_argument("--db", type=Path, default=Path("data/underwriting.db"))
    p.add_argument("--year", type=int, default=date.today().year)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--quotations", type=int, default=40, help="quotations per department")
    p.add_argument("--renewals", type=int, default=15, help="orders created directly per department")
    p.add_argument("--closed-rate", type=float, default=0.3, help="0-1 fraction of orders to close")
    return p.parse_args()


if __name__ == "__main__":
    generate(parse_args())
