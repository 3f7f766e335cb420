"""Marine production KPIs: actual premium against the annual and monthly targets.

Orders are attributed to a production month using the books-close-on-the-25th
convention. The live year is treated as still open: all of its production is
reported under January and the remaining months show no actuals.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from underwriting.catalog import CARGO_PRODUCTS, HULL_PRODUCTS, MONTHS, MONTHS_FULL, targets_for_year

CLOSING_DAY = 25
DEFAULT_LIVE_YEAR = 2026


@dataclass
class KpiFigure:
    actual: float
    target: float
    variance: float
    progress: float


def _figure(actual: float, target: float) -> KpiFigure:
    return KpiFigure(
        actual=actual,
        target=target,
        variance=actual - target,
        progress=progress_pct(actual, target),
    )


def progress_pct(actual: float, target: float) -> float:
    if not target:
        return 0.0
    return actual / target * 100


def parse_premium(raw: Any) -> float:
    if raw is None:
        return 0.0
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return 0.0
    if not value.is_finite():
        return 0.0
    return float(value)


def _to_date(raw: date | datetime | str) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def production_month(order_date: date | datetime | str) -> tuple[int, int] | None:
    """Return (month index 0-11, year) the order's premium counts toward."""
    d = _to_date(order_date)
    if d is None:
        return None
    month, year = d.month - 1, d.year
    if d.day > CLOSING_DAY:
        month += 1
        if month > 11:
            month = 0
            year += 1
    return month, year


def category_of(product_type: str | None) -> str | None:
    if product_type in CARGO_PRODUCTS:
        return "cargo"
    if product_type in HULL_PRODUCTS:
        return "hull"
    return None


def _product_type(order: dict[str, Any]) -> str | None:
    return order.get("product_type") or order.get("marine_product_type")


def _sum_by_category(orders: Iterable[dict[str, Any]]) -> dict[str, float]:
    sums = {"cargo": 0.0, "hull": 0.0, "all": 0.0}
    for order in orders:
        premium = parse_premium(order.get("premium"))
        sums["all"] += premium
        cat = category_of(_product_type(order))
        if cat is not None:
            sums[cat] += premium
    return sums


def _orders_in_production(
    orders: list[dict[str, Any]], year: int, month: int | None = None
) -> list[dict[str, Any]]:
    selected = []
    for order in orders:
        pm = production_month(order.get("order_date"))
        if pm is None or pm[1] != year:
            continue
        if month is None or pm[0] == month:
            selected.append(order)
    return selected


def _month_sums(
    orders: list[dict[str, Any]], year: int, month: int, live_year: int
) -> dict[str, float]:
    if year < live_year:
        return _sum_by_category(_orders_in_production(orders, year, month))
    if year == live_year and month == 0:
        return _sum_by_category(orders)
    return {"cargo": 0.0, "hull": 0.0, "all": 0.0}


def _triple(cargo: float, hull: float, cargo_target: float, hull_target: float) -> dict[str, Any]:
    return {
        "cargo": asdict(_figure(cargo, cargo_target)),
        "hull": asdict(_figure(hull, hull_target)),
        "total": asdict(_figure(cargo + hull, cargo_target + hull_target)),
    }


def yearly_kpis(
    orders: list[dict[str, Any]], year: int, live_year: int = DEFAULT_LIVE_YEAR
) -> dict[str, Any]:
    selected = _orders_in_production(orders, year) if year < live_year else orders
    sums = _sum_by_category(selected)
    targets = targets_for_year(year)
    return _triple(sums["cargo"], sums["hull"], targets["cargo"]["yearly"], targets["hull"]["yearly"])


def monthly_kpis(
    orders: list[dict[str, Any]], year: int, month: int, live_year: int = DEFAULT_LIVE_YEAR
) -> dict[str, Any]:
    month = min(max(month, 0), 11)
    sums = _month_sums(orders, year, month, live_year)
    targets = targets_for_year(year)
    return _triple(
        sums["cargo"],
        sums["hull"],
        targets["cargo"]["monthly"][month],
        targets["hull"]["monthly"][month],
    )


def all_months(
    orders: list[dict[str, Any]], year: int, live_year: int = DEFAULT_LIVE_YEAR
) -> list[dict[str, Any]]:
    """Month-by-month comparison; actuals include uncategorized orders."""
    targets = targets_for_year(year)
    rows = []
    for idx, label in enumerate(MONTHS):
        target = targets["cargo"]["monthly"][idx] + targets["hull"]["monthly"][idx]
        actual = _month_sums(orders, year, idx, live_year)["all"]
        rows.append({
            "month": label,
            "actual": actual,
            "target": target,
            "progress": progress_pct(actual, target),
            "is_active": actual > 0,
        })
    return rows


def monthly_breakdown(
    orders: list[dict[str, Any]],
    year: int,
    breakdown: str = "all",
    live_year: int = DEFAULT_LIVE_YEAR,
) -> dict[str, Any]:
    targets = targets_for_year(year)
    rows = []
    for idx, label in enumerate(MONTHS_FULL):
        sums = _month_sums(orders, year, idx, live_year)
        cargo_target = targets["cargo"]["monthly"][idx]
        hull_target = targets["hull"]["monthly"][idx]
        if breakdown == "cargo":
            target, actual = cargo_target, sums["cargo"]
        elif breakdown == "hull":
            target, actual = hull_target, sums["hull"]
        else:
            target, actual = cargo_target + hull_target, sums["cargo"] + sums["hull"]
        rows.append({
            "month": label,
            "target": target,
            "actual": actual,
            "variance": actual - target,
            "achievement": progress_pct(actual, target),
            "is_active": actual > 0,
        })

    total_target = sum(r["target"] for r in rows)
    total_actual = sum(r["actual"] for r in rows)
    return {
        "rows": rows,
        "totals": {
            "target": total_target,
            "actual": total_actual,
            "variance": total_actual - total_target,
            "achievement": progress_pct(total_actual, total_target),
        },
    }


def kpi_report(
    orders: list[dict[str, Any]],
    year: int,
    month: int = 0,
    breakdown: str = "all",
    live_year: int = DEFAULT_LIVE_YEAR,
) -> dict[str, Any]:
    return {
        "year": year,
        "month": month,
        "live_year": live_year,
        "order_count": len(orders),
        "yearly": yearly_kpis(orders, year, live_year),
        "monthly": monthly_kpis(orders, year, month, live_year),
        "all_months": all_months(orders, year, live_year),
        "breakdown": monthly_breakdown(orders, year, breakdown, live_year),
    }
