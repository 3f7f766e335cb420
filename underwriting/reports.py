"""Dashboard, management and insured analytics built from listed rows."""

from __future__ import annotations

from collections import Counter
from typing import Any

from underwriting.catalog import POLICY_ISSUED
from underwriting.kpi import parse_premium


def _total(rows: list[dict[str, Any]], field: str) -> float:
    return sum(parse_premium(r.get(field)) for r in rows)


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _status_counts(quotations: list[dict[str, Any]]) -> dict[str, int]:
    counts = Counter(q.get("status") for q in quotations)
    return {
        "open": counts.get("Open", 0),
        "confirmed": counts.get("Confirmed", 0),
        "declined": counts.get("Decline", 0),
        "total": len(quotations),
    }


def _order_metrics(orders: list[dict[str, Any]]) -> dict[str, Any]:
    new_business = [o for o in orders if o.get("business_type") == "New Business"]
    renewal = [o for o in orders if o.get("business_type") == "Renewal"]
    return {
        "total": len(orders),
        "new_business": len(new_business),
        "renewal": len(renewal),
        "total_premium": round(_total(orders, "premium"), 2),
        "new_business_premium": round(_total(new_business, "premium"), 2),
        "renewal_premium": round(_total(renewal, "premium"), 2),
    }


def is_closed(order: dict[str, Any]) -> bool:
    return POLICY_ISSUED in (order.get("statuses") or [])


def dashboard_summary(quotations: list[dict[str, Any]], orders: list[dict[str, Any]]) -> dict[str, Any]:
    closed = [o for o in orders if is_closed(o)]
    firm = [o for o in orders if not is_closed(o)]
    status = _status_counts(quotations)
    return {
        "quotations": {
            **status,
            "estimated_premium": round(_total(quotations, "estimated_premium"), 2),
            "conversion_rate": _pct(status["confirmed"], status["total"]),
        },
        "firm_orders": {"count": len(firm), "premium": round(_total(firm, "premium"), 2)},
        "closed_policies": {"count": len(closed), "premium": round(_total(closed, "premium"), 2)},
        "surveys_required": sum(1 for o in firm if o.get("requires_pre_condition_survey")),
    }


def filter_rows(
    quotations: list[dict[str, Any]],
    orders: list[dict[str, Any]],
    broker: str | None = None,
    product: str | None = None,
    business_type: str | None = None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    def keep(row: dict[str, Any]) -> bool:
        if broker and broker != "all" and row.get("broker_name") != broker:
            return False
        if product and product != "all" and row.get("product_type") != product:
            return False
        return True

    quotations = [q for q in quotations if keep(q)]
    orders = [
        o for o in orders
        if keep(o) and (not business_type or business_type == "all" or o.get("business_type") == business_type)
    ]
    return quotations, orders


def broker_analysis(quotations: list[dict[str, Any]], orders: list[dict[str, Any]]) -> list[dict[str, Any]]:
    rows = []
    for broker in sorted({q["broker_name"] for q in quotations}):
        broker_quotes = [q for q in quotations if q["broker_name"] == broker]
        broker_orders = [o for o in orders if o["broker_name"] == broker]
        counts = _status_counts(broker_quotes)
        rows.append({
            "broker": broker,
            "total_quotations": counts["total"],
            "confirmed_quotations": counts["confirmed"],
            "declined_quotations": counts["declined"],
            "open_quotations": counts["open"],
            "hit_ratio": _pct(counts["confirmed"], counts["total"]),
            "orders_count": len(broker_orders),
            "total_premium": round(_total(broker_orders, "premium"), 2),
        })
    return rows


def product_analysis(quotations: list[dict[str, Any]], orders: list[dict[str, Any]]) -> list[dict[str, Any]]:
    rows = []
    for product in sorted({q["product_type"] for q in quotations}):
        product_quotes = [q for q in quotations if q["product_type"] == product]
        product_orders = [o for o in orders if o["product_type"] == product]
        confirmed = sum(1 for q in product_quotes if q["status"] == "Confirmed")
        premium = _total(product_orders, "premium")
        rows.append({
            "product_type": product,
            "total_quotations": len(product_quotes),
            "confirmed_quotations": confirmed,
            "confirmation_rate": _pct(confirmed, len(product_quotes)),
            "total_premium": round(premium, 2),
            "average_premium": round(premium / len(product_orders), 2) if product_orders else 0.0,
        })
    return rows


def insured_analysis(
    by_department: dict[str, tuple[list[dict[str, Any]], list[dict[str, Any]]]],
) -> list[dict[str, Any]]:
    """One row per insured across departments, largest premium first."""
    names: set[str] = set()
    for quotations, orders in by_department.values():
        names.update(q["insured_name"] for q in quotations)
        names.update(o["insured_name"] for o in orders)

    rows = []
    for name in names:
        per_dept = {}
        products: set[str] = set()
        total_quotes = total_orders = 0
        total_premium = 0.0
        for dept, (quotations, orders) in by_department.items():
            dept_quotes = [q for q in quotations if q["insured_name"] == name]
            dept_orders = [o for o in orders if o["insured_name"] == name]
            premium = _total(dept_orders, "premium")
            per_dept[dept] = {
                "quotations": len(dept_quotes),
                "orders": len(dept_orders),
                "premium": round(premium, 2),
            }
            products.update(q["product_type"] for q in dept_quotes)
            total_quotes += len(dept_quotes)
            total_orders += len(dept_orders)
            total_premium += premium
        rows.append({
            "insured_name": name,
            "total_quotations": total_quotes,
            "total_orders": total_orders,
            "total_premium": round(total_premium, 2),
            "average_premium_per_order": round(total_premium / total_orders, 2) if total_orders else 0.0,
            "products": sorted(products),
            "departments": per_dept,
        })
    rows.sort(key=lambda r: (-r["total_premium"], r["insured_name"]))
    return rows


def management_summary(
    quotations: list[dict[str, Any]],
    orders: list[dict[str, Any]],
    by_department: dict[str, tuple[list[dict[str, Any]], list[dict[str, Any]]]] | None = None,
    filters: dict[str, Any] | None = None,
) -> dict[str, Any]:
    status = _status_counts(quotations)
    return {
        "filters": filters or {},
        "quotations": {
            **status,
            "conversion_rate": _pct(status["confirmed"], status["total"]),
        },
        "orders": _order_metrics(orders),
        "by_broker": broker_analysis(quotations, orders),
        "by_product": product_analysis(quotations, orders),
        "by_insured": insured_analysis(by_department) if by_department else [],
    }


def insured_metrics(
    insured_name: str,
    by_department: dict[str, tuple[list[dict[str, Any]], list[dict[str, Any]]]],
) -> dict[str, Any]:
    departments = []
    all_quotes: list[dict[str, Any]] = []
    all_orders: list[dict[str, Any]] = []
    for dept, (quotations, orders) in by_department.items():
        dept_quotes = [q for q in quotations if q["insured_name"] == insured_name]
        dept_orders = [o for o in orders if o["insured_name"] == insured_name]
        all_quotes += dept_quotes
        all_orders += dept_orders
        departments.append({
            "department": dept,
            "quotations": {
                **_status_counts(dept_quotes),
                "estimated_premium": round(_total(dept_quotes, "estimated_premium"), 2),
            },
            "orders": _order_metrics(dept_orders),
        })

    return {
        "insured_name": insured_name,
        "departments": departments,
        "totals": {
            "quotations": {
                **_status_counts(all_quotes),
                "estimated_premium": round(_total(all_quotes, "estimated_premium"), 2),
            },
            "orders": _order_metrics(all_orders),
        },
    }


def analysis_statistics(quotations: list[dict[str, Any]], orders: list[dict[str, Any]]) -> dict[str, Any]:
    """Figures handed to the analysis model; the model is told not to recompute them."""
    status = _status_counts(quotations)
    active = status["total"] - status["declined"]

    currencies = Counter(r.get("currency") for r in quotations + orders if r.get("currency"))
    primary_currency = currencies.most_common(1)[0][0] if currencies else "AED"

    products: dict[str, dict[str, float]] = {}
    for q in quotations:
        bucket = products.setdefault(q["product_type"], {"count": 0, "premium": 0.0})
        bucket["count"] += 1
        bucket["premium"] += parse_premium(q.get("estimated_premium"))

    return {
        "quotations": {**status, "active": active, "conversion_rate": _pct(status["confirmed"], active)},
        "orders": _order_metrics(orders),
        "primary_currency": primary_currency,
        "products": [
            {"product_type": name, "count": int(v["count"]), "premium": round(v["premium"], 2)}
            for name, v in sorted(products.items())
        ],
    }
