"""CSV exports of quotations/orders and the PDF management report."""

from __future__ import annotations

import csv
import io
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from underwriting.kpi import parse_premium

QUOTATION_COLUMNS = [
    "Broker Name",
    "Insured Name",
    "Product Type",
    "Estimated Premium",
    "Quotation Date",
    "Status",
    "Decline Reason",
    "Notes",
    "Last Updated",
]

ORDER_COLUMNS = [
    "Broker Name",
    "Insured Name",
    "Product Type",
    "Business Type",
    "Premium",
    "Order Date",
    "Statuses",
    "Notes",
    "Last Updated",
]


def fmt_date(iso_str: str | None) -> str:
    """ISO date/datetime to DD/MM/YYYY."""
    if not iso_str or len(iso_str) < 10:
        return iso_str or ""
    parts = iso_str[:10].split("-")
    if len(parts) != 3:
        return iso_str
    y, m, d = parts
    return f"{d}/{m}/{y}"


def fmt_amount(raw: Any, currency: str | None) -> str:
    return f"{parse_premium(raw):.2f} {currency or ''}".strip()


def _to_csv(fieldnames: list[str], rows: list[dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()


def quotations_csv(quotations: list[dict[str, Any]]) -> str:
    return _to_csv(
        QUOTATION_COLUMNS,
        [
            {
                "Broker Name": q["broker_name"],
                "Insured Name": q["insured_name"],
                "Product Type": q["product_type"],
                "Estimated Premium": fmt_amount(q["estimated_premium"], q["currency"]),
                "Quotation Date": fmt_date(q["quotation_date"]),
                "Status": q["status"],
                "Decline Reason": q.get("decline_reason") or "",
                "Notes": q.get("notes") or "",
                "Last Updated": fmt_date(q.get("last_updated")),
            }
            for q in quotations
        ],
    )


def orders_csv(orders: list[dict[str, Any]]) -> str:
    return _to_csv(
        ORDER_COLUMNS,
        [
            {
                "Broker Name": o["broker_name"],
                "Insured Name": o["insured_name"],
                "Product Type": o["product_type"],
                "Business Type": o["business_type"],
                "Premium": fmt_amount(o["premium"], o["currency"]),
                "Order Date": fmt_date(o["order_date"]),
                "Statuses": ", ".join(o.get("statuses") or []),
                "Notes": o.get("notes") or "",
                "Last Updated": fmt_date(o.get("last_updated")),
            }
            for o in orders
        ],
    )


def export_filename(base: str, status: str | None, start_date: str | None, end_date: str | None) -> str:
    name = base
    if status:
        name += "_" + status.replace(" ", "")
    if start_date:
        name += "_" + fmt_date(start_date).replace("/", "-")
        if end_date:
            name += "_to_" + fmt_date(end_date).replace("/", "-")
    return name + ".csv"


# ---------------------------------------------------------------------------
# Management report PDF
# ---------------------------------------------------------------------------

HEADER_BLUE = colors.HexColor("#003366")


def render_management_pdf(department_name: str, summary: dict[str, Any], period: str) -> bytes:
    buf = io.BytesIO()
    w, h = A4
    c = canvas.Canvas(buf, pagesize=A4)
    page = 1
    y = 0

    def draw_header() -> None:
        nonlocal y
        c.setFillColor(HEADER_BLUE)
        c.rect(0, h - 56, w, 56, fill=True, stroke=False)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(30, h - 30, f"{department_name} Management Report")
        c.setFont("Helvetica", 9)
        c.drawString(30, h - 45, period)
        c.drawRightString(w - 30, h - 30, f"Page {page}")
        c.setFillColor(colors.black)
        y = h - 80

    def ensure_room(lines: int = 1) -> None:
        nonlocal page, y
        if y - lines * 14 < 50:
            c.showPage()
            page += 1
            draw_header()

    def section(title: str) -> None:
        nonlocal y
        ensure_room(3)
        y -= 6
        c.setFillColor(colors.HexColor("#e8edf2"))
        c.rect(25, y - 4, w - 50, 16, fill=True, stroke=False)
        c.setFillColor(HEADER_BLUE)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(30, y, title)
        c.setFillColor(colors.black)
        y -= 20

    def kv(label: str, value: Any) -> None:
        nonlocal y
        ensure_room()
        c.setFont("Helvetica", 9)
        c.drawString(35, y, label)
        c.drawRightString(w - 35, y, str(value))
        y -= 14

    def table(headers: list[str], cols: list[int], rows: list[list[Any]]) -> None:
        nonlocal y
        ensure_room(2)
        c.setFont("Helvetica-Bold", 8)
        for x, hdr in zip(cols, headers):
            c.drawString(x, y, hdr)
        y -= 4
        c.setStrokeColor(HEADER_BLUE)
        c.setLineWidth(0.5)
        c.line(25, y, w - 25, y)
        y -= 12
        c.setFont("Helvetica", 8)
        for row in rows:
            ensure_room()
            c.setFont("Helvetica", 8)
            for x, cell in zip(cols, row):
                c.drawString(x, y, str(cell)[:40])
            y -= 13

    draw_header()

    q = summary["quotations"]
    section("Quotation Metrics")
    kv("Total Quotations", q["total"])
    kv("Open Quotations", q["open"])
    kv("Confirmed Quotations", q["confirmed"])
    kv("Declined Quotations", q["declined"])
    kv("Conversion Rate (%)", f"{q['conversion_rate']:.2f}")

    o = summary["orders"]
    section("Order Metrics")
    kv("Total Orders", o["total"])
    kv("New Business Orders", o["new_business"])
    kv("Renewal Orders", o["renewal"])
    kv("Total Premium", f"{o['total_premium']:,.2f}")
    kv("New Business Premium", f"{o['new_business_premium']:,.2f}")
    kv("Renewal Premium", f"{o['renewal_premium']:,.2f}")

    if summary["by_broker"]:
        section("Broker Analysis")
        table(
            ["Broker", "Quotes", "Confirmed", "Hit %", "Orders", "Premium"],
            [30, 230, 290, 360, 420, 480],
            [
                [b["broker"], b["total_quotations"], b["confirmed_quotations"],
                 f"{b['hit_ratio']:.2f}", b["orders_count"], f"{b['total_premium']:,.2f}"]
                for b in summary["by_broker"]
            ],
        )

    if summary["by_product"]:
        section("Product Analysis")
        table(
            ["Product", "Quotes", "Confirmed", "Conf. %", "Premium", "Average"],
            [30, 250, 300, 360, 420, 490],
            [
                [p["product_type"], p["total_quotations"], p["confirmed_quotations"],
                 f"{p['confirmation_rate']:.2f}", f"{p['total_premium']:,.2f}", f"{p['average_premium']:,.2f}"]
                for p in summary["by_product"]
            ],
        )

    if summary.get("by_insured"):
        section("Insured Analysis")
        table(
            ["Insured", "Quotes", "Orders", "Premium", "Avg / Order"],
            [30, 260, 320, 380, 470],
            [
                [i["insured_name"], i["total_quotations"], i["total_orders"],
                 f"{i['total_premium']:,.2f}", f"{i['average_premium_per_order']:,.2f}"]
                for i in summary["by_insured"]
            ],
        )

    c.save()
    return buf.getvalue()
