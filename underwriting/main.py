from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from underwriting.analysis import AnalysisClient, AnalysisError, AnalysisUnavailable, build_prompt
from underwriting.catalog import DEPARTMENTS, MARINE, POLICY_ISSUED, Department, get_department
from underwriting.config import settings
from underwriting.exports import export_filename, orders_csv, quotations_csv, render_management_pdf
from underwriting.kpi import kpi_report
from underwriting.persistence import (
    create_order,
    create_quotation,
    delete_order,
    delete_orders,
    delete_quotation,
    delete_quotations,
    get_active_year,
    get_order,
    get_quotation,
    init_db,
    list_insured_names,
    list_orders,
    list_quotations,
    list_status_logs,
    set_active_year,
    update_order,
    update_quotation,
)
from underwriting.reports import (
    analysis_statistics,
    dashboard_summary,
    filter_rows,
    insured_metrics,
    management_summary,
)
from underwriting.schemas import (
    ActiveYearRequest,
    BulkDeleteRequest,
    BusinessTypeFilter,
    OrderRequest,
    OrderStatus,
    OrderUpdateRequest,
    QuotationRequest,
    QuotationStatus,
    check_product_type,
    resolve_cover_group,
)

logger = logging.getLogger(__name__)

DB_PATH = settings.database_path

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(level=settings.log_level)
    init_db(DB_PATH)
    logger.info("Database ready at %s", DB_PATH)


def get_analysis_client() -> AnalysisClient:
    return AnalysisClient(settings.openai_api_key, settings.openai_model)


def department_or_404(slug: str) -> Department:
    department = get_department(slug)
    if department is None:
        raise HTTPException(status_code=404, detail=f"unknown department '{slug}'")
    return department


def check_dates(start_date: str | None, end_date: str | None) -> None:
    parsed = []
    for value in (start_date, end_date):
        if not value:
            parsed.append(None)
            continue
        try:
            parsed.append(date.fromisoformat(value[:10]))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"invalid date '{value}'") from None
    start, end = parsed
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")


def parse_ids(ids: str | None) -> set[int] | None:
    if not ids:
        return None
    try:
        return {int(part) for part in ids.split(",") if part.strip()}
    except ValueError:
        raise HTTPException(status_code=400, detail="ids must be a comma-separated list of integers") from None


def validated_payload(department: Department, payload: Any, exclude_unset: bool = False) -> dict[str, Any]:
    data = payload.model_dump(exclude_unset=exclude_unset)
    if exclude_unset:
        # explicit nulls only clear nullable columns
        data = {k: v for k, v in data.items() if v is not None or k in ("notes", "cover_group")}
    try:
        check_product_type(department, data.get("product_type"))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not exclude_unset or "product_type" in data or "cover_group" in data:
        data["cover_group"] = resolve_cover_group(department, data.get("product_type"), data.get("cover_group"))
    return data


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/health")
def health() -> JSONResponse:
    return JSONResponse({"ok": True, "service": "underwriting"})


@app.get("/api/v1/health")
def api_health() -> JSONResponse:
    return JSONResponse({"ok": True})


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@app.get("/api/v1/settings/active-year")
def api_get_active_year() -> JSONResponse:
    return JSONResponse({"year": get_active_year(DB_PATH)})


@app.put("/api/v1/settings/active-year")
def api_set_active_year(payload: ActiveYearRequest) -> JSONResponse:
    return JSONResponse({"year": set_active_year(DB_PATH, payload.year)})


# ---------------------------------------------------------------------------
# KPI and cross-department analytics
# ---------------------------------------------------------------------------

@app.get("/api/v1/kpi/marine")
def api_marine_kpi(year: int | None = None, month: int = 0, breakdown: str = "all") -> JSONResponse:
    if not 0 <= month <= 11:
        raise HTTPException(status_code=400, detail="month must be between 0 and 11")
    if breakdown not in {"all", "cargo", "hull"}:
        raise HTTPException(status_code=400, detail="breakdown must be all, cargo or hull")
    orders = list_orders(DB_PATH, MARINE.slug, include_all=True)
    report = kpi_report(
        orders,
        year=year if year is not None else get_active_year(DB_PATH),
        month=month,
        breakdown=breakdown,
        live_year=settings.kpi_live_year,
    )
    return JSONResponse(report)


@app.get("/api/v1/analytics/insured-names")
def api_insured_names() -> JSONResponse:
    names = list_insured_names(DB_PATH)
    return JSONResponse({"rows": names, "count": len(names)})


@app.get("/api/v1/analytics/insured/{insured_name}")
def api_insured_analytics(insured_name: str) -> JSONResponse:
    by_department = {
        dept.name: (list_quotations(DB_PATH, slug), list_orders(DB_PATH, slug, include_all=True))
        for slug, dept in DEPARTMENTS.items()
    }
    metrics = insured_metrics(insured_name, by_department)
    totals = metrics["totals"]
    if not totals["quotations"]["total"] and not totals["orders"]["total"]:
        raise HTTPException(status_code=404, detail="insured not found")
    return JSONResponse(metrics)


# ---------------------------------------------------------------------------
# Quotations
# ---------------------------------------------------------------------------

@app.get("/api/v1/{dept}/quotations")
def api_list_quotations(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: QuotationStatus | None = None,
) -> JSONResponse:
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    rows = list_quotations(DB_PATH, department.slug, start_date, end_date, status)
    return JSONResponse({"rows": rows, "count": len(rows)})


@app.post("/api/v1/{dept}/quotations")
def api_create_quotation(dept: str, payload: QuotationRequest) -> JSONResponse:
    department = department_or_404(dept)
    row = create_quotation(DB_PATH, department.slug, validated_payload(department, payload))
    return JSONResponse(row, status_code=201)


@app.post("/api/v1/{dept}/quotations/bulk-delete")
def api_bulk_delete_quotations(dept: str, payload: BulkDeleteRequest) -> JSONResponse:
    department = department_or_404(dept)
    deleted = delete_quotations(DB_PATH, department.slug, payload.ids)
    logger.info("Bulk deleted %s %s quotations", deleted, department.slug)
    return JSONResponse({"ok": True, "deleted": deleted})


@app.get("/api/v1/{dept}/quotations/export.csv")
def api_export_quotations(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: QuotationStatus | None = None,
    ids: str | None = None,
):
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    selected = parse_ids(ids)
    rows = list_quotations(DB_PATH, department.slug, start_date, end_date, status)
    if selected is not None:
        rows = [r for r in rows if r["id"] in selected]
    logger.info("Exporting %s %s quotations", len(rows), department.slug)
    filename = export_filename(f"{department.slug}_quotations", status, start_date, end_date)
    return csv_response(quotations_csv(rows), filename)


@app.get("/api/v1/{dept}/quotations/analyze")
def api_analyze_quotations(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    instructions: str | None = None,
) -> JSONResponse:
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    quotations = list_quotations(DB_PATH, department.slug, start_date, end_date)
    orders = list_orders(DB_PATH, department.slug, start_date, end_date, include_all=True)
    if not quotations and not orders:
        raise HTTPException(status_code=404, detail="no data found for the selected period")

    stats = analysis_statistics(quotations, orders)
    prompt = build_prompt(stats, department.name, start_date, end_date, instructions)
    try:
        text = get_analysis_client().analyze(prompt)
    except AnalysisUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except AnalysisError as exc:
        raise HTTPException(status_code=502, detail=f"analysis failed: {exc}") from exc
    return JSONResponse({"analysis": text, "statistics": stats})


@app.get("/api/v1/{dept}/quotations/{quotation_id}")
def api_get_quotation(dept: str, quotation_id: int) -> JSONResponse:
    department = department_or_404(dept)
    row = get_quotation(DB_PATH, department.slug, quotation_id)
    if row is None:
        raise HTTPException(status_code=404, detail="quotation not found")
    return JSONResponse(row)


@app.put("/api/v1/{dept}/quotations/{quotation_id}")
def api_update_quotation(dept: str, quotation_id: int, payload: QuotationRequest) -> JSONResponse:
    department = department_or_404(dept)
    row = update_quotation(DB_PATH, department.slug, quotation_id, validated_payload(department, payload))
    if row is None:
        raise HTTPException(status_code=404, detail="quotation not found")
    return JSONResponse(row)


@app.delete("/api/v1/{dept}/quotations/{quotation_id}")
def api_delete_quotation(dept: str, quotation_id: int) -> JSONResponse:
    department = department_or_404(dept)
    if not delete_quotation(DB_PATH, department.slug, quotation_id):
        raise HTTPException(status_code=404, detail="quotation not found")
    return JSONResponse({"ok": True})


# ---------------------------------------------------------------------------
# Orders and closed policies
# ---------------------------------------------------------------------------

@app.get("/api/v1/{dept}/orders")
def api_list_orders(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: OrderStatus | None = None,
    include_all: bool = False,
) -> JSONResponse:
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    rows = list_orders(DB_PATH, department.slug, start_date, end_date, status, include_all)
    return JSONResponse({"rows": rows, "count": len(rows)})


@app.post("/api/v1/{dept}/orders")
def api_create_order(dept: str, payload: OrderRequest) -> JSONResponse:
    department = department_or_404(dept)
    row = create_order(DB_PATH, department.slug, validated_payload(department, payload))
    return JSONResponse(row, status_code=201)


@app.post("/api/v1/{dept}/orders/bulk-delete")
def api_bulk_delete_orders(dept: str, payload: BulkDeleteRequest) -> JSONResponse:
    department = department_or_404(dept)
    deleted = delete_orders(DB_PATH, department.slug, payload.ids)
    logger.info("Bulk deleted %s %s orders", deleted, department.slug)
    return JSONResponse({"ok": True, "deleted": deleted})


@app.get("/api/v1/{dept}/orders/export.csv")
def api_export_orders(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: OrderStatus | None = None,
    business_type: BusinessTypeFilter | None = None,
    ids: str | None = None,
):
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    selected = parse_ids(ids)
    rows = list_orders(DB_PATH, department.slug, start_date, end_date, status)
    if business_type and business_type != "all":
        rows = [r for r in rows if r["business_type"] == business_type]
    if selected is not None:
        rows = [r for r in rows if r["id"] in selected]
    logger.info("Exporting %s %s orders", len(rows), department.slug)
    filename = export_filename(f"{department.slug}_orders", status, start_date, end_date)
    return csv_response(orders_csv(rows), filename)


@app.get("/api/v1/{dept}/orders/{order_id}")
def api_get_order(dept: str, order_id: int) -> JSONResponse:
    department = department_or_404(dept)
    row = get_order(DB_PATH, department.slug, order_id)
    if row is None:
        raise HTTPException(status_code=404, detail="order not found")
    return JSONResponse(row)


@app.put("/api/v1/{dept}/orders/{order_id}")
def api_update_order(dept: str, order_id: int, payload: OrderUpdateRequest) -> JSONResponse:
    department = department_or_404(dept)
    result = update_order(
        DB_PATH, department.slug, order_id, validated_payload(department, payload, exclude_unset=True)
    )
    if result is None:
        raise HTTPException(status_code=404, detail="order not found")
    order, moved_to_closed = result
    return JSONResponse({"order": order, "has_moved_to_closed": moved_to_closed})


@app.delete("/api/v1/{dept}/orders/{order_id}")
def api_delete_order(dept: str, order_id: int) -> JSONResponse:
    department = department_or_404(dept)
    if not delete_order(DB_PATH, department.slug, order_id):
        raise HTTPException(status_code=404, detail="order not found")
    return JSONResponse({"ok": True})


@app.get("/api/v1/{dept}/orders/{order_id}/logs")
def api_order_logs(dept: str, order_id: int) -> JSONResponse:
    department = department_or_404(dept)
    if get_order(DB_PATH, department.slug, order_id) is None:
        raise HTTPException(status_code=404, detail="order not found")
    rows = list_status_logs(DB_PATH, order_id)
    return JSONResponse({"rows": rows, "count": len(rows)})


@app.get("/api/v1/{dept}/closed-policies")
def api_closed_policies(dept: str, start_date: str | None = None, end_date: str | None = None) -> JSONResponse:
    department = department_or_404(dept)
    check_dates(start_date, end_date)
    rows = list_orders(DB_PATH, department.slug, start_date, end_date, POLICY_ISSUED)
    return JSONResponse({"rows": rows, "count": len(rows)})


# ---------------------------------------------------------------------------
# Dashboard and management reports
# ---------------------------------------------------------------------------

@app.get("/api/v1/{dept}/dashboard")
def api_dashboard(dept: str) -> JSONResponse:
    department = department_or_404(dept)
    quotations = list_quotations(DB_PATH, department.slug)
    orders = list_orders(DB_PATH, department.slug, include_all=True)
    return JSONResponse({
        "department": department.name,
        "year": get_active_year(DB_PATH),
        **dashboard_summary(quotations, orders),
    })


def _management_report(
    department: Department,
    start_date: str | None,
    end_date: str | None,
    broker: str | None,
    product: str | None,
    business_type: str | None,
) -> dict[str, Any]:
    check_dates(start_date, end_date)
    quotations, orders = filter_rows(
        list_quotations(DB_PATH, department.slug, start_date, end_date),
        list_orders(DB_PATH, department.slug, start_date, end_date, include_all=True),
        broker=broker,
        product=product,
        business_type=business_type,
    )
    filters = {
        "start_date": start_date,
        "end_date": end_date,
        "broker": broker or "all",
        "product": product or "all",
        "business_type": business_type or "all",
    }
    return management_summary(quotations, orders, {department.name: (quotations, orders)}, filters)


@app.get("/api/v1/{dept}/reports/management")
def api_management_report(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    broker: str | None = None,
    product: str | None = None,
    business_type: str | None = None,
) -> JSONResponse:
    department = department_or_404(dept)
    summary = _management_report(department, start_date, end_date, broker, product, business_type)
    return JSONResponse({"department": department.name, **summary})


@app.get("/api/v1/{dept}/reports/management.pdf")
def api_management_report_pdf(
    dept: str,
    start_date: str | None = None,
    end_date: str | None = None,
    broker: str | None = None,
    product: str | None = None,
    business_type: str | None = None,
):
    department = department_or_404(dept)
    summary = _management_report(department, start_date, end_date, broker, product, business_type)
    if start_date and end_date:
        period = f"Period: {start_date[:10]} to {end_date[:10]}"
    else:
        period = f"Business year {get_active_year(DB_PATH)}"
    pdf = render_management_pdf(department.name, summary, period)
    logger.info("Rendered %s management report (%s bytes)", department.slug, len(pdf))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{department.slug}_management_report.pdf"'},
    )
