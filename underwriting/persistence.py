from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from underwriting.catalog import FIRM_ORDER_STATUSES, POLICY_ISSUED

logger = logging.getLogger(__name__)

QUOTATION_FIELDS = (
    "broker_name",
    "insured_name",
    "product_type",
    "cover_group",
    "estimated_premium",
    "currency",
    "quotation_date",
    "status",
    "decline_reason",
    "notes",
    "requires_pre_condition_survey",
)

ORDER_FIELDS = (
    "broker_name",
    "insured_name",
    "product_type",
    "cover_group",
    "business_type",
    "premium",
    "currency",
    "order_date",
    "statuses",
    "notes",
    "requires_pre_condition_survey",
)


def utc_now() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def get_conn(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path) -> None:
    with get_conn(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS quotations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                department TEXT NOT NULL,
                broker_name TEXT NOT NULL,
                insured_name TEXT NOT NULL,
                product_type TEXT NOT NULL,
                cover_group TEXT,
                estimated_premium TEXT NOT NULL,
                currency TEXT NOT NULL,
                quotation_date TEXT NOT NULL,
                status TEXT NOT NULL,
                decline_reason TEXT,
                notes TEXT,
                requires_pre_condition_survey INTEGER NOT NULL DEFAULT 0,
                year INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                last_updated TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS orders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                department TEXT NOT NULL,
                broker_name TEXT NOT NULL,
                insured_name TEXT NOT NULL,
                product_type TEXT NOT NULL,
                cover_group TEXT,
                business_type TEXT NOT NULL,
                premium TEXT NOT NULL,
                currency TEXT NOT NULL,
                order_date TEXT NOT NULL,
                statuses TEXT NOT NULL DEFAULT '[]',
                notes TEXT,
                requires_pre_condition_survey INTEGER NOT NULL DEFAULT 0,
                year INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                last_updated TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS status_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                order_id INTEGER NOT NULL,
                statuses TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                notes TEXT,
                FOREIGN KEY (order_id) REFERENCES orders(id)
            );

            CREATE INDEX IF NOT EXISTS idx_quotations_dept_year ON quotations(department, year);
            CREATE INDEX IF NOT EXISTS idx_orders_dept_year ON orders(department, year);
            """
        )


# ---------------------------------------------------------------------------
# App settings
# ---------------------------------------------------------------------------

def get_active_year(db_path: Path) -> int:
    with get_conn(db_path) as conn:
        row = conn.execute("SELECT value FROM app_settings WHERE key = 'active_year'").fetchone()
    if row is None:
        return datetime.now(UTC).year
    try:
        return int(row["value"])
    except ValueError:
        logger.warning("Ignoring malformed active_year setting %r", row["value"])
        return datetime.now(UTC).year


def set_active_year(db_path: Path, year: int) -> int:
    with get_conn(db_path) as conn:
        conn.execute(
            """
            INSERT INTO app_settings(key, value, updated_at) VALUES ('active_year', ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (str(year), utc_now()),
        )
    logger.info("Active year set to %s", year)
    return year


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def _quotation_dict(row: sqlite3.Row) -> dict[str, Any]:
    out = dict(row)
    out["requires_pre_condition_survey"] = bool(out["requires_pre_condition_survey"])
    return out


def _order_dict(row: sqlite3.Row) -> dict[str, Any]:
    out = dict(row)
    out["statuses"] = json.loads(out["statuses"] or "[]")
    out["requires_pre_condition_survey"] = bool(out["requires_pre_condition_survey"])
    return out


def _date_conditions(column: str, start_date: str | None, end_date: str | None) -> tuple[list[str], list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if start_date:
        clauses.append(f"substr({column}, 1, 10) >= ?")
        params.append(start_date[:10])
    if end_date:
        clauses.append(f"substr({column}, 1, 10) <= ?")
        params.append(end_date[:10])
    return clauses, params


# ---------------------------------------------------------------------------
# Quotations
# ---------------------------------------------------------------------------

def get_quotation(db_path: Path, department: str, quotation_id: int) -> dict[str, Any] | None:
    with get_conn(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM quotations WHERE id = ? AND department = ?",
            (quotation_id, department),
        ).fetchone()
        return None if row is None else _quotation_dict(row)


def create_quotation(db_path: Path, department: str, data: dict[str, Any]) -> dict[str, Any]:
    year = get_active_year(db_path)
    now = utc_now()
    with get_conn(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO quotations(
                department, broker_name, insured_name, product_type, cover_group,
                estimated_premium, currency, quotation_date, status, decline_reason,
                notes, requires_pre_condition_survey, year, created_at, last_updated
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                department,
                data["broker_name"],
                data["insured_name"],
                data["product_type"],
                data.get("cover_group"),
                str(data["estimated_premium"]),
                data["currency"],
                data["quotation_date"],
                data["status"],
                data.get("decline_reason") or None,
                data.get("notes") or None,
                int(bool(data.get("requires_pre_condition_survey"))),
                year,
                now,
                now,
            ),
        )
        quotation_id = int(cur.lastrowid)

    quotation = get_quotation(db_path, department, quotation_id)
    logger.info("Created %s quotation %s for %s", department, quotation_id, data["insured_name"])
    if quotation is not None and quotation["status"] == "Confirmed":
        create_firm_order_from_quotation(db_path, quotation)
    return quotation


def update_quotation(
    db_path: Path, department: str, quotation_id: int, data: dict[str, Any]
) -> dict[str, Any] | None:
    current = get_quotation(db_path, department, quotation_id)
    if current is None:
        return None

    with get_conn(db_path) as conn:
        conn.execute(
            """
            UPDATE quotations
            SET broker_name = ?,
                insured_name = ?,
                product_type = ?,
                cover_group = ?,
                estimated_premium = ?,
                currency = ?,
                quotation_date = ?,
                status = ?,
                decline_reason = ?,
                notes = ?,
                requires_pre_condition_survey = ?,
                last_updated = ?
            WHERE id = ? AND department = ?
            """,
            (
                data["broker_name"],
                data["insured_name"],
                data["product_type"],
                data.get("cover_group"),
                str(data["estimated_premium"]),
                data["currency"],
                data["quotation_date"],
                data["status"],
                data.get("decline_reason") or None,
                data.get("notes") or None,
                int(bool(data.get("requires_pre_condition_survey"))),
                utc_now(),
                quotation_id,
                department,
            ),
        )

    quotation = get_quotation(db_path, department, quotation_id)
    if quotation is not None and current["status"] != "Confirmed" and quotation["status"] == "Confirmed":
        create_firm_order_from_quotation(db_path, quotation)
    return quotation


def delete_quotation(db_path: Path, department: str, quotation_id: int) -> bool:
    with get_conn(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM quotations WHERE id = ? AND department = ?",
            (quotation_id, department),
        )
        return cur.rowcount > 0


def delete_quotations(db_path: Path, department: str, ids: list[int]) -> int:
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    with get_conn(db_path) as conn:
        cur = conn.execute(
            f"DELETE FROM quotations WHERE department = ? AND id IN ({placeholders})",
            (department, *ids),
        )
        return cur.rowcount


def list_quotations(
    db_path: Path,
    department: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    year: int | None = None,
) -> list[dict[str, Any]]:
    year = get_active_year(db_path) if year is None else year
    clauses = ["department = ?", "year = ?"]
    params: list[Any] = [department, year]
    date_clauses, date_params = _date_conditions("quotation_date", start_date, end_date)
    clauses += date_clauses
    params += date_params
    if status:
        clauses.append("status = ?")
        params.append(status)

    with get_conn(db_path) as conn:
        rows = conn.execute(
            f"""
            SELECT * FROM quotations
            WHERE {" AND ".join(clauses)}
            ORDER BY quotation_date DESC, id DESC
            """,
            params,
        ).fetchall()
        return [_quotation_dict(row) for row in rows]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

def _log_statuses(
    conn: sqlite3.Connection, order_id: int, statuses: list[str], notes: str | None
) -> None:
    conn.execute(
        "INSERT INTO status_logs(order_id, statuses, timestamp, notes) VALUES (?, ?, ?, ?)",
        (order_id, json.dumps(statuses), utc_now(), notes),
    )


def get_order(db_path: Path, department: str, order_id: int) -> dict[str, Any] | None:
    with get_conn(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM orders WHERE id = ? AND department = ?",
            (order_id, department),
        ).fetchone()
        return None if row is None else _order_dict(row)


def create_order(db_path: Path, department: str, data: dict[str, Any]) -> dict[str, Any]:
    year = get_active_year(db_path)
    now = utc_now()
    statuses = list(data.get("statuses") or [])
    with get_conn(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO orders(
                department, broker_name, insured_name, product_type, cover_group,
                business_type, premium, currency, order_date, statuses, notes,
                requires_pre_condition_survey, year, created_at, last_updated
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                department,
                data["broker_name"],
                data["insured_name"],
                data["product_type"],
                data.get("cover_group"),
                data["business_type"],
                str(data["premium"]),
                data["currency"],
                data["order_date"],
                json.dumps(statuses),
                data.get("notes") or None,
                int(bool(data.get("requires_pre_condition_survey"))),
                year,
                now,
                now,
            ),
        )
        order_id = int(cur.lastrowid)
        _log_statuses(conn, order_id, statuses, data.get("notes") or None)

    logger.info("Created %s order %s for %s", department, order_id, data["insured_name"])
    return get_order(db_path, department, order_id)


def create_firm_order_from_quotation(db_path: Path, quotation: dict[str, Any]) -> dict[str, Any]:
    order = create_order(
        db_path,
        quotation["department"],
        {
            "broker_name": quotation["broker_name"],
            "insured_name": quotation["insured_name"],
            "product_type": quotation["product_type"],
            "cover_group": quotation.get("cover_group"),
            "business_type": "New Business",
            "premium": quotation["estimated_premium"],
            "currency": quotation["currency"],
            "order_date": utc_now(),
            "statuses": list(FIRM_ORDER_STATUSES),
            "notes": quotation.get("notes"),
            "requires_pre_condition_survey": quotation.get("requires_pre_condition_survey", False),
        },
    )
    logger.info("Quotation %s confirmed; firm order %s created", quotation["id"], order["id"])
    return order


def update_order(
    db_path: Path, department: str, order_id: int, changes: dict[str, Any]
) -> tuple[dict[str, Any], bool] | None:
    """Apply a partial update. Returns (order, moved_to_closed) or None when missing."""
    current = get_order(db_path, department, order_id)
    if current is None:
        return None

    updates = {k: v for k, v in changes.items() if k in ORDER_FIELDS}
    if "premium" in updates:
        updates["premium"] = str(updates["premium"])
    if "requires_pre_condition_survey" in updates:
        updates["requires_pre_condition_survey"] = int(bool(updates["requires_pre_condition_survey"]))
    new_statuses = updates.get("statuses")
    if new_statuses is not None:
        updates["statuses"] = json.dumps(list(new_statuses))

    with get_conn(db_path) as conn:
        assignments = ", ".join(f"{column} = ?" for column in updates)
        conn.execute(
            f"UPDATE orders SET {assignments + ', ' if assignments else ''}last_updated = ? "
            "WHERE id = ? AND department = ?",
            (*updates.values(), utc_now(), order_id, department),
        )
        if new_statuses is not None and list(new_statuses) != current["statuses"]:
            _log_statuses(conn, order_id, list(new_statuses), changes.get("notes", current["notes"]))

    order = get_order(db_path, department, order_id)
    moved_to_closed = (
        POLICY_ISSUED not in current["statuses"]
        and new_statuses is not None
        and POLICY_ISSUED in new_statuses
    )
    if moved_to_closed:
        logger.info("Order %s moved to closed policies", order_id)
    return order, moved_to_closed


def delete_order(db_path: Path, department: str, order_id: int) -> bool:
    return delete_orders(db_path, department, [order_id]) > 0


def delete_orders(db_path: Path, department: str, ids: list[int]) -> int:
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    with get_conn(db_path) as conn:
        owned = [
            int(r["id"])
            for r in conn.execute(
                f"SELECT id FROM orders WHERE department = ? AND id IN ({placeholders})",
                (department, *ids),
            ).fetchall()
        ]
        if not owned:
            return 0
        owned_marks = ",".join("?" for _ in owned)
        conn.execute(f"DELETE FROM status_logs WHERE order_id IN ({owned_marks})", owned)
        cur = conn.execute(f"DELETE FROM orders WHERE id IN ({owned_marks})", owned)
        return cur.rowcount


def list_orders(
    db_path: Path,
    department: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    include_all: bool = False,
    year: int | None = None,
) -> list[dict[str, Any]]:
    """List orders for the active year.

    Without include_all only firm orders are returned (no "Policy Issued"),
    unless status is "Policy Issued", which selects the closed policies.
    """
    year = get_active_year(db_path) if year is None else year
    clauses = ["department = ?", "year = ?"]
    params: list[Any] = [department, year]
    date_clauses, date_params = _date_conditions("order_date", start_date, end_date)
    clauses += date_clauses
    params += date_params

    has_status = "EXISTS (SELECT 1 FROM json_each(orders.statuses) WHERE value = ?)"
    if not include_all:
        if status == POLICY_ISSUED:
            clauses.append(has_status)
            params.append(POLICY_ISSUED)
        else:
            clauses.append(f"NOT {has_status}")
            params.append(POLICY_ISSUED)
            if status:
                clauses.append(has_status)
                params.append(status)

    with get_conn(db_path) as conn:
        rows = conn.execute(
            f"""
            SELECT * FROM orders
            WHERE {" AND ".join(clauses)}
            ORDER BY order_date DESC, id DESC
            """,
            params,
        ).fetchall()
        return [_order_dict(row) for row in rows]


def list_status_logs(db_path: Path, order_id: int) -> list[dict[str, Any]]:
    with get_conn(db_path) as conn:
        rows = conn.execute(
            """
            SELECT id, order_id, statuses, timestamp, notes
            FROM status_logs
            WHERE order_id = ?
            ORDER BY timestamp ASC, id ASC
            """,
            (order_id,),
        ).fetchall()
    out = []
    for row in rows:
        item = dict(row)
        item["statuses"] = json.loads(item["statuses"])
        out.append(item)
    return out


def list_insured_names(db_path: Path, year: int | None = None) -> list[str]:
    year = get_active_year(db_path) if year is None else year
    with get_conn(db_path) as conn:
        rows = conn.execute(
            """
            SELECT insured_name FROM quotations WHERE year = ?
            UNION
            SELECT insured_name FROM orders WHERE year = ?
            ORDER BY insured_name
            """,
            (year, year),
        ).fetchall()
        return [str(r["insured_name"]) for r in rows]
