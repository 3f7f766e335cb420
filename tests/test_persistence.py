from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from underwriting.persistence import (
    create_order,
    create_quotation,
    delete_orders,
    delete_quotation,
    delete_quotations,
    get_active_year,
    get_order,
    init_db,
    list_insured_names,
    list_orders,
    list_quotations,
    list_status_logs,
    set_active_year,
    update_order,
    update_quotation,
)


def quotation(**overrides) -> dict:
    data = {
        "broker_name": "Howden",
        "insured_name": "Gulf Freight LLC",
        "product_type": "Marine Open Cover",
        "estimated_premium": "12500.00",
        "currency": "AED",
        "quotation_date": "2025-03-10",
        "status": "Open",
    }
    data.update(overrides)
    return data


def order(**overrides) -> dict:
    data = {
        "broker_name": "Marsh",
        "insured_name": "Creek Logistics",
        "product_type": "Jetski",
        "business_type": "Renewal",
        "premium": "4000.00",
        "currency": "USD",
        "order_date": "2025-04-02",
        "statuses": ["Firm Order Received"],
    }
    data.update(overrides)
    return data


class PersistenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db = Path(self._tmp.name) / "underwriting.db"
        init_db(self.db)
        set_active_year(self.db, 2025)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_active_year_round_trip(self) -> None:
        self.assertEqual(get_active_year(self.db), 2025)
        set_active_year(self.db, 2026)
        self.assertEqual(get_active_year(self.db), 2026)

    def test_confirmed_quotation_creates_firm_order(self) -> None:
        row = create_quotation(self.db, "marine", quotation(status="Confirmed"))
        self.assertEqual(row["year"], 2025)
        orders = list_orders(self.db, "marine")
        self.assertEqual(len(orders), 1)
        self.assertEqual(orders[0]["business_type"], "New Business")
        self.assertEqual(orders[0]["statuses"], ["Firm Order Received", "KYC Pending"])
        self.assertEqual(orders[0]["premium"], "12500.00")
        self.assertEqual(list_orders(self.db, "liability"), [])

    def test_transition_to_confirmed_creates_one_order(self) -> None:
        row = create_quotation(self.db, "liability", quotation(product_type="Crime Insurance (Commercial Crime/Fidelity Guarantee)"))
        self.assertEqual(list_orders(self.db, "liability"), [])

        update_quotation(self.db, "liability", row["id"], {**row, "status": "Confirmed"})
        update_quotation(self.db, "liability", row["id"], {**row, "status": "Confirmed", "notes": "edited"})
        self.assertEqual(len(list_orders(self.db, "liability")), 1)

    def test_update_missing_quotation_returns_none(self) -> None:
        self.assertIsNone(update_quotation(self.db, "marine", 999, quotation()))

    def test_quotations_scoped_by_department_year_and_dates(self) -> None:
        a = create_quotation(self.db, "marine", quotation(quotation_date="2025-01-15"))
        create_quotation(self.db, "marine", quotation(quotation_date="2025-06-01", status="Decline"))
        create_quotation(self.db, "property-engineering", quotation(product_type="FIRE & PERILS"))
        set_active_year(self.db, 2026)
        create_quotation(self.db, "marine", quotation(quotation_date="2025-02-01"))
        set_active_year(self.db, 2025)

        rows = list_quotations(self.db, "marine", start_date="2025-01-01", end_date="2025-03-31")
        self.assertEqual([r["id"] for r in rows], [a["id"]])
        self.assertEqual(len(list_quotations(self.db, "marine", status="Decline")), 1)
        self.assertEqual(len(list_quotations(self.db, "marine", year=2026)), 1)

    def test_delete_quotations_respects_department(self) -> None:
        a = create_quotation(self.db, "marine", quotation())
        b = create_quotation(self.db, "marine", quotation())
        c = create_quotation(self.db, "liability", quotation())
        self.assertFalse(delete_quotation(self.db, "liability", a["id"]))
        self.assertEqual(delete_quotations(self.db, "marine", [a["id"], b["id"], c["id"]]), 2)
        self.assertEqual(len(list_quotations(self.db, "liability")), 1)

    def test_order_status_filters(self) -> None:
        firm = create_order(self.db, "marine", order())
        kyc = create_order(self.db, "marine", order(statuses=["KYC Completed"]))
        closed = create_order(self.db, "marine", order(statuses=["KYC Completed", "Policy Issued"]))

        self.assertEqual({r["id"] for r in list_orders(self.db, "marine")}, {firm["id"], kyc["id"]})
        self.assertEqual([r["id"] for r in list_orders(self.db, "marine", status="Policy Issued")], [closed["id"]])
        self.assertEqual([r["id"] for r in list_orders(self.db, "marine", status="KYC Completed")], [kyc["id"]])
        self.assertEqual(len(list_orders(self.db, "marine", include_all=True)), 3)

    def test_policy_issued_moves_order_to_closed(self) -> None:
        row = create_order(self.db, "marine", order())
        order_row, moved = update_order(self.db, "marine", row["id"], {"statuses": ["Firm Order Received", "Policy Issued"]})
        self.assertTrue(moved)
        self.assertIn("Policy Issued", order_row["statuses"])
        self.assertEqual(list_orders(self.db, "marine"), [])
        self.assertEqual(len(list_orders(self.db, "marine", status="Policy Issued")), 1)

        _, moved_again = update_order(self.db, "marine", row["id"], {"notes": "filed"})
        self.assertFalse(moved_again)

    def test_partial_update_keeps_other_fields(self) -> None:
        row = create_order(self.db, "marine", order())
        updated, _ = update_order(self.db, "marine", row["id"], {"premium": "4500.00"})
        self.assertEqual(updated["premium"], "4500.00")
        self.assertEqual(updated["broker_name"], "Marsh")
        self.assertEqual(updated["statuses"], ["Firm Order Received"])
        self.assertIsNone(update_order(self.db, "liability", row["id"], {"premium": "1"}))

    def test_status_logs_follow_status_changes(self) -> None:
        row = create_order(self.db, "marine", order())
        update_order(self.db, "marine", row["id"], {"statuses": ["Firm Order Received", "COI Issued"]})
        update_order(self.db, "marine", row["id"], {"notes": "no status change"})
        logs = list_status_logs(self.db, row["id"])
        self.assertEqual(len(logs), 2)
        self.assertEqual(logs[-1]["statuses"], ["Firm Order Received", "COI Issued"])

        self.assertEqual(delete_orders(self.db, "marine", [row["id"]]), 1)
        self.assertIsNone(get_order(self.db, "marine", row["id"]))
        self.assertEqual(list_status_logs(self.db, row["id"]), [])

    def test_insured_names_across_departments(self) -> None:
        create_quotation(self.db, "marine", quotation(insured_name="Oasis Foods"))
        create_order(self.db, "liability", order(insured_name="Al Noor Trading"))
        create_order(self.db, "marine", order(insured_name="Oasis Foods"))
        self.assertEqual(list_insured_names(self.db), ["Al Noor Trading", "Oasis Foods"])


if __name__ == "__main__":
    unittest.main()
