from __future__ import annotations

import unittest
from datetime import date, datetime

from underwriting.catalog import targets_for_year
from underwriting.kpi import (
    all_months,
    category_of,
    kpi_report,
    monthly_breakdown,
    monthly_kpis,
    parse_premium,
    production_month,
    progress_pct,
    yearly_kpis,
)


def order(order_date: str, premium: str, product_type: str = "Marine Open Cover") -> dict:
    return {"order_date": order_date, "premium": premium, "product_type": product_type}


class ProductionMonthTests(unittest.TestCase):
    def test_day_on_or_before_closing_stays_in_month(self) -> None:
        self.assertEqual(production_month("2025-03-25"), (2, 2025))
        self.assertEqual(production_month("2025-03-01T08:30:00Z"), (2, 2025))

    def test_day_after_closing_rolls_forward(self) -> None:
        self.assertEqual(production_month("2026-01-26"), (1, 2026))
        self.assertEqual(production_month(date(2025, 6, 30)), (6, 2025))

    def test_december_rolls_into_next_year(self) -> None:
        self.assertEqual(production_month(datetime(2025, 12, 27, 10, 0)), (0, 2026))

    def test_unparseable_dates_are_ignored(self) -> None:
        self.assertIsNone(production_month("not a date"))
        self.assertIsNone(production_month(""))


class PremiumAndProgressTests(unittest.TestCase):
    def test_parse_premium(self) -> None:
        self.assertEqual(parse_premium("1250.50"), 1250.5)
        self.assertEqual(parse_premium("abc"), 0.0)
        self.assertEqual(parse_premium(None), 0.0)
        self.assertEqual(parse_premium("NaN"), 0.0)

    def test_progress(self) -> None:
        self.assertEqual(progress_pct(500, 500), 100)
        self.assertEqual(progress_pct(0, 500), 0)
        self.assertEqual(progress_pct(100, 0), 0)

    def test_categories(self) -> None:
        self.assertEqual(category_of("Goods in Transit"), "cargo")
        self.assertEqual(category_of("Aviation"), "cargo")
        self.assertEqual(category_of("Jetski"), "hull")
        self.assertIsNone(category_of("FIRE & PERILS"))
        self.assertIsNone(category_of(None))


class LiveYearTests(unittest.TestCase):
    def test_january_target_met_exactly(self) -> None:
        orders = [order("2026-01-10", "5362614.00", "Marine Cargo Single Shipment")]
        jan = monthly_kpis(orders, 2026, 0, live_year=2026)
        self.assertEqual(jan["cargo"]["actual"], 5362614)
        self.assertEqual(jan["cargo"]["target"], 5362614)
        self.assertEqual(jan["cargo"]["variance"], 0)
        self.assertEqual(jan["cargo"]["progress"], 100)
        self.assertEqual(jan["hull"]["actual"], 0)
        self.assertEqual(jan["hull"]["progress"], 0)

    def test_live_year_reports_everything_in_january(self) -> None:
        orders = [
            order("2026-05-10", "1000", "Marine Open Cover"),
            order("2024-09-02", "500", "P&I"),
        ]
        yearly = yearly_kpis(orders, 2026, live_year=2026)
        self.assertEqual(yearly["total"]["actual"], 1500)
        self.assertEqual(monthly_kpis(orders, 2026, 0, live_year=2026)["total"]["actual"], 1500)
        self.assertEqual(monthly_kpis(orders, 2026, 4, live_year=2026)["total"]["actual"], 0)

    def test_future_year_counts_all_for_year_only(self) -> None:
        orders = [order("2026-02-10", "700")]
        self.assertEqual(yearly_kpis(orders, 2027, live_year=2026)["cargo"]["actual"], 700)
        self.assertTrue(all(row["actual"] == 0 for row in all_months(orders, 2027, live_year=2026)))

    def test_unknown_year_uses_default_targets(self) -> None:
        self.assertEqual(yearly_kpis([], 2031, live_year=2026)["cargo"]["target"], 25_000_000)


class PastYearTests(unittest.TestCase):
    def setUp(self) -> None:
        self.orders = [
            order("2025-01-10", "1000", "Marine Cargo Single Shipment"),
            order("2025-01-26", "2000", "Commercial Vessel"),
            order("2025-07-15", "abc", "Jetski"),
            order("2025-11-03", "400", "FIRE & PERILS"),
            order("2024-12-28", "300", "Goods in Transit"),
            order("2024-06-01", "9999", "Goods in Transit"),
        ]

    def test_after_closing_day_counts_in_next_month(self) -> None:
        jan = monthly_kpis(self.orders, 2025, 0, live_year=2026)
        feb = monthly_kpis(self.orders, 2025, 1, live_year=2026)
        self.assertEqual(jan["cargo"]["actual"], 1300)
        self.assertEqual(jan["hull"]["actual"], 0)
        self.assertEqual(feb["hull"]["actual"], 2000)

    def test_non_numeric_premium_counts_as_zero(self) -> None:
        jul = monthly_kpis(self.orders, 2025, 6, live_year=2026)
        self.assertEqual(jul["hull"]["actual"], 0)

    def test_month_rows_sum_to_yearly_figure(self) -> None:
        yearly = yearly_kpis(self.orders, 2025, live_year=2026)
        self.assertEqual(yearly["total"]["actual"], 3300)
        monthly_total = sum(
            monthly_kpis(self.orders, 2025, m, live_year=2026)["total"]["actual"] for m in range(12)
        )
        self.assertEqual(monthly_total, yearly["total"]["actual"])

    def test_all_months_includes_uncategorized(self) -> None:
        rows = all_months(self.orders, 2025, live_year=2026)
        self.assertEqual(len(rows), 12)
        self.assertEqual(rows[10]["month"], "Nov")
        self.assertEqual(rows[10]["actual"], 400)
        self.assertTrue(rows[10]["is_active"])
        self.assertFalse(rows[3]["is_active"])

    def test_breakdown_by_category(self) -> None:
        cargo = monthly_breakdown(self.orders, 2025, "cargo", live_year=2026)
        hull = monthly_breakdown(self.orders, 2025, "hull", live_year=2026)
        both = monthly_breakdown(self.orders, 2025, "all", live_year=2026)
        self.assertEqual(cargo["rows"][0]["month"], "January")
        self.assertEqual(cargo["totals"]["actual"], 1300)
        self.assertEqual(hull["totals"]["actual"], 2000)
        self.assertEqual(both["totals"]["actual"], 3300)
        self.assertEqual(cargo["totals"]["target"], sum(targets_for_year(2025)["cargo"]["monthly"]))
        self.assertEqual(
            both["totals"]["variance"], both["totals"]["actual"] - both["totals"]["target"]
        )

    def test_unknown_breakdown_behaves_as_all(self) -> None:
        self.assertEqual(
            monthly_breakdown(self.orders, 2025, "bogus", live_year=2026),
            monthly_breakdown(self.orders, 2025, "all", live_year=2026),
        )

    def test_report_bundle(self) -> None:
        report = kpi_report(self.orders, 2025, month=1, breakdown="hull", live_year=2026)
        self.assertEqual(report["order_count"], 6)
        self.assertEqual(report["monthly"]["hull"]["actual"], 2000)
        self.assertEqual(report["breakdown"]["totals"]["actual"], 2000)


if __name__ == "__main__":
    unittest.main()
