from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from easy_ops.core.exceptions import ValidationException
from easy_ops.services.reconciliation import ReconciliationService, Consume, Sell, ConsumeReason
from easy_ops.services.reports import ReportService

from tests.helpers import MANAGER


@pytest.fixture
def period():
    now = datetime.now(timezone.utc)
    return now - timedelta(days=1), now + timedelta(days=1)


@pytest.fixture
def stocked(db, make_item, make_location, stock):
    """Two categories, one sale, one waste and one plain consume"""
    shelf = make_location("Shelf")
    beans = make_item("Beans", category="Coffee", cost_per_unit=Decimal("4.00"), alert_threshold=Decimal("5"))
    milk = make_item("Milk", category="Dairy", cost_per_unit=Decimal("1.50"))
    stock(beans, shelf, 10)
    stock(milk, shelf, 20)

    ReconciliationService.apply_movement(
        db, Sell(item_id=beans.id, quantity=Decimal("3"), unit_price=Decimal("10.00")), MANAGER
    )
    ReconciliationService.apply_movement(
        db, Consume(item_id=milk.id, location_id=shelf.id, quantity=Decimal("4"), reason=ConsumeReason.EXPIRED),
        MANAGER
    )
    ReconciliationService.apply_movement(
        db, Consume(item_id=milk.id, location_id=shelf.id, quantity=Decimal("6")), MANAGER
    )
    return {"beans": beans, "milk": milk}


class TestReports:

    def test_inventory_value(self, db, stocked):
        # beans 7 x 4.00 + milk 10 x 1.50
        assert ReportService.inventory_value(db) == Decimal("43.00")
        by_category = {row["category"]: row["value"] for row in ReportService.inventory_value_by_category(db)}
        assert by_category == {"Coffee": Decimal("28.00"), "Dairy": Decimal("15.00")}

    def test_cogs_metrics(self, db, stocked, period):
        metrics = ReportService.cogs_metrics(db, *period)

        assert metrics["cogs"] == Decimal("12.00")
        assert metrics["revenue"] == Decimal("30.00")
        assert metrics["gross_profit"] == Decimal("18.00")
        assert metrics["margin_percent"] == Decimal("60.00")

    def test_margin_undefined_without_revenue(self, db, period):
        assert ReportService.cogs_metrics(db, *period)["margin_percent"] is None

    def test_low_stock(self, db, stocked):
        assert ReportService.low_stock_count(db) == 0

        ReconciliationService.apply_movement(
            db, Sell(item_id=stocked["beans"].id, quantity=Decimal("3"), unit_price=Decimal("10")), MANAGER
        )

        rows = ReportService.low_stock_items(db)
        assert [row["name"] for row in rows] == ["Beans"]
        assert rows[0]["shortage"] == Decimal("1.00")
        assert ReportService.negative_stock_count(db) == 0

    def test_top_items_counts_sales_and_consumption(self, db, stocked, period):
        top = ReportService.top_items_by_volume(db, *period)

        assert [(row["name"], row["volume"]) for row in top] == [
            ("Milk", Decimal("6.00")),
            ("Beans", Decimal("3.00")),
        ]

    def test_waste_by_category(self, db, stocked, period):
        assert ReportService.waste_by_period(db, *period) == [
            {"category": "Dairy", "quantity": Decimal("4.00"), "cost": Decimal("6.00")}
        ]

    def test_sales_today(self, db, stocked):
        today = ReportService.sales_today(db)
        assert today == {"count": 1, "revenue": Decimal("30.00")}

    def test_inverted_period_rejected(self, db, period):
        start, end = period
        with pytest.raises(ValidationException):
            ReportService.cogs_by_period(db, end, start)

    def test_dashboard_route(self, client, stocked):
        response = client.get("/api/v1/reports/dashboard")

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["inventory_value"]) == Decimal("43.00")
        assert data["sales_today"]["count"] == 1
        assert Decimal(data["cogs_last_30_days"]["cogs"]) == Decimal("12.00")

    def test_cogs_route_rejects_inverted_period(self, client):
        response = client.get("/api/v1/reports/cogs", params={
            "start": "2026-03-02T00:00:00+00:00",
            "end": "2026-03-01T00:00:00+00:00",
        })
        assert response.status_code == 400
