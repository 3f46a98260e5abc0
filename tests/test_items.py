from datetime import date
from decimal import Decimal

from easy_ops.models import Item, InventoryLog, ItemLocationStock, ItemDate, Sale, ChangeType
from easy_ops.models import Profile

from tests.helpers import MANAGER, STAFF

API = "/api/v1/inventory"


# ================================
# ITEM CRUD
# ================================
class TestItems:

    def test_create_with_initial_stock(self, client, db, make_location):
        shelf = make_location("Shelf")

        response = client.post(f"{API}/items", json={
            "name": "Oat Milk",
            "category": "Dairy",
            "unit_of_measure": "carton",
            "cost_per_unit": "3.20",
            "initial_quantity": "6",
            "location_id": shelf.id,
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["stock_quantity"]) == Decimal("6")
        assert data["barcode_number"]

        entries = db.query(InventoryLog).filter(InventoryLog.item_id == data["id"]).all()
        assert len(entries) == 1
        assert entries[0].change_type == ChangeType.RECEIVE
        assert entries[0].notes == "Initial stock"
        assert entries[0].unit_cost_at_time == Decimal("3.20")

    def test_initial_stock_needs_location(self, client):
        response = client.post(f"{API}/items", json={"name": "Straws", "initial_quantity": "5"})
        assert response.status_code == 400

    def test_duplicate_barcode_number_rejected(self, client, make_item):
        make_item(barcode_number="4006381333931")
        response = client.post(f"{API}/items", json={"name": "Copy", "barcode_number": "4006381333931"})
        assert response.status_code == 400

    def test_lookup_by_either_code(self, client, make_item):
        item = make_item("Espresso Beans", barcode="SQ-VAR-9", barcode_number="5012345678900")

        by_number = client.get(f"{API}/items/lookup/5012345678900")
        by_pos = client.get(f"{API}/items/lookup/SQ-VAR-9")

        assert by_number.json()["id"] == item.id
        assert by_pos.json()["id"] == item.id
        assert client.get(f"{API}/items/lookup/nope").status_code == 404

    def test_update_does_not_touch_stock(self, client, db, make_item, make_location, stock):
        item = make_item("Cups")
        stock(item, make_location("Shelf"), 4)

        response = client.put(f"{API}/items/{item.id}", json={"name": "Paper Cups", "alert_threshold": "10"})

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Paper Cups"
        assert Decimal(data["stock_quantity"]) == Decimal("4")
        assert data["is_low_stock"] is True

    def test_list_filters(self, client, make_item):
        make_item("Napkins", category="Paper", alert_threshold=Decimal("5"))
        make_item("Sugar", category="Dry Goods")

        by_category = client.get(f"{API}/items", params={"category": "Paper"}).json()
        low = client.get(f"{API}/items", params={"low_stock_only": True}).json()
        search = client.get(f"{API}/items", params={"search": "sug"}).json()

        assert [i["name"] for i in by_category] == ["Napkins"]
        assert [i["name"] for i in low] == ["Napkins"]
        assert [i["name"] for i in search] == ["Sugar"]

    def test_missing_item(self, client):
        assert client.get(f"{API}/items/999").status_code == 404

    def test_stock_breakdown_lists_default_first(self, client, make_item, make_location, stock):
        item = make_item(unit_of_measure="lid")
        back = make_location("Back")
        main = make_location("Main", is_default=True)
        stock(item, back, 7)
        stock(item, main, 1)

        data = client.get(f"{API}/items/{item.id}/stock").json()

        assert [row["location_id"] for row in data["locations"]] == [main.id, back.id]
        assert Decimal(data["stock_quantity"]) == Decimal("8")
        assert data["stock_display"] == "8 lids"
        assert [row["quantity_display"] for row in data["locations"]] == ["1 lid", "7 lids"]


# ================================
# DELETION
# ================================
class TestDeleteItem:

    def test_delete_removes_history_and_keeps_sales(self, client, db, make_item, make_location, stock):
        item = make_item()
        shelf = make_location("Shelf")
        stock(item, shelf, 5)
        client.post(f"{API}/sell", json={"item_id": item.id, "quantity": "1", "unit_price": "4.00"})
        db.add(ItemDate(item_id=item.id, label="Best before", target_date=date(2026, 12, 1)))
        db.commit()
        item_id = item.id

        response = client.delete(f"{API}/items/{item_id}")

        assert response.status_code == 204
        db.expire_all()
        assert db.query(Item).filter(Item.id == item_id).first() is None
        assert db.query(InventoryLog).filter(InventoryLog.item_id == item_id).count() == 0
        assert db.query(ItemLocationStock).filter(ItemLocationStock.item_id == item_id).count() == 0
        assert db.query(ItemDate).count() == 0
        sale = db.query(Sale).one()
        assert sale.item_id is None

    def test_staff_cannot_delete(self, client, actor_holder, make_item):
        item = make_item()
        actor_holder["actor"] = STAFF

        response = client.delete(f"{API}/items/{item.id}")

        assert response.status_code == 403


# ================================
# MOVEMENT ROUTES
# ================================
class TestMovementRoutes:

    def test_receive_consume_sell_adjust(self, client, db, make_item, make_location):
        item = make_item()
        shelf = make_location("Shelf")

        received = client.post(f"{API}/receive", json={"item_id": item.id, "location_id": shelf.id, "quantity": "10"})
        assert received.status_code == 200
        assert received.json()["change_type"] == "RECEIVE"

        consumed = client.post(f"{API}/consume", json={
            "item_id": item.id, "location_id": shelf.id, "quantity": "2", "reason": "damaged"
        })
        assert consumed.json()["change_type"] == "WASTE"

        sold = client.post(f"{API}/sell", json={
            "item_id": item.id, "quantity": "3", "unit_price": "2.00", "payment_method": "CASH"
        })
        assert sold.json()["sale_id"] is not None

        adjusted = client.post(f"{API}/adjust", json={"item_id": item.id, "actual_quantity": "4"})
        assert Decimal(adjusted.json()["applied_delta"]) == Decimal("-1")
        assert Decimal(adjusted.json()["new_stock_quantity"]) == Decimal("4")

        history = client.get(f"{API}/items/{item.id}/history").json()
        assert history["total"] == 4
        assert [e["change_type"] for e in history["items"]] == ["ADJUST", "SALE", "WASTE", "RECEIVE"]

    def test_oversell_is_rejected(self, client, make_item, make_location, stock):
        item = make_item()
        stock(item, make_location("Shelf"), 1)

        response = client.post(f"{API}/sell", json={"item_id": item.id, "quantity": "2", "unit_price": "1"})

        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["detail"]

    def test_unknown_reason_rejected(self, client, make_item, make_location):
        item = make_item()
        shelf = make_location("Shelf")
        response = client.post(f"{API}/consume", json={
            "item_id": item.id, "location_id": shelf.id, "quantity": "1", "reason": "Lost"
        })
        assert response.status_code == 400

    def test_zero_quantity_fails_validation(self, client, make_item, make_location):
        item = make_item()
        shelf = make_location("Shelf")
        response = client.post(f"{API}/receive", json={"item_id": item.id, "location_id": shelf.id, "quantity": "0"})
        assert response.status_code == 422

    def test_sub_cent_quantity_fails_validation(self, client, db, make_item, make_location):
        item = make_item()
        shelf = make_location("Shelf")

        response = client.post(f"{API}/receive", json={"item_id": item.id, "location_id": shelf.id, "quantity": "1.005"})

        assert response.status_code == 422
        assert db.query(InventoryLog).count() == 0

    def test_activity_feed_names_the_user(self, client, db, make_item, make_location):
        db.add(Profile(id=MANAGER.user_id, full_name="Maya Manager", role="manager"))
        db.commit()
        item = make_item("Lids", unit_of_measure="lid")
        shelf = make_location("Shelf")
        client.post(f"{API}/receive", json={"item_id": item.id, "location_id": shelf.id, "quantity": "3"})

        feed = client.get(f"{API}/activity").json()

        assert feed["total"] == 1
        entry = feed["items"][0]
        assert entry["item_name"] == "Lids"
        assert entry["user_name"] == "Maya Manager"
        assert entry["user_id"] == MANAGER.user_id
        assert entry["quantity_display"] == "3 lids"


# ================================
# RECONCILIATION ROUTES
# ================================
class TestReconciliationRoutes:

    def test_reconcile_and_audit(self, client, db, make_item, make_location, stock):
        item = make_item()
        stock(item, make_location("Shelf"), 3)
        db.query(Item).filter(Item.id == item.id).update({Item.stock_quantity: Decimal("1")})
        db.commit()

        audit = client.get(f"{API}/ledger-audit").json()
        assert audit[0]["item_id"] == item.id
        assert Decimal(audit[0]["difference"]) == Decimal("-2")

        healed = client.post(f"{API}/reconcile").json()
        assert Decimal(healed[0]["drift"]) == Decimal("2")
        assert client.get(f"{API}/ledger-audit").json() == []

    def test_staff_cannot_reconcile(self, client, actor_holder):
        actor_holder["actor"] = STAFF
        assert client.post(f"{API}/reconcile").status_code == 403
