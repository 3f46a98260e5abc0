from easy_ops.models import Location

from tests.helpers import STAFF

API = "/api/v1/locations"


def defaults(db):
    db.expire_all()
    return [loc.name for loc in db.query(Location).filter(Location.is_default.is_(True)).all()]


class TestLocations:

    def test_create_default_replaces_previous(self, client, db, make_location):
        make_location("Main", is_default=True)

        response = client.post(API, json={"name": "Bar", "is_default": True})

        assert response.status_code == 201
        assert defaults(db) == ["Bar"]

    def test_duplicate_name_rejected(self, client, make_location):
        make_location("Main")
        assert client.post(API, json={"name": "Main"}).status_code == 400

    def test_set_default_is_exclusive(self, client, db, make_location):
        make_location("Main", is_default=True)
        back = make_location("Back")

        response = client.post(f"{API}/{back.id}/default")

        assert response.status_code == 200
        assert response.json()["is_default"] is True
        assert defaults(db) == ["Back"]

    def test_set_default_unknown_location(self, client):
        assert client.post(f"{API}/999/default").status_code == 404

    def test_list_counts_stocked_items(self, client, make_item, make_location, stock):
        main = make_location("Main", is_default=True)
        back = make_location("Back")
        stock(make_item(), back, 2)
        stock(make_item(), back, 1)

        data = client.get(API).json()

        assert [row["name"] for row in data] == ["Main", "Back"]
        assert [row["item_count"] for row in data] == [0, 2]
        assert data[0]["id"] == main.id

    def test_rename(self, client, make_location):
        shelf = make_location("Shelf")
        response = client.put(f"{API}/{shelf.id}", json={"name": "Top Shelf"})
        assert response.json()["name"] == "Top Shelf"

    def test_delete_refused_while_stocked(self, client, db, make_item, make_location, stock):
        shelf = make_location("Shelf")
        stock(make_item(), shelf, 1)

        response = client.delete(f"{API}/{shelf.id}")

        assert response.status_code == 422
        assert db.query(Location).count() == 1

    def test_delete_empty_location(self, client, db, make_item, make_location, stock):
        shelf = make_location("Shelf")
        item = make_item()
        stock(item, shelf, 2)
        client.post("/api/v1/inventory/consume", json={"item_id": item.id, "location_id": shelf.id, "quantity": "2"})

        response = client.delete(f"{API}/{shelf.id}")

        assert response.status_code == 204
        assert db.query(Location).count() == 0

    def test_staff_cannot_create(self, client, actor_holder):
        actor_holder["actor"] = STAFF
        assert client.post(API, json={"name": "Cellar"}).status_code == 403
