from decimal import Decimal

import pytest

from easy_ops.models import InventoryLog, ChangeType, Profile
from easy_ops.models.ledger import LedgerImmutableError
from easy_ops.services.ledger import LedgerWriter


@pytest.fixture
def entry(db, make_item):
    item = make_item("Filters")
    record = LedgerWriter.append(db, item.id, ChangeType.RECEIVE, Decimal("4"), Decimal("0.80"), user_id="user-1")
    db.commit()
    return record


class TestLedgerWriter:

    def test_zero_delta_writes_nothing(self, db, make_item):
        item = make_item()
        assert LedgerWriter.append(db, item.id, ChangeType.ADJUST, Decimal("0"), Decimal("1")) is None
        assert db.query(InventoryLog).count() == 0

    def test_entries_cannot_be_edited(self, db, entry):
        entry.quantity_change = Decimal("40")
        with pytest.raises(LedgerImmutableError):
            db.flush()
        db.rollback()

    def test_entries_cannot_be_deleted(self, db, entry):
        db.delete(entry)
        with pytest.raises(LedgerImmutableError):
            db.flush()
        db.rollback()
        assert db.query(InventoryLog).count() == 1


class TestActivity:

    def test_history_is_newest_first_with_names(self, db, make_item):
        db.add(Profile(id="user-1", full_name="Sam Barista"))
        item = make_item("Syrup", unit_of_measure="bottle")
        LedgerWriter.append(db, item.id, ChangeType.RECEIVE, Decimal("6"), Decimal("5"), user_id="user-1")
        LedgerWriter.append(db, item.id, ChangeType.CONSUME, Decimal("-1"), Decimal("5"))
        db.commit()

        entries, total = LedgerWriter.item_history(db, item.id)

        assert total == 2
        assert [e["change_type"] for e in entries] == ["CONSUME", "RECEIVE"]
        assert entries[0]["user_name"] is None
        assert entries[1]["user_name"] == "Sam Barista"
        assert entries[1]["unit_of_measure"] == "bottle"

    def test_recent_activity_paginates(self, db, make_item):
        first = make_item("A")
        second = make_item("B")
        for item in (first, second, first):
            LedgerWriter.append(db, item.id, ChangeType.RECEIVE, Decimal("1"), Decimal("1"))
        db.commit()

        page, total = LedgerWriter.recent_activity(db, limit=2, offset=0)
        rest, _ = LedgerWriter.recent_activity(db, limit=2, offset=2)

        assert total == 3
        assert len(page) == 2
        assert len(rest) == 1
        assert page[0]["item_name"] == "A"
