# easy_ops/services/stock_store.py
from contextlib import contextmanager
from decimal import Decimal
from typing import List, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import OperationalError, InterfaceError
import logging

from easy_ops.models.inventory import Item, Location, ItemLocationStock
from easy_ops.core.exceptions import (
    ItemNotFoundException, LocationNotFoundException, StorageUnavailableException
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Normalise a quantity read back from the database to two decimal places"""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT)


@contextmanager
def storage_guard(action: str):
    """Translate connection-level database failures into StorageUnavailableException."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Storage failure while {action}: {str(e)}")
        raise StorageUnavailableException(f"Storage unavailable while {action}") from e


# ================================
# STOCK STORE
# ================================
class StockStore:
    """
    Per-location and aggregate quantity records.

    Writers never read-modify-write a quantity: every change is an
    ``quantity = quantity + :delta`` UPDATE issued while the item row is
    locked by the caller (``get_item(..., lock=True)``).
    """

    @staticmethod
    def get_item(db: Session, item_id: int, lock: bool = False) -> Item:
        with storage_guard(f"loading item {item_id}"):
            query = db.query(Item).filter(Item.id == item_id)
            if lock:
                query = query.with_for_update()
            item = query.first()

        if not item:
            raise ItemNotFoundException(item_id)
        return item

    @staticmethod
    def get_location(db: Session, location_id: int) -> Location:
        with storage_guard(f"loading location {location_id}"):
            location = db.query(Location).filter(Location.id == location_id).first()

        if not location:
            raise LocationNotFoundException(location_id)
        return location

    @staticmethod
    def get_location_stock(db: Session, item_id: int, location_id: int) -> Decimal:
        """Quantity of an item at a location, 0 when no row exists"""
        with storage_guard(f"reading stock of item {item_id} at location {location_id}"):
            quantity = db.query(ItemLocationStock.quantity).filter(
                ItemLocationStock.item_id == item_id,
                ItemLocationStock.location_id == location_id
            ).scalar()
        return to_decimal(quantity)

    @staticmethod
    def set_location_stock(db: Session, item_id: int, location_id: int, quantity: Decimal) -> ItemLocationStock:
        with storage_guard(f"setting stock of item {item_id} at location {location_id}"):
            row = db.query(ItemLocationStock).filter(
                ItemLocationStock.item_id == item_id,
                ItemLocationStock.location_id == location_id
            ).first()
            if row:
                row.quantity = quantity
            else:
                row = ItemLocationStock(item_id=item_id, location_id=location_id, quantity=quantity)
                db.add(row)
            db.flush()
        return row

    @staticmethod
    def set_aggregate_stock(db: Session, item_id: int, quantity: Decimal) -> None:
        with storage_guard(f"setting aggregate stock of item {item_id}"):
            db.query(Item).filter(Item.id == item_id).update(
                {Item.stock_quantity: quantity},
                synchronize_session="fetch"
            )

    @staticmethod
    def apply_location_delta(db: Session, item_id: int, location_id: int, delta: Decimal) -> None:
        if delta == 0:
            return

        with storage_guard(f"updating stock of item {item_id} at location {location_id}"):
            updated = db.query(ItemLocationStock).filter(
                ItemLocationStock.item_id == item_id,
                ItemLocationStock.location_id == location_id
            ).update(
                {ItemLocationStock.quantity: ItemLocationStock.quantity + delta},
                synchronize_session="fetch"
            )

            if not updated:
                # first stock of this item at this location
                db.add(ItemLocationStock(item_id=item_id, location_id=location_id, quantity=delta))
                db.flush()

    @staticmethod
    def apply_aggregate_delta(db: Session, item_id: int, delta: Decimal) -> None:
        if delta == 0:
            return

        with storage_guard(f"updating aggregate stock of item {item_id}"):
            db.query(Item).filter(Item.id == item_id).update(
                {Item.stock_quantity: Item.stock_quantity + delta},
                synchronize_session="fetch"
            )

    @staticmethod
    def list_location_stock(db: Session, item_id: int) -> List[ItemLocationStock]:
        """Stock rows of an item, default location first, then largest quantity first"""
        with storage_guard(f"listing stock of item {item_id}"):
            return db.query(ItemLocationStock).join(
                Location, Location.id == ItemLocationStock.location_id
            ).filter(
                ItemLocationStock.item_id == item_id
            ).order_by(
                Location.is_default.desc(),
                ItemLocationStock.quantity.desc(),
                ItemLocationStock.id
            ).all()

    @staticmethod
    def location_total(db: Session, item_id: int) -> Decimal:
        with storage_guard(f"summing stock of item {item_id}"):
            total = db.query(
                func.coalesce(func.sum(ItemLocationStock.quantity), 0)
            ).filter(ItemLocationStock.item_id == item_id).scalar()
        return to_decimal(total)

    # ================================
    # DRIFT HEALING
    # ================================

    @staticmethod
    def resum_aggregate(db: Session, item_id: int) -> Dict[str, Any]:
        """Set the aggregate of one item to the sum of its location rows"""
        item = StockStore.get_item(db, item_id, lock=True)
        previous = to_decimal(item.stock_quantity)
        total = StockStore.location_total(db, item_id)

        if total != previous:
            StockStore.set_aggregate_stock(db, item_id, total)
            logger.warning(f"Aggregate drift healed for item {item_id}: {previous} -> {total}")

        return {
            "item_id": item_id,
            "previous_quantity": previous,
            "location_total": total,
            "drift": total - previous,
        }

    @staticmethod
    def resum_all(db: Session) -> List[Dict[str, Any]]:
        """Heal every item; returns only the items that had drifted"""
        with storage_guard("listing items"):
            item_ids = [row[0] for row in db.query(Item.id).order_by(Item.id).all()]

        healed = []
        for item_id in item_ids:
            result = StockStore.resum_aggregate(db, item_id)
            if result["drift"] != 0:
                healed.append(result)
        return healed
