# easy_ops/services/inventory.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
import logging

from easy_ops.models.inventory import Item, Location, ItemLocationStock
from easy_ops.models.ledger import InventoryLog
from easy_ops.models.sales import Sale
from easy_ops.core.audit import audit_log
from easy_ops.core.units import format_quantity_with_unit
from easy_ops.core.security import Actor, SecurityUtils
from easy_ops.core.exceptions import (
    InventoryException, NotFoundException, ValidationException, BusinessRuleException
)
from easy_ops.schemas.inventory import ItemCreate, ItemUpdate, LocationCreate, LocationUpdate
from easy_ops.services.reconciliation import ReconciliationService, Receive
from easy_ops.services.stock_store import StockStore, to_decimal

logger = logging.getLogger(__name__)


# ================================
# INVENTORY SERVICE
# ================================
class InventoryService:

    # ================================
    # LOCATION MANAGEMENT
    # ================================

    @staticmethod
    def create_location(db: Session, data: LocationCreate, actor: Actor) -> Location:
        """Create a new location, optionally as the default"""
        try:
            existing = db.query(Location).filter(Location.name == data.name).first()
            if existing:
                raise ValidationException(f"Location with name '{data.name}' already exists")

            if data.is_default:
                db.query(Location).filter(Location.is_default.is_(True)).update(
                    {Location.is_default: False}, synchronize_session="fetch"
                )

            location = Location(name=data.name, is_default=bool(data.is_default))
            db.add(location)
            db.commit()
            db.refresh(location)

            audit_log("LOCATION_CREATE", "location", location.id, actor.user_id, {"name": location.name})
            logger.info(f"Location created: {location.id} - {location.name}")
            return location

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating location: {str(e)}")
            raise

    @staticmethod
    def rename_location(db: Session, location_id: int, data: LocationUpdate, actor: Actor) -> Location:
        location = StockStore.get_location(db, location_id)

        try:
            if data.name and data.name != location.name:
                existing = db.query(Location).filter(
                    Location.name == data.name,
                    Location.id != location_id
                ).first()
                if existing:
                    raise ValidationException(f"Location with name '{data.name}' already exists")
                location.name = data.name

            db.commit()
            db.refresh(location)

            audit_log("LOCATION_RENAME", "location", location_id, actor.user_id, {"name": location.name})
            logger.info(f"Location updated: {location_id}")
            return location

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating location {location_id}: {str(e)}")
            raise

    @staticmethod
    def set_default_location(db: Session, location_id: int, actor: Actor) -> Location:
        """Unset the current default and set the new one in a single transaction"""
        location = StockStore.get_location(db, location_id)

        try:
            db.query(Location).filter(
                Location.is_default.is_(True),
                Location.id != location_id
            ).update({Location.is_default: False}, synchronize_session="fetch")
            db.flush()

            location.is_default = True
            db.commit()
            db.refresh(location)

            audit_log("LOCATION_SET_DEFAULT", "location", location_id, actor.user_id)
            logger.info(f"Default location set to {location_id}")
            return location

        except Exception as e:
            db.rollback()
            logger.error(f"Error setting default location {location_id}: {str(e)}")
            raise

    @staticmethod
    def list_locations(db: Session) -> List[Dict[str, Any]]:
        """Locations with the number of items holding stock there"""
        counts = db.query(
            ItemLocationStock.location_id.label("location_id"),
            func.count(ItemLocationStock.id).label("item_count")
        ).filter(
            ItemLocationStock.quantity > 0
        ).group_by(ItemLocationStock.location_id).subquery()

        rows = db.query(Location, func.coalesce(counts.c.item_count, 0)).outerjoin(
            counts, counts.c.location_id == Location.id
        ).order_by(Location.is_default.desc(), Location.name).all()

        return [
            {
                "id": location.id,
                "name": location.name,
                "is_default": location.is_default,
                "created_at": location.created_at,
                "item_count": int(item_count),
            }
            for location, item_count in rows
        ]

    @staticmethod
    def delete_location(db: Session, location_id: int, actor: Actor) -> None:
        location = StockStore.get_location(db, location_id)

        stocked = db.query(func.count(ItemLocationStock.id)).filter(
            ItemLocationStock.location_id == location_id,
            ItemLocationStock.quantity != 0
        ).scalar()
        if stocked:
            raise BusinessRuleException(
                f"Cannot delete location '{location.name}': {stocked} item(s) still have stock there"
            )

        try:
            # zero-quantity rows go with the location
            db.delete(location)
            db.commit()

            audit_log("LOCATION_DELETE", "location", location_id, actor.user_id, {"name": location.name})
            logger.info(f"Location deleted: {location_id}")

        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting location {location_id}: {str(e)}")
            raise

    # ================================
    # ITEM MANAGEMENT
    # ================================

    @staticmethod
    def _check_identifiers(db: Session, barcode_number: Optional[str], item_id: Optional[int] = None):
        if not barcode_number:
            return
        query = db.query(Item).filter(Item.barcode_number == barcode_number)
        if item_id is not None:
            query = query.filter(Item.id != item_id)
        if query.first():
            raise ValidationException(f"Barcode number '{barcode_number}' is already in use")

    @staticmethod
    def create_item(db: Session, data: ItemCreate, actor: Actor) -> Item:
        """
        Create a catalog item.

        An initial quantity is booked as a RECEIVE movement at ``location_id``
        so the ledger starts in agreement with the stock.
        """
        initial = data.initial_quantity or Decimal("0")
        if initial > 0 and data.location_id is None:
            raise ValidationException("A location is required when an initial quantity is given")
        if initial > 0:
            StockStore.get_location(db, data.location_id)

        try:
            InventoryService._check_identifiers(db, data.barcode_number)

            barcode_number = data.barcode_number
            while not barcode_number:
                candidate = SecurityUtils.generate_barcode_number()
                if not db.query(Item.id).filter(Item.barcode_number == candidate).first():
                    barcode_number = candidate

            item = Item(
                name=data.name,
                category=data.category or "Uncategorized",
                unit_of_measure=data.unit_of_measure or "unit",
                cost_per_unit=data.cost_per_unit,
                alert_threshold=data.alert_threshold,
                barcode=data.barcode,
                barcode_number=barcode_number,
                stock_quantity=Decimal("0"),
                is_auto_deduct=bool(data.is_auto_deduct),
            )
            db.add(item)
            db.commit()
            db.refresh(item)

            audit_log("ITEM_CREATE", "item", item.id, actor.user_id, {"name": item.name})
            logger.info(f"Item created: {item.id} - {item.name}")

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating item: {str(e)}")
            raise

        if initial > 0:
            ReconciliationService.apply_movement(
                db,
                Receive(
                    item_id=item.id,
                    location_id=data.location_id,
                    quantity=initial,
                    user_id=actor.user_id,
                    notes="Initial stock"
                ),
                actor
            )
            db.refresh(item)

        return item

    @staticmethod
    def update_item(db: Session, item_id: int, data: ItemUpdate, actor: Actor) -> Item:
        """Update descriptive fields; stock only moves through movements"""
        item = StockStore.get_item(db, item_id)

        try:
            updates = data.model_dump(exclude_unset=True)
            if updates.get("barcode_number") and updates["barcode_number"] != item.barcode_number:
                InventoryService._check_identifiers(db, updates["barcode_number"], item_id)

            for field, value in updates.items():
                if value is None and field in ("name", "category", "unit_of_measure", "cost_per_unit",
                                               "alert_threshold", "is_auto_deduct"):
                    continue
                setattr(item, field, value)

            item.updated_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(item)

            audit_log("ITEM_UPDATE", "item", item_id, actor.user_id, {"fields": sorted(updates)})
            logger.info(f"Item updated: {item_id}")
            return item

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating item {item_id}: {str(e)}")
            raise

    @staticmethod
    def get_item(db: Session, item_id: int) -> Item:
        return StockStore.get_item(db, item_id)

    @staticmethod
    def list_items(
        db: Session,
        search: Optional[str] = None,
        category: Optional[str] = None,
        low_stock_only: bool = False,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Item], int]:
        """List items with filtering and pagination"""
        query = db.query(Item)

        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(
                    Item.name.ilike(search_term),
                    Item.barcode.ilike(search_term),
                    Item.barcode_number.ilike(search_term)
                )
            )

        if category:
            query = query.filter(Item.category == category)

        if low_stock_only:
            query = query.filter(
                Item.alert_threshold > 0,
                Item.stock_quantity <= Item.alert_threshold
            )

        total = query.count()
        items = query.order_by(Item.name, Item.id).offset(skip).limit(limit).all()
        return items, total

    @staticmethod
    def get_item_by_code(db: Session, code: str) -> Item:
        """Scanner lookup by barcode number or POS barcode"""
        item = db.query(Item).filter(
            or_(Item.barcode_number == code, Item.barcode == code)
        ).order_by(Item.id).first()
        if not item:
            raise NotFoundException(f"No item with barcode '{code}'")
        return item

    @staticmethod
    def item_stock(db: Session, item_id: int) -> Dict[str, Any]:
        """Per-location breakdown of an item's stock"""
        item = StockStore.get_item(db, item_id)
        rows = StockStore.list_location_stock(db, item_id)

        return {
            "item_id": item.id,
            "name": item.name,
            "unit_of_measure": item.unit_of_measure,
            "stock_quantity": to_decimal(item.stock_quantity),
            "stock_display": format_quantity_with_unit(item.stock_quantity, item.unit_of_measure),
            "locations": [
                {
                    "location_id": row.location_id,
                    "location_name": row.location.name,
                    "is_default": row.location.is_default,
                    "quantity": to_decimal(row.quantity),
                    "quantity_display": format_quantity_with_unit(row.quantity, item.unit_of_measure),
                }
                for row in rows
            ],
        }

    @staticmethod
    def delete_item(db: Session, item_id: int, actor: Actor) -> None:
        """
        Delete an item and everything hanging off it.

        Ledger rows are removed with a bulk delete (the ORM refuses to delete
        them one by one); location stock and dates cascade; sales keep their
        row with ``item_id`` nulled.
        """
        item = StockStore.get_item(db, item_id, lock=True)
        name = item.name

        try:
            ledger_rows = db.query(InventoryLog).filter(
                InventoryLog.item_id == item_id
            ).delete(synchronize_session=False)

            db.query(Sale).filter(Sale.item_id == item_id).update(
                {Sale.item_id: None}, synchronize_session="fetch"
            )

            db.expire(item, ["ledger_entries", "sales"])
            db.delete(item)
            db.commit()

            audit_log(
                "ITEM_DELETE", "item", item_id, actor.user_id,
                {"name": name, "ledger_rows": ledger_rows}
            )
            logger.info(f"Item deleted: {item_id} ({ledger_rows} ledger rows removed)")

        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting item {item_id}: {str(e)}")
            raise

    @staticmethod
    def categories(db: Session) -> List[str]:
        return [row[0] for row in db.query(Item.category).distinct().order_by(Item.category).all()]
