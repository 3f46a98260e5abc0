# easy_ops/services/ledger.py
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
import logging

from easy_ops.models.inventory import Item
from easy_ops.models.ledger import InventoryLog, ChangeType
from easy_ops.models.profiles import Profile
from easy_ops.core.exceptions import StorageUnavailableException
from easy_ops.core.units import format_quantity_with_unit
from easy_ops.services.stock_store import storage_guard

logger = logging.getLogger(__name__)


class LedgerWriter:

    @staticmethod
    def append(
        db: Session,
        item_id: int,
        change_type: ChangeType,
        quantity_delta: Decimal,
        unit_cost_at_time: Decimal,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
        sale_id: Optional[int] = None
    ) -> Optional[InventoryLog]:
        """
        Append one immutable ledger entry.

        A zero delta writes nothing and returns None. The row is written in a
        SAVEPOINT so a failure here leaves the caller's earlier writes intact.
        """
        if quantity_delta == 0:
            return None

        entry = InventoryLog(
            item_id=item_id,
            change_type=change_type,
            quantity_change=quantity_delta,
            unit_cost_at_time=unit_cost_at_time or Decimal("0"),
            user_id=user_id,
            sale_id=sale_id,
            notes=notes,
        )

        try:
            with db.begin_nested():
                db.add(entry)
        except SQLAlchemyError as e:
            logger.error(f"Error appending ledger entry for item {item_id}: {str(e)}")
            raise StorageUnavailableException(f"Ledger unavailable: {str(e)}") from e

        return entry

    # ================================
    # READ API
    # ================================

    @staticmethod
    def _activity_query(db: Session):
        return db.query(
            InventoryLog,
            Item.name.label("item_name"),
            Item.unit_of_measure.label("unit_of_measure"),
            Profile.full_name.label("user_name")
        ).join(
            Item, Item.id == InventoryLog.item_id
        ).outerjoin(
            Profile, Profile.id == InventoryLog.user_id
        )

    @staticmethod
    def _to_entry(row) -> Dict[str, Any]:
        log, item_name, unit_of_measure, user_name = row
        return {
            "id": log.id,
            "item_id": log.item_id,
            "item_name": item_name,
            "unit_of_measure": unit_of_measure,
            "change_type": log.change_type.value,
            "quantity_change": log.quantity_change,
            "quantity_display": format_quantity_with_unit(log.quantity_change, unit_of_measure),
            "unit_cost_at_time": log.unit_cost_at_time,
            "user_id": log.user_id,
            "user_name": user_name,
            "sale_id": log.sale_id,
            "notes": log.notes,
            "timestamp": log.timestamp,
        }

    @staticmethod
    def recent_activity(db: Session, limit: int = 20, offset: int = 0) -> Tuple[List[Dict[str, Any]], int]:
        """Global activity feed, newest first"""
        with storage_guard("reading activity feed"):
            query = LedgerWriter._activity_query(db)
            total = query.count()
            rows = query.order_by(
                desc(InventoryLog.timestamp), desc(InventoryLog.id)
            ).offset(offset).limit(limit).all()

        return [LedgerWriter._to_entry(row) for row in rows], total

    @staticmethod
    def item_history(db: Session, item_id: int, limit: int = 50, offset: int = 0) -> Tuple[List[Dict[str, Any]], int]:
        with storage_guard(f"reading history of item {item_id}"):
            query = LedgerWriter._activity_query(db).filter(InventoryLog.item_id == item_id)
            total = query.count()
            rows = query.order_by(
                desc(InventoryLog.timestamp), desc(InventoryLog.id)
            ).offset(offset).limit(limit).all()

        return [LedgerWriter._to_entry(row) for row in rows], total
