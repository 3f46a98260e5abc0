# easy_ops/services/reports.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, desc

from easy_ops.models.inventory import Item
from easy_ops.models.ledger import InventoryLog, ChangeType
from easy_ops.models.sales import Sale
from easy_ops.core.exceptions import ValidationException
from easy_ops.services.stock_store import storage_guard, to_decimal


def _check_period(start: datetime, end: datetime) -> None:
    if start > end:
        raise ValidationException("Period start must be before its end")


# ================================
# REPORTING
# ================================
class ReportService:
    """Read-only aggregations over items, the ledger and sales."""

    # ---------------- Stock value ----------------
    @staticmethod
    def inventory_value(db: Session) -> Decimal:
        with storage_guard("computing inventory value"):
            total = db.query(
                func.sum(Item.stock_quantity * Item.cost_per_unit)
            ).scalar()
        return to_decimal(total)

    @staticmethod
    def inventory_value_by_category(db: Session) -> List[Dict[str, Any]]:
        with storage_guard("computing inventory value by category"):
            rows = db.query(
                Item.category,
                func.sum(Item.stock_quantity * Item.cost_per_unit),
                func.count(Item.id)
            ).group_by(Item.category).order_by(Item.category).all()

        return [
            {"category": category, "value": to_decimal(value), "item_count": count}
            for category, value, count in rows
        ]

    # ---------------- Profitability ----------------
    @staticmethod
    def cogs_by_period(db: Session, start: datetime, end: datetime) -> Decimal:
        """Cost of goods sold: sold quantity times the unit cost recorded at sale time"""
        _check_period(start, end)
        with storage_guard("computing COGS"):
            total = db.query(
                func.sum(-InventoryLog.quantity_change * InventoryLog.unit_cost_at_time)
            ).filter(
                InventoryLog.change_type == ChangeType.SALE,
                InventoryLog.timestamp >= start,
                InventoryLog.timestamp <= end
            ).scalar()
        return to_decimal(total)

    @staticmethod
    def revenue_by_period(db: Session, start: datetime, end: datetime) -> Decimal:
        _check_period(start, end)
        with storage_guard("computing revenue"):
            total = db.query(func.sum(Sale.total_amount)).filter(
                Sale.sale_date >= start,
                Sale.sale_date <= end
            ).scalar()
        return to_decimal(total)

    @staticmethod
    def cogs_metrics(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
        cogs = ReportService.cogs_by_period(db, start, end)
        revenue = ReportService.revenue_by_period(db, start, end)
        gross_profit = revenue - cogs
        margin = None
        if revenue > 0:
            margin = (gross_profit / revenue * 100).quantize(Decimal("0.01"))

        return {
            "start": start,
            "end": end,
            "cogs": cogs,
            "revenue": revenue,
            "gross_profit": gross_profit,
            "margin_percent": margin,
        }

    # ---------------- Stock health ----------------
    @staticmethod
    def _low_stock_query(db: Session):
        return db.query(Item).filter(
            Item.alert_threshold > 0,
            Item.stock_quantity <= Item.alert_threshold
        )

    @staticmethod
    def low_stock_count(db: Session) -> int:
        with storage_guard("counting low stock"):
            return ReportService._low_stock_query(db).count()

    @staticmethod
    def low_stock_items(db: Session) -> List[Dict[str, Any]]:
        with storage_guard("listing low stock"):
            items = ReportService._low_stock_query(db).order_by(Item.stock_quantity, Item.name).all()

        return [
            {
                "item_id": item.id,
                "name": item.name,
                "category": item.category,
                "unit_of_measure": item.unit_of_measure,
                "stock_quantity": to_decimal(item.stock_quantity),
                "alert_threshold": to_decimal(item.alert_threshold),
                "shortage": max(Decimal("0"), to_decimal(item.alert_threshold) - to_decimal(item.stock_quantity)),
            }
            for item in items
        ]

    @staticmethod
    def negative_stock_count(db: Session) -> int:
        # non-zero only if constraints were bypassed
        with storage_guard("counting negative stock"):
            return db.query(Item).filter(Item.stock_quantity < 0).count()

    # ---------------- Movement ----------------
    @staticmethod
    def top_items_by_volume(db: Session, start: datetime, end: datetime, limit: int = 10) -> List[Dict[str, Any]]:
        """Items ranked by quantity sold or consumed in the period"""
        _check_period(start, end)
        volume = func.sum(-InventoryLog.quantity_change).label("volume")

        with storage_guard("ranking items by volume"):
            rows = db.query(
                Item.id, Item.name, Item.unit_of_measure, volume
            ).join(
                InventoryLog, InventoryLog.item_id == Item.id
            ).filter(
                InventoryLog.change_type.in_([ChangeType.SALE, ChangeType.CONSUME]),
                InventoryLog.timestamp >= start,
                InventoryLog.timestamp <= end
            ).group_by(
                Item.id, Item.name, Item.unit_of_measure
            ).order_by(desc(volume), Item.id).limit(limit).all()

        return [
            {"item_id": item_id, "name": name, "unit_of_measure": unit, "volume": to_decimal(vol)}
            for item_id, name, unit, vol in rows
        ]

    @staticmethod
    def waste_by_period(db: Session, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        _check_period(start, end)
        with storage_guard("computing waste"):
            rows = db.query(
                Item.category,
                func.sum(-InventoryLog.quantity_change),
                func.sum(-InventoryLog.quantity_change * InventoryLog.unit_cost_at_time)
            ).join(
                InventoryLog, InventoryLog.item_id == Item.id
            ).filter(
                InventoryLog.change_type == ChangeType.WASTE,
                InventoryLog.timestamp >= start,
                InventoryLog.timestamp <= end
            ).group_by(Item.category).order_by(Item.category).all()

        return [
            {"category": category, "quantity": to_decimal(quantity), "cost": to_decimal(cost)}
            for category, quantity, cost in rows
        ]

    # ---------------- Sales ----------------
    @staticmethod
    def sales_today(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        with storage_guard("summing today's sales"):
            count, revenue = db.query(
                func.count(Sale.id),
                func.sum(Sale.total_amount)
            ).filter(
                Sale.sale_date >= start,
                Sale.sale_date <= now
            ).one()

        return {"count": count or 0, "revenue": to_decimal(revenue)}

    @staticmethod
    def dashboard_metrics(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        return {
            "inventory_value": ReportService.inventory_value(db),
            "low_stock_count": ReportService.low_stock_count(db),
            "negative_stock_count": ReportService.negative_stock_count(db),
            "sales_today": ReportService.sales_today(db, now),
            "cogs_last_30_days": ReportService.cogs_metrics(db, now - timedelta(days=30), now),
        }
