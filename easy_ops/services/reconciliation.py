# easy_ops/services/reconciliation.py
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any, Union
from sqlalchemy.orm import Session
from sqlalchemy import func
import enum
import logging

from easy_ops.models.inventory import Item, Location
from easy_ops.models.ledger import InventoryLog, ChangeType
from easy_ops.models.sales import Sale, SaleSource, PaymentMethod
from easy_ops.core.audit import audit_log, integrity_warning
from easy_ops.core.security import Actor
from easy_ops.core.exceptions import (
    InventoryException, ValidationException, InvalidQuantityException,
    InsufficientStockException, LocationNotFoundException,
    PermissionDeniedException, StorageUnavailableException
)
from easy_ops.services.stock_store import StockStore, storage_guard, to_decimal, ZERO
from easy_ops.services.ledger import LedgerWriter

logger = logging.getLogger(__name__)


# ================================
# MOVEMENTS
# ================================
class ConsumeReason(str, enum.Enum):
    CONSUMED = "Consumed"
    WASTED = "Wasted"
    EXPIRED = "Expired"
    DAMAGED = "Damaged"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "ConsumeReason":
        if isinstance(value, cls):
            return value
        for reason in cls:
            if reason.value.lower() == str(value).strip().lower():
                return reason
        raise ValidationException(
            f"Unknown consume reason '{value}'. Expected one of: {[r.value for r in cls]}"
        )


WASTE_REASONS = {ConsumeReason.WASTED, ConsumeReason.EXPIRED, ConsumeReason.DAMAGED}


@dataclass
class Receive:
    item_id: int
    location_id: int
    quantity: Decimal
    user_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class Consume:
    item_id: int
    location_id: int
    quantity: Decimal
    reason: ConsumeReason = ConsumeReason.CONSUMED
    user_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class Sell:
    item_id: int
    quantity: Decimal
    unit_price: Decimal
    source: SaleSource = SaleSource.MANUAL
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    location_id: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class Adjust:
    item_id: int
    actual_quantity: Decimal
    user_id: Optional[str] = None
    notes: Optional[str] = None
    location_id: Optional[int] = None


@dataclass
class AutoDeduct:
    item_id: int
    quantity: Decimal
    external_order_ref: str


Movement = Union[Receive, Consume, Sell, Adjust, AutoDeduct]


@dataclass
class MovementResult:
    item_id: int
    change_type: Optional[ChangeType]
    requested_quantity: Decimal
    applied_delta: Decimal
    new_stock_quantity: Decimal
    clamped: bool = False
    ledger_entry_id: Optional[int] = None
    ledger_recorded: bool = True
    sale_id: Optional[int] = None


def _as_decimal(value, field: str) -> Decimal:
    try:
        exact = Decimal(str(value))
        quantity = to_decimal(exact)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidQuantityException(f"{field} must be a number")
    if not exact.is_finite():
        raise InvalidQuantityException(f"{field} must be a number")
    if exact != quantity:
        raise InvalidQuantityException(f"{field} allows at most two decimal places")
    return quantity


# ================================
# RECONCILIATION ENGINE
# ================================
class ReconciliationService:
    """
    Applies one stock movement across location stock, aggregate stock and the
    ledger. Location rows and the aggregate always move by the same signed delta.
    """

    @staticmethod
    def _validate(movement: Movement, actor: Actor) -> Decimal:
        """Returns the requested quantity (actual count for Adjust)"""
        if isinstance(movement, AutoDeduct) and not actor.is_service:
            raise PermissionDeniedException("Automatic deductions require service privilege")

        if isinstance(movement, Adjust):
            actual = _as_decimal(movement.actual_quantity, "Actual quantity")
            if actual < 0:
                raise InvalidQuantityException("Actual quantity cannot be negative")
            return actual

        quantity = _as_decimal(movement.quantity, "Quantity")
        if quantity <= 0:
            raise InvalidQuantityException("Quantity must be positive")

        if isinstance(movement, Sell):
            if _as_decimal(movement.unit_price, "Unit price") < 0:
                raise InvalidQuantityException("Unit price cannot be negative")

        return quantity

    @staticmethod
    def _distribute(db: Session, item_id: int, delta: Decimal) -> None:
        """Spread an item-wide delta over its location rows"""
        if delta > 0:
            default = db.query(Location).filter(Location.is_default.is_(True)).first()
            if default:
                target_id = default.id
            else:
                rows = StockStore.list_location_stock(db, item_id)
                if rows:
                    target_id = rows[0].location_id
                else:
                    first = db.query(Location).order_by(Location.id).first()
                    if not first:
                        raise LocationNotFoundException(message="No location exists to hold the stock")
                    target_id = first.id
            StockStore.apply_location_delta(db, item_id, target_id, delta)
            return

        remaining = -delta
        for row in StockStore.list_location_stock(db, item_id):
            if remaining <= 0:
                break
            take = min(to_decimal(row.quantity), remaining)
            if take > 0:
                StockStore.apply_location_delta(db, item_id, row.location_id, -take)
                remaining -= take

        if remaining > 0:
            integrity_warning(
                "location rows short of aggregate",
                "item",
                item_id,
                {"shortfall": str(remaining)},
            )

    @staticmethod
    def apply_movement(
        db: Session,
        movement: Movement,
        actor: Actor,
        commit: bool = True
    ) -> MovementResult:
        """
        Apply a movement atomically.

        Consume and AutoDeduct clamp at zero; Sell rejects when stock is short.
        With ``commit=False`` the caller owns the transaction and is
        responsible for rollback.
        """
        requested = ReconciliationService._validate(movement, actor)

        try:
            item = StockStore.get_item(db, movement.item_id, lock=True)
            location = None
            if getattr(movement, "location_id", None) is not None:
                location = StockStore.get_location(db, movement.location_id)

            aggregate = to_decimal(item.stock_quantity)
            user_id = getattr(movement, "user_id", None)
            notes = getattr(movement, "notes", None)
            clamped = False

            if isinstance(movement, Receive):
                change_type = ChangeType.RECEIVE
                delta = requested
                notes = notes or f"Received at {location.name}"

            elif isinstance(movement, Consume):
                reason = ConsumeReason.parse(movement.reason)
                change_type = ChangeType.WASTE if reason in WASTE_REASONS else ChangeType.CONSUME
                available = min(StockStore.get_location_stock(db, item.id, location.id), aggregate)
                applied = min(requested, available)
                clamped = applied < requested
                delta = -applied
                notes = notes or f"{reason.value} from {location.name}"

            elif isinstance(movement, Sell):
                change_type = ChangeType.SALE
                if requested > aggregate:
                    raise InsufficientStockException(
                        f"Insufficient stock for {item.name}. Available: {aggregate}, Required: {requested}"
                    )
                if location is not None:
                    at_location = StockStore.get_location_stock(db, item.id, location.id)
                    if requested > at_location:
                        raise InsufficientStockException(
                            f"Insufficient stock for {item.name} at {location.name}. "
                            f"Available: {at_location}, Required: {requested}"
                        )
                delta = -requested
                notes = notes or "Manual sale entry"

            elif isinstance(movement, Adjust):
                change_type = ChangeType.ADJUST
                if location is not None:
                    counted_before = StockStore.get_location_stock(db, item.id, location.id)
                    delta = requested - counted_before
                    if aggregate + delta < 0:
                        integrity_warning(
                            "location count above aggregate",
                            "item",
                            item.id,
                            {"location_id": location.id, "shortfall": str(-(aggregate + delta))},
                        )
                        delta = -aggregate
                        clamped = True
                else:
                    delta = requested - aggregate
                notes = notes or "Physical count adjustment"

            elif isinstance(movement, AutoDeduct):
                change_type = ChangeType.SALE
                applied = min(requested, aggregate)
                clamped = applied < requested
                delta = -applied
                notes = f"Auto-deducted from Square order {movement.external_order_ref}"

            else:
                raise ValidationException(f"Unsupported movement: {type(movement).__name__}")

            if clamped:
                logger.warning(
                    f"{change_type.value} for item {item.id} clamped: requested {requested}, applied {-delta}"
                )

            result = MovementResult(
                item_id=item.id,
                change_type=change_type,
                requested_quantity=requested,
                applied_delta=delta,
                new_stock_quantity=aggregate + delta,
                clamped=clamped,
            )

            if delta == 0:
                if commit:
                    db.commit()
                logger.info(f"{change_type.value} for item {item.id} changed nothing")
                return result

            # stock writes
            if isinstance(movement, Adjust) and location is not None:
                StockStore.set_location_stock(db, item.id, location.id, counted_before + delta)
            elif location is not None:
                StockStore.apply_location_delta(db, item.id, location.id, delta)
            else:
                ReconciliationService._distribute(db, item.id, delta)
            StockStore.apply_aggregate_delta(db, item.id, delta)

            if isinstance(movement, Sell):
                unit_price = to_decimal(movement.unit_price)
                sale = Sale(
                    item_id=item.id,
                    quantity=requested,
                    unit_price=unit_price,
                    total_amount=(requested * unit_price).quantize(Decimal("0.01")),
                    source=movement.source,
                    payment_method=movement.payment_method,
                    customer_name=movement.customer_name,
                    user_id=user_id,
                    notes=movement.notes,
                )
                with storage_guard(f"recording sale of item {item.id}"):
                    db.add(sale)
                    db.flush()
                result.sale_id = sale.id

            # ledger
            try:
                entry = LedgerWriter.append(
                    db,
                    item_id=item.id,
                    change_type=change_type,
                    quantity_delta=delta,
                    unit_cost_at_time=to_decimal(item.cost_per_unit),
                    user_id=user_id,
                    notes=notes,
                    sale_id=result.sale_id,
                )
                result.ledger_entry_id = entry.id if entry else None
            except StorageUnavailableException as e:
                result.ledger_recorded = False
                integrity_warning(
                    "ledger append failed after stock write",
                    "item",
                    item.id,
                    {"change_type": change_type.value, "delta": str(delta), "error": e.message},
                )

            if commit:
                with storage_guard(f"committing {change_type.value} for item {item.id}"):
                    db.commit()

            audit_log(
                change_type.value,
                "item",
                item.id,
                user_id,
                {
                    "delta": str(delta),
                    "stock": str(result.new_stock_quantity),
                    "location_id": location.id if location else None,
                    "sale_id": result.sale_id,
                    "ledger_entry_id": result.ledger_entry_id,
                },
            )
            logger.info(
                f"{change_type.value} applied to item {item.id}: delta {delta}, stock now {result.new_stock_quantity}"
            )
            return result

        except InventoryException:
            if commit:
                db.rollback()
            raise
        except Exception as e:
            if commit:
                db.rollback()
            logger.error(f"Error applying movement to item {movement.item_id}: {str(e)}")
            raise

    # ================================
    # RECONCILIATION JOBS
    # ================================

    @staticmethod
    def reconcile_aggregates(db: Session) -> List[Dict[str, Any]]:
        """Reset every aggregate to the sum of its location rows"""
        try:
            healed = StockStore.resum_all(db)
            with storage_guard("committing reconciliation"):
                db.commit()

            for drift in healed:
                integrity_warning(
                    "aggregate drift healed",
                    "item",
                    drift["item_id"],
                    {
                        "previous": str(drift["previous_quantity"]),
                        "location_total": str(drift["location_total"]),
                    },
                )
            logger.info(f"Reconciliation finished: {len(healed)} item(s) healed")
            return healed

        except InventoryException:
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error(f"Error reconciling aggregates: {str(e)}")
            raise

    @staticmethod
    def audit_ledger(db: Session, item_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Items whose ledger total differs from their aggregate"""
        ledger_totals = db.query(
            InventoryLog.item_id.label("item_id"),
            func.sum(InventoryLog.quantity_change).label("total")
        ).group_by(InventoryLog.item_id).subquery()

        with storage_guard("auditing ledger"):
            query = db.query(Item, ledger_totals.c.total).outerjoin(
                ledger_totals, ledger_totals.c.item_id == Item.id
            )
            if item_id is not None:
                query = query.filter(Item.id == item_id)
            rows = query.order_by(Item.id).all()

        mismatches = []
        for item, total in rows:
            ledger_total = to_decimal(total) if total is not None else ZERO
            stock = to_decimal(item.stock_quantity)
            if ledger_total != stock:
                mismatches.append({
                    "item_id": item.id,
                    "name": item.name,
                    "stock_quantity": stock,
                    "ledger_total": ledger_total,
                    "difference": stock - ledger_total,
                })

        if mismatches:
            logger.warning(f"Ledger audit found {len(mismatches)} mismatched item(s)")
        return mismatches
