# easy_ops/routes/inventory.py
from dataclasses import asdict
from fastapi import APIRouter, Depends, Query, HTTPException, status, Path, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from easy_ops.core.database import get_db
from easy_ops.core.auth_dependencies import get_current_account, require_role
from easy_ops.core.security import Actor, UserRole
from easy_ops.core.exceptions import InventoryException
from easy_ops.schemas.inventory import (
    ItemCreate, ItemUpdate, ItemOut, ItemStockOut,
    ReceiveRequest, ConsumeRequest, SellRequest, AdjustRequest, MovementResultOut,
    AggregateDriftOut, LedgerAuditOut
)
from easy_ops.schemas.ledger import ActivityPage
from easy_ops.services.inventory import InventoryService
from easy_ops.services.ledger import LedgerWriter
from easy_ops.services.reconciliation import (
    ReconciliationService, MovementResult, Receive, Consume, Sell, Adjust, ConsumeReason
)


inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _movement_out(result: MovementResult) -> dict:
    body = asdict(result)
    body["change_type"] = result.change_type.value if result.change_type else None
    return body


# ================================
# ITEM ROUTES
# ================================

@inventory_router.post("/items",
    response_model=ItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create item",
    description="Add an item to the catalog, optionally receiving its initial stock"
)
def create_item(
    data: ItemCreate,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Create a new item.

    - **name**: Item name (required)
    - **barcode**: Square catalog variation id (optional)
    - **barcode_number**: SKU/UPC; generated when omitted
    - **initial_quantity**: Stock to receive right away (requires **location_id**)
    """
    try:
        return InventoryService.create_item(db, data, current_account)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/items",
    response_model=List[ItemOut],
    summary="List items",
    description="Get list of items with optional filtering"
)
def list_items(
    search: Optional[str] = Query(None, description="Search by name or barcode"),
    category: Optional[str] = Query(None, description="Filter by category"),
    low_stock_only: bool = Query(False, description="Only items at or below their alert threshold"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=200, description="Items per page"),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        items, total = InventoryService.list_items(
            db, search=search, category=category, low_stock_only=low_stock_only, skip=skip, limit=limit
        )
        return items
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/items/lookup/{code}",
    response_model=ItemOut,
    summary="Scan lookup",
    description="Find an item by barcode number or POS barcode"
)
def lookup_item(
    code: str = Path(..., description="Scanned code"),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.get_item_by_code(db, code)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/items/{item_id}",
    response_model=ItemOut,
    summary="Get item details"
)
def get_item(
    item_id: int = Path(..., description="Item ID", gt=0),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.get_item(db, item_id)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.put("/items/{item_id}",
    response_model=ItemOut,
    summary="Update item",
    description="Update descriptive fields; stock changes go through receive/consume/sell/adjust"
)
def update_item(
    data: ItemUpdate,
    item_id: int = Path(..., description="Item ID", gt=0),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.update_item(db, item_id, data, current_account)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.delete("/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete item",
    description="Delete an item with its stock rows, ledger history and dates (manager/admin)"
)
def delete_item(
    item_id: int = Path(..., description="Item ID", gt=0),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        InventoryService.delete_item(db, item_id, current_account)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/items/{item_id}/stock",
    response_model=ItemStockOut,
    summary="Item stock by location"
)
def item_stock(
    item_id: int = Path(..., description="Item ID", gt=0),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.item_stock(db, item_id)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/items/{item_id}/history",
    response_model=ActivityPage,
    summary="Item ledger history",
    description="Ledger entries of one item, newest first"
)
def item_history(
    item_id: int = Path(..., description="Item ID", gt=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        InventoryService.get_item(db, item_id)
        entries, total = LedgerWriter.item_history(db, item_id, limit=limit, offset=skip)
        return {"total": total, "items": entries}
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ================================
# STOCK MOVEMENT ROUTES
# ================================

@inventory_router.post("/receive",
    response_model=MovementResultOut,
    summary="Receive stock",
    description="Add stock to a location"
)
def receive_stock(
    data: ReceiveRequest,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Receive stock.

    - **item_id**: Item receiving stock
    - **location_id**: Where the stock is put
    - **quantity**: Amount received (> 0)
    """
    try:
        result = ReconciliationService.apply_movement(
            db,
            Receive(
                item_id=data.item_id,
                location_id=data.location_id,
                quantity=data.quantity,
                user_id=current_account.user_id,
                notes=data.notes
            ),
            current_account
        )
        return _movement_out(result)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.post("/consume",
    response_model=MovementResultOut,
    summary="Consume stock",
    description="Remove stock from a location for use or waste; clamps at zero"
)
def consume_stock(
    data: ConsumeRequest,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Consume stock.

    - **reason**: Consumed, Wasted, Expired, Damaged or Other.
      Wasted, Expired and Damaged are booked as WASTE.
    - **quantity**: Requested amount; at most what the location holds is removed
    """
    try:
        result = ReconciliationService.apply_movement(
            db,
            Consume(
                item_id=data.item_id,
                location_id=data.location_id,
                quantity=data.quantity,
                reason=ConsumeReason.parse(data.reason),
                user_id=current_account.user_id,
                notes=data.notes
            ),
            current_account
        )
        return _movement_out(result)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.post("/sell",
    response_model=MovementResultOut,
    summary="Record a sale",
    description="Record a manual sale; rejected when stock is short"
)
def sell_stock(
    data: SellRequest,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        result = ReconciliationService.apply_movement(
            db,
            Sell(
                item_id=data.item_id,
                quantity=data.quantity,
                unit_price=data.unit_price,
                source=data.source,
                payment_method=data.payment_method,
                customer_name=data.customer_name,
                user_id=current_account.user_id,
                location_id=data.location_id,
                notes=data.notes
            ),
            current_account
        )
        return _movement_out(result)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.post("/adjust",
    response_model=MovementResultOut,
    summary="Physical count adjustment",
    description="Set the counted quantity of an item, item-wide or at one location"
)
def adjust_stock(
    data: AdjustRequest,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        result = ReconciliationService.apply_movement(
            db,
            Adjust(
                item_id=data.item_id,
                actual_quantity=data.actual_quantity,
                user_id=current_account.user_id,
                notes=data.notes,
                location_id=data.location_id
            ),
            current_account
        )
        return _movement_out(result)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ================================
# LEDGER & RECONCILIATION ROUTES
# ================================

@inventory_router.get("/activity",
    response_model=ActivityPage,
    summary="Activity feed",
    description="Recent ledger entries across all items"
)
def recent_activity(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=200),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        entries, total = LedgerWriter.recent_activity(db, limit=limit, offset=skip)
        return {"total": total, "items": entries}
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.post("/reconcile",
    response_model=List[AggregateDriftOut],
    summary="Heal aggregate drift",
    description="Reset every item's aggregate stock to the sum of its location stock"
)
def reconcile(
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        return ReconciliationService.reconcile_aggregates(db)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@inventory_router.get("/ledger-audit",
    response_model=List[LedgerAuditOut],
    summary="Ledger audit",
    description="Items whose ledger total does not match their stock"
)
def ledger_audit(
    item_id: Optional[int] = Query(None, gt=0),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        return ReconciliationService.audit_ledger(db, item_id=item_id)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
