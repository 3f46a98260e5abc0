# easy_ops/routes/reports.py
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, Query, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from easy_ops.core.database import get_db
from easy_ops.core.auth_dependencies import get_current_account
from easy_ops.core.security import Actor
from easy_ops.core.exceptions import InventoryException
from easy_ops.schemas.reports import (
    InventoryValueReport, CogsMetrics, LowStockItem, TopItem,
    WasteByCategory, SalesToday, DashboardMetrics
)
from easy_ops.services.reports import ReportService


report_router = APIRouter(prefix="/reports", tags=["Reports"])


def _period(start: Optional[datetime], end: Optional[datetime], days: int = 30) -> Tuple[datetime, datetime]:
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=days)
    return start, end


@report_router.get("/dashboard",
    response_model=DashboardMetrics,
    summary="Dashboard metrics",
    description="Inventory value, stock health, today's sales and 30-day profitability"
)
def dashboard(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return ReportService.dashboard_metrics(db)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/inventory-value",
    response_model=InventoryValueReport,
    summary="Inventory value"
)
def inventory_value(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return {
            "total_value": ReportService.inventory_value(db),
            "by_category": ReportService.inventory_value_by_category(db),
        }
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/cogs",
    response_model=CogsMetrics,
    summary="COGS and gross profit",
    description="Cost of goods sold, revenue, gross profit and margin for a period (default: last 30 days)"
)
def cogs(
    start: Optional[datetime] = Query(None, description="Period start (UTC)"),
    end: Optional[datetime] = Query(None, description="Period end (UTC)"),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        start, end = _period(start, end)
        return ReportService.cogs_metrics(db, start, end)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/low-stock",
    response_model=List[LowStockItem],
    summary="Low stock items"
)
def low_stock(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return ReportService.low_stock_items(db)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/top-items",
    response_model=List[TopItem],
    summary="Top movers",
    description="Items ranked by sold plus consumed quantity"
)
def top_items(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        start, end = _period(start, end)
        return ReportService.top_items_by_volume(db, start, end, limit=limit)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/waste",
    response_model=List[WasteByCategory],
    summary="Waste by category"
)
def waste(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        start, end = _period(start, end)
        return ReportService.waste_by_period(db, start, end)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@report_router.get("/sales-today",
    response_model=SalesToday,
    summary="Today's sales"
)
def sales_today(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return ReportService.sales_today(db)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
