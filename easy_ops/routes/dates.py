# easy_ops/routes/dates.py
from datetime import date
from fastapi import APIRouter, Depends, Query, HTTPException, status, Path, Response
from sqlalchemy.orm import Session
from typing import List, Optional

from easy_ops.core.database import get_db
from easy_ops.core.auth_dependencies import get_current_account, require_role
from easy_ops.core.security import Actor, UserRole
from easy_ops.core.exceptions import InventoryException
from easy_ops.schemas.dates import (
    GeneralDateCreate, GeneralDateOut, ItemDateCreate, ItemDateOut, ReminderResult
)
from easy_ops.services.reminders import ReminderService


dates_router = APIRouter(tags=["Dates & Reminders"])


# ================================
# IMPORTANT DATES
# ================================

@dates_router.get("/dates/general", response_model=List[GeneralDateOut], summary="List general dates")
def list_general_dates(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    return ReminderService.list_general_dates(db)


@dates_router.post("/dates/general",
    response_model=GeneralDateOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create general date"
)
def create_general_date(
    data: GeneralDateCreate,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return ReminderService.create_general_date(db, data)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@dates_router.delete("/dates/general/{date_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete general date"
)
def delete_general_date(
    date_id: int = Path(..., gt=0),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        ReminderService.delete_general_date(db, date_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@dates_router.get("/dates/items", response_model=List[ItemDateOut], summary="List item dates")
def list_item_dates(
    item_id: Optional[int] = Query(None, gt=0, description="Only dates of this item"),
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    return ReminderService.list_item_dates(db, item_id=item_id)


@dates_router.post("/dates/items",
    response_model=ItemDateOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create item date",
    description="Attach a date (expiry, service, ...) to an item"
)
def create_item_date(
    data: ItemDateCreate,
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return ReminderService.create_item_date(db, data)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ================================
# REMINDER SWEEP
# ================================

@dates_router.post("/reminders/run",
    response_model=List[ReminderResult],
    summary="Send due reminders",
    description="Email the manager about upcoming dates; meant to be hit by a scheduler"
)
def run_reminders(
    today: Optional[date] = Query(None, description="Override today's date"),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        return ReminderService.run_reminders(db, today=today)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
