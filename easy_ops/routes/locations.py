# easy_ops/routes/locations.py
from fastapi import APIRouter, Depends, HTTPException, status, Path, Response
from sqlalchemy.orm import Session
from typing import List

from easy_ops.core.database import get_db
from easy_ops.core.auth_dependencies import get_current_account, require_role
from easy_ops.core.security import Actor, UserRole
from easy_ops.core.exceptions import InventoryException, NotFoundException, BusinessRuleException
from easy_ops.schemas.inventory import LocationCreate, LocationUpdate, LocationOut, LocationWithCountOut
from easy_ops.services.inventory import InventoryService


location_router = APIRouter(prefix="/locations", tags=["Locations"])


@location_router.get("",
    response_model=List[LocationWithCountOut],
    summary="List locations",
    description="All locations, default first, with the number of stocked items"
)
def list_locations(
    current_account: Actor = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.list_locations(db)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@location_router.post("",
    response_model=LocationOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create location"
)
def create_location(
    data: LocationCreate,
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    """
    Create a new location.

    - **name**: Location name (required, unique)
    - **is_default**: Make it the default location (replaces the current default)
    """
    try:
        return InventoryService.create_location(db, data, current_account)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@location_router.put("/{location_id}",
    response_model=LocationOut,
    summary="Rename location"
)
def rename_location(
    data: LocationUpdate,
    location_id: int = Path(..., description="Location ID", gt=0),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.rename_location(db, location_id, data, current_account)
    except InventoryException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@location_router.post("/{location_id}/default",
    response_model=LocationOut,
    summary="Set default location",
    description="Make this the single default location"
)
def set_default_location(
    location_id: int = Path(..., description="Location ID", gt=0),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        return InventoryService.set_default_location(db, location_id, current_account)
    except NotFoundException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@location_router.delete("/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete location",
    description="Delete a location that holds no stock"
)
def delete_location(
    location_id: int = Path(..., description="Location ID", gt=0),
    current_account: Actor = Depends(require_role([UserRole.MANAGER])),
    db: Session = Depends(get_db)
):
    try:
        InventoryService.delete_location(db, location_id, current_account)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except NotFoundException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except BusinessRuleException as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
