import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.api.deps import get_tenant_id, require_admin
from app.audit.audit_utility import find_ledger_drift
from app.core.errors import ConflictError, InventoryError, ValidationError
from app.models.inventory import InventoryItem, MaintenanceLog
from app.schemas.inventory import (
    AvailabilityResponse,
    ItemCreateRequest,
    ItemResponse,
    ItemUpdateRequest,
    MaintenanceLogRequest,
    StockUpdateRequest,
    UnitStatusUpdate,
    UnitsCreateRequest,
)
from app.schemas.response import ItemCreateResult, SuccessResponse
from app.services.availability import DateContext, get_item_availability_breakdown
from app.services.inventory_service import (
    add_maintenance_log,
    add_units,
    archive_item,
    create_item,
    list_maintenance_logs,
    search_inventory_items,
    update_item,
    update_stock,
    update_unit_status,
)
from app.services.validation import parse_date_range

log = logging.getLogger("uvicorn")

router = APIRouter()


def _item_data(item: InventoryItem) -> dict:
    return ItemResponse(
        id=str(item.id),
        name=item.name,
        is_serialized=item.is_serialized,
        price=str(item.price),
        active=item.active,
    ).model_dump()


def _maintenance_data(entry: MaintenanceLog) -> dict:
    return {
        "id": str(entry.id),
        "item_id": str(entry.item_id),
        "note": entry.note,
        "created_at": str(entry.created_at),
    }


def _date_context(quote_id: Optional[UUID], start_date: Optional[str], end_date: Optional[str]) -> Optional[DateContext]:
    if not start_date and not end_date:
        return None
    start, end = parse_date_range(start_date, end_date)
    return DateContext(start_date=start, end_date=end, quote_id=quote_id)


@router.post("/items", status_code=status.HTTP_201_CREATED, response_model=ItemCreateResult)
async def create_item_endpoint(item_data: ItemCreateRequest, tenant_id: UUID = Depends(require_admin)):
    """
    Creates an inventory item. Failures come back as a typed error kind
    (DUPLICATE_NAME, VALIDATION_ERROR, SERVER_ERROR) rather than a message.
    """
    try:
        item = await create_item(tenant_id, item_data.name, item_data.is_serialized, item_data.price)
        return ItemCreateResult(ok=True, item_id=str(item.id))
    except ConflictError:
        body = ItemCreateResult(ok=False, error="DUPLICATE_NAME")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump())
    except ValidationError:
        body = ItemCreateResult(ok=False, error="VALIDATION_ERROR")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())
    except Exception as e:
        log.error(f"Error creating item: {e}")
        body = ItemCreateResult(ok=False, error="SERVER_ERROR")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())


@router.patch("/items/{item_id}", response_model=SuccessResponse)
async def update_item_endpoint(item_id: UUID, item_data: ItemUpdateRequest, tenant_id: UUID = Depends(require_admin)):
    """Renames / reprices an item; draft quotes pick up the new price."""
    try:
        item = await update_item(tenant_id, item_id, item_data.name, item_data.price)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update item.")


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def archive_item_endpoint(item_id: UUID, tenant_id: UUID = Depends(require_admin)):
    """Soft-deletes an item: renamed with an archive stamp and deactivated."""
    try:
        item = await archive_item(tenant_id, item_id)
        return SuccessResponse(data=_item_data(item))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error archiving item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete item.")


@router.post("/items/{item_id}/units", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_units_endpoint(item_id: UUID, payload: UnitsCreateRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        units = await add_units(tenant_id, item_id, payload.count, payload.serial_prefix)
        return SuccessResponse(data={"unit_ids": [str(u.id) for u in units]})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adding units to item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add units.")


@router.put("/items/{item_id}/stock", response_model=SuccessResponse)
async def update_stock_endpoint(item_id: UUID, payload: StockUpdateRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        stock = await update_stock(tenant_id, item_id, payload.total_quantity, payload.out_of_service_quantity)
        return SuccessResponse(data={
            "item_id": str(item_id),
            "total_quantity": stock.total_quantity,
            "out_of_service_quantity": stock.out_of_service_quantity,
            "available": stock.available_quantity,
        })
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating stock for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update stock.")


@router.patch("/units/{unit_id}/status", response_model=SuccessResponse)
async def update_unit_status_endpoint(unit_id: UUID, payload: UnitStatusUpdate, tenant_id: UUID = Depends(require_admin)):
    """Maintenance workflow: move a unit between available / out / maintenance."""
    try:
        unit = await update_unit_status(tenant_id, unit_id, payload.status)
        return SuccessResponse(data={"unit_id": str(unit.id), "status": unit.status.value})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating unit {unit_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update unit status.")


@router.post("/items/{item_id}/maintenance-logs", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_maintenance_log_endpoint(item_id: UUID, payload: MaintenanceLogRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        entry = await add_maintenance_log(tenant_id, item_id, payload.note)
        return SuccessResponse(data=_maintenance_data(entry))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adding maintenance log to item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add maintenance log.")


@router.get("/items/{item_id}/maintenance-logs", response_model=SuccessResponse)
async def list_maintenance_logs_endpoint(item_id: UUID, tenant_id: UUID = Depends(get_tenant_id)):
    try:
        entries = await list_maintenance_logs(tenant_id, item_id)
        return SuccessResponse(data=[_maintenance_data(e) for e in entries])
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error fetching maintenance logs for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch maintenance logs.")


@router.get("/items/{item_id}/availability", response_model=SuccessResponse)
async def get_availability_endpoint(
    item_id: UUID,
    quote_id: Optional[UUID] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    tenant_id: UUID = Depends(get_tenant_id),
):
    """Availability breakdown; pass a date range (and the quote being edited) for effective availability."""
    try:
        context = _date_context(quote_id, start_date, end_date)
        breakdown = await get_item_availability_breakdown(tenant_id, item_id, context)
        return SuccessResponse(data=AvailabilityResponse(**breakdown.to_dict()).model_dump())
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error fetching availability for item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch availability.")


@router.get("/search", response_model=SuccessResponse)
async def search_items_endpoint(
    q: str = "",
    quote_id: Optional[UUID] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    tenant_id: UUID = Depends(get_tenant_id),
):
    try:
        context = _date_context(quote_id, start_date, end_date)
        results = await search_inventory_items(tenant_id, q, context)
        return SuccessResponse(data=results)
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error searching items for '{q}': {e}")
        raise HTTPException(status_code=500, detail="Server failed to search inventory.")


@router.get("/ledger/drift", response_model=SuccessResponse)
async def ledger_drift_endpoint(quote_id: Optional[UUID] = None, tenant_id: UUID = Depends(require_admin)):
    """Ledger operations that were only partly applied, for reconciliation."""
    entries = await find_ledger_drift(tenant_id, quote_id)
    return SuccessResponse(data=[
        {
            "item_id": str(e.item_id),
            "quote_id": str(e.quote_id) if e.quote_id else None,
            "action": e.action.value,
            "requested": e.requested,
            "applied": e.applied,
            "reason": e.reason,
            "created_at": str(e.created_at),
        }
        for e in entries
    ])
