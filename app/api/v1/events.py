import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_tenant_id, require_admin
from app.core.errors import InventoryError
from app.models.event import Event
from app.schemas.event import EventRequest, EventResponse, EventUpdateRequest
from app.schemas.response import SuccessResponse
from app.services.event_service import (
    create_event,
    delete_event,
    get_event_with_details,
    list_events,
    update_event,
)

router = APIRouter()
log = logging.getLogger("uvicorn")


def _event_data(event: Event, inventory=()) -> dict:
    return EventResponse(
        id=str(event.id),
        name=event.name,
        description=event.description,
        start_date=str(event.start_date),
        end_date=str(event.end_date),
        location=event.location,
        status=event.status,
        quote_id=str(event.quote_id) if event.quote_id else None,
        inventory=list(inventory),
    ).model_dump()


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_event_endpoint(payload: EventRequest, tenant_id: UUID = Depends(require_admin)):
    """
    Creates an event. With a quote_id the quote's lines are copied into the
    event's inventory and the event defaults to confirmed.
    """
    try:
        event = await create_event(
            tenant_id,
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            description=payload.description,
            location=payload.location,
            quote_id=payload.quote_id,
            status=payload.status,
        )
        return SuccessResponse(data=_event_data(event))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating event: {e}")
        raise HTTPException(status_code=500, detail="Failed to create event.")


@router.get("/", response_model=SuccessResponse)
async def list_events_endpoint(tenant_id: UUID = Depends(get_tenant_id)):
    events = await list_events(tenant_id)
    return SuccessResponse(data=[_event_data(e) for e in events])


@router.get("/{event_id}", response_model=SuccessResponse)
async def get_event_endpoint(event_id: UUID, tenant_id: UUID = Depends(get_tenant_id)):
    try:
        event, inventory = await get_event_with_details(tenant_id, event_id)
        return SuccessResponse(data=_event_data(event, inventory))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error fetching event {event_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch event.")


@router.patch("/{event_id}", response_model=SuccessResponse)
async def update_event_endpoint(event_id: UUID, payload: EventUpdateRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        event = await update_event(
            tenant_id,
            event_id,
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            description=payload.description,
            location=payload.location,
            status=payload.status,
        )
        return SuccessResponse(data=_event_data(event))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating event {event_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update event.")


@router.delete("/{event_id}", response_model=SuccessResponse)
async def delete_event_endpoint(event_id: UUID, tenant_id: UUID = Depends(require_admin)):
    try:
        await delete_event(tenant_id, event_id)
        return SuccessResponse(data={"event_id": str(event_id)})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error deleting event {event_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete event.")
