import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_tenant_id, require_admin
from app.core.errors import InventoryError, NotFoundError
from app.models.quote import Quote, QuoteItem
from app.schemas.quote import (
    ConfirmationResponse,
    LedgerFailureResponse,
    QuoteItemCreateRequest,
    QuoteItemResponse,
    QuoteItemUpdateRequest,
    QuoteRequest,
    QuoteResponse,
)
from app.schemas.response import SuccessResponse
from app.services.event_service import create_event_for_accepted_quote
from app.services.quote_service import (
    add_quote_item,
    confirm_quotation,
    create_quote,
    delete_quote,
    delete_quote_item,
    get_quote_risk,
    get_quote_with_items,
    list_quotes,
    update_quote,
    update_quote_item,
)

router = APIRouter()
log = logging.getLogger("uvicorn")


def _line_data(line: QuoteItem) -> dict:
    """Lines are always loaded with their item."""
    return QuoteItemResponse(
        id=str(line.id),
        item_id=str(line.item_id),
        item_name=line.item.name,
        item_is_serialized=line.item.is_serialized,
        quantity=line.quantity,
        unit_price_snapshot=str(line.unit_price_snapshot),
    ).model_dump()


def _quote_data(quote: Quote, lines=()) -> dict:
    return QuoteResponse(
        id=str(quote.id),
        name=quote.name,
        start_date=str(quote.start_date),
        end_date=str(quote.end_date),
        status=quote.status,
        items=[_line_data(line) for line in lines],
    ).model_dump()


def _failures_data(failures) -> list:
    return [
        LedgerFailureResponse(
            item_id=str(f.item_id), item_name=f.item_name, requested=f.requested, applied=f.applied, message=f.message
        ).model_dump()
        for f in failures
    ]


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_quote_endpoint(payload: QuoteRequest, tenant_id: UUID = Depends(require_admin)):
    """Creates a draft quote for a rental window."""
    try:
        quote = await create_quote(tenant_id, payload.name, payload.start_date, payload.end_date)
        return SuccessResponse(data=_quote_data(quote))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating quote: {e}")
        raise HTTPException(status_code=500, detail="Failed to create quote.")


@router.get("/", response_model=SuccessResponse)
async def list_quotes_endpoint(tenant_id: UUID = Depends(get_tenant_id)):
    quotes = await list_quotes(tenant_id)
    return SuccessResponse(data=[_quote_data(q) for q in quotes])


@router.get("/{quote_id}", response_model=SuccessResponse)
async def get_quote_endpoint(quote_id: UUID, tenant_id: UUID = Depends(get_tenant_id)):
    """Fetches a quote with its line items."""
    try:
        quote = await get_quote_with_items(tenant_id, quote_id)
        if not quote:
            raise NotFoundError("Quote not found.")
        return SuccessResponse(data=_quote_data(quote, quote.items))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error fetching quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch quote.")


@router.patch("/{quote_id}", response_model=SuccessResponse)
async def update_quote_endpoint(quote_id: UUID, payload: QuoteRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        quote = await update_quote(tenant_id, quote_id, payload.name, payload.start_date, payload.end_date)
        return SuccessResponse(data=_quote_data(quote))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update quote.")


@router.delete("/{quote_id}", response_model=SuccessResponse)
async def delete_quote_endpoint(quote_id: UUID, tenant_id: UUID = Depends(require_admin)):
    """Deletes a quote; an accepted quote gives its inventory back first."""
    try:
        result = await delete_quote(tenant_id, quote_id)
        return SuccessResponse(data={
            "quote_id": str(result.quote_id),
            "released": result.released,
            "ledger_failures": _failures_data(result.ledger_failures),
        })
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error deleting quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete quote.")


@router.post("/{quote_id}/items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_quote_item_endpoint(quote_id: UUID, payload: QuoteItemCreateRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        line = await add_quote_item(tenant_id, quote_id, payload.item_id, payload.quantity, payload.unit_price)
        return SuccessResponse(data=_line_data(line))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error adding item to quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add item to quote.")


@router.patch("/items/{quote_item_id}", response_model=SuccessResponse)
async def update_quote_item_endpoint(quote_item_id: UUID, payload: QuoteItemUpdateRequest, tenant_id: UUID = Depends(require_admin)):
    try:
        line = await update_quote_item(tenant_id, quote_item_id, payload.quantity)
        return SuccessResponse(data=_line_data(line))
    except InventoryError as e:
        log.error(f"Error updating quote item {quote_item_id}: {e.message}")
        raise
    except Exception as e:
        log.error(f"Error updating quote item {quote_item_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update quote item.")


@router.delete("/items/{quote_item_id}", response_model=SuccessResponse)
async def delete_quote_item_endpoint(quote_item_id: UUID, tenant_id: UUID = Depends(require_admin)):
    try:
        failures = await delete_quote_item(tenant_id, quote_item_id)
        return SuccessResponse(data={"ledger_failures": _failures_data(failures)})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error deleting quote item {quote_item_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete quote item.")


@router.post("/{quote_id}/confirm", response_model=SuccessResponse)
async def confirm_quote_endpoint(quote_id: UUID, tenant_id: UUID = Depends(require_admin)):
    """
    Accepts a draft quote: checks every item against effective availability,
    takes the quantities out of inventory and creates the event.
    """
    try:
        result = await confirm_quotation(tenant_id, quote_id)
        log.info(f"Quote {quote_id} confirmed.")
        data = ConfirmationResponse(
            quote_id=str(result.quote.id),
            status=result.quote.status,
            event_id=str(result.event_id) if result.event_id else None,
            ledger_failures=_failures_data(result.ledger_failures),
        ).model_dump()
        return SuccessResponse(data=data)
    except InventoryError as e:
        log.error(f"Quote {quote_id} not confirmed: {e.message}")
        raise
    except Exception as e:
        log.error(f"Error confirming quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to confirm quote.")


@router.get("/{quote_id}/risk", response_model=SuccessResponse)
async def quote_risk_endpoint(quote_id: UUID, tenant_id: UUID = Depends(get_tenant_id)):
    """Green / yellow / red indicator for the whole quote, with per-item breakdowns."""
    try:
        risk, breakdowns = await get_quote_risk(tenant_id, quote_id)
        return SuccessResponse(data={
            "risk": risk.value,
            "items": [b.to_dict() for b in breakdowns.values()],
        })
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error computing risk for quote {quote_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to compute quote risk.")


@router.post("/{quote_id}/event", response_model=SuccessResponse)
async def convert_quote_endpoint(quote_id: UUID, tenant_id: UUID = Depends(require_admin)):
    """Creates the event for an accepted quote, or returns the one it already has."""
    try:
        event, created = await create_event_for_accepted_quote(tenant_id, quote_id)
        return SuccessResponse(data={"event_id": str(event.id), "created": created})
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error converting quote {quote_id} to event: {e}")
        raise HTTPException(status_code=500, detail="Failed to create event for quote.")
