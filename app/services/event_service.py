import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.transactions import in_transaction

from app.core.errors import NotFoundError, ValidationError
from app.models.event import Event, EventInventory, EventStatus
from app.models.quote import Quote, QuoteItem, QuoteStatus
from app.services.validation import parse_date_range, require_text

log = logging.getLogger(__name__)


async def copy_quote_items_to_event(tenant_id: UUID, event_id: UUID, quote_id: UUID, conn: Any = None) -> int:
    """
    Copies a quote's lines into the event's inventory, once. If the event
    already has inventory rows nothing is copied or merged. Returns the number
    of rows created.
    """
    if await EventInventory.filter(event_id=event_id, tenant_id=tenant_id).using_db(conn).exists():
        return 0

    quote_items = await QuoteItem.filter(quote_id=quote_id, quote__tenant_id=tenant_id).using_db(conn)
    if not quote_items:
        log.info(f"No quote items to copy from quote {quote_id}.")
        return 0

    await EventInventory.bulk_create(
        [
            EventInventory(
                tenant_id=tenant_id,
                event_id=event_id,
                item_id=qi.item_id,
                quantity=qi.quantity,
                unit_price_snapshot=qi.unit_price_snapshot,
            )
            for qi in quote_items
        ],
        using_db=conn
    )
    log.info(f"Copied {len(quote_items)} items from quote {quote_id} to event {event_id}.")
    return len(quote_items)


async def create_event(
    tenant_id: UUID,
    name: str,
    start_date: Any,
    end_date: Any,
    description: Optional[str] = None,
    location: Optional[str] = None,
    quote_id: Optional[UUID] = None,
    status: Optional[EventStatus] = None,
) -> Event:
    name = require_text(name, "Name")
    start, end = parse_date_range(start_date, end_date)
    if status is None:
        status = EventStatus.CONFIRMED if quote_id else EventStatus.DRAFT

    async with in_transaction() as conn:
        if quote_id and not await Quote.filter(id=quote_id, tenant_id=tenant_id).using_db(conn).exists():
            raise NotFoundError("Quote not found.")

        event = await Event.create(
            tenant_id=tenant_id,
            name=name,
            description=(description or "").strip() or None,
            start_date=start,
            end_date=end,
            location=(location or "").strip() or None,
            quote_id=quote_id,
            status=status,
            using_db=conn
        )
        if quote_id:
            await copy_quote_items_to_event(tenant_id, event.id, quote_id, conn)

    return event


async def update_event(
    tenant_id: UUID,
    event_id: UUID,
    name: str,
    start_date: Any,
    end_date: Any,
    description: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
) -> Event:
    """Edits an event's details. The status, when given, must be one of the event statuses."""
    name = require_text(name, "Name")
    start, end = parse_date_range(start_date, end_date)
    new_status = None
    if status is not None:
        try:
            new_status = EventStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid event status: {status}")

    async with in_transaction() as conn:
        event = await Event.get_or_none(id=event_id, tenant_id=tenant_id).using_db(conn)
        if not event:
            raise NotFoundError("Event not found.")

        event.name = name
        event.description = (description or "").strip() or None
        event.start_date = start
        event.end_date = end
        event.location = (location or "").strip() or None
        if new_status is not None:
            event.status = new_status
        await event.save(using_db=conn)

    log.info(f"Event {event.id} updated.")
    return event


async def create_event_for_accepted_quote(tenant_id: UUID, quote_id: UUID) -> Tuple[Event, bool]:
    """
    Returns the quote's event, creating it if the quote doesn't have one yet.
    The boolean is True when a new event was created.
    """
    quote = await Quote.get_or_none(id=quote_id, tenant_id=tenant_id)
    if not quote:
        raise NotFoundError("Quote not found.")
    if quote.status != QuoteStatus.ACCEPTED:
        raise ValidationError("Only accepted quotes can be converted to events.")

    existing = await Event.filter(quote_id=quote.id, tenant_id=tenant_id).first()
    if existing:
        return existing, False

    event = await create_event(
        tenant_id,
        name=quote.name,
        description=f"Event created from quote: {quote.name}",
        start_date=quote.start_date,
        end_date=quote.end_date,
        quote_id=quote.id,
        status=EventStatus.CONFIRMED,
    )
    return event, True


async def list_events(tenant_id: UUID) -> List[Event]:
    return await Event.filter(tenant_id=tenant_id).order_by("-start_date")


async def get_event_with_details(tenant_id: UUID, event_id: UUID) -> Tuple[Event, List[Dict[str, Any]]]:
    """
    Event plus its inventory with item names. An event linked to a quote but
    with no inventory yet gets the quote's lines copied in first.
    """
    event = await Event.get_or_none(id=event_id, tenant_id=tenant_id)
    if not event:
        raise NotFoundError("Event not found.")

    if event.quote_id and not await EventInventory.filter(event_id=event.id, tenant_id=tenant_id).exists():
        log.info(f"Event {event.id} has quote {event.quote_id} but no inventory, copying items.")
        async with in_transaction() as conn:
            await copy_quote_items_to_event(tenant_id, event.id, event.quote_id, conn)

    rows = await EventInventory.filter(event_id=event.id, tenant_id=tenant_id).prefetch_related("item")
    inventory = [
        {
            "id": str(row.id),
            "item_id": str(row.item_id),
            "item_name": row.item.name,
            "quantity": row.quantity,
            "unit_price_snapshot": str(row.unit_price_snapshot),
            "notes": row.notes,
        }
        for row in rows
    ]
    return event, inventory


async def delete_event(tenant_id: UUID, event_id: UUID) -> None:
    async with in_transaction() as conn:
        event = await Event.get_or_none(id=event_id, tenant_id=tenant_id).using_db(conn)
        if not event:
            raise NotFoundError("Event not found.")
        await EventInventory.filter(event_id=event.id).using_db(conn).delete()
        await event.delete(using_db=conn)
