import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.transactions import in_transaction

from app.core.errors import (
    AvailabilityError,
    LedgerMutationError,
    LedgerSetupError,
    NotFoundError,
    ValidationError,
)
from app.models.inventory import InventoryItem
from app.models.event import Event
from app.models.quote import Quote, QuoteItem, QuoteStatus
from app.services import ledger
from app.services.availability import (
    AvailabilityBreakdown,
    DateContext,
    QuoteLine,
    RiskLevel,
    calculate_quote_risk,
    get_breakdown_for_item,
)
from app.services.event_service import create_event_for_accepted_quote
from app.services.reservations import get_quote_claims
from app.services.validation import parse_date_range, parse_price, parse_quantity, require_text

log = logging.getLogger(__name__)


@dataclass
class LedgerFailure:
    """A consume/release that the ledger could only partly apply."""
    item_id: UUID
    item_name: str
    requested: int
    applied: int
    message: str


@dataclass
class ConfirmationResult:
    quote: Quote
    event_id: Optional[UUID] = None
    ledger_failures: List[LedgerFailure] = field(default_factory=list)


@dataclass
class QuoteDeletionResult:
    quote_id: UUID
    released: int = 0
    ledger_failures: List[LedgerFailure] = field(default_factory=list)


def _date_context(quote: Quote) -> DateContext:
    return DateContext(start_date=quote.start_date, end_date=quote.end_date, quote_id=quote.id)


def _ensure_available(item: InventoryItem, requested: int, available: int) -> None:
    if requested > available:
        available = max(0, available)
        raise AvailabilityError(
            f"Insufficient availability for '{item.name}'. Only {available} available.",
            shortfall=requested - available,
            item_names=[item.name],
        )


async def _get_quote(tenant_id: UUID, quote_id: UUID, conn: Any = None, lock: bool = False) -> Quote:
    query = Quote.filter(id=quote_id, tenant_id=tenant_id).using_db(conn)
    if lock:
        query = query.select_for_update()
    quote = await query.first()
    if not quote:
        raise NotFoundError("Quote not found.")
    return quote


async def _get_quote_item(tenant_id: UUID, quote_item_id: UUID, conn: Any) -> QuoteItem:
    quote_item = await QuoteItem.get_or_none(
        id=quote_item_id, quote__tenant_id=tenant_id
    ).prefetch_related("item").using_db(conn)
    if not quote_item:
        raise NotFoundError("Quote item not found.")
    return quote_item


async def _apply_leniently(op, item: InventoryItem, quantity: int, reason: str, quote_id: UUID, conn: Any,
                           failures: List[LedgerFailure]) -> int:
    """Batch policy: a ledger op that can't be fully applied is logged and collected, never fatal."""
    try:
        return await op(item, quantity, reason, quote_id=quote_id, conn=conn)
    except LedgerMutationError as e:
        log.warning(f"Ledger drift on item {item.id} for quote {quote_id}: {e.message}")
        failures.append(LedgerFailure(
            item_id=item.id, item_name=item.name, requested=e.requested, applied=e.applied, message=e.message
        ))
        return e.applied


# --- Quote lifecycle ---

async def create_quote(tenant_id: UUID, name: str, start_date: Any, end_date: Any) -> Quote:
    name = require_text(name, "Name")
    start, end = parse_date_range(start_date, end_date)
    quote = await Quote.create(
        tenant_id=tenant_id, name=name, start_date=start, end_date=end, status=QuoteStatus.DRAFT
    )
    log.info(f"Quote {quote.id} created for {start}..{end}.")
    return quote


async def update_quote(tenant_id: UUID, quote_id: UUID, name: str, start_date: Any, end_date: Any) -> Quote:
    """
    Renames a quote and moves its dates. An accepted quote's dates are fixed:
    its lines were checked against the overlap for that window when it was
    confirmed. Draft lines are re-checked the next time they are edited or
    when the quote is confirmed.
    """
    name = require_text(name, "Name")
    start, end = parse_date_range(start_date, end_date)

    async with in_transaction() as conn:
        quote = await _get_quote(tenant_id, quote_id, conn, lock=True)
        dates_changed = (quote.start_date, quote.end_date) != (start, end)
        if quote.status == QuoteStatus.ACCEPTED and dates_changed:
            raise ValidationError("The dates of an accepted quote cannot be changed.")

        quote.name = name
        quote.start_date = start
        quote.end_date = end
        await quote.save(update_fields=["name", "start_date", "end_date", "updated_at"], using_db=conn)
    return quote


async def get_quote_with_items(tenant_id: UUID, quote_id: UUID) -> Optional[Quote]:
    """Fetches a quote with its lines and their items (N+1 avoidance)."""
    return await Quote.get_or_none(id=quote_id, tenant_id=tenant_id).prefetch_related("items", "items__item")


async def list_quotes(tenant_id: UUID) -> List[Quote]:
    return await Quote.filter(tenant_id=tenant_id).order_by("-created_at")


async def delete_quote(tenant_id: UUID, quote_id: UUID) -> QuoteDeletionResult:
    """
    Deletes a quote and its lines. An accepted quote first releases every line
    back to the ledger. Deleting twice is safe: the second call finds no quote.
    """
    async with in_transaction() as conn:
        quote = await _get_quote(tenant_id, quote_id, conn, lock=True)
        lines = await QuoteItem.filter(quote_id=quote.id).using_db(conn).prefetch_related("item")
        result = QuoteDeletionResult(quote_id=quote.id)

        if quote.status == QuoteStatus.ACCEPTED:
            await ledger.lock_items_ledger([line.item for line in lines], conn)
            for line in lines:
                result.released += await _apply_leniently(
                    ledger.release, line.item, line.quantity, "quote.deleted", quote.id, conn,
                    result.ledger_failures
                )

        # Events keep their inventory copy; they just lose the link
        await Event.filter(quote_id=quote.id, tenant_id=tenant_id).using_db(conn).update(quote_id=None)
        await QuoteItem.filter(quote_id=quote.id).using_db(conn).delete()
        await quote.delete(using_db=conn)

    log.info(f"Quote {quote_id} deleted ({result.released} units released).")
    return result


# --- Line items ---

async def add_quote_item(
    tenant_id: UUID, quote_id: UUID, item_id: UUID, quantity: Any, unit_price: Any = None
) -> QuoteItem:
    """
    Adds a line to a quote, snapshotting the unit price. The check counts the
    quote's existing lines of the same item. Draft quotes only get a read-only
    availability check; on an accepted quote the new line is taken
    out of the ledger straight away.
    """
    quantity = parse_quantity(quantity)
    price_override = parse_price(unit_price) if unit_price not in (None, "") else None

    async with in_transaction() as conn:
        quote = await _get_quote(tenant_id, quote_id, conn, lock=True)
        item = await InventoryItem.get_or_none(id=item_id, tenant_id=tenant_id, active=True).using_db(conn)
        if not item:
            raise NotFoundError("Item not found.")

        await ledger.lock_item_ledger(item, conn)
        breakdown = await get_breakdown_for_item(item, _date_context(quote), conn)

        available = breakdown.bookable - await get_quote_claims(quote.id, item.id, conn=conn)
        _ensure_available(item, quantity, available)

        quote_item = await QuoteItem.create(
            quote=quote,
            item=item,
            quantity=quantity,
            unit_price_snapshot=price_override if price_override is not None else item.price,
            using_db=conn
        )

        if quote.status == QuoteStatus.ACCEPTED:
            await ledger.consume(item, quantity, "quote_item.added", quote_id=quote.id, conn=conn)

    return quote_item


async def update_quote_item(tenant_id: UUID, quote_item_id: UUID, quantity: Any) -> QuoteItem:
    """
    Changes a line's quantity. On an accepted quote the difference is applied
    to the ledger (shrink releases, growth is validated then consumed); on a
    draft quote the new quantity is only validated.
    """
    new_quantity = parse_quantity(quantity)

    async with in_transaction() as conn:
        quote_item = await _get_quote_item(tenant_id, quote_item_id, conn)
        quote = await _get_quote(tenant_id, quote_item.quote_id, conn, lock=True)
        item = quote_item.item
        delta = new_quantity - quote_item.quantity

        await ledger.lock_item_ledger(item, conn)

        if quote.status == QuoteStatus.ACCEPTED:
            if delta < 0:
                await ledger.release(item, -delta, "quote_item.reduced", quote_id=quote.id, conn=conn)
            elif delta > 0:
                breakdown = await get_breakdown_for_item(item, _date_context(quote), conn)
                other_claims = await get_quote_claims(quote.id, item.id, exclude_quote_item_id=quote_item.id, conn=conn)
                _ensure_available(item, delta, breakdown.bookable - other_claims)
                await ledger.consume(item, delta, "quote_item.increased", quote_id=quote.id, conn=conn)
        else:
            breakdown = await get_breakdown_for_item(item, _date_context(quote), conn)
            other_claims = await get_quote_claims(quote.id, item.id, exclude_quote_item_id=quote_item.id, conn=conn)
            _ensure_available(item, new_quantity, breakdown.bookable - other_claims)

        quote_item.quantity = new_quantity
        await quote_item.save(update_fields=["quantity"], using_db=conn)

    return quote_item


async def delete_quote_item(tenant_id: UUID, quote_item_id: UUID) -> List[LedgerFailure]:
    """
    Removes a line. On an accepted quote its quantity is released first; a
    release that fails is logged and returned but never blocks the delete.
    """
    failures: List[LedgerFailure] = []
    async with in_transaction() as conn:
        quote_item = await _get_quote_item(tenant_id, quote_item_id, conn)
        quote = await _get_quote(tenant_id, quote_item.quote_id, conn, lock=True)

        if quote.status == QuoteStatus.ACCEPTED:
            await ledger.lock_item_ledger(quote_item.item, conn)
            await _apply_leniently(
                ledger.release, quote_item.item, quote_item.quantity, "quote_item.deleted", quote.id, conn, failures
            )

        await quote_item.delete(using_db=conn)
    return failures


# --- Confirmation ---

async def confirm_quotation(tenant_id: UUID, quote_id: UUID) -> ConfirmationResult:
    """
    draft -> accepted. Every item is checked against its effective availability
    first and the whole confirmation is rejected if any falls short. Then each
    line is taken out of the ledger and an event is created for the quote
    (event failure doesn't undo the confirmation).
    """
    async with in_transaction() as conn:
        quote = await _get_quote(tenant_id, quote_id, conn, lock=True)
        if quote.status != QuoteStatus.DRAFT:
            raise ValidationError(f"Only draft quotes can be confirmed (quote is {quote.status.value}).")

        lines = await QuoteItem.filter(quote_id=quote.id).using_db(conn).prefetch_related("item")
        if not lines:
            raise ValidationError("Cannot confirm a quote with no items.")

        items: Dict[str, InventoryItem] = OrderedDict()
        required: Dict[str, int] = defaultdict(int)
        for line in lines:
            items[str(line.item_id)] = line.item
            required[str(line.item_id)] += line.quantity

        await ledger.lock_items_ledger(items.values(), conn)

        missing_stock = [
            item.name for item in items.values()
            if not item.is_serialized and await ledger.get_stock(item, conn) is None
        ]
        if missing_stock:
            raise LedgerSetupError(
                f"No stock record for: {', '.join(missing_stock)}. Set stock levels before confirming."
            )

        context = _date_context(quote)
        insufficient: List[str] = []
        shortfall = 0
        for key, item in items.items():
            breakdown = await get_breakdown_for_item(item, context, conn)
            if required[key] > breakdown.bookable:
                insufficient.append(item.name)
                shortfall += required[key] - max(0, breakdown.bookable)
        if insufficient:
            raise AvailabilityError(
                f"Insufficient availability for: {', '.join(insufficient)}",
                shortfall=shortfall,
                item_names=insufficient,
            )

        quote.status = QuoteStatus.ACCEPTED
        await quote.save(update_fields=["status", "updated_at"], using_db=conn)

        result = ConfirmationResult(quote=quote)
        for line in lines:
            await _apply_leniently(
                ledger.consume, line.item, line.quantity, "quote.confirmed", quote.id, conn, result.ledger_failures
            )

    log.info(f"Quote {quote.id} accepted ({len(lines)} lines, {len(result.ledger_failures)} ledger failures).")

    try:
        event, _ = await create_event_for_accepted_quote(tenant_id, quote.id)
        result.event_id = event.id
    except Exception as e:
        log.error(f"Quote {quote.id} confirmed but event creation failed: {e}")

    return result


# --- Pricing / risk ---

async def refresh_quote_item_prices(tenant_id: UUID, item_id: UUID) -> int:
    """Re-snapshots an item's current price onto lines of draft quotes. Returns rows updated."""
    item = await InventoryItem.get_or_none(id=item_id, tenant_id=tenant_id)
    if not item:
        raise NotFoundError("Item not found.")

    draft_quote_ids = await Quote.filter(
        tenant_id=tenant_id, status=QuoteStatus.DRAFT
    ).values_list("id", flat=True)
    if not draft_quote_ids:
        return 0

    return await QuoteItem.filter(quote_id__in=list(draft_quote_ids), item_id=item.id).update(
        unit_price_snapshot=item.price
    )


async def get_quote_risk(tenant_id: UUID, quote_id: UUID) -> Tuple[RiskLevel, Dict[UUID, AvailabilityBreakdown]]:
    quote = await _get_quote(tenant_id, quote_id)
    lines = await QuoteItem.filter(quote_id=quote.id).prefetch_related("item")
    context = _date_context(quote)

    breakdowns: Dict[UUID, AvailabilityBreakdown] = {}
    for line in lines:
        if line.item_id not in breakdowns:
            breakdowns[line.item_id] = await get_breakdown_for_item(line.item, context)

    risk = calculate_quote_risk(
        [QuoteLine(item_id=line.item_id, quantity=line.quantity, is_serialized=line.item.is_serialized) for line in lines],
        breakdowns,
    )
    return risk, breakdowns
