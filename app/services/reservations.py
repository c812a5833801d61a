"""
Read-side sums over quote line items.

Nothing here is cached: every call re-reads the quote_items table so that
availability checks always see the latest soft reservations.
"""
import logging
from datetime import date
from typing import Any, Optional, Union
from uuid import UUID

from app.models.quote import QuoteItem

log = logging.getLogger(__name__)


def _as_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Inclusive on both ends: a range ending the day another starts overlaps it."""
    return start_a <= end_b and start_b <= end_a


async def get_reserved_total(tenant_id: UUID, item_id: UUID, conn: Any = None) -> int:
    """Sum of every quote line for the item, whatever the dates or quote status."""
    quantities = await QuoteItem.filter(
        item_id=item_id, quote__tenant_id=tenant_id
    ).using_db(conn).values_list("quantity", flat=True)
    return sum(q or 0 for q in quantities)


async def get_reserved_in_overlapping_quotes(
    tenant_id: UUID,
    item_id: UUID,
    start_date: date,
    end_date: date,
    exclude_quote_id: Optional[UUID] = None,
    conn: Any = None,
) -> int:
    """
    Sum of line quantities for the item on OTHER quotes whose date range
    overlaps [start_date, end_date]. Lines whose quote dates can't be read
    are skipped.
    """
    rows = await QuoteItem.filter(
        item_id=item_id, quote__tenant_id=tenant_id
    ).using_db(conn).values("quote_id", "quantity", "quote__start_date", "quote__end_date")

    reserved = 0
    for row in rows:
        quote_id = row.get("quote_id")
        if quote_id is None:
            continue
        if exclude_quote_id is not None and str(quote_id) == str(exclude_quote_id):
            continue
        other_start = _as_date(row.get("quote__start_date"))
        other_end = _as_date(row.get("quote__end_date"))
        if other_start is None or other_end is None:
            log.warning(f"Skipping quote line on quote {quote_id}: missing date range.")
            continue
        if ranges_overlap(start_date, end_date, other_start, other_end):
            reserved += row.get("quantity") or 0
    return reserved


async def get_quote_claims(
    quote_id: UUID, item_id: UUID, exclude_quote_item_id: Optional[UUID] = None, conn: Any = None
) -> int:
    """Quantity a quote already holds of an item, optionally ignoring one of its lines."""
    query = QuoteItem.filter(quote_id=quote_id, item_id=item_id)
    if exclude_quote_item_id is not None:
        query = query.exclude(id=exclude_quote_item_id)
    quantities = await query.using_db(conn).values_list("quantity", flat=True)
    return sum(q or 0 for q in quantities)
