"""
Availability calculator.

Combines ledger counts (units or stock) with quote reservation sums into an
AvailabilityBreakdown. ``available`` is the literal checkout state of the
ledger; ``effective_available`` is what is safe to promise for one rental
window given what other quotes already claim for overlapping windows.
"""
import asyncio
import math
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from app.core.errors import NotFoundError
from app.models.inventory import InventoryItem, InventoryStock, InventoryUnit, UnitStatus
from app.services.reservations import get_reserved_in_overlapping_quotes, get_reserved_total


class RiskLevel(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


_RISK_ORDER = {RiskLevel.GREEN: 0, RiskLevel.YELLOW: 1, RiskLevel.RED: 2}


@dataclass
class DateContext:
    """Candidate rental window, and the quote whose own lines must not count against it."""
    start_date: date
    end_date: date
    quote_id: Optional[UUID] = None


@dataclass
class AvailabilityBreakdown:
    item_id: UUID
    is_serialized: bool
    total: int
    available: int
    reserved: int
    in_transit: int
    out_of_service: int
    reserved_in_overlapping_events: Optional[int] = None
    effective_available: Optional[int] = None

    @property
    def bookable(self) -> int:
        """Quantity to validate against: effective when dates are known, ledger otherwise."""
        if self.effective_available is not None:
            return self.effective_available
        return self.available

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["item_id"] = str(self.item_id)
        return data


@dataclass
class QuoteLine:
    item_id: UUID
    quantity: int
    is_serialized: bool


def effective_available(total: int, out_of_service: int, reserved_overlapping: int) -> int:
    return max(0, total - out_of_service - reserved_overlapping)


def build_breakdown(
    item_id: UUID,
    is_serialized: bool,
    unit_statuses: Iterable[str] = (),
    stock: Optional[Tuple[int, int]] = None,
    reserved: int = 0,
    reserved_overlapping: Optional[int] = None,
) -> AvailabilityBreakdown:
    """
    Pure part of the calculation. ``stock`` is ``(total_quantity, out_of_service_quantity)``
    for bulk items; a missing stock row counts as zero stock.
    """
    if is_serialized:
        statuses = [UnitStatus(s) for s in unit_statuses]
        total = len(statuses)
        available = statuses.count(UnitStatus.AVAILABLE)
        in_transit = statuses.count(UnitStatus.OUT)
        out_of_service = statuses.count(UnitStatus.MAINTENANCE)
    else:
        total, out_of_service = stock if stock else (0, 0)
        out_of_service = out_of_service or 0
        available = total - out_of_service
        # Bulk stock doesn't track individual units in transit
        in_transit = 0

    breakdown = AvailabilityBreakdown(
        item_id=item_id,
        is_serialized=is_serialized,
        total=total,
        available=available,
        reserved=reserved,
        in_transit=in_transit,
        out_of_service=out_of_service,
    )
    if reserved_overlapping is not None:
        breakdown.reserved_in_overlapping_events = reserved_overlapping
        breakdown.effective_available = effective_available(total, out_of_service, reserved_overlapping)
    return breakdown


async def _ledger_counts(item: InventoryItem, conn: Any = None):
    if item.is_serialized:
        statuses = await InventoryUnit.filter(item_id=item.id).using_db(conn).values_list("status", flat=True)
        return list(statuses), None
    stock = await InventoryStock.filter(item_id=item.id, tenant_id=item.tenant_id).using_db(conn).first()
    if stock is None:
        return [], None
    return [], (stock.total_quantity, stock.out_of_service_quantity)


async def _no_overlap() -> None:
    return None


async def get_breakdown_for_item(
    item: InventoryItem, date_context: Optional[DateContext] = None, conn: Any = None
) -> AvailabilityBreakdown:
    """Breakdown for an already-loaded item. Independent reads are fanned out."""
    if date_context is not None:
        overlap_read = get_reserved_in_overlapping_quotes(
            item.tenant_id,
            item.id,
            date_context.start_date,
            date_context.end_date,
            exclude_quote_id=date_context.quote_id,
            conn=conn,
        )
    else:
        overlap_read = _no_overlap()

    (unit_statuses, stock), reserved, overlapping = await asyncio.gather(
        _ledger_counts(item, conn),
        get_reserved_total(item.tenant_id, item.id, conn),
        overlap_read,
    )
    return build_breakdown(
        item.id,
        item.is_serialized,
        unit_statuses=unit_statuses,
        stock=stock,
        reserved=reserved,
        reserved_overlapping=overlapping,
    )


async def get_item_availability_breakdown(
    tenant_id: UUID, item_id: UUID, date_context: Optional[DateContext] = None, conn: Any = None
) -> AvailabilityBreakdown:
    item = await InventoryItem.get_or_none(id=item_id, tenant_id=tenant_id).using_db(conn)
    if not item:
        raise NotFoundError("Item not found.")
    return await get_breakdown_for_item(item, date_context, conn)


def calculate_buffer_quantity(is_serialized: bool, total: int, requested_qty: int) -> int:
    """Advisory headroom to suggest on top of a requested quantity. Never enforced."""
    if is_serialized:
        return 1 if total < 5 else 0
    if requested_qty < 10:
        return math.ceil(requested_qty * 0.20)
    return math.ceil(requested_qty * 0.10)


def classify_line(quantity: int, bookable: int, buffer: int) -> RiskLevel:
    if bookable < quantity:
        return RiskLevel.RED
    if bookable < quantity + buffer:
        return RiskLevel.YELLOW
    return RiskLevel.GREEN


def calculate_quote_risk(
    lines: List[QuoteLine], breakdowns: Mapping[UUID, AvailabilityBreakdown]
) -> RiskLevel:
    """Worst line wins. A line without a breakdown makes the whole quote red."""
    level = RiskLevel.GREEN
    for line in lines:
        breakdown = breakdowns.get(line.item_id)
        if breakdown is None:
            return RiskLevel.RED
        buffer = calculate_buffer_quantity(line.is_serialized, breakdown.total, line.quantity)
        line_level = classify_line(line.quantity, breakdown.bookable, buffer)
        if _RISK_ORDER[line_level] > _RISK_ORDER[level]:
            level = line_level
    return level
