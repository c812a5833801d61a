import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from app.core.config import DEFAULT_STOCK_LOCATION, SEARCH_RESULT_LIMIT
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.inventory import InventoryItem, InventoryStock, InventoryUnit, MaintenanceLog, UnitStatus
from app.services.availability import DateContext, get_breakdown_for_item
from app.services.quote_service import refresh_quote_item_prices
from app.services.validation import parse_price, parse_quantity, require_text

log = logging.getLogger(__name__)


async def _get_item(tenant_id: UUID, item_id: UUID, conn: Any = None) -> InventoryItem:
    item = await InventoryItem.get_or_none(id=item_id, tenant_id=tenant_id).using_db(conn)
    if not item:
        raise NotFoundError("Item not found.")
    return item


def archived_name(name: str, now: Optional[datetime] = None) -> str:
    """'Tent' -> 'Tent (archived-20240601-1530450123)' so the live name can be reused."""
    now = now or datetime.now()
    stamp = now.strftime("%Y%m%d-%H%M%S") + f"{now.microsecond // 100:04d}"
    return f"{name} (archived-{stamp})"


async def create_item(tenant_id: UUID, name: str, is_serialized: bool = False, price: Any = 0) -> InventoryItem:
    name = require_text(name, "Name")
    price = parse_price(price)

    if await InventoryItem.filter(tenant_id=tenant_id, name=name).exists():
        raise ConflictError(f"An item named '{name}' already exists.")

    try:
        item = await InventoryItem.create(
            tenant_id=tenant_id, name=name, is_serialized=is_serialized, price=price, active=True
        )
    except IntegrityError:
        # Lost a race with another insert of the same name
        raise ConflictError(f"An item named '{name}' already exists.")

    log.info(f"Item {item.id} '{name}' created (serialized={is_serialized}).")
    return item


async def update_item(tenant_id: UUID, item_id: UUID, name: str, price: Any) -> InventoryItem:
    """Renames / reprices an item. The serialized flag is never changed here."""
    name = require_text(name, "Name")
    price = parse_price(price)
    item = await _get_item(tenant_id, item_id)
    price_changed = item.price != price

    item.name = name
    item.price = price
    try:
        await item.save(update_fields=["name", "price"])
    except IntegrityError:
        raise ConflictError(f"An item named '{name}' already exists.")

    if price_changed:
        updated = await refresh_quote_item_prices(tenant_id, item.id)
        log.info(f"Item {item.id} repriced; {updated} draft quote lines refreshed.")
    return item


async def archive_item(tenant_id: UUID, item_id: UUID) -> InventoryItem:
    item = await _get_item(tenant_id, item_id)
    if not item.active:
        return item
    item.name = archived_name(item.name)
    item.active = False
    await item.save(update_fields=["name", "active"])
    log.info(f"Item {item.id} archived as '{item.name}'.")
    return item


async def add_units(tenant_id: UUID, item_id: UUID, count: Any, serial_prefix: Optional[str] = None) -> List[InventoryUnit]:
    count = parse_quantity(count, "Count")
    async with in_transaction() as conn:
        item = await _get_item(tenant_id, item_id, conn)
        if not item.is_serialized:
            raise ValidationError("Units can only be added to serialized items.")
        existing = await InventoryUnit.filter(item_id=item.id).using_db(conn).count()
        units = [
            InventoryUnit(
                item_id=item.id,
                serial=f"{serial_prefix}-{existing + n}" if serial_prefix else None,
                status=UnitStatus.AVAILABLE,
            )
            for n in range(1, count + 1)
        ]
        await InventoryUnit.bulk_create(units, using_db=conn)
    return units


async def update_stock(tenant_id: UUID, item_id: UUID, total_quantity: Any, out_of_service_quantity: Any) -> InventoryStock:
    """Sets the counters of a bulk item, creating its stock row if needed."""
    total = parse_quantity(total_quantity, "Total quantity", allow_zero=True)
    out_of_service = parse_quantity(out_of_service_quantity, "Out of service quantity", allow_zero=True)
    if out_of_service > total:
        raise ValidationError("Out of service quantity cannot exceed total quantity.")

    async with in_transaction() as conn:
        item = await _get_item(tenant_id, item_id, conn)
        if item.is_serialized:
            raise ValidationError("Serialized items track units, not stock.")

        stock = await InventoryStock.filter(item_id=item.id, tenant_id=tenant_id).using_db(conn).select_for_update().first()
        if stock is None:
            stock = await InventoryStock.create(
                tenant_id=tenant_id,
                item_id=item.id,
                location=DEFAULT_STOCK_LOCATION,
                total_quantity=total,
                out_of_service_quantity=out_of_service,
                using_db=conn
            )
        else:
            stock.total_quantity = total
            stock.out_of_service_quantity = out_of_service
            stock.version += 1
            await stock.save(update_fields=["total_quantity", "out_of_service_quantity", "version", "updated_at"], using_db=conn)
    return stock


async def update_unit_status(tenant_id: UUID, unit_id: UUID, status: Any) -> InventoryUnit:
    try:
        status = UnitStatus(status)
    except ValueError:
        raise ValidationError("Status must be one of: available, out, maintenance.")

    unit = await InventoryUnit.get_or_none(id=unit_id, item__tenant_id=tenant_id)
    if not unit:
        raise NotFoundError("Unit not found.")
    unit.status = status
    await unit.save(update_fields=["status"])
    return unit


async def add_maintenance_log(tenant_id: UUID, item_id: UUID, note: str) -> MaintenanceLog:
    note = require_text(note, "Note")
    item = await _get_item(tenant_id, item_id)
    entry = await MaintenanceLog.create(tenant_id=tenant_id, item_id=item.id, note=note)
    log.info(f"Maintenance note added to item {item.id}.")
    return entry


async def list_maintenance_logs(tenant_id: UUID, item_id: UUID) -> List[MaintenanceLog]:
    """Newest first."""
    item = await _get_item(tenant_id, item_id)
    return await MaintenanceLog.filter(item_id=item.id, tenant_id=tenant_id).order_by("-created_at")


async def search_inventory_items(
    tenant_id: UUID, query: str, date_context: Optional[DateContext] = None
) -> List[Dict[str, Any]]:
    """
    Active items whose name contains ``query`` (case-insensitive), with
    availability. With a quote's date context the figure is the effective
    availability for that window.
    """
    query = (query or "").strip()
    if not query:
        return []

    items = await InventoryItem.filter(
        tenant_id=tenant_id, active=True, name__icontains=query
    ).order_by("name").limit(SEARCH_RESULT_LIMIT)

    results = []
    for item in items:
        breakdown = await get_breakdown_for_item(item, date_context)
        results.append({
            "id": str(item.id),
            "name": item.name,
            "price": str(item.price),
            "is_serialized": item.is_serialized,
            "available": breakdown.bookable,
            "total": breakdown.total,
            "effective_available": breakdown.effective_available,
            "reserved_in_overlapping_events": breakdown.reserved_in_overlapping_events,
        })
    return results
