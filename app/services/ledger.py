"""
Inventory ledger mutations.

``consume`` takes quantity out of the ledger (units available -> out, or a
stock decrement); ``release`` puts it back (units out -> available, or a
stock increment). Both expect to run inside a transaction and append a
LedgerAuditEntry for every call. When the full quantity can't be applied
they apply what they can, audit it, and raise LedgerMutationError.
"""
import logging
from typing import Any, Iterable, List, Optional
from uuid import UUID

from app.audit.audit_utility import record_ledger_change
from app.core.config import DEFAULT_STOCK_LOCATION, LEDGER_RETRY_ATTEMPTS
from app.core.errors import LedgerConflictError, LedgerMutationError
from app.models.inventory import InventoryItem, InventoryStock, InventoryUnit, UnitStatus
from app.models.ledger_audit import LedgerAction

log = logging.getLogger(__name__)


async def lock_item_ledger(item: InventoryItem, conn: Any) -> None:
    """
    Row-locks the ledger rows of one item for the rest of the transaction.
    A no-op on backends without SELECT ... FOR UPDATE (SQLite).
    """
    if item.is_serialized:
        await InventoryUnit.filter(item_id=item.id).using_db(conn).select_for_update()
    else:
        await InventoryStock.filter(item_id=item.id, tenant_id=item.tenant_id).using_db(conn).select_for_update()


async def lock_items_ledger(items: Iterable[InventoryItem], conn: Any) -> None:
    # Stable order so two transactions locking the same items can't deadlock
    seen = {}
    for item in items:
        seen[str(item.id)] = item
    for key in sorted(seen):
        await lock_item_ledger(seen[key], conn)


async def get_stock(item: InventoryItem, conn: Any = None) -> Optional[InventoryStock]:
    return await InventoryStock.filter(item_id=item.id, tenant_id=item.tenant_id).using_db(conn).first()


async def _flip_units(item: InventoryItem, quantity: int, from_status: UnitStatus, to_status: UnitStatus, conn: Any) -> int:
    # Any N units will do: unit identity is never surfaced to a quote
    unit_ids: List[UUID] = await InventoryUnit.filter(
        item_id=item.id, status=from_status
    ).using_db(conn).limit(quantity).values_list("id", flat=True)
    if unit_ids:
        await InventoryUnit.filter(id__in=unit_ids).using_db(conn).update(status=to_status)
    return len(unit_ids)


async def _adjust_stock(item: InventoryItem, delta: int, conn: Any) -> int:
    """
    Applies ``delta`` to total_quantity with a version-checked update.
    Decrements never take total below out_of_service_quantity. Returns the
    magnitude actually applied.
    """
    for attempt in range(1, LEDGER_RETRY_ATTEMPTS + 1):
        stock = await get_stock(item, conn)
        if stock is None:
            if delta < 0:
                return 0
            await InventoryStock.create(
                tenant_id=item.tenant_id,
                item_id=item.id,
                location=DEFAULT_STOCK_LOCATION,
                total_quantity=delta,
                out_of_service_quantity=0,
                using_db=conn
            )
            return delta

        floor = stock.out_of_service_quantity or 0
        new_total = max(floor, stock.total_quantity + delta) if delta < 0 else stock.total_quantity + delta
        updated = await InventoryStock.filter(id=stock.id, version=stock.version).using_db(conn).update(
            total_quantity=new_total, version=stock.version + 1
        )
        if updated:
            return abs(new_total - stock.total_quantity)
        log.warning(f"Stock row for item {item.id} changed concurrently (attempt {attempt}), retrying.")

    raise LedgerConflictError(
        f"Stock for '{item.name}' kept changing; gave up after {LEDGER_RETRY_ATTEMPTS} attempts.",
        requested=abs(delta),
    )


async def _apply(
    item: InventoryItem,
    quantity: int,
    action: LedgerAction,
    reason: str,
    quote_id: Optional[UUID],
    conn: Any,
) -> int:
    if quantity <= 0:
        return 0

    if item.is_serialized:
        if action == LedgerAction.CONSUME:
            applied = await _flip_units(item, quantity, UnitStatus.AVAILABLE, UnitStatus.OUT, conn)
        else:
            applied = await _flip_units(item, quantity, UnitStatus.OUT, UnitStatus.AVAILABLE, conn)
    else:
        delta = -quantity if action == LedgerAction.CONSUME else quantity
        applied = await _adjust_stock(item, delta, conn)

    await record_ledger_change(
        tenant_id=item.tenant_id,
        item_id=item.id,
        action=action,
        requested=quantity,
        applied=applied,
        reason=reason,
        quote_id=quote_id,
        conn=conn
    )

    if applied < quantity:
        raise LedgerMutationError(
            f"Could only {action.value} {applied} of {quantity} for '{item.name}'.",
            requested=quantity,
            applied=applied,
        )
    return applied


async def consume(
    item: InventoryItem, quantity: int, reason: str, quote_id: Optional[UUID] = None, conn: Any = None
) -> int:
    """Takes ``quantity`` out of the ledger for an accepted quote."""
    return await _apply(item, quantity, LedgerAction.CONSUME, reason, quote_id, conn)


async def release(
    item: InventoryItem, quantity: int, reason: str, quote_id: Optional[UUID] = None, conn: Any = None
) -> int:
    """Returns ``quantity`` to the ledger. Creates a stock row for bulk items if none exists."""
    return await _apply(item, quantity, LedgerAction.RELEASE, reason, quote_id, conn)
