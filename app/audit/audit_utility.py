from typing import Any, List, Optional
from uuid import UUID

from tortoise.expressions import F

from app.models.ledger_audit import LedgerAction, LedgerAuditEntry


async def record_ledger_change(
    tenant_id: UUID,
    item_id: UUID,
    action: LedgerAction,
    requested: int,
    applied: int,
    reason: str,
    quote_id: Optional[UUID] = None,
    conn: Any = None
) -> LedgerAuditEntry:
    """
    Appends a ledger audit row using the provided database connection (transaction).

    Passing 'conn' keeps the audit row atomic with the ledger mutation it describes.
    """
    return await LedgerAuditEntry.create(
        tenant_id=tenant_id,
        item_id=item_id,
        quote_id=quote_id,
        action=action,
        requested=requested,
        applied=applied,
        reason=reason,
        using_db=conn
    )


async def find_ledger_drift(tenant_id: UUID, quote_id: Optional[UUID] = None) -> List[LedgerAuditEntry]:
    """Audit rows where the ledger could not apply the full requested quantity."""
    query = LedgerAuditEntry.filter(tenant_id=tenant_id, applied__lt=F("requested"))
    if quote_id is not None:
        query = query.filter(quote_id=quote_id)
    return await query.order_by("created_at")
