import pytest
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from app.audit.audit_utility import find_ledger_drift, record_ledger_change
from app.core.config import LEDGER_RETRY_ATTEMPTS
from app.core.errors import LedgerConflictError, LedgerMutationError
from app.models.inventory import InventoryItem, InventoryStock
from app.models.ledger_audit import LedgerAction, LedgerAuditEntry
from app.services.ledger import consume, release

from factories import make_bulk_item, stock_of


async def _stale_stock(item):
    """Reads the stock row, then bumps its version behind the reader's back."""
    stale = await stock_of(item)
    await InventoryStock.filter(id=stale.id).update(version=stale.version + 5)
    return stale


# --- VERSION-CHECKED STOCK UPDATES ---

class TestStockVersioning:
    @pytest.mark.asyncio
    async def test_stale_read_is_retried(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, total=10)
        stale = await _stale_stock(item)
        fresh = await stock_of(item)

        with patch('app.services.ledger.get_stock', new=AsyncMock(side_effect=[stale, fresh])) as mock_get:
            applied = await consume(item, 3, "quote.confirmed")

        assert applied == 3
        assert mock_get.await_count == 2
        stock = await stock_of(item)
        assert stock.total_quantity == 7
        assert stock.version == fresh.version + 1

    @pytest.mark.asyncio
    async def test_conflict_after_retries_exhausted(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, total=10)
        stale = await _stale_stock(item)

        with patch('app.services.ledger.get_stock', new=AsyncMock(return_value=stale)) as mock_get:
            with pytest.raises(LedgerConflictError) as exc_info:
                await consume(item, 3, "quote.confirmed")

        assert mock_get.await_count == LEDGER_RETRY_ATTEMPTS
        assert exc_info.value.requested == 3
        assert (await stock_of(item)).total_quantity == 10


# --- MISSING STOCK ROWS ---

class TestMissingStockRow:
    @pytest.mark.asyncio
    async def test_bulk_release_creates_stock_row(self, db, tenant_id):
        item = await InventoryItem.create(tenant_id=tenant_id, name="Table", is_serialized=False, price="8.00")

        assert await release(item, 4, "quote_item.deleted") == 4

        stock = await stock_of(item)
        assert stock.total_quantity == 4
        assert stock.out_of_service_quantity == 0
        entry = await LedgerAuditEntry.get(item_id=item.id)
        assert entry.action == LedgerAction.RELEASE
        assert (entry.requested, entry.applied) == (4, 4)

    @pytest.mark.asyncio
    async def test_bulk_consume_without_stock_applies_nothing(self, db, tenant_id):
        item = await InventoryItem.create(tenant_id=tenant_id, name="Table", is_serialized=False, price="8.00")

        with pytest.raises(LedgerMutationError) as exc_info:
            await consume(item, 2, "quote.confirmed")

        assert (exc_info.value.requested, exc_info.value.applied) == (2, 0)
        assert await InventoryStock.filter(item_id=item.id).count() == 0
        entry = await LedgerAuditEntry.get(item_id=item.id)
        assert entry.applied == 0


# --- DRIFT REPORT ---

class TestLedgerDrift:
    @pytest.mark.asyncio
    async def test_only_partial_applications_are_reported(self, db, tenant_id):
        item_id, quote_id = uuid4(), uuid4()
        await record_ledger_change(tenant_id, item_id, LedgerAction.CONSUME, 4, 4, "quote.confirmed", quote_id)
        partial = await record_ledger_change(tenant_id, item_id, LedgerAction.RELEASE, 5, 2, "quote.deleted", quote_id)
        await record_ledger_change(tenant_id, item_id, LedgerAction.RELEASE, 3, 1, "quote.deleted", uuid4())
        await record_ledger_change(uuid4(), item_id, LedgerAction.RELEASE, 3, 0, "quote.deleted")

        drift = await find_ledger_drift(tenant_id, quote_id)
        assert [e.id for e in drift] == [partial.id]

        assert len(await find_ledger_drift(tenant_id)) == 2
