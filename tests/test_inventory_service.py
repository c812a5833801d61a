import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.inventory import InventoryStock, InventoryUnit, MaintenanceLog, UnitStatus
from app.models.quote import QuoteItem, QuoteStatus
from app.services.availability import DateContext
from app.services.inventory_service import (
    add_maintenance_log,
    add_units,
    archive_item,
    archived_name,
    create_item,
    list_maintenance_logs,
    search_inventory_items,
    update_item,
    update_stock,
    update_unit_status,
)

from factories import make_bulk_item, make_quote, make_serialized_item, unit_counts


class TestItemLifecycle:
    def test_archived_name_format(self):
        stamped = archived_name("Tent", datetime(2024, 6, 1, 15, 30, 45, 123456))
        assert stamped == "Tent (archived-20240601-1530451234)"

    @pytest.mark.asyncio
    async def test_duplicate_name_is_conflict(self, db, tenant_id):
        await create_item(tenant_id, "Tent", price="10")
        with pytest.raises(ConflictError) as exc_info:
            await create_item(tenant_id, " Tent ", price="10")
        assert exc_info.value.kind == "DUPLICATE_NAME"

    @pytest.mark.asyncio
    async def test_same_name_in_other_tenant_is_fine(self, db, tenant_id):
        await create_item(tenant_id, "Tent")
        other = await create_item(uuid4(), "Tent")
        assert other.name == "Tent"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, price", [("", "1"), ("Tent", "-1"), ("Tent", "abc")])
    async def test_create_validation(self, db, tenant_id, name, price):
        with pytest.raises(ValidationError):
            await create_item(tenant_id, name, price=price)

    @pytest.mark.asyncio
    async def test_archive_frees_the_name(self, db, tenant_id):
        item = await create_item(tenant_id, "Tent")
        archived = await archive_item(tenant_id, item.id)
        assert archived.active is False
        assert archived.name.startswith("Tent (archived-")

        again = await archive_item(tenant_id, item.id)
        assert again.name == archived.name

        replacement = await create_item(tenant_id, "Tent")
        assert replacement.id != item.id

    @pytest.mark.asyncio
    async def test_reprice_refreshes_draft_lines_only(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, price="5.00")
        draft = await make_quote(tenant_id, lines=[(item, 1)])
        accepted = await make_quote(tenant_id, status=QuoteStatus.ACCEPTED, lines=[(item, 1)])

        await update_item(tenant_id, item.id, "Chair", "7.50")
        assert (await QuoteItem.get(quote_id=draft.id)).unit_price_snapshot == Decimal("7.50")
        assert (await QuoteItem.get(quote_id=accepted.id)).unit_price_snapshot == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name_is_conflict(self, db, tenant_id):
        await create_item(tenant_id, "Tent")
        chair = await create_item(tenant_id, "Chair")
        with pytest.raises(ConflictError):
            await update_item(tenant_id, chair.id, "Tent", "0")


class TestLedgerSetup:
    @pytest.mark.asyncio
    async def test_stock_upsert(self, db, tenant_id):
        item = await create_item(tenant_id, "Chair")
        stock = await update_stock(tenant_id, item.id, "10", "2")
        assert stock.available_quantity == 8

        stock = await update_stock(tenant_id, item.id, 12, 0)
        assert stock.total_quantity == 12
        assert stock.version == 1
        assert await InventoryStock.filter(item_id=item.id).count() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total, oos", [(5, 6), (-1, 0), (5, -1), ("x", 0)])
    async def test_stock_validation(self, db, tenant_id, total, oos):
        item = await create_item(tenant_id, "Chair")
        with pytest.raises(ValidationError):
            await update_stock(tenant_id, item.id, total, oos)

    @pytest.mark.asyncio
    async def test_serialized_items_have_units_not_stock(self, db, tenant_id):
        item = await create_item(tenant_id, "Speaker", is_serialized=True)
        with pytest.raises(ValidationError):
            await update_stock(tenant_id, item.id, 5, 0)

        units = await add_units(tenant_id, item.id, 3, serial_prefix="SPK")
        assert sorted(u.serial for u in units) == ["SPK-1", "SPK-2", "SPK-3"]
        assert (await unit_counts(item))[UnitStatus.AVAILABLE] == 3

    @pytest.mark.asyncio
    async def test_bulk_items_take_no_units(self, db, tenant_id):
        item = await create_item(tenant_id, "Chair")
        with pytest.raises(ValidationError):
            await add_units(tenant_id, item.id, 1)

    @pytest.mark.asyncio
    async def test_unit_status_workflow(self, db, tenant_id):
        item = await make_serialized_item(tenant_id, available=1)
        unit = await InventoryUnit.get(item_id=item.id)

        updated = await update_unit_status(tenant_id, unit.id, "maintenance")
        assert updated.status == UnitStatus.MAINTENANCE

        with pytest.raises(ValidationError):
            await update_unit_status(tenant_id, unit.id, "lost")
        with pytest.raises(NotFoundError):
            await update_unit_status(uuid4(), unit.id, "available")


class TestMaintenanceLog:
    @pytest.mark.asyncio
    async def test_notes_are_kept_per_item(self, db, tenant_id):
        speaker = await make_serialized_item(tenant_id, available=1)
        chairs = await make_bulk_item(tenant_id)

        entry = await add_maintenance_log(tenant_id, speaker.id, "  Replaced tweeter  ")
        assert entry.note == "Replaced tweeter"
        assert entry.tenant_id == tenant_id
        await add_maintenance_log(tenant_id, speaker.id, "Cone inspected")
        await add_maintenance_log(tenant_id, chairs.id, "Two legs bent")

        notes = [e.note for e in await list_maintenance_logs(tenant_id, speaker.id)]
        assert sorted(notes) == ["Cone inspected", "Replaced tweeter"]
        assert [e.note for e in await list_maintenance_logs(tenant_id, chairs.id)] == ["Two legs bent"]

    @pytest.mark.asyncio
    async def test_empty_note_rejected(self, db, tenant_id):
        item = await make_bulk_item(tenant_id)
        with pytest.raises(ValidationError):
            await add_maintenance_log(tenant_id, item.id, "   ")
        assert await MaintenanceLog.all().count() == 0

    @pytest.mark.asyncio
    async def test_other_tenant_item_not_found(self, db, tenant_id):
        item = await make_bulk_item(tenant_id)
        with pytest.raises(NotFoundError):
            await add_maintenance_log(uuid4(), item.id, "Cracked")
        with pytest.raises(NotFoundError):
            await list_maintenance_logs(uuid4(), item.id)


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_skips_archived(self, db, tenant_id):
        await make_bulk_item(tenant_id, name="Folding Chair", total=10)
        old = await make_bulk_item(tenant_id, name="Old Chair", total=10)
        await archive_item(tenant_id, old.id)

        results = await search_inventory_items(tenant_id, "chair")
        assert [r["name"] for r in results] == ["Folding Chair"]
        assert results[0]["available"] == 10
        assert await search_inventory_items(tenant_id, "  ") == []

    @pytest.mark.asyncio
    async def test_search_with_quote_context(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, name="Chair", total=10)
        await make_quote(tenant_id, "2024-06-01", "2024-06-05", lines=[(item, 6)])
        mine = await make_quote(tenant_id, "2024-06-02", "2024-06-03", lines=[(item, 1)])

        context = DateContext(start_date=date(2024, 6, 2), end_date=date(2024, 6, 3), quote_id=mine.id)
        results = await search_inventory_items(tenant_id, "Chair", context)
        assert results[0]["available"] == 4
        assert results[0]["reserved_in_overlapping_events"] == 6
