import pytest
from uuid import uuid4

from app.core.errors import NotFoundError, ValidationError
from app.models.event import Event, EventInventory, EventStatus
from app.models.quote import QuoteStatus
from app.services.event_service import (
    copy_quote_items_to_event,
    create_event,
    create_event_for_accepted_quote,
    delete_event,
    get_event_with_details,
    list_events,
    update_event,
)

from factories import make_bulk_item, make_quote


class TestCopyQuoteItems:
    @pytest.mark.asyncio
    async def test_copy_is_idempotent(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, price="5.00")
        quote = await make_quote(tenant_id, lines=[(item, 2), (item, 3)])
        event = await Event.create(
            tenant_id=tenant_id, name="Party", start_date=quote.start_date, end_date=quote.end_date
        )

        assert await copy_quote_items_to_event(tenant_id, event.id, quote.id) == 2
        assert await copy_quote_items_to_event(tenant_id, event.id, quote.id) == 0

        rows = await EventInventory.filter(event_id=event.id)
        assert sorted(r.quantity for r in rows) == [2, 3]

    @pytest.mark.asyncio
    async def test_empty_quote_copies_nothing(self, db, tenant_id):
        quote = await make_quote(tenant_id)
        event = await Event.create(
            tenant_id=tenant_id, name="Party", start_date=quote.start_date, end_date=quote.end_date
        )
        assert await copy_quote_items_to_event(tenant_id, event.id, quote.id) == 0


class TestCreateEvent:
    @pytest.mark.asyncio
    async def test_standalone_event_is_draft(self, db, tenant_id):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", location=" Hall B ")
        assert event.status == EventStatus.DRAFT
        assert event.location == "Hall B"
        assert event.quote_id is None

    @pytest.mark.asyncio
    async def test_event_from_quote_is_confirmed_and_copies(self, db, tenant_id):
        item = await make_bulk_item(tenant_id)
        quote = await make_quote(tenant_id, lines=[(item, 4)])

        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", quote_id=quote.id)
        assert event.status == EventStatus.CONFIRMED
        assert await EventInventory.filter(event_id=event.id).count() == 1

    @pytest.mark.asyncio
    async def test_rejects_bad_dates_and_unknown_quote(self, db, tenant_id):
        with pytest.raises(ValidationError):
            await create_event(tenant_id, "Expo", "2024-09-03", "2024-09-01")
        with pytest.raises(NotFoundError):
            await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", quote_id=uuid4())
        assert await Event.all().count() == 0


class TestPromotion:
    @pytest.mark.asyncio
    async def test_promotion_twice_yields_one_event(self, db, tenant_id):
        item = await make_bulk_item(tenant_id)
        quote = await make_quote(tenant_id, status=QuoteStatus.ACCEPTED, name="Fair", lines=[(item, 2)])

        first, created = await create_event_for_accepted_quote(tenant_id, quote.id)
        assert created is True
        second, created = await create_event_for_accepted_quote(tenant_id, quote.id)
        assert created is False
        assert second.id == first.id

        assert await Event.filter(quote_id=quote.id).count() == 1
        assert await EventInventory.filter(event_id=first.id).count() == 1

    @pytest.mark.asyncio
    async def test_draft_quote_cannot_be_promoted(self, db, tenant_id):
        quote = await make_quote(tenant_id)
        with pytest.raises(ValidationError):
            await create_event_for_accepted_quote(tenant_id, quote.id)


class TestEventDetails:
    @pytest.mark.asyncio
    async def test_details_copy_missing_inventory(self, db, tenant_id):
        item = await make_bulk_item(tenant_id, name="Stage")
        quote = await make_quote(tenant_id, lines=[(item, 1)])
        # Linked to the quote but created without going through create_event
        event = await Event.create(
            tenant_id=tenant_id, name="Show", start_date=quote.start_date, end_date=quote.end_date, quote_id=quote.id
        )

        _, inventory = await get_event_with_details(tenant_id, event.id)
        assert [row["item_name"] for row in inventory] == ["Stage"]

        _, inventory = await get_event_with_details(tenant_id, event.id)
        assert len(inventory) == 1

    @pytest.mark.asyncio
    async def test_other_tenant_sees_nothing(self, db, tenant_id):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03")
        with pytest.raises(NotFoundError):
            await get_event_with_details(uuid4(), event.id)
        assert await list_events(uuid4()) == []
        assert [e.id for e in await list_events(tenant_id)] == [event.id]

    @pytest.mark.asyncio
    async def test_delete_event_removes_inventory(self, db, tenant_id):
        item = await make_bulk_item(tenant_id)
        quote = await make_quote(tenant_id, lines=[(item, 1)])
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", quote_id=quote.id)

        await delete_event(tenant_id, event.id)
        assert await Event.filter(id=event.id).count() == 0
        assert await EventInventory.all().count() == 0
        with pytest.raises(NotFoundError):
            await delete_event(tenant_id, event.id)


class TestUpdateEvent:
    @pytest.mark.asyncio
    async def test_edits_details_and_status(self, db, tenant_id):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", location="Hall B")

        updated = await update_event(
            tenant_id, event.id, " Expo 2024 ", "2024-09-02", "2024-09-05",
            description="Annual trade show", location="", status="in_progress",
        )
        assert updated.name == "Expo 2024"
        assert updated.location is None
        assert updated.status == EventStatus.IN_PROGRESS

        stored = await Event.get(id=event.id)
        assert (str(stored.start_date), str(stored.end_date)) == ("2024-09-02", "2024-09-05")
        assert stored.description == "Annual trade show"

    @pytest.mark.asyncio
    async def test_status_kept_when_omitted(self, db, tenant_id):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03", status=EventStatus.CONFIRMED)
        updated = await update_event(tenant_id, event.id, "Expo", "2024-09-01", "2024-09-03")
        assert updated.status == EventStatus.CONFIRMED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name, start, end, status", [
        ("Expo", "2024-09-01", "2024-09-03", "postponed"),
        ("Expo", "2024-09-05", "2024-09-01", None),
        ("", "2024-09-01", "2024-09-03", None),
    ])
    async def test_rejects_bad_input(self, db, tenant_id, name, start, end, status):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03")
        with pytest.raises(ValidationError):
            await update_event(tenant_id, event.id, name, start, end, status=status)

        stored = await Event.get(id=event.id)
        assert stored.name == "Expo"
        assert stored.status == EventStatus.DRAFT

    @pytest.mark.asyncio
    async def test_other_tenant_not_found(self, db, tenant_id):
        event = await create_event(tenant_id, "Expo", "2024-09-01", "2024-09-03")
        with pytest.raises(NotFoundError):
            await update_event(uuid4(), event.id, "Mine", "2024-09-01", "2024-09-03")
