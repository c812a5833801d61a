# scripts/seed_data.py
import asyncio
import uuid
from tortoise import Tortoise
from app.core.db import init_db
from app.models.inventory import InventoryItem, InventoryStock, InventoryUnit, UnitStatus

# Fixed so repeated runs seed the same tenant
DEMO_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

async def init():
    # Tables are created by the API on startup; pass generate_schemas=True for a fresh dev database
    await init_db(generate_schemas=False)

async def seed():
    print("Tenant:", DEMO_TENANT_ID)

    # Bulk items
    chairs, _ = await InventoryItem.get_or_create(
        tenant_id=DEMO_TENANT_ID, name="Folding Chair", defaults={"price": "3.50", "is_serialized": False}
    )
    tables, _ = await InventoryItem.get_or_create(
        tenant_id=DEMO_TENANT_ID, name="Banquet Table", defaults={"price": "12.00", "is_serialized": False}
    )
    # Serialized item
    speaker, _ = await InventoryItem.get_or_create(
        tenant_id=DEMO_TENANT_ID, name="PA Speaker", defaults={"price": "85.00", "is_serialized": True}
    )

    print("Items:", str(chairs.id), str(tables.id), str(speaker.id))

    # Create or reset stock for bulk items (idempotent)
    for item, total in ((chairs, 200), (tables, 25)):
        stock, created = await InventoryStock.get_or_create(
            tenant_id=DEMO_TENANT_ID, item=item, defaults={"total_quantity": total}
        )
        if not created:
            stock.total_quantity = total
            stock.out_of_service_quantity = 0
            stock.version += 1
            await stock.save()

    existing = await InventoryUnit.filter(item=speaker).count()
    for n in range(existing + 1, 5):
        await InventoryUnit.create(item=speaker, serial=f"PA-{n}", status=UnitStatus.AVAILABLE)

    print("Inventory seeded.")

async def main():
    await init()
    await seed()
    await Tortoise.close_connections()

if __name__ == "__main__":
    asyncio.run(main())
