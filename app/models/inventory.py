from enum import Enum
from tortoise import fields, models
import uuid

from app.core.config import DEFAULT_STOCK_LOCATION


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    OUT = "out"  # Checked out against an accepted quote
    MAINTENANCE = "maintenance"  # Out of service, never touched by reservation logic


class InventoryItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    is_serialized = fields.BooleanField(default=False)
    price = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    active = fields.BooleanField(default=True)  # Soft-delete marker
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "inventory_items"
        unique_together = (("tenant_id", "name"),)
        indexes = [
            ("tenant_id", "active"),  # Tenant's active catalogue
        ]


class InventoryUnit(models.Model):
    """One row per physical unit of a serialized item."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    item = fields.ForeignKeyField("models.InventoryItem", related_name="units")
    serial = fields.CharField(max_length=128, null=True)
    status = fields.CharEnumField(UnitStatus, default=UnitStatus.AVAILABLE)

    class Meta:
        table = "inventory_units"
        indexes = [
            ("item_id", "status"),  # Pick N units in a given status
        ]


class InventoryStock(models.Model):
    """Aggregate counters for a non-serialized item (one row per item per location)."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    item = fields.ForeignKeyField("models.InventoryItem", related_name="stock")
    location = fields.CharField(max_length=64, default=DEFAULT_STOCK_LOCATION)
    total_quantity = fields.IntField(default=0)
    out_of_service_quantity = fields.IntField(default=0)
    # Bumped on every ledger write; writes are conditional on the version read
    version = fields.IntField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "inventory_stock"
        unique_together = (("item", "location"),)

    @property
    def available_quantity(self) -> int:
        return self.total_quantity - (self.out_of_service_quantity or 0)


class MaintenanceLog(models.Model):
    """Free-text maintenance note on an item (repairs, inspections, damage reports)."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    item = fields.ForeignKeyField("models.InventoryItem", related_name="maintenance_logs")
    note = fields.TextField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "inventory_maintenance_logs"
        indexes = [
            ("item_id", "created_at"),
        ]
