from enum import Enum
from tortoise import fields, models
import uuid


class EventStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Event(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    start_date = fields.DateField()
    end_date = fields.DateField()
    location = fields.CharField(max_length=255, null=True)
    status = fields.CharEnumField(EventStatus, default=EventStatus.DRAFT)
    quote = fields.ForeignKeyField(
        "models.Quote", related_name="events", null=True, on_delete=fields.SET_NULL
    )
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "events"
        indexes = [
            ("tenant_id", "start_date"),
            ("quote_id",),  # One event per quote lookup
        ]


class EventInventory(models.Model):
    """Point-in-time copy of a quote line item."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    event = fields.ForeignKeyField("models.Event", related_name="inventory", on_delete=fields.CASCADE)
    item = fields.ForeignKeyField("models.InventoryItem", related_name="event_inventory")
    quantity = fields.IntField()
    unit_price_snapshot = fields.DecimalField(max_digits=12, decimal_places=2)
    notes = fields.TextField(null=True)

    class Meta:
        table = "event_inventory"
