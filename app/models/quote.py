from enum import Enum
from tortoise import fields, models
import uuid


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"  # Treated like draft for availability purposes
    ACCEPTED = "accepted"  # Line items are realized in the ledger
    REJECTED = "rejected"


class Quote(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    start_date = fields.DateField()
    end_date = fields.DateField()
    status = fields.CharEnumField(QuoteStatus, default=QuoteStatus.DRAFT)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "quotes"
        indexes = [
            ("tenant_id", "status"),
            ("start_date", "end_date"),  # Overlap lookups
        ]


class QuoteItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    quote = fields.ForeignKeyField("models.Quote", related_name="items", on_delete=fields.CASCADE)
    item = fields.ForeignKeyField("models.InventoryItem", related_name="quote_items")
    quantity = fields.IntField()
    # Captured when the line is added, decoupled from the item's live price
    unit_price_snapshot = fields.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        table = "quote_items"
        indexes = [
            ("quote_id",),
            ("item_id",),  # Reservation sums per item
        ]
