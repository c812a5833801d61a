from enum import Enum
from tortoise import fields, models
import uuid


class LedgerAction(str, Enum):
    CONSUME = "consume"
    RELEASE = "release"


class LedgerAuditEntry(models.Model):
    """
    Append-only record of every ledger consume/release, written in the same
    transaction as the mutation. ``applied < requested`` marks drift between
    the ledger and the quote that caused it.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tenant_id = fields.UUIDField()
    item_id = fields.UUIDField()
    quote_id = fields.UUIDField(null=True)
    action = fields.CharEnumField(LedgerAction)
    requested = fields.IntField()
    applied = fields.IntField()
    reason = fields.CharField(max_length=128)  # e.g. 'quote.confirmed', 'quote_item.deleted'
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "ledger_audit_entries"
        indexes = [
            ("tenant_id", "item_id"),
            ("quote_id",),
        ]
