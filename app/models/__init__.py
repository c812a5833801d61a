# app/models/__init__.py
from .inventory import InventoryItem, InventoryStock, InventoryUnit, MaintenanceLog, UnitStatus
from .quote import Quote, QuoteItem, QuoteStatus
from .event import Event, EventInventory, EventStatus
from .ledger_audit import LedgerAction, LedgerAuditEntry

# Export all models
__all__ = [
    "InventoryItem",
    "InventoryStock",
    "InventoryUnit",
    "MaintenanceLog",
    "UnitStatus",
    "Quote",
    "QuoteItem",
    "QuoteStatus",
    "Event",
    "EventInventory",
    "EventStatus",
    "LedgerAction",
    "LedgerAuditEntry",
]
