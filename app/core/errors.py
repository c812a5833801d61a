"""
Error taxonomy for the inventory and quote services.

Services raise these; the FastAPI exception handlers turn them into the
uniform ``{"success": false, "error": "..."}`` body.
"""
from typing import List, Optional


class InventoryError(Exception):
    """Base class for every domain failure surfaced to callers."""
    code = "inventory_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InventoryError):
    """Malformed or missing input. Raised before any side effect."""
    code = "validation_error"
    status_code = 400


class LedgerSetupError(ValidationError):
    """The ledger is missing a row it needs (e.g. no stock row for a bulk item)."""
    code = "ledger_setup_error"


class AvailabilityError(InventoryError):
    code = "availability_error"
    status_code = 409

    def __init__(self, message: str, shortfall: int = 0, item_names: Optional[List[str]] = None):
        super().__init__(message)
        self.shortfall = shortfall
        self.item_names = item_names or []


class NotFoundError(InventoryError):
    code = "not_found"
    status_code = 404


class ConflictError(InventoryError):
    code = "conflict"
    status_code = 409

    def __init__(self, message: str, kind: str = "DUPLICATE_NAME"):
        super().__init__(message)
        self.kind = kind


class AuthorizationError(InventoryError):
    code = "forbidden"
    status_code = 403


class LedgerMutationError(InventoryError):
    """A unit flip or stock update could not be fully applied after validation passed."""
    code = "ledger_error"
    status_code = 500

    def __init__(self, message: str, requested: int = 0, applied: int = 0):
        super().__init__(message)
        self.requested = requested
        self.applied = applied


class LedgerConflictError(LedgerMutationError):
    """Stock row kept changing underneath us; retries exhausted."""
    code = "ledger_conflict"
