# Overview: Typed failures raised by ledger and workflow services.

"""
Error taxonomy shared by every service.

Every failure a service can report is a LedgerError subclass carrying a
stable machine code and the HTTP status the routes answer with. Services
validate input before touching the ledger, so a ValidationError never
leaves partial state behind; everything raised inside a transaction is
rolled back by run_in_transaction.
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for all shop ledger failures."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.details}


class ValidationError(LedgerError):
    """Request rejected before any mutation (missing/invalid fields)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFound(LedgerError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


class Unauthorized(LedgerError):
    """Principal lacks the role or shop membership an operation requires."""

    code = "UNAUTHORIZED"
    status_code = 403


class InvalidStateTransition(LedgerError):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409


class InsufficientStock(LedgerError):
    """Requested quantity exceeds what the ledger holds at commit time."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, item_name: str, requested: int, available: int, shop_id: int | None = None):
        super().__init__(
            f"Insufficient stock for {item_name}: only {available} in stock, {requested} requested",
            item_name=item_name,
            requested=requested,
            available=available,
            shop_id=shop_id,
        )


class AllocationExceedsPool(InsufficientStock):
    code = "ALLOCATION_EXCEEDS_POOL"


class AlreadyProcessed(LedgerError):
    """
    Idempotent no-op signal.

    Raised inside a transaction to abort it cleanly when the requested
    transition has already happened; public service functions catch it and
    return the unchanged entity instead of surfacing an error.
    """

    code = "ALREADY_PROCESSED"
    status_code = 200
