"""
Typed exceptions for trust accounting operations.

Every error carries a machine-readable ``code`` and the HTTP ``status_code``
the API layer should answer with. ``to_dict`` returns any structured data the
client needs besides the message (for example the figures behind an
insufficient-funds rejection).
"""

from typing import Optional

from app.common.money import format_cents


class TrustAccountError(Exception):
    """Base exception for all trust accounting errors."""

    code: str = "TRUST_ACCOUNT_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {}


class NotFoundError(TrustAccountError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidAmountError(TrustAccountError):
    code = "INVALID_AMOUNT"


class MatterClosedError(TrustAccountError):
    code = "MATTER_CLOSED"

    def __init__(self, what: str):
        super().__init__(f"Cannot add {what} to a closed matter")


class MatterBalanceError(TrustAccountError):
    """Closing a matter requires a zero balance."""

    code = "MATTER_BALANCE_NOT_ZERO"

    def __init__(self, balance_cents: int):
        self.balance_cents = balance_cents
        super().__init__(
            f"Cannot close matter with non-zero balance. Current balance: {format_cents(balance_cents)}"
        )

    def to_dict(self) -> dict:
        return {"balance_cents": self.balance_cents}


class HoldStateError(TrustAccountError):
    code = "INVALID_HOLD_STATE"


class InsufficientFundsError(TrustAccountError):
    """A disbursement or hold would take available balance below zero."""

    code = "INSUFFICIENT_FUNDS"

    def __init__(
        self,
        balance_cents: int,
        held_cents: int,
        requested_cents: int,
        verified_by_ledger: bool = False,
    ):
        self.balance_cents = balance_cents
        self.held_cents = held_cents
        self.available_cents = balance_cents - held_cents
        self.requested_cents = requested_cents
        self.shortfall_cents = max(requested_cents - self.available_cents, 0)
        self.verified_by_ledger = verified_by_ledger
        source = " (verified by trust ledger)" if verified_by_ledger else ""
        super().__init__(
            f"Insufficient available funds{source}. "
            f"Balance: {format_cents(self.balance_cents)}, "
            f"Held: {format_cents(self.held_cents)}, "
            f"Available: {format_cents(self.available_cents)}, "
            f"Requested: {format_cents(self.requested_cents)}, "
            f"Shortfall: {format_cents(self.shortfall_cents)}"
        )

    def to_dict(self) -> dict:
        return {
            "balance_cents": self.balance_cents,
            "held_cents": self.held_cents,
            "available_cents": self.available_cents,
            "requested_cents": self.requested_cents,
            "shortfall_cents": self.shortfall_cents,
            "verified_by_ledger": self.verified_by_ledger,
        }


class LedgerServiceError(TrustAccountError):
    """The external trust ledger rejected a request or could not be reached."""

    code = "LEDGER_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        ledger_code: str = "UNKNOWN_ERROR",
        ledger_status: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.ledger_code = ledger_code
        self.ledger_status = ledger_status
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"ledger_code": self.ledger_code, "ledger_status": self.ledger_status}


class LedgerUnavailableError(LedgerServiceError):
    """A strict ledger write failed, so the local write was refused."""

    code = "LEDGER_UNAVAILABLE"

    def __init__(self, operation: str, cause: LedgerServiceError):
        super().__init__(
            f"Failed to process {operation} through the trust ledger: {cause.message}",
            ledger_code=cause.ledger_code,
            ledger_status=cause.ledger_status,
            details=cause.details,
        )


class ExtractionError(TrustAccountError):
    """Document extraction failed or returned unusable output."""

    code = "EXTRACTION_FAILED"
    status_code = 502
