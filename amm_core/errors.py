"""
Rejection types raised by pool, token and registry operations.

Every rejection derives from ValidationError; the message is a short reason
code (e.g. "INSUFFICIENT_LIQUIDITY") that callers and tests match on.
"""


class ValidationError(Exception):
    """Raised when validation fails."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class LockedError(ValidationError):
    """Raised when a guarded operation is entered while the guard is held."""

    def __init__(self, reason: str = "LOCKED"):
        super().__init__(reason)


class ArithmeticBoundsError(ValidationError):
    """Raised on uint overflow/underflow or when a reserve exceeds 112 bits."""
    pass


class InvariantViolation(ValidationError):
    """Raised when the fee-adjusted constant product decreases across a swap."""

    def __init__(self, reason: str = "K"):
        super().__init__(reason)


class TransferFailed(ValidationError):
    """Raised when a token transfer does not report success."""

    def __init__(self, reason: str = "TRANSFER_FAILED"):
        super().__init__(reason)
