"""
backend/wedding_wager/errors.py

Purpose:
    Error taxonomy shared by services and the HTTP layer.

    WagerError and its subclasses are expected rejections: the operation was
    refused and nothing was written, so the caller can fix the input and try
    again. StoreUnavailable means the ledger store failed or kept conflicting;
    the outcome is "try again later". WriteConflict is an internal signal for
    the transaction runner and never reaches a caller.
"""


class WagerError(Exception):
    """Expected rejection of a wagering operation."""

    status_code = 400
    code = "rejected"
    retryable = False
    default_message = "Request rejected."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------- Validation ----------

class InvalidRequest(WagerError):
    status_code = 400
    code = "invalid_request"
    default_message = "Invalid request."


# ---------- Preconditions ----------

class PreconditionFailed(WagerError):
    status_code = 409
    code = "precondition_failed"
    default_message = "Request cannot be applied in the current state."


class BetNotOpen(PreconditionFailed):
    code = "bet_not_open"
    default_message = "This bet is no longer open for wagers."


class BetAlreadyResolved(PreconditionFailed):
    code = "bet_already_resolved"
    default_message = "This bet has already been settled."


class InsufficientBalance(PreconditionFailed):
    code = "insufficient_balance"
    default_message = "Not enough points for this stake."


class DuplicateWager(PreconditionFailed):
    code = "duplicate_wager"
    default_message = "You already have a wager on this bet. Edit it instead."


class NotFound(PreconditionFailed):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class BetNotFound(NotFound):
    code = "bet_not_found"
    default_message = "Bet not found."


class WagerNotFound(NotFound):
    code = "wager_not_found"
    default_message = "No open wager on this bet."


class UserNotFound(NotFound):
    code = "user_not_found"
    default_message = "User not found."


# ---------- Infrastructure ----------

class StoreUnavailable(Exception):
    """The ledger store failed or transaction retries were exhausted."""

    status_code = 503
    code = "store_unavailable"
    retryable = True


class WriteConflict(Exception):
    """A guarded write matched nothing because a concurrent transaction won."""
