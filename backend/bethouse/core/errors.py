"""Error taxonomy of the wagering engine.

Every failure a caller can expect is a ``BettingError`` subclass carrying a
stable ``code`` and a human-readable message. Only ``Contention`` is
retryable; all other kinds are permanent for the given input.
"""

from __future__ import annotations


class BettingError(Exception):
    code = "BETTING_ERROR"
    status_code = 400
    retryable = False
    default_message = "The request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class InvalidInput(BettingError):
    code = "INVALID_INPUT"
    default_message = "The request is malformed."


class InvalidAmount(BettingError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than zero."


class InsufficientFunds(BettingError):
    code = "INSUFFICIENT_FUNDS"
    status_code = 409
    default_message = "Insufficient balance for this operation."


class AlreadyClaimedToday(BettingError):
    code = "ALREADY_CLAIMED_TODAY"
    status_code = 409
    default_message = "Daily bonus already claimed today."


class NotFound(BettingError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class InvalidStateTransition(BettingError):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409
    default_message = "This status change is not allowed."


class InvalidOption(BettingError):
    code = "INVALID_OPTION"
    default_message = "The option does not belong to this event."


class EventNotOpen(BettingError):
    code = "EVENT_NOT_OPEN"
    status_code = 409
    default_message = "The event is not open for betting."


class ForbiddenRole(BettingError):
    code = "FORBIDDEN_ROLE"
    status_code = 403
    default_message = "Your role is not allowed to perform this action."


class AlreadySettled(BettingError):
    code = "ALREADY_SETTLED"
    status_code = 409
    default_message = "The event has already been settled."


class Contention(BettingError):
    code = "CONTENTION"
    status_code = 503
    retryable = True
    default_message = "The resource is busy, please retry."
