"""
Exceptions raised by the farm core.

Ledger errors are routine refusals (not enough money, farm full, ...). Each
carries a plain-language message that can be shown to the player as-is.
"""
from .config import MESSAGES
from .formatting import format_money


class FarmError(Exception):
    """Base class for every error the farm core raises."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class UnknownTypeError(FarmError):
    """A crop or animal type id is missing from the balance tables."""

    def __init__(self, type_id, kind="item"):
        super().__init__(MESSAGES["INVALID_ITEM"])
        self.type_id = type_id
        self.kind = kind

    def __str__(self):
        return f"Unknown {self.kind} type: {self.type_id!r}"


class LedgerError(FarmError):
    pass


class InvalidAmountError(LedgerError):
    def __init__(self, amount):
        super().__init__(MESSAGES["INVALID_AMOUNT"])
        self.amount = amount


class InsufficientFundsError(LedgerError):
    def __init__(self, required, available):
        super().__init__(MESSAGES["NOT_ENOUGH_MONEY"].format(amount=format_money(required)))
        self.required = required
        self.available = available


class NotFoundError(LedgerError):
    pass


class NotMatureError(LedgerError):
    def __init__(self, message=None):
        super().__init__(message or MESSAGES["NOT_MATURE"])


class NoCapacityError(LedgerError):
    pass


class GameOverError(LedgerError):
    def __init__(self, message=None):
        super().__init__(message or MESSAGES["GAME_OVER"])
