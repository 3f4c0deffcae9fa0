"""
Domain Errors
Every failure raised by the ledger, pricing and yield layers
"""


class LedgerError(Exception):
    """Base class for all domain errors; carries a human-readable message"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidInputError(LedgerError):
    """Malformed amount, term, yield or period"""


class InvalidAmountError(InvalidInputError):
    pass


class InvalidYieldError(InvalidInputError):
    pass


class InvalidTermError(InvalidInputError):
    pass


class InvalidSecurityTypeError(InvalidInputError):
    """Term is valid but does not match the requested pricing path"""


class InvalidPeriodError(InvalidInputError):
    pass


class InsufficientBalanceError(LedgerError):
    pass


class NotFoundError(LedgerError):
    pass


class ForbiddenError(LedgerError):
    pass


class InvalidStateError(LedgerError):
    """Stored data is valid but the operation cannot proceed (e.g. future-dated purchase)"""


class DataIntegrityError(LedgerError):
    """Stored row cannot be interpreted (e.g. legacy holding with an unknown term)"""


class FetchError(LedgerError):
    """External yield feed unreachable, non-2xx, timed out or unparseable"""


class NoDataError(LedgerError):
    """Yield feed returned zero usable entries"""
