class MarketplaceError(Exception):
    """
    Base class for errors raised by the request lifecycle, the inspection
    interest registry and the bid ledger.
    """

    code = "marketplace_error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidTransition(MarketplaceError):
    code = "invalid_transition"


class ValidationError(MarketplaceError):
    code = "validation_error"


class NotFound(MarketplaceError):
    code = "not_found"


class Forbidden(MarketplaceError):
    code = "forbidden"


class Conflict(MarketplaceError):
    code = "conflict"
