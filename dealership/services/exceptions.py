class DealershipError(Exception):
    """Base class for all domain errors. Carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(DealershipError):
    """Raised when input is missing, malformed or breaks a business rule."""
    status_code = 400


class InvalidStateError(DealershipError):
    """Raised when a resource is not in the state an operation requires."""
    status_code = 400


class NotFoundError(DealershipError):
    """Raised when a referenced resource does not exist."""
    status_code = 404


class ForbiddenError(DealershipError):
    """Raised when the caller may not act on the resource (e.g. another branch)."""
    status_code = 403


class ConflictError(DealershipError):
    """Raised when a unique field is already taken."""
    status_code = 409


class CsvSchemaError(InvalidRequestError):
    """Raised when CSV headers cannot be mapped to the stock record."""


class StockNotAvailableError(InvalidStateError):
    """Raised when a stock item cannot be sold in its current status."""

    def __init__(self, message: str = "Stock item is not available for sale"):
        super().__init__(message)


class InvalidTransitionError(InvalidStateError):
    """Raised when a booking status change is not allowed from the current status."""
