"""Custom exceptions for repair dispatch and the job offer lifecycle."""


class DispatchError(Exception):
    """Base class; carries the reason code and HTTP status surfaced to callers."""
    error_code = "dispatch_error"
    status_code = 400
    default_message = "The operation could not be completed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class RepairRequestNotFoundError(DispatchError):
    """Raised when a repair request cannot be found."""
    error_code = "request_not_found"
    status_code = 404
    default_message = "Repair request not found"


class OfferNotFoundError(DispatchError):
    """Raised when a job offer cannot be found."""
    error_code = "offer_not_found"
    status_code = 404
    default_message = "Job offer not found"


class ProviderNotFoundError(DispatchError):
    """Raised when a provider reference does not resolve to a record."""
    error_code = "provider_not_found"
    status_code = 404
    default_message = "Provider not found"


class OfferExpiredError(DispatchError):
    """Raised when a job offer has expired."""
    error_code = "offer_expired"
    default_message = "This job offer has expired"


class AlreadyAssignedError(DispatchError):
    """Raised when the repair request already went to another provider."""
    error_code = "already_assigned"
    default_message = "Job already assigned to another provider"


class OfferNotPendingError(DispatchError):
    """Raised when the offer was already responded to."""
    error_code = "offer_not_pending"
    default_message = "This job offer is no longer available"


class ProviderMismatchError(DispatchError):
    """Raised when the caller is not the provider the offer was made to."""
    error_code = "provider_mismatch"
    default_message = "This job offer was made to a different provider"


class RequestNotAvailableError(DispatchError):
    """Raised when the repair request is closed (completed or cancelled)."""
    error_code = "request_not_available"
    default_message = "This repair request is no longer available"


class RequestNotDispatchableError(DispatchError):
    """Raised when a dispatch round cannot start for the request's current state."""
    error_code = "request_not_dispatchable"
    default_message = "This repair request cannot be dispatched right now"
