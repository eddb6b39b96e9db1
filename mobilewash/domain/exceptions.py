"""
Domain-specific exception hierarchy for the mobilewash application.
"""


class MobileWashError(Exception):
    """Base class for all application-level errors."""


class InvalidInputError(MobileWashError, ValueError):
    """Raised when arguments are malformed or out of range."""


class NotFoundError(MobileWashError):
    """Raised when a referenced booking, contract or address does not resolve."""


class UpstreamUnavailableError(MobileWashError):
    """Raised when an external collaborator (e.g. geocoding) cannot answer."""
