"""
Exceptions raised by Edge Visits.
"""


class EdgeVisitsError(Exception):
    """Base class for Edge Visits errors."""
    pass


class StoreNotConfiguredError(EdgeVisitsError):
    """Raised when an operation needs the visit store but none is configured."""

    def __init__(self, message: str = "Database not configured"):
        super().__init__(message)


class StoreQueryError(EdgeVisitsError):
    """Raised when the visit store rejects or fails a statement."""
    pass
