from typing import Optional


class TogatherError(Exception):
    """Base class for meeting-point computation errors"""


class InvalidRequest(TogatherError):
    """The request body cannot be turned into participants."""


class InsufficientLocations(TogatherError):
    """Fewer than two usable addresses."""

    def __init__(self, count: int = 0, message: Optional[str] = None):
        self.count = count
        super().__init__(message or f"At least two locations are required (got {count}).")


class NoCandidateFound(TogatherError):
    """No grid point produced any travel-time data."""


class ProviderError(TogatherError):
    """A maps provider call failed (network, quota, malformed response)."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")
