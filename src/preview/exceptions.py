"""Errors raised by the calculation collaborator and handled by the preview."""

from typing import Optional


class TaxPreviewError(Exception):
    """Base class for estimate preview errors."""


class TransientComputeFailure(TaxPreviewError):
    """A compute attempt failed; the last good estimate stays in place."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CalculationServiceUnavailable(TransientComputeFailure):
    """Network error or timeout talking to the calculation service."""


class CalculationServiceError(TransientComputeFailure):
    """The calculation service answered with a non-success status."""


class MalformedEstimateError(TransientComputeFailure):
    """The calculation service answered with a body that is not an estimate."""
