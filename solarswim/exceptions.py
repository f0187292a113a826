"""Errors raised by the pricing and membership configuration engine"""
from typing import List, Optional


class PricingValidationError(ValueError):
    """Input rejected before any mutation or network call"""


class BackendError(Exception):
    """The backend call failed or returned a non-success response"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PartialBatchError(BackendError):
    """
    Some calls of a batch failed.

    `succeeded` holds the server results of the calls that went through,
    `failed` the requests that did not. The store has already been rolled back
    to the snapshot taken before the batch.
    """

    def __init__(self, message: str, succeeded: List, failed: List):
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed


class NotFoundError(LookupError):
    """A program, category or row referenced by the caller does not exist"""
