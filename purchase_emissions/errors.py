"""
Exception types shared across the pipeline.

Only precondition problems abort a run. Service errors are caught per
candidate by the estimate adapter and turned into failure outcomes.
"""

from __future__ import annotations

from typing import Optional


class PreconditionError(Exception):
    """
    Raised before any row is processed when the run cannot start:
    missing configuration, unreadable or malformed input, missing credential.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EstimationServiceError(Exception):
    """
    Raised by the estimation service client.

    Attributes:
        message: Human-readable description of the failure
        status_code: HTTP status assigned by the server, or None when the
            request never produced a usable response (transport error,
            undecodable body). Only the latter is retried.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.status_code is None
