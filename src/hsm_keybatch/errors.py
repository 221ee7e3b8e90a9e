# SPDX-License-Identifier: MPL-2.0
"""Exception hierarchy and failure tags for HSM key provisioning."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class FailureReason(str, Enum):
    """Why a label did not produce a provisioning result."""

    CONFIGURATION = "configuration"
    RETRY_EXHAUSTED = "retry_exhausted"
    BUSINESS_FAILURE = "business_failure"
    CONSISTENCY_FAILURE = "consistency_failure"
    MALFORMED_SIGNATURE = "malformed_signature"
    UNEXPECTED_ERROR = "unexpected_error"


class HSMKeyBatchError(Exception):
    """Base exception for key batch errors."""

    reason: FailureReason = FailureReason.UNEXPECTED_ERROR


class ConfigurationError(HSMKeyBatchError):
    """Raised when settings are missing or out of bounds."""

    reason = FailureReason.CONFIGURATION


class TransportFailure(HSMKeyBatchError):
    """A single attempt failed at the network or protocol level."""

    reason = FailureReason.RETRY_EXHAUSTED

    def __init__(self, message: str, original: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original = original


class RetryExhausted(HSMKeyBatchError):
    """Every attempt of a remote call was consumed without a terminal response."""

    reason = FailureReason.RETRY_EXHAUSTED

    def __init__(
        self,
        endpoint: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        if last_error is None:
            message = f"Max retries ({attempts}) exceeded for {endpoint}: rate limited"
        else:
            message = f"Max retries ({attempts}) exceeded for {endpoint}: {last_error}"
        super().__init__(message)
        self.endpoint = endpoint
        self.attempts = attempts
        self.last_error = last_error


class BusinessFailure(HSMKeyBatchError):
    """The HSM answered with a status the caller does not accept."""

    reason = FailureReason.BUSINESS_FAILURE

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SignatureDecodeError(BusinessFailure):
    """A signing response carried no usable signature."""

    reason = FailureReason.MALFORMED_SIGNATURE


class ConsistencyFailure(HSMKeyBatchError):
    """Two challenge signatures recovered to different addresses."""

    reason = FailureReason.CONSISTENCY_FAILURE

    def __init__(self, label: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Address mismatch for key {label}: expected {expected}, got {actual}"
        )
        self.label = label
        self.expected = expected
        self.actual = actual
