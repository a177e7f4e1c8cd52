"""
Failure description — structured error information for the failure track.

An ErrorCode classifies the failure; the optional exception carries the
domain-specific detail (for example a FetchError with its reason).
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Structured error codes for the failure track."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Malformed input: undecodable certificate, truncated PEM block."""

    NOT_FOUND = "NOT_FOUND"
    """Expected artifact does not exist."""

    BUSINESS_RULE_ERROR = "BUSINESS_RULE_ERROR"
    """Domain invariant violated, e.g. no root CA in the chain."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Local infrastructure issue (filesystem, unexpected exception)."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid settings."""

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """Remote peer unreachable or TLS handshake failed."""

    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    """Operation exceeded its time limit."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected/unclassified failures."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.NOT_FOUND, "Bundle not found")
    >>> desc.code
    <ErrorCode.NOT_FOUND: 'NOT_FOUND'>
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__))
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
