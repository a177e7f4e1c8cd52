"""
Domain errors — exceptions attached to Result failures.

These are never raised across stage boundaries. Adapters and domain stages
build them and attach them to `Result.failure(..., exception)` so callers can
inspect the precise reason via `result.error().exception`.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class FetchFailureReason(Enum):
    NETWORK_UNREACHABLE = "network_unreachable"
    HANDSHAKE_FAILED = "handshake_failed"
    EMPTY_CHAIN = "empty_chain"


@unique
class BundleFailureReason(Enum):
    MISSING_ROOT = "missing_root"
    MISSING_INTERMEDIATE = "missing_intermediate"
    MISSING_BOTH = "missing_both"


class CaBundlerError(Exception):
    """Base class for all domain errors."""


class FetchError(CaBundlerError):
    """The certificate chain could not be captured from host:port."""

    def __init__(self, reason: FetchFailureReason, host: str, port: int, detail: str = "") -> None:
        self.reason = reason
        self.host = host
        self.port = port
        self.detail = detail
        message = f"{reason.value} fetching certificate chain from {host}:{port}"
        super().__init__(f"{message}: {detail}" if detail else message)


class ParseError(CaBundlerError):
    """A PEM block was truncated or could not be decoded as X.509."""

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        super().__init__(message)


class BundleError(CaBundlerError):
    """Root and/or intermediate CA could not be identified."""

    def __init__(self, reason: BundleFailureReason, root_marker: str) -> None:
        self.reason = reason
        self.root_marker = root_marker
        super().__init__(f"{reason.value} (root marker {root_marker!r})")


class VerificationFailure(CaBundlerError):
    """A domain could not be validated against the trust bundle."""

    def __init__(self, domain: str, port: int, detail: str) -> None:
        self.domain = domain
        self.port = port
        self.detail = detail
        super().__init__(f"{domain}:{port}: {detail}")
