"""
TLS verifier adapter — validate a domain against the trust bundle.

Adapter layer — implements the TrustVerifier port with the standard
library ssl module: create_default_context(cafile=...) loads ONLY the
bundle (no system store), with CERT_REQUIRED and hostname checking on.
X.509 strict mode (default from Python 3.13) is switched off so CA
certificates lacking key identifiers or keyUsage validate as they do
with openssl s_client.

Every error, including network errors, is a verification failure for
that domain. No retries.
"""

from __future__ import annotations

import socket
import ssl
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.errors import VerificationFailure

log = structlog.get_logger()


class SslTrustVerifier:
    """
    Handshake with chain and hostname validation against a bundle file.

    Implements the TrustVerifier port.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def verify(self, bundle_path: Path, domain: str, port: int) -> Result[str]:
        """Return Result[str] with the negotiated TLS version on success."""
        try:
            context = ssl.create_default_context(cafile=str(bundle_path))
        except (OSError, ssl.SSLError) as e:
            return _failure(ErrorCode.NOT_FOUND, domain, port, f"cannot load trust bundle {bundle_path}: {e}")

        # RFC 5280 path validation only: CA certificates without AKI/SKI/keyUsage stay valid.
        context.verify_flags &= ~ssl.VERIFY_X509_STRICT

        try:
            with (
                socket.create_connection((domain, port), timeout=self._timeout) as sock,
                context.wrap_socket(sock, server_hostname=domain) as tls,
            ):
                version = tls.version() or "unknown"
        except ssl.SSLCertVerificationError as e:
            return _failure(ErrorCode.VALIDATION_ERROR, domain, port, e.verify_message or str(e))
        except TimeoutError as e:
            return _failure(ErrorCode.TIMEOUT_ERROR, domain, port, f"timed out: {e}")
        except (ssl.SSLError, OSError) as e:
            return _failure(ErrorCode.EXTERNAL_SERVICE_ERROR, domain, port, str(e))

        log.info("verifier.passed", domain=domain, port=port, tls_version=version)
        return Result.success(version)


def _failure(code: ErrorCode, domain: str, port: int, detail: str) -> Result[str]:
    log.warning("verifier.failed", domain=domain, port=port, detail=detail)
    return Result.failure(
        code,
        f"Verification failed for {domain}:{port}: {detail}",
        VerificationFailure(domain, port, detail),
    )
