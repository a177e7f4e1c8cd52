"""
TLS chain fetcher adapter — capture the presented chain via pyOpenSSL.

Adapter layer — implements the ChainFetcher port.

The standard library only exposes the peer's leaf certificate on a
non-validating connection; pyOpenSSL's Connection.get_peer_cert_chain()
returns every certificate the peer sent, in presentation order.

Flow:
  socket.create_connection (connect timeout)
    → SSL.Connection with VERIFY_NONE + SNI
      → do_handshake (bounded by the same timeout)
        → get_peer_cert_chain → cryptography → PEM blocks

Single attempt, no retry. Failures are returned as Result failures
carrying a FetchError with the precise reason.
"""

from __future__ import annotations

import ipaddress
import select
import socket
import time

import structlog
from cryptography.hazmat.primitives.serialization import Encoding
from OpenSSL import SSL
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.errors import FetchError, FetchFailureReason
from ca_bundler.domain.models import CertificateChain

log = structlog.get_logger()


class PyOpenSslChainFetcher:
    """
    Fetch the peer certificate chain without validating it.

    Implements the ChainFetcher port.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def fetch(self, host: str, port: int) -> Result[CertificateChain]:
        """
        Connect to host:port, complete a TLS handshake and capture the chain.

        Returns Result[CertificateChain] on success, or a failure with:
          - TIMEOUT_ERROR / EXTERNAL_SERVICE_ERROR + NETWORK_UNREACHABLE
          - EXTERNAL_SERVICE_ERROR + HANDSHAKE_FAILED
          - EXTERNAL_SERVICE_ERROR + EMPTY_CHAIN
        """
        log.info("fetcher.connecting", host=host, port=port, timeout=self._timeout)
        try:
            sock = socket.create_connection((host, port), timeout=self._timeout)
        except TimeoutError as e:
            return _failure(ErrorCode.TIMEOUT_ERROR, FetchFailureReason.NETWORK_UNREACHABLE, host, port, e)
        except OSError as e:
            return _failure(ErrorCode.EXTERNAL_SERVICE_ERROR, FetchFailureReason.NETWORK_UNREACHABLE, host, port, e)

        try:
            pem_blocks = self._handshake_and_capture(sock, host)
        except TimeoutError as e:
            return _failure(ErrorCode.TIMEOUT_ERROR, FetchFailureReason.HANDSHAKE_FAILED, host, port, e)
        except (SSL.Error, OSError) as e:
            return _failure(ErrorCode.EXTERNAL_SERVICE_ERROR, FetchFailureReason.HANDSHAKE_FAILED, host, port, e)
        finally:
            sock.close()

        if not pem_blocks:
            return _failure(
                ErrorCode.EXTERNAL_SERVICE_ERROR,
                FetchFailureReason.EMPTY_CHAIN,
                host,
                port,
                "peer presented no certificates",
            )

        log.info("fetcher.chain_retrieved", host=host, port=port, certificates=len(pem_blocks))
        return Result.success(CertificateChain(host=host, port=port, pem_blocks=tuple(pem_blocks)))

    def _handshake_and_capture(self, sock: socket.socket, host: str) -> list[str]:
        context = SSL.Context(SSL.TLS_CLIENT_METHOD)
        context.set_verify(SSL.VERIFY_NONE)

        conn = SSL.Connection(context, sock)
        if not _is_ip_address(host):
            conn.set_tlsext_host_name(host.encode("idna"))
        conn.set_connect_state()
        self._do_handshake(conn, sock)

        chain = conn.get_peer_cert_chain() or []
        return [
            cert.to_cryptography().public_bytes(Encoding.PEM).decode("ascii")
            for cert in chain
        ]

    def _do_handshake(self, conn: SSL.Connection, sock: socket.socket) -> None:
        """
        Drive the handshake on a socket with a timeout.

        A socket with a timeout is non-blocking at the OS level, so OpenSSL
        reports WantRead/WantWrite; wait on the socket until the deadline.
        """
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                conn.do_handshake()
                return
            except SSL.WantReadError:
                _wait(sock, deadline, for_write=False)
            except SSL.WantWriteError:
                _wait(sock, deadline, for_write=True)


def _wait(sock: socket.socket, deadline: float, for_write: bool) -> None:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TimeoutError("TLS handshake timed out")
    if for_write:
        _, ready, _ = select.select([], [sock], [], remaining)
    else:
        ready, _, _ = select.select([sock], [], [], remaining)
    if not ready:
        raise TimeoutError("TLS handshake timed out")


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _failure(
    code: ErrorCode,
    reason: FetchFailureReason,
    host: str,
    port: int,
    cause: BaseException | str,
) -> Result[CertificateChain]:
    error = FetchError(reason, host, port, str(cause))
    log.error("fetcher.failed", host=host, port=port, reason=reason.value, error=str(cause))
    return Result.failure(code, f"Failed to fetch certificates from {host}:{port}: {error}", error)
