"""
Integration test fixtures — a local TLS server presenting a known chain.

The server runs on 127.0.0.1 with an ephemeral port in a daemon thread and
presents leaf + intermediate + root, like an intercepting proxy would.
Clients connect to "localhost", which the generated leaf certificate covers.
PlainTcpServer stands in for peers that accept TCP but never speak TLS.
"""

from __future__ import annotations

import socket
import ssl
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest

from tests.conftest import Pki


class LocalTlsServer:
    """Accept TLS connections and complete the handshake, nothing more."""

    host = "localhost"

    def __init__(self, pki: Pki, workdir: Path) -> None:
        chain_file = workdir / "server-chain.pem"
        key_file = workdir / "server-key.pem"
        chain_file.write_text(pki.chain_pem)
        key_file.write_bytes(pki.leaf.key_pem)

        self._context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self._context.load_cert_chain(chain_file, key_file)
        self._sock = socket.create_server(("127.0.0.1", 0))
        self._sock.settimeout(0.1)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def __enter__(self) -> LocalTlsServer:
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        self._thread.join(timeout=5)
        self._sock.close()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            with conn:
                conn.settimeout(5)
                try:
                    with self._context.wrap_socket(conn, server_side=True) as tls:
                        tls.recv(1)
                except (ssl.SSLError, OSError):
                    # Clients that reject the chain abort the handshake.
                    continue


class PlainTcpServer:
    """
    Accept TCP connections, answer with `reply` and hang up.

    With `reply=None` connections are never accepted: the kernel completes
    the TCP handshake from the backlog and the peer hears nothing back.
    """

    host = "127.0.0.1"

    def __init__(self, reply: bytes | None) -> None:
        self._reply = reply
        self._sock = socket.create_server(("127.0.0.1", 0))
        self._sock.settimeout(0.1)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def __enter__(self) -> PlainTcpServer:
        if self._reply is not None:
            self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=5)
        self._sock.close()

    def _serve(self) -> None:
        assert self._reply is not None
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            with conn:
                try:
                    conn.sendall(self._reply)
                except OSError:
                    continue


@pytest.fixture(scope="session")
def tls_server(pki: Pki, tmp_path_factory: pytest.TempPathFactory) -> Iterator[LocalTlsServer]:
    """Server presenting the SB1A chain."""
    with LocalTlsServer(pki, tmp_path_factory.mktemp("sb1a-server")) as server:
        yield server


@pytest.fixture(scope="session")
def other_tls_server(other_pki: Pki, tmp_path_factory: pytest.TempPathFactory) -> Iterator[LocalTlsServer]:
    """Server presenting an unrelated chain."""
    with LocalTlsServer(other_pki, tmp_path_factory.mktemp("other-server")) as server:
        yield server


@pytest.fixture(scope="session")
def bare_tls_server(bare_pki: Pki, tmp_path_factory: pytest.TempPathFactory) -> Iterator[LocalTlsServer]:
    """Server presenting a chain without key identifiers or keyUsage."""
    with LocalTlsServer(bare_pki, tmp_path_factory.mktemp("bare-server")) as server:
        yield server


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def http_server() -> Iterator[PlainTcpServer]:
    """Speaks plain HTTP: any TLS client handshake against it fails."""
    with PlainTcpServer(b"HTTP/1.1 400 Bad Request\r\nConnection: close\r\n\r\n") as server:
        yield server


@pytest.fixture
def silent_server() -> Iterator[PlainTcpServer]:
    """Accepts TCP but never answers the TLS ClientHello."""
    with PlainTcpServer(reply=None) as server:
        yield server
