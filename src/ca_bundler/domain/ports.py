"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT the pipeline needs (contracts) without specifying
HOW it's done (implementation). Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the methods — no inheritance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from railway.result import Result

from ca_bundler.domain.models import Certificate, CertificateChain, TrustBundle


@runtime_checkable
class ChainFetcher(Protocol):
    """
    Port: capture the certificate chain a TLS peer presents.

    Peer validation is disabled — the point is to capture whatever an
    intercepting proxy presents. One attempt, no retry.
    """

    def fetch(self, host: str, port: int) -> Result[CertificateChain]: ...


@runtime_checkable
class CertificateDecoder(Protocol):
    """Port: decode one PEM block into a Certificate (subject/issuer DNs)."""

    def decode(self, pem_block: str) -> Result[Certificate]: ...


@runtime_checkable
class BundleStore(Protocol):
    """
    Port: persistence of the trust bundle and the transient raw chain.

    write_bundle replaces any existing bundle; partial writes never
    become visible at the bundle path.
    """

    @property
    def bundle_path(self) -> Path: ...

    def write_chain(self, chain: CertificateChain) -> Result[CertificateChain]: ...

    def discard_chain(self) -> None: ...

    def write_bundle(self, bundle: TrustBundle) -> Result[TrustBundle]: ...

    def read_bundle(self) -> Result[bytes]: ...

    def bundle_exists(self) -> bool: ...

    def clean(self) -> list[Path]: ...


@runtime_checkable
class TrustVerifier(Protocol):
    """
    Port: validate a domain's live chain using a bundle as the sole trust anchor.

    Returns Result[str] with the negotiated TLS version on success.
    """

    def verify(self, bundle_path: Path, domain: str, port: int) -> Result[str]: ...
