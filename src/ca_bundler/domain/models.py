"""
Domain models — immutable value objects for chains, certificates and bundles.

These are pure value objects with no behavior beyond derived views.
All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, unique
from pathlib import Path

from ca_bundler.domain.errors import ParseError


@dataclass(frozen=True, slots=True)
class CertificateChain:
    """
    The certificates a TLS peer presented during the handshake.

    `pem_blocks` keeps presentation order (leaf first by convention).
    """

    host: str
    port: int
    pem_blocks: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Raw capture as concatenated PEM text."""
        return "".join(self.pem_blocks)

    def __len__(self) -> int:
        return len(self.pem_blocks)


@dataclass(frozen=True, slots=True)
class PemSplit:
    """Complete PEM blocks found in raw text, plus any discarded partial blocks."""

    blocks: tuple[str, ...] = ()
    errors: tuple[ParseError, ...] = ()


@dataclass(frozen=True, slots=True)
class Certificate:
    """
    A decoded X.509 certificate.

    `subject` and `issuer` are RFC 4514 distinguished name strings,
    e.g. "CN=SB1A-ROOT-CA,O=SB1,C=NO".
    """

    raw: str = field(repr=False)
    subject: str
    issuer: str
    serial_number: str | None = None
    not_valid_after: datetime | None = None
    fingerprint_sha256: str | None = field(default=None, repr=False)


@unique
class Classification(Enum):
    ROOT = "root"
    INTERMEDIATE = "intermediate"
    LEAF = "leaf"


@dataclass(frozen=True, slots=True)
class ClassifiedCertificate:
    certificate: Certificate
    classification: Classification
    position: int


@dataclass(frozen=True, slots=True)
class ClassifiedChain:
    """Classification outcome for a whole chain, in chain order."""

    certificates: tuple[ClassifiedCertificate, ...] = ()
    errors: tuple[ParseError, ...] = ()

    def _of(self, classification: Classification) -> list[ClassifiedCertificate]:
        return [c for c in self.certificates if c.classification is classification]

    @property
    def roots(self) -> list[ClassifiedCertificate]:
        return self._of(Classification.ROOT)

    @property
    def intermediates(self) -> list[ClassifiedCertificate]:
        return self._of(Classification.INTERMEDIATE)

    @property
    def leaves(self) -> list[ClassifiedCertificate]:
        return self._of(Classification.LEAF)


@dataclass(frozen=True, slots=True)
class ClassificationAmbiguity:
    """More than one candidate for a bundle slot; the first in chain order was kept."""

    classification: Classification
    chosen: str
    ignored: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TrustBundle:
    """
    The trust bundle: exactly one root followed by exactly one intermediate.

    `path` is set once the bundle has been written to storage.
    """

    root: Certificate
    intermediate: Certificate
    ambiguities: tuple[ClassificationAmbiguity, ...] = ()
    path: Path | None = None

    @property
    def certificates(self) -> tuple[Certificate, Certificate]:
        return (self.root, self.intermediate)

    @property
    def pem_text(self) -> str:
        return "".join(_terminated(cert.raw) for cert in self.certificates)


def _terminated(pem: str) -> str:
    return pem if pem.endswith("\n") else pem + "\n"


@dataclass(frozen=True, slots=True)
class DomainVerification:
    domain: str
    port: int
    passed: bool
    detail: str = ""


@dataclass(frozen=True, slots=True)
class VerificationReport:
    """Per-domain verification outcomes, in the order the domains were tried."""

    results: tuple[DomainVerification, ...] = ()

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def all_passed(self) -> bool:
        return self.total > 0 and self.passed == self.total


@dataclass(frozen=True, slots=True)
class BundleInfo:
    """Summary of an existing bundle file, as reported by the `info` action."""

    path: Path
    size_bytes: int
    certificates: tuple[Certificate, ...] = ()
