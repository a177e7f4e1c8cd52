"""
Shared test fixtures and helpers for the ca-bundler test suite.

Generates throwaway certificate hierarchies (root → intermediate → leaf)
with cryptography, named after the deployment this tool was written for:
SB1A-ROOT-CA signs SB1A-INTERMEDIATE-CA, which signs the server leaf.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from ipaddress import IPv4Address

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

ROOT_MARKER = "CN=SB1A-ROOT-CA"

_ENV_VARS = (
    "DOMAIN",
    "PORT",
    "ROOT_MARKER",
    "BUNDLE_PATH",
    "CHAIN_PATH",
    "TLS_TIMEOUT_SECONDS",
    "VERIFY__DOMAINS",
    "VERIFY__PORT",
    "LOG_LEVEL",
)


@dataclass(frozen=True, slots=True)
class IssuedCert:
    """A generated certificate together with its private key."""

    cert: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    @property
    def pem(self) -> str:
        return self.cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    @property
    def key_pem(self) -> bytes:
        return self.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )


@dataclass(frozen=True, slots=True)
class Pki:
    root: IssuedCert
    intermediate: IssuedCert
    leaf: IssuedCert

    @property
    def chain_pem(self) -> str:
        """Chain as a server presents it: leaf, intermediate, root."""
        return self.leaf.pem + self.intermediate.pem + self.root.pem


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _san(dns_names: tuple[str, ...]) -> x509.SubjectAlternativeName:
    return x509.SubjectAlternativeName(
        [x509.DNSName(name) for name in dns_names] + [x509.IPAddress(IPv4Address("127.0.0.1"))]
    )


def issue_certificate(
    common_name: str,
    issuer: IssuedCert | None = None,
    *,
    ca: bool,
    dns_names: tuple[str, ...] = (),
    bare: bool = False,
) -> IssuedCert:
    """
    Issue a certificate signed by `issuer`, or self-signed when issuer is None.

    CA certificates get critical basic constraints and keyCertSign; end-entity
    certificates get serverAuth and a SAN covering `dns_names` and 127.0.0.1.
    With `bare=True` only basicConstraints (and the leaf SAN) are added, the
    shape of older corporate CAs issued without key identifiers or keyUsage.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    subject = _name(common_name)
    issuer_name = issuer.cert.subject if issuer else subject
    signing_key = issuer.key if issuer else key
    authority_key = (issuer.key if issuer else key).public_key()
    now = datetime.now(UTC)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if bare:
        if not ca:
            builder = builder.add_extension(_san(dns_names), critical=False)
        return IssuedCert(cert=builder.sign(signing_key, hashes.SHA256()), key=key)

    builder = builder.add_extension(
        x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
    ).add_extension(
        x509.AuthorityKeyIdentifier.from_issuer_public_key(authority_key),
        critical=False,
    )
    if ca:
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    else:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        ).add_extension(_san(dns_names), critical=False)

    return IssuedCert(cert=builder.sign(signing_key, hashes.SHA256()), key=key)


def build_pki(
    root_cn: str = "SB1A-ROOT-CA",
    intermediate_cn: str = "SB1A-INTERMEDIATE-CA",
    leaf_cn: str = "example.com",
    *,
    bare: bool = False,
) -> Pki:
    root = issue_certificate(root_cn, ca=True, bare=bare)
    intermediate = issue_certificate(intermediate_cn, root, ca=True, bare=bare)
    leaf = issue_certificate(
        leaf_cn, intermediate, ca=False, dns_names=(leaf_cn, "localhost"), bare=bare
    )
    return Pki(root=root, intermediate=intermediate, leaf=leaf)


@pytest.fixture(scope="session")
def pki() -> Pki:
    """The SB1A hierarchy: SB1A-ROOT-CA → SB1A-INTERMEDIATE-CA → example.com."""
    return build_pki()


@pytest.fixture(scope="session")
def other_pki() -> Pki:
    """An unrelated hierarchy that the SB1A bundle must not validate."""
    return build_pki("OTHER-ROOT-CA", "OTHER-INTERMEDIATE-CA", "unrelated.example")


@pytest.fixture(scope="session")
def bare_pki() -> Pki:
    """SB1A-named hierarchy whose certificates carry only basicConstraints (and the leaf SAN)."""
    return build_pki(bare=True)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ambient environment variables out of AppSettings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo structlog configuration installed by main() during a test."""
    yield
    structlog.reset_defaults()
