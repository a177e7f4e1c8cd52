"""
X.509 decoder adapter — PEM block to Certificate via cryptography (PyCA).

Adapter layer — implements the CertificateDecoder port.
Subject and issuer are rendered as RFC 4514 strings, which is what the
root marker (e.g. "CN=SB1A-ROOT-CA") is matched against.
"""

from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.errors import ParseError
from ca_bundler.domain.models import Certificate


class CryptographyCertificateDecoder:
    """
    Decode PEM certificate blocks with cryptography.

    Implements the CertificateDecoder port. Decoding errors become
    Result.failure(VALIDATION_ERROR) carrying a ParseError; nothing raises.
    """

    def decode(self, pem_block: str) -> Result[Certificate]:
        try:
            cert = x509.load_pem_x509_certificate(pem_block.encode("ascii"))
        except (ValueError, UnicodeEncodeError) as e:
            return Result.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Undecodable certificate: {e}",
                ParseError(str(e)),
            )
        return Result.from_computation(
            lambda: _to_certificate(cert, pem_block),
            ErrorCode.VALIDATION_ERROR,
            "Failed to extract certificate names",
        )


def _to_certificate(cert: x509.Certificate, pem_block: str) -> Certificate:
    return Certificate(
        raw=pem_block,
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=format(cert.serial_number, "x"),
        not_valid_after=cert.not_valid_after_utc,
        fingerprint_sha256=cert.fingerprint(hashes.SHA256()).hex(),
    )
