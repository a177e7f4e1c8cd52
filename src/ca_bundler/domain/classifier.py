"""
Classifier — label each certificate as root, intermediate or leaf.

The decision is a pure function of (subject, issuer, root_marker):

  subject has marker | issuer has marker | subject == issuer | result
  -------------------+-------------------+-------------------+--------------
  yes                | yes               | yes               | ROOT
  yes                | yes               | no                | INTERMEDIATE
  no                 | yes               | any               | INTERMEDIATE
  any                | no                | any               | LEAF

Decoding goes through the CertificateDecoder port; a block that fails to
decode is recorded as a ParseError and skipped, it never stops the rest
of the chain from being classified.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from ca_bundler.domain.errors import ParseError
from ca_bundler.domain.models import (
    Certificate,
    ClassifiedCertificate,
    ClassifiedChain,
    Classification,
)
from ca_bundler.domain.ports import CertificateDecoder

log = structlog.get_logger()


def classify(subject: str, issuer: str, root_marker: str) -> Classification:
    """Apply the root-marker decision table to one subject/issuer pair."""
    if root_marker not in issuer:
        return Classification.LEAF
    if root_marker in subject and subject == issuer:
        return Classification.ROOT
    return Classification.INTERMEDIATE


def classify_certificate(cert: Certificate, root_marker: str) -> Classification:
    return classify(cert.subject, cert.issuer, root_marker)


def classify_chain(
    blocks: Sequence[str],
    decoder: CertificateDecoder,
    root_marker: str,
) -> ClassifiedChain:
    """Decode and classify every block, keeping chain order."""
    classified: list[ClassifiedCertificate] = []
    errors: list[ParseError] = []

    for position, block in enumerate(blocks):
        decoded = decoder.decode(block)
        if decoded.is_failure():
            failure = decoded.error()
            error = ParseError(f"Certificate #{position + 1}: {failure.message}", position=position)
            log.warning("classifier.certificate_skipped", position=position, error=str(error))
            errors.append(error)
            continue

        cert = decoded.value()
        label = classify_certificate(cert, root_marker)
        _log_decision(label, cert)
        classified.append(ClassifiedCertificate(cert, label, position))

    return ClassifiedChain(certificates=tuple(classified), errors=tuple(errors))


def _log_decision(label: Classification, cert: Certificate) -> None:
    match label:
        case Classification.ROOT:
            log.info("classifier.root_found", subject=cert.subject)
        case Classification.INTERMEDIATE:
            log.info("classifier.intermediate_found", subject=cert.subject, issuer=cert.issuer)
        case Classification.LEAF:
            log.info("classifier.end_entity_removed", subject=cert.subject)
