"""
Pipeline — the ROP chains behind each command.

Domain layer — no direct I/O. Network and filesystem access is injected via
ports (Protocol interfaces).

Bundle pipeline:

  fetch(host, port)
    → write_chain(chain)              transient raw capture
      → split_pem_blocks(chain.text)
        → classify_chain(blocks)      per-certificate parse errors isolated
          → select_bundle(classified)
            → write_bundle(bundle)
              → discard_chain()

Each stage returns Result[T]. Failures short-circuit automatically.
Verification is different on purpose: every domain is attempted and the
outcomes are collected into a VerificationReport.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.bundler import select_bundle
from ca_bundler.domain.classifier import classify_chain
from ca_bundler.domain.models import (
    BundleInfo,
    CertificateChain,
    ClassifiedChain,
    DomainVerification,
    TrustBundle,
    VerificationReport,
)
from ca_bundler.domain.ports import (
    BundleStore,
    CertificateDecoder,
    ChainFetcher,
    TrustVerifier,
)
from ca_bundler.domain.splitter import split_pem_blocks

log = structlog.get_logger()


def _classify_capture(
    chain: CertificateChain,
    decoder: CertificateDecoder,
    root_marker: str,
) -> ClassifiedChain:
    """Split the raw capture and classify every complete block."""
    split = split_pem_blocks(chain.text)
    classified = classify_chain(split.blocks, decoder, root_marker)
    return ClassifiedChain(
        certificates=classified.certificates,
        errors=split.errors + classified.errors,
    )


def run_bundle_pipeline(
    fetcher: ChainFetcher,
    decoder: CertificateDecoder,
    store: BundleStore,
    host: str,
    port: int,
    root_marker: str,
) -> Result[TrustBundle]:
    """
    Fetch host:port's chain and write the root + intermediate trust bundle.

    Returns Result[TrustBundle] (with `path` set) on success, or the failure
    of the first failing stage. On a fetch failure the transient chain file
    is removed; on a bundle failure it is kept for inspection.
    """
    return (
        fetcher.fetch(host, port)
        .peek_failure(lambda _: store.discard_chain())
        .flat_map(store.write_chain)
        .map(lambda chain: _classify_capture(chain, decoder, root_marker))
        .flat_map(lambda classified: select_bundle(classified, root_marker))
        .flat_map(store.write_bundle)
        .peek(lambda _: store.discard_chain())
        .peek(lambda bundle: log.info(
            "pipeline.bundle_created",
            path=str(bundle.path),
            root=bundle.root.subject,
            intermediate=bundle.intermediate.subject,
            ambiguities=len(bundle.ambiguities),
        ))
    )


def verify_domains(
    verifier: TrustVerifier,
    bundle_path: Path,
    domains: Iterable[str],
    port: int,
) -> VerificationReport:
    """Verify every domain against the bundle; never stops early."""
    results = []
    for domain in domains:
        outcome = verifier.verify(bundle_path, domain, port)
        results.append(
            outcome.either(
                on_success=lambda version, d=domain: DomainVerification(d, port, True, version),
                on_failure=lambda err, d=domain: DomainVerification(d, port, False, err.message),
            )
        )

    report = VerificationReport(results=tuple(results))
    log.info("pipeline.verification_complete", passed=report.passed, total=report.total)
    return report


def inspect_bundle(store: BundleStore, decoder: CertificateDecoder) -> Result[BundleInfo]:
    """Read the existing bundle and decode its certificates for reporting."""
    return store.read_bundle().flat_map(
        lambda raw: _bundle_info(store.bundle_path, raw, decoder)
    )


def _bundle_info(path: Path, raw: bytes, decoder: CertificateDecoder) -> Result[BundleInfo]:
    split = split_pem_blocks(raw.decode("ascii", errors="replace"))
    decoded = [decoder.decode(block) for block in split.blocks]
    failed = [r.error() for r in decoded if r.is_failure()]
    if failed:
        return Result.failure(
            ErrorCode.VALIDATION_ERROR,
            f"{path} contains {len(failed)} undecodable certificate(s): {failed[0].message}",
        )
    return Result.success(
        BundleInfo(
            path=path,
            size_bytes=len(raw),
            certificates=tuple(r.value() for r in decoded),
        )
    )
