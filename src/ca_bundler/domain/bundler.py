"""
Bundler — choose the root and intermediate that make up the trust bundle.

First match in chain order wins for each slot. Extra candidates are kept as
ClassificationAmbiguity records on the bundle and logged as warnings.
Writing the bundle is the BundleStore's job; this module does no I/O.
"""

from __future__ import annotations

import structlog
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.errors import BundleError, BundleFailureReason
from ca_bundler.domain.models import (
    ClassificationAmbiguity,
    ClassifiedCertificate,
    ClassifiedChain,
    TrustBundle,
)

log = structlog.get_logger()

_MISSING_MESSAGES = {
    BundleFailureReason.MISSING_ROOT: "Could not find the root CA certificate",
    BundleFailureReason.MISSING_INTERMEDIATE: "Could not find the intermediate CA certificate",
    BundleFailureReason.MISSING_BOTH: "Could not find both root and intermediate CA certificates",
}


def select_bundle(chain: ClassifiedChain, root_marker: str) -> Result[TrustBundle]:
    """
    Build a TrustBundle from the first root and first intermediate in the chain.

    Returns Result.failure(BUSINESS_RULE_ERROR) with a BundleError attached
    when either slot is empty. Leaves are never selected.
    """
    roots = chain.roots
    intermediates = chain.intermediates

    reason = _missing_reason(bool(roots), bool(intermediates))
    if reason is not None:
        message = f"{_MISSING_MESSAGES[reason]} (root marker {root_marker!r})"
        log.error("bundler.incomplete_chain", reason=reason.value, root_marker=root_marker)
        return Result.failure(
            ErrorCode.BUSINESS_RULE_ERROR,
            message,
            BundleError(reason, root_marker),
        )

    ambiguities = tuple(
        ambiguity
        for ambiguity in (_ambiguity(roots), _ambiguity(intermediates))
        if ambiguity is not None
    )
    for ambiguity in ambiguities:
        log.warning(
            f"bundler.ambiguous_{ambiguity.classification.value}",
            chosen=ambiguity.chosen,
            ignored=list(ambiguity.ignored),
            policy="first in chain order",
        )

    return Result.success(
        TrustBundle(
            root=roots[0].certificate,
            intermediate=intermediates[0].certificate,
            ambiguities=ambiguities,
        )
    )


def _missing_reason(has_root: bool, has_intermediate: bool) -> BundleFailureReason | None:
    if has_root and has_intermediate:
        return None
    if not has_root and not has_intermediate:
        return BundleFailureReason.MISSING_BOTH
    if not has_root:
        return BundleFailureReason.MISSING_ROOT
    return BundleFailureReason.MISSING_INTERMEDIATE


def _ambiguity(candidates: list[ClassifiedCertificate]) -> ClassificationAmbiguity | None:
    if len(candidates) < 2:
        return None
    first, *rest = candidates
    return ClassificationAmbiguity(
        classification=first.classification,
        chosen=first.certificate.subject,
        ignored=tuple(c.certificate.subject for c in rest),
    )
