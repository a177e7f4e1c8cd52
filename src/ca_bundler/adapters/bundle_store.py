"""
Filesystem adapter — trust bundle and transient chain artifacts.

Adapter layer — implements the BundleStore port on local files.

Uses an ATOMIC REPLACE pattern for the bundle:
  1. Write the PEM text to a temporary file next to the target
  2. fsync
  3. os.replace() onto the bundle path (atomic on POSIX and Windows)

A failed write leaves any previous bundle untouched and never exposes a
half-written file. The raw chain capture is a transient artifact: it is
written before splitting and discarded after a successful bundle run.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import replace
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from ca_bundler.domain.models import CertificateChain, TrustBundle

log = structlog.get_logger()


class FileBundleStore:
    """
    Persist the trust bundle and the raw chain capture on disk.

    Implements the BundleStore port.
    All exceptions are caught at this adapter boundary via Result.
    """

    def __init__(self, bundle_path: Path, chain_path: Path) -> None:
        self._bundle_path = Path(bundle_path)
        self._chain_path = Path(chain_path)

    @property
    def bundle_path(self) -> Path:
        return self._bundle_path

    @property
    def chain_path(self) -> Path:
        return self._chain_path

    def write_chain(self, chain: CertificateChain) -> Result[CertificateChain]:
        """Save the raw capture; returns the same chain for further chaining."""
        return Result.from_computation(
            lambda: self._save_chain(chain),
            ErrorCode.TECHNICAL_ERROR,
            f"Failed to write raw certificate chain to {self._chain_path}",
        )

    def discard_chain(self) -> None:
        """Best-effort removal of the raw capture; a leftover file is only logged."""
        try:
            self._chain_path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("store.chain_not_removed", path=str(self._chain_path), error=str(e))

    def write_bundle(self, bundle: TrustBundle) -> Result[TrustBundle]:
        """
        Atomically replace the bundle file with root + intermediate PEM text.

        Returns the bundle with `path` set on success.
        """
        return Result.from_computation(
            lambda: self._replace_bundle(bundle),
            ErrorCode.TECHNICAL_ERROR,
            f"Failed to write trust bundle to {self._bundle_path}",
        )

    def read_bundle(self) -> Result[bytes]:
        """Raw bundle bytes, exactly as stored on disk."""
        if not self._bundle_path.is_file():
            return Result.failure(
                ErrorCode.NOT_FOUND,
                f"CA bundle not found: {self._bundle_path}",
            )
        return Result.from_computation(
            self._bundle_path.read_bytes,
            ErrorCode.TECHNICAL_ERROR,
            f"Failed to read trust bundle {self._bundle_path}",
        )

    def bundle_exists(self) -> bool:
        return self._bundle_path.is_file()

    def clean(self) -> list[Path]:
        """Delete every generated artifact; returns the paths actually removed."""
        removed: list[Path] = []
        for path in (self._bundle_path, self._chain_path):
            if path.exists():
                path.unlink()
                removed.append(path)
        log.info("store.cleaned", removed=[str(p) for p in removed])
        return removed

    def _save_chain(self, chain: CertificateChain) -> CertificateChain:
        self._write_text(self._chain_path, chain.text)
        log.debug("store.chain_written", path=str(self._chain_path), certificates=len(chain))
        return chain

    def _replace_bundle(self, bundle: TrustBundle) -> TrustBundle:
        text = bundle.pem_text
        self._write_text(self._bundle_path, text)
        log.info(
            "store.bundle_written",
            path=str(self._bundle_path),
            certificates=text.count("-----BEGIN CERTIFICATE-----"),
            size_bytes=len(text.encode("ascii")),
        )
        return replace(bundle, path=self._bundle_path)

    @staticmethod
    def _write_text(target: Path, text: str) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="ascii", newline="\n") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return target
