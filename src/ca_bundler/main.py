"""
Application entry point — command-line surface and composition root.

Creates concrete adapters, injects them into the pipeline functions and
maps outcomes to exit codes.

This is the ONLY place where concrete adapter classes are instantiated.
Everything else depends on Protocol interfaces.

Responsibilities:
  1. Parse the action and flag overrides (argparse)
  2. Load and validate configuration (pydantic-settings)
  3. Configure structlog (events on stderr, reports on stdout)
  4. Create concrete adapters and run the requested action
  5. Translate the outcome into an exit code (0 ok, 1 failure)
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any, TypeAlias

import structlog
from pydantic import ValidationError
from railway import LoggingExecutionContext

from ca_bundler import __version__
from ca_bundler.adapters.bundle_store import FileBundleStore
from ca_bundler.adapters.tls_fetcher import PyOpenSslChainFetcher
from ca_bundler.adapters.tls_verifier import SslTrustVerifier
from ca_bundler.adapters.x509_decoder import CryptographyCertificateDecoder
from ca_bundler.config import AppSettings
from ca_bundler.domain.models import VerificationReport
from ca_bundler.pipeline import inspect_bundle, run_bundle_pipeline, verify_domains

EXIT_OK = 0
EXIT_FAILURE = 1

_DESCRIPTION = "Recreate a CA trust bundle from a live certificate chain."

_EPILOG = """\
actions:
  build     fetch the chain from DOMAIN:PORT and write the bundle (default)
  test      verify the bundle against DOMAIN:PORT
  verify    verify the bundle against the configured verification domains
  clean     remove generated files
  info      show size, certificate count and details of the bundle
  help      show this message

examples:
  ca-bundler                        extract CA certs from github.com
  ca-bundler --domain google.com    extract CA certs from google.com
  DOMAIN=google.com ca-bundler test

requirements:
  network access to the target domain; the chain is captured as presented,
  so run it behind the proxy/firewall whose CA you want to trust.
"""


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    stdout is reserved for the command's report (bundle info, verification
    summary) so it can be piped.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


_Adapters: TypeAlias = tuple[
    PyOpenSslChainFetcher,
    CryptographyCertificateDecoder,
    FileBundleStore,
    SslTrustVerifier,
]

_Action: TypeAlias = Callable[[AppSettings, _Adapters], int]


def _create_adapters(settings: AppSettings) -> _Adapters:
    """Instantiate all concrete adapters from application settings."""
    fetcher = PyOpenSslChainFetcher(timeout=settings.tls_timeout_seconds)
    decoder = CryptographyCertificateDecoder()
    store = FileBundleStore(
        bundle_path=settings.bundle_path,
        chain_path=settings.chain_path,
    )
    verifier = SslTrustVerifier(timeout=settings.tls_timeout_seconds)
    return fetcher, decoder, store, verifier


def _echo(message: str = "") -> None:
    print(message)  # noqa: T201


# ─────────────────────── Actions ───────────────────────


def _build(settings: AppSettings, adapters: _Adapters) -> int:
    fetcher, decoder, store, _ = adapters
    _echo(f"Fetching certificate chain from {settings.domain}:{settings.port}...")

    ctx = LoggingExecutionContext(operation="BuildBundle")
    result = ctx.execute(
        lambda: run_bundle_pipeline(
            fetcher=fetcher,
            decoder=decoder,
            store=store,
            host=settings.domain,
            port=settings.port,
            root_marker=settings.root_marker,
        )
    )

    if result.is_failure():
        print(f"Error: {result.error().message}", file=sys.stderr)  # noqa: T201
        return EXIT_FAILURE

    bundle = result.value()
    _echo(f"Found root CA certificate: {bundle.root.subject}")
    _echo(f"Found intermediate CA certificate: {bundle.intermediate.subject}")
    for ambiguity in bundle.ambiguities:
        _echo(
            f"Warning: {len(ambiguity.ignored)} extra {ambiguity.classification.value} "
            f"certificate(s) ignored, kept {ambiguity.chosen}"
        )
    _echo(f"Created {bundle.path} with root and intermediate CA certificates")
    _echo(f"CA bundle contains {len(bundle.certificates)} certificate(s)")
    return EXIT_OK


def _ensure_bundle(settings: AppSettings, adapters: _Adapters) -> int:
    """Build the bundle first when it does not exist yet."""
    store = adapters[2]
    if store.bundle_exists():
        return EXIT_OK
    structlog.get_logger().info("app.bundle_missing", path=str(store.bundle_path))
    return _build(settings, adapters)


def _test(settings: AppSettings, adapters: _Adapters) -> int:
    status = _ensure_bundle(settings, adapters)
    if status != EXIT_OK:
        return status

    _, _, store, verifier = adapters
    _echo(f"Testing CA bundle with {settings.domain}...")
    report = verify_domains(verifier, store.bundle_path, [settings.domain], settings.port)
    result = report.results[0]
    if result.passed:
        _echo(f"✓ CA bundle verification successful for {result.domain}")
        return EXIT_OK
    _echo(f"✗ CA bundle verification failed for {result.domain}: {result.detail}")
    return EXIT_FAILURE


def _verify(settings: AppSettings, adapters: _Adapters) -> int:
    status = _ensure_bundle(settings, adapters)
    if status != EXIT_OK:
        return status

    _, _, store, verifier = adapters
    _echo("Verifying CA bundle with multiple domains...")
    report = verify_domains(
        verifier,
        store.bundle_path,
        settings.verify.domains,
        settings.verify.port,
    )
    _print_report(report)
    return EXIT_OK if report.all_passed else EXIT_FAILURE


def _print_report(report: VerificationReport) -> None:
    for result in report.results:
        mark = "✓" if result.passed else f"✗ ({result.detail})"
        _echo(f"Testing {result.domain}... {mark}")
    _echo(f"Verification results: {report.passed}/{report.total} domains successful")
    _echo("All verifications passed!" if report.all_passed else "Some verifications failed")


def _clean(settings: AppSettings, adapters: _Adapters) -> int:
    _echo("Cleaning up generated files...")
    for path in adapters[2].clean():
        _echo(f"Removed {path}")
    _echo("Cleanup complete")
    return EXIT_OK


def _info(settings: AppSettings, adapters: _Adapters) -> int:
    _, decoder, store, _ = adapters
    if not store.bundle_exists():
        _echo(f"CA bundle not found. Run 'ca-bundler build' to create {store.bundle_path}.")
        return EXIT_OK

    result = inspect_bundle(store, decoder)
    if result.is_failure():
        print(f"Error: {result.error().message}", file=sys.stderr)  # noqa: T201
        return EXIT_FAILURE

    info = result.value()
    _echo("CA Bundle Information:")
    _echo("=====================")
    _echo(f"File: {info.path}")
    _echo(f"Size: {info.size_bytes} bytes")
    _echo(f"Certificates: {len(info.certificates)}")
    _echo()
    _echo("Certificate Details:")
    _echo("-------------------")
    for index, cert in enumerate(info.certificates, start=1):
        expires = cert.not_valid_after.isoformat() if cert.not_valid_after else "unknown"
        _echo(f"[{index}] subject: {cert.subject}")
        _echo(f"    issuer:  {cert.issuer}")
        _echo(f"    expires: {expires}")
        _echo(f"    sha256:  {cert.fingerprint_sha256}")
    return EXIT_OK


_ACTIONS: dict[str, _Action] = {
    "build": _build,
    "test": _test,
    "verify": _verify,
    "clean": _clean,
    "info": _info,
}


# ─────────────────────── Command line ───────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ca-bundler",
        description=_DESCRIPTION,
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "action",
        nargs="?",
        default="build",
        choices=[*_ACTIONS, "help"],
        help="what to do (default: build)",
    )
    parser.add_argument("--domain", help="host to fetch from / test against (env DOMAIN)")
    parser.add_argument("--port", type=int, help="TLS port (env PORT, default 443)")
    parser.add_argument("--root-marker", help="DN substring of the root CA (env ROOT_MARKER)")
    parser.add_argument("--output", dest="bundle_path", help="bundle path (env BUNDLE_PATH)")
    parser.add_argument("--log-level", help="log level (env LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flags that were given on the command line, keyed by settings field."""
    fields = ("domain", "port", "root_marker", "bundle_path", "log_level")
    return {name: getattr(args, name) for name in fields if getattr(args, name) is not None}


def main(argv: Sequence[str] | None = None) -> int:
    """Parse the command line, wire dependencies and run one action."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.action == "help":
        parser.print_help()
        return EXIT_OK

    try:
        settings = AppSettings(**_overrides(args))
    except ValidationError as e:
        print(f"FATAL: Configuration error: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_FAILURE

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.info(
        "app.starting",
        version=__version__,
        action=args.action,
        domain=settings.domain,
        port=settings.port,
        root_marker=settings.root_marker,
    )

    return _ACTIONS[args.action](settings, _create_adapters(settings))


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
