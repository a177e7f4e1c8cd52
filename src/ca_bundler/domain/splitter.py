"""
Splitter — extract individual PEM certificate blocks from raw text.

Pure function, no I/O. Accepts anything that may surround the blocks
(s_client banners, handshake summaries, blank lines) and ignores it.
"""

from __future__ import annotations

import structlog

from ca_bundler.domain.errors import ParseError
from ca_bundler.domain.models import PemSplit

BEGIN_MARKER = "-----BEGIN CERTIFICATE-----"
END_MARKER = "-----END CERTIFICATE-----"

log = structlog.get_logger()


def split_pem_blocks(raw_text: str) -> PemSplit:
    """
    Scan `raw_text` line by line and return every complete certificate block.

    A block runs from a BEGIN marker line to the next END marker line, both
    included. Blocks are returned in the order found, each normalised to
    "\\n" line endings with a trailing newline. A BEGIN that is never closed
    (or is interrupted by another BEGIN) is reported as a ParseError and its
    lines are dropped.
    """
    blocks: list[str] = []
    errors: list[ParseError] = []
    current: list[str] | None = None
    start_line = 0

    for line_no, line in enumerate(raw_text.splitlines(), start=1):
        stripped = line.strip()
        if stripped == BEGIN_MARKER:
            if current is not None:
                errors.append(_truncated(start_line, "interrupted by another BEGIN marker"))
            current = [stripped]
            start_line = line_no
        elif current is not None:
            current.append(stripped)
            if stripped == END_MARKER:
                blocks.append("\n".join(current) + "\n")
                current = None

    if current is not None:
        errors.append(_truncated(start_line, "no END marker before end of input"))

    for error in errors:
        log.warning("splitter.partial_block_discarded", line=error.position, error=str(error))

    return PemSplit(blocks=tuple(blocks), errors=tuple(errors))


def _truncated(line_no: int, why: str) -> ParseError:
    return ParseError(f"Certificate block starting at line {line_no}: {why}", position=line_no)
