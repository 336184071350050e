"""Parser for aligner output lines.

Each line describes one read and all of its alignments::

    <read id> [<anchor>] <sequence> (<contig> <contig start> <read start> <align length> <read length> <is rc>)*

The anchor base is present only for colour-space reads.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, TextIO

from .codec import COLOURS, colour_to_nucleotide
from .models import Alignment, ConsensusConfig, ReadRecord
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

_FIELDS_PER_ALIGNMENT = 6


def _parse_bool(token: str) -> bool:
    if token in ("0", "1"):
        return token == "1"
    raise ValueError(f"Expected 0 or 1 for the orientation flag, got {token!r}")


def parse_alignments(tokens: List[str]) -> List[Alignment]:
    if len(tokens) % _FIELDS_PER_ALIGNMENT != 0:
        raise ValueError(
            f"Incomplete alignment: {len(tokens)} fields is not a multiple of {_FIELDS_PER_ALIGNMENT}"
        )
    out: List[Alignment] = []
    for i in range(0, len(tokens), _FIELDS_PER_ALIGNMENT):
        contig, cstart, rstart, alen, rlen, rc = tokens[i : i + _FIELDS_PER_ALIGNMENT]
        out.append(
            Alignment(
                contig=contig,
                contig_start=int(cstart),
                read_start=int(rstart),
                align_length=int(alen),
                read_length=int(rlen),
                is_rc=_parse_bool(rc),
            )
        )
    return out


def parse_read_line(line: str, config: ConsensusConfig) -> ReadRecord:
    """Parse one aligner line into a ReadRecord.

    In colour-space-to-nucleotide mode an aligned colour-space read is decoded
    from its anchor, giving a nucleotide sequence one base longer than the
    colour sequence.
    """
    tokens = line.split()
    anchor: Optional[str] = None
    if config.colour_space:
        if len(tokens) < 3:
            raise ValueError("Expected '<read id> <anchor> <sequence>'")
        read_id, anchor, seq = tokens[:3]
        rest = tokens[3:]
    else:
        if len(tokens) < 2:
            raise ValueError("Expected '<read id> <sequence>'")
        read_id, seq = tokens[:2]
        rest = tokens[2:]

    alignments = parse_alignments(rest)

    if (
        config.cs_to_nt
        and alignments
        and anchor is not None
        and all(c in COLOURS for c in seq)
    ):
        seq = colour_to_nucleotide(anchor, seq)

    return ReadRecord(read_id=read_id, seq=seq, anchor=anchor, alignments=alignments)


def iter_read_records(fh: TextIO, config: ConsensusConfig) -> Iterator[ReadRecord]:
    """Yield a ReadRecord per non-blank line; parse errors name the line number."""
    for lineno, line in enumerate(fh, start=1):
        if not line.strip():
            continue
        try:
            record = parse_read_line(line, config)
        except ValueError as e:
            raise ValueError(f"Alignment input line {lineno}: {e}") from e
        yield record


def open_alignments(path: str | Path) -> TextIO:
    """Open the alignment input; ``-`` is standard input."""
    if str(path) == "-":
        return sys.stdin
    return open_textmaybe_gzip(path, "rt")
