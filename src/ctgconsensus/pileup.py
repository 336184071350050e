from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import numpy as np
from tqdm import tqdm

from .codec import base_to_code, reverse_complement
from .models import Alignment, Contig, ConsensusConfig, ReadRecord
from .validation import check_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Window:
    """Read offsets ``[read_min, read_max)`` that land on the contig.

    ``offset`` is the contig position of read offset 0, so read offset ``x``
    maps to contig position ``offset + x``.
    """

    read_min: int
    read_max: int
    offset: int

    def __len__(self) -> int:
        return max(0, self.read_max - self.read_min)


def is_anchored(record: ReadRecord) -> bool:
    """True when at least one alignment starts at the 5' end of the read."""
    return any(a.read_start == 0 for a in record.alignments)


def clip_alignment(
    aln: Alignment,
    *,
    read_id: str,
    seq_length: int,
    n_positions: int,
    config: ConsensusConfig,
) -> Window:
    """Compute the window of read offsets that fall inside the count matrix.

    ``aln`` must already be in the frame of the sequence that will be counted
    (see :meth:`Alignment.flip_query`). Raises InvariantViolation when the
    window does not fit the read or the contig.
    """
    if not config.cs_to_nt:
        read_min = max(0, aln.read_start - aln.contig_start)
        read_max = min(aln.read_length, aln.read_start + n_positions - aln.contig_start)
    else:
        # colour-space alignments cover one more nucleotide than colours
        read_min = aln.read_start
        read_max = read_min + aln.align_length + 1

    offset = aln.contig_start - aln.read_start
    check_window(
        read_id=read_id,
        contig_id=aln.contig,
        read_min=read_min,
        read_max=read_max,
        offset=offset,
        seq_length=seq_length,
        n_positions=n_positions,
    )
    return Window(read_min=read_min, read_max=read_max, offset=offset)


def add_alignment(counts: np.ndarray, seq: str, window: Window) -> int:
    """Increment ``counts`` for every read base in ``window``; return bases counted."""
    n = len(window)
    if n == 0:
        return 0
    codes = np.fromiter(
        (base_to_code(b) for b in seq[window.read_min : window.read_max]), dtype=np.intp, count=n
    )
    locs = np.arange(window.read_min, window.read_max, dtype=np.intp) + window.offset
    # add.at so repeated (loc, code) pairs are all counted
    np.add.at(counts, (locs, codes), 1)
    return n


def add_read(
    record: ReadRecord,
    contigs: Dict[str, Contig],
    config: ConsensusConfig,
    stats: Optional[Dict[str, int]] = None,
) -> int:
    """Pile up every alignment of one read; return the number of bases counted.

    Alignments to contigs that are not loaded are skipped. In
    colour-space-to-nucleotide mode a read with no alignment anchored at
    read offset 0 is dropped entirely.
    """
    if stats is None:
        stats = {}

    if config.cs_to_nt and not is_anchored(record):
        stats["reads_skipped_unanchored"] = stats.get("reads_skipped_unanchored", 0) + 1
        return 0

    rc_seq: Optional[str] = None
    n_bases = 0
    for aln in record.alignments:
        stats["alignments_total"] = stats.get("alignments_total", 0) + 1

        contig = contigs.get(aln.contig)
        if contig is None:
            stats["alignments_skipped_unknown_contig"] = (
                stats.get("alignments_skipped_unknown_contig", 0) + 1
            )
            continue

        if aln.is_rc:
            if rc_seq is None:
                rc_seq = reverse_complement(record.seq)
            seq = rc_seq
            aln = aln.flip_query()
        else:
            seq = record.seq

        window = clip_alignment(
            aln,
            read_id=record.read_id,
            seq_length=len(seq),
            n_positions=len(contig),
            config=config,
        )
        n_bases += add_alignment(contig.counts, seq, window)

    stats["bases_counted"] = stats.get("bases_counted", 0) + n_bases
    return n_bases


def build_pileup(
    records: Iterable[ReadRecord],
    contigs: Dict[str, Contig],
    config: ConsensusConfig,
    *,
    progress: bool = True,
) -> Dict[str, int]:
    """Stream read records into the contig count matrices.

    Returns simple counters about reads and alignments seen/skipped.
    """
    stats: Dict[str, int] = {
        "reads_total": 0,
        "reads_skipped_unanchored": 0,
        "alignments_total": 0,
        "alignments_skipped_unknown_contig": 0,
        "bases_counted": 0,
    }

    it: Iterable[ReadRecord] = records
    if progress:
        it = tqdm(it, unit="read", desc="Building pileup")

    for record in it:
        stats["reads_total"] += 1
        add_read(record, contigs, config, stats)

    logger.info(
        "Piled up %d bases from %d reads (%d alignments to unknown contigs skipped, "
        "%d unanchored reads skipped)",
        stats["bases_counted"],
        stats["reads_total"],
        stats["alignments_skipped_unknown_contig"],
        stats["reads_skipped_unanchored"],
    )
    return stats
