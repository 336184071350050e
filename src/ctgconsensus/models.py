from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


class BaseCount:
    """Per-position read counts for the four base codes (A, C, G, T).

    A BaseCount is a view over one row of a contig's count matrix, so
    incrementing it updates the matrix in place.
    """

    __slots__ = ("count",)

    def __init__(self, count: Optional[np.ndarray] = None) -> None:
        if count is None:
            count = np.zeros(4, dtype=np.uint32)
        self.count = count

    def sum(self) -> int:
        """Return the number of reads at this position."""
        return int(self.count.sum())

    def __str__(self) -> str:
        return " ".join(str(int(c)) for c in self.count)


def new_count_matrix(n_positions: int) -> np.ndarray:
    return np.zeros((n_positions, 4), dtype=np.uint32)


@dataclass
class Contig:
    """A contig from the assembler plus its pileup.

    Attributes
    ----------
    id:
        Contig identifier as present in the FASTA header.
    seq:
        Reference sequence; lowercase marks soft-masked bases.
    coverage:
        Coverage declared in the FASTA header (0 when absent).
    comment:
        Free text following ``<length> <coverage>`` in the header.
    counts:
        ``(n, 4)`` uint32 matrix; ``n`` is ``len(seq)``, or ``len(seq) + 1``
        when colour-space contigs are converted to nucleotides.
    """

    id: str
    seq: str
    coverage: int
    comment: str
    counts: np.ndarray

    def base_count(self, pos: int) -> BaseCount:
        return BaseCount(self.counts[pos])

    def __len__(self) -> int:
        return int(self.counts.shape[0])


@dataclass(frozen=True)
class Alignment:
    """One placement of a read on a contig (0-based coordinates)."""

    contig: str
    contig_start: int
    read_start: int
    align_length: int
    read_length: int
    is_rc: bool

    def flip_query(self) -> "Alignment":
        """Return this alignment with read coordinates in the reverse-complement frame."""
        read_end = self.read_start + self.align_length
        return Alignment(
            contig=self.contig,
            contig_start=self.contig_start,
            read_start=self.read_length - read_end,
            align_length=self.align_length,
            read_length=self.read_length,
            is_rc=not self.is_rc,
        )


@dataclass
class ReadRecord:
    """One line of aligner output: a read and all of its alignments."""

    read_id: str
    seq: str
    anchor: Optional[str] = None
    alignments: List[Alignment] = field(default_factory=list)


@dataclass(frozen=True)
class ConsensusConfig:
    """Run-wide mode flags, fixed once the contigs have been read."""

    colour_space: bool = False
    cs_to_nt: bool = False
    only_variants: bool = False
    verbose: int = 0

    @property
    def output_colour_space(self) -> bool:
        """Calls are colour-space symbols (colour-space input, no conversion)."""
        return self.colour_space and not self.cs_to_nt


@dataclass(frozen=True)
class ContigResult:
    """Per-contig consensus outcome."""

    contig: str
    length: int
    sum_best: int
    sum_second: int
    agreement: Optional[float]
    status: str  # 'accepted', 'low_agreement', 'discarded_low_agreement' or 'unsupported'
