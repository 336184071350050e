from __future__ import annotations

import logging

from .errors import ConfigurationError, InvariantViolation

logger = logging.getLogger(__name__)


def is_colour_space_seq(seq: str) -> bool:
    """Colour-space sequences start with a digit."""
    return len(seq) > 0 and seq[0].isdigit()


def detect_encoding(contig_id: str, seq: str, *, output_cs: bool) -> bool:
    """Infer colour-space-ness from the first contig; return True for colour space.

    Raises ConfigurationError when colour-space output is requested for
    nucleotide data.
    """
    if not seq:
        raise InvariantViolation(f"Contig {contig_id} has an empty sequence.")
    colour_space = is_colour_space_seq(seq)
    if output_cs and not colour_space:
        raise ConfigurationError("Cannot convert nucleotide data to colour space.")
    if colour_space:
        logger.info("Contigs are in colour space (first contig: %s)", contig_id)
    return colour_space


def check_encoding(contig_id: str, seq: str, *, colour_space: bool) -> None:
    """Ensure a contig uses the encoding detected from the first contig."""
    if not seq:
        raise InvariantViolation(f"Contig {contig_id} has an empty sequence.")
    first = seq[0]
    ok = first.isdigit() if colour_space else first.isalpha()
    if not ok:
        expected = "colour-space" if colour_space else "nucleotide"
        raise InvariantViolation(
            f"Contig {contig_id} is not {expected} like the first contig "
            f"(starts with {first!r}); colour-space and nucleotide contigs cannot be mixed."
        )


def check_window(
    *,
    read_id: str,
    contig_id: str,
    read_min: int,
    read_max: int,
    offset: int,
    seq_length: int,
    n_positions: int,
) -> None:
    """Ensure the clipped read window maps inside the read and the count matrix.

    ``offset`` is the contig position of read offset 0.
    """
    if read_max <= read_min:
        return
    problems = []
    if read_min < 0:
        problems.append(f"read_min={read_min} < 0")
    if read_max > seq_length:
        problems.append(f"read_max={read_max} > read length {seq_length}")
    if offset + read_min < 0:
        problems.append(f"first contig position {offset + read_min} < 0")
    if offset + read_max > n_positions:
        problems.append(f"last contig position {offset + read_max - 1} >= {n_positions}")
    if problems:
        raise InvariantViolation(
            f"Alignment of read {read_id} to contig {contig_id} falls outside its bounds: "
            + "; ".join(problems)
        )
