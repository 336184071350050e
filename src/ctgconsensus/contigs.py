from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, TextIO, Tuple

import pysam

from .errors import InvariantViolation
from .models import Contig, ConsensusConfig, new_count_matrix
from .validation import check_encoding, detect_encoding

logger = logging.getLogger(__name__)


def parse_comment(comment: Optional[str]) -> Tuple[int, str]:
    """Split a contig header comment ``<length> <coverage> [free text]``.

    Returns (coverage, free text). Missing or non-numeric coverage is 0.
    """
    if not comment:
        return 0, ""
    parts = comment.split(None, 2)
    if len(parts) < 2:
        return 0, ""
    try:
        coverage = int(parts[1])
    except ValueError:
        # ``<length> <text>``: no coverage, the text is the comment
        return 0, comment.split(None, 1)[1]
    rest = parts[2] if len(parts) > 2 else ""
    return coverage, rest


def load_contigs(
    contigs_path: str | Path,
    *,
    output_cs: bool = False,
    only_variants: bool = False,
    verbose: int = 0,
) -> Tuple[Dict[str, Contig], ConsensusConfig]:
    """Read contigs and allocate a count matrix for each.

    The encoding of the first contig fixes the run mode: colour-space contigs
    are converted to nucleotides unless ``output_cs`` is set. When converting,
    each count matrix gets one extra trailing position.

    Returns
    -------
    contigs:
        Mapping of contig id to Contig in file order.
    config:
        The run-wide ConsensusConfig.
    """
    contigs: Dict[str, Contig] = {}
    colour_space = False
    cs_to_nt = False

    with pysam.FastxFile(str(contigs_path)) as fx:
        for rec in fx:
            name = str(rec.name)
            seq = rec.sequence or ""
            if not contigs:
                colour_space = detect_encoding(name, seq, output_cs=output_cs)
                cs_to_nt = colour_space and not output_cs
            else:
                check_encoding(name, seq, colour_space=colour_space)

            coverage, comment = parse_comment(rec.comment)
            n_positions = len(seq) + 1 if cs_to_nt else len(seq)
            if name in contigs:
                logger.warning("Duplicate contig id %s; keeping the last record.", name)
            contigs[name] = Contig(
                id=name,
                seq=seq,
                coverage=coverage,
                comment=comment,
                counts=new_count_matrix(n_positions),
            )

    if not contigs:
        raise InvariantViolation(f"No contigs were read from {contigs_path}.")
    logger.info("Read %d contigs", len(contigs))

    config = ConsensusConfig(
        colour_space=colour_space,
        cs_to_nt=cs_to_nt,
        only_variants=only_variants,
        verbose=verbose,
    )
    return contigs, config


def write_fasta_record(fh: TextIO, contig_id: str, seq: str, coverage: int, comment: str) -> None:
    """Write ``>id length coverage [comment]`` and the sequence on one line."""
    header = f">{contig_id} {len(seq)} {coverage}"
    if comment:
        header += f" {comment}"
    fh.write(header + "\n" + seq + "\n")
