from __future__ import annotations

from typing import Optional, TextIO

from .codec import NUCLEOTIDES, base_to_code, code_to_base
from .models import BaseCount

# Placeholder quality columns: P(genotype wrong), P(genotype == reference),
# RMS mapping quality.
PLACEHOLDER_QUAL = "25"


def format_evidence(counts: BaseCount, refc: str, *, colour_space: bool = False) -> str:
    """One character per read: non-reference bases first, then '.' per reference match."""
    foldrefc = refc.upper()
    parts = []
    if len(foldrefc) == 1 and foldrefc in NUCLEOTIDES:
        ref = base_to_code(foldrefc)
        for i in range(4):
            if i != ref:
                parts.append(code_to_base(i, colour_space=colour_space) * int(counts.count[i]))
        parts.append("." * int(counts.count[ref]))
    else:
        for i in range(4):
            parts.append(code_to_base(i, colour_space=colour_space) * int(counts.count[i]))
    return "".join(parts)


def format_pileup_line(
    contig_id: str,
    pos: int,
    refc: str,
    genotype: str,
    counts: BaseCount,
    *,
    only_variants: bool = False,
    colour_space: bool = False,
) -> Optional[str]:
    """Format one pileup line for 0-based ``pos``; None when suppressed.

    Columns: contig, 1-based coordinate, reference base, genotype, three
    placeholder qualities, depth, evidence.
    """
    if only_variants and refc.upper() == genotype:
        return None
    fields = [
        contig_id,
        str(pos + 1),
        refc,
        genotype,
        PLACEHOLDER_QUAL,
        PLACEHOLDER_QUAL,
        PLACEHOLDER_QUAL,
        str(counts.sum()),
        format_evidence(counts, refc, colour_space=colour_space),
    ]
    return "\t".join(fields) + "\n"


def write_pileup(
    out: TextIO,
    contig_id: str,
    pos: int,
    refc: str,
    genotype: str,
    counts: BaseCount,
    *,
    only_variants: bool = False,
    colour_space: bool = False,
) -> bool:
    """Write one pileup line; return False if it was suppressed."""
    line = format_pileup_line(
        contig_id,
        pos,
        refc,
        genotype,
        counts,
        only_variants=only_variants,
        colour_space=colour_space,
    )
    if line is None:
        return False
    out.write(line)
    return True
