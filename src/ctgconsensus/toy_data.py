from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

from .codec import nucleotide_to_colour, reverse_complement
from .utils import ensure_outdir, write_json

_TOY_SEQ = ("ACGGTCATTGCAGTACCTGA" * 3)[:41]
_READ_LEN = 20
_READ_STARTS = [0, 5, 10, 15, 20]


def _write_fasta(path: Path, records: List[Tuple[str, str, str]]) -> None:
    lines = []
    for name, comment, seq in records:
        lines.append(f">{name} {comment}")
        for i in range(0, len(seq), 60):
            lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base.upper():
            return alt
    return "A"


def _to_colours(seq: str) -> str:
    return "".join(nucleotide_to_colour(a, b) for a, b in zip(seq, seq[1:]))


def _nucleotide_toy() -> Tuple[List[Tuple[str, str, str]], List[str], Dict[str, object]]:
    ref = _TOY_SEQ[:40]
    # soft-mask the tail
    ref_masked = ref[:35] + ref[35:].lower()
    variant_pos = 22
    alt = _mutate_base(ref[variant_pos])
    error_pos = 12

    lines: List[str] = []
    for i, start in enumerate(_READ_STARTS):
        seq = list(ref[start : start + _READ_LEN])
        rel = variant_pos - start
        if 0 <= rel < len(seq):
            seq[rel] = alt
        if start == 10:
            seq[error_pos - start] = _mutate_base(seq[error_pos - start])
        read = "".join(seq)
        if start == 10:
            # reverse-complement placement
            lines.append(f"r{i} {reverse_complement(read)} 1 {start} 0 {_READ_LEN} {_READ_LEN} 1")
        else:
            lines.append(f"r{i} {read} 1 {start} 0 {_READ_LEN} {_READ_LEN} 0")
    lines.append(f"r_unknown {ref[:_READ_LEN]} 99 0 0 {_READ_LEN} {_READ_LEN} 0")

    contigs = [
        ("1", f"{len(ref_masked)} 5 toy contig", ref_masked),
        ("2", "30 0", _TOY_SEQ[5:35]),
    ]
    expected = ref_masked[:variant_pos] + alt + ref_masked[variant_pos + 1 :]
    return contigs, lines, {"variant_pos0": variant_pos, "expected_consensus": expected}


def _colour_space_toy() -> Tuple[List[Tuple[str, str, str]], List[str], Dict[str, object]]:
    nt = _TOY_SEQ
    colours = _to_colours(nt)

    lines: List[str] = []
    for i, start in enumerate(_READ_STARTS):
        segment = nt[start : start + _READ_LEN + 1]
        lines.append(
            f"r{i} {segment[0]} {_to_colours(segment)} 1 {start} 0 {_READ_LEN} {_READ_LEN} 0"
        )
    # not anchored at the read start: dropped during conversion
    segment = nt[3 : 3 + _READ_LEN + 1]
    lines.append(f"r_unanchored {segment[0]} {_to_colours(segment)} 1 5 2 18 {_READ_LEN} 0")

    contigs = [
        ("1", f"{len(colours)} 5", colours),
        ("2", "20 0", _to_colours(nt[10:31])),
    ]
    return contigs, lines, {"expected_consensus": nt}


def make_toy_data(*, outdir: str | Path, colour_space: bool = False) -> Dict[str, object]:
    """Create tiny contigs and aligner output suitable for quick demos/tests.

    The outputs include:
    - contigs.fa: a covered contig ``1`` and an uncovered contig ``2``
    - alignments.txt: one read per line with its alignments

    In nucleotide mode contig ``1`` carries one variant position, a read with a
    single error, a reverse-complement placement, a soft-masked tail and an
    alignment to an unknown contig. In colour-space mode the contigs and reads
    are colour-encoded and one read is not anchored at its start.

    Returns
    -------
    dict
        Paths to the generated files and the expected consensus of contig ``1``.
    """
    outdir_p = ensure_outdir(outdir)

    if colour_space:
        contigs, lines, expected = _colour_space_toy()
    else:
        contigs, lines, expected = _nucleotide_toy()

    contigs_fa = outdir_p / "contigs.fa"
    _write_fasta(contigs_fa, contigs)

    alignments = outdir_p / "alignments.txt"
    alignments.write_text("\n".join(lines) + "\n", encoding="utf-8")

    summary: Dict[str, object] = {
        "contigs_fa": str(contigs_fa),
        "alignments": str(alignments),
        "colour_space": bool(colour_space),
        "outdir": str(outdir_p),
    }
    summary.update(expected)

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
