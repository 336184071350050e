from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO, Tuple

from .codec import UNKNOWN, code_to_base, decode_colour, is_canonical, is_unknown, nucleotide_to_colour
from .contigs import write_fasta_record
from .models import BaseCount, Contig, ConsensusConfig, ContigResult
from .pileup_writer import write_pileup

logger = logging.getLogger(__name__)

MIN_AGREEMENT = 0.9


@dataclass
class AgreementTally:
    """Running totals of winning and runner-up counts over a contig."""

    sum_best: int = 0
    sum_second: int = 0

    def add(self, best: int, second: int) -> None:
        self.sum_best += best
        self.sum_second += second

    @property
    def agreement(self) -> Optional[float]:
        """sum_best / (sum_best + sum_second), or None when nothing was counted."""
        total = self.sum_best + self.sum_second
        if total == 0:
            return None
        return self.sum_best / float(total)


def select_base(counts: BaseCount, *, colour_space: bool = False) -> Tuple[str, int, int]:
    """Return (call, best count, runner-up count) for one position.

    Codes are visited in A, C, G, T order and only a strictly larger count
    replaces the current best, so ties go to the earlier base. Uncovered
    positions are called as the unknown placeholder.
    """
    values = [int(c) for c in counts.count]
    best_code = -1
    best = 0
    for code, c in enumerate(values):
        if c > best:
            best_code = code
            best = c
    if best_code == -1:
        return UNKNOWN, 0, 0
    second = max(c for code, c in enumerate(values) if code != best_code)
    return code_to_base(best_code, colour_space=colour_space), best, second


def mirror_case(call: str, refc: Optional[str]) -> str:
    """Lowercase the call where the reference base is soft-masked."""
    if refc is not None and refc.islower():
        return call.lower()
    return call


def fix_unknown(nt_seq: str, cs_seq: str) -> str:
    """Resolve unknown bases of a converted consensus from the colour-space reference.

    A leading or trailing unknown trims the consensus to the span between the
    first and last called base. Remaining unknowns are decoded left to right
    from the base before them and the colour between the two, so a run of
    unknowns is resolved one base at a time.
    """
    seq = list(nt_seq)
    start = 0
    if seq and (is_unknown(seq[0]) or is_unknown(seq[-1])):
        called = [i for i, b in enumerate(seq) if is_canonical(b)]
        if not called:
            return ""
        start = called[0]
        seq = seq[start : called[-1] + 1]

    for k, b in enumerate(seq):
        if not is_unknown(b):
            continue
        # consensus index i sits after colour cs_seq[i - 1]
        i = start + k
        base = decode_colour(seq[k - 1], cs_seq[i - 1])
        seq[k] = base.lower() if b.islower() else base
    return "".join(seq)


def call_contig(
    contig: Contig,
    config: ConsensusConfig,
    *,
    pileup_out: Optional[TextIO] = None,
) -> Tuple[str, AgreementTally]:
    """Call every position of a contig, writing pileup lines as it goes."""
    tally = AgreementTally()
    calls: List[str] = []
    colour_space = config.output_colour_space
    for x in range(len(contig)):
        counts = contig.base_count(x)
        c, best, second = select_base(counts, colour_space=colour_space)
        tally.add(best, second)
        refc = contig.seq[x] if x < len(contig.seq) else None
        calls.append(mirror_case(c, refc))
        if pileup_out is not None:
            write_pileup(
                pileup_out,
                contig.id,
                x,
                refc if refc is not None else UNKNOWN,
                c,
                counts,
                only_variants=config.only_variants,
                colour_space=colour_space,
            )
    return "".join(calls), tally


def _log_position_dump(contig: Contig, consensus: str, config: ConsensusConfig) -> None:
    # <contig id> <length> <position> <call> <reference> <A> <C> <G> <T>
    n = len(consensus)
    if config.cs_to_nt:
        for i in range(n - 1):
            a, b = consensus[i], consensus[i + 1]
            colour = UNKNOWN if is_unknown(a) or is_unknown(b) else nucleotide_to_colour(a, b)
            logger.debug(
                "%s %d %d %s %s %s", contig.id, n, i, colour, contig.seq[i], contig.base_count(i)
            )
    else:
        for i in range(n):
            logger.debug(
                "%s %d %d %s %s %s", contig.id, n, i, consensus[i], contig.seq[i], contig.base_count(i)
            )


def consensus_contig(
    contig: Contig,
    config: ConsensusConfig,
    *,
    out: Optional[TextIO] = None,
    pileup_out: Optional[TextIO] = None,
) -> ContigResult:
    """Call, filter and (if accepted) write the consensus of one contig.

    When converting colour space, a contig below the agreement threshold is
    still converted and written, with a warning, rather than dropped.
    """
    consensus, tally = call_contig(contig, config, pileup_out=pileup_out)
    agreement = tally.agreement

    def result(status: str) -> ContigResult:
        return ContigResult(
            contig=contig.id,
            length=len(consensus),
            sum_best=tally.sum_best,
            sum_second=tally.sum_second,
            agreement=agreement,
            status=status,
        )

    if not any(is_canonical(b, colour_space=config.output_colour_space) for b in consensus):
        logger.warning(
            "Contig %s was not supported by a complete read and was omitted.", contig.id
        )
        return result("unsupported")

    if agreement is None or agreement < MIN_AGREEMENT:
        if not config.cs_to_nt:
            logger.info(
                "Contig %s has less than %.0f%% agreement and was omitted.",
                contig.id,
                MIN_AGREEMENT * 100,
            )
            return result("discarded_low_agreement")
        logger.warning(
            "Contig %s has less than %.0f%% agreement; converting it anyway.",
            contig.id,
            MIN_AGREEMENT * 100,
        )
        status = "low_agreement"
    else:
        status = "accepted"

    if config.verbose > 1:
        _log_position_dump(contig, consensus, config)

    out_seq = fix_unknown(consensus, contig.seq) if config.cs_to_nt else consensus
    if out is not None:
        write_fasta_record(out, contig.id, out_seq, contig.coverage, contig.comment)
    return result(status)


def run_consensus(
    contigs: Dict[str, Contig],
    config: ConsensusConfig,
    *,
    out: Optional[TextIO] = None,
    pileup_out: Optional[TextIO] = None,
) -> List[ContigResult]:
    """Process every contig in store order."""
    results = [
        consensus_contig(contig, config, out=out, pileup_out=pileup_out)
        for contig in contigs.values()
    ]
    n_written = sum(1 for r in results if r.status in ("accepted", "low_agreement"))
    n_low = sum(1 for r in results if r.status in ("low_agreement", "discarded_low_agreement"))
    logger.info(
        "Wrote %d of %d contigs (%d below %.0f%% agreement)",
        n_written,
        len(results),
        n_low,
        MIN_AGREEMENT * 100,
    )
    return results
