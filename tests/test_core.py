import io
import sys

import numpy as np
import pytest

from ctgconsensus.alignments import parse_read_line
from ctgconsensus.caller import AgreementTally, fix_unknown, select_base
from ctgconsensus.codec import base_to_code, colour_to_nucleotide, nucleotide_to_colour, reverse_complement
from ctgconsensus.errors import InvariantViolation
from ctgconsensus.models import Alignment, BaseCount, Contig, ConsensusConfig, ReadRecord, new_count_matrix
from ctgconsensus.pileup import add_read, clip_alignment
from ctgconsensus.utils import open_output


def make_contig(seq: str, name: str = "ctg1", extra: int = 0) -> Contig:
    return Contig(id=name, seq=seq, coverage=0, comment="", counts=new_count_matrix(len(seq) + extra))


def aln(contig: str, cstart: int, rstart: int, alen: int, rlen: int, rc: bool = False) -> Alignment:
    return Alignment(
        contig=contig,
        contig_start=cstart,
        read_start=rstart,
        align_length=alen,
        read_length=rlen,
        is_rc=rc,
    )


def called(contig: Contig) -> str:
    return "".join(select_base(contig.base_count(i))[0] for i in range(len(contig)))


def test_codec_colour_round_trip():
    assert nucleotide_to_colour("A", "C") == "1"
    assert nucleotide_to_colour("G", "T") == "1"
    assert colour_to_nucleotide("A", "1313") == "ACGTA"
    assert reverse_complement("AACg") == "cGTT"
    assert reverse_complement("0123") == "3210"


def test_select_base_tie_goes_to_first_base():
    assert select_base(BaseCount(np.array([3, 3, 0, 0]))) == ("A", 3, 3)
    assert select_base(BaseCount(np.array([1, 5, 2, 5]))) == ("C", 5, 5)


def test_select_base_uncovered_is_unknown():
    assert select_base(BaseCount(np.array([0, 0, 0, 0]))) == ("N", 0, 0)


def test_select_base_colour_space_alphabet():
    assert select_base(BaseCount(np.array([0, 0, 7, 1])), colour_space=True) == ("2", 7, 1)


def test_agreement_is_monotonic_in_best_count():
    previous = 0.0
    for best in range(1, 10):
        tally = AgreementTally()
        tally.add(best, 3)
        assert tally.agreement >= previous
        previous = tally.agreement
    assert AgreementTally().agreement is None


def test_forward_read_fills_counts():
    contig = make_contig("ACGTA")
    record = ReadRecord(read_id="r1", seq="ACGTA", alignments=[aln("ctg1", 0, 0, 5, 5)])
    assert add_read(record, {"ctg1": contig}, ConsensusConfig()) == 5
    assert [contig.base_count(i).sum() for i in range(5)] == [1] * 5
    assert called(contig) == "ACGTA"


def test_reverse_complement_read_is_flipped():
    contig = make_contig("AACCGGTTAC")
    record = ReadRecord(read_id="r1", seq="CGGT", alignments=[aln("ctg1", 1, 0, 4, 4, rc=True)])
    add_read(record, {"ctg1": contig}, ConsensusConfig())
    assert called(contig) == "NACCGNNNNN"


def test_read_overhanging_both_contig_ends_is_clipped():
    contig = make_contig("ACGTACGT")
    contigs = {"ctg1": contig}
    add_read(ReadRecord("r1", "TTACGT", alignments=[aln("ctg1", 0, 2, 4, 6)]), contigs, ConsensusConfig())
    add_read(ReadRecord("r2", "GTAA", alignments=[aln("ctg1", 6, 0, 2, 4)]), contigs, ConsensusConfig())
    assert called(contig) == "ACGTNNGT"
    assert int(contig.counts.sum()) == 6


def test_unknown_contig_is_skipped():
    contig = make_contig("ACGT")
    stats = {}
    record = ReadRecord("r1", "ACGT", alignments=[aln("other", 0, 0, 4, 4)])
    assert add_read(record, {"ctg1": contig}, ConsensusConfig(), stats) == 0
    assert stats["alignments_skipped_unknown_contig"] == 1
    assert int(contig.counts.sum()) == 0


def test_window_outside_read_is_fatal():
    contig = make_contig("ACGTACGTAC")
    record = ReadRecord("r1", "ACGTA", alignments=[aln("ctg1", 0, 0, 10, 10)])
    with pytest.raises(InvariantViolation):
        add_read(record, {"ctg1": contig}, ConsensusConfig())


def test_accumulation_is_order_independent():
    reads = [
        ReadRecord("r1", "ACGT", alignments=[aln("ctg1", 0, 0, 4, 4)]),
        ReadRecord("r2", "CCTA", alignments=[aln("ctg1", 2, 0, 4, 4)]),
        ReadRecord("r3", "GGTA", alignments=[aln("ctg1", 2, 0, 4, 4, rc=True)]),
    ]
    a = make_contig("ACGTAC")
    b = make_contig("ACGTAC")
    for r in reads:
        add_read(r, {"ctg1": a}, ConsensusConfig())
    for r in reversed(reads):
        add_read(r, {"ctg1": b}, ConsensusConfig())
    assert np.array_equal(a.counts, b.counts)
    assert int(a.counts.sum()) == 12


def test_colour_space_read_is_converted_and_piled_up():
    config = ConsensusConfig(colour_space=True, cs_to_nt=True)
    contig = make_contig("1313", name="c1", extra=1)
    record = parse_read_line("r1 A 1313 c1 0 0 4 4 0", config)
    assert record.seq == "ACGTA"
    add_read(record, {"c1": contig}, config)
    assert called(contig) == "ACGTA"


def test_unanchored_colour_space_read_is_dropped():
    config = ConsensusConfig(colour_space=True, cs_to_nt=True)
    contig = make_contig("1313", name="c1", extra=1)
    stats = {}
    record = parse_read_line("r2 C 31 c1 1 1 2 4 0", config)
    assert add_read(record, {"c1": contig}, config, stats) == 0
    assert stats["reads_skipped_unanchored"] == 1
    assert int(contig.counts.sum()) == 0


def test_colour_space_window_past_contig_end_is_fatal():
    config = ConsensusConfig(colour_space=True, cs_to_nt=True)
    with pytest.raises(InvariantViolation):
        clip_alignment(aln("c1", 2, 0, 4, 4), read_id="r1", seq_length=5, n_positions=5, config=config)


def test_incomplete_alignment_is_a_parse_error():
    with pytest.raises(ValueError):
        parse_read_line("r1 ACGT ctg1 0 0 4", ConsensusConfig())


def test_fix_unknown_decodes_adjacent_unknowns_left_to_right():
    # ACGTA in colour space
    assert fix_unknown("ANNTA", "1313") == "ACGTA"


def test_fix_unknown_trims_unknown_ends():
    assert fix_unknown("NCGTN", "1313") == "CGT"
    assert fix_unknown("NCNTA", "1313") == "CGTA"


def test_fix_unknown_keeps_soft_mask_case():
    assert fix_unknown("AnGTA", "1313") == "AcGTA"


@pytest.mark.parametrize("symbol", ["N", ".", "n"])
def test_unknown_read_symbols_are_rejected(symbol):
    with pytest.raises(ValueError, match="Unexpected sequence character"):
        base_to_code(symbol)


class _FlushRecorder(io.StringIO):
    flushed = False

    def flush(self):
        self.flushed = True
        super().flush()


def test_stdout_output_is_flushed_when_writing_fails(monkeypatch):
    stdout = _FlushRecorder()
    monkeypatch.setattr(sys, "stdout", stdout)
    with pytest.raises(RuntimeError):
        with open_output("-") as fh:
            fh.write("partial\n")
            raise RuntimeError("write failed")
    assert stdout.flushed
    assert stdout.getvalue() == "partial\n"
