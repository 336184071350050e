from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

from ctgconsensus.toy_data import make_toy_data


def _run_cli(args: list[str], stdin: str | None = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "ctgconsensus"] + args,
        check=False,
        capture_output=True,
        text=True,
        input=stdin,
    )


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "ctgconsensus consensus" in cp.stdout


def test_missing_outputs_is_a_usage_error(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["consensus", str(toy["contigs_fa"])])
    assert cp.returncode == 2
    assert "missing -o,--out option" in cp.stderr


def test_make_toy_data_and_consensus(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0
    toy = json.loads((toy_dir / "toy_summary.json").read_text(encoding="utf-8"))

    out_fa = tmp_path / "consensus.fa"
    pileup = tmp_path / "pileup.txt"
    report_dir = tmp_path / "report"
    cp = _run_cli(
        [
            "consensus",
            toy["contigs_fa"],
            "--alignments",
            toy["alignments"],
            "--out",
            str(out_fa),
            "--pileup",
            str(pileup),
            "--report-dir",
            str(report_dir),
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert out_fa.read_text(encoding="utf-8") == f">1 40 5 toy contig\n{toy['expected_consensus']}\n"

    lines = pileup.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 40 + 30
    assert lines[12].split("\t")[7] == "3"

    summary = json.loads((report_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["status_counts"]["accepted"] == 1
    assert summary["status_counts"]["unsupported"] == 1
    assert summary["pileup"]["alignments_skipped_unknown_contig"] == 1
    assert (report_dir / "report.html").exists()


def test_variants_pileup_from_stdin_to_stdout(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    alignments = Path(str(toy["alignments"])).read_text(encoding="utf-8")
    cp = _run_cli(
        ["consensus", str(toy["contigs_fa"]), "-p", "-", "--variants", "--no-progress"],
        stdin=alignments,
    )
    assert cp.returncode == 0, cp.stderr
    lines = cp.stdout.splitlines()
    # the variant on contig 1 plus every uncovered position of contig 2
    assert len(lines) == 1 + 30
    assert lines[0].startswith(f"1\t{int(toy['variant_pos0']) + 1}\t")


def test_colour_space_contigs_are_converted(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy", colour_space=True)
    out_fa = tmp_path / "consensus.fa"
    cp = _run_cli(
        [
            "consensus",
            str(toy["contigs_fa"]),
            "-a",
            str(toy["alignments"]),
            "-o",
            str(out_fa),
            "--no-progress",
            "-v",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert out_fa.read_text(encoding="utf-8") == f">1 41 5\n{toy['expected_consensus']}\n"
    assert "Contig 2 was not supported by a complete read" in cp.stderr


def test_colour_space_output_of_nucleotide_contigs_fails(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        [
            "consensus",
            str(toy["contigs_fa"]),
            "-a",
            str(toy["alignments"]),
            "-o",
            str(tmp_path / "out.fa"),
            "--cs",
        ]
    )
    assert cp.returncode == 2
    assert "Cannot convert nucleotide data to colour space" in cp.stderr


def test_colour_space_output_keeps_colours(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy", colour_space=True)
    colours = Path(toy["contigs_fa"]).read_text(encoding="utf-8").splitlines()[1]
    out_fa = tmp_path / "consensus.fa"
    cp = _run_cli(
        [
            "consensus",
            str(toy["contigs_fa"]),
            "-a",
            str(toy["alignments"]),
            "-o",
            str(out_fa),
            "-p",
            "-",
            "--cs",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert out_fa.read_text(encoding="utf-8") == f">1 40 5\n{colours}\n"

    rows = [line.split("\t") for line in cp.stdout.splitlines() if line.startswith("1\t")]
    assert len(rows) == 40
    for row in rows:
        assert row[2] == row[3] and row[2] in "0123"
        assert row[8] == row[3] * int(row[7])
    depth = {int(row[1]): int(row[7]) for row in rows}
    # the read placed at contig offset 3 is not anchored at its start but still counts
    assert (depth[3], depth[4], depth[6]) == (1, 2, 3)
