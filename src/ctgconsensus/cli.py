from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .alignments import iter_read_records, open_alignments
from .caller import MIN_AGREEMENT, run_consensus
from .contigs import load_contigs
from .pileup import build_pileup
from .plotting import plot_agreement_hist, plot_status_counts
from .report import build_summary, render_report
from .toy_data import make_toy_data
from .utils import ensure_outdir, open_output, write_json


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.ERROR
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ctgconsensus",
        description=(
            "ctgconsensus: call a per-position consensus for assembled contigs from "
            "short-read alignments (nucleotide or colour space) and write corrected "
            "contigs and/or a pileup."
        ),
    )
    p.add_argument("--version", action="version", version=f"ctgconsensus {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate tiny contigs and aligner output for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument(
        "--colour-space",
        action="store_true",
        help="Write colour-space contigs and reads instead of nucleotides.",
    )
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # consensus
    # -----------------
    c = sub.add_parser(
        "consensus",
        help="Pile up aligned reads on contigs and call a consensus at each position.",
        description=(
            "Alignments and read sequences are read from --alignments (default: standard "
            "input), one read per line. Write the consensus of each supported contig to "
            "--out and/or the per-position evidence to --pileup."
        ),
    )
    c.add_argument("contigs", type=_path_exists, help="Contigs FASTA (.fa/.fa.gz).")
    c.add_argument(
        "-a",
        "--alignments",
        default="-",
        help="Aligner output with read sequences ('-' for standard input, .gz supported).",
    )
    c.add_argument("-o", "--out", default=None, help="Write consensus contigs in FASTA format here.")
    c.add_argument("-p", "--pileup", default=None, help="Write the pileup here ('-' for standard output).")
    mode = c.add_mutually_exclusive_group()
    mode.add_argument(
        "--nt",
        dest="output_cs",
        action="store_false",
        help="Output nucleotide contigs [default].",
    )
    mode.add_argument(
        "--cs",
        dest="output_cs",
        action="store_true",
        help="Output colour-space contigs.",
    )
    c.set_defaults(output_cs=False)
    c.add_argument(
        "-V",
        "--variants",
        action="store_true",
        help="Print only variants in the pileup.",
    )
    c.add_argument(
        "--report-dir",
        default=None,
        help="Write summary.json, plots and report.html into this directory.",
    )
    c.add_argument("--no-progress", action="store_true", help="Do not show a progress bar.")
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "ctgconsensus quickstart (copy/paste):",
        "",
        "1) Nucleotide contigs, consensus + pileup:",
        "   ctgconsensus consensus contigs.fa \\",
        "     --alignments aligned.txt \\",
        "     --out consensus.fa \\",
        "     --pileup pileup.txt",
        "",
        "2) Colour-space contigs converted to nucleotides, reading alignments from a pipe:",
        "   KAligner --seq reads.csfa contigs.fa | ctgconsensus consensus contigs.fa -o consensus.fa",
        "",
        "3) Variants-only pileup to standard output with a report:",
        "   ctgconsensus consensus contigs.fa -a aligned.txt -p - --variants --report-dir report/",
        "",
        "Tip: run 'ctgconsensus make-toy-data --outdir toy/' for a tiny test input.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir, colour_space=bool(args.colour_space))
    print(json.dumps(summary, indent=2))
    return 0


def cmd_consensus(args: argparse.Namespace) -> int:
    report_dir = Path(args.report_dir).expanduser().resolve() if args.report_dir else None
    log_path = report_dir / "consensus.log" if report_dir is not None else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("ctgconsensus")
    logger.info("ctgconsensus %s", __version__)

    try:
        contigs, config = load_contigs(
            args.contigs,
            output_cs=bool(args.output_cs),
            only_variants=bool(args.variants),
            verbose=int(args.verbose),
        )

        fh = open_alignments(args.alignments)
        try:
            pileup_stats = build_pileup(
                iter_read_records(fh, config),
                contigs,
                config,
                progress=not bool(args.no_progress),
            )
        finally:
            if fh is not sys.stdin:
                fh.close()

        with open_output(args.out) as out, open_output(args.pileup) as pileup_out:
            results = run_consensus(contigs, config, out=out, pileup_out=pileup_out)

        if report_dir is not None:
            ensure_outdir(report_dir)
            summary = build_summary(
                contigs_path=str(args.contigs),
                alignments_path=str(args.alignments),
                out_path=args.out,
                pileup_path=args.pileup,
                mode={
                    "colour_space": config.colour_space,
                    "cs_to_nt": config.cs_to_nt,
                    "only_variants": config.only_variants,
                },
                threshold=MIN_AGREEMENT,
                pileup_stats=pileup_stats,
                results=results,
            )
            write_json(report_dir / "summary.json", summary)

            plots_dir = report_dir / "plots"
            status_png = plots_dir / "contig_status.png"
            agreement_png = plots_dir / "agreement_hist.png"
            plot_status_counts(status_counts=summary["status_counts"], out_png=status_png)
            plot_agreement_hist(
                agreements=[r.agreement for r in results],
                out_png=agreement_png,
                threshold=MIN_AGREEMENT,
            )
            report_path = render_report(
                outdir=report_dir,
                version=__version__,
                summary=summary,
                plots={
                    "status_counts": str(Path("plots") / status_png.name),
                    "agreement_hist": str(Path("plots") / agreement_png.name),
                },
            )
            logger.info("Report written: %s", report_path)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "consensus":
        if not args.out and not args.pileup:
            parser.error("missing -o,--out option")
        return cmd_consensus(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
