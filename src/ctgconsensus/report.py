from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Template

from .models import ContigResult

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>ctgconsensus Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>ctgconsensus Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Contigs</th><td><code>{{ contigs_path }}</code></td></tr>
      <tr><th>Alignments</th><td><code>{{ alignments_path }}</code></td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Mode</h3>
    <table>
      <tr><th>Colour-space input</th><td>{{ mode.colour_space }}</td></tr>
      <tr><th>Colour-space to nucleotide</th><td>{{ mode.cs_to_nt }}</td></tr>
      <tr><th>Variants-only pileup</th><td>{{ mode.only_variants }}</td></tr>
      <tr><th>Agreement threshold</th><td>{{ threshold }}</td></tr>
    </table>
  </div>
</div>

<h2>Pileup</h2>
<table>
  <tr><th>Reads seen</th><td>{{ pileup.reads_total }}</td></tr>
  <tr><th>Unanchored reads skipped</th><td>{{ pileup.reads_skipped_unanchored }}</td></tr>
  <tr><th>Alignments seen</th><td>{{ pileup.alignments_total }}</td></tr>
  <tr><th>Alignments to unknown contigs</th><td>{{ pileup.alignments_skipped_unknown_contig }}</td></tr>
  <tr><th>Bases counted</th><td>{{ pileup.bases_counted }}</td></tr>
</table>

<h2>Contigs</h2>
<table>
  <tr><th>Accepted</th><td>{{ status_counts.accepted }}</td></tr>
  <tr><th>Low agreement, kept</th><td>{{ status_counts.low_agreement }}</td></tr>
  <tr><th>Low agreement, omitted</th><td>{{ status_counts.discarded_low_agreement }}</td></tr>
  <tr><th>Not supported by a complete read</th><td>{{ status_counts.unsupported }}</td></tr>
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Contig outcomes</h3>
    <img src="{{ plots.status_counts }}" alt="contig outcomes">
  </div>
  <div class="card">
    <h3>Agreement</h3>
    <img src="{{ plots.agreement_hist }}" alt="agreement histogram">
  </div>
</div>

<h2>Lowest agreement</h2>
<table>
  <tr><th>Contig</th><th>Length</th><th>sum_best</th><th>sum_second</th><th>Agreement</th><th>Status</th></tr>
  {% for r in lowest %}
  <tr>
    <td><code>{{ r.contig }}</code></td><td>{{ r.length }}</td><td>{{ r.sum_best }}</td>
    <td>{{ r.sum_second }}</td>
    <td>{% if r.agreement is not none %}{{ "%.4f"|format(r.agreement) }}{% else %}n/a{% endif %}</td>
    <td>{{ r.status }}</td>
  </tr>
  {% endfor %}
</table>

<h2>Outputs</h2>
<ul>
  {% if out_path %}<li><code>{{ out_path }}</code> (consensus FASTA)</li>{% endif %}
  {% if pileup_path %}<li><code>{{ pileup_path }}</code> (pileup)</li>{% endif %}
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<hr>
<p class="small">ctgconsensus {{ version }}</p>
</body>
</html>"""
)


def status_counts(results: List[ContigResult]) -> Dict[str, int]:
    counts = {"accepted": 0, "low_agreement": 0, "discarded_low_agreement": 0, "unsupported": 0}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1
    return counts


def build_summary(
    *,
    contigs_path: str,
    alignments_path: str,
    out_path: str | None,
    pileup_path: str | None,
    mode: Dict[str, Any],
    threshold: float,
    pileup_stats: Dict[str, int],
    results: List[ContigResult],
) -> Dict[str, Any]:
    return {
        "contigs_path": contigs_path,
        "alignments_path": alignments_path,
        "out_path": out_path,
        "pileup_path": pileup_path,
        "mode": mode,
        "threshold": threshold,
        "pileup": pileup_stats,
        "status_counts": status_counts(results),
        "contigs": [asdict(r) for r in results],
    }


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    plots: Dict[str, str],
    max_rows: int = 25,
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    # contigs without any counts sort first
    rows = sorted(
        summary.get("contigs", []),
        key=lambda r: -1.0 if r["agreement"] is None else r["agreement"],
    )

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        contigs_path=summary.get("contigs_path"),
        alignments_path=summary.get("alignments_path"),
        out_path=summary.get("out_path"),
        pileup_path=summary.get("pileup_path"),
        mode=summary.get("mode", {}),
        threshold=summary.get("threshold"),
        pileup=summary.get("pileup", {}),
        status_counts=summary.get("status_counts", {}),
        lowest=rows[:max_rows],
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
