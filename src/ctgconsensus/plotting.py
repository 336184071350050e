from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "accepted": "Accepted",
    "low_agreement": "Low agreement (kept)",
    "discarded_low_agreement": "Low agreement (omitted)",
    "unsupported": "Unsupported",
}


def plot_agreement_hist(
    *,
    agreements: List[Optional[float]],
    out_png: str | Path,
    threshold: float = 0.9,
    title: str = "Per-contig agreement",
    nbins: int = 20,
) -> None:
    """Histogram of contig agreement ratios; contigs without any counts are left out."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    values = [float(a) for a in agreements if a is not None]
    edges = [i / nbins for i in range(nbins + 1)]

    plt.figure()
    plt.hist(values, bins=edges)
    plt.axvline(threshold, color="red", linestyle="--", label=f"threshold {threshold:.2f}")
    plt.xlabel("sum_best / (sum_best + sum_second)")
    plt.ylabel("Contig count")
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_status_counts(
    *,
    status_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Contig outcomes",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = [STATUS_LABELS[k] for k in STATUS_LABELS]
    values = [int(status_counts.get(k, 0)) for k in STATUS_LABELS]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Contig count")
    plt.title(title)
    plt.xticks(rotation=15, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
