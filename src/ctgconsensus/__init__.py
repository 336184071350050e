"""ctgconsensus: pileup-based consensus calling for assembled contigs.

Public API is intentionally small; most users should use the CLI:

    ctgconsensus consensus contigs.fa -o consensus.fa < alignments.txt

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.2.0"
