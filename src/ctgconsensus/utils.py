from __future__ import annotations

import gzip
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, TextIO

logger = logging.getLogger(__name__)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


@contextmanager
def open_output(path: Optional[str | Path]) -> Iterator[Optional[TextIO]]:
    """Open an output path for writing; ``-`` is stdout and None yields None."""
    if path is None or str(path) == "":
        yield None
        return
    if str(path) == "-":
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return
    fh = open_textmaybe_gzip(path, "wt")
    try:
        yield fh
    finally:
        fh.close()


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)
