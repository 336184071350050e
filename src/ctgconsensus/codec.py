"""Base codec: nucleotide / colour-space symbols and their 2-bit codes.

Nucleotides A, C, G, T map to 0..3 and colour-space digits 0..3 map to
themselves. A colour is the XOR of the codes of two adjacent nucleotides, so
decoding a colour from a known nucleotide is another XOR.
"""

from __future__ import annotations

from typing import Dict

NUCLEOTIDES = "ACGT"
COLOURS = "0123"
UNKNOWN = "N"

_CODES: Dict[str, int] = {}
for _i, (_nt, _cs) in enumerate(zip(NUCLEOTIDES, COLOURS)):
    _CODES[_nt] = _i
    _CODES[_nt.lower()] = _i
    _CODES[_cs] = _i

# Digits are their own complement in colour space.
_COMPLEMENT = str.maketrans("ACGTNacgtn0123", "TGCANtgcan0123")


def base_to_code(base: str) -> int:
    """Return the 2-bit code of a nucleotide or colour-space symbol.

    Any other symbol, including ``N`` and ``.``, raises ValueError.
    """
    try:
        return _CODES[base]
    except KeyError:
        raise ValueError(f"Unexpected sequence character: {base!r}") from None


def code_to_base(code: int, *, colour_space: bool = False) -> str:
    alphabet = COLOURS if colour_space else NUCLEOTIDES
    return alphabet[code]


def is_canonical(symbol: str, *, colour_space: bool = False) -> bool:
    """True for a called (non-placeholder) symbol of the given alphabet."""
    alphabet = COLOURS if colour_space else NUCLEOTIDES
    return len(symbol) == 1 and symbol.upper() in alphabet


def is_unknown(symbol: str) -> bool:
    return symbol.upper() == UNKNOWN


def reverse_complement(seq: str) -> str:
    return seq.translate(_COMPLEMENT)[::-1]


def nucleotide_to_colour(a: str, b: str) -> str:
    """Colour of the transition between nucleotides ``a`` and ``b``."""
    return COLOURS[base_to_code(a) ^ base_to_code(b)]


def decode_colour(base: str, colour: str) -> str:
    """Nucleotide that follows ``base`` across the transition ``colour``."""
    return NUCLEOTIDES[base_to_code(base) ^ base_to_code(colour)]


def colour_to_nucleotide(anchor: str, colours: str) -> str:
    """Decode a colour-space read.

    The anchor base is kept as the first nucleotide, so the result is one
    symbol longer than ``colours``.
    """
    seed = base_to_code(anchor)
    out = [NUCLEOTIDES[seed]]
    for c in colours:
        seed ^= base_to_code(c)
        out.append(NUCLEOTIDES[seed])
    return "".join(out)
