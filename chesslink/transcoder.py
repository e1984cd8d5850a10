"""Square notation conversions.

Three forms name the same square:

- linear index 0..63, index 0 is a8 (top-left as rendered), 63 is h1
- algebraic text such as "e4"
- wire pair (x, y) with x = file 0..7 and y = rank-from-bottom 0..7
"""

from __future__ import annotations

from chesslink.errors import MalformedCoordinate
from chesslink.models import PieceKind, WirePair

_FILES = "abcdefgh"
_RANKS = "12345678"


def _check_index(index: int) -> None:
    if not isinstance(index, int) or not 0 <= index <= 63:
        raise MalformedCoordinate(f"Square index out of range: {index!r}")


def algebraic_to_index(s: str) -> int:
    """Parse algebraic text ("e4", case-insensitive) into a linear index.

    Raises:
        MalformedCoordinate: If s is not a file letter a-h followed by a rank 1-8.
    """
    if not isinstance(s, str) or len(s) != 2:
        raise MalformedCoordinate(f"Expected two characters, got {s!r}")
    file_char, rank_char = s[0].lower(), s[1]
    if file_char not in _FILES or rank_char not in _RANKS:
        raise MalformedCoordinate(f"Not a square: {s!r}")
    col = _FILES.index(file_char)
    row = 7 - _RANKS.index(rank_char)
    return row * 8 + col


def index_to_algebraic(index: int) -> str:
    _check_index(index)
    row, col = divmod(index, 8)
    return f"{_FILES[col]}{_RANKS[7 - row]}"


def index_to_wire(index: int) -> WirePair:
    _check_index(index)
    row, col = divmod(index, 8)
    return (col, 7 - row)


def wire_to_index(pair: WirePair) -> int:
    try:
        x, y = pair
    except (TypeError, ValueError):
        raise MalformedCoordinate(f"Not a wire pair: {pair!r}") from None
    if not all(isinstance(v, int) and 0 <= v <= 7 for v in (x, y)):
        raise MalformedCoordinate(f"Wire pair out of range: {pair!r}")
    return (7 - y) * 8 + x


def wire_to_algebraic(pair: WirePair) -> str:
    return index_to_algebraic(wire_to_index(pair))


def algebraic_to_wire(s: str) -> WirePair:
    return index_to_wire(algebraic_to_index(s))


def wire_to_uci(
    from_: WirePair,
    to: WirePair,
    promotion: PieceKind | None = None,
) -> str:
    """Build the UCI text the rules engine applies, e.g. "e7e8q"."""
    text = wire_to_algebraic(from_) + wire_to_algebraic(to)
    if promotion is not None:
        text += promotion.value
    return text


def uci_to_wire(uci: str) -> tuple[WirePair, WirePair, PieceKind | None]:
    """Split UCI text ("e2e4", "e7e8q") into wire pairs and promotion.

    Raises:
        MalformedCoordinate: If the text is not a UCI move.
    """
    text = uci.strip()
    if len(text) not in (4, 5):
        raise MalformedCoordinate(f"Not a move: {uci!r}")
    promotion = None
    if len(text) == 5:
        try:
            promotion = PieceKind(text[4].lower())
        except ValueError:
            raise MalformedCoordinate(f"Bad promotion piece in {uci!r}") from None
    return algebraic_to_wire(text[:2]), algebraic_to_wire(text[2:4]), promotion
