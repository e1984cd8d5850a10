"""Shared data models for chesslink.

Start, Move and Ack are the wire contract between the two peers.
Session is the per-process game context built by the handshake and
handed to the turn arbiter and the terminal UI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chesslink.channel import FramedChannel
    from chesslink.rules import RulesEngine

WirePair = tuple[int, int]


class Color(Enum):
    """Player color. NONE only classifies an empty board square."""

    WHITE = "white"
    BLACK = "black"
    NONE = "none"

    def opposite(self) -> Color:
        if self is Color.WHITE:
            return Color.BLACK
        if self is Color.BLACK:
            return Color.WHITE
        raise ValueError("Color.NONE has no opposite")

    @classmethod
    def from_piece_char(cls, char: str) -> Color:
        """Classify a character of a printed board (uppercase is White)."""
        if len(char) != 1:
            return cls.NONE
        if char in "PNBRQK":
            return cls.WHITE
        if char in "pnbrqk":
            return cls.BLACK
        return cls.NONE


class Status(Enum):
    """Game status. Anything but ACTIVE ends the game."""

    ACTIVE = "active"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    FIFTY_MOVE_RULE = "fifty_move_rule"
    THREEFOLD_REPETITION = "threefold_repetition"
    FORFEIT = "forfeit"

    @property
    def is_terminal(self) -> bool:
        return self is not Status.ACTIVE


class PieceKind(Enum):
    """Pieces a pawn may promote to."""

    QUEEN = "q"
    ROOK = "r"
    BISHOP = "b"
    KNIGHT = "n"


@dataclass(frozen=True)
class Start:
    """Handshake proposal (initiator) or reply (listener)."""

    is_white: bool
    name: str | None = None
    fen: str | None = None
    time: float | None = None
    inc: float | None = None


@dataclass(frozen=True)
class Move:
    """One ply proposed by the side to move, squares in wire form."""

    from_: WirePair
    to: WirePair
    offer_draw: bool = False
    promotion: PieceKind | None = None
    forfeit: bool = False


@dataclass(frozen=True)
class Ack:
    """Answer to a Move: ok=False means the receiver did not apply it."""

    ok: bool
    end_state: Status | None = None


Message = Start | Move | Ack


@dataclass
class Session:
    """Both peers' view of one game, from handshake to process exit."""

    my_color: Color
    channel: FramedChannel
    engine: RulesEngine
    my_name: str | None = None
    their_name: str | None = None
    turn: Color = Color.WHITE
    status: Status = Status.ACTIVE
    last_move: str | None = None
    move_list: list[str] = field(default_factory=list)

    @property
    def their_color(self) -> Color:
        return self.my_color.opposite()

    @property
    def is_my_turn(self) -> bool:
        return self.turn is self.my_color

    def refresh(self) -> None:
        """Mirror side to move and terminal status from the rules engine."""
        self.turn = self.engine.side_to_move()
        if self.status is not Status.FORFEIT:
            self.status = self.engine.terminal_status()
