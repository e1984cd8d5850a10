"""Rules engine adapter over python-chess.

The board owns all chess knowledge: move legality, check, and the
terminal conditions. chesslink only ever asks it questions through this
wrapper, by UCI text or by linear square index.
"""

from __future__ import annotations

import logging

import chess

from chesslink.models import Color, PieceKind, Status
from chesslink.transcoder import algebraic_to_index, index_to_algebraic

_log = logging.getLogger(__name__)


def _to_square(index: int) -> chess.Square:
    return chess.parse_square(index_to_algebraic(index))


def _to_index(square: chess.Square) -> int:
    return algebraic_to_index(chess.square_name(square))


def _to_chess_color(color: Color) -> chess.Color:
    if color is Color.NONE:
        raise ValueError("Color.NONE is not a side")
    return color is Color.WHITE


class RulesEngine:
    """Owns the board for one game."""

    def __init__(self, board: chess.Board | None = None) -> None:
        self._board = board if board is not None else chess.Board()

    @property
    def board(self) -> chess.Board:
        """A copy of the current position, for display."""
        return self._board.copy()

    def reset(self) -> None:
        """Return to the standard starting position."""
        self._board.reset()

    def fen(self) -> str:
        return self._board.fen()

    def apply(self, uci: str) -> bool:
        """Play a move given as UCI text.

        A pawn reaching the last rank without a promotion suffix is
        promoted to a queen.

        Returns:
            True if the move was legal and has been played.
        """
        try:
            move = chess.Move.from_uci(uci)
        except ValueError:
            _log.debug("not a UCI move: %r", uci)
            return False

        if move not in self._board.legal_moves and move.promotion is None:
            move = chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)

        if move not in self._board.legal_moves:
            _log.debug("illegal move %s in %s", uci, self._board.fen())
            return False

        self._board.push(move)
        return True

    def apply_squares(
        self,
        origin: int,
        destination: int,
        promotion: PieceKind | None = None,
    ) -> bool:
        """Play a move given as a pair of linear indices."""
        uci = index_to_algebraic(origin) + index_to_algebraic(destination)
        if promotion is not None:
            uci += promotion.value
        return self.apply(uci)

    def legal_destinations(self, origin: int) -> list[int]:
        """Linear indices the piece on origin may move to."""
        square = _to_square(origin)
        targets = {
            _to_index(m.to_square)
            for m in self._board.legal_moves
            if m.from_square == square
        }
        return sorted(targets)

    def legal_moves_by_origin(self) -> dict[int, list[int]]:
        moves: dict[int, set[int]] = {}
        for m in self._board.legal_moves:
            moves.setdefault(_to_index(m.from_square), set()).add(_to_index(m.to_square))
        return {origin: sorted(targets) for origin, targets in moves.items()}

    def needs_promotion(self, origin: int, destination: int) -> bool:
        """True if moving origin to destination is a pawn reaching the last rank."""
        from_sq, to_sq = _to_square(origin), _to_square(destination)
        return any(
            m.from_square == from_sq and m.to_square == to_sq and m.promotion
            for m in self._board.legal_moves
        )

    def side_to_move(self) -> Color:
        return Color.WHITE if self._board.turn == chess.WHITE else Color.BLACK

    def is_in_check(self, color: Color) -> bool:
        side = _to_chess_color(color)
        king = self._board.king(side)
        if king is None:
            return False
        return self._board.is_attacked_by(not side, king)

    def terminal_status(self) -> Status:
        board = self._board
        if board.is_checkmate():
            return Status.CHECKMATE
        if board.is_stalemate():
            return Status.STALEMATE
        if board.is_fifty_moves():
            return Status.FIFTY_MOVE_RULE
        if board.is_repetition(3):
            return Status.THREEFOLD_REPETITION
        return Status.ACTIVE

    def board_string(self) -> str:
        """64 characters from a8 to h1, "." for empty squares."""
        chars = []
        for i in range(64):
            piece = self._board.piece_at(_to_square(i))
            chars.append(piece.symbol() if piece else ".")
        return "".join(chars)
