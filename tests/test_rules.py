"""Tests for the python-chess rules engine adapter."""

from __future__ import annotations

import chess
import pytest

from chesslink.models import Color, PieceKind, Status
from chesslink.rules import RulesEngine
from chesslink.transcoder import algebraic_to_index as sq


def _play(engine: RulesEngine, *moves: str) -> None:
    for uci in moves:
        assert engine.apply(uci), uci


class TestApply:

    def test_legal_move_changes_side_to_move(self):
        engine = RulesEngine()
        assert engine.side_to_move() is Color.WHITE
        assert engine.apply("e2e4")
        assert engine.side_to_move() is Color.BLACK

    def test_illegal_move_leaves_board(self):
        engine = RulesEngine()
        fen = engine.fen()
        assert not engine.apply("e2e5")
        assert engine.fen() == fen
        assert engine.side_to_move() is Color.WHITE

    def test_garbage_is_refused(self):
        assert not RulesEngine().apply("hello")

    def test_moving_the_wrong_color(self):
        assert not RulesEngine().apply("e7e5")

    def test_apply_squares(self):
        engine = RulesEngine()
        assert engine.apply_squares(sq("g1"), sq("f3"))
        assert engine.board.piece_at(chess.F3) == chess.Piece(chess.KNIGHT, chess.WHITE)

    def test_missing_promotion_becomes_queen(self):
        engine = RulesEngine(chess.Board("8/P6k/8/8/8/8/8/K7 w - - 0 1"))
        assert engine.apply("a7a8")
        assert engine.board.piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)

    def test_explicit_underpromotion(self):
        engine = RulesEngine(chess.Board("8/P6k/8/8/8/8/8/K7 w - - 0 1"))
        assert engine.apply_squares(sq("a7"), sq("a8"), PieceKind.KNIGHT)
        assert engine.board.piece_at(chess.A8) == chess.Piece(chess.KNIGHT, chess.WHITE)

    def test_reset(self):
        engine = RulesEngine()
        _play(engine, "e2e4", "e7e5")
        engine.reset()
        assert engine.fen() == chess.STARTING_FEN


class TestQueries:

    def test_legal_destinations_for_pawn(self):
        assert RulesEngine().legal_destinations(sq("e2")) == sorted([sq("e3"), sq("e4")])

    def test_legal_destinations_empty_square(self):
        assert RulesEngine().legal_destinations(sq("e4")) == []

    def test_legal_moves_by_origin(self):
        moves = RulesEngine().legal_moves_by_origin()
        assert len(moves) == 10  # eight pawns and two knights
        assert moves[sq("b1")] == sorted([sq("a3"), sq("c3")])

    def test_needs_promotion(self):
        engine = RulesEngine(chess.Board("8/P6k/8/8/8/8/8/K7 w - - 0 1"))
        assert engine.needs_promotion(sq("a7"), sq("a8"))
        assert not engine.needs_promotion(sq("a1"), sq("a2"))

    def test_board_string_orientation(self):
        text = RulesEngine().board_string()
        assert len(text) == 64
        assert text[:8] == "rnbqkbnr"
        assert text[-8:] == "RNBQKBNR"
        assert Color.from_piece_char(text[0]) is Color.BLACK
        assert Color.from_piece_char(text[63]) is Color.WHITE
        assert Color.from_piece_char(text[32]) is Color.NONE

    def test_board_is_a_copy(self):
        engine = RulesEngine()
        engine.board.push_uci("e2e4")
        assert engine.fen() == chess.STARTING_FEN


class TestStatus:

    def test_active_at_start(self):
        assert RulesEngine().terminal_status() is Status.ACTIVE

    def test_checkmate(self):
        engine = RulesEngine()
        _play(engine, "f2f3", "e7e5", "g2g4", "d8h4")
        assert engine.terminal_status() is Status.CHECKMATE
        assert engine.is_in_check(Color.WHITE)
        assert not engine.is_in_check(Color.BLACK)

    def test_stalemate(self):
        engine = RulesEngine(chess.Board("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"))
        assert engine.terminal_status() is Status.STALEMATE

    def test_fifty_move_rule(self):
        engine = RulesEngine(chess.Board("7k/8/8/8/8/8/8/K6R w - - 100 80"))
        assert engine.terminal_status() is Status.FIFTY_MOVE_RULE

    def test_threefold_repetition(self):
        engine = RulesEngine()
        _play(engine, *(["g1f3", "g8f6", "f3g1", "f6g8"] * 2))
        assert engine.terminal_status() is Status.THREEFOLD_REPETITION

    def test_check_of_none_color_is_an_error(self):
        with pytest.raises(ValueError):
            RulesEngine().is_in_check(Color.NONE)
