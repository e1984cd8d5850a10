"""Turn arbitration between the two peers.

The side to move sends its Move and blocks for the peer's Ack; the move
only lands on the local board once the peer has accepted it. The other
side polls once per tick, applies whatever Move arrives and answers with
an Ack saying whether its rules engine took the move.
"""

from __future__ import annotations

import logging
from enum import Enum

from chesslink.config import LinkConfig
from chesslink.errors import Desync, IllegalMove, NotYourTurn
from chesslink.models import Ack, Color, Move, PieceKind, Session, Status
from chesslink.transcoder import (
    index_to_algebraic,
    index_to_wire,
    uci_to_wire,
    wire_to_index,
    wire_to_uci,
)

_log = logging.getLogger(__name__)


class ArbiterState(Enum):
    AWAITING_LOCAL_MOVE = "awaiting_local_move"
    AWAITING_REMOTE_MOVE = "awaiting_remote_move"
    GAME_OVER = "game_over"


class TurnArbiter:
    """Drives one session from the first move to the end of the game."""

    def __init__(self, session: Session, config: LinkConfig | None = None) -> None:
        self.session = session
        self._config = config or LinkConfig()
        self.state = self._state_for_session()

    def _state_for_session(self) -> ArbiterState:
        if self.session.status.is_terminal:
            return ArbiterState.GAME_OVER
        if self.session.is_my_turn:
            return ArbiterState.AWAITING_LOCAL_MOVE
        return ArbiterState.AWAITING_REMOTE_MOVE

    @property
    def is_over(self) -> bool:
        return self.state is ArbiterState.GAME_OVER

    # -------------------------------------------------------------------
    # Queries for the presentation layer
    # -------------------------------------------------------------------

    def legal_destinations(self, origin: int) -> list[int]:
        if self.state is not ArbiterState.AWAITING_LOCAL_MOVE:
            return []
        return self.session.engine.legal_destinations(origin)

    def legal_moves_by_origin(self) -> dict[int, list[int]]:
        if self.state is not ArbiterState.AWAITING_LOCAL_MOVE:
            return {}
        return self.session.engine.legal_moves_by_origin()

    # -------------------------------------------------------------------
    # Local side
    # -------------------------------------------------------------------

    def _require_local_turn(self) -> None:
        if self.state is not ArbiterState.AWAITING_LOCAL_MOVE:
            raise NotYourTurn(f"Cannot move in state {self.state.value}")

    def _await_ack(self) -> Ack:
        return self.session.channel.receive_blocking(Ack, timeout=self._config.ack_timeout)

    def select_move(
        self,
        origin: int,
        destination: int,
        promotion: PieceKind | None = None,
    ) -> bool:
        """Submit a move the user picked, after checking it locally.

        Raises:
            NotYourTurn: If the local player is not to move.
            IllegalMove: If origin does not hold one of the local player's
                pieces or destination is not legal from it.
        """
        self._require_local_turn()
        square = index_to_algebraic(origin)
        piece = self.session.engine.board_string()[origin]
        if Color.from_piece_char(piece) is not self.session.my_color:
            raise IllegalMove(f"No piece of yours on {square}")
        if destination not in self.session.engine.legal_destinations(origin):
            raise IllegalMove(
                f"{square}{index_to_algebraic(destination)} is not legal"
            )
        return self.submit_move(origin, destination, promotion)

    def select_uci(self, text: str) -> bool:
        """Like select_move, with the move typed as UCI text ("e2e4", "e7e8n")."""
        from_, to, promotion = uci_to_wire(text)
        return self.select_move(wire_to_index(from_), wire_to_index(to), promotion)

    def submit_move(
        self,
        origin: int,
        destination: int,
        promotion: PieceKind | None = None,
    ) -> bool:
        """Send a move to the peer and wait for its verdict.

        The move is applied locally only after the peer accepts it.

        Returns:
            True if the peer accepted the move, False if it rejected it.

        Raises:
            NotYourTurn: If the local player is not to move.
            Desync: If the peer accepted a move the local board refuses.
        """
        self._require_local_turn()
        engine = self.session.engine
        if promotion is None and engine.needs_promotion(origin, destination):
            promotion = PieceKind.QUEEN

        move = Move(
            from_=index_to_wire(origin),
            to=index_to_wire(destination),
            promotion=promotion,
        )
        uci = wire_to_uci(move.from_, move.to, move.promotion)
        _log.info("sending move %s", uci)
        self.session.channel.write_message(move)

        ack = self._await_ack()
        if not ack.ok:
            _log.info("peer rejected %s", uci)
            return False

        if not engine.apply_squares(origin, destination, promotion):
            raise Desync(f"Peer accepted {uci} but the local board refuses it")
        self._after_move(uci)
        if ack.end_state is not None and ack.end_state is not self.session.status:
            _log.warning(
                "peer reports %s, local board says %s",
                ack.end_state.value,
                self.session.status.value,
            )
        return True

    def forfeit(self) -> None:
        """Resign the game on the local player's turn."""
        self._require_local_turn()
        _log.info("forfeiting")
        self.session.channel.write_message(Move(from_=(0, 0), to=(0, 0), forfeit=True))
        self._await_ack()
        self._end(Status.FORFEIT)

    # -------------------------------------------------------------------
    # Remote side
    # -------------------------------------------------------------------

    def tick(self) -> Move | None:
        """Poll for the peer's move; a no-op unless awaiting one.

        Returns:
            The move received this tick, accepted or not, or None.
        """
        if self.state is not ArbiterState.AWAITING_REMOTE_MOVE:
            return None

        move = self.session.channel.receive_one(Move)
        if move is None:
            return None

        if move.forfeit:
            _log.info("peer forfeited")
            self.session.channel.write_message(Ack(ok=True, end_state=Status.FORFEIT))
            self._end(Status.FORFEIT)
            return move

        if move.offer_draw:
            _log.info("peer offers a draw; draw offers are not supported")

        try:
            uci = wire_to_uci(move.from_, move.to, move.promotion)
        except ValueError as e:
            _log.warning("rejecting move with bad squares: %s", e)
            self.session.channel.write_message(Ack(ok=False))
            return move

        engine = self.session.engine
        turn_before = engine.side_to_move()
        applied = engine.apply(uci)
        if not applied or engine.side_to_move() is turn_before:
            _log.info("rejecting illegal move %s", uci)
            self.session.channel.write_message(Ack(ok=False))
            return move

        self._after_move(uci)
        status = self.session.status
        self.session.channel.write_message(
            Ack(ok=True, end_state=status if status.is_terminal else None)
        )
        return move

    # -------------------------------------------------------------------
    # Shared
    # -------------------------------------------------------------------

    def _after_move(self, uci: str) -> None:
        self.session.last_move = uci
        self.session.move_list.append(uci)
        self.session.refresh()
        self.state = self._state_for_session()
        if self.is_over:
            _log.info("game over: %s", self.session.status.value)

    def _end(self, status: Status) -> None:
        self.session.status = status
        self.state = ArbiterState.GAME_OVER
