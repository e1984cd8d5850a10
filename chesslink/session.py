"""Session handshake.

The initiator proposes a color in a Start message; the listener takes the
complement and answers with its own Start. Neither side applies the
proposal's fen: games always begin from the standard position.
"""

from __future__ import annotations

import logging
from enum import Enum

from chesslink.channel import FramedChannel
from chesslink.config import LinkConfig
from chesslink.errors import ChannelError, DecodeError, HandshakeError
from chesslink.models import Color, Session, Start
from chesslink.rules import RulesEngine

_log = logging.getLogger(__name__)


class Role(Enum):
    LISTENER = "listener"
    INITIATOR = "initiator"


def _receive_start(channel: FramedChannel, config: LinkConfig) -> Start:
    try:
        return channel.receive_blocking(
            Start, timeout=config.handshake_timeout, strict=True
        )
    except (DecodeError, ChannelError) as e:
        raise HandshakeError(f"Handshake failed: {e}") from e


def _send_start(channel: FramedChannel, start: Start) -> None:
    try:
        channel.write_message(start)
    except ChannelError as e:
        raise HandshakeError(f"Handshake failed: {e}") from e


def establish_session(
    channel: FramedChannel,
    role: Role,
    config: LinkConfig | None = None,
    engine: RulesEngine | None = None,
) -> Session:
    """Agree on colors with the peer and set up the board.

    Args:
        channel: Connected channel, owned by the returned session.
        role: Which side of the connection this process is.
        config: Supplies the local name, proposed color and timeout.
        engine: Rules engine to use; a fresh one by default.

    Returns:
        The session, with the rules engine at the starting position.

    Raises:
        HandshakeError: On any decode, transport or timeout failure.
    """
    config = config or LinkConfig()

    if role is Role.LISTENER:
        proposal = _receive_start(channel, config)
        _log.info("received proposal %s", proposal)
        my_color = Color.BLACK if proposal.is_white else Color.WHITE
        _send_start(channel, Start(is_white=not proposal.is_white, name=config.name))
        remote = proposal
    else:
        _send_start(channel, Start(is_white=config.propose_white, name=config.name))
        remote = _receive_start(channel, config)
        _log.info("received reply %s", remote)
        # The reply's is_white is the listener's own color
        my_color = Color.BLACK if remote.is_white else Color.WHITE

    if remote.fen:
        _log.warning("ignoring starting position from peer: %s", remote.fen)

    engine = engine or RulesEngine()
    engine.reset()

    session = Session(
        my_color=my_color,
        channel=channel,
        engine=engine,
        my_name=config.name,
        their_name=remote.name,
    )
    session.refresh()
    _log.info("playing %s against %s", my_color.value, remote.name or "anonymous")
    return session
