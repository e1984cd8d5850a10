"""Exception hierarchy for chesslink.

Transport and handshake errors are fatal: they propagate to the CLI,
which reports them and exits. A rejected move is not an error; it is
an Ack with ok=False.
"""

from __future__ import annotations


class ChessLinkError(Exception):
    """Base class for every error raised by chesslink."""


class MalformedCoordinate(ChessLinkError, ValueError):
    """A square could not be parsed or is off the board."""


class DecodeError(ChessLinkError):
    """Bytes received from the peer are not a valid message."""


class ChannelError(ChessLinkError):
    """Base class for transport failures."""


class ListenerBindError(ChannelError):
    """The listening address could not be bound."""


class ConnectError(ChannelError):
    """The initiator ran out of connection attempts."""


class ChannelWriteError(ChannelError):
    """A message could not be written to the stream."""


class ConnectionClosed(ChannelError):
    """The peer closed the stream."""


class ChannelTimeout(ChannelError):
    """No message arrived before the deadline."""


class ChannelCancelled(ChannelError):
    """A blocking receive was cancelled by the caller."""


class HandshakeError(ChessLinkError):
    """The peers could not agree on a session."""


class ArbiterError(ChessLinkError):
    """Base class for turn arbitration errors."""


class NotYourTurn(ArbiterError):
    """A local move was attempted while not awaiting one."""


class IllegalMove(ArbiterError):
    """The selected destination is not legal for the selected origin."""


class Desync(ArbiterError):
    """The peer accepted a move the local rules engine refuses."""
