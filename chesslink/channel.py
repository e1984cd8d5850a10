"""Framed message channel over a single TCP stream.

The listener binds once and accepts exactly one peer; the initiator keeps
retrying until the listener is up. After connecting, the socket is
non-blocking: reads are best effort and the receive helpers poll.
"""

from __future__ import annotations

import logging
import socket
import threading
import time

from chesslink.config import LinkConfig
from chesslink.errors import (
    ChannelCancelled,
    ChannelTimeout,
    ChannelWriteError,
    ConnectError,
    ConnectionClosed,
    DecodeError,
    ListenerBindError,
)
from chesslink.models import Message
from chesslink.wire import FrameBuffer, decode, encode, frame

_log = logging.getLogger(__name__)

_READ_SIZE = 4096


def parse_address(address: str) -> tuple[str, int]:
    """Split "host:port" (or "[v6]:port") into its parts.

    Raises:
        ValueError: If the port is missing or not in 1..65535.
    """
    host, sep, port_text = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Address must be host:port, got {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Port is not a number in {address!r}") from None
    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range in {address!r}")
    return host, port


class FramedChannel:
    """Exchanges one length-prefixed message at a time with the peer.

    The channel owns the socket. It is used from a single thread.
    """

    def __init__(self, sock: socket.socket, config: LinkConfig | None = None) -> None:
        self._sock = sock
        self._config = config or LinkConfig()
        self._frames = FrameBuffer()
        self._closed = False
        self._sock.setblocking(False)

    def __enter__(self) -> FramedChannel:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """True once the peer has closed its end or close() was called."""
        return self._closed

    @property
    def peername(self) -> str:
        try:
            host, port = self._sock.getpeername()[:2]
            return f"{host}:{port}"
        except (OSError, ValueError, TypeError):
            return "<unknown>"

    def write_message(self, message: Message) -> None:
        """Send a whole message.

        Raises:
            ChannelWriteError: If the stream cannot take the bytes.
        """
        data = frame(encode(message))
        try:
            self._sock.setblocking(True)
            self._sock.sendall(data)
        except OSError as e:
            raise ChannelWriteError(f"Could not write to stream: {e}") from e
        finally:
            try:
                self._sock.setblocking(False)
            except OSError:
                pass
        _log.debug("sent %s (%d bytes)", type(message).__name__, len(data))

    def read_best_effort(self) -> bytes:
        """One non-blocking read; b"" when nothing is available."""
        if self._closed:
            return b""
        try:
            data = self._sock.recv(_READ_SIZE)
        except BlockingIOError:
            return b""
        except OSError as e:
            _log.debug("read failed: %s", e)
            return b""
        if not data:
            _log.info("peer %s closed the connection", self.peername)
            self._closed = True
        return data

    def receive_one(
        self,
        expected: type,
        strict: bool = False,
        deadline: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Message | None:
        """Try once to obtain a message of the expected type.

        A partially delivered frame makes this block, polling every
        poll_interval, until the rest arrives, the deadline passes or
        cancel is set. The buffered bytes are kept, so a later call
        resumes the same frame.

        Args:
            expected: Start, Move or Ack.
            strict: Raise DecodeError instead of returning None when the
                bytes are not a valid message.
            deadline: time.monotonic() value bounding the partial-frame wait.
            cancel: Event that aborts the partial-frame wait once set.

        Returns:
            The message, or None if nothing complete is available or the
            bytes did not decode.

        Raises:
            ConnectionClosed: If the peer closed the stream and no complete
                message is buffered.
            ChannelTimeout: If the deadline passes mid-frame.
            ChannelCancelled: If cancel is set mid-frame.
        """
        try:
            self._frames.feed(self.read_best_effort())
            while self._frames.pending:
                if self._closed:
                    raise ConnectionClosed("Peer closed the stream mid-message")
                if cancel is not None and cancel.is_set():
                    raise ChannelCancelled(
                        f"Cancelled mid-way through a {expected.__name__} frame"
                    )
                if deadline is not None and time.monotonic() >= deadline:
                    raise ChannelTimeout(
                        f"Partial {expected.__name__} frame did not complete in time"
                    )
                time.sleep(self._config.poll_interval)
                self._frames.feed(self.read_best_effort())
            body = self._frames.pop()
        except DecodeError as e:
            if strict:
                raise
            _log.warning("dropping bad frame: %s", e)
            return None

        if body is None:
            if self._closed:
                raise ConnectionClosed("Peer closed the stream")
            return None

        try:
            return decode(body, expected)
        except DecodeError as e:
            if strict:
                raise
            _log.warning("could not decode %s: %s", expected.__name__, e)
            return None

    def receive_blocking(
        self,
        expected: type,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        strict: bool = False,
    ) -> Message:
        """Wait until a message of the expected type arrives.

        Args:
            expected: Start, Move or Ack.
            timeout: Seconds to wait; None waits forever.
            cancel: Event that aborts the wait once set.
            strict: Passed through to receive_one.

        Raises:
            ChannelTimeout: If the deadline passes.
            ChannelCancelled: If cancel is set.
            ConnectionClosed: If the peer closes the stream.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            message = self.receive_one(
                expected, strict=strict, deadline=deadline, cancel=cancel
            )
            if message is not None:
                return message
            if cancel is not None and cancel.is_set():
                raise ChannelCancelled(f"Cancelled while waiting for {expected.__name__}")
            if deadline is not None and time.monotonic() >= deadline:
                raise ChannelTimeout(
                    f"No {expected.__name__} within {timeout:.1f}s"
                )
            time.sleep(self._config.poll_interval)

    def close(self) -> None:
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()


def connect_as_listener(address: str, config: LinkConfig | None = None) -> FramedChannel:
    """Bind the address, accept exactly one peer and wrap it.

    Raises:
        ListenerBindError: If the address cannot be bound.
    """
    config = config or LinkConfig()
    host, port = parse_address(address)
    try:
        server = socket.create_server((host, port))
    except OSError as e:
        raise ListenerBindError(f"Could not bind {address}: {e}") from e

    with server:
        _log.info("listening on %s", address)
        conn, peer = server.accept()
    _log.info("accepted connection from %s:%s", peer[0], peer[1])
    return FramedChannel(conn, config)


def connect_as_initiator(
    address: str,
    config: LinkConfig | None = None,
    max_attempts: int | None = None,
) -> FramedChannel:
    """Connect to the listener, retrying with a fixed backoff.

    Args:
        address: Listener "host:port".
        config: Supplies connect_backoff.
        max_attempts: Give up after this many attempts; None retries forever.

    Raises:
        ConnectError: If max_attempts is exhausted.
    """
    config = config or LinkConfig()
    host, port = parse_address(address)
    attempt = 0
    while True:
        attempt += 1
        try:
            sock = socket.create_connection((host, port))
            break
        except OSError as e:
            _log.debug("connect attempt %d to %s failed: %s", attempt, address, e)
            if max_attempts is not None and attempt >= max_attempts:
                raise ConnectError(
                    f"Could not connect to {address} after {attempt} attempts"
                ) from e
            if attempt == 1 or attempt % 10 == 0:
                _log.info("waiting for listener at %s (attempt %d)", address, attempt)
            time.sleep(config.connect_backoff)

    _log.info("connected to %s", address)
    return FramedChannel(sock, config)
