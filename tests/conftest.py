"""Shared test fixtures: in-process peers over socket pairs.

Fixtures:
    fast_config   - LinkConfig with millisecond polling and bounded waits.
    channel_pair  - Two connected FramedChannels (initiator end, listener end).
    raw_pair      - A FramedChannel plus the raw socket of its peer.
    session_pair  - Initiator and listener sessions after a real handshake.
    free_port     - A TCP port nothing is listening on.
"""

from __future__ import annotations

import socket
import threading
from dataclasses import replace

import pytest

from chesslink.channel import FramedChannel
from chesslink.config import LinkConfig
from chesslink.session import Role, establish_session


@pytest.fixture()
def fast_config() -> LinkConfig:
    return LinkConfig(
        poll_interval=0.001,
        connect_backoff=0.01,
        handshake_timeout=5.0,
        ack_timeout=5.0,
    )


@pytest.fixture()
def channel_pair(fast_config):
    a, b = socket.socketpair()
    initiator = FramedChannel(a, fast_config)
    listener = FramedChannel(b, fast_config)
    yield initiator, listener
    initiator.close()
    listener.close()


@pytest.fixture()
def raw_pair(fast_config):
    """A channel under test and the plain socket feeding it."""
    a, b = socket.socketpair()
    channel = FramedChannel(a, fast_config)
    yield channel, b
    channel.close()
    b.close()


@pytest.fixture()
def session_pair(channel_pair, fast_config):
    initiator_ch, listener_ch = channel_pair
    result: dict = {}

    def _listen():
        result["listener"] = establish_session(
            listener_ch, Role.LISTENER, replace(fast_config, name="listener")
        )

    thread = threading.Thread(target=_listen, daemon=True)
    thread.start()
    initiator = establish_session(
        initiator_ch, Role.INITIATOR, replace(fast_config, name="initiator")
    )
    thread.join(5)
    return initiator, result["listener"]


@pytest.fixture()
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
