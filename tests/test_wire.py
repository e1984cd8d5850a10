"""Tests for the message codec and length-prefixed framing."""

from __future__ import annotations

import json

import pytest

from chesslink.errors import DecodeError
from chesslink.models import Ack, Move, PieceKind, Start, Status
from chesslink.wire import (
    HEADER_SIZE,
    MAX_FRAME_SIZE,
    MOVE_SCHEMA,
    FrameBuffer,
    decode,
    encode,
    frame,
    validate_message,
)


class TestCodec:

    def test_move_payload_shape(self):
        body = encode(Move(from_=(4, 1), to=(4, 3)))
        assert json.loads(body) == {
            "type": "move",
            "from": [4, 1],
            "to": [4, 3],
            "offer_draw": False,
            "promotion": None,
            "forfeit": False,
        }

    def test_start_with_metadata(self):
        start = Start(is_white=True, name="alice", fen=None, time=300.0, inc=2)
        assert decode(encode(start), Start) == start

    def test_move_with_promotion(self):
        move = Move(from_=(0, 6), to=(0, 7), promotion=PieceKind.ROOK)
        assert decode(encode(move), Move) == move

    def test_ack_with_end_state(self):
        ack = Ack(ok=True, end_state=Status.CHECKMATE)
        assert json.loads(encode(ack))["end_state"] == "checkmate"
        assert decode(encode(ack), Ack) == ack

    def test_encode_rejects_non_message(self):
        with pytest.raises(TypeError):
            encode({"type": "ack"})


class TestDecodeErrors:

    def test_not_json(self):
        with pytest.raises(DecodeError, match="Malformed"):
            decode(b"\xff\x00", Ack)

    def test_not_an_object(self):
        with pytest.raises(DecodeError, match="not an object"):
            decode(b"[1, 2]", Ack)

    def test_wrong_type_tag(self):
        with pytest.raises(DecodeError, match="Expected 'start'"):
            decode(encode(Ack(ok=True)), Start)

    def test_missing_key(self):
        with pytest.raises(DecodeError, match="Missing key: ok"):
            decode(b'{"type": "ack", "end_state": null}', Ack)

    def test_bool_is_not_a_number(self):
        body = b'{"type": "start", "is_white": true, "name": null, "fen": null, "time": true, "inc": null}'
        with pytest.raises(DecodeError, match="time"):
            decode(body, Start)

    def test_bad_pair(self):
        body = b'{"type": "move", "from": [4], "to": [4, 3], "offer_draw": false, "promotion": null, "forfeit": false}'
        with pytest.raises(DecodeError, match="pair"):
            decode(body, Move)

    def test_unknown_promotion(self):
        body = b'{"type": "move", "from": [0, 6], "to": [0, 7], "offer_draw": false, "promotion": "k", "forfeit": false}'
        with pytest.raises(DecodeError, match="promotion"):
            decode(body, Move)

    def test_unknown_end_state(self):
        with pytest.raises(DecodeError, match="end state"):
            decode(b'{"type": "ack", "ok": true, "end_state": "resigned"}', Ack)

    def test_validate_reports_every_problem(self):
        errors = validate_message({"from": [0, 0], "offer_draw": 1}, MOVE_SCHEMA)
        assert "Missing key: to" in errors
        assert any("offer_draw" in e for e in errors)


class TestFrameBuffer:

    def test_frame_prefixes_length(self):
        assert frame(b"abc") == b"\x00\x00\x00\x03abc"

    def test_frame_rejects_oversize_body(self):
        with pytest.raises(ValueError):
            frame(b"x" * (MAX_FRAME_SIZE + 1))

    def test_single_byte_is_pending(self):
        buf = FrameBuffer()
        buf.feed(frame(b"hello")[:1])
        assert buf.pending
        assert buf.pop() is None

    def test_completes_across_feeds(self):
        data = frame(b"hello")
        buf = FrameBuffer()
        buf.feed(data[:HEADER_SIZE + 2])
        assert buf.pending
        buf.feed(data[HEADER_SIZE + 2:])
        assert not buf.pending
        assert buf.pop() == b"hello"
        assert buf.pop() is None
        assert not buf.pending

    def test_two_frames_in_one_read(self):
        buf = FrameBuffer()
        buf.feed(frame(b"one") + frame(b"two"))
        assert buf.pop() == b"one"
        assert buf.pop() == b"two"
        assert buf.pop() is None
        assert not buf.pending

    def test_empty_buffer_is_not_pending(self):
        assert not FrameBuffer().pending

    def test_oversize_header_is_rejected_once(self):
        buf = FrameBuffer()
        buf.feed((MAX_FRAME_SIZE + 1).to_bytes(4, "big"))
        with pytest.raises(DecodeError):
            buf.pop()
        assert not buf.pending
        assert buf.pop() is None

    def test_oversize_body_split_across_feeds_is_discarded(self):
        size = MAX_FRAME_SIZE + 1
        buf = FrameBuffer()
        buf.feed(size.to_bytes(4, "big") + b"x" * 100)
        with pytest.raises(DecodeError):
            buf.pop()
        buf.feed(b"x" * (size - 100))
        assert not buf.pending
        buf.feed(frame(b"next"))
        assert buf.pop() == b"next"

    def test_bytes_after_oversize_body_in_same_feed(self):
        size = MAX_FRAME_SIZE + 1
        buf = FrameBuffer()
        buf.feed(size.to_bytes(4, "big") + b"x" * size + frame(b"next"))
        with pytest.raises(DecodeError):
            buf.pop()
        assert buf.pop() == b"next"
