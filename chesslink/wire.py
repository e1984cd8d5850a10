"""Wire codec for chesslink messages.

Every message is a UTF-8 JSON object tagged with a "type" field:

    {"type": "start", "is_white": true, "name": "...", "fen": null, "time": null, "inc": null}
    {"type": "move", "from": [4, 1], "to": [4, 3], "offer_draw": false,
     "promotion": null, "forfeit": false}
    {"type": "ack", "ok": true, "end_state": null}

On the stream each body is preceded by a 4-byte big-endian length, so a
reader can tell a partial delivery from a complete one.
"""

from __future__ import annotations

import json
import struct
from dataclasses import asdict

from chesslink.errors import DecodeError
from chesslink.models import Ack, Message, Move, PieceKind, Start, Status

_HEADER = struct.Struct(">I")
HEADER_SIZE = _HEADER.size
MAX_FRAME_SIZE = 64 * 1024

_NoneType = type(None)
_NUMBER = (int, float, _NoneType)

# ---------------------------------------------------------------------------
# Message schemas: key -> expected JSON type(s)
# ---------------------------------------------------------------------------

START_SCHEMA = {
    "is_white": bool,
    "name": (str, _NoneType),
    "fen": (str, _NoneType),
    "time": _NUMBER,
    "inc": _NUMBER,
}

MOVE_SCHEMA = {
    "from": list,
    "to": list,
    "offer_draw": bool,
    "promotion": (str, _NoneType),
    "forfeit": bool,
}

ACK_SCHEMA = {
    "ok": bool,
    "end_state": (str, _NoneType),
}

_TYPE_TAGS: dict[type, str] = {Start: "start", Move: "move", Ack: "ack"}
_SCHEMAS: dict[str, dict] = {"start": START_SCHEMA, "move": MOVE_SCHEMA, "ack": ACK_SCHEMA}


def validate_message(payload: dict, schema: dict) -> list[str]:
    """Check a decoded payload against a schema.

    Args:
        payload: Decoded JSON object.
        schema: Dict mapping key names to expected types (or tuple of types).

    Returns:
        List of validation error strings (empty = valid).
    """
    errors = []
    for key, expected_types in schema.items():
        if key not in payload:
            errors.append(f"Missing key: {key}")
            continue
        value = payload[key]
        # bool is an int subclass; numbers must not accept it
        if isinstance(value, bool) and expected_types is not bool:
            errors.append(f"Key '{key}': unexpected bool")
            continue
        if not isinstance(value, expected_types):
            errors.append(f"Key '{key}': got {type(value).__name__}")
    return errors


def _to_payload(message: Message) -> dict:
    tag = _TYPE_TAGS.get(type(message))
    if tag is None:
        raise TypeError(f"Not a chesslink message: {type(message).__name__}")

    payload: dict = {"type": tag}
    if isinstance(message, Move):
        payload.update({
            "from": list(message.from_),
            "to": list(message.to),
            "offer_draw": message.offer_draw,
            "promotion": message.promotion.value if message.promotion else None,
            "forfeit": message.forfeit,
        })
    elif isinstance(message, Ack):
        payload.update({
            "ok": message.ok,
            "end_state": message.end_state.value if message.end_state else None,
        })
    else:
        payload.update(asdict(message))
    return payload


def _pair(value: list, key: str) -> tuple[int, int]:
    if (
        len(value) != 2
        or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        raise DecodeError(f"Key '{key}': expected a pair of integers")
    return (value[0], value[1])


def _from_payload(payload: dict, expected: type) -> Message:
    if expected is Start:
        return Start(
            is_white=payload["is_white"],
            name=payload["name"],
            fen=payload["fen"],
            time=payload["time"],
            inc=payload["inc"],
        )
    if expected is Move:
        try:
            promotion = PieceKind(payload["promotion"]) if payload["promotion"] else None
        except ValueError:
            raise DecodeError(f"Unknown promotion piece: {payload['promotion']!r}") from None
        return Move(
            from_=_pair(payload["from"], "from"),
            to=_pair(payload["to"], "to"),
            offer_draw=payload["offer_draw"],
            promotion=promotion,
            forfeit=payload["forfeit"],
        )
    try:
        end_state = Status(payload["end_state"]) if payload["end_state"] else None
    except ValueError:
        raise DecodeError(f"Unknown end state: {payload['end_state']!r}") from None
    return Ack(ok=payload["ok"], end_state=end_state)


def encode(message: Message) -> bytes:
    """Serialize a message body (without the length prefix)."""
    return json.dumps(_to_payload(message), separators=(",", ":")).encode("utf-8")


def decode(data: bytes, expected: type) -> Message:
    """Parse a message body, requiring it to be of the expected type.

    Raises:
        DecodeError: On invalid JSON, a wrong type tag or bad fields.
    """
    tag = _TYPE_TAGS.get(expected)
    if tag is None:
        raise TypeError(f"Not a chesslink message type: {expected!r}")
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Malformed message body: {e}") from e

    if not isinstance(payload, dict):
        raise DecodeError(f"Message is not an object: {type(payload).__name__}")
    if payload.get("type") != tag:
        raise DecodeError(f"Expected {tag!r} message, got {payload.get('type')!r}")

    errors = validate_message(payload, _SCHEMAS[tag])
    if errors:
        raise DecodeError("; ".join(errors))
    return _from_payload(payload, expected)


def frame(body: bytes) -> bytes:
    """Prefix a body with its length."""
    if len(body) > MAX_FRAME_SIZE:
        raise ValueError(f"Message too large: {len(body)} bytes")
    return _HEADER.pack(len(body)) + body


class FrameBuffer:
    """Accumulates stream reads and splits them into frame bodies.

    An oversized frame is reported once and its declared body is then
    discarded as it arrives, so the stream stays aligned on the next header.
    """

    def __init__(self) -> None:
        self._buf = bytearray()
        self._skip = 0

    def feed(self, data: bytes) -> None:
        self._buf.extend(data)
        self._discard()

    def _discard(self) -> None:
        if self._skip:
            dropped = min(self._skip, len(self._buf))
            del self._buf[:dropped]
            self._skip -= dropped

    def _body_size(self) -> int | None:
        if len(self._buf) < HEADER_SIZE:
            return None
        (size,) = _HEADER.unpack_from(self._buf)
        if size > MAX_FRAME_SIZE:
            del self._buf[:HEADER_SIZE]
            self._skip = size
            self._discard()
            raise DecodeError(f"Frame length {size} exceeds {MAX_FRAME_SIZE}")
        return size

    @property
    def pending(self) -> bool:
        """True while a frame has started arriving but is not complete."""
        if not self._buf:
            return False
        size = self._body_size()
        return size is None or len(self._buf) < HEADER_SIZE + size

    def pop(self) -> bytes | None:
        """Remove and return the next complete body, or None."""
        size = self._body_size()
        if size is None or len(self._buf) < HEADER_SIZE + size:
            return None
        body = bytes(self._buf[HEADER_SIZE:HEADER_SIZE + size])
        del self._buf[:HEADER_SIZE + size]
        return body
