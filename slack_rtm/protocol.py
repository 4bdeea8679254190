"""Frame codec for Slack RTM messages.

Inbound frames are JSON objects whose interesting keys are ``type``, ``ts``,
``user``, ``text`` and ``channel``. Every other key is ignored, and a key
that is missing decodes to ``None`` so callers can tell "absent" apart from
"empty string".

Outbound frames are always chat messages::

    {"id": 3, "type": "message", "channel": "C024BE91L", "text": "hello"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any

from .errors import RtmDecodingError, RtmEncodingError, RtmResolutionError

MESSAGE_TYPE = "message"


@dataclass(frozen=True)
class HandshakeResult:
    """Parsed body of an rtm.connect response."""

    ok: bool
    error: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class InboundEvent:
    """Loosely structured event received over the socket."""

    type: str | None = None
    ts: str | None = None
    user: str | None = None
    text: str | None = None
    channel: str | None = None


@dataclass(frozen=True)
class OutboundMessage:
    """Chat message sent over the socket."""

    id: int
    channel: str
    text: str
    type: str = MESSAGE_TYPE


_EVENT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(InboundEvent))


def encode_message(message: OutboundMessage) -> bytes:
    """Serialize an outbound message to its UTF-8 JSON wire form.

    Raises:
        RtmEncodingError: If a field cannot be represented on the wire.
    """
    # bool is an int subclass but never a valid identifier
    if isinstance(message.id, bool) or not isinstance(message.id, int):
        raise RtmEncodingError(
            f"Message id must be an integer, got {type(message.id).__name__}"
        )
    if message.id < 0:
        raise RtmEncodingError(f"Message id must be unsigned, got {message.id}")
    if not isinstance(message.channel, str):
        raise RtmEncodingError("Message channel must be a string")
    if not isinstance(message.text, str):
        raise RtmEncodingError("Message text must be a string")

    payload = {
        "id": message.id,
        "type": MESSAGE_TYPE,
        "channel": message.channel,
        "text": message.text,
    }
    try:
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as err:
        raise RtmEncodingError(f"Message is not valid UTF-8: {err}") from err


def decode_event(frame: str | bytes) -> InboundEvent:
    """Parse a raw text frame into an InboundEvent.

    Raises:
        RtmDecodingError: If the frame is not a JSON object, or a known field
            carries a non-string value.
    """
    try:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")
        data = json.loads(frame)
    except (UnicodeDecodeError, ValueError) as err:
        raise RtmDecodingError(f"Frame is not valid JSON: {err}") from err

    if not isinstance(data, dict):
        raise RtmDecodingError(
            f"Frame must be a JSON object, got {type(data).__name__}"
        )

    values: dict[str, str | None] = {}
    for name in _EVENT_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise RtmDecodingError(
                f"Field '{name}' must be a string, got {type(value).__name__}"
            )
        values[name] = value
    return InboundEvent(**values)


def parse_connect_response(data: Any) -> HandshakeResult:
    """Validate an rtm.connect body and build a HandshakeResult.

    Only the shape is checked here; whether the result is usable is up to
    the caller.

    Raises:
        RtmResolutionError: If the body is not a handshake object.
    """
    if not isinstance(data, dict):
        raise RtmResolutionError("Connect response must be a JSON object")

    ok = data.get("ok")
    if not isinstance(ok, bool):
        raise RtmResolutionError("Connect response field 'ok' must be a boolean")

    error = data.get("error")
    url = data.get("url")
    if error is not None and not isinstance(error, str):
        raise RtmResolutionError("Connect response field 'error' must be a string")
    if url is not None and not isinstance(url, str):
        raise RtmResolutionError("Connect response field 'url' must be a string")

    return HandshakeResult(ok=ok, error=error, url=url)
