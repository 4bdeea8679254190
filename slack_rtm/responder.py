"""Auto-responder that acknowledges channel messages."""

from __future__ import annotations

import logging

from .errors import RtmSendError
from .protocol import MESSAGE_TYPE, InboundEvent, OutboundMessage
from .session import RtmConnection

_LOGGER = logging.getLogger(__name__)

DEFAULT_REPLY = "\N{THUMBS UP SIGN}"


class AutoResponder:
    """Reply to every channel message with a fixed text.

    Replies reuse the connection's inbound frame count as message id.
    """

    def __init__(self, connection: RtmConnection, *, reply_text: str = DEFAULT_REPLY):
        self._connection = connection
        self.reply_text = reply_text

    def attach(self) -> AutoResponder:
        """Subscribe to the connection's inbound events."""
        self._connection.on_event(self.on_event)
        return self

    def on_event(self, event: InboundEvent) -> None:
        if event.type != MESSAGE_TYPE or event.channel is None:
            return

        message = OutboundMessage(
            id=self._connection.counter.current(),
            channel=event.channel,
            text=self.reply_text,
        )
        try:
            self._connection.send(message)
        except RtmSendError as err:
            _LOGGER.error("Failed to reply in channel %s: %s", event.channel, err)
            return
        _LOGGER.info("Replied to %s in channel %s", event.user, event.channel)
