"""In-process message transport between the host and the presentation side."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from .messages import Notification, Request, encode, parse_notification, parse_request

LOGGER = logging.getLogger(__name__)

IncomingT = TypeVar("IncomingT")


class ChannelEndpoint(Generic[IncomingT]):
    """One side of a :class:`MessageChannel`.

    Messages cross the boundary as JSON text; each side decodes what it
    receives into its own model instances.
    """

    def __init__(
        self,
        outbox: asyncio.Queue[Optional[str]],
        inbox: asyncio.Queue[Optional[str]],
        parser: Callable[[str], IncomingT],
    ) -> None:
        self._outbox = outbox
        self._inbox = inbox
        self._parser = parser
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, message: BaseModel) -> None:
        """Send ``message`` to the peer; dropped once the endpoint is closed."""
        self.post_raw(encode(message))

    def post_raw(self, payload: str) -> None:
        if self._closed:
            LOGGER.debug("Dropping message on closed endpoint")
            return
        self._outbox.put_nowait(payload)

    async def receive(self) -> Optional[IncomingT]:
        """Wait for the next message from the peer.

        Returns:
            The decoded message, or ``None`` once the peer has closed.

        Raises:
            ChannelError: If the payload cannot be decoded. The message is
                consumed, so the caller may keep receiving.
        """
        payload = await self._inbox.get()
        if payload is None:
            return None
        return self._parser(payload)

    def pending(self) -> int:
        """Return the number of messages waiting to be received."""
        return self._inbox.qsize()

    def close(self) -> None:
        """Signal end-of-stream to the peer."""
        if self._closed:
            return
        self._closed = True
        self._outbox.put_nowait(None)


class MessageChannel:
    """An ordered, bidirectional pair of queues."""

    def __init__(self) -> None:
        to_host: asyncio.Queue[Optional[str]] = asyncio.Queue()
        to_presentation: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self.host: ChannelEndpoint[Request] = ChannelEndpoint(
            to_presentation, to_host, parse_request
        )
        self.presentation: ChannelEndpoint[Notification] = ChannelEndpoint(
            to_host, to_presentation, parse_notification
        )

    def close(self) -> None:
        self.host.close()
        self.presentation.close()


__all__ = ["ChannelEndpoint", "MessageChannel"]
