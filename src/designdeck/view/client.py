"""Presentation-side glue between the channel and the view-state machine."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from designdeck.channel import (
    ActionRequest,
    ChannelEndpoint,
    ChannelError,
    DesignAction,
    DesignsListNotification,
    ErrorNotification,
    Notification,
    PrimarySetNotification,
    ReadyRequest,
    SetChatContextRequest,
    SetPrimaryRequest,
    StatusChangedNotification,
)
from designdeck.metadata import DesignStatus

from .state import ViewStateMachine

LOGGER = logging.getLogger(__name__)

UpdateCallback = Callable[[ViewStateMachine, Notification], None]


class CanvasClient:
    """Send presentation requests and apply host notifications."""

    def __init__(
        self,
        endpoint: ChannelEndpoint[Notification],
        machine: ViewStateMachine,
        *,
        on_update: Optional[UpdateCallback] = None,
    ) -> None:
        self._endpoint = endpoint
        self._machine = machine
        self._on_update = on_update
        self.last_error: Optional[str] = None

    @property
    def machine(self) -> ViewStateMachine:
        return self._machine

    def ready(self) -> None:
        """Announce that the presentation side can receive the catalog."""
        self._endpoint.post(ReadyRequest())

    def set_primary(self, design_id: Optional[str]) -> None:
        self._machine.set_primary(design_id)
        self._endpoint.post(SetPrimaryRequest(design_id=design_id))

    def action(self, design_id: str, action: DesignAction | str, value: Any = None) -> None:
        self._endpoint.post(
            ActionRequest(design_id=design_id, action=DesignAction(action), value=value)
        )

    def set_status(self, design_id: str, status: DesignStatus | str) -> None:
        self.action(design_id, DesignAction.SET_STATUS, DesignStatus(status).value)

    def set_chat_context(self, file_uri: str) -> None:
        self._endpoint.post(SetChatContextRequest(file_uri=file_uri))

    def close(self) -> None:
        self._endpoint.close()

    async def pump(self) -> Optional[Notification]:
        """Receive and apply one notification.

        Returns:
            The applied notification, or ``None`` once the host has closed.
        """
        while True:
            try:
                message = await self._endpoint.receive()
            except ChannelError as exc:
                LOGGER.warning("Ignoring malformed notification: %s", exc)
                continue
            if message is None:
                return None
            self.apply(message)
            return message

    async def run(self) -> None:
        """Apply notifications until the host closes the channel."""
        while await self.pump() is not None:
            pass

    def apply(self, message: Notification) -> None:
        if isinstance(message, DesignsListNotification):
            self._machine.apply_catalog(message.designs, message.primary_design_id)
        elif isinstance(message, PrimarySetNotification):
            self._machine.set_primary(message.design_id, strict=False)
        elif isinstance(message, StatusChangedNotification):
            LOGGER.debug("Design %s is now %s", message.design_id, message.status.value)
        elif isinstance(message, ErrorNotification):
            self.last_error = message.error
            LOGGER.warning("Host reported an error: %s", message.error)
        if self._on_update is not None:
            self._on_update(self._machine, message)


__all__ = ["CanvasClient", "UpdateCallback"]
