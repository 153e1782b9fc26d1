"""Host capabilities the message handler delegates to."""

from __future__ import annotations

import asyncio
import logging
from typing import Literal, Optional, Protocol

import click
from rich.console import Console

LOGGER = logging.getLogger(__name__)

NotifyLevel = Literal["info", "warning", "error"]


class HostServices(Protocol):
    """User-facing side effects available to the host."""

    async def confirm(self, message: str, action_label: str) -> bool: ...

    async def write_clipboard(self, text: str) -> None: ...

    async def open_external(self, uri: str) -> None: ...

    async def notify(self, level: NotifyLevel, message: str) -> None: ...

    async def set_chat_context(self, uri: str) -> None: ...


_LEVEL_STYLES = {"info": "green", "warning": "yellow", "error": "red"}


class ConsoleHostServices:
    """Terminal-backed host services used by the command line interface."""

    def __init__(self, console: Optional[Console] = None, *, assume_yes: bool = False) -> None:
        self._console = console or Console()
        self._assume_yes = assume_yes
        self.clipboard: Optional[str] = None
        self.chat_context: Optional[str] = None

    async def confirm(self, message: str, action_label: str) -> bool:
        if self._assume_yes:
            return True
        return await asyncio.to_thread(
            click.confirm, f"{message} [{action_label}]", default=False
        )

    async def write_clipboard(self, text: str) -> None:
        self.clipboard = text
        self._console.print(text, markup=False)

    async def open_external(self, uri: str) -> None:
        LOGGER.info("Opening %s", uri)
        await asyncio.to_thread(click.launch, uri)

    async def notify(self, level: NotifyLevel, message: str) -> None:
        style = _LEVEL_STYLES.get(level, "white")
        self._console.print(f"[{style}]{message}[/{style}]")

    async def set_chat_context(self, uri: str) -> None:
        self.chat_context = uri
        self._console.print(f"[cyan]Chat context set to {uri}[/cyan]")


__all__ = ["ConsoleHostServices", "HostServices", "NotifyLevel"]
