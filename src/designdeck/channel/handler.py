"""Host-side handler for requests arriving from the presentation process."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Coroutine, Mapping, Optional

from pydantic import BaseModel

from designdeck.catalog import CatalogBuilder, DesignRecord
from designdeck.metadata import DesignLifecycle, DesignStatus, MetadataStore
from designdeck.watch import ChangeEvent
from designdeck.workspace import PrimaryPointer, WorkspaceLayout

from .errors import ChannelError
from .messages import (
    ActionRequest,
    DesignAction,
    DesignsListNotification,
    ErrorNotification,
    PrimarySetNotification,
    ReadyRequest,
    Request,
    SetChatContextRequest,
    SetPrimaryRequest,
    StatusChangedNotification,
    parse_request,
)
from .services import HostServices
from .transport import ChannelEndpoint

LOGGER = logging.getLogger(__name__)

_ActionHandler = Callable[[str, str, Any], Awaitable[bool]]


class CanvasMessageHandler:
    """Apply presentation requests to the workspace and push catalog updates.

    The host is the single source of truth: every mutation that changes what
    the catalog shows is followed by a full ``designs:list`` push rather than
    an incremental patch, so the presentation side converges even when an
    individual notification is missed.
    """

    def __init__(
        self,
        layout: WorkspaceLayout,
        store: MetadataStore,
        lifecycle: DesignLifecycle,
        builder: CatalogBuilder,
        services: HostServices,
        endpoint: ChannelEndpoint[Request],
        *,
        primary_pointer: Optional[PrimaryPointer] = None,
        include_archived: bool = False,
    ) -> None:
        """Initialize the handler.

        Args:
            layout: Workspace layout.
            store: Metadata store shared with the watcher.
            lifecycle: File-moving lifecycle operations.
            builder: Catalog builder used for every push.
            services: User-facing host capabilities.
            endpoint: Host end of the message channel.
            primary_pointer: Persistence for the primary design id.
            include_archived: Whether pushes include archived documents.
        """
        self._layout = layout
        self._store = store
        self._lifecycle = lifecycle
        self._builder = builder
        self._services = services
        self._endpoint = endpoint
        self._pointer = primary_pointer
        self._include_archived = include_archived
        self._primary_id = primary_pointer.load() if primary_pointer is not None else None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._push_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()
        self._actions: dict[DesignAction, _ActionHandler] = {
            DesignAction.SET_STATUS: self._set_status,
            DesignAction.COPY_PROMPT: self._copy_prompt,
            DesignAction.COPY_PATH: self._copy_path,
            DesignAction.OPEN_EXTERNAL: self._open_external,
            DesignAction.ARCHIVE: self._archive,
            DesignAction.RESTORE: self._restore,
            DesignAction.ADD_TAG: self._add_tag,
            DesignAction.REMOVE_TAG: self._remove_tag,
            DesignAction.SET_NOTES: self._set_notes,
        }

    @property
    def primary_id(self) -> Optional[str]:
        return self._primary_id

    def bind(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Bind the loop that filesystem changes are scheduled onto."""
        self._loop = loop or asyncio.get_running_loop()

    # ------------------------------------------------------------------ #
    # Receive loop                                                       #
    # ------------------------------------------------------------------ #

    async def serve(self) -> None:
        """Process requests until the presentation side closes the channel."""
        self._loop = asyncio.get_running_loop()
        try:
            while True:
                try:
                    message = await self._endpoint.receive()
                except ChannelError as exc:
                    LOGGER.warning("Ignoring malformed request: %s", exc)
                    self._endpoint.post(ErrorNotification(error=str(exc)))
                    continue
                if message is None:
                    break
                await self.handle_message(message)
        finally:
            await self.drain()
            LOGGER.debug("Canvas message loop stopped")

    async def handle_message(self, message: Request | Mapping[str, Any] | str) -> None:
        """Dispatch one request.

        Args:
            message: A parsed request, or its raw dict or JSON form.
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if not isinstance(message, BaseModel):
            try:
                message = parse_request(message)
            except ChannelError as exc:
                LOGGER.warning("Ignoring malformed request: %s", exc)
                self._endpoint.post(ErrorNotification(error=str(exc)))
                return

        LOGGER.debug("Received message: %s", message.command)
        if isinstance(message, ReadyRequest):
            await self.send_designs_list()
        elif isinstance(message, SetPrimaryRequest):
            await self.set_primary(message.design_id)
        elif isinstance(message, ActionRequest):
            await self.handle_design_action(message.design_id, message.action, message.value)
        elif isinstance(message, SetChatContextRequest):
            await self.set_chat_context(message.file_uri)

    async def drain(self) -> None:
        """Wait for outstanding confirmation tasks to finish."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Catalog pushes                                                     #
    # ------------------------------------------------------------------ #

    async def send_designs_list(self) -> Optional[list[DesignRecord]]:
        """Build the catalog and push it as a ``designs:list`` notification.

        A primary pointer that no longer resolves to a catalog entry is
        cleared before the push.

        Returns:
            The pushed catalog, or ``None`` if it could not be built.
        """
        async with self._push_lock:
            try:
                designs = await asyncio.to_thread(
                    self._builder.build, self._primary_id, self._include_archived
                )
            except Exception as exc:
                LOGGER.error("Failed to build design catalog: %s", exc)
                self._endpoint.post(ErrorNotification(error="Failed to load designs"))
                return None

            if self._primary_id is not None and all(d.id != self._primary_id for d in designs):
                LOGGER.info("Primary design %s is gone; clearing pointer", self._primary_id)
                await self._store_primary(None)

            self._endpoint.post(
                DesignsListNotification(designs=designs, primary_design_id=self._primary_id)
            )
            LOGGER.debug("Pushed %d designs", len(designs))
            return designs

    def on_filesystem_change(self, events: list[ChangeEvent]) -> None:
        """Schedule a catalog push from a watcher thread.

        Safe to call from any thread once the handler has started serving.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            LOGGER.debug("Dropping %d change event(s); handler is not serving", len(events))
            return
        LOGGER.debug("Filesystem change: %s", ", ".join(event.name for event in events))
        asyncio.run_coroutine_threadsafe(self.send_designs_list(), loop)

    # ------------------------------------------------------------------ #
    # Requests                                                           #
    # ------------------------------------------------------------------ #

    async def set_primary(self, design_id: Optional[str]) -> None:
        """Set or clear the primary design and re-push the catalog."""
        if design_id is not None and self._builder.resolve(design_id) is None:
            LOGGER.warning("Cannot set unknown design %s as primary", design_id)
            self._endpoint.post(ErrorNotification(error=f"Design not found: {design_id}"))
            self._endpoint.post(PrimarySetNotification(design_id=self._primary_id))
            return
        await self._store_primary(design_id)
        LOGGER.info("Primary design set to %s", design_id)
        self._endpoint.post(PrimarySetNotification(design_id=design_id))
        await self.send_designs_list()

    async def set_chat_context(self, file_uri: str) -> None:
        await self._services.set_chat_context(file_uri)

    async def handle_design_action(
        self, design_id: str, action: DesignAction, value: Any = None
    ) -> None:
        """Run ``action`` against ``design_id``.

        Failures are reported to the user and as an ``error`` notification;
        the catalog is then re-pushed so the presentation side converges.
        """
        file_name = self._builder.resolve(design_id)
        if file_name is None:
            LOGGER.warning("Design %s not found for action %s", design_id, action.value)
            self._endpoint.post(ErrorNotification(error=f"Design not found: {design_id}"))
            await self.send_designs_list()
            return

        if action == DesignAction.DELETE:
            self._spawn(self._confirm_and_delete(design_id, file_name))
            return

        try:
            changed = await self._actions[action](design_id, file_name, value)
        except Exception as exc:
            await self._report_failure(action.value, file_name, exc)
            changed = True
        if changed:
            await self.send_designs_list()

    # ------------------------------------------------------------------ #
    # Actions                                                            #
    # ------------------------------------------------------------------ #

    async def _set_status(self, design_id: str, file_name: str, value: Any) -> bool:
        status = DesignStatus(value)
        record = await asyncio.to_thread(self._lifecycle.set_status, file_name, status)
        self._endpoint.post(StatusChangedNotification(design_id=design_id, status=record.status))
        return True

    async def _archive(self, design_id: str, file_name: str, value: Any) -> bool:
        record = await asyncio.to_thread(self._lifecycle.archive, file_name)
        self._endpoint.post(StatusChangedNotification(design_id=design_id, status=record.status))
        await self._services.notify("info", f"Archived {file_name}")
        return True

    async def _restore(self, design_id: str, file_name: str, value: Any) -> bool:
        record = await asyncio.to_thread(self._lifecycle.restore, file_name)
        self._endpoint.post(StatusChangedNotification(design_id=design_id, status=record.status))
        await self._services.notify("info", f"Restored {file_name}")
        return True

    async def _add_tag(self, design_id: str, file_name: str, value: Any) -> bool:
        if not isinstance(value, str):
            raise ValueError("Tag must be a string.")
        await asyncio.to_thread(self._store.add_tag, file_name, value)
        return True

    async def _remove_tag(self, design_id: str, file_name: str, value: Any) -> bool:
        if not isinstance(value, str):
            raise ValueError("Tag must be a string.")
        await asyncio.to_thread(self._store.remove_tag, file_name, value)
        return True

    async def _set_notes(self, design_id: str, file_name: str, value: Any) -> bool:
        notes = "" if value is None else str(value)
        await asyncio.to_thread(self._store.update_notes, file_name, notes)
        return True

    async def _copy_prompt(self, design_id: str, file_name: str, value: Any) -> bool:
        record = self._store.get(file_name)
        if record is None or not record.notes:
            await self._services.notify("warning", "No notes found for this design")
            return False
        await self._services.write_clipboard(record.notes)
        await self._services.notify("info", "Design notes copied to clipboard")
        return False

    async def _copy_path(self, design_id: str, file_name: str, value: Any) -> bool:
        path = self._current_path(file_name)
        await self._services.write_clipboard(str(path))
        await self._services.notify("info", f"Copied path: {path}")
        return False

    async def _open_external(self, design_id: str, file_name: str, value: Any) -> bool:
        await self._services.open_external(self._current_path(file_name).as_uri())
        return False

    async def _confirm_and_delete(self, design_id: str, file_name: str) -> None:
        try:
            confirmed = await self._services.confirm(
                f"Are you sure you want to delete {file_name}?", "Delete"
            )
        except Exception as exc:
            LOGGER.error("Delete confirmation failed for %s: %s", file_name, exc)
            confirmed = False
        if not confirmed:
            LOGGER.info("Deletion of %s cancelled", file_name)
            return

        try:
            location = await asyncio.to_thread(self._lifecycle.locate, file_name)
            await asyncio.to_thread(self._lifecycle.delete, file_name, location == "archive")
        except Exception as exc:
            await self._report_failure("delete", file_name, exc)
        else:
            await self._services.notify("info", f"Deleted {file_name}")
        await self.send_designs_list()

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _current_path(self, file_name: str) -> Path:
        if self._lifecycle.locate(file_name) == "archive":
            return self._layout.archive_path(file_name)
        return self._layout.design_path(file_name)

    async def _store_primary(self, design_id: Optional[str]) -> None:
        self._primary_id = design_id
        if self._pointer is None:
            return
        try:
            await asyncio.to_thread(self._pointer.save, design_id)
        except OSError as exc:
            LOGGER.warning("Failed to persist primary design: %s", exc)

    async def _report_failure(self, action: str, file_name: str, exc: Exception) -> None:
        LOGGER.error("Failed to %s %s: %s", action, file_name, exc)
        message = f"Failed to {action} {file_name}: {exc}"
        self._endpoint.post(ErrorNotification(error=message))
        try:
            await self._services.notify("error", message)
        except Exception as notify_exc:
            LOGGER.warning("Could not show error notification: %s", notify_exc)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


__all__ = ["CanvasMessageHandler"]
