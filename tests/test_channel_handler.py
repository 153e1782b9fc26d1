"""Host message handler tests."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import pytest

from designdeck.catalog import CatalogBuilder
from designdeck.channel import (
    CanvasMessageHandler,
    ChannelEndpoint,
    DesignAction,
    DesignsListNotification,
    ErrorNotification,
    MessageChannel,
    Notification,
    PrimarySetNotification,
    StatusChangedNotification,
)
from designdeck.metadata import DesignLifecycle, DesignStatus, MetadataStore
from designdeck.view import CanvasClient, ViewMode, ViewStateMachine
from designdeck.watch import ChangeEvent, ChangeKind
from designdeck.workspace import PrimaryPointer, WorkspaceLayout


class FakeServices:
    def __init__(self, *, confirm: bool = True) -> None:
        self.confirm_answer = confirm
        self.confirmations: list[str] = []
        self.clipboard: list[str] = []
        self.opened: list[str] = []
        self.notices: list[tuple[str, str]] = []
        self.chat_context: str | None = None

    async def confirm(self, message: str, action_label: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_answer

    async def write_clipboard(self, text: str) -> None:
        self.clipboard.append(text)

    async def open_external(self, uri: str) -> None:
        self.opened.append(uri)

    async def notify(self, level: str, message: str) -> None:
        self.notices.append((level, message))

    async def set_chat_context(self, uri: str) -> None:
        self.chat_context = uri


class Harness:
    def __init__(self, root: Path, *, confirm: bool = True) -> None:
        self.layout = WorkspaceLayout(root)
        self.layout.initialize()
        self.store = MetadataStore(self.layout.metadata_path)
        self.lifecycle = DesignLifecycle(self.layout, self.store)
        self.builder = CatalogBuilder(self.layout, self.store)
        self.pointer = PrimaryPointer(self.layout.canvas_state_path)
        self.services = FakeServices(confirm=confirm)
        self.channel = MessageChannel()
        self.handler = CanvasMessageHandler(
            self.layout,
            self.store,
            self.lifecycle,
            self.builder,
            self.services,
            self.channel.host,
            primary_pointer=self.pointer,
        )

    def write(self, name: str, body: str = "<p/>") -> Path:
        path = self.layout.design_path(name)
        path.write_text(body, encoding="utf-8")
        return path

    @property
    def presentation(self) -> ChannelEndpoint[Notification]:
        return self.channel.presentation

    async def received(self) -> list[Notification]:
        messages: list[Notification] = []
        while self.presentation.pending():
            message = await self.presentation.receive()
            if message is None:
                break
            messages.append(message)
        return messages


def _commands(messages: list[Notification]) -> list[str]:
    return [message.command for message in messages]


@pytest.mark.asyncio
async def test_ready_pushes_catalog(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")
    harness.write("home.html")

    await harness.handler.handle_message('{"command": "canvas:ready"}')

    (message,) = await harness.received()
    assert isinstance(message, DesignsListNotification)
    assert sorted(d.id for d in message.designs) == ["home", "login"]
    assert message.primary_design_id is None


@pytest.mark.asyncio
async def test_set_status_updates_metadata_and_pushes(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")

    await harness.handler.handle_design_action("login", DesignAction.SET_STATUS, "review")

    messages = await harness.received()
    assert _commands(messages) == ["design:statusChanged", "designs:list"]
    assert isinstance(messages[0], StatusChangedNotification)
    assert messages[0].status == DesignStatus.REVIEW
    record = harness.store.get("login.html")
    assert record is not None and record.status == DesignStatus.REVIEW
    assert messages[1].designs[0].status == DesignStatus.REVIEW  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_set_status_archived_moves_file(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")

    await harness.handler.handle_design_action("login", DesignAction.SET_STATUS, "archived")

    assert harness.lifecycle.locate("login.html") == "archive"
    messages = await harness.received()
    assert isinstance(messages[-1], DesignsListNotification)
    assert messages[-1].designs == []


@pytest.mark.asyncio
async def test_invalid_status_is_reported(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")

    await harness.handler.handle_design_action("login", DesignAction.SET_STATUS, "shipped")

    messages = await harness.received()
    assert _commands(messages) == ["error", "designs:list"]
    assert harness.services.notices[0][0] == "error"


@pytest.mark.asyncio
async def test_archive_and_restore_actions(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.ARCHIVE)
    assert harness.lifecycle.locate("card.html") == "archive"

    await harness.handler.handle_design_action("card", DesignAction.RESTORE)
    assert harness.lifecycle.locate("card.html") == "designs"

    record = harness.store.get("card.html")
    assert record is not None and record.status == DesignStatus.DRAFT
    assert harness.services.notices == [
        ("info", "Archived card.html"),
        ("info", "Restored card.html"),
    ]
    messages = await harness.received()
    assert _commands(messages) == [
        "design:statusChanged",
        "designs:list",
        "design:statusChanged",
        "designs:list",
    ]


@pytest.mark.asyncio
async def test_declined_delete_changes_nothing(tmp_path: Path) -> None:
    harness = Harness(tmp_path, confirm=False)
    harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.DELETE)
    await harness.handler.drain()

    assert harness.services.confirmations == ["Are you sure you want to delete card.html?"]
    assert harness.layout.design_path("card.html").exists()
    assert await harness.received() == []


@pytest.mark.asyncio
async def test_confirmed_delete_removes_file_and_pushes(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")
    harness.store.apply_default("card.html")

    await harness.handler.handle_design_action("card", DesignAction.DELETE)
    await harness.handler.drain()

    assert not harness.layout.design_path("card.html").exists()
    assert harness.store.get("card.html") is None
    assert ("info", "Deleted card.html") in harness.services.notices
    messages = await harness.received()
    assert _commands(messages) == ["designs:list"]


@pytest.mark.asyncio
async def test_confirmation_does_not_block_other_requests(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")
    harness.write("other.html")
    gate = asyncio.Event()

    async def slow_confirm(message: str, action_label: str) -> bool:
        await gate.wait()
        return True

    harness.services.confirm = slow_confirm  # type: ignore[method-assign]

    await harness.handler.handle_design_action("card", DesignAction.DELETE)
    await harness.handler.handle_design_action("other", DesignAction.SET_STATUS, "review")
    assert harness.layout.design_path("card.html").exists()

    gate.set()
    await harness.handler.drain()

    assert not harness.layout.design_path("card.html").exists()
    record = harness.store.get("other.html")
    assert record is not None and record.status == DesignStatus.REVIEW


@pytest.mark.asyncio
async def test_primary_is_persisted_and_cleared_when_deleted(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")

    await harness.handler.set_primary("login")

    messages = await harness.received()
    assert _commands(messages) == ["design:primarySet", "designs:list"]
    assert messages[1].primary_design_id == "login"  # type: ignore[union-attr]
    assert messages[1].designs[0].is_primary is True  # type: ignore[union-attr]
    assert harness.pointer.load() == "login"

    harness.layout.design_path("login.html").unlink()
    await harness.handler.send_designs_list()

    (push,) = await harness.received()
    assert isinstance(push, DesignsListNotification)
    assert push.primary_design_id is None
    assert harness.handler.primary_id is None
    assert harness.pointer.load() is None


@pytest.mark.asyncio
async def test_unknown_primary_is_rejected(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("login.html")
    await harness.handler.set_primary("login")
    await harness.received()

    await harness.handler.set_primary("ghost")

    messages = await harness.received()
    assert _commands(messages) == ["error", "design:primarySet"]
    assert isinstance(messages[1], PrimarySetNotification)
    assert messages[1].design_id == "login"


@pytest.mark.asyncio
async def test_action_on_unknown_design_reports_and_repushes(tmp_path: Path) -> None:
    harness = Harness(tmp_path)

    await harness.handler.handle_design_action("ghost", DesignAction.ARCHIVE)

    messages = await harness.received()
    assert _commands(messages) == ["error", "designs:list"]
    assert isinstance(messages[0], ErrorNotification)
    assert messages[0].error == "Design not found: ghost"


@pytest.mark.asyncio
async def test_malformed_message_is_reported(tmp_path: Path) -> None:
    harness = Harness(tmp_path)

    await harness.handler.handle_message("{oops")
    await harness.handler.handle_message({"command": "design:unknown"})

    messages = await harness.received()
    assert _commands(messages) == ["error", "error"]


@pytest.mark.asyncio
async def test_copy_prompt_uses_notes(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.COPY_PROMPT)
    assert harness.services.notices[-1] == ("warning", "No notes found for this design")
    assert harness.services.clipboard == []

    harness.store.update_notes("card.html", "Make it pop")
    await harness.handler.handle_design_action("card", DesignAction.COPY_PROMPT)

    assert harness.services.clipboard == ["Make it pop"]
    assert harness.services.notices[-1] == ("info", "Design notes copied to clipboard")
    assert await harness.received() == []


@pytest.mark.asyncio
async def test_copy_path_and_open_external(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    path = harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.COPY_PATH)
    await harness.handler.handle_design_action("card", DesignAction.OPEN_EXTERNAL)

    assert harness.services.clipboard == [str(path)]
    assert harness.services.opened == [path.as_uri()]


@pytest.mark.asyncio
async def test_tags_and_notes_actions(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.ADD_TAG, "dark")
    await harness.handler.handle_design_action("card", DesignAction.ADD_TAG, "compact")
    await harness.handler.handle_design_action("card", DesignAction.REMOVE_TAG, "dark")
    await harness.handler.handle_design_action("card", DesignAction.SET_NOTES, "Hero card")

    record = harness.store.get("card.html")
    assert record is not None
    assert record.tags == ["compact"]
    assert record.notes == "Hero card"
    messages = await harness.received()
    assert _commands(messages) == ["designs:list"] * 4
    assert messages[-1].designs[0].tags == ["compact"]  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_non_string_tag_is_rejected(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")

    await harness.handler.handle_design_action("card", DesignAction.ADD_TAG, 42)

    messages = await harness.received()
    assert _commands(messages) == ["error", "designs:list"]


@pytest.mark.asyncio
async def test_chat_context_is_forwarded(tmp_path: Path) -> None:
    harness = Harness(tmp_path)

    await harness.handler.handle_message(
        {"command": "chat:setContext", "fileUri": "file:///tmp/card.html"}
    )

    assert harness.services.chat_context == "file:///tmp/card.html"


@pytest.mark.asyncio
async def test_serve_processes_until_closed(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")
    harness.presentation.post_raw("{broken")
    harness.presentation.post_raw('{"command": "canvas:ready"}')
    harness.presentation.close()

    await asyncio.wait_for(harness.handler.serve(), timeout=5)

    messages = await harness.received()
    assert _commands(messages) == ["error", "designs:list"]


@pytest.mark.asyncio
async def test_filesystem_change_from_watcher_thread(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.handler.bind()
    path = harness.write("fresh.html")
    events = [ChangeEvent(ChangeKind.CREATED, path)]

    thread = threading.Thread(target=harness.handler.on_filesystem_change, args=(events,))
    thread.start()
    thread.join()

    message = await asyncio.wait_for(harness.presentation.receive(), timeout=5)
    assert isinstance(message, DesignsListNotification)
    assert [d.id for d in message.designs] == ["fresh"]


def test_filesystem_change_before_bind_is_dropped(tmp_path: Path) -> None:
    harness = Harness(tmp_path)

    harness.handler.on_filesystem_change([ChangeEvent(ChangeKind.CREATED, tmp_path / "x.html")])

    assert harness.presentation.pending() == 0


@pytest.mark.asyncio
async def test_client_falls_back_to_gallery_when_focus_is_deleted(tmp_path: Path) -> None:
    harness = Harness(tmp_path)
    harness.write("card.html")
    harness.write("other.html")
    machine = ViewStateMachine()
    updates: list[Any] = []
    client = CanvasClient(
        harness.presentation, machine, on_update=lambda m, message: updates.append(message.command)
    )

    await harness.handler.send_designs_list()
    await client.pump()
    machine.open_in_studio("card")
    assert machine.mode == ViewMode.STUDIO

    await harness.handler.handle_design_action("card", DesignAction.DELETE)
    await harness.handler.drain()
    await client.pump()

    assert machine.mode == ViewMode.GALLERY
    assert machine.studio_id is None
    assert [d.id for d in machine.designs] == ["other"]
    assert updates == ["designs:list", "designs:list"]
