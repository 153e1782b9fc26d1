"""Typed messages exchanged between the host and the presentation process."""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from designdeck.catalog import DesignRecord
from designdeck.metadata import DesignStatus

from .errors import ChannelError


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DesignAction(str, Enum):
    """Actions the presentation process may request on a design."""

    SET_STATUS = "setStatus"
    COPY_PROMPT = "copyPrompt"
    COPY_PATH = "copyPath"
    OPEN_EXTERNAL = "openExternal"
    ARCHIVE = "archive"
    DELETE = "delete"
    RESTORE = "restore"
    ADD_TAG = "addTag"
    REMOVE_TAG = "removeTag"
    SET_NOTES = "setNotes"


# Requests (presentation -> host) ------------------------------------------


class ReadyRequest(_Message):
    command: Literal["canvas:ready"] = "canvas:ready"


class SetPrimaryRequest(_Message):
    command: Literal["design:setPrimary"] = "design:setPrimary"
    design_id: Optional[str] = Field(default=None, alias="designId")


class ActionRequest(_Message):
    command: Literal["design:action"] = "design:action"
    design_id: str = Field(alias="designId")
    action: DesignAction
    value: Any = None


class SetChatContextRequest(_Message):
    command: Literal["chat:setContext"] = "chat:setContext"
    file_uri: str = Field(alias="fileUri")


Request = Annotated[
    Union[ReadyRequest, SetPrimaryRequest, ActionRequest, SetChatContextRequest],
    Field(discriminator="command"),
]


# Notifications (host -> presentation) -------------------------------------


class DesignsListNotification(_Message):
    command: Literal["designs:list"] = "designs:list"
    designs: List[DesignRecord] = Field(default_factory=list)
    primary_design_id: Optional[str] = Field(default=None, alias="primaryDesignId")


class PrimarySetNotification(_Message):
    command: Literal["design:primarySet"] = "design:primarySet"
    design_id: Optional[str] = Field(default=None, alias="designId")


class StatusChangedNotification(_Message):
    command: Literal["design:statusChanged"] = "design:statusChanged"
    design_id: str = Field(alias="designId")
    status: DesignStatus


class ErrorNotification(_Message):
    command: Literal["error"] = "error"
    error: str


Notification = Annotated[
    Union[
        DesignsListNotification,
        PrimarySetNotification,
        StatusChangedNotification,
        ErrorNotification,
    ],
    Field(discriminator="command"),
]

_REQUEST_ADAPTER: TypeAdapter[Request] = TypeAdapter(Request)
_NOTIFICATION_ADAPTER: TypeAdapter[Notification] = TypeAdapter(Notification)


def encode(message: BaseModel) -> str:
    """Serialize a message to the JSON text sent across the boundary."""
    return message.model_dump_json(by_alias=True)


def _decode(payload: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        return payload
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise ChannelError(f"Message is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ChannelError("Message must be a JSON object.")
    return data


def parse_request(payload: str | bytes | Mapping[str, Any]) -> Request:
    """Decode and validate a request sent by the presentation process.

    Raises:
        ChannelError: If the payload is malformed or names an unknown command.
    """
    data = _decode(payload)
    try:
        return _REQUEST_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise ChannelError(f"Invalid request {data.get('command')!r}: {exc}") from exc


def parse_notification(payload: str | bytes | Mapping[str, Any]) -> Notification:
    """Decode and validate a notification sent by the host.

    Raises:
        ChannelError: If the payload is malformed or names an unknown command.
    """
    data = _decode(payload)
    try:
        return _NOTIFICATION_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise ChannelError(f"Invalid notification {data.get('command')!r}: {exc}") from exc


__all__ = [
    "ActionRequest",
    "DesignAction",
    "DesignsListNotification",
    "ErrorNotification",
    "Notification",
    "PrimarySetNotification",
    "ReadyRequest",
    "Request",
    "SetChatContextRequest",
    "SetPrimaryRequest",
    "StatusChangedNotification",
    "encode",
    "parse_notification",
    "parse_request",
]
