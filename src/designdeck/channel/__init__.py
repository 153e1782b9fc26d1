"""Typed message channel between the host and the presentation process."""

from .errors import ChannelError
from .handler import CanvasMessageHandler
from .messages import (
    ActionRequest,
    DesignAction,
    DesignsListNotification,
    ErrorNotification,
    Notification,
    PrimarySetNotification,
    ReadyRequest,
    Request,
    SetChatContextRequest,
    SetPrimaryRequest,
    StatusChangedNotification,
    encode,
    parse_notification,
    parse_request,
)
from .services import ConsoleHostServices, HostServices
from .transport import ChannelEndpoint, MessageChannel

__all__ = [
    "ActionRequest",
    "CanvasMessageHandler",
    "ChannelEndpoint",
    "ChannelError",
    "ConsoleHostServices",
    "DesignAction",
    "DesignsListNotification",
    "ErrorNotification",
    "HostServices",
    "MessageChannel",
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
