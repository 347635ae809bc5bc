"""Shared data types for Welcomer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    import discord


@dataclass(frozen=True)
class TextMessage:
    """A block of Markdown sent as one or more plain messages."""

    content: str


@dataclass(frozen=True)
class ImageMessage:
    """An image sent as a file attachment."""

    caption: str
    url: str  # http(s) URL, or a path joined against the template's directory


@dataclass(frozen=True)
class BreakMessage:
    """A visual divider between messages."""


Message = Union[TextMessage, ImageMessage, BreakMessage]


@dataclass(frozen=True)
class ParseResult:
    """A parsed template file."""

    source_path: str
    file_name: str
    metadata: Mapping[str, Any]
    messages: tuple[Message, ...]


@dataclass(frozen=True)
class ChannelData:
    """Messages destined for a single channel, built from one template."""

    source_path: str
    file_name: str
    channel_id: str
    messages: tuple[Message, ...]
    sender_name: str | None = None
    sender_image: str | None = None


class Visibility(str, Enum):
    """State of the @everyone "view channel" overwrite."""

    ALLOWED = "allowed"
    DENIED = "denied"
    INHERITED = "inherited"  # No explicit overwrite

    @classmethod
    def from_overwrite(cls, value: bool | None) -> Visibility:
        if value is None:
            return cls.INHERITED
        return cls.ALLOWED if value else cls.DENIED

    def to_overwrite(self) -> bool | None:
        if self is Visibility.INHERITED:
            return None
        return self is Visibility.ALLOWED


@dataclass
class WebhookTarget:
    """A channel resolved and ready for delivery."""

    data: ChannelData
    channel: discord.TextChannel
    webhook: discord.Webhook
    sender_name: str
    sender_avatar: str | None
    visibility: Visibility

    @property
    def channel_id(self) -> str:
        return self.data.channel_id

    @property
    def source_path(self) -> str:
        return self.data.source_path
