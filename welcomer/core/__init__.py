"""Core: template parsing, message splitting and shared types."""

from welcomer.core.metadata import build_channel_data
from welcomer.core.parser import parse_template
from welcomer.core.splitter import SplitOptions, split_message, verify_string
from welcomer.core.types import (
    BreakMessage,
    ChannelData,
    ImageMessage,
    Message,
    ParseResult,
    TextMessage,
    Visibility,
)

__all__ = [
    "BreakMessage",
    "ChannelData",
    "ImageMessage",
    "Message",
    "ParseResult",
    "SplitOptions",
    "TextMessage",
    "Visibility",
    "build_channel_data",
    "parse_template",
    "split_message",
    "verify_string",
]
