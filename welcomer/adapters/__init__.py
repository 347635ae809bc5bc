"""Delivery adapters: publish parsed templates to chat platforms."""

from welcomer.adapters.discord_adapter import DiscordPublisher

__all__ = ["DiscordPublisher"]
