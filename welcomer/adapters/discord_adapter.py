"""Discord adapter: publish parsed templates through channel webhooks (discord.py v2+).

Run sequence:
1. Log in and wait for the gateway to report ready
2. Resolve every target channel and its webhook (fail fast, nothing mutated)
3. Hide each channel from @everyone and purge its recent messages
4. Send each channel's messages in order, then restore its visibility
5. Release the webhook handles and close the client, whatever happened
"""

from __future__ import annotations

import asyncio
import io
import os
from typing import assert_never
from urllib.parse import urlparse

import aiohttp
import discord
import structlog

from welcomer.config import DiscordConfig
from welcomer.core.errors import (
    AttachmentError,
    ChannelNotFoundError,
    ChannelTooOpenError,
    MessageTooLongError,
    OversizeFragmentError,
    WrongChannelTypeError,
)
from welcomer.core.ledger import VisibilityLedger
from welcomer.core.parser import is_remote_url
from welcomer.core.splitter import SplitOptions, split_message
from welcomer.core.types import (
    BreakMessage,
    ChannelData,
    ImageMessage,
    TextMessage,
    Visibility,
    WebhookTarget,
)
from welcomer.ui import actions

logger = structlog.get_logger()

# Description of the embed sent for ::break
BREAK_DESCRIPTION = "-"


class DiscordPublisher:
    """Delivers ChannelData to Discord text channels via webhooks.

    The publisher owns the client and every webhook handle for the duration
    of publish(). Webhooks are bound to an aiohttp session scoped to the run,
    so closing that session releases all of them.

    Channels are expected to be writer-restricted: a channel where @everyone
    can send messages is refused before anything is changed.
    """

    name = "discord"

    def __init__(
        self,
        config: DiscordConfig | None = None,
        ledger: VisibilityLedger | None = None,
    ) -> None:
        self.config = config or DiscordConfig()
        self.ledger = ledger

    def _create_client(self) -> discord.Client:
        intents = discord.Intents.none()
        intents.guilds = True
        intents.webhooks = True
        return discord.Client(intents=intents)

    async def publish(self, token: str, *data: ChannelData) -> None:
        """Log in, deliver every ChannelData, and release all resources."""
        client = self._create_client()
        gateway: asyncio.Task | None = None

        try:
            gateway = await self._login(client, token)
            actions.info(f"Logged in as {client.user or 'Unknown#0000'}")

            # Closing the session releases every webhook bound to it
            async with aiohttp.ClientSession() as session:
                targets = await self._resolve_targets(client, session, data)
                await self._prepare_channels(targets)

                for target in targets:
                    count = await self._send_entry(target, session)
                    await self._restore_visibility(target)
                    actions.info(
                        f"Sent {count} message(s) to #{target.channel.name} "
                        f"in {target.channel.guild.name}"
                    )
        finally:
            await client.close()
            if gateway is not None:
                if not gateway.done():
                    gateway.cancel()
                await asyncio.gather(gateway, return_exceptions=True)
            logger.info("discord_closed")

    async def _login(self, client: discord.Client, token: str) -> asyncio.Task:
        """Authenticate and wait until the gateway is ready.

        Returns the task running the gateway connection.
        """
        logger.info("discord_login", bot_token="***" + token[-4:])

        # Raises discord.LoginFailure on a rejected token
        await client.login(token)

        connect = asyncio.create_task(client.connect(reconnect=False))
        ready = asyncio.create_task(client.wait_until_ready())
        done, _ = await asyncio.wait(
            {connect, ready},
            timeout=self.config.ready_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )

        if ready in done:
            logger.info("discord_ready", bot_user=str(client.user))
            return connect

        ready.cancel()
        if connect in done:
            await asyncio.gather(ready, return_exceptions=True)
            connect.result()
            raise RuntimeError("Discord gateway closed before becoming ready")

        connect.cancel()
        await asyncio.gather(ready, connect, return_exceptions=True)
        raise TimeoutError(
            f"Discord client was not ready after {self.config.ready_timeout}s"
        )

    # === Resolution ===

    async def _resolve_targets(
        self,
        client: discord.Client,
        session: aiohttp.ClientSession,
        data: tuple[ChannelData, ...],
    ) -> list[WebhookTarget]:
        targets: list[WebhookTarget] = []
        for entry in data:
            targets.append(await self._resolve_target(client, session, entry))
        return targets

    async def _resolve_target(
        self,
        client: discord.Client,
        session: aiohttp.ClientSession,
        entry: ChannelData,
    ) -> WebhookTarget:
        channel = await self._fetch_channel(client, entry)
        everyone = channel.guild.default_role

        if channel.permissions_for(everyone).send_messages:
            raise ChannelTooOpenError(
                "Channel permissions are too open!",
                f"Channel ID `{entry.channel_id}` has send messages on for @everyone",
                file=entry.source_path,
                channel_id=entry.channel_id,
            )

        webhook = await self._resolve_webhook(channel, session)

        sender_name = entry.sender_name
        if sender_name is None:
            sender_name = channel.guild.name

        sender_avatar = entry.sender_image
        if sender_avatar is None and channel.guild.icon is not None:
            icon = channel.guild.icon.replace(size=self.config.avatar_size, format="png")
            sender_avatar = icon.url

        overwrite = channel.overwrites_for(everyone)
        visibility = Visibility.from_overwrite(overwrite.view_channel)
        visibility = self._recover_visibility(entry, visibility)

        logger.info(
            "channel_resolved",
            channel_id=entry.channel_id,
            channel=channel.name,
            guild=channel.guild.name,
            visibility=visibility.value,
        )
        return WebhookTarget(
            data=entry,
            channel=channel,
            webhook=webhook,
            sender_name=sender_name,
            sender_avatar=sender_avatar,
            visibility=visibility,
        )

    async def _fetch_channel(
        self, client: discord.Client, entry: ChannelData
    ) -> discord.TextChannel:
        try:
            channel = await client.fetch_channel(int(entry.channel_id))
        except (ValueError, discord.NotFound) as e:
            raise ChannelNotFoundError(
                "Failed to resolve channel!",
                f"Channel ID `{entry.channel_id}` could not be found!",
                file=entry.source_path,
                channel_id=entry.channel_id,
            ) from e

        if not isinstance(channel, discord.TextChannel):
            raise WrongChannelTypeError(
                "Failed to resolve channel!",
                f"Channel ID `{entry.channel_id}` is not a text channel!",
                file=entry.source_path,
                channel_id=entry.channel_id,
            )
        return channel

    async def _resolve_webhook(
        self, channel: discord.TextChannel, session: aiohttp.ClientSession
    ) -> discord.Webhook:
        """Reuse a webhook we can post through, or create one."""
        webhooks = await channel.webhooks()
        webhook = next((w for w in webhooks if w.token), None)
        if webhook is None:
            webhook = await channel.create_webhook(name=self.config.webhook_name)
            logger.info("webhook_created", channel_id=channel.id, webhook_id=webhook.id)

        return discord.Webhook.partial(webhook.id, webhook.token, session=session)

    def _recover_visibility(self, entry: ChannelData, current: Visibility) -> Visibility:
        """Prefer the ledger's record for a channel an earlier run left hidden."""
        if self.ledger is None or current is not Visibility.DENIED:
            return current

        recorded = self.ledger.recall(entry.channel_id)
        if recorded is None or recorded is Visibility.DENIED:
            return current

        logger.warning(
            "visibility_recovered",
            channel_id=entry.channel_id,
            visibility=recorded.value,
        )
        actions.warning(
            f"Channel ID `{entry.channel_id}` was left hidden by an earlier run; "
            f"restoring it to `{recorded.value}` afterwards",
            file=entry.source_path,
        )
        return recorded

    # === Visibility ===

    @staticmethod
    async def _set_view_channel(channel: discord.TextChannel, value: bool | None) -> None:
        """Change only the view bit of the @everyone overwrite."""
        everyone = channel.guild.default_role
        allow, deny = channel.overwrites_for(everyone).pair()
        overwrite = discord.PermissionOverwrite.from_pair(allow, deny)
        overwrite.view_channel = value
        await channel.set_permissions(everyone, overwrite=overwrite)

    async def _prepare_channels(self, targets: list[WebhookTarget]) -> None:
        """Hide every target channel and clear its previous content."""
        for target in targets:
            if target.visibility is not Visibility.DENIED:
                if self.ledger is not None:
                    self.ledger.record(target.channel_id, target.visibility)
                await self._set_view_channel(target.channel, False)
                logger.info("channel_hidden", channel_id=target.channel_id)

            deleted = await target.channel.purge(limit=self.config.purge_limit)
            logger.info(
                "channel_purged",
                channel_id=target.channel_id,
                deleted=len(deleted),
            )

    async def _restore_visibility(self, target: WebhookTarget) -> None:
        if target.visibility is Visibility.DENIED:
            return

        await self._set_view_channel(target.channel, target.visibility.to_overwrite())
        if self.ledger is not None:
            self.ledger.forget(target.channel_id)
        logger.info(
            "visibility_restored",
            channel_id=target.channel_id,
            visibility=target.visibility.value,
        )

    # === Dispatch ===

    async def _send_entry(self, target: WebhookTarget, session: aiohttp.ClientSession) -> int:
        """Send a target's messages in order. Returns the number of posts."""
        identity = {"username": target.sender_name}
        if target.sender_avatar is not None:
            identity["avatar_url"] = target.sender_avatar
        count = 0

        for message in target.data.messages:
            if isinstance(message, ImageMessage):
                file = await self._load_image(message, target, session)
                await target.webhook.send(file=file, wait=True, **identity)
                count += 1

            elif isinstance(message, TextMessage):
                chunks = self._split_text(message, target)
                if len(chunks) > 1:
                    actions.warning(
                        "A message was split due to max length constraints",
                        file=target.source_path,
                    )
                for chunk in chunks:
                    await target.webhook.send(content=chunk, wait=True, **identity)
                    count += 1

            elif isinstance(message, BreakMessage):
                embed = discord.Embed(description=BREAK_DESCRIPTION)
                await target.webhook.send(
                    embed=embed, suppress_embeds=True, wait=True, **identity
                )
                count += 1

            else:
                assert_never(message)

        return count

    def _split_text(self, message: TextMessage, target: WebhookTarget) -> list[str]:
        max_length = self.config.max_message_length
        try:
            return split_message(message.content, SplitOptions(max_length=max_length))
        except OversizeFragmentError as e:
            raise MessageTooLongError(
                "Failed to send message!",
                f"A message in `{target.data.file_name}` cannot be split into "
                f"pieces of at most {max_length} characters: {e}",
                file=target.source_path,
                channel_id=target.channel_id,
            ) from e

    @staticmethod
    def attachment_name(message: ImageMessage) -> str:
        """Caption plus the extension of the image URL, e.g. ``rules.png``."""
        path = urlparse(message.url).path if is_remote_url(message.url) else message.url
        return f"{message.caption}{os.path.splitext(path)[1]}"

    async def _load_image(
        self,
        message: ImageMessage,
        target: WebhookTarget,
        session: aiohttp.ClientSession,
    ) -> discord.File:
        name = self.attachment_name(message)

        if is_remote_url(message.url):
            async with session.get(message.url) as response:
                response.raise_for_status()
                data = await response.read()
            return discord.File(io.BytesIO(data), filename=name)

        try:
            return discord.File(message.url, filename=name)
        except OSError as e:
            raise AttachmentError(
                "Failed to send message!",
                f"Image `{message.url}` could not be read: {e}",
                file=target.source_path,
                channel_id=target.channel_id,
            ) from e
