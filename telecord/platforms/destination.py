"""Discord side of the relay, on top of discord.py's HTTP client."""

from __future__ import annotations

import io
from typing import Protocol

import discord
import logfire


class DestinationPlatform(Protocol):
    async def resolve_self_identity(self) -> discord.ClientUser: ...

    async def send_text(self, channel_id: int, text: str) -> int: ...

    async def send_file(
        self, channel_id: int, data: bytes, filename: str, caption: str
    ) -> int: ...

    async def edit_text(self, channel_id: int, message_id: int, text: str) -> None: ...


class DiscordDestination:
    """Sends to Discord channels without a gateway connection.

    The relay never reads from Discord, so logging in over HTTP is enough.
    Message handles are Discord message ids.
    """

    def __init__(self, token: str, client: discord.Client | None = None) -> None:
        self._token = token
        self._client = client or discord.Client(intents=discord.Intents.none())
        self._channels: dict[int, discord.abc.Messageable] = {}

    async def resolve_self_identity(self) -> discord.ClientUser:
        await self._client.login(self._token)
        user = self._client.user
        if user is None:
            raise RuntimeError("Discord login returned no user")
        logfire.info("discord_identity_resolved", username=user.name, user_id=user.id)
        return user

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        if channel := self._channels.get(channel_id):
            return channel

        channel = await self._client.fetch_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise TypeError(f"Discord channel {channel_id} does not accept messages")

        self._channels[channel_id] = channel
        return channel

    async def send_text(self, channel_id: int, text: str) -> int:
        channel = await self._channel(channel_id)
        message = await channel.send(content=text)
        return message.id

    async def send_file(
        self, channel_id: int, data: bytes, filename: str, caption: str
    ) -> int:
        channel = await self._channel(channel_id)
        message = await channel.send(
            content=caption,
            file=discord.File(io.BytesIO(data), filename=filename),
        )
        return message.id

    async def edit_text(self, channel_id: int, message_id: int, text: str) -> None:
        channel = await self._channel(channel_id)
        message = await channel.fetch_message(message_id)
        await message.edit(content=text)

    async def close(self) -> None:
        await self._client.close()
