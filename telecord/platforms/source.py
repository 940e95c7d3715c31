"""Telegram side of the relay, on top of an aiogram Bot."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from aiogram import Bot
from aiogram.types import File, Update, User

# Updates the relay knows how to classify
ALLOWED_UPDATES = ["message", "channel_post", "edited_message", "edited_channel_post"]

# Extra seconds on top of the long-poll budget before the HTTP request gives up
REQUEST_TIMEOUT_MARGIN = 10


class SourcePlatform(Protocol):
    async def fetch_updates(self, offset: int, timeout: int) -> list[Update]: ...

    async def get_file(self, file_id: str) -> File: ...

    def stream_file(self, file_path: str) -> AsyncIterator[bytes]: ...

    async def send_message(self, chat_id: int, text: str) -> None: ...

    async def get_me(self) -> User: ...


class TelegramSource:
    """Long-polling Telegram client."""

    def __init__(self, bot: Bot, chunk_size: int = 65536) -> None:
        self.bot = bot
        self.chunk_size = chunk_size

    async def fetch_updates(self, offset: int, timeout: int) -> list[Update]:
        return await self.bot.get_updates(
            offset=offset,
            timeout=timeout,
            allowed_updates=ALLOWED_UPDATES,
            request_timeout=timeout + REQUEST_TIMEOUT_MARGIN,
        )

    async def get_file(self, file_id: str) -> File:
        return await self.bot.get_file(file_id)

    def stream_file(self, file_path: str) -> AsyncIterator[bytes]:
        """Chunks of a file stored on Telegram's servers."""
        url = self.bot.session.api.file_url(self.bot.token, file_path)
        return self.bot.session.stream_content(
            url=url,
            timeout=self.bot.session.timeout,
            chunk_size=self.chunk_size,
            raise_for_status=True,
        )

    async def send_message(self, chat_id: int, text: str) -> None:
        await self.bot.send_message(chat_id=chat_id, text=text)

    async def get_me(self) -> User:
        return await self.bot.get_me()

    async def close(self) -> None:
        await self.bot.session.close()
