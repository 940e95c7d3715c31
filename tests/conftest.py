"""Test configuration and reusable fixtures for the relay test suite.

Telegram objects are real aiogram models; both platforms are replaced with
in-memory fakes that record what the relay asked of them.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiogram.types import (
    Audio,
    Chat,
    Document,
    File,
    Message,
    PhotoSize,
    Sticker,
    Update,
    User,
    Video,
    Voice,
)

# Set up test environment variables before any imports
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST_TOKEN_FOR_TESTING")
os.environ.setdefault("DISCORD_BOT_TOKEN", "test_discord_token")

from telecord.config import BridgeMap, BridgeSettings  # noqa: E402
from telecord.relay.gate import ReadinessGate  # noqa: E402
from telecord.relay.identity_map import IdentityMap  # noqa: E402

BRIDGED_CHAT_ID = -1001234567890
DISCORD_CHANNEL_ID = 987654321
BOT_USERNAME = "RelayTestBot"


# =============================================================================
# TELEGRAM OBJECT FACTORIES
# =============================================================================


@pytest.fixture
def make_message():
    """Factory fixture for real aiogram Message objects."""

    def _make_message(
        message_id: int = 1,
        chat_id: int = BRIDGED_CHAT_ID,
        chat_type: str = "supergroup",
        chat_title: str | None = "Test Chat",
        user: User | None = None,
        **kwargs,
    ) -> Message:
        if user is None and chat_type != "channel":
            user = User(
                id=12345,
                is_bot=False,
                first_name="Test",
                last_name="User",
                username="testuser",
            )
        return Message(
            message_id=message_id,
            date=datetime.now(UTC),
            chat=Chat(id=chat_id, type=chat_type, title=chat_title),
            from_user=user,
            **kwargs,
        )

    return _make_message


@pytest.fixture
def make_update(make_message):
    """Factory fixture for Updates carrying a single message.

    `field` selects the Update field the message lands in.
    """

    def _make_update(update_id: int = 1, field: str = "message", **message_kwargs):
        return Update(update_id=update_id, **{field: make_message(**message_kwargs)})

    return _make_update


class MediaFactory:
    """Builders for the file payloads of a Message, named after its fields."""

    def photo(self, file_id: str = "photo") -> list[PhotoSize]:
        return [
            PhotoSize(file_id=f"{file_id}_s", file_unique_id="s", width=90, height=60),
            PhotoSize(
                file_id=f"{file_id}_m", file_unique_id="m", width=320, height=213
            ),
            PhotoSize(
                file_id=f"{file_id}_l", file_unique_id="l", width=1280, height=853
            ),
        ]

    def sticker(self, emoji: str | None = "😀", **kwargs) -> Sticker:
        fields = dict(
            file_id="sticker_file",
            file_unique_id="sticker_unique",
            type="regular",
            width=512,
            height=512,
            is_animated=False,
            is_video=False,
            emoji=emoji,
        )
        fields.update(kwargs)
        return Sticker(**fields)

    def document(self, file_name: str | None = "report.pdf") -> Document:
        return Document(file_id="doc_file", file_unique_id="doc", file_name=file_name)

    def voice(self, mime_type: str | None = "audio/ogg") -> Voice:
        return Voice(
            file_id="voice_file",
            file_unique_id="voice",
            duration=3,
            mime_type=mime_type,
        )

    def audio(self, title: str | None = "Song") -> Audio:
        return Audio(
            file_id="audio_file", file_unique_id="audio", duration=180, title=title
        )

    def video(self, mime_type: str | None = "video/mp4") -> Video:
        return Video(
            file_id="video_file",
            file_unique_id="video",
            width=640,
            height=480,
            duration=10,
            mime_type=mime_type,
        )


@pytest.fixture
def media() -> MediaFactory:
    return MediaFactory()


# =============================================================================
# PLATFORM FAKES
# =============================================================================


class FakeSource:
    """Telegram stand-in.

    `batches` are returned by successive fetches, an Exception item is raised
    instead. Once they run out, fetches return nothing and `stop` gets set.
    """

    def __init__(
        self,
        batches: list | None = None,
        files: dict[str, tuple[str, list[bytes]]] | None = None,
        stop: asyncio.Event | None = None,
    ) -> None:
        self.batches = list(batches or [])
        self.files = files or {}
        self.stop = stop
        self.fetch_calls: list[tuple[int, int]] = []
        self.sent: list[tuple[int, str]] = []
        self.get_me = AsyncMock(
            return_value=User(
                id=42, is_bot=True, first_name="Relay", username=BOT_USERNAME
            )
        )

    async def fetch_updates(self, offset: int, timeout: int) -> list[Update]:
        self.fetch_calls.append((offset, timeout))
        if not self.batches:
            if self.stop is not None:
                self.stop.set()
            return []

        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch

    async def get_file(self, file_id: str) -> File:
        if file_id not in self.files:
            raise RuntimeError(f"file {file_id} not found")
        file_path, _ = self.files[file_id]
        return File(file_id=file_id, file_unique_id=file_id, file_path=file_path)

    async def stream_file(self, file_path: str) -> AsyncIterator[bytes]:
        for path, chunks in self.files.values():
            if path == file_path:
                for chunk in chunks:
                    yield chunk
                return
        raise RuntimeError(f"no content at {file_path}")

    async def send_message(self, chat_id: int, text: str) -> None:
        self.sent.append((chat_id, text))


@pytest.fixture
def make_source():
    """Factory fixture for FakeSource, see its docstring for the arguments."""
    return FakeSource


@pytest.fixture
def bot_username() -> str:
    """Username the fake Telegram source reports from `get_me`."""
    return BOT_USERNAME


@pytest.fixture
def fake_destination():
    """Discord stand-in handing out increasing message ids."""
    destination = MagicMock()
    ids = iter(range(1000, 100000))
    destination.resolve_self_identity = AsyncMock(return_value=MagicMock(name="me"))
    destination.send_text = AsyncMock(side_effect=lambda *a, **kw: next(ids))
    destination.send_file = AsyncMock(side_effect=lambda *a, **kw: next(ids))
    destination.edit_text = AsyncMock(return_value=None)
    return destination


# =============================================================================
# RELAY FIXTURES
# =============================================================================


@pytest.fixture
def bridge() -> BridgeSettings:
    return BridgeSettings(
        name="test-bridge",
        telegram_chat_id=BRIDGED_CHAT_ID,
        discord_channel_id=DISCORD_CHANNEL_ID,
        send_sticker_emoji=True,
    )


@pytest.fixture
def bridges(bridge) -> BridgeMap:
    return BridgeMap([bridge])


@pytest.fixture
def identity_map() -> IdentityMap:
    return IdentityMap()


@pytest_asyncio.fixture
async def open_gate() -> ReadinessGate:
    gate = ReadinessGate()
    gate.open("ready")
    return gate
