"""Configuration settings using Pydantic."""

from collections.abc import Iterable, Iterator
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Docs: https://docs.pydantic.dev/2.8/concepts/pydantic_settings/


class BridgeSettings(BaseModel):
    """One Telegram chat paired with one Discord channel."""

    # Used as a log prefix
    name: str

    telegram_chat_id: int
    discord_channel_id: int

    # Put the sticker's emoji in the caption of relayed stickers
    send_sticker_emoji: bool = True


class Settings(BaseSettings):
    # App name used in logs
    app_name: str = "telecord"

    # Allows to detect type of deployment
    environment: Literal["dev", "prod"] = "dev"

    # Token got from https://t.me/BotFather
    telegram_bot_token: str

    # Token from the Discord developer portal
    discord_bot_token: str

    # Logfire token, logs stay local without it
    logfire_token: str | None = None

    # Verbose logging of the polling loop
    debug: bool = False

    # --- Polling ---

    # Drop updates accumulated while the relay was offline
    skip_old_messages: bool = True

    # Long-poll budget in seconds
    poll_timeout: int = 60

    # Backoff between failed fetches, in seconds
    poll_backoff_initial: float = 1.0
    poll_backoff_max: float = 30.0

    # --- Relaying ---

    # Upper bound on handlers running at the same time
    max_concurrent_handlers: int = 64

    # Mappings kept for edits, None means unbounded
    identity_map_max_entries: int | None = 100_000

    download_chunk_size: int = 65536

    # JSON list in the BRIDGES env var
    bridges: list[BridgeSettings] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from .env
    )


class BridgeMap:
    """Lookup of bridges by Telegram chat id."""

    def __init__(self, bridges: Iterable[BridgeSettings]) -> None:
        self._by_chat: dict[int, BridgeSettings] = {}
        for bridge in bridges:
            if bridge.telegram_chat_id in self._by_chat:
                raise ValueError(
                    f"Telegram chat {bridge.telegram_chat_id} is bridged twice"
                    f" ({self._by_chat[bridge.telegram_chat_id].name}, {bridge.name})"
                )
            self._by_chat[bridge.telegram_chat_id] = bridge

    def get(self, chat_id: int) -> BridgeSettings | None:
        return self._by_chat.get(chat_id)

    def __len__(self) -> int:
        return len(self._by_chat)

    def __iter__(self) -> Iterator[BridgeSettings]:
        return iter(self._by_chat.values())
