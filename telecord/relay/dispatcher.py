"""Relaying classified Telegram messages to their bridged Discord channels."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import logfire
from aiogram.types import Message

from telecord.common.tg import (
    extension_from_mime,
    is_chatinfo_command,
    message_info,
)
from telecord.config import BridgeMap, BridgeSettings
from telecord.errors import (
    EditCorrelationMiss,
    IdentityInitializationFailure,
    RelayError,
)
from telecord.platforms import DestinationPlatform, SourcePlatform
from telecord.relay.convert import compose_text
from telecord.relay.files import FileRelayPipeline, RelayJob
from telecord.relay.gate import ReadinessGate
from telecord.relay.identity_map import Direction, IdentityMap
from telecord.relay.router import EventKind, Handler, RelayEvent

UNAUTHORIZED_TEXT = (
    "This is an instance of a Telegram to Discord relay bot, bridging a chat in"
    " Telegram with one in Discord. This chat is not bridged, so nothing"
    " sent here will be relayed."
)

BridgedHandler = Callable[[Message, BridgeSettings], Awaitable[None]]


def source_key(message: Message) -> tuple[int, int]:
    # Telegram message ids are only unique within a chat
    return message.chat.id, message.message_id


class AuthorizationGate:
    """Lets through messages from bridged chats only.

    Answers the chat-info command in any chat, and tells unbridged chats
    that the bot is private. Edits from unbridged chats are dropped quietly.
    """

    def __init__(
        self,
        bridges: BridgeMap,
        source: SourcePlatform,
        handler: BridgedHandler,
        bot_username: Callable[[], str | None],
    ) -> None:
        self.bridges = bridges
        self.source = source
        self.handler = handler
        self.bot_username = bot_username

    async def __call__(self, event: RelayEvent) -> None:
        message = event.message
        chat_id = message.chat.id

        if is_chatinfo_command(message.text, self.bot_username()):
            await self._reply(chat_id, f"chatID: {chat_id}")
            return

        bridge = self.bridges.get(chat_id)
        if bridge is None:
            logfire.info("unbridged_chat", chat_id=chat_id, kind=event.kind)
            # Edits already got the notice with the message they change
            if event.kind != EventKind.EDIT:
                await self._reply(chat_id, UNAUTHORIZED_TEXT)
            return

        await self.handler(message, bridge)

    async def _reply(self, chat_id: int, text: str) -> None:
        try:
            await self.source.send_message(chat_id, text)
        except Exception:
            logfire.exception("telegram_reply_failed", chat_id=chat_id)


class RelayDispatcher:
    """Per-kind relay handlers, wired to the router through `handlers()`."""

    def __init__(
        self,
        source: SourcePlatform,
        destination: DestinationPlatform,
        bridges: BridgeMap,
        identity_map: IdentityMap,
        files: FileRelayPipeline | None = None,
        gate: ReadinessGate | None = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.bridges = bridges
        self.identity_map = identity_map
        self.gate = gate or (files.gate if files else ReadinessGate())
        self.files = files or FileRelayPipeline(source, destination, self.gate)
        self.bot_username: str | None = None

    async def start(self) -> None:
        """Resolve both bot identities and open the readiness gate.

        Raises IdentityInitializationFailure if Discord cannot be reached, since
        nothing could ever be relayed.
        """
        try:
            me = await self.source.get_me()
        except Exception as exc:
            raise IdentityInitializationFailure(
                "Failed at getting the Telegram bot's identity"
            ) from exc
        self.bot_username = me.username
        logfire.info(
            "telegram_identity_resolved", username=me.username, user_id=me.id
        )

        try:
            identity = await self.destination.resolve_self_identity()
        except Exception as exc:
            self.gate.fail(exc)
            raise IdentityInitializationFailure(
                "Failed at getting the Discord bot's identity"
            ) from exc
        self.gate.open(identity)

    def handlers(self) -> dict[EventKind, Handler]:
        kinds: dict[EventKind, BridgedHandler] = {
            EventKind.TEXT: self.relay_text,
            EventKind.PHOTO: self.relay_photo,
            EventKind.DOCUMENT: self.relay_document,
            EventKind.VOICE: self.relay_voice,
            EventKind.AUDIO: self.relay_audio,
            EventKind.VIDEO: self.relay_video,
            EventKind.STICKER: self.relay_sticker,
            EventKind.EDIT: self.relay_edit,
        }
        return {
            kind: AuthorizationGate(
                self.bridges, self.source, handler, lambda: self.bot_username
            )
            for kind, handler in kinds.items()
        }

    # --- Text ---

    async def relay_text(self, message: Message, bridge: BridgeSettings) -> None:
        text = compose_text(message)
        try:
            await self.gate.wait()
            destination_id = await self.destination.send_text(
                bridge.discord_channel_id, text
            )
        except Exception:
            logfire.exception(
                "discord_rejected_text",
                bridge=bridge.name,
                message=message_info(message),
            )
            return

        self.identity_map.insert(
            Direction.TELEGRAM_TO_DISCORD, source_key(message), destination_id
        )

    async def relay_edit(self, message: Message, bridge: BridgeSettings) -> None:
        try:
            destination_id = self.identity_map.lookup(
                Direction.TELEGRAM_TO_DISCORD, source_key(message)
            )
            if destination_id is None:
                raise EditCorrelationMiss(message.message_id)

            await self.gate.wait()
            await self.destination.edit_text(
                bridge.discord_channel_id, destination_id, compose_text(message)
            )
        except EditCorrelationMiss as exc:
            logfire.warning("edit_not_relayed", bridge=bridge.name, reason=str(exc))
        except Exception:
            logfire.exception(
                "discord_edit_failed",
                bridge=bridge.name,
                message=message_info(message),
            )

    # --- Files ---

    async def _relay_file(
        self, job: RelayJob, bridge: BridgeSettings, what: str
    ) -> None:
        try:
            await self.files.relay(job)
        except RelayError:
            logfire.exception(
                "file_relay_failed",
                bridge=bridge.name,
                what=what,
                message=message_info(job.message),
            )

    async def relay_photo(self, message: Message, bridge: BridgeSettings) -> None:
        # Largest of the sizes Telegram generated
        photo = max(message.photo, key=lambda p: p.width * p.height)
        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=photo.file_id,
            # Telegram converts every photo to jpg
            file_name="photo.jpg",
            caption=message.caption or "",
        )
        await self._relay_file(job, bridge, "photo")

    async def relay_sticker(self, message: Message, bridge: BridgeSettings) -> None:
        sticker = message.sticker
        file_id = sticker.file_id
        # Animated and video stickers are not webp, their thumbnail is
        if (sticker.is_animated or sticker.is_video) and sticker.thumbnail:
            file_id = sticker.thumbnail.file_id

        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=file_id,
            file_name="sticker.webp",
            caption=(sticker.emoji or "") if bridge.send_sticker_emoji else "",
        )
        await self._relay_file(job, bridge, "sticker")

    async def relay_document(self, message: Message, bridge: BridgeSettings) -> None:
        document = message.document
        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=document.file_id,
            file_name=document.file_name or "file",
        )
        await self._relay_file(job, bridge, "document")

    async def relay_voice(self, message: Message, bridge: BridgeSettings) -> None:
        voice = message.voice
        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=voice.file_id,
            file_name="voice." + extension_from_mime(voice.mime_type, default="ogg"),
        )
        await self._relay_file(job, bridge, "voice")

    async def relay_audio(self, message: Message, bridge: BridgeSettings) -> None:
        audio = message.audio
        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=audio.file_id,
            file_name=audio.title or "audio",
            resolve_extension=True,
        )
        await self._relay_file(job, bridge, "audio")

    async def relay_video(self, message: Message, bridge: BridgeSettings) -> None:
        video = message.video
        job = RelayJob(
            channel_id=bridge.discord_channel_id,
            message=message,
            file_id=video.file_id,
            file_name="video." + extension_from_mime(video.mime_type, default="mp4"),
        )
        await self._relay_file(job, bridge, "video")
