"""Classification of Telegram updates and dispatch to relay handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum

import logfire
from aiogram.types import Message, Update


class EventKind(StrEnum):
    TEXT = "text"
    PHOTO = "photo"
    DOCUMENT = "document"
    VOICE = "voice"
    AUDIO = "audio"
    VIDEO = "video"
    STICKER = "sticker"
    EDIT = "edit"


# Checked in this order, the first present field wins
MESSAGE_KINDS: tuple[tuple[str, EventKind], ...] = (
    ("text", EventKind.TEXT),
    ("photo", EventKind.PHOTO),
    ("document", EventKind.DOCUMENT),
    ("voice", EventKind.VOICE),
    ("audio", EventKind.AUDIO),
    ("video", EventKind.VIDEO),
    ("sticker", EventKind.STICKER),
)


@dataclass(frozen=True)
class RelayEvent:
    kind: EventKind
    update_id: int
    message: Message


Handler = Callable[[RelayEvent], Awaitable[None]]


def classify(update: Update) -> RelayEvent | None:
    """Event for an update, None if the relay has nothing to do with it."""
    # Ordinary messages and channel posts are treated the same
    if message := (update.message or update.channel_post):
        for field, kind in MESSAGE_KINDS:
            if getattr(message, field) is not None:
                return RelayEvent(
                    kind=kind, update_id=update.update_id, message=message
                )
        return None

    if message := (update.edited_message or update.edited_channel_post):
        return RelayEvent(
            kind=EventKind.EDIT, update_id=update.update_id, message=message
        )

    return None


class EventRouter:
    """Routes each update to the handler of its kind without waiting for it.

    Handlers run as independent tasks, so messages may reach Discord in a
    different order than they arrived. At most `max_in_flight` handlers run at
    once; dispatching blocks when that many are still running.
    """

    def __init__(
        self,
        handlers: Mapping[EventKind, Handler],
        max_in_flight: int = 64,
    ) -> None:
        missing = set(EventKind) - set(handlers)
        if missing:
            raise ValueError(
                f"No handler registered for: {', '.join(sorted(missing))}"
            )
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be positive, not {max_in_flight}")

        self._handlers = dict(handlers)
        self._slots = asyncio.Semaphore(max_in_flight)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def dispatch(self, update: Update) -> RelayEvent | None:
        event = classify(update)
        if event is None:
            logfire.debug("update_ignored", update_id=update.update_id)
            return None

        await self._slots.acquire()
        task = asyncio.create_task(
            self._run(event), name=f"relay-{event.kind}-{event.update_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return event

    async def dispatch_batch(self, updates: Iterable[Update]) -> list[RelayEvent]:
        """Dispatch updates in arrival order."""
        events = []
        for update in updates:
            if event := await self.dispatch(update):
                events.append(event)
        return events

    async def _run(self, event: RelayEvent) -> None:
        try:
            await self._handlers[event.kind](event)
        except Exception:
            logfire.exception(
                "relay_handler_failed",
                kind=event.kind,
                update_id=event.update_id,
            )
        finally:
            self._slots.release()

    async def drain(self) -> None:
        """Wait for every handler dispatched so far."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
