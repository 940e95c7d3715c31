"""Long-polling Telegram for updates."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import logfire
from aiogram.types import Update

from telecord.common.retry import Backoff, BackoffPolicy
from telecord.errors import PollError
from telecord.platforms import SourcePlatform
from telecord.relay.router import EventRouter

DEFAULT_TIMEOUT = 60  # seconds


class UpdatePoller:
    """Fetches updates in a loop and hands them to the router.

    `cursor` is the offset of the next update to fetch. It only moves forward,
    and only after a fetch succeeded, so a failed fetch is retried from the
    same place.
    """

    def __init__(
        self,
        source: SourcePlatform,
        router: EventRouter,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        skip_old_messages: bool = False,
        backoff: BackoffPolicy | None = None,
        debug: bool = False,
    ) -> None:
        self.source = source
        self.router = router
        self.timeout = timeout
        self.skip_old_messages = skip_old_messages
        self.debug = debug
        self.cursor = 0
        self._backoff = Backoff(backoff or BackoffPolicy())

    def _advance(self, updates: Sequence[Update]) -> None:
        if updates:
            self.cursor = max(self.cursor, max(u.update_id for u in updates) + 1)

    async def _fetch(
        self, timeout: int, stop: asyncio.Event | None = None
    ) -> list[Update] | None:
        """Fetch from the cursor, racing the request against `stop`.

        Returns None when `stop` fires first. The pending request is cancelled
        and the cursor stays where it was.
        """
        fetch = asyncio.create_task(self.source.fetch_updates(self.cursor, timeout))
        if stop is not None:
            stopped = asyncio.create_task(stop.wait())
            try:
                await asyncio.wait(
                    {fetch, stopped}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                stopped.cancel()
                if not fetch.done():
                    fetch.cancel()
                    await asyncio.wait({fetch})
            if fetch.cancelled():
                return None

        try:
            return await fetch
        except Exception as exc:
            raise PollError(self.cursor, f"{type(exc).__name__}: {exc}") from exc

    async def clear_backlog(self, stop: asyncio.Event | None = None) -> int:
        """Skip everything Telegram queued while the relay was offline.

        Returns the cursor to continue from.
        """
        if self.debug:
            logfire.debug("clearing_old_updates", cursor=self.cursor)

        skipped = 0
        while stop is None or not stop.is_set():
            try:
                updates = await self._fetch(0, stop)
            except PollError:
                logfire.exception("backlog_fetch_failed", cursor=self.cursor)
                await self._backoff.wait(stop)
                continue

            self._backoff.reset()
            if not updates:
                break
            skipped += len(updates)
            self._advance(updates)

        logfire.info("old_updates_cleared", skipped=skipped, cursor=self.cursor)
        return self.cursor

    async def poll_once(self, stop: asyncio.Event | None = None) -> list[Update]:
        """Fetch one batch, dispatch it and move the cursor past it."""
        if self.debug:
            logfire.debug("fetching_updates", cursor=self.cursor)

        updates = await self._fetch(self.timeout, stop)
        if updates is None:
            return []
        await self.router.dispatch_batch(updates)
        self._advance(updates)
        return updates

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Poll until `stop` is set. Without a stop token this never returns."""
        if self.skip_old_messages:
            await self.clear_backlog(stop)

        logfire.info("polling_started", cursor=self.cursor, timeout=self.timeout)
        while stop is None or not stop.is_set():
            try:
                await self.poll_once(stop)
            except PollError as exc:
                logfire.warning(
                    "telegram_fetch_failed",
                    cursor=exc.cursor,
                    reason=str(exc.__cause__ or exc),
                    _exc_info=self.debug,
                )
                await self._backoff.wait(stop)
            else:
                self._backoff.reset()
        logfire.info("polling_stopped", cursor=self.cursor)
