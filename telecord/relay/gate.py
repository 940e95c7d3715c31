"""One-shot readiness signal for the Discord client."""

from __future__ import annotations

import asyncio
from typing import Any

from telecord.errors import RelayError


class ReadinessGate:
    """Resolves once, either opened with a value or failed with an error.

    Waiters on a failed gate get a RelayError instead of hanging forever.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[Any] | None = None

    def _get_future(self) -> asyncio.Future[Any]:
        # Created lazily so the gate can be built outside of a running loop
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def is_resolved(self) -> bool:
        return self._future is not None and self._future.done()

    @property
    def is_open(self) -> bool:
        return (
            self.is_resolved
            and not self._future.cancelled()
            and self._future.exception() is None
        )

    def open(self, value: Any = None) -> None:
        future = self._get_future()
        if future.done():
            raise RuntimeError("Readiness gate already resolved")
        future.set_result(value)

    def fail(self, exc: BaseException) -> None:
        future = self._get_future()
        if future.done():
            raise RuntimeError("Readiness gate already resolved")
        future.set_exception(exc)
        # Mark as retrieved, the failure is reported by whoever called fail()
        future.exception()

    async def wait(self) -> Any:
        """Value the gate was opened with."""
        future = self._get_future()
        try:
            return await asyncio.shield(future)
        except RelayError:
            raise
        except Exception as exc:
            raise RelayError("Discord client is not available") from exc
