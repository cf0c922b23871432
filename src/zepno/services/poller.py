"""Fixed-interval poller that refreshes one session until it settles."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from zepno.models.otp_session import OtpSession

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[OtpSession], Awaitable[None] | None]


class Refresher(Protocol):
    async def refresh(self, lease_id: str): ...


class SessionPoller:
    """Calls ``refresh(lease_id)`` every *interval* seconds.

    Stops on its own once the session reaches a terminal state or the
    session is unknown.  :meth:`stop` cancels the loop; no provider
    request is issued after it returns.

    Usage::

        async with SessionPoller(orchestrator, lease_id, on_update=show):
            ...
    """

    def __init__(
        self,
        refresher: Refresher,
        lease_id: str,
        interval: float = 10.0,
        on_update: UpdateCallback | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._refresher = refresher
        self._lease_id = lease_id
        self._interval = interval
        self._on_update = on_update
        self._task: asyncio.Task[OtpSession | None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[OtpSession | None]:
        if self.running:
            raise RuntimeError(f"Poller for {self._lease_id} already running")
        self._task = asyncio.create_task(self._run(), name=f"poll-{self._lease_id}")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        logger.debug("Poller for %s stopped", self._lease_id)

    async def wait(self) -> OtpSession | None:
        """Wait for the loop to finish; returns the last session seen."""
        if self._task is None:
            raise RuntimeError("Poller was never started")
        return await self._task

    async def __aenter__(self) -> SessionPoller:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _run(self) -> OtpSession | None:
        last: OtpSession | None = None
        while True:
            result = await self._refresher.refresh(self._lease_id)
            if result.data is not None:
                last = result.data
                if self._on_update is not None:
                    outcome = self._on_update(last)
                    if asyncio.iscoroutine(outcome):
                        await outcome

            if last is None or last.status.is_terminal:
                logger.info("Poller for %s finished", self._lease_id)
                return last
            if not result.success:
                logger.debug("Refresh of %s failed: %s", self._lease_id, result.error)

            await asyncio.sleep(self._interval)
