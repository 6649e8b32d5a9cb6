"""Log stream supervisor: one background log subscription at a time.

The supervisor is synced once per foreground tick. It keeps a subscription
open exactly while the active screen is ``DeploymentLogs(id)`` and moves
whatever chunks the background task has queued into the state's live log
buffer. The background task only ever writes into its own queue; each
subscription gets a fresh queue, and cancelling drops the old queue so a
stale chunk can never reach the buffer.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
import logging

from clickploy.api.log_feed import LogFeed
from clickploy.observability.logging import get_logger, log_event
from clickploy.tui.screens import ScreenKind
from clickploy.tui.state import AppState, LiveLogBuffer


logger = get_logger("clickploy.logstream")


class LogStreamSupervisor:
    def __init__(self, feed: LogFeed | None = None, *, queue_size: int = 1024) -> None:
        self.feed = feed
        self.queue_size = max(1, queue_size)
        self._deployment_id: str | None = None
        self._queue: asyncio.Queue[str] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def deployment_id(self) -> str | None:
        """Id of the current subscription, or ``None`` when idle."""
        return self._deployment_id

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def sync(self, state: AppState) -> None:
        """Reconcile the subscription with the active screen, then drain."""

        screen = state.screen
        target = screen.target_id if screen.kind is ScreenKind.DEPLOYMENT_LOGS else None

        if target is not None:
            if target != self._deployment_id:
                self.cancel()
                state.live_logs.clear()
                self._subscribe(target)
        elif self._deployment_id is not None:
            self.cancel()
            state.live_logs.clear()

        self._drain(state.live_logs)

    def cancel(self) -> None:
        """Stop the current subscription; queued chunks are discarded."""

        task = self._task
        deployment_id = self._deployment_id
        self._task = None
        self._queue = None
        self._deployment_id = None
        if task is not None and not task.done():
            task.cancel()
        if deployment_id is not None:
            log_event(logger, "log_stream_cancelled", deployment_id=deployment_id)

    async def aclose(self) -> None:
        """Cancel and wait for the background task to unwind."""

        task = self._task
        self.cancel()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _subscribe(self, deployment_id: str) -> None:
        self._deployment_id = deployment_id
        if self.feed is None:
            log_event(
                logger,
                "log_stream_unavailable",
                level=logging.WARNING,
                deployment_id=deployment_id,
            )
            return

        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self.queue_size)
        self._queue = queue
        self._task = asyncio.get_running_loop().create_task(
            self._pump(self.feed, deployment_id, queue),
            name=f"log-stream-{deployment_id}",
        )
        log_event(logger, "log_stream_opened", deployment_id=deployment_id)

    async def _pump(self, feed: LogFeed, deployment_id: str, queue: asyncio.Queue[str]) -> None:
        try:
            async with aclosing(feed.stream(deployment_id)) as chunks:
                async for chunk in chunks:
                    if chunk:
                        await queue.put(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # A failed stream just stops; the operator re-enters the screen to retry.
            log_event(
                logger,
                "log_stream_failed",
                level=logging.WARNING,
                deployment_id=deployment_id,
                error=f"{type(exc).__name__}: {exc}",
            )
            return
        log_event(logger, "log_stream_closed", deployment_id=deployment_id)

    def _drain(self, buffer: LiveLogBuffer) -> None:
        queue = self._queue
        if queue is None:
            return
        while True:
            try:
                chunk = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            buffer.append(chunk)
