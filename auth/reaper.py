"""
auth/reaper.py -- Periodic deletion of stale session rows (SessionReaper).

Runs as a tracked asyncio task started and stopped by the application
lifespan; no request ever triggers it. Each tick sleeps first, then sweeps, so
startup does not pay for a sweep.

SessionRegistry.sweep() is blocking database I/O. sweep_once() runs it in a
worker thread via asyncio.to_thread so the event loop keeps serving requests
while the DELETE executes.

A failed sweep is logged and the loop carries on; the next tick retries
naturally. CancelledError from stop() propagates out of asyncio.sleep (or the
shielded sweep) and unwinds the coroutine; a sweep caught mid-DELETE finishes
in its thread and stop() waits for it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from auth.sessions import SessionRegistry

logger = logging.getLogger("sessionauth.reaper")


class SessionReaper:
    def __init__(self, registry: SessionRegistry, interval_seconds: float = 3600) -> None:
        if interval_seconds <= 0:
            raise ValueError("Sweep interval must be positive.")
        self.registry = registry
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None
        self._in_flight: asyncio.Future | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        # Shielded so cancelling the loop leaves the worker thread's result
        # awaitable; stop() waits on it before the engine is disposed.
        self._in_flight = asyncio.ensure_future(asyncio.to_thread(self.registry.sweep))
        try:
            removed = await asyncio.shield(self._in_flight)
        finally:
            if self._in_flight is not None and self._in_flight.done():
                self._in_flight = None
        logger.info("Session sweep removed %d stale session(s)", removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Session sweep failed")

    def start(self) -> None:
        """Launch the background task. Must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-reaper")
        logger.info("Session reaper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish.

        A sweep already running in its worker thread cannot be interrupted, so
        stop() also waits for that DELETE to complete. Callers may dispose the
        engine as soon as this returns.
        """
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        if self._in_flight is not None:
            try:
                removed = await self._in_flight
                logger.info("Session sweep removed %d stale session(s) during shutdown", removed)
            except Exception:
                logger.exception("Session sweep failed during shutdown")
            self._in_flight = None
        logger.info("Session reaper stopped")
