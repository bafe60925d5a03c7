"""
Session-bound refresh of a student's progress history.

One `ProgressRefresher` lives as long as one viewing session (for example one
WebSocket connection). It recomputes the history when:

- the session starts,
- the poll interval elapses,
- the completion channel reports a new attempt for the student.

Triggers are debounced, at most one recomputation runs at a time, and a
result computed for an older subject or after `stop()` is discarded.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from edusync import config
from edusync.progress.events import CompletionChannel, completion_channel

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[Any]]
OnUpdate = Callable[[Any], Awaitable[None]]


class ProgressRefresher:

    def __init__(
        self,
        student_id: str,
        fetch: Fetch,
        on_update: OnUpdate,
        channel: Optional[CompletionChannel] = completion_channel,
        debounce: float = config.REFRESH_DEBOUNCE_SECONDS,
        poll_interval: Optional[float] = config.POLL_INTERVAL_SECONDS,
    ):
        self.student_id = student_id
        self.fetch = fetch
        self.on_update = on_update
        self.channel = channel
        self.debounce = debounce
        self.poll_interval = poll_interval

        self.refresh_count = 0  # completed fetches, delivered or not
        self._generation = 0
        self._in_flight = False
        self._pending = False
        self._running = False
        self._queue: Optional[asyncio.Queue] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self._background: list = []

    # ==================== LIFECYCLE ====================

    async def start(self):
        if self._running:
            return
        self._running = True
        if self.channel is not None:
            self._queue = await self.channel.subscribe(self.student_id)
            self._background.append(asyncio.create_task(self._listen(self._queue)))
        if self.poll_interval:
            self._background.append(asyncio.create_task(self._poll()))
        self._schedule_run()

    async def stop(self):
        if not self._running:
            return
        self._running = False
        self._generation += 1

        tasks = [t for t in (self._debounce_task, self._run_task, *self._background) if t]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
        self._debounce_task = None
        self._run_task = None
        self._in_flight = False
        self._pending = False

        if self.channel is not None and self._queue is not None:
            await self.channel.unsubscribe(self.student_id, self._queue)
            self._queue = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    @property
    def running(self) -> bool:
        return self._running

    # ==================== TRIGGERS ====================

    def trigger(self):
        """Request a refresh; bursts within the debounce window coalesce"""
        if not self._running:
            return
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounced())

    async def set_subject(self, student_id: str):
        """Follow another student; any fetch still running for the old one is discarded"""
        if student_id == self.student_id:
            return
        self._generation += 1
        if self.channel is not None and self._queue is not None:
            await self.channel.unsubscribe(self.student_id, self._queue)
            self._queue = await self.channel.subscribe(student_id)
            for task in self._background:
                task.cancel()
            self._background = [asyncio.create_task(self._listen(self._queue))]
            if self.poll_interval:
                self._background.append(asyncio.create_task(self._poll()))
        self.student_id = student_id
        if self._running:
            self._schedule_run()

    async def _debounced(self):
        await asyncio.sleep(self.debounce)
        self._schedule_run()

    def _schedule_run(self):
        if self._in_flight:
            self._pending = True
            return
        self._in_flight = True
        self._run_task = asyncio.create_task(self._run())

    async def _run(self):
        generation = self._generation
        student_id = self.student_id
        try:
            data = await self.fetch(student_id)
            self.refresh_count += 1
            if generation != self._generation:
                logger.debug("Discarding stale progress for %s", student_id)
            else:
                await self.on_update(data)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Progress refresh failed for %s", student_id)
        finally:
            self._in_flight = False
            if self._pending and self._running:
                self._pending = False
                self._schedule_run()

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            self.trigger()

    async def _listen(self, queue: asyncio.Queue):
        while True:
            event = await queue.get()
            logger.debug("Assessment %s completed, refreshing %s", event.assessment_id, self.student_id)
            self.trigger()
