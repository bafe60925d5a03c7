import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class AssessmentCompleted(BaseModel):
    student_id: str
    assessment_id: str
    result_id: str
    score: int
    percentage: int
    attempt_date: datetime


class CompletionChannel:
    """
    Per-student fan-out of "assessment completed" notices.
    Subscribers own a bounded queue; a full queue drops the oldest notice,
    since a consumer only needs to know that something changed.
    """

    def __init__(self, queue_size: int = 16):
        self.subscribers: Dict[str, List[asyncio.Queue]] = {}
        self.queue_size = queue_size
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def lock(self) -> asyncio.Lock:
        """Created on first use, and again if the running loop changes"""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def subscribe(self, student_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        async with self.lock:
            self.subscribers.setdefault(student_id, []).append(queue)
        return queue

    async def unsubscribe(self, student_id: str, queue: asyncio.Queue):
        async with self.lock:
            queues = self.subscribers.get(student_id)
            if queues and queue in queues:
                queues.remove(queue)
            if not queues:
                self.subscribers.pop(student_id, None)

    async def publish(self, event: AssessmentCompleted) -> int:
        """Deliver to every subscriber of the student; returns delivery count"""
        async with self.lock:
            targets = list(self.subscribers.get(event.student_id, []))

        for queue in targets:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(event)

        logger.debug("Completion for %s delivered to %d subscriber(s)", event.student_id, len(targets))
        return len(targets)

    def subscriber_count(self, student_id: str) -> int:
        return len(self.subscribers.get(student_id, []))


completion_channel = CompletionChannel()
