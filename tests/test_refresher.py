"""Tests for the completion channel and the session-bound progress refresher."""

import asyncio
from datetime import datetime, timezone

from edusync.progress.events import AssessmentCompleted, CompletionChannel
from edusync.progress.refresher import ProgressRefresher


def _event(student_id="s1"):
    return AssessmentCompleted(student_id=student_id, assessment_id="ASM_1", result_id="RES_1",
                               score=1, percentage=100, attempt_date=datetime.now(timezone.utc))


class Recorder:
    def __init__(self):
        self.fetched = []
        self.updates = []

    async def fetch(self, student_id):
        self.fetched.append(student_id)
        return student_id

    async def on_update(self, data):
        self.updates.append(data)


# ==================== CHANNEL ====================

async def test_channel_delivers_only_to_the_student():
    channel = CompletionChannel()
    mine = await channel.subscribe("s1")
    theirs = await channel.subscribe("s2")

    assert await channel.publish(_event("s1")) == 1
    assert mine.qsize() == 1
    assert theirs.qsize() == 0

    await channel.unsubscribe("s1", mine)
    assert channel.subscriber_count("s1") == 0
    assert await channel.publish(_event("s1")) == 0


async def test_channel_full_queue_drops_oldest():
    channel = CompletionChannel(queue_size=2)
    queue = await channel.subscribe("s1")
    for i in range(3):
        event = _event("s1")
        await channel.publish(event.model_copy(update={"result_id": f"RES_{i}"}))
    assert [queue.get_nowait().result_id for _ in range(2)] == ["RES_1", "RES_2"]

# ==================== REFRESHER ====================

async def test_start_refreshes_immediately():
    rec = Recorder()
    async with ProgressRefresher("s1", rec.fetch, rec.on_update, channel=None, poll_interval=None):
        await asyncio.sleep(0.01)
    assert rec.updates == ["s1"]


async def test_burst_of_triggers_coalesces():
    rec = Recorder()
    refresher = ProgressRefresher("s1", rec.fetch, rec.on_update, channel=None,
                                  debounce=0.05, poll_interval=None)
    await refresher.start()
    await asyncio.sleep(0.01)
    for _ in range(5):
        refresher.trigger()
    await asyncio.sleep(0.2)
    await refresher.stop()

    assert len(rec.fetched) == 2


async def test_never_runs_two_fetches_at_once():
    gate = asyncio.Event()
    active = 0
    peak = 0

    async def fetch(student_id):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await gate.wait()
        active -= 1
        return student_id

    updates = []

    async def on_update(data):
        updates.append(data)

    refresher = ProgressRefresher("s1", fetch, on_update, channel=None, debounce=0, poll_interval=None)
    await refresher.start()
    refresher.trigger()
    await asyncio.sleep(0.01)
    refresher.trigger()
    await asyncio.sleep(0.01)
    gate.set()
    await asyncio.sleep(0.05)
    await refresher.stop()

    assert peak == 1
    assert refresher.refresh_count == 2
    assert updates == ["s1", "s1"]


async def test_completion_event_triggers_refresh():
    channel = CompletionChannel()
    rec = Recorder()
    refresher = ProgressRefresher("s1", rec.fetch, rec.on_update, channel=channel,
                                  debounce=0, poll_interval=None)
    await refresher.start()
    await asyncio.sleep(0.01)

    await channel.publish(_event("s2"))
    await asyncio.sleep(0.02)
    assert len(rec.updates) == 1

    await channel.publish(_event("s1"))
    await asyncio.sleep(0.02)
    assert len(rec.updates) == 2

    await refresher.stop()
    assert channel.subscriber_count("s1") == 0


async def test_poll_interval_refreshes():
    rec = Recorder()
    refresher = ProgressRefresher("s1", rec.fetch, rec.on_update, channel=None,
                                  debounce=0, poll_interval=0.02)
    await refresher.start()
    await asyncio.sleep(0.11)
    await refresher.stop()
    assert len(rec.updates) >= 3


async def test_result_for_previous_subject_is_discarded():
    gate = asyncio.Event()
    updates = []

    async def fetch(student_id):
        if student_id == "s1":
            await gate.wait()
        return student_id

    async def on_update(data):
        updates.append(data)

    channel = CompletionChannel()
    refresher = ProgressRefresher("s1", fetch, on_update, channel=channel, debounce=0, poll_interval=None)
    await refresher.start()
    await asyncio.sleep(0.01)

    await refresher.set_subject("s2")
    gate.set()
    await asyncio.sleep(0.05)
    await refresher.stop()

    assert updates == ["s2"]
    assert channel.subscriber_count("s1") == 0


async def test_stop_cancels_in_flight_fetch():
    started = asyncio.Event()
    updates = []

    async def fetch(student_id):
        started.set()
        await asyncio.sleep(10)
        return student_id

    async def on_update(data):
        updates.append(data)

    refresher = ProgressRefresher("s1", fetch, on_update, channel=None, poll_interval=None)
    await refresher.start()
    await started.wait()
    await refresher.stop()

    assert not refresher.running
    assert updates == []
    refresher.trigger()
    await asyncio.sleep(0.01)
    assert updates == []


async def test_failed_fetch_does_not_stop_the_session():
    calls = 0
    updates = []

    async def fetch(student_id):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("database unavailable")
        return student_id

    async def on_update(data):
        updates.append(data)

    refresher = ProgressRefresher("s1", fetch, on_update, channel=None, debounce=0, poll_interval=None)
    await refresher.start()
    await asyncio.sleep(0.01)
    refresher.trigger()
    await asyncio.sleep(0.02)
    await refresher.stop()

    assert updates == ["s1"]


def test_channel_created_outside_a_loop_serves_later_loops():
    channel = CompletionChannel()

    async def contended_subscribe():
        async with channel.lock:
            waiter = asyncio.create_task(channel.subscribe("s1"))
            await asyncio.sleep(0)
        queue = await waiter
        assert await channel.publish(_event("s1")) >= 1
        await channel.unsubscribe("s1", queue)

    asyncio.run(contended_subscribe())
    asyncio.run(contended_subscribe())
    assert channel.subscriber_count("s1") == 0
