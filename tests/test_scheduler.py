"""Tests for the bounded-concurrency scheduler."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from sourcemap_uploader.errors import ScheduleError
from sourcemap_uploader.models import FailureReason, PluginOptions, SettlementReport, UploadOutcome
from sourcemap_uploader.orchestrator.models import UploadTask
from sourcemap_uploader.orchestrator.scheduler import ConcurrencyScheduler
from sourcemap_uploader.services.uploader import SourceMapUploader


class Tracker:
    """Builds tasks that record how many of them are in flight."""

    def __init__(self):
        self.active = 0
        self.peak = 0
        self.started = []
        self.finished = []
        self.finished_at_start = {}

    def task(self, name, delay=0.01, fail=False):
        async def run():
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.started.append(name)
            self.finished_at_start[name] = len(self.finished)
            try:
                await asyncio.sleep(delay)
                if fail:
                    raise RuntimeError(f"{name} exploded")
                return UploadOutcome.ok(name, {"name": name})
            finally:
                self.active -= 1
                self.finished.append(name)

        return UploadTask(name, run)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3, 5])
@pytest.mark.parametrize("count", [0, 1, 4, 10])
async def test_never_exceeds_limit_and_keeps_order(limit, count):
    tracker = Tracker()
    # Uneven delays so completions race out of input order
    tasks = [tracker.task(f"t{i}.js.map", delay=0.002 * ((i * 7) % 5 + 1)) for i in range(count)]

    report = await ConcurrencyScheduler().schedule(tasks, limit)

    assert isinstance(report, SettlementReport)
    assert len(report) == count
    assert [o.filename for o in report] == [f"t{i}.js.map" for i in range(count)]
    assert tracker.peak <= limit
    assert tracker.started == [f"t{i}.js.map" for i in range(count)]
    if count:
        assert tracker.peak == min(limit, count)


@pytest.mark.asyncio
async def test_third_task_waits_for_a_free_slot():
    tracker = Tracker()
    tasks = [tracker.task(name, delay=0.05) for name in ("A", "B", "C")]

    report = await ConcurrencyScheduler().schedule(tasks, 2)

    assert tracker.finished_at_start["A"] == 0
    assert tracker.finished_at_start["B"] == 0
    assert tracker.finished_at_start["C"] >= 1
    assert [o.filename for o in report] == ["A", "B", "C"]
    assert all(o.success for o in report)


@pytest.mark.asyncio
async def test_mixed_batch_isolates_failure():
    tracker = Tracker()
    tasks = [tracker.task(f"f{i}", fail=(i == 2)) for i in range(1, 6)]

    report = await ConcurrencyScheduler().schedule(tasks, 2)

    assert len(report) == 5
    assert [o.success for o in report] == [True, False, True, True, True]
    assert len(report.succeeded) == 4
    failure = report[1]
    assert failure.filename == "f2"
    assert failure.reason == FailureReason.TASK_ERROR
    assert "f2 exploded" in failure.error
    assert tracker.started == ["f1", "f2", "f3", "f4", "f5"]


@pytest.mark.asyncio
async def test_task_raising_immediately_does_not_stop_later_tasks():
    async def boom():
        raise ValueError()

    tracker = Tracker()
    tasks = [UploadTask("bad.map", boom), tracker.task("good.map")]

    report = await ConcurrencyScheduler().schedule(tasks, 1)

    assert report[0].reason == FailureReason.TASK_ERROR
    assert report[0].error == "ValueError"
    assert report[1].success


@pytest.mark.asyncio
async def test_timed_out_upload_releases_its_slot():
    cancelled = asyncio.Event()

    async def hang(*args, **kwargs):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    api_client = AsyncMock()
    api_client.post_file.side_effect = hang
    options = PluginOptions(token="t", dsn="https://x.example.com", production_source_map=False)
    uploader = SourceMapUploader(api_client, options, timeout=0.05)

    tracker = Tracker()
    tasks = [
        UploadTask("slow.js.map", lambda: uploader.upload("slow.js.map", b"{}")),
        tracker.task("fast.js.map"),
    ]

    report = await asyncio.wait_for(ConcurrencyScheduler().schedule(tasks, 1), timeout=2)

    assert report[0].reason == FailureReason.TIMEOUT
    assert report[1].success
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_plain_return_value_is_wrapped_as_success():
    async def run():
        return {"id": 7}

    report = await ConcurrencyScheduler().schedule([UploadTask("a.map", run)], 3)

    assert report[0].success
    assert report[0].response == {"id": 7}


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -1, True, 1.5, "2", None])
async def test_invalid_limit_raises(limit):
    with pytest.raises(ScheduleError):
        await ConcurrencyScheduler().schedule([], limit)


@pytest.mark.asyncio
async def test_invalid_tasks_raise():
    scheduler = ConcurrencyScheduler()
    with pytest.raises(ScheduleError):
        await scheduler.schedule(None, 2)
    with pytest.raises(ScheduleError):
        await scheduler.schedule(42, 2)
    with pytest.raises(ScheduleError):
        await scheduler.schedule(["not callable"], 2)


@pytest.mark.asyncio
async def test_schedule_error_is_a_value_error():
    with pytest.raises(ValueError):
        await ConcurrencyScheduler().schedule([], 0)


@pytest.mark.asyncio
async def test_events_are_emitted_per_task():
    tracker = Tracker()
    tasks = [tracker.task("ok.map"), tracker.task("bad.map", fail=True)]
    scheduler = ConcurrencyScheduler()
    seen = {"start": [], "complete": [], "fail": [], "finish": []}

    scheduler.on_task_start(lambda task: seen["start"].append(task.name))
    scheduler.on_task_complete(lambda outcome: seen["complete"].append(outcome.filename))

    async def on_fail(outcome):
        seen["fail"].append(outcome.filename)

    scheduler.on_task_fail(on_fail)
    scheduler.on_finish(lambda report: seen["finish"].append(len(report)))

    await scheduler.schedule(tasks, 2)

    assert sorted(seen["start"]) == ["bad.map", "ok.map"]
    assert seen["complete"] == ["ok.map"]
    assert seen["fail"] == ["bad.map"]
    assert seen["finish"] == [2]


@pytest.mark.asyncio
async def test_listener_errors_do_not_affect_scheduling():
    tracker = Tracker()
    scheduler = ConcurrencyScheduler()

    def broken(_):
        raise RuntimeError("listener broke")

    scheduler.on_task_start(broken)
    scheduler.on_task_complete(broken)

    report = await scheduler.schedule([tracker.task("a.map"), tracker.task("b.map")], 1)

    assert report.all_success


@pytest.mark.asyncio
async def test_task_raising_cancelled_error_is_captured():
    async def cancels_itself():
        raise asyncio.CancelledError()

    tracker = Tracker()
    tasks = [UploadTask("b.map", cancels_itself), tracker.task("g.map")]

    report = await ConcurrencyScheduler().schedule(tasks, 2)

    assert len(report) == 2
    assert report[0].reason == FailureReason.TASK_ERROR
    assert report[0].error == "CancelledError"
    assert report[1].success


@pytest.mark.asyncio
async def test_cancelling_the_run_cancels_started_tasks():
    cancelled = []
    started = asyncio.Event()

    def hanging(name):
        async def run():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(name)
                raise
        return UploadTask(name, run)

    tasks = [hanging(f"h{i}.map") for i in range(4)]
    run = asyncio.create_task(ConcurrencyScheduler().schedule(tasks, 2))
    await started.wait()

    run.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run

    assert sorted(cancelled) == ["h0.map", "h1.map"]
