from typing import Callable, Iterable, List, Set
import asyncio
import logging

from sourcemap_uploader.errors import ScheduleError
from sourcemap_uploader.models import FailureReason, SettlementReport, UploadOutcome
from sourcemap_uploader.orchestrator.models import UploadTask
from sourcemap_uploader.utils.events import EventEmitter
logger = logging.getLogger(__name__)


class ConcurrencyScheduler:
    """
    Runs upload tasks with at most ``limit`` in flight.

    Tasks are started in input order. Once the active set is full the walk
    waits for whichever active task finishes first, then admits the next one.
    Each task is settled into an UploadOutcome at its own boundary, so one
    failure never stops the run.

    Usage:
        scheduler = ConcurrencyScheduler()
        scheduler.on_task_fail(lambda outcome: print(outcome.error))
        report = await scheduler.schedule(tasks, limit=5)
    """

    def __init__(self):
        self._events = EventEmitter()

    # Event subscription methods
    def on_task_start(self, callback: Callable[[UploadTask], None]):
        """Called when a task is admitted. Receives the UploadTask."""
        self._events.on("task_start", callback)

    def on_task_complete(self, callback: Callable[[UploadOutcome], None]):
        """Called when a task succeeds. Receives its UploadOutcome."""
        self._events.on("task_complete", callback)

    def on_task_fail(self, callback: Callable[[UploadOutcome], None]):
        """Called when a task fails. Receives its UploadOutcome."""
        self._events.on("task_fail", callback)

    def on_finish(self, callback: Callable[[SettlementReport], None]):
        """Called once every task has settled. Receives the SettlementReport."""
        self._events.on("finish", callback)

    async def schedule(self, tasks: Iterable[UploadTask], limit: int) -> SettlementReport:
        """
        Run ``tasks`` with at most ``limit`` concurrently active.

        Returns only after every task has settled. The report holds one
        outcome per task, in input order.

        Raises:
            ScheduleError: limit is not a positive integer or tasks is not
                an iterable of UploadTask.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ScheduleError(f"concurrency limit must be a positive integer, got {limit!r}")
        if tasks is None or isinstance(tasks, (str, bytes)):
            raise ScheduleError(f"tasks must be an iterable of UploadTask, got {type(tasks).__name__}")
        try:
            task_list = list(tasks)
        except TypeError:
            raise ScheduleError(
                f"tasks must be an iterable of UploadTask, got {type(tasks).__name__}"
            ) from None
        for task in task_list:
            if not callable(task):
                raise ScheduleError(f"task is not callable: {task!r}")

        total = len(task_list)
        logger.debug(f"Scheduling {total} task(s) with limit {limit}")

        active: Set[asyncio.Task] = set()
        results: List[asyncio.Task] = []

        try:
            for index, task in enumerate(task_list, 1):
                running = asyncio.create_task(self._settle(task, index, total))
                results.append(running)
                active.add(running)

                if len(active) >= limit:
                    done, _ = await asyncio.wait(active, return_when=asyncio.FIRST_COMPLETED)
                    active -= done

            outcomes = await asyncio.gather(*results)
        except BaseException:
            await self._cancel_outstanding(results)
            raise

        report = SettlementReport(tuple(outcomes))

        logger.debug(
            f"Scheduling finished: {len(report.succeeded)} successful, {len(report.failed)} failed"
        )
        await self._events.emit("finish", report)
        return report

    async def _settle(self, task: UploadTask, index: int, total: int) -> UploadOutcome:
        """Run one task and capture whatever it produces as an UploadOutcome."""
        name = _task_name(task)
        await self._events.emit("task_start", task)
        logger.debug(f"[{index}/{total}] Starting: {name}")

        try:
            outcome = await task()
        except asyncio.CancelledError as e:
            # Only a cancellation aimed at this run propagates
            if asyncio.current_task().cancelling():
                raise
            error_msg = str(e) or type(e).__name__
            logger.debug(f"[{index}/{total}] Task cancelled itself: {name}: {error_msg}")
            outcome = UploadOutcome.fail(name, FailureReason.TASK_ERROR, error_msg)
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.debug(f"[{index}/{total}] Task raised: {name}: {error_msg}")
            outcome = UploadOutcome.fail(name, FailureReason.TASK_ERROR, error_msg)
        else:
            if not isinstance(outcome, UploadOutcome):
                outcome = UploadOutcome.ok(name, outcome)

        event = "task_complete" if outcome.success else "task_fail"
        await self._events.emit(event, outcome)
        return outcome

    @staticmethod
    async def _cancel_outstanding(tasks: List[asyncio.Task]) -> None:
        """Cancel tasks still running when the run itself is abandoned."""
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)


def _task_name(task) -> str:
    return getattr(task, "name", None) or getattr(task, "__name__", None) or repr(task)
