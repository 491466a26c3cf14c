"""
Claim worker process.

Each worker runs an independent loop that locks a batch of incomplete tasks
with FOR UPDATE SKIP LOCKED, executes them and marks them complete in the same
transaction. A failed iteration rolls back, which releases the batch for the
next poll by this or any other worker.
"""

import asyncio
import logging
import os
import signal
import time
from datetime import datetime

from taskqueue.config import Settings, get_settings
from taskqueue.constants import SPAN_CLAIM_BATCH, SPAN_EXECUTE_TASK
from taskqueue.db import Database, TaskRepository
from taskqueue.observability.logging import bind_context, clear_context, setup_logging
from taskqueue.observability.metrics import get_metrics, setup_metrics
from taskqueue.observability.tracing import get_tracer, setup_tracing
from taskqueue.types.task import ClaimResult
from taskqueue.worker.handlers import Emitter, execute_task

logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    """Worker identifier from hostname and PID."""
    return f"{os.uname().nodename}-{os.getpid()}"


class ClaimWorker:
    """
    Task worker that polls for and executes tasks.

    Features:
    - Batch claiming using FOR UPDATE SKIP LOCKED
    - All-or-nothing batches: executions and state updates commit together
    - Bounded iteration time so a stalled transaction releases its locks
    - Graceful stop after the current iteration
    """

    def __init__(
        self,
        database: Database,
        worker_id: str | None = None,
        batch_size: int | None = None,
        idle_interval: float | None = None,
        iteration_timeout: float | None = None,
        eligible_only: bool | None = None,
        emit: Emitter = print,
        settings: Settings | None = None,
    ):
        """
        Initialize the worker.

        Args:
            database: Shared database handle.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            batch_size: Number of tasks to lock per iteration.
            idle_interval: Seconds to wait after an iteration made no progress.
            iteration_timeout: Upper bound on one iteration's transaction.
            eligible_only: Push the delay check into the claim query.
            emit: Sink receiving task output lines.
            settings: Optional settings, defaults to the cached settings.
        """
        settings = settings or get_settings()

        self.worker_id = worker_id or settings.worker_id or default_worker_id()
        self.batch_size = batch_size or settings.worker_batch_size
        self.idle_interval = (
            settings.worker_idle_interval_seconds if idle_interval is None else idle_interval
        )
        self.iteration_timeout = iteration_timeout or settings.worker_iteration_timeout_seconds
        self.eligible_only = (
            settings.worker_claim_eligible_only if eligible_only is None else eligible_only
        )

        self._database = database
        self._emit = emit
        self._running = False
        self._metrics = get_metrics()

    @property
    def running(self) -> bool:
        """Whether the polling loop is active."""
        return self._running

    async def start(self) -> None:
        """Run the polling loop until `stop` is called."""
        bind_context(worker_id=self.worker_id)
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "batch_size": self.batch_size}
        )

        self._running = True

        while self._running:
            try:
                result = await self.run_once()

                if result.is_idle:
                    await asyncio.sleep(self.idle_interval)

            except Exception as e:
                logger.exception(
                    f"Claim iteration rolled back: {e}",
                    extra={"worker_id": self.worker_id}
                )
                self._metrics.record_claim_failure(self.worker_id)
                await asyncio.sleep(self.idle_interval)

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})
        clear_context()

    async def stop(self) -> None:
        """Stop the worker after its current iteration."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def run_once(self, now: datetime | None = None) -> ClaimResult:
        """
        Run a single claim iteration.

        1. Begin a transaction.
        2. Lock up to `batch_size` incomplete tasks, skipping locked rows.
        3. Execute each task, collecting the ids that were handled.
        4. Mark the handled tasks complete.
        5. Commit, releasing the locks together with the state change.

        Any exception rolls the whole transaction back and propagates.

        Args:
            now: Reference time for eligibility and output, defaults to the
                current time at each step.

        Returns:
            ClaimResult describing the committed iteration.
        """
        start_time = time.monotonic()
        result = ClaimResult(worker_id=self.worker_id)

        async with asyncio.timeout(self.iteration_timeout):
            async with self._database.session() as session:
                repo = TaskRepository(session)

                with get_tracer().start_as_current_span(SPAN_CLAIM_BATCH) as span:
                    span.set_attribute("worker_id", self.worker_id)

                    tasks = await repo.claim_batch(
                        batch_size=self.batch_size,
                        now=now,
                        eligible_only=self.eligible_only,
                    )
                    result.claimed = len(tasks)
                    span.set_attribute("task_count", result.claimed)

                    for task in tasks:
                        with get_tracer().start_as_current_span(SPAN_EXECUTE_TASK) as task_span:
                            task_span.set_attribute("task_id", str(task.id))
                            task_id = execute_task(task, now=now, emit=self._emit)
                            task_span.set_attribute("executed", task_id is not None)
                        if task_id is not None:
                            result.completed_ids.append(task_id)

                    await repo.complete_tasks(result.completed_ids)

        result.duration_seconds = time.monotonic() - start_time

        if result.claimed:
            logger.info(
                f"Completed {result.completed} of {result.claimed} claimed tasks",
                extra={"worker_id": self.worker_id}
            )

        self._metrics.record_claim_iteration(
            worker_id=self.worker_id,
            claimed=result.claimed,
            completed=result.completed,
            duration_seconds=result.duration_seconds,
        )
        return result


class WorkerSupervisor:
    """
    Runs a fixed number of claim workers as long-lived asyncio tasks.

    Workers live independently of any request. A worker whose loop exits
    while the supervisor is running is replaced after `restart_delay`.
    """

    def __init__(
        self,
        database: Database,
        count: int | None = None,
        restart_delay: float | None = None,
        settings: Settings | None = None,
        **worker_options,
    ):
        """
        Initialize the supervisor.

        Args:
            database: Shared database handle passed to every worker.
            count: Number of workers to run.
            restart_delay: Seconds to wait before replacing an exited worker.
            settings: Optional settings, defaults to the cached settings.
            **worker_options: Extra keyword arguments for `ClaimWorker`.
        """
        self._settings = settings or get_settings()
        self._database = database
        self.count = self._settings.worker_count if count is None else count
        self.restart_delay = (
            self._settings.worker_restart_delay_seconds if restart_delay is None else restart_delay
        )
        self._worker_options = worker_options
        self._base_id = self._settings.worker_id or default_worker_id()

        self._running = False
        self._workers: dict[int, ClaimWorker] = {}
        self._tasks: list[asyncio.Task] = []

    @property
    def workers(self) -> list[ClaimWorker]:
        """Currently active workers."""
        return list(self._workers.values())

    def start(self) -> None:
        """Spawn the worker tasks."""
        self._running = True
        self._tasks = [
            asyncio.create_task(self._run_slot(index), name=f"claim-worker-{index}")
            for index in range(self.count)
        ]
        logger.info(f"Supervisor started {self.count} workers")

    async def join(self) -> None:
        """Wait for every worker task to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self, timeout: float | None = None) -> None:
        """
        Stop all workers gracefully.

        Args:
            timeout: Seconds to wait for in-flight iterations before
                cancelling them, defaults to the iteration timeout.
        """
        self._running = False
        for worker in self.workers:
            await worker.stop()

        if not self._tasks:
            return

        timeout = timeout or self._settings.worker_iteration_timeout_seconds
        _, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            # Cancellation rolls back the open transaction
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Supervisor stopped")

    async def _run_slot(self, index: int) -> None:
        """Keep one worker slot occupied while the supervisor runs."""
        while self._running:
            worker = ClaimWorker(
                self._database,
                worker_id=f"{self._base_id}-{index}",
                settings=self._settings,
                **self._worker_options,
            )
            self._workers[index] = worker

            try:
                await worker.start()
            except Exception:
                logger.exception(
                    "Worker crashed",
                    extra={"worker_id": worker.worker_id}
                )
            finally:
                self._workers.pop(index, None)

            if self._running:
                logger.warning(
                    "Restarting worker",
                    extra={"worker_id": worker.worker_id}
                )
                await asyncio.sleep(self.restart_delay)


async def run_async() -> None:
    """Run the worker process asynchronously."""
    settings = get_settings()
    setup_logging(settings)
    setup_metrics()
    setup_tracing()

    database = Database.from_settings(settings)
    supervisor = WorkerSupervisor(database, settings=settings)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(supervisor.stop())
        )

    try:
        supervisor.start()
        await supervisor.join()
    finally:
        await database.dispose()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
