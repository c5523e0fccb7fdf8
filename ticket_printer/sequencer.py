"""
Print job sequencer for the ticket printer client.
Serializes every write to the printer: one FIFO of documents processed by a
single worker, plus short hardware signals that share the same device lock.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque, Optional

from .commands import buzzer_sequence
from .config import config
from .errors import NotConnected, PrinterClientError
from .executor import CommandExecutor
from .jobs import JobKind, JobState, PrintJob
from .renderer import LayoutRenderer
from .utils.logger import logger


class JobSequencer:
    """
    Single-writer job queue in front of the command executor.

    Jobs run in arrival order. When a customer receipt completes, its kitchen
    ticket goes to the head of the queue and becomes eligible after the
    inter-document delay, so each order prints receipt then kitchen ticket
    before the next order starts. A failed job is logged and dropped; the
    queue moves on.
    """

    def __init__(self, executor: CommandExecutor, renderer: Optional[LayoutRenderer] = None,
                 kitchen_delay: Optional[float] = None,
                 kitchen_enabled: Optional[bool] = None,
                 on_result: Optional[Callable[[PrintJob], None]] = None):
        self.executor = executor
        self.renderer = renderer or LayoutRenderer()
        self.kitchen_delay = config.kitchen_delay if kitchen_delay is None else kitchen_delay
        self.kitchen_enabled = config.KITCHEN_TICKET_ENABLED if kitchen_enabled is None else kitchen_enabled
        self.on_result = on_result

        self._queue: Deque[PrintJob] = deque()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._device_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False

        # Sequencer statistics
        self.stats = {
            "jobs_queued": 0,
            "jobs_completed": 0,
            "jobs_failed": 0,
            "signals_sent": 0,
        }

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    async def start(self):
        """Start the worker loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("📋 Job sequencer started",
                    kitchen_enabled=self.kitchen_enabled,
                    kitchen_delay=f"{self.kitchen_delay:.2f}s")

    async def stop(self):
        """Stop the worker after the job in progress, if any, finishes."""
        self._running = False
        self._wakeup.set()
        if self._task:
            await self._task
            self._task = None
        if self._queue:
            logger.warning(f"⚠️ Sequencer stopped with {len(self._queue)} job(s) pending")
        logger.info("📋 Job sequencer stopped")

    def submit(self, job: PrintJob) -> PrintJob:
        """Append a job to the queue. Never blocks, so arrival order is queue order."""
        self._queue.append(job)
        self._admitted(job)
        return job

    async def join(self):
        """Wait until every queued job has reached a terminal state."""
        await self._idle.wait()

    async def send_signal(self, gated: bool = True) -> bool:
        """
        Sound the buzzer without going through the document queue.

        The device lock keeps the signal from landing inside a document
        being written.

        Args:
            gated: Require connectivity before emitting

        Returns:
            True if the signal was written
        """
        async with self._device_lock:
            try:
                await self.executor.execute(buzzer_sequence(), require_connection=gated)
            except NotConnected:
                logger.error("❌ Printer is not connected, buzzer skipped")
                return False
            except PrinterClientError as e:
                logger.error(f"❌ Error sounding buzzer: {str(e)}")
                return False

        self.stats["signals_sent"] += 1
        logger.signal_sent(gated)
        return True

    def _admitted(self, job: PrintJob):
        self.stats["jobs_queued"] += 1
        self._idle.clear()
        self._wakeup.set()
        logger.job_queued(job.id, job.kind.value, job.order_id, len(self._queue))

    async def _run(self):
        """Process jobs sequentially."""
        while self._running:
            if not self._queue:
                self._idle.set()
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            job = self._queue.popleft()

            wait = job.not_before - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)

            await self._process(job)

        self._idle.set()

    async def _process(self, job: PrintJob):
        logger.job_started(job.id, job.kind.value, job.order_id)
        try:
            job.transition(JobState.RENDERING)
            commands = self.renderer.render(job.kind, job.document)

            job.transition(JobState.EXECUTING)
            async with self._device_lock:
                await self.executor.execute(commands)

            job.transition(JobState.COMPLETED)

        except PrinterClientError as e:
            self._failed(job, f"{type(e).__name__}: {str(e)}")
            return
        except Exception as e:
            # Defect in rendering or encoding; contained to this job
            self._failed(job, f"Unexpected {type(e).__name__}: {str(e)}")
            return

        self.stats["jobs_completed"] += 1
        logger.job_complete(job.id, job.kind.value, job.order_id, len(commands))
        self._report(job)

        if job.kind is JobKind.CUSTOMER_RECEIPT and self.kitchen_enabled:
            kitchen = job.derive_kitchen_ticket(self.kitchen_delay)
            self._queue.appendleft(kitchen)
            self._admitted(kitchen)

    def _failed(self, job: PrintJob, error: str):
        job.fail(error)
        self.stats["jobs_failed"] += 1
        logger.job_failed(job.id, job.kind.value, job.order_id, job.error)
        self._report(job)

    def _report(self, job: PrintJob):
        if self.on_result is None:
            return
        try:
            self.on_result(job)
        except Exception as e:
            logger.error(f"❌ Job result callback error: {str(e)}")

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "queue_size": len(self._queue),
            "stats": self.stats.copy(),
        }
