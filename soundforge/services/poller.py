"""
Client-side job poller.

Runs on the requesting client, not the server: keeps the set of jobs that have
not finished, checks them one after another every few seconds, and reports
each job once when it reaches a terminal state.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from soundforge.config import POLL_INTERVAL_SECONDS
from soundforge.errors import NotFoundError

logger = logging.getLogger(__name__)

TERMINAL = ('completed', 'failed')

CheckFn = Callable[[str], Awaitable[Dict[str, Any]]]
NotifyFn = Callable[[str, Dict[str, Any]], Any]


class JobPoller:
    """
    Cooperative, single-task poller.

    Checks run sequentially so two CDN migrations for the same user never
    overlap. The loop exits on its own once nothing is outstanding and is
    restarted by ``track``; ``stop`` cancels it with no timers left behind.
    """

    def __init__(
        self,
        check: CheckFn,
        notify: Optional[NotifyFn] = None,
        interval: float = POLL_INTERVAL_SECONDS,
    ):
        self._check = check
        self._notify = notify
        self._interval = interval
        self._outstanding: Dict[str, None] = {}
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def outstanding(self) -> List[str]:
        return list(self._outstanding)

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start polling whatever is outstanding."""
        self._running = True
        self._ensure_task()

    async def stop(self):
        """Stop polling and cancel the pending sleep, if any."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def track(self, job_id: str):
        """Add a job to the outstanding set."""
        self._outstanding[job_id] = None
        self._ensure_task()

    def untrack(self, job_id: str):
        self._outstanding.pop(job_id, None)

    def _ensure_task(self):
        if self._running and self._outstanding and not self.is_polling:
            self._task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self):
        """Main polling loop - one pass per interval until nothing is left."""
        while self._running and self._outstanding:
            await asyncio.sleep(self._interval)
            await self.poll_once()

    async def poll_once(self):
        """Check every outstanding job once, in order."""
        for job_id in list(self._outstanding):
            try:
                result = await self._check(job_id)
            except NotFoundError:
                logger.warning('Job %s no longer exists, dropping it', job_id)
                self.untrack(job_id)
                continue
            except Exception as e:
                # Log but keep polling the rest
                logger.warning('Status check for job %s failed: %s', job_id, e)
                continue

            if result.get('status') in TERMINAL:
                self.untrack(job_id)
                await self._report(job_id, result)

    async def _report(self, job_id: str, result: Dict[str, Any]):
        if self._notify is None:
            return
        try:
            outcome = self._notify(job_id, result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception('Notification for job %s failed', job_id)
