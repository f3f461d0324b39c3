"""Background refresh keeping the local store close to the remote."""

import asyncio
import logging

from .engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)


class BackgroundSync:
    """Periodic pull plus push-settle-pull after local changes.

    Two pushes in quick succession can interleave with a periodic pull, so a
    pull may briefly show the state of the first push. The next cycle
    converges.
    """

    def __init__(
        self,
        engine: SyncEngine,
        refresh_interval_ms: int = 1000,
        settle_delay_ms: int = 300,
    ):
        """Initialize the background refresher.

        Args:
            engine: Sync engine to drive.
            refresh_interval_ms: Delay between periodic pulls.
            settle_delay_ms: Delay between a change-triggered push and its pull.
        """
        self.engine = engine
        self._interval = refresh_interval_ms / 1000
        self._settle_delay = settle_delay_ms / 1000
        self._task: asyncio.Task | None = None
        self._change_tasks: set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start periodic pulls as a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Background sync started (interval={self._interval * 1000:.0f}ms)")

    async def stop(self) -> None:
        """Stop periodic pulls and cancel pending change propagation."""
        self._running = False
        tasks = list(self._change_tasks)
        if self._task:
            tasks.append(self._task)

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._task = None
        self._change_tasks.clear()
        logger.info("Background sync stopped")

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set, then stop cleanly."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def _run_loop(self) -> None:
        while self._running:
            try:
                result = await self.engine.pull()
                logger.debug(f"Refresh: {result.status.value}, pulled={result.notes_pulled}")
            except Exception as e:
                logger.error(f"Background pull error: {e}", exc_info=True)

            await asyncio.sleep(self._interval)

    def notify_local_change(self) -> asyncio.Task:
        """Propagate a local mutation: push now, pull after a short delay.

        Must be called from within the running event loop. The task's result
        is the push outcome, or None if propagation raised.
        """
        task = asyncio.create_task(self._propagate_change())
        self._change_tasks.add(task)
        task.add_done_callback(self._change_tasks.discard)
        return task

    async def _propagate_change(self) -> SyncResult | None:
        try:
            result = await self.engine.push()
            if not result.ok:
                logger.warning(f"Change push failed: {result.error}")
                return result

            await asyncio.sleep(self._settle_delay)
            await self.engine.pull()
            return result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Change propagation error: {e}", exc_info=True)
            return None
