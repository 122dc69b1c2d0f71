from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime

from push_server.errors import PastTimeError
from push_server.models.task import ScheduledTask, TaskState
from push_server.notifications.service import NotificationService
from push_server.utils.ids import TimeBasedIdGenerator
from push_server.utils.time import as_utc, utc_now

logger = logging.getLogger(__name__)


class PushScheduler:
    """Pending scheduled pushes, each armed as its own asyncio timer task.

    A task leaves the pending set exactly once: either the timer claims it just
    before dispatching, or ``cancel`` claims it first and the dispatch never runs.
    Must be used from the event loop that serves the application.
    """

    def __init__(
        self,
        notification_service: NotificationService,
        clock: Callable[[], datetime] = utc_now,
        id_generator: TimeBasedIdGenerator | None = None,
    ) -> None:
        self.notification_service = notification_service
        self.clock = clock
        self._ids = id_generator or TimeBasedIdGenerator()
        self._tasks: dict[str, ScheduledTask] = {}
        self._running: set[asyncio.Task] = set()
        self._lock = threading.Lock()

    def schedule(
        self,
        fires_at: datetime,
        title: str | None = None,
        body: str | None = None,
        target_id: str | None = None,
    ) -> ScheduledTask:
        fires_at = as_utc(fires_at)
        now = self.clock()
        delay = (fires_at - now).total_seconds()
        if delay <= 0:
            raise PastTimeError(fires_at, now)

        task = ScheduledTask(
            task_id=self._ids.next_id(),
            fires_at=fires_at,
            title=title,
            body=body,
            target_id=target_id,
            delay_seconds=delay,
        )
        handle = asyncio.get_running_loop().create_task(
            self._fire_after(task.task_id, delay),
            name=f"scheduled-push-{task.task_id}",
        )
        task.handle = handle
        self._running.add(handle)
        handle.add_done_callback(self._running.discard)
        with self._lock:
            self._tasks[task.task_id] = task

        logger.info(
            "Scheduled push created",
            extra={"task_id": task.task_id, "fires_at": fires_at.isoformat(), "delay_seconds": round(delay, 3)},
        )
        return task

    def list_pending(self) -> list[ScheduledTask]:
        with self._lock:
            pending = list(self._tasks.values())
        return sorted(pending, key=lambda t: t.fires_at)

    def count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def cancel(self, task_id: str) -> bool:
        task = self._retire(task_id, TaskState.CANCELLED)
        if task is None:
            return False
        if task.handle is not None:
            task.handle.cancel()
        logger.info("Scheduled push cancelled", extra={"task_id": task_id})
        return True

    def shutdown(self) -> int:
        with self._lock:
            pending = list(self._tasks.values())
            self._tasks.clear()
        for task in pending:
            task.state = TaskState.CANCELLED
            if task.handle is not None:
                task.handle.cancel()
        if pending:
            logger.info("Dropped pending scheduled pushes on shutdown", extra={"count": len(pending)})
        return len(pending)

    def _retire(self, task_id: str, state: TaskState) -> ScheduledTask | None:
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is not None:
                task.state = state
        return task

    async def _fire_after(self, task_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        task = self._retire(task_id, TaskState.FIRED)
        if task is None:
            return

        logger.info("Scheduled push fired", extra={"task_id": task_id, "target_id": task.target_id})
        payload = self.notification_service.build_payload(task.title, task.body, scheduled=True)
        try:
            result = await self.notification_service.dispatch(payload, task.target_id)
        except Exception as exc:
            logger.exception("Scheduled push dispatch failed", extra={"task_id": task_id, "error": str(exc)})
            return
        logger.info(
            "Scheduled push delivered",
            extra={"task_id": task_id, "sent": result.sent, "failed": result.failed},
        )
