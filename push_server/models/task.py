from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class TaskState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass
class ScheduledTask:
    task_id: str
    fires_at: datetime
    title: str | None
    body: str | None
    target_id: str | None = None
    delay_seconds: float = 0.0
    state: TaskState = TaskState.PENDING
    handle: asyncio.Task | None = field(default=None, repr=False, compare=False)
