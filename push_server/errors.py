from __future__ import annotations

from datetime import datetime


class PushServerError(Exception):
    pass


class PastTimeError(PushServerError):
    def __init__(self, fires_at: datetime, now: datetime) -> None:
        self.fires_at = fires_at
        self.now = now
        super().__init__(f"Scheduled time {fires_at.isoformat()} is not after {now.isoformat()}")
