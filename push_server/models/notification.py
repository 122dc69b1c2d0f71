from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from push_server.utils.time import epoch_millis, utc_now


class Endpoint(BaseModel):
    """Browser PushSubscription as sent by the client; unknown fields are kept."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    endpoint: Any = ""
    keys: Any = Field(default_factory=dict)
    expiration_time: Any | None = Field(default=None, alias="expirationTime")

    def subscription_info(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_request(cls, raw: Any) -> Endpoint:
        if isinstance(raw, dict):
            return cls.model_validate(raw)
        return cls.model_validate({"raw": raw})


class NotificationPayload(BaseModel):
    title: str
    body: str
    created_at: datetime = Field(default_factory=utc_now)

    def to_json(self) -> str:
        return json.dumps(
            {"title": self.title, "body": self.body, "timestamp": epoch_millis(self.created_at)},
            ensure_ascii=False,
        )


class DeliveryOutcome(str, Enum):
    SENT = "sent"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


class DispatchResult(BaseModel):
    sent: int = 0
    failed: int = 0
    evicted: list[str] = []

    @property
    def attempted(self) -> int:
        return self.sent + self.failed
