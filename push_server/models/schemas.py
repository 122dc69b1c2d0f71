from __future__ import annotations

import datetime as dt
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


# Clients send whatever JSON they like here; anything non-null is rendered as text.
LenientText = Annotated[str | None, BeforeValidator(_as_text)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PublicKeyResponse(_CamelModel):
    public_key: str = Field(alias="publicKey")


class SubscribeResponse(_CamelModel):
    success: bool = True
    subscription_id: str = Field(alias="subscriptionId")


class PushRequest(_CamelModel):
    title: LenientText = None
    body: LenientText = None
    subscription_id: LenientText = Field(default=None, alias="subscriptionId")


class PushResponse(_CamelModel):
    success: bool = True
    sent: int
    failed: int


class SchedulePushRequest(_CamelModel):
    title: LenientText = None
    body: LenientText = None
    scheduled_time: dt.datetime = Field(alias="scheduledTime")
    subscription_id: LenientText = Field(default=None, alias="subscriptionId")


class SchedulePushResponse(_CamelModel):
    success: bool = True
    task_id: str = Field(alias="taskId")
    message: str
    scheduled_time: str = Field(alias="scheduledTime")
    delay_seconds: int = Field(alias="delaySeconds")


class ScheduledTaskItem(_CamelModel):
    id: str
    scheduled_time: str = Field(alias="scheduledTime")
    title: str | None = None


class ScheduledListResponse(_CamelModel):
    tasks: list[ScheduledTaskItem] = Field(default_factory=list)
    subscription_count: int = Field(alias="subscriptionCount")


class CancelResponse(_CamelModel):
    success: bool = True


class HealthResponse(_CamelModel):
    status: str = "ok"
    time: str
    subscriptions: int
    scheduled_tasks: int = Field(alias="scheduledTasks")
