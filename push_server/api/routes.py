from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from push_server.config import settings
from push_server.errors import PastTimeError
from push_server.models.notification import Endpoint
from push_server.models.schemas import (
    CancelResponse,
    HealthResponse,
    PublicKeyResponse,
    PushRequest,
    PushResponse,
    ScheduledListResponse,
    ScheduledTaskItem,
    SchedulePushRequest,
    SchedulePushResponse,
    SubscribeResponse,
)
from push_server.notifications.providers import build_provider
from push_server.notifications.service import NotificationService
from push_server.services.push_scheduler import PushScheduler
from push_server.storage.repository import SubscriptionRepository
from push_server.utils.time import iso_utc, utc_now

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["push"])

repository = SubscriptionRepository()
notification_service = NotificationService(repository=repository, provider=build_provider(settings))
push_scheduler = PushScheduler(notification_service)


def _target(subscription_id: str | None) -> str | None:
    if subscription_id is None:
        return None
    return subscription_id.strip() or None


@router.get("/vapid-public-key", response_model=PublicKeyResponse)
def vapid_public_key():
    return PublicKeyResponse(public_key=settings.vapid_public_key)


@router.post("/subscribe", response_model=SubscribeResponse)
def subscribe(descriptor: Any = Body(default=None)):
    subscription_id = repository.add(Endpoint.from_request(descriptor))
    logger.info("New subscription", extra={"subscription_id": subscription_id})
    return SubscribeResponse(subscription_id=subscription_id)


@router.post("/push", response_model=PushResponse)
async def push_now(raw: Any = Body(default=None)):
    payload = PushRequest.model_validate(raw) if isinstance(raw, dict) else PushRequest()
    notification = notification_service.build_payload(payload.title, payload.body)
    result = await notification_service.dispatch(notification, _target(payload.subscription_id))
    return PushResponse(sent=result.sent, failed=result.failed)


@router.post("/schedule-push", response_model=SchedulePushResponse)
async def schedule_push(payload: SchedulePushRequest):
    try:
        task = push_scheduler.schedule(
            fires_at=payload.scheduled_time,
            title=payload.title,
            body=payload.body,
            target_id=_target(payload.subscription_id),
        )
    except PastTimeError as exc:
        raise HTTPException(status_code=400, detail="Scheduled time must be in the future") from exc

    scheduled_time = iso_utc(task.fires_at)
    return SchedulePushResponse(
        task_id=task.task_id,
        message=f"Push scheduled for {scheduled_time}",
        scheduled_time=scheduled_time,
        delay_seconds=round(task.delay_seconds),
    )


@router.get("/scheduled", response_model=ScheduledListResponse)
def list_scheduled():
    tasks = [
        ScheduledTaskItem(id=task.task_id, scheduled_time=iso_utc(task.fires_at), title=task.title)
        for task in push_scheduler.list_pending()
    ]
    return ScheduledListResponse(tasks=tasks, subscription_count=repository.count())


@router.delete("/scheduled/{task_id}", response_model=CancelResponse)
async def cancel_scheduled(task_id: str):
    if not push_scheduler.cancel(task_id):
        raise HTTPException(status_code=404, detail="Scheduled task not found")
    return CancelResponse()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(
        time=iso_utc(utc_now()),
        subscriptions=repository.count(),
        scheduled_tasks=push_scheduler.count(),
    )
