from __future__ import annotations

import asyncio
import logging

from push_server.config import get_settings
from push_server.models.notification import DeliveryOutcome, DispatchResult, Endpoint, NotificationPayload
from push_server.notifications.providers import BaseNotificationProvider, build_provider
from push_server.storage.repository import SubscriptionRepository

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "📬 New message"
DEFAULT_BODY = "You have a new notification"
SCHEDULED_DEFAULT_TITLE = "⏰ Scheduled reminder"
SCHEDULED_DEFAULT_BODY = "This is the scheduled push you set up!"


class NotificationService:
    def __init__(
        self,
        repository: SubscriptionRepository | None = None,
        provider: BaseNotificationProvider | None = None,
    ) -> None:
        self.repository = repository or SubscriptionRepository()
        self.provider = provider or build_provider(get_settings())

    @staticmethod
    def build_payload(title: str | None, body: str | None, scheduled: bool = False) -> NotificationPayload:
        if scheduled:
            return NotificationPayload(title=title or SCHEDULED_DEFAULT_TITLE, body=body or SCHEDULED_DEFAULT_BODY)
        return NotificationPayload(title=title or DEFAULT_TITLE, body=body or DEFAULT_BODY)

    def resolve_targets(self, target_id: str | None) -> list[tuple[str, Endpoint]]:
        if target_id is None:
            return self.repository.list_all()
        endpoint = self.repository.get(target_id)
        if endpoint is None:
            # The subscription may have been evicted between scheduling and firing.
            logger.info("Push target not registered", extra={"subscription_id": target_id})
            return []
        return [(target_id, endpoint)]

    async def dispatch(self, payload: NotificationPayload, target_id: str | None = None) -> DispatchResult:
        targets = self.resolve_targets(target_id)
        result = DispatchResult()
        if not targets:
            return result

        data = payload.to_json()
        outcomes = await asyncio.gather(
            *(self._deliver(subscription_id, endpoint, data) for subscription_id, endpoint in targets)
        )

        for (subscription_id, _), outcome in zip(targets, outcomes):
            if outcome is DeliveryOutcome.SENT:
                result.sent += 1
                continue
            result.failed += 1
            if outcome is DeliveryOutcome.PERMANENT_FAILURE:
                self.repository.remove(subscription_id)
                result.evicted.append(subscription_id)
                logger.info("Evicted expired subscription", extra={"subscription_id": subscription_id})

        logger.info(
            "Push dispatch finished",
            extra={"targets": len(targets), "sent": result.sent, "failed": result.failed},
        )
        return result

    async def _deliver(self, subscription_id: str, endpoint: Endpoint, data: str) -> DeliveryOutcome:
        try:
            outcome = await self.provider.send(endpoint, data)
        except Exception as exc:
            logger.exception(
                "Push provider raised during delivery",
                extra={"subscription_id": subscription_id, "provider": self.provider.name, "error": str(exc)},
            )
            return DeliveryOutcome.TRANSIENT_FAILURE
        if outcome is not DeliveryOutcome.SENT:
            logger.warning(
                "Push delivery failed",
                extra={"subscription_id": subscription_id, "outcome": outcome.value},
            )
        return outcome
