from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from pywebpush import WebPushException, webpush

from push_server.config import Settings
from push_server.models.notification import DeliveryOutcome, Endpoint

logger = logging.getLogger(__name__)

# Push services answer 404/410 once a subscription has expired or been revoked.
PERMANENT_FAILURE_STATUS_CODES = frozenset({404, 410})


class BaseNotificationProvider(ABC):
    name: str = "base"

    @abstractmethod
    async def send(self, endpoint: Endpoint, data: str) -> DeliveryOutcome:
        raise NotImplementedError


class MockNotificationProvider(BaseNotificationProvider):
    name = "mock"

    def __init__(self) -> None:
        self.deliveries: list[tuple[Endpoint, str]] = []

    async def send(self, endpoint: Endpoint, data: str) -> DeliveryOutcome:
        self.deliveries.append((endpoint, data))
        logger.info("Mock push delivered", extra={"endpoint": str(endpoint.endpoint)[:60]})
        return DeliveryOutcome.SENT


class WebPushNotificationProvider(BaseNotificationProvider):
    name = "webpush"

    def __init__(
        self,
        private_key: str,
        claims_email: str,
        ttl_seconds: int = 86400,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.private_key = private_key
        self.claims_email = claims_email
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds

    def _claims(self) -> dict[str, str]:
        # pywebpush fills in "aud" and "exp" on the dict it is given, so build a new one per call.
        subject = self.claims_email
        if not subject.startswith(("mailto:", "https:")):
            subject = f"mailto:{subject}"
        return {"sub": subject}

    def _send_blocking(self, endpoint: Endpoint, data: str) -> None:
        webpush(
            subscription_info=endpoint.subscription_info(),
            data=data,
            vapid_private_key=self.private_key,
            vapid_claims=self._claims(),
            ttl=self.ttl_seconds,
            timeout=self.timeout_seconds,
        )

    async def send(self, endpoint: Endpoint, data: str) -> DeliveryOutcome:
        try:
            await asyncio.to_thread(self._send_blocking, endpoint, data)
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            if status_code in PERMANENT_FAILURE_STATUS_CODES:
                logger.info(
                    "Push endpoint is gone",
                    extra={"endpoint": str(endpoint.endpoint)[:60], "status_code": status_code},
                )
                return DeliveryOutcome.PERMANENT_FAILURE
            logger.warning(
                "Web push rejected",
                extra={"endpoint": str(endpoint.endpoint)[:60], "status_code": status_code, "error": str(exc)},
            )
            return DeliveryOutcome.TRANSIENT_FAILURE
        except Exception as exc:
            logger.exception("Web push delivery failed", extra={"endpoint": str(endpoint.endpoint)[:60], "error": str(exc)})
            return DeliveryOutcome.TRANSIENT_FAILURE
        return DeliveryOutcome.SENT


def build_provider(settings: Settings) -> BaseNotificationProvider:
    if settings.notification_provider == "mock":
        return MockNotificationProvider()
    if not settings.vapid_private_key:
        logger.warning("VAPID_PRIVATE_KEY is not set; falling back to the mock push provider")
        return MockNotificationProvider()
    return WebPushNotificationProvider(
        private_key=settings.vapid_private_key,
        claims_email=settings.vapid_claims_email,
        ttl_seconds=settings.webpush_ttl_seconds,
        timeout_seconds=settings.webpush_timeout_seconds,
    )
