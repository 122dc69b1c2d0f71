from __future__ import annotations

import asyncio
import json
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from push_server.models.notification import DeliveryOutcome, Endpoint
from push_server.notifications.providers import BaseNotificationProvider
from push_server.notifications.service import NotificationService
from push_server.services.push_scheduler import PushScheduler
from push_server.storage.repository import SubscriptionRepository


class ScriptedProvider(BaseNotificationProvider):
    """Returns a preset outcome per endpoint URL; SENT when nothing is scripted."""

    name = "scripted"

    def __init__(self) -> None:
        self.outcomes: dict[str, DeliveryOutcome | Exception] = {}
        self.calls: list[tuple[str, dict]] = []
        self.gate: asyncio.Event | None = None

    async def send(self, endpoint: Endpoint, data: str) -> DeliveryOutcome:
        self.calls.append((endpoint.endpoint, json.loads(data)))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.get(endpoint.endpoint, DeliveryOutcome.SENT)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def repository() -> SubscriptionRepository:
    return SubscriptionRepository()


@pytest.fixture
def service(repository, provider) -> NotificationService:
    return NotificationService(repository=repository, provider=provider)


@pytest.fixture
def test_ctx(repository, provider, service, monkeypatch) -> Generator[dict, None, None]:
    from push_server.api import routes

    scheduler = PushScheduler(service)
    monkeypatch.setattr(routes, "repository", repository)
    monkeypatch.setattr(routes, "notification_service", service)
    monkeypatch.setattr(routes, "push_scheduler", scheduler)

    from push_server.app import app

    with TestClient(app) as client:
        yield {
            "client": client,
            "repository": repository,
            "provider": provider,
            "scheduler": scheduler,
        }
