"""
Pytest fixtures and in-memory collaborators for the premium push tests
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from premium_push.schemas.device import Device
from premium_push.schemas.dispatch import DeliveryResult, PushPayload
from premium_push.schemas.user import User


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeUserSource:

    def __init__(self, users: List[User]) -> None:
        self.users = users
        self.lookups: List[str] = []

    async def find_active_user_by_email(self, email: str) -> Optional[User]:
        self.lookups.append(email)
        for user in self.users:
            if user.email == email and user.is_active:
                return user
        return None


class FakeDeviceSource:

    def __init__(self, devices: List[Device]) -> None:
        self.devices = list(devices)
        self.deactivated: List[str] = []

    async def list_active_devices(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Device]:
        found = [d for d in self.devices if d.is_active and d.device_id not in self.deactivated]
        if user_id is not None:
            found = [d for d in found if d.user_id == user_id]
        found.sort(key=lambda d: d.created_at or utc(1970, 1, 1), reverse=True)
        return found[:limit] if limit is not None else found

    async def deactivate(self, device_id: str) -> bool:
        self.deactivated.append(device_id)
        return True


class FakeSender:
    """Answers per token; unknown tokens are delivered."""

    def __init__(self, results: Optional[Dict[str, object]] = None, delay: float = 0.0) -> None:
        self.results = results or {}
        self.delay = delay
        self.sent: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, token: str, payload: PushPayload) -> DeliveryResult:
        self.sent.append(token)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.results.get(token, DeliveryResult.ok())
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture
def payload() -> PushPayload:
    return PushPayload(title="BTC alert", body="BTC crossed 70,000", data={"symbol": "BTCUSDT"})


@pytest.fixture
def premium_user() -> User:
    return User(id="u-1", email="premium@example.com", plan="premium", expiry_date=utc(2099, 1, 1))


@pytest.fixture
def trial_user() -> User:
    return User(id="u-2", email="trial@example.com", plan="free", trial_started_at=utc(2024, 1, 1))
