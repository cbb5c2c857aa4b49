"""
Tests for the MongoDB repositories against mocked motor collections
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import DESCENDING

from premium_push.repositories.device_repository import DeviceRepository
from premium_push.repositories.user_repository import UserRepository
from premium_push.schemas.device import Platform
from premium_push.schemas.user import Plan


def _device_db(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return db


@pytest.mark.asyncio
async def test_find_active_user_by_email_maps_document():
    collection = MagicMock()
    collection.find_one = AsyncMock(
        return_value={
            "_id": 42,
            "email": "premium@example.com",
            "plan": "premium",
            "is_active": True,
            "expiry_date": datetime(2099, 1, 1, tzinfo=timezone.utc),
        }
    )
    db = MagicMock()
    db.get_collection.return_value = collection

    user = await UserRepository(db).find_active_user_by_email("premium@example.com")

    collection.find_one.assert_awaited_once_with({"email": "premium@example.com", "is_active": True})
    assert user.id == "42"
    assert user.plan is Plan.PREMIUM
    assert user.trial_started_at is None


@pytest.mark.asyncio
async def test_find_active_user_by_email_returns_none_when_missing():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    db = MagicMock()
    db.get_collection.return_value = collection

    assert await UserRepository(db).find_active_user_by_email("ghost@example.com") is None


@pytest.mark.asyncio
async def test_register_keeps_existing_link_when_user_is_unknown():
    collection = MagicMock()
    collection.find_one_and_update = AsyncMock(
        return_value={"device_id": "d1", "platform": "ios", "push_token": "tok", "user_id": "u-1", "is_active": True}
    )

    device = await DeviceRepository(_device_db(collection)).register("d1", "tok", "ios", app_version="1.0.0")

    query, update = collection.find_one_and_update.call_args.args
    assert query == {"device_id": "d1"}
    assert "user_id" not in update["$set"]
    assert update["$set"]["push_token"] == "tok"
    assert update["$set"]["is_active"] is True
    assert "created_at" in update["$setOnInsert"]
    assert collection.find_one_and_update.call_args.kwargs["upsert"] is True
    assert device.user_id == "u-1"
    assert device.platform is Platform.IOS


@pytest.mark.asyncio
async def test_link_returns_none_for_unknown_device():
    collection = MagicMock()
    collection.find_one_and_update = AsyncMock(return_value=None)

    assert await DeviceRepository(_device_db(collection)).link("missing", "u-1") is None


@pytest.mark.asyncio
async def test_list_active_devices_scoped_and_limited():
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[{"device_id": "d1", "platform": "android", "user_id": "u-1"}])
    collection = MagicMock()
    collection.find.return_value = cursor

    devices = await DeviceRepository(_device_db(collection)).list_active_devices("u-1", limit=5)

    collection.find.assert_called_once_with({"is_active": True, "user_id": "u-1"})
    cursor.sort.assert_called_once_with("created_at", DESCENDING)
    cursor.limit.assert_called_once_with(5)
    assert [d.device_id for d in devices] == ["d1"]


@pytest.mark.asyncio
async def test_list_active_devices_unscoped():
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection = MagicMock()
    collection.find.return_value = cursor

    await DeviceRepository(_device_db(collection)).list_active_devices()

    collection.find.assert_called_once_with({"is_active": True})
    cursor.limit.assert_not_called()


@pytest.mark.asyncio
async def test_deactivate_helpers():
    collection = MagicMock()
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.update_many = AsyncMock(return_value=MagicMock(modified_count=2))
    repo = DeviceRepository(_device_db(collection))

    assert await repo.deactivate("d1") is True
    assert await repo.deactivate_by_token("tok") == 2
    assert collection.update_many.call_args.args[0] == {"push_token": "tok", "is_active": True}
