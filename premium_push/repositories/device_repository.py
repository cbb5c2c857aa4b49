from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from premium_push.models.device import DeviceDocument
from premium_push.schemas.device import Device


def device_from_document(doc: DeviceDocument) -> Device:
    return Device(
        device_id=doc["device_id"],
        platform=doc.get("platform") or "unknown",
        user_id=doc.get("user_id"),
        push_token=doc.get("push_token"),
        is_active=doc.get("is_active", True),
        app_version=doc.get("app_version"),
        model=doc.get("model"),
        os_version=doc.get("os_version"),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


class DeviceRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["devices"]

    async def register(
        self,
        device_id: str,
        push_token: Optional[str],
        platform: str,
        app_version: Optional[str] = None,
        user_id: Optional[str] = None,
        model: Optional[str] = None,
        os_version: Optional[str] = None,
    ) -> Device:
        now = datetime.now(timezone.utc)
        update: Dict[str, Any] = {"platform": platform, "is_active": True, "updated_at": now}
        # None means "keep what is stored", so linking never wipes a token and vice versa
        optional = {
            "push_token": push_token,
            "app_version": app_version,
            "user_id": user_id,
            "model": model,
            "os_version": os_version,
        }
        update.update({key: value for key, value in optional.items() if value is not None})
        doc = await self.collection.find_one_and_update(
            {"device_id": device_id},
            {"$set": update, "$setOnInsert": {"created_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return device_from_document(doc)

    async def link(self, device_id: str, user_id: str) -> Optional[Device]:
        doc = await self.collection.find_one_and_update(
            {"device_id": device_id},
            {"$set": {"user_id": user_id, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return device_from_document(doc)

    async def list_active_devices(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Device]:
        query: Dict[str, Any] = {"is_active": True}
        if user_id is not None:
            query["user_id"] = user_id
        cur = self.collection.find(query).sort("created_at", DESCENDING)
        if limit is not None:
            cur = cur.limit(limit)
        items = await cur.to_list(length=limit)
        return [device_from_document(doc) for doc in items]

    async def deactivate(self, device_id: str) -> bool:
        result = await self.collection.update_one(
            {"device_id": device_id},
            {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}},
        )
        return result.modified_count > 0

    async def deactivate_by_token(self, token: str) -> int:
        result = await self.collection.update_many(
            {"push_token": token, "is_active": True},
            {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}},
        )
        return result.modified_count
