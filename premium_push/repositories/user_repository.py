from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from premium_push.models.user import UserDocument
from premium_push.schemas.user import User


def user_from_document(doc: UserDocument) -> User:
    return User(
        id=str(doc["_id"]),
        email=doc["email"],
        name=doc.get("name"),
        plan=doc.get("plan") or "free",
        is_active=doc.get("is_active", True),
        expiry_date=doc.get("expiry_date"),
        trial_started_at=doc.get("trial_started_at"),
        trial_ended_at=doc.get("trial_ended_at"),
    )


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def find_active_user_by_email(self, email: str) -> Optional[User]:

        doc = await self._collection.find_one({"email": email, "is_active": True})
        if not doc:
            return None
        return user_from_document(doc)
