from zoneinfo import ZoneInfo

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from premium_push.config import Settings, get_settings
from premium_push.database.connection import mongo_db_dependency
from premium_push.repositories.device_repository import DeviceRepository
from premium_push.repositories.user_repository import UserRepository
from premium_push.services.dispatch_service import NotificationDispatcher
from premium_push.services.notification_service import PremiumNotificationService
from premium_push.utils.notifications import get_sender
from premium_push.utils.plan_cache import PlanCache, get_redis


def build_notification_service(db: AsyncIOMotorDatabase, settings: Settings, sender=None) -> PremiumNotificationService:
    users = PlanCache(UserRepository(db), client=get_redis(), ttl_seconds=settings.plan_cache_ttl_seconds)
    dispatcher = NotificationDispatcher(
        sender or get_sender(),
        timeout_seconds=settings.push_timeout_seconds,
        max_concurrency=settings.push_max_concurrency,
    )
    return PremiumNotificationService(
        users,
        DeviceRepository(db),
        dispatcher,
        trial_days=settings.trial_length_days,
        trial_timezone=ZoneInfo(settings.trial_timezone),
        recent_device_window=settings.recent_device_window,
        prune_unregistered=settings.prune_unregistered_devices,
    )


def get_notification_service(db=Depends(mongo_db_dependency), settings: Settings = Depends(get_settings)) -> PremiumNotificationService:
    return build_notification_service(db, settings)


def get_device_repository(db=Depends(mongo_db_dependency)) -> DeviceRepository:
    return DeviceRepository(db)
