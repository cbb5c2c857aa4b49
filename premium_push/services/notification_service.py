import logging
from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Protocol, Tuple

from premium_push.schemas.device import Device
from premium_push.schemas.dispatch import DispatchBatch, DispatchTarget, ErrorKind, PushPayload
from premium_push.schemas.entitlement import EntitlementResult
from premium_push.schemas.report import Report, ReportStatus
from premium_push.schemas.user import User
from premium_push.services import entitlement_service
from premium_push.services.device_service import resolve_devices, summarize_linkage
from premium_push.services.dispatch_service import NotificationDispatcher
from premium_push.utils.errors import UserNotFoundError
from premium_push.utils.plan_cache import UserSource


log = logging.getLogger(__name__)

REASON_NOT_ENTITLED = "not entitled"
REASON_NO_DEVICES = "eligible, zero deliverable devices"
REASON_DRY_RUN = "eligible, dispatch skipped (dry run)"
REASON_DISPATCHED = "dispatched to linked devices"


class DeviceSource(Protocol):

    async def list_active_devices(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Device]:
        ...

    async def deactivate(self, device_id: str) -> bool:
        ...


class PremiumNotificationService:

    def __init__(
        self,
        users: UserSource,
        devices: DeviceSource,
        dispatcher: NotificationDispatcher,
        trial_days: int = entitlement_service.DEFAULT_TRIAL_DAYS,
        trial_timezone: tzinfo = timezone.utc,
        recent_device_window: int = 10,
        prune_unregistered: bool = True,
    ) -> None:
        self._users = users
        self._devices = devices
        self._dispatcher = dispatcher
        self._trial_days = trial_days
        self._trial_timezone = trial_timezone
        self._recent_device_window = recent_device_window
        self._prune_unregistered = prune_unregistered

    async def check(self, email: str, now: datetime) -> Tuple[User, EntitlementResult]:
        user = await self._users.find_active_user_by_email(email)
        if user is None:
            raise UserNotFoundError(email)
        result = entitlement_service.evaluate(user, now, self._trial_days, self._trial_timezone)
        return user, result

    async def run(self, email: str, now: datetime, payload: Optional[PushPayload] = None, dry_run: bool = False) -> Report:
        user, entitlement = await self.check(email, now)
        linkage = resolve_devices(user.id, await self._device_pool(user.id))
        summary = summarize_linkage(user.id, linkage)

        def _report(status: ReportStatus, reason: str, batch: Optional[DispatchBatch] = None, pruned: Optional[List[str]] = None) -> Report:
            return Report(
                email=user.email,
                user_id=user.id,
                checked_at=now,
                status=status,
                reason=reason,
                entitlement=entitlement,
                linkage=summary,
                dispatch=batch,
                deactivated_device_ids=pruned or [],
            )

        if not entitlement.has_access:
            log.info("User %s is not entitled; no notifications sent", user.id)
            return _report(ReportStatus.NOT_ENTITLED, REASON_NOT_ENTITLED)

        deliverable = linkage.deliverable
        if not deliverable:
            log.warning("User %s is entitled but has no deliverable device", user.id)
            return _report(ReportStatus.NO_DELIVERABLE_DEVICES, REASON_NO_DEVICES)

        if dry_run:
            return _report(ReportStatus.DRY_RUN, REASON_DRY_RUN)

        if payload is None:
            payload = PushPayload.test(int(entitlement_service.as_utc(now).timestamp() * 1000))
        targets = [DispatchTarget(device_id=d.device_id, token=d.push_token) for d in deliverable]
        batch = await self._dispatcher.dispatch(targets, payload)
        pruned = await self._prune(batch) if self._prune_unregistered else []
        return _report(ReportStatus.DISPATCHED, REASON_DISPATCHED, batch, pruned)

    async def _device_pool(self, user_id: str) -> List[Device]:
        pool = list(await self._devices.list_active_devices(user_id))
        if self._recent_device_window:
            # newest devices in the whole system, used only to spot orphans awaiting a link
            pool.extend(await self._devices.list_active_devices(limit=self._recent_device_window))
        return pool

    async def _prune(self, batch: DispatchBatch) -> List[str]:
        pruned = []
        for outcome in batch.outcomes:
            if outcome.error_kind is not ErrorKind.UNREGISTERED:
                continue
            try:
                await self._devices.deactivate(outcome.device_id)
            except Exception:
                # the notifications already went out, so the report still has to be returned
                log.exception("Failed to deactivate unregistered device %s", outcome.device_id)
                continue
            log.info("Deactivated device %s after provider reported its token unregistered", outcome.device_id)
            pruned.append(outcome.device_id)
        return pruned
