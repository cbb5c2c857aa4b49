from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from premium_push.schemas.dispatch import PushPayload
from premium_push.schemas.report import PremiumCheckRequest, Report
from premium_push.services.notification_service import PremiumNotificationService
from premium_push.utils.dependencies import get_notification_service
from premium_push.utils.errors import UserNotFoundError
from premium_push.utils.security import get_current_user_id


router = APIRouter(prefix="/notifications", tags=["push"])


@router.post("/premium-check", response_model=Report)
async def premium_check(
    body: PremiumCheckRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: PremiumNotificationService = Depends(get_notification_service),
):
    now = datetime.now(timezone.utc)
    try:
        # ownership is checked before anything is sent
        user, _ = await service.check(body.email, now)
        if user.id != current_user_id:
            raise HTTPException(status_code=403, detail="Not allowed to notify another user's devices")
        payload = None
        if body.title and body.body:
            payload = PushPayload(title=body.title, body=body.body)
        return await service.run(body.email, now, payload=payload, dry_run=body.dry_run)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
