from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from premium_push.services.notification_service import PremiumNotificationService
from premium_push.utils.dependencies import get_notification_service
from premium_push.utils.errors import UserNotFoundError
from premium_push.utils.security import get_current_user_id


router = APIRouter(prefix="/entitlements", tags=["entitlements"])


@router.get("/{email}")
async def get_entitlement(
    email: str,
    current_user_id: str = Depends(get_current_user_id),
    service: PremiumNotificationService = Depends(get_notification_service),
):
    try:
        user, result = await service.check(email, datetime.now(timezone.utc))
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    if user.id != current_user_id:
        raise HTTPException(status_code=403, detail="Not allowed to read another user's entitlement")
    return {"user_id": user.id, "email": user.email, "plan": user.plan.value, **result.model_dump()}
