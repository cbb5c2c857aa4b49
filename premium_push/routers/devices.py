from fastapi import APIRouter, Depends, HTTPException

from premium_push.repositories.device_repository import DeviceRepository
from premium_push.schemas.device import DeviceLink, DeviceRegister
from premium_push.services.device_service import token_preview
from premium_push.utils.dependencies import get_device_repository
from premium_push.utils.security import get_current_user_id


router = APIRouter(prefix="/devices", tags=["push"])


@router.post("/register")
async def register_device(payload: DeviceRegister, repo: DeviceRepository = Depends(get_device_repository)):
    # registration happens before login, so the device starts out unlinked
    device = await repo.register(
        payload.device_id,
        payload.push_token,
        payload.platform,
        app_version=payload.app_version or "1.0.0",
        model=payload.model,
        os_version=payload.os_version,
    )
    return {
        "ok": True,
        "device": {
            "device_id": device.device_id,
            "platform": device.platform.value,
            "user_id": device.user_id,
            "token": token_preview(device.push_token),
        },
    }


@router.post("/link")
async def link_device(
    payload: DeviceLink,
    user_id: str = Depends(get_current_user_id),
    repo: DeviceRepository = Depends(get_device_repository),
):
    # the owner always comes from the access token, never from the body
    device = await repo.link(payload.device_id, user_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return {"ok": True, "device": {"device_id": device.device_id, "platform": device.platform.value, "user_id": device.user_id}}
