from datetime import datetime
from typing import Literal, Optional, TypedDict


DevicePlatform = Literal["ios", "android", "web", "unknown"]


class DeviceDocument(TypedDict, total=False):
    _id: str
    device_id: str
    platform: DevicePlatform
    # None until the owner logs in and links the device
    user_id: Optional[str]
    push_token: Optional[str]
    app_version: Optional[str]
    model: Optional[str]
    os_version: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
